"""CLI commands for the erasure API."""

import secrets

import click

from erasure_api.db.base import Base
from erasure_api.db.seed import seed_all
from erasure_api.db.session import SessionLocal, engine
from erasure_api.settings import get_settings


@click.group()
def cli():
    """Erasure API CLI."""
    pass


@cli.command()
@click.option("--create-tables", is_flag=True, help="Create tables before seeding (no migrations).")
def seed(create_tables):
    """Seed demo data."""
    if create_tables:
        import erasure_api.models  # noqa: F401

        Base.metadata.create_all(bind=engine)

    click.echo("Seeding demo data...")
    db = SessionLocal()
    try:
        seed_all(db)
        click.echo("✓ Seed data created.")
    except Exception as e:
        click.echo(f"✗ Error seeding data: {e}", err=True)
        db.rollback()
        raise SystemExit(1) from e
    finally:
        db.close()


@cli.command("generate-key")
@click.option("--bytes", "num_bytes", default=48, show_default=True, help="Random bytes before encoding.")
def generate_key(num_bytes):
    """Print a random APP_ENCRYPTION_KEY for the credential vault."""
    if num_bytes < 24:
        raise click.BadParameter("use at least 24 bytes", param_hint="--bytes")
    click.echo(secrets.token_urlsafe(num_bytes))


@cli.command()
@click.option("--reload/--no-reload", default=None, help="Auto-reload; defaults to on in development.")
def serve(reload):
    """Run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    if reload is None:
        reload = settings.is_development
    uvicorn.run(
        "erasure_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    cli()
