"""Seed data for development and testing."""

from sqlalchemy.orm import Session

from erasure_api.auth.api_key import compute_key_digest, compute_key_prefix
from erasure_api.models import (
    APIKey,
    CascadePolicy,
    Connector,
    ConnectorToken,
    LegacyCascadePolicy,
    Org,
    Partner,
    User,
)
from erasure_api.models.cascade import TARGET_CONNECTOR
from erasure_api.utils.common import hash_token

DEMO_ORG_ID = "org_demo"
DEMO_API_KEY = "demo-api-key-12345"
DEMO_CONNECTOR_TOKEN = "demo-connector-token-12345"


def seed_org(db: Session) -> Org:
    """Seed the demo org with an owner and an API key."""
    org = db.query(Org).filter(Org.id == DEMO_ORG_ID).first()
    if org:
        print(f"✓ Demo org already exists: {org.name}")
        return org

    org = Org(id=DEMO_ORG_ID, name="Demo Org", status="active")
    db.add(org)
    db.flush()

    owner = User(org_id=org.id, email="owner@demo.example", role="OWNER")
    db.add(owner)
    db.flush()

    db.add(
        APIKey(
            org_id=org.id,
            user_id=owner.id,
            prefix=compute_key_prefix(DEMO_API_KEY),
            digest=compute_key_digest(DEMO_API_KEY),
            label="Default API Key",
            is_active=True,
        )
    )
    db.commit()
    print(f"✓ Created demo org: {org.name} (ID: {org.id})")
    print(f"  API Key: {DEMO_API_KEY}")
    return org


def seed_cascade(db: Session, org: Org):
    """Seed a partner, a connector and one policy of each generation."""
    partner = db.query(Partner).filter(Partner.org_id == org.id).first()
    if partner:
        print("✓ Demo cascade configuration already exists")
        return

    partner = Partner(org_id=org.id, name="Demo Analytics Partner", type="analytics")
    connector = Connector(org_id=org.id, name="demo-agent")
    db.add_all([partner, connector])
    db.flush()

    db.add(
        ConnectorToken(
            connector_id=connector.id,
            org_id=org.id,
            token_hash=hash_token(DEMO_CONNECTOR_TOKEN),
        )
    )
    db.add(
        LegacyCascadePolicy(
            org_id=org.id,
            partner_id=partner.id,
            connector_id=connector.id,
            mode="DELETE",
        )
    )
    # Resolves to the same triple as the legacy row, so dispatch creates one job
    db.add(
        CascadePolicy(
            org_id=org.id,
            partner_id=partner.id,
            target_type=TARGET_CONNECTOR,
            target_id=connector.id,
            mode="DELETE",
            sla_days=30,
        )
    )
    db.commit()
    print(f"✓ Created demo partner and connector (connector ID: {connector.id})")
    print(f"  Connector token: {DEMO_CONNECTOR_TOKEN}")


def seed_all(db: Session):
    """Seed all data."""
    print("Seeding database...")
    org = seed_org(db)
    seed_cascade(db, org)
    print("✓ Seeding complete!")
