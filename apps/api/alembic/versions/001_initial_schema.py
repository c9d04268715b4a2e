"""Initial schema: orgs, requests, audit, cascade, integrations, billing.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'orgs',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='active'),
        sa.Column('stripe_customer_id', sa.String(length=255), nullable=True),
        sa.Column('setup_fee_paid_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('org_id', sa.String(length=64), sa.ForeignKey('orgs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='OWNER'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_org_id', 'users', ['org_id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'api_keys',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('org_id', sa.String(length=64), sa.ForeignKey('orgs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(length=64), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('prefix', sa.String(length=16), nullable=False),
        sa.Column('digest', sa.String(length=64), nullable=False, unique=True),
        sa.Column('label', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_api_keys_id', 'api_keys', ['id'])
    op.create_index('ix_api_keys_org_id', 'api_keys', ['org_id'])
    op.create_index('ix_api_keys_prefix', 'api_keys', ['prefix'])

    op.create_table(
        'deletion_requests',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('org_id', sa.String(length=64), sa.ForeignKey('orgs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('request_ref', sa.String(length=255), nullable=True),
        sa.Column('subject_hash', sa.String(length=64), nullable=False),
        sa.Column('payload_hash', sa.String(length=64), nullable=True),
        sa.Column('system', sa.String(length=80), nullable=False, server_default='drop'),
        sa.Column('status', sa.String(length=30), nullable=False, server_default='RECEIVED'),
        sa.Column('received_at', sa.DateTime(), nullable=False),
        sa.Column('meta_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_deletion_requests_org_id', 'deletion_requests', ['org_id'])
    op.create_index('ix_deletion_requests_subject_hash', 'deletion_requests', ['subject_hash'])
    op.create_index('ix_deletion_requests_created_at', 'deletion_requests', ['created_at'])

    op.create_table(
        'audit_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('org_id', sa.String(length=64), sa.ForeignKey('orgs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('request_id', sa.String(length=64), nullable=False),
        sa.Column('ts', sa.DateTime(), nullable=False),
        sa.Column('type', sa.String(length=60), nullable=False),
        sa.Column('actor', sa.String(length=80), nullable=True),
        sa.Column('details_json', sa.JSON(), nullable=True),
        sa.Column('event_hash', sa.String(length=64), nullable=False, unique=True),
        sa.Column('previous_event_hash', sa.String(length=64), nullable=True),
    )
    op.create_index('ix_audit_events_org_id', 'audit_events', ['org_id'])
    op.create_index('ix_audit_events_request_id', 'audit_events', ['request_id'])

    op.create_table(
        'partners',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('org_id', sa.String(length=64), sa.ForeignKey('orgs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=60), nullable=True),
        sa.Column('endpoint_url', sa.Text(), nullable=True),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_partners_org_id', 'partners', ['org_id'])

    op.create_table(
        'connectors',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('org_id', sa.String(length=64), sa.ForeignKey('orgs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='OFFLINE'),
        sa.Column('agent_version', sa.String(length=60), nullable=True),
        sa.Column('last_heartbeat_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_connectors_org_id', 'connectors', ['org_id'])

    op.create_table(
        'connector_tokens',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('connector_id', sa.String(length=64), sa.ForeignKey('connectors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('org_id', sa.String(length=64), sa.ForeignKey('orgs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_connector_tokens_id', 'connector_tokens', ['id'])
    op.create_index('ix_connector_tokens_connector_id', 'connector_tokens', ['connector_id'])

    op.create_table(
        'cascade_policies',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('org_id', sa.String(length=64), sa.ForeignKey('orgs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('partner_id', sa.String(length=64), sa.ForeignKey('partners.id', ondelete='CASCADE'), nullable=False),
        sa.Column('connector_id', sa.String(length=64), nullable=False),
        sa.Column('mode', sa.String(length=60), nullable=False),
        sa.Column('retries_max', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('backoff_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('sla_days', sa.Integer(), nullable=True),
        sa.Column('attestation_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('escalation_email', sa.String(length=320), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_cascade_policies_org_id', 'cascade_policies', ['org_id'])

    op.create_table(
        'cascade_policies_v2',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('org_id', sa.String(length=64), sa.ForeignKey('orgs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('partner_id', sa.String(length=64), sa.ForeignKey('partners.id', ondelete='CASCADE'), nullable=False),
        sa.Column('target_type', sa.String(length=20), nullable=False),
        sa.Column('target_id', sa.String(length=64), nullable=False),
        sa.Column('mode', sa.String(length=60), nullable=False),
        sa.Column('retries_max', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('backoff_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('sla_days', sa.Integer(), nullable=True),
        sa.Column('attestation_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('escalation_email', sa.String(length=320), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_cascade_policies_v2_org_id', 'cascade_policies_v2', ['org_id'])

    op.create_table(
        'cascade_jobs',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('org_id', sa.String(length=64), sa.ForeignKey('orgs.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'request_id',
            sa.String(length=64),
            sa.ForeignKey('deletion_requests.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('partner_id', sa.String(length=64), sa.ForeignKey('partners.id', ondelete='CASCADE'), nullable=False),
        sa.Column('target_type', sa.String(length=20), nullable=False),
        sa.Column('target_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('request_id', 'partner_id', 'target_id', name='uq_cascade_jobs_triple'),
    )
    op.create_index('ix_cascade_jobs_org_id', 'cascade_jobs', ['org_id'])
    op.create_index('ix_cascade_jobs_request_id', 'cascade_jobs', ['request_id'])
    op.create_index('ix_cascade_jobs_status', 'cascade_jobs', ['status'])

    op.create_table(
        'customer_api_integrations',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('org_id', sa.String(length=64), sa.ForeignKey('orgs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('base_url', sa.String(length=500), nullable=False),
        sa.Column('health_path', sa.String(length=200), nullable=False, server_default='/erasure/health'),
        sa.Column('delete_path', sa.String(length=200), nullable=False, server_default='/erasure/delete'),
        sa.Column('status_path', sa.String(length=200), nullable=False, server_default='/erasure/status'),
        sa.Column('webhook_path', sa.String(length=200), nullable=True),
        sa.Column('auth_type', sa.String(length=10), nullable=False, server_default='NONE'),
        sa.Column('shared_secret_encrypted', sa.Text(), nullable=True),
        sa.Column('bearer_token_encrypted', sa.Text(), nullable=True),
        sa.Column('headers_json', sa.JSON(), nullable=True),
        sa.Column('timeout_ms', sa.Integer(), nullable=False, server_default='8000'),
        sa.Column('retries', sa.Integer(), nullable=False, server_default='2'),
        sa.Column('hmac_header_name', sa.String(length=60), nullable=False, server_default='X-Erasure-Signature'),
        sa.Column('timestamp_header_name', sa.String(length=60), nullable=False, server_default='X-Erasure-Timestamp'),
        sa.Column('replay_window_seconds', sa.Integer(), nullable=False, server_default='300'),
        sa.Column('last_healthcheck_at', sa.DateTime(), nullable=True),
        sa.Column('last_healthcheck_ok', sa.Boolean(), nullable=True),
        sa.Column('last_healthcheck_status', sa.Integer(), nullable=True),
        sa.Column('last_healthcheck_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_customer_api_integrations_org_id', 'customer_api_integrations', ['org_id'])

    op.create_table(
        'stripe_events',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('stripe_event_id', sa.String(length=255), nullable=False),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('payload_json', sa.JSON(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_stripe_events_stripe_event_id', 'stripe_events', ['stripe_event_id'], unique=True)
    op.create_index('ix_stripe_events_event_type', 'stripe_events', ['event_type'])
    op.create_index('ix_stripe_events_status', 'stripe_events', ['status'])

    op.create_table(
        'billing_payments',
        sa.Column('id', sa.String(length=128), primary_key=True),
        sa.Column('org_id', sa.String(length=64), sa.ForeignKey('orgs.id', ondelete='SET NULL'), nullable=True),
        sa.Column('lead_id', sa.Integer(), nullable=True),
        sa.Column('stripe_checkout_session_id', sa.String(length=255), nullable=False, unique=True),
        sa.Column('stripe_payment_intent_id', sa.String(length=255), nullable=True),
        sa.Column('stripe_customer_id', sa.String(length=255), nullable=True),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=10), nullable=False, server_default='usd'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('plan_id', sa.String(length=100), nullable=True),
        sa.Column('email', sa.String(length=320), nullable=True),
        sa.Column('metadata_json', sa.JSON(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_billing_payments_org_id', 'billing_payments', ['org_id'])
    op.create_index('ix_billing_payments_stripe_payment_intent_id', 'billing_payments', ['stripe_payment_intent_id'])


def downgrade() -> None:
    op.drop_table('billing_payments')
    op.drop_table('stripe_events')
    op.drop_table('customer_api_integrations')
    op.drop_table('cascade_jobs')
    op.drop_table('cascade_policies_v2')
    op.drop_table('cascade_policies')
    op.drop_table('connector_tokens')
    op.drop_table('connectors')
    op.drop_table('partners')
    op.drop_table('audit_events')
    op.drop_table('deletion_requests')
    op.drop_table('api_keys')
    op.drop_table('users')
    op.drop_table('orgs')
