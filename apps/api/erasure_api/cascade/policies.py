"""Unified reader over both cascade policy generations."""

from dataclasses import asdict, dataclass
from typing import Optional

from sqlalchemy.orm import Session

from erasure_api.models import CascadePolicy, LegacyCascadePolicy, Partner
from erasure_api.models.cascade import TARGET_CONNECTOR

GENERATION_LEGACY = "legacy"
GENERATION_TARGETED = "targeted"


@dataclass(frozen=True)
class ResolvedPolicy:
    """One policy, independent of which table it was stored in."""

    policy_id: str
    partner_id: str
    partner_name: str
    target_type: str
    target_id: str
    mode: str
    retries_max: int
    backoff_minutes: int
    sla_days: Optional[int]
    attestation_required: bool
    escalation_email: Optional[str]
    generation: str

    def to_dict(self) -> dict:
        return asdict(self)


def load_policies(db: Session, org_id: str) -> list[ResolvedPolicy]:
    """Load every policy bound to an enabled partner of the org.

    Legacy rows always resolve to ``target_type = connector``. Duplicates across
    generations are kept here; the job table's unique triple collapses them.
    """
    legacy_rows = (
        db.query(LegacyCascadePolicy, Partner)
        .join(Partner, Partner.id == LegacyCascadePolicy.partner_id)
        .filter(
            LegacyCascadePolicy.org_id == org_id,
            Partner.org_id == org_id,
            Partner.enabled.is_(True),
        )
        .order_by(LegacyCascadePolicy.created_at.asc())
        .all()
    )
    targeted_rows = (
        db.query(CascadePolicy, Partner)
        .join(Partner, Partner.id == CascadePolicy.partner_id)
        .filter(
            CascadePolicy.org_id == org_id,
            Partner.org_id == org_id,
            Partner.enabled.is_(True),
        )
        .order_by(CascadePolicy.created_at.asc())
        .all()
    )

    resolved = [
        ResolvedPolicy(
            policy_id=policy.id,
            partner_id=partner.id,
            partner_name=partner.name,
            target_type=TARGET_CONNECTOR,
            target_id=policy.connector_id,
            mode=policy.mode,
            retries_max=policy.retries_max,
            backoff_minutes=policy.backoff_minutes,
            sla_days=policy.sla_days,
            attestation_required=bool(policy.attestation_required),
            escalation_email=policy.escalation_email,
            generation=GENERATION_LEGACY,
        )
        for policy, partner in legacy_rows
    ]
    resolved.extend(
        ResolvedPolicy(
            policy_id=policy.id,
            partner_id=partner.id,
            partner_name=partner.name,
            target_type=policy.target_type,
            target_id=policy.target_id,
            mode=policy.mode,
            retries_max=policy.retries_max,
            backoff_minutes=policy.backoff_minutes,
            sla_days=policy.sla_days,
            attestation_required=bool(policy.attestation_required),
            escalation_email=policy.escalation_email,
            generation=GENERATION_TARGETED,
        )
        for policy, partner in targeted_rows
    )
    return resolved
