"""Idempotent cascade job fan-out for one deletion request."""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from erasure_api.audit.service import AuditTrail
from erasure_api.cascade.policies import GENERATION_LEGACY, GENERATION_TARGETED, load_policies
from erasure_api.errors import NotFound
from erasure_api.models import CascadeJob, DeletionRequest
from erasure_api.models.cascade import JOB_PENDING
from erasure_api.utils import metrics
from erasure_api.utils.common import new_id, utcnow

logger = logging.getLogger(__name__)

AUDIT_TYPE_CASCADING = "CASCADING"


@dataclass
class DispatchResult:
    """Outcome of one dispatch call."""

    tasks_created: int
    legacy_policies: int
    targeted_policies: int


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Unsupported database dialect for cascade upserts: {dialect}")


class CascadeDispatcher:
    """Turns a request plus the org's policies into cascade job rows.

    The ``(request_id, partner_id, target_id)`` unique constraint is the only
    dedup mechanism: inserts that hit it become ``updated_at`` refreshes, so
    status and attempts written by a delivery worker are never reset.
    """

    def __init__(self, db: Session):
        """Initialize dispatcher."""
        self.db = db
        self.audit = AuditTrail(db)

    def dispatch(self, org_id: str, request_id: str, actor_id: Optional[str] = None) -> DispatchResult:
        """Upsert one job per resolved policy and append a single audit entry."""
        request = (
            self.db.query(DeletionRequest)
            .filter(DeletionRequest.id == request_id, DeletionRequest.org_id == org_id)
            .first()
        )
        if not request:
            raise NotFound("Deletion request not found")

        policies = load_policies(self.db, org_id)
        insert = _insert_for(self.db)
        now = utcnow()
        created = 0

        for policy in policies:
            stmt = (
                insert(CascadeJob.__table__)
                .values(
                    id=new_id(),
                    org_id=org_id,
                    request_id=request.id,
                    partner_id=policy.partner_id,
                    target_type=policy.target_type,
                    target_id=policy.target_id,
                    status=JOB_PENDING,
                    attempts=0,
                    updated_at=now,
                )
                .on_conflict_do_nothing(index_elements=["request_id", "partner_id", "target_id"])
            )
            result = self.db.execute(stmt)
            if result.rowcount and result.rowcount > 0:
                created += 1
                metrics.cascade_jobs_created.labels(target_type=policy.target_type).inc()
                continue

            self.db.execute(
                update(CascadeJob)
                .where(
                    CascadeJob.request_id == request.id,
                    CascadeJob.partner_id == policy.partner_id,
                    CascadeJob.target_id == policy.target_id,
                )
                .values(updated_at=now)
                .execution_options(synchronize_session=False)
            )

        legacy_count = sum(1 for p in policies if p.generation == GENERATION_LEGACY)
        targeted_count = sum(1 for p in policies if p.generation == GENERATION_TARGETED)
        self.audit.append(
            org_id=org_id,
            request_id=request.id,
            event_type=AUDIT_TYPE_CASCADING,
            actor=actor_id or "system",
            details={
                "legacyPolicies": legacy_count,
                "targetPolicies": targeted_count,
                "partners": sorted({p.partner_id for p in policies}),
                "tasksCreated": created,
            },
        )
        self.db.commit()
        metrics.cascade_dispatches.inc()

        logger.info(
            f"Cascade dispatched: {created} new jobs from {len(policies)} policies",
            extra={"org_id": org_id, "request_id": request.id},
        )
        return DispatchResult(
            tasks_created=created,
            legacy_policies=legacy_count,
            targeted_policies=targeted_count,
        )
