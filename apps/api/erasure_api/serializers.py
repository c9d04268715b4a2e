"""JSON shapes shared by routes and exports."""

from erasure_api.models import AuditEvent, CascadeJob, DeletionRequest


def serialize_request(request: DeletionRequest) -> dict:
    return {
        "id": request.id,
        "requestRef": request.request_ref,
        "subjectHash": request.subject_hash,
        "payloadHash": request.payload_hash,
        "system": request.system,
        "status": request.status,
        "receivedAt": request.received_at.isoformat(),
        "meta": request.meta_json,
        "createdAt": request.created_at.isoformat(),
    }


def serialize_job(job: CascadeJob) -> dict:
    return {
        "id": job.id,
        "requestId": job.request_id,
        "partnerId": job.partner_id,
        "partnerName": job.partner.name if job.partner else None,
        "targetType": job.target_type,
        "targetId": job.target_id,
        "status": job.status,
        "attempts": job.attempts,
        "lastError": job.last_error,
        "updatedAt": job.updated_at.isoformat(),
    }


def serialize_event(event: AuditEvent) -> dict:
    return {
        "id": event.id,
        "requestId": event.request_id,
        "ts": event.ts.isoformat(),
        "type": event.type,
        "actor": event.actor,
        "details": event.details_json,
        "eventHash": event.event_hash,
        "previousEventHash": event.previous_event_hash,
    }
