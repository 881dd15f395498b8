"""Audit logging service for document lifecycle events.

This service provides a centralized interface for creating immutable audit log
entries. Every committed lifecycle change must be logged through this service.

Audit Events:
- DOCUMENT_CREATED
- WORKFLOW_TRANSITION
- DOCUMENT_VERSION_CREATED
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from domain.lifecycle import (
    AuditEvent,
    AuditRecorderPort,
    RequestContext,
    TransitionKind,
    TransitionRecord,
    VersionRecord,
)
from models.audit_log import AuditLog

DOCUMENT_CREATED = "DOCUMENT_CREATED"
WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"
DOCUMENT_VERSION_CREATED = "DOCUMENT_VERSION_CREATED"


def log_audit_event(
    db: Session,
    action: str,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLog:
    """Create an audit log entry.

    All parameters are stored as-is. This function does not validate action
    names or entity types.

    Args:
        db: Database session
        action: Event action (e.g., "WORKFLOW_TRANSITION")
        actor_id: Actor who performed the action
        entity_type: Type of entity affected (e.g., "document")
        entity_id: ID of affected entity
        metadata: Additional context as JSON (e.g., {"from_status": "draft", "to_status": "review"})
        ip_address: Client IP address (IPv4 or IPv6)
        user_agent: Client User-Agent header

    Returns:
        AuditLog: The created audit log entry
    """
    audit_entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=metadata,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    db.add(audit_entry)
    db.flush()  # Get ID without committing transaction

    return audit_entry


def request_context(request: Request) -> RequestContext:
    """Extract client IP, User-Agent and session id from a FastAPI request."""
    # Handle proxies via X-Forwarded-For
    ip_address = request.client.host if request.client else None
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Use first IP in chain (original client)
        ip_address = forwarded_for.split(",")[0].strip()

    return RequestContext(
        ip_address=ip_address,
        user_agent=request.headers.get("User-Agent"),
        session_id=request.headers.get("X-Session-ID"),
    )


class AuditRecorder(AuditRecorderPort):
    """Writes lifecycle records into audit_log inside the caller's transaction.

    Because the entry is flushed in the same session as the lifecycle change,
    a rolled back commit also drops its audit entry.
    """

    def __init__(self, db: Session):
        self.db = db

    def record(self, event: AuditEvent) -> None:
        if isinstance(event, TransitionRecord):
            self._record_transition(event)
        elif isinstance(event, VersionRecord):
            self._record_version(event)
        else:
            raise TypeError(f"Unsupported audit event: {type(event).__name__}")

    def _record_transition(self, record: TransitionRecord) -> None:
        action = DOCUMENT_CREATED if record.kind == TransitionKind.CREATION else WORKFLOW_TRANSITION
        log_audit_event(
            db=self.db,
            action=action,
            actor_id=record.actor_id,
            entity_type="document",
            entity_id=record.document_id,
            metadata={
                "transition_id": str(record.id),
                "kind": record.kind.value,
                "from_status": record.from_status.value if record.from_status else None,
                "to_status": record.to_status.value,
                "actor_department": record.actor_department,
                "decision": record.decision.value if record.decision else None,
                "comment": record.comment,
                "session_id": record.session_id,
                "timestamp": record.timestamp.isoformat(),
            },
            ip_address=record.ip_address,
            user_agent=record.user_agent,
        )

    def _record_version(self, record: VersionRecord) -> None:
        log_audit_event(
            db=self.db,
            action=DOCUMENT_VERSION_CREATED,
            actor_id=record.created_by,
            entity_type="document",
            entity_id=record.document_id,
            metadata={
                "version_id": str(record.id),
                "version": record.version,
                "change_type": record.change_type.value,
                "change_reason": record.change_reason,
            },
        )
