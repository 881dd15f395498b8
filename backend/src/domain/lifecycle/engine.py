"""LifecycleEngine - validates lifecycle requests and derives new snapshots.

The engine is stateless: it receives a document snapshot (plus history where
needed), checks the request against the transition table and the permission
evaluator, and returns either the new snapshot with the records to append, or
a typed error. It never logs, retries or touches storage; the caller commits
the outcome atomically and forwards the records to the audit recorder.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar
from uuid import UUID, uuid4

from .errors import (
    IllegalTransitionError,
    InconsistentHistoryError,
    LifecycleResult,
    PermissionDeniedError,
    TerminalStateError,
    ValidationError,
    VersionOverflowError,
)
from .models import (
    Actor,
    ChangeType,
    Document,
    DocumentPriority,
    DocumentStatus,
    DocumentType,
    FileRef,
    RequestContext,
    SecurityLevel,
    TransitionDecision,
    TransitionKind,
    TransitionRecord,
    VersionLifecycleState,
    VersionRecord,
)
from .permissions import Action, ChangeStatus, allowed_actions, evaluate
from .transitions import (
    INITIAL_STATUS,
    TransitionClass,
    allowed_decisions,
    get_allowed_transitions,
    is_legal_transition,
    is_terminal,
    requires_comment,
    transition_class,
    transition_label,
)
from .versioning import INITIAL_VERSION, is_valid_version, next_version, version_key

# Text length limits (characters, after stripping whitespace)
MIN_COMMENT_LENGTH = 10
MIN_CHANGE_REASON_LENGTH = 10
MAX_CHANGE_REASON_LENGTH = 500
MIN_CHANGE_SUMMARY_LENGTH = 20
MAX_CHANGE_SUMMARY_LENGTH = 1000
MAX_TITLE_LENGTH = 500

INITIAL_CHANGE_REASON = "Initial version"
INITIAL_CHANGE_SUMMARY = "Document created as the first draft"

E = TypeVar("E", bound=Enum)


@dataclass(frozen=True)
class StatusChangeOutcome:
    document: Document
    transition: TransitionRecord


@dataclass(frozen=True)
class NewVersionOutcome:
    document: Document
    version: VersionRecord
    superseded_id: Optional[UUID]
    transition: TransitionRecord


@dataclass(frozen=True)
class CreationOutcome:
    document: Document
    version: VersionRecord
    transition: TransitionRecord


@dataclass(frozen=True)
class AvailableTransition:
    """One status change the actor may trigger right now."""
    from_status: DocumentStatus
    to_status: DocumentStatus
    transition_class: TransitionClass
    label: str
    requires_comment: bool
    decisions: Tuple[TransitionDecision, ...] = ()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_text(
    value: Optional[str],
    field: str,
    min_length: int,
    max_length: Optional[int] = None,
) -> Optional[ValidationError]:
    text = (value or "").strip()
    if not text:
        return ValidationError(field, "required")
    if len(text) < min_length:
        return ValidationError(field, "min_length", min_length)
    if max_length is not None and len(text) > max_length:
        return ValidationError(field, "max_length", max_length)
    return None


def _parse_enum(enum_cls: Type[E], value, field: str) -> Tuple[Optional[E], Optional[ValidationError]]:
    """Coerce a raw value to enum_cls, or report it as an invalid field."""
    try:
        return enum_cls(value), None
    except ValueError:
        return None, ValidationError(field, "invalid")


class LifecycleEngine:
    """Document lifecycle state machine, version bumps and permission gate.

    Args:
        clock: Returns "now"; injectable so tests get stable timestamps
        id_factory: Generates ids for new records
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], UUID] = uuid4,
    ):
        self.clock = clock
        self.id_factory = id_factory

    def request_create(
        self,
        actor: Actor,
        document_code: str,
        title: str,
        document_type: DocumentType,
        department: str,
        security_level: SecurityLevel = SecurityLevel.INTERNAL,
        priority: DocumentPriority = DocumentPriority.NORMAL,
        recipients: Iterable[str] = (),
        description: Optional[str] = None,
        file_ref: Optional[FileRef] = None,
        context: Optional[RequestContext] = None,
    ) -> LifecycleResult[CreationOutcome]:
        """Create the first draft of a document at version 01.00.

        The produced TransitionRecord has from_status None: it is the first
        step of every document's transition walk.
        """
        document_type, error = _parse_enum(DocumentType, document_type, "type")
        if error is None:
            security_level, error = _parse_enum(SecurityLevel, security_level, "security_level")
        if error is None:
            priority, error = _parse_enum(DocumentPriority, priority, "priority")
        if error is not None:
            return LifecycleResult.failure(error)

        now = self.clock()
        document = Document(
            id=self.id_factory(),
            document_code=document_code,
            title=(title or "").strip(),
            type=document_type,
            department=department,
            status=INITIAL_STATUS,
            version=INITIAL_VERSION,
            author_id=actor.id,
            security_level=security_level,
            priority=priority,
            recipients=frozenset(recipients),
            description=description,
            file_ref=file_ref,
            created_at=now,
            updated_at=now,
        )

        decision = evaluate(actor, document, Action.CREATE)
        if not decision.allowed:
            return LifecycleResult.failure(PermissionDeniedError(decision.reason, Action.CREATE.value))

        error = _check_text(title, "title", 1, MAX_TITLE_LENGTH)
        if error is None and not (document_code or "").strip():
            error = ValidationError("document_code", "required")
        if error is None and not (department or "").strip():
            error = ValidationError("department", "required")
        if error is not None:
            return LifecycleResult.failure(error)

        version = VersionRecord(
            id=self.id_factory(),
            document_id=document.id,
            version=INITIAL_VERSION,
            change_type=ChangeType.MAJOR,
            change_reason=INITIAL_CHANGE_REASON,
            change_summary=INITIAL_CHANGE_SUMMARY,
            created_by=actor.id,
            created_at=now,
            lifecycle_state=VersionLifecycleState.CURRENT,
            title=document.title,
            description=description,
            file_ref=file_ref,
        )
        transition = self._transition(
            document, actor, None, INITIAL_STATUS, now,
            kind=TransitionKind.CREATION, comment=None, context=context,
        )
        return LifecycleResult.success(CreationOutcome(document=document, version=version, transition=transition))

    def request_status_change(
        self,
        document: Document,
        actor: Actor,
        to_status: DocumentStatus,
        comment: Optional[str] = None,
        decision: Optional[TransitionDecision] = None,
        context: Optional[RequestContext] = None,
    ) -> LifecycleResult[StatusChangeOutcome]:
        """Validate and apply a status transition.

        Checks, in order: terminal state, transition table, permission,
        rationale for archive/dispose, decision fits the transition.
        """
        to_status, error = _parse_enum(DocumentStatus, to_status, "to_status")
        if error is not None:
            return LifecycleResult.failure(error)
        from_status = document.status

        if is_terminal(from_status):
            return LifecycleResult.failure(TerminalStateError(from_status))

        if not is_legal_transition(from_status, to_status):
            return LifecycleResult.failure(IllegalTransitionError(from_status, to_status))

        action = ChangeStatus(from_status, to_status)
        permission = evaluate(actor, document, action)
        if not permission.allowed:
            return LifecycleResult.failure(PermissionDeniedError(permission.reason, action.value))

        if requires_comment(to_status):
            error = _check_text(comment, "comment", MIN_COMMENT_LENGTH)
            if error is not None:
                return LifecycleResult.failure(error)

        if decision is not None:
            decision, error = _parse_enum(TransitionDecision, decision, "decision")
            if error is None and decision not in allowed_decisions(from_status, to_status):
                error = ValidationError("decision", "not_allowed")
            if error is not None:
                return LifecycleResult.failure(error)

        now = self.clock()
        updated = replace(
            document,
            status=to_status,
            updated_at=now,
            archived_at=now if to_status == DocumentStatus.ARCHIVED else document.archived_at,
            row_version=document.row_version + 1,
        )
        transition = self._transition(
            document, actor, from_status, to_status, now,
            kind=TransitionKind.STATUS_CHANGE,
            comment=(comment or "").strip() or None,
            decision=decision,
            context=context,
        )
        return LifecycleResult.success(StatusChangeOutcome(document=updated, transition=transition))

    def request_new_version(
        self,
        document: Document,
        actor: Actor,
        change_type: ChangeType,
        change_reason: str,
        change_summary: str,
        file_ref: Optional[FileRef] = None,
        versions: Sequence[VersionRecord] = (),
        context: Optional[RequestContext] = None,
    ) -> LifecycleResult[NewVersionOutcome]:
        """Cut a new version; the document re-enters draft.

        Args:
            versions: Existing version records of the document, used to find
                the record that becomes superseded

        Returns:
            Outcome naming superseded_id, the record the caller must flip to
            superseded in the same transaction as inserting the new one
        """
        if is_terminal(document.status):
            return LifecycleResult.failure(TerminalStateError(document.status))

        permission = evaluate(actor, document, Action.CREATE_VERSION)
        if not permission.allowed:
            return LifecycleResult.failure(PermissionDeniedError(permission.reason, Action.CREATE_VERSION.value))

        change_type, error = _parse_enum(ChangeType, change_type, "change_type")
        error = error or (
            _check_text(change_reason, "change_reason", MIN_CHANGE_REASON_LENGTH, MAX_CHANGE_REASON_LENGTH)
            or _check_text(change_summary, "change_summary", MIN_CHANGE_SUMMARY_LENGTH, MAX_CHANGE_SUMMARY_LENGTH)
        )
        if error is not None:
            return LifecycleResult.failure(error)

        if not is_valid_version(document.version):
            return LifecycleResult.failure(ValidationError("version", "format"))

        try:
            new_version = next_version(document.version, change_type)
        except VersionOverflowError as exc:
            return LifecycleResult.failure(exc)

        current = [record for record in versions if record.document_id == document.id and record.is_current]
        if len(current) > 1:
            return LifecycleResult.failure(InconsistentHistoryError(
                f"Document {document.id} has {len(current)} current version records"
            ))
        if versions and not current:
            return LifecycleResult.failure(InconsistentHistoryError(
                f"Document {document.id} has no current version record"
            ))
        superseded_id = current[0].id if current else None

        now = self.clock()
        updated = replace(
            document,
            version=new_version,
            status=DocumentStatus.DRAFT,
            file_ref=file_ref or document.file_ref,
            updated_at=now,
            row_version=document.row_version + 1,
        )
        record = VersionRecord(
            id=self.id_factory(),
            document_id=document.id,
            version=new_version,
            change_type=change_type,
            change_reason=change_reason.strip(),
            change_summary=change_summary.strip(),
            created_by=actor.id,
            created_at=now,
            lifecycle_state=VersionLifecycleState.CURRENT,
            title=document.title,
            description=document.description,
            file_ref=updated.file_ref,
        )
        transition = self._transition(
            document, actor, document.status, DocumentStatus.DRAFT, now,
            kind=TransitionKind.NEW_VERSION,
            comment=f"New version {new_version}: {change_reason.strip()}",
            context=context,
        )
        return LifecycleResult.success(NewVersionOutcome(
            document=updated,
            version=record,
            superseded_id=superseded_id,
            transition=transition,
        ))

    def available_transitions(self, document: Document, actor: Actor) -> List[AvailableTransition]:
        """Transitions the actor may trigger from the document's status."""
        available = []
        for to_status in get_allowed_transitions(document.status):
            if evaluate(actor, document, ChangeStatus(document.status, to_status)).allowed:
                available.append(AvailableTransition(
                    from_status=document.status,
                    to_status=to_status,
                    transition_class=transition_class(document.status, to_status),
                    label=transition_label(document.status, to_status),
                    requires_comment=requires_comment(to_status),
                    decisions=tuple(sorted(allowed_decisions(document.status, to_status), key=lambda d: d.value)),
                ))
        return available

    def allowed_actions(self, document: Document, actor: Actor) -> dict:
        return allowed_actions(actor, document)

    def _transition(
        self,
        document: Document,
        actor: Actor,
        from_status: Optional[DocumentStatus],
        to_status: DocumentStatus,
        timestamp: datetime,
        kind: TransitionKind,
        comment: Optional[str],
        decision: Optional[TransitionDecision] = None,
        context: Optional[RequestContext] = None,
    ) -> TransitionRecord:
        context = context or RequestContext()
        return TransitionRecord(
            id=self.id_factory(),
            document_id=document.id,
            from_status=from_status,
            to_status=to_status,
            actor_id=actor.id,
            actor_department=actor.department,
            timestamp=timestamp,
            kind=kind,
            comment=comment,
            decision=decision,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            session_id=context.session_id,
        )


def check_transition_history(
    transitions: Sequence[TransitionRecord],
    current_status: DocumentStatus,
) -> LifecycleResult[None]:
    """Verify that recorded transitions form a valid walk ending at current_status.

    The walk starts with a creation record (from_status None → draft); status
    changes must follow the transition table; new-version records always land
    in draft.
    """
    status: Optional[DocumentStatus] = None
    for index, record in enumerate(transitions):
        if record.from_status != status:
            return LifecycleResult.failure(InconsistentHistoryError(
                f"Transition #{index} starts at {record.from_status} but document was at {status}"
            ))
        if record.kind == TransitionKind.CREATION:
            valid = status is None and record.to_status == INITIAL_STATUS
        elif record.kind == TransitionKind.NEW_VERSION:
            valid = status is not None and not is_terminal(status) and record.to_status == DocumentStatus.DRAFT
        else:
            valid = status is not None and is_legal_transition(status, record.to_status)
        if not valid:
            return LifecycleResult.failure(InconsistentHistoryError(
                f"Transition #{index} ({record.kind.value}) {status} -> {record.to_status.value} is not allowed"
            ))
        status = record.to_status

    if transitions and status != current_status:
        return LifecycleResult.failure(InconsistentHistoryError(
            f"Transition history ends at {status.value} but document is {current_status.value}"
        ))
    return LifecycleResult.success(None)


def apply_version_change(history: Sequence[VersionRecord], outcome: NewVersionOutcome) -> List[VersionRecord]:
    """History after committing outcome: old current superseded, new record appended."""
    updated = [
        replace(record, lifecycle_state=VersionLifecycleState.SUPERSEDED)
        if record.id == outcome.superseded_id else record
        for record in history
    ]
    updated.append(outcome.version)
    return updated


def current_versions(history: Iterable[VersionRecord]) -> List[VersionRecord]:
    return [record for record in history if record.is_current]


def sort_versions(history: Iterable[VersionRecord]) -> List[VersionRecord]:
    return sorted(history, key=lambda record: version_key(record.version))


def generate_document_code(document_type: DocumentType, department_code: str, sequence: int) -> str:
    """Build a document code such as C-PR-QC-007."""
    if sequence < 1 or sequence > 999:
        raise ValueError(f"Sequence out of range: {sequence}")
    if not department_code:
        raise ValueError("Department code is required")
    return f"C-{DocumentType(document_type).value}-{department_code.upper()}-{sequence:03d}"
