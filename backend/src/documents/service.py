"""Document lifecycle service.

Glue between the pure lifecycle engine and storage: loads snapshots, asks the
engine for an outcome, persists it with a compare-and-swap, writes the audit
entries in the same transaction and commits. A lost compare-and-swap race is
retried against a freshly loaded snapshot; everything else surfaces as the
typed lifecycle error so the API layer can map it to an HTTP status.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from audit.service import AuditRecorder
from config import get_settings
from domain.lifecycle import (
    Action,
    Actor,
    ActorPermission,
    AvailableTransition,
    ChangeStatus,
    ChangeType,
    Document,
    DocumentPriority,
    DocumentStatus,
    DocumentType,
    FileRef,
    InconsistentHistoryError,
    LifecycleEngine,
    LifecycleError,
    LifecycleResult,
    NewVersionOutcome,
    PermissionDeniedError,
    ReasonCode,
    RequestContext,
    SecurityLevel,
    StatusChangeOutcome,
    TransitionDecision,
    TransitionRecord,
    ValidationError,
    VersionComparison,
    VersionContentSource,
    VersionOverflowError,
    VersionRecord,
    can_perform,
    check_transition_history,
    compare,
    evaluate,
    generate_document_code,
)
from domain.lifecycle.comparator import find_version
from .repository import SqlAlchemyDocumentRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATISTICS_ACTION = "view_statistics"


class DocumentNotFoundError(LifecycleError):
    code = "NOT_FOUND"

    def __init__(self, document_id: UUID):
        super().__init__(f"Document {document_id} not found")
        self.document_id = document_id


class VersionNotFoundError(LifecycleError):
    code = "NOT_FOUND"

    def __init__(self, document_id: UUID, version: str):
        super().__init__(f"Version {version} of document {document_id} not found")
        self.document_id = document_id
        self.version = version


@dataclass(frozen=True)
class WorkflowStatistics:
    """Document counts; department is the filter applied, None for all."""
    total: int
    by_status: Dict[str, int]
    by_department: Dict[str, int]
    department: Optional[str] = None


class DocumentLifecycleService:
    """Runs lifecycle requests against the database.

    Args:
        db: Session; the service commits or rolls back its transaction
        engine: Lifecycle engine (a default one is built when omitted)
        content_source: Loads file text for content diffs; without one,
            comparisons carry field diffs only
        max_attempts: Attempts per write request when the compare-and-swap
            loses a race (defaults to LIFECYCLE_COMMIT_RETRIES)
    """

    def __init__(
        self,
        db: Session,
        engine: Optional[LifecycleEngine] = None,
        content_source: Optional[VersionContentSource] = None,
        max_attempts: Optional[int] = None,
    ):
        self.db = db
        self.repository = SqlAlchemyDocumentRepository(db)
        self.audit = AuditRecorder(db)
        self.engine = engine or LifecycleEngine()
        self.content_source = content_source
        self.max_attempts = max(1, max_attempts or get_settings().LIFECYCLE_COMMIT_RETRIES)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_document(
        self,
        actor: Actor,
        title: str,
        document_type: DocumentType,
        department: Optional[str] = None,
        security_level: SecurityLevel = SecurityLevel.INTERNAL,
        priority: DocumentPriority = DocumentPriority.NORMAL,
        recipients: Iterable[str] = (),
        description: Optional[str] = None,
        file_ref: Optional[FileRef] = None,
        context: Optional[RequestContext] = None,
    ) -> Document:
        """Create a document in draft at version 01.00.

        The document code is allocated from the running count of codes with
        the same type and department; a racing insert of the same code fails
        on the unique constraint.
        """
        department = (department or actor.department or "").strip()
        document_code = self._next_document_code(document_type, department)

        result = self.engine.request_create(
            actor=actor,
            document_code=document_code,
            title=title,
            document_type=document_type,
            department=department,
            security_level=security_level,
            priority=priority,
            recipients=recipients,
            description=description,
            file_ref=file_ref,
            context=context,
        )
        outcome = self._unwrap(result, "create", None, actor)

        self.repository.add(outcome.document, outcome.version, outcome.transition)
        self.audit.record(outcome.transition)
        self.audit.record(outcome.version)
        self.db.commit()

        logger.info(
            f"Document {outcome.document.document_code} created by {actor.id}",
            extra={"document_id": outcome.document.id, "actor_id": actor.id},
        )
        return outcome.document

    def change_status(
        self,
        document_id: UUID,
        actor: Actor,
        to_status: DocumentStatus,
        comment: Optional[str] = None,
        decision: Optional[TransitionDecision] = None,
        context: Optional[RequestContext] = None,
    ) -> StatusChangeOutcome:
        """Move a document to to_status.

        Raises:
            DocumentNotFoundError: Unknown document
            LifecycleError: The engine's typed rejection, or
                ConcurrentModificationError once retries are exhausted
        """
        def attempt(document: Document) -> StatusChangeOutcome:
            result = self.engine.request_status_change(
                document, actor, to_status, comment=comment, decision=decision, context=context,
            )
            outcome = self._unwrap(result, "status_change", document, actor)
            self.repository.commit_status_change(document, outcome.document, outcome.transition)
            self.audit.record(outcome.transition)
            return outcome

        outcome = self._with_retries(document_id, actor, attempt)
        logger.info(
            f"Document {document_id} moved {outcome.transition.from_status.value} -> "
            f"{outcome.transition.to_status.value}",
            extra={
                "document_id": document_id,
                "actor_id": actor.id,
                "transition": f"{outcome.transition.from_status.value}->{outcome.transition.to_status.value}",
            },
        )
        return outcome

    def create_version(
        self,
        document_id: UUID,
        actor: Actor,
        change_type: ChangeType,
        change_reason: str,
        change_summary: str,
        file_ref: Optional[FileRef] = None,
        context: Optional[RequestContext] = None,
    ) -> NewVersionOutcome:
        """Cut a new version; the document returns to draft.

        Raises:
            DocumentNotFoundError: Unknown document
            LifecycleError: The engine's typed rejection, or
                ConcurrentModificationError once retries are exhausted
        """
        def attempt(document: Document) -> NewVersionOutcome:
            versions = self.repository.list_versions(document.id)
            result = self.engine.request_new_version(
                document, actor, change_type, change_reason, change_summary,
                file_ref=file_ref, versions=versions, context=context,
            )
            outcome = self._unwrap(result, "new_version", document, actor)
            self.repository.commit_new_version(
                document, outcome.document, outcome.version, outcome.superseded_id, outcome.transition,
            )
            self.audit.record(outcome.version)
            self.audit.record(outcome.transition)
            return outcome

        outcome = self._with_retries(document_id, actor, attempt)
        logger.info(
            f"Document {document_id} advanced to version {outcome.version.version}",
            extra={"document_id": document_id, "actor_id": actor.id, "version": outcome.version.version},
        )
        return outcome

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_document(self, document_id: UUID, actor: Actor) -> Document:
        """Load a document the actor may view.

        Raises:
            DocumentNotFoundError: Unknown document
            PermissionDeniedError: Actor may not view it
        """
        document = self._load(document_id)
        self._require(actor, document, Action.VIEW)
        return document

    def list_versions(self, document_id: UUID, actor: Actor) -> List[VersionRecord]:
        self.get_document(document_id, actor)
        return self.repository.list_versions(document_id)

    def list_transitions(self, document_id: UUID, actor: Actor) -> List[TransitionRecord]:
        """Transition history, oldest first.

        A history that does not form a valid walk is logged as an anomaly but
        still returned: the audit trail must stay readable.
        """
        document = self.get_document(document_id, actor)
        transitions = self.repository.list_transitions(document_id)

        check = check_transition_history(transitions, document.status)
        if not check.ok:
            logger.error(
                f"Inconsistent transition history for document {document_id}: {check.error.message}",
                extra={"document_id": document_id, "error_code": check.error.code},
            )
        return transitions

    def compare_versions(self, document_id: UUID, actor: Actor, version1: str, version2: str) -> VersionComparison:
        """Compare two versions of a document.

        Raises:
            VersionNotFoundError: Either version does not exist
        """
        versions = self.list_versions(document_id, actor)

        record1 = find_version(versions, version1)
        if record1 is None:
            raise VersionNotFoundError(document_id, version1)
        record2 = find_version(versions, version2)
        if record2 is None:
            raise VersionNotFoundError(document_id, version2)

        content1 = content2 = None
        if self.content_source is not None:
            content1 = self.content_source.load_text(record1)
            content2 = self.content_source.load_text(record2)

        return compare(record1, record2, content1, content2)

    def available_transitions(self, document_id: UUID, actor: Actor) -> List[AvailableTransition]:
        document = self.get_document(document_id, actor)
        return self.engine.available_transitions(document, actor)

    def allowed_actions(self, document_id: UUID, actor: Actor) -> Dict[str, bool]:
        document = self.get_document(document_id, actor)
        return self.engine.allowed_actions(document, actor)

    def pending_approvals(self, actor: Actor) -> List[Document]:
        """Documents in review that the actor may publish, oldest first.

        The permission evaluator decides; there is no separate reviewer list.
        """
        publish = ChangeStatus(DocumentStatus.REVIEW, DocumentStatus.PUBLISHED)
        return [
            document
            for document in self.repository.list_by_status(DocumentStatus.REVIEW)
            if can_perform(actor, document, publish)
        ]

    def workflow_statistics(self, actor: Actor, department: Optional[str] = None) -> WorkflowStatistics:
        """Document counts per status and per department.

        Admins and holders of view_all_documents may query any department (or
        all of them); everyone else only sees their own department.

        Raises:
            PermissionDeniedError: Another department was requested without
                org-wide visibility
        """
        if not (actor.is_admin or actor.has_permission(ActorPermission.VIEW_ALL_DOCUMENTS)):
            if department is not None and department != actor.department:
                logger.info(
                    f"Actor {actor.id} denied statistics for department {department}",
                    extra={"actor_id": actor.id},
                )
                raise PermissionDeniedError(ReasonCode.WRONG_DEPARTMENT, STATISTICS_ACTION)
            department = actor.department

        by_status = {status.value: 0 for status in DocumentStatus}
        by_department: Dict[str, int] = {}
        for status, row_department, count in self.repository.count_by_status_and_department(department):
            by_status[status.value] += count
            by_department[row_department] = by_department.get(row_department, 0) + count

        return WorkflowStatistics(
            total=sum(by_status.values()),
            by_status=by_status,
            by_department=dict(sorted(by_department.items())),
            department=department,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, document_id: UUID) -> Document:
        document = self.repository.get(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    def _require(self, actor: Actor, document: Document, action: Action) -> None:
        decision = evaluate(actor, document, action)
        if not decision.allowed:
            logger.info(
                f"Actor {actor.id} denied {action.value} on document {document.id}: {decision.reason.value}",
                extra={"document_id": document.id, "actor_id": actor.id},
            )
            raise PermissionDeniedError(decision.reason, action.value)

    def _next_document_code(self, document_type: DocumentType, department: str) -> str:
        department_code = department.upper()
        try:
            document_type = DocumentType(document_type)
        except ValueError as e:
            raise ValidationError("type", "invalid") from e
        prefix = f"C-{document_type.value}-{department_code}-"
        sequence = self.repository.count_documents_with_prefix(prefix) + 1
        try:
            return generate_document_code(document_type, department_code, sequence)
        except ValueError as e:
            raise ValidationError("document_code", "format") from e

    def _with_retries(self, document_id: UUID, actor: Actor, attempt: Callable[[Document], T]) -> T:
        """Run attempt against a fresh snapshot until it commits.

        Only errors flagged ``retryable`` (a lost compare-and-swap) are
        retried; the transaction is rolled back first so the next attempt sees
        the winner's commit.
        """
        attempt_no = 0
        while True:
            attempt_no += 1
            document = self._load(document_id)
            try:
                outcome = attempt(document)
                self.db.commit()
                return outcome
            except LifecycleError as exc:
                self.db.rollback()
                if not exc.retryable:
                    raise
                logger.warning(
                    f"Concurrent modification of document {document_id} "
                    f"(attempt {attempt_no}/{self.max_attempts})",
                    extra={"document_id": document_id, "actor_id": actor.id, "attempt": attempt_no},
                )
                if attempt_no >= self.max_attempts:
                    raise
            except Exception:
                self.db.rollback()
                raise

    def _unwrap(self, result: LifecycleResult[T], operation: str, document: Optional[Document], actor: Actor) -> T:
        """Return the outcome or log and raise the engine's error."""
        if result.ok:
            return result.value

        error = result.error
        document_id = document.id if document else None
        extra = {"document_id": document_id, "actor_id": actor.id, "error_code": error.code}
        if isinstance(error, (VersionOverflowError, InconsistentHistoryError)):
            logger.error(f"Lifecycle anomaly during {operation}: {error.message}", extra=extra)
        elif isinstance(error, PermissionDeniedError):
            logger.info(f"{operation} denied: {error.message}", extra=extra)
        else:
            logger.warning(f"{operation} rejected: {error.message}", extra=extra)
        raise error
