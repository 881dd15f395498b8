"""Document lifecycle domain module - status state machine, version numbering,
permission gate and version comparison.

Pure code: no web framework, database or logging imports.
"""

from .models import (
    Actor,
    ActorPermission,
    ActorRole,
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
from .errors import (
    ConcurrentModificationError,
    IllegalTransitionError,
    InconsistentHistoryError,
    LifecycleError,
    LifecycleResult,
    PermissionDeniedError,
    ReasonCode,
    TerminalStateError,
    ValidationError,
    VersionOverflowError,
)
from .transitions import (
    TRANSITION_TABLE,
    TransitionClass,
    allowed_decisions,
    get_allowed_transitions,
    is_legal_transition,
    transition_class,
)
from .permissions import Action, ChangeStatus, PermissionDecision, allowed_actions, can_perform, evaluate
from .versioning import INITIAL_VERSION, next_version
from .engine import (
    AvailableTransition,
    CreationOutcome,
    LifecycleEngine,
    NewVersionOutcome,
    StatusChangeOutcome,
    apply_version_change,
    check_transition_history,
    generate_document_code,
)
from .comparator import VersionComparison, compare
from .port import AuditEvent, AuditRecorderPort, DocumentRepositoryPort, VersionContentSource

__all__ = [
    "Actor",
    "ActorPermission",
    "ActorRole",
    "ChangeType",
    "Document",
    "DocumentPriority",
    "DocumentStatus",
    "DocumentType",
    "FileRef",
    "RequestContext",
    "SecurityLevel",
    "TransitionDecision",
    "TransitionKind",
    "TransitionRecord",
    "VersionLifecycleState",
    "VersionRecord",
    "ConcurrentModificationError",
    "IllegalTransitionError",
    "InconsistentHistoryError",
    "LifecycleError",
    "LifecycleResult",
    "PermissionDeniedError",
    "ReasonCode",
    "TerminalStateError",
    "ValidationError",
    "VersionOverflowError",
    "TRANSITION_TABLE",
    "TransitionClass",
    "allowed_decisions",
    "get_allowed_transitions",
    "is_legal_transition",
    "transition_class",
    "Action",
    "ChangeStatus",
    "PermissionDecision",
    "allowed_actions",
    "can_perform",
    "evaluate",
    "INITIAL_VERSION",
    "next_version",
    "AvailableTransition",
    "CreationOutcome",
    "LifecycleEngine",
    "NewVersionOutcome",
    "StatusChangeOutcome",
    "apply_version_change",
    "check_transition_history",
    "generate_document_code",
    "VersionComparison",
    "compare",
    "AuditEvent",
    "AuditRecorderPort",
    "DocumentRepositoryPort",
    "VersionContentSource",
]
