"""Document status transition table

Single source of truth for which status changes are legal and which of them
are privileged. The API layer, the permission evaluator and the engine all
consult this table; nothing else may encode its own copy.

State flow:
    draft ⇄ review → published ⇄ archived → disposed
    published → draft (privileged revert)
"""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from .models import DocumentStatus, TransitionDecision


class TransitionClass(str, Enum):
    ORDINARY = "ordinary"
    PRIVILEGED = "privileged"
    ILLEGAL = "illegal"


TRANSITION_TABLE: Dict[DocumentStatus, Dict[DocumentStatus, TransitionClass]] = {
    DocumentStatus.DRAFT: {
        DocumentStatus.REVIEW: TransitionClass.ORDINARY,
    },
    DocumentStatus.REVIEW: {
        DocumentStatus.PUBLISHED: TransitionClass.ORDINARY,
        DocumentStatus.DRAFT: TransitionClass.ORDINARY,
    },
    DocumentStatus.PUBLISHED: {
        DocumentStatus.DRAFT: TransitionClass.PRIVILEGED,
        DocumentStatus.ARCHIVED: TransitionClass.PRIVILEGED,
    },
    DocumentStatus.ARCHIVED: {
        DocumentStatus.PUBLISHED: TransitionClass.ORDINARY,
        DocumentStatus.DISPOSED: TransitionClass.PRIVILEGED,
    },
    DocumentStatus.DISPOSED: {},  # Terminal state
}

TERMINAL_STATES = frozenset(
    status for status, targets in TRANSITION_TABLE.items() if not targets
)

# Status every document starts in (implicit start → draft)
INITIAL_STATUS = DocumentStatus.DRAFT

# Transitions that need a written rationale
COMMENT_REQUIRED_TARGETS = frozenset({DocumentStatus.ARCHIVED, DocumentStatus.DISPOSED})

# Review outcomes a transition may be recorded with; any other pair takes none
DECISIONS_BY_TRANSITION: Dict[tuple, FrozenSet[TransitionDecision]] = {
    (DocumentStatus.REVIEW, DocumentStatus.PUBLISHED): frozenset({TransitionDecision.APPROVED}),
    (DocumentStatus.REVIEW, DocumentStatus.DRAFT): frozenset({TransitionDecision.REJECTED, TransitionDecision.RETURNED}),
}

TRANSITION_LABELS: Dict[tuple, str] = {
    (DocumentStatus.DRAFT, DocumentStatus.REVIEW): "Submit for review",
    (DocumentStatus.REVIEW, DocumentStatus.PUBLISHED): "Approve and publish",
    (DocumentStatus.REVIEW, DocumentStatus.DRAFT): "Return to draft",
    (DocumentStatus.PUBLISHED, DocumentStatus.DRAFT): "Revert to draft",
    (DocumentStatus.PUBLISHED, DocumentStatus.ARCHIVED): "Archive",
    (DocumentStatus.ARCHIVED, DocumentStatus.PUBLISHED): "Restore",
    (DocumentStatus.ARCHIVED, DocumentStatus.DISPOSED): "Dispose",
}


def transition_class(from_status: Optional[DocumentStatus], to_status: DocumentStatus) -> TransitionClass:
    """Classify a status change

    Args:
        from_status: Current status
        to_status: Target status

    Returns:
        ORDINARY or PRIVILEGED for listed pairs, ILLEGAL for anything else

    Example:
        >>> transition_class(DocumentStatus.DRAFT, DocumentStatus.REVIEW)
        <TransitionClass.ORDINARY: 'ordinary'>
        >>> transition_class(DocumentStatus.ARCHIVED, DocumentStatus.DISPOSED)
        <TransitionClass.PRIVILEGED: 'privileged'>
        >>> transition_class(DocumentStatus.REVIEW, DocumentStatus.ARCHIVED)
        <TransitionClass.ILLEGAL: 'illegal'>
    """
    return TRANSITION_TABLE.get(from_status, {}).get(to_status, TransitionClass.ILLEGAL)


def is_legal_transition(from_status: Optional[DocumentStatus], to_status: DocumentStatus) -> bool:
    """Validate if status transition is allowed

    Example:
        >>> is_legal_transition(DocumentStatus.REVIEW, DocumentStatus.PUBLISHED)
        True
        >>> is_legal_transition(DocumentStatus.DISPOSED, DocumentStatus.ARCHIVED)
        False
    """
    return transition_class(from_status, to_status) != TransitionClass.ILLEGAL


def is_privileged_transition(from_status: Optional[DocumentStatus], to_status: DocumentStatus) -> bool:
    return transition_class(from_status, to_status) == TransitionClass.PRIVILEGED


def is_terminal(status: DocumentStatus) -> bool:
    return status in TERMINAL_STATES


def get_allowed_transitions(from_status: Optional[DocumentStatus]) -> List[DocumentStatus]:
    """Get list of legal target statuses from current status

    Example:
        >>> get_allowed_transitions(DocumentStatus.REVIEW)
        [<DocumentStatus.PUBLISHED: 'published'>, <DocumentStatus.DRAFT: 'draft'>]
    """
    return list(TRANSITION_TABLE.get(from_status, {}))


def requires_comment(to_status: DocumentStatus) -> bool:
    return to_status in COMMENT_REQUIRED_TARGETS


def transition_label(from_status: DocumentStatus, to_status: DocumentStatus) -> str:
    return TRANSITION_LABELS.get((from_status, to_status), f"{from_status.value} → {to_status.value}")


def allowed_decisions(from_status: Optional[DocumentStatus], to_status: DocumentStatus) -> FrozenSet[TransitionDecision]:
    """Decisions that may accompany a status change

    Example:
        >>> sorted(d.value for d in allowed_decisions(DocumentStatus.REVIEW, DocumentStatus.DRAFT))
        ['rejected', 'returned']
        >>> allowed_decisions(DocumentStatus.DRAFT, DocumentStatus.REVIEW)
        frozenset()
    """
    return DECISIONS_BY_TRANSITION.get((from_status, to_status), frozenset())
