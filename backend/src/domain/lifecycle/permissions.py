"""Permission evaluator for document actions.

Pure function of (actor, document, action). Never raises and never touches
storage; every call site (API, UI action lists, engine) goes through here.

Rules, first match wins:
1. admin role → allowed for every action
2. author + draft status → edit, delete (authors may also cut new versions)
3. manager of the document's department → edit, delete, createVersion,
   approve (review), archive (published), restore (archived)
4. explicit grants override department/role restrictions
5. changeStatus(from, to) must be legal; privileged transitions need
   manage_documents (admin role or explicit grant)
6. default deny

Permission Matrix (plain actions):
┌────────────────┬───────┬──────────────────┬─────────────┬──────────────────────┐
│ Action         │ ADMIN │ MANAGER (dept)   │ AUTHOR      │ Grant                │
├────────────────┼───────┼──────────────────┼─────────────┼──────────────────────┤
│ edit / delete  │   ✓   │        ✓         │ draft only  │ manage_documents     │
│ createVersion  │   ✓   │        ✓         │      ✓      │ create_versions,     │
│                │       │                  │             │ manage_documents     │
│ approve        │   ✓   │   review only    │             │ approve_documents,   │
│                │       │                  │             │ manage_documents     │
│ archive        │   ✓   │  published only  │             │ manage_documents     │
│ restore        │   ✓   │  archived only   │             │ manage_documents     │
└────────────────┴───────┴──────────────────┴─────────────┴──────────────────────┘

view / download / share follow a separate visibility rule, see
``_evaluate_visibility``.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional, Union

from .errors import ReasonCode
from .models import Actor, ActorPermission, ActorRole, Document, DocumentStatus, SecurityLevel
from .transitions import TransitionClass, transition_class


class Action(str, Enum):
    """Plain document actions."""
    CREATE = "create"
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    APPROVE = "approve"
    CREATE_VERSION = "createVersion"
    DOWNLOAD = "download"
    SHARE = "share"
    ARCHIVE = "archive"
    RESTORE = "restore"


@dataclass(frozen=True)
class ChangeStatus:
    """Parameterised action changeStatus(from, to)."""
    from_status: DocumentStatus
    to_status: DocumentStatus

    @property
    def value(self) -> str:
        return f"changeStatus({self.from_status.value},{self.to_status.value})"


DocumentAction = Union[Action, ChangeStatus]


@dataclass(frozen=True)
class PermissionDecision:
    allowed: bool
    reason: Optional[ReasonCode] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = PermissionDecision(True)


def _deny(reason: ReasonCode) -> PermissionDecision:
    return PermissionDecision(False, reason)


# Status an action requires, regardless of who performs it
REQUIRED_STATUS: Dict[Action, DocumentStatus] = {
    Action.APPROVE: DocumentStatus.REVIEW,
    Action.ARCHIVE: DocumentStatus.PUBLISHED,
    Action.RESTORE: DocumentStatus.ARCHIVED,
}

# Explicit grants and the plain actions they unlock
GRANTED_ACTIONS: Dict[ActorPermission, frozenset] = {
    ActorPermission.MANAGE_DOCUMENTS: frozenset({
        Action.EDIT, Action.DELETE, Action.APPROVE, Action.CREATE_VERSION,
        Action.ARCHIVE, Action.RESTORE,
    }),
    ActorPermission.APPROVE_DOCUMENTS: frozenset({Action.APPROVE}),
    ActorPermission.CREATE_VERSIONS: frozenset({Action.CREATE_VERSION}),
}

MANAGER_ACTIONS = frozenset({
    Action.EDIT, Action.DELETE, Action.CREATE_VERSION,
    Action.APPROVE, Action.ARCHIVE, Action.RESTORE,
})

VISIBILITY_ACTIONS = frozenset({Action.VIEW, Action.DOWNLOAD, Action.SHARE})


def evaluate(actor: Actor, document: Document, action: DocumentAction) -> PermissionDecision:
    """Decide whether actor may perform action on document.

    Args:
        actor: Identity performing the action
        document: Current document snapshot
        action: Plain Action or ChangeStatus(from, to)

    Returns:
        PermissionDecision with a reason code when denied
    """
    if isinstance(action, ChangeStatus):
        return _evaluate_status_change(actor, document, action)

    action = Action(action)
    if action in VISIBILITY_ACTIONS:
        return _evaluate_visibility(actor, document, action)
    if action == Action.CREATE:
        if actor.role == ActorRole.GUEST:
            return _deny(ReasonCode.INSUFFICIENT_ROLE)
        return ALLOW
    return _evaluate_document_action(actor, document, action)


def can_perform(actor: Actor, document: Document, action: DocumentAction) -> bool:
    """Boolean form of ``evaluate``."""
    return evaluate(actor, document, action).allowed


def _same_department(actor: Actor, document: Document) -> bool:
    return actor.department == document.department


def _evaluate_document_action(actor: Actor, document: Document, action: Action) -> PermissionDecision:
    # Rule 1
    if actor.is_admin:
        return ALLOW

    if document.is_terminal:
        return _deny(ReasonCode.TERMINAL_STATE)

    required_status = REQUIRED_STATUS.get(action)
    if required_status is not None and document.status != required_status:
        return _deny(ReasonCode.WRONG_STATUS)

    # Rule 2
    if document.is_owned_by(actor):
        if action in (Action.EDIT, Action.DELETE) and document.status == DocumentStatus.DRAFT:
            return ALLOW
        if action == Action.CREATE_VERSION:
            return ALLOW

    # Rule 3
    if actor.role == ActorRole.MANAGER and _same_department(actor, document) and action in MANAGER_ACTIONS:
        return ALLOW

    # Rule 4
    for permission in actor.permissions:
        if action in GRANTED_ACTIONS.get(permission, frozenset()):
            return ALLOW

    return _deny(_denial_reason(actor, document, action))


def _denial_reason(actor: Actor, document: Document, action: Action) -> ReasonCode:
    if document.is_owned_by(actor):
        # Authors only lose edit/delete once the document has left draft
        return ReasonCode.WRONG_STATUS
    if actor.role == ActorRole.MANAGER:
        return ReasonCode.WRONG_DEPARTMENT
    if action in (Action.EDIT, Action.DELETE, Action.CREATE_VERSION):
        return ReasonCode.NOT_OWNER
    return ReasonCode.INSUFFICIENT_ROLE


def _is_privileged_viewer(actor: Actor, document: Document) -> bool:
    return (
        actor.can_manage_documents
        or document.is_owned_by(actor)
        or (actor.role == ActorRole.MANAGER and _same_department(actor, document))
    )


def _evaluate_visibility(actor: Actor, document: Document, action: Action) -> PermissionDecision:
    if actor.is_admin:
        return ALLOW
    if document.is_terminal:
        return _deny(ReasonCode.TERMINAL_STATE)

    visible = (
        document.is_owned_by(actor)
        or _same_department(actor, document)
        or actor.department in document.recipients
        or document.security_level == SecurityLevel.PUBLIC
        or actor.has_permission(ActorPermission.VIEW_ALL_DOCUMENTS)
    )
    if not visible:
        return _deny(ReasonCode.WRONG_DEPARTMENT)

    if action == Action.VIEW:
        return ALLOW

    # download/share of unpublished documents is limited to privileged viewers
    if document.status != DocumentStatus.PUBLISHED and not _is_privileged_viewer(actor, document):
        return _deny(ReasonCode.WRONG_STATUS)
    return ALLOW


# Plain action that authorises each ordinary transition
ORDINARY_TRANSITION_AUTHORITY: Dict[tuple, Action] = {
    (DocumentStatus.DRAFT, DocumentStatus.REVIEW): Action.EDIT,
    (DocumentStatus.REVIEW, DocumentStatus.PUBLISHED): Action.APPROVE,
    (DocumentStatus.REVIEW, DocumentStatus.DRAFT): Action.APPROVE,
    (DocumentStatus.ARCHIVED, DocumentStatus.PUBLISHED): Action.RESTORE,
}


def _evaluate_status_change(actor: Actor, document: Document, action: ChangeStatus) -> PermissionDecision:
    if action.from_status == DocumentStatus.DISPOSED or document.is_terminal:
        return _deny(ReasonCode.TERMINAL_STATE)

    klass = transition_class(action.from_status, action.to_status)
    if klass == TransitionClass.ILLEGAL:
        return _deny(ReasonCode.ILLEGAL_TRANSITION)

    if klass == TransitionClass.PRIVILEGED:
        # Department/manager membership alone is never enough
        if actor.can_manage_documents:
            return ALLOW
        return _deny(ReasonCode.PRIVILEGED_TRANSITION)

    if actor.can_manage_documents:
        return ALLOW

    key = (action.from_status, action.to_status)
    # The author may withdraw their own document from review
    if key == (DocumentStatus.REVIEW, DocumentStatus.DRAFT) and document.is_owned_by(actor):
        return ALLOW

    authority = ORDINARY_TRANSITION_AUTHORITY[key]
    # Authority is judged against the status the transition starts from
    return _evaluate_document_action(actor, _at_status(document, action.from_status), authority)


def _at_status(document: Document, status: DocumentStatus) -> Document:
    if document.status == status:
        return document
    return replace(document, status=status)


def allowed_actions(actor: Actor, document: Document) -> Dict[str, bool]:
    """Full allowed-action set for rendering buttons and menus.

    Example:
        {"view": True, "edit": False, ..., "restore": False}
    """
    return {
        action.value: can_perform(actor, document, action)
        for action in Action
        if action != Action.CREATE
    }
