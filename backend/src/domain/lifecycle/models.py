"""Lifecycle domain models and enums.

Snapshots handed to and returned by the lifecycle engine. All dataclasses are
frozen: the engine derives new snapshots with ``dataclasses.replace`` and never
mutates what it was given.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional
from uuid import UUID


class DocumentStatus(str, Enum):
    """Document lifecycle status

    State flow:
    draft → review → published → archived → disposed
    disposed is terminal.
    """
    DRAFT = "draft"
    REVIEW = "review"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    DISPOSED = "disposed"


class ActorRole(str, Enum):
    """Roles an actor may hold."""
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"
    GUEST = "guest"


class ActorPermission(str, Enum):
    """Explicit permission grants that override role/department restrictions."""
    MANAGE_DOCUMENTS = "manage_documents"
    APPROVE_DOCUMENTS = "approve_documents"
    CREATE_VERSIONS = "create_versions"
    VIEW_ALL_DOCUMENTS = "view_all_documents"


class ChangeType(str, Enum):
    MINOR = "minor"
    MAJOR = "major"


class VersionLifecycleState(str, Enum):
    CURRENT = "current"
    SUPERSEDED = "superseded"


class TransitionKind(str, Enum):
    """What produced a TransitionRecord."""
    CREATION = "creation"            # implicit start → draft
    STATUS_CHANGE = "status_change"  # validated against the transition table
    NEW_VERSION = "new_version"      # new version resets status to draft


class TransitionDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED = "returned"


class SecurityLevel(str, Enum):
    PUBLIC = "public"
    INTERNAL = "internal"
    CONFIDENTIAL = "confidential"
    RESTRICTED = "restricted"


class DocumentPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class DocumentType(str, Enum):
    """Document type codes used in document codes (C-{type}-{dept}-{seq})."""
    PL = "PL"  # Policy
    PR = "PR"  # Procedure
    WI = "WI"  # Work instruction
    FM = "FM"  # Form
    TD = "TD"  # Technical document
    TR = "TR"  # Training material
    RC = "RC"  # Record


@dataclass(frozen=True)
class Actor:
    """Authenticated identity invoking an engine operation.

    Supplied per call by the API layer; the engine never looks up the
    "current user" on its own.
    """
    id: UUID
    role: ActorRole
    department: str
    permissions: FrozenSet[ActorPermission] = field(default_factory=frozenset)

    def has_permission(self, permission: ActorPermission) -> bool:
        return permission in self.permissions

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @property
    def can_manage_documents(self) -> bool:
        """Admins implicitly hold manage_documents."""
        return self.is_admin or self.has_permission(ActorPermission.MANAGE_DOCUMENTS)


@dataclass(frozen=True)
class FileRef:
    """Reference to a stored file. Storage itself is an external concern."""
    storage_key: str
    file_name: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None


@dataclass(frozen=True)
class Document:
    """Aggregate root snapshot.

    document_code is immutable after creation; version is "MM.mm" and only
    ever grows by (major, minor).
    """
    id: UUID
    document_code: str
    title: str
    type: DocumentType
    department: str
    status: DocumentStatus
    version: str
    author_id: UUID
    security_level: SecurityLevel
    priority: DocumentPriority
    created_at: datetime
    updated_at: datetime
    recipients: FrozenSet[str] = field(default_factory=frozenset)
    description: Optional[str] = None
    file_ref: Optional[FileRef] = None
    archived_at: Optional[datetime] = None
    row_version: int = 1

    def is_owned_by(self, actor: Actor) -> bool:
        return self.author_id == actor.id

    @property
    def is_terminal(self) -> bool:
        return self.status == DocumentStatus.DISPOSED


@dataclass(frozen=True)
class VersionRecord:
    """Immutable snapshot of one edit cycle of a document."""
    id: UUID
    document_id: UUID
    version: str
    change_type: ChangeType
    change_reason: str
    change_summary: str
    created_by: UUID
    created_at: datetime
    lifecycle_state: VersionLifecycleState = VersionLifecycleState.CURRENT
    title: Optional[str] = None
    description: Optional[str] = None
    file_ref: Optional[FileRef] = None

    @property
    def is_current(self) -> bool:
        return self.lifecycle_state == VersionLifecycleState.CURRENT


@dataclass(frozen=True)
class TransitionRecord:
    """Append-only audit entry for one status change."""
    id: UUID
    document_id: UUID
    from_status: Optional[DocumentStatus]
    to_status: DocumentStatus
    actor_id: UUID
    actor_department: str
    timestamp: datetime
    kind: TransitionKind = TransitionKind.STATUS_CHANGE
    comment: Optional[str] = None
    decision: Optional[TransitionDecision] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    session_id: Optional[str] = None


@dataclass(frozen=True)
class RequestContext:
    """Client metadata copied onto transition records."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    session_id: Optional[str] = None
