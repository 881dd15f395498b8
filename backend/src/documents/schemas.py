"""Pydantic schemas for the Documents API

Request/response models for the document lifecycle endpoints. Responses are
built from the lifecycle snapshots (frozen dataclasses) via from_attributes.
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from domain.lifecycle import (
    ChangeType,
    Document,
    DocumentPriority,
    DocumentStatus,
    DocumentType,
    FileRef,
    SecurityLevel,
    TransitionDecision,
    TransitionKind,
    VersionLifecycleState,
)
from domain.lifecycle.transitions import TransitionClass


# ============================================================================
# Shared
# ============================================================================

class FileRefSchema(BaseModel):
    """Reference to a file already placed in storage"""
    storage_key: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1)
    file_size: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    def to_domain(self) -> FileRef:
        return FileRef(
            storage_key=self.storage_key,
            file_name=self.file_name,
            file_size=self.file_size,
            mime_type=self.mime_type,
        )


# ============================================================================
# Requests
# ============================================================================

class DocumentCreate(BaseModel):
    """Schema for POST /documents"""
    title: str = Field(..., description="Document title")
    type: DocumentType
    department: Optional[str] = Field(None, description="Owning department (defaults to the caller's)")
    security_level: SecurityLevel = SecurityLevel.INTERNAL
    priority: DocumentPriority = DocumentPriority.NORMAL
    recipients: List[str] = Field(default_factory=list, description="Departments the document is shared with")
    description: Optional[str] = None
    file: Optional[FileRefSchema] = None

    model_config = ConfigDict(extra='forbid')


class StatusChangeRequest(BaseModel):
    """Schema for PUT /documents/{id}/status"""
    to_status: DocumentStatus
    comment: Optional[str] = Field(None, description="Required (10+ chars) when archiving or disposing")
    decision: Optional[TransitionDecision] = Field(
        None, description="approved for review -> published; rejected or returned for review -> draft",
    )

    model_config = ConfigDict(extra='forbid')


class VersionCreate(BaseModel):
    """Schema for POST /documents/{id}/versions"""
    change_type: ChangeType
    change_reason: str = Field(..., description="Why the version is cut (10-500 chars)")
    change_summary: str = Field(..., description="What changed (20-1000 chars)")
    file: Optional[FileRefSchema] = Field(None, description="New file; the current file is kept when omitted")

    model_config = ConfigDict(extra='forbid')


# ============================================================================
# Responses
# ============================================================================

class DocumentResponse(BaseModel):
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
    recipients: List[str]
    description: Optional[str] = None
    file: Optional[FileRefSchema] = None
    row_version: int
    created_at: datetime
    updated_at: datetime
    archived_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, document: Document) -> "DocumentResponse":
        return cls(
            id=document.id,
            document_code=document.document_code,
            title=document.title,
            type=document.type,
            department=document.department,
            status=document.status,
            version=document.version,
            author_id=document.author_id,
            security_level=document.security_level,
            priority=document.priority,
            recipients=sorted(document.recipients),
            description=document.description,
            file=FileRefSchema.model_validate(document.file_ref) if document.file_ref else None,
            row_version=document.row_version,
            created_at=document.created_at,
            updated_at=document.updated_at,
            archived_at=document.archived_at,
        )


class VersionResponse(BaseModel):
    id: UUID
    document_id: UUID
    version: str
    change_type: ChangeType
    change_reason: str
    change_summary: str
    lifecycle_state: VersionLifecycleState
    title: Optional[str] = None
    description: Optional[str] = None
    file_ref: Optional[FileRefSchema] = None
    created_by: UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransitionResponse(BaseModel):
    id: UUID
    document_id: UUID
    kind: TransitionKind
    from_status: Optional[DocumentStatus] = None
    to_status: DocumentStatus
    decision: Optional[TransitionDecision] = None
    comment: Optional[str] = None
    actor_id: UUID
    actor_department: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    session_id: Optional[str] = None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class StatusChangeResponse(BaseModel):
    document: DocumentResponse
    transition: TransitionResponse


class VersionCreateResponse(BaseModel):
    document: DocumentResponse
    version: VersionResponse
    superseded_version_id: Optional[UUID] = None
    transition: TransitionResponse


class AvailableTransitionResponse(BaseModel):
    from_status: DocumentStatus
    to_status: DocumentStatus
    transition_class: TransitionClass
    label: str
    requires_comment: bool
    decisions: List[TransitionDecision] = Field(default_factory=list, description="Review outcomes this transition may carry")

    model_config = ConfigDict(from_attributes=True)


class PermissionsResponse(BaseModel):
    document_id: UUID
    actions: Dict[str, bool] = Field(..., description="Action name -> allowed for the caller")


class FieldDiffResponse(BaseModel):
    field: str
    value1: str
    value2: str
    changed: bool

    model_config = ConfigDict(from_attributes=True)


class ContentDiffResponse(BaseModel):
    lines: List[str]
    added_lines: int
    removed_lines: int

    model_config = ConfigDict(from_attributes=True)


class VersionComparisonResponse(BaseModel):
    version1: str
    version2: str
    additions: int
    deletions: int
    modifications: int
    field_diffs: List[FieldDiffResponse]
    content_diff: Optional[ContentDiffResponse] = Field(
        None, description="Null when either file is not text-extractable"
    )

    model_config = ConfigDict(from_attributes=True)


class PendingApprovalsResponse(BaseModel):
    """Schema for GET /documents/pending-approvals"""
    documents: List[DocumentResponse]
    count: int


class WorkflowStatisticsResponse(BaseModel):
    """Schema for GET /documents/statistics"""
    total: int
    by_status: Dict[str, int] = Field(..., description="Status -> document count (every status present)")
    by_department: Dict[str, int] = Field(..., description="Department -> document count")
    department: Optional[str] = Field(None, description="Department the counts are limited to, null for all")

    model_config = ConfigDict(from_attributes=True)
