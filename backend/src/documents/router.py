"""Documents API Router - lifecycle endpoints.

Thin HTTP layer over DocumentLifecycleService. Lifecycle errors propagate as
exceptions and are turned into JSON responses by the handlers registered in
main.py.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from audit.service import request_context
from auth.dependencies import get_current_actor
from database import get_db
from domain.lifecycle import Actor, VersionContentSource
from .schemas import (
    AvailableTransitionResponse,
    DocumentCreate,
    DocumentResponse,
    PendingApprovalsResponse,
    PermissionsResponse,
    StatusChangeRequest,
    StatusChangeResponse,
    TransitionResponse,
    VersionComparisonResponse,
    VersionCreate,
    VersionCreateResponse,
    VersionResponse,
    WorkflowStatisticsResponse,
)
from .service import DocumentLifecycleService


router = APIRouter(prefix="/documents", tags=["documents"])


def get_content_source() -> Optional[VersionContentSource]:
    """Text extraction for content diffs; none is wired by default."""
    return None


def get_lifecycle_service(
    db: Session = Depends(get_db),
    content_source: Optional[VersionContentSource] = Depends(get_content_source),
) -> DocumentLifecycleService:
    return DocumentLifecycleService(db, content_source=content_source)


@router.post(
    "",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a document",
    description="""
    Create a new document in **draft** at version **01.00**.

    The document code (C-{type}-{dept}-{seq}) is allocated by the server.
    Guests may not create documents.

    **Audit Log:** Creates DOCUMENT_CREATED and DOCUMENT_VERSION_CREATED entries
    """
)
def create_document(
    data: DocumentCreate,
    request: Request,
    actor: Actor = Depends(get_current_actor),
    service: DocumentLifecycleService = Depends(get_lifecycle_service),
) -> DocumentResponse:
    document = service.create_document(
        actor=actor,
        title=data.title,
        document_type=data.type,
        department=data.department,
        security_level=data.security_level,
        priority=data.priority,
        recipients=data.recipients,
        description=data.description,
        file_ref=data.file.to_domain() if data.file else None,
        context=request_context(request),
    )
    return DocumentResponse.from_domain(document)


@router.get(
    "/pending-approvals",
    response_model=PendingApprovalsResponse,
    summary="Documents awaiting the caller's approval",
    description="""
    Documents in **review** that the caller may publish, least recently
    touched first. Uses the same permission rules as the status endpoint.
    """
)
def pending_approvals(
    actor: Actor = Depends(get_current_actor),
    service: DocumentLifecycleService = Depends(get_lifecycle_service),
) -> PendingApprovalsResponse:
    documents = service.pending_approvals(actor)
    return PendingApprovalsResponse(
        documents=[DocumentResponse.from_domain(d) for d in documents],
        count=len(documents),
    )


@router.get(
    "/statistics",
    response_model=WorkflowStatisticsResponse,
    summary="Workflow statistics",
    description="""
    Document counts per status and per department.

    Admins and holders of **view_all_documents** may pass any department or
    none; other callers are limited to their own department (403 otherwise).
    """
)
def workflow_statistics(
    department: Optional[str] = Query(None, description="Limit counts to one department, e.g. QC"),
    actor: Actor = Depends(get_current_actor),
    service: DocumentLifecycleService = Depends(get_lifecycle_service),
) -> WorkflowStatisticsResponse:
    statistics = service.workflow_statistics(actor, department=department)
    return WorkflowStatisticsResponse.model_validate(statistics)


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: DocumentLifecycleService = Depends(get_lifecycle_service),
) -> DocumentResponse:
    """Get a single document the caller may view.

    Raises:
        404: Document not found
        403: Caller may not view the document
    """
    return DocumentResponse.from_domain(service.get_document(document_id, actor))


@router.put(
    "/{document_id}/status",
    response_model=StatusChangeResponse,
    summary="Change document status",
    description="""
    Move a document along its lifecycle.

    **Allowed transitions:**
    - draft → review
    - review → published | draft
    - published → archived | draft (privileged)
    - archived → published | disposed (disposed is privileged)

    Archiving and disposing require a comment of at least 10 characters.

    **Errors:** 400 illegal transition, 403 permission denied (with reason_code),
    409 terminal state or concurrent modification, 422 missing comment or a
    decision that does not fit the transition (approved for review → published,
    rejected or returned for review → draft)

    **Audit Log:** Creates WORKFLOW_TRANSITION entry
    """
)
def change_status(
    document_id: UUID,
    data: StatusChangeRequest,
    request: Request,
    actor: Actor = Depends(get_current_actor),
    service: DocumentLifecycleService = Depends(get_lifecycle_service),
) -> StatusChangeResponse:
    outcome = service.change_status(
        document_id,
        actor,
        data.to_status,
        comment=data.comment,
        decision=data.decision,
        context=request_context(request),
    )
    return StatusChangeResponse(
        document=DocumentResponse.from_domain(outcome.document),
        transition=TransitionResponse.model_validate(outcome.transition),
    )


@router.post(
    "/{document_id}/versions",
    response_model=VersionCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new version",
    description="""
    Cut a new minor or major version. The previous current version becomes
    superseded and the document returns to **draft**.

    **Errors:** 403 permission denied, 409 terminal state, version overflow or
    concurrent modification, 422 change reason/summary too short or too long

    **Audit Log:** Creates DOCUMENT_VERSION_CREATED and WORKFLOW_TRANSITION entries
    """
)
def create_version(
    document_id: UUID,
    data: VersionCreate,
    request: Request,
    actor: Actor = Depends(get_current_actor),
    service: DocumentLifecycleService = Depends(get_lifecycle_service),
) -> VersionCreateResponse:
    outcome = service.create_version(
        document_id,
        actor,
        data.change_type,
        data.change_reason,
        data.change_summary,
        file_ref=data.file.to_domain() if data.file else None,
        context=request_context(request),
    )
    return VersionCreateResponse(
        document=DocumentResponse.from_domain(outcome.document),
        version=VersionResponse.model_validate(outcome.version),
        superseded_version_id=outcome.superseded_id,
        transition=TransitionResponse.model_validate(outcome.transition),
    )


@router.get("/{document_id}/versions", response_model=List[VersionResponse])
def list_versions(
    document_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: DocumentLifecycleService = Depends(get_lifecycle_service),
) -> List[VersionResponse]:
    """All versions of a document, oldest first."""
    return [VersionResponse.model_validate(v) for v in service.list_versions(document_id, actor)]


@router.get("/{document_id}/versions/compare", response_model=VersionComparisonResponse)
def compare_versions(
    document_id: UUID,
    v1: str = Query(..., description="Left-hand version, e.g. 01.00"),
    v2: str = Query(..., description="Right-hand version, e.g. 01.01"),
    actor: Actor = Depends(get_current_actor),
    service: DocumentLifecycleService = Depends(get_lifecycle_service),
) -> VersionComparisonResponse:
    """Field diff (and content diff for text files) between two versions."""
    comparison = service.compare_versions(document_id, actor, v1, v2)
    return VersionComparisonResponse.model_validate(comparison)


@router.get("/{document_id}/transitions", response_model=List[TransitionResponse])
def list_transitions(
    document_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: DocumentLifecycleService = Depends(get_lifecycle_service),
) -> List[TransitionResponse]:
    """Workflow history, oldest first."""
    return [TransitionResponse.model_validate(t) for t in service.list_transitions(document_id, actor)]


@router.get("/{document_id}/available-transitions", response_model=List[AvailableTransitionResponse])
def available_transitions(
    document_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: DocumentLifecycleService = Depends(get_lifecycle_service),
) -> List[AvailableTransitionResponse]:
    """Status changes the caller may trigger right now."""
    return [
        AvailableTransitionResponse.model_validate(t)
        for t in service.available_transitions(document_id, actor)
    ]


@router.get("/{document_id}/permissions", response_model=PermissionsResponse)
def get_permissions(
    document_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: DocumentLifecycleService = Depends(get_lifecycle_service),
) -> PermissionsResponse:
    """Allowed-action map for rendering buttons and menus."""
    return PermissionsResponse(
        document_id=document_id,
        actions=service.allowed_actions(document_id, actor),
    )
