"""SQLAlchemy implementation of the document repository port.

Maps ORM rows to lifecycle snapshots and writes engine outcomes back with a
compare-and-swap on the document row. The repository only flushes; the
caller owns the transaction and commits (or rolls back) once the audit
entries are written.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from domain.lifecycle import (
    ChangeType,
    ConcurrentModificationError,
    Document,
    DocumentPriority,
    DocumentRepositoryPort,
    DocumentStatus,
    DocumentType,
    FileRef,
    SecurityLevel,
    TransitionDecision,
    TransitionKind,
    TransitionRecord,
    VersionLifecycleState,
    VersionRecord,
)
from domain.lifecycle.engine import sort_versions
from models.document import Document as DocumentModel
from models.document_version import DocumentVersion as DocumentVersionModel
from models.workflow_transition import WorkflowTransition as WorkflowTransitionModel


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything is stored as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _file_ref(storage_key, file_name, file_size, mime_type) -> Optional[FileRef]:
    if not storage_key:
        return None
    return FileRef(storage_key=storage_key, file_name=file_name, file_size=file_size, mime_type=mime_type)


def _file_columns(file_ref: Optional[FileRef]) -> dict:
    if file_ref is None:
        return {"file_storage_key": None, "file_name": None, "file_size": None, "file_mime_type": None}
    return {
        "file_storage_key": file_ref.storage_key,
        "file_name": file_ref.file_name,
        "file_size": file_ref.file_size,
        "file_mime_type": file_ref.mime_type,
    }


def to_document(row: DocumentModel) -> Document:
    return Document(
        id=row.id,
        document_code=row.document_code,
        title=row.title,
        type=DocumentType(row.type),
        department=row.department,
        status=DocumentStatus(row.status),
        version=row.version,
        author_id=row.author_id,
        security_level=SecurityLevel(row.security_level),
        priority=DocumentPriority(row.priority),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        recipients=frozenset(row.recipients_json or []),
        description=row.description,
        file_ref=_file_ref(row.file_storage_key, row.file_name, row.file_size, row.file_mime_type),
        archived_at=_aware(row.archived_at),
        row_version=row.row_version,
    )


def to_version(row: DocumentVersionModel) -> VersionRecord:
    return VersionRecord(
        id=row.id,
        document_id=row.document_id,
        version=row.version,
        change_type=ChangeType(row.change_type),
        change_reason=row.change_reason,
        change_summary=row.change_summary,
        created_by=row.created_by,
        created_at=_aware(row.created_at),
        lifecycle_state=VersionLifecycleState(row.lifecycle_state),
        title=row.title,
        description=row.description,
        file_ref=_file_ref(row.file_storage_key, row.file_name, row.file_size, row.file_mime_type),
    )


def to_transition(row: WorkflowTransitionModel) -> TransitionRecord:
    return TransitionRecord(
        id=row.id,
        document_id=row.document_id,
        from_status=DocumentStatus(row.from_status) if row.from_status else None,
        to_status=DocumentStatus(row.to_status),
        actor_id=row.actor_id,
        actor_department=row.actor_department,
        timestamp=_aware(row.transitioned_at),
        kind=TransitionKind(row.kind),
        comment=row.comment,
        decision=TransitionDecision(row.decision) if row.decision else None,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        session_id=row.session_id,
    )


def _document_columns(document: Document) -> dict:
    """Mutable columns of the document row."""
    columns = {
        "title": document.title,
        "description": document.description,
        "status": document.status.value,
        "version": document.version,
        "security_level": document.security_level.value,
        "priority": document.priority.value,
        "recipients_json": sorted(document.recipients),
        "row_version": document.row_version,
        "updated_at": document.updated_at,
        "archived_at": document.archived_at,
    }
    columns.update(_file_columns(document.file_ref))
    return columns


class SqlAlchemyDocumentRepository(DocumentRepositoryPort):
    """Document repository backed by a SQLAlchemy session.

    Args:
        db: Session whose transaction the writes join
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, document_id: UUID) -> Optional[Document]:
        row = self.db.execute(
            select(DocumentModel)
            .where(DocumentModel.id == document_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return to_document(row) if row else None

    def list_versions(self, document_id: UUID) -> List[VersionRecord]:
        rows = self.db.execute(
            select(DocumentVersionModel)
            .where(DocumentVersionModel.document_id == document_id)
            .execution_options(populate_existing=True)
        ).scalars().all()
        return sort_versions(to_version(row) for row in rows)

    def list_transitions(self, document_id: UUID) -> List[TransitionRecord]:
        rows = self.db.execute(
            select(WorkflowTransitionModel)
            .where(WorkflowTransitionModel.document_id == document_id)
            .order_by(WorkflowTransitionModel.sequence_no)
        ).scalars().all()
        return [to_transition(row) for row in rows]

    def count_documents_with_prefix(self, prefix: str) -> int:
        """Number of documents whose code starts with prefix (e.g. "C-PR-QC-")."""
        return self.db.execute(
            select(func.count())
            .select_from(DocumentModel)
            .where(DocumentModel.document_code.startswith(prefix, autoescape=True))
        ).scalar_one()

    def list_by_status(self, status: DocumentStatus) -> List[Document]:
        """Documents currently at status, least recently touched first."""
        rows = self.db.execute(
            select(DocumentModel)
            .where(DocumentModel.status == status.value)
            .order_by(DocumentModel.updated_at, DocumentModel.document_code)
            .execution_options(populate_existing=True)
        ).scalars().all()
        return [to_document(row) for row in rows]

    def count_by_status_and_department(self, department: Optional[str] = None) -> List[Tuple[DocumentStatus, str, int]]:
        """(status, department, count) rows, optionally limited to one department."""
        query = (
            select(DocumentModel.status, DocumentModel.department, func.count())
            .group_by(DocumentModel.status, DocumentModel.department)
        )
        if department is not None:
            query = query.where(DocumentModel.department == department)
        return [
            (DocumentStatus(status), row_department, count)
            for status, row_department, count in self.db.execute(query).all()
        ]

    def add(self, document: Document, version: VersionRecord, transition: TransitionRecord) -> Document:
        row = DocumentModel(
            id=document.id,
            document_code=document.document_code,
            type=document.type.value,
            department=document.department,
            author_id=document.author_id,
            created_at=document.created_at,
            **_document_columns(document),
        )
        self.db.add(row)
        # Parent row must exist before the children reference it
        self.db.flush()
        self._insert_version(version)
        self._insert_transition(transition)
        self.db.flush()
        return document

    def commit_status_change(self, expected: Document, document: Document, transition: TransitionRecord) -> Document:
        self._compare_and_swap(expected, document)
        self._insert_transition(transition)
        self.db.flush()
        return document

    def commit_new_version(
        self,
        expected: Document,
        document: Document,
        version: VersionRecord,
        superseded_id: Optional[UUID],
        transition: TransitionRecord,
    ) -> Document:
        self._compare_and_swap(expected, document)

        # Supersede before inserting so the single-current index never sees two rows
        if superseded_id is not None:
            result = self.db.execute(
                update(DocumentVersionModel)
                .where(
                    DocumentVersionModel.id == superseded_id,
                    DocumentVersionModel.lifecycle_state == VersionLifecycleState.CURRENT.value,
                )
                .values(lifecycle_state=VersionLifecycleState.SUPERSEDED.value)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConcurrentModificationError(expected.id, "Current version was superseded by another request")

        self._insert_version(version)
        self._insert_transition(transition)
        self.db.flush()
        return document

    def _compare_and_swap(self, expected: Document, document: Document) -> None:
        result = self.db.execute(
            update(DocumentModel)
            .where(
                DocumentModel.id == expected.id,
                DocumentModel.status == expected.status.value,
                DocumentModel.version == expected.version,
                DocumentModel.row_version == expected.row_version,
            )
            .values(**_document_columns(document))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrentModificationError(expected.id)

    def _insert_version(self, version: VersionRecord) -> None:
        self.db.add(DocumentVersionModel(
            id=version.id,
            document_id=version.document_id,
            version=version.version,
            change_type=version.change_type.value,
            change_reason=version.change_reason,
            change_summary=version.change_summary,
            lifecycle_state=version.lifecycle_state.value,
            title=version.title,
            description=version.description,
            created_by=version.created_by,
            created_at=version.created_at,
            **_file_columns(version.file_ref),
        ))

    def _insert_transition(self, transition: TransitionRecord) -> None:
        sequence_no = self.db.execute(
            select(func.count())
            .select_from(WorkflowTransitionModel)
            .where(WorkflowTransitionModel.document_id == transition.document_id)
        ).scalar_one() + 1
        self.db.add(WorkflowTransitionModel(
            id=transition.id,
            document_id=transition.document_id,
            sequence_no=sequence_no,
            from_status=transition.from_status.value if transition.from_status else None,
            to_status=transition.to_status.value,
            kind=transition.kind.value,
            decision=transition.decision.value if transition.decision else None,
            comment=transition.comment,
            actor_id=transition.actor_id,
            actor_department=transition.actor_department,
            ip_address=transition.ip_address,
            user_agent=transition.user_agent,
            session_id=transition.session_id,
            transitioned_at=transition.timestamp,
        ))
