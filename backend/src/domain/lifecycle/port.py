"""Port interfaces for the collaborators around the lifecycle engine.

The engine itself performs no I/O. Whoever calls it gathers snapshots through
a DocumentRepositoryPort, commits outcomes through the same port and forwards
the produced records to an AuditRecorderPort.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Union
from uuid import UUID

from .models import Document, DocumentStatus, TransitionRecord, VersionRecord


AuditEvent = Union[TransitionRecord, VersionRecord]


class AuditRecorderPort(ABC):
    """Durable, append-only sink for lifecycle events."""

    @abstractmethod
    def record(self, event: AuditEvent) -> None:
        """Append one event. Must never update or delete earlier entries."""
        pass


class DocumentRepositoryPort(ABC):
    """Storage contract for document snapshots and their history.

    Implementations must commit every outcome with a compare-and-swap on the
    document's status/version (or row version) and raise
    ConcurrentModificationError when the stored snapshot has moved on.
    """

    @abstractmethod
    def get(self, document_id: UUID) -> Optional[Document]:
        pass

    @abstractmethod
    def list_versions(self, document_id: UUID) -> List[VersionRecord]:
        """All version records of a document, oldest first."""
        pass

    @abstractmethod
    def list_transitions(self, document_id: UUID) -> List[TransitionRecord]:
        """All transition records of a document, oldest first."""
        pass

    @abstractmethod
    def list_by_status(self, status: DocumentStatus) -> List[Document]:
        """Documents currently at status."""
        pass

    @abstractmethod
    def add(self, document: Document, version: VersionRecord, transition: TransitionRecord) -> Document:
        """Persist a newly created document with its first records."""
        pass

    @abstractmethod
    def commit_status_change(self, expected: Document, document: Document, transition: TransitionRecord) -> Document:
        """CAS-update the document from expected to document and append transition.

        Raises:
            ConcurrentModificationError: If the stored document no longer matches expected
        """
        pass

    @abstractmethod
    def commit_new_version(
        self,
        expected: Document,
        document: Document,
        version: VersionRecord,
        superseded_id: Optional[UUID],
        transition: TransitionRecord,
    ) -> Document:
        """Atomically CAS-update the document, supersede the old current record
        and insert the new one.

        Raises:
            ConcurrentModificationError: If the stored document no longer matches expected
        """
        pass


class VersionContentSource(ABC):
    """Loads extracted text of a version's file for content comparison."""

    @abstractmethod
    def load_text(self, version: VersionRecord) -> Optional[str]:
        """Return the file's text, or None when it cannot be extracted."""
        pass
