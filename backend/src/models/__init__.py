"""SQLAlchemy Models for the document management backend"""

from .base import Base
from .audit_log import AuditLog
from .document import Document
from .document_version import DocumentVersion
from .workflow_transition import WorkflowTransition

__all__ = [
    "Base",
    "AuditLog",
    "Document",
    "DocumentVersion",
    "WorkflowTransition",
]
