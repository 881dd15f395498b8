"""DocumentVersion SQLAlchemy model"""

from uuid import uuid4

from sqlalchemy import (
    BigInteger, CheckConstraint, Column, DateTime, ForeignKey, Index, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, text

from .base import Base


class DocumentVersion(Base):
    """One row per version ever created for a document.

    Append-only apart from lifecycle_state flipping current → superseded.
    The partial unique index guarantees at most one current row per document.
    """
    __tablename__ = "document_version"
    __table_args__ = (
        UniqueConstraint("document_id", "version", name="uq_document_version_number"),
        Index(
            "uq_document_version_current",
            "document_id",
            unique=True,
            postgresql_where=text("lifecycle_state = 'current'"),
            sqlite_where=text("lifecycle_state = 'current'"),
        ),
        CheckConstraint("change_type IN ('minor', 'major')", name="ck_document_version_change_type"),
        CheckConstraint(
            "lifecycle_state IN ('current', 'superseded')",
            name="ck_document_version_lifecycle_state",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    document_id = Column(Uuid(as_uuid=True), ForeignKey("document.id", ondelete="RESTRICT"), nullable=False)
    version = Column(Text, nullable=False)
    change_type = Column(Text, nullable=False)
    change_reason = Column(Text, nullable=False)
    change_summary = Column(Text, nullable=False)
    lifecycle_state = Column(Text, nullable=False, server_default="current")

    # Metadata snapshot for comparison
    title = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    file_storage_key = Column(Text, nullable=True)
    file_name = Column(Text, nullable=True)
    file_size = Column(BigInteger, nullable=True)
    file_mime_type = Column(Text, nullable=True)

    created_by = Column(Uuid(as_uuid=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    document = relationship("Document", back_populates="versions")
