"""Document SQLAlchemy model

Document is the aggregate root of the lifecycle: status, current version
number and the metadata the permission rules look at. row_version is bumped on
every committed lifecycle change and used for compare-and-swap updates.
"""

from uuid import uuid4

from sqlalchemy import (
    BigInteger, CheckConstraint, Column, DateTime, Index, Integer, Text, Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base, PortableJSONB


class Document(Base):
    """Document model.

    Versions and workflow transitions hang off the document and are
    append-only; only this row is ever updated.
    """
    __tablename__ = "document"
    __table_args__ = (
        Index("ix_document_department", "department"),
        Index("ix_document_status", "status"),
        CheckConstraint(
            "status IN ('draft', 'review', 'published', 'archived', 'disposed')",
            name="ck_document_status",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    document_code = Column(Text, nullable=False, unique=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(Text, nullable=False)
    department = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default="draft")
    version = Column(Text, nullable=False, server_default="01.00")
    author_id = Column(Uuid(as_uuid=True), nullable=False)
    security_level = Column(Text, nullable=False, server_default="internal")
    priority = Column(Text, nullable=False, server_default="normal")
    recipients_json = Column(PortableJSONB, nullable=False, default=list)

    # Current file (storage is external, only the reference lives here)
    file_storage_key = Column(Text, nullable=True)
    file_name = Column(Text, nullable=True)
    file_size = Column(BigInteger, nullable=True)
    file_mime_type = Column(Text, nullable=True)

    row_version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    archived_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    versions = relationship(
        "DocumentVersion",
        back_populates="document",
        order_by="DocumentVersion.created_at",
    )
    transitions = relationship(
        "WorkflowTransition",
        back_populates="document",
        order_by="WorkflowTransition.sequence_no",
    )
