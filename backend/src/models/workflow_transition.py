"""WorkflowTransition SQLAlchemy model"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class WorkflowTransition(Base):
    """Append-only record of every status change of a document.

    from_status is NULL only for the creation record. sequence_no orders the
    walk and doubles as a per-document uniqueness guard.
    """
    __tablename__ = "workflow_transition"
    __table_args__ = (
        UniqueConstraint("document_id", "sequence_no", name="uq_workflow_transition_sequence"),
        Index("ix_workflow_transition_document_id_transitioned_at", "document_id", "transitioned_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    document_id = Column(Uuid(as_uuid=True), ForeignKey("document.id", ondelete="RESTRICT"), nullable=False)
    sequence_no = Column(Integer, nullable=False)
    from_status = Column(Text, nullable=True)
    to_status = Column(Text, nullable=False)
    kind = Column(Text, nullable=False, server_default="status_change")
    decision = Column(Text, nullable=True)
    comment = Column(Text, nullable=True)
    actor_id = Column(Uuid(as_uuid=True), nullable=False)
    actor_department = Column(Text, nullable=False)
    ip_address = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
    session_id = Column(Text, nullable=True)
    transitioned_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    document = relationship("Document", back_populates="transitions")
