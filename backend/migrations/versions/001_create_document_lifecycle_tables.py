"""Create document lifecycle tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Tables: document, document_version, workflow_transition, audit_log
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create document, version history, workflow and audit tables."""

    op.create_table(
        'document',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('document_code', sa.Text(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('department', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='draft'),
        sa.Column('version', sa.Text(), nullable=False, server_default='01.00'),
        sa.Column('author_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('security_level', sa.Text(), nullable=False, server_default='internal'),
        sa.Column('priority', sa.Text(), nullable=False, server_default='normal'),
        sa.Column('recipients_json', postgresql.JSONB(astext_type=sa.Text()), nullable=False,
                  server_default=sa.text("'[]'::jsonb")),

        # Current file reference
        sa.Column('file_storage_key', sa.Text(), nullable=True),
        sa.Column('file_name', sa.Text(), nullable=True),
        sa.Column('file_size', sa.BigInteger(), nullable=True),
        sa.Column('file_mime_type', sa.Text(), nullable=True),

        # Optimistic concurrency
        sa.Column('row_version', sa.Integer(), nullable=False, server_default='1'),

        # Timestamps
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('archived_at', sa.TIMESTAMP(timezone=True), nullable=True),

        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_code', name='uq_document_document_code'),
        sa.CheckConstraint(
            "status IN ('draft', 'review', 'published', 'archived', 'disposed')",
            name='ck_document_status',
        ),
    )
    op.create_index('ix_document_department', 'document', ['department'])
    op.create_index('ix_document_status', 'document', ['status'])

    op.create_table(
        'document_version',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('document_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('version', sa.Text(), nullable=False),
        sa.Column('change_type', sa.Text(), nullable=False),
        sa.Column('change_reason', sa.Text(), nullable=False),
        sa.Column('change_summary', sa.Text(), nullable=False),
        sa.Column('lifecycle_state', sa.Text(), nullable=False, server_default='current'),

        # Metadata snapshot
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('file_storage_key', sa.Text(), nullable=True),
        sa.Column('file_name', sa.Text(), nullable=True),
        sa.Column('file_size', sa.BigInteger(), nullable=True),
        sa.Column('file_mime_type', sa.Text(), nullable=True),

        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['document_id'], ['document.id'], ondelete='RESTRICT', name='fk_document_version_document_id_document'),
        sa.UniqueConstraint('document_id', 'version', name='uq_document_version_number'),
        sa.CheckConstraint("change_type IN ('minor', 'major')", name='ck_document_version_change_type'),
        sa.CheckConstraint(
            "lifecycle_state IN ('current', 'superseded')",
            name='ck_document_version_lifecycle_state',
        ),
    )
    # At most one current version per document
    op.create_index(
        'uq_document_version_current',
        'document_version',
        ['document_id'],
        unique=True,
        postgresql_where=sa.text("lifecycle_state = 'current'"),
    )

    op.create_table(
        'workflow_transition',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('document_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('sequence_no', sa.Integer(), nullable=False),
        sa.Column('from_status', sa.Text(), nullable=True),
        sa.Column('to_status', sa.Text(), nullable=False),
        sa.Column('kind', sa.Text(), nullable=False, server_default='status_change'),
        sa.Column('decision', sa.Text(), nullable=True),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('actor_department', sa.Text(), nullable=False),
        sa.Column('ip_address', sa.Text(), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('session_id', sa.Text(), nullable=True),
        sa.Column('transitioned_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['document_id'], ['document.id'], ondelete='RESTRICT', name='fk_workflow_transition_document_id_document'),
        sa.UniqueConstraint('document_id', 'sequence_no', name='uq_workflow_transition_sequence'),
    )
    op.create_index(
        'ix_workflow_transition_document_id_transitioned_at',
        'workflow_transition',
        ['document_id', 'transitioned_at'],
    )

    op.create_table(
        'audit_log',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('entity_type', sa.Text(), nullable=True),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('metadata_json', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('ip_address', sa.Text(), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_log_entity', 'audit_log', ['entity_type', 'entity_id'])
    op.create_index('ix_audit_log_created_at', 'audit_log', ['created_at'])


def downgrade():
    """Drop lifecycle tables in reverse dependency order."""
    op.drop_index('ix_audit_log_created_at', table_name='audit_log')
    op.drop_index('ix_audit_log_entity', table_name='audit_log')
    op.drop_table('audit_log')

    op.drop_index('ix_workflow_transition_document_id_transitioned_at', table_name='workflow_transition')
    op.drop_table('workflow_transition')

    op.drop_index('uq_document_version_current', table_name='document_version')
    op.drop_table('document_version')

    op.drop_index('ix_document_status', table_name='document')
    op.drop_index('ix_document_department', table_name='document')
    op.drop_table('document')
