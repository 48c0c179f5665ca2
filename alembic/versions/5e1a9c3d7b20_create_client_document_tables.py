"""Create client document tables.

Revision ID: 5e1a9c3d7b20
Revises:
Create Date: 2025-01-20

This migration creates the client records holding embedded document
lists (cs_kaipoke_info), the document type master (user_doc_master) and
the normalized document store (cs_docs, one row per file URL).
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '5e1a9c3d7b20'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create cs_kaipoke_info, user_doc_master and cs_docs."""
    op.create_table(
        'cs_kaipoke_info',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True,
                  server_default=sa.text('gen_random_uuid()')),
        sa.Column('kaipoke_cs_id', sa.String(), nullable=False, unique=True,
                  comment='Client business key'),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('documents', postgresql.JSONB(), nullable=True,
                  comment='Embedded document list: [{id, url, label, doc_type_id, acquired_at}]'),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    )

    op.create_table(
        'user_doc_master',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True,
                  server_default=sa.text('gen_random_uuid()')),
        sa.Column('label', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=False,
                  comment='cs_doc for client document types'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index('ix_user_doc_master_category', 'user_doc_master', ['category'])

    op.create_table(
        'cs_docs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True,
                  server_default=sa.text('gen_random_uuid()')),
        sa.Column('url', sa.String(), nullable=False, unique=True,
                  comment='File URL; reconciliation key'),
        sa.Column('kaipoke_cs_id', sa.String(), nullable=True),
        sa.Column('source', sa.String(), nullable=False, server_default='documents_json'),

        # Classification
        sa.Column('doc_type_id', sa.String(), nullable=True),
        sa.Column('doc_name', sa.String(), nullable=True),

        # Analysis
        sa.Column('ocr_text', sa.Text(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True,
                  comment='LLM summary, or OCR_FAILED: <reason>'),
        sa.Column('applicable_date', sa.Date(), nullable=True),
        sa.Column('doc_date_raw', sa.String(), nullable=True,
                  comment='acquired_at as found in the embedded list'),
        sa.Column('llm_model', sa.String(), nullable=True),
        sa.Column('classification_confidence', sa.Float(), nullable=True,
                  comment='Applicable date confidence (0-100)'),

        # Back-reference
        sa.Column('cs_documents_entry_id', sa.String(), nullable=True,
                  comment='id of the embedded list entry'),

        # Metadata
        sa.Column('meta', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    )
    op.create_index('ix_cs_docs_kaipoke_cs_id', 'cs_docs', ['kaipoke_cs_id'])
    op.create_index(
        'ix_cs_docs_untyped_named',
        'cs_docs',
        ['id'],
        postgresql_where=sa.text('doc_type_id IS NULL AND doc_name IS NOT NULL'),
    )


def downgrade() -> None:
    """Drop the client document tables."""
    op.drop_index('ix_cs_docs_untyped_named', table_name='cs_docs')
    op.drop_index('ix_cs_docs_kaipoke_cs_id', table_name='cs_docs')
    op.drop_table('cs_docs')
    op.drop_index('ix_user_doc_master_category', table_name='user_doc_master')
    op.drop_table('user_doc_master')
    op.drop_table('cs_kaipoke_info')
