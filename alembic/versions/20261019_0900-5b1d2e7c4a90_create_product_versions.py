"""Create product versions and field evidence

Revision ID: 5b1d2e7c4a90
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '5b1d2e7c4a90'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create draft/published version tables"""

    op.create_table('product_versions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('fields_json', sa.JSON(), nullable=False),
        sa.Column('score_json', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_product_versions_product_id', 'product_versions', ['product_id'])

    # One draft per product
    op.create_index(
        'uq_product_versions_single_draft',
        'product_versions',
        ['product_id'],
        unique=True,
        postgresql_where=sa.text("status = 'draft'"),
        sqlite_where=sa.text("status = 'draft'"),
    )
    # Published versions are unique per product
    op.create_index(
        'uq_product_versions_published_version',
        'product_versions',
        ['product_id', 'version'],
        unique=True,
        postgresql_where=sa.text("status = 'published'"),
        sqlite_where=sa.text("status = 'published'"),
    )

    op.create_table('product_field_evidence',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_version_id', sa.Uuid(), nullable=False),
        sa.Column('field_key', sa.String(), nullable=False),
        sa.Column('source_type', sa.String(), nullable=False),
        sa.Column('url', sa.String(), nullable=True),
        sa.Column('quoted_text', sa.String(), nullable=True),
        sa.Column('how_gathered', sa.String(), nullable=True),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('verified_by', sa.String(), nullable=False),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['product_version_id'], ['product_versions.id'], )
    )
    op.create_index(
        'ix_product_field_evidence_product_version_id', 'product_field_evidence', ['product_version_id']
    )


def downgrade() -> None:
    """Drop draft/published version tables"""
    op.drop_index('ix_product_field_evidence_product_version_id', table_name='product_field_evidence')
    op.drop_table('product_field_evidence')
    op.drop_index('uq_product_versions_published_version', table_name='product_versions')
    op.drop_index('uq_product_versions_single_draft', table_name='product_versions')
    op.drop_index('ix_product_versions_product_id', table_name='product_versions')
    op.drop_table('product_versions')
