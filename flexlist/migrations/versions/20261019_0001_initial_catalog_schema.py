"""Initial catalog schema: collections, items, tags, item_tags

Revision ID: 3c9d1f0a7b21
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c9d1f0a7b21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the four catalog tables."""
    op.create_table(
        'collections',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("name != ''", name='ck_collection_non_empty_name'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_collections_position', 'collections', ['position'], unique=False)

    op.create_table(
        'tags',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('value', sa.String(length=500), nullable=False),
        sa.Column('key_norm', sa.String(length=255), nullable=False),
        sa.Column('value_norm', sa.String(length=500), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key_norm', 'value_norm', name='uq_tag_normalized_pair'),
    )
    op.create_index('ix_tags_key_norm', 'tags', ['key_norm'], unique=False)

    op.create_table(
        'items',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('collection_id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('media_ref', sa.String(length=500), nullable=True),
        sa.Column('media_start_seconds', sa.Integer(), nullable=True),
        sa.Column('lead_sheet_ref', sa.String(length=500), nullable=True),
        sa.Column('knowledge_level', sa.String(length=20), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("title != ''", name='ck_item_non_empty_title'),
        sa.CheckConstraint(
            "knowledge_level IN ('does-not-know', 'kind-of-knows', 'knows')",
            name='ck_item_knowledge_level',
        ),
        sa.CheckConstraint(
            'media_start_seconds IS NULL OR media_start_seconds >= 0',
            name='ck_item_positive_media_start',
        ),
        sa.ForeignKeyConstraint(['collection_id'], ['collections.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_items_collection_id', 'items', ['collection_id'], unique=False)
    op.create_index('ix_items_title', 'items', ['title'], unique=False)
    op.create_index('ix_items_position', 'items', ['position'], unique=False)

    op.create_table(
        'item_tags',
        sa.Column('item_id', sa.String(length=36), nullable=False),
        sa.Column('tag_id', sa.String(length=36), nullable=False),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_id'], ['tags.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('item_id', 'tag_id'),
    )
    op.create_index('ix_item_tags_tag_id', 'item_tags', ['tag_id'], unique=False)


def downgrade() -> None:
    """Drop the catalog tables."""
    op.drop_index('ix_item_tags_tag_id', table_name='item_tags')
    op.drop_table('item_tags')
    op.drop_index('ix_items_position', table_name='items')
    op.drop_index('ix_items_title', table_name='items')
    op.drop_index('ix_items_collection_id', table_name='items')
    op.drop_table('items')
    op.drop_index('ix_tags_key_norm', table_name='tags')
    op.drop_table('tags')
    op.drop_index('ix_collections_position', table_name='collections')
    op.drop_table('collections')
