"""add_item_tag_position

Revision ID: 8e4b2d6c1f53
Revises: 3c9d1f0a7b21
Create Date: 2026-10-20 10:30:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8e4b2d6c1f53'
down_revision: Union[str, Sequence[str], None] = '3c9d1f0a7b21'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add position column so an item's tags keep their written order."""
    op.add_column(
        'item_tags',
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
    )


def downgrade() -> None:
    """Remove position column from item_tags."""
    with op.batch_alter_table('item_tags') as batch_op:
        batch_op.drop_column('position')
