"""user watch history

Revision ID: 7c2e5d9a4b31
Revises: 3f9a1c2b7d10
Create Date: 2026-10-18 16:40:21.904117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7c2e5d9a4b31'
down_revision: Union[str, Sequence[str], None] = '3f9a1c2b7d10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add the ordered watch history to users."""
    with op.batch_alter_table('users') as batch_op:
        batch_op.add_column(
            sa.Column('watch_history', sa.JSON(), nullable=False, server_default='[]'))


def downgrade() -> None:
    with op.batch_alter_table('users') as batch_op:
        batch_op.drop_column('watch_history')
