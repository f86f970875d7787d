"""appointment totals, optional business timezone

Revision ID: 0002_appointment_totals
Revises: 0001_initial_schema
Create Date: 2026-10-17 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0002_appointment_totals'
down_revision: Union[str, Sequence[str], None] = '0001_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    with op.batch_alter_table('appointments') as batch_op:
        batch_op.add_column(
            sa.Column('total_price', sa.Numeric(12, 2), nullable=False, server_default='0')
        )
        batch_op.add_column(
            sa.Column('total_duration_minutes', sa.Integer(), nullable=False, server_default='0')
        )

    # Businesses without a zone fall back to DEFAULT_TIMEZONE
    with op.batch_alter_table('businesses') as batch_op:
        batch_op.alter_column('timezone', existing_type=sa.String(64), nullable=True)


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("UPDATE businesses SET timezone = 'UTC' WHERE timezone IS NULL")
    with op.batch_alter_table('businesses') as batch_op:
        batch_op.alter_column('timezone', existing_type=sa.String(64), nullable=False)

    with op.batch_alter_table('appointments') as batch_op:
        batch_op.drop_column('total_duration_minutes')
        batch_op.drop_column('total_price')
