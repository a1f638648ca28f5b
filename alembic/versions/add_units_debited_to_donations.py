"""Add units_debited column to donations

Revision ID: add_units_debited
Revises: 3f9a1c2d7b40
Create Date: 2026-10-19 15:40:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'add_units_debited'
down_revision = '3f9a1c2d7b40'
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Units actually taken off the counter when a donation left 'valid'
    op.add_column('donations', sa.Column('units_debited', sa.Integer(), nullable=True))

    # Donations already expired or used were debited in full
    op.execute("UPDATE donations SET units_debited = units WHERE status IN ('expired', 'used')")


def downgrade() -> None:
    op.drop_column('donations', 'units_debited')
