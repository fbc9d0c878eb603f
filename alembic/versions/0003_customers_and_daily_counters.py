"""customer ledger and per-day token counters

Revision ID: 0003
Revises: 0002
Create Date: 2025-03-04

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0003'
down_revision = '0002'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'customers',
        sa.Column('phone', sa.String(20), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('total_orders', sa.Integer, nullable=False, server_default='0'),
        sa.Column('total_spent', sa.Numeric(12,2), nullable=False, server_default='0'),
        sa.Column('last_visit', sa.DateTime, nullable=False)
    )
    op.create_table(
        'daily_counters',
        sa.Column('day', sa.Date, primary_key=True),
        sa.Column('seq', sa.Integer, nullable=False, server_default='0')
    )

    # Continue today's numbering from the tokens already handed out
    op.execute("""
        INSERT INTO daily_counters (day, seq)
        SELECT DATE(created_at), MAX(token_number)
        FROM orders
        GROUP BY DATE(created_at)
    """)


def downgrade() -> None:
    op.drop_table('daily_counters')
    op.drop_table('customers')
