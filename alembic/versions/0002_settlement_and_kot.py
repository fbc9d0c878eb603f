"""settlement fields, tax split and kitchen print tracking

Revision ID: 0002
Revises: 0001_init
Create Date: 2025-02-11

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0002'
down_revision = '0001_init'
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table('orders') as batch:
        batch.add_column(sa.Column('payment_method', sa.String(20), nullable=True))
        batch.add_column(sa.Column('customer_name', sa.String(100), nullable=True))
        batch.add_column(sa.Column('customer_phone', sa.String(20), nullable=True))
        batch.add_column(sa.Column('subtotal', sa.Numeric(10,2), nullable=False, server_default='0'))
        batch.add_column(sa.Column('tax', sa.Numeric(10,2), nullable=False, server_default='0'))

    # Orders created before the tax split were stored without tax
    op.execute("UPDATE orders SET subtotal = total")

    with op.batch_alter_table('order_items') as batch:
        batch.add_column(sa.Column('printed_quantity', sa.Integer, nullable=False, server_default='0'))
        batch.create_check_constraint(
            'ck_order_items_printed_within_quantity',
            'printed_quantity >= 0 AND printed_quantity <= quantity'
        )

    # One open order per table
    op.create_index(
        'uq_orders_pending_table',
        'orders',
        ['table_number'],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
        sqlite_where=sa.text("status = 'PENDING'")
    )


def downgrade() -> None:
    op.drop_index('uq_orders_pending_table', table_name='orders')
    with op.batch_alter_table('order_items') as batch:
        batch.drop_constraint('ck_order_items_printed_within_quantity', type_='check')
        batch.drop_column('printed_quantity')
    with op.batch_alter_table('orders') as batch:
        batch.drop_column('tax')
        batch.drop_column('subtotal')
        batch.drop_column('customer_phone')
        batch.drop_column('customer_name')
        batch.drop_column('payment_method')
