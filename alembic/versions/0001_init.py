from alembic import op
import sqlalchemy as sa

revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True)
    )
    op.create_table(
        'menu_items',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('price', sa.Numeric(10,2), nullable=False),
        sa.Column('category_id', sa.Integer, sa.ForeignKey('categories.id'), nullable=False),
        sa.CheckConstraint('price > 0', name='ck_menu_items_price_positive')
    )
    op.create_index('ix_menu_items_category_id', 'menu_items', ['category_id'])
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('token_number', sa.Integer, nullable=False),
        sa.Column('table_number', sa.Integer, nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('total', sa.Numeric(10,2), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False)
    )
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_table_number', 'orders', ['table_number'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])
    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('menu_item_id', sa.Integer, nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('price', sa.Numeric(10,2), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive')
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_table(
        'settings',
        sa.Column('key', sa.String(100), primary_key=True),
        sa.Column('value', sa.Text, nullable=False)
    )

def downgrade():
    op.drop_table('settings')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('menu_items')
    op.drop_table('categories')
