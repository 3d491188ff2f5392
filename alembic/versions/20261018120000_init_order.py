from alembic import op
import sqlalchemy as sa

revision = "20261018120000"
down_revision = None

order_status = sa.Enum("PENDING", "PAID", "DELIVERED", "CANCELLED", name="order_status")

def upgrade():
    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_items', sa.Integer(), nullable=False),
        sa.Column('status', order_status, nullable=False, server_default='PENDING', index=True),
        sa.Column('paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('stripe_charge_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Uuid(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
    )
    op.create_table(
        'order_receipts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Uuid(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('receipt_url', sa.String(length=1024), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

def downgrade():
    op.drop_table('order_receipts')
    op.drop_table('order_items')
    op.drop_table('orders')
    order_status.drop(op.get_bind(), checkfirst=True)
