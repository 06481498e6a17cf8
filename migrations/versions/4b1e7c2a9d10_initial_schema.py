"""initial schema

Revision ID: 4b1e7c2a9d10
Revises:
Create Date: 2026-10-19 10:12:31.118402

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4b1e7c2a9d10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'merchant',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('shop_name', sa.String(length=200), nullable=False),
        sa.Column('address', sa.String(length=500), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('logo', sa.String(length=500), nullable=True),
        sa.Column('header_image', sa.String(length=500), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('delivery_charge', sa.Float(), nullable=False),
        sa.Column('free_delivery_limit', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('email', sa.String(length=200), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('merchant_id', sa.Integer(), sa.ForeignKey('merchant.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_user_email', 'user', ['email'], unique=True)

    op.create_table(
        'delivery_person',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False, unique=True),
        sa.Column('merchant_id', sa.Integer(), sa.ForeignKey('merchant.id'), nullable=False),
        sa.Column('availability', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'category',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('merchant_id', sa.Integer(), sa.ForeignKey('merchant.id'), nullable=False),
        sa.UniqueConstraint('merchant_id', 'name', name='uq_category_merchant_name'),
    )

    op.create_table(
        'product',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('image', sa.String(length=500), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('category.id'), nullable=True),
        sa.Column('merchant_id', sa.Integer(), sa.ForeignKey('merchant.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'order',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('code', sa.String(length=64), nullable=True),
        sa.Column('customer_name', sa.String(length=200), nullable=False),
        sa.Column('customer_phone', sa.String(length=20), nullable=False),
        sa.Column('customer_address', sa.String(length=500), nullable=False),
        sa.Column('items_total', sa.Float(), nullable=True),
        sa.Column('delivery_charge', sa.Float(), nullable=True),
        sa.Column('total', sa.Float(), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('delivery_pin', sa.String(length=10), nullable=True),
        sa.Column('proof_photo', sa.String(length=300), nullable=True),
        sa.Column('merchant_id', sa.Integer(), sa.ForeignKey('merchant.id'), nullable=False),
        sa.Column('delivery_person_id', sa.Integer(), sa.ForeignKey('delivery_person.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('assigned_at', sa.DateTime(), nullable=True),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('en_route_pickup_at', sa.DateTime(), nullable=True),
        sa.Column('picked_up_at', sa.DateTime(), nullable=True),
        sa.Column('en_route_delivery_at', sa.DateTime(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_order_code', 'order', ['code'], unique=True)
    op.create_index('ix_order_status', 'order', ['status'])

    op.create_table(
        'order_item',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('order.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id', ondelete='SET NULL'), nullable=True),
        sa.Column('product_name', sa.String(length=200), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
    )

    op.create_table(
        'notification',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('merchant_id', sa.Integer(), sa.ForeignKey('merchant.id'), nullable=False),
        sa.Column('delivery_person_id', sa.Integer(), sa.ForeignKey('delivery_person.id'), nullable=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('order.id'), nullable=True),
        sa.Column('message', sa.String(length=300), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_notification_merchant_id', 'notification', ['merchant_id'])

    op.create_table(
        'subscription',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('merchant_id', sa.Integer(), sa.ForeignKey('merchant.id'), nullable=False),
        sa.Column('start', sa.DateTime(), nullable=False),
        sa.Column('end', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('price', sa.Float(), nullable=True),
    )

    op.create_table(
        'push_subscription',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('delivery_person_id', sa.Integer(), sa.ForeignKey('delivery_person.id'), nullable=False),
        sa.Column('endpoint', sa.String(length=500), nullable=False, unique=True),
        sa.Column('keys', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'kv_store',
        sa.Column('key', sa.String(length=255), primary_key=True),
        sa.Column('value', sa.JSON(), nullable=False),
    )

    # ### end Alembic commands ###


def downgrade():
    op.drop_table('kv_store')
    op.drop_table('push_subscription')
    op.drop_table('subscription')
    op.drop_index('ix_notification_merchant_id', table_name='notification')
    op.drop_table('notification')
    op.drop_table('order_item')
    op.drop_index('ix_order_status', table_name='order')
    op.drop_index('ix_order_code', table_name='order')
    op.drop_table('order')
    op.drop_table('product')
    op.drop_table('category')
    op.drop_table('delivery_person')
    op.drop_index('ix_user_email', table_name='user')
    op.drop_table('user')
    op.drop_table('merchant')

    # ### end Alembic commands ###
