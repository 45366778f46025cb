"""Initial schema - creates all tables for the fulfillment engine

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ENUMS = {
    'userrole': ('CUSTOMER', 'SELLER', 'DELIVERY', 'EMPLOYEE', 'MANAGER', 'ADMIN'),
    'orderstatus': ('PENDING', 'CONFIRMED', 'PROCESSING', 'READY_FOR_PICKUP', 'OUT_FOR_DELIVERY',
                    'DELIVERED', 'CANCELLED', 'REFUNDED'),
    'fulfillmenttype': ('DELIVERY', 'PICKUP'),
    'pickingstatus': ('PENDING', 'PICKING', 'PICKED', 'READY', 'CANCELLED'),
    'deliverystatus': ('ASSIGNED', 'PICKED_UP', 'IN_TRANSIT', 'DELIVERED', 'FAILED', 'RETURNED'),
    'movementtype': ('IN', 'OUT', 'ADJUSTMENT', 'RETURN', 'DAMAGE', 'TRANSFER'),
    'referencetype': ('ORDER', 'SALE', 'PURCHASE_ORDER'),
    'coupontype': ('PERCENTAGE', 'FIXED_AMOUNT'),
    'notificationtype': ('ORDER_UPDATE', 'DELIVERY_UPDATE', 'PROMOTION', 'SYSTEM'),
    'paymentmethod': ('CASH', 'CREDIT_CARD', 'DEBIT_CARD', 'PIX', 'TRANSFER'),
    'purchaseorderstatus': ('DRAFT', 'SENT', 'PARTIAL', 'RECEIVED', 'CANCELLED'),
}


def enum(name: str) -> postgresql.ENUM:
    """Column type for an enum created up front in upgrade()."""
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def id_column() -> sa.Column:
    return sa.Column('id', sa.String(length=36), nullable=False)


def created_at(index: bool = False) -> sa.Column:
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, index=index)


def updated_at() -> sa.Column:
    return sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)


def upgrade() -> None:
    # Create custom types/enums
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(op.get_bind(), checkfirst=True)

    op.create_table(
        'users',
        id_column(),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('role', enum('userrole'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'addresses',
        id_column(),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('label', sa.String(), nullable=True),
        sa.Column('street', sa.String(), nullable=False),
        sa.Column('number', sa.String(), nullable=True),
        sa.Column('complement', sa.String(), nullable=True),
        sa.Column('neighborhood', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=False),
        sa.Column('state', sa.String(), nullable=True),
        sa.Column('zip_code', sa.String(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_addresses_user_id', 'addresses', ['user_id'])

    op.create_table(
        'products',
        id_column(),
        created_at(),
        updated_at(),
        sa.Column('sku', sa.String(), nullable=False),
        sa.Column('barcode', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('unit', sa.String(), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax_rate', sa.Numeric(5, 4), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('min_stock', sa.Integer(), nullable=False),
        sa.Column('sales_count', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku'),
    )
    op.create_index('ix_products_barcode', 'products', ['barcode'], unique=True)

    op.create_table(
        'coupons',
        id_column(),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('type', enum('coupontype'), nullable=False),
        sa.Column('value', sa.Numeric(12, 2), nullable=False),
        sa.Column('min_order_value', sa.Numeric(12, 2), nullable=True),
        sa.Column('max_discount_value', sa.Numeric(12, 2), nullable=True),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('current_uses', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_coupons_code', 'coupons', ['code'], unique=True)

    op.create_table(
        'inventory_movements',
        id_column(),
        created_at(index=True),
        sa.Column('product_id', sa.String(length=36), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('type', enum('movementtype'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('previous_stock', sa.Integer(), nullable=False),
        sa.Column('new_stock', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('performed_by_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('reference_id', sa.String(length=36), nullable=True),
        sa.Column('reference_type', enum('referencetype'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_movements_product_id', 'inventory_movements', ['product_id'])
    op.create_index('ix_inventory_movements_reference_id', 'inventory_movements', ['reference_id'])

    op.create_table(
        'carts',
        id_column(),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )

    op.create_table(
        'cart_items',
        id_column(),
        sa.Column('cart_id', sa.String(length=36), sa.ForeignKey('carts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.String(length=36), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cart_items_cart_id', 'cart_items', ['cart_id'])

    op.create_table(
        'orders',
        id_column(),
        sa.Column('order_number', sa.String(), nullable=False),
        sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('seller_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('delivery_person_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('delivery_address_id', sa.String(length=36), sa.ForeignKey('addresses.id'), nullable=True),
        sa.Column('coupon_id', sa.String(length=36), sa.ForeignKey('coupons.id'), nullable=True),
        sa.Column('status', enum('orderstatus'), nullable=False),
        sa.Column('fulfillment_type', enum('fulfillmenttype'), nullable=False),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax', sa.Numeric(12, 2), nullable=False),
        sa.Column('delivery_fee', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount', sa.Numeric(12, 2), nullable=False),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancel_reason', sa.Text(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        created_at(index=True),
        updated_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_seller_id', 'orders', ['seller_id'])
    op.create_index('ix_orders_delivery_person_id', 'orders', ['delivery_person_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])

    op.create_table(
        'order_items',
        id_column(),
        sa.Column('order_id', sa.String(length=36), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.String(length=36), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'order_status_history',
        id_column(),
        sa.Column('order_id', sa.String(length=36), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', enum('orderstatus'), nullable=False),
        sa.Column('changed_by', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_status_history_order_id', 'order_status_history', ['order_id'])

    op.create_table(
        'picking_orders',
        id_column(),
        sa.Column('order_id', sa.String(length=36), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('seller_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('status', enum('pickingstatus'), nullable=False),
        sa.Column('total_items', sa.Integer(), nullable=False),
        sa.Column('picked_items', sa.Integer(), nullable=False),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        created_at(index=True),
        updated_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id'),
    )
    op.create_index('ix_picking_orders_seller_id', 'picking_orders', ['seller_id'])
    op.create_index('ix_picking_orders_status', 'picking_orders', ['status'])

    op.create_table(
        'picking_items',
        id_column(),
        sa.Column('picking_order_id', sa.String(length=36), sa.ForeignKey('picking_orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('order_item_id', sa.String(length=36), sa.ForeignKey('order_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.String(length=36), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('is_picked', sa.Boolean(), nullable=False),
        sa.Column('picked_quantity', sa.Integer(), nullable=False),
        sa.Column('picked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_picking_items_picking_order_id', 'picking_items', ['picking_order_id'])

    op.create_table(
        'deliveries',
        id_column(),
        sa.Column('order_id', sa.String(length=36), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('delivery_person_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', enum('deliverystatus'), nullable=False),
        sa.Column('current_latitude', sa.Float(), nullable=True),
        sa.Column('current_longitude', sa.Float(), nullable=True),
        sa.Column('picked_up_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('estimated_minutes', sa.Integer(), nullable=True),
        sa.Column('actual_minutes', sa.Integer(), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('rating_comment', sa.Text(), nullable=True),
        created_at(index=True),
        updated_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id'),
    )
    op.create_index('ix_deliveries_delivery_person_id', 'deliveries', ['delivery_person_id'])
    op.create_index('ix_deliveries_status', 'deliveries', ['status'])

    op.create_table(
        'delivery_location_history',
        id_column(),
        sa.Column('delivery_id', sa.String(length=36), sa.ForeignKey('deliveries.id', ondelete='CASCADE'), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        created_at(index=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_delivery_location_history_delivery_id', 'delivery_location_history', ['delivery_id'])

    op.create_table(
        'notifications',
        id_column(),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', enum('notificationtype'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        created_at(index=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])

    op.create_table(
        'notification_preferences',
        id_column(),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('order_updates', sa.Boolean(), nullable=False),
        sa.Column('promotions', sa.Boolean(), nullable=False),
        sa.Column('delivery_updates', sa.Boolean(), nullable=False),
        sa.Column('loyalty_updates', sa.Boolean(), nullable=False),
        sa.Column('push_enabled', sa.Boolean(), nullable=False),
        sa.Column('email_enabled', sa.Boolean(), nullable=False),
        sa.Column('sms_enabled', sa.Boolean(), nullable=False),
        updated_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )

    op.create_table(
        'sales',
        id_column(),
        sa.Column('order_number', sa.String(), nullable=False),
        created_at(),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('seller_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax', sa.Numeric(12, 2), nullable=False),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.Column('payment_method', enum('paymentmethod'), nullable=False),
        sa.Column('paid_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('change', sa.Numeric(12, 2), nullable=False),
        sa.Column('is_suspended', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sales_order_number', 'sales', ['order_number'], unique=True)
    op.create_index('ix_sales_seller_id', 'sales', ['seller_id'])
    op.create_index('ix_sales_customer_id', 'sales', ['customer_id'])

    op.create_table(
        'sale_items',
        id_column(),
        sa.Column('sale_id', sa.String(length=36), sa.ForeignKey('sales.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.String(length=36), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('product_name', sa.String(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount', sa.Numeric(12, 2), nullable=False),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])

    op.create_table(
        'purchase_orders',
        id_column(),
        sa.Column('order_number', sa.String(), nullable=False),
        sa.Column('supplier_name', sa.String(), nullable=True),
        sa.Column('status', enum('purchaseorderstatus'), nullable=False),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=True),
        created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_number'),
    )

    op.create_table(
        'purchase_order_items',
        id_column(),
        sa.Column('purchase_order_id', sa.String(length=36), sa.ForeignKey('purchase_orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.String(length=36), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_cost', sa.Numeric(12, 2), nullable=True),
        sa.Column('received_quantity', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_purchase_order_items_purchase_order_id', 'purchase_order_items', ['purchase_order_id'])


def downgrade() -> None:
    op.drop_table('purchase_order_items')
    op.drop_table('purchase_orders')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('notification_preferences')
    op.drop_table('notifications')
    op.drop_table('delivery_location_history')
    op.drop_table('deliveries')
    op.drop_table('picking_items')
    op.drop_table('picking_orders')
    op.drop_table('order_status_history')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('cart_items')
    op.drop_table('carts')
    op.drop_table('inventory_movements')
    op.drop_table('coupons')
    op.drop_table('products')
    op.drop_table('addresses')
    op.drop_table('users')

    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
