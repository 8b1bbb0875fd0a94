"""initial schema: pharmacies, users, medications, orders, prescriptions, cart

Revision ID: 4f2a9c1e7b3d
Revises:
Create Date: 2026-10-18 09:12:41.310552

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4f2a9c1e7b3d'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


user_roles = postgresql.ENUM('customer', 'pharmacist', 'admin', name='user_roles', create_type=False)
order_type_enum = postgresql.ENUM('online', 'delivery', 'pickup', name='order_type_enum', create_type=False)
order_status_enum = postgresql.ENUM(
    'pending', 'processing', 'ready', 'on_the_way', 'delivered', 'completed', 'cancelled',
    name='order_status_enum',
    create_type=False,
)
prescription_status_enum = postgresql.ENUM(
    'pending', 'approved', 'rejected', name='prescription_status_enum', create_type=False
)


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    for enum in (user_roles, order_type_enum, order_status_enum, prescription_status_enum):
        enum.create(bind, checkfirst=True)

    op.create_table(
        'pharmacies',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.String(length=512), nullable=True),
        sa.Column('contact_phone', sa.String(length=20), nullable=True),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_pharmacies_name', 'pharmacies', ['name'])

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=20), nullable=True),
        sa.Column('hashed_password', sa.String(length=512), nullable=False),
        sa.Column('role', user_roles, nullable=False),
        sa.Column(
            'pharmacy_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('pharmacies.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_email_verified', sa.Boolean(), nullable=False),
        sa.Column('verification_token', sa.String(length=128), nullable=True),
        sa.Column('verification_token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_pharmacy_id', 'users', ['pharmacy_id'])
    op.create_index('ix_users_verification_token', 'users', ['verification_token'])

    op.create_table(
        'medications',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('dosage', sa.String(length=100), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('stock_quantity', sa.Integer(), nullable=False),
        sa.Column('online_stock', sa.Integer(), nullable=False),
        sa.Column('in_person_stock', sa.Integer(), nullable=False),
        sa.Column('requires_prescription', sa.Boolean(), nullable=False),
        sa.Column('image_key', sa.String(length=512), nullable=True),
        sa.Column('pharmacy_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('pharmacies.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('price > 0', name='ck_medications_price_positive'),
        sa.CheckConstraint('online_stock >= 0', name='ck_medications_online_stock'),
        sa.CheckConstraint('in_person_stock >= 0', name='ck_medications_in_person_stock'),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_medications_stock_quantity'),
    )
    op.create_index('ix_medications_name', 'medications', ['name'])
    op.create_index('ix_medications_category', 'medications', ['category'])
    op.create_index('ix_medications_pharmacy_id', 'medications', ['pharmacy_id'])

    op.create_table(
        'orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'customer_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_phone', sa.String(length=20), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('customer_notes', sa.Text(), nullable=True),
        sa.Column('pharmacy_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('pharmacies.id'), nullable=False),
        sa.Column('order_type', order_type_enum, nullable=False),
        sa.Column('is_guest_order', sa.Boolean(), nullable=False),
        sa.Column('confirmation_code', sa.String(length=32), nullable=False),
        sa.Column('total_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('total_number_of_items', sa.Integer(), nullable=False),
        sa.Column('status', order_status_enum, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_customer_phone', 'orders', ['customer_phone'])
    op.create_index('ix_orders_pharmacy_id', 'orders', ['pharmacy_id'])
    op.create_index('ix_orders_confirmation_code', 'orders', ['confirmation_code'], unique=True)
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    op.create_table(
        'order_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'order_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('orders.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column(
            'medication_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('medications.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_per_unit', sa.Numeric(10, 2), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_medication_id', 'order_items', ['medication_id'])

    op.create_table(
        'prescriptions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column(
            'medication_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('medications.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('file_path', sa.String(length=512), nullable=False),
        sa.Column('filename', sa.String(length=512), nullable=False),
        sa.Column('content_type', sa.String(length=100), nullable=False),
        sa.Column('status', prescription_status_enum, nullable=False),
        sa.Column(
            'pharmacist_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_prescriptions_user_id', 'prescriptions', ['user_id'])
    op.create_index('ix_prescriptions_medication_id', 'prescriptions', ['medication_id'])
    op.create_index('ix_prescriptions_status', 'prescriptions', ['status'])

    op.create_table(
        'cart_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column(
            'medication_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('medications.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_cart_items_quantity_positive'),
        sa.UniqueConstraint('user_id', 'medication_id', name='uq_user_medication_cart'),
    )
    op.create_index('ix_cart_items_user_id', 'cart_items', ['user_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('cart_items')
    op.drop_table('prescriptions')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('medications')
    op.drop_table('users')
    op.drop_table('pharmacies')

    bind = op.get_bind()
    for enum in (prescription_status_enum, order_status_enum, order_type_enum, user_roles):
        enum.drop(bind, checkfirst=True)
