"""add_users_and_purchase_orders

Revision ID: 3f1c9a7d2b60
Revises:
Create Date: 2026-10-19 09:12:41.208113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b60'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema - Create users and purchase_orders tables."""

    conn = op.get_bind()
    inspector = sa.inspect(conn)

    def table_exists(name):
        return inspector.has_table(name)

    if not table_exists('users'):
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('username', sa.String(length=50), nullable=False),
            sa.Column('email', sa.String(length=100), nullable=True),
            sa.Column('password_hash', sa.String(length=255), nullable=False),
            sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('username')
        )

    if not table_exists('purchase_orders'):
        op.create_table(
            'purchase_orders',
            sa.Column('id', sa.String(length=32), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=True),
            sa.Column('house_id', sa.String(length=64), nullable=True),
            sa.Column('house_name', sa.String(length=255), nullable=False),
            sa.Column('customer_name', sa.String(length=255), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
            sa.Column('purchase_date', sa.DateTime(), server_default=sa.func.now(), nullable=True),
            sa.Column('total_amount', sa.Float(), nullable=True),
            sa.Column('materials', sa.JSON(), nullable=False),
            sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_purchase_orders_user_id', 'purchase_orders', ['user_id'])
        op.create_index('idx_purchase_orders_status', 'purchase_orders', ['status'])
        op.create_index('idx_purchase_orders_date', 'purchase_orders', ['purchase_date'])


def downgrade() -> None:
    """Downgrade schema - Drop users and purchase_orders tables."""

    op.drop_index('idx_purchase_orders_date', 'purchase_orders')
    op.drop_index('idx_purchase_orders_status', 'purchase_orders')
    op.drop_index('ix_purchase_orders_user_id', 'purchase_orders')
    op.drop_table('purchase_orders')

    op.drop_table('users')
