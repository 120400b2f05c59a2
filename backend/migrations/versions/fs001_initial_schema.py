"""initial fieldsales schema

Revision ID: fs001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete schema from scratch:
- users / session_tokens: logins and opaque bearer sessions
- managers / agents / workers: staff hierarchy below an admin
- products: tenant catalogue with available stock
- sales: picked/sold/returned records with payment state
- notifications: per-user inbox
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'fs001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    # ============================================================================
    # users: login accounts (admin rows are the tenant roots)
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='user'),
        sa.Column('created_by_admin_id', sa.Integer(), nullable=True),
        sa.Column('profile_picture', sa.String(length=1024), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['created_by_admin_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_created_by_admin_id', 'users', ['created_by_admin_id'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # Staff hierarchy: admin -> managers -> agents / workers
    # ============================================================================
    op.create_table(
        'managers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('admin_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('address', sa.String(length=512), nullable=True),
        sa.Column('government_id', sa.String(length=128), nullable=True),
        sa.Column('profile_picture', sa.String(length=1024), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['admin_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_managers_admin_id', 'managers', ['admin_id'])
    op.create_index('ix_managers_email', 'managers', ['email'], unique=True)

    # WHY owner_admin_id on agents/workers: the tenant survives the manager
    # link being cleared (manager deleted or agent unassigned)
    op.create_table(
        'agents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('manager_id', sa.Integer(), nullable=True),
        sa.Column('owner_admin_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=False),
        sa.Column('government_id', sa.String(length=128), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('address', sa.String(length=512), nullable=True),
        sa.Column('profile_picture', sa.String(length=1024), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('total_sales', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_revenue_cents', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['manager_id'], ['managers.id'], ),
        sa.ForeignKeyConstraint(['owner_admin_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_agents_manager_id', 'agents', ['manager_id'])
    op.create_index('ix_agents_owner_admin_id', 'agents', ['owner_admin_id'])
    op.create_index('ix_agents_email', 'agents', ['email'], unique=True)

    op.create_table(
        'workers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('manager_id', sa.Integer(), nullable=True),
        sa.Column('owner_admin_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('address', sa.String(length=512), nullable=False),
        sa.Column('department', sa.String(length=64), nullable=False, server_default='general'),
        sa.Column('position', sa.String(length=64), nullable=False, server_default='worker'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['manager_id'], ['managers.id'], ),
        sa.ForeignKeyConstraint(['owner_admin_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_workers_manager_id', 'workers', ['manager_id'])
    op.create_index('ix_workers_owner_admin_id', 'workers', ['owner_admin_id'])
    op.create_index('ix_workers_email', 'workers', ['email'], unique=True)

    # ============================================================================
    # products: tenant catalogue; quantity is the available (unpicked) stock
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_admin_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('brand', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('color', sa.String(length=64), nullable=True),
        sa.Column('category', sa.String(length=128), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('image', sa.String(length=1024), nullable=True),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.CheckConstraint('quantity >= 0', name='ck_products_quantity_non_negative'),
        sa.ForeignKeyConstraint(['owner_admin_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_owner_admin_id', 'products', ['owner_admin_id'])
    op.create_index('ix_products_category', 'products', ['category'])
    op.create_index('ix_products_owner_name', 'products', ['owner_admin_id', 'name'])
    op.create_index('ix_products_owner_featured', 'products', ['owner_admin_id', 'is_featured'])

    # ============================================================================
    # sales: one row per pick; version_id backs optimistic locking
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('agent_id', sa.Integer(), nullable=True),
        sa.Column('manager_id', sa.Integer(), nullable=True),
        sa.Column('owner_admin_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('total_price_cents', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False, server_default='N/A'),
        sa.Column('customer_phone', sa.String(length=64), nullable=True),
        sa.Column('customer_address', sa.String(length=512), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('product_status', sa.String(length=16), nullable=False, server_default='picked'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('sold_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_confirmed_by_manager', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('payment_confirmed_by_admin', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('payment_confirmed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('quantity >= 1', name='ck_sales_quantity_positive'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ),
        sa.ForeignKeyConstraint(['manager_id'], ['managers.id'], ),
        sa.ForeignKeyConstraint(['owner_admin_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_product_id', 'sales', ['product_id'])
    op.create_index('ix_sales_agent_id', 'sales', ['agent_id'])
    op.create_index('ix_sales_manager_id', 'sales', ['manager_id'])
    op.create_index('ix_sales_owner_admin_id', 'sales', ['owner_admin_id'])
    op.create_index('ix_sales_owner_created', 'sales', ['owner_admin_id', 'created_at'])
    op.create_index('ix_sales_owner_product_status', 'sales', ['owner_admin_id', 'product_status'])
    op.create_index('ix_sales_owner_payment_status', 'sales', ['owner_admin_id', 'payment_status'])

    # ============================================================================
    # notifications: append-only inbox, only is_read changes after insert
    # ============================================================================
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recipient_id', sa.Integer(), nullable=False),
        sa.Column('recipient_role', sa.String(length=16), nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('reference_model', sa.String(length=16), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('priority', sa.String(length=8), nullable=False, server_default='normal'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['recipient_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_notifications_recipient_id', 'notifications', ['recipient_id'])
    op.create_index('ix_notifications_recipient_read', 'notifications', ['recipient_id', 'is_read'])
    op.create_index('ix_notifications_recipient_created', 'notifications', ['recipient_id', 'created_at'])


def downgrade():
    op.drop_table('notifications')
    op.drop_table('sales')
    op.drop_table('products')
    op.drop_table('workers')
    op.drop_table('agents')
    op.drop_table('managers')
    op.drop_table('session_tokens')
    op.drop_table('users')
