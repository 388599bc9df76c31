"""initial portal schema

Revision ID: 0001_initial_portal
Revises:
Create Date: 2025-07-25
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_portal'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    op.create_table('roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('role_name', sa.String(length=100), nullable=False, unique=True),
        sa.Column('description', sa.Text()),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('created_by', sa.Integer()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        *_timestamps()
    )

    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=100), nullable=False, unique=True),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100)),
        sa.Column('last_name', sa.String(length=100)),
        sa.Column('phone', sa.String(length=20)),
        sa.Column('customer_code', sa.String(length=50), unique=True),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='customer'),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id')),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('last_login_at', sa.DateTime(timezone=True)),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        *_timestamps()
    )
    op.create_index('ix_users_username', 'users', ['username'])
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_customer_code', 'users', ['customer_code'])

    op.create_table('login_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('login_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('logout_at', sa.DateTime(timezone=True)),
        sa.Column('ip_address', sa.String(length=64)),
        sa.Column('user_agent', sa.String(length=255))
    )
    op.create_index('ix_login_logs_user_id', 'login_logs', ['user_id'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_user_id', sa.Integer(), nullable=False),
        sa.Column('actor_role', sa.String(length=16)),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64)),
        sa.Column('entity_id', sa.String(length=64)),
        sa.Column('meta', sa.JSON()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now())
    )
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])

    op.create_table('products',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False, unique=True),
        sa.Column('category', sa.String(length=100)),
        sa.Column('description', sa.Text()),
        sa.Column('price', sa.Numeric(10, 2)),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        *_timestamps()
    )
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('ix_products_category', 'products', ['category'])

    op.create_table('orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('invoice_number', sa.String(length=64), nullable=False, unique=True),
        sa.Column('customer_code', sa.String(length=50)),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('product_name', sa.String(length=255)),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('invoice_date', sa.DateTime(timezone=True)),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        *_timestamps()
    )
    op.create_index('ix_orders_customer_code', 'orders', ['customer_code'])
    op.create_index('ix_orders_status', 'orders', ['status'])

    op.create_table('meeting_minutes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('mom_number', sa.String(length=50), unique=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('customer_code', sa.String(length=50)),
        sa.Column('meeting_date', sa.DateTime(timezone=True)),
        sa.Column('attendees', sa.JSON()),
        sa.Column('agenda', sa.Text()),
        sa.Column('discussion', sa.Text()),
        sa.Column('action_items', sa.JSON()),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        *_timestamps()
    )
    op.create_index('ix_meeting_minutes_customer_code', 'meeting_minutes', ['customer_code'])

    op.create_table('market_reports',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=100)),
        sa.Column('summary', sa.Text()),
        sa.Column('content', sa.Text()),
        sa.Column('customer_code', sa.String(length=50)),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        *_timestamps()
    )
    op.create_index('ix_market_reports_customer_code', 'market_reports', ['customer_code'])

    op.create_table('payments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('customer_code', sa.String(length=50), nullable=False),
        sa.Column('reference', sa.String(length=100)),
        sa.Column('amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('method', sa.String(length=32)),
        sa.Column('paid_at', sa.DateTime(timezone=True)),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        *_timestamps()
    )
    op.create_index('ix_payments_customer_code', 'payments', ['customer_code'])

    op.create_table('statements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('customer_code', sa.String(length=50), nullable=False),
        sa.Column('document_number', sa.String(length=100), nullable=False),
        sa.Column('document_date', sa.DateTime(timezone=True)),
        sa.Column('due_date', sa.DateTime(timezone=True)),
        sa.Column('amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('balance', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        *_timestamps()
    )
    op.create_index('ix_statements_customer_code', 'statements', ['customer_code'])
    op.create_index('ix_statements_document_number', 'statements', ['document_number'])

    op.create_table('invoice_deliveries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('invoice_number', sa.String(length=64), nullable=False),
        sa.Column('invoice_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('invoice_value', sa.Numeric(15, 2)),
        sa.Column('dispatch_date', sa.DateTime(timezone=True)),
        sa.Column('lr_number', sa.String(length=100)),
        sa.Column('delivery_partner', sa.String(length=255)),
        sa.Column('delivered_date', sa.DateTime(timezone=True)),
        sa.Column('customer_code', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        *_timestamps()
    )
    op.create_index('ix_invoice_deliveries_invoice_number', 'invoice_deliveries', ['invoice_number'])
    op.create_index('ix_invoice_deliveries_customer_code', 'invoice_deliveries', ['customer_code'])
    op.create_index('ix_invoice_deliveries_status', 'invoice_deliveries', ['status'])

    op.create_table('news',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('news_number', sa.String(length=100), nullable=False, unique=True),
        sa.Column('name', sa.String(length=250), nullable=False),
        sa.Column('title', sa.String(length=500)),
        sa.Column('short_description', sa.Text()),
        sa.Column('long_description', sa.Text()),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        *_timestamps()
    )
    op.create_index('ix_news_status', 'news', ['status'])



def downgrade():
    for table in ('news', 'invoice_deliveries', 'statements', 'payments', 'market_reports',
                  'meeting_minutes', 'orders', 'products', 'audit_logs', 'login_logs', 'users', 'roles'):
        op.drop_table(table)
