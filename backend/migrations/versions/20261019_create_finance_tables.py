"""Create users, categories, wallets, savings goals, transactions, budgets
and notifications tables.

Revision ID: create_finance_tables
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'create_finance_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def _owner():
    return sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('username', sa.String(100), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('name', sa.String(200), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        _owner(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('name_key', sa.String(100), nullable=False),
        sa.Column('type', sa.String(3), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint('owner_id', 'name_key', 'type', name='uq_category_owner_name_type'),
    )
    op.create_index('ix_categories_owner_id', 'categories', ['owner_id'])
    op.create_index('idx_category_owner_active', 'categories', ['owner_id', 'is_active'])

    op.create_table(
        'wallets',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        _owner(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('balance', sa.Numeric(18, 2), nullable=False),
        sa.Column('initial_balance', sa.Numeric(18, 2), nullable=False),
        sa.Column('currency', sa.String(10), nullable=False),
        sa.Column('icon', sa.String(20), nullable=True),
        sa.Column('color', sa.String(20), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_wallets_owner_id', 'wallets', ['owner_id'])
    op.create_index('idx_wallet_owner_active', 'wallets', ['owner_id', 'is_active'])

    op.create_table(
        'savings_goals',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        _owner(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('target_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('current_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('withdrawn_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('deadline', sa.Date(), nullable=True),
        sa.Column('icon', sa.String(20), nullable=True),
        sa.Column('color', sa.String(20), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_savings_goals_owner_id', 'savings_goals', ['owner_id'])
    op.create_index('idx_savings_goal_owner_status', 'savings_goals', ['owner_id', 'status'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        _owner(),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id'), nullable=True),
        sa.Column('category_name', sa.String(100), nullable=True),
        sa.Column('wallet_id', sa.Integer(), sa.ForeignKey('wallets.id'), nullable=False),
        sa.Column('amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('transaction_date', sa.DateTime(), nullable=False),
        sa.Column('kind', sa.String(20), nullable=False),
        sa.Column('transfer_id', sa.String(36), nullable=True),
        sa.Column('related_wallet_id', sa.Integer(), sa.ForeignKey('wallets.id'), nullable=True),
        sa.Column('savings_goal_id', sa.Integer(),
                  sa.ForeignKey('savings_goals.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_transactions_owner_id', 'transactions', ['owner_id'])
    op.create_index('ix_transactions_transfer_id', 'transactions', ['transfer_id'])
    op.create_index('idx_transaction_owner_date', 'transactions', ['owner_id', 'transaction_date'])
    op.create_index('idx_transaction_category_date', 'transactions', ['category_id', 'transaction_date'])
    op.create_index('idx_transaction_wallet', 'transactions', ['wallet_id'])
    op.create_index('idx_transaction_goal', 'transactions', ['savings_goal_id'])

    op.create_table(
        'budgets',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        _owner(),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('period', sa.String(10), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('warning_threshold', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('warning_threshold >= 0 AND warning_threshold <= 100', name='ck_budget_threshold'),
        sa.CheckConstraint('end_date >= start_date', name='ck_budget_dates'),
    )
    op.create_index('ix_budgets_owner_id', 'budgets', ['owner_id'])
    op.create_index('idx_budget_owner_category_start', 'budgets', ['owner_id', 'category_id', 'start_date'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        _owner(),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('related_id', sa.Integer(), nullable=False),
        sa.Column('related_type', sa.String(20), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_notifications_owner_id', 'notifications', ['owner_id'])
    op.create_index('idx_notification_owner_read_created', 'notifications', ['owner_id', 'is_read', 'created_at'])
    op.create_index('idx_notification_related', 'notifications', ['owner_id', 'type', 'related_type', 'related_id'])
    op.create_index('idx_notification_expires', 'notifications', ['expires_at'])


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('budgets')
    op.drop_table('transactions')
    op.drop_table('savings_goals')
    op.drop_table('wallets')
    op.drop_table('categories')
    op.drop_table('users')
