"""baseline_migration

Revision ID: 3c1e9a7b5d20
Revises:
Create Date: 2026-10-19 10:12:41.118204

Creates the ledger, payment and job application tables if they don't exist.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '3c1e9a7b5d20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    if not table_exists('users'):
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('full_name', sa.String(), nullable=False),
            sa.Column('email', sa.String(), nullable=False),
            sa.Column('password_hash', sa.String(), nullable=True),
            sa.Column('credits', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
            sa.CheckConstraint('credits >= 0', name='ck_users_credits_non_negative'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
        op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    if not table_exists('subscriptions'):
        op.create_table('subscriptions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('plan', sa.String(), nullable=False),
            sa.Column('start_date', sa.DateTime(), nullable=False),
            sa.Column('end_date', sa.DateTime(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id')
        )
        op.create_index(op.f('ix_subscriptions_id'), 'subscriptions', ['id'], unique=False)

    if not table_exists('payments'):
        op.create_table('payments',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('gateway_order_id', sa.String(), nullable=False),
            sa.Column('gateway_payment_id', sa.String(), nullable=False),
            sa.Column('amount', sa.Numeric(10, 2), nullable=False),
            sa.Column('currency', sa.String(length=3), nullable=False),
            sa.Column('plan', sa.String(), nullable=False),
            sa.Column('credits', sa.Integer(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('payment_method', sa.String(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('gateway_order_id'),
            sa.UniqueConstraint('gateway_payment_id')
        )
        op.create_index('idx_payments_user_created', 'payments', ['user_id', 'created_at'], unique=False)
        op.create_index(op.f('ix_payments_id'), 'payments', ['id'], unique=False)
        op.create_index(op.f('ix_payments_user_id'), 'payments', ['user_id'], unique=False)

    if not table_exists('job_applications'):
        op.create_table('job_applications',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('company_name', sa.String(), nullable=False),
            sa.Column('job_title', sa.String(), nullable=False),
            sa.Column('job_description', sa.Text(), nullable=True),
            sa.Column('additional_details', sa.Text(), nullable=True),
            sa.Column('resume_url', sa.String(), nullable=True),
            sa.Column('generated_email', sa.Text(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('sent_at', sa.DateTime(), nullable=True),
            sa.Column('mirror_record_id', sa.String(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('idx_job_applications_user_created', 'job_applications', ['user_id', 'created_at'], unique=False)
        op.create_index(op.f('ix_job_applications_company_name'), 'job_applications', ['company_name'], unique=False)
        op.create_index(op.f('ix_job_applications_created_at'), 'job_applications', ['created_at'], unique=False)
        op.create_index(op.f('ix_job_applications_id'), 'job_applications', ['id'], unique=False)
        op.create_index(op.f('ix_job_applications_job_title'), 'job_applications', ['job_title'], unique=False)
        op.create_index(op.f('ix_job_applications_user_id'), 'job_applications', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_job_applications_user_id'), table_name='job_applications')
    op.drop_index(op.f('ix_job_applications_job_title'), table_name='job_applications')
    op.drop_index(op.f('ix_job_applications_id'), table_name='job_applications')
    op.drop_index(op.f('ix_job_applications_created_at'), table_name='job_applications')
    op.drop_index(op.f('ix_job_applications_company_name'), table_name='job_applications')
    op.drop_index('idx_job_applications_user_created', table_name='job_applications')
    op.drop_table('job_applications')

    op.drop_index(op.f('ix_payments_user_id'), table_name='payments')
    op.drop_index(op.f('ix_payments_id'), table_name='payments')
    op.drop_index('idx_payments_user_created', table_name='payments')
    op.drop_table('payments')

    op.drop_index(op.f('ix_subscriptions_id'), table_name='subscriptions')
    op.drop_table('subscriptions')

    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_index(op.f('ix_users_id'), table_name='users')
    op.drop_table('users')
