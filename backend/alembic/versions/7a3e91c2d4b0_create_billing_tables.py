"""create billing tables

Revision ID: 7a3e91c2d4b0
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '7a3e91c2d4b0'
down_revision = None
branch_labels = None
depends_on = None


def _base_columns():
    return [
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('modified_at', sa.DateTime(), nullable=False),
    ]


def _app_scoped_columns():
    return _base_columns() + [
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('app_id', sa.UUID(), nullable=False),
    ]


def _app_scoped_constraints():
    return [
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['app_id'], ['app.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    ]


def upgrade():
    op.create_table(
        'organization',
        *_base_columns(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'app',
        *_base_columns(),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('grace_period', sa.Integer(), nullable=True),
        sa.Column('default_currency', sa.String(length=3), nullable=False),
        sa.Column('webhook_url', sa.String(), nullable=True),
        sa.Column('webhook_secret', sa.String(), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'customer',
        *_app_scoped_columns(),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('external_customer_id', sa.String(), nullable=True),
        *_app_scoped_constraints(),
    )
    op.create_index(op.f('ix_customer_app_id'), 'customer', ['app_id'], unique=False)
    op.create_index('ix_customer_app_email', 'customer', ['app_id', 'email'], unique=False)

    op.create_table(
        'plan',
        *_app_scoped_columns(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('pricing_model', sa.String(length=20), nullable=False),
        sa.Column('base_amount', sa.BigInteger(), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('interval', sa.String(length=20), nullable=False),
        sa.Column('trial_days', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        *_app_scoped_constraints(),
    )
    op.create_index(op.f('ix_plan_app_id'), 'plan', ['app_id'], unique=False)

    op.create_table(
        'subscription',
        *_app_scoped_columns(),
        sa.Column('customer_id', sa.UUID(), nullable=False),
        sa.Column('plan_id', sa.UUID(), nullable=False),
        sa.Column('plan_snapshot', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('start_date', sa.BigInteger(), nullable=False),
        sa.Column('trial_ends_at', sa.BigInteger(), nullable=True),
        sa.Column('current_period_start', sa.BigInteger(), nullable=True),
        sa.Column('current_period_end', sa.BigInteger(), nullable=True),
        sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False),
        sa.Column('next_payment_date', sa.BigInteger(), nullable=True),
        sa.Column('last_payment_date', sa.BigInteger(), nullable=True),
        sa.Column('failed_payment_attempts', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customer.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['plan_id'], ['plan.id']),
        *_app_scoped_constraints(),
    )
    op.create_index(op.f('ix_subscription_app_id'), 'subscription', ['app_id'], unique=False)
    op.create_index(
        op.f('ix_subscription_customer_id'), 'subscription', ['customer_id'], unique=False
    )
    op.create_index(op.f('ix_subscription_plan_id'), 'subscription', ['plan_id'], unique=False)
    op.create_index('ix_subscription_status', 'subscription', ['status'], unique=False)
    op.create_index(
        'ix_subscription_trial_ends_at', 'subscription', ['trial_ends_at'], unique=False
    )
    op.create_index(
        'ix_subscription_next_payment_date', 'subscription', ['next_payment_date'], unique=False
    )

    op.create_table(
        'invoice',
        *_app_scoped_columns(),
        sa.Column('customer_id', sa.UUID(), nullable=False),
        sa.Column('subscription_id', sa.UUID(), nullable=False),
        sa.Column('invoice_number', sa.String(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('amount_due', sa.BigInteger(), nullable=False),
        sa.Column('amount_paid', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('period_start', sa.BigInteger(), nullable=False),
        sa.Column('period_end', sa.BigInteger(), nullable=False),
        sa.Column('due_date', sa.BigInteger(), nullable=True),
        sa.Column('line_items', sa.JSON(), nullable=False),
        sa.Column('invoice_metadata', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['customer_id'], ['customer.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['subscription_id'], ['subscription.id'], ondelete='CASCADE'),
        sa.UniqueConstraint(
            'subscription_id',
            'period_start',
            'period_end',
            name='uq_invoice_subscription_period',
        ),
        *_app_scoped_constraints(),
    )
    op.create_index(op.f('ix_invoice_app_id'), 'invoice', ['app_id'], unique=False)
    op.create_index(
        op.f('ix_invoice_invoice_number'), 'invoice', ['invoice_number'], unique=False
    )

    op.create_table(
        'payment_transaction',
        *_app_scoped_columns(),
        sa.Column('customer_id', sa.UUID(), nullable=False),
        sa.Column('subscription_id', sa.UUID(), nullable=True),
        sa.Column('invoice_id', sa.UUID(), nullable=True),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('provider_transaction_id', sa.String(), nullable=True),
        sa.Column('provider_reference', sa.String(), nullable=True),
        sa.Column('payment_method', sa.String(length=20), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('failure_reason', sa.String(), nullable=True),
        sa.Column('failure_code', sa.String(), nullable=True),
        sa.Column('attempt_number', sa.Integer(), nullable=False),
        sa.Column('is_retry', sa.Boolean(), nullable=False),
        sa.Column('initiated_at', sa.BigInteger(), nullable=False),
        sa.Column('completed_at', sa.BigInteger(), nullable=True),
        sa.Column('expires_at', sa.BigInteger(), nullable=True),
        sa.ForeignKeyConstraint(['customer_id'], ['customer.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['subscription_id'], ['subscription.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoice.id'], ondelete='SET NULL'),
        *_app_scoped_constraints(),
    )
    op.create_index(
        op.f('ix_payment_transaction_app_id'), 'payment_transaction', ['app_id'], unique=False
    )
    op.create_index(
        'ix_payment_transaction_status', 'payment_transaction', ['status'], unique=False
    )
    op.create_index(
        'ix_payment_transaction_reference',
        'payment_transaction',
        ['provider_reference'],
        unique=False,
    )
    op.create_index(
        'ix_payment_transaction_provider_id',
        'payment_transaction',
        ['provider_transaction_id'],
        unique=False,
    )
    op.create_index(
        'ix_payment_transaction_initiated_at',
        'payment_transaction',
        ['initiated_at'],
        unique=False,
    )

    op.create_table(
        'webhook_endpoint',
        *_app_scoped_columns(),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('events', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('secret', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_app_scoped_constraints(),
    )
    op.create_index(
        op.f('ix_webhook_endpoint_app_id'), 'webhook_endpoint', ['app_id'], unique=False
    )

    op.create_table(
        'outgoing_webhook_log',
        *_app_scoped_columns(),
        sa.Column('webhook_id', sa.UUID(), nullable=False),
        sa.Column('event', sa.String(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('attempt_number', sa.Integer(), nullable=False),
        sa.Column('max_attempts', sa.Integer(), nullable=False),
        sa.Column('next_retry_at', sa.BigInteger(), nullable=True),
        sa.Column('http_status', sa.Integer(), nullable=True),
        sa.Column('response', sa.JSON(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('created_at_ms', sa.BigInteger(), nullable=False),
        sa.Column('sent_at', sa.BigInteger(), nullable=True),
        sa.Column('delivered_at', sa.BigInteger(), nullable=True),
        sa.ForeignKeyConstraint(['webhook_id'], ['webhook_endpoint.id'], ondelete='CASCADE'),
        *_app_scoped_constraints(),
    )
    op.create_index(
        op.f('ix_outgoing_webhook_log_app_id'), 'outgoing_webhook_log', ['app_id'], unique=False
    )
    op.create_index(
        'ix_outgoing_webhook_log_app',
        'outgoing_webhook_log',
        ['app_id', 'created_at_ms'],
        unique=False,
    )
    op.create_index(
        'ix_outgoing_webhook_log_webhook', 'outgoing_webhook_log', ['webhook_id'], unique=False
    )
    op.create_index(
        'ix_outgoing_webhook_log_status', 'outgoing_webhook_log', ['status'], unique=False
    )
    op.create_index(
        'ix_outgoing_webhook_log_event', 'outgoing_webhook_log', ['event'], unique=False
    )
    op.create_index(
        'ix_outgoing_webhook_log_next_retry',
        'outgoing_webhook_log',
        ['next_retry_at'],
        unique=False,
    )


def downgrade():
    op.drop_table('outgoing_webhook_log')
    op.drop_table('webhook_endpoint')
    op.drop_table('payment_transaction')
    op.drop_table('invoice')
    op.drop_table('subscription')
    op.drop_table('plan')
    op.drop_table('customer')
    op.drop_table('app')
    op.drop_table('organization')
