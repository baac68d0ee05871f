"""add usage metering

Revision ID: c51f08e27a9d
Revises: 7a3e91c2d4b0
Create Date: 2026-10-16 14:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c51f08e27a9d'
down_revision = '7a3e91c2d4b0'
branch_labels = None
depends_on = None


def upgrade():
    op.add_column('plan', sa.Column('usage_metric', sa.String(), nullable=True))
    op.add_column('plan', sa.Column('unit_price', sa.BigInteger(), nullable=True))
    op.add_column('plan', sa.Column('free_units', sa.BigInteger(), nullable=True))

    op.create_table(
        'usage_event',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('modified_at', sa.DateTime(), nullable=False),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('app_id', sa.UUID(), nullable=False),
        sa.Column('customer_id', sa.UUID(), nullable=False),
        sa.Column('subscription_id', sa.UUID(), nullable=False),
        sa.Column('quantity', sa.BigInteger(), nullable=False),
        sa.Column('metric', sa.String(), nullable=False),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('event_id', sa.String(), nullable=True),
        sa.Column('usage_metadata', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['app_id'], ['app.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['customer_id'], ['customer.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['subscription_id'], ['subscription.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_usage_event_app_id'), 'usage_event', ['app_id'], unique=False)
    op.create_index(
        'ix_usage_event_subscription_timestamp',
        'usage_event',
        ['subscription_id', 'timestamp'],
        unique=False,
    )
    op.create_index('ix_usage_event_event_id', 'usage_event', ['event_id'], unique=False)
    op.create_index('ix_usage_event_metric', 'usage_event', ['metric'], unique=False)


def downgrade():
    op.drop_index('ix_usage_event_metric', table_name='usage_event')
    op.drop_index('ix_usage_event_event_id', table_name='usage_event')
    op.drop_index('ix_usage_event_subscription_timestamp', table_name='usage_event')
    op.drop_index(op.f('ix_usage_event_app_id'), table_name='usage_event')
    op.drop_table('usage_event')
    op.drop_column('plan', 'free_units')
    op.drop_column('plan', 'unit_price')
    op.drop_column('plan', 'usage_metric')
