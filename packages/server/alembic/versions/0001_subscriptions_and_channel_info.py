"""Subscriptions and channel info tables

Revision ID: 0001
Revises: 
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('channel_info',
        sa.Column('channel_address', sa.String(), nullable=False),
        sa.Column('author_id', sa.String(), nullable=False),
        sa.Column('topics', sa.JSON(), nullable=False),
        sa.Column('subscribers', sa.JSON(), nullable=False),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False),
        sa.Column('latest_message', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('channel_address')
    )
    op.create_index(op.f('ix_channel_info_author_id'), 'channel_info', ['author_id'], unique=False)

    op.create_table('subscriptions',
        sa.Column('channel_address', sa.String(), nullable=False),
        sa.Column('identity_id', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('access_rights', sa.String(), nullable=False),
        sa.Column('is_authorized', sa.Boolean(), nullable=False),
        sa.Column('subscription_link', sa.String(), nullable=True),
        sa.Column('state', sa.Text(), nullable=False),
        sa.Column('public_key', sa.String(), nullable=True),
        sa.Column('psk_id', sa.String(), nullable=True),
        sa.Column('keyload_link', sa.String(), nullable=True),
        sa.Column('sequence_link', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('channel_address', 'identity_id'),
        # NULL public keys (preshared-key subscriptions) never collide
        sa.UniqueConstraint('channel_address', 'public_key', name='uq_subscriptions_channel_public_key')
    )
    op.create_index(op.f('ix_subscriptions_identity_id'), 'subscriptions', ['identity_id'], unique=False)
    op.create_index(op.f('ix_subscriptions_is_authorized'), 'subscriptions', ['is_authorized'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_subscriptions_is_authorized'), table_name='subscriptions')
    op.drop_index(op.f('ix_subscriptions_identity_id'), table_name='subscriptions')
    op.drop_table('subscriptions')
    op.drop_index(op.f('ix_channel_info_author_id'), table_name='channel_info')
    op.drop_table('channel_info')
