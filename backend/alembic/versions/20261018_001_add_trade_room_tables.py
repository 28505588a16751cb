"""Add trade room tables.

Revision ID: 20261018_001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20261018_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Trades table
    op.create_table(
        'trades',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('room_slug', sa.String(32), nullable=False),
        sa.Column('initiator_user_id', sa.String(64), nullable=False),
        sa.Column('responder_user_id', sa.String(64), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('status_before_cancel', sa.String(20), nullable=True),
        sa.Column('proposed_expired_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('agreed_expired_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('initiator_confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('responder_confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            'responder_user_id IS NULL OR responder_user_id <> initiator_user_id',
            name='ck_trades_responder_not_initiator',
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_trades_room_slug', 'trades', ['room_slug'], unique=True)
    op.create_index('ix_trades_initiator_user_id', 'trades', ['initiator_user_id'])
    op.create_index('ix_trades_responder_user_id', 'trades', ['responder_user_id'])
    op.create_index('ix_trades_status', 'trades', ['status'])

    # Trade items table
    op.create_table(
        'trade_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('trade_id', sa.Integer(), nullable=False),
        sa.Column('offered_by_user_id', sa.String(64), nullable=False),
        sa.Column('card_id', sa.String(64), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_trade_items_quantity_positive'),
        sa.ForeignKeyConstraint(['trade_id'], ['trades.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_trade_items_trade_id', 'trade_items', ['trade_id'])

    # Trade history table
    op.create_table(
        'trade_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('trade_id', sa.Integer(), nullable=False),
        sa.Column('from_status', sa.String(20), nullable=True),
        sa.Column('to_status', sa.String(20), nullable=False),
        sa.Column('changed_by_user_id', sa.String(64), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['trade_id'], ['trades.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_trade_history_trade_id', 'trade_history', ['trade_id'])

    # Trade reviews table
    op.create_table(
        'trade_reviews',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('trade_id', sa.Integer(), nullable=False),
        sa.Column('reviewer_user_id', sa.String(64), nullable=False),
        sa.Column('reviewee_user_id', sa.String(64), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_trade_reviews_rating_range'),
        sa.ForeignKeyConstraint(['trade_id'], ['trades.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('trade_id', 'reviewer_user_id', name='uq_trade_reviews_trade_reviewer')
    )
    op.create_index('ix_trade_reviews_trade_id', 'trade_reviews', ['trade_id'])
    op.create_index('ix_trade_reviews_reviewee_user_id', 'trade_reviews', ['reviewee_user_id'])


def downgrade() -> None:
    op.drop_index('ix_trade_reviews_reviewee_user_id', 'trade_reviews')
    op.drop_index('ix_trade_reviews_trade_id', 'trade_reviews')
    op.drop_table('trade_reviews')

    op.drop_index('ix_trade_history_trade_id', 'trade_history')
    op.drop_table('trade_history')

    op.drop_index('ix_trade_items_trade_id', 'trade_items')
    op.drop_table('trade_items')

    op.drop_index('ix_trades_status', 'trades')
    op.drop_index('ix_trades_responder_user_id', 'trades')
    op.drop_index('ix_trades_initiator_user_id', 'trades')
    op.drop_index('ix_trades_room_slug', 'trades')
    op.drop_table('trades')
