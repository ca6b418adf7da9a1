"""initial casino schema: users, transactions, bets, casino_rounds

Revision ID: 4c2e9a7b1f30
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c2e9a7b1f30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('balance', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('amount', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('balance_after', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('reference', sa.String(length=64), nullable=True),
        sa.Column('description', sa.String(length=256), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_reference', 'transactions', ['reference'])

    op.create_table(
        'bets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('game_type', sa.String(length=20), nullable=False),
        sa.Column('selection', sa.String(length=256), nullable=False),
        sa.Column('stake', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('payout', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('status', sa.String(length=10), nullable=False),
        sa.Column('round_reference', sa.String(length=64), nullable=True),
        sa.Column('game_details', sa.Text(), nullable=True),
        sa.Column('placed_at', sa.DateTime(), nullable=True),
        sa.Column('settled_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_bets_user_id', 'bets', ['user_id'])
    op.create_index('ix_bets_status', 'bets', ['status'])
    op.create_index('ix_bets_round_reference', 'bets', ['round_reference'])

    op.create_table(
        'casino_rounds',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_type', sa.String(length=20), nullable=False),
        sa.Column('round_number', sa.Integer(), nullable=False),
        sa.Column('seed_hash', sa.String(length=64), nullable=False),
        sa.Column('commitment', sa.String(length=64), nullable=False),
        sa.Column('outcome_hash', sa.String(length=64), nullable=False),
        sa.Column('result', sa.String(length=32), nullable=False),
        sa.Column('multiplier', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('server_seed', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_type', 'seed_hash', 'round_number', name='uq_casino_round'),
    )
    op.create_index('ix_casino_rounds_game_type', 'casino_rounds', ['game_type'])
    op.create_index('ix_casino_rounds_seed_hash', 'casino_rounds', ['seed_hash'])


def downgrade():
    op.drop_index('ix_casino_rounds_seed_hash', table_name='casino_rounds')
    op.drop_index('ix_casino_rounds_game_type', table_name='casino_rounds')
    op.drop_table('casino_rounds')
    op.drop_index('ix_bets_round_reference', table_name='bets')
    op.drop_index('ix_bets_status', table_name='bets')
    op.drop_index('ix_bets_user_id', table_name='bets')
    op.drop_table('bets')
    op.drop_index('ix_transactions_reference', table_name='transactions')
    op.drop_index('ix_transactions_user_id', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
