"""create account, match, move and dice_weighting tables

Revision ID: 5b7e0c1d9a42
Revises:
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5b7e0c1d9a42'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'account',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_account_username', 'account', ['username'], unique=True)

    op.create_table(
        'match',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('code', sa.String(length=16), nullable=True),
        sa.Column('host_id', sa.Integer(), nullable=False),
        sa.Column('guest_id', sa.Integer(), nullable=True),
        sa.Column('winner_id', sa.Integer(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['host_id'], ['account.id']),
        sa.ForeignKeyConstraint(['guest_id'], ['account.id']),
        sa.ForeignKeyConstraint(['winner_id'], ['account.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_match_code', 'match', ['code'], unique=True)
    op.create_index('ix_match_host_id', 'match', ['host_id'])
    op.create_index('ix_match_guest_id', 'match', ['guest_id'])

    op.create_table(
        'move',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('match_id', sa.String(length=32), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('dice', sa.Integer(), nullable=False),
        sa.Column('col', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['match_id'], ['match.id']),
        sa.ForeignKeyConstraint(['account_id'], ['account.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('match_id', 'seq', name='uq_move_match_seq'),
    )
    op.create_index('ix_move_match_id', 'move', ['match_id'])

    op.create_table(
        'dice_weighting',
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('dice_1', sa.Float(), nullable=False),
        sa.Column('dice_2', sa.Float(), nullable=False),
        sa.Column('dice_3', sa.Float(), nullable=False),
        sa.Column('dice_4', sa.Float(), nullable=False),
        sa.Column('dice_5', sa.Float(), nullable=False),
        sa.Column('dice_6', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['account.id']),
        sa.PrimaryKeyConstraint('account_id'),
    )


def downgrade():
    op.drop_table('dice_weighting')
    op.drop_index('ix_move_match_id', table_name='move')
    op.drop_table('move')
    op.drop_index('ix_match_guest_id', table_name='match')
    op.drop_index('ix_match_host_id', table_name='match')
    op.drop_index('ix_match_code', table_name='match')
    op.drop_table('match')
    op.drop_index('ix_account_username', table_name='account')
    op.drop_table('account')
