"""initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create games table
    op.create_table('games',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('player_count', sa.Integer(), nullable=False),
        sa.Column('for_points', sa.Integer(), nullable=False),
        sa.Column('buy_in_amount', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('currency', sa.String(length=8), nullable=False),
        sa.Column('pack_points', sa.Integer(), nullable=False),
        sa.Column('mid_pack_points', sa.Integer(), nullable=False),
        sa.Column('full_count_points', sa.Integer(), nullable=False),
        sa.Column('joker_type', sa.String(length=16), nullable=False),
        sa.Column('sequence_count', sa.Integer(), nullable=False),
        sa.Column('all_trips_double_points', sa.Boolean(), nullable=False),
        sa.Column('all_seqs_double_points', sa.Boolean(), nullable=False),
        sa.Column('all_jokers_full_money', sa.Boolean(), nullable=False),
        sa.Column('re_entry_allowed', sa.Boolean(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('current_round', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Create game_players table
    op.create_table('game_players',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('has_re_entered', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['games.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'position', name='uq_game_player_position')
    )
    op.create_index(op.f('ix_game_players_game_id'), 'game_players', ['game_id'], unique=False)

    # Create game_rounds table
    op.create_table('game_rounds',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('round_number', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['games.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'round_number', name='uq_game_round_number')
    )
    op.create_index(op.f('ix_game_rounds_game_id'), 'game_rounds', ['game_id'], unique=False)

    # Create game_scores table
    op.create_table('game_scores',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('round_id', sa.Integer(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['games.id'], ),
        sa.ForeignKeyConstraint(['player_id'], ['game_players.id'], ),
        sa.ForeignKeyConstraint(['round_id'], ['game_rounds.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('player_id', 'round_id', name='uq_game_score_player_round')
    )
    op.create_index(op.f('ix_game_scores_game_id'), 'game_scores', ['game_id'], unique=False)
    op.create_index(op.f('ix_game_scores_player_id'), 'game_scores', ['player_id'], unique=False)
    op.create_index(op.f('ix_game_scores_round_id'), 'game_scores', ['round_id'], unique=False)

    # Create game_settlements table
    op.create_table('game_settlements',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('final_score', sa.Integer(), nullable=False),
        sa.Column('points_left', sa.Integer(), nullable=False),
        sa.Column('packs_remaining', sa.Integer(), nullable=False),
        sa.Column('residual_points', sa.Integer(), nullable=False),
        sa.Column('settlement_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('is_winner', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['games.id'], ),
        sa.ForeignKeyConstraint(['player_id'], ['game_players.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_game_settlements_game_id'), 'game_settlements', ['game_id'], unique=False)


def downgrade() -> None:
    op.drop_table('game_settlements')
    op.drop_table('game_scores')
    op.drop_table('game_rounds')
    op.drop_table('game_players')
    op.drop_table('games')
