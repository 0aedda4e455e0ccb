"""create game, player, square and quarter_score tables

Revision ID: 4c1d2e7f9a10
Revises:
Create Date: 2025-09-14 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c1d2e7f9a10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_code', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('owner_email', sa.String(length=255), nullable=False),
        sa.Column('owner_password_hash', sa.String(length=128), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('square_cost', sa.Float(), nullable=False),
        sa.Column('square_limit', sa.Integer(), nullable=False),
        sa.Column('first_quarter_pct', sa.Float(), nullable=False),
        sa.Column('second_quarter_pct', sa.Float(), nullable=False),
        sa.Column('third_quarter_pct', sa.Float(), nullable=False),
        sa.Column('final_pct', sa.Float(), nullable=False),
        sa.Column('vertical_team', sa.String(length=64), nullable=False),
        sa.Column('horizontal_team', sa.String(length=64), nullable=False),
        sa.Column('setup_rows', sa.Text(), nullable=False),
        sa.Column('setup_cols', sa.Text(), nullable=False),
        sa.Column('final_rows', sa.Text(), nullable=True),
        sa.Column('final_cols', sa.Text(), nullable=True),
        sa.Column('current_vertical', sa.Integer(), nullable=False),
        sa.Column('current_horizontal', sa.Integer(), nullable=False),
        sa.Column('current_quarter', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_game_game_code', 'game', ['game_code'], unique=True)

    op.create_table(
        'player',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('venmo_username', sa.String(length=64), nullable=True),
        sa.Column('has_paid', sa.Boolean(), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'email', name='uq_player_game_email'),
    )
    op.create_index('ix_player_game_id', 'player', ['game_id'], unique=False)

    op.create_table(
        'square',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('row', sa.Integer(), nullable=False),
        sa.Column('col', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.ForeignKeyConstraint(['player_id'], ['player.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'row', 'col', name='uq_square_game_cell'),
    )
    op.create_index('ix_square_game_player', 'square', ['game_id', 'player_id'], unique=False)

    op.create_table(
        'quarter_score',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('quarter', sa.String(length=16), nullable=False),
        sa.Column('vertical', sa.Integer(), nullable=False),
        sa.Column('horizontal', sa.Integer(), nullable=False),
        sa.Column('committed_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'quarter', name='uq_quarter_score_game_quarter'),
    )


def downgrade():
    op.drop_table('quarter_score')
    op.drop_index('ix_square_game_player', table_name='square')
    op.drop_table('square')
    op.drop_index('ix_player_game_id', table_name='player')
    op.drop_table('player')
    op.drop_index('ix_game_game_code', table_name='game')
    op.drop_table('game')
