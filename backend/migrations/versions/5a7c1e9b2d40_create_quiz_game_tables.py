"""create quiz, game session, player and answer tables

Revision ID: 5a7c1e9b2d40
Revises:
Create Date: 2026-09-02 10:12:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5a7c1e9b2d40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'quizzes' not in existing_tables:
        op.create_table(
            'quizzes',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('title', sa.String(length=200), nullable=False, server_default=''),
            sa.Column('mode', sa.String(length=16), nullable=False, server_default='standard'),
            sa.Column('prize_amount', sa.String(length=80), nullable=False, server_default='0'),
            sa.Column('prize_token', sa.String(length=42), nullable=True),
            sa.Column('creator_address', sa.String(length=42), nullable=False),
            sa.Column('contract_address', sa.String(length=42), nullable=True),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
            sa.Column('extra_bounty_amount', sa.String(length=80), nullable=True),
            sa.Column('golden_question_ids', sa.JSON(), nullable=True),
            sa.Column('contract_tx_hash', sa.String(length=80), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_quizzes_creator_address', 'quizzes', ['creator_address'])
        op.create_index('ix_quizzes_status', 'quizzes', ['status'])

    if 'questions' not in existing_tables:
        op.create_table(
            'questions',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('quiz_id', sa.String(length=36), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False),
            sa.Column('question_text', sa.Text(), nullable=False, server_default=''),
            sa.Column('order_index', sa.Integer(), nullable=False),
            sa.Column('correct_answer_index', sa.Integer(), nullable=False),
            sa.Column('time_limit', sa.Integer(), nullable=False, server_default='15'),
            sa.UniqueConstraint('quiz_id', 'order_index', name='uq_question_quiz_order'),
        )
        op.create_index('ix_questions_quiz_id', 'questions', ['quiz_id'])

    if 'game_sessions' not in existing_tables:
        op.create_table(
            'game_sessions',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('quiz_id', sa.String(length=36), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False),
            sa.Column('room_code', sa.String(length=16), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='waiting'),
            sa.Column('creator_session_id', sa.String(length=36), nullable=True),
            sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_game_sessions_quiz_id', 'game_sessions', ['quiz_id'])
        op.create_index('ix_game_sessions_room_code', 'game_sessions', ['room_code'], unique=True)

    if 'player_sessions' not in existing_tables:
        op.create_table(
            'player_sessions',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('game_session_id', sa.String(length=36),
                      sa.ForeignKey('game_sessions.id', ondelete='CASCADE'), nullable=False),
            sa.Column('player_name', sa.String(length=64), nullable=False, server_default=''),
            sa.Column('wallet_address', sa.String(length=42), nullable=True),
            sa.Column('total_score', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_player_sessions_game_session_id', 'player_sessions', ['game_session_id'])
        op.create_index('ix_player_sessions_wallet_address', 'player_sessions', ['wallet_address'])

    if 'answers' not in existing_tables:
        op.create_table(
            'answers',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('player_session_id', sa.String(length=36),
                      sa.ForeignKey('player_sessions.id', ondelete='CASCADE'), nullable=False),
            sa.Column('question_id', sa.String(length=36),
                      sa.ForeignKey('questions.id', ondelete='CASCADE'), nullable=False),
            sa.Column('selected_answer_index', sa.Integer(), nullable=False),
            sa.Column('is_correct', sa.Boolean(), nullable=False),
            sa.Column('time_taken_ms', sa.Integer(), nullable=False),
            sa.Column('points_earned', sa.Integer(), nullable=False),
            sa.Column('answered_at', sa.DateTime(timezone=True), nullable=True),
            sa.UniqueConstraint('player_session_id', 'question_id', name='unique_player_question_answer'),
        )
        op.create_index('ix_answers_player_session_id', 'answers', ['player_session_id'])
        op.create_index('ix_answers_question_id', 'answers', ['question_id'])


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    # Children first
    for table in ('answers', 'player_sessions', 'game_sessions', 'questions', 'quizzes'):
        if table in existing_tables:
            op.drop_table(table)
