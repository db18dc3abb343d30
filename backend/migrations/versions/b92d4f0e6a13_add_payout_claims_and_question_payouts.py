"""add payout claim columns to quizzes; question_payouts table with skipped flag

Revision ID: b92d4f0e6a13
Revises: 5a7c1e9b2d40
Create Date: 2026-09-16 14:40:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b92d4f0e6a13'
down_revision = '5a7c1e9b2d40'
branch_labels = None
depends_on = None


CLAIM_COLUMNS = ('claim_token', 'claimed_at', 'pending_tx_hash')


def _claim_columns():
    return [
        sa.Column('claim_token', sa.String(length=36), nullable=True),
        sa.Column('claimed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('pending_tx_hash', sa.String(length=80), nullable=True),
    ]


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'quizzes' in existing_tables:
        quiz_cols = {c['name'] for c in insp.get_columns('quizzes')}
        for column in _claim_columns():
            if column.name not in quiz_cols:
                op.add_column('quizzes', column)

    if 'question_payouts' not in existing_tables:
        op.create_table(
            'question_payouts',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('quiz_id', sa.String(length=36), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False),
            sa.Column('question_index', sa.Integer(), nullable=False),
            sa.Column('skipped', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('contract_tx_hash', sa.String(length=80), nullable=True),
            *_claim_columns(),
            sa.UniqueConstraint('quiz_id', 'question_index', name='uq_question_payout'),
        )
        op.create_index('ix_question_payouts_quiz_id', 'question_payouts', ['quiz_id'])


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'question_payouts' in existing_tables:
        op.drop_table('question_payouts')

    if 'quizzes' in existing_tables:
        quiz_cols = {c['name'] for c in insp.get_columns('quizzes')}
        for name in CLAIM_COLUMNS:
            if name in quiz_cols:
                op.drop_column('quizzes', name)
