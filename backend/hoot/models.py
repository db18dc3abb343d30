from hoot import db
from datetime import datetime, timezone
from decimal import Decimal
import uuid


QUIZ_PENDING = 'pending'
QUIZ_ACTIVE = 'active'
QUIZ_COMPLETED = 'completed'
QUIZ_CANCELLED = 'cancelled'

GAME_WAITING = 'waiting'
GAME_STARTING = 'starting'
GAME_IN_PROGRESS = 'in_progress'
GAME_COMPLETED = 'completed'

# Forward-only ordering of game session statuses
GAME_STATUS_ORDER = (GAME_WAITING, GAME_STARTING, GAME_IN_PROGRESS, GAME_COMPLETED)

ZERO_ADDRESS = '0x0000000000000000000000000000000000000000'


def _new_id():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class TokenAmount(db.TypeDecorator):
    """Human token amount stored as its decimal string.

    Amounts are scaled by up to 10**18, so they must read back exactly on
    every backend. SQLite returns Numeric columns through a float.
    """
    impl = db.String(80)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, float):
            value = repr(value)
        return str(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


class PayoutClaimMixin:
    """Columns backing the compare-and-swap that guards an on-chain payout.

    A row is claimed by writing ``claim_token`` while both ``claim_token`` and
    ``contract_tx_hash`` are NULL. ``pending_tx_hash`` holds a submitted but
    not yet confirmed transaction.
    """
    contract_tx_hash = db.Column(db.String(80), nullable=True)
    claim_token = db.Column(db.String(36), nullable=True)
    claimed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    pending_tx_hash = db.Column(db.String(80), nullable=True)


class Quiz(PayoutClaimMixin, db.Model):
    __tablename__ = 'quizzes'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    title = db.Column(db.String(200), nullable=False, default='')
    mode = db.Column(db.String(16), nullable=False, default='standard')
    prize_amount = db.Column(TokenAmount, nullable=False, default=0)
    prize_token = db.Column(db.String(42), nullable=True)  # NULL for the native token
    creator_address = db.Column(db.String(42), nullable=False, index=True)
    contract_address = db.Column(db.String(42), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=QUIZ_PENDING, index=True)
    extra_bounty_amount = db.Column(TokenAmount, nullable=True, default=0)
    golden_question_ids = db.Column(db.JSON, nullable=True)  # order indices of golden questions
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    questions = db.relationship('Question', back_populates='quiz', order_by='Question.order_index')
    game_sessions = db.relationship('GameSession', back_populates='quiz')


class Question(db.Model):
    __tablename__ = 'questions'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    quiz_id = db.Column(db.String(36), db.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False, index=True)
    question_text = db.Column(db.Text, nullable=False, default='')
    order_index = db.Column(db.Integer, nullable=False)
    correct_answer_index = db.Column(db.Integer, nullable=False)
    time_limit = db.Column(db.Integer, nullable=False, default=15)  # seconds

    quiz = db.relationship('Quiz', back_populates='questions')

    __table_args__ = (
        db.UniqueConstraint('quiz_id', 'order_index', name='uq_question_quiz_order'),
    )


class GameSession(db.Model):
    __tablename__ = 'game_sessions'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    quiz_id = db.Column(db.String(36), db.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False, index=True)
    room_code = db.Column(db.String(16), unique=True, nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=GAME_WAITING)
    creator_session_id = db.Column(db.String(36), nullable=True)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)

    quiz = db.relationship('Quiz', back_populates='game_sessions')
    players = db.relationship('PlayerSession', back_populates='game_session',
                              order_by='PlayerSession.joined_at')


class PlayerSession(db.Model):
    __tablename__ = 'player_sessions'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    game_session_id = db.Column(db.String(36), db.ForeignKey('game_sessions.id', ondelete='CASCADE'),
                                nullable=False, index=True)
    player_name = db.Column(db.String(64), nullable=False, default='')
    wallet_address = db.Column(db.String(42), nullable=True, index=True)
    total_score = db.Column(db.Integer, nullable=False, default=0)
    joined_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    game_session = db.relationship('GameSession', back_populates='players')
    answers = db.relationship('Answer', back_populates='player_session', lazy='dynamic')


class Answer(db.Model):
    __tablename__ = 'answers'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    player_session_id = db.Column(db.String(36), db.ForeignKey('player_sessions.id', ondelete='CASCADE'),
                                  nullable=False, index=True)
    question_id = db.Column(db.String(36), db.ForeignKey('questions.id', ondelete='CASCADE'),
                            nullable=False, index=True)
    selected_answer_index = db.Column(db.Integer, nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False)
    time_taken_ms = db.Column(db.Integer, nullable=False)
    points_earned = db.Column(db.Integer, nullable=False)
    answered_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    player_session = db.relationship('PlayerSession', back_populates='answers')

    __table_args__ = (
        db.UniqueConstraint('player_session_id', 'question_id', name='unique_player_question_answer'),
    )


class QuestionPayout(PayoutClaimMixin, db.Model):
    """Per-question payout record for progressive quizzes."""
    __tablename__ = 'question_payouts'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    quiz_id = db.Column(db.String(36), db.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False, index=True)
    question_index = db.Column(db.Integer, nullable=False)
    skipped = db.Column(db.Boolean, nullable=False, default=False)  # completed with nothing to pay

    __table_args__ = (
        db.UniqueConstraint('quiz_id', 'question_index', name='uq_question_payout'),
    )
