import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

# Ensure the backend root (containing the `hoot` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from hoot import create_app, db, socketio
from hoot.services.chain import (
    ChainReadError, PrizeContract, TxResult, TX_CONFIRMED, TX_ERROR, TX_SUBMITTED,
)

CREATOR = '0x' + 'c' * 40
CONTRACT = '0x' + 'd' * 40
TOKEN = '0x' + 'e' * 40
WALLETS = ['0x' + ch * 40 for ch in '12345678']


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    RPC_URL = 'http://localhost:8545'
    PRIZE_DISTRIBUTOR_PRIVATE_KEY = None
    DEFAULT_TOKEN_DECIMALS = 18
    DEFAULT_TREASURY_FEE_PERCENT = 100000
    DEFAULT_FEE_PRECISION = 1000000
    TX_RECEIPT_TIMEOUT_SEC = 1
    MAX_STANDARD_WINNERS = 5
    CLAIM_LEASE_SEC = 600


class FakeChain(PrizeContract):
    """In-memory prize contract. Every submit is recorded in ``calls``."""

    def __init__(self):
        self.decimals = 18
        self.fee = (100000, 1000000)
        self.read_error = False
        self.failing_functions = set()
        self.receipt_status = TX_CONFIRMED
        self.check_status = TX_CONFIRMED
        self.calls = []
        self.decimals_reads = []
        self.fee_reads = []
        self.checked = []

    def read_token_decimals(self, token_address):
        self.decimals_reads.append(token_address)
        if self.read_error:
            raise ChainReadError('rpc down')
        return self.decimals

    def read_fee_settings(self, contract_address, mode):
        self.fee_reads.append(contract_address)
        if self.read_error:
            raise ChainReadError('rpc down')
        return self.fee

    def submit(self, contract_address, mode, function_name, args):
        self.calls.append(SimpleNamespace(contract=contract_address, mode=mode, fn=function_name, args=args))
        if function_name in self.failing_functions:
            return TxResult(TX_ERROR, error='execution reverted')
        return TxResult(TX_SUBMITTED, '0x%064x' % len(self.calls))

    def wait_for_receipt(self, tx_hash):
        return TxResult(self.receipt_status, tx_hash)

    def check_receipt(self, tx_hash):
        self.checked.append(tx_hash)
        return TxResult(self.check_status, tx_hash)

    def function_names(self):
        return [c.fn for c in self.calls]


@pytest.fixture()
def chain():
    return FakeChain()


@pytest.fixture()
def flask_app(chain):
    application = create_app(TestConfig, prize_contract=chain)
    with application.app_context():
        # Ensure models are imported so tables are created
        import hoot.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def seed_game(flask_app):
    """Factory creating a quiz, its questions, a game session and players.

    ``players`` is a list of wallet addresses (None for a player without a
    wallet); join order follows the list.
    """
    from hoot.models import GameSession, PlayerSession, Question, Quiz, GAME_IN_PROGRESS

    def _seed(mode='standard', players=(), questions=2, prize_amount=Decimal('1.0'),
              contract_address=CONTRACT, prize_token=None, extra_bounty_amount=0,
              golden_question_ids=None, room_code='ROOM1'):
        quiz = Quiz(
            title='Owls of the world',
            mode=mode,
            prize_amount=prize_amount,
            prize_token=prize_token,
            creator_address=CREATOR,
            contract_address=contract_address,
            status='active',
            extra_bounty_amount=extra_bounty_amount,
            golden_question_ids=golden_question_ids,
        )
        db.session.add(quiz)
        db.session.flush()
        question_rows = [
            Question(quiz_id=quiz.id, question_text=f'Q{i}', order_index=i, correct_answer_index=1, time_limit=15)
            for i in range(questions)
        ]
        db.session.add_all(question_rows)
        game = GameSession(quiz_id=quiz.id, room_code=room_code, status=GAME_IN_PROGRESS)
        db.session.add(game)
        db.session.flush()
        base = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        player_rows = [
            PlayerSession(game_session_id=game.id, player_name=f'P{i}', wallet_address=wallet,
                          joined_at=base + timedelta(seconds=i))
            for i, wallet in enumerate(players)
        ]
        db.session.add_all(player_rows)
        db.session.commit()
        return SimpleNamespace(quiz=quiz, game=game, questions=question_rows, players=player_rows)

    return _seed


@pytest.fixture()
def answer(flask_app):
    """Record an answer through the scoring service; correct answers use
    option 1. ``elapsed`` is in milliseconds."""
    from hoot.services.games.scoring import record_answer

    def _answer(player, question, correct=True, elapsed=1000):
        return record_answer(player, question, 1 if correct else 0, elapsed)

    return _answer


def reload(obj):
    """Re-read ``obj`` after a request changed it in another session."""
    db.session.expire_all()
    return db.session.get(type(obj), obj.id)
