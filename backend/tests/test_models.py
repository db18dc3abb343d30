from decimal import Decimal

from hoot import db
from hoot.models import Quiz
from hoot.services.games.prizes import to_units

from conftest import CREATOR


def _stored(**amounts):
    quiz = Quiz(title='t', mode='bonus', creator_address=CREATOR, **amounts)
    db.session.add(quiz)
    db.session.commit()
    quiz_id = quiz.id
    db.session.expire_all()
    return db.session.get(Quiz, quiz_id)


def test_token_amounts_read_back_exactly(flask_app):
    quiz = _stored(prize_amount=Decimal('1.000000000000000001'), extra_bounty_amount=Decimal('0.2'))
    assert quiz.prize_amount == Decimal('1.000000000000000001')
    assert quiz.extra_bounty_amount == Decimal('0.2')
    assert to_units(quiz.extra_bounty_amount, 18) == 2 * 10 ** 17
    assert to_units(quiz.prize_amount, 18) == 10 ** 18 + 1


def test_float_amount_stored_by_its_shortest_repr(flask_app):
    quiz = _stored(prize_amount=0.1)
    assert quiz.prize_amount == Decimal('0.1')


def test_missing_bounty_defaults_to_zero(flask_app):
    quiz = _stored(prize_amount=Decimal('3'))
    assert quiz.extra_bounty_amount == Decimal('0')
