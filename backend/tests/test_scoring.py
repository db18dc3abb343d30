import pytest

from hoot import db
from hoot.errors import DuplicateAnswer, LateSubmission, ValidationError
from hoot.models import Answer, GAME_COMPLETED
from hoot.services.games.scoring import calculate_points, grade_answer, record_answer

from conftest import WALLETS


def test_points_for_correct_answer_include_time_bonus():
    # 14s left of 15s
    assert calculate_points(True, 1000, 15) == 247
    assert calculate_points(True, 0, 15) == 257
    assert calculate_points(True, 15000, 15) == 100


def test_points_for_wrong_answer_are_zero():
    assert calculate_points(False, 0, 15) == 0


def test_timeout_answer_is_incorrect(seed_game):
    game = seed_game(players=[WALLETS[0]])
    assert grade_answer(game.questions[0], -1, 15000) == (False, 0)


def test_late_answer_is_rejected(seed_game):
    game = seed_game(players=[WALLETS[0]])
    with pytest.raises(LateSubmission):
        grade_answer(game.questions[0], 1, 15001)


@pytest.mark.parametrize('index, elapsed', [(None, 100), (-2, 100), (1, -5), (1, None)])
def test_malformed_answer_is_rejected(seed_game, index, elapsed):
    game = seed_game(players=[WALLETS[0]])
    with pytest.raises(ValidationError):
        grade_answer(game.questions[0], index, elapsed)


def test_record_answer_accumulates_total_score(seed_game, answer):
    game = seed_game(players=[WALLETS[0]])
    player = game.players[0]
    first = answer(player, game.questions[0], correct=True, elapsed=1000)
    second = answer(player, game.questions[1], correct=False, elapsed=2000)
    assert first.is_correct is True
    assert first.points_earned == 247
    assert second.points_earned == 0
    assert player.total_score == 247


def test_duplicate_answer_leaves_score_unchanged(seed_game, answer):
    game = seed_game(players=[WALLETS[0]])
    player = game.players[0]
    answer(player, game.questions[0], correct=True, elapsed=5000)
    with pytest.raises(DuplicateAnswer):
        answer(player, game.questions[0], correct=True, elapsed=1000)
    db.session.refresh(player)
    assert player.total_score == 205
    assert Answer.query.filter_by(player_session_id=player.id).count() == 1


def test_answer_for_other_quiz_is_rejected(seed_game):
    first = seed_game(players=[WALLETS[0]], room_code='ROOM1')
    other = seed_game(players=[WALLETS[1]], room_code='ROOM2')
    with pytest.raises(ValidationError):
        record_answer(first.players[0], other.questions[0], 1, 1000)


def test_answer_after_game_completed_is_rejected(seed_game):
    game = seed_game(players=[WALLETS[0]])
    game.game.status = GAME_COMPLETED
    db.session.commit()
    with pytest.raises(ValidationError):
        record_answer(game.players[0], game.questions[0], 1, 1000)
    assert Answer.query.count() == 0
