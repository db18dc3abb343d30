from datetime import datetime, timezone
from typing import List

from sqlalchemy import func

from hoot import db
from hoot.errors import IncompleteGame, ValidationError
from hoot.models import (
    Answer, GameSession, PlayerSession, Question, Quiz,
    GAME_COMPLETED, GAME_STATUS_ORDER, QUIZ_COMPLETED,
)


def advance_game_status(game_session: GameSession, new_status: str) -> bool:
    """Move a game session forward to ``new_status``.

    Returns False when the session is already there. Raises ``ValidationError``
    on an attempted regression.
    """
    current = GAME_STATUS_ORDER.index(game_session.status)
    target = GAME_STATUS_ORDER.index(new_status)
    if target == current:
        return False
    if target < current:
        raise ValidationError(f'Game session cannot move from {game_session.status} back to {new_status}')
    game_session.status = new_status
    if new_status == GAME_COMPLETED and game_session.ended_at is None:
        game_session.ended_at = datetime.now(timezone.utc)
    db.session.add(game_session)
    db.session.commit()
    return True


def already_distributed(quiz: Quiz) -> bool:
    """Idempotency gate: True once the quiz has been paid out."""
    return quiz.status == QUIZ_COMPLETED or quiz.contract_tx_hash is not None


def _answer_counts(players: List[PlayerSession]):
    ids = [p.id for p in players]
    if not ids:
        return {}
    rows = (
        db.session.query(Answer.player_session_id, func.count(Answer.id))
        .filter(Answer.player_session_id.in_(ids))
        .group_by(Answer.player_session_id)
        .all()
    )
    return dict(rows)


def validate_game_completion(players: List[PlayerSession], total_questions: int) -> None:
    """Raise ``IncompleteGame`` unless every player answered every question."""
    counts = _answer_counts(players)
    short = [p.id for p in players if counts.get(p.id, 0) < total_questions]
    if short:
        raise IncompleteGame('Not all players have completed the game')


def validate_question_completion(players: List[PlayerSession], question: Question) -> None:
    """Raise ``IncompleteGame`` unless every player answered ``question``."""
    ids = [p.id for p in players]
    answered = {
        row[0] for row in
        db.session.query(Answer.player_session_id)
        .filter(Answer.question_id == question.id, Answer.player_session_id.in_(ids))
        .all()
    } if ids else set()
    if any(pid not in answered for pid in ids):
        raise IncompleteGame('Not all players have answered this question')
