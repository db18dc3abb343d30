import math

from flask import current_app
from sqlalchemy.exc import IntegrityError

from hoot import db
from hoot.errors import DuplicateAnswer, LateSubmission, ValidationError
from hoot.models import Answer, PlayerSession, Question, GAME_COMPLETED

BASE_POINTS = 100
TIME_BONUS_MULTIPLIER = 10.5
TIMEOUT_ANSWER_INDEX = -1


def calculate_points(is_correct: bool, elapsed_ms: int, time_limit_sec: int) -> int:
    """Points for one answer: base points plus a bonus for the time left."""
    if not is_correct:
        return 0
    time_limit_ms = time_limit_sec * 1000
    remaining_seconds = max(0, time_limit_ms - elapsed_ms) / 1000
    return math.floor(BASE_POINTS + remaining_seconds * TIME_BONUS_MULTIPLIER)


def grade_answer(question: Question, submitted_index: int, elapsed_ms: int):
    """Return ``(is_correct, points)`` for a submission, without side effects.

    Raises ``ValidationError`` for malformed input and ``LateSubmission`` when
    the answer arrives after the question's time limit.
    """
    if elapsed_ms is None or elapsed_ms < 0:
        raise ValidationError('time_taken must be a non-negative number of milliseconds')
    if submitted_index is None or submitted_index < TIMEOUT_ANSWER_INDEX:
        raise ValidationError('answer_index must be -1 (timeout) or a valid option index')
    if elapsed_ms > question.time_limit * 1000:
        raise LateSubmission('Answer submitted too late')
    is_correct = submitted_index >= 0 and submitted_index == question.correct_answer_index
    return is_correct, calculate_points(is_correct, elapsed_ms, question.time_limit)


def record_answer(player: PlayerSession, question: Question, submitted_index: int, elapsed_ms: int) -> Answer:
    """Store one answer and add its points to the player's total score.

    A second answer for the same (player, question) raises ``DuplicateAnswer``
    and leaves the database untouched.
    """
    session = player.game_session
    if session is None or session.quiz_id != question.quiz_id:
        raise ValidationError('Question does not belong to this game')
    if session.status == GAME_COMPLETED:
        raise ValidationError('Game session is already completed')

    is_correct, points = grade_answer(question, submitted_index, elapsed_ms)

    existing = Answer.query.filter_by(player_session_id=player.id, question_id=question.id).first()
    if existing:
        raise DuplicateAnswer('Answer already submitted for this question')

    answer = Answer(
        player_session_id=player.id,
        question_id=question.id,
        selected_answer_index=submitted_index,
        is_correct=is_correct,
        time_taken_ms=elapsed_ms,
        points_earned=points,
    )
    db.session.add(answer)
    try:
        db.session.flush()
    except IntegrityError:
        # Lost a race with a concurrent submission for the same question
        db.session.rollback()
        raise DuplicateAnswer('Answer already submitted for this question')

    if points:
        db.session.query(PlayerSession).filter(PlayerSession.id == player.id).update(
            {PlayerSession.total_score: PlayerSession.total_score + points},
            synchronize_session=False,
        )
    db.session.commit()
    db.session.refresh(player)

    current_app.logger.info(
        f"[answer] player={player.id} question={question.id} correct={is_correct} "
        f"points={points} total={player.total_score}"
    )
    return answer
