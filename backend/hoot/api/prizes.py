import math

from flask import Blueprint, jsonify, request, current_app
from werkzeug.exceptions import HTTPException
from hoot import db, socketio
from hoot.errors import NotFound, PrizeError, ValidationError
from hoot.models import PlayerSession, Question
from hoot.services.games.distribution import validate_required
from hoot.services.games.scoring import record_answer


prizes = Blueprint('prizes', __name__)


def _distributor():
    return current_app.extensions['prize_distributor']


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _int_field(data: dict, name: str) -> int:
    value = data.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f'{name} must be an integer')
    # JSON allows Infinity and NaN
    if isinstance(value, float) and (not math.isfinite(value) or not value.is_integer()):
        raise ValidationError(f'{name} must be an integer')
    return int(value)


@prizes.errorhandler(PrizeError)
def handle_prize_error(err: PrizeError):
    current_app.logger.info(f"[error] {err.kind.label} path={request.path} {err.message}")
    return jsonify(err.to_dict()), err.kind.status_code


@prizes.errorhandler(Exception)
def handle_unexpected(err: Exception):
    if isinstance(err, HTTPException):
        return err
    db.session.rollback()
    current_app.logger.exception(f"[error] unexpected failure path={request.path}")
    return jsonify({'error': 'Internal server error', 'kind': 'InternalError'}), 500


@prizes.route('/complete-game', methods=['POST'])
def complete_game():
    return jsonify(_distributor().complete_game(_payload())), 200


@prizes.route('/complete-bonus-game', methods=['POST'])
def complete_bonus_game():
    return jsonify(_distributor().complete_bonus_game(_payload())), 200


@prizes.route('/complete-progressive-game', methods=['POST'])
def complete_progressive_game():
    return jsonify(_distributor().complete_progressive_game(_payload())), 200


@prizes.route('/complete-survival-game', methods=['POST'])
def complete_survival_game():
    return jsonify(_distributor().complete_survival_game(_payload())), 200


@prizes.route('/submit-answer', methods=['POST'])
def submit_answer():
    data = _payload()
    validate_required(data, ('player_session_id', 'question_id'))
    for name in ('answer_index', 'time_taken'):
        if data.get(name) is None:
            raise ValidationError(f'Missing required field: {name}')
    answer_index = _int_field(data, 'answer_index')
    time_taken = _int_field(data, 'time_taken')

    player = db.session.get(PlayerSession, str(data['player_session_id']))
    if player is None:
        raise NotFound('Player session not found')
    question = db.session.get(Question, str(data['question_id']))
    if question is None:
        raise NotFound('Question not found')

    answer = record_answer(player, question, answer_index, time_taken)

    room_code = player.game_session.room_code
    socketio.emit('state_update', {'room_code': room_code, 'player_session_id': player.id},
                  to=f"game:{room_code}", namespace='/ws')

    return jsonify({
        'success': True,
        'is_correct': answer.is_correct,
        'points_earned': answer.points_earned,
        'new_total_score': player.total_score,
        'answer_id': answer.id,
    }), 200
