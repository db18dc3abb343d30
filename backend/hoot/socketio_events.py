from flask_socketio import join_room, leave_room, emit
from hoot import socketio
from typing import Optional


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def _room_code(data) -> Optional[str]:
    room_code = (data or {}).get('room_code')
    if not room_code or not isinstance(room_code, str):
        emit('error', {'message': 'room_code is required'})
        return None
    return room_code.upper()


def handle_join_game(data):
    room_code = _room_code(data)
    if room_code is None:
        return
    room = f"game:{room_code}"
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_game(data):
    room_code = _room_code(data)
    if room_code is None:
        return
    room = f"game:{room_code}"
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    socketio.on_event('connect', handle_connect, namespace='/ws')
    socketio.on_event('join_game', handle_join_game, namespace='/ws')
    socketio.on_event('leave_game', handle_leave_game, namespace='/ws')
    socketio.on_event('ping', handle_ping, namespace='/ws')

    if testing:
        socketio.on_event('connect', handle_connect, namespace='/')
        socketio.on_event('join_game', handle_join_game, namespace='/')
        socketio.on_event('leave_game', handle_leave_game, namespace='/')
        socketio.on_event('ping', handle_ping, namespace='/')
