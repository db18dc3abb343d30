from conftest import CREATOR, WALLETS


def _flush(sio_client):
    sio_client.get_received('/ws')


def test_socket_connect_and_join(sio_client):
    assert sio_client.is_connected('/ws')
    _flush(sio_client)

    sio_client.emit('join_game', {'room_code': 'abcd'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    joined = [pkt for pkt in received if pkt['name'] == 'joined']
    assert joined and joined[0]['args'][0] == {'room': 'game:ABCD'}


def test_join_requires_room_code(sio_client):
    _flush(sio_client)
    sio_client.emit('join_game', {}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'error' for pkt in received)


def test_ping_pong(sio_client):
    _flush(sio_client)
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'pong' and pkt['args'][0] == {'n': 1} for pkt in received)


def test_answer_broadcasts_state_update(client, sio_client, seed_game):
    game = seed_game(players=WALLETS[:1])
    sio_client.emit('join_game', {'room_code': 'ROOM1'}, namespace='/ws')
    _flush(sio_client)

    client.post('/api/submit-answer', json={
        'player_session_id': game.players[0].id,
        'question_id': game.questions[0].id,
        'answer_index': 1,
        'time_taken': 1000,
    })
    events = [pkt for pkt in sio_client.get_received('/ws') if pkt['name'] == 'state_update']
    assert events
    assert events[0]['args'][0]['room_code'] == 'ROOM1'


def test_completion_broadcasts_completed_status(client, sio_client, seed_game, answer):
    game = seed_game(players=WALLETS[:1], contract_address=None)
    for question in game.questions:
        answer(game.players[0], question)
    sio_client.emit('join_game', {'room_code': 'ROOM1'}, namespace='/ws')
    _flush(sio_client)

    client.post('/api/complete-game', json={
        'game_session_id': game.game.id,
        'creator_wallet_address': CREATOR,
    })
    events = [pkt for pkt in sio_client.get_received('/ws') if pkt['name'] == 'state_update']
    assert {'room_code': 'ROOM1', 'status': 'completed'} in [e['args'][0] for e in events]


def test_left_room_gets_no_updates(client, sio_client, seed_game):
    game = seed_game(players=WALLETS[:1])
    sio_client.emit('join_game', {'room_code': 'ROOM1'}, namespace='/ws')
    sio_client.emit('leave_game', {'room_code': 'ROOM1'}, namespace='/ws')
    _flush(sio_client)

    client.post('/api/submit-answer', json={
        'player_session_id': game.players[0].id,
        'question_id': game.questions[0].id,
        'answer_index': 1,
        'time_taken': 1000,
    })
    assert not [pkt for pkt in sio_client.get_received('/ws') if pkt['name'] == 'state_update']
