from flask_socketio import join_room, leave_room, emit
from squares import socketio


def _room_for(data):
    game_code = (data or {}).get('game_code')
    if not isinstance(game_code, str) or not game_code.strip():
        emit('error', {'message': 'game_code is required'})
        return None
    return f"game:{game_code.strip().upper()}"


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_game(data):
    # Rooms only carry state_update hints; clients still poll for the state
    room = _room_for(data)
    if room is None:
        return
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_game(data):
    room = _room_for(data)
    if room is None:
        return
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    for namespace in ('/ws', '/') if testing else ('/ws',):
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('join_game', handle_join_game, namespace=namespace)
        socketio.on_event('leave_game', handle_leave_game, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
