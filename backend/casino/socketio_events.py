from flask_socketio import join_room, leave_room, emit
from flask_login import current_user
from flask import current_app

from casino import socketio, rounds
from casino.errors import GameError, ValidationError


def handle_connect(auth=None):
    if current_user.is_authenticated:
        join_room(f"user:{current_user.id}")
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    # Rooms are dropped by the server; bets stay with the round
    return None


def _guarded(action):
    """Run a participant action and turn domain errors into an ack payload."""
    if not current_user.is_authenticated:
        return {'error': 'Authentication required'}
    try:
        result = action()
    except GameError as err:
        current_app.logger.info(f"[ws-rejected] user={current_user.id} error={err.message}")
        return err.to_dict()
    return dict(result, success=True)


def _fields(data):
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Invalid payload')
    return data


# ---- Crash ----

def handle_crash_join(data=None):
    join_room('crash')
    emit('crash:state', rounds.crash.state())


def handle_crash_leave(data=None):
    leave_room('crash')


def handle_crash_place_bet(data=None):
    return _guarded(lambda: rounds.crash.place_bet(
        current_user.id, current_user.username, _fields(data).get('amount')
    ))


def handle_crash_cashout(data=None):
    return _guarded(lambda: rounds.crash.cashout(current_user.id))


# ---- Color prediction ----

def handle_color_join(data=None):
    join_room('color')
    emit('color:state', rounds.color.state())


def handle_color_leave(data=None):
    leave_room('color')


def handle_color_place_bet(data=None):
    def place():
        fields = _fields(data)
        return rounds.color.place_bet(current_user.id, current_user.username, fields.get('color'), fields.get('amount'))
    return _guarded(place)


_HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'crash:join': handle_crash_join,
    'crash:leave': handle_crash_leave,
    'crash:place_bet': handle_crash_place_bet,
    'crash:cashout': handle_crash_cashout,
    'color:join': handle_color_join,
    'color:leave': handle_color_leave,
    'color:place_bet': handle_color_place_bet,
}


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    for name, handler in _HANDLERS.items():
        socketio.on_event(name, handler, namespace='/ws')

    if testing:
        for name, handler in _HANDLERS.items():
            socketio.on_event(name, handler, namespace='/')
