from decimal import Decimal

import pytest

from casino import rounds, socketio


def events(test_client, name):
    return [pkt['args'][0] for pkt in test_client.get_received('/ws') if pkt['name'] == name]


@pytest.fixture()
def player_sio(flask_app):
    http = flask_app.test_client()
    res = http.post('/register', json={'username': 'sockets', 'password': 'pw'})
    assert res.status_code == 201
    test_client = socketio.test_client(flask_app, flask_test_client=http, namespace='/ws')
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


def test_socket_connect(sio_client):
    assert sio_client.is_connected('/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'connected' for pkt in received)


def test_join_sends_round_snapshot(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('crash:join', {}, namespace='/ws')
    state = events(sio_client, 'crash:state')
    assert state and state[0]['round_id'] == 0

    sio_client.emit('color:join', {}, namespace='/ws')
    assert events(sio_client, 'color:state')


def test_anonymous_bets_are_refused(sio_client):
    rounds.crash.open_round()
    ack = sio_client.emit('crash:place_bet', {'amount': 10}, namespace='/ws', callback=True)
    assert ack == {'error': 'Authentication required'}


def test_crash_bet_and_cashout_over_socket(player_sio):
    player_sio.emit('crash:join', {}, namespace='/ws')
    player_sio.get_received('/ws')
    rounds.crash.open_round()

    ack = player_sio.emit('crash:place_bet', {'amount': 100}, namespace='/ws', callback=True)
    assert ack['success'] is True
    assert ack['balance'] == 9900.0
    received = player_sio.get_received('/ws')
    names = [pkt['name'] for pkt in received]
    assert 'crash:waiting' in names
    assert 'crash:bet_placed' in names
    assert {'balance': 9900.0} in [pkt['args'][0] for pkt in received if pkt['name'] == 'wallet:balance_update']

    ack = player_sio.emit('crash:place_bet', {'amount': 100}, namespace='/ws', callback=True)
    assert ack == {'error': 'Already bet this round'}

    rounds.crash.round.crash_point = Decimal('2.00')
    rounds.crash.start_running(now=0)
    rounds.crash.tick(now=1)
    ack = player_sio.emit('crash:cashout', {}, namespace='/ws', callback=True)
    assert ack['success'] is True
    assert ack['multiplier'] == 1.06
    assert ack['balance'] == 9900.0 + 106.0


def test_color_bet_over_socket(player_sio):
    player_sio.emit('color:join', {}, namespace='/ws')
    rounds.color.open_round()
    ack = player_sio.emit('color:place_bet', {'color': 'red', 'amount': 50}, namespace='/ws', callback=True)
    assert ack['success'] is True
    assert ack['color'] == 'red'
    counts = events(player_sio, 'color:bets_count')
    assert counts[-1]['red'] == 1

    ack = player_sio.emit('color:place_bet', {'color': 'green', 'amount': 50}, namespace='/ws', callback=True)
    assert ack == {'error': 'Already bet this round'}


def test_leave_stops_broadcasts(player_sio):
    player_sio.emit('color:join', {}, namespace='/ws')
    player_sio.emit('color:leave', {}, namespace='/ws')
    player_sio.get_received('/ws')
    rounds.color.open_round()
    assert events(player_sio, 'color:new_round') == []


def test_malformed_bet_payloads_are_rejected(player_sio):
    rounds.crash.open_round()
    rounds.color.open_round()
    ack = player_sio.emit('crash:place_bet', 100, namespace='/ws', callback=True)
    assert ack == {'error': 'Invalid payload'}
    ack = player_sio.emit('color:place_bet', ['red', 50], namespace='/ws', callback=True)
    assert ack == {'error': 'Invalid payload'}
    assert rounds.crash.round.bets == {}
    assert rounds.color.round.bets == {}
