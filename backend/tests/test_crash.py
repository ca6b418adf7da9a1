import hashlib
from decimal import Decimal

import pytest

from casino.errors import InsufficientFunds, RoundPhaseError, ValidationError
from casino.models import Bet, CasinoRound, Transaction
from casino.services import ledger
from casino.services.games import crash
from casino.services.games.rng import hmac_hex


@pytest.fixture()
def game(flask_app, emitter, clock):
    return crash.CrashGame(app=flask_app, emit=emitter, clock=clock, server_seed='crash-test-seed',
                           waiting_sec=10, rotation_rounds=0)


def rigged_round(game, point='2.00'):
    rnd = game.open_round()
    rnd.crash_point = Decimal(point)
    return rnd


@pytest.mark.parametrize('prefix, point', [
    ('00000000', Decimal('1.00')),
    ('00000021', Decimal('1.00')),     # 33: instant crash
    ('7fffffff', Decimal('2.00')),
    ('00000001', Decimal('1000.00')),  # capped
])
def test_crash_point_from_hash(prefix, point):
    assert crash.crash_point_from_hash(prefix + '0' * 56) == point


def test_crash_points_are_bounded_and_sometimes_instant():
    points = [crash.crash_point_for('bounded', n) for n in range(1, 3001)]
    assert all(Decimal('1.00') <= p <= Decimal('1000.00') for p in points)
    instant = sum(1 for p in points if p == Decimal('1.00'))
    assert 40 < instant < 200


def test_multiplier_curve(game):
    assert game.multiplier_at(0) == Decimal('1.00')
    assert game.multiplier_at(1000) == Decimal('1.06')
    assert game.multiplier_at(11553) == Decimal('2.00')


def test_open_round_publishes_commitment_not_crash_point(game, emitter):
    rnd = game.open_round()
    assert rnd.number == 1
    payload = emitter.payloads('crash:waiting')[0]
    assert payload['hash'] == hashlib.sha256(b'crash-test-seed:1').hexdigest()
    assert payload['seed_hash'] == hashlib.sha256(b'crash-test-seed').hexdigest()
    assert 'crash_point' not in payload
    assert game.state()['crash_point'] is None


def test_bet_cashout_and_loss(game, make_user, emitter, clock):
    alice = make_user('alice', '1000')
    bob = make_user('bob', '1000')
    rigged_round(game)

    assert game.place_bet(alice, 'alice', 100)['balance'] == 900.0
    game.place_bet(bob, 'bob', '50')
    assert ledger.get_balance(bob) == Decimal('950.00')
    with pytest.raises(RoundPhaseError, match='Already bet'):
        game.place_bet(alice, 'alice', 100)

    game.start_running(now=10)
    with pytest.raises(RoundPhaseError, match='waiting'):
        game.place_bet(make_user('carol'), 'carol', 100)

    assert game.tick(now=11) == Decimal('1.06')
    result = game.cashout(alice)
    assert result['payout'] == 106.0
    assert ledger.get_balance(alice) == Decimal('1006.00')
    with pytest.raises(RoundPhaseError, match='Already cashed out'):
        game.cashout(alice)
    with pytest.raises(RoundPhaseError, match='No bet'):
        game.cashout(make_user('dave'))

    game.tick(now=60)
    assert game.phase == 'crashed'
    assert emitter.payloads('crash:tick')[-1] == {'multiplier': 2.0}
    assert emitter.payloads('crash:end')[0] == {'crash_point': 2.0, 'round_id': 1}

    won = Bet.query.filter_by(user_id=alice).one()
    lost = Bet.query.filter_by(user_id=bob).one()
    assert (won.status, won.payout) == ('won', Decimal('106.00'))
    assert (lost.status, lost.payout) == ('lost', Decimal('0.00'))
    assert ledger.get_balance(bob) == Decimal('950.00')
    assert CasinoRound.query.filter_by(game_type='crash').one().result == '2.00'
    assert game.history[0] == 2.0
    assert ('wallet:balance_update', {'balance': 1006.0}, f'user:{alice}') in emitter.events

    with pytest.raises(RoundPhaseError, match='not running'):
        game.cashout(bob)


def test_ticks_never_exceed_crash_point(game, clock):
    rigged_round(game, '1.50')
    game.start_running(now=0)
    seen = []
    for step in range(1, 200):
        value = game.tick(now=step * 0.1)
        if value is None:
            break
        seen.append(value)
    assert seen == sorted(seen)
    assert max(seen) == Decimal('1.50')
    assert game.phase == 'crashed'


def test_instant_crash_allows_no_cashout(game, make_user, emitter):
    alice = make_user('alice', '1000')
    rigged_round(game, '1.00')
    game.place_bet(alice, 'alice', 100)
    game.start_running(now=10)
    assert game.phase == 'crashed'
    with pytest.raises(RoundPhaseError):
        game.cashout(alice)
    assert Bet.query.filter_by(user_id=alice).one().status == 'lost'
    assert ledger.get_balance(alice) == Decimal('900.00')


def test_rejected_stakes_leave_balance_alone(game, make_user):
    alice = make_user('alice', '50')
    game.open_round()
    with pytest.raises(InsufficientFunds):
        game.place_bet(alice, 'alice', 100)
    with pytest.raises(ValidationError):
        game.place_bet(alice, 'alice', 5)
    assert ledger.get_balance(alice) == Decimal('50.00')
    assert game.round.bets == {}
    assert Transaction.query.filter_by(user_id=alice, type='bet_placed').count() == 0


def test_seed_rotation_reveals_a_verifiable_history(flask_app, emitter, clock):
    game = crash.CrashGame(app=flask_app, emit=emitter, clock=clock, rotation_rounds=3)
    seed = game.seed.seed
    for _ in range(3):
        game.open_round()
        game.start_running(now=0)
        game.tick(now=200)
    assert game.seed.seed != seed

    rows = CasinoRound.query.filter_by(game_type='crash').order_by(CasinoRound.round_number).all()
    assert [r.round_number for r in rows] == [1, 2, 3]
    for row in rows:
        assert row.server_seed == seed
        assert row.commitment == hashlib.sha256(f'{seed}:{row.round_number}'.encode()).hexdigest()
        assert row.outcome_hash == hmac_hex(seed, row.round_number)
        assert Decimal(row.result) == crash.crash_point_from_hash(row.outcome_hash)


def test_retiring_mid_round_waits_for_the_crash(game, make_user):
    alice = make_user('alice', '1000')
    rigged_round(game)
    game.place_bet(alice, 'alice', 100)
    game.start_running(now=0)
    assert game.retire_seed() is False
    assert game.seed.seed == 'crash-test-seed'

    game.tick(now=200)
    assert game.phase == 'crashed'
    assert game.seed.seed != 'crash-test-seed'
    assert CasinoRound.query.filter_by(game_type='crash').one().server_seed == 'crash-test-seed'

    game.open_round()
    game.start_running(now=0)
    game.tick(now=200)
    assert CasinoRound.query.filter_by(game_type='crash', round_number=2).one().server_seed is None


def test_run_cycle_drives_a_whole_round(flask_app, emitter):
    clock_box = {'now': 0.0}

    def sleep(seconds):
        clock_box['now'] += seconds

    game = crash.CrashGame(app=flask_app, emit=emitter, clock=lambda: clock_box['now'],
                           waiting_sec=1, crashed_sec=1, tick_ms=500, rotation_rounds=0)
    game.run_cycle(sleep)
    assert game.phase == 'crashed'
    names = emitter.names()
    assert names[0] == 'crash:waiting'
    assert names[1] == 'crash:start'
    assert names[-1] == 'crash:end'
