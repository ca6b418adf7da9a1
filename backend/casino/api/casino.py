from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user

from casino import blackjack_hands, poker_hands, rounds
from casino.errors import GameError
from casino.models import Bet, CasinoRound
from casino.services import settlement

casino = Blueprint('casino', __name__)

GAME_TYPES = ('slots', 'roulette', 'blackjack', 'poker', 'crash', 'color')
ROUND_GAMES = ('crash', 'color')


@casino.errorhandler(GameError)
def handle_game_error(err):
    current_app.logger.info(f"[rejected] path={request.path} error={err.message}")
    return jsonify(err.to_dict()), err.status_code


def _payload():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _hand_id(data):
    hand_id = data.get('hand_id')
    if not hand_id:
        return None, (jsonify({'error': 'hand_id is required'}), 400)
    if not isinstance(hand_id, str):
        return None, (jsonify({'error': 'hand_id must be a string'}), 400)
    return hand_id, None


def _settled(outcome):
    """Common body for one-shot games."""
    return jsonify({
        'success': True,
        'result': outcome.result.to_dict(),
        'payout': float(outcome.payout),
        'status': outcome.status,
        'bet_id': outcome.bet_id,
        'balance': float(outcome.balance),
    })


def _hand(outcome):
    return jsonify({
        'success': True,
        'hand': outcome.result.to_dict(),
        'balance': float(outcome.balance),
    })


@casino.route('/slots/spin', methods=['POST'])
@login_required
def slots_spin():
    data = _payload()
    return _settled(settlement.play_slots(current_user.id, data.get('stake')))


@casino.route('/roulette/spin', methods=['POST'])
@login_required
def roulette_spin():
    data = _payload()
    return _settled(settlement.play_roulette(current_user.id, data.get('bets')))


@casino.route('/blackjack/start', methods=['POST'])
@login_required
def blackjack_start():
    data = _payload()
    return _hand(settlement.start_blackjack(blackjack_hands, current_user.id, data.get('stake')))


@casino.route('/blackjack/action', methods=['POST'])
@login_required
def blackjack_action():
    data = _payload()
    hand_id, rejected = _hand_id(data)
    if rejected:
        return rejected
    return _hand(settlement.blackjack_action(blackjack_hands, current_user.id, hand_id, data.get('action')))


@casino.route('/poker/deal', methods=['POST'])
@login_required
def poker_deal():
    data = _payload()
    return _hand(settlement.deal_poker(poker_hands, current_user.id, data.get('stake')))


@casino.route('/poker/draw', methods=['POST'])
@login_required
def poker_draw():
    data = _payload()
    hand_id, rejected = _hand_id(data)
    if rejected:
        return rejected
    return _hand(settlement.draw_poker(poker_hands, current_user.id, hand_id, data.get('hold', [])))


@casino.route('/history', methods=['GET'])
@login_required
def history():
    limit = min(max(request.args.get('limit', 20, type=int), 1), 100)
    game_type = request.args.get('game_type')
    query = Bet.query.filter_by(user_id=current_user.id)
    if game_type:
        if game_type not in GAME_TYPES:
            return jsonify({'error': 'Unknown game type'}), 400
        query = query.filter_by(game_type=game_type)
    bets = query.order_by(Bet.placed_at.desc(), Bet.id.desc()).limit(limit).all()
    return jsonify({'bets': [b.to_dict() for b in bets]})


@casino.route('/fairness/<game_type>', methods=['GET'])
def fairness(game_type):
    if game_type not in ROUND_GAMES:
        return jsonify({'error': 'Unknown game type'}), 404
    game = rounds.games()[game_type]
    limit = min(max(request.args.get('limit', 20, type=int), 1), 100)
    recent = (
        CasinoRound.query.filter_by(game_type=game_type)
        .order_by(CasinoRound.created_at.desc(), CasinoRound.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify({
        'game_type': game_type,
        'current_seed_hash': game.seed.seed_hash,
        'rounds': [r.to_dict() for r in recent],
    })


@casino.route('/crash/state', methods=['GET'])
def crash_state():
    return jsonify(rounds.crash.state())


@casino.route('/color/state', methods=['GET'])
def color_state():
    return jsonify(rounds.color.state())
