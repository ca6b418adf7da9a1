from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user

from casino.errors import GameError
from casino.models import Transaction, TRANSACTION_TYPES
from casino.services import ledger

wallet = Blueprint('wallet', __name__)

MAX_PAGE_SIZE = 100


@wallet.errorhandler(GameError)
def handle_game_error(err):
    return jsonify(err.to_dict()), err.status_code


def _payload():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@wallet.route('/balance', methods=['GET'])
@login_required
def balance():
    return jsonify({'balance': float(ledger.get_balance(current_user.id))})


@wallet.route('/deposit', methods=['POST'])
@login_required
def deposit():
    data = _payload()
    new_balance = ledger.deposit(current_user.id, data.get('amount'))
    current_app.logger.info(f"[deposit] user={current_user.id} amount={data.get('amount')} balance={new_balance}")
    return jsonify({'success': True, 'balance': float(new_balance)})


@wallet.route('/withdraw', methods=['POST'])
@login_required
def withdraw():
    data = _payload()
    new_balance = ledger.withdraw(current_user.id, data.get('amount'))
    current_app.logger.info(f"[withdraw] user={current_user.id} amount={data.get('amount')} balance={new_balance}")
    return jsonify({'success': True, 'balance': float(new_balance)})


@wallet.route('/transactions', methods=['GET'])
@login_required
def transactions():
    page = request.args.get('page', 1, type=int)
    limit = min(max(request.args.get('limit', 20, type=int), 1), MAX_PAGE_SIZE)
    tx_type = request.args.get('type')
    query = Transaction.query.filter_by(user_id=current_user.id)
    if tx_type:
        if tx_type not in TRANSACTION_TYPES:
            return jsonify({'error': 'Unknown transaction type'}), 400
        query = query.filter_by(type=tx_type)
    query = query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
    total = query.count()
    rows = query.offset((max(page, 1) - 1) * limit).limit(limit).all()
    return jsonify({
        'transactions': [t.to_dict() for t in rows],
        'page': max(page, 1),
        'limit': limit,
        'total': total,
    })
