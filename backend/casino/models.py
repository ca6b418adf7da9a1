from casino import db, bcrypt
from flask_login import UserMixin
from datetime import datetime
from decimal import Decimal
import json

TRANSACTION_TYPES = ('deposit', 'withdraw', 'bet_placed', 'bet_won', 'bet_lost', 'bonus', 'refund')
BET_STATUSES = ('pending', 'won', 'lost', 'void')


def money_out(value):
    """Decimal -> float for JSON payloads."""
    if value is None:
        return None
    return float(value)


class User(UserMixin, db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    # Only casino.services.ledger writes to this column
    balance = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal('0.00'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'balance': money_out(self.balance),
        }


class Transaction(db.Model):
    """Append-only ledger row; one per balance mutation."""
    __tablename__ = 'transactions'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    balance_after = db.Column(db.Numeric(14, 2), nullable=False)
    reference = db.Column(db.String(64), nullable=True, index=True)
    description = db.Column(db.String(256), default='')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship('User', backref=db.backref('transactions', lazy='dynamic', cascade='all, delete-orphan'))

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'amount': money_out(self.amount),
            'balance_after': money_out(self.balance_after),
            'reference': self.reference,
            'description': self.description,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Bet(db.Model):
    __tablename__ = 'bets'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    game_type = db.Column(db.String(20), nullable=False)
    selection = db.Column(db.String(256), nullable=False)
    stake = db.Column(db.Numeric(14, 2), nullable=False)
    payout = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal('0.00'))
    status = db.Column(db.String(10), nullable=False, default='pending', index=True)
    round_reference = db.Column(db.String(64), nullable=True, index=True)
    game_details = db.Column(db.Text, nullable=True)  # JSON-encoded engine result
    placed_at = db.Column(db.DateTime, default=datetime.utcnow)
    settled_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship('User', backref=db.backref('bets', lazy='dynamic', cascade='all, delete-orphan'))

    def settle(self, status, payout, details=None):
        self.status = status
        self.payout = payout
        self.settled_at = datetime.utcnow()
        if details is not None:
            self.game_details = json.dumps(details)

    def to_dict(self):
        return {
            'id': self.id,
            'game_type': self.game_type,
            'selection': self.selection,
            'stake': money_out(self.stake),
            'payout': money_out(self.payout),
            'status': self.status,
            'round_reference': self.round_reference,
            'game_details': json.loads(self.game_details) if self.game_details else None,
            'placed_at': self.placed_at.isoformat() if self.placed_at else None,
            'settled_at': self.settled_at.isoformat() if self.settled_at else None,
        }


class CasinoRound(db.Model):
    """Fairness record for one resolved multiplayer round."""
    __tablename__ = 'casino_rounds'
    id = db.Column(db.Integer, primary_key=True)
    game_type = db.Column(db.String(20), nullable=False, index=True)
    round_number = db.Column(db.Integer, nullable=False)
    seed_hash = db.Column(db.String(64), nullable=False, index=True)
    commitment = db.Column(db.String(64), nullable=False)
    outcome_hash = db.Column(db.String(64), nullable=False)
    result = db.Column(db.String(32), nullable=False)
    multiplier = db.Column(db.Numeric(10, 2), nullable=True)
    # Stays empty until the session seed is retired
    server_seed = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('game_type', 'seed_hash', 'round_number', name='uq_casino_round'),
    )

    def to_dict(self):
        return {
            'game_type': self.game_type,
            'round_number': self.round_number,
            'seed_hash': self.seed_hash,
            'commitment': self.commitment,
            'outcome_hash': self.outcome_hash,
            'result': self.result,
            'multiplier': money_out(self.multiplier),
            'server_seed': self.server_seed,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
