"""Domain errors raised by the game engines and the ledger.

Every subclass of GameError is a user-facing rejection: the operation did
not mutate any balance and the message is safe to show to the player.
"""


class GameError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class ValidationError(GameError):
    """Bad stake, table limit violation or malformed bet."""


class InsufficientFunds(GameError):
    def __init__(self, message='Insufficient balance'):
        super().__init__(message)


class AccountNotFound(GameError):
    status_code = 404

    def __init__(self, message='Account not found'):
        super().__init__(message)


class HandNotFound(GameError):
    def __init__(self, message='Hand not found or expired'):
        super().__init__(message)


class HandNotActive(GameError):
    def __init__(self, message='Hand is not active'):
        super().__init__(message)


class RoundPhaseError(GameError):
    """Bet after lock, duplicate bet, cashout outside the running phase."""
