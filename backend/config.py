import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///casino.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Crash round timers
    CRASH_WAITING_SEC = int(os.environ.get('CRASH_WAITING_SEC', '10'))
    CRASH_CRASHED_SEC = int(os.environ.get('CRASH_CRASHED_SEC', '3'))
    CRASH_TICK_MS = int(os.environ.get('CRASH_TICK_MS', '100'))
    # Multiplier growth: e^(rate * elapsed_ms)
    CRASH_GROWTH_RATE = float(os.environ.get('CRASH_GROWTH_RATE', '0.00006'))
    # Color prediction round timers
    COLOR_ROUND_SEC = int(os.environ.get('COLOR_ROUND_SEC', '60'))
    COLOR_CUTOFF_SEC = int(os.environ.get('COLOR_CUTOFF_SEC', '10'))
    COLOR_RESULT_SEC = int(os.environ.get('COLOR_RESULT_SEC', '5'))
    # A session seed is retired (and revealed) after this many rounds
    SEED_ROTATION_ROUNDS = int(os.environ.get('SEED_ROTATION_ROUNDS', '100'))
    # Blackjack / poker hands left idle are dropped after this long
    HAND_IDLE_TIMEOUT_SEC = int(os.environ.get('HAND_IDLE_TIMEOUT_SEC', '600'))
    HAND_REAPER_INTERVAL_SEC = int(os.environ.get('HAND_REAPER_INTERVAL_SEC', '60'))
    # Table limits
    MIN_BET = os.environ.get('MIN_BET', '10')
    MAX_BET = os.environ.get('MAX_BET', '50000')
    MIN_WALLET_AMOUNT = os.environ.get('MIN_WALLET_AMOUNT', '100')
    MAX_WALLET_AMOUNT = os.environ.get('MAX_WALLET_AMOUNT', '1000000')
    STARTING_BALANCE = os.environ.get('STARTING_BALANCE', '10000')
    # Optional: heartbeat interval for round loop logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
    # Round loops are not started under TESTING unless this is set
    ENABLE_SCHEDULER_IN_TESTS = os.environ.get('ENABLE_SCHEDULER_IN_TESTS', '').lower() in ('1', 'true', 'yes')
