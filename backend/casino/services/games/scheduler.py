import time
from typing import Dict, Optional

from casino.services.games.color import ColorPredictionGame
from casino.services.games.crash import CrashGame


class SocketEmitter:
    """Broadcast round events through the shared Socket.IO server."""

    def __init__(self, socketio, namespace: str = '/ws'):
        self.socketio = socketio
        self.namespace = namespace

    def __call__(self, event, payload, to=None):
        self.socketio.emit(event, payload, to=to, namespace=self.namespace)


class RoundRegistry:
    """Owns the live Crash and Color games and the background tasks driving them.

    - Games are built from config in ``init_app`` so HTTP and socket handlers can
      read their state even when no loop is running (tests)
    - ``start`` launches one Socket.IO background task per game plus a reaper
      for idle blackjack/poker hands
    - A failing cycle is logged and the next cycle starts with a fresh round
    - ``stop`` retires every live seed so rounds played since the last
      rotation stay verifiable after a restart
    """

    def __init__(self):
        self.crash: Optional[CrashGame] = None
        self.color: Optional[ColorPredictionGame] = None
        self._running = False
        self._started = False

    def init_app(self, app, emit=None):
        if emit is None:
            from casino import socketio
            emit = SocketEmitter(socketio)
        self.crash = CrashGame.from_config(app, emit=emit)
        self.color = ColorPredictionGame.from_config(app, emit=emit)
        app.extensions['rounds'] = self

    def games(self) -> Dict[str, object]:
        return {'crash': self.crash, 'color': self.color}

    def start(self, app, hand_stores=()):
        if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
            return
        if self._started:
            app.logger.info("[timer-skip] round loops already started")
            return
        from casino import socketio

        self._running = True
        self._started = True
        for name, game in self.games().items():
            socketio.start_background_task(self._game_loop, app, name, game, socketio.sleep)
        if hand_stores:
            socketio.start_background_task(self._reaper_loop, app, tuple(hand_stores), socketio.sleep)
        app.logger.info(f"[timer-set] loops={','.join(self.games())} reapers={len(hand_stores)}")

    def stop(self):
        self._running = False
        self._started = False
        for game in self.games().values():
            if game is not None:
                game.retire_seed()

    def _game_loop(self, app, name, game, sleep):
        while self._running:
            try:
                game.run_cycle(sleep)
            except Exception:
                app.logger.exception(f"[timer-error] game={name} round={game.round_number}; restarting")
                sleep(1)

    def _reaper_loop(self, app, stores, sleep):
        from casino.services.settlement import forfeit_hand

        interval = int(app.config.get('HAND_REAPER_INTERVAL_SEC', 60))
        heartbeat = int(app.config.get('TIMER_HEARTBEAT_SEC', 0))
        last_beat = time.monotonic()
        while self._running:
            sleep(interval)
            for game_type, store in stores:
                with app.app_context():
                    for hand in store.reap():
                        try:
                            forfeit_hand(game_type, hand)
                        except Exception:
                            app.logger.exception(f"[hand-reap-error] game={game_type} hand={hand.handle}")
            if heartbeat and time.monotonic() - last_beat >= heartbeat:
                last_beat = time.monotonic()
                app.logger.info(
                    f"[timer-heartbeat] crash_round={self.crash.round_number} crash_phase={self.crash.phase} "
                    f"color_round={self.color.round_number} color_phase={self.color.phase}"
                )
