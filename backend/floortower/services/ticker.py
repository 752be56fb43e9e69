import threading

from floortower import socketio


class Ticker:
    """Calls ``callback`` every ``interval`` seconds until cancelled.

    - No-ops in TESTING mode unless ENABLE_TICKER_IN_TESTS is set
    - Runs as a Socket.IO background task inside an app context
    - Cancellation is checked after every sleep, so a cancelled ticker fires at most once more
    """

    def __init__(self, app, callback, interval=1.0, name='tick'):
        self.app = app
        self.callback = callback
        self.interval = float(interval)
        self.name = name
        self._stop = threading.Event()
        self._task = None

    @property
    def running(self):
        return self._task is not None and not self._stop.is_set()

    def start(self):
        if self.app.config.get('TESTING') and not self.app.config.get('ENABLE_TICKER_IN_TESTS'):
            return False
        if self.running:
            return True
        self._stop = threading.Event()
        self._task = socketio.start_background_task(self._run, self._stop)
        self.app.logger.debug(f"[tick-start] {self.name} interval={self.interval}s")
        return True

    def cancel(self):
        self._stop.set()
        self._task = None

    def _run(self, stop):
        while not stop.is_set():
            socketio.sleep(self.interval)
            if stop.is_set():
                break
            with self.app.app_context():
                try:
                    self.callback()
                except Exception:
                    self.app.logger.exception(f"[tick-error] {self.name}")
        self.app.logger.debug(f"[tick-stop] {self.name}")
