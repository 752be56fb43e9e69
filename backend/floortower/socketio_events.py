from flask import current_app, request
from flask_login import current_user
from flask_socketio import emit
from floortower import socketio
from floortower.errors import CommandError, StoreError
from floortower.services import board, commands, countdown
from floortower.services.sync import StateSyncClient
from floortower.services.ticker import Ticker
from typing import Dict, Tuple

PLAYER_NAMESPACE = '/ws'
ADMIN_NAMESPACE = '/ws/admin'


class ViewSession:
    """One mounted page: a sync client feeding pushes plus a countdown ticker."""

    def __init__(self, app, store, sid: str, namespace: str, view: str):
        self.app = app
        self.store = store
        self.sid = sid
        self.namespace = namespace
        self.view = view
        self.sync = StateSyncClient(store, name=f"{view}:{sid}")
        self.ticker = Ticker(app, self.tick, app.config.get('TICK_INTERVAL_SEC', 1), name=f"{view}:{sid}")
        self._listener = None

    @property
    def state(self):
        return self.sync.latest

    def mount(self):
        self.sync.attach()
        # Replays the snapshot fetched on attach, if there is one
        self._listener = self.sync.add_listener(self.push_state)
        self.ticker.start()

    def unmount(self):
        self.ticker.cancel()
        if self._listener is not None:
            self.sync.remove_listener(self._listener)
            self._listener = None
        self.sync.detach()

    def timers(self, state=None):
        return countdown.derive_timers(state if state is not None else self.state, countdown.utcnow())

    def push_state(self, snapshot):
        payload = board.render(snapshot, self.timers(snapshot), self.view)
        socketio.emit('state_update', payload, to=self.sid, namespace=self.namespace)

    def tick(self):
        socketio.emit('tick', self.timers().to_dict(), to=self.sid, namespace=self.namespace)


_sessions: Dict[Tuple[str, str], ViewSession] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def get_session(namespace: str, sid: str):
    return _sessions.get((namespace, sid))


def _mount(view: str, namespace: str) -> ViewSession:
    app = current_app._get_current_object()
    session = ViewSession(app, app.extensions['game_store'], _get_sid(), namespace, view)
    _sessions[(namespace, session.sid)] = session
    session.mount()
    app.logger.info(f"[view-mount] view={view} sid={session.sid} has_state={session.state is not None}")
    return session


def _unmount(namespace: str) -> None:
    session = _sessions.pop((namespace, _get_sid()), None)
    if not session:
        return
    session.unmount()
    current_app.logger.info(f"[view-unmount] view={session.view} sid={session.sid}")


def handle_player_connect(auth=None):
    _mount('player', PLAYER_NAMESPACE)


def handle_player_disconnect(reason=None):
    _unmount(PLAYER_NAMESPACE)


def handle_admin_connect(auth=None):
    if not current_user.is_authenticated:
        current_app.logger.info(f"[view-reject] admin socket without login sid={_get_sid()}")
        return False
    _mount('admin', ADMIN_NAMESPACE)


def handle_admin_disconnect(reason=None):
    _unmount(ADMIN_NAMESPACE)


# ---- Admin commands ----

def _arg(data, key):
    return data.get(key) if isinstance(data, dict) else data


def _run_command(name, action) -> None:
    session = get_session(ADMIN_NAMESPACE, _get_sid())
    if session is None:
        emit('command_error', {'command': name, 'message': 'admin view is not connected'})
        return
    try:
        action(session)
    except (CommandError, StoreError) as exc:
        # Local state is left alone; the operator retries by hand
        current_app.logger.warning(f"[command-error] {name} sid={session.sid}: {exc}")
        emit('command_error', {'command': name, 'message': str(exc)})
        return
    emit('command_ok', {'command': name})


def handle_start_game(data=None):
    _run_command('start_game', lambda s: commands.start_game(s.store, _arg(data, 'minutes')))


def handle_start_floor_countdown(data=None):
    _run_command('start_floor_countdown', lambda s: commands.start_floor_countdown(s.store, _arg(data, 'minutes')))


def handle_toggle_floor(data=None):
    _run_command('toggle_floor', lambda s: commands.toggle_floor(s.store, s.state, _arg(data, 'floor')))


def handle_reset(data=None):
    _run_command('reset', lambda s: commands.reset_game(s.store))


def handle_broadcast(data=None):
    _run_command('broadcast', lambda s: commands.broadcast(s.store, _arg(data, 'text')))


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers.

    Players mount on '/ws' and only receive pushes. Admins mount on
    '/ws/admin', which requires a logged-in session and accepts commands.
    """
    socketio.on_event('connect', handle_player_connect, namespace=PLAYER_NAMESPACE)
    socketio.on_event('disconnect', handle_player_disconnect, namespace=PLAYER_NAMESPACE)

    socketio.on_event('connect', handle_admin_connect, namespace=ADMIN_NAMESPACE)
    socketio.on_event('disconnect', handle_admin_disconnect, namespace=ADMIN_NAMESPACE)
    socketio.on_event('start_game', handle_start_game, namespace=ADMIN_NAMESPACE)
    socketio.on_event('start_floor_countdown', handle_start_floor_countdown, namespace=ADMIN_NAMESPACE)
    socketio.on_event('toggle_floor', handle_toggle_floor, namespace=ADMIN_NAMESPACE)
    socketio.on_event('reset', handle_reset, namespace=ADMIN_NAMESPACE)
    socketio.on_event('broadcast', handle_broadcast, namespace=ADMIN_NAMESPACE)
