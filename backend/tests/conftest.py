import os
import sys
from datetime import datetime, timedelta, timezone
import pytest

# Ensure the backend root (containing the `floortower` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from floortower import create_app, db, socketio
from floortower import socketio_events
from floortower.services import countdown

ACCESS_KEY = 'test-access-key'
T0 = datetime(2026, 1, 1, 20, 0, 0, tzinfo=timezone.utc)


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ACCESS_KEY = ACCESS_KEY
    TICK_INTERVAL_SEC = 1
    DEFAULT_DURATION_MIN = 10
    CORS_ORIGINS = ['http://localhost']
    LOG_LEVEL = 'DEBUG'


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def clock(monkeypatch):
    fake = FakeClock(T0)
    monkeypatch.setattr(countdown, 'utcnow', fake)
    return fake


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        application.extensions['game_store'].ensure_singleton()
        yield application
        for session in list(socketio_events._sessions.values()):
            session.unmount()
        socketio_events._sessions.clear()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def store(flask_app):
    return flask_app.extensions['game_store']


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def login(test_client, key=ACCESS_KEY):
    return test_client.post('/admin/login', data={'access_key': key})


@pytest.fixture()
def player_client(flask_app):
    test_client = socketio.test_client(flask_app, namespace='/ws')
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def make_admin_client(flask_app):
    """Factory for logged-in admin socket clients, each with its own HTTP session."""
    created = []

    def _make():
        http_client = flask_app.test_client()
        login(http_client)
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=http_client,
            namespace='/ws/admin'
        )
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        if test_client.is_connected('/ws/admin'):
            test_client.disconnect(namespace='/ws/admin')


@pytest.fixture()
def admin_client(make_admin_client):
    return make_admin_client()
