import os
import sys
import pytest

# Ensure the backend root (containing the `casino` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from casino import create_app, db, socketio


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    SEED_ROTATION_ROUNDS = 0


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
        return self.now


class RecordingEmitter:
    def __init__(self):
        self.events = []

    def __call__(self, event, payload, to=None):
        self.events.append((event, payload, to))

    def names(self):
        return [e[0] for e in self.events]

    def payloads(self, name):
        return [p for e, p, _ in self.events if e == name]


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import casino.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def make_user(flask_app):
    """Create a user holding ``balance`` (granted through the ledger)."""
    from casino.models import User
    from casino.services import ledger

    def _make(username='alice', balance='1000', password='password'):
        user = User(username=username)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        ledger.grant_bonus(user.id, balance)
        return user.id

    return _make


@pytest.fixture()
def auth_client(flask_app):
    """Test client with a freshly registered, logged-in user."""
    test_client = flask_app.test_client()
    res = test_client.post('/register', json={'username': 'player1', 'password': 'secret'})
    assert res.status_code == 201
    return test_client


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def emitter():
    return RecordingEmitter()
