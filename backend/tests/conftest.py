import os
import sys
import logging
import pytest

# Ensure the backend root (containing the `asocijacije` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from asocijacije import create_app, db, socketio
from asocijacije.services.games.room import Room
from asocijacije.services.games.storage import Store
from asocijacije.services.games.timers import ManualScheduler


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    GUESS_DURATION_SEC = 30
    ROUND_OVER_DURATION_SEC = 3
    DISCONNECT_GRACE_SEC = 15
    EMPTY_ROOM_TTL_SEC = 300
    DEFAULT_WIN_SCORE = 10
    COUNTDOWN_MIN_SEC = 5
    COUNTDOWN_MAX_SEC = 300
    QUIZ_QUESTION_SEC = 20
    QUIZ_PAUSE_SEC = 3
    CHAT_HISTORY_LIMIT = 200
    TEST_MODE_USERNAME = 'tester'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    # No context held across the test; each handler pushes its own.
    with application.app_context():
        # Ensure models are imported so tables are created
        import asocijacije.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_ctx(flask_app):
    with flask_app.app_context():
        yield
        db.session.remove()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def scheduler(flask_app):
    return flask_app.extensions['scheduler']


@pytest.fixture()
def registry(flask_app):
    return flask_app.extensions['rooms']


@pytest.fixture()
def store(flask_app):
    return flask_app.extensions['store']


class RecordingEmitter:
    """Captures everything a Room publishes, per recipient sid."""

    def __init__(self):
        self.sent = []

    def __call__(self, event, payload, to):
        self.sent.append((event, payload, to))

    def events(self, sid, name=None):
        return [p for e, p, to in self.sent if to == sid and (name is None or e == name)]

    def last(self, sid, name):
        found = self.events(sid, name)
        return found[-1] if found else None

    def clear(self):
        self.sent.clear()


@pytest.fixture()
def emitter():
    return RecordingEmitter()


@pytest.fixture()
def make_room(store, emitter):
    """Build a standalone Room on a fresh manual clock."""
    def _make(code='ABC234', creator_id=None, **overrides):
        config = {k: getattr(TestConfig, k) for k in dir(TestConfig) if k.isupper()}
        config.update(overrides)
        clock = ManualScheduler()
        room = Room(
            code,
            'Test room',
            creator_id,
            scheduler=clock,
            store=store,
            emit=emitter,
            config=config,
            logger=logging.getLogger('asocijacije.tests'),
        )
        room.clock = clock
        return room
    return _make


@pytest.fixture()
def full_room(make_room):
    """A room with seats 0..3 taken by s0..s3 (seat 0 is admin)."""
    def _make(**overrides):
        room = make_room(**overrides)
        for i in range(4):
            room.join(f's{i}', name=f'P{i}')
        return room
    return _make


def register(client, username, password='password'):
    return client.post('/register', json={
        'username': username,
        'email': f'{username}@example.com',
        'password': password,
    })


def sio_for(flask_app, http_client=None):
    return socketio.test_client(
        flask_app,
        flask_test_client=http_client or flask_app.test_client(),
        namespace='/ws',
    )
