import os
import sys
import pytest

# Ensure the backend root (containing the `squares` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from squares import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    PENDING_TTL_SEC = 30
    GAME_CODE_LENGTH = 6
    GAME_CODE_ATTEMPTS = 5
    CORS_ORIGINS = ['http://localhost:5173']
    LOG_LEVEL = 'INFO'


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import squares.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def file_db_app(tmp_path):
    """App on a file-backed SQLite database, so each app context gets its own connection."""
    class FileDbConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'squares.db'}"

    application = create_app(FileDbConfig)
    with application.app_context():
        import squares.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


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
def clock():
    return FakeClock()


@pytest.fixture()
def make_game(flask_app):
    """Create a game through the service layer and return its code."""
    from squares.services.games.lifecycle import create_game

    def _make(square_cost=2, square_limit=3, scoring=None, owner_email='Owner@Example.com',
              owner_password=None, teams=None):
        config = {
            'squareCost': square_cost,
            'squareLimit': square_limit,
            'scoring': scoring or {'firstQuarter': 25, 'secondQuarter': 25, 'thirdQuarter': 25, 'final': 25},
            'teams': teams or {'vertical': 'A', 'horizontal': 'B'},
        }
        game, _ = create_game('Big Game', owner_email, 'Olive Owner', config, owner_password=owner_password)
        return game.game_code

    return _make
