import os
import sys
import pytest

# Ensure the backend root (containing the `matatena` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from matatena import create_app, db, socketio

PASSWORD = 'password'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    MATCH_CODES_ENABLED = True
    MATCH_CODE_LENGTH = 5
    BOARD_COLUMNS = 3
    LOG_LEVEL = 'DEBUG'
    CORS_ORIGINS = []


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    # No app context stays pushed during the test: each request gets its own,
    # so Flask-Login's per-context user never leaks between test clients.
    with application.app_context():
        # Ensure models are imported so tables are created
        import matatena.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def seed_accounts(names=('alice', 'bob', 'carol')):
    from matatena.models import Account
    for name in names:
        account = Account(username=name)
        account.set_password(PASSWORD)
        db.session.add(account)
    db.session.commit()
    return {a.username: a.id for a in Account.query.filter(Account.username.in_(names)).all()}


def login(flask_app, username):
    http = flask_app.test_client()
    res = http.post('/login', json={'username': username, 'password': PASSWORD})
    assert res.status_code == 200
    return http


@pytest.fixture()
def accounts(flask_app):
    with flask_app.app_context():
        return seed_accounts()


@pytest.fixture()
def alice(flask_app, accounts):
    return login(flask_app, 'alice')


@pytest.fixture()
def bob(flask_app, accounts):
    return login(flask_app, 'bob')


@pytest.fixture()
def carol(flask_app, accounts):
    return login(flask_app, 'carol')


@pytest.fixture()
def sio_factory(flask_app):
    """Build Socket.IO test clients that share a logged-in HTTP client's cookies."""
    made = []

    def make(http_client):
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=http_client,
            namespace='/ws'
        )
        made.append(test_client)
        return test_client

    yield make
    for test_client in made:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def started_match(alice, bob):
    """A match hosted by alice with bob already seated as guest."""
    match_id = alice.post('/api/matches').get_json()['match_id']
    res = bob.post(f'/api/matches/{match_id}/join')
    assert res.status_code == 200
    return match_id
