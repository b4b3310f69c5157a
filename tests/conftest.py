"""
Pytest configuration.

The app reads its configuration from the environment when it is imported,
so point it at a throwaway SQLite database and plain cookie sessions (no
Redis) before any test module imports it.
"""
import os
import tempfile

import pytest

_tmpdir = tempfile.mkdtemp(prefix="wordshelf-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ["SESSION_TYPE"] = ""
os.environ["SECRET_KEY"] = "test-secret"
os.environ["WORDLE_WORD_LENGTH"] = "5"
os.environ["WORDLE_MAX_GUESSES"] = "6"
os.environ.setdefault("LOG_LEVEL", "WARNING")


@pytest.fixture
def app():
    from app import app as flask_app
    from db.database import drop_database, init_database

    drop_database()
    init_database()
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    from db.database import SessionLocal

    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    from db.models import User

    def _make_user(email="reader@example.com", password="secret123"):
        user = User(email=email)
        user.set_password(password)
        db.add(user)
        db.commit()
        return user

    return _make_user
