import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import Base, build_engine, build_session_factory
from main import create_app


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}",
        "SECRET_KEY": "test-secret",
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def register(client, username, password="secret123", role="member"):
    response = client.post(
        "/register",
        json={"username": username, "password": password, "role": role},
    )
    assert response.status_code == 201, response.json()
    data = response.json()["data"]
    return data["id"], {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session_factory(client, app):
    # Sessions opened from this factory hold the SQLite write lock until
    # closed; always use them as context managers.
    return app.state.session_factory


@pytest.fixture
def admin(client):
    return register(client, "admin", role="admin")


@pytest.fixture
def member(client):
    return register(client, "alice")


@pytest.fixture
def make_book(client, admin):
    _, headers = admin

    def _make_book(title="Dune", author="Frank Herbert", quantity=1, **extra):
        response = client.post(
            "/books",
            json={"title": title, "author": author, "quantity": quantity, **extra},
            headers=headers,
        )
        assert response.status_code == 201, response.json()
        return response.json()["data"]

    return _make_book


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'lending.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_factory(engine):
    return build_session_factory(engine)
