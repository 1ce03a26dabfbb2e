"""Shared fixtures: an application on in-memory SQLite, users and tokens."""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from sweetshop import auth, crud, models, schemas
from sweetshop.database import Database
from sweetshop.main import create_app

PASSWORD = "password123"


@pytest.fixture(scope="session")
def password_hash():
    # bcrypt is slow; hash once per test run
    return auth.get_password_hash(PASSWORD)


@pytest.fixture()
def database(tmp_path):
    """A file-backed database so separate sessions use separate connections."""
    database = Database(f"sqlite:///{tmp_path / 'sweetshop.db'}")
    database.create_all()
    yield database
    database.close()


@pytest.fixture()
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture()
def app():
    return create_app("sqlite://")


@pytest.fixture()
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def app_session(app, client):
    """Direct session on the application's database, for arranging and inspecting state."""
    session = app.state.database.session()
    yield session
    session.close()


@pytest.fixture()
def user(app_session, password_hash):
    return crud.create_user(app_session, "testuser", "user@example.com", password_hash)


@pytest.fixture()
def admin(app_session, password_hash):
    return crud.create_user(app_session, "adminuser", "admin@example.com", password_hash,
                            role=models.ROLE_ADMIN)


@pytest.fixture()
def user_headers(user):
    return {"Authorization": f"Bearer {auth.create_user_token(user)}"}


@pytest.fixture()
def admin_headers(admin):
    return {"Authorization": f"Bearer {auth.create_user_token(admin)}"}


def make_sweet(session, name="Chocolate Bar", category="Chocolate", price="5.99", quantity=50):
    return crud.create_sweet(
        session,
        schemas.SweetCreate(name=name, category=category, price=Decimal(price), quantity=quantity),
    )
