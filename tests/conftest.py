"""
Fixtures shared by the service and API tests.
Every test gets its own SQLite file, seeded with the base roles, categories
and the admin account.
"""
import os
import tempfile
from decimal import Decimal
from pathlib import Path

# Settings are read at import time; point them at throwaway locations first
_TMP_DIR = Path(tempfile.mkdtemp(prefix="inventario-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'import.db'}"
os.environ["LOG_DIR"] = str(_TMP_DIR / "logs")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from config import MovementSettings
from database import Base, build_engine, get_db
import models.role, models.users, models.category, models.product, models.stock, models.log  # noqa: F401
from main import app
from models.category import Category
from models.role import Role
from models.users import User
from seed import seed_base_data
from services.accounts import UserService
from services.catalog import ProductService
from services.movement_engine import MovementEngine
from services.stock_queries import StockQueries

PASSWORD = "secreto123"


@pytest.fixture
def db_engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'inventario_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    seed_base_data(session)
    yield session
    session.close()


@pytest.fixture
def settings():
    return MovementSettings()


@pytest.fixture
def engine(db, settings):
    return MovementEngine(db, settings)


@pytest.fixture
def queries(db, settings):
    return StockQueries(db, settings)


@pytest.fixture
def products(db, engine):
    return ProductService(db, engine)


@pytest.fixture
def admin(db):
    return db.query(User).filter(User.username == "admin").one()


def _role_id(db, name):
    return db.query(Role).filter(Role.name == name).one().id


@pytest.fixture
def manager(db):
    return UserService(db).create(
        username="gerente1", password=PASSWORD, full_name="Gerente Uno",
        email="gerente1@tienda.com", role_id=_role_id(db, "GERENTE"),
    )


@pytest.fixture
def employee(db):
    return UserService(db).create(
        username="empleado1", password=PASSWORD, full_name="Empleado Uno",
        email="empleado1@tienda.com", role_id=_role_id(db, "EMPLEADO"),
    )


@pytest.fixture
def category(db):
    return db.query(Category).filter(Category.name == "Hogar").one()


@pytest.fixture
def make_product(products, category, admin):
    def _make(name="Widget", price=Decimal("10.00"), stock_minimo=10, initial_stock=0):
        return products.create(
            name=name, price=price, category_id=category.id, created_by=admin,
            stock_minimo=stock_minimo, initial_stock=initial_stock,
        )
    return _make


@pytest.fixture
def client(session_factory, db):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def login(client, username, password):
    r = client.post("/api/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['accessToken']}"}


@pytest.fixture
def admin_headers(client):
    return login(client, "admin", "admin123")


@pytest.fixture
def manager_headers(client, manager):
    return login(client, manager.username, PASSWORD)


@pytest.fixture
def employee_headers(client, employee):
    return login(client, employee.username, PASSWORD)
