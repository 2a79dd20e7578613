# src/carstore/conftest.py
"""
Pytest configuration and shared fixtures.

Tests are co-located with implementation files using the *_test.py suffix.
This file provides fixtures available to all tests in the package.

Unit tests run against in-memory fakes. Tests using the ``db_connection``
fixture need PostgreSQL: set TEST_DATABASE_URL to a disposable database,
otherwise they are skipped.
"""

import logging
import os
import threading
import uuid
from pathlib import Path

import psycopg
import pytest

from carstore.car.models import Car, CarFilter, CarPatch
from carstore.errors import UpstreamFailure

MIGRATIONS_DIR = Path(__file__).parent.parent.parent / "migrations"


# =============================================================================
# Fakes
# =============================================================================


class FakeCarRepository:
    """In-memory stand-in for CarRepository with the same return contracts."""

    def __init__(self):
        self.rows: dict[str, Car] = {}
        self.add_calls: list[list[Car]] = []

    def find(self, car_filter: CarFilter) -> list[Car]:
        def matches(car: Car) -> bool:
            checks = [
                (car_filter.ids, car.id),
                (car_filter.reg_nums, car.reg_num),
                (car_filter.marks, car.mark),
                (car_filter.models, car.model),
                (car_filter.years, car.year),
            ]
            return all(not wanted or value in wanted for wanted, value in checks)

        found = [car for car in self.rows.values() if matches(car)]
        return found[car_filter.offset : car_filter.offset + car_filter.limit]

    def add_many(self, cars) -> list[str]:
        self.add_calls.append(list(cars))
        ids = []
        for car in cars:
            car_id = str(uuid.uuid4())
            self.rows[car_id] = Car(
                id=car_id, reg_num=car.reg_num, mark=car.mark, model=car.model, year=car.year
            )
            ids.append(car_id)
        return ids

    def update(self, patch: CarPatch) -> int:
        car = self.rows.get(patch.id)
        if car is None:
            return 0
        for column, value in patch.supplied().items():
            setattr(car, column, value)
        return 1

    def delete(self, car_id: str) -> int:
        return 1 if self.rows.pop(car_id, None) is not None else 0


class StubResolver:
    """
    Resolver returning canned cars.

    Registration numbers listed in ``failing`` raise UpstreamFailure; any
    other number resolves to a car whose mark and model derive from it.
    """

    def __init__(self, failing=(), delays=None):
        self.failing = set(failing)
        self.delays = delays or {}
        self.calls: list[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def close(self) -> None:
        self.closed = True

    def resolve(self, reg_num: str) -> Car:
        with self._lock:
            self.calls.append(reg_num)
        if reg_num in self.delays:
            self.delays[reg_num].wait(timeout=5)
        if reg_num in self.failing:
            raise UpstreamFailure(f"no info for {reg_num}", operation="resolve")
        return Car(reg_num=reg_num, mark=f"Mark-{reg_num}", model=f"Model-{reg_num}", year=2000)


class RecordingExecutor:
    """QueryExecutor that records queries and returns scripted results."""

    def __init__(self, rows=None, rowcount=1):
        self.rows = rows or []
        self.rowcount = rowcount
        self.queries: list[tuple[str, tuple]] = []

    def fetch_all(self, query, params=None):
        self.queries.append((query, params))
        return self.rows

    def execute(self, query, params=None):
        self.queries.append((query, params))
        return self.rowcount


# =============================================================================
# Unit Fixtures
# =============================================================================


@pytest.fixture
def logger() -> logging.Logger:
    """Provide a logger for services under test."""
    return logging.getLogger("carstore.test")


@pytest.fixture
def fake_repo() -> FakeCarRepository:
    return FakeCarRepository()


@pytest.fixture
def resolver() -> StubResolver:
    return StubResolver(failing={"BAD"})


@pytest.fixture
def car_service(fake_repo, resolver, logger):
    """Provide a CarService backed by fakes."""
    from carstore.car.service import CarService

    return CarService(fake_repo, resolver, logger, max_workers=4)


@pytest.fixture
def sample_cars(fake_repo) -> list[Car]:
    """Seed the fake repository with three cars."""
    cars = [
        Car(reg_num="X123XX150", mark="Lada", model="Vesta", year=2002),
        Car(reg_num="A777AA77", mark="Lada", model="Granta", year=2015),
        Car(reg_num="B001BB01", mark="Kia", model="Rio", year=None),
    ]
    for car, car_id in zip(cars, fake_repo.add_many(cars)):
        car.id = car_id
    fake_repo.add_calls.clear()
    return cars


# =============================================================================
# Flask App Fixtures
# =============================================================================


@pytest.fixture
def app(car_service, logger):
    """Create Flask application for testing."""
    from carstore.app import create_app

    app = create_app(service=car_service, logger=logger)
    app.config["TESTING"] = True

    return app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_db():
    """
    Migrate the test database once per test session.

    Skips when TEST_DATABASE_URL is unset or the server is unreachable.
    """
    test_db_url = os.environ.get("TEST_DATABASE_URL")
    if not test_db_url:
        pytest.skip("TEST_DATABASE_URL not set")

    try:
        with psycopg.connect(test_db_url, connect_timeout=3) as conn:
            with conn.cursor() as cur:
                cur.execute("DROP TABLE IF EXISTS cars, schema_migrations")
            conn.commit()
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL not reachable: {e}")

    from carstore.db import Database
    from carstore.migrate import apply_migrations

    apply_migrations(Database(test_db_url), MIGRATIONS_DIR)

    yield test_db_url


@pytest.fixture
def database(test_db):
    """Provide a Database for the test database."""
    from carstore.db import Database

    return Database(test_db)


@pytest.fixture
def db_connection(database):
    """
    Provide a database connection with transaction rollback.

    Each test runs in a transaction that is rolled back at the end,
    ensuring tests don't affect each other.
    """
    conn = psycopg.connect(database.database_url)

    with conn.cursor() as cur:
        cur.execute("TRUNCATE cars")
    conn.commit()

    # Start the outer transaction so nested transaction() blocks are savepoints
    conn.execute("SELECT 1")

    database.set_connection_override(conn)

    yield conn

    conn.rollback()
    database.clear_connection_override()
    conn.close()


@pytest.fixture
def car_repo(database, db_connection):
    """Provide a CarRepository on the test database."""
    from carstore.car.repository import CarRepository

    return CarRepository(database)
