"""
Shared fixtures: a fresh SQLite database per test, the registries over
it, and an app with a signed-in super admin.
"""

import pytest
from fastapi.testclient import TestClient

from cutshop.auth.users import UserRegistry
from cutshop.catalog.registry import ColorRegistry
from cutshop.config import Settings
from cutshop.jobs.registry import JobRegistry
from cutshop.main import create_app
from cutshop.persistence import PersistenceManager
from cutshop.sheets.store import SheetStatusStore

# Lowest cost bcrypt accepts; keeps hashing fast in tests
TEST_BCRYPT_ROUNDS = 4

ADMIN_USERNAME = "owner"
ADMIN_PASSWORD = "owner-pass"


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "cutshop.db")


@pytest.fixture
def persistence(db_path):
    return PersistenceManager(db_path=db_path)


@pytest.fixture
def store(persistence):
    return SheetStatusStore(persistence_manager=persistence)


@pytest.fixture
def job_registry(persistence):
    return JobRegistry(persistence_manager=persistence)


@pytest.fixture
def color_registry(persistence):
    return ColorRegistry(persistence_manager=persistence)


@pytest.fixture
def user_registry(persistence):
    return UserRegistry(persistence_manager=persistence, bcrypt_rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def color(color_registry):
    return color_registry.create_color("Arctic White", "#F5F5F5")


@pytest.fixture
def job(job_registry, color):
    """A job with one six-sheet material, all pending."""
    return job_registry.create_job("Acme Kitchens", "Island cabinets", [(color.id, 6)])


@pytest.fixture
def material(job):
    return job.materials[0]


@pytest.fixture
def app(db_path):
    settings = Settings(db_path=db_path, session_secret="test-secret", broadcast_queue_size=16)
    return create_app(settings, bcrypt_rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def client(app):
    """Anonymous test client."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_client(client):
    """Client signed in as the initial super admin."""
    assert client.post("/api/setup", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}).status_code == 200
    assert client.post("/api/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}).status_code == 200
    return client


@pytest.fixture
def api_color(admin_client):
    response = admin_client.post("/api/colors", json={"name": "Walnut", "hexColor": "#5C4033"})
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def api_job(admin_client, api_color):
    """A job created over HTTP with one six-sheet material."""
    response = admin_client.post("/api/jobs", json={
        "customerName": "Acme Kitchens",
        "jobName": "Island cabinets",
        "materials": [{"colorId": api_color["id"], "totalSheets": 6}],
    })
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def admin_credentials():
    return {"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}
