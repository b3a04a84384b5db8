import asyncio
import inspect
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-do-not-use-in-production")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_SECONDS", "900")
os.environ.setdefault("REFRESH_TOKEN_EXPIRE_DAYS", "10")
os.environ.setdefault("MAX_SESSIONS_PER_USER", "10")

import pytest  # noqa: E402
from beanie import init_beanie  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from mongomock_motor import AsyncMongoMockClient  # noqa: E402

import main as app_module  # noqa: E402


@pytest.fixture(autouse=True)
def database():
    """Give every test a fresh in-memory MongoDB bound to the Beanie models."""
    client = AsyncMongoMockClient()
    asyncio.run(
        init_beanie(
            database=client["diagram_editor_test"],
            document_models=app_module.DOCUMENT_MODELS,
        )
    )
    yield client
    app_module.app.dependency_overrides.clear()


@pytest.fixture
def client():
    """Create a test client for the API (the lifespan, and so the real database, is not started)."""
    return TestClient(app_module.app)


@pytest.fixture
def credentials():
    return {"email": "a@example.com", "password": "password1"}


@pytest.fixture
def signed_up(client, credentials):
    """Sign up the default user and return the signup response."""
    response = client.post("/users", json=credentials)
    assert response.status_code == 200
    return response


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as async")
