# tests/conftest.py
from contextlib import asynccontextmanager

import httpx
import pytest
import pytest_asyncio

from shared.config import config
from backend.dependencies import (
    get_local_store, get_remote_factory, get_remote_repository, get_seed_comments
)
from backend.main import app
from backend.services.local_store import LocalStore
from backend.services.repository import LocalRepository
from tests.factories import FakeCache, FakeRemoteRepository


@pytest.fixture
def remote():
    return FakeRemoteRepository()


@pytest.fixture
def cache():
    return FakeCache()


@pytest.fixture
def store(cache):
    return LocalStore(cache)


@pytest.fixture
def local(store):
    return LocalRepository(store)


@pytest.fixture
def seeds():
    return {}


@pytest.fixture
def admin_headers():
    return {"X-Admin-Password": config.ADMIN_PASSWORD}


@pytest_asyncio.fixture
async def client(remote, store, seeds):
    @asynccontextmanager
    async def factory():
        yield remote

    app.dependency_overrides[get_remote_repository] = lambda: remote
    app.dependency_overrides[get_local_store] = lambda: store
    app.dependency_overrides[get_remote_factory] = lambda: factory
    app.dependency_overrides[get_seed_comments] = lambda: seeds

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
