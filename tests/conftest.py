import pytest
from fastapi.testclient import TestClient

from filevault.dependencies import (
    forget_on_sign_out,
    get_auth_client,
    get_metadata_store,
    get_object_store,
    get_registry,
)
from filevault.main import app
from filevault.services.file_manager import FileManager, FileManagerRegistry
from tests.fixtures.fakes import ALICE, FakeAuthClient, InMemoryMetadataStore, InMemoryObjectStore


@pytest.fixture
def object_store():
    return InMemoryObjectStore()


@pytest.fixture
def metadata_store():
    return InMemoryMetadataStore()


@pytest.fixture
def auth_client():
    return FakeAuthClient()


@pytest.fixture
def file_manager(object_store, metadata_store, auth_client):
    return FileManager(ALICE, object_store, metadata_store, auth_client)


@pytest.fixture
def registry():
    return FileManagerRegistry()


@pytest.fixture
def client(object_store, metadata_store, auth_client, registry):
    """TestClient wired to the fakes. Lifespan is not run, so no database is touched;
    the sign-out listener it would register is wired here instead."""
    stop_watching = forget_on_sign_out(auth_client, registry)
    app.dependency_overrides[get_object_store] = lambda: object_store
    app.dependency_overrides[get_metadata_store] = lambda: metadata_store
    app.dependency_overrides[get_auth_client] = lambda: auth_client
    app.dependency_overrides[get_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()
    stop_watching()


@pytest.fixture
def alice_headers(auth_client):
    token = auth_client.add_account(ALICE.email, "correct horse", ALICE.id)
    return {"Authorization": f"Bearer {token}"}
