"""In-memory stand-ins for the auth service, object store and metadata store.

Each records the calls it receives and can be told to fail a named
operation via ``fail_on``.
"""
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from filevault.services.auth_client import SIGNED_OUT
from filevault.services.errors import AuthServiceError, MetadataStoreError, ObjectStoreError
from filevault.services.metadata_store import MetadataStore
from filevault.services.models import AuthSession, FileItem, FolderItem, Identity
from filevault.services.object_store import ObjectStore

EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)

ALICE = Identity(id="user-alice", email="alice@example.com")
BOB = Identity(id="user-bob", email="bob@example.com")


class InMemoryObjectStore(ObjectStore):
    def __init__(self):
        self.objects: Dict[str, Tuple[bytes, str]] = {}
        self.fail_on: Set[str] = set()
        self.calls: List[Tuple[str, Any]] = []

    def _maybe_fail(self, op: str, arg: Any) -> None:
        self.calls.append((op, arg))
        if op in self.fail_on:
            raise ObjectStoreError(f"injected {op} failure")

    async def put(self, key, data, content_type="application/octet-stream", cache_control="3600", upsert=False):
        self._maybe_fail("put", key)
        if key in self.objects and not upsert:
            raise ObjectStoreError("The resource already exists", status=409)
        self.objects[key] = (bytes(data), content_type)

    async def get(self, key):
        self._maybe_fail("get", key)
        if key not in self.objects:
            raise ObjectStoreError("Object not found", status=404)
        return self.objects[key][0]

    async def remove(self, keys):
        self._maybe_fail("remove", list(keys))
        for key in keys:
            self.objects.pop(key, None)

    async def create_signed_url(self, key, expires_in):
        self._maybe_fail("create_signed_url", key)
        return f"https://signed.example/{key}?ttl={expires_in}"


class InMemoryMetadataStore(MetadataStore):
    """Orders like the SQL store: created_at desc, then insertion order desc.

    ``clock`` supplies created_at; by default each insert is one second newer.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.files: List[FileItem] = []
        self.folders: List[FolderItem] = []
        self.fail_on: Set[str] = set()
        self.calls: List[Tuple[str, Any]] = []
        self._ids = itertools.count(1)
        self._ticks = itertools.count(1)
        self.clock = clock or (lambda: EPOCH + timedelta(seconds=next(self._ticks)))

    def _maybe_fail(self, op: str, arg: Any) -> None:
        self.calls.append((op, arg))
        if op in self.fail_on:
            raise MetadataStoreError(f"injected {op} failure")

    async def list_files(self, user_id):
        self._maybe_fail("list_files", user_id)
        owned = [f for f in self.files if f.user_id == user_id]
        return sorted(owned, key=lambda f: (f.created_at, f.id), reverse=True)

    async def list_folders(self, user_id):
        self._maybe_fail("list_folders", user_id)
        owned = [f for f in self.folders if f.user_id == user_id]
        return sorted(owned, key=lambda f: (f.created_at, f.id), reverse=True)

    async def get_file(self, user_id, file_id):
        self._maybe_fail("get_file", file_id)
        for f in self.files:
            if f.id == file_id and f.user_id == user_id:
                return f
        return None

    async def insert_file(self, row):
        self._maybe_fail("insert_file", row)
        item = FileItem(id=next(self._ids), created_at=self.clock(), **row)
        self.files.append(item)
        return item

    async def delete_file(self, file_id):
        self._maybe_fail("delete_file", file_id)
        self.files = [f for f in self.files if f.id != file_id]

    def add_folder(self, user_id: str, name: str) -> FolderItem:
        folder = FolderItem(id=next(self._ids), user_id=user_id, name=name, created_at=self.clock())
        self.folders.append(folder)
        return folder


class FakeAuthClient:
    """Accounts are ``email -> (password, user_id, confirmed)``."""

    def __init__(self):
        self.accounts: Dict[str, Tuple[str, str, bool]] = {}
        self.tokens: Dict[str, Identity] = {}
        self.calls: List[Tuple[str, Any]] = []
        self.fail_sign_out = False
        self._listeners: List[Callable[[str, Optional[Identity]], Any]] = []

    def on_auth_state_change(self, callback):
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback)

    def add_account(self, email: str, password: str, user_id: str, confirmed: bool = True) -> str:
        self.accounts[email] = (password, user_id, confirmed)
        token = f"token-{user_id}"
        if confirmed:
            self.tokens[token] = Identity(id=user_id, email=email)
        return token

    async def sign_in_with_password(self, email, password):
        self.calls.append(("sign_in", email))
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise AuthServiceError("Invalid login credentials", status=400)
        if not account[2]:
            raise AuthServiceError("Email not confirmed", status=400)
        identity = Identity(id=account[1], email=email)
        token = f"token-{account[1]}"
        self.tokens[token] = identity
        return AuthSession(access_token=token, identity=identity, refresh_token="refresh", expires_in=3600)

    async def sign_up(self, email, password):
        self.calls.append(("sign_up", email))
        if email in self.accounts:
            raise AuthServiceError("User already registered", status=422)
        user_id = f"user-{len(self.accounts) + 1}"
        self.accounts[email] = (password, user_id, False)
        return Identity(id=user_id, email=email)

    async def sign_out(self, access_token, identity=None):
        self.calls.append(("sign_out", access_token))
        if self.fail_sign_out:
            raise AuthServiceError("Session not found", status=404)
        self.tokens.pop(access_token, None)
        for listener in list(self._listeners):
            listener(SIGNED_OUT, identity)

    async def get_user(self, access_token):
        self.calls.append(("get_user", access_token))
        if access_token not in self.tokens:
            raise AuthServiceError("invalid JWT", status=401)
        return self.tokens[access_token]

    async def close(self):
        pass
