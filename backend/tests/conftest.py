"""
Test configuration and fixtures.
Storage is an in-memory bucket; no network or credentials are needed.
"""
import os

# Set test environment before any imports
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("R2_PUBLIC_URL", None)

import threading
import time
from datetime import datetime, timezone
from typing import AsyncGenerator, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlencode, urlparse

import httpx
import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from filemanager.config import Settings
from filemanager.errors import ObjectNotFound, StorageError
from filemanager.models.stored_object import StoredObject

STORAGE_HOST = "storage.test"
PUBLIC_URL = "https://files.example.com"


class FakeStorage:
    """
    In-memory stand-in for R2Client.

    Presigned URLs point at STORAGE_HOST and carry their issue time and
    lifetime; handle_put() honours both, like real presigned PUTs.
    Failures are injected per operation through fail_next.
    """

    def __init__(self, bucket: str = "test-bucket", presign_expiration: int = 60):
        self.bucket = bucket
        self.presign_expiration = presign_expiration
        self.objects: Dict[str, Tuple[bytes, str, datetime]] = {}
        self.calls: List[Tuple[str, Optional[str]]] = []
        # operation -> number of upcoming calls that fail
        self.fail_next: Dict[str, int] = {}
        # seconds to sleep between a copy and returning, to widen rename races
        self.copy_delay = 0.0
        self.clock: Callable[[], float] = time.time
        self._signed_types: Dict[str, str] = {}
        self._lock = threading.Lock()

    def _record(self, operation: str, key: Optional[str]) -> None:
        self.calls.append((operation, key))
        remaining = self.fail_next.get(operation, 0)
        if remaining:
            self.fail_next[operation] = remaining - 1
            raise StorageError(operation, key or "", "injected failure")

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        with self._lock:
            self.objects[key] = (data, content_type, datetime.now(timezone.utc))

    def public_url(self, object_key: str) -> str:
        return f"{PUBLIC_URL}/{object_key}"

    def list_objects(self) -> List[StoredObject]:
        with self._lock:
            self._record("list", None)
            return [
                StoredObject(key=key, size=len(data), last_modified=modified, public_url=self.public_url(key))
                for key, (data, _, modified) in sorted(self.objects.items())
            ]

    def generate_presigned_upload_url(self, object_key: str, content_type: str,
                                      expiration: Optional[int] = None) -> str:
        with self._lock:
            self._record("presign", object_key)
            expiration = self.presign_expiration if expiration is None else expiration
            query = urlencode({"X-Amz-Expires": expiration, "issued": self.clock()})
            url = f"https://{STORAGE_HOST}/{self.bucket}/{object_key}?{query}"
            self._signed_types[url] = content_type
            return url

    def delete_object(self, object_key: str) -> None:
        with self._lock:
            self._record("delete", object_key)
            self.objects.pop(object_key, None)

    def copy_object(self, source_key: str, dest_key: str) -> None:
        with self._lock:
            self._record("copy", source_key)
            if source_key not in self.objects:
                raise ObjectNotFound("copy", source_key, "not found (NoSuchKey)")
            data, content_type, _ = self.objects[source_key]
            self.objects[dest_key] = (data, content_type, datetime.now(timezone.utc))
        if self.copy_delay:
            time.sleep(self.copy_delay)

    def check_bucket(self) -> None:
        with self._lock:
            self._record("head_bucket", None)

    def handle_put(self, request: httpx.Request) -> httpx.Response:
        """Serve a PUT against a presigned URL."""
        if request.method != "PUT":
            return httpx.Response(405, request=request)
        url = str(request.url)
        params = parse_qs(urlparse(url).query)
        issued = float(params["issued"][0])
        expires = int(params["X-Amz-Expires"][0])
        if self.clock() > issued + expires:
            return httpx.Response(403, request=request, text="Request has expired")
        if request.headers.get("Content-Type") != self._signed_types.get(url):
            return httpx.Response(403, request=request, text="SignatureDoesNotMatch")

        key = urlparse(url).path.split("/", 2)[2]
        self.put(key, request.content, request.headers["Content-Type"])
        return httpx.Response(200, request=request)

    def storage_calls(self) -> List[Tuple[str, Optional[str]]]:
        return [call for call in self.calls if call[0] != "head_bucket"]


class BucketTransport(httpx.AsyncBaseTransport):
    """Routes storage-host requests to FakeStorage and the rest to the app."""

    def __init__(self, app: FastAPI, storage: FakeStorage):
        self._api = ASGITransport(app=app)
        self._storage = storage

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == STORAGE_HOST:
            await request.aread()
            return self._storage.handle_put(request)
        return await self._api.handle_async_request(request)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        r2_endpoint="https://account.r2.example.com",
        r2_access_key="test-access-key",
        r2_secret_key="test-secret-key",
        r2_bucket="test-bucket",
        r2_public_url=PUBLIC_URL,
        rename_delete_attempts=3,
    )


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def test_app(test_settings: Settings, storage: FakeStorage) -> FastAPI:
    """Create a test FastAPI app with the storage dependency overridden."""
    from filemanager.main import create_app
    from filemanager.api.dependencies import get_storage

    app = create_app(test_settings)
    app.dependency_overrides[get_storage] = lambda: storage
    return app


@pytest.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    test_app.dependency_overrides.clear()


@pytest.fixture
async def bucket_http(test_app: FastAPI, storage: FakeStorage) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client reaching both the API and the fake storage host."""
    async with AsyncClient(transport=BucketTransport(test_app, storage), base_url="http://test") as ac:
        yield ac
