"""Shared pytest fixtures for s3console tests.

A single FastAPI app is created per test session to avoid duplicate
Prometheus metric registration errors (the instrumentator registers
collectors in the global prometheus_client registry).

The credential resolver and the S3 client factory are put on app.state
directly instead of running the lifespan. The default store is an
in-memory fake that speaks the subset of the aiobotocore S3 client API
the handlers use; tests that need call-level control swap in an
``AsyncMock`` client.
"""

import io
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError, WaiterError
from httpx import ASGITransport, AsyncClient

from s3console.config import (
    AuthConfig,
    ConsoleConfig,
    ServerConfig,
    StoreConfig,
)
from s3console.errors import AuthLookupError
from s3console.models import Credentials
from s3console.server import create_app


def client_error(code: str, message: str = "error", operation: str = "TestOperation") -> ClientError:
    """Create a botocore ClientError with the given error code."""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeResolver:
    """Credential resolver that records lookups and can be told to fail."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[str] = []

    async def resolve(self, user_id: str) -> Credentials:
        self.calls.append(user_id)
        if self.fail or not user_id:
            raise AuthLookupError()
        return Credentials(access_key=f"ak-{user_id}", secret_key=f"sk-{user_id}")


class FakeClientFactory:
    """Client factory handing out one shared fake client.

    Counts opened and closed client contexts so tests can check that every
    exit path releases the client.
    """

    def __init__(self, s3) -> None:
        self.s3 = s3
        self.credentials: list[Credentials] = []
        self.opened = 0
        self.closed = 0

    @asynccontextmanager
    async def client(self, credentials: Credentials):
        self.credentials.append(credentials)
        self.opened += 1
        try:
            yield self.s3
        finally:
            self.closed += 1


class FakeBody:
    """Async streaming body like aiobotocore's StreamingBody."""

    def __init__(self, data: bytes) -> None:
        self._buf = io.BytesIO(data)
        self.closed = False

    async def read(self, amt: int = -1) -> bytes:
        return self._buf.read(amt)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True
        return False


class _BucketNotExistsWaiter:
    def __init__(self, store: "InMemoryS3") -> None:
        self._store = store

    async def wait(self, Bucket: str, WaiterConfig: dict | None = None) -> None:
        if Bucket in self._store.buckets:
            raise WaiterError(
                name="BucketNotExists",
                reason="Max attempts exceeded",
                last_response={},
            )


class InMemoryS3:
    """A tiny in-memory S3 stand-in for round-trip tests."""

    def __init__(self) -> None:
        self.buckets: dict[str, dict] = {}
        self.bodies: list[FakeBody] = []

    def _bucket(self, name: str, operation: str) -> dict:
        if name not in self.buckets:
            raise client_error("NoSuchBucket", "The specified bucket does not exist", operation)
        return self.buckets[name]

    async def list_buckets(self) -> dict:
        return {
            "Buckets": [
                {"Name": name, "CreationDate": b["created"]}
                for name, b in sorted(self.buckets.items())
            ]
        }

    async def create_bucket(self, Bucket: str) -> dict:
        if Bucket not in self.buckets:
            self.buckets[Bucket] = {"created": datetime.now(timezone.utc), "objects": {}}
        return {"Location": f"/{Bucket}"}

    async def delete_bucket(self, Bucket: str) -> dict:
        bucket = self._bucket(Bucket, "DeleteBucket")
        if bucket["objects"]:
            raise client_error("BucketNotEmpty", "The bucket is not empty", "DeleteBucket")
        del self.buckets[Bucket]
        return {}

    def get_waiter(self, name: str) -> _BucketNotExistsWaiter:
        assert name == "bucket_not_exists"
        return _BucketNotExistsWaiter(self)

    async def put_object(self, Bucket: str, Key: str, Body=b"", **kwargs) -> dict:
        bucket = self._bucket(Bucket, "PutObject")
        data = Body if isinstance(Body, bytes) else Body.read()
        bucket["objects"][Key] = {
            "data": data,
            "modified": datetime.now(timezone.utc),
        }
        return {"ETag": '"fake-etag"'}

    async def head_object(self, Bucket: str, Key: str) -> dict:
        bucket = self._bucket(Bucket, "HeadObject")
        if Key not in bucket["objects"]:
            raise client_error("404", "Not Found", "HeadObject")
        return {"ContentLength": len(bucket["objects"][Key]["data"])}

    async def get_object(self, Bucket: str, Key: str) -> dict:
        bucket = self._bucket(Bucket, "GetObject")
        if Key not in bucket["objects"]:
            raise client_error("NoSuchKey", "The specified key does not exist", "GetObject")
        body = FakeBody(bucket["objects"][Key]["data"])
        self.bodies.append(body)
        return {"Body": body, "ContentLength": len(bucket["objects"][Key]["data"])}

    async def delete_object(self, Bucket: str, Key: str) -> dict:
        self._bucket(Bucket, "DeleteObject")["objects"].pop(Key, None)
        return {}

    async def list_objects_v2(
        self,
        Bucket: str,
        MaxKeys: int = 1000,
        Delimiter: str = "",
        Prefix: str = "",
        StartAfter: str = "",
        ContinuationToken: str = "",
        FetchOwner: bool = False,
    ) -> dict:
        objects = self._bucket(Bucket, "ListObjectsV2")["objects"]
        cursor = max(StartAfter, ContinuationToken)

        entries: list[tuple[str, str]] = []
        seen: set[str] = set()
        for key in sorted(objects):
            if not key.startswith(Prefix) or key <= cursor:
                continue
            rest = key[len(Prefix):]
            if Delimiter and Delimiter in rest:
                prefix = Prefix + rest[: rest.index(Delimiter) + len(Delimiter)]
                if prefix in seen or prefix <= cursor:
                    continue
                seen.add(prefix)
                entries.append(("prefix", prefix))
            else:
                entries.append(("key", key))

        page = entries[:MaxKeys]
        truncated = len(entries) > MaxKeys

        contents = []
        for kind, key in page:
            if kind != "key":
                continue
            entry = {
                "Key": key,
                "Size": len(objects[key]["data"]),
                "StorageClass": "STANDARD",
                "LastModified": objects[key]["modified"],
            }
            if FetchOwner:
                entry["Owner"] = {"ID": "owner-id", "DisplayName": "alice"}
            contents.append(entry)

        output = {
            "KeyCount": len(page),
            "IsTruncated": truncated,
            "Contents": contents,
            "CommonPrefixes": [{"Prefix": p} for kind, p in page if kind == "prefix"],
        }
        if StartAfter:
            output["StartAfter"] = StartAfter
        if truncated and page:
            kind, last = page[-1]
            # A prefix token must sort after every key under that prefix
            output["NextContinuationToken"] = last + "\U0010ffff" if kind == "prefix" else last
        return output


def make_s3_mock() -> AsyncMock:
    """Create an AsyncMock S3 client whose delete-bucket waiter succeeds."""
    s3 = AsyncMock()
    waiter = MagicMock()
    waiter.wait = AsyncMock(return_value=None)
    s3.get_waiter = MagicMock(return_value=waiter)
    return s3


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def config() -> ConsoleConfig:
    """Create a test ConsoleConfig with a short delete wait."""
    return ConsoleConfig(
        server=ServerConfig(host="127.0.0.1", port=8510),
        auth=AuthConfig(mode="service", url="http://auth.test", console_id="console"),
        store=StoreConfig(
            region="cfs_default",
            endpoint="http://store.test",
            delete_wait_delay=0,
            delete_wait_attempts=1,
        ),
    )


@pytest.fixture(scope="session")
def app(config: ConsoleConfig):
    """Create a single test FastAPI application for the whole session."""
    return create_app(config)


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def store() -> InMemoryS3:
    return InMemoryS3()


@pytest.fixture
def clients(store: InMemoryS3) -> FakeClientFactory:
    return FakeClientFactory(store)


@pytest.fixture
async def client(app, resolver, clients) -> AsyncClient:
    """Create an async test client with the fakes wired onto app.state."""
    app.state.resolver = resolver
    app.state.clients = clients

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def s3() -> AsyncMock:
    return make_s3_mock()


@pytest.fixture
async def mock_client(app, resolver, s3):
    """Like ``client`` but backed by an AsyncMock S3 client.

    Yields ``(http_client, factory)`` so tests can inspect both.
    """
    factory = FakeClientFactory(s3)
    app.state.resolver = resolver
    app.state.clients = factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac, factory
