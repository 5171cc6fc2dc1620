"""
Unit tests for session store backends.

Tests cover:
- In-memory store semantics and testing helpers
- SQLite store upsert and clear
- S3 store with a mocked client
- REST store with a mocked HTTP transport
"""

import json
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from botocore.exceptions import ClientError

from session_vault.config import RestStoreConfig, S3Config
from session_vault.errors import StoreConnectionError, StoreError, StoreTimeoutError
from session_vault.store import (
    InMemorySessionStore,
    RestSessionStore,
    S3SessionStore,
    SessionStore,
    SqliteSessionStore,
)


class TestInMemorySessionStore:
    """Tests for InMemorySessionStore."""

    @pytest.fixture
    def store(self):
        return InMemorySessionStore()

    def test_implements_protocol(self, store):
        assert isinstance(store, SessionStore)

    @pytest.mark.asyncio
    async def test_requires_connection(self, store):
        with pytest.raises(StoreConnectionError):
            await store.get("acct_1")

    @pytest.mark.asyncio
    async def test_set_get_clear(self, store):
        await store.connect()

        assert await store.get("acct_1") is None

        await store.set("acct_1", "blob-1")
        assert await store.get("acct_1") == "blob-1"

        await store.clear("acct_1")
        assert await store.get("acct_1") is None
        assert store.get_clear_count("acct_1") == 1

    @pytest.mark.asyncio
    async def test_set_overwrites(self, store):
        await store.connect()

        await store.set("acct_1", "first")
        await store.set("acct_1", "second")

        assert await store.get("acct_1") == "second"
        assert store.get_write_count("acct_1") == 2
        assert store.account_ids() == ["acct_1"]

    @pytest.mark.asyncio
    async def test_accounts_are_isolated(self, store):
        await store.connect()

        await store.set("acct_1", "one")
        await store.set("acct_2", "two")
        await store.clear("acct_1")

        assert await store.get("acct_2") == "two"
        assert store.account_ids() == ["acct_2"]


class TestSqliteSessionStore:
    """Tests for SqliteSessionStore."""

    @pytest.fixture
    def db_path(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            yield str(Path(tmpdir) / "nested" / "sessions.db")

    @pytest.fixture
    def store(self, db_path):
        return SqliteSessionStore(db_path)

    def test_implements_protocol(self, store):
        assert isinstance(store, SessionStore)

    @pytest.mark.asyncio
    async def test_requires_connection(self, store):
        with pytest.raises(StoreConnectionError):
            await store.set("acct_1", "blob")

    @pytest.mark.asyncio
    async def test_connect_creates_database(self, store, db_path):
        await store.connect()

        assert store.is_connected
        assert Path(db_path).exists()

    @pytest.mark.asyncio
    async def test_set_get_clear(self, store):
        await store.connect()

        assert await store.get("acct_1") is None

        await store.set("acct_1", "blob-1")
        assert await store.get("acct_1") == "blob-1"

        await store.clear("acct_1")
        assert await store.get("acct_1") is None

    @pytest.mark.asyncio
    async def test_set_overwrites(self, store):
        await store.connect()

        await store.set("acct_1", "first")
        await store.set("acct_1", "second")

        assert await store.get("acct_1") == "second"

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, db_path):
        first = SqliteSessionStore(db_path)
        await first.connect()
        await first.set("acct_1", "durable")
        await first.close()

        second = SqliteSessionStore(db_path)
        await second.connect()

        assert await second.get("acct_1") == "durable"

    @pytest.mark.asyncio
    async def test_clear_missing_account(self, store):
        await store.connect()

        await store.clear("nobody")

        assert await store.get("nobody") is None


class TestS3SessionStore:
    """Tests for S3SessionStore with a mocked aiobotocore client."""

    @pytest.fixture
    def s3_client(self):
        return MagicMock(
            get_object=AsyncMock(),
            put_object=AsyncMock(),
            delete_object=AsyncMock(),
        )

    @pytest.fixture
    def store(self, s3_client, monkeypatch):
        ctx = MagicMock()
        ctx.__aenter__ = AsyncMock(return_value=s3_client)
        ctx.__aexit__ = AsyncMock(return_value=None)
        session = MagicMock()
        session.create_client.return_value = ctx
        monkeypatch.setattr("session_vault.store.s3.get_session", lambda: session)
        return S3SessionStore(S3Config(bucket="sessions", prefix="wa", timeout_seconds=1))

    def test_object_key(self, store):
        assert store.object_key("acct_1") == "wa/account=acct_1/session.b64"

    @pytest.mark.asyncio
    async def test_requires_connection(self, store):
        with pytest.raises(StoreConnectionError):
            await store.get("acct_1")

    @pytest.mark.asyncio
    async def test_set_puts_object(self, store, s3_client):
        await store.connect()

        await store.set("acct_1", "blob")

        s3_client.put_object.assert_awaited_once_with(
            Bucket="sessions",
            Key="wa/account=acct_1/session.b64",
            Body=b"blob",
            ContentType="text/plain",
        )

    @pytest.mark.asyncio
    async def test_get_reads_body(self, store, s3_client):
        body = MagicMock(read=AsyncMock(return_value=b"blob"))
        s3_client.get_object.return_value = {"Body": body}
        await store.connect()

        assert await store.get("acct_1") == "blob"

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store, s3_client):
        s3_client.get_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject"
        )
        await store.connect()

        assert await store.get("acct_1") is None

    @pytest.mark.asyncio
    async def test_get_other_error_raises(self, store, s3_client):
        s3_client.get_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "GetObject"
        )
        await store.connect()

        with pytest.raises(StoreError):
            await store.get("acct_1")

    @pytest.mark.asyncio
    async def test_clear_deletes_object(self, store, s3_client):
        await store.connect()

        await store.clear("acct_1")

        s3_client.delete_object.assert_awaited_once_with(
            Bucket="sessions", Key="wa/account=acct_1/session.b64"
        )

    @pytest.mark.asyncio
    async def test_close(self, store):
        await store.connect()
        assert store.is_connected

        await store.close()

        assert not store.is_connected


class TestRestSessionStore:
    """Tests for RestSessionStore with httpx.MockTransport."""

    @pytest.fixture
    def requests(self):
        return []

    @pytest.fixture
    def rows(self):
        return {}

    @pytest.fixture
    def store(self, requests, rows):
        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            account = request.url.params.get("id", "").removeprefix("eq.")
            if request.method == "GET":
                if account in rows:
                    return httpx.Response(200, json=[{"session_data": rows[account]}])
                return httpx.Response(200, json=[])
            body = json.loads(request.content)
            if request.method == "POST":
                rows[body["id"]] = body["session_data"]
                return httpx.Response(201)
            if request.method == "PATCH":
                if account in rows:
                    rows[account] = body["session_data"]
                return httpx.Response(204)
            return httpx.Response(405)

        config = RestStoreConfig(url="https://db.example.com/", api_key="secret")
        return RestSessionStore(config, transport=httpx.MockTransport(handler))

    def test_implements_protocol(self, store):
        assert isinstance(store, SessionStore)

    @pytest.mark.asyncio
    async def test_set_get_clear(self, store, rows):
        await store.connect()

        assert await store.get("acct_1") is None

        await store.set("acct_1", "blob")
        assert rows == {"acct_1": "blob"}
        assert await store.get("acct_1") == "blob"

        await store.clear("acct_1")
        assert await store.get("acct_1") is None

        await store.close()

    @pytest.mark.asyncio
    async def test_request_shape(self, store, requests):
        await store.connect()

        await store.set("acct_1", "blob")
        await store.get("acct_1")

        post, get = requests
        assert post.url.path == "/rest/v1/whatsapp_accounts"
        assert post.url.params["on_conflict"] == "id"
        assert "merge-duplicates" in post.headers["Prefer"]
        assert post.headers["apikey"] == "secret"
        assert post.headers["Authorization"] == "Bearer secret"
        assert get.url.params["id"] == "eq.acct_1"
        assert get.url.params["select"] == "session_data"

    @pytest.mark.asyncio
    async def test_http_error_raises_store_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        store = RestSessionStore(RestStoreConfig(url="https://db.example.com"), transport=transport)
        await store.connect()

        with pytest.raises(StoreError) as exc_info:
            await store.get("acct_1")

        assert exc_info.value.details["status_code"] == 500

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"session_data": "blob"}, 42, ["blob"]])
    async def test_unexpected_body_raises_store_error(self, body):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
        store = RestSessionStore(RestStoreConfig(url="https://db.example.com"), transport=transport)
        await store.connect()

        with pytest.raises(StoreError):
            await store.get("acct_1")

    @pytest.mark.asyncio
    async def test_transport_error_raises_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        store = RestSessionStore(
            RestStoreConfig(url="https://db.example.com"), transport=httpx.MockTransport(handler)
        )
        await store.connect()

        with pytest.raises(StoreConnectionError):
            await store.set("acct_1", "blob")

    @pytest.mark.asyncio
    async def test_timeout_raises_timeout_error(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        store = RestSessionStore(
            RestStoreConfig(url="https://db.example.com"), transport=httpx.MockTransport(handler)
        )
        await store.connect()

        with pytest.raises(StoreTimeoutError):
            await store.get("acct_1")

    @pytest.mark.asyncio
    async def test_connect_requires_url(self):
        store = RestSessionStore(RestStoreConfig(url=None))

        with pytest.raises(StoreConnectionError):
            await store.connect()
