"""
REST session store.

Keeps the blob in a column of a hosted Postgres table reached through a
PostgREST-style API (``<url>/rest/v1/<table>``), one row per account:

    GET    ?<id>=eq.<account>&select=<data>       read
    POST   (upsert, merge duplicates)             write
    PATCH  ?<id>=eq.<account>  {<data>: null}     clear

Invariants:
    - HTTP error statuses raise StoreError
    - Transport failures raise StoreConnectionError
    - Timeouts raise StoreTimeoutError
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..config import RestStoreConfig
from ..errors import StoreConnectionError, StoreError, StoreTimeoutError

logger = logging.getLogger(__name__)


class RestSessionStore:
    """SessionStore backed by a table behind a PostgREST-style API.

    Example:
        >>> store = RestSessionStore(RestStoreConfig(url="https://db.example.com", api_key="..."))
        >>> await store.connect()
        >>> blob = await store.get("acct_1")
    """

    def __init__(
        self,
        config: RestStoreConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the store.

        Args:
            config: REST store configuration
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        if self._client:
            return
        if not self.config.url:
            raise StoreConnectionError("REST store URL is not configured")

        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["apikey"] = self.config.api_key
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        self._client = httpx.AsyncClient(
            base_url=f"{self.config.url.rstrip('/')}/rest/v1",
            headers=headers,
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        )
        logger.info("REST session store connected", extra={"table": self.config.table})

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, account_id: str, **kwargs: Any) -> httpx.Response:
        if not self._client:
            raise StoreConnectionError("Not connected")

        try:
            response = await self._client.request(method, f"/{self.config.table}", **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException:
            raise StoreTimeoutError(
                f"REST {method} timed out for {account_id}",
                timeout_seconds=self.config.timeout_seconds,
            )
        except httpx.HTTPStatusError as e:
            raise StoreError(
                f"REST {method} failed: {e.response.status_code}",
                account_id=account_id,
                status_code=e.response.status_code,
            )
        except httpx.TransportError as e:
            raise StoreConnectionError(f"REST store unavailable: {e}", account_id=account_id)

        return response

    def _match(self, account_id: str) -> dict[str, str]:
        return {self.config.id_column: f"eq.{account_id}"}

    async def get(self, account_id: str) -> Optional[str]:
        params = self._match(account_id)
        params["select"] = self.config.data_column
        response = await self._request("GET", account_id, params=params)

        try:
            rows = response.json()
        except ValueError as e:
            raise StoreError(f"REST store returned invalid JSON: {e}", account_id=account_id)

        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise StoreError(
                "REST store returned an unexpected response shape", account_id=account_id
            )
        if not rows:
            return None
        return rows[0].get(self.config.data_column)

    async def set(self, account_id: str, blob: str) -> None:
        await self._request(
            "POST",
            account_id,
            params={"on_conflict": self.config.id_column},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
            json={self.config.id_column: account_id, self.config.data_column: blob},
        )

    async def clear(self, account_id: str) -> None:
        await self._request(
            "PATCH",
            account_id,
            params=self._match(account_id),
            headers={"Prefer": "return=minimal"},
            json={self.config.data_column: None},
        )
