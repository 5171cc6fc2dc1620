"""
S3 session store.

Each account's blob is one object:
    s3://<bucket>/<prefix>/account=<id>/session.b64

Invariants:
    - put_object replaces the previous object atomically
    - A missing object reads as None
    - Every call is bounded by S3Config.timeout_seconds
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from aiobotocore.session import get_session
from botocore.exceptions import BotoCoreError, ClientError

from ..config import S3Config
from ..errors import StoreConnectionError, StoreError, StoreTimeoutError

logger = logging.getLogger(__name__)

_MISSING_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


class S3SessionStore:
    """SessionStore backed by one S3 object per account.

    Example:
        >>> store = S3SessionStore(S3Config(bucket="sessions"))
        >>> await store.connect()
        >>> await store.set("acct_1", blob)
        >>> await store.close()
    """

    def __init__(self, s3_config: S3Config) -> None:
        self.s3_config = s3_config
        self._session = None
        self._s3_ctx: Any = None
        self._s3_client: Any = None

    @property
    def is_connected(self) -> bool:
        return self._s3_client is not None

    def object_key(self, account_id: str) -> str:
        """S3 key holding the blob of an account."""
        return f"{self.s3_config.prefix}/account={account_id}/session.b64"

    async def connect(self) -> None:
        """Initialize S3 client."""
        if self._s3_client:
            return

        self._session = get_session()

        client_kwargs = {
            "region_name": self.s3_config.region,
        }

        if self.s3_config.endpoint_url:
            client_kwargs["endpoint_url"] = self.s3_config.endpoint_url

        if self.s3_config.access_key_id:
            client_kwargs["aws_access_key_id"] = self.s3_config.access_key_id
            client_kwargs["aws_secret_access_key"] = self.s3_config.secret_access_key

        try:
            self._s3_ctx = self._session.create_client("s3", **client_kwargs)
            self._s3_client = await self._s3_ctx.__aenter__()
        except (BotoCoreError, ClientError) as e:
            self._s3_ctx = None
            raise StoreConnectionError(f"Cannot create S3 client: {e}", bucket=self.s3_config.bucket)

        logger.info(
            "S3 session store connected",
            extra={"bucket": self.s3_config.bucket, "prefix": self.s3_config.prefix},
        )

    async def close(self) -> None:
        """Close S3 client."""
        if self._s3_client:
            await self._s3_ctx.__aexit__(None, None, None)
            self._s3_client = None
            self._s3_ctx = None

    async def _call(self, operation: str, account_id: str, **kwargs: Any) -> Any:
        if not self._s3_client:
            raise StoreConnectionError("Not connected", bucket=self.s3_config.bucket)

        method = getattr(self._s3_client, operation)
        try:
            return await asyncio.wait_for(
                method(Bucket=self.s3_config.bucket, Key=self.object_key(account_id), **kwargs),
                timeout=self.s3_config.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise StoreTimeoutError(
                f"S3 {operation} timed out for {account_id}",
                timeout_seconds=self.s3_config.timeout_seconds,
            )

    async def get(self, account_id: str) -> Optional[str]:
        try:
            response = await self._call("get_object", account_id)
            content = await response["Body"].read()
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return None
            raise StoreError(f"Failed to read session from S3: {e}", account_id=account_id)
        except BotoCoreError as e:
            raise StoreConnectionError(f"S3 unavailable: {e}", account_id=account_id)

        return content.decode("utf-8")

    async def set(self, account_id: str, blob: str) -> None:
        try:
            await self._call(
                "put_object",
                account_id,
                Body=blob.encode("utf-8"),
                ContentType="text/plain",
            )
        except ClientError as e:
            raise StoreError(f"Failed to save session to S3: {e}", account_id=account_id)
        except BotoCoreError as e:
            raise StoreConnectionError(f"S3 unavailable: {e}", account_id=account_id)

        logger.debug(
            "Session uploaded",
            extra={"account_id": account_id, "s3_key": self.object_key(account_id)},
        )

    async def clear(self, account_id: str) -> None:
        try:
            await self._call("delete_object", account_id)
        except ClientError as e:
            raise StoreError(f"Failed to clear session in S3: {e}", account_id=account_id)
        except BotoCoreError as e:
            raise StoreConnectionError(f"S3 unavailable: {e}", account_id=account_id)
