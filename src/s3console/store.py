"""Object store client factory for s3console.

Builds aiobotocore S3 clients bound to the deployment's region and endpoint
and to the key pair resolved for the current request. One ``AioSession`` is
shared by the application; each request opens and closes its own client.
"""

from contextlib import AbstractAsyncContextManager
from typing import Any

from aiobotocore.session import AioSession
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from s3console.config import StoreConfig
from s3console.models import Credentials

# Exceptions raised by the SDK for a failed store call
STORE_ERRORS = (ClientError, BotoCoreError)

# Error codes the store uses for a missing key on GET/HEAD
NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def error_code(exc: Exception) -> str:
    """Return the S3 error code of a ``ClientError`` ("" for anything else)."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code", "")
    return ""


class S3ClientFactory:
    """Creates per-request S3 clients.

    Attributes:
        region: The store region name.
        endpoint: The store endpoint URL, scheme included ("" for the SDK default).
        force_path_style: Whether to address buckets as ``endpoint/bucket``.
        use_tls: Whether to talk HTTPS to the store.
    """

    def __init__(self, config: StoreConfig, session: AioSession | None = None) -> None:
        self.region = config.region
        self.use_tls = config.use_tls
        self.endpoint = config.endpoint
        self.force_path_style = config.force_path_style
        self._session = session or AioSession()

    def client_kwargs(self, credentials: Credentials) -> dict[str, Any]:
        """Build ``create_client`` keyword arguments for one key pair."""
        kwargs: dict[str, Any] = {
            "region_name": self.region,
            "use_ssl": self.use_tls,
            "aws_access_key_id": credentials.access_key,
            "aws_secret_access_key": credentials.secret_key,
        }
        if self.endpoint:
            kwargs["endpoint_url"] = self.endpoint
        if self.force_path_style:
            kwargs["config"] = BotoConfig(s3={"addressing_style": "path"})
        return kwargs

    def client(self, credentials: Credentials) -> AbstractAsyncContextManager:
        """Return an async context manager yielding an S3 client.

        Usage::

            async with factory.client(credentials) as s3:
                await s3.list_buckets()
        """
        return self._session.create_client("s3", **self.client_kwargs(credentials))
