"""Shared plumbing for console request handlers."""

import logging
from contextlib import AbstractAsyncContextManager

from fastapi import FastAPI, Request

from s3console.auth import CredentialResolver, user_id_from_request
from s3console.config import ConsoleConfig
from s3console.errors import UpstreamError
from s3console.logging_config import bind_user
from s3console.store import S3ClientFactory

logger = logging.getLogger(__name__)


class ConsoleHandler:
    """Base class for console handlers.

    All handlers access the config, the credential resolver and the client
    factory from ``app.state``.

    Attributes:
        app: The parent FastAPI application.
    """

    def __init__(self, app: FastAPI) -> None:
        """Initialize the handler.

        Args:
            app: The FastAPI application instance.
        """
        self.app = app

    @property
    def config(self) -> ConsoleConfig:
        """Shortcut to the ConsoleConfig on app.state."""
        return self.app.state.config

    @property
    def resolver(self) -> CredentialResolver:
        """Shortcut to the credential resolver on app.state."""
        return self.app.state.resolver

    @property
    def clients(self) -> S3ClientFactory:
        """Shortcut to the S3 client factory on app.state."""
        return self.app.state.clients

    async def open_client(self, request: Request) -> AbstractAsyncContextManager:
        """Resolve the caller's credentials and return an S3 client context.

        Raises:
            AuthLookupError: If the caller's credentials cannot be resolved.
        """
        user_id = user_id_from_request(request)
        request.state.user_id = user_id
        bind_user(user_id)
        credentials = await self.resolver.resolve(user_id)
        return self.clients.client(credentials)

    @staticmethod
    def upstream_failure(message: str, detail: str, exc: Exception) -> UpstreamError:
        """Log a failed store call and build the user-facing error.

        Args:
            message: Static message shown to the console user.
            detail: What was attempted, for the log.
            exc: The SDK exception.
        """
        logger.error("%s failed cause: %s", detail, exc)
        return UpstreamError(message)
