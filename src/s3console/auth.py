"""Per-request credential resolution for s3console.

The console never holds object store keys of its own. For every request it
asks the auth node for the capabilities of the calling user and receives a
scoped access/secret key pair in return:

    POST {auth.url}/admin/getcaps
    {"id": <console id>, "key": <console key>, "userId": <user id>}

    -> {"code": 0, "msg": "success",
        "data": {"access_key": "...", "secret_key": "..."}}

Any transport failure, non-2xx status, non-zero ``code`` or malformed reply
is a failed lookup. Nothing is retried or cached.
"""

import logging
from typing import Protocol

import httpx
from fastapi import Request
from pydantic import BaseModel, ValidationError

from s3console import metrics
from s3console.config import AuthConfig
from s3console.errors import AuthLookupError
from s3console.models import Credentials

logger = logging.getLogger(__name__)

GET_CAPS_PATH = "/admin/getcaps"
USER_ID_PARAM = "userId"


class _KeyInfo(BaseModel):
    access_key: str
    secret_key: str


class _CapsReply(BaseModel):
    code: int
    msg: str = ""
    data: _KeyInfo | None = None


class CredentialResolver(Protocol):
    """Anything that turns a user id into scoped store credentials."""

    async def resolve(self, user_id: str) -> Credentials: ...


def user_id_from_request(request: Request) -> str:
    """Extract the calling user's id from the ``userId`` query parameter.

    Raises:
        AuthLookupError: If the parameter is absent or empty.
    """
    user_id = request.query_params.get(USER_ID_PARAM, "").strip()
    if not user_id:
        logger.error("Cannot resolve credentials: user id is empty")
        metrics.record_auth_lookup("missing_user")
        raise AuthLookupError()
    return user_id


class AuthNodeResolver:
    """Resolves credentials by calling the auth node's get-caps operation.

    Attributes:
        base_url: Root URL of the auth service.
        console_id: The console's own service identity.
    """

    def __init__(self, http: httpx.AsyncClient, config: AuthConfig) -> None:
        self._http = http
        self.base_url = config.url.rstrip("/")
        self.console_id = config.console_id
        self._console_key = config.console_key
        self._timeout = config.timeout

    async def resolve(self, user_id: str) -> Credentials:
        """Fetch the scoped key pair for ``user_id``.

        Raises:
            AuthLookupError: If the lookup fails for any reason.
        """
        if not user_id:
            metrics.record_auth_lookup("missing_user")
            raise AuthLookupError()

        try:
            resp = await self._http.post(
                f"{self.base_url}{GET_CAPS_PATH}",
                json={"id": self.console_id, "key": self._console_key, "userId": user_id},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            reply = _CapsReply.model_validate(resp.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            # ValueError covers a non-JSON reply body
            logger.error("Get keys for user %s from auth node failed: %s", user_id, exc)
            metrics.record_auth_lookup("error")
            raise AuthLookupError() from exc

        if reply.code != 0 or reply.data is None:
            logger.error(
                "Auth node refused key lookup for user %s: code=%d msg=%s",
                user_id,
                reply.code,
                reply.msg,
            )
            metrics.record_auth_lookup("refused")
            raise AuthLookupError()

        metrics.record_auth_lookup("ok")
        return Credentials(access_key=reply.data.access_key, secret_key=reply.data.secret_key)


class StaticCredentialResolver:
    """Hands every user the same configured key pair.

    Only for test and development deployments (``auth.mode: static``).
    A user id is still required so requests look the same in every mode.
    """

    def __init__(self, access_key: str, secret_key: str) -> None:
        if not access_key or not secret_key:
            raise ValueError("auth.static access_key and secret_key are required in static mode")
        self._credentials = Credentials(access_key=access_key, secret_key=secret_key)

    async def resolve(self, user_id: str) -> Credentials:
        if not user_id:
            metrics.record_auth_lookup("missing_user")
            raise AuthLookupError()
        metrics.record_auth_lookup("static")
        return self._credentials


def create_credential_resolver(config: AuthConfig, http: httpx.AsyncClient) -> CredentialResolver:
    """Build the resolver selected by ``auth.mode``."""
    if config.mode == "static":
        logger.warning("Using static object store credentials; not for production use")
        return StaticCredentialResolver(config.static_access_key, config.static_secret_key)
    return AuthNodeResolver(http, config)
