"""FastAPI application factory and route setup for s3console."""

import logging
import secrets
import time
from contextlib import asynccontextmanager

import httpx
from aiobotocore.session import AioSession
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from s3console import metrics
from s3console.auth import create_credential_resolver
from s3console.config import ConsoleConfig
from s3console.errors import ConsoleError, InternalError
from s3console.handlers.acl import AclHandler
from s3console.handlers.bucket import BucketHandler
from s3console.handlers.folder import FolderHandler
from s3console.handlers.object import ObjectHandler
from s3console.logging_config import bind_request, unbind_request
from s3console.responses import error_response
from s3console.store import S3ClientFactory

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"

# Paths excluded from per-request access logs
_QUIET_PATHS = {"/metrics", "/health", "/healthz", "/readyz"}

_HTTP_ERROR_CODES = {404: "NoSuchRoute", 405: "MethodNotAllowed"}


# Module-level singleton so multiple create_app() calls (e.g. in tests)
# don't re-register the same Prometheus collectors in the global registry.
_instrumentator = None


def _get_instrumentator():
    global _instrumentator
    if _instrumentator is None:
        from prometheus_fastapi_instrumentator import Instrumentator

        _instrumentator = Instrumentator(
            should_instrument_requests_inprogress=True,
            excluded_handlers=["/metrics"],
        )
    return _instrumentator


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(config: ConsoleConfig) -> FastAPI:
    """Create and configure the s3console FastAPI application.

    The lifespan context opens one httpx client for the auth service and one
    aiobotocore session shared by every per-request S3 client, and closes
    them on shutdown.

    Args:
        config: The loaded console configuration.

    Returns:
        A configured FastAPI application ready to run.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan hook: open the auth client and the store session."""
        http = httpx.AsyncClient(timeout=config.auth.timeout)
        app.state.http = http
        app.state.resolver = create_credential_resolver(config.auth, http)
        app.state.clients = S3ClientFactory(config.store, AioSession())

        logger.info(
            "Console ready: store=%s region=%s auth=%s",
            config.store.endpoint,
            config.store.region,
            config.auth.mode,
        )

        yield

        await http.aclose()
        logger.info("Auth client closed")

    app = FastAPI(
        title="s3console",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config

    _register_exception_handlers(app)
    _register_middleware(app, config)

    # /metrics is registered before the console routes
    if config.observability.metrics:
        metrics.init_metrics()
        _get_instrumentator().instrument(app, metric_namespace="s3console").expose(
            app, endpoint="/metrics"
        )

    _setup_routes(app, config)

    return app


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the FastAPI app."""

    @app.exception_handler(ConsoleError)
    async def console_error_handler(request: Request, exc: ConsoleError) -> Response:
        """Render a ConsoleError as an error envelope."""
        request.state.error_code = exc.code
        return error_response(exc.code, exc.message, status=exc.http_status)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
        """Map FastAPI validation errors to a ParamParse envelope."""
        logger.error("Request validation failed: %s", exc.errors())
        request.state.error_code = "ParamParse"
        return error_response("ParamParse", "Request parameters are malformed", status=400)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
        """Render routing errors (unknown path, wrong method) as envelopes."""
        code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTPError")
        request.state.error_code = code
        return error_response(code, str(exc.detail), status=exc.status_code)

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> Response:
        """Catch unexpected exceptions and return InternalError."""
        logger.exception("Unhandled exception in request handler")
        err = InternalError()
        return error_response(err.code, err.message, status=err.http_status)


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


def _register_middleware(app: FastAPI, config: ConsoleConfig) -> None:
    """Register middleware on the FastAPI app."""

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next) -> Response:
        """Assign a request id, log one access line and count the operation.

        An incoming X-Request-Id is reused so console and server logs can be
        correlated. The operation name and error code are set on
        ``request.state`` by the route and the exception handlers.
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or secrets.token_hex(8)
        request.state.request_id = request_id
        token = bind_request(request_id)
        start = time.monotonic()

        try:
            response = await call_next(request)
        except Exception:
            operation = getattr(request.state, "operation", None)
            if operation:
                metrics.record_operation(operation, "InternalError")
            raise
        finally:
            unbind_request(token)

        duration_ms = round((time.monotonic() - start) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = request_id

        operation = getattr(request.state, "operation", None)
        if operation:
            metrics.record_operation(operation, getattr(request.state, "error_code", None) or "ok")

        if request.url.path not in _QUIET_PATHS:
            logger.info(
                "%s %s %d %.2fms",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": duration_ms,
                    "request_id": request_id,
                    "user_id": getattr(request.state, "user_id", None),
                    "operation": operation,
                },
            )

        return response

    # Added last so it wraps everything, including error envelopes
    if config.server.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.server.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )


# ---------------------------------------------------------------------------
# Route handlers
# ---------------------------------------------------------------------------


def _setup_routes(app: FastAPI, config: ConsoleConfig) -> None:
    """Register health checks and all console routes on the application.

    Every console route takes the caller's ``userId`` query parameter and
    tags ``request.state.operation`` before dispatching to its handler.

    Args:
        app: The FastAPI application to attach routes to.
        config: The console configuration.
    """
    bucket_handler = BucketHandler(app)
    object_handler = ObjectHandler(app)
    acl_handler = AclHandler(app)
    folder_handler = FolderHandler(app)

    if config.observability.health_check:

        @app.get("/health")
        async def health_check() -> Response:
            """Return static health status."""
            return Response(content='{"status":"ok"}', media_type="application/json")

        @app.get("/healthz")
        async def healthz() -> Response:
            """Liveness check. Returns 200 with empty body."""
            return Response(status_code=200)

        @app.get("/readyz")
        async def readyz() -> Response:
            """Readiness check. 200 once the lifespan has wired the clients."""
            ready = (
                getattr(app.state, "resolver", None) is not None
                and getattr(app.state, "clients", None) is not None
            )
            return Response(status_code=200 if ready else 503)

    # Buckets
    @app.get("/s3/buckets")
    async def list_buckets(request: Request) -> Response:
        request.state.operation = "list_buckets"
        return await bucket_handler.list_buckets(request)

    @app.post("/s3/bucket/create")
    async def create_bucket(request: Request) -> Response:
        request.state.operation = "create_bucket"
        return await bucket_handler.create_bucket(request)

    @app.post("/s3/bucket/delete")
    async def delete_bucket(request: Request) -> Response:
        request.state.operation = "delete_bucket"
        return await bucket_handler.delete_bucket(request)

    @app.post("/s3/bucket/acl/get")
    async def get_bucket_acl(request: Request) -> Response:
        request.state.operation = "get_bucket_acl"
        return await acl_handler.get_bucket_acl(request)

    @app.post("/s3/bucket/acl/set")
    async def set_bucket_acl(request: Request) -> Response:
        request.state.operation = "set_bucket_acl"
        return await acl_handler.set_bucket_acl(request)

    # Objects
    @app.post("/s3/object/put")
    async def put_object(request: Request) -> Response:
        request.state.operation = "put_object"
        return await object_handler.put_object(request)

    @app.post("/s3/object/get")
    async def get_object(request: Request) -> Response:
        request.state.operation = "get_object"
        return await object_handler.get_object(request)

    @app.post("/s3/object/delete")
    async def delete_object(request: Request) -> Response:
        request.state.operation = "delete_object"
        return await object_handler.delete_object(request)

    @app.post("/s3/object/list")
    async def list_objects(request: Request) -> Response:
        request.state.operation = "list_objects"
        return await object_handler.list_objects(request)

    @app.post("/s3/object/acl/get")
    async def get_object_acl(request: Request) -> Response:
        request.state.operation = "get_object_acl"
        return await acl_handler.get_object_acl(request)

    @app.post("/s3/object/acl/set")
    async def set_object_acl(request: Request) -> Response:
        request.state.operation = "set_object_acl"
        return await acl_handler.set_object_acl(request)

    @app.post("/s3/object/url/get")
    async def get_object_url(request: Request) -> Response:
        request.state.operation = "get_object_url"
        return await object_handler.get_object_url(request)

    @app.post("/s3/object/url/create")
    async def create_object_url(request: Request) -> Response:
        request.state.operation = "create_object_url"
        return await object_handler.create_object_url(request)

    # Folders
    @app.post("/s3/folder/create")
    async def create_folder(request: Request) -> Response:
        request.state.operation = "create_folder"
        return await folder_handler.create_folder(request)

    @app.post("/s3/folder/list")
    async def list_folder(request: Request) -> Response:
        request.state.operation = "list_folder"
        return await folder_handler.list_folder(request)

    @app.post("/s3/folder/delete")
    async def delete_folder(request: Request) -> Response:
        request.state.operation = "delete_folder"
        return await folder_handler.delete_folder(request)
