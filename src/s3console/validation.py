"""Request decoding and parameter validation helpers for s3console.

Each decoder raises ``ParamMissingError`` or ``ParamParseError``; the
``parse_*`` helpers implement named log-and-continue fallbacks instead.
"""

import json
import logging
from typing import TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError

from s3console.errors import ParamMissingError, ParamParseError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAX_PRESIGN_EXPIRES = 604800  # 7 days in seconds, SigV4 presign ceiling

# An empty required name is reported the same way as an absent one
_MISSING_ERROR_TYPES = frozenset({"missing", "string_too_short"})


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decode_params(raw: object, schema: type[T]) -> T:
    """Validate an already-parsed request mapping against a schema.

    Args:
        raw: The decoded JSON value (or form fields) of the request.
        schema: The pydantic request schema.

    Returns:
        A populated schema instance.

    Raises:
        ParamParseError: If ``raw`` is not an object or a field has the wrong type.
        ParamMissingError: If a required field is absent or empty.
    """
    if not isinstance(raw, dict):
        raise ParamParseError("Request body must be a JSON object")

    try:
        return schema.model_validate(raw)
    except ValidationError as exc:
        missing = [
            str(err["loc"][0])
            for err in exc.errors()
            if err.get("type") in _MISSING_ERROR_TYPES and err.get("loc")
        ]
        if missing:
            raise ParamMissingError(f"Missing parameter: {', '.join(missing)}") from exc
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise ParamParseError(f"Invalid parameter: {', '.join(fields)}") from exc


async def decode_body(request: Request, schema: type[T]) -> T:
    """Read a JSON request body and validate it against a schema.

    An empty body is treated as an empty object, so its required fields
    are reported as missing rather than as a parse failure.

    Raises:
        ParamParseError: If the body is not valid JSON.
        ParamMissingError: If a required field is absent.
    """
    body = await request.body()
    if not body.strip():
        return decode_params({}, schema)
    try:
        raw = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ParamParseError("Request body is not valid JSON") from exc
    return decode_params(raw, schema)


def parse_max_keys(value: object, default: int) -> int:
    """Parse the ``maxKeys`` listing parameter, falling back to ``default``.

    An absent or empty value silently yields the default. Anything else that
    is not a non-negative integer or integer string (floats, booleans, lists,
    objects included) is logged and also yields the default; it never fails
    the request.

    Args:
        value: The raw JSON value from the request body.
        default: The deployment's default page size.

    Returns:
        The page size to request from the store.
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        logger.warning("Unsupported max keys %r, using default %d", value, default)
        return default
    try:
        n = int(value)
    except (ValueError, TypeError):
        logger.warning("Parse max keys %r failed, using default %d", value, default)
        return default
    if n < 0:
        logger.warning("Negative max keys %d, using default %d", n, default)
        return default
    return n


def validate_expires(value: int | None, default: int) -> int:
    """Validate a presigned URL lifetime in seconds.

    Raises:
        ParamParseError: If the value is outside 1..604800.
    """
    if value is None:
        return default
    if value < 1 or value > MAX_PRESIGN_EXPIRES:
        raise ParamParseError(f"expires must be between 1 and {MAX_PRESIGN_EXPIRES} seconds")
    return value
