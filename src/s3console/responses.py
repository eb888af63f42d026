"""Uniform JSON response envelopes for s3console.

Every JSON reply from the console API is one of three shapes:

    success: {"status": "ok"}
    data:    {"status": "ok", "data": <payload>}
    error:   {"status": "error", "code": <code>, "message": <message>}
"""

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

STATUS_OK = "ok"
STATUS_ERROR = "error"


def success_response(status: int = 200) -> JSONResponse:
    """Return a bare success envelope."""
    return JSONResponse(content={"status": STATUS_OK}, status_code=status)


def data_response(data: Any, status: int = 200) -> JSONResponse:
    """Return a success envelope carrying ``data``.

    Pydantic models are dumped by alias; datetimes become ISO 8601 strings.
    """
    payload = jsonable_encoder(data, by_alias=True)
    return JSONResponse(content={"status": STATUS_OK, "data": payload}, status_code=status)


def error_response(code: str, message: str, status: int = 400) -> JSONResponse:
    """Return an error envelope with a short, user-safe message."""
    return JSONResponse(
        content={"status": STATUS_ERROR, "code": code, "message": message},
        status_code=status,
    )
