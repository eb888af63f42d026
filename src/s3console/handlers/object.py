"""Object-level console handlers.

Implements:
    - PutObject        (POST /s3/object/put, multipart form)
    - GetObject        (POST /s3/object/get, streamed download)
    - DeleteObject     (POST /s3/object/delete)
    - ListObjects      (POST /s3/object/list)
    - GetObjectUrl     (POST /s3/object/url/get, presigned download)
    - CreateObjectUrl  (POST /s3/object/url/create, presigned upload)
"""

import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack
from typing import Any
from urllib.parse import quote

from fastapi import Request, Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from s3console import metrics
from s3console.errors import ObjectNotFoundError, ParamParseError, UpstreamError
from s3console.handlers.base import ConsoleHandler
from s3console.models import ListObjectsRequest, ObjectList, ObjectRequest, ObjectUrlRequest
from s3console.responses import data_response, success_response
from s3console.store import NOT_FOUND_CODES, STORE_ERRORS, error_code
from s3console.validation import decode_body, decode_params, parse_max_keys, validate_expires

logger = logging.getLogger(__name__)

# Streaming chunk size: 64 KB
_CHUNK_SIZE = 64 * 1024

_DEFAULT_CONTENT_TYPE = "application/octet-stream"


def content_disposition(object_name: str) -> str:
    """Build an ``attachment`` Content-Disposition for an object key.

    Only the last path segment is offered as the file name. Names outside
    ASCII use the RFC 5987 ``filename*`` form since headers are latin-1.
    """
    filename = object_name.rstrip("/").rsplit("/", 1)[-1] or object_name
    if filename.isascii() and '"' not in filename:
        return f'attachment; filename="{filename}"'
    return f"attachment; filename*=UTF-8''{quote(filename, safe='')}"


async def _stream_body(body: Any, stack: AsyncExitStack) -> AsyncIterator[bytes]:
    """Yield an object body in 64 KB chunks, then release the client.

    Runs the cleanup on normal completion, on error and when the consumer
    goes away (the generator is closed on client disconnect).
    """
    sent = 0
    try:
        while True:
            chunk = await body.read(_CHUNK_SIZE)
            if not chunk:
                break
            sent += len(chunk)
            yield chunk
    finally:
        metrics.record_download(sent)
        await stack.aclose()


class ObjectHandler(ConsoleHandler):
    """Handles object upload, download, delete, listing and presigned URLs."""

    async def put_object(self, request: Request) -> Response:
        """Upload the ``file`` part of a multipart form as an object.

        The form parser has already spooled the part to a temporary file;
        that file is handed to the store as the request body. All form
        files are closed when the handler exits.
        """
        try:
            form = await request.form()
        except (MultiPartException, HTTPException) as exc:
            logger.error("Parse multipart form failed cause: %s", exc)
            raise ParamParseError("Multipart form is malformed") from exc

        try:
            fields = {k: v for k, v in form.items() if isinstance(v, str)}
            req = decode_params(fields, ObjectRequest)
            upload = form.get("file")
            if not isinstance(upload, UploadFile):
                logger.error("Put object %s failed cause: no file part in form", req.object_name)
                raise UpstreamError("Put object failed")

            client = await self.open_client(request)
            async with client as s3:
                kwargs: dict[str, Any] = {
                    "Bucket": req.bucket_name,
                    "Key": req.object_name,
                    "Body": upload.file,
                }
                if upload.size is not None:
                    kwargs["ContentLength"] = upload.size
                if upload.content_type:
                    kwargs["ContentType"] = upload.content_type
                try:
                    output = await s3.put_object(**kwargs)
                except STORE_ERRORS as exc:
                    raise self.upstream_failure(
                        "Put object failed",
                        f"put object {req.object_name} to bucket {req.bucket_name}",
                        exc,
                    ) from exc
        finally:
            await form.close()

        metrics.record_upload(upload.size or 0)
        logger.info(
            "Put object %s success, and ETag : %s", req.object_name, output.get("ETag", "")
        )
        return success_response()

    async def get_object(self, request: Request) -> Response:
        """Stream an object back as an attachment.

        A HEAD request runs first; a missing object ends the request with
        a 404 ``NoSuchObject`` envelope. The response carries the reported
        size as Content-Length and echoes the request's Content-Type.
        """
        req = await decode_body(request, ObjectRequest)
        client = await self.open_client(request)

        stack = AsyncExitStack()
        try:
            s3 = await stack.enter_async_context(client)
            try:
                head = await s3.head_object(Bucket=req.bucket_name, Key=req.object_name)
            except STORE_ERRORS as exc:
                if error_code(exc) in NOT_FOUND_CODES:
                    logger.error(
                        "Object %s does not exist in bucket %s", req.object_name, req.bucket_name
                    )
                    raise ObjectNotFoundError() from exc
                raise self.upstream_failure(
                    "Get object failed",
                    f"check object {req.object_name} in bucket {req.bucket_name}",
                    exc,
                ) from exc
            size = int(head.get("ContentLength", 0))

            try:
                output = await s3.get_object(Bucket=req.bucket_name, Key=req.object_name)
            except STORE_ERRORS as exc:
                raise self.upstream_failure(
                    "Get object failed",
                    f"get object {req.object_name} from bucket {req.bucket_name}",
                    exc,
                ) from exc
            body = await stack.enter_async_context(output["Body"])
        except BaseException:
            await stack.aclose()
            raise

        headers = {
            "Content-Disposition": content_disposition(req.object_name),
            "Content-Length": str(size),
        }
        return StreamingResponse(
            content=_stream_body(body, stack),
            status_code=200,
            headers=headers,
            media_type=request.headers.get("content-type") or _DEFAULT_CONTENT_TYPE,
            # Covers a disconnect before streaming starts; aclose() is idempotent.
            background=BackgroundTask(stack.aclose),
        )

    async def delete_object(self, request: Request) -> Response:
        """Delete one object."""
        req = await decode_body(request, ObjectRequest)

        client = await self.open_client(request)
        async with client as s3:
            try:
                await s3.delete_object(Bucket=req.bucket_name, Key=req.object_name)
            except STORE_ERRORS as exc:
                raise self.upstream_failure(
                    "Delete object failed",
                    f"delete object {req.object_name} from bucket {req.bucket_name}",
                    exc,
                ) from exc

        logger.info("Delete object %s success", req.object_name)
        return success_response()

    async def list_objects(self, request: Request) -> Response:
        """Return one page of objects and pseudo-directories.

        ``prefix`` and ``startAfter`` are passed to the store as-is; the
        configured delimiter groups keys into ``directories``.
        """
        req = await decode_body(request, ListObjectsRequest)
        store_cfg = self.config.store
        max_keys = parse_max_keys(req.max_keys, store_cfg.list_max_keys)

        params: dict[str, Any] = {
            "Bucket": req.bucket_name,
            "MaxKeys": max_keys,
            "FetchOwner": True,
        }
        if store_cfg.delimiter:
            params["Delimiter"] = store_cfg.delimiter
        if req.prefix:
            params["Prefix"] = req.prefix
        if req.start_after:
            params["StartAfter"] = req.start_after
        if req.continuation_token:
            params["ContinuationToken"] = req.continuation_token

        client = await self.open_client(request)
        async with client as s3:
            try:
                output = await s3.list_objects_v2(**params)
            except STORE_ERRORS as exc:
                raise self.upstream_failure(
                    "List objects failed",
                    f"get object list from bucket {req.bucket_name}",
                    exc,
                ) from exc

        return data_response(ObjectList.from_store(output))

    async def get_object_url(self, request: Request) -> Response:
        """Presign a download URL for an object."""
        return await self._presign(request, "get_object")

    async def create_object_url(self, request: Request) -> Response:
        """Presign an upload URL for an object."""
        return await self._presign(request, "put_object")

    async def _presign(self, request: Request, client_method: str) -> Response:
        req = await decode_body(request, ObjectUrlRequest)
        expires = validate_expires(req.expires, self.config.store.presign_expires)

        client = await self.open_client(request)
        async with client as s3:
            try:
                url = await s3.generate_presigned_url(
                    ClientMethod=client_method,
                    Params={"Bucket": req.bucket_name, "Key": req.object_name},
                    ExpiresIn=expires,
                )
            except STORE_ERRORS as exc:
                raise self.upstream_failure(
                    "Create object url failed",
                    f"presign {client_method} for {req.bucket_name}/{req.object_name}",
                    exc,
                ) from exc

        return data_response({"url": url, "expires": expires})
