"""Folder pseudo-operation handlers.

The store has a flat key namespace. A folder is a zero-byte object whose
key ends with ``/``; listings group keys under it via common prefixes.
"""

import logging

from fastapi import Request, Response

from s3console.errors import NotImplementedConsoleError
from s3console.handlers.base import ConsoleHandler
from s3console.models import FolderRequest
from s3console.responses import success_response
from s3console.store import STORE_ERRORS
from s3console.validation import decode_body

logger = logging.getLogger(__name__)

FOLDER_SEPARATOR = "/"


def folder_key(parent_name: str, folder_name: str) -> str:
    """Key of the marker object for ``folder_name`` under ``parent_name``."""
    key = parent_name + folder_name
    if not key.endswith(FOLDER_SEPARATOR):
        key += FOLDER_SEPARATOR
    return key


class FolderHandler(ConsoleHandler):
    """Handles folder create; list and delete are not implemented."""

    async def create_folder(self, request: Request) -> Response:
        """Write the zero-byte folder marker object.

        The parent folder is not checked for existence.
        """
        req = await decode_body(request, FolderRequest)
        key = folder_key(req.parent_name, req.folder_name)

        client = await self.open_client(request)
        async with client as s3:
            try:
                await s3.put_object(Bucket=req.bucket_name, Key=key, Body=b"")
            except STORE_ERRORS as exc:
                raise self.upstream_failure(
                    "create folder failed", f"create folder {req.bucket_name}/{key}", exc
                ) from exc

        logger.info("Create folder %s in bucket %s success", key, req.bucket_name)
        return success_response()

    async def list_folder(self, request: Request) -> Response:
        raise NotImplementedConsoleError("list folder is not implemented")

    async def delete_folder(self, request: Request) -> Response:
        raise NotImplementedConsoleError("delete folder is not implemented")
