"""Bucket-level console handlers.

Implements:
    - ListBuckets   (GET  /s3/buckets)
    - CreateBucket  (POST /s3/bucket/create)
    - DeleteBucket  (POST /s3/bucket/delete)
"""

import logging

from botocore.exceptions import WaiterError
from fastapi import Request, Response

from s3console.handlers.base import ConsoleHandler
from s3console.models import Bucket, BucketRequest
from s3console.responses import data_response, success_response
from s3console.store import STORE_ERRORS
from s3console.validation import decode_body

logger = logging.getLogger(__name__)


class BucketHandler(ConsoleHandler):
    """Handles bucket list, create and delete."""

    async def list_buckets(self, request: Request) -> Response:
        """List every bucket visible to the caller.

        Returns:
            Data envelope with ``[{name, creationTime}]``.
        """
        client = await self.open_client(request)
        async with client as s3:
            try:
                output = await s3.list_buckets()
            except STORE_ERRORS as exc:
                raise self.upstream_failure("List buckets failed", "list buckets", exc) from exc

        buckets = [Bucket.from_store(b) for b in output.get("Buckets", [])]
        return data_response(buckets)

    async def create_bucket(self, request: Request) -> Response:
        """Create a bucket named by ``bucketName``.

        Idempotency is whatever the store implements for an existing name.
        """
        req = await decode_body(request, BucketRequest)

        client = await self.open_client(request)
        async with client as s3:
            try:
                await s3.create_bucket(Bucket=req.bucket_name)
            except STORE_ERRORS as exc:
                raise self.upstream_failure(
                    "Create bucket failed", f"create bucket {req.bucket_name}", exc
                ) from exc

        logger.info("Create bucket %s success", req.bucket_name)
        return success_response()

    async def delete_bucket(self, request: Request) -> Response:
        """Delete a bucket and wait until the store no longer reports it.

        The wait is bounded by ``store.delete_wait_delay`` and
        ``store.delete_wait_attempts``. When it does not confirm the
        deletion, ``store.strict_delete_confirmation`` decides whether the
        request fails or the deletion is reported as done with a warning.
        """
        req = await decode_body(request, BucketRequest)
        store_cfg = self.config.store

        client = await self.open_client(request)
        async with client as s3:
            try:
                await s3.delete_bucket(Bucket=req.bucket_name)
            except STORE_ERRORS as exc:
                raise self.upstream_failure(
                    "Delete bucket failed", f"delete bucket {req.bucket_name}", exc
                ) from exc

            try:
                waiter = s3.get_waiter("bucket_not_exists")
                await waiter.wait(
                    Bucket=req.bucket_name,
                    WaiterConfig={
                        "Delay": store_cfg.delete_wait_delay,
                        "MaxAttempts": store_cfg.delete_wait_attempts,
                    },
                )
            except (WaiterError, *STORE_ERRORS) as exc:
                if store_cfg.strict_delete_confirmation:
                    raise self.upstream_failure(
                        "Delete bucket failed",
                        f"confirm deletion of bucket {req.bucket_name}",
                        exc,
                    ) from exc
                logger.warning(
                    "Deletion of bucket %s not confirmed, reporting success: %s",
                    req.bucket_name,
                    exc,
                )

        logger.info("Delete bucket %s success", req.bucket_name)
        return success_response()
