"""ACL console handlers for buckets and objects.

Implements:
    - GetBucketAcl  (POST /s3/bucket/acl/get)
    - SetBucketAcl  (POST /s3/bucket/acl/set)
    - GetObjectAcl  (POST /s3/object/acl/get)
    - SetObjectAcl  (POST /s3/object/acl/set)

Get returns the store's ACL representation (``Owner`` and ``Grants``)
unchanged apart from dropping transport metadata. Set applies either an
explicit ``accessControlPolicy`` in S3 shape or a canned ``acl`` name; one
of the two is required.
"""

import logging
from typing import Any

from botocore.exceptions import ParamValidationError
from fastapi import Request, Response

from s3console.errors import ParamMissingError, ParamParseError
from s3console.handlers.base import ConsoleHandler
from s3console.models import BucketAclRequest, BucketRequest, ObjectAclRequest, ObjectRequest
from s3console.responses import data_response, success_response
from s3console.store import STORE_ERRORS
from s3console.validation import decode_body

logger = logging.getLogger(__name__)


def strip_response_metadata(output: dict[str, Any]) -> dict[str, Any]:
    """Drop SDK transport fields from a store response."""
    return {k: v for k, v in output.items() if k != "ResponseMetadata"}


def acl_params(acl: str | None, policy: dict[str, Any] | None) -> dict[str, Any]:
    """Pick the store ACL argument; an explicit policy wins over a canned ACL.

    Raises:
        ParamMissingError: If neither is given.
    """
    if policy is not None:
        return {"AccessControlPolicy": policy}
    if acl is None:
        raise ParamMissingError("Missing parameter: acl or accessControlPolicy")
    return {"ACL": acl}


class AclHandler(ConsoleHandler):
    """Handles get/set ACL for buckets and objects."""

    async def get_bucket_acl(self, request: Request) -> Response:
        req = await decode_body(request, BucketRequest)

        client = await self.open_client(request)
        async with client as s3:
            try:
                output = await s3.get_bucket_acl(Bucket=req.bucket_name)
            except STORE_ERRORS as exc:
                raise self.upstream_failure(
                    "get bucket acl failed", f"get acl of bucket {req.bucket_name}", exc
                ) from exc

        return data_response(strip_response_metadata(output))

    async def set_bucket_acl(self, request: Request) -> Response:
        req = await decode_body(request, BucketAclRequest)
        params = acl_params(req.acl, req.access_control_policy)

        client = await self.open_client(request)
        async with client as s3:
            try:
                await s3.put_bucket_acl(
                    Bucket=req.bucket_name,
                    **params,
                )
            except ParamValidationError as exc:
                logger.error("Set acl of bucket %s rejected: %s", req.bucket_name, exc)
                raise ParamParseError("Invalid access control policy") from exc
            except STORE_ERRORS as exc:
                raise self.upstream_failure(
                    "set bucket acl failed", f"set acl of bucket {req.bucket_name}", exc
                ) from exc

        logger.info("Set acl of bucket %s success", req.bucket_name)
        return success_response()

    async def get_object_acl(self, request: Request) -> Response:
        req = await decode_body(request, ObjectRequest)

        client = await self.open_client(request)
        async with client as s3:
            try:
                output = await s3.get_object_acl(Bucket=req.bucket_name, Key=req.object_name)
            except STORE_ERRORS as exc:
                raise self.upstream_failure(
                    "get object acl failed",
                    f"get acl of object {req.bucket_name}/{req.object_name}",
                    exc,
                ) from exc

        return data_response(strip_response_metadata(output))

    async def set_object_acl(self, request: Request) -> Response:
        req = await decode_body(request, ObjectAclRequest)
        params = acl_params(req.acl, req.access_control_policy)

        client = await self.open_client(request)
        async with client as s3:
            try:
                await s3.put_object_acl(
                    Bucket=req.bucket_name,
                    Key=req.object_name,
                    **params,
                )
            except ParamValidationError as exc:
                logger.error(
                    "Set acl of object %s/%s rejected: %s", req.bucket_name, req.object_name, exc
                )
                raise ParamParseError("Invalid access control policy") from exc
            except STORE_ERRORS as exc:
                raise self.upstream_failure(
                    "set object acl failed",
                    f"set acl of object {req.bucket_name}/{req.object_name}",
                    exc,
                ) from exc

        logger.info("Set acl of object %s/%s success", req.bucket_name, req.object_name)
        return success_response()
