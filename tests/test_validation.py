"""Tests for request decoding and parameter validation."""

import logging

import pytest

from s3console.errors import ParamMissingError, ParamParseError
from s3console.models import (
    BucketRequest,
    FolderRequest,
    ListObjectsRequest,
    ObjectRequest,
    ObjectUrlRequest,
)
from s3console.validation import (
    MAX_PRESIGN_EXPIRES,
    decode_params,
    parse_max_keys,
    validate_expires,
)


class TestDecodeParams:
    """Tests for decode_params()."""

    def test_decodes_aliases(self):
        req = decode_params({"bucketName": "docs", "objectName": "a.txt"}, ObjectRequest)
        assert req.bucket_name == "docs"
        assert req.object_name == "a.txt"

    def test_unknown_fields_ignored(self):
        req = decode_params({"bucketName": "docs", "extra": 1}, BucketRequest)
        assert req.bucket_name == "docs"

    def test_missing_field(self):
        with pytest.raises(ParamMissingError) as exc_info:
            decode_params({"bucketName": "docs"}, ObjectRequest)
        assert exc_info.value.code == "ParamMissing"
        assert "objectName" in exc_info.value.message

    @pytest.mark.parametrize(
        "params, field",
        [
            ({"bucketName": "", "objectName": "a"}, "bucketName"),
            ({"bucketName": "docs", "objectName": ""}, "objectName"),
        ],
    )
    def test_empty_name_is_missing(self, params, field):
        with pytest.raises(ParamMissingError) as exc_info:
            decode_params(params, ObjectRequest)
        assert field in exc_info.value.message

    def test_empty_parent_allowed(self):
        req = decode_params(
            {"bucketName": "docs", "folderName": "photos", "parentName": ""}, FolderRequest
        )
        assert req.parent_name == ""

    def test_max_keys_accepts_any_json(self):
        req = decode_params({"bucketName": "docs", "maxKeys": [5]}, ListObjectsRequest)
        assert req.max_keys == [5]

    def test_wrong_type(self):
        with pytest.raises(ParamParseError) as exc_info:
            decode_params({"bucketName": ["docs"]}, BucketRequest)
        assert exc_info.value.code == "ParamParse"
        assert "bucketName" in exc_info.value.message

    def test_not_an_object(self):
        with pytest.raises(ParamParseError):
            decode_params(["docs"], BucketRequest)

    def test_list_request_defaults(self):
        req = decode_params({"bucketName": "docs"}, ListObjectsRequest)
        assert req.prefix == ""
        assert req.start_after == ""
        assert req.continuation_token == ""
        assert req.max_keys is None

    def test_expires_must_be_integer(self):
        with pytest.raises(ParamParseError):
            decode_params(
                {"bucketName": "docs", "objectName": "a", "expires": "soon"}, ObjectUrlRequest
            )


class TestParseMaxKeys:
    """Tests for parse_max_keys()."""

    def test_absent_uses_default(self):
        assert parse_max_keys(None, 1000) == 1000
        assert parse_max_keys("", 1000) == 1000

    def test_numeric_string(self):
        assert parse_max_keys("50", 1000) == 50

    def test_integer(self):
        assert parse_max_keys(7, 1000) == 7

    def test_zero_is_allowed(self):
        assert parse_max_keys("0", 1000) == 0

    def test_garbage_falls_back_and_logs(self, caplog):
        with caplog.at_level(logging.WARNING, logger="s3console.validation"):
            assert parse_max_keys("abc", 1000) == 1000
        assert "abc" in caplog.text

    def test_negative_falls_back(self):
        assert parse_max_keys("-5", 1000) == 1000

    @pytest.mark.parametrize("value", [12.5, [5], {}, True, False])
    def test_non_integer_types_fall_back(self, value, caplog):
        with caplog.at_level(logging.WARNING, logger="s3console.validation"):
            assert parse_max_keys(value, 1000) == 1000
        assert "Unsupported max keys" in caplog.text


class TestValidateExpires:
    """Tests for validate_expires()."""

    def test_default(self):
        assert validate_expires(None, 3600) == 3600

    def test_bounds(self):
        assert validate_expires(1, 3600) == 1
        assert validate_expires(MAX_PRESIGN_EXPIRES, 3600) == MAX_PRESIGN_EXPIRES

    @pytest.mark.parametrize("value", [0, -1, MAX_PRESIGN_EXPIRES + 1])
    def test_out_of_range(self, value):
        with pytest.raises(ParamParseError):
            validate_expires(value, 3600)
