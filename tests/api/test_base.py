"""Tests for api/base.py - Unified API response format."""

from datetime import timezone

import pytest

from api.base import (
    success_response,
    error_response,
    ErrorCodes,
)


class TestSuccessResponse:
    """Tests for success_response()."""

    def test_structure(self):
        resp = success_response({"foo": "bar"})
        assert resp.success is True
        assert resp.data == {"foo": "bar"}
        assert resp.error is None

    def test_request_id_generated(self):
        resp = success_response({})
        assert resp.meta.request_id is not None
        assert len(resp.meta.request_id) > 0

    def test_timestamp_is_utc(self):
        resp = success_response({})
        assert resp.meta.timestamp.tzinfo == timezone.utc


class TestErrorResponse:
    """Tests for error_response()."""

    def test_structure(self):
        resp = error_response("TEST_ERROR", "Something went wrong")
        assert resp.success is False
        assert resp.data is None
        assert resp.error.code == "TEST_ERROR"
        assert resp.error.message == "Something went wrong"

    def test_request_id_generated(self):
        resp = error_response("ERR", "msg")
        assert resp.meta.request_id is not None
        assert len(resp.meta.request_id) > 0

    def test_timestamp_is_utc(self):
        resp = error_response("ERR", "msg")
        assert resp.meta.timestamp.tzinfo == timezone.utc


class TestErrorCodes:
    """Codes are their own names, so clients can match on them."""

    @pytest.mark.parametrize(
        "name",
        [
            "NOT_AUTHENTICATED",
            "INVALID_CREDENTIALS",
            "ACCOUNT_NOT_VALIDATED",
            "TOKEN_NOT_FOUND",
            "TOKEN_EXPIRED",
            "ALREADY_VALIDATED",
            "ALREADY_EXISTS",
            "TECHNICAL_ERROR",
            "MFA_UNAVAILABLE",
            "INTERNAL_ERROR",
        ],
    )
    def test_code_matches_name(self, name):
        assert getattr(ErrorCodes, name) == name

    def test_error_response_serializes(self):
        body = error_response(ErrorCodes.TOKEN_EXPIRED, "expired").model_dump(mode="json")
        assert body["error"] == {"code": "TOKEN_EXPIRED", "message": "expired"}
        assert isinstance(body["meta"]["timestamp"], str)
