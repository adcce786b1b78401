"""Unit tests for bifrost.errors."""

from __future__ import annotations

import pytest

from bifrost.errors import (
    DecodeError,
    ErrorCode,
    FetchError,
    NetworkError,
    UpstreamStatusError,
)


class TestFetchErrorKinds:
    def test_all_kinds_are_fetch_errors(self) -> None:
        for exc in (NetworkError("x"), UpstreamStatusError("x", 500), DecodeError("x")):
            assert isinstance(exc, FetchError)

    def test_network_error_is_recoverable(self) -> None:
        exc = NetworkError("Connection refused")
        assert exc.code == ErrorCode.NETWORK_ERROR
        assert exc.recoverable is True

    @pytest.mark.parametrize(
        ("status_code", "recoverable"),
        [(500, True), (503, True), (429, True), (404, False), (400, False)],
    )
    def test_upstream_status_recoverability(self, status_code: int, recoverable: bool) -> None:
        exc = UpstreamStatusError(f"HTTP {status_code}", status_code=status_code)
        assert exc.code == ErrorCode.UPSTREAM_STATUS
        assert exc.recoverable is recoverable

    def test_decode_error_is_not_recoverable(self) -> None:
        assert DecodeError("bad json").recoverable is False


class TestToDict:
    def test_envelope_shape(self) -> None:
        assert NetworkError("boom").to_dict() == {
            "error": {
                "code": "NETWORK_ERROR",
                "message": "boom",
                "recoverable": True,
            }
        }

    def test_status_code_included(self) -> None:
        payload = UpstreamStatusError("HTTP 502", status_code=502).to_dict()
        assert payload["error"]["status_code"] == 502
        assert payload["error"]["code"] == "UPSTREAM_STATUS"
