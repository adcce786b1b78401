from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    NETWORK_ERROR = "NETWORK_ERROR"
    UPSTREAM_STATUS = "UPSTREAM_STATUS"
    DECODE_ERROR = "DECODE_ERROR"


class BifrostError(Exception):
    """Base for every expected failure raised by the connector.

    Carries a machine-readable code so collaborators (the GraphQL layer,
    the CLI) can render a structured error without string matching.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "recoverable": self.recoverable,
            }
        }


class FetchError(BifrostError):
    """Raised by FetchClient when the upstream call cannot produce an envelope."""


class NetworkError(FetchError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.NETWORK_ERROR, message, recoverable=True)


class UpstreamStatusError(FetchError):
    def __init__(self, message: str, status_code: int) -> None:
        # Server-side failures and throttling are worth retrying; 4xx are not.
        recoverable = status_code >= 500 or status_code == 429
        super().__init__(ErrorCode.UPSTREAM_STATUS, message, recoverable=recoverable)
        self.status_code = status_code

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["error"]["status_code"] = self.status_code
        return payload


class DecodeError(FetchError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.DECODE_ERROR, message, recoverable=False)
