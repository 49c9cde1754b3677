from __future__ import annotations


class FluxerError(Exception):
    """Base class for everything the client raises."""


class TransportError(FluxerError):
    """Connection, pool or network failure. The original exception is chained."""


class TransportTimeout(TransportError):
    pass


class UnexpectedStatus(FluxerError):
    """HTTP response arrived but not with the status the operation expects."""

    def __init__(self, status: int, body: str, expected: int) -> None:
        super().__init__(f"HTTP {status} (expected {expected}): {body[:4000]}")
        self.status = status
        self.body = body
        self.expected = expected


class DecodeError(FluxerError):
    """A 200 query response whose body is not valid JSON."""

    def __init__(self, message: str, body: bytes) -> None:
        super().__init__(message)
        self.body = body


class InvalidFieldValue(FluxerError, ValueError):
    def __init__(self, value: object) -> None:
        super().__init__(f"Field value is not numeric: {value!r}")
        self.value = value
