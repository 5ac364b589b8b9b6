from __future__ import annotations
"""Exception types raised by the Cloud Storage client."""

from googleapiclient.errors import HttpError


class GcsError(Exception):
    """Base class for errors raised by this package."""


class ProtocolError(GcsError):
    """Raised when a direct HTTP call returns an unexpected status."""

    def __init__(self, operation: str, status_code: int, body: str):
        super().__init__(f"{operation} failed with HTTP status {status_code}: {body}")
        self.operation = operation
        self.status_code = status_code
        self.body = body


class ComposeError(GcsError, ValueError):
    """Raised when a compose request is rejected before reaching the API."""


def status_of(exc: BaseException) -> int | None:
    if isinstance(exc, HttpError):
        return int(exc.resp.status)
    return getattr(exc, "status_code", None)


def is_not_found(exc: BaseException) -> bool:
    return status_of(exc) == 404
