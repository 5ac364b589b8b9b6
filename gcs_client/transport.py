from __future__ import annotations
"""Direct HTTP calls for functionality the generated API client lacks."""
import logging
from typing import Callable, Optional
from urllib.parse import quote

import requests

from .auth import TokenGuard
from .errors import ProtocolError
from .models import Locator

LOGGER = logging.getLogger(__name__)

STORAGE_HOST = "https://storage.googleapis.com"
DEFAULT_READ_LIMIT = 1024 * 1024
DEFAULT_CHUNK_SIZE = 64 * 1024


def _escape(value: str) -> str:
    return quote(value, safe="")


def download_url(bucket: str, object: str) -> str:
    return f"{STORAGE_HOST}/download/storage/v1/b/{_escape(bucket)}/o/{_escape(object)}?alt=media"


def resumable_upload_url(bucket: str) -> str:
    return f"{STORAGE_HOST}/upload/storage/v1/b/{_escape(bucket)}/o?uploadType=resumable"


def trim_after_last(buffer: bytes, delimiter: bytes) -> bytes:
    """Cut *buffer* right after the last *delimiter*, or to empty if absent."""

    index = buffer.rfind(delimiter)
    if index < 0:
        return b""
    return buffer[: index + len(delimiter)]


class RawStorageTransport:
    """Issues bearer-authenticated requests straight against the storage endpoint."""

    def __init__(
        self,
        token_guard: TokenGuard,
        session: requests.Session | None = None,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        timeout: float | None = None,
    ):
        self._token_guard = token_guard
        self._session = session or requests.Session()
        self._chunk_size = chunk_size
        self._timeout = timeout

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token_guard.access_token()}"}

    def read_partial(
        self,
        locator: Locator,
        *,
        limit: int = DEFAULT_READ_LIMIT,
        trim_after_last_delimiter: bytes | str | None = None,
        sink: Optional[Callable[[bytes], None]] = None,
    ):
        """Read the head of an object.

        With a *sink*, every chunk is forwarded to it and the response is
        returned; *limit* does not apply. Otherwise chunks are buffered until
        more than *limit* bytes have arrived, so the result can exceed
        *limit* by up to one chunk. Returns ``None`` when the object does not
        exist.

        Raises:
            ProtocolError: for any other non-2xx response.
        """

        url = download_url(locator.bucket, locator.object or "")
        with self._session.get(
            url,
            headers=self._auth_headers(),
            stream=True,
            timeout=self._timeout,
        ) as response:
            if response.status_code == 404:
                return None
            if not 200 <= response.status_code < 300:
                raise ProtocolError("read_partial", response.status_code, response.text)

            if sink is not None:
                for chunk in response.iter_content(chunk_size=self._chunk_size):
                    sink(chunk)
                return response

            total = bytearray()
            for chunk in response.iter_content(chunk_size=self._chunk_size):
                total.extend(chunk)
                if len(total) > limit:
                    break
            LOGGER.debug("Read %d bytes from %s", len(total), locator.url)

        buffer = bytes(total)
        if trim_after_last_delimiter is not None:
            delimiter = trim_after_last_delimiter
            if isinstance(delimiter, str):
                delimiter = delimiter.encode("utf-8")
            buffer = trim_after_last(buffer, delimiter)
        return buffer

    def initiate_resumable_upload(
        self,
        locator: Locator,
        *,
        content_type: str = "application/octet-stream",
        origin_domain: str | None = None,
    ) -> str | None:
        """Open a resumable upload session and return its session URI."""

        headers = self._auth_headers()
        headers["Content-Type"] = "application/json; charset=UTF-8"
        headers["X-Upload-Content-Type"] = content_type
        if origin_domain:
            headers["Origin"] = origin_domain
        response = self._session.post(
            resumable_upload_url(locator.bucket),
            headers=headers,
            json={"name": locator.object},
            timeout=self._timeout,
        )
        if not 200 <= response.status_code < 300:
            raise ProtocolError("initiate_resumable_upload", response.status_code, response.text)
        return response.headers.get("Location")
