from __future__ import annotations
"""Data models representing Cloud Storage listings and protocol results."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .errors import ComposeError


@dataclass(frozen=True)
class Locator:
    """A bucket plus an optional object name or prefix."""

    bucket: str
    object: Optional[str] = None

    def __iter__(self):
        return iter((self.bucket, self.object))

    @property
    def url(self) -> str:
        return f"gs://{self.bucket}/{self.object or ''}"


@dataclass
class ObjectSummary:
    """A single object as returned by a listing."""

    name: str
    generation: Optional[int] = None
    size: Optional[int] = None
    content_type: Optional[str] = None
    updated: Optional[str] = None

    @classmethod
    def from_resource(cls, resource: dict[str, Any]) -> ObjectSummary:
        generation = resource.get("generation")
        size = resource.get("size")
        return cls(
            name=resource["name"],
            generation=int(generation) if generation is not None else None,
            size=int(size) if size is not None else None,
            content_type=resource.get("contentType"),
            updated=resource.get("updated"),
        )


@dataclass
class ListPage:
    """Represents one page of an object listing."""

    items: list[ObjectSummary] = field(default_factory=list)
    prefixes: list[str] = field(default_factory=list)
    next_page_token: Optional[str] = None

    @classmethod
    def from_response(cls, response: dict[str, Any]) -> ListPage:
        return cls(
            items=[ObjectSummary.from_resource(item) for item in response.get("items") or []],
            prefixes=list(response.get("prefixes") or []),
            next_page_token=response.get("nextPageToken"),
        )


@dataclass(frozen=True)
class AuthToken:
    """Snapshot of an OAuth2 access token."""

    access_token: str
    issued_at: datetime
    expires_in: float


@dataclass
class RewriteResult:
    """One response of the rewrite protocol."""

    done: bool
    rewrite_token: Optional[str] = None
    resource: Optional[dict[str, Any]] = None
    total_bytes_rewritten: Optional[int] = None
    object_size: Optional[int] = None

    @classmethod
    def from_response(cls, response: dict[str, Any]) -> RewriteResult:
        rewritten = response.get("totalBytesRewritten")
        size = response.get("objectSize")
        return cls(
            done=bool(response.get("done")),
            rewrite_token=response.get("rewriteToken"),
            resource=response.get("resource"),
            total_bytes_rewritten=int(rewritten) if rewritten is not None else None,
            object_size=int(size) if size is not None else None,
        )


MAX_COMPOSE_COMPONENTS = 32


class ComposeSet:
    """Ordered, de-duplicated source names for a compose request."""

    def __init__(self, limit: int = MAX_COMPOSE_COMPONENTS):
        self._limit = limit
        self._names: dict[str, None] = {}

    def add(self, name: str) -> None:
        if name in self._names:
            return
        if len(self._names) >= self._limit:
            raise ComposeError(
                f"The number of components to be composed into single object should be equal or less than {self._limit}."
            )
        self._names[name] = None

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def __len__(self) -> int:
        return len(self._names)
