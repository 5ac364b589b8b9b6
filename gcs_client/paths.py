from __future__ import annotations
"""Helpers for ``gs://`` locators and glob patterns."""
import functools
import re

from .models import Locator

SCHEME = "gs://"


def resolve(bucket: str, object: str | None = None) -> Locator:
    """Split a ``gs://bucket/object`` URL into its parts.

    When *object* is given, or *bucket* is not a URL, the inputs are returned
    unchanged. A URL without a ``/`` after the bucket yields ``object=None``.
    """

    if object is None and bucket.startswith(SCHEME):
        bucket, sep, rest = bucket[len(SCHEME):].partition("/")
        object = rest if sep else None
    return Locator(bucket, object)


def to_url(bucket: str, object: str | None = None) -> str:
    return f"{SCHEME}{bucket}/{object or ''}"


def ensure_trailing_slash(path: str | None) -> str:
    path = path or ""
    return path if path.endswith("/") else path + "/"


def glob_prefix(pattern: str) -> str:
    """Return the literal part of *pattern* before its first wildcard.

    ``*``, ``?`` and ``[`` all end the prefix unless escaped; escapes inside
    the prefix are removed so it can be sent as a listing prefix.
    """

    literal = re.split(r"(?<!\\)[*?\[]", pattern, maxsplit=1)[0]
    return re.sub(r"\\(.)", r"\1", literal)


def glob_match(pattern: str, name: str) -> bool:
    """Full-name shell glob match.

    ``*`` and ``?`` also match ``/``; ``[...]`` classes support ``!``/``^``
    negation and a backslash escapes the next character. A leading ``.`` in
    *name* is only matched by a literal ``.`` at the start of *pattern*.
    """

    return _compile(pattern).fullmatch(name) is not None


@functools.lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    regex = _translate(pattern)
    if not pattern.startswith((".", "\\.")):
        regex = r"(?!\.)" + regex
    return re.compile(regex, re.DOTALL)


def _translate(pattern: str) -> str:
    parts: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        char = pattern[i]
        i += 1
        if char == "\\" and i < n:
            parts.append(re.escape(pattern[i]))
            i += 1
        elif char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        elif char == "[":
            end = _class_end(pattern, i)
            if end < 0:
                parts.append(re.escape(char))
                continue
            parts.append(_translate_class(pattern[i:end]))
            i = end + 1
        else:
            parts.append(re.escape(char))
    return "".join(parts)


def _class_end(pattern: str, start: int) -> int:
    i = start
    if i < len(pattern) and pattern[i] in "!^":
        i += 1
    if i < len(pattern) and pattern[i] == "]":
        i += 1
    while i < len(pattern):
        if pattern[i] == "\\":
            i += 2
            continue
        if pattern[i] == "]":
            return i
        i += 1
    return -1


def _translate_class(body: str) -> str:
    negate = body[:1] in ("!", "^")
    if negate:
        body = body[1:]
    members: list[str] = []
    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\" and i + 1 < len(body):
            members.append(re.escape(body[i + 1]))
            i += 2
        elif char == "-" and members and i + 1 < len(body):
            nxt = body[i + 1]
            if nxt == "\\" and i + 2 < len(body):
                nxt = body[i + 2]
                i += 1
            members.append("-" + re.escape(nxt))
            i += 2
        else:
            members.append(re.escape(char))
            i += 1
    return "[" + ("^" if negate else "") + "".join(members) + "]"
