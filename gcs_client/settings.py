from __future__ import annotations
"""Client settings persistence helpers."""

from dataclasses import asdict, dataclass, fields
import json
from pathlib import Path

from .auth import DEFAULT_SCOPE
from .transport import DEFAULT_CHUNK_SIZE, DEFAULT_READ_LIMIT


@dataclass
class AppSettings:
    """Simple container for persistent client settings."""

    read_limit: int = DEFAULT_READ_LIMIT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    num_retries: int = 10
    request_timeout: int = 60
    scope: str = DEFAULT_SCOPE
    last_profile: str = ""


_POSITIVE_INT_FIELDS = ("read_limit", "chunk_size", "num_retries", "request_timeout")


def _positive_int(value: object, default: int) -> int:
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if number <= 0:
        return default
    return number


class SettingsStorage:
    """JSON-backed persistence for :class:`AppSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".pygcs_settings.json"
        self._path = Path(storage_path)

    def load(self) -> AppSettings:
        if not self._path.exists():
            return AppSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return AppSettings()
        if not isinstance(data, dict):
            return AppSettings()
        defaults = {field.name: field.default for field in fields(AppSettings)}
        values = {
            name: _positive_int(data.get(name, defaults[name]), defaults[name])
            for name in _POSITIVE_INT_FIELDS
        }
        scope = data.get("scope")
        values["scope"] = scope if isinstance(scope, str) and scope else DEFAULT_SCOPE
        last_profile = data.get("last_profile")
        values["last_profile"] = last_profile if isinstance(last_profile, str) else ""
        return AppSettings(**values)

    def save(self, settings: AppSettings) -> None:
        payload = asdict(settings)
        for name in _POSITIVE_INT_FIELDS:
            payload[name] = max(int(payload[name]), 1)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            return
