from __future__ import annotations
"""Credential profile models and persistence."""
from dataclasses import dataclass
import json
from pathlib import Path

import keyring
from keyring.errors import KeyringError


@dataclass
class ConnectionProfile:
    """Represents a saved Cloud Storage connection.

    A profile without an email address and private key authenticates with
    application default credentials.
    """

    name: str
    project_id: str = ""
    email_address: str = ""
    private_key: str = ""

    @property
    def uses_service_account(self) -> bool:
        return bool(self.email_address and self.private_key)


class KeychainStore:
    """Encapsulates OS keychain access for private keys."""

    def __init__(self, service_name: str = "pygcs"):
        self._service_name = service_name

    def get_secret(self, profile_name: str) -> str:
        if not profile_name:
            return ""
        try:
            return keyring.get_password(self._service_name, profile_name) or ""
        except KeyringError:
            return ""

    def set_secret(self, profile_name: str, secret: str) -> None:
        if not profile_name:
            return
        if not secret:
            self.delete_secret(profile_name)
            return
        try:
            keyring.set_password(self._service_name, profile_name, secret)
        except KeyringError:
            return

    def delete_secret(self, profile_name: str) -> None:
        if not profile_name:
            return
        try:
            keyring.delete_password(self._service_name, profile_name)
        except KeyringError:
            return


class ProfileStorage:
    """JSON-backed store for connection profiles; private keys live in the keychain."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".pygcs_profiles.json"
        self._path = Path(storage_path)
        self._keychain = KeychainStore()

    def load(self) -> list[ConnectionProfile]:
        data = self._read_data()
        profiles: list[ConnectionProfile] = []
        sanitized: list[dict[str, str]] = []
        saw_plaintext = False
        for entry in data:
            try:
                name = entry["name"]
                project_id = entry.get("project_id", "")
                email_address = entry.get("email_address", "")
                private_key = entry.get("private_key", "")
                if private_key:
                    saw_plaintext = True
                    self._keychain.set_secret(name, private_key)
                else:
                    private_key = self._keychain.get_secret(name)
                profiles.append(
                    ConnectionProfile(
                        name=name,
                        project_id=project_id,
                        email_address=email_address,
                        private_key=private_key,
                    )
                )
                sanitized.append(
                    {
                        "name": name,
                        "project_id": project_id,
                        "email_address": email_address,
                    }
                )
            except (KeyError, AttributeError):
                continue
        if saw_plaintext:
            self._write_data(sanitized)
        return profiles

    def save(self, profiles: list[ConnectionProfile]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = []
        for profile in profiles:
            self._keychain.set_secret(profile.name, profile.private_key)
            data.append(
                {
                    "name": profile.name,
                    "project_id": profile.project_id,
                    "email_address": profile.email_address,
                }
            )
        existing_names = {
            entry.get("name") for entry in self._read_data() if isinstance(entry, dict)
        }
        current_names = {profile.name for profile in profiles}
        for name in existing_names - current_names:
            if isinstance(name, str) and name:
                self._keychain.delete_secret(name)
        self._write_data(data)

    def _read_data(self) -> list:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return []
        return data if isinstance(data, list) else []

    def _write_data(self, data: list[dict[str, str]]) -> None:
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
