from __future__ import annotations
"""Controller layer tying profiles and settings to a :class:`GcsService`."""

from typing import Callable

from .profiles import ConnectionProfile, ProfileStorage
from .services import GcsService
from .settings import AppSettings, SettingsStorage


class NotConnectedError(RuntimeError):
    """Raised when a storage operation is attempted before connecting."""


ServiceFactory = Callable[..., GcsService]


class GcsController:
    """Coordinates profile selection with the :class:`GcsService`."""

    def __init__(
        self,
        service_factory: ServiceFactory | None = None,
        storage: ProfileStorage | None = None,
        settings_storage: SettingsStorage | None = None,
    ):
        self._service_factory = service_factory or GcsService.connect
        self._storage = storage or ProfileStorage()
        self._settings_storage = settings_storage or SettingsStorage()
        self._settings = self._settings_storage.load()
        self._profiles: list[ConnectionProfile] = self._storage.load()
        self._selected_profile: str | None = None
        self._service: GcsService | None = None

    @property
    def is_connected(self) -> bool:
        return self._service is not None

    @property
    def selected_profile(self) -> str | None:
        return self._selected_profile

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def service(self) -> GcsService:
        if self._service is None:
            raise NotConnectedError("Not connected to Cloud Storage")
        return self._service

    def list_profiles(self) -> list[ConnectionProfile]:
        return list(self._profiles)

    def save_profile(self, profile: ConnectionProfile, *, original_name: str | None = None) -> None:
        if original_name and original_name != profile.name:
            self._profiles = [p for p in self._profiles if p.name != original_name]
        self._upsert_profile(profile)
        self._storage.save(self._profiles)

    def delete_profile(self, name: str) -> None:
        before = len(self._profiles)
        self._profiles = [p for p in self._profiles if p.name != name]
        if len(self._profiles) == before:
            raise ValueError(f"Profile '{name}' does not exist")
        if self._selected_profile == name:
            self._selected_profile = None
        self._storage.save(self._profiles)

    def get_profile(self, name: str) -> ConnectionProfile:
        for profile in self._profiles:
            if profile.name == name:
                return profile
        raise ValueError(f"Profile '{name}' does not exist")

    def connect_with_profile(self, name: str) -> GcsService:
        profile = self.get_profile(name)
        service = self._connect(email_address=profile.email_address, private_key=profile.private_key)
        self._selected_profile = name
        if self._settings.last_profile != name:
            self._settings.last_profile = name
            self._settings_storage.save(self._settings)
        return service

    def connect_default(self) -> GcsService:
        return self._connect(email_address=None, private_key=None)

    def project_id(self, explicit: str | None = None) -> str:
        if explicit:
            return explicit
        if self._selected_profile:
            project = self.get_profile(self._selected_profile).project_id
            if project:
                return project
        raise ValueError("A project id is required")

    def _connect(self, *, email_address: str | None, private_key: str | None) -> GcsService:
        self._service = self._service_factory(
            email_address or None,
            private_key or None,
            scope=self._settings.scope,
            num_retries=self._settings.num_retries,
            chunk_size=self._settings.chunk_size,
            timeout=self._settings.request_timeout,
        )
        return self._service

    def _upsert_profile(self, profile: ConnectionProfile) -> None:
        for idx, existing in enumerate(self._profiles):
            if existing.name == profile.name:
                self._profiles[idx] = profile
                break
        else:
            self._profiles.append(profile)
