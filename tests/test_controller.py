import tempfile
import unittest
from pathlib import Path

from gcs_client.controller import GcsController, NotConnectedError
from gcs_client.profiles import ConnectionProfile
from gcs_client.settings import AppSettings, SettingsStorage


class FakeProfileStorage:
    def __init__(self, profiles=None):
        self.profiles = list(profiles or [])
        self.saved = []

    def load(self):
        return list(self.profiles)

    def save(self, profiles):
        self.saved.append(list(profiles))
        self.profiles = list(profiles)


class FakeServiceFactory:
    def __init__(self):
        self.calls = []

    def __call__(self, email_address, private_key, **kwargs):
        self.calls.append({"email_address": email_address, "private_key": private_key, **kwargs})
        return object()


class ControllerTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.settings_path = Path(self._tmp.name) / "settings.json"
        self.factory = FakeServiceFactory()
        self.storage = FakeProfileStorage(
            [
                ConnectionProfile(name="prod", project_id="prod-project", email_address="svc@prod", private_key="key"),
                ConnectionProfile(name="adc"),
            ]
        )
        self.controller = GcsController(
            service_factory=self.factory,
            storage=self.storage,
            settings_storage=SettingsStorage(self.settings_path),
        )

    def tearDown(self):
        self._tmp.cleanup()

    def test_service_requires_connection(self):
        with self.assertRaises(NotConnectedError):
            self.controller.service
        self.assertFalse(self.controller.is_connected)

    def test_connect_with_profile_uses_service_account(self):
        service = self.controller.connect_with_profile("prod")

        self.assertIs(service, self.controller.service)
        self.assertEqual("prod", self.controller.selected_profile)
        call = self.factory.calls[0]
        self.assertEqual("svc@prod", call["email_address"])
        self.assertEqual("key", call["private_key"])
        self.assertEqual(AppSettings().scope, call["scope"])
        self.assertEqual(AppSettings().num_retries, call["num_retries"])
        self.assertEqual("prod", SettingsStorage(self.settings_path).load().last_profile)

    def test_profile_without_key_uses_default_credentials(self):
        self.controller.connect_with_profile("adc")

        self.assertIsNone(self.factory.calls[0]["email_address"])
        self.assertIsNone(self.factory.calls[0]["private_key"])

    def test_connect_default(self):
        self.controller.connect_default()

        self.assertTrue(self.controller.is_connected)
        self.assertIsNone(self.controller.selected_profile)

    def test_project_id_prefers_explicit_value(self):
        self.controller.connect_with_profile("prod")

        self.assertEqual("other", self.controller.project_id("other"))
        self.assertEqual("prod-project", self.controller.project_id())

    def test_project_id_required_without_profile(self):
        self.controller.connect_default()

        with self.assertRaises(ValueError):
            self.controller.project_id()

    def test_save_profile_renames_existing_entry(self):
        profile = ConnectionProfile(name="production", project_id="prod-project")

        self.controller.save_profile(profile, original_name="prod")

        names = [p.name for p in self.controller.list_profiles()]
        self.assertEqual(["adc", "production"], names)
        self.assertEqual(names, [p.name for p in self.storage.saved[-1]])

    def test_delete_profile(self):
        self.controller.connect_with_profile("prod")

        self.controller.delete_profile("prod")

        self.assertIsNone(self.controller.selected_profile)
        self.assertEqual(["adc"], [p.name for p in self.controller.list_profiles()])
        with self.assertRaises(ValueError):
            self.controller.delete_profile("missing")


if __name__ == "__main__":
    unittest.main()
