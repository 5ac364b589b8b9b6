import io
import tempfile
import unittest
from pathlib import Path

from gcs_client import cli
from gcs_client.controller import GcsController
from gcs_client.errors import ComposeError
from gcs_client.models import ListPage, ObjectSummary
from gcs_client.profiles import ConnectionProfile
from gcs_client.settings import SettingsStorage


class FakeProfileStorage:
    def __init__(self, profiles):
        self.profiles = profiles

    def load(self):
        return list(self.profiles)

    def save(self, profiles):
        self.profiles = list(profiles)


class FakeService:
    def __init__(self):
        self.calls = []
        self.read_result = b"a\nb\n"
        self.compose_error = None

    def iter_pages(self, bucket, *, prefix="", delimiter=None, page_size=None):
        self.calls.append(("iter_pages", bucket, prefix, delimiter))
        yield ListPage(items=[ObjectSummary(name="dir/a.txt", size=2048)], prefixes=["dir/sub/"])

    def iter_objects(self, bucket, *, prefix="", delimiter=None, page_size=None):
        self.calls.append(("iter_objects", bucket, prefix))
        yield ObjectSummary(name="dir/sub/b.txt", size=3)

    def glob(self, pattern):
        self.calls.append(("glob", pattern))
        yield ObjectSummary(name="dir/a.txt")

    def read_partial(self, url, **kwargs):
        self.calls.append(("read_partial", url, kwargs))
        return self.read_result

    def copy_tree(self, src, dest):
        self.calls.append(("copy_tree", src, dest))
        return 2

    def copy_object(self, src, dest):
        self.calls.append(("copy_object", src, dest))

    def remove_tree(self, url):
        self.calls.append(("remove_tree", url))
        return None

    def compose_object(self, patterns, dest, **kwargs):
        self.calls.append(("compose_object", patterns, dest, kwargs))
        if self.compose_error:
            raise self.compose_error
        return {"bucket": "bucket", "name": "joined"}

    def list_buckets(self, project_id):
        self.calls.append(("list_buckets", project_id))
        return [{"name": "bucket-one"}]

    def initiate_resumable_upload(self, url, **kwargs):
        self.calls.append(("initiate_resumable_upload", url, kwargs))
        return "https://upload/session"

    def insert_object(self, bucket, name, source, **kwargs):
        self.calls.append(("insert_object", bucket, name, source))
        return {"bucket": bucket, "name": name}


class CliTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.service = FakeService()
        self.connect_calls = []

        def factory(email_address, private_key, **kwargs):
            self.connect_calls.append((email_address, private_key))
            return self.service

        self.controller = GcsController(
            service_factory=factory,
            storage=FakeProfileStorage(
                [ConnectionProfile(name="prod", project_id="prod-project", email_address="svc", private_key="key")]
            ),
            settings_storage=SettingsStorage(Path(self._tmp.name) / "settings.json"),
        )

    def tearDown(self):
        self._tmp.cleanup()

    def run_cli(self, *argv):
        out = io.StringIO()
        code = cli.main(list(argv), controller=self.controller, out=out)
        return code, out.getvalue()

    def test_ls_prints_prefixes_and_objects(self):
        code, output = self.run_cli("ls", "gs://bucket/dir/")

        self.assertEqual(0, code)
        self.assertIn("dir/sub/", output)
        self.assertIn("2.0 KB", output)
        self.assertEqual(("iter_pages", "bucket", "dir/", "/"), self.service.calls[0])
        self.assertEqual([(None, None)], self.connect_calls)

    def test_recursive_ls_lists_flat(self):
        code, output = self.run_cli("ls", "-r", "gs://bucket/dir/")

        self.assertEqual(0, code)
        self.assertIn("dir/sub/b.txt", output)

    def test_glob_prints_urls(self):
        _, output = self.run_cli("glob", "gs://bucket/dir/*.txt")

        self.assertEqual("gs://bucket/dir/a.txt\n", output)

    def test_cat_passes_limit_and_delimiter(self):
        code, output = self.run_cli("cat", "--limit", "10", "--trim", "\\n", "gs://bucket/a.jsonl")

        self.assertEqual(0, code)
        self.assertEqual("a\nb\n", output)
        _, url, kwargs = self.service.calls[0]
        self.assertEqual("gs://bucket/a.jsonl", url)
        self.assertEqual(10, kwargs["limit"])
        self.assertEqual(b"\n", kwargs["trim_after_last_delimiter"])

    def test_cat_accepts_non_ascii_delimiter(self):
        self.run_cli("cat", "--trim", "\u00a7", "gs://bucket/a.txt")

        _, _, kwargs = self.service.calls[0]
        self.assertEqual("\u00a7".encode("utf-8"), kwargs["trim_after_last_delimiter"])

    def test_cat_reports_missing_object(self):
        self.service.read_result = None

        code, _ = self.run_cli("cat", "gs://bucket/missing")

        self.assertEqual(1, code)

    def test_recursive_copy_and_remove(self):
        self.run_cli("cp", "-r", "gs://a/x", "gs://b/y")
        self.run_cli("rm", "-r", "gs://a/x")

        self.assertIn(("copy_tree", "gs://a/x", "gs://b/y"), self.service.calls)
        self.assertIn(("remove_tree", "gs://a/x"), self.service.calls)

    def test_compose_reports_validation_errors(self):
        self.service.compose_error = ComposeError("too many")

        code, _ = self.run_cli("compose", "gs://bucket/joined", "gs://bucket/part/*")

        self.assertEqual(1, code)

    def test_profile_option_selects_credentials(self):
        code, output = self.run_cli("--profile", "prod", "buckets")

        self.assertEqual(0, code)
        self.assertEqual("bucket-one\n", output)
        self.assertEqual([("svc", "key")], self.connect_calls)
        self.assertIn(("list_buckets", "prod-project"), self.service.calls)

    def test_profiles_command_does_not_connect(self):
        _, output = self.run_cli("profiles")

        self.assertEqual("prod\tprod-project\tservice-account\n", output)
        self.assertEqual([], self.connect_calls)

    def test_put_to_bucket_uses_file_name(self):
        self.run_cli("put", "/tmp/data/report.csv", "gs://bucket")
        self.run_cli("put", "/tmp/data/report.csv", "gs://bucket/in/")
        self.run_cli("put", "/tmp/data/report.csv", "gs://bucket/renamed.csv")

        uploads = [call[1:3] for call in self.service.calls if call[0] == "insert_object"]
        self.assertEqual(
            [("bucket", "report.csv"), ("bucket", "in/report.csv"), ("bucket", "renamed.csv")],
            uploads,
        )

    def test_resumable_prints_session_uri(self):
        _, output = self.run_cli("resumable", "--content-type", "text/csv", "gs://bucket/a.csv")

        self.assertEqual("https://upload/session\n", output)


if __name__ == "__main__":
    unittest.main()
