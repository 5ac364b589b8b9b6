import unittest

from gcs_client.api import DiscoveryStorageApi


class FakeRequest:
    def __init__(self, method, kwargs, response):
        self.method = method
        self.kwargs = kwargs
        self.response = response
        self.retries = None

    def execute(self, num_retries=0):
        self.retries = num_retries
        return self.response


class FakeCollection:
    def __init__(self, service, name):
        self._service = service
        self._name = name

    def __getattr__(self, method):
        def _build(**kwargs):
            request = FakeRequest(f"{self._name}.{method}", kwargs, self._service.responses.get(method, {}))
            self._service.requests.append(request)
            return request

        return _build


class FakeBatchRequest:
    def __init__(self, outcomes):
        self.added = []
        self.outcomes = outcomes
        self.executed = False

    def add(self, request, callback=None):
        self.added.append((request, callback))

    def execute(self):
        self.executed = True
        for index, (request, callback) in enumerate(self.added):
            callback(str(index), None, self.outcomes.get(request.kwargs["object"]))


class FakeDiscoveryService:
    def __init__(self, responses=None, batch_outcomes=None):
        self.responses = responses or {}
        self.requests = []
        self.batch_requests = []
        self.batch_outcomes = batch_outcomes or {}

    def buckets(self):
        return FakeCollection(self, "buckets")

    def objects(self):
        return FakeCollection(self, "objects")

    def new_batch_http_request(self):
        batch = FakeBatchRequest(self.batch_outcomes)
        self.batch_requests.append(batch)
        return batch


class DiscoveryStorageApiTests(unittest.TestCase):
    def test_list_objects_drops_unset_parameters(self):
        service = FakeDiscoveryService({"list": {"items": []}})
        api = DiscoveryStorageApi(service, num_retries=3)

        api.list_objects("bucket", delimiter=None, prefix="", page_token="tok", max_results=5)

        request = service.requests[0]
        self.assertEqual("objects.list", request.method)
        self.assertEqual({"bucket": "bucket", "pageToken": "tok", "maxResults": 5}, request.kwargs)
        self.assertEqual(3, request.retries)

    def test_rewrite_passes_token(self):
        service = FakeDiscoveryService({"rewrite": {"done": True}})
        api = DiscoveryStorageApi(service)

        response = api.rewrite_object("s", "a", "d", "b", rewrite_token="t1", if_generation_match=0)

        self.assertEqual({"done": True}, response)
        self.assertEqual(
            {
                "sourceBucket": "s",
                "sourceObject": "a",
                "destinationBucket": "d",
                "destinationObject": "b",
                "rewriteToken": "t1",
                "ifGenerationMatch": 0,
                "body": {},
            },
            service.requests[0].kwargs,
        )

    def test_compose_sends_body(self):
        service = FakeDiscoveryService()
        api = DiscoveryStorageApi(service)
        body = {"destination": {"name": "c"}, "sourceObjects": [{"name": "a"}]}

        api.compose_object("bucket", "c", body)

        self.assertEqual(
            {"destinationBucket": "bucket", "destinationObject": "c", "body": body},
            service.requests[0].kwargs,
        )

    def test_list_buckets_sends_project(self):
        service = FakeDiscoveryService({"list": {"items": [{"name": "b"}]}})
        api = DiscoveryStorageApi(service)

        self.assertEqual({"items": [{"name": "b"}]}, api.list_buckets("project", max_results=1000))
        self.assertEqual({"project": "project", "maxResults": 1000}, service.requests[0].kwargs)

    def test_batch_executes_on_exit_and_reports_each_item(self):
        error = RuntimeError("boom")
        service = FakeDiscoveryService(batch_outcomes={"b": error})
        api = DiscoveryStorageApi(service)
        results = []

        with api.batch() as batch:
            batch.delete_object("bucket", "a", lambda response, exc: results.append(("a", exc)))
            batch.delete_object("bucket", "b", lambda response, exc: results.append(("b", exc)))
            self.assertFalse(service.batch_requests[0].executed)

        self.assertTrue(service.batch_requests[0].executed)
        self.assertEqual([("a", None), ("b", error)], results)
        self.assertEqual(
            [{"bucket": "bucket", "object": "a"}, {"bucket": "bucket", "object": "b"}],
            [request.kwargs for request, _ in service.batch_requests[0].added],
        )


if __name__ == "__main__":
    unittest.main()
