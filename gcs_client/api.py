from __future__ import annotations
"""Storage JSON API surface used by :class:`gcs_client.services.GcsService`."""
from contextlib import contextmanager
import io
import logging
from typing import Any, BinaryIO, Callable, ContextManager, Iterator, Optional, Protocol, Union

from googleapiclient import discovery
from googleapiclient.http import MediaFileUpload, MediaIoBaseDownload, MediaIoBaseUpload

LOGGER = logging.getLogger(__name__)

Resource = dict[str, Any]
UploadSource = Union[str, bytes, BinaryIO]
BatchCallback = Callable[[Optional[Resource], Optional[Exception]], None]


class StorageBatch(Protocol):
    def delete_object(self, bucket: str, name: str, callback: BatchCallback) -> None: ...


class StorageApi(Protocol):
    """Primitive bucket and object operations."""

    def list_buckets(self, project: str, *, max_results: int | None = None) -> Resource: ...

    def get_bucket(self, bucket: str) -> Resource: ...

    def insert_bucket(self, project: str, body: Resource) -> Resource: ...

    def delete_bucket(self, bucket: str) -> None: ...

    def get_object(self, bucket: str, name: str) -> Resource: ...

    def download_object(
        self, bucket: str, name: str, destination: BinaryIO, *, generation: int | None = None
    ) -> None: ...

    def list_objects(
        self,
        bucket: str,
        *,
        delimiter: str | None = None,
        prefix: str | None = None,
        page_token: str | None = None,
        max_results: int | None = None,
    ) -> Resource: ...

    def delete_object(self, bucket: str, name: str, *, if_generation_match: int | None = None) -> None: ...

    def insert_object(
        self,
        bucket: str,
        body: Resource,
        source: UploadSource,
        *,
        content_type: str | None = None,
        content_encoding: str | None = None,
        if_generation_match: int | None = None,
    ) -> Resource: ...

    def rewrite_object(
        self,
        src_bucket: str,
        src_name: str,
        dest_bucket: str,
        dest_name: str,
        *,
        rewrite_token: str | None = None,
        if_generation_match: int | None = None,
    ) -> Resource: ...

    def compose_object(self, dest_bucket: str, dest_name: str, body: Resource) -> Resource: ...

    def batch(self) -> ContextManager[StorageBatch]: ...


def _params(**kwargs) -> dict[str, Any]:
    return {key: value for key, value in kwargs.items() if value is not None}


class _DiscoveryBatch:
    def __init__(self, service, request):
        self._service = service
        self._request = request

    def delete_object(self, bucket: str, name: str, callback: BatchCallback) -> None:
        def _callback(_request_id, response, exception):
            callback(response, exception)

        self._request.add(
            self._service.objects().delete(bucket=bucket, object=name),
            callback=_callback,
        )


class DiscoveryStorageApi:
    """:class:`StorageApi` backed by the ``google-api-python-client`` discovery client."""

    def __init__(self, service, *, num_retries: int = 10):
        self._service = service
        self._num_retries = num_retries

    @classmethod
    def build(cls, credentials, *, num_retries: int = 10) -> DiscoveryStorageApi:
        service = discovery.build("storage", "v1", credentials=credentials, cache_discovery=False)
        return cls(service, num_retries=num_retries)

    def _execute(self, request):
        return request.execute(num_retries=self._num_retries)

    def list_buckets(self, project: str, *, max_results: int | None = None) -> Resource:
        return self._execute(self._service.buckets().list(**_params(project=project, maxResults=max_results)))

    def get_bucket(self, bucket: str) -> Resource:
        return self._execute(self._service.buckets().get(bucket=bucket))

    def insert_bucket(self, project: str, body: Resource) -> Resource:
        return self._execute(self._service.buckets().insert(project=project, body=body))

    def delete_bucket(self, bucket: str) -> None:
        self._execute(self._service.buckets().delete(bucket=bucket))

    def get_object(self, bucket: str, name: str) -> Resource:
        return self._execute(self._service.objects().get(bucket=bucket, object=name))

    def download_object(
        self, bucket: str, name: str, destination: BinaryIO, *, generation: int | None = None
    ) -> None:
        request = self._service.objects().get_media(**_params(bucket=bucket, object=name, generation=generation))
        downloader = MediaIoBaseDownload(destination, request)
        done = False
        while not done:
            _, done = downloader.next_chunk(num_retries=self._num_retries)

    def list_objects(
        self,
        bucket: str,
        *,
        delimiter: str | None = None,
        prefix: str | None = None,
        page_token: str | None = None,
        max_results: int | None = None,
    ) -> Resource:
        request = self._service.objects().list(
            **_params(
                bucket=bucket,
                delimiter=delimiter,
                prefix=prefix or None,
                pageToken=page_token,
                maxResults=max_results,
            )
        )
        return self._execute(request)

    def delete_object(self, bucket: str, name: str, *, if_generation_match: int | None = None) -> None:
        request = self._service.objects().delete(
            **_params(bucket=bucket, object=name, ifGenerationMatch=if_generation_match)
        )
        self._execute(request)

    def insert_object(
        self,
        bucket: str,
        body: Resource,
        source: UploadSource,
        *,
        content_type: str | None = None,
        content_encoding: str | None = None,
        if_generation_match: int | None = None,
    ) -> Resource:
        mimetype = content_type or "application/octet-stream"
        if isinstance(source, str):
            media = MediaFileUpload(source, mimetype=mimetype, resumable=True)
        elif isinstance(source, (bytes, bytearray)):
            media = MediaIoBaseUpload(io.BytesIO(source), mimetype=mimetype, resumable=True)
        else:
            media = MediaIoBaseUpload(source, mimetype=mimetype, resumable=True)
        request = self._service.objects().insert(
            **_params(
                bucket=bucket,
                body=body,
                media_body=media,
                contentEncoding=content_encoding,
                ifGenerationMatch=if_generation_match,
            )
        )
        return self._execute(request)

    def rewrite_object(
        self,
        src_bucket: str,
        src_name: str,
        dest_bucket: str,
        dest_name: str,
        *,
        rewrite_token: str | None = None,
        if_generation_match: int | None = None,
    ) -> Resource:
        request = self._service.objects().rewrite(
            **_params(
                sourceBucket=src_bucket,
                sourceObject=src_name,
                destinationBucket=dest_bucket,
                destinationObject=dest_name,
                rewriteToken=rewrite_token,
                ifGenerationMatch=if_generation_match,
                body={},
            )
        )
        return self._execute(request)

    def compose_object(self, dest_bucket: str, dest_name: str, body: Resource) -> Resource:
        request = self._service.objects().compose(
            destinationBucket=dest_bucket,
            destinationObject=dest_name,
            body=body,
        )
        return self._execute(request)

    @contextmanager
    def batch(self) -> Iterator[StorageBatch]:
        request = self._service.new_batch_http_request()
        yield _DiscoveryBatch(self._service, request)
        LOGGER.debug("Executing batch request")
        request.execute()
