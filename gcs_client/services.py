from __future__ import annotations
"""Business logic for interacting with Cloud Storage."""
import logging
import os
from typing import Any, BinaryIO, Callable, Iterable, Iterator, Optional, Union

import requests
from googleapiclient.errors import HttpError

from .api import DiscoveryStorageApi, Resource, StorageApi, UploadSource
from .auth import DEFAULT_SCOPE, GoogleAuthorizer, TokenGuard
from .errors import ComposeError, GcsError, is_not_found
from .models import MAX_COMPOSE_COMPONENTS, ComposeSet, ListPage, Locator, ObjectSummary, RewriteResult
from .paths import SCHEME, ensure_trailing_slash, glob_match, glob_prefix, resolve
from .transport import DEFAULT_CHUNK_SIZE, DEFAULT_READ_LIMIT, RawStorageTransport

LOGGER = logging.getLogger(__name__)

LIST_PAGE_SIZE = 1000
DELETE_BATCH_SIZE = 1000

DownloadTarget = Union[str, "os.PathLike[str]", BinaryIO]


def _chunks(items: list, size: int) -> Iterator[list]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def _tree_prefix(path: str | None) -> str:
    return ensure_trailing_slash(path) if path else ""


class GcsService:
    """Bucket and object operations on top of a :class:`StorageApi`."""

    def __init__(
        self,
        api: StorageApi,
        transport: RawStorageTransport | None = None,
        *,
        page_size: int | None = None,
    ):
        self._api = api
        self._transport = transport
        self._page_size = page_size

    @classmethod
    def connect(
        cls,
        email_address: str | None = None,
        private_key: str | None = None,
        *,
        scope: str = DEFAULT_SCOPE,
        num_retries: int = 10,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> GcsService:
        """Authorize and build a service.

        Uses a service account when both *email_address* and *private_key* are
        given, application default credentials otherwise.
        """

        if email_address and private_key:
            authorizer = GoogleAuthorizer.from_service_account(email_address, private_key, scope=scope)
        else:
            authorizer = GoogleAuthorizer.application_default(scope=scope)
        authorizer.fetch_initial_token()
        api = DiscoveryStorageApi.build(authorizer.credentials, num_retries=num_retries)
        transport = RawStorageTransport(
            TokenGuard(authorizer),
            session,
            chunk_size=chunk_size,
            timeout=timeout,
        )
        return cls(api, transport)

    # Buckets

    def list_buckets(self, project_id: str) -> list[Resource]:
        response = self._api.list_buckets(project_id, max_results=1000)
        return list(response.get("items") or [])

    def get_bucket(self, name: str) -> Resource | None:
        try:
            return self._api.get_bucket(name)
        except HttpError as exc:
            if is_not_found(exc):
                return None
            raise

    def insert_bucket(
        self,
        project_id: str,
        name: str,
        *,
        storage_class: str = "STANDARD",
        acl: list[Resource] | None = None,
        default_object_acl: list[Resource] | None = None,
        location: str | None = None,
    ) -> Resource:
        body: dict[str, Any] = {"name": name, "storageClass": storage_class}
        if location:
            body["location"] = location
        if acl:
            body["acl"] = acl
        if default_object_acl:
            body["defaultObjectAcl"] = default_object_acl
        return self._api.insert_bucket(project_id, body)

    def delete_bucket(self, name: str) -> None:
        try:
            self._api.delete_bucket(name)
        except HttpError as exc:
            if is_not_found(exc):
                return None
            raise

    # Objects

    def get_object(
        self,
        bucket: str,
        object: str | None = None,
        *,
        download_dest: DownloadTarget | None = None,
    ) -> Resource | None:
        """Return object metadata, optionally downloading its content.

        The download is pinned to the generation read with the metadata.
        Returns ``None`` when the object does not exist.
        """

        locator = resolve(bucket, object)
        try:
            resource = self._api.get_object(locator.bucket, locator.object)
            if download_dest is not None:
                self._download(locator, resource, download_dest)
            return resource
        except HttpError as exc:
            if is_not_found(exc):
                return None
            raise

    def _download(self, locator: Locator, resource: Resource, destination: DownloadTarget) -> None:
        generation = resource.get("generation")
        generation = int(generation) if generation is not None else None
        if isinstance(destination, (str, os.PathLike)):
            with open(destination, "wb") as handle:
                self._api.download_object(locator.bucket, locator.object, handle, generation=generation)
        else:
            self._api.download_object(locator.bucket, locator.object, destination, generation=generation)

    def delete_object(
        self,
        bucket: str,
        object: str | None = None,
        *,
        if_generation_match: int | None = None,
    ) -> None:
        locator = resolve(bucket, object)
        try:
            self._api.delete_object(locator.bucket, locator.object, if_generation_match=if_generation_match)
        except HttpError as exc:
            if is_not_found(exc):
                return None
            raise

    def insert_object(
        self,
        bucket: str,
        name: str | None,
        source: UploadSource,
        *,
        content_type: str | None = None,
        content_encoding: str | None = None,
        if_generation_match: int | None = None,
    ) -> Resource:
        locator = resolve(bucket, name)
        return self._api.insert_object(
            locator.bucket,
            {"name": locator.object},
            source,
            content_type=content_type,
            content_encoding=content_encoding,
            if_generation_match=if_generation_match,
        )

    # Direct HTTP

    def _require_transport(self) -> RawStorageTransport:
        if self._transport is None:
            raise GcsError("This operation needs a direct HTTP transport")
        return self._transport

    def read_partial(
        self,
        bucket: str,
        object: str | None = None,
        *,
        limit: int = DEFAULT_READ_LIMIT,
        trim_after_last_delimiter: bytes | str | None = None,
        sink: Optional[Callable[[bytes], None]] = None,
    ):
        """See :meth:`RawStorageTransport.read_partial`."""

        return self._require_transport().read_partial(
            resolve(bucket, object),
            limit=limit,
            trim_after_last_delimiter=trim_after_last_delimiter,
            sink=sink,
        )

    def initiate_resumable_upload(
        self,
        bucket: str,
        object: str | None = None,
        *,
        content_type: str = "application/octet-stream",
        origin_domain: str | None = None,
    ) -> str | None:
        return self._require_transport().initiate_resumable_upload(
            resolve(bucket, object),
            content_type=content_type,
            origin_domain=origin_domain,
        )

    # Listing

    def list_objects(
        self,
        bucket: str,
        *,
        delimiter: str | None = "/",
        prefix: str = "",
        page_token: str | None = None,
        max_results: int | None = None,
    ) -> ListPage:
        if bucket.startswith(SCHEME):
            bucket, prefix = resolve(bucket)
            prefix = prefix or ""
        response = self._api.list_objects(
            bucket,
            delimiter=delimiter,
            prefix=prefix,
            page_token=page_token,
            max_results=max_results,
        )
        return ListPage.from_response(response)

    def iter_pages(
        self,
        bucket: str,
        *,
        prefix: str = "",
        delimiter: str | None = None,
        page_size: int | None = None,
    ) -> Iterator[ListPage]:
        page_token = None
        while True:
            page = self.list_objects(
                bucket,
                delimiter=delimiter,
                prefix=prefix,
                page_token=page_token,
                max_results=page_size or self._page_size,
            )
            yield page
            if not page.next_page_token:
                return
            page_token = page.next_page_token

    def iter_objects(
        self,
        bucket: str,
        *,
        prefix: str = "",
        delimiter: str | None = None,
        page_size: int | None = None,
    ) -> Iterator[ObjectSummary]:
        for page in self.iter_pages(bucket, prefix=prefix, delimiter=delimiter, page_size=page_size):
            yield from page.items

    def glob(
        self,
        bucket: str,
        object: str | None = None,
        *,
        page_size: int | None = None,
    ) -> Iterator[ObjectSummary]:
        """Lazily yield objects whose full name matches a shell-style pattern.

        Only names under the literal prefix of the pattern are listed.
        """

        locator = resolve(bucket, object)
        pattern = locator.object or ""
        for item in self.iter_objects(locator.bucket, prefix=glob_prefix(pattern), page_size=page_size):
            if glob_match(pattern, item.name):
                yield item

    # Copy / delete

    def rewrite(
        self,
        src_bucket: str,
        src_object: str,
        dest_bucket: str,
        dest_object: str,
        *,
        if_generation_match: int | None = None,
    ) -> RewriteResult:
        """Copy an object server-side, following rewrite tokens until done."""

        result = RewriteResult.from_response(
            self._api.rewrite_object(
                src_bucket,
                src_object,
                dest_bucket,
                dest_object,
                if_generation_match=if_generation_match,
            )
        )
        while not result.done:
            LOGGER.debug(
                "Rewrite of gs://%s/%s in progress (%s/%s bytes)",
                src_bucket,
                src_object,
                result.total_bytes_rewritten,
                result.object_size,
            )
            result = RewriteResult.from_response(
                self._api.rewrite_object(
                    src_bucket,
                    src_object,
                    dest_bucket,
                    dest_object,
                    rewrite_token=result.rewrite_token,
                    if_generation_match=if_generation_match,
                )
            )
        return result

    def copy_object(self, src: str, dest: str) -> RewriteResult:
        src_bucket, src_object = resolve(src)
        dest_bucket, dest_object = resolve(dest)
        return self.rewrite(src_bucket, src_object, dest_bucket, dest_object)

    def copy_tree(self, src: str, dest: str) -> int:
        """Copy every object under *src* to the same relative name under *dest*.

        Returns the number of copied objects.
        """

        src_bucket, src_path = resolve(src)
        dest_bucket, dest_path = resolve(dest)
        pending = [(_tree_prefix(src_path), _tree_prefix(dest_path))]
        copied = 0
        while pending:
            src_prefix, dest_prefix = pending.pop()
            LOGGER.debug("Copying gs://%s/%s to gs://%s/%s", src_bucket, src_prefix, dest_bucket, dest_prefix)
            subdirectories: list[str] = []
            for page in self.iter_pages(src_bucket, prefix=src_prefix, delimiter="/"):
                for item in page.items:
                    if item.name.endswith("/"):
                        continue
                    self.rewrite(src_bucket, item.name, dest_bucket, dest_prefix + item.name[len(src_prefix):])
                    copied += 1
                subdirectories.extend(page.prefixes)
            for prefix in reversed(subdirectories):
                pending.append((prefix, dest_prefix + prefix[len(src_prefix):]))
        return copied

    def remove_tree(self, url: str) -> int | None:
        """Delete every object under a ``gs://bucket/path`` prefix.

        Returns the number of objects processed, or ``None`` when the bucket
        does not exist. Deletion is not transactional across pages.
        """

        bucket, path = resolve(url)
        path = path or ""
        if path and not path.endswith("/"):
            path += "/"
        processed = 0
        page_token = None
        while True:
            try:
                page = self.list_objects(
                    bucket,
                    prefix=path,
                    delimiter=None,
                    page_token=page_token,
                    max_results=LIST_PAGE_SIZE,
                )
            except HttpError as exc:
                if is_not_found(exc):
                    return None
                raise
            for group in _chunks(page.items, DELETE_BATCH_SIZE):
                self._delete_batch(bucket, group)
                processed += len(group)
            if not page.next_page_token:
                return processed
            page_token = page.next_page_token

    def _delete_batch(self, bucket: str, items: list[ObjectSummary]) -> None:
        def _callback(_response, exception):
            if exception is not None and not is_not_found(exception):
                raise exception

        LOGGER.debug("Deleting %d objects from gs://%s", len(items), bucket)
        with self._api.batch() as batch:
            for item in items:
                batch.delete_object(bucket, item.name, _callback)

    # Compose

    def compose_object(
        self,
        source_patterns: Union[str, Iterable[str]],
        dest: str,
        *,
        content_type: str | None = None,
        content_encoding: str | None = None,
    ) -> Resource:
        """Concatenate up to 32 objects matched by glob patterns into *dest*.

        Raises:
            ComposeError: when the sources span buckets, a pattern matches
                nothing or more than 32 distinct objects are matched. Nothing
                is composed in that case.
        """

        patterns = [source_patterns] if isinstance(source_patterns, str) else list(source_patterns)
        if len(patterns) > MAX_COMPOSE_COMPONENTS:
            raise ComposeError(
                "The number of components to be composed into single object "
                f"should be equal or less than {MAX_COMPOSE_COMPONENTS}."
            )
        dest_bucket, dest_object = resolve(dest)
        locators = [resolve(pattern) for pattern in patterns]
        for locator in locators:
            if locator.bucket != locators[0].bucket or locator.bucket != dest_bucket:
                raise ComposeError("The all components objects should be placed in the same bucket to compose objects.")

        sources = ComposeSet()
        for pattern, locator in zip(patterns, locators):
            matched = 0
            for item in self.glob(locator.bucket, locator.object or ""):
                matched += 1
                sources.add(item.name)
            if not matched:
                raise ComposeError(f"No object found or no matched objects found for '{pattern}'")

        destination: dict[str, Any] = {"bucket": dest_bucket, "name": dest_object}
        if content_type:
            destination["contentType"] = content_type
        if content_encoding:
            destination["contentEncoding"] = content_encoding
        body = {
            "destination": destination,
            "sourceObjects": [{"name": name} for name in sources.names],
        }
        LOGGER.debug("Composing %d objects into gs://%s/%s", len(sources), dest_bucket, dest_object)
        return self._api.compose_object(dest_bucket, dest_object, body)
