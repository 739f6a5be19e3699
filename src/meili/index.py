# -*- coding: utf-8 -*-
#
# Copyright (C) 2015-2026 Dubalu LLC. All rights reserved.
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN
# THE SOFTWARE.
#
"""Index handle: documents, settings, search and tasks of one index.

An ``Index`` binds an index identifier to a shared ``Meili`` client. Write
operations return the server's ``TaskInfo`` acknowledgment; the work itself
happens later on the server and is observed with ``wait_for_task``.

The ``*_in_batches`` operations split a large payload into chunks of
``batch_size`` records and send one request per chunk, in order, without
waiting for the server to process a chunk before sending the next. If a
chunk is rejected the operation stops and raises; the tasks of the chunks
already accepted stay enqueued on the server and will run, but their
acknowledgments are not returned.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from .batches import RawPayload, check_batch_size, chunk_csv, chunk_documents, chunk_ndjson
from .collections import NA, Document, Record, camelize
from .models import IndexInfo, IndexStats, Settings, Task, TaskInfo, TaskResult, TasksQuery
from .tasks import get_task, get_tasks, wait_for_task

if TYPE_CHECKING:
    from . import Meili


logger = logging.getLogger('meili')

CONTENT_TYPE_JSON = 'application/json'
CONTENT_TYPE_CSV = 'text/csv'
CONTENT_TYPE_NDJSON = 'application/x-ndjson'

DEFAULT_BATCH_SIZE = 1000


def _read_payload(payload: RawPayload) -> bytes:
    if not isinstance(payload, (bytes, str)):
        payload = payload.read()
    if isinstance(payload, str):
        payload = payload.encode('utf-8')
    return payload


class Index:
    """Handle for one index of a Meilisearch server.

    Attributes:
        uid: Identifier of the index. Fixed for the life of the handle.
        client: The shared ``Meili`` client. Not owned by the handle.
    """

    # Settings attribute -> (sub-endpoint, update method)
    _settings = dict(
        ranking_rules=('ranking-rules', 'PUT'),
        distinct_attribute=('distinct-attribute', 'PUT'),
        searchable_attributes=('searchable-attributes', 'PUT'),
        displayed_attributes=('displayed-attributes', 'PUT'),
        stop_words=('stop-words', 'PUT'),
        synonyms=('synonyms', 'PUT'),
        filterable_attributes=('filterable-attributes', 'PUT'),
        sortable_attributes=('sortable-attributes', 'PUT'),
        typo_tolerance=('typo-tolerance', 'PATCH'),
        pagination=('pagination', 'PATCH'),
        faceting=('faceting', 'PATCH'),
        embedders=('embedders', 'PATCH'),
        search_cutoff_ms=('search-cutoff-ms', 'PUT'),
        separator_tokens=('separator-tokens', 'PUT'),
        non_separator_tokens=('non-separator-tokens', 'PUT'),
        dictionary=('dictionary', 'PUT'),
    )

    def __init__(self, client: Meili, uid: str, primary_key: str | None = None) -> None:
        self.client = client
        self._uid = uid
        self._primary_key = primary_key

    def __repr__(self) -> str:
        return f'<Index {self._uid!r} primary_key={self._primary_key!r}>'

    @property
    def uid(self) -> str:
        return self._uid

    @property
    def primary_key(self) -> str | None:
        """Locally cached primary key of the index.

        Not authoritative: it is refreshed by ``fetch_info`` and
        ``fetch_primary_key``, set by a successful ``update_index`` and
        cleared by a successful ``delete``, and otherwise may be stale or
        ``None``. Call ``fetch_primary_key`` when the real value matters.
        The cache is not locked; sharing a handle between threads that
        mutate it needs external synchronization.
        """
        return self._primary_key

    @property
    def _path(self) -> str:
        return f'indexes/{self._uid}'

    async def _mutate(self, method: str, endpoint: str, body: Any = None,
            params: Mapping[str, Any] | None = None,
            content_type: str | None = None) -> TaskInfo:
        content = await self.client._send_request(
            method, endpoint, body=body, params=params,
            content_type=content_type, accepted=(202,))
        return TaskInfo.model_validate(content)

    # Index

    async def fetch_info(self) -> IndexInfo:
        """Fetch the index description, refreshing the cached primary key.

        Raises:
            NotFoundError: If the index does not exist.
        """
        content = await self.client._send_request('GET', self._path)
        info = IndexInfo.model_validate(content)
        if info.primary_key:
            self._primary_key = info.primary_key
        return info

    async def fetch_primary_key(self) -> str | None:
        info = await self.fetch_info()
        self._primary_key = info.primary_key
        return info.primary_key

    async def update_index(self, primary_key: str) -> TaskInfo:
        """Change the primary key of the index.

        The cached ``primary_key`` is updated only once the server has
        accepted the request.
        """
        task_info = await self._mutate('PATCH', self._path, body=dict(primaryKey=primary_key))
        self._primary_key = primary_key
        return task_info

    async def delete(self) -> TaskInfo:
        """Delete the index. Clears the cached primary key on success."""
        task_info = await self._mutate('DELETE', self._path)
        self._primary_key = None
        return task_info

    async def get_stats(self) -> IndexStats:
        content = await self.client._send_request('GET', f'{self._path}/stats')
        return IndexStats.model_validate(content)

    # Documents

    async def _send_documents(self, method: str, documents: Iterable[Document],
            primary_key: str | None) -> TaskInfo:
        if not isinstance(documents, (Mapping, list)):
            documents = list(documents)
        return await self._mutate(
            method, f'{self._path}/documents', body=documents,
            params=dict(primaryKey=primary_key), content_type=CONTENT_TYPE_JSON)

    async def _send_csv(self, method: str, payload: RawPayload,
            primary_key: str | None, csv_delimiter: str | None) -> TaskInfo:
        return await self._mutate(
            method, f'{self._path}/documents', body=_read_payload(payload),
            params=dict(primaryKey=primary_key, csvDelimiter=csv_delimiter),
            content_type=CONTENT_TYPE_CSV)

    async def _send_ndjson(self, method: str, payload: RawPayload,
            primary_key: str | None) -> TaskInfo:
        return await self._mutate(
            method, f'{self._path}/documents', body=_read_payload(payload),
            params=dict(primaryKey=primary_key), content_type=CONTENT_TYPE_NDJSON)

    async def _submit_batches(self, chunks: Iterable[Any],
            submit: Callable[[Any], Awaitable[TaskInfo]]) -> list[TaskInfo]:
        """Send each chunk in turn and collect the acknowledgments.

        Chunks are sent one after the other, in order; a chunk's task is
        not awaited before the next chunk is sent. The first failure is
        raised as is and no later chunk is sent.
        """
        task_infos = []
        for number, chunk in enumerate(chunks, 1):
            task_info = await submit(chunk)
            logger.debug(f"@@@>> BATCH: {number} :: INDEX: {self._uid} :: TASK: {task_info.task_uid}")
            task_infos.append(task_info)
        return task_infos

    async def add_documents(self, documents: Iterable[Document],
            primary_key: str | None = None) -> TaskInfo:
        """Add documents, replacing any existing document with the same id.

        Args:
            documents: Documents as mappings.
            primary_key: Primary key to set if the index has none yet.
        """
        return await self._send_documents('POST', documents, primary_key)

    async def add_documents_in_batches(self, documents: Iterable[Document],
            batch_size: int = DEFAULT_BATCH_SIZE,
            primary_key: str | None = None) -> list[TaskInfo]:
        """Add documents with one request per ``batch_size`` documents.

        Args:
            documents: Documents as mappings.
            batch_size: Maximum number of documents per request. Must be
                positive.
            primary_key: Primary key sent with every batch.

        Returns:
            list[TaskInfo]: One acknowledgment per batch, in order.

        Raises:
            ValueError: If ``batch_size`` is not positive. Nothing is sent.
            StatusError: If a batch is rejected. Batches sent before it
                remain enqueued on the server; their acknowledgments are
                lost with the exception.
        """
        check_batch_size(batch_size)
        return await self._submit_batches(
            chunk_documents(documents, batch_size),
            lambda chunk: self._send_documents('POST', chunk, primary_key))

    async def update_documents(self, documents: Iterable[Document],
            primary_key: str | None = None) -> TaskInfo:
        """Add documents, merging fields into existing documents with the same id."""
        return await self._send_documents('PUT', documents, primary_key)

    async def update_documents_in_batches(self, documents: Iterable[Document],
            batch_size: int = DEFAULT_BATCH_SIZE,
            primary_key: str | None = None) -> list[TaskInfo]:
        """Batched ``update_documents``. Same contract as ``add_documents_in_batches``."""
        check_batch_size(batch_size)
        return await self._submit_batches(
            chunk_documents(documents, batch_size),
            lambda chunk: self._send_documents('PUT', chunk, primary_key))

    async def add_documents_csv(self, documents: RawPayload,
            primary_key: str | None = None,
            csv_delimiter: str | None = None) -> TaskInfo:
        """Add documents from CSV given as bytes, text or a readable file."""
        return await self._send_csv('POST', documents, primary_key, csv_delimiter)

    async def add_documents_csv_in_batches(self, documents: RawPayload,
            batch_size: int = DEFAULT_BATCH_SIZE,
            primary_key: str | None = None,
            csv_delimiter: str | None = None) -> list[TaskInfo]:
        """Add CSV documents with one request per ``batch_size`` rows.

        The header row is repeated in every batch. Fields of any length are
        accepted. A file object is read incrementally.

        Raises:
            ValueError: If ``batch_size`` is not positive, or if a line is
                not valid UTF-8. Batches sent before that line remain
                enqueued on the server.
            StatusError: If a batch is rejected.
        """
        check_batch_size(batch_size)
        return await self._submit_batches(
            chunk_csv(documents, batch_size, csv_delimiter),
            lambda chunk: self._send_csv('POST', chunk, primary_key, csv_delimiter))

    async def update_documents_csv(self, documents: RawPayload,
            primary_key: str | None = None,
            csv_delimiter: str | None = None) -> TaskInfo:
        return await self._send_csv('PUT', documents, primary_key, csv_delimiter)

    async def update_documents_csv_in_batches(self, documents: RawPayload,
            batch_size: int = DEFAULT_BATCH_SIZE,
            primary_key: str | None = None,
            csv_delimiter: str | None = None) -> list[TaskInfo]:
        check_batch_size(batch_size)
        return await self._submit_batches(
            chunk_csv(documents, batch_size, csv_delimiter),
            lambda chunk: self._send_csv('PUT', chunk, primary_key, csv_delimiter))

    async def add_documents_ndjson(self, documents: RawPayload,
            primary_key: str | None = None) -> TaskInfo:
        """Add documents from NDJSON given as bytes, text or a readable file."""
        return await self._send_ndjson('POST', documents, primary_key)

    async def add_documents_ndjson_in_batches(self, documents: RawPayload,
            batch_size: int = DEFAULT_BATCH_SIZE,
            primary_key: str | None = None) -> list[TaskInfo]:
        """Add NDJSON documents with one request per ``batch_size`` lines.

        Blank lines are skipped and do not count toward ``batch_size``.
        A line that is not valid UTF-8 raises ``ValueError``; batches sent
        before it remain enqueued on the server.
        """
        check_batch_size(batch_size)
        return await self._submit_batches(
            chunk_ndjson(documents, batch_size),
            lambda chunk: self._send_ndjson('POST', chunk, primary_key))

    async def update_documents_ndjson(self, documents: RawPayload,
            primary_key: str | None = None) -> TaskInfo:
        return await self._send_ndjson('PUT', documents, primary_key)

    async def update_documents_ndjson_in_batches(self, documents: RawPayload,
            batch_size: int = DEFAULT_BATCH_SIZE,
            primary_key: str | None = None) -> list[TaskInfo]:
        check_batch_size(batch_size)
        return await self._submit_batches(
            chunk_ndjson(documents, batch_size),
            lambda chunk: self._send_ndjson('PUT', chunk, primary_key))

    async def get_document(self, id: str | int, fields: Sequence[str] | None = None,
            default: Any = NA) -> Record | Any:
        """Retrieve one document by id.

        Args:
            id: Primary key value of the document.
            fields: Restrict the returned attributes.
            default: Value to return if the document is not found. If not
                provided, a ``NotFoundError`` is raised on 404.
        """
        return await self.client._send_request(
            'GET', f'{self._path}/documents/{id}', params=dict(fields=fields), default=default)

    async def get_documents(self, limit: int | None = None, offset: int | None = None,
            fields: Sequence[str] | None = None,
            filter: str | list | None = None) -> Record:
        """Retrieve a page of documents.

        Returns:
            Record: With keys ``results``, ``offset``, ``limit`` and
                ``total``.
        """
        if filter is not None:
            body = camelize(dict(limit=limit, offset=offset, fields=fields, filter=filter))
            return await self.client._send_request('POST', f'{self._path}/documents/fetch', body=body)
        params = dict(limit=limit, offset=offset, fields=fields)
        return await self.client._send_request('GET', f'{self._path}/documents', params=params)

    async def delete_document(self, id: str | int) -> TaskInfo:
        return await self._mutate('DELETE', f'{self._path}/documents/{id}')

    async def delete_documents(self, ids: Sequence[str | int]) -> TaskInfo:
        return await self._mutate('POST', f'{self._path}/documents/delete-batch', body=list(ids))

    async def delete_documents_by_filter(self, filter: str | list) -> TaskInfo:
        """Delete every document matching a filter expression."""
        return await self._mutate('POST', f'{self._path}/documents/delete', body=dict(filter=filter))

    async def delete_all_documents(self) -> TaskInfo:
        return await self._mutate('DELETE', f'{self._path}/documents')

    # Search

    async def search(self, query: str | None = None, **options) -> Record:
        """Search the index.

        Args:
            query: Query string. ``None`` is a placeholder search matching
                every document.
            **options: Search parameters in snake_case or camelCase (e.g.
                ``limit``, ``filter``, ``attributes_to_highlight``).

        Returns:
            Record: The search response, with ``hits`` and the paging and
                timing fields of the server.
        """
        body = camelize(options)
        if query is not None:
            body['q'] = query
        return await self.client._send_request('POST', f'{self._path}/search', body=body)

    async def facet_search(self, facet_name: str, facet_query: str | None = None,
            **options) -> Record:
        body = camelize(dict(options, facet_name=facet_name, facet_query=facet_query))
        return await self.client._send_request('POST', f'{self._path}/facet-search', body=body)

    async def search_similar_documents(self, id: str | int, **options) -> Record:
        body = camelize(dict(options, id=id))
        return await self.client._send_request('POST', f'{self._path}/similar', body=body)

    # Tasks

    async def get_task(self, task_uid: int) -> Task:
        return await get_task(self.client, task_uid)

    async def get_tasks(self, query: TasksQuery | None = None) -> TaskResult:
        """List tasks of this index.

        The index's own uid is always part of the ``indexUids`` filter,
        after any uids in ``query``. ``query`` itself is left unchanged.
        """
        return await get_tasks(self.client, query, index_uids=(self._uid,))

    async def wait_for_task(self, task_uid: int, interval: float | None = None,
            timeout: float | None = None) -> Task:
        """Poll until the task is terminal. See ``meili.tasks.wait_for_task``."""
        return await wait_for_task(self.client, task_uid, interval, timeout)

    # Settings

    def _setting(self, name: str) -> tuple[str, str]:
        try:
            endpoint, method = self._settings[name.replace('-', '_')]
        except KeyError:
            raise ValueError(f"Unknown setting: {name!r}") from None
        return f'{self._path}/settings/{endpoint}', method

    async def get_settings(self) -> Settings:
        content = await self.client._send_request('GET', f'{self._path}/settings')
        return Settings.model_validate(content)

    async def update_settings(self, settings: Settings | Mapping[str, Any]) -> TaskInfo:
        """Update the settings given; the others are left unchanged."""
        if not isinstance(settings, Settings):
            settings = Settings.model_validate(settings)
        return await self._mutate('PATCH', f'{self._path}/settings', body=settings.to_body())

    async def reset_settings(self) -> TaskInfo:
        return await self._mutate('DELETE', f'{self._path}/settings')

    async def get_setting(self, name: str) -> Any:
        """Fetch a single settings attribute, e.g. ``'stop_words'``.

        Raises:
            ValueError: If ``name`` is not a settings attribute.
        """
        endpoint, _ = self._setting(name)
        return await self.client._send_request('GET', endpoint)

    async def update_setting(self, name: str, value: Any) -> TaskInfo:
        """Set a single settings attribute. ``None`` is sent as JSON ``null``."""
        endpoint, method = self._setting(name)
        if value is None:
            return await self._mutate(method, endpoint, body=b'null', content_type=CONTENT_TYPE_JSON)
        return await self._mutate(method, endpoint, body=value)

    async def reset_setting(self, name: str) -> TaskInfo:
        endpoint, _ = self._setting(name)
        return await self._mutate('DELETE', endpoint)
