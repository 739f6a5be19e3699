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
"""Meilisearch Python client library.

Provides the ``Meili`` async client and the ``Index`` handle for talking to
a Meilisearch server over HTTP: index management, document ingestion
(JSON, CSV and NDJSON, whole or in batches), settings, search and task
tracking.

Every write is asynchronous on the server. It returns a ``TaskInfo``
acknowledgment right away, and ``wait_for_task`` polls until the task has
finished.

Configuration is read from environment variables (``MEILI_URL``,
``MEILI_API_KEY``, ``MEILI_TIMEOUT``, ``MEILI_POLL_INTERVAL``), with
optional overrides from Django settings. A module-level ``client``
singleton is created at import time using these defaults.

Example:
    >>> from meili import client
    >>> movies = client.index('movies')
    >>> info = await movies.add_documents_in_batches(docs, batch_size=100)
    >>> task = await movies.wait_for_task(info[-1].task_uid)
    >>> task.status
    <TaskStatus.SUCCEEDED: 'succeeded'>
"""
from __future__ import annotations

import os
import json
import logging
from collections.abc import Mapping
from typing import Any

try:
    from django.core.exceptions import ObjectDoesNotExist
except ImportError:
    ObjectDoesNotExist = Exception

try:
    import httpx
except ImportError:
    raise ImportError("Meili requires the installation of the httpx module.")

from .collections import NA, Record
from .index import CONTENT_TYPE_CSV, CONTENT_TYPE_JSON, CONTENT_TYPE_NDJSON, Index
from .models import (
    IndexInfo,
    IndexStats,
    Settings,
    Task,
    TaskError,
    TaskInfo,
    TaskResult,
    TasksQuery,
    TaskStatus,
    TaskType,
)
from .tasks import DEFAULT_POLL_INTERVAL, WaitTimeoutError, get_task, get_tasks, wait_for_task


__version__ = '1.0.0'
__all__ = [
    'Meili',
    'Index',
    'NotFoundError',
    'StatusError',
    'TransportError',
    'WaitTimeoutError',
    'NA',
    'client',
    'Record',
    'IndexInfo',
    'IndexStats',
    'Settings',
    'Task',
    'TaskError',
    'TaskInfo',
    'TaskResult',
    'TasksQuery',
    'TaskStatus',
    'TaskType',
    'CONTENT_TYPE_JSON',
    'CONTENT_TYPE_CSV',
    'CONTENT_TYPE_NDJSON',
    'MEILI_URL',
    'MEILI_API_KEY',
    'MEILI_TIMEOUT',
    'MEILI_POLL_INTERVAL',
]

logger = logging.getLogger('meili')

MEILI_URL = os.environ.get('MEILI_URL', 'http://127.0.0.1:7700')
MEILI_API_KEY = os.environ.get('MEILI_API_KEY')
MEILI_TIMEOUT = os.environ.get('MEILI_TIMEOUT')
MEILI_POLL_INTERVAL = os.environ.get('MEILI_POLL_INTERVAL', DEFAULT_POLL_INTERVAL)

try:
    from django.conf import settings
    MEILI_URL = getattr(settings, 'MEILI_URL', MEILI_URL)
    MEILI_API_KEY = getattr(settings, 'MEILI_API_KEY', MEILI_API_KEY)
    MEILI_TIMEOUT = getattr(settings, 'MEILI_TIMEOUT', MEILI_TIMEOUT)
    MEILI_POLL_INTERVAL = getattr(settings, 'MEILI_POLL_INTERVAL', MEILI_POLL_INTERVAL)
except Exception:
    settings = None


class StatusError(httpx.HTTPStatusError):
    """Raised when the server answers with a status the operation does not accept.

    Attributes:
        status_code: HTTP status of the response.
        body: Decoded error payload (a ``Record``), or the raw bytes when
            the body is not JSON.
        code: Server error code (e.g. ``'index_not_found'``), if any.
    """

    def __init__(self, message: str, *, request: httpx.Request,
            response: httpx.Response, body: Any = None) -> None:
        super().__init__(message, request=request, response=response)
        self.status_code = response.status_code
        self.body = body
        self.code = body.get('code') if isinstance(body, Mapping) else None


class NotFoundError(StatusError, ObjectDoesNotExist):
    """Raised when a referenced index, document or task does not exist (HTTP 404).

    Also inherits from Django's ``ObjectDoesNotExist`` when Django is
    available.
    """


TransportError = httpx.TransportError


class Meili:
    """Async client for a Meilisearch server.

    Owns no per-index state: ``index()`` hands out ``Index`` handles that
    share this client, and every request from any of them goes through
    ``_send_request`` on one pooled ``httpx.AsyncClient``.

    Attributes:
        url: Base URL of the server.
        api_key: Key sent as a bearer token, if any.
        timeout: Per-request timeout in seconds, or ``None`` for the
            session default.
        poll_interval: Default seconds between polls in ``wait_for_task``.
        NotFoundError: Reference to the ``NotFoundError`` exception class.
        NA: Sentinel object indicating no default value was provided.

    Example:
        >>> client = Meili('http://localhost:7700', api_key='masterKey')
        >>> task_info = await client.create_index('movies', primary_key='id')
        >>> task = await client.wait_for_task(task_info.task_uid)
    """

    NotFoundError = NotFoundError
    NA = NA

    session = httpx.AsyncClient(
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=100),
        trust_env=False,
        follow_redirects=False,
    )

    def __init__(self, url: str | None = None, api_key: str | None = None,
            timeout: float | str | None = None,
            poll_interval: float | str | None = None) -> None:
        """Initialize the client.

        Args:
            url: Server base URL. Defaults to ``MEILI_URL``. A bare
                ``host:port`` gets an ``http://`` scheme.
            api_key: API key. Defaults to ``MEILI_API_KEY``.
            timeout: Request timeout in seconds. Defaults to
                ``MEILI_TIMEOUT``.
            poll_interval: Seconds between task polls. Defaults to
                ``MEILI_POLL_INTERVAL``.
        """
        if url is None:
            url = MEILI_URL
        if api_key is None:
            api_key = MEILI_API_KEY
        if timeout is None:
            timeout = MEILI_TIMEOUT
        if poll_interval is None:
            poll_interval = MEILI_POLL_INTERVAL
        if '://' not in url:
            url = f'http://{url}'
        self.url = url.rstrip('/')
        self.api_key = api_key or None
        self.timeout = float(timeout) if timeout not in (None, '') else None
        self.poll_interval = float(poll_interval)

        self.DoesNotExist = NotFoundError

    def __repr__(self) -> str:
        return f'<Meili {self.url}>'

    def _build_url(self, endpoint: str) -> str:
        return f'{self.url}/{endpoint.strip("/")}'

    def _build_headers(self, content_type: str | None) -> dict[str, str]:
        headers = {'accept': CONTENT_TYPE_JSON}
        if content_type is not None:
            headers['content-type'] = content_type
        if self.api_key:
            headers['authorization'] = f'Bearer {self.api_key}'
        return headers

    async def _send_request(self, method: str, endpoint: str, body: Any = None,
            params: Mapping[str, Any] | None = None,
            content_type: str | None = None,
            accepted: tuple[int, ...] = (200,), default: Any = NA,
            **kwargs) -> Record | list | bytes | Any:
        """Send an HTTP request to the server and decode the response.

        Central method through which every operation is routed. Handles
        URL and query string construction, body encoding, status checking
        and response decoding. Never retries.

        Args:
            method: HTTP method (``'GET'``, ``'POST'``, ``'PUT'``,
                ``'PATCH'`` or ``'DELETE'``).
            endpoint: Path relative to the server URL (e.g.
                ``'indexes/movies/documents'``).
            body: Request body. With a JSON (or no) ``content_type`` it is
                encoded with ``json.dumps`` unless it is already ``bytes``;
                otherwise it must be ``bytes`` or ``str`` and is sent as is.
            params: Query parameters. ``None`` values are dropped, booleans
                become ``'true'``/``'false'`` and lists are comma-joined.
            content_type: ``Content-Type`` of ``body``. Defaults to JSON
                when a body is given.
            accepted: Status codes that count as success.
            default: Value returned instead of raising ``NotFoundError``
                on a 404.
            **kwargs: Additional keyword arguments passed to the underlying
                ``httpx`` request.

        Returns:
            Record: Decoded JSON content (a ``list`` or scalar when the
                server returns one), ``None`` for an empty body, or the raw
                bytes for a non-JSON response.

        Raises:
            NotFoundError: On a 404 and no ``default`` was provided.
            StatusError: On any other status not in ``accepted``.
            httpx.TransportError: If the server could not be reached.
        """
        url = self._build_url(endpoint)

        if params is not None:
            kwargs['params'] = {
                k: ('true' if v else 'false') if isinstance(v, bool)
                else ','.join(str(i) for i in v) if isinstance(v, (list, tuple, set))
                else v
                for k, v in params.items()
                if v is not None
            }

        if body is not None and content_type is None:
            content_type = CONTENT_TYPE_JSON
        kwargs['headers'] = self._build_headers(content_type)
        if self.timeout is not None:
            kwargs.setdefault('timeout', self.timeout)

        if body is not None:
            if content_type == CONTENT_TYPE_JSON and not isinstance(body, bytes):
                body = json.dumps(body, ensure_ascii=True)
                logger.debug(f"@@@>> {method} URL: {url}  ::  BODY: {body}  ::  PARAMS: {kwargs.get('params')}")
            else:
                logger.debug(f"@@@>> {method} URL: {url}  ::  BODY: <{content_type}, {len(body)} bytes>  ::  PARAMS: {kwargs.get('params')}")
            res = await self.session.request(method, url, content=body, **kwargs)
        else:
            logger.debug(f"@@@>> {method} URL: {url}  ::  PARAMS: {kwargs.get('params')}")
            res = await self.session.request(method, url, **kwargs)

        if res.status_code not in accepted:
            if res.status_code == 404 and default is not NA:
                return default
            try:
                error = json.loads(res.content, object_pairs_hook=Record)
            except ValueError:
                error = res.content
            message = error.get('message') if isinstance(error, Mapping) else None
            message = f"{res.status_code} {method} {url}: {message or 'unexpected status'}"
            logger.debug(f"@@@RES>> {message} :: {res.content!r}")
            exc_class = NotFoundError if res.status_code == 404 else StatusError
            raise exc_class(message, request=res.request, response=res, body=error)

        if not res.content:
            return None

        content_type = res.headers.get('content-type', '')
        if CONTENT_TYPE_JSON in content_type:
            return json.loads(res.content, object_pairs_hook=Record)
        return res.content

    def index(self, uid: str, primary_key: str | None = None) -> Index:
        """Return a handle for ``uid`` without contacting the server."""
        return Index(self, uid, primary_key)

    async def get_index(self, uid: str) -> Index:
        """Fetch an index and return a handle with its primary key cached.

        Raises:
            NotFoundError: If the index does not exist.
        """
        index = self.index(uid)
        await index.fetch_info()
        return index

    async def get_indexes(self, limit: int | None = None,
            offset: int | None = None) -> list[IndexInfo]:
        params = dict(limit=limit, offset=offset)
        content = await self._send_request('GET', 'indexes', params=params)
        return [IndexInfo.model_validate(result) for result in content['results']]

    async def create_index(self, uid: str, primary_key: str | None = None) -> TaskInfo:
        """Ask the server to create an index.

        The index exists only once the returned task has succeeded.
        """
        body = dict(uid=uid)
        if primary_key is not None:
            body['primaryKey'] = primary_key
        content = await self._send_request('POST', 'indexes', body=body, accepted=(202,))
        return TaskInfo.model_validate(content)

    async def delete_index(self, uid: str) -> TaskInfo:
        return await self.index(uid).delete()

    async def get_stats(self) -> Record:
        return await self._send_request('GET', 'stats')

    async def health(self) -> Record:
        return await self._send_request('GET', 'health')

    async def get_task(self, task_uid: int) -> Task:
        return await get_task(self, task_uid)

    async def get_tasks(self, query: TasksQuery | None = None) -> TaskResult:
        return await get_tasks(self, query)

    async def wait_for_task(self, task_uid: int, interval: float | None = None,
            timeout: float | None = None) -> Task:
        """Poll until the task is terminal. See ``meili.tasks.wait_for_task``."""
        return await wait_for_task(self, task_uid, interval, timeout)


client = Meili(url=MEILI_URL, api_key=MEILI_API_KEY, timeout=MEILI_TIMEOUT, poll_interval=MEILI_POLL_INTERVAL)
