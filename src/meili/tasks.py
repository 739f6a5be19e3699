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
"""Task lookup and completion polling.

Writes are acknowledged by the server before they are carried out; the
acknowledgment's ``task_uid`` is resolved here. All functions take the
``Meili`` client whose ``_send_request`` performs the HTTP call.
"""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .models import Task, TaskResult, TasksQuery

if TYPE_CHECKING:
    from . import Meili


logger = logging.getLogger('meili')

DEFAULT_POLL_INTERVAL = 0.05


class WaitTimeoutError(TimeoutError):
    """Raised when ``wait_for_task`` gives up before the task finished.

    Distinct from ``httpx`` transport errors, which mean the server could
    not be reached at all.
    """

    def __init__(self, task_uid: int, timeout: float) -> None:
        super().__init__(f"Task {task_uid} did not finish within {timeout}s")
        self.task_uid = task_uid
        self.timeout = timeout


async def get_task(client: Meili, task_uid: int) -> Task:
    """Fetch the current state of one task.

    Raises:
        NotFoundError: If the server does not know ``task_uid``.
    """
    content = await client._send_request('GET', f'tasks/{task_uid}', accepted=(200,))
    return Task.model_validate(content)


async def get_tasks(client: Meili, query: TasksQuery | None = None,
        index_uids: tuple[str, ...] | list[str] = ()) -> TaskResult:
    """List tasks, filtered server side.

    Args:
        client: Client used to send the request.
        query: Optional filter. Zero or empty fields are left out of the
            query string.
        index_uids: Index identifiers always added to the
            ``indexUids`` filter, after the ones in ``query``.
    """
    query = query or TasksQuery()
    params = query.to_params(index_uids)
    content = await client._send_request('GET', 'tasks', params=params, accepted=(200,))
    return TaskResult.model_validate(content)


async def wait_for_task(client: Meili, task_uid: int, interval: float | None = None,
        timeout: float | None = None) -> Task:
    """Poll a task until it reaches a terminal status.

    The task is fetched, and while it is ``enqueued`` or ``processing`` the
    call sleeps ``interval`` seconds and fetches it again. The interval is
    fixed (no backoff); pass a larger one to lower the load on the server.

    A task that ends ``failed`` or ``canceled`` is returned like a
    successful one: inspect ``task.status`` and ``task.error``. Only
    lookup and transport problems raise.

    There is no limit on the number of polls. The loop ends when the server
    moves the task to a terminal status, when ``timeout`` expires, or when
    the awaiting asyncio task is cancelled; enforcing anything beyond that
    is up to the caller.

    Args:
        client: Client used to send the requests.
        task_uid: Identifier from the ``TaskInfo`` acknowledgment.
        interval: Seconds between polls. ``None`` or a non-positive value
            means ``DEFAULT_POLL_INTERVAL``.
        timeout: Seconds after which to give up. ``None`` waits forever.

    Returns:
        Task: The task in its terminal state.

    Raises:
        WaitTimeoutError: If ``timeout`` expired first. No request is sent
            after the deadline.
        asyncio.CancelledError: If the caller cancelled the wait.
    """
    if interval is None or interval <= 0:
        interval = client.poll_interval if client.poll_interval > 0 else DEFAULT_POLL_INTERVAL

    loop = asyncio.get_running_loop()
    deadline = None if timeout is None else loop.time() + timeout

    def check_deadline():
        if deadline is not None and loop.time() >= deadline:
            raise WaitTimeoutError(task_uid, timeout)

    try:
        async with asyncio.timeout_at(deadline):
            while True:
                check_deadline()
                task = await get_task(client, task_uid)
                logger.debug(f"@@@>> TASK: {task_uid} :: STATUS: {task.status}")
                if task.status.is_terminal:
                    return task
                check_deadline()
                await asyncio.sleep(interval)
    except TimeoutError as exc:
        if isinstance(exc, WaitTimeoutError) or deadline is None:
            raise
        raise WaitTimeoutError(task_uid, timeout) from exc
