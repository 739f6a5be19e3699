"""Tests for meili.tasks: task lookup and wait_for_task polling."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import httpx

from meili import Meili, NotFoundError, TaskStatus, TasksQuery, WaitTimeoutError
from meili.collections import Record
from meili.tasks import DEFAULT_POLL_INTERVAL, get_task, get_tasks, wait_for_task


def _task(status, uid=5, **extra):
    return Record(
        uid=uid,
        indexUid='movies',
        status=status,
        type='documentAdditionOrUpdate',
        enqueuedAt='2024-01-01T00:00:00Z',
        **extra,
    )


def _not_found():
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = 404
    return NotFoundError('Task `99` not found.', request=MagicMock(spec=httpx.Request), response=resp)


class TaskTestCase:
    def setup_method(self):
        self.client = Meili(url='http://localhost:7700', poll_interval=0.01)

    def _patch(self, *responses, **kwargs):
        if responses:
            kwargs['side_effect'] = list(responses)
        return patch.object(self.client, '_send_request', **kwargs)


# ── get_task / get_tasks ──────────────────────────────────────────────

class TestGetTask(TaskTestCase):
    async def test_get_task(self):
        with self._patch(_task('succeeded', finishedAt='2024-01-01T00:00:01Z')) as m:
            task = await get_task(self.client, 5)
        assert task.uid == 5
        assert task.status is TaskStatus.SUCCEEDED
        assert task.finished_at is not None
        m.assert_awaited_once_with('GET', 'tasks/5', accepted=(200,))

    async def test_get_task_not_found(self):
        with self._patch(side_effect=_not_found()):
            with pytest.raises(NotFoundError):
                await get_task(self.client, 99)

    async def test_get_tasks_omits_empty_filters(self):
        with self._patch(Record(results=[_task('enqueued')], limit=20, next=None)) as m:
            result = await get_tasks(self.client, TasksQuery(limit=20))
        assert len(result.results) == 1
        assert result.results[0].status is TaskStatus.ENQUEUED
        m.assert_awaited_once_with('GET', 'tasks', params={'limit': '20'}, accepted=(200,))

    async def test_get_tasks_without_query(self):
        with self._patch(Record(results=[])) as m:
            await get_tasks(self.client)
        assert m.call_args.kwargs['params'] == {}

    async def test_client_get_task(self):
        with self._patch(_task('processing')):
            task = await self.client.get_task(5)
        assert task.status is TaskStatus.PROCESSING


# ── wait_for_task ─────────────────────────────────────────────────────

class TestWaitForTask(TaskTestCase):
    async def test_returns_terminal_task_immediately(self):
        with self._patch(_task('succeeded')) as m:
            task = await wait_for_task(self.client, 5)
        assert task.status is TaskStatus.SUCCEEDED
        assert m.await_count == 1

    async def test_polls_until_terminal(self):
        with self._patch(_task('enqueued'), _task('processing'), _task('succeeded')) as m:
            task = await wait_for_task(self.client, 5, interval=0.001)
        assert task.status is TaskStatus.SUCCEEDED
        assert m.await_count == 3

    @pytest.mark.parametrize('status', ['failed', 'canceled'])
    async def test_unsuccessful_task_is_returned_not_raised(self, status):
        error = Record(message='Document id is invalid', code='invalid_document_id',
                       type='invalid_request', link='https://docs.meilisearch.com/errors')
        extra = dict(error=error) if status == 'failed' else dict(canceledBy=8)
        with self._patch(_task('processing'), _task(status, **extra)):
            task = await wait_for_task(self.client, 5, interval=0.001)
        assert task.status == status
        if status == 'failed':
            assert task.error.code == 'invalid_document_id'

    async def test_lookup_error_is_raised(self):
        with self._patch(side_effect=_not_found()):
            with pytest.raises(NotFoundError):
                await wait_for_task(self.client, 99)

    @pytest.mark.parametrize('interval', [0, None, -1])
    async def test_non_positive_interval_uses_client_interval(self, interval):
        sleep = AsyncMock()
        with self._patch(_task('enqueued'), _task('succeeded')), \
                patch('meili.tasks.asyncio.sleep', sleep):
            await wait_for_task(self.client, 5, interval=interval)
        sleep.assert_awaited_once_with(0.01)

    async def test_zero_interval_falls_back_to_default(self):
        self.client.poll_interval = 0
        sleep = AsyncMock()
        with self._patch(_task('enqueued'), _task('succeeded')), \
                patch('meili.tasks.asyncio.sleep', sleep):
            await wait_for_task(self.client, 5, interval=0)
        sleep.assert_awaited_once_with(DEFAULT_POLL_INTERVAL)
        assert DEFAULT_POLL_INTERVAL > 0

    async def test_fixed_interval(self):
        sleep = AsyncMock()
        responses = [_task('enqueued')] * 4 + [_task('succeeded')]
        with self._patch(*responses), patch('meili.tasks.asyncio.sleep', sleep):
            await wait_for_task(self.client, 5, interval=0.3)
        assert [call.args for call in sleep.await_args_list] == [(0.3,)] * 4

    async def test_timeout(self):
        with self._patch(return_value=_task('processing')) as m:
            with pytest.raises(WaitTimeoutError) as excinfo:
                await wait_for_task(self.client, 5, interval=0.01, timeout=0.05)
            calls = m.await_count
            await asyncio.sleep(0.05)
        assert excinfo.value.task_uid == 5
        assert isinstance(excinfo.value, TimeoutError)
        assert not isinstance(excinfo.value, httpx.TransportError)
        assert calls >= 1
        assert m.await_count == calls

    async def test_expired_timeout_sends_nothing(self):
        with self._patch(return_value=_task('processing')) as m:
            with pytest.raises(WaitTimeoutError):
                await wait_for_task(self.client, 5, timeout=0)
        m.assert_not_awaited()

    async def test_timeout_aborts_slow_request(self):
        async def slow(*args, **kwargs):
            await asyncio.sleep(10)

        with self._patch(side_effect=slow):
            with pytest.raises(WaitTimeoutError):
                await wait_for_task(self.client, 5, timeout=0.05)

    async def test_request_timeout_without_deadline_propagates(self):
        with self._patch(side_effect=TimeoutError('read timed out')):
            with pytest.raises(TimeoutError) as excinfo:
                await wait_for_task(self.client, 5)
        assert not isinstance(excinfo.value, WaitTimeoutError)
        assert str(excinfo.value) == 'read timed out'

    async def test_cancellation_stops_polling(self):
        with self._patch(return_value=_task('processing')) as m:
            waiter = asyncio.create_task(wait_for_task(self.client, 5, interval=0.01))
            await asyncio.sleep(0.05)
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter
            calls = m.await_count
            await asyncio.sleep(0.05)
        assert calls >= 1
        assert m.await_count == calls

    async def test_client_and_index_wait(self):
        with self._patch(_task('succeeded'), _task('succeeded')):
            assert (await self.client.wait_for_task(5)).uid == 5
            assert (await self.client.index('movies').wait_for_task(5)).uid == 5
