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
"""Typed models for the search engine's task and index payloads.

Every write the server accepts is acknowledged with a ``TaskInfo`` and
carried out later by a server-side ``Task``. Both are parsed from the
server's camelCase JSON into frozen pydantic models; field names are the
snake_case equivalents (``taskUid`` -> ``task_uid``).
"""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class TaskStatus(StrEnum):
    """Lifecycle state of a server-side task.

    ``enqueued -> processing -> succeeded | failed``, or ``canceled`` from
    either of the first two. A task never leaves a terminal state.
    """

    ENQUEUED = 'enqueued'
    PROCESSING = 'processing'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    CANCELED = 'canceled'

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    TaskStatus.SUCCEEDED,
    TaskStatus.FAILED,
    TaskStatus.CANCELED,
})


class TaskType(StrEnum):
    INDEX_CREATION = 'indexCreation'
    INDEX_UPDATE = 'indexUpdate'
    INDEX_DELETION = 'indexDeletion'
    INDEX_SWAP = 'indexSwap'
    DOCUMENT_ADDITION_OR_UPDATE = 'documentAdditionOrUpdate'
    DOCUMENT_DELETION = 'documentDeletion'
    SETTINGS_UPDATE = 'settingsUpdate'
    DUMP_CREATION = 'dumpCreation'
    TASK_CANCELATION = 'taskCancelation'
    TASK_DELETION = 'taskDeletion'
    SNAPSHOT_CREATION = 'snapshotCreation'


class TaskError(CamelModel):
    """Failure detail attached to a ``failed`` task."""

    message: str
    code: str
    type: str
    link: str | None = None


class Task(CamelModel):
    """Server-side progress of one asynchronous operation.

    Never modified by the client; a fresher view is obtained only by
    fetching the task again.
    """

    uid: int
    index_uid: str | None = None
    status: TaskStatus
    # Unknown kinds from newer servers are kept as plain strings.
    type: Annotated[TaskType | str, Field(union_mode='left_to_right')]
    error: TaskError | None = None
    details: dict[str, Any] | None = None
    duration: str | None = None
    canceled_by: int | None = None
    enqueued_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None


class TaskInfo(CamelModel):
    """Acknowledgment returned immediately by every mutation request.

    ``task_uid`` is what ``wait_for_task`` needs to resolve the outcome.
    """

    task_uid: int
    index_uid: str | None = None
    status: TaskStatus
    type: Annotated[TaskType | str, Field(union_mode='left_to_right')]
    enqueued_at: datetime


class TasksQuery(CamelModel):
    """Server-side filter for task listings.

    Zero or empty fields are not sent at all.
    """

    limit: int = 0
    from_: int = Field(0, alias='from')
    statuses: tuple[TaskStatus, ...] = ()
    types: tuple[TaskType | str, ...] = ()
    index_uids: tuple[str, ...] = ()

    def to_params(self, index_uids: tuple[str, ...] | list[str] = ()) -> dict[str, str]:
        """Build the ``/tasks`` query string, comma-joining sets.

        Args:
            index_uids: Extra index identifiers appended after the query's
                own ``index_uids``.
        """
        params = {}
        if self.limit:
            params['limit'] = str(self.limit)
        if self.from_:
            params['from'] = str(self.from_)
        if self.statuses:
            params['statuses'] = ','.join(str(s) for s in self.statuses)
        if self.types:
            params['types'] = ','.join(str(t) for t in self.types)
        uids = [*self.index_uids, *index_uids]
        if uids:
            params['indexUids'] = ','.join(uids)
        return params


class TaskResult(CamelModel):
    results: list[Task]
    limit: int = 0
    from_: int | None = Field(None, alias='from')
    next: int | None = None
    total: int | None = None


class IndexInfo(CamelModel):
    uid: str
    primary_key: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class IndexStats(CamelModel):
    number_of_documents: int
    is_indexing: bool
    field_distribution: dict[str, int] = Field(default_factory=dict)


class Settings(CamelModel):
    """Full settings object of an index.

    Only the fields that are set are sent on update; ``None`` means
    "leave unchanged".
    """

    ranking_rules: list[str] | None = None
    distinct_attribute: str | None = None
    searchable_attributes: list[str] | None = None
    displayed_attributes: list[str] | None = None
    stop_words: list[str] | None = None
    synonyms: dict[str, list[str]] | None = None
    filterable_attributes: list[str | dict[str, Any]] | None = None
    sortable_attributes: list[str] | None = None
    typo_tolerance: dict[str, Any] | None = None
    pagination: dict[str, Any] | None = None
    faceting: dict[str, Any] | None = None
    embedders: dict[str, Any] | None = None
    search_cutoff_ms: int | None = None
    separator_tokens: list[str] | None = None
    non_separator_tokens: list[str] | None = None
    dictionary: list[str] | None = None

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
