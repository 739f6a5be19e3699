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
"""Splitting of bulk payloads into bounded chunks.

Each helper yields contiguous chunks in input order. ``size`` always
counts records (documents, NDJSON lines or CSV data rows), never bytes,
and a record is never split across two chunks.
"""
from __future__ import annotations

import csv
import io
import sys
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from itertools import islice
from typing import IO

from .collections import Document


type RawPayload = bytes | str | IO[bytes] | IO[str]


def check_batch_size(size: int) -> None:
    if not isinstance(size, int) or isinstance(size, bool) or size <= 0:
        raise ValueError(f"batch_size must be a positive integer, got {size!r}")


def _decode(line: bytes, number: int) -> str:
    try:
        return line.decode('utf-8')
    except UnicodeDecodeError as exc:
        raise ValueError(f"Payload is not valid UTF-8 (line {number}): {exc.reason}") from exc


def _lines(payload: RawPayload) -> Iterator[str]:
    if isinstance(payload, bytes):
        payload = io.BytesIO(payload)
    elif isinstance(payload, str):
        payload = io.StringIO(payload, newline='')
    for number, line in enumerate(payload, 1):
        if isinstance(line, bytes):
            line = _decode(line, number)
        yield line


@contextmanager
def _unbounded_fields():
    """Lift the :mod:`csv` per-field size limit while the block runs."""
    limit = csv.field_size_limit()
    csv.field_size_limit(sys.maxsize)
    try:
        yield
    finally:
        csv.field_size_limit(limit)


def chunk_documents(documents: Iterable[Document], size: int) -> Iterator[list[Document]]:
    """Yield lists of at most ``size`` documents.

    For N documents this yields ``ceil(N / size)`` lists, all but the last
    holding exactly ``size`` documents.
    """
    check_batch_size(size)
    it = iter(documents)
    while chunk := list(islice(it, size)):
        yield chunk


def chunk_ndjson(payload: RawPayload, size: int) -> Iterator[bytes]:
    """Yield NDJSON payloads holding at most ``size`` records each.

    Blank lines are dropped; every emitted line ends with a newline.
    Raises ``ValueError`` on a line that is not valid UTF-8.
    """
    check_batch_size(size)
    records = (line.rstrip('\r\n') for line in _lines(payload))
    records = (line for line in records if line.strip())
    while chunk := list(islice(records, size)):
        yield ''.join(f'{line}\n' for line in chunk).encode('utf-8')


def chunk_csv(payload: RawPayload, size: int, delimiter: str | None = None) -> Iterator[bytes]:
    """Yield CSV payloads holding the header plus at most ``size`` rows.

    The payload is parsed with :mod:`csv`, so a quoted field spanning
    several physical lines stays in one row. Fields of any length are
    accepted. Every chunk repeats the header row so the server can map the
    columns of each one. Raises ``ValueError`` on a line that is not
    valid UTF-8.
    """
    check_batch_size(size)
    delimiter = delimiter or ','
    reader = csv.reader(_lines(payload), delimiter=delimiter)
    rows = (row for row in reader if row)
    with _unbounded_fields():
        header = next(rows, None)
        if header is None:
            return
        while chunk := list(islice(rows, size)):
            out = io.StringIO()
            writer = csv.writer(out, delimiter=delimiter, lineterminator='\n')
            writer.writerow(header)
            writer.writerows(chunk)
            yield out.getvalue().encode('utf-8')
