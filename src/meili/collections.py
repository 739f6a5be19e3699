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
"""Schema-less records returned by the search engine.

Documents, search hits and any other payload without a fixed shape are
decoded into ``Record`` objects: plain dicts whose keys can also be read
as attributes. ``Record`` is the ``object_pairs_hook`` used when decoding
JSON responses, so nested objects are records too.

Example:
    >>> hit = Record(id=1, title='Carol')
    >>> hit.title
    'Carol'
    >>> hit['id']
    1
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic.alias_generators import to_camel


type Document = Mapping[str, Any]


class Record(dict):
    """Dictionary with attribute-style access.

    The instance ``__dict__`` is the dict itself, so ``record.key`` and
    ``record['key']`` always agree, including after assignment or
    deletion through either form.
    """

    def __init__(self, *args, **kwargs):
        dict.__init__(self, *args, **kwargs)
        self.__dict__ = self

    def __repr__(self) -> str:
        return f'Record({dict.__repr__(self)})'


NA = object()


def camelize(options: Mapping[str, Any]) -> Record:
    """Return a ``Record`` with camelCased keys, dropping ``None`` values."""
    return Record((to_camel(k), v) for k, v in options.items() if v is not None)
