from collections.abc import MutableSequence
from typing import Any

from juggler.coercion import coerce_value, parse_structured
from juggler.utils import is_real_iterable, project_value

import json


class OrderedList(MutableSequence):
    """Ordered sequence of typed items owned by a model instance.

    A plain list passed in is adopted, not copied: its items are coerced in
    place and later mutations of the container are visible through the
    original list object.
    """

    def __init__(self, data=None, item_type: Any = Any, owner=None):
        if isinstance(data, str):
            data = parse_structured(data)

        if data is None:
            items = []
        elif isinstance(data, OrderedList):
            items = data._items
        elif isinstance(data, list):
            items = data
        elif is_real_iterable(data):
            items = list(data)
        else:
            items = [data]

        self.item_type = item_type
        self.owner = owner
        self._items = items
        for i, item in enumerate(items):
            items[i] = self._coerce(item)

    def _coerce(self, item):
        return coerce_value(self.item_type, item)

    def __getitem__(self, index):
        return self._items[index]

    def __setitem__(self, index, value):
        if isinstance(index, slice):
            self._items[index] = [self._coerce(v) for v in value]
        else:
            self._items[index] = self._coerce(value)

    def __delitem__(self, index):
        del self._items[index]

    def __len__(self):
        return len(self._items)

    def insert(self, index, value):
        self._items.insert(index, self._coerce(value))

    def __eq__(self, other):
        if isinstance(other, OrderedList):
            return self._items == other._items
        if isinstance(other, (list, tuple)):
            return self._items == list(other)
        return NotImplemented

    __hash__ = None

    def to_object(self, only_schema: bool = True) -> list:
        return [project_value(item, only_schema) for item in self._items]

    def to_json(self) -> list:
        return self.to_object(True)

    def __str__(self):
        return json.dumps(self.to_object(), default=str)

    def __repr__(self):
        return f"OrderedList({self._items!r})"
