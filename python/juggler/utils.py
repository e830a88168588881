from collections.abc import Iterable, Mapping
from typing import Any


def is_real_iterable(value: Any) -> bool:
    """Whether the value is iterable in the sense of a collection of items.

    Strings and bytes are iterable in Python, but we never want to treat
    them as a sequence of characters.
    """
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes, Mapping))


def read_key(obj: Any, key: str):
    """Read a key from a mapping or an attribute from an object"""
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def is_public(name) -> bool:
    """Whether a key may be mirrored as a plain attribute"""
    return isinstance(name, str) and not name.startswith("_")


def project_value(value: Any, only_schema: bool):
    """Turn a stored value into plain data, recursing into containers"""

    if not isinstance(value, type) and callable(getattr(value, "to_object", None)):
        return value.to_object(only_schema)

    if isinstance(value, Mapping):
        return {key: project_value(item, only_schema) for key, item in value.items()}

    if isinstance(value, (list, tuple)):
        return [project_value(item, only_schema) for item in value]

    return value
