import json
import logging
from collections.abc import Mapping
from functools import lru_cache
from typing import Any, get_origin

from pydantic import ConfigDict, TypeAdapter, ValidationError

from juggler.definition import is_base_type, unwrap_optional

logger = logging.getLogger(__name__)

# Numbers assigned to a str property become strings, and unknown classes
# are checked with isinstance.
_ADAPTER_CONFIG = ConfigDict(arbitrary_types_allowed=True, coerce_numbers_to_str=True)


@lru_cache(maxsize=None)
def _cached_adapter(t) -> TypeAdapter:
    return TypeAdapter(t, config=_ADAPTER_CONFIG)


def adapter_for(t) -> TypeAdapter:
    try:
        return _cached_adapter(t)
    except TypeError:
        # Unhashable annotation, build one without caching
        return TypeAdapter(t, config=_ADAPTER_CONFIG)


def is_model_type(t) -> bool:
    return isinstance(t, type) and getattr(t, "_definition", None) is not None


def coerce_value(t, value):
    """Coerce a single value to the declared type.

    Values that already have the declared type are returned as they are,
    as are complex values that are instances of the declared container,
    so that no structure is copied. Values the type rejects are returned
    unchanged.
    """
    if value is None or t is None or t is Any:
        return value

    t = unwrap_optional(t)

    if isinstance(t, type) and type(value) is t:
        return value

    if is_model_type(t):
        if isinstance(value, Mapping):
            return t(value)
        return value

    if not is_base_type(t):
        container = get_origin(t) or t
        if isinstance(container, type) and isinstance(value, container):
            return value

    try:
        return adapter_for(t).validate_python(value)
    except ValidationError as e:
        logger.debug("Keeping %r as is, it does not coerce to %r: %s", value, t, e)
        return value


def parse_structured(value):
    """Parse a scalar as a JSON literal, falling back to its string form"""
    if isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return str(value)
