import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional

from pydantic.dataclasses import dataclass

from juggler.coercion import parse_structured
from juggler.definition import (
    ModelDefinition,
    StrictMode,
    array_item_type,
    is_array_type,
    is_base_type,
)
from juggler.errors import UnknownPropertyError
from juggler.ordered_list import OrderedList
from juggler.relations import Relation
from juggler.utils import is_public, read_key

logger = logging.getLogger(__name__)

# Raw data may carry already resolved related objects under this key
CACHED_RELATIONS_KEY = "__cached_relations"


class PropertyKind(Enum):
    SCHEMA = "schema"
    RELATION = "relation"
    FREE_FORM = "free_form"
    REJECTED = "rejected"


@dataclass
class InitOptions:
    apply_setters: bool = True
    strict: Optional[StrictMode] = None
    data_source: Any = None


def classify(
    data: Mapping,
    properties: Mapping,
    relations: Mapping[str, Relation],
    strict: StrictMode,
) -> list[tuple[str, PropertyKind]]:
    """Sort every key of the raw data into the store it belongs to.

    Callable values are never data and are left out, as is the key carrying
    cached relations.
    """
    classified = []
    for key, value in data.items():
        if key == CACHED_RELATIONS_KEY or callable(value):
            continue
        if key in properties:
            kind = PropertyKind.SCHEMA
        elif key in relations:
            kind = PropertyKind.RELATION
        elif strict is False:
            kind = PropertyKind.FREE_FORM
        else:
            kind = PropertyKind.REJECTED
        classified.append((key, kind))
    return classified


def _is_scalar(value) -> bool:
    return isinstance(value, (str, int, float))


def _can_mirror(instance, key) -> bool:
    """Whether a free-form key can become an attribute without shadowing anything"""
    return is_public(key) and not hasattr(type(instance), key)


def initialize(
    instance,
    definition: ModelDefinition,
    relations: Mapping[str, Relation],
    data: Optional[Mapping] = None,
    options: Optional[InitOptions] = None,
) -> None:
    """Populate the data stores of a freshly created model instance.

    Values are stored as given, without copying. Changes the caller makes to
    a passed-in structure afterwards show up in the instance.
    """
    if options is None:
        options = InitOptions()
    if data is None:
        data = {}

    strict = options.strict
    if strict is None:
        strict = definition.settings.strict

    properties = definition.build()

    instance._cached_relations = {}
    instance._data = {}
    instance._data_was = {}
    instance._data_source = options.data_source
    instance._strict = strict

    if data.get(CACHED_RELATIONS_KEY):
        instance._cached_relations = data[CACHED_RELATIONS_KEY]

    classified = classify(data, properties, relations, strict)
    if strict == "throw":
        for key, kind in classified:
            if kind is PropertyKind.REJECTED:
                raise UnknownPropertyError(key)

    store = instance._data
    was = instance._data_was
    for key, kind in classified:
        value = data[key]
        if kind is PropertyKind.SCHEMA or kind is PropertyKind.FREE_FORM:
            store[key] = was[key] = value
        elif kind is PropertyKind.RELATION:
            relation = relations[key]
            store[relation.key_from] = read_key(value, relation.key_to)
            was[key] = value
            instance._cached_relations[key] = value
        else:
            logger.debug("Dropping unknown property %r of %s", key, definition.name)

    if options.apply_setters:
        for key, kind in classified:
            if kind is PropertyKind.SCHEMA or kind is PropertyKind.RELATION:
                setattr(instance, key, store[key] if key in store else data[key])

    if strict is False:
        for key, kind in classified:
            if kind is PropertyKind.FREE_FORM and not _can_mirror(instance, key):
                # Kept in the data store only
                continue
            if kind is PropertyKind.RELATION or kind is PropertyKind.FREE_FORM:
                setattr(instance, key, store[key] if key in store else data[key])

    for name, descriptor in properties.items():
        if name not in store:
            store[name] = was[name] = descriptor.get_default()
        else:
            was[name] = store[name]

    for name, descriptor in properties.items():
        prop_type = descriptor.type
        if prop_type is None or is_base_type(prop_type):
            continue

        value = store[name]
        if value and _is_scalar(value):
            store[name] = parse_structured(value)

        if is_array_type(prop_type) and not isinstance(store[name], OrderedList):
            store[name] = OrderedList(
                store[name], array_item_type(prop_type), instance
            )

    instance.notify("initialize")
