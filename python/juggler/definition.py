from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal, NewType, Optional, Union, get_args, get_origin

from pydantic import validate_call

import inspect
import types

# Long-form string. Behaves like str everywhere, but keeps its own type name.
Text = NewType("Text", str)

# True drops unknown keys, False keeps them, "throw" rejects them.
StrictMode = Union[bool, Literal["throw"]]

_TYPE_NAMES = {
    Text: "Text",
    str: "String",
    bool: "Boolean",
    int: "Number",
    float: "Number",
    datetime: "Date",
    date: "Date",
    list: "Array",
    dict: "Object",
    Any: "Any",
}

BASE_TYPES = frozenset(["String", "Boolean", "Number", "Date", "Text"])


def _is_optional(t) -> bool:
    origin = get_origin(t)
    return origin in (Union, types.UnionType) and type(None) in get_args(t)


def _inner_optional_type(t):
    return next(arg for arg in get_args(t) if arg is not type(None))


def unwrap_optional(t):
    """Strip an Optional[...] wrapper, if present"""
    if _is_optional(t):
        return _inner_optional_type(t)
    return t


def is_array_type(t) -> bool:
    """Determine whether a type annotation describes an ordered list"""
    t = unwrap_optional(t)
    return t is list or get_origin(t) is list


def array_item_type(t):
    """The element type of an array annotation, Any if it is not given"""
    args = get_args(unwrap_optional(t))
    if len(args) == 0:
        return Any
    return args[0]


def type_name(t) -> Optional[str]:
    if t is None:
        return None
    t = unwrap_optional(t)
    if is_array_type(t):
        return "Array"
    origin = get_origin(t)
    if origin is not None and origin in _TYPE_NAMES:
        return _TYPE_NAMES[origin]
    try:
        if t in _TYPE_NAMES:
            return _TYPE_NAMES[t]
    except TypeError:
        # Unhashable annotations are never base types
        pass
    return getattr(t, "__name__", str(t))


def is_base_type(t) -> bool:
    """Whether values of this type are stored without structured parsing"""
    return type_name(t) in BASE_TYPES


@dataclass
class PropertyDescriptor:
    name: str
    type: Any = None
    default: Any = None

    def get_default(self):
        """The default value, invoking it first if it is a factory.

        The result is handed out as is. A mutable literal default is shared
        between all instances that fall back to it.
        """
        if callable(self.default):
            return self.default()
        return self.default


@dataclass
class ModelSettings:
    strict: StrictMode = True

    @validate_call
    def update(self, strict: Optional[StrictMode] = None):
        """Return a copy of these settings with the given overrides applied"""
        return ModelSettings(strict=self.strict if strict is None else strict)


@dataclass
class ModelDefinition:
    """The declared properties and settings of one model type."""

    name: str
    properties: dict[str, PropertyDescriptor] = field(default_factory=dict)
    settings: ModelSettings = field(default_factory=ModelSettings)

    def build(self) -> dict[str, PropertyDescriptor]:
        return dict(self.properties)


def get_all_annotations(cls):
    """Collect annotations from cls and all its bases (excluding `object`)."""
    anns: dict[str, type] = {}
    for base in reversed(cls.__mro__):
        if base is object:
            continue
        anns.update(inspect.get_annotations(base))
    return anns


def get_all_defaults(cls, dct):
    """Collect default values for fields from cls and all its bases (excluding `object`)."""
    defaults = {}
    for base in reversed(cls.mro()[:-1]):
        if base is object:
            continue
        base_defaults = getattr(base, "_defaults", None)
        if isinstance(base_defaults, dict):
            defaults.update(base_defaults)

    for name in inspect.get_annotations(cls).keys():
        if name in dct:
            val = dct[name]
            if not isinstance(val, property):
                defaults[name] = val

    return defaults


def build_definition(name, annotations, defaults, settings) -> ModelDefinition:
    properties = {
        prop: PropertyDescriptor(name=prop, type=annot, default=defaults.get(prop))
        for prop, annot in annotations.items()
    }
    return ModelDefinition(name=name, properties=properties, settings=settings)


def parse_property_spec(spec):
    """Split a define_model property spec into (type, default)"""
    if isinstance(spec, Mapping):
        return spec.get("type"), spec.get("default")
    return spec, None
