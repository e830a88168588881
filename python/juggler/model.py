from collections.abc import Mapping
from typing import Any, Optional, Type

from pydantic import GetCoreSchemaHandler, validate_call
from pydantic_core import core_schema

from juggler.coercion import coerce_value
from juggler.definition import (
    ModelSettings,
    StrictMode,
    array_item_type,
    build_definition,
    get_all_annotations,
    get_all_defaults,
    is_array_type,
    parse_property_spec,
    type_name,
)
from juggler.errors import MissingTypeError
from juggler.hooks import Hookable
from juggler.initialization import InitOptions, initialize
from juggler.ordered_list import OrderedList
from juggler.relations import RelationAccessor
from juggler.utils import is_public, project_value

import reprlib
import types

# Values of these types compare by value in change tracking, everything
# else by identity.
_SCALAR_TYPES = (str, int, float, bool, type(None))


def _same_value(current, was) -> bool:
    if current is was:
        return True
    return (
        type(current) is type(was)
        and isinstance(current, _SCALAR_TYPES)
        and current == was
    )



class ModelMetaClass(type):
    def __new__(cls, name, bases, dct, **kwargs):
        cls = super().__new__(cls, name, bases, dct, **kwargs)

        annotations = get_all_annotations(cls)
        defaults = get_all_defaults(cls, dct)
        setattr(cls, "_defaults", defaults)

        settings = getattr(cls, "_settings", None) or ModelSettings()
        cls._definition = build_definition(name, annotations, defaults, settings)
        cls.model_name = name

        # Declared properties take precedence over relations of the same name
        for relation_name, relation in getattr(cls, "_relations", {}).items():
            if relation_name not in annotations:
                setattr(cls, relation_name, RelationAccessor(relation_name, relation))

        # Creation of properties need to be wrapped in a function, otherwise
        # every getter and setter would capture the last loop variable.
        def _make_property(f):
            def _getter(self):
                return self._data.get(f)

            def _setter(self, value):
                self._pre_set(f, value)
                self._data[f] = self._coerce_property(f, value)
                self._post_set(f)

            return property(_getter, _setter)

        for field in annotations:
            setattr(cls, field, _make_property(field))

        return cls

    def __str__(cls):
        return f"[Model {cls.model_name}]"


class Model(Hookable, metaclass=ModelMetaClass):
    """Base class for data-bound, change-tracked model instances."""

    _settings = ModelSettings()
    _relations = {}
    _data_source = None

    def __init_subclass__(cls, strict=None, relations=None, data_source=None, **kwargs):
        super().__init_subclass__(**kwargs)
        cls._settings = cls._settings.update(strict=strict)
        if relations is not None:
            cls._relations = {**cls._relations, **relations}
        if data_source is not None:
            cls._data_source = data_source

    def __init__(
        self,
        data: Optional[Mapping] = None,
        *,
        apply_setters: bool = True,
        strict: Optional[StrictMode] = None,
        data_source: Any = None,
    ):
        options = InitOptions(
            apply_setters=apply_setters, strict=strict, data_source=data_source
        )
        cls = type(self)
        initialize(self, cls._definition, cls._relations, data, options)

    def _pre_set(self, field, value):
        """Hook that is called before a property is set"""
        pass

    def _post_set(self, field):
        """Hook that is called after a property is set"""
        pass

    def _coerce_property(self, field, value):
        prop_type = type(self)._definition.properties[field].type
        if value is None:
            return None
        if is_array_type(prop_type):
            if isinstance(value, OrderedList):
                return value
            return OrderedList(value, array_item_type(prop_type), self)
        return coerce_value(prop_type, value)

    @classmethod
    def get_property_type(cls, name: str) -> Optional[str]:
        """Name of the declared type of a property, None if it is not declared"""
        descriptor = cls._definition.properties.get(name)
        if descriptor is None:
            return None
        if descriptor.type is None:
            raise MissingTypeError(cls.model_name, name)
        return type_name(descriptor.type)

    @classmethod
    def data_source(cls):
        """The connector attached to this model type"""
        return cls._data_source

    @classmethod
    def set_data_source(cls, data_source):
        cls._data_source = data_source

    @classmethod
    def define_property(cls, name: str, params: Mapping):
        """Let the attached connector define an additional property"""
        if cls._data_source is None:
            raise RuntimeError(f"{cls.model_name} is not attached to a data source")
        return cls._data_source.define_property(cls.model_name, name, params)

    def get_data_source(self):
        if self._data_source is not None:
            return self._data_source
        return type(self).data_source()

    @validate_call
    def set_strict(self, strict: StrictMode):
        self._strict = strict

    def property_changed(self, name: str) -> bool:
        """Whether a property was reassigned since initialization.

        Objects are compared by identity, so modifying a stored list or
        mapping in place does not count as a change.
        """
        return not _same_value(self._data.get(name), self._data_was.get(name))

    def reset(self):
        """Drop undeclared attributes and restore reassigned properties.

        Reassigned properties are restored from the ``<name>$was`` attribute.
        Nothing in the model sets this attribute, so unless someone else
        provides it, a reassigned property is reset to None.
        """
        properties = type(self)._definition.properties
        names = list(properties)
        names += [k for k in vars(self) if is_public(k) and k not in properties]

        for name in names:
            if name != "id" and name not in properties:
                delattr(self, name)
            if self.property_changed(name):
                setattr(self, name, getattr(self, f"{name}$was", None))

    def to_object(self, only_schema: Optional[bool] = None) -> dict:
        """Convert the instance into plain data.

        With only_schema, only declared properties are included. Otherwise
        undeclared attributes and stored values are included as well. When
        only_schema is not given, it is False for non-strict instances and
        True for all others.
        """
        if only_schema is None:
            only_schema = self._strict is not False
        schema_less = not only_schema
        nested_only_schema = not schema_less
        result = {}

        for name in type(self)._definition.properties:
            value = getattr(self, name)
            if isinstance(value, OrderedList):
                result[name] = value.to_object(nested_only_schema)
            elif name in self._data:
                result[name] = project_value(value, nested_only_schema)
            else:
                result[name] = None

        if schema_less:
            own = vars(self)
            for name, value in own.items():
                if is_public(name) and name not in result:
                    result[name] = project_value(value, nested_only_schema)

            for name, value in self._data.items():
                if name not in result:
                    if is_public(name) and name in own:
                        value = own[name]
                    result[name] = project_value(value, nested_only_schema)

        return result

    def to_json(self) -> dict:
        return self.to_object(False)

    def from_object(self, obj: Mapping):
        for key, value in obj.items():
            setattr(self, key, value)

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Type[Any], handler: GetCoreSchemaHandler
    ):
        return core_schema.no_info_after_validator_function(
            cls._validate, core_schema.any_schema()
        )

    @classmethod
    def _validate(cls, value):
        if not isinstance(value, cls):
            raise ValueError(f"Expected {cls.__name__}, got {type(value).__name__}")
        return value

    @reprlib.recursive_repr()
    def __repr__(self):
        return f"<{self.model_name} {self._data!r}>"


def define_model(
    name: str,
    properties: Mapping[str, Any],
    *,
    base: Type[Model] = Model,
    strict: Optional[StrictMode] = None,
    relations=None,
    data_source=None,
) -> Type[Model]:
    """Create a model class from a mapping of property names to types.

    A property may also be given as a mapping with "type" and "default" keys.
    """
    annotations = {}
    namespace = {}
    for prop, spec in properties.items():
        prop_type, default = parse_property_spec(spec)
        annotations[prop] = prop_type
        if default is not None:
            namespace[prop] = default
    namespace["__annotations__"] = annotations

    class_kwargs = {
        "strict": strict,
        "relations": relations,
        "data_source": data_source,
    }
    class_kwargs = {key: value for key, value in class_kwargs.items() if value is not None}

    return types.new_class(name, (base,), class_kwargs, lambda ns: ns.update(namespace))
