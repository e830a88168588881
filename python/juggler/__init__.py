from juggler.definition import (
    ModelDefinition,
    ModelSettings,
    PropertyDescriptor,
    StrictMode,
    Text,
)
from juggler.errors import JugglerError, MissingTypeError, UnknownPropertyError
from juggler.hooks import Hookable
from juggler.initialization import InitOptions, PropertyKind, classify, initialize
from juggler.model import Model, define_model
from juggler.ordered_list import OrderedList
from juggler.relations import Relation
