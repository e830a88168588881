from dataclasses import dataclass
from typing import Any, Optional

from juggler.utils import read_key


@dataclass(frozen=True)
class Relation:
    """A foreign-key association to another model.

    ``key_from`` names the local property holding the foreign key, ``key_to``
    the field of the related object it mirrors.
    """

    key_from: str
    key_to: str = "id"
    model: Optional[Any] = None


class RelationAccessor:
    """Descriptor exposing a cached related object under the relation name"""

    def __init__(self, name: str, relation: Relation):
        self.name = name
        self.relation = relation

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return instance._cached_relations.get(self.name)

    def __set__(self, instance, value):
        instance._cached_relations[self.name] = value
        if value is not None:
            instance._data[self.relation.key_from] = read_key(
                value, self.relation.key_to
            )
