from datetime import datetime
from itertools import count

import pydantic
import pytest

from juggler import (
    Model,
    OrderedList,
    PropertyKind,
    Relation,
    Text,
    UnknownPropertyError,
    classify,
)


class Author(Model):
    id: int = None
    name: str = ""


class Post(Model, relations={"author": Relation("author_id")}):
    title: str = "untitled"
    body: Text = None
    views: int = 0
    published: bool = False
    created: datetime = None
    author_id: int = None
    tags: list[str] = list
    meta: dict = None


class Loose(Model, strict=False):
    name: str = None


_serials = count()
SHARED_OPTIONS = {}


class Counted(Model):
    serial: int = lambda: next(_serials)


class Shared(Model):
    options: dict = SHARED_OPTIONS


class Hooked(Model):
    name: str = None
    events = []

    def after_initialize(self):
        Hooked.events.append(self)


def test_defaults_fill_missing_properties():
    post = Post()

    assert post.title == "untitled"
    assert post.views == 0
    assert post.published is False
    assert post.created is None
    assert post._data_was["title"] == "untitled"
    assert post._data_was["views"] == 0
    assert set(post._data) == set(Post._definition.properties)


def test_default_factory_is_invoked_per_instance():
    first = Counted()
    second = Counted()

    assert isinstance(first.serial, int)
    assert second.serial == first.serial + 1
    assert first._data_was["serial"] == first.serial


def test_literal_default_is_shared_between_instances():
    first = Shared()
    second = Shared()

    assert first.options is SHARED_OPTIONS
    assert second.options is SHARED_OPTIONS

    first.options["key"] = "value"
    assert second.options == {"key": "value"}
    SHARED_OPTIONS.clear()


def test_input_structures_are_not_copied():
    meta = {"a": 1}
    post = Post({"meta": meta})

    assert post.meta is meta
    meta["b"] = 2
    assert post.meta == {"a": 1, "b": 2}


def test_setters_coerce_primitives():
    post = Post(
        {
            "title": 42,
            "views": "5",
            "published": "true",
            "created": "2024-01-02T03:04:05",
        }
    )

    assert post.title == "42"
    assert post.views == 5
    assert post.published is True
    assert post.created == datetime(2024, 1, 2, 3, 4, 5)


def test_uncoercible_primitive_is_kept():
    post = Post({"views": "many"})
    assert post.views == "many"


def test_apply_setters_disabled_keeps_raw_values():
    post = Post({"views": "5"}, apply_setters=False)
    assert post.views == "5"


def test_callable_values_are_skipped():
    post = Post({"title": lambda: "never"})
    assert post.title == "untitled"


def test_strict_throw_rejects_unknown_keys():
    with pytest.raises(UnknownPropertyError, match="bogus") as excinfo:
        Post({"title": "a", "bogus": 1}, strict="throw")

    assert excinfo.value.name == "bogus"


def test_strict_false_keeps_unknown_keys():
    post = Post({"title": "a", "extra": 1}, strict=False)

    assert post.extra == 1
    assert post._data["extra"] == 1
    assert post._data_was["extra"] == 1


def test_strict_default_drops_unknown_keys():
    post = Post({"title": "a", "extra": 1})

    assert not hasattr(post, "extra")
    assert "extra" not in post._data


def test_strict_from_class_settings():
    loose = Loose({"name": "n", "other": [1, 2]})
    assert loose.other == [1, 2]
    assert loose._strict is False


def test_free_form_private_key_stays_in_data_store():
    loose = Loose({"name": "a", "_data": 1})

    assert loose._data["_data"] == 1
    assert loose._data_was["_data"] == 1
    assert loose.to_json() == {"name": "a", "_data": 1}


@pytest.mark.parametrize("key", ["reset", "to_object", "model_name"])
def test_free_form_key_does_not_shadow_class_attributes(key):
    loose = Loose({"name": "a", key: 1})

    assert key not in vars(loose)
    assert loose._data[key] == 1
    assert loose.to_json()[key] == 1

    loose.reset()
    assert loose.name == "a"


def test_free_form_non_string_key_is_kept():
    loose = Loose({"name": "a", 1: "x"})

    assert loose._data[1] == "x"
    assert loose.to_json()[1] == "x"


def test_dropped_key_is_logged(caplog):
    with caplog.at_level("DEBUG", logger="juggler.initialization"):
        Post({"title": "a", "extra": 1})

    assert "Dropping unknown property 'extra' of Post" in caplog.text


def test_invalid_strict_option_fails():
    with pytest.raises(pydantic.ValidationError):
        Post(strict="sometimes")


def test_relation_ingestion():
    author = {"id": 7, "name": "Ann"}
    post = Post({"author": author})

    assert post._cached_relations["author"] is author
    assert post._data["author_id"] == 7
    assert post._data_was["author"] is author
    assert post.author is author
    assert post.author_id == 7


def test_relation_ingestion_from_model():
    author = Author({"id": 3, "name": "Bob"})
    post = Post({"author": author})

    assert post.author is author
    assert post.author_id == 3


def test_cached_relations_are_adopted():
    cached = {"author": Author({"id": 1})}
    post = Post({"__cached_relations": cached}, strict="throw")

    assert post._cached_relations is cached
    assert post.author is cached["author"]


@pytest.mark.parametrize("apply_setters", [True, False])
@pytest.mark.parametrize(
    "tags",
    [None, ["a", "b"], OrderedList(["a", "b"], str), '["a", "b"]'],
)
def test_array_property_is_always_ordered_list(tags, apply_setters):
    data = {} if tags is None else {"tags": tags}
    post = Post(data, apply_setters=apply_setters)

    assert isinstance(post.tags, OrderedList)
    assert post.tags.owner is post or isinstance(tags, OrderedList)
    if tags is not None:
        assert post.tags == ["a", "b"]


def test_array_property_keeps_given_container():
    tags = OrderedList(["x"], str)
    post = Post({"tags": tags})
    assert post.tags is tags


def test_array_property_shares_given_list():
    tags = ["a"]
    post = Post({"tags": tags})
    post.tags.append("b")

    assert tags == ["a", "b"]


def test_structured_value_is_parsed_from_string():
    post = Post({"meta": '{"a": 1}'})
    assert post.meta == {"a": 1}


def test_unparseable_structured_value_falls_back_to_string():
    post = Post({"meta": "not json"})
    assert post.meta == "not json"


def test_nested_model_is_built_from_mapping():
    class Comment(Model):
        author: Author = None

    comment = Comment({"author": {"id": 1, "name": "A"}})

    assert isinstance(comment.author, Author)
    assert comment.author.name == "A"


def test_initialize_hook_is_triggered():
    Hooked.events.clear()
    hooked = Hooked({"name": "h"})

    assert Hooked.events == [hooked]


def test_classify():
    properties = Post._definition.build()
    relations = Post._relations
    data = {
        "title": "t",
        "author": {"id": 1},
        "extra": 1,
        "callback": print,
        "__cached_relations": {},
    }

    assert classify(data, properties, relations, True) == [
        ("title", PropertyKind.SCHEMA),
        ("author", PropertyKind.RELATION),
        ("extra", PropertyKind.REJECTED),
    ]
    assert classify(data, properties, relations, False)[2] == (
        "extra",
        PropertyKind.FREE_FORM,
    )
