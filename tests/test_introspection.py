from abc import ABC, abstractmethod
from typing import Annotated, Callable, Optional, Protocol

import pytest

from bindery.domain import Dependency, Mode, ProviderKind
from bindery.errors import InvalidBinding
from bindery.introspection import (
    get_dependencies,
    inferred_key,
    is_autowirable,
    make_binding,
    profiles_match,
)


class Cache:
    pass


class Database:
    pass


class Sender(Protocol):
    def send(self, body: str) -> None: ...


class Storage(ABC):
    @abstractmethod
    def put(self, key, value):
        pass


class Service:
    def __init__(self, db: Database, cache: Annotated[Cache, "redis"], *args, **kwargs):
        pass


class CallableProvider:
    def __call__(self, db: Database) -> str:
        return "called"


def make_database() -> Database:
    return Database()


def test_function_dependencies():
    def service(untyped, db: Database, cache: Annotated[Cache, "redis"]) -> Service:
        pass

    assert get_dependencies(service) == [
        Dependency("untyped", None, None),
        Dependency("db", Database, None),
        Dependency("cache", Cache, "redis"),
    ]


def test_class_dependencies_come_from_constructor():
    assert get_dependencies(Service) == [
        Dependency("db", Database, None),
        Dependency("cache", Cache, "redis"),
    ]


def test_class_without_constructor_has_no_dependencies():
    assert get_dependencies(Database) == []


def test_callable_instance_dependencies():
    assert get_dependencies(CallableProvider()) == [Dependency("db", Database, None)]


def test_optional_and_default_parameters():
    def provider(cache: Optional[Cache] = None, retries: int = 3):
        pass

    assert get_dependencies(provider) == [
        Dependency("cache", Cache, None, True),
        Dependency("retries", int, None, True),
    ]


def test_dependency_key_prefers_component_name():
    assert Dependency("cache", Cache, "redis").key == "redis"
    assert Dependency("cache", Cache, None).key is Cache
    assert Dependency("untyped", None, None).key is None


def test_unresolvable_annotation_is_invalid():
    def provider(thing: "DoesNotExist"):  # noqa: F821
        pass

    with pytest.raises(InvalidBinding, match="Cannot introspect"):
        get_dependencies(provider)


def test_inferred_key():
    assert inferred_key(Database) is Database
    assert inferred_key(make_database) == "database"
    assert inferred_key(test_inferred_key) == "test_inferred_key"


def test_make_binding_kinds():
    assert make_binding("db", Database).kind is ProviderKind.CLASS
    assert make_binding("db", make_database).kind is ProviderKind.FACTORY
    assert make_binding("db", Database()).kind is ProviderKind.INSTANCE


def test_instance_bindings_are_singletons():
    assert make_binding("db", Database(), Mode.TRANSIENT).mode is Mode.SINGLETON


def test_make_binding_records_profiles():
    binding = make_binding(Callable[[str], str], make_database, profiles=["dev"])

    assert binding.profiles == ("dev",)
    assert binding.mode is Mode.TRANSIENT


@pytest.mark.parametrize(
    "key, expected",
    [
        (Database, True),
        (Service, True),
        (Storage, False),
        (Sender, False),
        (int, False),
        ("database", False),
        (Callable[[str], str], False),
    ],
)
def test_is_autowirable(key, expected):
    assert is_autowirable(key) is expected


def test_profiles_match():
    assert profiles_match(("dev",), {"dev"})
    assert profiles_match(("!test",), {"dev"})
    assert not profiles_match(("!test",), {"test"})
    assert not profiles_match(("prod",), {"dev"})
    assert profiles_match(("prod", "uat"), {"uat"})
    assert profiles_match((), set())
    assert profiles_match(("prod",), None)
