from abc import ABC, abstractmethod

import pytest

from bindery.domain import Mode, ProviderKind
from bindery.errors import BindingNotFound, InvalidBinding
from bindery.registry import BindingRegistry


class Greeter:
    def __init__(self, greeting: str):
        self.greeting = greeting

    def greet(self) -> str:
        return self.greeting


class Mailer(ABC):
    @abstractmethod
    def send(self, to: str, body: str):
        pass


class SmtpMailer(Mailer):
    def send(self, to, body):
        return f"smtp:{to}"


class ConsoleMailer(Mailer):
    def send(self, to, body):
        return f"console:{to}"


@pytest.fixture
def registry():
    return BindingRegistry()


def test_singleton_greeter_is_shared(registry):
    registry.register("Greeter", lambda: Greeter("Hello, World!"), "singleton")

    first = registry.resolve("Greeter")
    second = registry.resolve("Greeter")

    assert first is second
    assert first.greet() == "Hello, World!"


def test_transient_factory_builds_fresh_instances(registry):
    registry.register("greeter", lambda: Greeter("hi"))

    assert registry.resolve("greeter") is not registry.resolve("greeter")


def test_mode_defaults_to_transient(registry):
    registry.register(Mailer, SmtpMailer)

    assert registry.binding_for(Mailer).mode is Mode.TRANSIENT
    assert registry.resolve(Mailer) is not registry.resolve(Mailer)


def test_class_provider_is_constructed(registry):
    registry.register(Mailer, SmtpMailer, Mode.SINGLETON)

    mailer = registry.resolve(Mailer)

    assert isinstance(mailer, SmtpMailer)
    assert registry.binding_for(Mailer).kind is ProviderKind.CLASS


def test_reregistering_overwrites_previous_binding(registry):
    registry.register(Mailer, SmtpMailer)
    registry.register(Mailer, ConsoleMailer)

    assert isinstance(registry.resolve(Mailer), ConsoleMailer)


def test_reregistering_drops_cached_singleton(registry):
    registry.register("greeter", lambda: Greeter("first"), "singleton")
    assert registry.resolve("greeter").greet() == "first"

    registry.register("greeter", lambda: Greeter("second"), "singleton")

    assert registry.resolve("greeter").greet() == "second"


def test_unbound_key_raises(registry):
    with pytest.raises(BindingNotFound, match="No binding found for 'missing'") as e:
        registry.resolve("missing")

    assert e.value.key == "missing"
    assert e.value.requested_by is None


def test_abstract_type_without_binding_raises(registry):
    with pytest.raises(BindingNotFound, match="Mailer"):
        registry.resolve(Mailer)


def test_binding_not_found_is_a_lookup_error(registry):
    with pytest.raises(LookupError):
        registry.resolve("missing")


def test_forget_removes_binding_and_singleton(registry):
    registry.register("greeter", lambda: Greeter("hi"), "singleton")
    registry.resolve("greeter")

    registry.forget("greeter")

    assert "greeter" not in registry
    with pytest.raises(BindingNotFound):
        registry.resolve("greeter")


def test_forget_then_register_builds_a_new_singleton(registry):
    registry.register("greeter", lambda: Greeter("hi"), "singleton")
    before = registry.resolve("greeter")

    registry.forget("greeter")
    registry.register("greeter", lambda: Greeter("hi"), "singleton")

    assert registry.resolve("greeter") is not before


def test_forget_unknown_key_is_silent(registry):
    registry.forget("never-registered")


@pytest.mark.parametrize("key", ["", "   ", None])
def test_empty_keys_are_rejected(registry, key):
    with pytest.raises(InvalidBinding):
        registry.register(key, Greeter)


def test_unhashable_key_is_rejected(registry):
    with pytest.raises(InvalidBinding, match="not hashable"):
        registry.register(["greeter"], Greeter)


def test_unknown_mode_is_rejected(registry):
    with pytest.raises(InvalidBinding, match="Unknown mode 'forever'"):
        registry.register("greeter", Greeter, "forever")


def test_mode_names_are_case_insensitive(registry):
    registry.register("mailer", SmtpMailer, "SINGLETON")

    assert registry.binding_for("mailer").mode is Mode.SINGLETON


def test_non_callable_provider_is_returned_as_is(registry):
    settings = {"host": "localhost"}
    registry.register("settings", settings)

    assert registry.resolve("settings") is settings
    assert registry.binding_for("settings").kind is ProviderKind.INSTANCE


def test_register_instance_does_not_invoke_callables(registry):
    def handler():
        raise AssertionError("should not be called")

    registry.register_instance("handler", handler)

    assert registry.resolve("handler") is handler


def test_provides_decorator_infers_key_from_function_name(registry):
    @registry.provides(mode="singleton")
    def make_greeter() -> Greeter:
        return Greeter("Hello, World!")

    assert registry.resolve("greeter") is registry.resolve("greeter")


def test_provides_decorator_binds_classes_to_themselves(registry):
    decorated = registry.provides(mode="singleton")(SmtpMailer)

    assert decorated is SmtpMailer
    assert isinstance(registry.resolve(SmtpMailer), SmtpMailer)


def test_provides_decorator_accepts_explicit_key(registry):
    registry.provides(Mailer)(ConsoleMailer)

    assert isinstance(registry.resolve(Mailer), ConsoleMailer)


def test_provides_rejects_non_functions(registry):
    with pytest.raises(InvalidBinding, match="is not a class or function"):
        registry.provides("thing")(42)


def test_bindings_lists_registered_keys(registry):
    registry.register("a", lambda: 1)
    registry.register("b", lambda: 2)

    assert {binding.key for binding in registry.bindings()} == {"a", "b"}


def test_registrations_are_filtered_by_profile():
    registry = BindingRegistry(profiles={"test"})

    registry.register(Mailer, ConsoleMailer, profiles=["test"])
    registry.register(Mailer, SmtpMailer, profiles=["!test"])
    registry.register("prod_only", lambda: "prod", profiles=["prod"])
    registry.register("everywhere", lambda: "global")

    assert isinstance(registry.resolve(Mailer), ConsoleMailer)
    assert "prod_only" not in registry
    assert registry.resolve("everywhere") == "global"


def test_registry_without_profiles_accepts_everything(registry):
    registry.register("prod_only", lambda: "prod", profiles=["prod"])

    assert registry.resolve("prod_only") == "prod"
