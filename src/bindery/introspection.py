"""Introspection utilities turning classes and functions into bindings."""

import builtins
import inspect
import types
from typing import (
    Annotated,
    Any,
    Callable,
    Optional,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from bindery.domain import Binding, CapabilityKey, Dependency, Mode, ProviderKind
from bindery.errors import InvalidBinding

__all__ = [
    "inferred_key",
    "make_binding",
    "make_instance_binding",
    "get_dependencies",
    "is_autowirable",
    "profiles_match",
    "validate_key",
]

_IGNORED_PARAMETER_KINDS = (
    inspect.Parameter.VAR_POSITIONAL,
    inspect.Parameter.VAR_KEYWORD,
)


def inferred_key(target: Any) -> CapabilityKey:
    """Derive a key from a class or function, removing a 'make_' prefix if present.

    Args:
        target: The function or class to derive a key from.

    Returns:
        The class itself, or the function name with any 'make_' prefix removed.

    Example:
        >>> inferred_key(Database)       # Returns Database
        >>> inferred_key(make_database)  # Returns "database"
        >>> inferred_key(my_service)     # Returns "my_service"
    """
    if inspect.isclass(target):
        return target

    if target.__name__.startswith("make_"):
        return target.__name__[5:]
    else:
        return target.__name__


def validate_key(key: Any) -> None:
    if key is None:
        raise InvalidBinding("Binding key must not be None")
    if isinstance(key, str) and not key.strip():
        raise InvalidBinding("Binding key must be a non-empty string")
    try:
        hash(key)
    except TypeError:
        raise InvalidBinding(f"Binding key {key!r} is not hashable") from None


def make_binding(
    key: CapabilityKey,
    provider: Any,
    mode: Union[Mode, str] = Mode.TRANSIENT,
    profiles: Optional[list[str]] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> Binding:
    """Create a Binding for a provider, introspecting its dependencies.

    Classes are constructed, other callables are invoked as factories, and
    anything else is bound as a ready-made instance.

    Args:
        key: The capability key to bind.
        provider: The class, factory or value providing the capability.
        mode: ``singleton`` or ``transient``.
        profiles: Profiles under which the binding is active.
        metadata: Extra metadata, merged over any declared with ``with_metadata``.

    Returns:
        The Binding describing how to build the capability.

    Raises:
        InvalidBinding: If the key or mode is invalid or the provider's
            signature cannot be introspected.
    """
    validate_key(key)
    if inspect.isclass(provider):
        kind = ProviderKind.CLASS
    elif callable(provider):
        kind = ProviderKind.FACTORY
    else:
        return make_instance_binding(key, provider, profiles, metadata)

    return Binding(
        key,
        provider,
        Mode.of(mode),
        kind,
        tuple(get_dependencies(provider)),
        tuple(profiles or ()),
        _merged_metadata(provider, metadata),
    )


def make_instance_binding(
    key: CapabilityKey,
    instance: Any,
    profiles: Optional[list[str]] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> Binding:
    validate_key(key)
    return Binding(
        key,
        instance,
        Mode.SINGLETON,
        ProviderKind.INSTANCE,
        (),
        tuple(profiles or ()),
        dict(metadata or {}),
    )


def _merged_metadata(provider: Any, metadata: Optional[dict[str, Any]]) -> dict[str, Any]:
    merged = dict(getattr(provider, "__provider_metadata__", {}))
    merged.update(metadata or {})
    return merged


def is_autowirable(key: Any) -> bool:
    """Check whether a key names a class that can be constructed without a binding.

    Abstract classes, protocols and builtin types are never constructed
    automatically: a binding must say which concrete provider to use.
    """
    return (
        inspect.isclass(key)
        and not inspect.isabstract(key)
        and not getattr(key, "_is_protocol", False)
        and key.__module__ != builtins.__name__
    )


def profiles_match(stated: tuple[str, ...], selected: Optional[set[str]]) -> bool:
    """Check if a binding's profile requirements match the selected profiles.

    Profile matching supports inclusion and exclusion patterns:
    - Normal profiles ("dev", "prod") must be in the selected set
    - Exclusion profiles ("!test") must NOT be in the selected set
    - Empty stated profiles match all selected profiles
    - A selection of None matches everything

    Example:
        >>> profiles_match(("dev",), {"dev"})          # True
        >>> profiles_match(("!test",), {"dev"})        # True
        >>> profiles_match(("!test",), {"test"})       # False
        >>> profiles_match(("prod",), {"dev"})         # False
    """
    if selected is None:
        return True

    provided = [p for p in stated if not p.startswith("!")]
    excluded = [p[1:] for p in stated if p.startswith("!")]

    return not any(e in selected for e in excluded) and (
        not provided or any(p in selected for p in provided)
    )


def get_dependencies(provider: Callable) -> list[Dependency]:
    """Extract dependency information from a provider's signature.

    For classes the constructor signature is used. Supports plain type
    annotations, ``Annotated`` types naming a component, and ``Optional``.

    Example:
        >>> def service(untyped, db: Database, cache: Annotated[Cache, "redis"]) -> Service:
        ...     pass
        >>> get_dependencies(service)
        [Dependency("untyped", None, None),
         Dependency("db", Database, None),
         Dependency("cache", Cache, "redis")]
    """
    if inspect.isclass(provider) and provider.__init__ is object.__init__:
        return []

    try:
        sig = inspect.signature(provider)
        hinted = _hinted_callable(provider)
        hints = get_type_hints(hinted, include_extras=True) if hinted else {}
    except (NameError, TypeError, ValueError) as e:
        raise InvalidBinding(f"Cannot introspect provider {provider!r}: {e}") from e

    return [
        _make_dependency(
            hints.get(name), name, parameter.default is not inspect.Parameter.empty
        )
        for name, parameter in sig.parameters.items()
        if parameter.kind not in _IGNORED_PARAMETER_KINDS
    ]


def _hinted_callable(provider: Any) -> Optional[Callable]:
    """Return the Python function whose annotations describe the provider's parameters."""
    if inspect.isclass(provider):
        target = provider.__init__
    elif inspect.isfunction(provider) or inspect.ismethod(provider):
        target = provider
    else:
        target = getattr(type(provider), "__call__", None)
    if inspect.isfunction(target) or inspect.ismethod(target):
        return target
    return None


def _make_dependency(annotation, name, has_default) -> Dependency:
    if annotation is None:
        return Dependency(name, None, None, has_default)

    if get_origin(annotation) is Annotated:
        base_type, *metadata = get_args(annotation)
        component_name = next((m for m in metadata if isinstance(m, str)), None)
        return Dependency(name, _unwrap_optional(base_type), component_name, has_default)
    else:
        return Dependency(name, _unwrap_optional(annotation), None, has_default)


def _unwrap_optional(annotation):
    if get_origin(annotation) in (Union, types.UnionType):
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation
