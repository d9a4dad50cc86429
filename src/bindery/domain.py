"""Domain models used throughout the registry."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Hashable, Optional, Union
from uuid import UUID

from bindery.errors import InvalidBinding

__all__ = [
    "CapabilityKey",
    "Mode",
    "ProviderKind",
    "Dependency",
    "Binding",
    "ResolvedInstance",
]


CapabilityKey = Union[str, type, Hashable]
"""Type alias for keys naming a dependency contract.

Keys are usually a string name or an (abstract) type:

Example:
    >>> registry.resolve("mailer")    # by name
    >>> registry.resolve(Mailer)      # by type
"""


class Mode(Enum):
    """Lifetime of the instances produced by a binding."""

    SINGLETON = "singleton"
    TRANSIENT = "transient"

    @classmethod
    def of(cls, mode: Union["Mode", str]) -> "Mode":
        if isinstance(mode, Mode):
            return mode
        try:
            return cls(str(mode).lower())
        except ValueError:
            raise InvalidBinding(
                f"Unknown mode {mode!r}, expected one of {[m.value for m in cls]}"
            ) from None


class ProviderKind(Enum):
    CLASS = "class"
    FACTORY = "factory"
    INSTANCE = "instance"


@dataclass(frozen=True)
class Dependency:
    """Represents a dependency required by a provider.

    Attributes:
        parameter_name: The parameter name in the provider's signature.
        declared_type: The annotated type of the parameter, if any.
        component_name: Explicit key given with ``Annotated[T, "name"]``, if any.
        has_default: Whether the parameter declares a default value.
    """

    parameter_name: str
    declared_type: Optional[Any]
    component_name: Optional[str]
    has_default: bool = False

    @property
    def key(self) -> Optional[CapabilityKey]:
        """The key this dependency resolves: its explicit name, else its declared type."""
        if self.component_name is not None:
            return self.component_name
        return self.declared_type


@dataclass(frozen=True)
class Binding:
    """Association from a capability key to a concrete provider.

    Attributes:
        key: The capability key.
        provider: A class, a factory callable, or a ready-made instance.
        mode: Whether one shared instance is kept or a new one built per request.
        kind: How the provider is invoked.
        dependencies: Parameters the provider needs, in signature order.
        profiles: Profiles under which the binding was declared.
        metadata: Arbitrary metadata attached to the provider.
    """

    key: CapabilityKey
    provider: Any
    mode: Mode
    kind: ProviderKind
    dependencies: tuple[Dependency, ...] = ()
    profiles: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_singleton(self) -> bool:
        return self.mode is Mode.SINGLETON


@dataclass(frozen=True)
class ResolvedInstance:
    """
    Represents an instance produced by invoking a binding's provider.

    Attributes:
        id: The unique id of this instance.
        key: The key that was resolved.
        instance: The object produced by the provider.
        mode: The mode of the binding it was built from.
        dependencies: Keys of the dependencies passed to the provider.
        metadata: Metadata declared on the provider.
    """

    id: UUID
    key: CapabilityKey
    instance: Any
    mode: Mode
    dependencies: list[CapabilityKey]
    metadata: dict[str, Any]
