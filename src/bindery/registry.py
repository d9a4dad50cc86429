"""Registration and resolution of bindings."""

import inspect
import logging
import threading
from collections import deque
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from bindery.dependency_graph import DependencyGraph
from bindery.domain import Binding, CapabilityKey, Dependency, Mode
from bindery.errors import BindingNotFound, CircularDependency, InvalidBinding
from bindery.instance_builder import InstanceBuilder, Transformer
from bindery.introspection import (
    inferred_key,
    is_autowirable,
    make_binding,
    make_instance_binding,
    profiles_match,
    validate_key,
)
from bindery.resolution_chain import resolving

__all__ = ["BindingRegistry"]

logger = logging.getLogger(__name__)

_MISSING = object()


class BindingRegistry:
    """Registry mapping capability keys to providers, resolving them on demand.

    Registries may be layered: a child registry sees every binding of its
    ancestors, while bindings registered in the child stay invisible to them.
    This models request or session scopes over an application-wide registry.

    Registration, removal and the first construction of a singleton are
    serialized by a re-entrant lock. Transient resolutions and cached
    singleton lookups do not take the lock. The lock is held while a
    singleton's provider runs, so a slow singleton provider delays every
    other first-time singleton construction, registration and removal in
    the same registry until it returns.

    Example:
        >>> registry = BindingRegistry()
        >>> registry.register(Mailer, SmtpMailer, "singleton")
        >>> registry.resolve(Mailer)
    """

    def __init__(
        self,
        profiles: Optional[Iterable[str]] = None,
        parent: Optional["BindingRegistry"] = None,
        transformers: Optional[list[Transformer]] = None,
        autowire: bool = True,
    ):
        """
        Args:
            profiles: Active profile names. Registrations whose profiles do not
                match are ignored. If None, every registration is active
                (children inherit their parent's profiles).
            parent: An optional parent registry whose bindings are visible here.
            transformers: Post-processing applied to every newly built instance.
                Children inherit their parent's transformers if None.
            autowire: Whether unbound concrete classes are constructed automatically.
        """
        if profiles is not None:
            self._profiles = frozenset(profiles)
        else:
            self._profiles = parent.profiles if parent else None
        self._parent = parent
        self._autowire = autowire
        if transformers is not None:
            self._builder = InstanceBuilder(transformers)
        else:
            self._builder = parent._builder if parent else InstanceBuilder([])
        self._bindings: dict[CapabilityKey, Binding] = {}
        self._singletons: dict[CapabilityKey, Any] = {}
        self._lock = threading.RLock()

    @property
    def profiles(self) -> Optional[frozenset[str]]:
        return self._profiles

    @property
    def parent(self) -> Optional["BindingRegistry"]:
        return self._parent

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def register(
        self,
        key: CapabilityKey,
        provider: Any,
        mode: Union[Mode, str] = Mode.TRANSIENT,
        *,
        profiles: Optional[list[str]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """Bind a key to a provider, replacing any previous binding for the key.

        Classes are constructed with their constructor dependencies resolved,
        other callables are invoked as factories with their parameters
        resolved, and any other value is returned as-is.

        Args:
            key: A non-empty name or a type.
            provider: The class, factory or value providing the capability.
            mode: ``singleton`` to share one instance, ``transient`` (default)
                to build a new one per resolution.
            profiles: Profiles under which this binding is active.
            metadata: Metadata made available to transformers.

        Raises:
            InvalidBinding: If the key is empty or the mode unknown.
        """
        self._add(make_binding(key, provider, mode, profiles, metadata))

    def register_instance(
        self,
        key: CapabilityKey,
        instance: Any,
        *,
        profiles: Optional[list[str]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """Bind a key to a ready-made instance, which is never invoked."""
        self._add(make_instance_binding(key, instance, profiles, metadata))

    def provides(
        self,
        key: Optional[CapabilityKey] = None,
        mode: Union[Mode, str] = Mode.TRANSIENT,
        profiles: Optional[list[str]] = None,
    ) -> Callable:
        """Decorator to register a class or function as a provider.

        Args:
            key: Optional key to bind; defaults to the class itself, or to the
                function name with any 'make_' prefix removed.
            mode: ``singleton`` or ``transient``.
            profiles: Optional list of profiles for which the binding is active.

        Example:
            @registry.provides(mode="singleton", profiles=["dev"])
            def make_mailer(settings: Settings) -> Mailer:
                return ConsoleMailer(settings)
        """

        def decorator(obj):
            if not (inspect.isclass(obj) or inspect.isfunction(obj)):
                raise InvalidBinding(f"{obj} is not a class or function")
            self.register(
                key if key is not None else inferred_key(obj), obj, mode, profiles=profiles
            )
            return obj

        return decorator

    def forget(self, key: CapabilityKey) -> None:
        """Remove the binding and any cached singleton for a key.

        Only this registry is affected; bindings inherited from a parent stay
        visible. Forgetting an unknown key does nothing.
        """
        validate_key(key)
        with self._lock:
            removed = self._bindings.pop(key, None)
            self._singletons.pop(key, None)
        if removed is not None:
            logger.debug("Forgot binding for %r", key)

    def _add(self, binding: Binding) -> None:
        if not profiles_match(binding.profiles, self._profiles):
            logger.debug(
                "Skipping binding for %r: profiles %s not active in %s",
                binding.key,
                list(binding.profiles),
                set(self._profiles or ()),
            )
            return

        with self._lock:
            replaced = self._bindings.get(binding.key)
            self._bindings[binding.key] = binding
            self._singletons.pop(binding.key, None)

        if replaced is not None:
            logger.debug("Replaced binding for %r with %r", binding.key, binding.provider)
        else:
            logger.debug(
                "Registered %r -> %r (%s)", binding.key, binding.provider, binding.mode.value
            )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def is_registered(self, key: CapabilityKey) -> bool:
        owner, _ = self._lookup(key)
        return owner is not None

    def __contains__(self, key: CapabilityKey) -> bool:
        return self.is_registered(key)

    def binding_for(self, key: CapabilityKey) -> Optional[Binding]:
        _, binding = self._lookup(key)
        return binding

    def bindings(self) -> list[Binding]:
        """Return every binding visible from this registry.

        Bindings registered here shadow ancestor bindings for the same key.
        """
        visible: dict[CapabilityKey, Binding] = (
            {binding.key: binding for binding in self._parent.bindings()}
            if self._parent
            else {}
        )
        visible.update(self._bindings)
        return list(visible.values())

    def child(
        self,
        scope: Optional[Mapping[CapabilityKey, Any]] = None,
        profiles: Optional[Iterable[str]] = None,
    ) -> "BindingRegistry":
        """Create a child registry layered over this one.

        Args:
            scope: Instances to register in the child, e.g. the current request.
            profiles: Active profiles for the child; inherited if None.

        Returns:
            The new child registry.
        """
        child = type(self)(profiles=profiles, parent=self, autowire=self._autowire)
        for key, instance in (scope or {}).items():
            child.register_instance(key, instance)
        return child

    def _lookup(self, key):
        registry = self
        while registry is not None:
            binding = registry._bindings.get(key)
            if binding is not None:
                return registry, binding
            registry = registry._parent
        return None, None

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def resolve(self, key: CapabilityKey) -> Any:
        """Resolve a key to an instance.

        A cached singleton is returned if present. Otherwise the key's
        binding (here or in an ancestor) is invoked, with its dependencies
        resolved recursively. Unbound concrete classes are constructed
        automatically when autowiring is enabled.

        Raises:
            BindingNotFound: If the key has no binding and cannot be constructed.
            CircularDependency: If resolving the key requires the key itself.
            InstantiationFailure: If a provider raises.
        """
        validate_key(key)
        with resolving(key) as chain:
            return self._resolve(key, chain[-1] if chain else None)

    def _resolve(self, key, requested_by):
        instance = self._singletons.get(key, _MISSING)
        if instance is not _MISSING:
            return instance

        owner, binding = self._lookup(key)
        if binding is not None:
            return owner._materialise(binding)
        return self._unbound(key, requested_by)

    def _unbound(self, key, requested_by):
        if self._autowire and is_autowirable(key):
            logger.debug("Autowiring %r", key)
            return self._build(make_binding(key, key, Mode.TRANSIENT))
        raise BindingNotFound(key, requested_by)

    def _materialise(self, binding: Binding) -> Any:
        if not binding.is_singleton:
            return self._build(binding)

        instance = self._singletons.get(binding.key, _MISSING)
        if instance is not _MISSING:
            return instance

        with self._lock:
            instance = self._singletons.get(binding.key, _MISSING)
            if instance is not _MISSING:
                return instance

            # the binding may have been replaced or forgotten since it was looked up
            current = self._bindings.get(binding.key)
            if current is None:
                return self._unbound(binding.key, None)
            if not current.is_singleton:
                return self._build(current)

            instance = self._build(current)
            self._singletons[current.key] = instance
            logger.debug("Constructed singleton for %r", current.key)
            return instance

    def _build(self, binding: Binding) -> Any:
        return self._builder.build(binding, self._arguments_for(binding)).instance

    def _arguments_for(self, binding: Binding) -> dict[str, Any]:
        arguments = {}
        for dependency in binding.dependencies:
            if _injects_registry(dependency):
                arguments[dependency.parameter_name] = self
                continue

            key = dependency.key
            if key is None:
                if dependency.has_default:
                    continue
                raise _unannotated(binding, dependency)

            try:
                arguments[dependency.parameter_name] = self.resolve(key)
            except BindingNotFound as e:
                if dependency.has_default and e.key == key:
                    continue
                raise
        return arguments

    # ------------------------------------------------------------------
    # Static validation
    # ------------------------------------------------------------------
    def validate(self) -> list[CapabilityKey]:
        """Check that every visible binding's declared dependencies can be satisfied.

        No provider is invoked. Dependencies that a factory obtains by calling
        :meth:`resolve` itself are not visible to this check.

        Returns:
            Keys in an order where each key's dependencies precede it.

        Raises:
            BindingNotFound: If a declared dependency has no binding.
            CircularDependency: If the declared dependencies form a cycle.
        """
        ordered = []
        for _, key in self._build_plan():
            if key not in ordered:
                ordered.append(key)
        return ordered

    def instantiate_singletons(self) -> None:
        """Validate, then construct every singleton bound in this registry in dependency order."""
        for owner, key in self._build_plan():
            binding = self._bindings.get(key)
            if owner is self and binding is not None and binding.is_singleton:
                self.resolve(key)

    def _build_plan(self) -> list[tuple["BindingRegistry", CapabilityKey]]:
        graph = DependencyGraph()
        pending = deque(
            (self._lookup(binding.key)[0], binding.key) for binding in self.bindings()
        )
        expanded = set()

        while pending:
            node = pending.popleft()
            if node in expanded:
                continue
            expanded.add(node)

            owner, key = node
            binding = owner._bindings.get(key) or make_binding(key, key, Mode.TRANSIENT)
            dependency_nodes = [
                dependency_node
                for dependency in binding.dependencies
                if (dependency_node := owner._static_dependency(binding, dependency))
            ]
            graph.add(node, dependency_nodes)
            pending.extend(dependency_nodes)

        try:
            return graph.order()
        except CircularDependency as e:
            raise CircularDependency(tuple(key for _, key in e.chain)) from None

    def _static_dependency(self, binding: Binding, dependency: Dependency):
        if _injects_registry(dependency):
            return None

        key = dependency.key
        if key is None:
            if dependency.has_default:
                return None
            raise _unannotated(binding, dependency)

        owner, _ = self._lookup(key)
        if owner is not None:
            return owner, key
        if self._autowire and is_autowirable(key):
            return self, key
        if dependency.has_default:
            return None
        raise BindingNotFound(key, binding.key)

    def __repr__(self):
        return (
            f"{type(self).__name__}(bindings={len(self._bindings)}, "
            f"profiles={set(self._profiles) if self._profiles is not None else None}, "
            f"scoped={self._parent is not None})"
        )


def _injects_registry(dependency: Dependency) -> bool:
    return (
        dependency.component_name is None
        and inspect.isclass(dependency.declared_type)
        and issubclass(dependency.declared_type, BindingRegistry)
    )


def _unannotated(binding: Binding, dependency: Dependency) -> BindingNotFound:
    return BindingNotFound(
        dependency.parameter_name,
        binding.key,
        "parameter is neither annotated nor defaulted",
    )
