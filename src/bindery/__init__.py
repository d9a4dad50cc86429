"""Bindery dependency injection registry.

Bindery binds abstract capabilities (a name or a type) to concrete providers
and resolves them on demand. Providers declare their own dependencies with
standard type hints, which are resolved recursively. There is no global
container: applications build a registry at start-up and pass it to whatever
needs to resolve dependencies.

Key Features:
    - Singleton and transient bindings, last registration wins
    - Automatic construction of unbound concrete classes
    - Type-hint and ``Annotated`` name based dependency injection
    - Cycle detection at resolution time and by static validation
    - Child registries for request or session scopes
    - Profile filtering of registrations
    - Thread-safe singleton construction

Basic Usage:
    >>> from bindery.registry import BindingRegistry
    >>>
    >>> registry = BindingRegistry()
    >>>
    >>> @registry.provides("greeter", mode="singleton")
    >>> def make_greeter() -> Greeter:
    ...     return Greeter("Hello, World!")
    >>>
    >>> registry.resolve("greeter").greet()
    'Hello, World!'

The package consists of several modules:
    - registry: Binding registration and resolution
    - introspection: Deriving bindings and dependencies from providers
    - instance_builder: Provider invocation and instance transformers
    - dependency_graph: Topological ordering used by static validation
    - resolution_chain: Per-context cycle detection
    - domain: Core domain models (Binding, Dependency, ResolvedInstance)
    - metadata: Decorator attaching metadata to providers
    - errors: Registry-specific exceptions
"""
