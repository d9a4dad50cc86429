"""Exceptions raised while registering and resolving bindings."""

from typing import Any, Optional

__all__ = [
    "DependencyError",
    "InvalidBinding",
    "BindingNotFound",
    "CircularDependency",
    "InstantiationFailure",
]


def _label(key: Any) -> str:
    if isinstance(key, str):
        return repr(key)
    return getattr(key, "__qualname__", None) or repr(key)


class DependencyError(Exception):
    """Base class for all errors raised by the registry."""

    pass


class InvalidBinding(DependencyError, ValueError):
    """Raised when a registration is malformed (empty key, unknown mode, etc)."""

    pass


class BindingNotFound(DependencyError, LookupError):
    """Raised when a key has no binding and cannot be constructed automatically.

    Attributes:
        key: The key that could not be resolved.
        requested_by: The key whose provider asked for it, if any.
    """

    def __init__(self, key: Any, requested_by: Any = None, reason: Optional[str] = None):
        self.key = key
        self.requested_by = requested_by
        message = f"No binding found for {_label(key)}"
        if requested_by is not None:
            message += f" (required by {_label(requested_by)})"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class CircularDependency(DependencyError):
    """Raised when a resolution chain revisits a key it is already resolving.

    Attributes:
        chain: The keys being resolved, outermost first, ending with the repeated key.
    """

    def __init__(self, chain: tuple):
        self.chain = chain
        super().__init__(
            "Circular dependency: " + " -> ".join(_label(key) for key in chain)
        )


class InstantiationFailure(DependencyError):
    """Raised when a provider raises while building an instance.

    Attributes:
        key: The key being resolved.
        cause: The exception raised by the provider.
    """

    def __init__(self, key: Any, cause: BaseException):
        self.key = key
        self.cause = cause
        super().__init__(
            f"Provider for {_label(key)} failed: {type(cause).__name__}: {cause}"
        )
