"""Decorators attaching metadata to providers.

Metadata is stored on the provider under ``__provider_metadata__`` and copied
into its Binding at registration, where transformers can read it.
"""

from typing import Any, Callable

__all__ = ["with_metadata", "set_metadata"]


def set_metadata(target: Any, **kwargs) -> Any:
    """Merge keyword arguments into a provider's metadata.

    Args:
        target: The class or function to tag.
        **kwargs: Metadata entries; later calls override earlier ones.

    Returns:
        The target itself, so the call can be chained or used in decorators.
    """
    metadata = dict(getattr(target, "__provider_metadata__", {}))
    metadata.update(kwargs)
    target.__provider_metadata__ = metadata
    return target


def with_metadata(**kwargs) -> Callable:
    """Decorator attaching metadata to a provider, picked up when it is registered.

    Example:
        @registry.provides()
        @with_metadata(audited=True)
        class PaymentService:
            ...
    """

    def decorator(target: Any) -> Any:
        return set_metadata(target, **kwargs)

    return decorator
