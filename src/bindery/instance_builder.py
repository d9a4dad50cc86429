"""Utilities for invoking providers and constructing ResolvedInstance objects.

This module provides the InstanceBuilder class, which is responsible for
calling a binding's provider with its resolved dependencies and turning the
result into a ResolvedInstance. It supports a transformer pattern that
allows post-processing of instances after creation.
"""

import uuid
from functools import reduce
from typing import Any, Callable

from bindery.domain import Binding, ProviderKind, ResolvedInstance
from bindery.errors import DependencyError, InstantiationFailure

__all__ = ["InstanceBuilder", "Transformer"]


Transformer = Callable[[ResolvedInstance], ResolvedInstance]


class InstanceBuilder:
    """Build :class:`ResolvedInstance` records from bindings."""

    def __init__(self, transformers: list[Transformer]):
        self._transformers = list(transformers)

    def build(self, binding: Binding, arguments: dict[str, Any]) -> ResolvedInstance:
        """Invoke a provider and apply transformers to the result.

        Args:
            binding: The binding being resolved.
            arguments: Mapping of parameter names to resolved dependencies.

        Returns:
            The resulting :class:`ResolvedInstance`.

        Raises:
            InstantiationFailure: If the provider or a transformer raises.
                Errors that are already DependencyErrors propagate unchanged.
        """
        try:
            if binding.kind is ProviderKind.INSTANCE:
                instance = binding.provider
            else:
                instance = binding.provider(**arguments)

            untransformed = ResolvedInstance(
                uuid.uuid4(),
                binding.key,
                instance,
                binding.mode,
                [
                    dependency.key
                    for dependency in binding.dependencies
                    if dependency.parameter_name in arguments
                ],
                binding.metadata,
            )
            return reduce(
                lambda resolved, transformer: transformer(resolved),
                self._transformers,
                untransformed,
            )
        except DependencyError:
            raise
        except Exception as e:
            raise InstantiationFailure(binding.key, e) from e
