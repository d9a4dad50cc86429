"""Tracking of the keys currently being resolved.

Each thread and each asyncio task sees its own chain, held in a
:class:`contextvars.ContextVar`. Entering a key that is already on the chain
means a provider (directly or indirectly) asked for itself.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

from bindery.domain import CapabilityKey
from bindery.errors import CircularDependency

__all__ = ["resolving"]


_chain: ContextVar[tuple] = ContextVar("bindery_resolution_chain", default=())


@contextmanager
def resolving(key: CapabilityKey) -> Iterator[tuple]:
    """Push a key onto the resolution chain for the duration of the block.

    Raises:
        CircularDependency: If the key is already being resolved in this context.
    """
    chain = _chain.get()
    if key in chain:
        raise CircularDependency(chain + (key,))

    token = _chain.set(chain + (key,))
    try:
        yield chain
    finally:
        _chain.reset(token)
