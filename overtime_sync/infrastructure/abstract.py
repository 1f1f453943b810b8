"""
Storage interfaces for overtime-sync.

Local persistence is a flat key -> text store (the same shape as browser
local/session storage). Concrete backends implement the KeyValueStorage
protocol; the local cache and the session layer only depend on it.
"""

from __future__ import annotations

import abc
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStorage(Protocol):
    """
    Common interface for local key/value persistence backends.
    """

    def get(self, key: str) -> Optional[str]:
        """Return the stored text for ``key`` or None when absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    def delete(self, key: str) -> None:
        """Remove ``key``; a missing key is not an error."""
        ...


class AbstractKeyValueStorage(abc.ABC):
    """
    Optional ABC helper for class-based backends.
    """

    @abc.abstractmethod
    def get(self, key: str) -> Optional[str]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def set(self, key: str, value: str) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def delete(self, key: str) -> None:  # pragma: no cover - interface only
        raise NotImplementedError


__all__ = ["KeyValueStorage", "AbstractKeyValueStorage"]
