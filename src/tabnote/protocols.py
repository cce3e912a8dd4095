"""Protocols for dependency injection in the session layer."""

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class BackingStoreProtocol(Protocol):
    """Protocol for durable key-value storage."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    def remove(self, key: str) -> None:
        """Delete a key. Missing keys are ignored."""
        ...

    def keys(self) -> list[str]:
        """Return every stored key."""
        ...


@runtime_checkable
class TimerHandleProtocol(Protocol):
    """A scheduled callback that can be cancelled."""

    def cancel(self) -> None:
        """Prevent the callback from running."""
        ...


@runtime_checkable
class SchedulerProtocol(Protocol):
    """Protocol for timer scheduling. ``asyncio.AbstractEventLoop`` satisfies it."""

    def call_later(
        self, delay: float, callback: Callable[..., object], *args: Any
    ) -> TimerHandleProtocol:
        """Run callback(*args) after delay seconds."""
        ...


@runtime_checkable
class EnrichmentApiProtocol(Protocol):
    """Protocol for enrichment service clients."""

    def submit(
        self,
        operation: str,
        content: str,
        *,
        token: str,
        language: str | None = None,
    ) -> dict[str, Any]:
        """Submit content for an operation and return the JSON response."""
        ...

    def status(self, status_url: str, *, token: str) -> dict[str, Any]:
        """Read the status of a submitted job and return the JSON response."""
        ...
