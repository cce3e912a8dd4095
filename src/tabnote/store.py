"""Persistent key-value store with debounced, coalesced writes."""

from loguru import logger

from tabnote.config import STORE_DEBOUNCE_SECONDS
from tabnote.protocols import BackingStoreProtocol, SchedulerProtocol, TimerHandleProtocol


class PersistentStore:
    """Queue writes in memory and flush them to the backing store in batches.

    Bursts of writes to the same key collapse into one physical write: each
    ``write`` restarts the debounce timer, and when it fires every pending
    entry is written out once. Reads see pending values before they are
    flushed. Removals bypass the queue so a stale pending write can never
    resurrect a deleted key.
    """

    def __init__(
        self,
        backing: BackingStoreProtocol,
        scheduler: SchedulerProtocol,
        *,
        delay: float = STORE_DEBOUNCE_SECONDS,
    ) -> None:
        self._backing = backing
        self._scheduler = scheduler
        self._delay = delay
        self._pending: dict[str, str] = {}
        self._timer: TimerHandleProtocol | None = None

    @property
    def pending_keys(self) -> list[str]:
        return sorted(self._pending)

    def write(self, key: str, value: str) -> None:
        self._pending[key] = value
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._scheduler.call_later(self._delay, self.flush)

    def read(self, key: str, default: str | None = None) -> str | None:
        if key in self._pending:
            return self._pending[key]
        value = self._backing.get(key)
        return default if value is None else value

    def remove(self, key: str) -> None:
        self._pending.pop(key, None)
        self._backing.remove(key)

    def keys_with_prefix(self, prefix: str) -> list[str]:
        """Pending and durable keys starting with ``prefix``."""
        keys = {*self._pending, *self._backing.keys()}
        return sorted(k for k in keys if k.startswith(prefix))

    def flush(self) -> None:
        """Write all pending entries to the backing store now.

        The pending map is emptied before writing, so a failing backing store
        raises to the caller but leaves the next flush unaffected.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        pending, self._pending = self._pending, {}
        if not pending:
            return
        logger.debug("Flushing {} key(s) to storage", len(pending))
        for key, value in pending.items():
            self._backing.set(key, value)
