"""Bounded undo/redo history over snapshots of a document's text."""

from tabnote.config import HISTORY_MAX_SIZE, HISTORY_MIN_DELTA


class HistoryManager:
    """Undo/redo stacks for one document.

    Not every keystroke becomes an undo step: the previous text is recorded
    only when the length changed by at least ``min_delta`` characters, so a
    run of small edits is undone as one.

    After ``undo`` or ``redo`` the next ``push_state`` is ignored: whoever
    applies the restored text feeds it back once, and that echo must not be
    recorded as a new edit. Pushing the current text again changes nothing.
    """

    def __init__(
        self,
        initial: str = "",
        *,
        max_size: int = HISTORY_MAX_SIZE,
        min_delta: int = HISTORY_MIN_DELTA,
    ) -> None:
        self.current = initial
        self.max_size = max_size
        self.min_delta = min_delta
        self.past: list[str] = []
        self.future: list[str] = []
        self.suppress_next_push = False

    @property
    def can_undo(self) -> bool:
        return bool(self.past)

    @property
    def can_redo(self) -> bool:
        return bool(self.future)

    def push_state(self, new_text: str) -> None:
        if self.suppress_next_push:
            self.suppress_next_push = False
            return
        if new_text == self.current:
            return

        if (
            self.current
            and abs(len(new_text) - len(self.current)) >= self.min_delta
        ):
            self._push_past(self.current)

        self.current = new_text
        self.future.clear()

    def undo(self) -> str | None:
        if not self.past:
            return None
        self.suppress_next_push = True
        self.future.append(self.current)
        self.current = self.past.pop()
        return self.current

    def redo(self) -> str | None:
        if not self.future:
            return None
        self.suppress_next_push = True
        self._push_past(self.current)
        self.current = self.future.pop()
        return self.current

    def _push_past(self, text: str) -> None:
        self.past.append(text)
        if len(self.past) > self.max_size:
            del self.past[0]
