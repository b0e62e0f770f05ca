"""Undo/redo buffer for the free-text instruction field.

The buffer keeps a committed ``baseline`` and a ``value`` that follows the
caller's keystrokes. Only commits touch the stacks, so one undo step
corresponds to one pause in typing rather than one character.
"""


class EditHistory:
    """Undo/redo history for a single text value.

    Attributes:
        value: Live text, possibly uncommitted.
        baseline: Last committed text.

    Example:
        >>> history = EditHistory()
        >>> history.update("add a pond")
        >>> history.commit()
        >>> history.undo()
        >>> history.value
        ''
    """

    def __init__(self, initial: str = ""):
        self.value = initial
        self.baseline = initial
        self._undo: list[str] = []
        self._redo: list[str] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def is_dirty(self) -> bool:
        """True when the live value has not been committed yet."""
        return self.value != self.baseline

    def update(self, value: str) -> None:
        """Set the live value without touching the stacks."""
        self.value = value

    def commit(self) -> bool:
        """Commit the live value as a new undo step.

        Returns:
            True if a step was recorded, False if nothing changed.
        """
        if self.value == self.baseline:
            return False
        self._undo.append(self.baseline)
        self._redo.clear()
        self.baseline = self.value
        return True

    def undo(self) -> None:
        if not self._undo:
            return
        self._redo.append(self.baseline)
        self.baseline = self._undo.pop()
        self.value = self.baseline

    def redo(self) -> None:
        if not self._redo:
            return
        self._undo.append(self.baseline)
        self.baseline = self._redo.pop()
        self.value = self.baseline

    def set_and_save(self, value: str) -> None:
        """Set and commit ``value`` in one step, bypassing the debounce.

        Used for programmatic loads (restoring a lineage, picking a
        suggestion) that must be undoable immediately.
        """
        self._undo.append(self.baseline)
        self._redo.clear()
        self.value = value
        self.baseline = value

    def clear(self) -> None:
        """Drop all history and empty the value."""
        self.value = ""
        self.baseline = ""
        self._undo.clear()
        self._redo.clear()


__all__ = ["EditHistory"]
