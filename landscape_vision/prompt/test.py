"""Tests for the prompt edit history."""

from .lib import EditHistory


class TestUpdateCommit:
    """Live edits and debounced commits."""

    def test_update_does_not_touch_stacks(self):
        """Keystrokes only change the live value."""
        history = EditHistory()
        for text in ["a", "ad", "add"]:
            history.update(text)
        assert history.value == "add"
        assert history.baseline == ""
        assert not history.can_undo

    def test_commit_records_one_step(self):
        """A burst of updates becomes a single undo step."""
        history = EditHistory()
        for text in ["a", "ad", "add"]:
            history.update(text)
        assert history.commit() is True
        assert history.baseline == "add"
        history.undo()
        assert history.value == ""
        assert not history.can_undo

    def test_commit_idempotent(self):
        """Committing twice without changes records nothing."""
        history = EditHistory()
        history.update("pond")
        history.commit()
        assert history.commit() is False
        history.undo()
        assert not history.can_undo

    def test_commit_clears_redo(self):
        """A new commit invalidates the redo stack."""
        history = EditHistory()
        history.update("one")
        history.commit()
        history.undo()
        assert history.can_redo
        history.update("two")
        history.commit()
        assert not history.can_redo


class TestUndoRedo:
    """Stack navigation."""

    def test_undo_redo_cycle(self):
        """Undo and redo move between committed values."""
        history = EditHistory()
        for text in ["first", "second"]:
            history.update(text)
            history.commit()

        history.undo()
        assert history.value == "first"
        history.undo()
        assert history.value == ""
        history.redo()
        history.redo()
        assert history.value == "second"
        assert not history.can_redo

    def test_empty_stacks_are_noops(self):
        """Undo and redo do nothing on empty stacks."""
        history = EditHistory("start")
        history.undo()
        history.redo()
        assert history.value == "start"
        assert history.baseline == "start"

    def test_undo_discards_uncommitted_edit(self):
        """Undo restores the previous committed value, not the live one."""
        history = EditHistory()
        history.update("kept")
        history.commit()
        history.update("kept and more")
        history.undo()
        assert history.value == ""
        history.redo()
        assert history.value == "kept"


class TestSetAndSave:
    """Programmatic loads."""

    def test_immediately_undoable(self):
        """set_and_save is undoable without waiting for a commit."""
        history = EditHistory("typed")
        history.set_and_save("loaded")
        assert history.value == history.baseline == "loaded"
        history.undo()
        assert history.value == "typed"

    def test_clear(self):
        """clear drops value and both stacks."""
        history = EditHistory()
        history.set_and_save("x")
        history.clear()
        assert history.value == ""
        assert not history.can_undo
        assert not history.can_redo
