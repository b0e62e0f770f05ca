"""Prompt editing for landscape-vision.

Undo/redo for the instruction text, decoupled from the generation lineage.

Example:
    >>> from landscape_vision.prompt import EditHistory
    >>> history = EditHistory()
    >>> history.set_and_save("replace lawn with meadow")
    >>> history.can_undo
    True
"""

from .lib import EditHistory

__all__ = ["EditHistory"]
