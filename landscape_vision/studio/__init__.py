"""Design studio for landscape-vision.

Wires the session state machine, prompt history, draft manager, sync
service and generation backend into a single interactive workflow.

Example:
    >>> from landscape_vision.studio import Studio
    >>> studio = Studio(backend, sync, drafts, owner_id="user-1")
    >>> await studio.startup()
    >>> studio.select_file("backyard.jpg")
    >>> studio.update_prompt("replace the lawn with a wildflower meadow")
    >>> await studio.generate()
    >>> studio.refine()

Features:
    - Debounced prompt commits with undo/redo
    - Stale generation results discarded after reset
    - Draft autosave and post-generation snapshots
    - Save, load, edit and delete of saved designs
"""

from .lib import GENERATION_FAILED_MESSAGE, SAVE_FAILED_MESSAGE, Studio, StudioError

__all__ = [
    "Studio",
    "StudioError",
    "SAVE_FAILED_MESSAGE",
    "GENERATION_FAILED_MESSAGE",
]
