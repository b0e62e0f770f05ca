"""Draft persistence for landscape-vision.

Best-effort local snapshots of the working session for crash and reload
recovery. Independent of durable storage.

Example:
    >>> from landscape_vision.draft import DraftManager
    >>> from landscape_vision.history.storage import SQLiteSnapshotStore
    >>> store = SQLiteSnapshotStore("data/drafts.db")
    >>> store.initialize()
    >>> drafts = DraftManager(store)
    >>> restored = await drafts.restore(session)

Features:
    - Periodic autosave that skips empty sessions
    - Immediate snapshot after a successful generation
    - Restore only into a pristine session, never merged
    - All store failures logged and swallowed
"""

from .lib import DEFAULT_AUTOSAVE_INTERVAL, DRAFT_KEY, DraftManager
from .models import DraftSnapshot

__all__ = [
    "DraftManager",
    "DraftSnapshot",
    "DRAFT_KEY",
    "DEFAULT_AUTOSAVE_INTERVAL",
]
