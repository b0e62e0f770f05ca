"""Draft snapshot manager.

Keeps a single best-effort copy of the working session in a snapshot store
so an interrupted session can be picked up again. Every store failure is
logged and swallowed: drafts never block or fail the interactive workflow.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from ..history import WorkingSession
from ..history.storage import SnapshotStore
from .models import DraftSnapshot

logger = logging.getLogger(__name__)

DRAFT_KEY = "landscape-vision-autosave"
DEFAULT_AUTOSAVE_INTERVAL = 30.0


class DraftManager:
    """Writes, restores and clears the draft snapshot.

    Attributes:
        store: Snapshot store holding the single draft slot.
        key: Slot key.
        last_saved: Time of the last successful write or restore.
    """

    def __init__(self, store: SnapshotStore, key: str = DRAFT_KEY):
        self.store = store
        self.key = key
        self.last_saved: datetime | None = None
        self._task: asyncio.Task | None = None

    # =========================================================================
    # Snapshot operations
    # =========================================================================

    async def save(self, session: WorkingSession) -> bool:
        """Write a snapshot of ``session`` unconditionally.

        Used right after a generation succeeds so the result survives a crash.

        Returns:
            True if the snapshot was written.
        """
        snapshot = DraftSnapshot.from_session(session)
        try:
            await self.store.write(self.key, snapshot.to_payload())
        except Exception as e:
            logger.warning(f"Failed to save draft: {e}")
            return False
        self.last_saved = snapshot.timestamp
        logger.debug(f"Draft saved at {snapshot.timestamp.isoformat()}")
        return True

    async def autosave(self, session: WorkingSession) -> bool:
        """Timer tick: write a snapshot if the session has content.

        Returns:
            True if a snapshot was written.
        """
        if not session.has_content:
            return False
        return await self.save(session)

    async def load(self) -> DraftSnapshot | None:
        """Read the stored snapshot, if any."""
        try:
            payload = await self.store.read(self.key)
            if payload is None:
                return None
            return DraftSnapshot.from_payload(payload)
        except Exception as e:
            logger.warning(f"Failed to load draft: {e}")
            return None

    async def restore(self, session: WorkingSession) -> WorkingSession | None:
        """Restore the draft into a pristine session.

        A session that already has content is never merged with the draft.

        Returns:
            The restored session, or None if nothing was restored.
        """
        snapshot = await self.load()
        if snapshot is None:
            return None
        if not session.is_pristine:
            logger.info("Session already has content; ignoring stored draft")
            return None

        logger.info(f"Restoring draft from {snapshot.timestamp.isoformat()}")
        self.last_saved = snapshot.timestamp
        return snapshot.to_session()

    async def clear(self) -> None:
        self.last_saved = None
        try:
            await self.store.delete(self.key)
        except Exception as e:
            logger.warning(f"Failed to clear draft: {e}")

    # =========================================================================
    # Autosave loop
    # =========================================================================

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(
        self,
        get_session: Callable[[], WorkingSession],
        interval: float = DEFAULT_AUTOSAVE_INTERVAL,
    ) -> None:
        """Start the periodic autosave task on the running loop.

        Args:
            get_session: Returns the session to snapshot on each tick.
            interval: Seconds between ticks.
        """
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(get_session, interval))

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(
        self, get_session: Callable[[], WorkingSession], interval: float
    ) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.autosave(get_session())


__all__ = ["DRAFT_KEY", "DEFAULT_AUTOSAVE_INTERVAL", "DraftManager"]
