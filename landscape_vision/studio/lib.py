"""Interactive design studio.

Drives one working session through selection, prompt editing, generation,
refinement and saving, and keeps the local draft and the saved-design
portfolio in step with it. The session itself is an immutable value;
``Studio.session`` is replaced on every event.
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path

from ..artifact import ArtifactRef, ImageValidationError, load_image_file
from ..config import EnvVar, get_environment, get_max_upload_bytes
from ..draft import DraftManager
from ..generation import GenerationBackend
from ..history import (
    Lineage,
    SessionState,
    WorkingSession,
    promote,
    reconstruct_for_edit,
    reconstruct_for_view,
)
from ..prompt import EditHistory
from ..session import (
    StaleGenerationError,
    complete_generation,
    fail_generation,
    refine,
    replace_result,
    reset,
    retry,
    select_image,
    set_error,
    set_prompt,
    start_generation,
)
from ..sync import SyncService

logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Failed to save. Storage limit reached."
GENERATION_FAILED_MESSAGE = "An unexpected error occurred while generating the vision."


class StudioError(Exception):
    """Raised when a studio action cannot run in the current context."""


class Studio:
    """One user's working session plus its draft and portfolio.

    Attributes:
        session: Current working session.
        prompt_history: Undo/redo buffer for the prompt text.
        saved_designs: Owner's saved lineages, newest first.
        owner_id: Signed-in user, or None.

    Example:
        >>> studio = Studio(backend, sync, drafts, owner_id="user-1")
        >>> await studio.startup()
        >>> studio.select_file("garden.jpg")
        >>> studio.update_prompt("add a pergola")
        >>> await studio.generate()
        >>> await studio.save()
    """

    def __init__(
        self,
        backend: GenerationBackend,
        sync: SyncService,
        drafts: DraftManager,
        owner_id: str | None = None,
        max_upload_bytes: int | None = None,
        autosave_interval: float | None = None,
        prompt_commit_delay: float | None = None,
    ):
        self.backend = backend
        self.sync = sync
        self.drafts = drafts
        self.owner_id = owner_id
        self.session = WorkingSession()
        self.prompt_history = EditHistory()
        self.saved_designs: list[Lineage] = []

        self.max_upload_bytes = get_max_upload_bytes(max_upload_bytes)
        self.autosave_interval = get_environment(
            EnvVar.VISION_AUTOSAVE_INTERVAL, override=autosave_interval
        )
        self.prompt_commit_delay = get_environment(
            EnvVar.VISION_PROMPT_COMMIT_DELAY, override=prompt_commit_delay
        )
        self._commit_handle: asyncio.TimerHandle | None = None

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def last_autosave(self) -> datetime | None:
        return self.drafts.last_saved

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def startup(self) -> None:
        """Load the portfolio, restore any draft and start autosaving."""
        await self.refresh_designs()

        restored = await self.drafts.restore(self.session)
        if restored is not None:
            self.session = restored
            self.prompt_history.set_and_save(restored.prompt)

        self.drafts.start(lambda: self.session, self.autosave_interval)

    async def shutdown(self) -> None:
        self._cancel_commit()
        self.prompt_history.commit()
        await self.drafts.stop()
        await self.backend.aclose()
        await self.sync.artifacts.aclose()

    # =========================================================================
    # Input
    # =========================================================================

    def select_image(self, image: ArtifactRef) -> None:
        """Use ``image`` as the root of a new lineage. The prompt is kept."""
        self.session = select_image(self.session, image)

    def select_file(self, path: Path | str) -> bool:
        """Validate and select an image file from disk.

        Returns:
            True if selected; False if rejected, with ``error_message`` set.
        """
        try:
            image = load_image_file(path, self.max_upload_bytes)
        except ImageValidationError as e:
            logger.info(f"Rejected input {path}: {e}")
            self.session = set_error(self.session, str(e))
            return False

        self.select_image(image)
        return True

    # =========================================================================
    # Prompt
    # =========================================================================

    def _apply_prompt(self) -> None:
        self.session = set_prompt(self.session, self.prompt_history.value)

    def _cancel_commit(self) -> None:
        if self._commit_handle is not None:
            self._commit_handle.cancel()
            self._commit_handle = None

    def _commit_prompt(self) -> None:
        self._commit_handle = None
        self.prompt_history.commit()

    def update_prompt(self, text: str) -> None:
        """Set the prompt; it becomes an undo step after a typing pause."""
        self.prompt_history.update(text)
        self._apply_prompt()

        self._cancel_commit()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop to debounce on
            self._commit_prompt()
            return
        self._commit_handle = loop.call_later(
            self.prompt_commit_delay, self._commit_prompt
        )

    def set_prompt(self, text: str) -> None:
        """Set the prompt as an immediately undoable step."""
        self._cancel_commit()
        self.prompt_history.set_and_save(text)
        self._apply_prompt()

    def undo(self) -> None:
        self._cancel_commit()
        self.prompt_history.undo()
        self._apply_prompt()

    def redo(self) -> None:
        self._cancel_commit()
        self.prompt_history.redo()
        self._apply_prompt()

    # =========================================================================
    # Generation
    # =========================================================================

    async def generate(self) -> bool:
        """Run one generation on the current input and prompt.

        A result that arrives after the session was reset, or after another
        generation started, is discarded.

        Returns:
            True if the session now holds a fresh result.

        Raises:
            InvalidTransitionError: If a generation is already running.
            ValidationError: If the image or prompt is missing.
        """
        self.session = start_generation(self.session)
        token = self.session.generation_token
        image = self.session.working_image
        instruction = self.session.prompt
        logger.info(f"[{self.backend.name}] Generation {token} started")

        try:
            result = await self.backend.generate(image, instruction)
        except Exception as e:
            logger.error(f"Generation {token} failed: {e}")
            try:
                self.session = fail_generation(
                    self.session, token, str(e) or GENERATION_FAILED_MESSAGE
                )
            except StaleGenerationError:
                logger.info(f"Ignoring failure of stale generation {token}")
            return False

        try:
            self.session = complete_generation(self.session, token, result)
        except StaleGenerationError:
            logger.info(f"Discarding result of stale generation {token}")
            return False

        await self.drafts.save(self.session)
        return True

    # =========================================================================
    # Result handling
    # =========================================================================

    def retry(self) -> None:
        """Drop the result (or error) and edit the same input again."""
        self.session = retry(self.session)

    def refine(self) -> None:
        """Keep the result as a step and continue from it."""
        self.session = refine(self.session)
        self.set_prompt("")

    def replace_result(self, image: ArtifactRef) -> None:
        self.session = replace_result(self.session, image)

    async def reset(self) -> None:
        """Start over with an empty session and no draft."""
        self.session = reset(self.session)
        self.set_prompt("")
        await self.drafts.clear()

    # =========================================================================
    # Saved designs
    # =========================================================================

    def _require_owner(self, owner_id: str | None) -> str:
        owner = owner_id or self.owner_id
        if not owner:
            raise StudioError("Sign in to manage saved designs")
        return owner

    async def save(self, owner_id: str | None = None) -> bool:
        """Promote the session into a lineage and store it durably.

        Returns:
            True on success. On failure ``error_message`` is set and the
            session is left as it was.

        Raises:
            StudioError: If no owner is known.
            LineageError: If there is no result to save.
        """
        owner = self._require_owner(owner_id)
        lineage = promote(self.session, owner_id=owner)

        if not await self.sync.save(lineage, owner):
            self.session = set_error(self.session, SAVE_FAILED_MESSAGE)
            return False

        await self.drafts.clear()
        await self.refresh_designs(owner)
        return True

    async def refresh_designs(self, owner_id: str | None = None) -> list[Lineage]:
        owner = owner_id or self.owner_id
        self.saved_designs = await self.sync.load_all(owner) if owner else []
        return self.saved_designs

    def find_design(self, lineage_id: str) -> Lineage:
        for lineage in self.saved_designs:
            if lineage.id == lineage_id:
                return lineage
        raise StudioError(f"Design not found: {lineage_id}")

    def load_design(self, lineage: Lineage) -> None:
        """Open a saved lineage at its final result."""
        self._cancel_commit()
        self.session = reconstruct_for_view(lineage)
        self.set_prompt(self.session.prompt)

    def edit_design(self, lineage: Lineage) -> None:
        """Open a saved lineage at the input of its final step."""
        self._cancel_commit()
        self.session = reconstruct_for_edit(lineage)
        self.set_prompt(self.session.prompt)

    async def delete_design(
        self, lineage_id: str, owner_id: str | None = None
    ) -> list[Lineage]:
        owner = self._require_owner(owner_id)
        self.saved_designs = await self.sync.delete(lineage_id, owner)
        return self.saved_designs


__all__ = [
    "Studio",
    "StudioError",
    "SAVE_FAILED_MESSAGE",
    "GENERATION_FAILED_MESSAGE",
]
