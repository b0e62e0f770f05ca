"""Draft snapshot model.

A snapshot is a full copy of the working session plus the time it was
taken, serialized to a single JSON payload with camelCase keys.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..artifact import ArtifactField
from ..history import Iteration, SessionState, WorkingSession, utc_now


class DraftSnapshot(BaseModel):
    """Best-effort local copy of a working session.

    Attributes:
        timestamp: When the snapshot was taken.
        prompt: Instruction text.
        working_image: Current input image.
        last_result: Uncommitted generation result.
        past_iterations: Completed steps.
        original_root: Root image of the lineage.
        session_state: Session state at snapshot time.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    timestamp: datetime = Field(default_factory=utc_now)
    prompt: str = ""
    working_image: ArtifactField | None = None
    last_result: ArtifactField | None = None
    past_iterations: list[Iteration] = Field(default_factory=list)
    original_root: ArtifactField | None = None
    session_state: SessionState = SessionState.IDLE

    @classmethod
    def from_session(cls, session: WorkingSession) -> "DraftSnapshot":
        return cls(
            prompt=session.prompt,
            working_image=session.working_image,
            last_result=session.last_result,
            past_iterations=list(session.past_iterations),
            original_root=session.original_root,
            session_state=session.state,
        )

    def to_session(self) -> WorkingSession:
        """Rebuild the working session. The stored state is kept as-is."""
        return WorkingSession(
            prompt=self.prompt,
            working_image=self.working_image,
            original_root=self.original_root,
            last_result=self.last_result,
            past_iterations=tuple(self.past_iterations),
            state=self.session_state,
        )

    def to_payload(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_payload(cls, payload: str) -> "DraftSnapshot":
        return cls.model_validate_json(payload)


__all__ = ["DraftSnapshot"]
