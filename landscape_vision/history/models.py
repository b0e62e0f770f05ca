"""Data models for lineage tracking.

This module defines the core data structures for the iteration lineage:
completed generation steps, the durable lineage record, and the mutable
working session that is promoted into one.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..artifact import ArtifactField, ArtifactRef


def utc_now() -> datetime:
    return datetime.now(UTC)


class SessionState(str, Enum):
    """Coarse lifecycle of a working session."""

    IDLE = "IDLE"  # Editing input and prompt
    GENERATING = "GENERATING"  # Generation call in flight
    SUCCEEDED = "SUCCEEDED"  # Result available for review
    FAILED = "FAILED"  # Last generation failed


class Iteration(BaseModel):
    """One completed generation step. Immutable once created.

    Attributes:
        id: Identifier unique within its lineage.
        prompt: Instruction that produced the image.
        image: Resulting artifact.
        timestamp: Completion time.
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    id: str
    prompt: str
    image: ArtifactField
    timestamp: datetime

    @classmethod
    def create(cls, prompt: str, image: ArtifactRef) -> "Iteration":
        """Factory method to create a new iteration with generated ID."""
        return cls(id=str(uuid4()), prompt=prompt, image=image, timestamp=utc_now())


class Lineage(BaseModel):
    """The durable record of one image-transformation project.

    ``generated_image`` and ``prompt`` mirror the last iteration so list views
    can render a thumbnail without walking ``iterations``. They are set only
    when a working session is promoted.

    Attributes:
        id: Unique lineage identifier.
        owner_id: Owning user; absent until persisted.
        timestamp: Creation time.
        original_image: Root artifact, the absolute first input.
        generated_image: Image of the last iteration (thumbnail).
        prompt: Prompt of the last iteration.
        iterations: Ordered generation steps.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    owner_id: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)
    original_image: ArtifactField
    generated_image: ArtifactField | None = None
    prompt: str = ""
    iterations: list[Iteration] = Field(default_factory=list)

    def to_record(self) -> str:
        """Serialize to the persisted JSON record (camelCase keys)."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_record(cls, record: str | bytes) -> "Lineage":
        """Deserialize a persisted JSON record."""
        return cls.model_validate_json(record)

    def artifacts(self) -> list[ArtifactRef]:
        """All artifact references reachable from this lineage."""
        refs = [self.original_image, self.generated_image]
        refs.extend(iteration.image for iteration in self.iterations)
        return [ref for ref in refs if ref is not None]


@dataclass(frozen=True)
class WorkingSession:
    """The mutable, not-yet-durable state under edit.

    Held as an immutable value: every event produces a new session via
    ``dataclasses.replace``.

    Attributes:
        prompt: Live instruction text.
        working_image: Current input (the root or the latest committed result).
        original_root: Absolute first input of the lineage.
        last_result: Output of the latest generation, not yet committed.
        past_iterations: Completed steps, excluding ``last_result``.
        state: Lifecycle state.
        error_message: Human-readable message for the last failure.
        generation_token: Identifies the generation currently in flight.
    """

    prompt: str = ""
    working_image: ArtifactRef | None = None
    original_root: ArtifactRef | None = None
    last_result: ArtifactRef | None = None
    past_iterations: tuple[Iteration, ...] = field(default_factory=tuple)
    state: SessionState = SessionState.IDLE
    error_message: str | None = None
    generation_token: str | None = None

    @property
    def is_pristine(self) -> bool:
        """True when nothing has been selected or typed yet."""
        return (
            self.working_image is None
            and self.original_root is None
            and not self.prompt
        )

    @property
    def has_content(self) -> bool:
        """True when an autosave tick has something worth persisting."""
        return self.working_image is not None or bool(self.prompt)


__all__ = [
    "SessionState",
    "Iteration",
    "Lineage",
    "WorkingSession",
    "utc_now",
]
