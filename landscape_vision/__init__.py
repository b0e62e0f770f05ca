"""landscape-vision: iterative landscape design visualization with lineage tracking."""

from landscape_vision.artifact import ArtifactRef, InlineArtifact, LocatorArtifact
from landscape_vision.history import Iteration, Lineage, SessionState, WorkingSession
from landscape_vision.studio import Studio

__all__ = [
    # Artifacts
    "ArtifactRef",
    "InlineArtifact",
    "LocatorArtifact",
    # Lineage
    "Iteration",
    "Lineage",
    "SessionState",
    "WorkingSession",
    # Workflow
    "Studio",
]
