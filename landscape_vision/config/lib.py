"""Centralized environment configuration management for landscape-vision.

Provides a unified interface for all environment variables with:
- Single `get_environment()` function for all configuration
- Type-safe enum with metadata (default, type, description)
- Consistent resolution: override > environment > default

Example:
    >>> from landscape_vision.config import EnvVar, get_environment
    >>>
    >>> interval = get_environment(EnvVar.VISION_AUTOSAVE_INTERVAL)  # float
    >>> api_key = get_environment(EnvVar.GEMINI_API_KEY)  # str | None
    >>>
    >>> # Override at runtime
    >>> interval = get_environment(EnvVar.VISION_AUTOSAVE_INTERVAL, override=5.0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, overload

# =============================================================================
# Environment Variable Configuration
# =============================================================================


@dataclass(frozen=True)
class EnvConfig:
    """Metadata for an environment variable.

    Attributes:
        name: Environment variable name (e.g., "VISION_DATA_DIR").
        default: Default value if not set in environment.
        var_type: Python type for value conversion (str, int, float, Path).
        description: Human-readable description.
        category: Grouping category for documentation.
    """

    name: str
    default: Any
    var_type: type
    description: str = ""
    category: str = "general"


class EnvVar(Enum):
    """All environment variables used by landscape-vision.

    Each member contains an EnvConfig with name, default, type, and description.
    Use with `get_environment()` for type-safe access.

    Categories:
        - storage: Local data paths and the durable artifact store
        - session: Working-session timers and upload limits
        - generation: Image generation backend
    """

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------
    VISION_DATA_DIR = EnvConfig(
        name="VISION_DATA_DIR",
        default=Path("data"),
        var_type=Path,
        description="Directory holding the design database, drafts and local artifacts",
        category="storage",
    )
    VISION_ARTIFACT_URL = EnvConfig(
        name="VISION_ARTIFACT_URL",
        default=None,
        var_type=str,
        description="Base URL of the remote artifact store (unset = local files)",
        category="storage",
    )
    VISION_ARTIFACT_TOKEN = EnvConfig(
        name="VISION_ARTIFACT_TOKEN",
        default=None,
        var_type=str,
        description="Bearer token for the remote artifact store",
        category="storage",
    )

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------
    VISION_AUTOSAVE_INTERVAL = EnvConfig(
        name="VISION_AUTOSAVE_INTERVAL",
        default=30.0,
        var_type=float,
        description="Seconds between draft autosave ticks",
        category="session",
    )
    VISION_PROMPT_COMMIT_DELAY = EnvConfig(
        name="VISION_PROMPT_COMMIT_DELAY",
        default=1.0,
        var_type=float,
        description="Typing pause (seconds) before a prompt edit becomes undoable",
        category="session",
    )
    VISION_MAX_UPLOAD_MB = EnvConfig(
        name="VISION_MAX_UPLOAD_MB",
        default=10,
        var_type=int,
        description="Maximum size of a selected input image in MB",
        category="session",
    )

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------
    GEMINI_API_KEY = EnvConfig(
        name="GEMINI_API_KEY",
        default=None,
        var_type=str,
        description="Google Gemini API key for image generation",
        category="generation",
    )
    VISION_GENERATION_MODEL = EnvConfig(
        name="VISION_GENERATION_MODEL",
        default="gemini-2.5-flash-image",
        var_type=str,
        description="Image generation model name",
        category="generation",
    )
    VISION_GENERATION_TIMEOUT = EnvConfig(
        name="VISION_GENERATION_TIMEOUT",
        default=120.0,
        var_type=float,
        description="Generation request timeout in seconds",
        category="generation",
    )


# =============================================================================
# Type Conversion Helpers
# =============================================================================


def _convert_value(value: str | None, var_type: type, default: Any) -> Any:
    """Convert string value to target type.

    Args:
        value: Raw string value from environment (or None).
        var_type: Target Python type.
        default: Default value if conversion fails or value is None.

    Returns:
        Converted value or default.
    """
    if value is None:
        return default

    if var_type is str:
        return value

    if var_type in (int, float):
        try:
            return var_type(value)
        except ValueError:
            return default

    if var_type is Path:
        return Path(value)

    return value


# =============================================================================
# Main Interface
# =============================================================================


@overload
def get_environment(env_var: EnvVar, override: int) -> int: ...
@overload
def get_environment(env_var: EnvVar, override: float) -> float: ...
@overload
def get_environment(env_var: EnvVar, override: str) -> str: ...
@overload
def get_environment(env_var: EnvVar, override: Path) -> Path: ...
@overload
def get_environment(env_var: EnvVar, override: None = None) -> Any: ...


def get_environment(env_var: EnvVar, override: Any = None) -> Any:
    """Get environment variable value with type conversion.

    Resolution priority:
        1. Explicit override parameter (highest)
        2. Environment variable value
        3. Default from EnvConfig (lowest)

    Args:
        env_var: Environment variable enum member.
        override: Optional override value (bypasses env lookup).

    Returns:
        Value converted to the appropriate type.
    """
    config: EnvConfig = env_var.value

    if override is not None:
        return override

    raw_value = os.environ.get(config.name)
    return _convert_value(raw_value, config.var_type, config.default)


def get_environment_info(env_var: EnvVar) -> EnvConfig:
    """Get metadata for an environment variable."""
    return env_var.value


# =============================================================================
# Convenience Functions
# =============================================================================


def get_data_dir(override: Path | str | None = None) -> Path:
    """Get the application data directory.

    Resolution: override > VISION_DATA_DIR > ./data
    """
    if override is not None:
        return Path(override)
    return get_environment(EnvVar.VISION_DATA_DIR)


def get_metadata_db_path(data_dir: Path | str | None = None) -> Path:
    """Get the SQLite database path holding saved designs."""
    return get_data_dir(data_dir) / "designs.db"


def get_draft_db_path(data_dir: Path | str | None = None) -> Path:
    """Get the SQLite database path holding the local draft snapshot."""
    return get_data_dir(data_dir) / "drafts.db"


def get_artifact_dir(data_dir: Path | str | None = None) -> Path:
    """Get the directory used by the local artifact store."""
    return get_data_dir(data_dir) / "artifacts"


def get_max_upload_bytes(override: int | None = None) -> int:
    """Get the maximum accepted input image size in bytes."""
    return get_environment(EnvVar.VISION_MAX_UPLOAD_MB, override=override) * 1024 * 1024


def list_environment_variables(category: str | None = None) -> list[EnvVar]:
    """List all environment variables, optionally filtered by category.

    Args:
        category: Filter by category (storage, session, generation).
                 None returns all variables.

    Returns:
        List of EnvVar enum members.
    """
    if category is None:
        return list(EnvVar)

    return [var for var in EnvVar if var.value.category == category]


__all__ = [
    # Core types
    "EnvConfig",
    "EnvVar",
    # Main interface
    "get_environment",
    "get_environment_info",
    # Convenience functions
    "get_data_dir",
    "get_metadata_db_path",
    "get_draft_db_path",
    "get_artifact_dir",
    "get_max_upload_bytes",
    # Introspection
    "list_environment_variables",
]
