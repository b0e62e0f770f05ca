"""Centralized configuration management for landscape-vision.

Provides unified access to all configuration via the `get_environment()` function.

Example:
    >>> from landscape_vision.config import EnvVar, get_environment
    >>>
    >>> delay = get_environment(EnvVar.VISION_PROMPT_COMMIT_DELAY)  # 1.0
    >>> for var in list_environment_variables("storage"):
    ...     info = get_environment_info(var)
    ...     print(f"{info.name}: {info.description}")

Environment Variable Categories:
    storage: Data directory and durable artifact store
    session: Autosave/debounce timers and upload limits
    generation: Gemini API key, model and timeout
"""

from .lib import (
    # Core types
    EnvConfig,
    EnvVar,
    # Convenience functions
    get_artifact_dir,
    get_data_dir,
    get_draft_db_path,
    # Main interface
    get_environment,
    get_environment_info,
    get_max_upload_bytes,
    get_metadata_db_path,
    # Introspection
    list_environment_variables,
)

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
