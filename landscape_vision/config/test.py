"""Tests for configuration management."""

from pathlib import Path

import pytest

from .lib import (
    EnvConfig,
    EnvVar,
    get_artifact_dir,
    get_data_dir,
    get_draft_db_path,
    get_environment,
    get_environment_info,
    get_max_upload_bytes,
    get_metadata_db_path,
    list_environment_variables,
)

# =============================================================================
# Tests for get_environment (main interface)
# =============================================================================


class TestGetEnvironment:
    """Tests for the unified get_environment interface."""

    @pytest.mark.unit
    def test_returns_default_when_not_set(self, monkeypatch):
        """Returns default value when env var is not set."""
        monkeypatch.delenv("VISION_AUTOSAVE_INTERVAL", raising=False)
        assert get_environment(EnvVar.VISION_AUTOSAVE_INTERVAL) == 30.0

    @pytest.mark.unit
    def test_override_takes_priority(self, monkeypatch):
        """Override parameter takes highest priority."""
        monkeypatch.setenv("VISION_AUTOSAVE_INTERVAL", "99")
        assert get_environment(EnvVar.VISION_AUTOSAVE_INTERVAL, override=5.0) == 5.0

    @pytest.mark.unit
    def test_float_type_conversion(self, monkeypatch):
        """Float type conversion from string."""
        monkeypatch.setenv("VISION_PROMPT_COMMIT_DELAY", "0.25")
        result = get_environment(EnvVar.VISION_PROMPT_COMMIT_DELAY)
        assert result == 0.25
        assert isinstance(result, float)

    @pytest.mark.unit
    def test_int_type_conversion(self, monkeypatch):
        """Integer type conversion from string."""
        monkeypatch.setenv("VISION_MAX_UPLOAD_MB", "4")
        result = get_environment(EnvVar.VISION_MAX_UPLOAD_MB)
        assert result == 4
        assert isinstance(result, int)

    @pytest.mark.unit
    def test_invalid_number_falls_back_to_default(self, monkeypatch):
        """Unparseable numbers return the default."""
        monkeypatch.setenv("VISION_MAX_UPLOAD_MB", "lots")
        assert get_environment(EnvVar.VISION_MAX_UPLOAD_MB) == 10

    @pytest.mark.unit
    def test_path_type_conversion(self, monkeypatch, tmp_path):
        """Path variables are returned as Path objects."""
        monkeypatch.setenv("VISION_DATA_DIR", str(tmp_path))
        assert get_environment(EnvVar.VISION_DATA_DIR) == tmp_path

    @pytest.mark.unit
    def test_string_type(self, monkeypatch):
        """String type returns as-is."""
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        assert get_environment(EnvVar.GEMINI_API_KEY) == "test-key"


# =============================================================================
# Tests for convenience accessors
# =============================================================================


class TestPaths:
    """Tests for derived storage paths."""

    @pytest.mark.unit
    def test_paths_live_under_data_dir(self, tmp_path):
        """Database and artifact paths derive from the data directory."""
        assert get_metadata_db_path(tmp_path) == tmp_path / "designs.db"
        assert get_draft_db_path(tmp_path) == tmp_path / "drafts.db"
        assert get_artifact_dir(tmp_path) == tmp_path / "artifacts"

    @pytest.mark.unit
    def test_data_dir_default(self, monkeypatch):
        """Default data directory is ./data."""
        monkeypatch.delenv("VISION_DATA_DIR", raising=False)
        assert get_data_dir() == Path("data")

    @pytest.mark.unit
    def test_max_upload_bytes(self, monkeypatch):
        """Upload limit is expressed in MB and returned in bytes."""
        monkeypatch.delenv("VISION_MAX_UPLOAD_MB", raising=False)
        assert get_max_upload_bytes() == 10 * 1024 * 1024
        assert get_max_upload_bytes(override=1) == 1024 * 1024


# =============================================================================
# Tests for introspection
# =============================================================================


class TestIntrospection:
    """Tests for variable metadata and listing."""

    @pytest.mark.unit
    def test_environment_info(self):
        """EnvConfig metadata is exposed."""
        info = get_environment_info(EnvVar.GEMINI_API_KEY)
        assert isinstance(info, EnvConfig)
        assert info.name == "GEMINI_API_KEY"
        assert info.category == "generation"

    @pytest.mark.unit
    def test_list_by_category(self):
        """Filtering returns only variables in the category."""
        storage_vars = list_environment_variables("storage")
        assert EnvVar.VISION_DATA_DIR in storage_vars
        assert all(v.value.category == "storage" for v in storage_vars)

    @pytest.mark.unit
    def test_list_all(self):
        """No category returns every variable."""
        assert len(list_environment_variables()) == len(EnvVar)

    @pytest.mark.unit
    @pytest.mark.parametrize("env_var", list(EnvVar))
    def test_declared_types_are_convertible(self, env_var):
        """Every variable declares a type the converter handles."""
        assert env_var.value.var_type in (str, int, float, Path)
        assert isinstance(env_var.value.default, (env_var.value.var_type, type(None)))
