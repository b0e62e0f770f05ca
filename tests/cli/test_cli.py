"""Tests for the landscape-vision CLI."""

import asyncio
import json

import httpx
import pytest

from landscape_vision import __main__ as cli
from landscape_vision.artifact import InlineArtifact
from landscape_vision.draft import DraftManager
from landscape_vision.generation import GeminiImageBackend
from landscape_vision.history import Iteration, Lineage, WorkingSession
from landscape_vision.history.storage import (
    InMemoryArtifactStore,
    create_artifact_store,
    create_metadata_store,
    create_snapshot_store,
)
from landscape_vision.sync import SyncService

OWNER = "user-1"


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def saved_design(data_dir) -> Lineage:
    """One design saved through the local stores."""
    step = Iteration.create("add a hedge", InlineArtifact(data=b"gen"))
    lineage = Lineage(
        id="design-1",
        original_image=InlineArtifact(data=b"root"),
        generated_image=step.image,
        prompt=step.prompt,
        iterations=[step],
    )
    store = create_metadata_store(data_dir)
    try:
        sync = SyncService(create_artifact_store(data_dir), store)
        assert asyncio.run(sync.save(lineage, OWNER))
    finally:
        store.close()
    return lineage


class TestEntryPoint:
    """Top-level dispatch."""

    def test_no_args_shows_help(self, capsys):
        assert cli.main([]) == 1
        assert "Usage:" in capsys.readouterr().out

    def test_help(self, capsys):
        assert cli.main(["--help"]) == 0

    def test_unknown_command(self):
        assert cli.main(["launch"]) == 1


class TestDesignsCommand:
    """designs list/show/delete."""

    def test_list_json(self, data_dir, saved_design, capsys):
        code = cli.main(["designs", "-d", str(data_dir), "list", "-u", OWNER, "--json"])
        assert code == 0
        [summary] = json.loads(capsys.readouterr().out)
        assert summary["id"] == "design-1"
        assert summary["iterations"] == 1

    def test_list_other_owner_empty(self, data_dir, saved_design, capsys):
        code = cli.main(["designs", "-d", str(data_dir), "list", "-u", "nobody", "--json"])
        assert code == 0
        assert json.loads(capsys.readouterr().out) == []

    def test_show(self, data_dir, saved_design, capsys):
        assert cli.main(["designs", "-d", str(data_dir), "show", "design-1"]) == 0
        record = json.loads(capsys.readouterr().out)
        assert record["ownerId"] == OWNER
        assert record["originalImage"].startswith("file://")

    def test_show_missing(self, data_dir):
        assert cli.main(["designs", "-d", str(data_dir), "show", "nope"]) == 1

    def test_delete(self, data_dir, saved_design, capsys):
        args = ["designs", "-d", str(data_dir), "delete", "design-1", "-u", OWNER]
        assert cli.main(args) == 0
        assert cli.main(["designs", "-d", str(data_dir), "show", "design-1"]) == 1
        assert list((data_dir / "artifacts").rglob("*.png")) == []

    def test_delete_missing(self, data_dir):
        args = ["designs", "-d", str(data_dir), "delete", "nope", "-u", OWNER]
        assert cli.main(args) == 1

    @pytest.mark.parametrize(
        "args",
        [["list", "-u", OWNER], ["delete", "design-1", "-u", OWNER]],
    )
    def test_artifact_store_closed(self, data_dir, saved_design, monkeypatch, args):
        """Commands release the artifact store they open."""
        artifacts = InMemoryArtifactStore()
        monkeypatch.setattr(cli, "create_artifact_store", lambda _: artifacts)
        assert cli.main(["designs", "-d", str(data_dir), *args]) == 0
        assert artifacts.closed


class TestDraftCommand:
    """draft show/clear."""

    def test_show_and_clear(self, data_dir, capsys):
        store = create_snapshot_store(data_dir)
        try:
            asyncio.run(DraftManager(store).save(WorkingSession(prompt="add ferns")))
        finally:
            store.close()

        assert cli.main(["draft", "-d", str(data_dir), "show"]) == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["prompt"] == "add ferns"
        assert summary["hasInput"] is False

        assert cli.main(["draft", "-d", str(data_dir), "clear"]) == 0
        assert cli.main(["draft", "-d", str(data_dir), "show"]) == 0
        assert capsys.readouterr().out == ""


class TestGenerateCommand:
    """One-off generation."""

    def test_writes_output(self, tmp_path, monkeypatch):
        photo = tmp_path / "yard.jpg"
        photo.write_bytes(b"jpeg")
        output = tmp_path / "out" / "result.png"

        payload = {
            "candidates": [
                {"content": {"parts": [{"inlineData": {"data": "UE5H"}}]}}
            ]
        }
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
        original_init = GeminiImageBackend.__init__

        def patched_init(self, *args, **kwargs):
            kwargs["client"] = httpx.AsyncClient(transport=transport)
            original_init(self, *args, **kwargs)

        monkeypatch.setattr(GeminiImageBackend, "__init__", patched_init)

        code = cli.main(
            ["generate", "-i", str(photo), "-p", "add a pond", "-o", str(output), "-k", "key"]
        )
        assert code == 0
        assert output.read_bytes() == b"PNG"

    def test_rejects_non_image(self, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("not a photo")
        code = cli.main(["generate", "-i", str(notes), "-p", "add a pond", "-k", "key"])
        assert code == 1

    def test_blank_prompt(self, tmp_path):
        code = cli.main(["generate", "-i", str(tmp_path / "x.jpg"), "-p", "  "])
        assert code == 1


class TestConfigCommand:
    """config listing."""

    def test_masks_secrets(self, monkeypatch, capsys):
        monkeypatch.setenv("GEMINI_API_KEY", "super-secret")
        assert cli.main(["config", "-c", "generation"]) == 0
        out = capsys.readouterr().out
        assert "GEMINI_API_KEY=********" in out
        assert "super-secret" not in out
        assert "VISION_GENERATION_MODEL=" in out
