"""Tests for the command-line interface."""

import json
import tempfile
from pathlib import Path

from click.testing import CliRunner

from cpw.cli import cli
from cpw.models import ContentPlan, PlanSection, PlanStatus


def _write_plan(tmpdir: str) -> Path:
    plan = ContentPlan(
        title="Widgets",
        summary="All about widgets.",
        sections=(
            PlanSection("s1", "Intro", "Widgets are small.", "hero", 1),
            PlanSection("s2", "Steps", "- one\n- two", "list", 2, children=(
                PlanSection("s2a", "Detail", "More words", "text", 1),
            )),
        ),
    )
    path = Path(tmpdir) / "plan.json"
    path.write_text(json.dumps(plan.to_dict()))
    return path


def _config(tmpdir: str) -> str:
    path = Path(tmpdir) / "config.yaml"
    path.write_text("converters:\n  pandoc_path: /nonexistent/pandoc\n  pdftotext_path: /nonexistent/pdftotext\n")
    return str(path)


def test_approve_then_approve_again_fails(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    runner = CliRunner()
    with tempfile.TemporaryDirectory() as tmpdir:
        plan_path = _write_plan(tmpdir)
        result = runner.invoke(cli, ["--config", _config(tmpdir), "approve", str(plan_path)])
        assert result.exit_code == 0
        saved = json.loads(plan_path.read_text())
        assert saved["status"] == PlanStatus.APPROVED.value

        result = runner.invoke(cli, ["--config", _config(tmpdir), "approve", str(plan_path)])
        assert result.exit_code == 1


def test_show_prints_tree():
    runner = CliRunner()
    with tempfile.TemporaryDirectory() as tmpdir:
        plan_path = _write_plan(tmpdir)
        result = runner.invoke(cli, ["--config", _config(tmpdir), "show", str(plan_path)])
        assert result.exit_code == 0
        assert "Widgets" in result.output
        assert "Detail" in result.output


def test_map_writes_component_tree():
    runner = CliRunner()
    with tempfile.TemporaryDirectory() as tmpdir:
        plan_path = _write_plan(tmpdir)
        out = Path(tmpdir) / "tree.json"
        result = runner.invoke(cli, ["--config", _config(tmpdir), "map", str(plan_path), "--out", str(out)])
        assert result.exit_code == 0
        tree = json.loads(out.read_text())
        assert [node["component_id"] for node in tree] == ["canvas:hero", "canvas:list", "canvas:text"]
        assert tree[2]["parent_uuid"] == tree[1]["uuid"]
        assert tree[1]["inputs"]["items"] == {"static": ["one", "two"]}


def test_convert_markdown_file():
    runner = CliRunner()
    with tempfile.TemporaryDirectory() as tmpdir:
        doc = Path(tmpdir) / "notes.md"
        doc.write_text("---\ntitle: Notes\n---\n# Notes\n\nHello there.")
        result = runner.invoke(cli, ["--config", _config(tmpdir), "convert", str(doc)])
        assert result.exit_code == 0
        assert "Hello there." in result.output
        assert "title: Notes" not in result.output


def test_convert_rejects_unsupported_file():
    runner = CliRunner()
    with tempfile.TemporaryDirectory() as tmpdir:
        doc = Path(tmpdir) / "image.png"
        doc.write_bytes(b"\x89PNG")
        result = runner.invoke(cli, ["--config", _config(tmpdir), "convert", str(doc)])
        assert result.exit_code == 1
        assert "Unsupported file type" in result.output


def test_processors_lists_converters():
    runner = CliRunner()
    with tempfile.TemporaryDirectory() as tmpdir:
        result = runner.invoke(cli, ["--config", _config(tmpdir), "processors"])
        assert result.exit_code == 0
        assert "markdown" in result.output
        assert "plain_text" in result.output


def test_plan_without_provider_fails(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    runner = CliRunner()
    with tempfile.TemporaryDirectory() as tmpdir:
        doc = Path(tmpdir) / "notes.md"
        doc.write_text("# Notes\n\nHello there.")
        out = Path(tmpdir) / "plan.json"
        result = runner.invoke(cli, ["--config", _config(tmpdir), "plan", str(doc), "--out", str(out)])
        assert result.exit_code == 1
        assert "No AI provider configured" in result.output
        assert not out.exists()


def test_malformed_plan_file_is_reported():
    runner = CliRunner()
    with tempfile.TemporaryDirectory() as tmpdir:
        no_title = Path(tmpdir) / "no_title.json"
        no_title.write_text(json.dumps({"summary": "x", "sections": []}))
        bad_status = Path(tmpdir) / "bad_status.json"
        bad_status.write_text(json.dumps({"title": "T", "status": "archived"}))
        not_json = Path(tmpdir) / "broken.json"
        not_json.write_text("{not json")

        for path in (no_title, bad_status, not_json):
            for command in ("show", "approve", "map"):
                result = runner.invoke(cli, ["--config", _config(tmpdir), command, str(path)])
                assert result.exit_code == 1
                assert "Invalid plan file" in result.output
                assert result.exception is None or isinstance(result.exception, SystemExit)
