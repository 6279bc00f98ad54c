"""Tests for the ctxdecay command line."""

import json
import logging

import pytest
from typer.testing import CliRunner

from ctxdecay.config import loader
from ctxdecay.decay.summary_store import SummaryEntry, load_summary_store, save_summary_store
from ctxdecay.main import app
from ctxdecay.session.store import SessionStore

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    global_dir = tmp_path / "global"
    global_dir.mkdir()
    monkeypatch.setattr(loader, "user_config_dir", lambda app: str(global_dir))

    log = logging.getLogger("ctxdecay")
    handlers, level = list(log.handlers), log.level
    yield
    log.handlers[:] = handlers
    log.setLevel(level)


@pytest.fixture
def session_file(tmp_path):
    path = tmp_path / "session.jsonl"
    lines = [
        {"role": "user", "content": "read the config"},
        {
            "role": "assistant",
            "content": [
                {"type": "thinking", "thinking": "need to read it"},
                {"type": "tool_use", "id": "call_1", "name": "read_file", "input": {"path": "a.toml"}},
            ],
        },
        {
            "role": "toolResult",
            "toolCallId": "call_1",
            "toolName": "read_file",
            "content": [{"type": "text", "text": "[tool]\nname = 'a'"}],
            "isError": False,
        },
        {"role": "user", "content": "thanks"},
        {"role": "assistant", "content": [{"type": "text", "text": "done"}]},
    ]
    path.write_text("\n".join(json.dumps(x) for x in lines) + "\n", encoding="utf-8")
    return path


def test_ages(session_file, tmp_path):
    result = runner.invoke(app, ["ages", "--session", str(session_file), "--cwd", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "Turn ages" in result.output


def test_decay_writes_output(session_file, tmp_path):
    out = tmp_path / "out" / "decayed.jsonl"

    result = runner.invoke(
        app,
        [
            "decay",
            "-s",
            str(session_file),
            "--cwd",
            str(tmp_path),
            "--strip-thinking",
            "1",
            "--strip-after",
            "1",
            "-o",
            str(out),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "thinking_stripped: 1" in result.output
    assert "tool_results_stripped: 1" in result.output

    decayed = SessionStore.from_path(out).messages
    assert len(decayed) == 5
    assert [b.type for b in decayed[1].content] == ["tool_use"]
    assert decayed[2].text().startswith("[Tool result removed")
    # Source transcript is left alone.
    assert SessionStore.from_path(session_file).messages[2].text() == "[tool]\nname = 'a'"


def test_decay_uses_project_config_and_summaries(session_file, tmp_path):
    (tmp_path / ".ctxdecay.json").write_text(
        json.dumps({"context_decay": {"summarizeToolResultsAfterTurns": 1}}), encoding="utf-8"
    )
    save_summary_store(session_file, {2: SummaryEntry.create("config for tool a", "[tool] name = 'a'", "haiku")})

    result = runner.invoke(app, ["decay", "-s", str(session_file), "--cwd", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "summarized: 1" in result.output


def test_decay_without_thresholds_reports_no_change(session_file, tmp_path):
    result = runner.invoke(app, ["decay", "-s", str(session_file), "--cwd", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "(no change)" in result.output


def test_candidates(session_file, tmp_path):
    (tmp_path / "ctxdecay.yaml").write_text("context_decay:\n  summarizeToolResultsAfterTurns: 1\n", encoding="utf-8")

    result = runner.invoke(app, ["candidates", "-s", str(session_file), "--cwd", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "call_1" in result.output


def test_candidates_honours_threshold_overrides(session_file, tmp_path):
    base = ["candidates", "-s", str(session_file), "--cwd", str(tmp_path), "--summarize-after", "1"]

    listed = runner.invoke(app, base)
    assert listed.exit_code == 0, listed.output
    assert "call_1" in listed.output

    past_strip = runner.invoke(app, [*base, "--strip-after", "1"])
    assert past_strip.exit_code == 0, past_strip.output
    assert "No tool results need a summary." in past_strip.output


def test_candidates_when_disabled(session_file, tmp_path):
    result = runner.invoke(app, ["candidates", "-s", str(session_file), "--cwd", str(tmp_path)])

    assert result.exit_code == 0
    assert "disabled" in result.output


def test_summaries_and_clear(session_file, tmp_path):
    save_summary_store(session_file, {2: SummaryEntry.create("short", "long original text", "haiku")})

    shown = runner.invoke(app, ["summaries", "-s", str(session_file), "--cwd", str(tmp_path)])
    assert shown.exit_code == 0, shown.output
    assert "entries: 1" in shown.output

    cleared = runner.invoke(app, ["clear-summaries", "-s", str(session_file), "--cwd", str(tmp_path)])
    assert cleared.exit_code == 0, cleared.output
    assert load_summary_store(session_file) == {}


def test_missing_session_is_rejected(tmp_path):
    result = runner.invoke(app, ["ages", "-s", str(tmp_path / "missing.jsonl"), "--cwd", str(tmp_path)])

    assert result.exit_code != 0
