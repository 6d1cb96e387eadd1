"""Tests for the mailtag CLI commands."""

import asyncio
import json
import sqlite3
import sys
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from structlog.testing import capture_logs

from mailtag.cli import cli
from mailtag.core.errors import TagStoreError
from mailtag.tags import BUILTIN_TAGS, SqliteTagStore


@pytest.fixture(autouse=True)
def logging_calls(monkeypatch: pytest.MonkeyPatch) -> Generator[list[dict[str, Any]], None, None]:
    """Record configure_logging calls instead of reconfiguring structlog.

    Log entries are captured so they don't end up in the command output.
    """
    calls: list[dict[str, Any]] = []

    def _record(**kwargs: Any) -> None:
        calls.append({**kwargs, "stream_is_stderr": kwargs.get("stream") is sys.stderr})

    monkeypatch.setattr("mailtag.cli.configure_logging", _record)
    with capture_logs():
        yield calls


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def message_file(tmp_path: Path) -> Path:
    """Write a message with headers, an HTML body and an attachment."""
    path = tmp_path / "message.json"
    path.write_text(
        json.dumps(
            {
                "headers": {"subject": "Invoice 42", "from": "billing@example.com"},
                "parts": [
                    {
                        "contentType": "multipart/mixed",
                        "parts": [
                            {"contentType": "text/html", "body": "<p>Please pay by Friday</p>"},
                            {
                                "contentType": "application/pdf",
                                "isAttachment": True,
                                "name": "invoice-42.pdf",
                                "size": 1024,
                            },
                        ],
                    }
                ],
            }
        )
    )
    return path


def _stored_count(db_path: Path) -> int:
    return len(asyncio.run(SqliteTagStore(db_path).get_all_tags()))


def _insert_raw_tag(db_path: Path, key: str, tag: str, color: str) -> None:
    """Write a record directly, bypassing create_tag's checks."""
    asyncio.run(SqliteTagStore(db_path).initialize())
    conn = sqlite3.connect(db_path)
    try:
        conn.execute(
            "INSERT INTO tags (key, tag, color, ordinal) VALUES (?, ?, ?, ?)",
            (key, tag, color, "1"),
        )
        conn.commit()
    finally:
        conn.close()


def _table_row(output: str, key: str) -> str:
    """Return the table line for one tag key."""
    rows = [line for line in output.splitlines() if f" {key} " in line]
    assert len(rows) == 1, output
    return rows[0]


class TestValidateConfigCommand:
    """Tests for 'validate-config'."""

    def test_valid(self, runner: CliRunner, config_file: Path) -> None:
        """A valid file exits 0."""
        result = runner.invoke(cli, ["validate-config", "-c", str(config_file)])
        assert result.exit_code == 0
        assert "Configuration valid" in result.output

    def test_invalid(self, runner: CliRunner, temp_config_dir: Path) -> None:
        """An invalid file exits 1 with the field error."""
        path = temp_config_dir / "config.yaml"
        path.write_text('tags:\n  custom_tags:\n    - {key: "a", name: "A", color: "blue"}\n')

        result = runner.invoke(cli, ["validate-config", "-c", str(path)])

        assert result.exit_code == 1
        assert "Validation error" in result.output


class TestEnsureTagsCommand:
    """Tests for 'ensure-tags'."""

    def test_creates_configured_tags(
        self, runner: CliRunner, config_file: Path, data_dir: Path
    ) -> None:
        """Built-ins and the file's two custom tags are created."""
        result = runner.invoke(cli, ["ensure-tags", "-c", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "reconciled" in result.output
        assert _stored_count(data_dir / "tags.db") == len(BUILTIN_TAGS) + 2

    def test_second_run_is_noop(
        self, runner: CliRunner, config_file: Path, data_dir: Path
    ) -> None:
        """Running twice doesn't duplicate tags."""
        runner.invoke(cli, ["ensure-tags", "-c", str(config_file)])
        result = runner.invoke(cli, ["ensure-tags", "-c", str(config_file)])

        assert result.exit_code == 0
        assert _stored_count(data_dir / "tags.db") == len(BUILTIN_TAGS) + 2

    def test_invalid_config_exits(self, runner: CliRunner, temp_config_dir: Path) -> None:
        """An invalid config stops the command."""
        path = temp_config_dir / "config.yaml"
        path.write_text("schema_version: 0\n")

        result = runner.invoke(cli, ["ensure-tags", "-c", str(path)])

        assert result.exit_code == 1
        assert "Config error" in result.output

    def test_creation_failure_reported(
        self,
        runner: CliRunner,
        config_file: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Tags the store refused to create are listed and the command fails."""

        async def _refuse(self: SqliteTagStore, display_name: str, color: str) -> None:
            raise TagStoreError("disk full", display_name=display_name)

        monkeypatch.setattr(SqliteTagStore, "create_tag", _refuse)

        result = runner.invoke(cli, ["ensure-tags", "-c", str(config_file)])

        assert result.exit_code == 1
        assert "still missing" in result.output
        assert "is_bill" in result.output
        assert "✓" not in result.output

    def test_invalid_stored_tag_reported(
        self, runner: CliRunner, config_file: Path, data_dir: Path
    ) -> None:
        """A malformed store record means nothing is created and the command fails."""
        db_path = data_dir / "tags.db"
        _insert_raw_tag(db_path, key="a:odd", tag="A:Odd", color="blue")

        result = runner.invoke(cli, ["ensure-tags", "-c", str(config_file)])

        assert result.exit_code == 1
        assert "Tag store error" in result.output
        assert _stored_count(db_path) == 1


class TestTagsCommand:
    """Tests for 'tags'."""

    def test_lists_missing_then_present(self, runner: CliRunner, config_file: Path) -> None:
        """Tags show as missing until reconciled."""
        before = runner.invoke(cli, ["tags", "-c", str(config_file)])
        assert before.exit_code == 0, before.output
        assert "missing" in _table_row(before.stdout, "is_bill")

        runner.invoke(cli, ["ensure-tags", "-c", str(config_file)])
        after = runner.invoke(cli, ["tags", "-c", str(config_file)])

        assert after.exit_code == 0, after.output
        row = _table_row(after.stdout, "is_bill")
        assert "a:bill" in row
        assert "missing" not in row

    def test_store_error_reported(
        self, runner: CliRunner, temp_config_dir: Path, data_dir: Path
    ) -> None:
        """A store that can't be opened exits 1 with a message."""
        path = temp_config_dir / "config.yaml"
        path.write_text(f'tags:\n  store_path: "{data_dir}"\n')

        result = runner.invoke(cli, ["tags", "-c", str(path)])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Tag store error" in result.output

    def test_invalid_stored_tag_reported(
        self, runner: CliRunner, config_file: Path, data_dir: Path
    ) -> None:
        """A malformed store record exits 1 instead of listing."""
        _insert_raw_tag(data_dir / "tags.db", key="a:odd", tag="A:Odd", color="blue")

        result = runner.invoke(cli, ["tags", "-c", str(config_file)])

        assert result.exit_code == 1
        assert "Tag store error" in result.output


class TestPromptCommand:
    """Tests for 'prompt'."""

    def test_prints_prompt(
        self, runner: CliRunner, config_file: Path, message_file: Path
    ) -> None:
        """The prompt embeds headers, body, attachments and tag checks."""
        result = runner.invoke(
            cli, ["prompt", str(message_file), "-c", str(config_file), "--max-chars", "100000"]
        )

        assert result.exit_code == 0, result.output
        assert '"subject": "Invoice 42"' in result.output
        assert "Please pay by Friday" in result.output
        assert '"name": "invoice-42.pdf"' in result.output
        assert "- is_newsletter: (boolean) check if email is a newsletter." in result.output

    def test_max_chars_truncates(
        self, runner: CliRunner, config_file: Path, message_file: Path
    ) -> None:
        """A small limit cuts the prompt before the body."""
        result = runner.invoke(
            cli, ["prompt", str(message_file), "-c", str(config_file), "--max-chars", "50"]
        )

        assert result.exit_code == 0
        assert "Please pay by Friday" not in result.output

    def test_list_of_parts(self, runner: CliRunner, config_file: Path, tmp_path: Path) -> None:
        """A bare list of parts is accepted."""
        path = tmp_path / "parts.json"
        path.write_text(json.dumps([{"contentType": "text/plain", "body": "plain hello"}]))

        result = runner.invoke(cli, ["prompt", str(path), "-c", str(config_file)])

        assert result.exit_code == 0
        assert "plain hello" in result.output

    def test_bad_message_file(self, runner: CliRunner, config_file: Path, tmp_path: Path) -> None:
        """A JSON scalar is rejected as a bad parameter."""
        path = tmp_path / "bad.json"
        path.write_text("42")

        result = runner.invoke(cli, ["prompt", str(path), "-c", str(config_file)])

        assert result.exit_code == 2

    def test_defaults_without_config_file(
        self,
        runner: CliRunner,
        message_file: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """With no config file present, built-in defaults are used."""
        monkeypatch.delenv("MAILTAG_CONFIG_PATH", raising=False)

        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["prompt", str(message_file)])

        assert result.exit_code == 0, result.output
        assert "built-in defaults" in result.stderr
        assert "built-in defaults" not in result.stdout
        assert "- is_advertise: (boolean)" in result.stdout


class TestLoggingSetup:
    """Tests for how commands configure logging."""

    def _write_config(self, temp_config_dir: Path, level: str, json_output: bool) -> Path:
        path = temp_config_dir / "config.yaml"
        path.write_text(
            f"logging:\n  level: {level}\n  json_output: {'true' if json_output else 'false'}\n"
        )
        return path

    def test_provisional_setup_logs_to_stderr(
        self,
        runner: CliRunner,
        config_file: Path,
        message_file: Path,
        logging_calls: list[dict[str, Any]],
    ) -> None:
        """The group configures stderr logging before any command runs."""
        runner.invoke(cli, ["prompt", str(message_file), "-c", str(config_file)])

        first = logging_calls[0]
        assert first["log_level"] == "INFO"
        assert first["stream_is_stderr"]
        assert first["cache_loggers"] is False

    def test_config_logging_section_applied(
        self,
        runner: CliRunner,
        temp_config_dir: Path,
        message_file: Path,
        logging_calls: list[dict[str, Any]],
    ) -> None:
        """The loaded config's level and format are used."""
        path = self._write_config(temp_config_dir, "WARNING", json_output=True)

        result = runner.invoke(cli, ["prompt", str(message_file), "-c", str(path)])

        assert result.exit_code == 0, result.output
        last = logging_calls[-1]
        assert (last["log_level"], last["json_output"]) == ("WARNING", True)
        assert last["stream_is_stderr"]

    def test_debug_flag_overrides_config_level(
        self,
        runner: CliRunner,
        temp_config_dir: Path,
        message_file: Path,
        logging_calls: list[dict[str, Any]],
    ) -> None:
        """--debug wins over the configured level but keeps the format."""
        path = self._write_config(temp_config_dir, "ERROR", json_output=True)

        result = runner.invoke(cli, ["--debug", "prompt", str(message_file), "-c", str(path)])

        assert result.exit_code == 0, result.output
        last = logging_calls[-1]
        assert (last["log_level"], last["json_output"]) == ("DEBUG", True)

    def test_defaults_applied_without_config_file(
        self,
        runner: CliRunner,
        message_file: Path,
        monkeypatch: pytest.MonkeyPatch,
        logging_calls: list[dict[str, Any]],
    ) -> None:
        """Without a config file the default logging section is used."""
        monkeypatch.delenv("MAILTAG_CONFIG_PATH", raising=False)

        with runner.isolated_filesystem():
            runner.invoke(cli, ["ensure-tags"])

        last = logging_calls[-1]
        assert (last["log_level"], last["json_output"]) == ("INFO", True)

    def test_prompt_output_is_only_the_prompt(
        self,
        runner: CliRunner,
        config_file: Path,
        message_file: Path,
    ) -> None:
        """Nothing but the prompt is written to stdout."""
        result = runner.invoke(
            cli, ["prompt", str(message_file), "-c", str(config_file), "--max-chars", "100000"]
        )

        assert result.exit_code == 0, result.output
        assert result.stdout.startswith("Hi, I like you to check")
        assert result.stdout.rstrip("\n").endswith(
            "- is_newsletter: (boolean) check if email is a newsletter."
        )
