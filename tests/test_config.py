"""Tests for settings loading and logging setup."""

from __future__ import annotations

import io
import json
import logging
import os
from pathlib import Path

import pytest
import structlog

from chainedin.config import DEFAULT_CONFIG, ENV_PREFIX, env_var, load_config
from chainedin.telemetry import configure_from, configure_logging


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path: Path) -> None:
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    level = root.level
    yield
    structlog.reset_defaults()
    for handler in list(root.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
    root.setLevel(level)


class TestLoadConfig:
    def test_defaults(self) -> None:
        assert load_config() == DEFAULT_CONFIG

    def test_returns_a_fresh_dict(self) -> None:
        config = load_config()
        config["log_level"] = "DEBUG"
        assert DEFAULT_CONFIG["log_level"] == "INFO"

    def test_env_var_names(self) -> None:
        assert env_var("endorsements_required") == "CHAINEDIN_ENDORSEMENTS_REQUIRED"

    def test_reads_explicit_env_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / "registry.env"
        env_file.write_text(
            "CHAINEDIN_ENDORSEMENTS_REQUIRED=3\n"
            "CHAINEDIN_ENFORCE_OWNER_ACTIONS=false\n"
        )
        config = load_config(env_file=env_file)
        assert config["endorsements_required"] == 3
        assert config["enforce_owner_actions"] is False

    def test_reads_dotenv_in_working_directory(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("CHAINEDIN_CERTIFICATION_VERIFIES=yes\n")
        assert load_config()["certification_verifies"] is True

    def test_environment_beats_file(self, monkeypatch, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("CHAINEDIN_ENDORSEMENTS_REQUIRED=3\n")
        monkeypatch.setenv("CHAINEDIN_ENDORSEMENTS_REQUIRED", "5")
        assert load_config()["endorsements_required"] == 5

    def test_overrides_beat_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("CHAINEDIN_LOG_LEVEL", "debug")
        config = load_config(overrides={"log_level": "ERROR"})
        assert config["log_level"] == "ERROR"

    def test_none_disables_threshold(self, monkeypatch) -> None:
        monkeypatch.setenv("CHAINEDIN_ENDORSEMENTS_REQUIRED", "None")
        assert load_config()["endorsements_required"] is None

    def test_values_are_normalised(self, monkeypatch) -> None:
        monkeypatch.setenv("CHAINEDIN_LOG_LEVEL", " warning ")
        monkeypatch.setenv("CHAINEDIN_LOG_FORMAT", "JSON")
        config = load_config()
        assert config["log_level"] == "WARNING"
        assert config["log_format"] == "json"

    @pytest.mark.parametrize(
        "key,value",
        [
            ("CHAINEDIN_ENDORSEMENTS_REQUIRED", "abc"),
            ("CHAINEDIN_ENDORSEMENTS_REQUIRED", "0"),
            ("CHAINEDIN_ENFORCE_OWNER_ACTIONS", "maybe"),
            ("CHAINEDIN_LOG_LEVEL", "LOUD"),
            ("CHAINEDIN_LOG_FORMAT", "xml"),
        ],
    )
    def test_malformed_values_fail_at_load(self, monkeypatch, key: str, value: str) -> None:
        monkeypatch.setenv(key, value)
        with pytest.raises(ValueError):
            load_config()

    def test_unknown_override_key(self) -> None:
        with pytest.raises(ValueError, match="Unknown config key"):
            load_config(overrides={"endorsement_required": 2})

    def test_unrelated_environment_ignored(self, monkeypatch) -> None:
        monkeypatch.setenv("CHAINEDIN_SOMETHING_ELSE", "x")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert load_config() == DEFAULT_CONFIG


class TestLogging:
    def test_json_output(self, restore_logging) -> None:
        stream = io.StringIO()
        configure_logging(level="INFO", fmt="json", stream=stream)
        structlog.get_logger("chainedin.test").info("account_created", account_id=7)
        line = stream.getvalue().strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "account_created"
        assert record["account_id"] == 7
        assert record["level"] == "info"

    def test_level_filters(self, restore_logging) -> None:
        stream = io.StringIO()
        configure_from({"log_level": "WARNING", "log_format": "console"}, stream=stream)
        log = structlog.get_logger("chainedin.test")
        log.info("quiet_event")
        log.warning("loud_event", reason="x")
        output = stream.getvalue()
        assert "quiet_event" not in output
        assert "loud_event" in output
