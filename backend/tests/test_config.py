"""Tests for Config and logging setup."""

import json
import logging

from area.config import Config, get_config, reset_config
from area.logging_config import AreaFormatter, configure_logging


def test_defaults(tmp_config):
    assert tmp_config.workflow_url == "http://localhost:8080"
    assert tmp_config.worker_interval("reddit") == 120
    assert tmp_config.worker_interval("slack") == 60
    assert tmp_config.worker_interval("unknown", 30) == 30
    assert tmp_config.http_timeout == 15
    assert tmp_config.workers_enabled is True
    assert tmp_config.reddit_user_agent == "Area-App/1.0.0"
    assert tmp_config.log_dir.is_dir()
    assert tmp_config.data_dir.is_dir()


def test_settings_file_merges_over_defaults(tmp_path):
    (tmp_path / "settings.json").write_text(json.dumps({
        "workers": {"reddit": {"interval": 300}},
        "workflow": {"url": "https://area.example.com/"},
    }))
    config = Config(base_dir=tmp_path)
    assert config.worker_interval("reddit") == 300
    assert config.worker_interval("spotify") == 120
    assert config.workflow_url == "https://area.example.com"


def test_env_overrides(tmp_config, monkeypatch):
    monkeypatch.setenv("WORKFLOW_URL", "https://hooks.example.com/")
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "env-token")
    assert tmp_config.workflow_url == "https://hooks.example.com"
    assert tmp_config.discord_bot_token == "env-token"


def test_set_and_save(tmp_config, tmp_path):
    tmp_config.set("integrations.discord.bot_token", "file-token")
    reloaded = Config(base_dir=tmp_path)
    assert reloaded.get("integrations.discord.bot_token") == "file-token"
    assert reloaded.get("no.such.key", "fallback") == "fallback"


def test_singleton(tmp_path, monkeypatch):
    monkeypatch.setenv("AREA_DIR", str(tmp_path))
    reset_config()
    try:
        assert get_config() is get_config()
        assert get_config().base_dir == tmp_path
    finally:
        reset_config()


def test_configure_logging_rotates_files(tmp_config):
    tmp_config.set("logging.keep", 2)
    for name in ("2024-01-01_000000.log", "2024-01-02_000000.log", "2024-01-03_000000.log"):
        (tmp_config.log_dir / name).write_text("")

    log_file = configure_logging(tmp_config)
    logging.getLogger("area.test").info("Hello  key=value")
    for h in logging.getLogger("area").handlers:
        h.flush()

    files = sorted(p.name for p in tmp_config.log_dir.glob("*.log"))
    assert len(files) == 2
    assert log_file.name in files
    assert "[test" in log_file.read_text()


def test_formatter_does_not_mutate_record():
    record = logging.LogRecord("area.worker.reddit", logging.INFO, __file__, 1, "msg", None, None)
    AreaFormatter(fmt=AreaFormatter.FMT).format(record)
    assert record.name == "area.worker.reddit"
