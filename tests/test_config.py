"""Tests for configuration loading and environment overrides."""

import json
import logging
import os
from unittest.mock import patch

import pytest

from rumble_mod_manager.config import Config, load_config, parse_bool, parse_int

ENV_KEYS = (
    "RUMM_GAME_DIR",
    "RUMM_CACHE_DIR",
    "RUMM_OPTIONS_FILE",
    "RUMM_AUTO_UPDATE",
    "RUMM_HTTP_TIMEOUT",
    "RUMM_LOG_LEVEL",
)


@pytest.fixture
def clean_env():
    env = {k: v for k, v in os.environ.items() if k not in ENV_KEYS}
    with patch.dict(os.environ, env, clear=True):
        yield


class TestLoadConfig:

    def test_missing_file_gives_defaults(self, tmp_path, clean_env):
        config = load_config(tmp_path / "config.json")
        assert config == Config()
        assert config.game_path is None

    def test_file_values_are_used(self, tmp_path, clean_env):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "game_dir": "/games/RUMBLE",
            "auto_update": False,
            "http_timeout": 10,
            "something_else": 1,
        }))

        config = load_config(path)

        assert str(config.game_path) == os.path.join("/games", "RUMBLE")
        assert config.auto_update is False
        assert config.http_timeout == 10

    def test_malformed_file_gives_defaults(self, tmp_path, clean_env):
        path = tmp_path / "config.json"
        path.write_text("[1, 2")
        assert load_config(path) == Config()

    def test_non_object_file_gives_defaults(self, tmp_path, clean_env):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        assert load_config(path) == Config()

    def test_environment_overrides_file(self, tmp_path, clean_env):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"game_dir": "/from/file", "auto_update": True}))

        with patch.dict(os.environ, {
            "RUMM_GAME_DIR": "/from/env",
            "RUMM_AUTO_UPDATE": "no",
            "RUMM_HTTP_TIMEOUT": "15",
            "RUMM_LOG_LEVEL": "DEBUG",
        }):
            config = load_config(path)

        assert config.game_dir == "/from/env"
        assert config.auto_update is False
        assert config.http_timeout == 15
        assert config.log_level == "DEBUG"

    def test_save_round_trip(self, tmp_path, clean_env):
        path = tmp_path / "nested" / "config.json"
        Config(game_dir="/games/RUMBLE", auto_update=False).save(path)

        loaded = load_config(path)

        assert loaded.game_dir == "/games/RUMBLE"
        assert loaded.auto_update is False

    def test_wrongly_typed_values_fall_back(self, tmp_path, clean_env):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"mod_cache_dir": None, "auto_update": "false"}))

        config = load_config(path)

        assert config.mod_cache_dir == Config().mod_cache_dir
        assert config.auto_update is False

    def test_numeric_string_is_accepted(self, tmp_path, clean_env):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"http_timeout": "30"}))

        assert load_config(path).http_timeout == 30

    def test_unusable_values_are_logged(self, tmp_path, clean_env, caplog):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"auto_update": "maybe", "http_timeout": [1], "log_level": 5}))

        with caplog.at_level(logging.WARNING, logger="rumble_mod_manager.config"):
            config = load_config(path)

        assert config == Config()
        warned = " ".join(r.getMessage() for r in caplog.records)
        assert "auto_update" in warned
        assert "http_timeout" in warned
        assert "log_level" in warned

    def test_file_only_ignores_environment(self, tmp_path, clean_env):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"game_dir": "/from/file"}))

        with patch.dict(os.environ, {"RUMM_GAME_DIR": "/from/env", "RUMM_CACHE_DIR": "/env/cache"}):
            config = load_config(path, env=False)

        assert config.game_dir == "/from/file"
        assert config.mod_cache_dir == Config().mod_cache_dir


class TestParsers:

    @pytest.mark.parametrize("value", ["1", "true", "YES", " on "])
    def test_parse_bool_truthy(self, value):
        assert parse_bool(value) is True

    def test_parse_bool_default_and_falsy(self):
        assert parse_bool(None, default=True) is True
        assert parse_bool("off", default=True) is False

    def test_parse_int(self):
        assert parse_int("42", 1) == 42
        assert parse_int("", 1) == 1
        assert parse_int("abc", 1) == 1
        assert parse_int(None, 7) == 7
