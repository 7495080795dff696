"""Process configuration: cache location, game directory and behavior flags."""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from .api import PACKAGE_LIST_URL

DEFAULT_CONFIG_PATH = Path("config") / "config.json"
DEFAULT_CACHE_DIR = Path("config") / "mod_cache"
DEFAULT_OPTIONS_FILE = Path("config") / "enabled_mods.json"
DEFAULT_REGISTRY_FILE = Path("config") / "registry.json"
DEFAULT_TIMEOUT = 60
DEFAULT_LOG_LEVEL = "INFO"

TRUE_WORDS = {"1", "true", "yes", "y", "on"}
FALSE_WORDS = {"0", "false", "no", "n", "off"}

logger = logging.getLogger(__name__)


def parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in TRUE_WORDS


def parse_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass
class Config:
    # Game install root, e.g. .../steamapps/common/RUMBLE
    game_dir: str = ""
    mod_cache_dir: str = str(DEFAULT_CACHE_DIR)
    options_file: str = str(DEFAULT_OPTIONS_FILE)
    registry_file: str = str(DEFAULT_REGISTRY_FILE)
    registry_url: str = PACKAGE_LIST_URL
    auto_update: bool = True
    http_timeout: int = DEFAULT_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def game_path(self) -> Path | None:
        return Path(self.game_dir) if self.game_dir else None

    def save(self, path: Path = DEFAULT_CONFIG_PATH) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)


def _coerce(value: Any, default: Any) -> Any:
    """Check a file value against its field's default type; raise ValueError when it does not fit."""
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in TRUE_WORDS | FALSE_WORDS:
            return parse_bool(value)
    elif isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            return parse_int(value, default)
    elif isinstance(default, str):
        if isinstance(value, str):
            return value
    raise ValueError(f"expected {type(default).__name__}, got {type(value).__name__} {value!r}")


def _read_config_file(path: Path) -> dict:
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: expected a JSON object", path)
        return {}

    defaults = {f.name: f.default for f in fields(Config)}
    unknown = set(data) - set(defaults)
    if unknown:
        logger.debug("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))

    values = {}
    for name, default in defaults.items():
        if name not in data:
            continue
        try:
            values[name] = _coerce(data[name], default)
        except ValueError as e:
            logger.warning("Ignoring config %s in %s: %s", name, path, e)
    return values


def apply_env_overrides(config: Config) -> Config:
    """Apply ``RUMM_*`` environment variables on top of ``config``."""
    config.game_dir = os.environ.get("RUMM_GAME_DIR", config.game_dir)
    config.mod_cache_dir = os.environ.get("RUMM_CACHE_DIR", config.mod_cache_dir)
    config.options_file = os.environ.get("RUMM_OPTIONS_FILE", config.options_file)
    config.auto_update = parse_bool(os.environ.get("RUMM_AUTO_UPDATE"), config.auto_update)
    config.http_timeout = parse_int(os.environ.get("RUMM_HTTP_TIMEOUT"), config.http_timeout)
    config.log_level = os.environ.get("RUMM_LOG_LEVEL", config.log_level)
    return config


def load_config(path: Path = DEFAULT_CONFIG_PATH, env: bool = True) -> Config:
    """
    Load configuration from ``path``, then apply environment overrides.

    A missing file silently gives the defaults. A malformed file, or a value
    of the wrong type, is logged and falls back to the default. Pass
    ``env=False`` to get only what the file says, e.g. before saving it back.
    """
    config = Config(**_read_config_file(Path(path)))
    if env:
        apply_env_overrides(config)
    return config
