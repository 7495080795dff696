"""Per-mod user options: enabled flag, selected version and version lock."""

import json
import logging
import os
from pathlib import Path

from .errors import ConfigError, FilesystemError
from .models import Mod, ModOptions

OPTIONS_FILENAME = "enabled_mods.json"

logger = logging.getLogger(__name__)


class LocalOptionsStore:
    """
    Manages the options document for every mod the user has enabled.

    ``enable`` is the only way a row is created. Every mutation rewrites the
    whole document before returning.
    """

    def __init__(self, options_file: Path):
        self.options_file = Path(options_file)
        self._mods: list[ModOptions] = []
        self._load_or_create()

    def _load_or_create(self) -> None:
        try:
            self.load()
        except FileNotFoundError:
            self._mods = []
            try:
                self.save()
            except FilesystemError as e:
                logger.warning("%s", e)
        except ConfigError as e:
            logger.warning("%s; starting with empty mod options", e)
            self._mods = []

    def load(self) -> None:
        """Load options from file."""
        try:
            with open(self.options_file) as f:
                data = json.load(f)
            self._mods = _dedupe([ModOptions.from_dict(row) for row in data.get("mods", [])])
        except FileNotFoundError:
            raise
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            raise ConfigError(f"Invalid options file {self.options_file}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Could not read options file {self.options_file}: {e}") from e

    def save(self) -> None:
        """Save the full document, replacing the previous file in one step."""
        data = {"mods": [row.to_dict() for row in self._mods]}
        tmp_path = self.options_file.with_name(f".{self.options_file.name}.tmp")
        try:
            self.options_file.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.options_file)
        except OSError as e:
            raise FilesystemError(f"Could not write options file {self.options_file}: {e}") from e

    # -- reads --

    def get(self, mod_id: str) -> ModOptions | None:
        for row in self._mods:
            if row.id == mod_id:
                return row
        return None

    def all(self) -> list[ModOptions]:
        return list(self._mods)

    def is_enabled(self, mod_id: str) -> bool:
        row = self.get(mod_id)
        return row is not None and row.enabled

    def get_version_lock(self, mod_id: str) -> bool | None:
        row = self.get(mod_id)
        return row.version_lock if row is not None else None

    def enabled_ids(self) -> list[str]:
        return [row.id for row in self._mods if row.enabled]

    # -- writes --

    def enable(self, mod: Mod, version: str | None = None) -> None:
        """
        Enable a mod, creating its row on first use.

        A new row selects ``version`` or, when omitted, the mod's latest
        version. An existing row only has its enabled flag set.
        """
        row = self.get(mod.uuid)
        if row is not None:
            row.enabled = True
        else:
            if version is None:
                latest = mod.latest_version
                if latest is None:
                    raise ConfigError(f"Mod {mod.full_name} has no versions to select")
                version = latest.version_number
            self._mods.append(ModOptions(id=mod.uuid, version=version, version_lock=False, enabled=True))
            logger.debug("Created options for %s at %s", mod.full_name, version)
        self.save()

    def disable(self, mod: Mod) -> None:
        """Clear the enabled flag, keeping version and lock for re-enabling."""
        row = self.get(mod.uuid)
        if row is not None:
            row.enabled = False
        self.save()

    def set_enabled(self, mod: Mod, enabled: bool) -> None:
        if enabled:
            self.enable(mod)
        else:
            self.disable(mod)

    def set_version(self, mod_id: str, version: str) -> None:
        """Select a version. Unknown ids are ignored and no row is created."""
        row = self.get(mod_id)
        if row is None:
            return
        row.version = version
        self.save()

    def set_version_lock(self, mod_id: str, locked: bool) -> None:
        """Set the version lock. Unknown ids are ignored and no row is created."""
        row = self.get(mod_id)
        if row is None:
            return
        row.version_lock = locked
        self.save()


def _dedupe(rows: list[ModOptions]) -> list[ModOptions]:
    """Keep the first row per id."""
    seen: set[ModOptions] = set()
    unique = []
    for row in rows:
        if row in seen:
            logger.warning("Dropping duplicate options row for %s", row.id)
            continue
        seen.add(row)
        unique.append(row)
    return unique
