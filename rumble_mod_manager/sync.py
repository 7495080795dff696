"""Copy cached mod payloads into the game directory."""

import logging
import os
import shutil
import stat
from dataclasses import dataclass, field
from pathlib import Path

from .cache import MODS_SUBDIR, USER_DATA_SUBDIR, ModCacheStore
from .errors import StateInconsistency
from .models import Mod
from .options import LocalOptionsStore

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Result of pushing one or more mods into the game directory."""

    copied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def merge(self, other: "SyncResult") -> None:
        self.copied.extend(other.copied)
        self.skipped.extend(other.skipped)
        self.errors.extend(other.errors)


def _copy_tree(src_dir: Path, dest_dir: Path, overwrite: bool, result: SyncResult) -> None:
    """
    Copy every file under src_dir into dest_dir, keeping relative paths.

    With ``overwrite`` False an existing destination file is left alone, at
    every depth. A failed file is recorded and the rest are still copied.
    """
    if not src_dir.is_dir():
        return

    for src in sorted(src_dir.rglob("*")):
        if not src.is_file():
            continue
        dest = dest_dir / src.relative_to(src_dir)

        if not overwrite and (dest.exists() or dest.is_symlink()):
            result.skipped.append(str(dest))
            continue

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            if dest.is_symlink():
                dest.unlink()
            elif dest.exists() and not os.access(dest, os.W_OK):
                # Packaged files can carry read-only mode bits from the archive
                dest.chmod(dest.stat().st_mode | stat.S_IWUSR)
            shutil.copy2(src, dest)
            result.copied.append(str(dest))
        except OSError as e:
            logger.warning("Could not copy %s to %s: %s", src, dest, e)
            result.errors.append(f"{dest}: {e}")


class SyncEngine:
    """Pushes the selected cached version of mods into the game's Mods and UserData folders."""

    def __init__(self, store: ModCacheStore, options: LocalOptionsStore):
        self.store = store
        self.options = options

    def push(self, mod: Mod, target_mods_dir: Path, target_user_data_dir: Path) -> SyncResult:
        """
        Copy the selected version of ``mod`` into the game.

        Files from ``Mods/`` always replace same-named files in the target.
        Files from ``UserData/`` are only copied where the target has no file
        yet, so existing saves and settings survive a resync.
        """
        row = self.options.get(mod.uuid)
        if row is None:
            raise StateInconsistency(f"No options recorded for {mod.full_name}")
        version_dir = self.store.version_dir(mod.uuid, row.version)
        if not version_dir.is_dir():
            raise StateInconsistency(
                f"Selected version {row.version} of {mod.full_name} is not in the cache"
            )

        result = SyncResult()
        _copy_tree(version_dir / MODS_SUBDIR, Path(target_mods_dir), overwrite=True, result=result)
        _copy_tree(
            version_dir / USER_DATA_SUBDIR,
            Path(target_user_data_dir),
            overwrite=False,
            result=result,
        )
        logger.info(
            "Synced %s %s: %d copied, %d kept",
            mod.full_name,
            row.version,
            len(result.copied),
            len(result.skipped),
        )
        return result

    def push_enabled(self, install_root: Path, mods: list[Mod]) -> SyncResult:
        """Push every enabled mod in ``mods`` into ``<install_root>/Mods`` and ``/UserData``."""
        install_root = Path(install_root)
        total = SyncResult()
        for mod in mods:
            if not self.options.is_enabled(mod.uuid):
                continue
            try:
                total.merge(
                    self.push(mod, install_root / MODS_SUBDIR, install_root / USER_DATA_SUBDIR)
                )
            except StateInconsistency as e:
                logger.warning("%s", e)
                total.errors.append(str(e))
        return total
