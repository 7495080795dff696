"""On-disk mod cache keyed by mod id and version.

Layout::

    <cache_root>/<mod_id>/mod_info.json
    <cache_root>/<mod_id>/versions/<version>/Mods/...
    <cache_root>/<mod_id>/versions/<version>/UserData/...

A version counts as cached only when its version directory exists. The
``mod_info.json`` snapshot is metadata, never proof of availability; use
``prune`` for that.
"""

import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable

from .downloader import Downloader
from .errors import FilesystemError, NotFound
from .extractor import extract_archive
from .models import Mod, Version
from .registry import RegistrySnapshot

MOD_INFO_FILENAME = "mod_info.json"
VERSIONS_DIRNAME = "versions"
MODS_SUBDIR = "Mods"
USER_DATA_SUBDIR = "UserData"
STAGING_PREFIX = ".staging-"

logger = logging.getLogger(__name__)


@dataclass
class ScanError:
    """A cache directory whose metadata could not be loaded."""

    path: Path
    error: str


class ModCacheStore:
    """Owns the cache directory: materializes, lists and deletes cached mods."""

    def __init__(
        self,
        cache_root: Path,
        registry: RegistrySnapshot,
        downloader: Downloader | None = None,
    ):
        self.cache_root = Path(cache_root)
        self.registry = registry
        self.downloader = downloader or Downloader()
        self.cached_mods: list[Mod] = []
        self.scan_errors: list[ScanError] = []

    # -- paths --

    def mod_dir(self, mod_id: str) -> Path:
        return self.cache_root / mod_id

    def mod_info_path(self, mod_id: str) -> Path:
        return self.mod_dir(mod_id) / MOD_INFO_FILENAME

    def versions_dir(self, mod_id: str) -> Path:
        return self.mod_dir(mod_id) / VERSIONS_DIRNAME

    def version_dir(self, mod_id: str, version: str) -> Path:
        return self.versions_dir(mod_id) / version

    def _checked_child(self, parent: Path, name: str, what: str) -> Path:
        """Return ``parent / name``, refusing any name that is not a plain directory entry."""
        if (
            not name
            or name in (".", "..")
            or "/" in name
            or "\\" in name
            or (os.altsep and os.altsep in name)
        ):
            raise FilesystemError(f"Refusing unsafe {what} {name!r}")
        path = parent / name
        if path.resolve().parent != parent.resolve():
            raise FilesystemError(f"Refusing unsafe {what} {name!r}: {path} is not inside {parent}")
        return path

    def _checked_version_dir(self, mod_id: str, version: str) -> Path:
        mod_dir = self._checked_child(self.cache_root, mod_id, "mod id")
        return self._checked_child(mod_dir / VERSIONS_DIRNAME, version, "version")

    # -- materialize --

    def resolve_version(self, mod_id: str, version: str | None = None) -> tuple[Mod, Version]:
        """
        Pick the effective version of a mod from the registry.

        An explicit version must be listed by the registry; without one the
        first (most recent) entry is used.
        """
        mod = self.registry.require(mod_id)
        if version is None:
            latest = mod.latest_version
            if latest is None:
                raise NotFound(f"Mod {mod.full_name} has no published versions")
            return mod, latest
        found = mod.get_version(version)
        if found is None:
            raise NotFound(f"Version {version} of {mod.full_name} is not in the registry")
        return mod, found

    def materialize(
        self,
        mod_id: str,
        version: str | None = None,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> Mod:
        """
        Download and extract one mod version into the cache.

        Does nothing when the version directory already exists. The archive
        is extracted into a staging directory that is renamed into place once
        complete, so an interrupted run never leaves a version directory that
        looks cached. Other versions of the mod are never touched.

        Returns the registry's Mod record.
        """
        mod, target = self.resolve_version(mod_id, version)
        number = target.version_number
        dest = self._checked_version_dir(mod.uuid, number)

        if dest.is_dir():
            logger.debug("%s %s already cached, skipping download", mod.full_name, number)
            return mod

        staging = self._checked_version_dir(mod.uuid, f"{STAGING_PREFIX}{number}")
        logger.info("Caching %s %s", mod.full_name, number)

        try:
            staging.parent.mkdir(parents=True, exist_ok=True)
            if staging.exists():
                # Left over from an interrupted run
                shutil.rmtree(staging)

            with tempfile.TemporaryDirectory(prefix="rumm-download-") as tmp:
                archive = self.downloader.download(
                    target.download_url,
                    Path(tmp),
                    f"{mod.full_name}-{number}.zip",
                    on_progress=on_progress,
                )
                extract_archive(archive, staging)

            self._write_mod_info(mod)
            staging.rename(dest)
        except OSError as e:
            raise FilesystemError(f"Could not cache {mod.full_name} {number}: {e}") from e
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

        return mod

    def _write_mod_info(self, mod: Mod) -> None:
        path = self.mod_info_path(mod.uuid)
        tmp_path = path.with_name(f".{MOD_INFO_FILENAME}.tmp")
        with open(tmp_path, "w") as f:
            json.dump(mod.to_dict(), f, indent=2)
        tmp_path.replace(path)

    # -- listing --

    def scan(self) -> tuple[list[Mod], list[ScanError]]:
        """
        Read every mod snapshot under the cache root without changing disk.

        A missing cache root yields an empty list. A mod directory with a
        missing or unreadable ``mod_info.json`` is reported as a ScanError and
        the scan moves on.
        """
        mods: list[Mod] = []
        errors: list[ScanError] = []

        if not self.cache_root.is_dir():
            return mods, errors

        for entry in sorted(self.cache_root.iterdir()):
            if not entry.is_dir():
                continue
            try:
                with open(entry / MOD_INFO_FILENAME) as f:
                    mods.append(Mod.from_dict(json.load(f)))
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("Skipping cache entry %s: %s", entry.name, e)
                errors.append(ScanError(path=entry, error=str(e)))

        return mods, errors

    def refresh(self) -> list[Mod]:
        """
        Rebuild ``cached_mods`` and ``scan_errors`` from disk and return the mods.

        Creates the cache root when it is missing.
        """
        try:
            self.cache_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Could not create cache root {self.cache_root}: {e}") from e
        self.cached_mods, self.scan_errors = self.scan()
        return list(self.cached_mods)

    def get_cached(self, mod_id: str) -> Mod | None:
        """Return the cached metadata snapshot for a mod from the last refresh."""
        for mod in self.cached_mods:
            if mod.uuid == mod_id:
                return mod
        return None

    def prune(self, mod: Mod) -> Mod:
        """
        Return a copy of ``mod`` listing only versions present on disk.

        This is the view to use whenever deciding whether a version is
        available locally.
        """
        present = set(self.cached_versions(mod.uuid))
        return replace(mod, versions=[v for v in mod.versions if v.version_number in present])

    def cached_versions(self, mod_id: str) -> list[str]:
        """Names of the version directories on disk for a mod."""
        versions_dir = self.versions_dir(mod_id)
        if not versions_dir.is_dir():
            return []
        return sorted(
            p.name
            for p in versions_dir.iterdir()
            if p.is_dir() and not p.name.startswith(STAGING_PREFIX)
        )

    def is_cached(self, mod_id: str, version: str) -> bool:
        return self.version_dir(mod_id, version).is_dir()

    # -- removal --

    def _check_inside_root(self, path: Path) -> None:
        """Refuse to delete anything that is not strictly below the cache root."""
        root = self.cache_root.resolve()
        target = path.resolve()
        if target == root or not target.is_relative_to(root):
            raise FilesystemError(f"Refusing to delete {path}: not inside cache root {root}")

    def _rmtree(self, path: Path) -> None:
        self._check_inside_root(path)
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise FilesystemError(f"Could not delete {path}: {e}") from e

    def remove_version(self, mod: Mod, version: str) -> None:
        """Delete one cached version of a mod."""
        self._rmtree(self._checked_version_dir(mod.uuid, version))
        logger.info("Removed %s %s from cache", mod.full_name, version)

    def remove_mod(self, mod: Mod) -> None:
        """Delete a mod and every cached version of it."""
        self._rmtree(self.mod_dir(mod.uuid))
        self.cached_mods = [m for m in self.cached_mods if m.uuid != mod.uuid]
        logger.info("Removed %s from cache", mod.full_name)

    def remove_old_versions(self, mod: Mod) -> list[str]:
        """
        Keep only the most recent cached version of a mod.

        Returns the version numbers that were deleted.
        """
        cached = self.prune(mod).versions
        removed = []
        for version in cached[1:]:
            self.remove_version(mod, version.version_number)
            removed.append(version.version_number)
        return removed
