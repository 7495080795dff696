"""Service layer - wires the components together and executes commands."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from .api import ThunderstoreAPI
from .cache import ModCacheStore
from .config import Config
from .downloader import Downloader
from .errors import ConfigError, NotFound
from .models import Mod
from .options import LocalOptionsStore
from .registry import RegistrySnapshot
from .resolver import DependencyResolver
from .sync import SyncEngine, SyncResult
from .updater import UpdateEngine
from .worker import (
    CacheMod,
    Command,
    CommandWorker,
    DisableMod,
    EnableMod,
    RefreshRegistry,
    RemoveMod,
    RemoveOldVersions,
    RemoveVersion,
    SelectVersion,
    SetVersionLock,
    SyncToGame,
    UpdateAll,
    UpdateMod,
)

logger = logging.getLogger(__name__)


@dataclass
class ModStatus:
    mod_id: str
    name: str
    full_name: str
    selected_version: str | None
    latest_version: str | None
    cached_versions: list[str] = field(default_factory=list)
    enabled: bool = False
    locked: bool = False
    status: str = ""  # up_to_date, update_available, locked, missing_version, not_in_registry


class ModManagerService:
    """
    Business logic for the mod cache.

    Mutations go through ``run`` / ``submit`` and execute on a single
    background worker in submission order. The read helpers take a fresh
    look at disk each time.
    """

    def __init__(
        self,
        config: Config,
        api: ThunderstoreAPI | None = None,
        downloader: Downloader | None = None,
        on_progress: Callable[[int, int], None] | None = None,
    ):
        self.config = config
        self.api = api or ThunderstoreAPI(config.registry_url, timeout=config.http_timeout)
        self.downloader = downloader or Downloader(timeout=config.http_timeout)

        self.store = ModCacheStore(config.mod_cache_dir, self._load_registry(), self.downloader)
        self.options = LocalOptionsStore(config.options_file)
        self.resolver = DependencyResolver(self.store, self.options, on_progress=on_progress)
        self.updater = UpdateEngine(self.resolver, self.options)
        self.syncer = SyncEngine(self.store, self.options)

        self._handlers: dict[type, Callable[[Any], Any]] = {
            CacheMod: self._cache_mod,
            EnableMod: self._enable_mod,
            DisableMod: self._disable_mod,
            SelectVersion: self._select_version,
            SetVersionLock: self._set_version_lock,
            RemoveVersion: self._remove_version,
            RemoveMod: self._remove_mod,
            RemoveOldVersions: self._remove_old_versions,
            UpdateMod: self._update_mod,
            UpdateAll: self._update_all,
            SyncToGame: self._sync_to_game,
            RefreshRegistry: self._refresh_registry,
        }
        self.worker = CommandWorker(self.execute)

    def __enter__(self) -> "ModManagerService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.worker.shutdown(wait=True)

    @property
    def registry(self) -> RegistrySnapshot:
        return self.store.registry

    def _load_registry(self) -> RegistrySnapshot:
        try:
            return RegistrySnapshot.load(self.config.registry_file)
        except ConfigError as e:
            logger.warning("%s; run 'refresh' to download the registry again", e)
            return RegistrySnapshot()

    # -- command execution --

    def submit(self, command: Command):
        return self.worker.submit(command)

    def run(self, command: Command, timeout: float | None = None) -> Any:
        """Execute a command on the worker and wait for its result."""
        return self.worker.run(command, timeout)

    def execute(self, command: Command) -> Any:
        """Dispatch a command. Called on the worker thread."""
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unknown command: {command!r}")
        logger.debug("Executing %r", command)
        return handler(command)

    def _cache_mod(self, command: CacheMod):
        return self.resolver.cache(command.mod_id, command.version)

    def _enable_mod(self, command: EnableMod) -> None:
        self.options.enable(self.lookup(command.mod_id))

    def _disable_mod(self, command: DisableMod) -> None:
        self.options.disable(self.lookup(command.mod_id))

    def _select_version(self, command: SelectVersion):
        return self.updater.select_version(command.mod_id, command.version)

    def _set_version_lock(self, command: SetVersionLock) -> None:
        self.options.set_version_lock(command.mod_id, command.locked)

    def _remove_version(self, command: RemoveVersion) -> None:
        self.store.remove_version(self.lookup(command.mod_id), command.version)

    def _remove_mod(self, command: RemoveMod) -> None:
        self.store.remove_mod(self.lookup(command.mod_id))

    def _remove_old_versions(self, command: RemoveOldVersions) -> list[str]:
        return self.store.remove_old_versions(self.lookup(command.mod_id))

    def _update_mod(self, command: UpdateMod):
        return self.updater.update_mod(self.lookup(command.mod_id))

    def _update_all(self, command: UpdateAll):
        return self.updater.update_all(continue_on_error=command.continue_on_error)

    def _sync_to_game(self, command: SyncToGame) -> SyncResult:
        game_path = self.config.game_path
        if game_path is None:
            raise ConfigError("Game directory is not configured. Set it with 'config --game-dir'.")
        return self.syncer.push_enabled(game_path, self.store.refresh())

    def _refresh_registry(self, command: RefreshRegistry) -> int:
        snapshot = RegistrySnapshot.fetch(self.api)
        snapshot.save(self.config.registry_file)
        self.store.registry = snapshot
        return len(snapshot)

    # -- reads --

    def lookup(self, query: str) -> Mod:
        """Find a mod by id, full name or package URL, in the registry or else the cache."""
        try:
            return self.registry.find(query)
        except NotFound:
            for mod in self.store.scan()[0]:
                if query in (mod.uuid, mod.full_name):
                    return mod
            raise

    def get_status(self, mods: list[Mod] | None = None) -> list[ModStatus]:
        """Per-mod view of the cache, options and registry.

        ``mods`` defaults to a fresh scan of the cache.
        """
        if mods is None:
            mods = self.store.scan()[0]
        statuses = []
        for cached in mods:
            pruned = self.store.prune(cached)
            row = self.options.get(cached.uuid)
            remote = self.registry.get(cached.uuid)
            latest = remote.latest_version.version_number if remote and remote.latest_version else None
            selected = row.version if row else None
            locked = bool(row and row.version_lock)

            if remote is None:
                status = "not_in_registry"
            elif selected is None or not self.store.is_cached(cached.uuid, selected):
                status = "missing_version"
            elif locked:
                status = "locked"
            elif selected != latest:
                status = "update_available"
            else:
                status = "up_to_date"

            statuses.append(
                ModStatus(
                    mod_id=cached.uuid,
                    name=cached.display_name,
                    full_name=cached.full_name,
                    selected_version=selected,
                    latest_version=latest,
                    cached_versions=pruned.version_numbers(),
                    enabled=bool(row and row.enabled),
                    locked=locked,
                    status=status,
                )
            )
        return statuses
