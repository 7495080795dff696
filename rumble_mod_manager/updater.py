"""Update one or all cached mods to the registry's latest version."""

import logging
from dataclasses import dataclass, field

from .cache import ModCacheStore
from .errors import ModManagerError
from .models import Mod
from .options import LocalOptionsStore
from .resolver import CacheResult, DependencyResolver

logger = logging.getLogger(__name__)


@dataclass
class UpdateResult:
    mod_id: str
    name: str
    old_version: str | None
    new_version: str | None
    locked: bool = False

    @property
    def changed(self) -> bool:
        return not self.locked and self.old_version != self.new_version


@dataclass
class UpdateAllResult:
    updated: list[UpdateResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class UpdateEngine:
    """Drives updates through the resolver while honoring each mod's version lock."""

    def __init__(self, resolver: DependencyResolver, options: LocalOptionsStore):
        self.resolver = resolver
        self.options = options

    @property
    def store(self) -> ModCacheStore:
        return self.resolver.store

    def update_mod(self, mod: Mod) -> UpdateResult:
        """
        Move a mod to the registry's latest version.

        A locked mod is left exactly as it is. Otherwise the latest version
        and its dependencies are cached and that version becomes selected.
        """
        row = self.options.get(mod.uuid)
        old_version = row.version if row else None

        if self.options.get_version_lock(mod.uuid):
            logger.info("%s is version locked at %s, not updating", mod.full_name, old_version)
            return UpdateResult(mod.uuid, mod.full_name, old_version, old_version, locked=True)

        latest = self.resolver.registry.latest_version(mod.uuid).version_number
        result = self.resolver.cache(mod.uuid, latest)
        self.options.set_version(mod.uuid, result.version)

        if old_version != result.version:
            logger.info("Updated %s: %s -> %s", mod.full_name, old_version, result.version)
        return UpdateResult(mod.uuid, mod.full_name, old_version, result.version)

    def update_all(self, continue_on_error: bool = False) -> UpdateAllResult:
        """
        Update every mod in the cache, in cache listing order.

        By default the first failure propagates. With ``continue_on_error``
        each failure is logged and collected and the remaining mods are still
        updated.
        """
        outcome = UpdateAllResult()
        for mod in self.store.refresh():
            try:
                outcome.updated.append(self.update_mod(mod))
            except ModManagerError as e:
                if not continue_on_error:
                    raise
                logger.error("Could not update %s: %s", mod.full_name, e)
                outcome.errors.append(f"{mod.full_name}: {e}")
        return outcome

    def select_version(self, mod_id: str, version: str) -> CacheResult:
        """
        Manually select a version, caching it first if needed.

        Unlike ``update_mod`` this is not blocked by the version lock.
        """
        result = self.resolver.cache(mod_id, version)
        self.options.set_version(mod_id, result.version)
        return result
