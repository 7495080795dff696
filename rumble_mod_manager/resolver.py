"""Recursive caching of a mod and everything it depends on."""

import logging
from dataclasses import dataclass, field
from typing import Callable

from .cache import ModCacheStore
from .options import LocalOptionsStore
from .registry import RegistrySnapshot

logger = logging.getLogger(__name__)


@dataclass
class CacheResult:
    """Outcome of caching a mod with its dependencies."""

    mod_id: str
    version: str
    # (mod_id, version) for the root and every dependency, in visit order
    cached: list[tuple[str, str]] = field(default_factory=list)
    cycles: list[str] = field(default_factory=list)


class DependencyResolver:
    """Caches a mod and, depth first, each of its dependencies at their latest version."""

    def __init__(
        self,
        store: ModCacheStore,
        options: LocalOptionsStore,
        on_progress: Callable[[int, int], None] | None = None,
    ):
        self.store = store
        self.options = options
        self.on_progress = on_progress

    @property
    def registry(self) -> RegistrySnapshot:
        return self.store.registry

    def cache(self, mod_id: str, version: str | None = None) -> CacheResult:
        """
        Cache ``mod_id`` at ``version`` (latest when omitted) plus its dependency closure.

        A mod without an options row is enabled at the version just cached.
        Dependencies are looked up by full name and always fetched at their
        own latest version. A dependency name missing from the registry fails
        the whole call with NotFound. A dependency cycle is logged and cut.
        """
        result = CacheResult(mod_id=mod_id, version="")
        result.version = self._cache(mod_id, version, result, visited=set(), stack=[])
        return result

    def _cache(
        self,
        mod_id: str,
        version: str | None,
        result: CacheResult,
        visited: set[str],
        stack: list[str],
    ) -> str:
        mod, target = self.store.resolve_version(mod_id, version)
        number = target.version_number

        mod = self.store.materialize(mod.uuid, number, on_progress=self.on_progress)
        visited.add(mod.uuid)
        result.cached.append((mod.uuid, number))

        if self.options.get(mod.uuid) is None:
            self.options.enable(mod, number)

        stack.append(mod.uuid)
        for reference in target.dependencies:
            dependency = self.registry.resolve_dependency(reference)
            if dependency.uuid in stack:
                chain = " -> ".join(self._name(m) for m in stack[stack.index(dependency.uuid):])
                logger.warning(
                    "Dependency cycle %s -> %s, not following it", chain, dependency.full_name
                )
                result.cycles.append(dependency.uuid)
                continue
            if dependency.uuid in visited:
                continue
            logger.debug("%s depends on %s", mod.full_name, dependency.full_name)
            self._cache(dependency.uuid, None, result, visited, stack)
        stack.pop()

        return number

    def _name(self, mod_id: str) -> str:
        mod = self.registry.get(mod_id)
        return mod.full_name if mod else mod_id
