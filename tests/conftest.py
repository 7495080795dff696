import pytest

from helpers import FakeDownloader, sample_registry
from rumble_mod_manager.cache import ModCacheStore
from rumble_mod_manager.options import LocalOptionsStore
from rumble_mod_manager.resolver import DependencyResolver
from rumble_mod_manager.sync import SyncEngine
from rumble_mod_manager.updater import UpdateEngine


@pytest.fixture
def registry():
    return sample_registry()


@pytest.fixture
def downloader():
    return FakeDownloader()


@pytest.fixture
def cache_root(tmp_path):
    return tmp_path / "mod_cache"


@pytest.fixture
def store(cache_root, registry, downloader):
    return ModCacheStore(cache_root, registry, downloader)


@pytest.fixture
def options(tmp_path):
    return LocalOptionsStore(tmp_path / "enabled_mods.json")


@pytest.fixture
def resolver(store, options):
    return DependencyResolver(store, options)


@pytest.fixture
def updater(resolver, options):
    return UpdateEngine(resolver, options)


@pytest.fixture
def syncer(store, options):
    return SyncEngine(store, options)
