"""Tests for the service layer: command dispatch, lookups and status."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from helpers import API_ID, SHIELD_ID, UI_ID, package_json, sample_registry
from rumble_mod_manager.config import Config
from rumble_mod_manager.errors import ConfigError, NotFound
from rumble_mod_manager.registry import RegistrySnapshot
from rumble_mod_manager.service import ModManagerService
from rumble_mod_manager.worker import (
    CacheMod,
    DisableMod,
    EnableMod,
    RefreshRegistry,
    RemoveMod,
    RemoveVersion,
    SelectVersion,
    SetVersionLock,
    SyncToGame,
    UpdateMod,
)


@pytest.fixture
def config(tmp_path):
    cfg = Config(
        game_dir=str(tmp_path / "RUMBLE"),
        mod_cache_dir=str(tmp_path / "cache"),
        options_file=str(tmp_path / "enabled_mods.json"),
        registry_file=str(tmp_path / "registry.json"),
    )
    sample_registry().save(cfg.registry_file)
    return cfg


@pytest.fixture
def api():
    return MagicMock()


@pytest.fixture
def service(config, api, downloader):
    svc = ModManagerService(config, api=api, downloader=downloader)
    yield svc
    svc.close()


def _status(service, mod_id):
    return next(s for s in service.get_status() if s.mod_id == mod_id)


class TestCommands:

    def test_cache_mod_with_dependencies(self, service):
        result = service.run(CacheMod(SHIELD_ID))

        assert [mod_id for mod_id, _ in result.cached] == [SHIELD_ID, UI_ID, API_ID]
        assert {s.mod_id for s in service.get_status()} == {SHIELD_ID, UI_ID, API_ID}

    def test_enable_and_disable(self, service):
        service.run(CacheMod(API_ID))

        service.run(DisableMod(API_ID))
        assert not service.options.is_enabled(API_ID)

        service.run(EnableMod(API_ID))
        assert service.options.is_enabled(API_ID)

    def test_select_version_and_lock(self, service):
        service.run(CacheMod(API_ID))
        service.run(SetVersionLock(API_ID, True))

        service.run(SelectVersion(API_ID, "3.4.0"))
        result = service.run(UpdateMod(API_ID))

        assert result.locked
        assert service.options.get(API_ID).version == "3.4.0"

    def test_remove_mod(self, service):
        service.run(CacheMod(API_ID))
        service.run(RemoveMod(API_ID))
        assert service.get_status() == []

    def test_sync_to_game(self, service, tmp_path):
        service.run(CacheMod(API_ID))

        result = service.run(SyncToGame())

        assert (tmp_path / "RUMBLE" / "Mods" / "UlvakSkillz-RumbleModdingAPI.dll").is_file()
        assert result.errors == []

    def test_sync_without_game_dir(self, service):
        service.config.game_dir = ""
        with pytest.raises(ConfigError):
            service.run(SyncToGame())

    def test_refresh_registry_replaces_and_saves(self, service, api, config):
        api.get_package_list.return_value = [
            package_json("new-id", "Someone-NewMod", ["0.1.0"]),
        ]

        assert service.run(RefreshRegistry()) == 1

        assert service.registry.get("new-id") is not None
        assert service.registry.get(API_ID) is None
        assert [m.uuid for m in RegistrySnapshot.load(config.registry_file)] == ["new-id"]

    def test_errors_reach_the_caller(self, service):
        with pytest.raises(NotFound):
            service.run(CacheMod("no-such-mod"))

    def test_unknown_command(self, service):
        with pytest.raises(TypeError):
            service.run(object())

    def test_closed_service_rejects_commands(self, config, api, downloader):
        svc = ModManagerService(config, api=api, downloader=downloader)
        svc.close()
        with pytest.raises(RuntimeError):
            svc.run(CacheMod(API_ID))


class TestLookup:

    def test_by_name_and_url(self, service):
        assert service.lookup("Baumz-RumbleModUI").uuid == UI_ID
        assert service.lookup("https://thunderstore.io/c/rumble/p/Baumz/RumbleModUI/").uuid == UI_ID

    def test_falls_back_to_cache(self, service):
        service.run(CacheMod(API_ID))
        service.store.registry = RegistrySnapshot()

        assert service.lookup(API_ID).full_name == "UlvakSkillz-RumbleModdingAPI"
        assert service.lookup("UlvakSkillz-RumbleModdingAPI").uuid == API_ID

    def test_unknown(self, service):
        with pytest.raises(NotFound):
            service.lookup("Nobody-Nothing")

    def test_malformed_registry_file_starts_empty(self, config, api, downloader):
        with open(config.registry_file, "w") as f:
            f.write("{broken")

        with ModManagerService(config, api=api, downloader=downloader) as svc:
            assert len(svc.registry) == 0


class TestStatus:

    def test_up_to_date(self, service):
        service.run(CacheMod(API_ID))

        status = _status(service, API_ID)

        assert status.status == "up_to_date"
        assert status.selected_version == "3.4.1"
        assert status.latest_version == "3.4.1"
        assert status.cached_versions == ["3.4.1"]
        assert status.enabled

    def test_update_available(self, service):
        service.run(CacheMod(API_ID, "3.4.0"))
        assert _status(service, API_ID).status == "update_available"

    def test_locked(self, service):
        service.run(CacheMod(API_ID, "3.4.0"))
        service.run(SetVersionLock(API_ID, True))
        assert _status(service, API_ID).status == "locked"

    def test_missing_version(self, service):
        service.run(CacheMod(API_ID, "3.4.0"))
        service.run(CacheMod(API_ID, "3.4.1"))
        service.run(RemoveVersion(API_ID, "3.4.0"))

        status = _status(service, API_ID)

        assert status.status == "missing_version"
        assert status.cached_versions == ["3.4.1"]

    def test_not_in_registry(self, service):
        service.run(CacheMod(API_ID))
        service.store.registry = RegistrySnapshot()
        assert _status(service, API_ID).status == "not_in_registry"

    def test_status_of_empty_cache_leaves_disk_alone(self, service, config):
        assert service.get_status() == []
        assert service.lookup("Baumz-RumbleModUI").uuid == UI_ID
        assert not Path(config.mod_cache_dir).exists()

    def test_status_of_given_mods(self, service):
        service.run(CacheMod(SHIELD_ID))
        cached, _ = service.store.scan()

        statuses = service.get_status([m for m in cached if m.uuid == UI_ID])

        assert [s.mod_id for s in statuses] == [UI_ID]
