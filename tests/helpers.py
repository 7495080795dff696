"""Shared builders for the test suite: registry records, package archives and a fake downloader."""

import zipfile
from pathlib import Path

from rumble_mod_manager.models import Mod, Version
from rumble_mod_manager.registry import RegistrySnapshot

API_ID = "2f1c6a3e-0b0a-4c1e-9d8e-1a2b3c4d5e6f"
UI_ID = "7b9e4d21-5c3f-4a8b-b6d2-9e8f7a6b5c4d"
SHIELD_ID = "c4d5e6f7-8a9b-4c0d-8e1f-2a3b4c5d6e7f"


def download_url(full_name: str, number: str) -> str:
    owner, name = full_name.split("-", 1)
    return f"https://thunderstore.io/package/download/{owner}/{name}/{number}/"


def make_version(full_name: str, number: str, dependencies=()) -> Version:
    return Version(
        version_number=number,
        download_url=download_url(full_name, number),
        dependencies=list(dependencies),
        name=full_name.split("-", 1)[1],
        full_name=f"{full_name}-{number}",
    )


def make_mod(uuid: str, full_name: str, numbers, dependencies=None) -> Mod:
    """Build a registry Mod. ``numbers`` is newest first; ``dependencies`` maps number -> refs."""
    dependencies = dependencies or {}
    owner, name = full_name.split("-", 1)
    return Mod(
        uuid=uuid,
        name=name,
        full_name=full_name,
        owner=owner,
        versions=[make_version(full_name, n, dependencies.get(n, ())) for n in numbers],
        package_url=f"https://thunderstore.io/c/rumble/p/{owner}/{name}/",
    )


def package_json(uuid: str, full_name: str, numbers, dependencies=None) -> dict:
    """Registry entry shaped like the Thunderstore package listing."""
    return make_mod(uuid, full_name, numbers, dependencies).to_dict()


def sample_registry() -> RegistrySnapshot:
    """
    Three mods:

    - UlvakSkillz-RumbleModdingAPI (3.4.1, 3.4.0), no dependencies
    - Baumz-RumbleModUI (2.1.0, 2.0.0), depends on the API at an older version
    - Blankz-ShieldTweaks (1.1.0, 1.0.0), depends on the UI and the API
    """
    return RegistrySnapshot(
        [
            make_mod(API_ID, "UlvakSkillz-RumbleModdingAPI", ["3.4.1", "3.4.0"]),
            make_mod(
                UI_ID,
                "Baumz-RumbleModUI",
                ["2.1.0", "2.0.0"],
                {
                    "2.1.0": ["UlvakSkillz-RumbleModdingAPI-3.4.0"],
                    "2.0.0": ["UlvakSkillz-RumbleModdingAPI-3.4.0"],
                },
            ),
            make_mod(
                SHIELD_ID,
                "Blankz-ShieldTweaks",
                ["1.1.0", "1.0.0"],
                {
                    "1.1.0": ["Baumz-RumbleModUI-2.1.0", "UlvakSkillz-RumbleModdingAPI-3.4.1"],
                    "1.0.0": ["UlvakSkillz-RumbleModdingAPI-3.4.0"],
                },
            ),
        ]
    )


def build_zip(path: Path, files: dict) -> Path:
    """
    Write a ZIP at ``path``.

    ``files`` maps member names to content (str or bytes) or to a
    ``(content, mode)`` tuple. Names ending in ``/`` become directory entries.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, value in files.items():
            mode = None
            if isinstance(value, tuple):
                value, mode = value
            info = zipfile.ZipInfo(name)
            if name.endswith("/"):
                info.external_attr = (0o40755 << 16) | 0x10
            elif mode is not None:
                info.external_attr = (0o100000 | mode) << 16
            zf.writestr(info, value)
    return path


def default_payload(filename: str) -> dict:
    """Package contents keyed on the archive name, e.g. ``Owner-Name-1.0.0.zip``."""
    stem = filename.removesuffix(".zip")
    package = stem.rsplit("-", 1)[0]
    return {
        "manifest.json": "{}",
        "Mods/": b"",
        f"Mods/{package}.dll": stem,
        f"UserData/{package}/settings.cfg": f"defaults from {stem}",
    }


class FakeDownloader:
    """Stands in for Downloader: builds the archive locally and records every URL."""

    def __init__(self, payloads: dict | None = None):
        self.payloads = payloads or {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[str] = []
        self.progress = None

    def download(self, url, target_dir, filename, on_progress=None):
        self.calls.append(url)
        if url in self.failures:
            raise self.failures[url]
        files = self.payloads.get(url) or default_payload(filename)
        path = build_zip(Path(target_dir) / filename, files)
        if on_progress:
            size = path.stat().st_size
            on_progress(size, size)
        return path
