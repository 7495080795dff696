"""Registry snapshot: every known mod and version as of the last refresh."""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator
from urllib.parse import urlparse

from .api import ThunderstoreAPI
from .errors import ConfigError, ModManagerError, NotFound
from .models import Mod, Version

THUNDERSTORE_HOSTS = ("thunderstore.io", "www.thunderstore.io")


class PackageURLError(ModManagerError):
    """Raised when a package page URL cannot be parsed."""

    pass


@dataclass
class PackageRef:
    """Parsed package page URL."""

    community: str
    owner: str
    name: str
    url: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}-{self.name}"


def parse_package_url(url: str) -> PackageRef:
    """
    Parse a Thunderstore package page URL.

    Supported formats:
        - https://thunderstore.io/c/{community}/p/{owner}/{name}/
        - Same with a trailing version segment or query params

    Returns PackageRef with owner and name.
    """
    parsed = urlparse(url)

    if parsed.netloc not in THUNDERSTORE_HOSTS:
        raise PackageURLError(f"Invalid domain: {parsed.netloc}. Expected thunderstore.io")

    path_match = re.match(r"^/c/([^/]+)/p/([^/]+)/([^/?]+)", parsed.path)
    if not path_match:
        raise PackageURLError(
            f"Invalid package URL format: {url}\n"
            "Expected: https://thunderstore.io/c/{community}/p/{owner}/{name}/"
        )

    community, owner, name = path_match.groups()
    return PackageRef(
        community=community,
        owner=owner,
        name=name,
        url=f"https://thunderstore.io/c/{community}/p/{owner}/{name}/",
    )


class RegistrySnapshot:
    """Immutable view of the registry; replaced wholesale on refresh."""

    def __init__(self, mods: list[Mod] | None = None):
        self._mods = tuple(mods or ())
        self._by_id = {m.uuid: m for m in self._mods}
        self._by_full_name = {m.full_name: m for m in self._mods}

    def __len__(self) -> int:
        return len(self._mods)

    def __iter__(self) -> Iterator[Mod]:
        return iter(self._mods)

    @property
    def mods(self) -> list[Mod]:
        return list(self._mods)

    def get(self, mod_id: str) -> Mod | None:
        return self._by_id.get(mod_id)

    def require(self, mod_id: str) -> Mod:
        mod = self.get(mod_id)
        if mod is None:
            raise NotFound(f"Mod {mod_id} is not in the registry")
        return mod

    def find_by_full_name(self, name: str) -> Mod | None:
        """
        Look a mod up by its fully-qualified name.

        Accepts a package name (``Owner-Name``) or a dependency reference that
        carries a trailing version (``Owner-Name-1.2.3``).
        """
        mod = self._by_full_name.get(name)
        if mod is not None:
            return mod
        if "-" in name:
            return self._by_full_name.get(name.rsplit("-", 1)[0])
        return None

    def resolve_dependency(self, reference: str) -> Mod:
        mod = self.find_by_full_name(reference)
        if mod is None:
            raise NotFound(f"Dependency {reference} is not in the registry")
        return mod

    def find(self, query: str) -> Mod:
        """Resolve a user-supplied id, full name or package URL to a mod."""
        mod = self.get(query)
        if mod is None and query.startswith(("http://", "https://")):
            mod = self.find_by_full_name(parse_package_url(query).full_name)
        if mod is None:
            mod = self.find_by_full_name(query)
        if mod is None:
            raise NotFound(f"No mod matching {query!r} in the registry")
        return mod

    def latest_version(self, mod_id: str) -> Version:
        mod = self.require(mod_id)
        if mod.latest_version is None:
            raise NotFound(f"Mod {mod.full_name} has no published versions")
        return mod.latest_version

    @classmethod
    def from_json(cls, data: list[dict[str, Any]]) -> "RegistrySnapshot":
        return cls([Mod.from_dict(entry) for entry in data])

    @classmethod
    def fetch(cls, api: ThunderstoreAPI) -> "RegistrySnapshot":
        return cls.from_json(api.get_package_list())

    def save(self, path: Path) -> None:
        """Persist the snapshot so the next start works offline."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump({"mods": [m.to_dict() for m in self._mods]}, f)

    @classmethod
    def load(cls, path: Path) -> "RegistrySnapshot":
        """Load a saved snapshot. A missing file yields an empty snapshot."""
        path = Path(path)
        if not path.exists():
            return cls()
        try:
            with open(path) as f:
                data = json.load(f)
            return cls.from_json(data.get("mods", []))
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            raise ConfigError(f"Invalid registry snapshot {path}: {e}") from e
