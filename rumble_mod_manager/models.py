"""Registry records and per-mod user options."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Version:
    """One published version of a mod, as reported by the registry."""

    version_number: str
    download_url: str
    dependencies: list[str] = field(default_factory=list)
    icon: str = ""
    is_active: bool = True
    name: str = ""
    full_name: str = ""
    description: str = ""
    date_created: str = ""
    downloads: int = 0
    file_size: int = 0
    uuid4: str = ""
    website_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "date_created": self.date_created,
            "dependencies": list(self.dependencies),
            "description": self.description,
            "download_url": self.download_url,
            "downloads": self.downloads,
            "file_size": self.file_size,
            "full_name": self.full_name,
            "icon": self.icon,
            "is_active": self.is_active,
            "name": self.name,
            "uuid4": self.uuid4,
            "version_number": self.version_number,
            "website_url": self.website_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Version":
        return cls(
            version_number=data["version_number"],
            download_url=data.get("download_url", ""),
            dependencies=list(data.get("dependencies") or []),
            icon=data.get("icon", ""),
            is_active=data.get("is_active", True),
            name=data.get("name", ""),
            full_name=data.get("full_name", ""),
            description=data.get("description", ""),
            date_created=data.get("date_created", ""),
            downloads=data.get("downloads", 0),
            file_size=data.get("file_size", 0),
            uuid4=data.get("uuid4", ""),
            website_url=data.get("website_url", ""),
        )


@dataclass(frozen=True)
class Mod:
    """A registry package and its versions (index 0 is the most recent)."""

    uuid: str
    name: str
    full_name: str
    owner: str
    versions: list[Version] = field(default_factory=list)
    package_url: str = ""
    donation_link: str | None = None
    date_created: str = ""
    date_updated: str = ""
    rating_score: int = 0
    is_pinned: bool = False
    is_deprecated: bool = False
    has_nsfw_content: bool = False
    categories: list[str] = field(default_factory=list)

    @property
    def latest_version(self) -> Version | None:
        return self.versions[0] if self.versions else None

    @property
    def display_name(self) -> str:
        latest = self.latest_version
        if latest and latest.name:
            return latest.name
        return self.name

    def get_version(self, version_number: str) -> Version | None:
        for version in self.versions:
            if version.version_number == version_number:
                return version
        return None

    def version_numbers(self) -> list[str]:
        return [v.version_number for v in self.versions]

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid4": self.uuid,
            "name": self.name,
            "full_name": self.full_name,
            "owner": self.owner,
            "package_url": self.package_url,
            "donation_link": self.donation_link,
            "date_created": self.date_created,
            "date_updated": self.date_updated,
            "rating_score": self.rating_score,
            "is_pinned": self.is_pinned,
            "is_deprecated": self.is_deprecated,
            "has_nsfw_content": self.has_nsfw_content,
            "categories": list(self.categories),
            "versions": [v.to_dict() for v in self.versions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Mod":
        return cls(
            uuid=str(data["uuid4"]),
            name=data.get("name", ""),
            full_name=data.get("full_name", ""),
            owner=data.get("owner", ""),
            versions=[Version.from_dict(v) for v in data.get("versions") or []],
            package_url=data.get("package_url", ""),
            donation_link=data.get("donation_link"),
            date_created=data.get("date_created", ""),
            date_updated=data.get("date_updated", ""),
            rating_score=data.get("rating_score", 0),
            is_pinned=data.get("is_pinned", False),
            is_deprecated=data.get("is_deprecated", False),
            has_nsfw_content=data.get("has_nsfw_content", False),
            categories=list(data.get("categories") or []),
        )


@dataclass(eq=False)
class ModOptions:
    """User intent for one mod: enabled, selected version and version lock.

    Two rows are equal when they share an id, whatever the other fields say.
    """

    id: str
    version: str
    version_lock: bool = False
    enabled: bool = True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModOptions):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version,
            "version_lock": self.version_lock,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModOptions":
        return cls(
            id=str(data["id"]),
            version=data.get("version", ""),
            version_lock=data.get("version_lock", False),
            enabled=data.get("enabled", False),
        )
