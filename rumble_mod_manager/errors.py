"""Error taxonomy shared by every component."""


class ModManagerError(Exception):
    """Base exception for mod manager errors."""

    pass


class NotFound(ModManagerError):
    """Raised when a mod, version or dependency is absent from the registry or cache."""

    pass


class NetworkFailure(ModManagerError):
    """Raised when a fetch fails or the server answers with a non-success status."""

    pass


class ArchiveError(ModManagerError):
    """Raised when a package archive is unreadable or corrupt."""

    pass


class FilesystemError(ModManagerError):
    """Raised on permission or IO failures inside the cache or game directories."""

    pass


class StateInconsistency(ModManagerError):
    """Raised when options reference a mod or version that can no longer be resolved."""

    pass


class ConfigError(ModManagerError):
    """Raised when a persisted configuration document is malformed."""

    pass
