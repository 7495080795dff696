"""ZIP extraction for mod packages."""

import logging
import os
import shutil
import stat
import zipfile
import zlib
from pathlib import Path

from .errors import ArchiveError, FilesystemError

logger = logging.getLogger(__name__)


class ExtractionError(ArchiveError):
    """Raised when archive extraction fails."""

    pass


def is_zip_archive(filepath: Path) -> bool:
    """Detect a ZIP archive by magic bytes, then fall back to extension."""
    try:
        with open(filepath, "rb") as f:
            header = f.read(4)
        # ZIP: PK (0x50 0x4B)
        if header[:2] == b"PK":
            return True
    except OSError:
        pass
    return filepath.suffix.lower() == ".zip"


def is_safe_path(base_dir: Path, target_path: Path) -> bool:
    """Check that target_path stays inside base_dir once resolved."""
    try:
        return target_path.resolve().is_relative_to(base_dir.resolve())
    except (OSError, ValueError):
        return False


def _member_path(member: zipfile.ZipInfo) -> str:
    # Packages built on Windows sometimes use backslash separators
    return member.filename.replace("\\", "/")


def _restore_permissions(member: zipfile.ZipInfo, path: Path) -> None:
    """Apply the POSIX mode bits stored in the archive, when there are any."""
    if os.name != "posix":
        return
    mode = member.external_attr >> 16
    if mode and not stat.S_ISLNK(mode):
        os.chmod(path, stat.S_IMODE(mode))


def extract_archive(archive_path: Path, target_dir: Path) -> list[Path]:
    """
    Extract a ZIP archive to the target directory.

    Directory entries (names ending in ``/``) are created as directories,
    POSIX permission bits are restored where the archive records them, and
    members that would land outside ``target_dir`` are rejected.

    Returns list of extracted file paths.
    """
    if not is_zip_archive(archive_path):
        raise ExtractionError(f"Not a ZIP archive: {archive_path}")

    target_dir.mkdir(parents=True, exist_ok=True)
    base = target_dir.resolve()
    extracted: list[Path] = []

    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            members = zf.infolist()
            for member in members:
                name = _member_path(member)
                target = base / name
                if not is_safe_path(base, target):
                    logger.error("Blocked unsafe path in archive %s: %s", archive_path.name, name)
                    raise ExtractionError(
                        f"Archive member '{name}' would extract outside {target_dir}"
                    )

            for member in members:
                name = _member_path(member)
                target = base / name
                if name.endswith("/"):
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(member) as src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                _restore_permissions(member, target)
                extracted.append(target)
    except ExtractionError:
        raise
    except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError) as e:
        raise ExtractionError(f"Corrupt archive {archive_path}: {e}") from e
    except OSError as e:
        raise FilesystemError(f"Failed to extract {archive_path}: {e}") from e

    logger.debug("Extracted %d files from %s", len(extracted), archive_path.name)
    return extracted
