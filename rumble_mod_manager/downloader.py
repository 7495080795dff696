"""Package archive downloads with progress tracking."""

import logging
from pathlib import Path
from typing import Callable

import requests
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from .errors import NetworkFailure

DEFAULT_TIMEOUT = 60

logger = logging.getLogger(__name__)


class DownloadError(NetworkFailure):
    """Raised when a download fails."""

    pass


class Downloader:
    """Streams package archives to disk."""

    def __init__(self, session: requests.Session | None = None, timeout: float = DEFAULT_TIMEOUT):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.progress: Progress | None = None

    def download(
        self,
        url: str,
        target_dir: Path,
        filename: str,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> Path:
        """
        Download a file into target_dir.

        The file is written under a temporary ``.downloading_`` name and only
        renamed to ``filename`` once complete.

        Args:
            on_progress: Optional callback(bytes_downloaded, total_bytes) for
                         generic progress reporting.

        Returns path to the downloaded file.
        """
        target_dir.mkdir(parents=True, exist_ok=True)
        temp_path = target_dir / f".downloading_{filename}"
        progress = self.progress
        task_id: TaskID | None = None

        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
            response.raise_for_status()

            total_size = int(response.headers.get("content-length", 0))
            if progress is not None:
                task_id = progress.add_task("download", filename=filename[:40], total=total_size)

            bytes_downloaded = 0
            with open(temp_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
                        bytes_downloaded += len(chunk)
                        if progress is not None and task_id is not None:
                            progress.update(task_id, advance=len(chunk))
                        if on_progress:
                            on_progress(bytes_downloaded, total_size)

            final_path = target_dir / filename
            temp_path.replace(final_path)
            logger.debug("Downloaded %s (%d bytes)", url, bytes_downloaded)
            return final_path

        except (requests.RequestException, OSError) as e:
            if temp_path.exists():
                temp_path.unlink()
            raise DownloadError(f"Failed to download {filename}: {e}") from e
        finally:
            if progress is not None and task_id is not None:
                progress.remove_task(task_id)


def create_download_progress() -> Progress:
    """Create a progress bar for downloads."""
    return Progress(
        TextColumn("[bold blue]{task.fields[filename]}", justify="right"),
        BarColumn(bar_width=30),
        "[progress.percentage]{task.percentage:>3.0f}%",
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeRemainingColumn(),
    )
