"""Thunderstore API client for the RUMBLE community."""

import logging
from typing import Any

import requests

from . import __version__
from .errors import NetworkFailure, NotFound

PACKAGE_LIST_URL = "https://thunderstore.io/c/rumble/api/v1/package/"
DEFAULT_TIMEOUT = 60

logger = logging.getLogger(__name__)


class ThunderstoreAPIError(NetworkFailure):
    """Raised when the registry cannot be read."""

    pass


class ThunderstoreAPI:
    """Read-only client for the Thunderstore package listing."""

    def __init__(
        self,
        package_list_url: str = PACKAGE_LIST_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.package_list_url = package_list_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "User-Agent": f"rumble-mod-manager/{__version__}",
                "Accept": "application/json",
            }
        )

    def _handle_response(self, response: requests.Response) -> Any:
        """Map HTTP status codes onto the error taxonomy and decode JSON."""
        if response.status_code == 404:
            raise NotFound(f"Resource not found: {response.url}")
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After", "?")
            raise ThunderstoreAPIError(
                f"Rate limited by registry. Retry after {retry_after} seconds."
            )
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise ThunderstoreAPIError(f"Registry request failed: {e}") from e
        try:
            return response.json()
        except ValueError as e:
            raise ThunderstoreAPIError(f"Registry returned invalid JSON: {e}") from e

    def _get(self, url: str) -> Any:
        logger.debug("GET %s", url)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise ThunderstoreAPIError(f"Could not reach registry at {url}: {e}") from e
        return self._handle_response(response)

    def get_package_list(self) -> list[dict[str, Any]]:
        """
        Fetch every package in the community.

        Returns the raw JSON array; each entry is a package record with its
        versions, newest first.
        """
        data = self._get(self.package_list_url)
        if not isinstance(data, list):
            raise ThunderstoreAPIError(
                f"Unexpected package list response: expected a list, got {type(data).__name__}"
            )
        logger.info("Fetched %d packages from registry", len(data))
        return data
