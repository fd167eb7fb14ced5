"""
Cloud sync service -- the only part of the relay that talks to the network.

Downloads go through ``resolve``: a direct fetch, a temporary link
followed by a plain HTTP GET, or direct-then-link when the strategy
is ``auto``. Uploads always overwrite, so pushing the same turn twice
is harmless.
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from urllib.parse import urlsplit
from urllib.request import url2pathname

import requests

from ..errors import RemoteStoreError
from ..models import DownloadStrategy
from ..saves import turn_filename
from .backends import StoreBackend

logger = logging.getLogger("turnrelay.cloud.service")


def remote_turn_path(folder: str, turn_id: str) -> str:
    """Canonical remote path of a turn save."""
    return posixpath.join(folder.rstrip("/") or "/", turn_filename(turn_id))


def remote_path_for(folder: str, local_path: Path) -> str:
    """Default remote path for a generic upload: same folder, same base name."""
    return posixpath.join(folder.rstrip("/") or "/", Path(local_path).name)


class CloudSyncService:
    """Push, resolve and list objects on a StoreBackend.

    Args:
        backend: The remote store.
        strategy: How ``resolve`` fetches objects.
        timeout: Seconds before a plain HTTP GET is abandoned.
    """

    def __init__(
        self,
        backend: StoreBackend,
        strategy: DownloadStrategy = DownloadStrategy.AUTO,
        timeout: float = 30.0,
    ):
        self.backend = backend
        self.strategy = strategy
        self.timeout = timeout

    def push(self, path: str, data: bytes) -> None:
        """Upload ``data`` to ``path``, replacing any existing object.

        Raises:
            RemoteStoreError: If the store rejects the write.
        """
        logger.info("Pushing %s to %s (%d bytes)", path, self.backend.name, len(data))
        self.backend.put(path, data, overwrite=True)

    def resolve(self, path: str) -> bytes:
        """Fetch an object's content using the configured strategy.

        Raises:
            RemoteStoreError: If every allowed route failed.
        """
        if self.strategy == DownloadStrategy.DIRECT:
            return self.backend.get(path)
        if self.strategy == DownloadStrategy.TEMPORARY_LINK:
            return self._via_link(path)

        try:
            return self.backend.get(path)
        except RemoteStoreError as exc:
            logger.warning(
                "Direct fetch of %s failed (%s), trying temporary link",
                path, exc.summary,
            )
            return self._via_link(path)

    def _via_link(self, path: str) -> bytes:
        link = self.backend.temporary_link(path)
        logger.debug("Temporary link for %s obtained", path)
        return self.fetch_url(link)

    def list(self, folder: str, recursive: bool = False) -> list[str]:
        """Return the base names of the entries in ``folder``.

        Raises:
            RemoteStoreError: With the store's error summary.
        """
        entries = self.backend.list_folder(folder, recursive=recursive)
        return [entry["name"] for entry in entries if entry.get("name")]

    def fetch_url(self, url: str) -> bytes:
        """Plain GET of any URL, following redirects.

        ``file://`` URLs are read from disk.

        Raises:
            RemoteStoreError: On a transport failure or HTTP error status.
        """
        parts = urlsplit(url)
        if parts.scheme == "file":
            local = Path(url2pathname(parts.path))
            try:
                return local.read_bytes()
            except OSError as exc:
                raise RemoteStoreError(f"Cannot read {url}: {exc}") from exc

        try:
            resp = requests.get(url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as exc:
            raise RemoteStoreError(f"Transport failure fetching {url}: {exc}") from exc

        if resp.status_code >= 400:
            raise RemoteStoreError(
                f"HTTP {resp.status_code} fetching {url}", resp.status_code
            )
        return resp.content
