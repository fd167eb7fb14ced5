"""
Remote store backends -- where the turn saves live between players.

Dropbox: HTTP API with a bearer token.
Local: a plain directory tree. For LAN shares, USB sticks and tests.

Backends raise RemoteStoreError with the store's own error text.
Writes always replace whatever is at the target path.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import requests

from ..errors import ConfigError, RemoteStoreError
from ..models import BackendType, RelayConfig

logger = logging.getLogger("turnrelay.cloud.backends")

DROPBOX_API = "https://api.dropboxapi.com/2"
DROPBOX_CONTENT = "https://content.dropboxapi.com/2"


class StoreBackend(ABC):
    """Abstract remote object store."""

    @abstractmethod
    def put(self, path: str, data: bytes, overwrite: bool = True) -> None:
        """Store ``data`` at ``path``.

        Args:
            path: Remote path, e.g. ``/highest_numbered_files/turn_7.sav``.
            data: Object content.
            overwrite: Replace an existing object instead of failing.
        """

    @abstractmethod
    def get(self, path: str) -> bytes:
        """Fetch an object directly."""

    @abstractmethod
    def temporary_link(self, path: str) -> str:
        """Return a short-lived URL from which the object can be fetched."""

    @abstractmethod
    def list_folder(self, folder: str, recursive: bool = False) -> list[dict]:
        """List entries in a folder. Each entry has at least ``name``."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""


class DropboxBackend(StoreBackend):
    """Dropbox over its HTTP API.

    Args:
        token: OAuth bearer token.
        timeout: Seconds before a request is abandoned.
    """

    def __init__(self, token: str, timeout: float = 30.0):
        if not token:
            raise ConfigError("Dropbox backend needs an access token")
        self._token = token
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers["Authorization"] = f"Bearer {token}"

    @property
    def name(self) -> str:
        return "dropbox"

    def _post(
        self,
        url: str,
        *,
        json_body: Optional[dict] = None,
        api_arg: Optional[dict] = None,
        data: Optional[bytes] = None,
    ) -> requests.Response:
        """POST to the API, raising RemoteStoreError on any failure."""
        headers = {}
        if api_arg is not None:
            headers["Dropbox-API-Arg"] = json.dumps(api_arg)
        if data is not None:
            headers["Content-Type"] = "application/octet-stream"

        try:
            resp = self._session.post(
                url, headers=headers, json=json_body, data=data,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise RemoteStoreError(
                f"Transport failure talking to Dropbox: {exc}"
            ) from exc

        if resp.status_code >= 400:
            raise RemoteStoreError(_error_summary(resp), resp.status_code)
        return resp

    def put(self, path: str, data: bytes, overwrite: bool = True) -> None:
        arg = {
            "path": path,
            "mode": "overwrite" if overwrite else "add",
            "autorename": False,
            "mute": True,
        }
        self._post(f"{DROPBOX_CONTENT}/files/upload", api_arg=arg, data=data)
        logger.info("Uploaded %d bytes to dropbox:%s", len(data), path)

    def get(self, path: str) -> bytes:
        resp = self._post(
            f"{DROPBOX_CONTENT}/files/download", api_arg={"path": path}
        )
        return resp.content

    def temporary_link(self, path: str) -> str:
        resp = self._post(
            f"{DROPBOX_API}/files/get_temporary_link", json_body={"path": path}
        )
        link = _json(resp).get("link")
        if not link:
            raise RemoteStoreError(f"No temporary link returned for {path}")
        return link

    def list_folder(self, folder: str, recursive: bool = False) -> list[dict]:
        # Dropbox names the root folder "", not "/".
        body = {"path": "" if folder == "/" else folder, "recursive": recursive}
        result = _json(self._post(f"{DROPBOX_API}/files/list_folder", json_body=body))
        entries = list(result.get("entries", []))

        while result.get("has_more"):
            result = _json(self._post(
                f"{DROPBOX_API}/files/list_folder/continue",
                json_body={"cursor": result["cursor"]},
            ))
            entries.extend(result.get("entries", []))
        return entries


class LocalBackend(StoreBackend):
    """A directory tree standing in for the remote store.

    Args:
        root: Directory that maps to the remote ``/``.
    """

    def __init__(self, root: Path):
        self.root = Path(root).expanduser()
        self.root.mkdir(parents=True, exist_ok=True)

    @property
    def name(self) -> str:
        return "local"

    def _resolve(self, path: str) -> Path:
        target = (self.root / path.lstrip("/")).resolve()
        root = self.root.resolve()
        if target != root and root not in target.parents:
            raise RemoteStoreError(f"path/malformed_path/: {path}")
        return target

    def put(self, path: str, data: bytes, overwrite: bool = True) -> None:
        target = self._resolve(path)
        if target.exists() and not overwrite:
            raise RemoteStoreError(f"path/conflict/file/: {path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise RemoteStoreError(f"Local store write failed: {exc}") from exc
        logger.info("Stored %d bytes at local:%s", len(data), path)

    def get(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise RemoteStoreError(f"path/not_found/: {path}")
        return target.read_bytes()

    def temporary_link(self, path: str) -> str:
        target = self._resolve(path)
        if not target.is_file():
            raise RemoteStoreError(f"path/not_found/: {path}")
        return target.as_uri()

    def list_folder(self, folder: str, recursive: bool = False) -> list[dict]:
        target = self._resolve(folder)
        if not target.is_dir():
            raise RemoteStoreError(f"path/not_found/: {folder}")
        found = target.rglob("*") if recursive else target.iterdir()
        return [
            {
                ".tag": "folder" if p.is_dir() else "file",
                "name": p.name,
                "path_display": "/" + p.relative_to(self.root.resolve()).as_posix(),
            }
            for p in sorted(found)
        ]


def _json(resp: requests.Response) -> dict[str, Any]:
    try:
        return resp.json()
    except ValueError as exc:
        raise RemoteStoreError(
            f"Unreadable response from store (HTTP {resp.status_code})"
        ) from exc


def _error_summary(resp: requests.Response) -> str:
    """Pull the store's own error text out of a failed response."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error_summary"):
        return body["error_summary"]
    text = (resp.text or resp.reason or "").strip()
    return f"HTTP {resp.status_code}: {text[:200]}"


def create_backend(config: RelayConfig) -> StoreBackend:
    """Factory function to create the configured backend.

    Args:
        config: Resolved relay configuration.

    Returns:
        Instantiated StoreBackend.

    Raises:
        ConfigError: If the backend is missing what it needs.
    """
    if config.backend == BackendType.DROPBOX:
        token = config.token.get_secret_value() if config.token else ""
        return DropboxBackend(token, timeout=config.http_timeout)
    if config.backend == BackendType.LOCAL:
        if config.local_store is None:
            raise ConfigError("Local backend needs local_store to be set")
        return LocalBackend(config.local_store)
    raise ConfigError(f"Unsupported backend: {config.backend}")
