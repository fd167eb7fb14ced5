"""
Command dispatcher -- routes a decoded command to the services and
turns whatever happens into exactly one Response.

No channel I/O happens here, and no exception leaves ``dispatch``.
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import Callable
from urllib.parse import unquote, urlsplit

from .cloud import CloudSyncService, remote_path_for, remote_turn_path
from .errors import LocalFileError, RelayError, RemoteStoreError
from .models import Command, CommandKind, Response, SyncOutcome
from .saves import SaveFileService, turn_filename

logger = logging.getLogger("turnrelay.dispatcher")

FALLBACK_DOWNLOAD_NAME = "downloaded_save.sav"
NO_SAVES = "no saves"

# Wire prefixes per command: (success, failure).
REPLY_PREFIXES = {
    CommandKind.UPLOAD: ("UPLOAD_OK", "UPLOAD_FAIL"),
    CommandKind.DOWNLOAD: ("DOWNLOAD_OK", "DOWNLOAD_FAIL"),
    CommandKind.DOWNLOAD_URL: ("DOWNLOAD_OK", "DOWNLOAD_FAIL"),
    CommandKind.UPLOAD_PATH: ("UPLOAD_OK", "UPLOAD_FAIL"),
    CommandKind.LIST_SAVES: ("SAVES", "LIST_FAIL"),
}


def filename_from_url(url: str) -> str:
    """Last path segment of a URL, or a generic save name."""
    segment = posixpath.basename(unquote(urlsplit(url).path))
    return segment or FALLBACK_DOWNLOAD_NAME


class CommandDispatcher:
    """Maps commands onto SaveFileService and CloudSyncService calls.

    Args:
        cloud: Remote store access.
        saves: Local save file access.
        save_dir: The game's save directory; downloads land here too.
        remote_folder: Remote folder that holds the turn saves.
    """

    def __init__(
        self,
        cloud: CloudSyncService,
        saves: SaveFileService,
        save_dir: Path,
        remote_folder: str,
    ):
        self.cloud = cloud
        self.saves = saves
        self.save_dir = Path(save_dir).expanduser()
        self.remote_folder = remote_folder
        self._handlers: dict[CommandKind, Callable[[Command], SyncOutcome]] = {
            CommandKind.UPLOAD: self._upload_turn,
            CommandKind.DOWNLOAD: self._download_turn,
            CommandKind.DOWNLOAD_URL: self._download_url,
            CommandKind.UPLOAD_PATH: self._upload_path,
            CommandKind.LIST_SAVES: self._list_saves,
        }

    def dispatch(self, command: Command) -> Response:
        """Run a command and build its reply. Never raises."""
        if command.kind == CommandKind.STATUS:
            return Response.ack("STATUS_OK: operational")
        if command.kind == CommandKind.UNKNOWN:
            logger.info("Unrecognized command: %r", command.raw)
            return Response.ack(f"UNKNOWN_COMMAND: unrecognized: {command.raw}")

        handler = self._handlers[command.kind]
        ok_prefix, fail_prefix = REPLY_PREFIXES[command.kind]
        try:
            outcome = handler(command)
        except LocalFileError as exc:
            logger.error("%s failed: %s", command.kind.value, exc)
            outcome = SyncOutcome.failure(str(exc))
        except RemoteStoreError as exc:
            logger.error("%s failed: %s", command.kind.value, exc.summary)
            outcome = SyncOutcome.failure(exc.summary)
        except RelayError as exc:
            logger.error("%s failed: %s", command.kind.value, exc)
            outcome = SyncOutcome.failure(str(exc))
        except Exception as exc:
            logger.exception("Unexpected error handling %s", command.kind.value)
            outcome = SyncOutcome.failure(f"internal error: {exc}")

        if not outcome.ok:
            return Response.error(f"{fail_prefix}: {outcome.message}")
        if command.kind == CommandKind.DOWNLOAD:
            return Response.load(outcome.path, f"{ok_prefix}: {outcome.message}")
        if command.kind == CommandKind.UPLOAD:
            return Response.ack(ok_prefix)
        if command.kind == CommandKind.LIST_SAVES and outcome.empty:
            return Response.ack(f"NO_SAVES: {NO_SAVES}")
        return Response.ack(f"{ok_prefix}: {outcome.message}")

    def _upload_turn(self, command: Command) -> SyncOutcome:
        local = self.saves.promote_to_turn(self.save_dir, command.turn)
        remote = remote_turn_path(self.remote_folder, command.turn)
        self.cloud.push(remote, self.saves.read_bytes(local))
        return SyncOutcome.success(f"uploaded {local.name}", remote)

    def _download_turn(self, command: Command) -> SyncOutcome:
        name = turn_filename(command.turn)
        data = self.cloud.resolve(remote_turn_path(self.remote_folder, command.turn))
        local = self.saves.write_bytes(self.save_dir, name, data)
        return SyncOutcome.success(f"downloaded {name}", str(local))

    def _download_url(self, command: Command) -> SyncOutcome:
        name = filename_from_url(command.url)
        data = self.cloud.fetch_url(command.url)
        local = self.saves.write_bytes(self.save_dir, name, data)
        return SyncOutcome.success(f"saved {command.url} to {local}", str(local))

    def _upload_path(self, command: Command) -> SyncOutcome:
        local = Path(command.local_path).expanduser()
        remote = command.remote_path or remote_path_for(self.remote_folder, local)
        if not remote.startswith("/"):
            remote = "/" + remote
        self.cloud.push(remote, self.saves.read_bytes(local))
        return SyncOutcome.success(f"uploaded {local.name} to {remote}", remote)

    def _list_saves(self, command: Command) -> SyncOutcome:
        names = self.cloud.list(self.remote_folder, recursive=False)
        if not names:
            return SyncOutcome.success(NO_SAVES, empty=True)
        return SyncOutcome.success(", ".join(names))
