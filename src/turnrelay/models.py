"""
Pydantic models for the relay: commands in, responses out,
transfer outcomes and the startup configuration.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, SecretStr

DEFAULT_CHANNEL_NAME = "turnrelay_pipe"
DEFAULT_BUFFER_SIZE = 1024
DEFAULT_SAVE_DIR = Path("~/.turnrelay/saves")
DEFAULT_REMOTE_FOLDER = "/highest_numbered_files"
QUICKSAVE_NAME = "quicksave.sav"


class CommandKind(str, Enum):
    """Commands a peer can send."""

    UPLOAD = "upload"
    DOWNLOAD = "download"
    DOWNLOAD_URL = "download_url"
    UPLOAD_PATH = "upload_path"
    LIST_SAVES = "list_saves"
    STATUS = "status"
    UNKNOWN = "unknown"


class Command(BaseModel):
    """One decoded peer command.

    Only the fields that belong to ``kind`` are set: ``turn`` for
    upload/download, ``url`` for download_url, ``local_path`` and
    ``remote_path`` for upload_path, ``raw`` for unknown.
    """

    kind: CommandKind
    turn: Optional[str] = None
    url: Optional[str] = None
    local_path: Optional[str] = None
    remote_path: Optional[str] = None
    raw: Optional[str] = None

    @classmethod
    def upload(cls, turn: str) -> "Command":
        return cls(kind=CommandKind.UPLOAD, turn=turn)

    @classmethod
    def download(cls, turn: str) -> "Command":
        return cls(kind=CommandKind.DOWNLOAD, turn=turn)

    @classmethod
    def download_url(cls, url: str) -> "Command":
        return cls(kind=CommandKind.DOWNLOAD_URL, url=url)

    @classmethod
    def upload_path(cls, local_path: str, remote_path: Optional[str] = None) -> "Command":
        return cls(
            kind=CommandKind.UPLOAD_PATH,
            local_path=local_path,
            remote_path=remote_path,
        )

    @classmethod
    def unknown(cls, raw: str) -> "Command":
        return cls(kind=CommandKind.UNKNOWN, raw=raw)


class ResponseKind(str, Enum):
    """Shapes a response can take on the wire."""

    ACK = "ack"
    ERROR = "error"
    LOAD = "load"


class Response(BaseModel):
    """The single reply sent back for a command."""

    kind: ResponseKind
    text: str = ""
    path: Optional[str] = None

    @classmethod
    def ack(cls, text: str) -> "Response":
        return cls(kind=ResponseKind.ACK, text=text)

    @classmethod
    def error(cls, text: str) -> "Response":
        return cls(kind=ResponseKind.ERROR, text=text)

    @classmethod
    def load(cls, path: str, text: str = "") -> "Response":
        return cls(kind=ResponseKind.LOAD, text=text, path=path)


class SyncOutcome(BaseModel):
    """Result of one transfer, always with a message for the peer."""

    ok: bool
    message: str
    path: Optional[str] = None
    empty: bool = False

    @classmethod
    def success(
        cls, message: str, path: Optional[str] = None, empty: bool = False
    ) -> "SyncOutcome":
        return cls(ok=True, message=message, path=path, empty=empty)

    @classmethod
    def failure(cls, message: str) -> "SyncOutcome":
        return cls(ok=False, message=message)


class BackendType(str, Enum):
    """Supported remote stores."""

    DROPBOX = "dropbox"
    LOCAL = "local"


class DownloadStrategy(str, Enum):
    """How objects are fetched from the remote store."""

    AUTO = "auto"
    DIRECT = "direct"
    TEMPORARY_LINK = "temporary_link"


class RelayConfig(BaseModel):
    """Startup configuration, resolved once before the loop starts.

    Attributes:
        channel_name: Name of the local endpoint the game connects to.
        buffer_size: Size of the single read; longer messages are cut.
        accept_attempts: Accept polls before giving up on a peer.
        accept_interval: Seconds per accept poll.
        retry_pause: Seconds to wait after a failed endpoint create.
        save_dir: Directory the game writes its saves to.
        quicksave_name: File name of the game's quicksave.
        remote_folder: Remote folder holding the turn saves.
        backend: Which remote store to talk to.
        local_store: Root directory for the local backend.
        download_strategy: Direct fetch, temporary link, or both.
        http_timeout: Seconds before a remote request is abandoned.
        token: Bearer credential for the remote store.
    """

    channel_name: str = DEFAULT_CHANNEL_NAME
    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, gt=0)
    accept_attempts: int = Field(default=50, gt=0)
    accept_interval: float = Field(default=0.1, gt=0)
    retry_pause: float = Field(default=1.0, ge=0)
    save_dir: Path = DEFAULT_SAVE_DIR
    quicksave_name: str = QUICKSAVE_NAME
    remote_folder: str = DEFAULT_REMOTE_FOLDER
    backend: BackendType = BackendType.DROPBOX
    local_store: Optional[Path] = None
    download_strategy: DownloadStrategy = DownloadStrategy.AUTO
    http_timeout: float = Field(default=30.0, gt=0)
    token: Optional[SecretStr] = Field(default=None, exclude=True)
