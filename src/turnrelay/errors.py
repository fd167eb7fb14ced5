"""
Error hierarchy for the relay.

Channel errors end one loop iteration. Everything else is turned into
an error response by the dispatcher before it can reach the loop.
"""

from __future__ import annotations

import errno as _errno
from pathlib import Path
from typing import Optional

# errno values that mean the peer went away on its own.
BENIGN_ERRNOS = frozenset({
    _errno.EPIPE,
    _errno.ECONNRESET,
    _errno.ECONNABORTED,
    _errno.ENOTCONN,
})


class RelayError(Exception):
    """Base class for all relay errors."""


class ConfigError(RelayError):
    """Startup configuration could not be resolved."""


class ChannelError(RelayError):
    """A failure on the local IPC channel."""


class ChannelCreateError(ChannelError):
    """The endpoint could not be created."""


class ChannelTimeoutError(ChannelError):
    """No peer connected within the accept window."""


class ChannelIoError(ChannelError):
    """A read or write on a connected channel failed.

    Args:
        message: What was being attempted.
        errno: OS error number, when one was reported.
        benign: True when the peer simply closed its end.
    """

    def __init__(
        self,
        message: str,
        errno: Optional[int] = None,
        benign: Optional[bool] = None,
    ):
        super().__init__(message)
        self.errno = errno
        if benign is None:
            benign = errno in BENIGN_ERRNOS
        self.benign = benign

    def __str__(self) -> str:
        base = super().__str__()
        if self.errno is not None:
            return f"{base} (errno {self.errno})"
        return base


class CommandParseError(RelayError):
    """An inbound buffer did not match the command grammar."""


class RemoteStoreError(RelayError):
    """The remote store rejected a request or could not be reached.

    Args:
        summary: The backend's own error text, kept verbatim.
        status: HTTP status code, if any.
    """

    def __init__(self, summary: str, status: Optional[int] = None):
        super().__init__(summary)
        self.summary = summary
        self.status = status


class LocalFileError(RelayError):
    """A local save file was missing or could not be accessed.

    Args:
        message: Short description of the failure.
        path: The file that was expected or touched.
        hint: What the user can check to fix it.
    """

    def __init__(self, message: str, path: Path, hint: str = ""):
        super().__init__(message)
        self.path = Path(path)
        self.hint = hint

    def __str__(self) -> str:
        text = f"{super().__str__()}: {self.path}"
        if self.hint:
            text = f"{text} ({self.hint})"
        return text
