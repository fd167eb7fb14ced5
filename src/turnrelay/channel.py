"""
Local duplex channel -- the game's side door into the relay.

One endpoint is created per connection cycle, one peer is accepted,
one buffer is read, one reply is written, and the endpoint is torn
down again. All raw socket calls live in this module.

On Linux the endpoint lives in the abstract socket namespace, so it
never touches the filesystem and vanishes with the process. Elsewhere
it is a socket file in the temp directory. Platforms without Unix
domain sockets (Windows) are not supported: ``channel_supported``
reports this so callers can refuse to start.

The listener is closed as soon as a peer is accepted. A second peer
connecting mid-cycle is refused and retries, the same way a
single-instance named pipe reports itself busy.
"""

from __future__ import annotations

import errno
import logging
import os
import socket
import sys
import tempfile
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional

from .errors import (
    ChannelCreateError,
    ChannelError,
    ChannelIoError,
    ChannelTimeoutError,
)
from .models import DEFAULT_BUFFER_SIZE, DEFAULT_CHANNEL_NAME

logger = logging.getLogger("turnrelay.channel")

USE_ABSTRACT_NAMESPACE = sys.platform.startswith("linux")


def endpoint_address(name: str) -> str:
    """Map a channel name to the socket address both sides use.

    Args:
        name: Channel name, e.g. ``turnrelay_pipe``.

    Returns:
        Abstract address on Linux, socket file path elsewhere.
    """
    if USE_ABSTRACT_NAMESPACE:
        return f"\0turnrelay/{name}"
    return os.path.join(tempfile.gettempdir(), f"turnrelay-{name}.sock")


def channel_supported() -> bool:
    """Whether this platform can host a channel endpoint."""
    return hasattr(socket, "AF_UNIX")


class ChannelState(str, Enum):
    """Lifecycle of a single endpoint."""

    IDLE = "idle"
    LISTENING = "listening"
    ACCEPTING = "accepting"
    CONNECTED = "connected"
    CLOSED = "closed"


class ChannelHandle:
    """One endpoint and, once accepted, its peer connection.

    Owned by a single loop iteration. Never reuse a handle after
    ``ChannelServer.teardown``.
    """

    def __init__(self, name: str, address: str, listener: socket.socket):
        self.name = name
        self.address = address
        self.state = ChannelState.LISTENING
        self._listener: Optional[socket.socket] = listener
        self._conn: Optional[socket.socket] = None
        self._has_read = False
        self._has_written = False

    @property
    def closed(self) -> bool:
        return self.state == ChannelState.CLOSED

    def __repr__(self) -> str:
        return f"<ChannelHandle {self.name} {self.state.value}>"


class ChannelServer:
    """Creates, accepts and tears down channel endpoints.

    Args:
        name: Channel name the peer connects to.
        buffer_size: Size of the single bounded read.
        accept_attempts: Accept polls before giving up.
        accept_interval: Seconds per accept poll.
    """

    def __init__(
        self,
        name: str = DEFAULT_CHANNEL_NAME,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        accept_attempts: int = 50,
        accept_interval: float = 0.1,
    ):
        self.name = name
        self.address = endpoint_address(name)
        self.buffer_size = buffer_size
        self.accept_attempts = accept_attempts
        self.accept_interval = accept_interval

    def create(self) -> ChannelHandle:
        """Create the endpoint and start listening.

        Returns:
            A handle in the LISTENING state.

        Raises:
            ChannelCreateError: If the endpoint cannot be created.
        """
        if not channel_supported():
            raise ChannelCreateError(
                f"Failed to create channel {self.name}: "
                "Unix domain sockets are not available on this platform"
            )
        try:
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        except OSError as exc:
            raise ChannelCreateError(
                f"Failed to create channel {self.name}: {exc}"
            ) from exc

        try:
            if not USE_ABSTRACT_NAMESPACE and os.path.exists(self.address):
                os.unlink(self.address)
            sock.bind(self.address)
            sock.listen(1)
        except OSError as exc:
            sock.close()
            raise ChannelCreateError(
                f"Failed to create channel {self.name}: {exc}"
            ) from exc

        logger.debug("Channel %s listening", self.name)
        return ChannelHandle(self.name, self.address, sock)

    def accept_with_timeout(
        self,
        handle: ChannelHandle,
        max_attempts: Optional[int] = None,
        interval: Optional[float] = None,
    ) -> ChannelHandle:
        """Wait for a peer, polling in fixed intervals.

        Args:
            handle: A LISTENING handle from ``create``.
            max_attempts: Polls before giving up (default from init).
            interval: Seconds per poll (default from init).

        Returns:
            The same handle, now CONNECTED.

        Raises:
            ChannelTimeoutError: No peer within the window. The handle
                is torn down before this is raised.
            ChannelIoError: The accept call itself failed.
        """
        if handle.state != ChannelState.LISTENING:
            raise ChannelError(f"Cannot accept on {handle!r}")

        attempts = self.accept_attempts if max_attempts is None else max_attempts
        interval = self.accept_interval if interval is None else interval
        listener = handle._listener
        listener.settimeout(interval)
        handle.state = ChannelState.ACCEPTING

        for attempt in range(1, attempts + 1):
            try:
                conn, _ = listener.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                self.teardown(handle)
                raise ChannelIoError(
                    "Peer disconnected before connection", exc.errno
                ) from exc

            conn.settimeout(None)
            handle._conn = conn
            handle.state = ChannelState.CONNECTED
            self._release_listener(handle)
            logger.debug(
                "Peer connected on %s after %d attempt(s)", self.name, attempt
            )
            return handle

        self.teardown(handle)
        raise ChannelTimeoutError(
            f"No peer on {self.name} after {attempts} attempts "
            f"({attempts * interval:.1f}s)"
        )

    def read(self, handle: ChannelHandle) -> bytes:
        """Perform the one bounded read of a connection.

        Anything beyond ``buffer_size`` bytes is never read.

        Raises:
            ChannelIoError: On a failed read. A peer that closed
                without sending is reported as a benign disconnect.
        """
        conn = self._connected(handle)
        if handle._has_read:
            raise ChannelError("Channel already read for this connection")
        handle._has_read = True

        try:
            data = conn.recv(self.buffer_size)
        except OSError as exc:
            raise ChannelIoError("Failed to read from channel", exc.errno) from exc

        if not data:
            raise ChannelIoError(
                "Peer closed channel before sending", errno.EPIPE, benign=True
            )
        return data

    def write(self, handle: ChannelHandle, data: bytes) -> None:
        """Perform the one write of a connection.

        Raises:
            ChannelIoError: If the write fails or is short.
        """
        conn = self._connected(handle)
        if handle._has_written:
            raise ChannelError("Channel already written for this connection")
        handle._has_written = True

        try:
            sent = conn.send(data)
        except OSError as exc:
            raise ChannelIoError("Failed to write to channel", exc.errno) from exc

        if sent != len(data):
            raise ChannelIoError(
                f"Short write to channel ({sent} of {len(data)} bytes)",
                benign=False,
            )

    def teardown(self, handle: ChannelHandle) -> None:
        """Disconnect the peer and release the endpoint.

        Safe to call more than once and from any state.
        """
        if handle.closed:
            return

        conn, handle._conn = handle._conn, None
        if conn is not None:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError as exc:
                # Peer already gone; nothing left to disconnect.
                logger.debug("Disconnect on %s: %s", self.name, exc)
            conn.close()

        self._release_listener(handle)
        handle.state = ChannelState.CLOSED
        logger.debug("Channel %s closed", self.name)

    @contextmanager
    def session(self) -> Iterator[ChannelHandle]:
        """Create an endpoint and guarantee its teardown.

        Yields:
            A LISTENING handle. It is torn down on every exit path.
        """
        handle = self.create()
        try:
            yield handle
        finally:
            self.teardown(handle)

    def _release_listener(self, handle: ChannelHandle) -> None:
        """Stop taking new peers on this endpoint. Idempotent."""
        listener, handle._listener = handle._listener, None
        if listener is None:
            return
        listener.close()
        if not USE_ABSTRACT_NAMESPACE:
            try:
                os.unlink(self.address)
            except FileNotFoundError:
                pass

    def _connected(self, handle: ChannelHandle) -> socket.socket:
        if handle.state != ChannelState.CONNECTED or handle._conn is None:
            raise ChannelError(f"{handle!r} is not connected")
        return handle._conn
