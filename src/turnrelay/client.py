"""
Peer side of the channel -- what the game's hook does, in Python.

Connect (retrying while the relay is between cycles), send one
command, read one reply, close.
"""

from __future__ import annotations

import logging
import socket
import time

from .channel import channel_supported, endpoint_address
from .errors import ChannelIoError
from .models import DEFAULT_BUFFER_SIZE, DEFAULT_CHANNEL_NAME
from .protocol import parse_load_instruction

logger = logging.getLogger("turnrelay.client")

__all__ = ["send_command", "parse_load_instruction"]


def _connect(address: str, retries: int, wait: float) -> socket.socket:
    if not channel_supported():
        raise ChannelIoError(
            "Unix domain sockets are not available on this platform", benign=False
        )
    last_error: OSError = ConnectionRefusedError("channel not available")
    for attempt in range(1, retries + 1):
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(address)
            return sock
        except (ConnectionRefusedError, FileNotFoundError) as exc:
            # Relay is between cycles or not started yet.
            sock.close()
            last_error = exc
            logger.debug("Channel busy (attempt %d/%d)", attempt, retries)
            time.sleep(wait)
        except OSError:
            sock.close()
            raise
    raise ChannelIoError(
        f"Could not connect after {retries} attempts: {last_error}",
        last_error.errno,
        benign=False,
    )


def send_command(
    text: str,
    channel_name: str = DEFAULT_CHANNEL_NAME,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    retries: int = 5,
    wait: float = 1.0,
    timeout: float = 60.0,
) -> str:
    """Send one command to the relay and return its reply.

    Args:
        text: Command line, e.g. ``UPLOAD:7``.
        channel_name: Channel the relay listens on.
        buffer_size: Size of the single reply read.
        retries: Connection attempts before giving up.
        wait: Seconds between connection attempts.
        timeout: Seconds to wait for the reply.

    Returns:
        The reply text without its trailing newline.

    Raises:
        ChannelIoError: If the relay cannot be reached or hangs up.
    """
    sock = _connect(endpoint_address(channel_name), retries, wait)
    try:
        sock.settimeout(timeout)
        sock.sendall(text.encode("utf-8"))
        reply = sock.recv(buffer_size)
    except OSError as exc:
        raise ChannelIoError("Relay exchange failed", exc.errno) from exc
    finally:
        sock.close()

    if not reply:
        raise ChannelIoError("Relay closed the channel without replying", benign=True)
    return reply.decode("utf-8", errors="replace").rstrip("\n")
