"""
Relay server -- the long-lived loop between the game and the store.

Each cycle: create the endpoint, wait for the game, read one command,
dispatch it, write one reply, tear the endpoint down. Cycles never
overlap, and nothing but the startup configuration survives from one
cycle to the next.
"""

from __future__ import annotations

import logging
import signal
import threading
from pathlib import Path
from typing import Optional

from .channel import ChannelServer
from .cloud import CloudSyncService, create_backend
from .dispatcher import CommandDispatcher
from .errors import (
    ChannelCreateError,
    ChannelError,
    ChannelIoError,
    ChannelTimeoutError,
)
from .models import RelayConfig, Response
from .protocol import decode_command, encode_response
from .saves import SaveFileService

logger = logging.getLogger("turnrelay.server")

LOG_DIR = "logs"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def setup_logging(home: Path, verbose: bool = False) -> Path:
    """Send relay logs to ``<home>/logs/relay.log``.

    Returns:
        Path of the log file.
    """
    log_dir = Path(home).expanduser() / LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "relay.log"

    handler = logging.FileHandler(log_file)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    return log_file


class RelayServer:
    """Sequential one-command-per-connection relay.

    Args:
        config: Resolved startup configuration.
        dispatcher: Routes decoded commands to the services.
        channel: Endpoint adapter; built from ``config`` when omitted.
    """

    def __init__(
        self,
        config: RelayConfig,
        dispatcher: CommandDispatcher,
        channel: Optional[ChannelServer] = None,
    ):
        self.config = config
        self.dispatcher = dispatcher
        self.channel = channel or ChannelServer(
            name=config.channel_name,
            buffer_size=config.buffer_size,
            accept_attempts=config.accept_attempts,
            accept_interval=config.accept_interval,
        )
        self._stop_event = threading.Event()

    @classmethod
    def from_config(cls, config: RelayConfig) -> "RelayServer":
        """Wire up backend, services and dispatcher for ``config``."""
        cloud = CloudSyncService(
            create_backend(config),
            strategy=config.download_strategy,
            timeout=config.http_timeout,
        )
        dispatcher = CommandDispatcher(
            cloud=cloud,
            saves=SaveFileService(config.quicksave_name),
            save_dir=config.save_dir,
            remote_folder=config.remote_folder,
        )
        return cls(config, dispatcher)

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def serve_once(self) -> Optional[Response]:
        """Run one connection cycle.

        Returns:
            The response sent to the peer, or None when the cycle
            ended without a completed exchange.
        """
        try:
            handle = self.channel.create()
        except ChannelCreateError as exc:
            logger.error("%s; retrying in %.1fs", exc, self.config.retry_pause)
            self._stop_event.wait(timeout=self.config.retry_pause)
            return None

        try:
            self.channel.accept_with_timeout(handle)
            raw = self.channel.read(handle)
            if len(raw) >= self.config.buffer_size:
                logger.warning(
                    "Command filled the %d-byte buffer and may be truncated",
                    self.config.buffer_size,
                )

            command = decode_command(raw)
            logger.info("Received %s command", command.kind.value)
            response = self.dispatcher.dispatch(command)

            self.channel.write(
                handle, encode_response(response, limit=self.config.buffer_size)
            )
            logger.info("Replied: %s", response.text or response.path)
            return response
        except ChannelTimeoutError as exc:
            logger.debug("%s", exc)
        except ChannelIoError as exc:
            if exc.benign:
                logger.info("Peer disconnected: %s", exc)
            else:
                logger.error("Channel I/O failed: %s", exc)
        except ChannelError as exc:
            logger.error("Channel error: %s", exc)
        finally:
            self.channel.teardown(handle)
        return None

    def run_forever(self) -> None:
        """Serve cycles until ``stop`` is called or a signal arrives."""
        logger.info(
            "Relay listening on channel %s (buffer %d bytes)",
            self.config.channel_name, self.config.buffer_size,
        )
        try:
            while not self._stop_event.is_set():
                self.serve_once()
        except KeyboardInterrupt:
            pass
        logger.info("Relay stopped.")

    def stop(self) -> None:
        """Ask the loop to exit after the current cycle."""
        self._stop_event.set()

    def install_signal_handlers(self) -> None:
        """Stop cleanly on SIGTERM/SIGINT. Main thread only."""
        for sig in (signal.SIGTERM, signal.SIGINT):
            signal.signal(sig, self._handle_signal)

    def _handle_signal(self, signum, frame):
        logger.info("Received signal %s, stopping", signal.Signals(signum).name)
        self._stop_event.set()
