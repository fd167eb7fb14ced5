"""Shared test fixtures for turnrelay."""

from __future__ import annotations

import uuid
from pathlib import Path

import pytest

from turnrelay.cloud import CloudSyncService, LocalBackend
from turnrelay.dispatcher import CommandDispatcher
from turnrelay.models import BackendType, RelayConfig
from turnrelay.saves import SaveFileService


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's own relay settings out of the tests."""
    for var in (
        "TURNRELAY_TOKEN", "DROPBOX_TOKEN", "TURNRELAY_SAVE_DIR",
        "TURNRELAY_CHANNEL", "TURNRELAY_BACKEND",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def relay_home(tmp_path: Path) -> Path:
    """Provide a temporary relay home directory."""
    home = tmp_path / ".turnrelay"
    home.mkdir()
    return home


@pytest.fixture
def save_dir(tmp_path: Path) -> Path:
    """The game's save directory."""
    d = tmp_path / "saves"
    d.mkdir()
    return d


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    """Root of the local stand-in for the remote store."""
    d = tmp_path / "store"
    d.mkdir()
    return d


@pytest.fixture
def channel_name() -> str:
    """A channel name no other test is using."""
    return f"test-{uuid.uuid4().hex[:12]}"


@pytest.fixture
def local_config(save_dir: Path, store_dir: Path, channel_name: str) -> RelayConfig:
    return RelayConfig(
        channel_name=channel_name,
        save_dir=save_dir,
        backend=BackendType.LOCAL,
        local_store=store_dir,
        accept_attempts=50,
        accept_interval=0.1,
        retry_pause=0,
    )


@pytest.fixture
def cloud(store_dir: Path) -> CloudSyncService:
    return CloudSyncService(LocalBackend(store_dir))


@pytest.fixture
def dispatcher(cloud: CloudSyncService, save_dir: Path) -> CommandDispatcher:
    return CommandDispatcher(
        cloud=cloud,
        saves=SaveFileService(),
        save_dir=save_dir,
        remote_folder="/highest_numbered_files",
    )
