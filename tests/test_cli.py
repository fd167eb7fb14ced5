"""Tests for the turnrelay command line via CliRunner."""

from __future__ import annotations

import socket
from pathlib import Path

import yaml
from click.testing import CliRunner

from turnrelay.cli import main


def _invoke(*args):
    return CliRunner().invoke(main, list(args))


class TestHelp:

    def test_lists_commands(self):
        result = _invoke("--help")
        assert result.exit_code == 0
        for name in ("serve", "send", "saves", "config"):
            assert name in result.output

    def test_version(self):
        result = _invoke("--version")
        assert result.exit_code == 0
        assert "turnrelay" in result.output


class TestConfigCommands:

    def test_set_then_show(self, relay_home: Path):
        result = _invoke("config", "set", "channel_name", "coop_pipe", "--home", str(relay_home))
        assert result.exit_code == 0

        data = yaml.safe_load((relay_home / "config" / "relay.yaml").read_text())
        assert data["channel_name"] == "coop_pipe"

        result = _invoke("config", "show", "--home", str(relay_home))
        assert result.exit_code == 0
        assert "coop_pipe" in result.output

    def test_set_validates(self, relay_home: Path):
        result = _invoke("config", "set", "buffer_size", "nope", "--home", str(relay_home))
        assert result.exit_code == 1

    def test_set_unknown_key(self, relay_home: Path):
        result = _invoke("config", "set", "colour", "blue", "--home", str(relay_home))
        assert result.exit_code == 1

    def test_refuses_token(self, relay_home: Path):
        result = _invoke("config", "set", "token", "abc", "--home", str(relay_home))
        assert result.exit_code == 1
        assert not (relay_home / "config" / "relay.yaml").exists()

    def test_set_keeps_existing_token(self, relay_home: Path):
        config_file = relay_home / "config" / "relay.yaml"
        config_file.parent.mkdir(parents=True)
        config_file.write_text("token: keep-me\n")

        _invoke("config", "set", "buffer_size", "2048", "--home", str(relay_home))
        data = yaml.safe_load(config_file.read_text())
        assert data == {"token": "keep-me", "buffer_size": 2048}


class TestSavesCommands:

    def test_list_local(self, relay_home: Path):
        remote = relay_home / "store" / "highest_numbered_files"
        remote.mkdir(parents=True)
        (remote / "turn_4.sav").write_bytes(b"4")

        result = _invoke("saves", "list", "--home", str(relay_home), "--backend", "local")
        assert result.exit_code == 0
        assert "turn_4.sav" in result.output

    def test_list_missing_folder_fails(self, relay_home: Path):
        result = _invoke("saves", "list", "--home", str(relay_home), "--backend", "local")
        assert result.exit_code == 1
        assert "Listing failed" in result.output

    def test_push_then_pull(self, relay_home: Path, tmp_path: Path, monkeypatch):
        save_dir = tmp_path / "game"
        monkeypatch.setenv("TURNRELAY_SAVE_DIR", str(save_dir))
        source = tmp_path / "turn_5.sav"
        source.write_bytes(b"five")

        result = _invoke("saves", "push", str(source), "--home", str(relay_home), "--backend", "local")
        assert result.exit_code == 0, result.output

        result = _invoke("saves", "pull", "5", "--home", str(relay_home), "--backend", "local")
        assert result.exit_code == 0, result.output
        assert (save_dir / "turn_5.sav").read_bytes() == b"five"

    def test_pull_missing_fails(self, relay_home: Path, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("TURNRELAY_SAVE_DIR", str(tmp_path / "game"))
        result = _invoke("saves", "pull", "1", "--home", str(relay_home), "--backend", "local")
        assert result.exit_code == 1
        assert "DOWNLOAD_FAIL" in result.output


class TestServeAndSend:

    def test_serve_without_token_exits(self, relay_home: Path):
        result = _invoke("serve", "--home", str(relay_home))
        assert result.exit_code == 1
        assert "No access token" in result.output

    def test_serve_refuses_platform_without_unix_sockets(self, relay_home: Path, monkeypatch):
        monkeypatch.delattr(socket, "AF_UNIX", raising=False)
        result = _invoke("serve", "--home", str(relay_home), "--backend", "local")
        assert result.exit_code == 1
        assert "Unsupported platform" in result.output

    def test_send_without_relay_exits(self, channel_name: str):
        result = _invoke("send", "GET_STATUS", "--channel", channel_name, "--retries", "1")
        assert result.exit_code == 1
        assert "No reply" in result.output
