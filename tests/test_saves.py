"""Tests for local save file handling."""

from __future__ import annotations

from pathlib import Path

import pytest

from turnrelay.errors import LocalFileError
from turnrelay.saves import SaveFileService, turn_filename


@pytest.fixture
def saves() -> SaveFileService:
    return SaveFileService()


def test_turn_filename_uses_id_verbatim():
    assert turn_filename("7") == "turn_7.sav"
    assert turn_filename("seven") == "turn_seven.sav"


class TestPromoteToTurn:

    def test_renames_quicksave(self, saves, save_dir: Path):
        (save_dir / "quicksave.sav").write_bytes(b"turn seven")
        result = saves.promote_to_turn(save_dir, "7")
        assert result == save_dir / "turn_7.sav"
        assert result.read_bytes() == b"turn seven"
        assert not (save_dir / "quicksave.sav").exists()

    def test_replaces_existing_turn_file(self, saves, save_dir: Path):
        (save_dir / "turn_7.sav").write_bytes(b"old")
        (save_dir / "quicksave.sav").write_bytes(b"new")
        saves.promote_to_turn(save_dir, "7")
        assert (save_dir / "turn_7.sav").read_bytes() == b"new"

    def test_non_numeric_turn_accepted(self, saves, save_dir: Path):
        (save_dir / "quicksave.sav").write_bytes(b"x")
        assert saves.promote_to_turn(save_dir, "abc").name == "turn_abc.sav"

    def test_custom_quicksave_name(self, save_dir: Path):
        (save_dir / "autosave.dat").write_bytes(b"x")
        result = SaveFileService("autosave.dat").promote_to_turn(save_dir, "2")
        assert result.name == "turn_2.sav"

    def test_missing_quicksave(self, saves, save_dir: Path):
        with pytest.raises(LocalFileError) as excinfo:
            saves.promote_to_turn(save_dir, "7")
        assert excinfo.value.path == save_dir / "quicksave.sav"
        assert str(save_dir) in str(excinfo.value)

    def test_missing_directory_hint(self, saves, tmp_path: Path):
        with pytest.raises(LocalFileError) as excinfo:
            saves.promote_to_turn(tmp_path / "nowhere", "7")
        assert "does not exist" in excinfo.value.hint


class TestReadWrite:

    def test_read_missing(self, saves, tmp_path: Path):
        with pytest.raises(LocalFileError):
            saves.read_bytes(tmp_path / "missing.sav")

    def test_read_directory(self, saves, tmp_path: Path):
        with pytest.raises(LocalFileError):
            saves.read_bytes(tmp_path)

    def test_write_creates_directory(self, saves, tmp_path: Path):
        path = saves.write_bytes(tmp_path / "new" / "dir", "turn_1.sav", b"data")
        assert path.read_bytes() == b"data"
