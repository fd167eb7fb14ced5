"""
Local save files -- turning the game's quicksave into a turn save.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .errors import LocalFileError
from .models import QUICKSAVE_NAME

logger = logging.getLogger("turnrelay.saves")


def turn_filename(turn_id: str) -> str:
    """Canonical file name for a turn. The id is used verbatim."""
    return f"turn_{turn_id}.sav"


class SaveFileService:
    """Renames and reads save files in the game's save directory.

    Args:
        quicksave_name: File name the game writes its quicksave to.
    """

    def __init__(self, quicksave_name: str = QUICKSAVE_NAME):
        self.quicksave_name = quicksave_name

    def promote_to_turn(self, source_dir: Path, turn_id: str) -> Path:
        """Rename the quicksave in ``source_dir`` to ``turn_<id>.sav``.

        An existing file with the target name is replaced.

        Args:
            source_dir: The game's save directory.
            turn_id: Turn identifier, not validated.

        Returns:
            Path of the renamed file.

        Raises:
            LocalFileError: If the quicksave is missing or cannot be renamed.
        """
        source_dir = Path(source_dir).expanduser()
        source = source_dir / self.quicksave_name
        target = source_dir / turn_filename(turn_id)

        if not source.is_file():
            hint = (
                f"expected the game to write {self.quicksave_name} "
                f"in {source_dir}"
            )
            if not source_dir.is_dir():
                hint = f"save directory {source_dir} does not exist"
            raise LocalFileError("Save file not found", source, hint)

        try:
            os.replace(source, target)
        except PermissionError as exc:
            raise LocalFileError(
                "Permission denied renaming save", source,
                f"check write access to {source_dir}",
            ) from exc
        except OSError as exc:
            raise LocalFileError(f"Could not rename save ({exc})", source) from exc

        logger.info("Renamed %s -> %s", source.name, target.name)
        return target

    def read_bytes(self, path: Path) -> bytes:
        """Read a local file, mapping failures to LocalFileError."""
        path = Path(path).expanduser()
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise LocalFileError(
                "File not found", path, f"expected it in {path.parent}"
            ) from exc
        except PermissionError as exc:
            raise LocalFileError(
                "Permission denied reading file", path, "check file permissions"
            ) from exc
        except IsADirectoryError as exc:
            raise LocalFileError("Path is a directory", path) from exc

    def write_bytes(self, target_dir: Path, name: str, data: bytes) -> Path:
        """Write ``data`` to ``target_dir/name``, creating the directory."""
        target_dir = Path(target_dir).expanduser()
        path = target_dir / name
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except PermissionError as exc:
            raise LocalFileError(
                "Permission denied writing file", path,
                f"check write access to {target_dir}",
            ) from exc
        except OSError as exc:
            raise LocalFileError(f"Could not write file ({exc})", path) from exc
        logger.info("Wrote %d bytes to %s", len(data), path)
        return path
