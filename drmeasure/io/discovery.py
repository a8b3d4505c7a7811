"""Folder validation and audio file discovery."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable

from drmeasure.errors import InvalidFolder

SUPPORTED_AUDIO_EXTS = frozenset({".flac", ".wav", ".aif", ".aiff"})


def validate_folder(folder: Path) -> Path:
    folder = Path(folder)
    if not folder.exists() or not folder.is_dir():
        raise InvalidFolder(f"'{folder}' is not a valid directory.")
    return folder


def find_audio_files(
    folder: Path,
    *,
    recursive: bool = False,
    extensions: Iterable[str] = SUPPORTED_AUDIO_EXTS,
) -> list[Path]:
    """Collect supported audio files from a folder, sorted by path."""
    folder = validate_folder(folder)
    exts = {e.lower() for e in extensions}
    files = folder.rglob("*") if recursive else folder.glob("*")
    out = [p for p in files if p.is_file() and p.suffix.lower() in exts]
    return sorted(out)


def display_name(path: Path, root: Path | None = None) -> str:
    """Path relative to ``root`` in POSIX form, or the bare file name."""
    path = Path(path)
    if root is not None:
        try:
            return path.relative_to(root).as_posix()
        except ValueError:
            pass
    return path.name
