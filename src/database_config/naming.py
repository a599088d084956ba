"""
Name validation and on-disk file name construction.

Paths here are server-side paths, so they are built with `PureWindowsPath`
regardless of the client platform.
"""

from __future__ import annotations

from pathlib import PureWindowsPath

from src.database_config.errors import InvalidNameError
from src.enums import FileKind

RESERVED_PATH_CHARACTERS = frozenset('\\/:*?"<>|')

_SUFFIX_BY_KIND = {
    FileKind.LOG: ".ldf",
    FileKind.FILESTREAM: "",
}


def file_suffix(kind: FileKind, *, is_primary_file: bool = False) -> str:
    """Extension for a new file: .mdf (primary), .ndf (other data), .ldf (log), none (filestream)."""
    if kind is FileKind.DATA:
        return ".mdf" if is_primary_file else ".ndf"
    return _SUFFIX_BY_KIND[kind]


def check_file_name(name: str, *, kind: str = "file") -> None:
    """Raise `InvalidNameError` for a blank name or one containing a reserved path character."""
    if not name or not name.strip():
        raise InvalidNameError(name, kind=kind)
    for character in name:
        if character in RESERVED_PATH_CHARACTERS:
            raise InvalidNameError(name, character, kind=kind)


def is_valid_directory_name(name: str) -> bool:
    """
    True if `name` can be used as a single directory name.

    Rejects blanks, reserved path characters, control characters and names
    ending in a dot or a space.
    """
    if not name or not name.strip():
        return False
    if name.endswith((".", " ")):
        return False
    return not any(c in RESERVED_PATH_CHARACTERS or ord(c) < 32 for c in name)


def make_disk_file_name(folder: str, logical_name: str, physical_name: str, suffix: str) -> str:
    """
    Full server-side path for a new file.

    Without a physical name, the logical name plus `suffix` is used. An explicit
    physical name is used as-is, but the logical name must still be non-blank.
    """
    if not physical_name:
        check_file_name(logical_name)
        file_name = logical_name + suffix
    else:
        if not logical_name or not logical_name.strip():
            raise InvalidNameError(logical_name)
        check_file_name(physical_name)
        file_name = physical_name
    if not folder:
        return file_name
    return str(PureWindowsPath(folder, file_name))


def split_disk_file_name(path: str) -> tuple[str, str]:
    """
    Split an engine-reported path into (folder, file name).

    A raw device ("X:") has no folder/file split; the whole path is the folder.
    """
    if path.endswith(":"):
        return path, ""
    windows_path = PureWindowsPath(path)
    folder = str(windows_path.parent) if windows_path.parent != PureWindowsPath(".") else ""
    return folder, windows_path.name


def normalize_folder(folder: str) -> str:
    r"""Insert the missing separator after a bare drive letter: 'C:data' -> 'C:\data'."""
    if len(folder) >= 3 and folder[1] == ":" and folder[2] != "\\":
        return f"{folder[:2]}\\{folder[2:]}"
    return folder
