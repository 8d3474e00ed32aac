from __future__ import annotations

import logging
import os
import stat
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from envdir.environment import (
    contains_null_byte,
    decode_value,
    is_valid_variable_name,
    strip_trailing_terminator,
)

logger = logging.getLogger(__name__)

EntryKind = Literal["file", "directory", "symlink"]


class LoaderError(RuntimeError):
    def __init__(self, message: str, path: Path | str) -> None:
        super().__init__(message)
        self.path = Path(path)


class DirectoryReadError(LoaderError):
    pass


class SymlinkResolutionError(LoaderError):
    pass


class StatError(LoaderError):
    pass


class FileReadError(LoaderError):
    pass


class InvalidContentError(LoaderError):
    pass


@dataclass(frozen=True, slots=True)
class DirectoryEntry:
    """One child of the environment directory.

    ``path`` is the entry itself; for a symlink ``target`` is the resolved
    link target, which is where the value is read from.
    """

    name: str
    path: Path
    kind: EntryKind
    size: int
    target: Path | None = None
    target_is_directory: bool = False

    @property
    def skipped(self) -> bool:
        return self.kind == "directory" or self.target_is_directory

    @property
    def content_path(self) -> Path:
        return self.target if self.target is not None else self.path


def list_directory(directory: Path) -> list[os.DirEntry[str]]:
    try:
        with os.scandir(directory) as entries:
            listing = list(entries)
    except OSError as exc:
        raise DirectoryReadError(
            f"cannot read directory {directory}: {exc.strerror or exc}", directory
        ) from exc
    return sorted(listing, key=lambda item: item.name)


def inspect_entry(directory: Path, dir_entry: os.DirEntry[str]) -> DirectoryEntry:
    entry_path = Path(dir_entry.path)
    try:
        if dir_entry.is_dir(follow_symlinks=False):
            return DirectoryEntry(dir_entry.name, entry_path, "directory", 0)
        is_symlink = dir_entry.is_symlink()
    except OSError as exc:
        raise StatError(f"cannot inspect {entry_path}: {exc.strerror or exc}", entry_path) from exc

    if is_symlink:
        return _resolve_symlink(directory, dir_entry.name, entry_path)

    try:
        size = dir_entry.stat(follow_symlinks=False).st_size
    except OSError as exc:
        raise StatError(f"cannot inspect {entry_path}: {exc.strerror or exc}", entry_path) from exc
    return DirectoryEntry(dir_entry.name, entry_path, "file", size)


def _resolve_symlink(directory: Path, name: str, link_path: Path) -> DirectoryEntry:
    try:
        raw_target = os.readlink(link_path)
    except OSError as exc:
        raise SymlinkResolutionError(
            f"cannot read symlink {link_path}: {exc.strerror or exc}", link_path
        ) from exc

    target = Path(raw_target)
    if not target.is_absolute():
        target = directory / target

    try:
        target_stat = os.stat(target)
    except OSError as exc:
        raise SymlinkResolutionError(
            f"cannot resolve symlink {link_path} -> {raw_target}: {exc.strerror or exc}",
            link_path,
        ) from exc

    return DirectoryEntry(
        name,
        link_path,
        "symlink",
        target_stat.st_size,
        target=target,
        target_is_directory=stat.S_ISDIR(target_stat.st_mode),
    )


def read_entry(entry: DirectoryEntry) -> str | None:
    """Return the value an entry defines, or ``None`` when it unsets the variable."""
    if entry.size == 0:
        return None

    content_path = entry.content_path
    try:
        data = content_path.read_bytes()
    except OSError as exc:
        raise FileReadError(f"cannot read {content_path}: {exc.strerror or exc}", content_path) from exc

    if contains_null_byte(data):
        raise InvalidContentError(f"{content_path} contains a null character", content_path)

    data = strip_trailing_terminator(data)
    if not data:
        return None
    return decode_value(data)


def build_environment(directory: Path, base: Mapping[str, str]) -> dict[str, str]:
    """Apply every variable file in ``directory`` on top of ``base``.

    ``base`` is copied, never mutated. Any loader error aborts the whole
    build, so callers either get the complete map or nothing.
    """
    environment = dict(base)
    for dir_entry in list_directory(directory):
        name = dir_entry.name
        if not is_valid_variable_name(name):
            logger.debug("skipping %s: not a valid variable name", name)
            continue

        entry = inspect_entry(directory, dir_entry)
        if entry.target_is_directory:
            logger.debug("skipping %s: symlink to a directory", name)
            continue
        if entry.skipped:
            logger.debug("skipping %s: directory", name)
            continue

        value = read_entry(entry)
        if value is None:
            if environment.pop(name, None) is not None:
                logger.debug("unset %s", name)
            continue

        logger.debug("set %s", name)
        environment[name] = value

    return environment
