"""Read-only file system views used to carry bundle content around."""

from __future__ import annotations

import errno
import posixpath
import stat as _stat
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Iterator

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_SYNTHETIC_DIR_MODE = _stat.S_IFDIR | 0o555


def _check_path(name: str) -> None:
    """Reject names that are not clean, relative, slash-separated paths."""
    if name == ".":
        return
    if not name or name.startswith("/") or name.endswith("/"):
        raise ValueError(f"invalid path {name!r}")
    if any(part in ("", ".", "..") for part in name.split("/")):
        raise ValueError(f"invalid path {name!r}")


def _not_found(name: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, "file does not exist", name)


def _full_mode(mode: int) -> int:
    """A mode without file type bits describes a regular file."""
    return mode if _stat.S_IFMT(mode) else mode | _stat.S_IFREG


@dataclass(frozen=True)
class FileInfo:
    """Metadata about one entry of a file system."""

    name: str
    size: int
    mode: int
    mod_time: datetime

    @property
    def is_dir(self) -> bool:
        return _stat.S_ISDIR(self.mode)

    @property
    def is_regular(self) -> bool:
        return _stat.S_ISREG(self.mode)

    @property
    def is_symlink(self) -> bool:
        return _stat.S_ISLNK(self.mode)

    @property
    def perm(self) -> int:
        return _stat.S_IMODE(self.mode)


class _FileSystem(ABC):
    """Common interface of the read-only file systems in this module."""

    @abstractmethod
    def stat(self, name: str) -> FileInfo:
        """Return the metadata of ``name``."""

    @abstractmethod
    def read_file(self, name: str) -> bytes:
        """Return the contents of the file ``name``."""

    @abstractmethod
    def read_dir(self, name: str) -> list[FileInfo]:
        """Return the entries of the directory ``name`` sorted by name."""

    def walk(self) -> Iterator[tuple[str, FileInfo]]:
        """Yield ``(path, info)`` for every entry, depth first in lexical order."""
        yield from self._walk(".", self.stat("."))

    def _walk(self, path: str, info: FileInfo) -> Iterator[tuple[str, FileInfo]]:
        yield path, info
        if not info.is_dir:
            return
        for entry in self.read_dir(path):
            child = entry.name if path == "." else f"{path}/{entry.name}"
            yield from self._walk(child, entry)


@dataclass
class MapFile:
    """One file of a :class:`MapFS`."""

    data: bytes = b""
    mode: int = 0o644
    mod_time: datetime = _EPOCH

    def _info(self, name: str) -> FileInfo:
        mode = _full_mode(self.mode)
        size = 0 if _stat.S_ISDIR(mode) else len(self.data)
        return FileInfo(posixpath.basename(name), size, mode, self.mod_time)


class MapFS(dict, _FileSystem):
    """An in-memory file system mapping slash-separated paths to :class:`MapFile`.

    Parent directories that have no entry of their own are implied.
    """

    def stat(self, name: str) -> FileInfo:
        _check_path(name)
        if name == ".":
            return FileInfo(".", 0, _SYNTHETIC_DIR_MODE, _EPOCH)
        entry = self.get(name)
        if entry is not None:
            return entry._info(name)
        prefix = name + "/"
        if any(key.startswith(prefix) for key in self):
            return FileInfo(posixpath.basename(name), 0, _SYNTHETIC_DIR_MODE, _EPOCH)
        raise _not_found(name)

    def read_file(self, name: str) -> bytes:
        info = self.stat(name)
        if info.is_dir:
            raise IsADirectoryError(errno.EISDIR, "is a directory", name)
        return bytes(self[name].data)

    def read_dir(self, name: str) -> list[FileInfo]:
        info = self.stat(name)
        if not info.is_dir:
            raise NotADirectoryError(errno.ENOTDIR, "not a directory", name)
        prefix = "" if name == "." else name + "/"
        children = {
            key[len(prefix):].split("/", 1)[0]
            for key in self
            if key.startswith(prefix) and len(key) > len(prefix)
        }
        return [self.stat(prefix + child) for child in sorted(children)]

    def walk(self) -> Iterator[tuple[str, FileInfo]]:
        """Yield ``(path, info)`` for every entry, implied directories included."""
        yield from self._walk(".", self.stat("."))


@dataclass
class FilesOnlyFilesystem(_FileSystem):
    """Treats everything but regular files as non-existent.

    Directories are hidden so no directory listings are served, and symlinks
    are hidden so requests cannot escape the file system root.
    """

    fs: _FileSystem

    def stat(self, name: str) -> FileInfo:
        info = self.fs.stat(name)
        if not info.is_regular:
            raise _not_found(name)
        return info

    def read_file(self, name: str) -> bytes:
        self.stat(name)
        return self.fs.read_file(name)

    def read_dir(self, name: str) -> list[FileInfo]:
        self.stat(name)
        return self.fs.read_dir(name)


@dataclass
class BaseDirFS(_FileSystem):
    """Presents ``fsys`` inside a single directory named ``base_dir``."""

    fsys: _FileSystem
    base_dir: str

    def _inner_name(self, name: str) -> str:
        _check_path(name)
        if name == self.base_dir:
            return "."
        prefix = self.base_dir + "/"
        if name.startswith(prefix):
            return name[len(prefix):] or "."
        raise _not_found(name)

    def stat(self, name: str) -> FileInfo:
        if name == ".":
            return FileInfo(".", 0, _SYNTHETIC_DIR_MODE, _EPOCH)
        inner = self._inner_name(name)
        info = self.fsys.stat(inner)
        return replace(info, name=self.base_dir) if inner == "." else info

    def read_file(self, name: str) -> bytes:
        if name == ".":
            raise IsADirectoryError(errno.EISDIR, "is a directory", name)
        return self.fsys.read_file(self._inner_name(name))

    def read_dir(self, name: str) -> list[FileInfo]:
        if name == ".":
            return [self.stat(self.base_dir)]
        return self.fsys.read_dir(self._inner_name(name))


def ensure_base_dir_fs(fsys: _FileSystem, default_base_dir: str) -> _FileSystem:
    """Return ``fsys`` if its root holds exactly one directory, else wrap it in one."""
    clean = posixpath.normpath(default_base_dir)
    head, _ = posixpath.split(clean)
    if head:
        raise ValueError(
            f"default base directory {default_base_dir!r} contains multiple path "
            "segments: must be exactly one"
        )
    root_entries = fsys.read_dir(".")
    if len(root_entries) == 1 and root_entries[0].is_dir:
        return fsys
    return BaseDirFS(fsys, clean)