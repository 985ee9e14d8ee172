"""Conversion between file systems and gzipped tar archives."""

from __future__ import annotations

import gzip
import io
import posixpath
import stat as _stat
import tarfile
from datetime import datetime, timezone
from typing import BinaryIO

from rukpak.fsys import MapFile, MapFS


def fs_to_tar_gz(fileobj: BinaryIO, fsys) -> None:
    """Write ``fsys`` to ``fileobj`` as a gzipped tar archive.

    Ownership information is cleared so readers need not reconcile users and
    groups between systems. Symlinks are left out.
    """
    with gzip.GzipFile(filename="", fileobj=fileobj, mode="wb", mtime=0) as gz, tarfile.open(
        fileobj=gz, mode="w", format=tarfile.PAX_FORMAT
    ) as tar:
        for path, info in fsys.walk():
            if info.is_symlink:
                continue
            member = tarfile.TarInfo(path)
            member.mode = info.perm
            member.mtime = int(info.mod_time.timestamp())
            member.uid = member.gid = 0
            member.uname = member.gname = ""
            if info.is_dir:
                member.type = tarfile.DIRTYPE
                tar.addfile(member)
            elif info.is_regular:
                data = fsys.read_file(path)
                member.size = len(data)
                tar.addfile(member, io.BytesIO(data))
            else:
                raise ValueError(
                    f"build tar file info header for {path!r}: unsupported file type"
                )


def tar_gz_to_fs(fileobj: BinaryIO) -> MapFS:
    """Read a gzipped tar archive into an in-memory file system."""
    fsys = MapFS()
    with tarfile.open(fileobj=fileobj, mode="r:gz") as tar:
        for member in tar:
            name = posixpath.normpath(member.name)
            if name == ".":
                continue
            if name.startswith("/") or name == ".." or name.startswith("../"):
                raise ValueError(f"invalid path in archive: {member.name!r}")
            mod_time = datetime.fromtimestamp(member.mtime, tz=timezone.utc)
            perm = member.mode & 0o7777
            if member.isdir():
                fsys[name] = MapFile(b"", _stat.S_IFDIR | perm, mod_time)
            elif member.isreg():
                extracted = tar.extractfile(member)
                data = extracted.read() if extracted is not None else b""
                fsys[name] = MapFile(data, _stat.S_IFREG | perm, mod_time)
            elif member.issym():
                fsys[name] = MapFile(member.linkname.encode(), _stat.S_IFLNK | perm, mod_time)
    return fsys