"""Bundle storage: local tar.gz files, HTTP loading and fallback loading."""

from __future__ import annotations

import http
import io
import mimetypes
import os
import posixpath
import ssl
import stat as _stat
import urllib.error
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol
from urllib.parse import urlsplit

from rukpak.fsys import MapFS
from rukpak.tarball import fs_to_tar_gz, tar_gz_to_fs

DEFAULT_BUNDLE_CACHE_DIR = "/var/cache/bundles"

_NOT_FOUND_BODY = b"404 page not found\n"


@dataclass
class BundleRef:
    """The parts of a bundle that storage needs: its name and content URL."""

    name: str
    content_url: str = ""


class Loader(Protocol):
    def load(self, owner: BundleRef) -> MapFS: ...


class Storage(Loader, Protocol):
    def store(self, owner: BundleRef, bundle: Any) -> None: ...

    def delete(self, owner: BundleRef) -> None: ...

    def url_for(self, owner: BundleRef) -> str: ...

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]: ...


def _bundle_file(bundle_name: str) -> str:
    return f"{bundle_name}.tgz"


def _status_line(code: int) -> str:
    try:
        return f"{code} {http.HTTPStatus(code).phrase}"
    except ValueError:
        return str(code)


@dataclass
class LocalDirectory:
    """Stores bundles as ``<name>.tgz`` files in a directory and serves them over WSGI."""

    root_directory: str | os.PathLike
    url: str = ""

    def _bundle_path(self, bundle_name: str) -> Path:
        return Path(self.root_directory) / _bundle_file(bundle_name)

    def load(self, owner: BundleRef) -> MapFS:
        """Read the stored bundle of ``owner``; raises FileNotFoundError if absent."""
        with open(self._bundle_path(owner.name), "rb") as handle:
            return tar_gz_to_fs(handle)

    def store(self, owner: BundleRef, bundle: Any) -> None:
        """Write ``bundle`` as the stored content of ``owner``, replacing any previous one."""
        buffer = io.BytesIO()
        try:
            fs_to_tar_gz(buffer, bundle)
        except (ValueError, OSError) as err:
            raise ValueError(f"convert bundle {owner.name!r} to tar.gz: {err}") from err
        self._bundle_path(owner.name).write_bytes(buffer.getvalue())

    def delete(self, owner: BundleRef) -> None:
        """Remove the stored bundle of ``owner``; a missing file is not an error."""
        try:
            os.remove(self._bundle_path(owner.name))
        except FileNotFoundError:
            pass

    def url_for(self, owner: BundleRef) -> str:
        """URL under which the bundle of ``owner`` is served."""
        return f"{self.url}{_bundle_file(owner.name)}"

    def _resolve(self, path_info: str) -> Path | None:
        prefix = urlsplit(self.url).path
        if not path_info.startswith(prefix):
            return None
        relative = posixpath.normpath("/" + path_info[len(prefix):]).lstrip("/")
        if not relative or relative == ".":
            return None
        parts = relative.split("/")
        if any(part in ("", ".", "..") for part in parts):
            return None
        full = Path(self.root_directory).joinpath(*parts)
        try:
            info = os.lstat(full)
        except OSError:
            return None
        return full if _stat.S_ISREG(info.st_mode) else None

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        """Serve stored bundle files; anything but a regular file is not found."""
        target = self._resolve(environ.get("PATH_INFO", ""))
        data = None
        if target is not None:
            try:
                data = target.read_bytes()
            except OSError:
                data = None
        if data is None:
            start_response(
                "404 Not Found",
                [
                    ("Content-Type", "text/plain; charset=utf-8"),
                    ("Content-Length", str(len(_NOT_FOUND_BODY))),
                ],
            )
            return [_NOT_FOUND_BODY]
        content_type = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
        start_response(
            "200 OK",
            [("Content-Type", content_type), ("Content-Length", str(len(data)))],
        )
        if environ.get("REQUEST_METHOD", "GET").upper() == "HEAD":
            return [b""]
        return [data]


class HTTPStorage:
    """Loads bundles from their content URL over HTTP(S)."""

    def __init__(
        self,
        insecure_skip_verify: bool = False,
        root_cas: str | None = None,
        bearer_token: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        """``root_cas`` is PEM text of the only certificate authorities to trust."""
        if root_cas is not None:
            context = ssl.create_default_context(cadata=root_cas)
        else:
            context = ssl.create_default_context()
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        if insecure_skip_verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        self._context = context
        self._bearer_token = bearer_token
        self._timeout = timeout

    def load(self, owner: BundleRef) -> MapFS:
        """Fetch and unpack the bundle at ``owner.content_url``."""
        request = urllib.request.Request(owner.content_url, method="GET")
        if self._bearer_token is not None:
            request.add_header("Authorization", f"Bearer {self._bearer_token}")
        try:
            with urllib.request.urlopen(
                request, timeout=self._timeout, context=self._context
            ) as response:
                status = response.status
                body = response.read()
        except urllib.error.HTTPError as err:
            err.close()
            raise OSError(f'unexpected response status "{_status_line(err.code)}"') from err
        if status != http.HTTPStatus.OK:
            raise OSError(f'unexpected response status "{_status_line(status)}"')
        return tar_gz_to_fs(io.BytesIO(body))


class FallbackLoaderStorage:
    """A storage whose loads fall back to another loader when they fail."""

    def __init__(self, storage: Storage, fallback_loader: Loader) -> None:
        self.storage = storage
        self.fallback_loader = fallback_loader

    def load(self, owner: BundleRef) -> MapFS:
        try:
            return self.storage.load(owner)
        except Exception:
            return self.fallback_loader.load(owner)

    def store(self, owner: BundleRef, bundle: Any) -> None:
        self.storage.store(owner, bundle)

    def delete(self, owner: BundleRef) -> None:
        self.storage.delete(owner)

    def url_for(self, owner: BundleRef) -> str:
        return self.storage.url_for(owner)

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        return self.storage(environ, start_response)


def with_fallback_loader(storage: Storage, fallback: Loader) -> FallbackLoaderStorage:
    """Wrap ``storage`` so failed loads are retried with ``fallback``."""
    return FallbackLoaderStorage(storage, fallback)