import random
import string
import threading
from datetime import datetime, timedelta, timezone
from wsgiref.simple_server import WSGIRequestHandler, make_server

import pytest

from rukpak.fsys import MapFile, MapFS
from rukpak.meta import generate_bundle_name
from rukpak.storage import (
    BundleRef,
    FallbackLoaderStorage,
    HTTPStorage,
    LocalDirectory,
    with_fallback_loader,
)


def _rand_str(rng, n):
    return "".join(rng.choice(string.ascii_lowercase + string.digits) for _ in range(n))


def generate_fs(seed=0):
    rng = random.Random(seed)
    gen = MapFS()
    now = datetime.now(timezone.utc).replace(microsecond=0)
    for _ in range(rng.randint(10, 19)):
        path_length = rng.randint(30, 59)
        parts = []
        j = 0
        while j < path_length:
            parts.append(_rand_str(rng, rng.randint(5, 9)))
            j += rng.randint(5, 9)
        gen["/".join(parts)] = MapFile(
            data=_rand_str(rng, rng.randint(1, 399)).encode(),
            mode=rng.randint(0o600, 0o777),
            mod_time=now - timedelta(seconds=rng.randint(0, 99999)),
        )
    return gen


def fs_files(fsys):
    result = {}
    for path, info in fsys.walk():
        if info.is_dir:
            continue
        result[path] = (fsys.read_file(path), info.is_regular, info.mod_time.astimezone(timezone.utc))
    return result


@pytest.fixture
def owner():
    return BundleRef(generate_bundle_name("test-bundle", _rand_str(random.Random(), 5)))


@pytest.fixture
def store(tmp_path):
    return LocalDirectory(tmp_path)


def test_store_writes_bundle_file(store, owner, tmp_path):
    store.store(owner, generate_fs())
    assert (tmp_path / f"{owner.name}.tgz").is_file()


def test_load_missing_bundle_raises(store, owner):
    with pytest.raises(FileNotFoundError):
        store.load(owner)


def test_delete_missing_bundle_succeeds(store, owner, tmp_path):
    store.delete(owner)
    assert not (tmp_path / f"{owner.name}.tgz").exists()


def test_restore_bundle(store, owner):
    test_fs = generate_fs(1)
    store.store(owner, test_fs)
    store.store(owner, test_fs)
    loaded = store.load(owner)
    assert fs_files(loaded) == fs_files(test_fs)


def test_load_stored_bundle(store, owner):
    test_fs = generate_fs(2)
    store.store(owner, test_fs)
    loaded = store.load(owner)
    assert fs_files(loaded) == fs_files(test_fs)
    assert len(fs_files(loaded)) == len(test_fs)


def test_delete_stored_bundle(store, owner, tmp_path):
    store.store(owner, generate_fs())
    store.delete(owner)
    assert not (tmp_path / f"{owner.name}.tgz").exists()
    with pytest.raises(FileNotFoundError):
        store.load(owner)


def test_url_for(tmp_path):
    local = LocalDirectory(tmp_path, url="https://example.com/bundles/")
    assert local.url_for(BundleRef("mybundle")) == "https://example.com/bundles/mybundle.tgz"


def _call(app, path, method="GET"):
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b"".join(app({"PATH_INFO": path, "REQUEST_METHOD": method}, start_response))
    return captured["status"], body


def test_wsgi_serves_regular_file(tmp_path):
    local = LocalDirectory(tmp_path, url="http://localhost/")
    (tmp_path / "b.tgz").write_bytes(b"content")
    assert _call(local, "/b.tgz") == ("200 OK", b"content")


def test_wsgi_hides_directories_and_traversal(tmp_path):
    root = tmp_path / "root"
    root.mkdir()
    (root / "sub").mkdir()
    (tmp_path / "secret.tgz").write_bytes(b"x")
    local = LocalDirectory(root, url="http://localhost/")
    assert _call(local, "/sub")[0] == "404 Not Found"
    assert _call(local, "/")[0] == "404 Not Found"
    assert _call(local, "/../secret.tgz")[0] == "404 Not Found"


def test_wsgi_strips_url_prefix(tmp_path):
    local = LocalDirectory(tmp_path, url="http://localhost/bundles/")
    (tmp_path / "b.tgz").write_bytes(b"data")
    assert _call(local, "/bundles/b.tgz") == ("200 OK", b"data")
    assert _call(local, "/other/b.tgz")[0] == "404 Not Found"


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, *args):
        pass


@pytest.fixture
def served_bundle(tmp_path):
    local = LocalDirectory(tmp_path / "store")
    local.root_directory.mkdir()
    bundle = BundleRef(generate_bundle_name("testbundle", "abcdefgh"))
    test_fs = generate_fs(3)
    local.store(bundle, test_fs)

    def app(environ, start_response):
        if environ.get("HTTP_AUTHORIZATION") != "Bearer token":
            start_response("401 Unauthorized", [("Content-Length", "0")])
            return [b""]
        return local(environ, start_response)

    server = make_server("127.0.0.1", 0, app, handler_class=_QuietHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    local.url = f"http://127.0.0.1:{server.server_port}/"
    bundle.content_url = local.url_for(bundle)
    try:
        yield bundle, test_fs
    finally:
        server.shutdown()
        server.server_close()


def test_http_load_with_correct_token(served_bundle):
    bundle, test_fs = served_bundle
    loaded = HTTPStorage(bearer_token="token").load(bundle)
    assert fs_files(loaded) == fs_files(test_fs)


def test_http_load_missing_bundle(served_bundle):
    bundle, _ = served_bundle
    bundle.content_url += "foobar"
    with pytest.raises(OSError, match="404 Not Found"):
        HTTPStorage(bearer_token="token").load(bundle)


def test_http_load_with_incorrect_token(served_bundle):
    bundle, _ = served_bundle
    with pytest.raises(OSError, match="401 Unauthorized"):
        HTTPStorage(bearer_token="placeholder").load(bundle)


@pytest.fixture
def fallback_setup(tmp_path):
    primary_dir = tmp_path / "primary"
    fallback_dir = tmp_path / "fallback"
    primary_dir.mkdir()
    fallback_dir.mkdir()
    primary_bundle = BundleRef(generate_bundle_name("primary", "aaaaaaaa"))
    fallback_bundle = BundleRef(generate_bundle_name("fallback", "bbbbbbbb"))
    primary_store = LocalDirectory(primary_dir)
    fallback_store = LocalDirectory(fallback_dir)
    primary_fs = generate_fs(4)
    fallback_fs = generate_fs(5)
    primary_store.store(primary_bundle, primary_fs)
    fallback_store.store(fallback_bundle, fallback_fs)
    store = with_fallback_loader(primary_store, fallback_store)
    return store, primary_bundle, primary_fs, fallback_bundle, fallback_fs, primary_dir


def test_fallback_finds_primary_bundle(fallback_setup):
    store, primary_bundle, primary_fs, *_ = fallback_setup
    loaded = store.load(primary_bundle)
    assert fs_files(loaded) == fs_files(primary_fs)


def test_fallback_finds_fallback_bundle(fallback_setup):
    store, _, _, fallback_bundle, fallback_fs, _ = fallback_setup
    loaded = store.load(fallback_bundle)
    assert fs_files(loaded) == fs_files(fallback_fs)


def test_fallback_unknown_bundle_fails(fallback_setup):
    store = fallback_setup[0]
    with pytest.raises(FileNotFoundError):
        store.load(BundleRef(generate_bundle_name("unknown", "cccccccc")))


def test_fallback_store_and_url_use_primary(fallback_setup):
    store, *_, primary_dir = fallback_setup
    assert isinstance(store, FallbackLoaderStorage)
    new_bundle = BundleRef("newbundle")
    store.store(new_bundle, generate_fs(6))
    assert (primary_dir / "newbundle.tgz").is_file()
    assert store.url_for(new_bundle) == "newbundle.tgz"
    store.delete(new_bundle)
    assert not (primary_dir / "newbundle.tgz").exists()