# rukpak

Tools for working with bundles, which are trees of manifest files. A bundle is
held as an in-memory file tree, packed into a gzipped tarball, stored in a
directory and served or fetched over HTTP. The package also has a checker for
commit messages in downstream repositories.

## Installation

```
pip install .
pip install ".[test]"   # adds pytest for running the test suite
```

Python 3.10 or newer is required. The package has no third-party runtime
dependencies.

## Bundle filesystems (`rukpak.fsys`)

- `MapFS` is a dictionary from slash-separated paths to `MapFile` entries
  (`data`, `mode`, `mod_time`). Parent directories without an entry of their
  own are implied. It has `stat`, `read_file`, `read_dir` and `walk`; `stat`
  and `read_dir` return `FileInfo` values.
- `FilesOnlyFilesystem` wraps a filesystem and treats anything that is not a
  regular file (directories, symlinks, devices) as missing, raising
  `FileNotFoundError`.
- `ensure_base_dir_fs(fsys, default_base_dir)` returns `fsys` unchanged if its
  root holds exactly one directory. Otherwise it returns a `BaseDirFS` that
  shows the whole tree inside `default_base_dir`. A base directory with more
  than one path segment raises `ValueError`.

## Tarballs (`rukpak.tarball`)

- `fs_to_tar_gz(fileobj, fsys)` writes a filesystem to a binary file object as
  a gzipped tar archive. Symlinks are skipped and user and group ownership is
  cleared.
- `tar_gz_to_fs(fileobj)` reads such an archive back into a `MapFS`. Absolute
  paths and paths that climb out of the root raise `ValueError`.

## Storage (`rukpak.storage`)

Bundles are identified by a `BundleRef`, which has a `name` and a
`content_url`.

- `LocalDirectory(root_directory, url)` stores each bundle as `<name>.tgz`
  in `root_directory`. It provides `store`, `load`, `delete` and `url_for`.
  Loading a missing bundle raises `FileNotFoundError`; deleting one is not an
  error. `url_for` returns `url` followed by `<name>.tgz`.
- A `LocalDirectory` is also a WSGI application. Under the path of its `url`
  it serves regular files from the root directory; directories, symlinks and
  anything missing get `404 Not Found`.
- `HTTPStorage(insecure_skip_verify=False, root_cas=None, bearer_token=None,
  timeout=60.0)` loads a bundle from its `content_url`. `root_cas` is PEM text
  of the certificate authorities to trust, and `bearer_token` is sent in an
  `Authorization: Bearer ...` header. Any response other than `200 OK`
  raises `OSError` naming the status, for example `404 Not Found`.
- `with_fallback_loader(storage, fallback)` returns a `FallbackLoaderStorage`.
  Loads try `storage` first and use `fallback` when that fails; storing,
  deleting, URLs and serving go to `storage`.

## Metadata helpers (`rukpak.meta`)

- `adopt_object(obj, system_namespace, bundle_deployment_name)` sets, in place
  on an object dictionary, the annotations and labels that let a bundle
  deployment adopt it.
- `merge_maps(*maps)` merges dictionaries; later values win.
- `generate_bundle_name(bd_name, hash)` returns `<bd_name>-<hash>`.
- `pod_namespace(namespace_file=...)` reads the namespace from a
  service-account file, returning `rukpak-system` if it cannot be read.
- `conditions_semantically_equal(a, b)` compares two `Condition` values by
  type, status, reason, message and observed generation.

The module also holds the label keys (`CORE_OWNER_KIND_KEY`,
`CORE_OWNER_NAME_KEY`, `CORE_BUNDLE_TEMPLATE_HASH_KEY`) and defaults
(`DEFAULT_SYSTEM_NAMESPACE`, `DEFAULT_UNPACK_IMAGE`,
`DEFAULT_UPLOAD_SERVICE_NAME`).

## Version (`rukpak.version`)

`BuildInfo.from_settings(settings)` reads `vcs.revision`, `vcs.time` and
`vcs.modified` settings; `str()` of it gives
`revision: "...", date: "...", state: "..."`. `version_string()` describes
the installed build; fields that were not recorded are reported as
`"unknown"`.

## Commit checker

```
rukpak-commitchecker --start master --end HEAD
```

The checker reads every commit in `start..end` with `git` and runs two checks
from `rukpak.commit_validate`:

- `validate_commit_author` rejects commits whose author e-mail starts with
  `root@`.
- `validate_commit_message` requires a summary of the form
  `UPSTREAM: <PR number|carry|drop>: description`. Merge commits are skipped.

Exit status:

- `0`: all commits pass. It is also `0` when one of the given revisions does
  not exist; a warning is printed in that case.
- `1`: the commit range could not be read.
- `2`: at least one check failed. Each problem is printed to standard error.

`rukpak.commits` can be used from your own code: `commits_between`,
`commit_from_oneline_log`, `Commit` and `File` read commits and classify
vendored changes and patches, and `is_commit`, `fetch_repo`, `is_ancestor`,
`commit_date`, `checkout` and `current_rev` wrap the matching `git` commands.

## What this package does not do

It does not talk to a Kubernetes cluster. There are no controllers, no
admission webhooks, no upload server and no bundle unpacking from images, git
repositories, config maps or remote URLs; bundle content has to be supplied as
a filesystem or tarball by the caller. The WSGI application in
`LocalDirectory` only serves files; running it under a server is left to you.