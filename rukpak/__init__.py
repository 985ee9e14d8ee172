"""Bundle filesystems, tarballs and storage, plus a commit message checker."""

__version__ = "0.1.0"