"""
=============================================================================
FILE STORE
=============================================================================

A thin byte store over one directory on disk. Handlers see three
operations and nothing else:

    exists(name)           → bool
    read_all(name)         → bytes          (FileNotFoundError / OSError)
    write_all(name, data)  → None           (OSError)

The root directory is checked once, at construction. It must already exist.

=============================================================================
FILENAMES AND PATH TRAVERSAL
=============================================================================

Filenames come straight out of the URL (``/files/<name>``), so an attacker
controls them:

    GET /files/../../etc/passwd         ← escapes the root with ".."
    GET /files//etc/passwd              ← name "/etc/passwd" is absolute,
                                          and Path(root) / "/etc/passwd"
                                          is just "/etc/passwd"

resolve() rejects both before anything touches the filesystem:

    ┌──────────────────────────────┬─────────────────────────────────────┐
    │ name                         │ result                              │
    ├──────────────────────────────┼─────────────────────────────────────┤
    │ notes.txt                    │ <root>/notes.txt                    │
    │ sub/notes.txt                │ <root>/sub/notes.txt                │
    │ ../secret                    │ InvalidFileName                     │
    │ sub/../../secret             │ InvalidFileName                     │
    │ /etc/passwd                  │ InvalidFileName                     │
    │ a\x00b                       │ InvalidFileName                     │
    └──────────────────────────────┴─────────────────────────────────────┘

This is segment filtering, not a sandbox. A symlink placed inside the root
that points elsewhere is still followed.

=============================================================================
CONCURRENCY
=============================================================================

No locking. Many connection threads may read and write the same name at
once; interleaving is undefined and the last writer wins.

=============================================================================
"""

import logging
import os
from pathlib import Path


logger = logging.getLogger(__name__)


class InvalidFileName(ValueError):
    """The filename is empty, absolute, or climbs out of the root."""


class FileStore:
    """
    Byte store rooted at one directory.

    Usage:
        store = FileStore("/tmp/data")
        store.write_all("hello.txt", b"hi")
        store.read_all("hello.txt")   # b"hi"
    """

    def __init__(self, root_dir: str):
        """
        Args:
            root_dir: Directory holding the files.

        Raises:
            ValueError: ``root_dir`` does not exist or is not a directory.
        """
        self.root_dir = Path(root_dir).resolve()

        if not self.root_dir.exists():
            raise ValueError(f"Directory does not exist: {root_dir}")
        if not self.root_dir.is_dir():
            raise ValueError(f"Not a directory: {root_dir}")

    def resolve(self, name: str) -> Path:
        """
        Map a filename from the URL to a path under the root.

        Raises:
            InvalidFileName: See the table in the module docstring.
        """
        if not name:
            raise InvalidFileName("Empty filename")
        if "\x00" in name:
            raise InvalidFileName(f"NUL byte in filename: {name!r}")
        if name.startswith("/") or os.path.isabs(name):
            raise InvalidFileName(f"Absolute filename: {name!r}")
        if ".." in name.replace("\\", "/").split("/"):
            raise InvalidFileName(f"Parent directory segment in filename: {name!r}")

        return self.root_dir / name

    def exists(self, name: str) -> bool:
        try:
            return self.resolve(name).is_file()
        except InvalidFileName:
            return False

    def read_all(self, name: str) -> bytes:
        """
        Whole file contents.

        Raises:
            InvalidFileName: Unsafe name.
            FileNotFoundError: No such file.
            OSError: Any other read failure (directory, permissions, ...).
        """
        return self.resolve(name).read_bytes()

    def write_all(self, name: str, data: bytes) -> None:
        """
        Create or overwrite a file with ``data``.

        Raises:
            InvalidFileName: Unsafe name.
            OSError: Write failure (missing parent directory, permissions, ...).
        """
        path = self.resolve(name)
        path.write_bytes(data)
        logger.debug(f"Wrote {len(data)} bytes to {path}")
