"""Filesystem helpers; existence on disk is the bootstrap's idempotency ledger."""

import os
import pwd
import tempfile
from pathlib import Path

from .errors import StorageError
from .logging_config import LOGGER


def file_exists(path: Path) -> bool:
    return path.is_file()


def all_exist(*paths: Path) -> bool:
    return all(file_exists(p) for p in paths)


def read_file(path: Path) -> bytes:
    """Read an artifact, wrapping failures in StorageError."""
    try:
        return path.read_bytes()
    except OSError as e:
        raise StorageError(f"failed to read {path}: {e.strerror or e}") from e


def write_file_atomic(path: Path, data: bytes, mode: int = 0o644) -> None:
    """Write data so that path never exists with partial content.

    Data goes to a uniquely named temporary file in the same directory, is
    fsynced, then renamed over path.

    Raises:
        StorageError: On any filesystem failure
    """
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        with os.fdopen(fd, "wb") as handle:
            os.fchmod(handle.fileno(), mode)
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise StorageError(f"failed to write {path}: {e.strerror or e}") from e
    finally:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)


def set_owner(path: Path, user: str) -> None:
    """Give ownership of path to user.

    Only root can change ownership; other callers and unknown users are
    logged and skipped.

    Raises:
        StorageError: If running as root and chown fails
    """
    if os.geteuid() != 0:
        LOGGER.debug("Not running as root, leaving owner of %s unchanged", path)
        return
    try:
        entry = pwd.getpwnam(user)
    except KeyError:
        LOGGER.warning("User %s not found, leaving owner of %s unchanged", user, path)
        return
    try:
        os.chown(path, entry.pw_uid, entry.pw_gid)
    except OSError as e:
        raise StorageError(f"failed to chown {path} to {user}: {e.strerror or e}") from e
