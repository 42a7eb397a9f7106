"""Atomic replacement of small state files."""

from __future__ import annotations

import logging
import os
import secrets
import stat
import time
from pathlib import Path
from typing import BinaryIO, Callable, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]
Writer = Callable[[BinaryIO], object]


def temporary_path_for(target: Path) -> Path:
    """Unique sibling of ``target`` that keeps its extension."""
    token = f"{os.getpid()}.{time.time_ns()}.{secrets.token_hex(4)}"
    return target.with_name(f".{target.stem}.{token}{target.suffix}")


def _copy_metadata(target: Path, temporary: Path) -> None:
    try:
        current = os.stat(target)
    except FileNotFoundError:
        return

    try:
        os.chown(temporary, current.st_uid, current.st_gid)
    except PermissionError:
        logger.debug("cannot preserve ownership of %s", target, extra={"path": str(target)})

    try:
        os.chmod(temporary, stat.S_IMODE(current.st_mode))
    except PermissionError:
        logger.debug("cannot preserve permissions of %s", target, extra={"path": str(target)})


def publish_atomic(target_path: PathLike, writer: Writer) -> Path:
    """Replace ``target_path`` with whatever ``writer`` writes, atomically.

    ``writer`` receives a binary handle on a fresh temporary file in the
    target's directory. Once it returns, the file is synced and closed, the
    target's ownership and permission bits are copied onto it where the
    process is allowed to, and it is renamed over the target.

    If ``writer`` raises, the exception propagates, the temporary file is
    left behind and the target is not touched.
    """
    target = Path(target_path)
    temporary = temporary_path_for(target)

    with temporary.open("xb") as handle:
        writer(handle)
        handle.flush()
        os.fsync(handle.fileno())

    _copy_metadata(target, temporary)
    os.replace(temporary, target)
    logger.debug("published %s", target, extra={"path": str(target)})
    return target


def publish_text(target_path: PathLike, text: str, encoding: str = "utf-8") -> Path:
    return publish_atomic(target_path, lambda handle: handle.write(text.encode(encoding)))
