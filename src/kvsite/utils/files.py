"""Utility helpers for walking the source tree."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Iterator, List

from kvsite.errors import TraversalError
from kvsite.models import SourceFile
from kvsite.utils.keys import derive_key

LOGGER = logging.getLogger(__name__)


def _raise_traversal_error(exc: OSError) -> None:
    raise TraversalError(exc.filename or "?", exc.strerror or str(exc)) from exc


def _check_symlink_loops(dirpath: Path, dirnames: List[str]) -> None:
    """Refuse symlinked directories that point back at ``dirpath`` or one of its parents."""
    current = Path(os.path.realpath(dirpath))
    for name in dirnames:
        child = dirpath / name
        if not child.is_symlink():
            continue
        target = Path(os.path.realpath(child))
        if target == current or target in current.parents:
            raise TraversalError(child, f"symlink loop back to {target}")


def iter_source_files(root: Path) -> Iterator[SourceFile]:
    """Yield regular files under ``root`` in lexical order, descending into directories.

    Symlinked directories are followed like real ones. Any error while walking
    (unreadable directory, broken symlink, symlink loop) aborts the walk with
    :class:`TraversalError`.
    """
    root = Path(root)
    try:
        root_stat = root.stat()
    except OSError as exc:
        raise TraversalError(root, exc.strerror or str(exc)) from exc
    if not stat.S_ISDIR(root_stat.st_mode):
        raise TraversalError(root, "not a directory")

    walk = os.walk(root, onerror=_raise_traversal_error, followlinks=True)
    for dirpath, dirnames, filenames in walk:
        dirnames.sort()
        _check_symlink_loops(Path(dirpath), dirnames)
        for name in sorted(filenames):
            path = Path(dirpath) / name
            try:
                info = path.stat()
            except OSError as exc:
                raise TraversalError(path, exc.strerror or str(exc)) from exc

            if not stat.S_ISREG(info.st_mode):
                LOGGER.warning("Skipping special file %s", path)
                continue
            yield SourceFile(path=path, key=derive_key(path), size=info.st_size)
