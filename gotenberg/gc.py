"""Removal of stale entries from a directory."""

from __future__ import annotations

import logging
import os
import shutil
import stat
from collections.abc import Iterable


def _remove(path: str, is_dir: bool) -> None:
    if is_dir:
        shutil.rmtree(path)
    else:
        os.remove(path)


def garbage_collect(
    root_path: str,
    include_substr: Iterable[str],
    logger: logging.Logger | None = None,
) -> None:
    """Delete the entries directly under ``root_path`` whose name contains one
    of ``include_substr`` or whose path equals one of them.

    Only the first level of ``root_path`` is considered.
    """
    log = (logger or logging.getLogger("gotenberg")).getChild("gc")
    substrings = list(include_substr)

    root_info = os.lstat(root_path)
    if not stat.S_ISDIR(root_info.st_mode):
        return

    base = os.path.normpath(root_path)
    with os.scandir(root_path) as entries:
        names = sorted(
            (entry.name, entry.is_dir(follow_symlinks=False)) for entry in entries
        )

    for name, is_dir in names:
        path = os.path.join(base, name)
        if any(substr in name or path == substr for substr in substrings):
            try:
                _remove(path, is_dir)
            except FileNotFoundError:
                pass
            except OSError as err:
                raise OSError(f"garbage collect '{path}': {err}") from err
            log.debug("'%s' removed", path)