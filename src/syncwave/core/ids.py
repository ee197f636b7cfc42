"""Path normalization and catalog entry ids.

An entry id is a pure function of the file path, so the watcher can compute
the id of a deleted file without looking anything up:

    entry_id_for("/music/a.mp3") == entry_id_for("/music/./a.mp3")

The id is the hex SHA-1 of the normalized absolute path. It is stable across
restarts, safe to embed in URLs, and distinct paths map to distinct ids for
any practical library size.
"""

import hashlib
import os
from pathlib import Path
from typing import Union

PathLike = Union[str, Path]


def normalize_path(path: PathLike) -> str:
    """Absolute, normalized, case-normalized (on Windows) form of ``path``.

    Symlinks are not resolved: a deleted file cannot be resolved anymore and
    its delete event must map to the same id as its create event.
    """
    return os.path.normcase(os.path.normpath(os.path.abspath(os.fspath(path))))


def entry_id_for(path: PathLike) -> str:
    """Deterministic catalog id for the file at ``path``."""
    normalized = normalize_path(path)
    return hashlib.sha1(
        normalized.encode("utf-8", "surrogateescape")
    ).hexdigest()


def is_within(path: PathLike, directory: PathLike) -> bool:
    """True when ``path`` is ``directory`` itself or lies below it."""
    path_n = normalize_path(path)
    dir_n = normalize_path(directory)
    return path_n == dir_n or path_n.startswith(dir_n.rstrip(os.sep) + os.sep)
