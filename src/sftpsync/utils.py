"""
Utility functions for sftpsync.

Path helpers shared by the configuration resolver and the remote clients.
Local paths use the host separator; remote paths always use forward slashes.
"""

import os
import posixpath
from pathlib import Path, PurePath
from typing import List, Sequence, Union

PathLike = Union[str, "os.PathLike[str]"]


def normalize_context(context: str) -> str:
    """Strip leading and trailing slashes from a context setting."""
    return context.strip("/").strip("\\")


def absolute_path(path: PathLike, base: Path) -> str:
    """
    Make ``path`` absolute against ``base`` without normalizing it.

    Parent segments are kept so callers can still detect traversal attempts.
    """
    path_str = os.fspath(path)
    if os.path.isabs(path_str):
        return path_str
    return os.path.join(str(base), path_str)


def split_segments(path: str) -> List[str]:
    """Split a local or remote path into its non-empty segments."""
    return [s for s in path.replace("\\", "/").split("/") if s]


def has_traversal(path: str) -> bool:
    """Return True if any segment of ``path`` is a parent reference."""
    return ".." in split_segments(path)


def is_within(path: PathLike, root: PathLike) -> bool:
    """
    Check whether ``path`` lies inside ``root`` (or is ``root`` itself).

    Both paths are normalized and compared segment by segment, so a sibling
    such as ``/w/ctx2`` is never considered inside ``/w/ctx``.
    """
    path_parts = PurePath(os.path.normpath(os.fspath(path))).parts
    root_parts = PurePath(os.path.normpath(os.fspath(root))).parts
    if len(path_parts) < len(root_parts):
        return False
    return tuple(path_parts[: len(root_parts)]) == tuple(root_parts)


def join_remote_path(remote_basepath: str, relative_parts: Sequence[str]) -> str:
    """
    Join a remote root with relative segments using POSIX semantics.

    Args:
        remote_basepath: Remote root directory (a leading slash is added if missing).
        relative_parts: Path segments below the remote root.

    Returns:
        Absolute remote path without a trailing slash (unless it is ``/``).
    """
    remote_base = remote_basepath
    if not remote_base.startswith("/"):
        remote_base = "/" + remote_base

    rel_path_str = "/".join(relative_parts)
    combined = posixpath.join(remote_base, rel_path_str) if rel_path_str else remote_base

    if len(combined) > 1:
        combined = combined.rstrip("/") or "/"
    return combined


def mask_secret(value: str) -> str:
    """Hide a secret for display."""
    return "*" * 8 if value else value
