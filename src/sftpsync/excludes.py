"""
Ignore pattern handling for sftpsync.

Handles glob matching of workspace-relative paths and filtered directory walking.
"""

import fnmatch
import os
from pathlib import Path, PurePosixPath
from typing import Callable, Iterable, List, Optional, Sequence

# Always excluded, even when the configuration omits them.
DEFAULT_IGNORE_PATTERNS = (".git", "node_modules")


def build_ignore_patterns(configured: Optional[Iterable[str]]) -> List[str]:
    """
    Build the effective ignore set from configured patterns.

    Configured patterns keep their order; the default patterns are appended
    when missing. Duplicates are dropped.

    Args:
        configured: Patterns from the configuration file (may be None).

    Returns:
        Ordered list of unique patterns.
    """
    patterns: List[str] = []
    for pattern in list(configured or []) + list(DEFAULT_IGNORE_PATTERNS):
        if pattern and pattern not in patterns:
            patterns.append(pattern)
    return patterns


def matches_pattern(rel_parts: Sequence[str], pattern: str, is_dir: bool = False) -> bool:
    """
    Check whether a relative path matches a single ignore pattern.

    Matching is dotfile-inclusive: ``*`` also matches names starting with a dot.

    - Patterns without a slash (``*.log``, ``.git``) match any path segment.
    - Patterns with a slash (``src/*.tmp``, ``/build``) are anchored at the root
      and match the path itself or any of its parent directories.
    - A trailing slash restricts the pattern to directories.

    Args:
        rel_parts: Segments of the path relative to the workspace root.
        pattern: Glob pattern.
        is_dir: Whether the full path is a directory.

    Returns:
        True if the pattern matches.
    """
    p = pattern
    must_be_dir = False
    if p.endswith("/"):
        p = p.rstrip("/")
        must_be_dir = True

    if not p or not rel_parts:
        return False

    last = len(rel_parts) - 1

    if "/" not in p:
        # Simple name match (e.g. "*.log", "node_modules")
        for index, part in enumerate(rel_parts):
            if index == last and must_be_dir and not is_dir:
                continue
            if fnmatch.fnmatchcase(part, p):
                return True
        return False

    # Pattern involves paths - anchor it to the root
    match_pattern = "/" + p.lstrip("/")
    for depth in range(1, len(rel_parts) + 1):
        if depth - 1 == last and must_be_dir and not is_dir:
            continue
        rooted = PurePosixPath("/", *rel_parts[:depth])
        if rooted.match(match_pattern):
            return True
    return False


def is_excluded(path: Path, excludes: Sequence[str], local_basepath: Path) -> bool:
    """
    Check if a path matches any exclude pattern.

    Args:
        path: Path to check.
        excludes: List of exclude patterns.
        local_basepath: Base directory for relative path calculation.

    Returns:
        True if path should be excluded, False otherwise (including paths
        outside ``local_basepath``).
    """
    rel_path = os.path.relpath(os.path.normpath(str(path)), os.path.normpath(str(local_basepath)))
    rel_parts = [part for part in Path(rel_path).parts if part != "."]
    if not rel_parts or rel_parts[0] == "..":
        return False

    is_dir = path.is_dir()
    return any(matches_pattern(rel_parts, pattern, is_dir) for pattern in excludes)


def walk_directory(
    directory: Path, is_ignored: Optional[Callable[[Path], bool]] = None
) -> List[Path]:
    """
    Recursively walk a directory, skipping ignored entries.

    Ignored directories are pruned, so nothing below them is visited.

    Args:
        directory: Directory to walk.
        is_ignored: Predicate returning True for paths to skip.

    Returns:
        Sorted list of file paths that are not ignored.
    """
    files: List[Path] = []

    try:
        entries = sorted(directory.iterdir())
    except OSError:
        return []

    for entry in entries:
        if is_ignored is not None and is_ignored(entry):
            continue

        if entry.is_file():
            files.append(entry)
        elif entry.is_dir():
            files.extend(walk_directory(entry, is_ignored))

    return files
