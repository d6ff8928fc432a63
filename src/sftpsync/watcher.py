"""Workspace watcher that turns file changes into save and delete events."""

import fnmatch
import logging
import threading
from pathlib import Path
from typing import Iterable, Optional, Tuple

from watchfiles import BaseFilter, Change, watch

from sftpsync.session import WorkspaceSession

logger = logging.getLogger(__name__)


class WorkspaceFilter(BaseFilter):
    """
    Drop changes to ignored paths and, if configured, non-matching files.

    Only the workspace ignore set applies, so a watched change is filtered
    exactly like a save event.
    """

    def __init__(self, session: WorkspaceSession) -> None:
        super().__init__()
        self.session = session

    def __call__(self, change: Change, path: str) -> bool:
        if self.session.manager.should_ignore(path):
            return False
        return matches_watch_files(self.session, Path(path))


def matches_watch_files(session: WorkspaceSession, path: Path) -> bool:
    """Check a path against the ``watcher.files`` glob (all files when unset)."""
    config = session.manager.config
    pattern = ((config.watcher if config else None) or {}).get("files")
    if not pattern:
        return True

    try:
        rel_path = path.relative_to(session.manager.context_path).as_posix()
    except ValueError:
        return False

    # "**/" also matches zero directories
    candidates = {pattern}
    if pattern.startswith("**/"):
        candidates.add(pattern[3:])
    return any(fnmatch.fnmatch(rel_path, p) or fnmatch.fnmatch(path.name, p) for p in candidates)


def handle_change(session: WorkspaceSession, change: Change, path: Path) -> None:
    """Handle a single file change event."""
    config = session.manager.config
    if config is None:
        return
    watcher_config = config.watcher or {}

    if change == Change.deleted:
        if watcher_config.get("autoDelete"):
            session.delete_removed_file(path)
        return

    if not path.is_file():
        return

    if config.upload_on_save or watcher_config.get("autoUpload"):
        session.upload_changed_file(path)


def handle_changes(session: WorkspaceSession, changes: Iterable[Tuple[Change, str]]) -> None:
    """Handle one batch of changes in a stable order."""
    for change, path_str in sorted(changes, key=lambda c: (c[1], c[0].value)):
        handle_change(session, change, Path(path_str))


def watch_workspace(
    session: WorkspaceSession, stop_event: Optional[threading.Event] = None
) -> None:
    """
    Watch the context root until interrupted, uploading saved files.

    Args:
        session: An opened, configured workspace session.
        stop_event: Optional event that ends the watch when set.
    """
    root = session.manager.context_path
    logger.info("Watching %s", root)

    for changes in watch(
        root,
        watch_filter=WorkspaceFilter(session),
        stop_event=stop_event,
        raise_interrupt=False,
    ):
        handle_changes(session, changes)
