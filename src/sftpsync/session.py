"""
Workspace session for sftpsync.

Owns the configuration manager and the transfer dispatcher of one workspace,
reacts to save events and runs named commands. Every failure is reported here,
once, through the session's notifier.
"""

import logging
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import click

from sftpsync.config import ConfigManager, SftpConfig
from sftpsync.errors import ConfigError, SftpSyncError
from sftpsync.protocols import RemoteClient, create_remote
from sftpsync.transfer import TransferDispatcher
from sftpsync.utils import PathLike, absolute_path

logger = logging.getLogger(__name__)

COMMAND_PREFIX = "sftp."
COMMANDS = ("upload", "download", "sync", "uploadFolder", "downloadFolder", "diff")
DEFAULT_DIFF_TOOL = "zed"


class Notifier:
    """Surfaces messages to the user."""

    def info(self, message: str) -> None:
        click.echo(click.style(f"✅ {message}", fg="green"))

    def error(self, message: str) -> None:
        click.echo(click.style(f"❌ {message}", fg="red"), err=True)


class WorkspaceSession:
    """
    The per-workspace context handed to every event handler.

    Lifecycle: ``open`` when the workspace is discovered, live for the process,
    ``close`` on shutdown.
    """

    def __init__(
        self,
        workspace_root: PathLike,
        notifier: Optional[Notifier] = None,
        remote_factory: Callable[[SftpConfig], RemoteClient] = create_remote,
        diff_tool: str = DEFAULT_DIFF_TOOL,
    ) -> None:
        self.manager = ConfigManager(workspace_root)
        self.notifier = notifier or Notifier()
        self.diff_tool = diff_tool
        self._remote_factory = remote_factory
        self.dispatcher: Optional[TransferDispatcher] = None
        self._viewers: List["subprocess.Popen[bytes]"] = []

    @property
    def workspace_root(self) -> Path:
        return self.manager.workspace_root

    @property
    def configured(self) -> bool:
        return self.dispatcher is not None

    def open(self) -> Optional[SftpConfig]:
        """
        Load the workspace configuration and prepare the dispatcher.

        A missing or invalid configuration leaves the session unconfigured.
        """
        try:
            config = self.manager.load()
        except ConfigError as e:
            logger.warning("Failed to initialize SFTP: %s", e)
            self.notifier.error(f"Failed to initialize SFTP: {e}")
            return None

        if config is None:
            logger.warning("No SFTP config found in %s", self.workspace_root)
            return None

        self.dispatcher = TransferDispatcher(self.manager, self._remote_factory)
        logger.info("SFTP config loaded for %s", config.host)
        if config.context:
            logger.info("Context path: %s -> %s", config.context, self.manager.context_path)
        if config.upload_on_save:
            logger.info("Upload on save is enabled")
        return config

    def close(self) -> None:
        self._reap_viewers()
        if self.dispatcher is not None:
            self.dispatcher.close()

    def on_did_save(self, file_path: PathLike) -> bool:
        """
        Handle a document save: upload the file when ``uploadOnSave`` is set.

        The configuration is re-read first, so edits to sftp.json take effect
        without restarting.

        Returns:
            True if the file was uploaded.
        """
        if self.dispatcher is None:
            return False

        try:
            config = self.manager.reload()
        except ConfigError as e:
            logger.error("Failed to reload SFTP config: %s", e)
            self.notifier.error(f"Failed to reload SFTP config: {e}")
            return False

        if config is None or not config.upload_on_save:
            return False

        return self.upload_changed_file(file_path)

    def upload_changed_file(self, file_path: PathLike) -> bool:
        """Upload a changed file unless it is out of context or ignored."""
        if self.dispatcher is None:
            return False

        if not self.manager.is_in_context(file_path):
            logger.info("File is outside context path: %s", file_path)
            return False

        if self.manager.should_ignore(file_path):
            logger.info("Ignoring file: %s", file_path)
            return False

        logger.info("Uploading file on save: %s", file_path)
        try:
            remote_path = self.dispatcher.upload_file(file_path)
        except SftpSyncError as e:
            logger.error("Failed to upload file: %s", e)
            self.notifier.error(f"Failed to upload: {e}")
            return False

        if remote_path is None:
            return False
        self.notifier.info(f"Uploaded: {_basename(file_path)}")
        return True

    def delete_removed_file(self, file_path: PathLike) -> bool:
        """Delete the remote copy of a file removed locally."""
        if self.dispatcher is None:
            return False

        if self.manager.should_ignore(file_path):
            logger.info("Ignoring file: %s", file_path)
            return False

        try:
            remote_path = self.manager.resolve_remote_path(file_path)
            if remote_path is None:
                logger.info("File is outside context path: %s", file_path)
                return False
            self.dispatcher.delete_remote_file(remote_path)
        except SftpSyncError as e:
            logger.error("Failed to delete remote file: %s", e)
            self.notifier.error(f"Failed to delete remote file: {e}")
            return False

        self.notifier.info(f"Deleted remote: {_basename(file_path)}")
        return True

    def execute_command(self, command: str, arguments: Sequence[PathLike] = ()) -> bool:
        """
        Run a named command with positional path arguments.

        Accepts ``upload``, ``download``, ``sync``, ``uploadFolder``,
        ``downloadFolder`` and ``diff``, with or without the ``sftp.`` prefix.
        Path commands act on each argument in turn; ``sync`` defaults to the
        context root.

        Returns:
            True if every step succeeded.
        """
        if self.dispatcher is None:
            self.notifier.error("SFTP not configured")
            return False

        name = command[len(COMMAND_PREFIX):] if command.startswith(COMMAND_PREFIX) else command
        if name not in COMMANDS:
            self.notifier.error(f"Unknown command: {command}")
            return False

        if name == "sync":
            targets: Sequence[PathLike] = arguments or [self.manager.context_path]
        elif not arguments:
            self.notifier.error(f"Command '{name}' requires a path argument")
            return False
        else:
            targets = arguments

        ok = True
        for target in targets:
            try:
                self._run(name, target)
            except SftpSyncError as e:
                logger.error("Command failed: %s", e)
                self.notifier.error(f"Command failed: {e}")
                ok = False
        return ok

    def _run(self, name: str, target: PathLike) -> None:
        dispatcher = self.dispatcher
        assert dispatcher is not None
        base = _basename(target)

        if name == "upload":
            if dispatcher.upload_file(target) is not None:
                self.notifier.info(f"Uploaded: {base}")
        elif name == "download":
            if dispatcher.download_file(target) is not None:
                self.notifier.info(f"Downloaded: {base}")
        elif name == "uploadFolder":
            if dispatcher.upload_folder(target) is not None:
                self.notifier.info(f"Uploaded folder: {base}")
        elif name == "downloadFolder":
            if dispatcher.download_folder(target) is not None:
                self.notifier.info(f"Downloaded folder: {base}")
        elif name == "sync":
            if dispatcher.sync_folder(target) is not None:
                self.notifier.info("Sync completed")
        elif name == "diff":
            self._diff(target)

    def _diff(self, target: PathLike) -> None:
        assert self.dispatcher is not None
        logger.info("Fetching remote version for diff: %s", target)
        temp_file = self.dispatcher.download_to_temp(target)
        local_file = absolute_path(target, self.workspace_root)

        self._reap_viewers()
        # remote copy is the "old" side, local the "new" one
        try:
            viewer = subprocess.Popen([self.diff_tool, "--diff", str(temp_file), local_file])
        except OSError as e:
            logger.error("Failed to open diff view: %s", e)
            self.notifier.error(f"Failed to open diff: {e}")
            return
        self._viewers.append(viewer)

        self.notifier.info(f"Diff: {_basename(target)} (remote vs local)")

    def _reap_viewers(self) -> None:
        """Collect diff viewers that have exited; running ones are left alone."""
        self._viewers = [viewer for viewer in self._viewers if viewer.poll() is None]


def _basename(path: PathLike) -> str:
    return Path(path).name
