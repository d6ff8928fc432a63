"""
Transfer dispatcher for sftpsync.

Turns upload/download/sync intents into calls on one lazily opened remote
connection, using the configuration manager for path mapping.
"""

import hashlib
import logging
import tempfile
import threading
from pathlib import Path
from typing import Callable, List, Optional

from sftpsync.config import ConfigManager, SftpConfig
from sftpsync.errors import ConfigError, RemoteConnectionError, TransferError
from sftpsync.protocols import RemoteClient, create_remote
from sftpsync.utils import PathLike, absolute_path

logger = logging.getLogger(__name__)

DIFF_TEMP_DIRNAME = "sftpsync-diff"


class TransferDispatcher:
    """
    Performs remote operations for one workspace.

    At most one connection is open at a time; it is established on first use
    and reused until ``close``. A re-entrant lock serializes connect, use and
    disconnect, so events arriving from several threads never share the
    connection concurrently.
    """

    def __init__(
        self,
        manager: ConfigManager,
        remote_factory: Callable[[SftpConfig], RemoteClient] = create_remote,
    ) -> None:
        self.manager = manager
        self._remote_factory = remote_factory
        self._remote: Optional[RemoteClient] = None
        self._connected = False
        self._lock = threading.RLock()

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def config(self) -> SftpConfig:
        config = self.manager.config
        if config is None:
            raise ConfigError("No SFTP configuration loaded")
        return config

    def connect(self) -> None:
        """
        Open the remote connection unless it is already open.

        Raises:
            RemoteConnectionError: If connecting or authenticating fails. The
                next call tries again from scratch.
        """
        with self._lock:
            if self._connected:
                return

            config = self.config
            try:
                if self._remote is None:
                    self._remote = self._remote_factory(config)
                self._remote.connect()
            except Exception as e:
                self._connected = False
                self._remote = None
                raise RemoteConnectionError(
                    f"Failed to connect to {config.host}:{config.effective_port}: {e}"
                ) from e

            self._connected = True
            logger.info("Connected to %s", config.host)

    def close(self) -> None:
        """Disconnect if connected. Safe to call more than once."""
        with self._lock:
            if not self._connected or self._remote is None:
                return
            remote, self._remote = self._remote, None
            self._connected = False
            remote.end()
            logger.info("Disconnected from %s", remote.config.host)

    def _resolve(self, local_path: PathLike, kind: str = "File") -> Optional[str]:
        remote_path = self.manager.resolve_remote_path(local_path)
        if remote_path is None:
            logger.warning("%s is outside context path: %s", kind, local_path)
        return remote_path

    def _local(self, local_path: PathLike) -> Path:
        return Path(absolute_path(local_path, self.manager.workspace_root))

    def upload_file(self, local_path: PathLike) -> Optional[str]:
        """
        Upload one file to its mapped remote path.

        Returns:
            The remote path, or None if the file is outside the context root.

        Raises:
            RemoteConnectionError: If the connection cannot be opened.
            SecurityError: If the path uses parent traversal.
            TransferError: If the remote operation fails.
        """
        with self._lock:
            self.connect()
            remote_path = self._resolve(local_path)
            if remote_path is None:
                return None

            remote = self._require_remote()
            local = self._local(local_path)
            remote_dir = remote_path.rsplit("/", 1)[0] or "/"
            try:
                remote.mkdir(remote_dir, recursive=True)
                remote.put(local, remote_path)
            except Exception as e:
                raise TransferError(f"Failed to upload file {local_path}: {e}") from e

            logger.info("Uploaded: %s -> %s", local_path, remote_path)
            return remote_path

    def download_file(self, local_path: PathLike) -> Optional[str]:
        """Download one file from its mapped remote path, creating local parents."""
        with self._lock:
            self.connect()
            remote_path = self._resolve(local_path)
            if remote_path is None:
                return None

            remote = self._require_remote()
            local = self._local(local_path)
            try:
                local.parent.mkdir(parents=True, exist_ok=True)
                remote.get(remote_path, local)
            except Exception as e:
                raise TransferError(f"Failed to download file {local_path}: {e}") from e

            logger.info("Downloaded: %s -> %s", remote_path, local_path)
            return remote_path

    def upload_folder(self, local_folder: PathLike) -> Optional[str]:
        """Recursively upload a folder, skipping ignored paths."""
        return self._upload_tree(local_folder, "upload folder", "Uploaded folder")

    def sync_folder(self, local_folder: PathLike) -> Optional[str]:
        """
        Make the remote folder match the local one by uploading everything.

        One-directional: local is the source of truth, nothing is compared or
        deleted on the remote side.
        """
        return self._upload_tree(local_folder, "sync folder", "Synced folder")

    def _upload_tree(self, local_folder: PathLike, action: str, done: str) -> Optional[str]:
        with self._lock:
            self.connect()
            remote_path = self._resolve(local_folder, "Folder")
            if remote_path is None:
                return None

            remote = self._require_remote()
            local = self._local(local_folder)
            try:
                count = remote.upload_dir(local, remote_path, self.manager.should_ignore)
            except Exception as e:
                raise TransferError(f"Failed to {action} {local_folder}: {e}") from e

            logger.info("%s: %s -> %s (%d files)", done, local_folder, remote_path, count)
            return remote_path

    def download_folder(self, local_folder: PathLike) -> Optional[str]:
        """Recursively download the mapped remote folder into ``local_folder``."""
        with self._lock:
            self.connect()
            remote_path = self._resolve(local_folder, "Folder")
            if remote_path is None:
                return None

            remote = self._require_remote()
            local = self._local(local_folder)
            try:
                count = remote.download_dir(remote_path, local)
            except Exception as e:
                raise TransferError(f"Failed to download folder {local_folder}: {e}") from e

            logger.info("Downloaded folder: %s -> %s (%d files)", remote_path, local_folder, count)
            return remote_path

    def download_to_temp(self, local_path: PathLike) -> Path:
        """
        Fetch the remote copy of a file into a temporary file for diffing.

        The temporary name encodes the remote origin, so different remote files
        with the same basename never collide.

        Raises:
            TransferError: If the file is outside the context root or the
                download fails.
        """
        with self._lock:
            self.connect()
            remote_path = self.manager.resolve_remote_path(local_path)
            if remote_path is None:
                raise TransferError(f"File is outside context path: {local_path}")

            remote = self._require_remote()
            temp_dir = Path(tempfile.gettempdir()) / DIFF_TEMP_DIRNAME
            digest = hashlib.sha1(remote_path.encode("utf-8")).hexdigest()[:16]
            temp_file = temp_dir / f"{digest}_remote_{self._local(local_path).name}"
            try:
                temp_dir.mkdir(parents=True, exist_ok=True)
                remote.get(remote_path, temp_file)
            except Exception as e:
                raise TransferError(f"Failed to download remote file for diff: {e}") from e

            logger.info("Downloaded remote copy: %s -> %s", remote_path, temp_file)
            return temp_file

    def list_remote_files(self, remote_path: str) -> List[str]:
        """Return the entry names of a remote directory."""
        with self._lock:
            self.connect()
            remote = self._require_remote()
            try:
                return [entry.name for entry in remote.list(remote_path)]
            except Exception as e:
                raise TransferError(f"Failed to list remote files in {remote_path}: {e}") from e

    def delete_remote_file(self, remote_path: str) -> None:
        """Delete one remote file."""
        with self._lock:
            self.connect()
            remote = self._require_remote()
            try:
                remote.delete(remote_path)
            except Exception as e:
                raise TransferError(f"Failed to delete remote file {remote_path}: {e}") from e

            logger.info("Deleted remote file: %s", remote_path)

    def _require_remote(self) -> RemoteClient:
        if self._remote is None:
            raise RemoteConnectionError("Not connected")
        return self._remote
