"""
Remote client interface shared by the SFTP and FTP implementations.

Subclasses provide the primitive operations; recursive directory transfers
are built on top of them here.
"""

import logging
import posixpath
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Set

from sftpsync.config import SftpConfig
from sftpsync.excludes import walk_directory
from sftpsync.utils import join_remote_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteEntry:
    """One entry of a remote directory listing."""

    name: str
    is_dir: bool = False
    size: Optional[int] = None


class RemoteClient(ABC):
    """A connection to a remote file system."""

    def __init__(self, config: SftpConfig) -> None:
        self.config = config

    @abstractmethod
    def connect(self) -> None:
        """Open the connection and authenticate."""

    @abstractmethod
    def end(self) -> None:
        """Close the connection."""

    @abstractmethod
    def put(self, local_path: Path, remote_path: str) -> None:
        """Upload one file."""

    @abstractmethod
    def get(self, remote_path: str, local_path: Path) -> None:
        """Download one file."""

    @abstractmethod
    def mkdir(self, remote_path: str, recursive: bool = False) -> None:
        """Create a remote directory; with ``recursive`` also its parents."""

    @abstractmethod
    def list(self, remote_path: str) -> List[RemoteEntry]:
        """List a remote directory (without ``.`` and ``..``)."""

    @abstractmethod
    def delete(self, remote_path: str) -> None:
        """Delete a remote file."""

    def upload_dir(
        self,
        local_dir: Path,
        remote_dir: str,
        is_ignored: Optional[Callable[[Path], bool]] = None,
    ) -> int:
        """
        Upload a local directory tree.

        Args:
            local_dir: Local directory to upload.
            remote_dir: Remote target directory.
            is_ignored: Predicate for local paths to skip.

        Returns:
            Number of files uploaded.
        """
        if not local_dir.is_dir():
            raise NotADirectoryError(f"Not a directory: {local_dir}")

        self.mkdir(remote_dir, recursive=True)
        created_dirs: Set[str] = {remote_dir}
        uploaded = 0

        for local_file in walk_directory(local_dir, is_ignored):
            rel_parts = local_file.relative_to(local_dir).parts
            remote_path = join_remote_path(remote_dir, rel_parts)
            remote_parent = posixpath.dirname(remote_path)
            if remote_parent not in created_dirs:
                self.mkdir(remote_parent, recursive=True)
                created_dirs.add(remote_parent)

            self.put(local_file, remote_path)
            logger.debug("Uploaded %s -> %s", local_file, remote_path)
            uploaded += 1

        return uploaded

    def download_dir(self, remote_dir: str, local_dir: Path) -> int:
        """
        Download a remote directory tree.

        Returns:
            Number of files downloaded.
        """
        local_dir.mkdir(parents=True, exist_ok=True)
        downloaded = 0

        for entry in self.list(remote_dir):
            remote_path = join_remote_path(remote_dir, [entry.name])
            local_path = local_dir / entry.name
            if entry.is_dir:
                downloaded += self.download_dir(remote_path, local_path)
            else:
                self.get(remote_path, local_path)
                logger.debug("Downloaded %s -> %s", remote_path, local_path)
                downloaded += 1

        return downloaded
