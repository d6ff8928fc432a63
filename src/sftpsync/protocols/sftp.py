"""
SFTP protocol implementation for sftpsync.

Wraps a single paramiko SSH/SFTP connection.
"""

import os
import stat
from pathlib import Path
from typing import Any, Dict, List, Optional

import paramiko

from sftpsync.config import SftpConfig
from sftpsync.protocols.base import RemoteClient, RemoteEntry

# sftp.json algorithm keys -> (paramiko disabled_algorithms key, Transport preference attribute)
_ALGORITHM_KEYS = {
    "kex": ("kex", "_preferred_kex"),
    "cipher": ("ciphers", "_preferred_ciphers"),
    "serverHostKey": ("keys", "_preferred_keys"),
    "hmac": ("macs", "_preferred_macs"),
}


def disabled_algorithms(algorithms: Optional[Dict[str, List[str]]]) -> Dict[str, List[str]]:
    """
    Translate algorithm preference lists into paramiko's ``disabled_algorithms``.

    paramiko has no per-connection allow list, so everything it supports that
    is not listed gets disabled. Empty or missing lists leave paramiko's
    defaults alone.

    Args:
        algorithms: ``algorithms`` section of sftp.json.

    Returns:
        Mapping suitable for ``SSHClient.connect(disabled_algorithms=...)``.
    """
    disabled: Dict[str, List[str]] = {}
    for key, (paramiko_key, attr) in _ALGORITHM_KEYS.items():
        wanted = (algorithms or {}).get(key)
        if not wanted:
            continue
        # Private Transport attributes; their names can change between paramiko
        # releases, in which case the preference is not applied.
        supported = getattr(paramiko.Transport, attr, None) or ()
        rejected = [name for name in supported if name not in wanted]
        if rejected:
            disabled[paramiko_key] = rejected
    return disabled


class SFTPRemote(RemoteClient):
    """Remote client over SFTP."""

    def __init__(self, config: SftpConfig) -> None:
        super().__init__(config)
        self._ssh: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None

    def connect_kwargs(self) -> Dict[str, Any]:
        """Build keyword arguments for ``SSHClient.connect``."""
        cfg = self.config
        kwargs: Dict[str, Any] = {
            "hostname": cfg.host,
            "port": cfg.effective_port,
            "username": cfg.username,
            "compress": True,
        }

        if cfg.password:
            kwargs["password"] = cfg.password
        elif cfg.private_key_path:
            kwargs["key_filename"] = os.path.expanduser(cfg.private_key_path)
            if cfg.passphrase:
                kwargs["passphrase"] = cfg.passphrase

        # connectTimeout is in milliseconds
        if cfg.connect_timeout:
            kwargs["timeout"] = cfg.connect_timeout / 1000.0

        disabled = disabled_algorithms(cfg.algorithms)
        if disabled:
            kwargs["disabled_algorithms"] = disabled

        return kwargs

    def connect(self) -> None:
        ssh = paramiko.SSHClient()
        ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            ssh.connect(**self.connect_kwargs())

            if self.config.keepalive:
                transport = ssh.get_transport()
                if transport is not None:
                    transport.set_keepalive(max(1, int(self.config.keepalive) // 1000))

            self._sftp = ssh.open_sftp()
        except BaseException:
            ssh.close()
            raise
        self._ssh = ssh

    def end(self) -> None:
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        if self._ssh is not None:
            self._ssh.close()
            self._ssh = None

    @property
    def sftp(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            raise paramiko.SSHException("SFTP connection is not open")
        return self._sftp

    def put(self, local_path: Path, remote_path: str) -> None:
        self.sftp.put(str(local_path), remote_path)

    def get(self, remote_path: str, local_path: Path) -> None:
        self.sftp.get(remote_path, str(local_path))

    def mkdir(self, remote_path: str, recursive: bool = False) -> None:
        if not recursive:
            self.sftp.mkdir(remote_path)
            return

        current_path = ""
        for part in remote_path.split("/"):
            if not part:
                continue
            current_path += "/" + part
            try:
                self.sftp.stat(current_path)
            except IOError:
                self.sftp.mkdir(current_path)

    def list(self, remote_path: str) -> List[RemoteEntry]:
        entries: List[RemoteEntry] = []
        for attr in self.sftp.listdir_attr(remote_path):
            if attr.filename in (".", ".."):
                continue
            is_dir = attr.st_mode is not None and stat.S_ISDIR(attr.st_mode)
            entries.append(RemoteEntry(attr.filename, is_dir, attr.st_size))
        return entries

    def delete(self, remote_path: str) -> None:
        self.sftp.remove(remote_path)
