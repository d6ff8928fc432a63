"""
FTP and FTPS protocol implementation for sftpsync.

Wraps a single ftplib connection in passive mode.
"""

import ftplib
import posixpath
from pathlib import Path
from typing import List, Optional

from sftpsync.config import SftpConfig
from sftpsync.protocols.base import RemoteClient, RemoteEntry


class FTPRemote(RemoteClient):
    """Remote client over FTP, or explicit FTPS when ``protocol`` is ``ftps``."""

    def __init__(self, config: SftpConfig) -> None:
        super().__init__(config)
        self._ftp: Optional[ftplib.FTP] = None

    @property
    def secure(self) -> bool:
        return self.config.effective_protocol == "ftps"

    def connect(self) -> None:
        cfg = self.config
        ftp: ftplib.FTP = ftplib.FTP_TLS() if self.secure else ftplib.FTP()

        # connectTimeout is in milliseconds
        timeout = cfg.connect_timeout / 1000.0 if cfg.connect_timeout else 60
        try:
            ftp.connect(cfg.host, cfg.effective_port, timeout=timeout)
            ftp.login(cfg.username, cfg.password or "")
            if self.secure:
                ftp.prot_p()
            ftp.set_pasv(True)
        except BaseException:
            ftp.close()
            raise
        self._ftp = ftp

    def end(self) -> None:
        if self._ftp is None:
            return
        ftp, self._ftp = self._ftp, None
        try:
            ftp.quit()
        except ftplib.all_errors:
            ftp.close()

    @property
    def ftp(self) -> ftplib.FTP:
        if self._ftp is None:
            raise ftplib.error_temp("421 FTP connection is not open")
        return self._ftp

    def put(self, local_path: Path, remote_path: str) -> None:
        with open(local_path, "rb") as f:
            self.ftp.storbinary(f"STOR {remote_path}", f)

    def get(self, remote_path: str, local_path: Path) -> None:
        with open(local_path, "wb") as f:
            self.ftp.retrbinary(f"RETR {remote_path}", f.write)

    def mkdir(self, remote_path: str, recursive: bool = False) -> None:
        if not recursive:
            self.ftp.mkd(remote_path)
            return

        current = self.ftp.pwd()
        current_path = ""
        try:
            for part in remote_path.split("/"):
                if not part:
                    continue
                current_path += "/" + part
                try:
                    self.ftp.cwd(current_path)
                except ftplib.error_perm:
                    self.ftp.mkd(current_path)
        finally:
            self.ftp.cwd(current)

    def list(self, remote_path: str) -> List[RemoteEntry]:
        entries: List[RemoteEntry] = []
        try:
            for name, facts in self.ftp.mlsd(remote_path, facts=["type", "size"]):
                if name in (".", "..") or facts.get("type") in ("cdir", "pdir"):
                    continue
                size = facts.get("size")
                entries.append(
                    RemoteEntry(name, facts.get("type") == "dir", int(size) if size else None)
                )
            return entries
        except ftplib.error_perm:
            # MLSD not supported, fall back to NLST + checking each
            pass

        current = self.ftp.pwd()
        for full_path in self.ftp.nlst(remote_path):
            name = posixpath.basename(full_path.rstrip("/"))
            if name in (".", ".."):
                continue
            target = full_path if full_path.startswith("/") else posixpath.join(remote_path, name)
            try:
                self.ftp.cwd(target)
                self.ftp.cwd(current)
                is_dir = True
            except ftplib.error_perm:
                is_dir = False
            entries.append(RemoteEntry(name, is_dir))
        return entries

    def delete(self, remote_path: str) -> None:
        self.ftp.delete(remote_path)
