"""
Protocols subpackage for sftpsync.

Re-exports the remote clients and picks one for a configuration.
"""

from sftpsync.config import SftpConfig
from sftpsync.errors import ConfigError
from sftpsync.protocols.base import RemoteClient, RemoteEntry
from sftpsync.protocols.ftp import FTPRemote
from sftpsync.protocols.sftp import SFTPRemote


def create_remote(config: SftpConfig) -> RemoteClient:
    """Return an unconnected remote client for the configured protocol."""
    protocol = config.effective_protocol
    if protocol == "sftp":
        return SFTPRemote(config)
    if protocol in ("ftp", "ftps"):
        return FTPRemote(config)
    raise ConfigError(f"Unsupported protocol '{config.protocol}'. Use 'sftp', 'ftp' or 'ftps'.")


__all__ = [
    "create_remote",
    "FTPRemote",
    "RemoteClient",
    "RemoteEntry",
    "SFTPRemote",
]
