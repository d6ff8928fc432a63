"""
sftpsync - Keep a workspace in sync with a remote SFTP/FTP/FTPS directory

Author: Gustavo Adrián Salvini
Email: gsalvini@ecimtech.com
GitHub: https://github.com/guspatagonico

License: MIT License
Copyright (c) 2025 Gustavo Adrián Salvini
"""

__version__ = "1.0.0"

# Public API exports
from sftpsync.config import ConfigManager, SftpConfig, merge_profile
from sftpsync.errors import (
    ConfigError,
    RemoteConnectionError,
    SecurityError,
    SftpSyncError,
    TransferError,
)
from sftpsync.session import WorkspaceSession
from sftpsync.transfer import TransferDispatcher

__all__ = [
    "__version__",
    "ConfigError",
    "ConfigManager",
    "merge_profile",
    "RemoteConnectionError",
    "SecurityError",
    "SftpConfig",
    "SftpSyncError",
    "TransferDispatcher",
    "TransferError",
    "WorkspaceSession",
]
