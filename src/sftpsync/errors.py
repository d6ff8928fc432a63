"""
Exception hierarchy for sftpsync.

Library code raises these; the workspace session and the CLI are the only
places that catch and report them.
"""


class SftpSyncError(Exception):
    """Base class for all sftpsync errors."""


class ConfigError(SftpSyncError):
    """Missing, invalid or unparsable configuration."""


class SecurityError(SftpSyncError):
    """A path would escape the context root or the remote root."""


class RemoteConnectionError(SftpSyncError):
    """Connecting or authenticating to the remote host failed."""


class TransferError(SftpSyncError):
    """A remote I/O operation (put, get, mkdir, list, delete) failed."""
