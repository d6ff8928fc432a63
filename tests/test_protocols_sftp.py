"""
Tests for sftpsync.protocols.sftp module.
"""

import os
from pathlib import Path
from typing import Any, Dict, Generator, Tuple
from unittest.mock import MagicMock, patch

import paramiko
import pytest

from sftpsync.config import SftpConfig
from sftpsync.protocols import RemoteEntry, SFTPRemote, create_remote
from sftpsync.protocols.ftp import FTPRemote
from sftpsync.protocols.sftp import disabled_algorithms


def make_config(**overrides: Any) -> SftpConfig:
    values: Dict[str, Any] = {
        "host": "sftp.example.com",
        "username": "user",
        "password": "pass",
        "remote_path": "/home/user/public_html",
    }
    values.update(overrides)
    return SftpConfig(**values)


class TestCreateRemote:
    """Tests for create_remote function."""

    def test_protocol_selection(self) -> None:
        assert isinstance(create_remote(make_config()), SFTPRemote)
        assert isinstance(create_remote(make_config(protocol="sftp")), SFTPRemote)
        assert isinstance(create_remote(make_config(protocol="ftp")), FTPRemote)
        assert isinstance(create_remote(make_config(protocol="ftps")), FTPRemote)


class TestConnectKwargs:
    """Tests for building paramiko connect arguments."""

    def test_password_auth(self) -> None:
        kwargs = SFTPRemote(make_config(port=2222)).connect_kwargs()

        assert kwargs["hostname"] == "sftp.example.com"
        assert kwargs["port"] == 2222
        assert kwargs["username"] == "user"
        assert kwargs["password"] == "pass"
        assert "key_filename" not in kwargs

    def test_default_port(self) -> None:
        assert SFTPRemote(make_config()).connect_kwargs()["port"] == 22

    def test_private_key_with_passphrase(self) -> None:
        """Test that the key path is expanded and the passphrase passed."""
        config = make_config(password=None, private_key_path="~/.ssh/id_rsa", passphrase="secret")

        kwargs = SFTPRemote(config).connect_kwargs()

        assert kwargs["key_filename"] == os.path.expanduser("~/.ssh/id_rsa")
        assert kwargs["passphrase"] == "secret"
        assert "password" not in kwargs

    def test_connect_timeout_in_seconds(self) -> None:
        kwargs = SFTPRemote(make_config(connect_timeout=10000)).connect_kwargs()

        assert kwargs["timeout"] == 10.0

    def test_algorithm_preferences(self) -> None:
        config = make_config(algorithms={"cipher": ["aes256-ctr"]})

        with patch.object(
            paramiko.Transport, "_preferred_ciphers", ("aes128-ctr", "aes256-ctr", "3des-cbc")
        ):
            kwargs = SFTPRemote(config).connect_kwargs()

        assert kwargs["disabled_algorithms"] == {"ciphers": ["aes128-ctr", "3des-cbc"]}


class TestDisabledAlgorithms:
    """Tests for disabled_algorithms function."""

    def test_no_preferences(self) -> None:
        assert disabled_algorithms(None) == {}
        assert disabled_algorithms({"kex": []}) == {}

    def test_unknown_preference_attribute(self) -> None:
        """Test that a paramiko without the preference table disables nothing."""
        with patch.object(paramiko.Transport, "_preferred_kex", None):
            assert disabled_algorithms({"kex": ["curve25519-sha256"]}) == {}

    def test_all_listed_disables_nothing(self) -> None:
        with patch.object(paramiko.Transport, "_preferred_macs", ("hmac-sha2-256",)):
            assert disabled_algorithms({"hmac": ["hmac-sha2-256"]}) == {}


class TestSftpConnection:
    """Tests for SFTPRemote connection handling."""

    def test_connect_opens_sftp(self) -> None:
        with patch("sftpsync.protocols.sftp.paramiko.SSHClient") as mock_ssh_class:
            mock_ssh = MagicMock()
            mock_ssh_class.return_value = mock_ssh

            remote = SFTPRemote(make_config(keepalive=30000))
            remote.connect()

            mock_ssh.connect.assert_called_once()
            assert mock_ssh.connect.call_args[1]["hostname"] == "sftp.example.com"
            mock_ssh.open_sftp.assert_called_once()
            mock_ssh.get_transport.return_value.set_keepalive.assert_called_once_with(30)

    def test_connect_failure_closes_client(self) -> None:
        with patch("sftpsync.protocols.sftp.paramiko.SSHClient") as mock_ssh_class:
            mock_ssh = MagicMock()
            mock_ssh_class.return_value = mock_ssh
            mock_ssh.connect.side_effect = paramiko.AuthenticationException("denied")

            remote = SFTPRemote(make_config())
            with pytest.raises(paramiko.AuthenticationException):
                remote.connect()

            mock_ssh.close.assert_called_once()

    def test_end_closes_both(self) -> None:
        with patch("sftpsync.protocols.sftp.paramiko.SSHClient") as mock_ssh_class:
            mock_ssh = MagicMock()
            mock_ssh_class.return_value = mock_ssh
            remote = SFTPRemote(make_config())
            remote.connect()

            remote.end()
            remote.end()

            mock_ssh.open_sftp.return_value.close.assert_called_once()
            mock_ssh.close.assert_called_once()

    def test_operations_require_connection(self) -> None:
        with pytest.raises(paramiko.SSHException):
            SFTPRemote(make_config()).delete("/tmp/x")


class TestSftpOperations:
    """Tests for SFTPRemote file operations."""

    @pytest.fixture
    def remote_and_sftp(self) -> Generator[Tuple[SFTPRemote, MagicMock], None, None]:
        with patch("sftpsync.protocols.sftp.paramiko.SSHClient") as mock_ssh_class:
            mock_ssh = MagicMock()
            mock_ssh_class.return_value = mock_ssh
            mock_sftp = MagicMock()
            mock_ssh.open_sftp.return_value = mock_sftp
            remote = SFTPRemote(make_config())
            remote.connect()
            yield remote, mock_sftp

    def test_mkdir_recursive_creates_missing(
        self, remote_and_sftp: Tuple[SFTPRemote, MagicMock]
    ) -> None:
        remote, mock_sftp = remote_and_sftp
        existing = {"/home", "/home/user"}

        def fake_stat(path: str) -> MagicMock:
            if path not in existing:
                raise FileNotFoundError(path)
            return MagicMock()

        mock_sftp.stat.side_effect = fake_stat

        remote.mkdir("/home/user/public_html/css", recursive=True)

        created = [c[0][0] for c in mock_sftp.mkdir.call_args_list]
        assert created == ["/home/user/public_html", "/home/user/public_html/css"]

    def test_list_maps_entries(
        self, remote_and_sftp: Tuple[SFTPRemote, MagicMock]
    ) -> None:
        remote, mock_sftp = remote_and_sftp

        mock_file = MagicMock()
        mock_file.filename = "index.html"
        mock_file.st_mode = 0o100644  # Regular file
        mock_file.st_size = 12

        mock_dir = MagicMock()
        mock_dir.filename = "css"
        mock_dir.st_mode = 0o040755  # Directory
        mock_dir.st_size = 4096

        mock_sftp.listdir_attr.return_value = [mock_file, mock_dir]

        entries = remote.list("/home/user")

        assert entries == [RemoteEntry("index.html", False, 12), RemoteEntry("css", True, 4096)]

    def test_put_get_delete(
        self, remote_and_sftp: Tuple[SFTPRemote, MagicMock], temp_dir: Path
    ) -> None:
        remote, mock_sftp = remote_and_sftp
        local_file = temp_dir / "a.txt"

        remote.put(local_file, "/r/a.txt")
        remote.get("/r/a.txt", local_file)
        remote.delete("/r/a.txt")

        mock_sftp.put.assert_called_once_with(str(local_file), "/r/a.txt")
        mock_sftp.get.assert_called_once_with("/r/a.txt", str(local_file))
        mock_sftp.remove.assert_called_once_with("/r/a.txt")
