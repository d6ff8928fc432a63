"""
Shared pytest fixtures for sftpsync tests.
"""

import json
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Optional, Sequence
from unittest.mock import MagicMock

import pytest

from sftpsync.config import ConfigManager
from sftpsync.session import Notifier, WorkspaceSession
from sftpsync.transfer import TransferDispatcher


class RecordingNotifier(Notifier):
    """Notifier that keeps messages instead of printing them."""

    def __init__(self) -> None:
        self.infos: List[str] = []
        self.errors: List[str] = []

    def info(self, message: str) -> None:
        self.infos.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config() -> Dict[str, Any]:
    """Sample configuration for testing."""
    return {
        "name": "Test Server",
        "protocol": "sftp",
        "host": "sftp.example.com",
        "port": 22,
        "username": "sftpuser",
        "password": "sftppass",
        "remotePath": "/var/www",
    }


@pytest.fixture
def write_config(temp_dir: Path) -> Callable[..., Path]:
    """Return a helper that writes an sftp.json into the workspace."""

    def _write(data: Any, location: Sequence[str] = (".zed", "sftp.json")) -> Path:
        config_path = temp_dir.joinpath(*location)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            if isinstance(data, str):
                f.write(data)
            else:
                json.dump(data, f)
        return config_path

    return _write


@pytest.fixture
def workspace(
    temp_dir: Path, sample_config: Dict[str, Any], write_config: Callable[..., Path]
) -> Path:
    """A workspace with a valid .zed/sftp.json."""
    write_config(sample_config)
    return temp_dir


@pytest.fixture
def manager(workspace: Path) -> ConfigManager:
    """A configuration manager with the sample config loaded."""
    config_manager = ConfigManager(workspace)
    config_manager.load()
    return config_manager


@pytest.fixture
def mock_remote() -> MagicMock:
    """A remote client double."""
    remote = MagicMock()
    remote.upload_dir.return_value = 2
    remote.download_dir.return_value = 2
    return remote


@pytest.fixture
def dispatcher(manager: ConfigManager, mock_remote: MagicMock) -> TransferDispatcher:
    """A dispatcher that talks to ``mock_remote``."""
    return TransferDispatcher(manager, lambda config: mock_remote)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_session(
    temp_dir: Path,
    sample_config: Dict[str, Any],
    write_config: Callable[..., Path],
    notifier: RecordingNotifier,
    mock_remote: MagicMock,
) -> Callable[..., WorkspaceSession]:
    """Return a helper that writes a config (sample + overrides) and opens a session."""

    def _make(overrides: Optional[Dict[str, Any]] = None) -> WorkspaceSession:
        data = dict(sample_config)
        data.update(overrides or {})
        write_config(data)
        session = WorkspaceSession(
            temp_dir, notifier=notifier, remote_factory=lambda config: mock_remote
        )
        session.open()
        return session

    return _make


@pytest.fixture
def sample_file_structure(temp_dir: Path) -> Path:
    """Create a sample file structure for testing."""
    # Create directories
    (temp_dir / "src").mkdir()
    (temp_dir / "src" / "components").mkdir()
    (temp_dir / "assets").mkdir()

    # Create files
    (temp_dir / "index.html").write_text("<html></html>")
    (temp_dir / "style.css").write_text("body {}")
    (temp_dir / "src" / "app.js").write_text("console.log('app');")
    (temp_dir / "src" / "components" / "header.js").write_text("// header")
    (temp_dir / "assets" / "logo.png").write_bytes(b"\x89PNG")

    # Create files that should be excluded
    (temp_dir / "node_modules").mkdir()
    (temp_dir / "node_modules" / "lib.js").write_text("module.exports = {}")
    (temp_dir / ".git").mkdir()
    (temp_dir / ".git" / "config").write_text("[core]")
    (temp_dir / "debug.log").write_text("log")

    return temp_dir
