"""
Configuration loading and path resolution for sftpsync.

Reads the per-workspace sftp.json, applies the default profile overlay and
maps local paths to remote paths relative to the context root.
"""

import dataclasses
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from sftpsync.errors import ConfigError, SecurityError
from sftpsync.excludes import build_ignore_patterns, is_excluded
from sftpsync.utils import (
    PathLike,
    absolute_path,
    has_traversal,
    is_within,
    join_remote_path,
    normalize_context,
    split_segments,
)

logger = logging.getLogger(__name__)

# Searched in order, first existing file wins. Saves always go to the first one.
CONFIG_LOCATIONS: Tuple[Tuple[str, ...], ...] = (
    (".zed", "sftp.json"),
    (".vscode", "sftp.json"),
    ("sftp.json",),
)

SUPPORTED_PROTOCOLS = ("sftp", "ftp", "ftps")


def _key(name: str, kind: Any = str) -> Any:
    """Declare a config field stored under ``name`` in sftp.json, holding ``kind`` values."""
    return field(default=None, metadata={"key": name, "kind": kind})


@dataclass(frozen=True)
class SftpConfig:
    """
    One workspace configuration, as read from sftp.json.

    Every field is optional at the type level; ``validate_config`` enforces the
    required ones. Keys unknown to sftpsync are kept in ``extra`` and written
    back on save.
    """

    name: Optional[str] = _key("name")
    protocol: Optional[str] = _key("protocol")
    host: Optional[str] = _key("host")
    port: Optional[int] = _key("port", int)
    username: Optional[str] = _key("username")
    password: Optional[str] = _key("password")
    private_key_path: Optional[str] = _key("privateKeyPath")
    passphrase: Optional[str] = _key("passphrase")
    remote_path: Optional[str] = _key("remotePath")
    local_path: Optional[str] = _key("localPath")
    context: Optional[str] = _key("context")
    upload_on_save: Optional[bool] = _key("uploadOnSave", bool)
    download_on_open: Optional[bool] = _key("downloadOnOpen", bool)
    ignore: Optional[Tuple[str, ...]] = _key("ignore", list)
    concurrency: Optional[int] = _key("concurrency", int)
    connect_timeout: Optional[int] = _key("connectTimeout", int)
    keepalive: Optional[int] = _key("keepalive", int)
    interactive_auth: Optional[bool] = _key("interactiveAuth", bool)
    algorithms: Optional[Dict[str, List[str]]] = _key("algorithms", dict)
    watcher: Optional[Dict[str, Any]] = _key("watcher", dict)
    profiles: Optional[Dict[str, Dict[str, Any]]] = _key("profiles", dict)
    default_profile: Optional[str] = _key("defaultProfile")
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SftpConfig":
        """
        Build a config from a parsed sftp.json document.

        Raises:
            ConfigError: If the document is not an object or a known key holds
                a value of the wrong type.
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a JSON object, got {type(data).__name__}")

        values: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            attr = _ATTR_BY_KEY.get(key)
            if attr is None:
                extra[key] = value
                continue
            _check_type(key, value)
            if attr == "ignore" and value is not None:
                values[attr] = (value,) if isinstance(value, str) else tuple(value)
            else:
                values[attr] = value
        return cls(extra=extra, **values)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the sftp.json layout, omitting unset fields."""
        data: Dict[str, Any] = {}
        for f in dataclasses.fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            data[f.metadata["key"]] = list(value) if f.name == "ignore" else value
        data.update(self.extra)
        return data

    @property
    def effective_protocol(self) -> str:
        return (self.protocol or "sftp").lower()

    @property
    def effective_port(self) -> int:
        if self.port:
            return int(self.port)
        return 22 if self.effective_protocol == "sftp" else 21


_ATTR_BY_KEY: Dict[str, str] = {
    f.metadata["key"]: f.name for f in dataclasses.fields(SftpConfig) if "key" in f.metadata
}
_KIND_BY_KEY: Dict[str, Any] = {
    f.metadata["key"]: f.metadata["kind"] for f in dataclasses.fields(SftpConfig) if "key" in f.metadata
}


def _check_type(key: str, value: Any) -> None:
    """Raise ConfigError unless ``value`` fits the sftp.json field ``key`` (null always fits)."""
    if value is None:
        return

    kind = _KIND_BY_KEY[key]
    if kind is int:
        # JSON true/false would otherwise pass as 1/0
        valid = isinstance(value, int) and not isinstance(value, bool)
    elif key == "ignore":
        valid = isinstance(value, str) or (
            isinstance(value, list) and all(isinstance(p, str) for p in value)
        )
    elif key == "profiles":
        valid = isinstance(value, dict) and all(isinstance(p, dict) for p in value.values())
    else:
        valid = isinstance(value, kind)

    if not valid:
        expected = {
            "ignore": "a string or a list of strings",
            "profiles": "an object of objects",
        }.get(key, kind.__name__)
        raise ConfigError(f"Invalid value for '{key}': expected {expected}, got {value!r}")


def merge_profile(base: SftpConfig, profile: Dict[str, Any]) -> SftpConfig:
    """
    Overlay a profile on top of a base config.

    A field present in the profile overrides the base value, including
    ``False``, ``0`` and empty strings. Fields absent from the profile are
    left untouched.

    Args:
        base: Base configuration.
        profile: Partial configuration in sftp.json layout.

    Returns:
        New merged configuration.

    Raises:
        ConfigError: If a profile value has the wrong type.
    """
    overlay = SftpConfig.from_dict(profile)
    changes: Dict[str, Any] = {}
    for key in profile:
        attr = _ATTR_BY_KEY.get(key)
        if attr is not None:
            changes[attr] = getattr(overlay, attr)

    extra = dict(base.extra)
    extra.update(overlay.extra)
    return dataclasses.replace(base, extra=extra, **changes)


def validate_config(config: SftpConfig) -> None:
    """
    Check required fields.

    Raises:
        ConfigError: If host, username or remotePath is missing, no credential
            is configured, or the protocol is unknown.
    """
    for attr, key in (("host", "host"), ("username", "username"), ("remote_path", "remotePath")):
        value = getattr(config, attr)
        if not value or not isinstance(value, str):
            raise ConfigError(f"Missing required field: {key}")

    if not config.password and not config.private_key_path:
        raise ConfigError("Either password or privateKeyPath must be provided")

    if config.effective_protocol not in SUPPORTED_PROTOCOLS:
        raise ConfigError(
            f"Unsupported protocol '{config.protocol}'. Use one of: {', '.join(SUPPORTED_PROTOCOLS)}"
        )


class ConfigManager:
    """
    Holds the active configuration of one workspace.

    A load computes the config, context path and ignore set together and swaps
    them in at once; readers never see a partially loaded state.
    """

    def __init__(self, workspace_root: PathLike) -> None:
        self.workspace_root = Path(os.path.abspath(os.fspath(workspace_root)))
        self._config: Optional[SftpConfig] = None
        self._context_path: Path = self.workspace_root
        self._ignore_patterns: List[str] = []
        self._config_path: Optional[Path] = None

    @property
    def config(self) -> Optional[SftpConfig]:
        return self._config

    @property
    def context_path(self) -> Path:
        return self._context_path

    @property
    def ignore_patterns(self) -> List[str]:
        return list(self._ignore_patterns)

    @property
    def config_path(self) -> Optional[Path]:
        """File the current configuration was read from or saved to."""
        return self._config_path

    @property
    def save_path(self) -> Path:
        return self.workspace_root.joinpath(*CONFIG_LOCATIONS[0])

    def find_config_file(self) -> Optional[Path]:
        """Return the first existing config file, or None."""
        for parts in CONFIG_LOCATIONS:
            candidate = self.workspace_root.joinpath(*parts)
            if candidate.is_file():
                return candidate
        return None

    def load(self) -> Optional[SftpConfig]:
        """
        Load, validate and resolve the workspace configuration.

        Returns:
            The effective configuration, or None if no config file exists.

        Raises:
            ConfigError: If the file cannot be parsed or is invalid.
        """
        config_path = self.find_config_file()
        if config_path is None:
            self._set_state(None, self.workspace_root, [], None)
            return None

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Failed to parse SFTP config '{config_path}': {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read SFTP config '{config_path}': {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Failed to parse SFTP config '{config_path}': expected a JSON object")

        config, context_path, ignore_patterns = self._resolve(SftpConfig.from_dict(data))

        # context and ignore come from the base document; the profile only overlays fields
        if config.profiles and config.default_profile:
            profile = config.profiles.get(config.default_profile)
            if profile:
                config = merge_profile(config, profile)
                validate_config(config)
                logger.debug("Applied profile '%s'", config.default_profile)
            else:
                logger.warning("Profile '%s' not found in %s", config.default_profile, config_path)

        self._set_state(config, context_path, ignore_patterns, config_path)
        logger.debug("Loaded SFTP config from %s", config_path)
        return self._config

    def reload(self) -> Optional[SftpConfig]:
        """Re-read the configuration from disk, replacing the current one."""
        return self.load()

    def save(self, config: SftpConfig) -> Path:
        """
        Persist a configuration to ``.zed/sftp.json`` and make it current.

        Raises:
            ConfigError: If the configuration is invalid.
            OSError: If the file cannot be written.
        """
        resolved = self._resolve(config)

        target = self.save_path
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            json.dump(config.to_dict(), f, indent=2)
            f.write("\n")

        self._set_state(*resolved, target)
        logger.info("Saved SFTP config to %s", target)
        return target

    def _resolve(self, config: SftpConfig) -> Tuple[SftpConfig, Path, List[str]]:
        """Validate a config and compute its defaults, context path and ignore set."""
        validate_config(config)
        if not config.local_path:
            config = dataclasses.replace(config, local_path=str(self.workspace_root))

        context_path = self.workspace_root
        if config.context:
            context = normalize_context(config.context)
            if context:
                context_path = Path(os.path.normpath(os.path.join(str(self.workspace_root), context)))
            if not is_within(context_path, self.workspace_root):
                raise ConfigError(f"Context '{config.context}' points outside the workspace")

        return config, context_path, build_ignore_patterns(config.ignore)

    def _set_state(
        self,
        config: Optional[SftpConfig],
        context_path: Path,
        ignore_patterns: List[str],
        config_path: Optional[Path],
    ) -> None:
        self._config, self._context_path, self._ignore_patterns, self._config_path = (
            config,
            context_path,
            ignore_patterns,
            config_path,
        )

    def should_ignore(self, path: PathLike) -> bool:
        """Return True if ``path`` (relative to the workspace root) matches an ignore pattern."""
        local = Path(absolute_path(path, self.workspace_root))
        return is_excluded(local, self._ignore_patterns, self.workspace_root)

    def is_in_context(self, path: PathLike) -> bool:
        """Return True if ``path`` is the context root or lies below it."""
        return is_within(absolute_path(path, self.workspace_root), self._context_path)

    def resolve_remote_path(self, local_path: PathLike) -> Optional[str]:
        """
        Map a local path to its remote path, respecting the context setting.

        Returns:
            Absolute remote path, or None if no config is loaded or the path is
            outside the context root.

        Raises:
            SecurityError: If the local path or the combined remote path uses
                parent directory traversal.
        """
        if self._config is None:
            return None

        raw = absolute_path(local_path, self.workspace_root)
        if not self.is_in_context(raw):
            return None

        # Explicit ".." is refused even when the normalized path lands in context
        if has_traversal(raw):
            raise SecurityError(f"Path traversal detected in file path: {local_path}")

        relative_path = os.path.relpath(os.path.normpath(raw), str(self._context_path))
        relative_parts = [] if relative_path == "." else split_segments(relative_path)
        if ".." in relative_parts:
            raise SecurityError(f"Path traversal detected in file path: {local_path}")

        remote_file_path = join_remote_path(self._config.remote_path or "/", relative_parts)
        if has_traversal(remote_file_path):
            raise SecurityError(f"Path traversal detected in remote path: {remote_file_path}")

        return remote_file_path
