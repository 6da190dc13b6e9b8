"""
Configuration module for clustertest.
Loads settings from .env, an optional YAML settings file and the environment.
"""
import getpass
import os
import shlex
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from clustertest.errors import ConfigurationError

ENV_PREFIX = "CLUSTERTEST_"
DEFAULT_SETTINGS_PATH = Path("~/.config/clustertest/settings.yaml")
CLEANUP_POLICIES = ("keep", "on-success", "always")

DEFAULTS: Dict[str, Any] = {
    "domain": "cluster.internal",
    "gateway_host": None,
    "coordinator_host": "coordinator",
    "ssh_user": None,
    "ssh_port": 22,
    "ssh_key": None,
    "connect_timeout": 10,
    "build_command": "cluster-image-build",
    "credential_command": "cluster-image-build --check-credentials",
    "remote_command": "cluster-test run",
    "container": "tester",
    "image_repository": "cluster-tester",
    "session_output_cleanup": "keep",
}


class ClusterTestConfig:
    """Load and validate clustertest settings."""

    def __init__(self, env_file: Optional[Path] = None, settings_file: Optional[Path] = None):
        """
        Initialize configuration.

        Precedence, highest first: environment variables (including values
        loaded from .env, which never override variables already set), the
        YAML settings file, built-in defaults.

        Args:
            env_file: Path to .env file. If None, looks for .env in the working directory.
            settings_file: Path to YAML settings. If None, uses CLUSTERTEST_SETTINGS
                or ~/.config/clustertest/settings.yaml when present.

        Raises:
            ConfigurationError: If a setting has an invalid value.
        """
        self._load_env_file(env_file)
        values = dict(DEFAULTS)
        values.update(self._load_settings_file(settings_file))
        for key in DEFAULTS:
            env_value = os.getenv(f"{ENV_PREFIX}{key.upper()}")
            if env_value is not None and env_value.strip():
                values[key] = env_value.strip()

        self.domain: str = str(values["domain"])
        self.gateway_host: Optional[str] = values["gateway_host"] or None
        self.coordinator_host: str = str(values["coordinator_host"])
        self.ssh_user: str = str(values["ssh_user"] or getpass.getuser())
        self.ssh_port: int = self._to_int("ssh_port", values["ssh_port"])
        self.ssh_key: Optional[str] = str(Path(values["ssh_key"]).expanduser()) if values["ssh_key"] else None
        self.connect_timeout: int = self._to_int("connect_timeout", values["connect_timeout"])
        self.build_command: List[str] = self._to_command("build_command", values["build_command"])
        self.credential_command: List[str] = self._to_command("credential_command", values["credential_command"])
        self.remote_command: List[str] = self._to_command("remote_command", values["remote_command"])
        self.container: str = str(values["container"])
        self.image_repository: str = str(values["image_repository"])
        self.session_output_cleanup: str = str(values["session_output_cleanup"]).lower()

        if not 0 < self.ssh_port <= 65535:
            raise ConfigurationError("ssh_port must be an integer between 1 and 65535")
        if self.connect_timeout <= 0:
            raise ConfigurationError("connect_timeout must be a positive integer")
        if self.session_output_cleanup not in CLEANUP_POLICIES:
            raise ConfigurationError(
                f"session_output_cleanup must be one of {', '.join(CLEANUP_POLICIES)}, "
                f"got '{self.session_output_cleanup}'"
            )

    def gateway_for(self, workspace: str) -> str:
        """Return the gateway host for a workspace, honouring an explicit override."""
        if self.gateway_host:
            return self.gateway_host
        return f"bastion.{workspace}.{self.domain}"

    @staticmethod
    def _load_env_file(env_file: Optional[Path]) -> None:
        """Load .env file if it exists."""
        if env_file is None:
            env_file = Path.cwd() / ".env"
        if env_file.exists():
            load_dotenv(env_file, override=False)

    @staticmethod
    def _load_settings_file(settings_file: Optional[Path]) -> Dict[str, Any]:
        if settings_file is None:
            settings_file = Path(os.getenv(f"{ENV_PREFIX}SETTINGS", str(DEFAULT_SETTINGS_PATH)))
        settings_file = settings_file.expanduser()
        if not settings_file.exists():
            return {}

        try:
            with open(settings_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Settings file {settings_file} is not valid YAML: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file {settings_file} must contain a mapping")
        unknown = sorted(set(data) - set(DEFAULTS))
        if unknown:
            raise ConfigurationError(f"Unknown settings in {settings_file}: {', '.join(unknown)}")
        return data

    @staticmethod
    def _to_int(key: str, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{key} must be an integer, got '{value}'") from None

    @staticmethod
    def _to_command(key: str, value: Any) -> List[str]:
        # YAML may give a list already; strings are split like a shell would.
        parts = [str(v) for v in value] if isinstance(value, list) else shlex.split(str(value))
        if not parts:
            raise ConfigurationError(f"{key} must not be empty")
        return parts


def get_config(env_file: Optional[Path] = None, settings_file: Optional[Path] = None) -> ClusterTestConfig:
    """
    Get clustertest configuration.

    Args:
        env_file: Path to .env file (for testing).
        settings_file: Path to YAML settings file (for testing).

    Returns:
        ClusterTestConfig instance.
    """
    return ClusterTestConfig(env_file, settings_file)
