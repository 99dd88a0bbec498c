"""Configuration service for loading tasklink.yml."""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..models.tasklink_config import GitHubSyncConfig, ShortcutSyncConfig, TasklinkConfig

logger = logging.getLogger(__name__)


class ConfigService:
    """Service for loading and caching application configuration."""

    CONFIG_FILE = "tasklink.yml"

    def __init__(self, project_root: Path) -> None:
        """Initialize the config service.

        Args:
            project_root: Path to the directory containing tasklink.yml
        """
        self.project_root = project_root
        self._config: TasklinkConfig | None = None
        self._config_error: str | None = None

    @property
    def has_config_error(self) -> bool:
        """Check if there was an error loading config."""
        return self._config_error is not None

    @property
    def config_error(self) -> str | None:
        """Get the config error message if any."""
        return self._config_error

    @property
    def task_root(self) -> Path:
        """Absolute path of the task directory."""
        return self.project_root / self.get_config().task_root

    def get_config(self) -> TasklinkConfig:
        """Get configuration, loading from file if not cached."""
        if self._config is None:
            self._config = self._load_config()
        return self._config

    def get_github_config(self) -> GitHubSyncConfig:
        return self.get_config().sync.github

    def get_shortcut_config(self) -> ShortcutSyncConfig:
        return self.get_config().sync.shortcut

    def reload(self) -> None:
        """Clear cached configuration, forcing reload on next access."""
        self._config = None
        self._config_error = None

    def _load_config(self) -> TasklinkConfig:
        """Load configuration from file or return default."""
        config_path = self.project_root / self.CONFIG_FILE
        self._config_error = None

        if not config_path.exists():
            logger.debug("No %s found, using defaults", self.CONFIG_FILE)
            return TasklinkConfig.default()

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            self._config_error = f"Invalid YAML in {self.CONFIG_FILE}: {e}"
            logger.warning(self._config_error)
            return TasklinkConfig.default()
        except OSError as e:
            self._config_error = f"Error reading {self.CONFIG_FILE}: {e}"
            logger.warning(self._config_error)
            return TasklinkConfig.default()

        if data is None:
            self._config_error = f"{self.CONFIG_FILE} is empty"
            logger.warning(self._config_error)
            return TasklinkConfig.default()

        if not isinstance(data, dict):
            self._config_error = f"{self.CONFIG_FILE} must contain a mapping"
            logger.warning(self._config_error)
            return TasklinkConfig.default()

        try:
            config = TasklinkConfig(**data)
        except ValidationError as e:
            self._config_error = f"Error loading {self.CONFIG_FILE}: {e}"
            logger.warning(self._config_error)
            return TasklinkConfig.default()

        logger.info(
            "Loaded %s (github=%s, shortcut=%s)",
            self.CONFIG_FILE,
            config.sync.github.enabled,
            config.sync.shortcut.enabled,
        )
        return config
