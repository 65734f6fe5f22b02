"""
Configuration loader
Supports loading configuration from TOML and YAML files, with environment variable override support
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import toml
import yaml

from companion_backend.core.logger import get_logger

logger = get_logger(__name__)

# Sections managed by the backend; a user file cannot override them
SYSTEM_SECTIONS = {
    "monitoring",  # Tick interval
    "logging",  # Log level, directory, file rotation
    "analysis",  # Timeline bounds, session gap, scoring timeframe
}

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


def get_config_dir() -> Path:
    """User configuration directory"""
    return Path.home() / ".config" / "companion-cube"


class ConfigLoader:
    """Configuration loader class"""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file or self._get_default_config_file()
        self._config: Dict[str, Any] = {}

    def _get_default_config_file(self) -> str:
        """Get default configuration file path (~/.config/companion-cube/config.toml)"""
        user_config_file = get_config_dir() / "config.toml"
        logger.debug(f"Using user configuration file: {user_config_file}")
        return str(user_config_file)

    def load(self) -> Dict[str, Any]:
        """Load configuration, create default configuration if it doesn't exist

        Configuration hierarchy (later overrides earlier):
        1. Project default config (companion_backend/config/config.toml)
        2. User config (~/.config/companion-cube/config.toml or a YAML file)
        """
        config_path = Path(self.config_file)

        if not config_path.exists():
            logger.debug(f"Configuration file doesn't exist: {self.config_file}")
            self._create_default_config(config_path)

        try:
            project_config = self._load_project_config()

            with open(self.config_file, "r", encoding="utf-8") as f:
                config_content = f.read()

            config_content = self._replace_env_vars(config_content)

            if self.config_file.endswith(".toml"):
                user_config = toml.loads(config_content)
            else:
                user_config = yaml.safe_load(config_content) or {}

            self._config = self._merge_configs(project_config, user_config)

            logger.debug(f"✓ Configuration file loaded successfully: {self.config_file}")
            return self._config

        except (yaml.YAMLError, toml.TomlDecodeError) as e:
            logger.error(f"Configuration file parsing error: {e}")
            raise
        except Exception as e:
            logger.error(f"Configuration loading failed: {e}")
            raise

    def _load_project_config(self) -> Dict[str, Any]:
        """Load project default configuration from config.toml next to this module

        Returns:
            Project configuration dictionary, or empty dict if file doesn't exist
        """
        project_config_file = Path(__file__).parent / "config.toml"

        if not project_config_file.exists():
            logger.debug(f"Project config file not found: {project_config_file}")
            return {}

        try:
            with open(project_config_file, "r", encoding="utf-8") as f:
                config_content = f.read()

            project_config = toml.loads(self._replace_env_vars(config_content))
            logger.debug(f"✓ Project config loaded: {project_config_file}")
            return project_config

        except Exception as e:
            logger.warning(f"Failed to load project config: {e}")
            return {}

    def _merge_configs(
        self, base: Dict[str, Any], override: Dict[str, Any], top_level: bool = True
    ) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries

        Args:
            base: Base configuration (project defaults)
            override: Override configuration (user config)
            top_level: Whether system sections should be filtered at this level

        Returns:
            Merged configuration dictionary
        """
        result = base.copy()

        for key, value in override.items():
            if top_level and key in SYSTEM_SECTIONS:
                logger.debug(
                    f"Ignoring system-level section in user config: [{key}] "
                    "(use project config for system settings)"
                )
                continue

            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value, top_level=False)
            else:
                result[key] = value

        return result

    def _create_default_config(self, config_path: Path) -> None:
        """Create default configuration file"""
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(config_path, "w", encoding="utf-8") as f:
                f.write(self._get_default_config_content())

            logger.debug(f"✓ Default configuration file created: {config_path}")

        except Exception as e:
            logger.error(f"Failed to create default configuration file: {e}")
            raise

    def _get_default_config_content(self) -> str:
        """Default content for the user configuration file

        Only user-level settings belong here. System settings live in the
        project config.toml and are ignored when found in this file.
        """
        data_dir = get_config_dir()

        return f"""# Companion Cube user configuration
# Location: ~/.config/companion-cube/config.toml
#
# System-level sections ([monitoring], [logging], [analysis]) are ignored here.

[database]
path = '{data_dir / "companion.db"}'

[activitywatch]
host = "localhost"
port = 5600

[llm]
host = "localhost"
port = 11434
model = "mistral"
keep_model_loaded = false

[user]
context = "I am a person with ADHD looking to improve my productivity."
study_focus = "general studying"
coach_task = "complete daily tasks"

[notifications]
enabled = true
"""

    def _replace_env_vars(self, content: str) -> str:
        """Replace ${VAR} and ${VAR:default} placeholders"""

        def replace_var(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) else ""
            return os.getenv(var_name, default_value)

        return _ENV_PATTERN.sub(replace_var, content)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value, supports dot-separated nested keys"""
        value: Any = self._config

        try:
            for k in key.split("."):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> bool:
        """Set configuration value, supports dot-separated nested keys"""
        keys = key.split(".")
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value
        return self.save()

    def save(self) -> bool:
        """Save configuration to file"""
        try:
            config_path = Path(self.config_file)
            config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.config_file, "w", encoding="utf-8") as f:
                if self.config_file.endswith(".toml"):
                    toml.dump(self._config, f)
                else:
                    yaml.safe_dump(self._config, f, sort_keys=False)

            logger.debug(f"✓ Configuration saved to: {self.config_file}")
            return True

        except Exception as e:
            logger.error(f"Failed to save configuration: {e}")
            return False


# Global configuration instance
_config_instance: Optional[ConfigLoader] = None


def get_config(config_file: Optional[str] = None) -> ConfigLoader:
    """Get global configuration instance"""
    global _config_instance
    if config_file is not None:
        _config_instance = ConfigLoader(config_file)
        _config_instance.load()
    elif _config_instance is None:
        _config_instance = ConfigLoader()
        _config_instance.load()
    return _config_instance


def load_config(config_file: Optional[str] = None) -> Dict[str, Any]:
    """Convenience function for loading configuration"""
    loader = get_config(config_file)
    return loader._config or loader.load()
