"""
Settings manager
Stores user settings and the current mode in the database with the TOML
config as fallback
"""

from typing import Any, Dict, Optional, cast

from pydantic import BaseModel

from companion_backend.models.activity import Mode

from .logger import get_logger
from .protocols import DatabaseManagerProtocol

logger = get_logger(__name__)

CURRENT_MODE_KEY = "app.current_mode"


class UserSettings(BaseModel):
    """Per-user text settings feeding the analysis prompts"""

    context: str = "I am a person with ADHD looking to improve my productivity."
    study_focus: str = "general studying"
    coach_task: str = "complete daily tasks"
    default_mode: Mode = Mode.COACH
    notifications_enabled: bool = True
    ghost_prompt: str = ""
    chill_prompt: str = ""
    study_prompt: str = ""
    coach_prompt: str = ""

    def mode_prompt(self, mode: Mode) -> str:
        return {
            Mode.GHOST: self.ghost_prompt,
            Mode.CHILL: self.chill_prompt,
            Mode.STUDY_BUDDY: self.study_prompt,
            Mode.COACH: self.coach_prompt,
        }[mode]


class SettingsManager:
    """Configuration manager - uses database for persistence with TOML fallback"""

    def __init__(self, config_loader=None, db_manager=None):
        """Initialize Settings manager

        Args:
            config_loader: ConfigLoader instance, used for fallback configuration
            db_manager: DatabaseManager instance, primary storage for settings
        """
        self.config_loader = config_loader
        self.db: Optional[DatabaseManagerProtocol] = (
            cast(DatabaseManagerProtocol, db_manager) if db_manager is not None else None
        )

    def _require_db(self) -> DatabaseManagerProtocol:
        if self.db is None:
            from companion_backend.core.db import get_db

            self.db = cast(DatabaseManagerProtocol, get_db())
        return self.db

    def _config_get(self, key: str, default: Any = None) -> Any:
        if self.config_loader is None:
            return default
        return self.config_loader.get(key, default)

    def _load_dict_from_db(self, prefix: str) -> Dict[str, Any]:
        """Load dictionary from database with key prefix"""
        result: Dict[str, Any] = {}
        for db_key, value in self._require_db().settings.get_all().items():
            if db_key.startswith(f"{prefix}."):
                result[db_key[len(prefix) + 1 :]] = value
        return result

    # ======================== User settings ========================

    def get_user_settings(self) -> UserSettings:
        """User settings: config values overlaid with stored overrides"""
        values: Dict[str, Any] = dict(self._config_get("user", {}) or {})
        notifications = self._config_get("notifications", {}) or {}
        if "enabled" in notifications:
            values["notifications_enabled"] = notifications["enabled"]
        for key in ("ghost_prompt", "chill_prompt", "study_prompt", "coach_prompt"):
            if key in notifications:
                values[key] = notifications[key]

        try:
            values.update(self._load_dict_from_db("user"))
        except Exception as e:
            logger.warning(f"Could not load stored user settings, using config: {e}")

        fields = UserSettings.model_fields
        return UserSettings(**{key: value for key, value in values.items() if key in fields})

    def update_user_settings(self, updates: Dict[str, Any]) -> UserSettings:
        """Persist the given user settings; unknown keys are ignored"""
        fields = UserSettings.model_fields
        current = self.get_user_settings()
        merged = current.model_copy(
            update={key: value for key, value in updates.items() if key in fields}
        )
        validated = UserSettings.model_validate(merged.model_dump())

        db = self._require_db()
        for key, value in validated.model_dump(mode="json").items():
            if key not in updates:
                continue
            if isinstance(value, bool):
                db.settings.set(f"user.{key}", str(value), "bool")
            else:
                db.settings.set(f"user.{key}", str(value), "string")

        logger.info(f"✓ User settings updated: {', '.join(sorted(k for k in updates if k in fields))}")
        return validated

    # ======================== Mode ========================

    def get_current_mode(self) -> Mode:
        """Stored mode, else the configured default mode"""
        stored = None
        try:
            stored = self._require_db().settings.get(CURRENT_MODE_KEY)
        except Exception as e:
            logger.warning(f"Could not read stored mode: {e}")

        for candidate in (stored, self._config_get("user.default_mode")):
            if not candidate:
                continue
            try:
                return Mode(str(candidate).strip().lower())
            except ValueError:
                logger.warning(f"Ignoring unknown mode '{candidate}'")
        return Mode.COACH

    def save_current_mode(self, mode: Mode) -> None:
        self._require_db().settings.set(
            CURRENT_MODE_KEY, mode.value, "string", "Mode restored on next start"
        )


# Global Settings instance
_settings_instance: Optional[SettingsManager] = None


def get_settings() -> SettingsManager:
    """Get global Settings instance"""
    global _settings_instance
    if _settings_instance is None:
        from companion_backend.config.loader import get_config

        _settings_instance = SettingsManager(get_config())
    return _settings_instance


def init_settings(config_loader, db_manager=None) -> SettingsManager:
    """Initialize Settings manager

    Args:
        config_loader: ConfigLoader instance
        db_manager: DatabaseManager instance (optional, will get from singleton if not provided)

    Returns:
        SettingsManager instance
    """
    global _settings_instance
    _settings_instance = SettingsManager(config_loader, db_manager)
    return _settings_instance
