"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.exceptions import ZoneResolutionError
from .domain.recurrence import DEFAULT_MAX_OCCURRENCES
from .domain.timezones import resolve_zone

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class RecurrenceConfig(BaseModel):
    """Limits applied when expanding repeating slots."""
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES

    @field_validator("max_occurrences")
    @classmethod
    def validate_max_occurrences(cls, value: int) -> int:
        """Ensure the cap is positive."""
        if value <= 0:
            raise ValueError("max_occurrences must be greater than zero")
        return value


class UserProfile(BaseModel):
    """A calendar user."""
    id: str
    name: str

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("User id must not be empty")
        return value.strip()


class AppConfig(BaseModel):
    """Application configuration."""
    user: UserProfile
    display_timezone: str = "UTC"
    store_path: Path = Path("slots.json")
    recurrence: RecurrenceConfig = Field(default_factory=RecurrenceConfig)
    log_level: str = "WARNING"
    users: List[UserProfile] = Field(default_factory=list)

    @field_validator("display_timezone")
    @classmethod
    def validate_display_timezone(cls, value: str) -> str:
        """Ensure the display zone is a known IANA identifier."""
        try:
            resolve_zone(value)
        except ZoneResolutionError as exc:
            raise ValueError(str(exc)) from exc
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Accept standard logging level names in any case."""
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @model_validator(mode="after")
    def validate_unique_users(self) -> "AppConfig":
        """Ensure user ids are unique among the configured users."""
        seen: set[str] = set()
        for profile in self.users:
            if profile.id in seen:
                raise ValueError(f"Duplicate user id detected: {profile.id}")
            seen.add(profile.id)
        return self

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Relative ``store_path`` values are resolved against the directory
        holding the config file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)
        if not config.store_path.is_absolute():
            config.store_path = config_path.parent / config.store_path
        return config

    def all_users(self) -> List[UserProfile]:
        """The active user followed by every other known user."""
        return [self.user, *(u for u in self.users if u.id != self.user.id)]

    def find_user(self, identifier: str) -> UserProfile | None:
        """Find a user by id or by name (case-insensitive)."""
        for profile in self.all_users():
            if profile.id == identifier or profile.name.lower() == identifier.lower():
                return profile
        return None


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of slotbook/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
