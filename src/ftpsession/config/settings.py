"""Saved connection settings for ftpsession.

Provides SessionSettings dataclass and SettingsManager for persistence.
"""

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

from ftpsession.config.paths import get_settings_path
from ftpsession.ftp.connection import TransferMode


logger = logging.getLogger("ftpsession.settings")


@dataclass
class SessionSettings:
    """Connection defaults that persist between runs."""

    host: str = ""
    port: int = 21
    use_tls: bool = False
    username: str = "anonymous"
    passive_mode: bool = True
    timeout: int = 90
    autoseek: bool = True
    transfer_mode: str = TransferMode.BINARY.value

    @property
    def mode(self) -> TransferMode:
        """transfer_mode as a TransferMode, BINARY if the saved value is unknown."""
        try:
            return TransferMode(self.transfer_mode)
        except ValueError:
            return TransferMode.BINARY

    def to_dict(self) -> dict:
        """Convert settings to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SessionSettings":
        """Create settings from dictionary, ignoring unknown keys."""
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)


class SettingsManager:
    """Manages settings persistence."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            config_path: Optional custom path, defaults to platform standard
        """
        self._config_path = config_path or get_settings_path()
        self._settings: Optional[SessionSettings] = None

    @property
    def config_path(self) -> Path:
        """Path to settings file."""
        return self._config_path

    def load(self) -> SessionSettings:
        """
        Load settings from disk.

        Returns:
            SessionSettings instance (defaults if file missing or unreadable)
        """
        if self._config_path.exists():
            try:
                with open(self._config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                self._settings = SessionSettings.from_dict(data)
            except (json.JSONDecodeError, IOError, TypeError, AttributeError) as e:
                logger.warning(f"Ignoring unreadable settings file {self._config_path}: {e}")
                self._settings = SessionSettings()
        else:
            self._settings = SessionSettings()

        return self._settings

    def save(self, settings: SessionSettings) -> None:
        """
        Persist settings to disk.

        Args:
            settings: Settings to save
        """
        self._settings = settings

        self._config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self._config_path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)

    def reset(self) -> SessionSettings:
        """
        Reset to default settings and remove the saved file.

        Returns:
            Default SessionSettings instance
        """
        self._settings = SessionSettings()

        if self._config_path.exists():
            self._config_path.unlink()

        return self._settings
