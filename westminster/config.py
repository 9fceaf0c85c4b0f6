"""Configuration - Westminster Reminder service settings"""
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

from .scheduler.types import MissedChimePolicy

load_dotenv()


@dataclass
class Settings:
    """Service settings"""

    # Server
    host: str = "0.0.0.0"
    port: int = 8790
    debug: bool = False
    log_level: str = "INFO"

    # Storage
    data_dir: Path = field(default_factory=lambda: Path.home() / ".westminster")
    settings_file: Optional[Path] = None

    # Clock (IANA zone name; local zone when unset)
    timezone: Optional[str] = None

    # Sound
    sound: str = "bell"
    sound_command: str = "aplay"
    sound_file: Optional[Path] = None

    # Scheduler
    missed_policy: MissedChimePolicy = MissedChimePolicy.SKIP
    missed_grace_seconds: float = 5.0
    tick_seconds: float = 1.0
    autostart: bool = False

    @property
    def settings_path(self) -> Path:
        return self.settings_file or self.data_dir / "settings.json"

    @property
    def effective_log_level(self) -> str:
        """DEBUG overrides LOG_LEVEL"""
        return "DEBUG" if self.debug else self.log_level

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables"""
        data_dir = Path(os.getenv(
            "WESTMINSTER_DATA_DIR", str(Path.home() / ".westminster")
        )).expanduser()
        settings_file = os.getenv("WESTMINSTER_SETTINGS_FILE")
        sound_file = os.getenv("WESTMINSTER_SOUND_FILE")

        return cls(
            # Server
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8790")),
            debug=os.getenv("DEBUG", "").lower() in ("1", "true"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),

            # Storage
            data_dir=data_dir,
            settings_file=Path(settings_file).expanduser() if settings_file else None,

            # Clock
            timezone=os.getenv("WESTMINSTER_TIMEZONE") or None,

            # Sound
            sound=os.getenv("WESTMINSTER_SOUND", "bell").lower(),
            sound_command=os.getenv("WESTMINSTER_SOUND_COMMAND", "aplay"),
            sound_file=Path(sound_file).expanduser() if sound_file else None,

            # Scheduler
            missed_policy=MissedChimePolicy(
                os.getenv("WESTMINSTER_MISSED_POLICY", "skip").lower()
            ),
            missed_grace_seconds=float(os.getenv("WESTMINSTER_MISSED_GRACE_SECONDS", "5")),
            tick_seconds=float(os.getenv("WESTMINSTER_TICK_SECONDS", "1.0")),
            autostart=os.getenv("WESTMINSTER_AUTOSTART", "").lower() in ("1", "true"),
        )


def setup_logging(level: str) -> None:
    """Send loguru output to stderr at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level=level)


# Global settings instance
settings = Settings.from_env()
