"""JSON file persistence for chime settings.

Simple file-based storage so users can view and edit their interval and
lead time directly.
"""
import asyncio
import json
from datetime import datetime
from pathlib import Path

from loguru import logger

from ..types import ChimeConfig, ChimeError

logger = logger.bind(module="scheduler.json_store")


class JsonSettingsStore:
    """JSON file-based settings persistence.

    Stores the chime configuration in a human-readable JSON file.
    Missing or unreadable files yield the defaults (15 minutes, 20 seconds).
    """

    def __init__(self, json_path: str | Path):
        """Initialize JSON settings store.

        Args:
            json_path: Path to JSON file for storage
        """
        self.json_path = Path(json_path).expanduser()
        self._lock = asyncio.Lock()

    async def load(self) -> ChimeConfig:
        """Load the configuration, falling back to defaults."""
        async with self._lock:
            if not self.json_path.exists():
                logger.info(f"No settings at {self.json_path}, using defaults")
                return ChimeConfig()

            try:
                with open(self.json_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                config = ChimeConfig.from_dict(data)
                logger.info(f"Loaded settings from {self.json_path}: {config.to_dict()}")
                return config
            except (OSError, json.JSONDecodeError, AttributeError, ChimeError) as e:
                logger.error(f"Failed to load settings from {self.json_path}: {e}")
                return ChimeConfig()

    async def save(self, config: ChimeConfig) -> None:
        """Save the configuration."""
        async with self._lock:
            try:
                self.json_path.parent.mkdir(parents=True, exist_ok=True)
                data = {
                    **config.to_dict(),
                    "saved_at": datetime.now().isoformat(),
                }

                # Write atomically (write to temp, then rename)
                temp_path = self.json_path.with_suffix(".tmp")
                with open(temp_path, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                temp_path.replace(self.json_path)

                logger.debug(f"Saved settings to {self.json_path}")
            except OSError as e:
                logger.error(f"Failed to save settings: {e}")
