"""
Configuration loader for nvpick.
Handles the editor executable and launch settings.
"""

import json
from pathlib import Path
from typing import Optional
from pydantic import BaseModel


class PickerConfig(BaseModel):
    """Configuration model for nvpick."""
    # Used only when no address is set and an editor has to be launched
    nvim_executable: str = "nvim"
    editor_config: Optional[str] = None  # passed as `-u`
    startup_timeout: float = 5.0  # seconds to wait for the editor socket


class ConfigManager:
    """Manages configuration loading."""

    def __init__(self, config_dir: Path = Path.home() / ".nvpick"):
        self.config_dir = config_dir
        self.config_file = config_dir / "config.json"

    def load(self) -> Optional[PickerConfig]:
        """Load configuration from disk."""
        if not self.config_file.exists():
            return None

        with open(self.config_file, 'r') as f:
            data = json.load(f)

        return PickerConfig(**data)

    def exists(self) -> bool:
        """Check if config exists."""
        return self.config_file.exists()
