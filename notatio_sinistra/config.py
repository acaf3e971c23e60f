"""
Configuration module for Notatio Sinistra.

Handles rendering defaults, export settings and user preferences.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Optional

from notatio_sinistra.render.options import RenderOptions

logger = logging.getLogger(__name__)

CONFIG_HOME_ENV = "NOTATIO_SINISTRA_HOME"


def get_default_config_dir() -> Path:
    """Config directory, overridable through NOTATIO_SINISTRA_HOME."""
    override = os.environ.get(CONFIG_HOME_ENV)
    if override:
        return Path(override)
    return Path.home() / ".notatio_sinistra"


@dataclass
class RenderConfig:
    """Configuration for score layout."""
    width: int = 1200
    height: int = 800
    measures_per_line: int = 4
    stave_width: int = 250
    stave_height: int = 150
    margin_left: int = 50
    margin_top: int = 50
    show_measure_numbers: bool = True

    def to_options(self, is_sinistra: Optional[bool] = None) -> RenderOptions:
        """Build RenderOptions from these settings."""
        return RenderOptions(
            width=self.width,
            height=self.height,
            measures_per_line=self.measures_per_line,
            stave_width=self.stave_width,
            stave_height=self.stave_height,
            margin_left=self.margin_left,
            margin_top=self.margin_top,
            is_sinistra=is_sinistra,
            show_measure_numbers=self.show_measure_numbers,
        )


@dataclass
class ExportConfig:
    """Configuration for export settings."""
    default_format: str = "svg"  # "svg", "png", "pdf", "musicxml"
    png_scale: float = 1.0
    pdf_lines_per_page: int = 6
    filename: str = "sinistra-score"
    recent_files_max: int = 10


@dataclass
class Config:
    """
    Main configuration class for Notatio Sinistra.

    Handles loading/saving settings as JSON in the config directory.
    """

    # Sub-configurations
    render: RenderConfig = field(default_factory=RenderConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    # Recent files
    recent_files: list = field(default_factory=list)

    # Application directories
    _config_dir: Path = field(default_factory=get_default_config_dir)
    _config_file: Path = field(default=None)

    def __post_init__(self):
        """Initialize configuration paths."""
        self._config_file = Path(self._config_dir) / "config.json"

    @property
    def config_file(self) -> Path:
        return self._config_file

    def save(self) -> None:
        """Save configuration to disk."""
        data = {
            "render": asdict(self.render),
            "export": asdict(self.export),
            "recent_files": self.recent_files[:self.export.recent_files_max],
        }

        self._config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self._config_file, "w") as f:
            json.dump(data, f, indent=2)

    @classmethod
    def load(cls, config_dir: Optional[Path] = None) -> "Config":
        """Load configuration from disk or create default."""
        config = cls(_config_dir=Path(config_dir)) if config_dir else cls()

        if config._config_file.exists():
            try:
                with open(config._config_file, "r") as f:
                    data = json.load(f)

                if "render" in data:
                    config.render = RenderConfig(**data["render"])
                if "export" in data:
                    config.export = ExportConfig(**data["export"])

                config.recent_files = list(data.get("recent_files", []))

            except (json.JSONDecodeError, TypeError, KeyError, OSError) as e:
                logger.warning(f"Could not load config file, using defaults: {e}")
                config = cls(_config_dir=config._config_dir)

        return config

    def add_recent_file(self, filepath: str) -> None:
        """Add a file to recent files list."""
        filepath = str(filepath)

        # Remove if already exists
        if filepath in self.recent_files:
            self.recent_files.remove(filepath)

        # Add to front
        self.recent_files.insert(0, filepath)

        # Trim to max length
        self.recent_files = self.recent_files[:self.export.recent_files_max]

        self.save()


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def reset_config() -> None:
    """Reset the global configuration to defaults."""
    global _config
    _config = Config()
    _config.save()
