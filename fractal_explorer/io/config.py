"""
Configuration loading for the explorer.

Settings come from built-in defaults, an optional JSON file and
``FRACTAL_EXPLORER_*`` environment variables, in that order of precedence.
"""

import os
import json
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional, Dict, Any, Union

from ..rendering.tiles import PREVIEW_STRIDE

logger = logging.getLogger(__name__)


@dataclass
class ExplorerConfig:
    """Engine and output settings."""

    # Performance
    num_workers: Optional[int] = None  # None = hardware parallelism
    preview_stride: int = PREVIEW_STRIDE

    # Display and screenshots
    display_width: int = 800
    display_height: int = 800
    screenshot_scale: int = 3
    output_dir: str = "."

    def validate(self):
        """Validate configuration parameters."""
        if self.num_workers is not None and self.num_workers < 1:
            raise ValueError("num_workers must be >= 1")

        if self.preview_stride < 1:
            raise ValueError("preview_stride must be >= 1")

        if self.display_width <= 0 or self.display_height <= 0:
            raise ValueError("Display width and height must be positive")

        if self.screenshot_scale < 1:
            raise ValueError("screenshot_scale must be >= 1")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExplorerConfig':
        """Create configuration from dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        config = cls(**data)
        config.validate()
        return config


class ConfigManager:
    """Reads and writes JSON configuration files."""

    @staticmethod
    def load(path: Union[str, Path]) -> ExplorerConfig:
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid configuration file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a JSON object")

        logger.info(f"Loaded configuration from {path}")
        return ExplorerConfig.from_dict(data)

    @staticmethod
    def save(config: ExplorerConfig, path: Union[str, Path]) -> None:
        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(config.to_dict(), f, indent=2)
        logger.info(f"Saved configuration to {path}")


class EnvironmentConfig:
    """Overrides taken from environment variables."""

    PREFIX = "FRACTAL_EXPLORER_"

    VARIABLES = {
        'WORKERS': ('num_workers', int),
        'PREVIEW_STRIDE': ('preview_stride', int),
        'SCREENSHOT_SCALE': ('screenshot_scale', int),
        'OUTPUT_DIR': ('output_dir', str),
    }

    @classmethod
    def apply(cls, config: ExplorerConfig, environ: Optional[Dict[str, str]] = None) -> ExplorerConfig:
        """Return ``config`` updated from the environment."""
        if environ is None:
            environ = os.environ

        data = config.to_dict()
        for suffix, (field_name, convert) in cls.VARIABLES.items():
            raw = environ.get(cls.PREFIX + suffix)
            if raw is None or raw == "":
                continue
            try:
                data[field_name] = convert(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {cls.PREFIX + suffix}: {raw!r}") from e
            logger.debug(f"Environment override {cls.PREFIX + suffix}={raw}")

        return ExplorerConfig.from_dict(data)


def load_config(path: Optional[Union[str, Path]] = None,
                environ: Optional[Dict[str, str]] = None) -> ExplorerConfig:
    """
    Build the effective configuration.

    Args:
        path: Optional JSON configuration file
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Validated ExplorerConfig
    """
    config = ConfigManager.load(path) if path else ExplorerConfig()
    return EnvironmentConfig.apply(config, environ)
