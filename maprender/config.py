"""Configuration management for the map renderer."""

import logging
import os
import shlex
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class AppConfig(BaseModel):
    """Application-level configuration.

    Read once at startup. The PNG conversion command in particular is handed
    to the renderer when the application starts and is not meant to be
    changed while requests are being served.
    """

    # PNG fallback conversion
    png_command: Optional[list[str]] = Field(
        default=None,
        description=(
            "Command used to convert an svg file to png. '{svg}' and '{png}' "
            "are replaced with the input and output file paths. None disables png output."
        ),
    )
    png_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Maximum time allowed for a single png conversion",
    )

    # Rendering defaults
    default_font_size: int = Field(default=14, gt=0, description="Default legend font size")
    default_width: float = Field(default=400.0, gt=0, description="Fallback viewBox width")

    log_level: str = Field(default="INFO", description="Root log level")

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @classmethod
    def load(cls) -> "AppConfig":
        """Load configuration from an optional YAML file, then the environment."""
        config_file = os.environ.get("MAPRENDER_CONFIG")
        data = {}
        if config_file:
            data = cls.from_yaml(Path(config_file)).model_dump()

        command = os.environ.get("MAPRENDER_PNG_COMMAND")
        if command:
            data["png_command"] = shlex.split(command)
        timeout = os.environ.get("MAPRENDER_PNG_TIMEOUT")
        if timeout:
            data["png_timeout_seconds"] = float(timeout)
        level = os.environ.get("MAPRENDER_LOG_LEVEL")
        if level:
            data["log_level"] = level

        return cls(**data)


# Global config instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get or create global configuration."""
    global _config
    if _config is None:
        _config = AppConfig.load()
    return _config


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the API and CLI entry points."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
