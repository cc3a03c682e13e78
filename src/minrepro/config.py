"""Configuration management for minrepro.

Loads environment variables (optionally from a .env file) and provides
defaults for the command-line options.
"""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

__version__ = "0.3.0"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got: {raw!r}")


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_path: Optional[Path] = None):
        """Initialize config by loading a .env file.

        Args:
            env_path: Explicit .env location. Defaults to ./.env in the
                working directory. Variables already set in the environment
                take precedence over the file.
        """
        load_dotenv(env_path or Path.cwd() / ".env")
        self._validate()

    def _validate(self):
        """Parse every boolean setting once so bad values fail at startup.

        Raises:
            ValueError: If a boolean variable holds an unrecognised value
        """
        for setting in ("strict", "write_manifest"):
            getattr(self, setting)

    @property
    def output_dir(self) -> str:
        """Directory that receives the sliced files.

        Returns:
            Path string from MINREPRO_OUTPUT_DIR or 'minrepro_output'
        """
        return os.getenv("MINREPRO_OUTPUT_DIR", "minrepro_output")

    @property
    def strict(self) -> bool:
        """Abort before pruning when a reachable reference cannot be resolved."""
        return _parse_bool("MINREPRO_STRICT", False)

    @property
    def write_manifest(self) -> bool:
        """Write slice-manifest.json next to the sliced files."""
        return _parse_bool("MINREPRO_MANIFEST", False)

    @property
    def source_glob(self) -> str:
        """Glob (relative to the source root) of the files indexed for resolution."""
        return os.getenv("MINREPRO_SOURCE_GLOB", "**/*.java")


_config = None


def get_config() -> Config:
    """Get or create the cached Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config():
    """Drop the cached Config so the next get_config() re-reads the environment."""
    global _config
    _config = None
