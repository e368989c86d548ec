"""Configuration management for esusage.

Loads environment variables and provides centralized config access.
"""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Set, Union
from dotenv import load_dotenv

__version__ = "0.3.0"

DEFAULT_ENGINE = "tree-sitter"


def _split_list(value: Optional[str]) -> List[str]:
    """Split a comma-separated environment value, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(',') if part.strip()]


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_path: str | Path | None = None):
        """Initialize config by loading .env file.

        Args:
            env_path: Explicit .env location. Defaults to ./.env in the
                current working directory.
        """
        if env_path is None:
            env_path = Path.cwd() / ".env"
        load_dotenv(env_path)

    @property
    def include_modules(self) -> List[str]:
        """Modules allow-list (ESUSAGE_INCLUDE_MODULES, comma-separated)."""
        return _split_list(os.getenv("ESUSAGE_INCLUDE_MODULES"))

    @property
    def exclude_folders(self) -> Set[str]:
        """Extra folder names the scanner never enters."""
        return set(_split_list(os.getenv("ESUSAGE_EXCLUDE_FOLDERS")))

    @property
    def engine(self) -> str:
        """Parsing engine identifier.

        Returns:
            Engine id, "tree-sitter" unless ESUSAGE_ENGINE is set
        """
        return os.getenv("ESUSAGE_ENGINE", DEFAULT_ENGINE)

    @property
    def max_workers(self) -> int:
        """Number of files parsed concurrently within a project.

        Raises:
            ValueError: If ESUSAGE_MAX_WORKERS is not a positive integer
        """
        raw = os.getenv("ESUSAGE_MAX_WORKERS", "1")
        try:
            workers = int(raw)
        except ValueError:
            raise ValueError(f"ESUSAGE_MAX_WORKERS must be an integer, got: {raw!r}")
        if workers < 1:
            raise ValueError(f"ESUSAGE_MAX_WORKERS must be >= 1, got: {workers}")
        return workers

    @property
    def log_level(self) -> str:
        """Level name for the esusage logger namespace.

        Raises:
            ValueError: If ESUSAGE_LOG_LEVEL is not a logging level name
        """
        level = os.getenv("ESUSAGE_LOG_LEVEL", "WARNING").upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"ESUSAGE_LOG_LEVEL must be a logging level name, got: {level!r}")
        return level


@dataclass
class ScanOptions:
    """Options accepted by the aggregation driver.

    `exclude_folders` and `include_files` are forwarded untouched to the
    scanner. `plugins` may mix observer plugins and parsing engines.
    """
    include_modules: List[str] = field(default_factory=list)
    plugins: Sequence[Any] = field(default_factory=list)
    exclude_folders: Optional[Set[str]] = None
    include_files: Union[Callable[[Path], bool], Sequence[str], None] = None
    engine: str = DEFAULT_ENGINE
    max_workers: int = 1

    @classmethod
    def from_config(cls, config: Optional[Config] = None, **overrides) -> 'ScanOptions':
        """Build options from environment config, with explicit overrides."""
        config = config or get_config()
        values = {
            'include_modules': config.include_modules,
            'exclude_folders': config.exclude_folders or None,
            'engine': config.engine,
            'max_workers': config.max_workers,
        }
        values.update(overrides)
        return cls(**values)


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config
