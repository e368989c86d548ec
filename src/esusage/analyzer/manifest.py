"""package.json reading for projects and installed modules."""
import json
from pathlib import Path
from typing import Any, Dict, Optional

MANIFEST_NAME = "package.json"


def load_manifest(manifest_path: str | Path) -> Optional[Dict[str, Any]]:
    """Read one manifest from disk.

    Args:
        manifest_path: Path to a package.json file

    Returns:
        Manifest dictionary, or None if missing, unreadable or not an object
    """
    try:
        with open(manifest_path, 'r', encoding='utf-8-sig') as f:
            data = json.load(f)
    except (IOError, OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None

    return data if isinstance(data, dict) else None


def find_nearest_manifest(path: str | Path) -> Optional[Path]:
    """Locate the closest package.json at or above `path` that parses."""
    current = Path(path).resolve()
    if not current.is_dir():
        current = current.parent

    for directory in (current, *current.parents):
        candidate = directory / MANIFEST_NAME
        if candidate.is_file() and load_manifest(candidate) is not None:
            return candidate
    return None


def read_nearest_manifest(path: str | Path) -> Optional[Dict[str, Any]]:
    """Read the closest package.json at or above `path`.

    Args:
        path: A file or directory to start from

    Returns:
        Parsed manifest, or None when no readable manifest exists up to the
        filesystem root
    """
    manifest_path = find_nearest_manifest(path)
    if manifest_path is None:
        return None
    return load_manifest(manifest_path)
