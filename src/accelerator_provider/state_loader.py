"""Load resource state and collections from YAML files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

MAX_STATE_FILE_SIZE_BYTES = 1024 * 1024  # 1 MiB


class StateLoadError(Exception):
    """Raised when a state file cannot be loaded."""

    pass


def _read_yaml(path: Path) -> Any:
    if not path.exists():
        raise StateLoadError(f"State file not found: {path}")

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise StateLoadError(f"Failed to stat state file {path}: {e}") from e

    if file_size > MAX_STATE_FILE_SIZE_BYTES:
        raise StateLoadError(
            f"State file exceeds maximum size of {MAX_STATE_FILE_SIZE_BYTES} bytes: {path}"
        )

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise StateLoadError(f"Failed to read state file {path}: {e}") from e

    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise StateLoadError(f"Invalid YAML in {path}: {e}") from e


def load_state(path: Path) -> dict[str, Any]:
    """Load a resource state document.

    Accepts either the bare property mapping or a template-style wrapper
    with the properties under ``Properties``.

    Raises:
        StateLoadError: If the file is missing, oversized or not a mapping.
    """
    data = _read_yaml(path)
    if not isinstance(data, dict):
        raise StateLoadError(f"State file must contain a YAML mapping: {path}")

    if "Type" in data and "Properties" in data:
        properties = data["Properties"]
        if not isinstance(properties, dict):
            raise StateLoadError(f"Properties section must be a mapping: {path}")
        data = properties

    logger.debug("Loaded state", extra={"path": str(path), "properties": sorted(data)})
    return data


def load_collection(path: Path) -> list[Any]:
    """Load a collection (list of members) for diffing.

    An empty file is an empty collection.

    Raises:
        StateLoadError: If the file is missing, oversized or not a list.
    """
    data = _read_yaml(path)
    if data is None:
        return []
    if not isinstance(data, list):
        raise StateLoadError(f"Collection file must contain a YAML list: {path}")
    return data
