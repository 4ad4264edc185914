"""
YAML loader utility for Wellcoach.

Loads reference data (module catalogs) from YAML files.
"""

from pathlib import Path
from typing import Any
import yaml


def load_yaml_file(path: str | Path) -> Any:
    """
    Load and parse a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML content (usually a dict)

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    file_path = Path(path)

    if not file_path.exists():
        raise FileNotFoundError(f"YAML file not found: {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)
