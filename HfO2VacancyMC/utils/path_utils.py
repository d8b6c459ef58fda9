"""Path validation utilities for export files."""

from pathlib import Path
from typing import Union


class PathValidationError(Exception):
    """Raised when path validation fails."""
    pass


def validate_path(path: Union[str, Path], must_exist: bool = False) -> Path:
    """Validate and resolve a file path.

    Args:
        path: Path to validate
        must_exist: If True, path must exist

    Returns:
        Resolved Path object

    Raises:
        PathValidationError: If path is invalid
    """
    try:
        path_obj = Path(path).resolve()
    except (ValueError, OSError) as e:
        raise PathValidationError(f"Invalid path: {path}") from e

    if must_exist and not path_obj.exists():
        raise PathValidationError(f"Path does not exist: {path}")

    return path_obj


def validate_output_dir(path: Union[str, Path]) -> Path:
    """Validate an output directory and create it if needed.

    Args:
        path: Output directory

    Returns:
        Resolved directory Path

    Raises:
        PathValidationError: If the directory cannot be created
    """
    path_obj = validate_path(path, must_exist=False)

    if path_obj.exists() and not path_obj.is_dir():
        raise PathValidationError(f"Output path is not a directory: {path}")

    try:
        path_obj.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PathValidationError(
            f"Cannot create output directory: {path}"
        ) from e

    return path_obj
