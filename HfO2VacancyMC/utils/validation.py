"""Validation utilities for grid geometry and configuration."""

import math
from typing import Sequence

from .config import SimulationConfig
from .logging import get_logger


logger = get_logger()

GRID_ROUNDING_TOLERANCE = 1e-9


class ValidationError(Exception):
    """Base exception for validation errors."""
    pass


class InvalidGridError(ValidationError):
    """Raised when the scoring grid cannot be built from its bounds and pitch."""
    pass


class InvalidConfigurationError(ValidationError, ValueError):
    """Raised when configuration parameters are invalid."""
    pass


def _voxel_count(ratio: float) -> int:
    """ceil(size / d), ignoring round-off when the ratio is integral."""
    nearest = round(ratio)
    if abs(ratio - nearest) < GRID_ROUNDING_TOLERANCE:
        return int(nearest)
    return int(math.ceil(ratio))


def validate_grid_dimensions(
    min_corner: Sequence[float],
    max_corner: Sequence[float],
    voxel_size: Sequence[float]
) -> tuple:
    """Compute and validate voxel counts along each axis.

    Args:
        min_corner: Lower corner (x, y, z) in internal length units
        max_corner: Upper corner (x, y, z) in internal length units
        voxel_size: Voxel pitch (dx, dy, dz) in internal length units

    Returns:
        Tuple (nx, ny, nz) with N = ceil(size / d)

    Raises:
        InvalidGridError: If any pitch or resulting dimension is non-positive
    """
    if len(min_corner) != 3 or len(max_corner) != 3 or len(voxel_size) != 3:
        raise InvalidGridError("Grid corners and voxel size must have 3 components")

    if any(not d > 0.0 for d in voxel_size):
        raise InvalidGridError(f"Voxel size must be positive, got {tuple(voxel_size)}")

    dims = tuple(
        _voxel_count((hi - lo) / d)
        for lo, hi, d in zip(min_corner, max_corner, voxel_size)
    )

    if any(n <= 0 for n in dims):
        raise InvalidGridError(
            f"VoxelGrid: invalid dimensions {dims} for bounds "
            f"{tuple(min_corner)} -> {tuple(max_corner)}"
        )

    return dims


def validate_config(config: SimulationConfig) -> None:
    """Validate simulation configuration.

    Field checks run in SimulationConfig.__post_init__; this adds checks
    that depend on the combination of fields.

    Args:
        config: Simulation configuration

    Raises:
        InvalidConfigurationError: If configuration is invalid
    """
    if (config.grid_min_nm is None) != (config.grid_max_nm is None):
        raise InvalidConfigurationError(
            "grid_min_nm and grid_max_nm must be given together"
        )

    if config.Ea_fast_eV > config.Ea_base_eV:
        logger.warning(
            f"Ea_fast_eV={config.Ea_fast_eV} exceeds Ea_base_eV={config.Ea_base_eV}; "
            f"a charged seed will slow growth"
        )

    if config.W_eV <= 0:
        logger.warning("W_eV is not positive, seed electron capture is disabled")

    logger.debug("Configuration validation passed")
