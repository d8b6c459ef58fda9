"""Units, constants and material relations for the vacancy model."""

from .site_density import (
    oxygen_site_density_cm3,
    capacity_per_voxel,
    clamp_concentration
)

__all__ = [
    'oxygen_site_density_cm3',
    'capacity_per_voxel',
    'clamp_concentration'
]
