"""Oxygen site density and per-voxel vacancy capacity."""

import math

from .constants import AVOGADRO, OXYGEN_SITES_PER_FORMULA_UNIT


def oxygen_site_density_cm3(density_g_cm3: float, molar_mass_g_mol: float) -> float:
    """Number density of oxygen sites in the oxide.

    siteDensity = sites_per_formula_unit * (rho / M) * N_A

    Args:
        density_g_cm3: Mass density in g/cm³
        molar_mass_g_mol: Molar mass of one formula unit in g/mol

    Returns:
        Oxygen site density in cm⁻³ (0 for non-physical inputs)
    """
    if density_g_cm3 <= 0.0 or molar_mass_g_mol <= 0.0:
        return 0.0
    return OXYGEN_SITES_PER_FORMULA_UNIT * (density_g_cm3 / molar_mass_g_mol) * AVOGADRO


def capacity_per_voxel(
    density_g_cm3: float,
    molar_mass_g_mol: float,
    voxel_volume_cm3: float
) -> int:
    """Maximum vacancy count a single voxel can hold.

    Args:
        density_g_cm3: Mass density in g/cm³
        molar_mass_g_mol: Molar mass in g/mol
        voxel_volume_cm3: Voxel volume in cm³

    Returns:
        Capacity, never less than 1
    """
    sites = oxygen_site_density_cm3(density_g_cm3, molar_mass_g_mol) * voxel_volume_cm3
    return max(1, int(math.floor(sites)))


def clamp_concentration(concentration_cm3: float, site_density_cm3: float) -> float:
    """Clamp an initial vacancy concentration into [0, site density]."""
    return min(max(concentration_cm3, 0.0), site_density_cm3)
