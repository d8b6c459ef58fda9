"""Core data models for the vacancy simulation."""

from dataclasses import dataclass
from typing import NamedTuple, Tuple
import torch
import numpy as np

from ..physics.constants import (
    cm3,
    mm,
    DEFAULT_W_EV,
    DEFAULT_EA_BASE_EV,
    DEFAULT_EA_FAST_EV,
    DEFAULT_INITIAL_CONCENTRATION_CM3,
    DEFAULT_RANDOM_SEED,
    HFO2_DENSITY_G_CM3,
    HFO2_MOLAR_MASS_G_MOL
)


class VoxelIndex(NamedTuple):
    """Integer voxel address (ix, iy, iz)."""
    ix: int
    iy: int
    iz: int


@dataclass(frozen=True)
class GridGeometry:
    """Axis-aligned voxel grid over [min_corner, max_corner).

    Voxels are flattened row-major with z fastest:
    flat = iz + nz * (iy + ny * ix).

    Attributes:
        min_corner: Lower corner (x, y, z) in internal length units
        max_corner: Upper corner (x, y, z) in internal length units
        voxel_size: Voxel pitch (dx, dy, dz) in internal length units
        dimensions: Grid dimensions (nx, ny, nz)
    """
    min_corner: Tuple[float, float, float]
    max_corner: Tuple[float, float, float]
    voxel_size: Tuple[float, float, float]
    dimensions: Tuple[int, int, int]

    @property
    def num_voxels(self) -> int:
        nx, ny, nz = self.dimensions
        return nx * ny * nz

    @property
    def seed_index(self) -> VoxelIndex:
        """Geometric centre voxel (integer division)."""
        nx, ny, nz = self.dimensions
        return VoxelIndex(nx // 2, ny // 2, nz // 2)

    @property
    def seed_flat(self) -> int:
        return self.flatten(*self.seed_index)

    @property
    def voxel_volume(self) -> float:
        dx, dy, dz = self.voxel_size
        return dx * dy * dz

    @property
    def voxel_volume_cm3(self) -> float:
        return self.voxel_volume / cm3

    def flatten(self, ix: int, iy: int, iz: int) -> int:
        _, ny, nz = self.dimensions
        return iz + nz * (iy + ny * ix)

    def unflatten(self, flat: int) -> VoxelIndex:
        _, ny, nz = self.dimensions
        yz = ny * nz
        ix = flat // yz
        rem = flat - ix * yz
        iy = rem // nz
        iz = rem - iy * nz
        return VoxelIndex(ix, iy, iz)

    def is_in_bounds(self, ix: int, iy: int, iz: int) -> bool:
        nx, ny, nz = self.dimensions
        return 0 <= ix < nx and 0 <= iy < ny and 0 <= iz < nz

    def index_arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Voxel indices (ix, iy, iz) of every voxel in flat order."""
        nx, ny, nz = self.dimensions
        ix, iy, iz = np.meshgrid(
            np.arange(nx), np.arange(ny), np.arange(nz), indexing='ij'
        )
        return ix.ravel(), iy.ravel(), iz.ravel()

    def affine_matrix(self) -> np.ndarray:
        """4x4 voxel-index to mm transform for volume export."""
        affine = np.eye(4)
        affine[:3, :3] = np.diag([d / mm for d in self.voxel_size])
        affine[:3, 3] = [c / mm for c in self.min_corner]
        return affine


@dataclass
class VacancyParameters:
    """Parameters of the vacancy nucleation and growth model.

    Attributes:
        W_eV: Seed energy per captured electron in eV
        Ea_base_eV: Growth barrier without a charged seed in eV
        Ea_fast_eV: Growth barrier with a doubly charged seed in eV
        fast_only_near_seed: Restrict the fast barrier to seed face-neighbours
        initial_concentration_cm3: Initial vacancy concentration in cm⁻³
        random_seed: Seed for the initial vacancy fill
        density_g_cm3: Oxide density in g/cm³
        molar_mass_g_mol: Oxide molar mass in g/mol
    """
    W_eV: float = DEFAULT_W_EV
    Ea_base_eV: float = DEFAULT_EA_BASE_EV
    Ea_fast_eV: float = DEFAULT_EA_FAST_EV
    fast_only_near_seed: bool = True
    initial_concentration_cm3: float = DEFAULT_INITIAL_CONCENTRATION_CM3
    random_seed: int = DEFAULT_RANDOM_SEED
    density_g_cm3: float = HFO2_DENSITY_G_CM3
    molar_mass_g_mol: float = HFO2_MOLAR_MASS_G_MOL


@dataclass
class RunSnapshot:
    """Terminal state of one run, as exported and reduced across workers.

    Attributes:
        geometry: Grid geometry of the run
        parameters: Vacancy model parameters
        capacity_per_voxel: Maximum vacancy count per voxel
        initial_concentration_clamped_cm3: Concentration used for the initial fill
        edep_run_eV: Run-cumulative deposited energy per voxel in eV [N]
        vacancy_count: Vacancy count per voxel [N]
        energy_bank_eV: Unconsumed energy bank per voxel in eV [N]
        seed_captured_electrons: Electrons captured on the seed (0..2)
        total_created: Vacancies created during the run
        n_primaries: Primaries (events) processed
        num_workers: Number of worker snapshots merged into this one
    """
    geometry: GridGeometry
    parameters: VacancyParameters
    capacity_per_voxel: int
    initial_concentration_clamped_cm3: float
    edep_run_eV: torch.Tensor
    vacancy_count: torch.Tensor
    energy_bank_eV: torch.Tensor
    seed_captured_electrons: int
    total_created: int
    n_primaries: int
    num_workers: int = 1

    @property
    def created_per_primary(self) -> float:
        if self.n_primaries <= 0:
            return 0.0
        return self.total_created / self.n_primaries
