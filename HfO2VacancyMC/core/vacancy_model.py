"""Oxygen-vacancy nucleation and growth driven by per-event energy deposition."""

import math
from typing import Optional
import torch

from .data_models import GridGeometry, RunSnapshot, VacancyParameters, VoxelIndex
from .voxel_grid import VoxelGrid
from ..physics.constants import MAX_SEED_CAPTURED_ELECTRONS
from ..physics.site_density import (
    oxygen_site_density_cm3,
    capacity_per_voxel,
    clamp_concentration
)
from ..utils.logging import get_logger


logger = get_logger()

# Face-neighbour offsets (+x, -x, +y, -y, +z, -z)
NEIGHBOR_OFFSETS_6 = (
    (1, 0, 0), (-1, 0, 0),
    (0, 1, 0), (0, -1, 0),
    (0, 0, 1), (0, 0, -1),
)


class VacancyModel:
    """Per-voxel vacancy occupancy evolved from deposited energy.

    Each voxel holds a vacancy count bounded by a capacity derived from the
    oxide's oxygen site density, and an energy bank of deposited but not yet
    consumed energy. Once per event the touched voxels' deposits are banked,
    the seed voxel may capture electrons, and touched voxels adjacent to an
    existing vacancy grow by one vacancy when their bank pays the activation
    barrier. The barrier drops from Ea_base to Ea_fast once the seed holds
    two electrons (optionally only for the seed's face-neighbours).

    The model reads the VoxelGrid it was configured from and never writes
    to it.

    Attributes:
        params: Model parameters
        grid: Read-only reference to the configured VoxelGrid
        geometry: Grid geometry copied at configuration
        capacity_per_voxel: Maximum vacancy count per voxel
        site_density_cm3: Oxygen site density in cm⁻³
        vacancy_count: Vacancy count per voxel [N]
        energy_bank_eV: Energy bank per voxel in eV [N]
    """

    def __init__(self, params: Optional[VacancyParameters] = None, device: str = 'cpu'):
        """Initialize VacancyModel.

        Args:
            params: Model parameters (defaults if None)
            device: Computation device
        """
        self.params = params or VacancyParameters()
        self.device = device

        self.grid: Optional[VoxelGrid] = None
        self.geometry: Optional[GridGeometry] = None
        self.seed_index = VoxelIndex(0, 0, 0)
        self.seed_flat = 0

        self.site_density_cm3 = 0.0
        self.capacity_per_voxel = 1
        self.initial_concentration_clamped_cm3 = 0.0

        self.vacancy_count: Optional[torch.Tensor] = None
        self.energy_bank_eV: Optional[torch.Tensor] = None

        self._generator = torch.Generator(device=device)
        self._seed_captured_electrons = 0
        self._total_created = 0

    @property
    def seed_captured_electrons(self) -> int:
        return self._seed_captured_electrons

    @property
    def total_created(self) -> int:
        return self._total_created

    def configure_from_grid(self, grid: VoxelGrid) -> None:
        """Bind to a configured grid, size the state and initialize a run.

        Args:
            grid: Configured VoxelGrid
        """
        self.grid = grid
        self.geometry = grid.geometry
        self.seed_index = self.geometry.seed_index
        self.seed_flat = self.geometry.seed_flat

        p = self.params
        self.site_density_cm3 = oxygen_site_density_cm3(p.density_g_cm3, p.molar_mass_g_mol)
        self.capacity_per_voxel = capacity_per_voxel(
            p.density_g_cm3, p.molar_mass_g_mol, self.geometry.voxel_volume_cm3
        )

        n = self.geometry.num_voxels
        self.vacancy_count = torch.zeros(n, dtype=torch.int64, device=self.device)
        self.energy_bank_eV = torch.zeros(n, dtype=torch.float64, device=self.device)

        logger.info(
            f"VacancyModel configured: site density={self.site_density_cm3:.4e} cm^-3, "
            f"capacity per voxel={self.capacity_per_voxel}"
        )

        self.reset_and_init()

    def reset_and_init(self) -> None:
        """Reset the run state and draw the initial vacancy population.

        Every voxel's count is drawn from Poisson(conc * V_voxel) with a
        generator reseeded from params.random_seed, clamped into
        [0, capacity]; the seed voxel always holds at least one vacancy.
        """
        p = self.params
        self._generator.manual_seed(int(p.random_seed))

        self.energy_bank_eV.zero_()
        self.vacancy_count.zero_()

        self.initial_concentration_clamped_cm3 = clamp_concentration(
            p.initial_concentration_cm3, self.site_density_cm3
        )
        lam = self.initial_concentration_clamped_cm3 * self.geometry.voxel_volume_cm3

        if lam > 0.0:
            rates = torch.full(
                (self.geometry.num_voxels,), lam, dtype=torch.float64, device=self.device
            )
            draws = torch.poisson(rates, generator=self._generator)
            self.vacancy_count.copy_(
                torch.clamp(draws, 0, self.capacity_per_voxel).to(torch.int64)
            )

        if self.vacancy_count[self.seed_flat] < 1:
            self.vacancy_count[self.seed_flat] = 1

        self._seed_captured_electrons = 0
        self._total_created = 0

        logger.info(
            f"Vacancy state initialized: lambda={lam:.4e} per voxel, "
            f"initial vacancies={int(self.vacancy_count.sum().item())}"
        )

    def has_vacancy_neighbor(self, ix: int, iy: int, iz: int) -> bool:
        """True if any in-bounds face-neighbour holds a vacancy."""
        for ox, oy, oz in NEIGHBOR_OFFSETS_6:
            nx, ny, nz = ix + ox, iy + oy, iz + oz
            if not self.geometry.is_in_bounds(nx, ny, nz):
                continue
            if self.vacancy_count[self.geometry.flatten(nx, ny, nz)] > 0:
                return True
        return False

    def is_neighbor_of_seed(self, ix: int, iy: int, iz: int) -> bool:
        """True if the voxel is at Manhattan distance exactly 1 from the seed."""
        sx, sy, sz = self.seed_index
        return abs(ix - sx) + abs(iy - sy) + abs(iz - sz) == 1

    def select_barrier(self, ix: int, iy: int, iz: int) -> float:
        """Activation barrier in eV for growth at a voxel."""
        p = self.params
        if self._seed_captured_electrons == MAX_SEED_CAPTURED_ELECTRONS:
            if not p.fast_only_near_seed or self.is_neighbor_of_seed(ix, iy, iz):
                return p.Ea_fast_eV
        return p.Ea_base_eV

    def process_event(self, grid: Optional[VoxelGrid] = None) -> int:
        """Apply one event's deposition to the vacancy state.

        Touched voxels are visited in first-touch order and counts are
        updated in place, so a voxel that gains its first vacancy can make
        a later voxel in the same pass eligible for growth.

        Args:
            grid: Grid holding the event's deposition (the configured grid if None)

        Returns:
            Number of vacancies created by this event
        """
        grid = grid if grid is not None else self.grid
        touched = grid.touched_voxels
        if not touched:
            return 0

        # 1) Bank this event's deposition
        idx = torch.tensor(touched, dtype=torch.int64, device=self.device)
        self.energy_bank_eV[idx] += grid.edep_event_eV_at(idx.to(grid.device)).to(self.device)

        # 2) Seed electron capture
        if self._seed_captured_electrons < MAX_SEED_CAPTURED_ELECTRONS:
            edep_seed_eV = grid.get_edep_event_eV(self.seed_flat)
            W = self.params.W_eV
            if edep_seed_eV > 0.0 and W > 0.0:
                dn = int(math.floor(edep_seed_eV / W))
                if dn > 0:
                    self._seed_captured_electrons = min(
                        MAX_SEED_CAPTURED_ELECTRONS, self._seed_captured_electrons + dn
                    )
                    logger.debug(
                        f"Seed captured electrons: {self._seed_captured_electrons}"
                    )

        # 3) Growth at touched voxels adjacent to an existing vacancy
        created = 0
        for flat in touched:
            if self.vacancy_count[flat] >= self.capacity_per_voxel:
                continue

            ix, iy, iz = self.geometry.unflatten(flat)
            if not self.has_vacancy_neighbor(ix, iy, iz):
                continue

            Ea = self.select_barrier(ix, iy, iz)
            if self.energy_bank_eV[flat] >= Ea:
                self.vacancy_count[flat] += 1
                self.energy_bank_eV[flat] -= Ea
                created += 1

        self._total_created += created
        if created:
            logger.debug(f"Event created {created} vacancies (total {self._total_created})")

        return created

    def snapshot(self, n_primaries: int) -> RunSnapshot:
        """Copy the terminal run state for export or reduction.

        Args:
            n_primaries: Number of primaries processed in the run
        """
        return RunSnapshot(
            geometry=self.geometry,
            parameters=self.params,
            capacity_per_voxel=self.capacity_per_voxel,
            initial_concentration_clamped_cm3=self.initial_concentration_clamped_cm3,
            edep_run_eV=self.grid.edep_run_eV().cpu().clone(),
            vacancy_count=self.vacancy_count.cpu().clone(),
            energy_bank_eV=self.energy_bank_eV.cpu().clone(),
            seed_captured_electrons=self._seed_captured_electrons,
            total_created=self._total_created,
            n_primaries=int(n_primaries)
        )
