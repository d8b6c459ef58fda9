"""Voxelized energy-deposition accumulator for the HfO2 film."""

import math
from typing import Iterator, List, Optional, Sequence, Tuple
import torch

from .data_models import GridGeometry, VoxelIndex
from ..physics.constants import eV
from ..utils.logging import get_logger
from ..utils.validation import validate_grid_dimensions


logger = get_logger()


def _as_xyz(position) -> Tuple[float, float, float]:
    """Read a 3-vector (sequence, ndarray or tensor) as Python floats."""
    if isinstance(position, torch.Tensor):
        position = position.tolist()
    x, y, z = position
    return float(x), float(y), float(z)


class VoxelGrid:
    """Spatial accumulator of deposited energy on a fixed voxel grid.

    Tracks the energy deposited since the last run reset and since the last
    event reset. Voxels receiving energy during the current event are kept in
    a touched list, in the order they were first deposited into, so that the
    event reset and downstream per-event processing cost O(touched) rather
    than O(grid).

    Energies are stored in internal units (MeV); the ``*_eV`` accessors
    convert on read.

    Attributes:
        geometry: Grid geometry (None until configured)
        device: Computation device
        edep_run: Run-cumulative deposited energy per voxel [N]
        edep_event: Event deposited energy per voxel [N]
        touched: Touched-this-event flag per voxel [N]
    """

    def __init__(self, device: str = 'cpu'):
        """Initialize an unconfigured VoxelGrid.

        Args:
            device: Computation device ('cpu' or 'cuda')
        """
        self.device = device
        self.geometry: Optional[GridGeometry] = None
        self.edep_run: Optional[torch.Tensor] = None
        self.edep_event: Optional[torch.Tensor] = None
        self.touched: Optional[torch.Tensor] = None
        self._touched_list: List[int] = []

    def configure(
        self,
        min_corner: Sequence[float],
        max_corner: Sequence[float],
        dx: float,
        dy: float,
        dz: float
    ) -> GridGeometry:
        """Build the grid over [min_corner, max_corner) with pitch (dx, dy, dz).

        Args:
            min_corner: Lower corner in internal length units
            max_corner: Upper corner in internal length units
            dx: Voxel pitch along x
            dy: Voxel pitch along y
            dz: Voxel pitch along z

        Returns:
            The configured GridGeometry

        Raises:
            InvalidGridError: If any dimension is non-positive
        """
        min_corner = _as_xyz(min_corner)
        max_corner = _as_xyz(max_corner)
        voxel_size = (float(dx), float(dy), float(dz))

        dimensions = validate_grid_dimensions(min_corner, max_corner, voxel_size)

        self.geometry = GridGeometry(
            min_corner=min_corner,
            max_corner=max_corner,
            voxel_size=voxel_size,
            dimensions=dimensions
        )

        n = self.geometry.num_voxels
        self.edep_run = torch.zeros(n, dtype=torch.float64, device=self.device)
        self.edep_event = torch.zeros(n, dtype=torch.float64, device=self.device)
        self.touched = torch.zeros(n, dtype=torch.bool, device=self.device)
        self._touched_list = []

        logger.info(
            f"VoxelGrid configured: {dimensions[0]}x{dimensions[1]}x{dimensions[2]} voxels, "
            f"seed voxel={tuple(self.geometry.seed_index)}"
        )

        return self.geometry

    @property
    def dimensions(self) -> Tuple[int, int, int]:
        return self.geometry.dimensions

    @property
    def seed_index(self) -> VoxelIndex:
        return self.geometry.seed_index

    @property
    def seed_flat(self) -> int:
        return self.geometry.seed_flat

    @property
    def touched_voxels(self) -> Tuple[int, ...]:
        """Flat indices touched this event, in first-touch order."""
        return tuple(self._touched_list)

    def iter_touched(self) -> Iterator[int]:
        return iter(self.touched_voxels)

    def flatten(self, ix: int, iy: int, iz: int) -> int:
        return self.geometry.flatten(ix, iy, iz)

    def unflatten(self, flat: int) -> VoxelIndex:
        return self.geometry.unflatten(flat)

    def contains(self, position) -> bool:
        """Half-open containment test min <= p < max on every axis."""
        p = _as_xyz(position)
        lo = self.geometry.min_corner
        hi = self.geometry.max_corner
        return all(lo[k] <= p[k] < hi[k] for k in range(3))

    def to_index(self, position) -> VoxelIndex:
        """Convert a position to a voxel index, clamped into the grid.

        Positions on or slightly past the upper boundary fold into the last
        voxel along that axis instead of being rejected.
        """
        p = _as_xyz(position)
        lo = self.geometry.min_corner
        d = self.geometry.voxel_size
        dims = self.geometry.dimensions

        idx = []
        for k in range(3):
            i = int(math.floor((p[k] - lo[k]) / d[k]))
            idx.append(max(0, min(dims[k] - 1, i)))
        return VoxelIndex(*idx)

    def add_edep(self, position, energy: float) -> None:
        """Record an energy deposit at a position.

        Deposits with non-positive (or NaN) energy or outside the grid region
        are dropped.

        Args:
            position: Deposit position (x, y, z) in internal length units
            energy: Deposited energy in internal energy units
        """
        energy = float(energy)
        if not energy > 0.0:
            return
        if not self.contains(position):
            return

        flat = self.flatten(*self.to_index(position))
        self.edep_run[flat] += energy
        self.edep_event[flat] += energy

        if not self.touched[flat]:
            self.touched[flat] = True
            self._touched_list.append(flat)

    def add_edep_batch(self, positions: torch.Tensor, energies: torch.Tensor) -> int:
        """Record a batch of energy deposits.

        Equivalent to calling add_edep for each sample in order, including
        the first-touch order of newly touched voxels.

        Args:
            positions: Deposit positions [M, 3] in internal length units
            energies: Deposited energies [M] in internal energy units

        Returns:
            Number of deposits recorded
        """
        positions = torch.as_tensor(positions, dtype=torch.float64, device=self.device)
        energies = torch.as_tensor(energies, dtype=torch.float64, device=self.device)
        if positions.numel() == 0:
            return 0
        positions = positions.reshape(-1, 3)

        lo = torch.tensor(self.geometry.min_corner, dtype=torch.float64, device=self.device)
        hi = torch.tensor(self.geometry.max_corner, dtype=torch.float64, device=self.device)
        d = torch.tensor(self.geometry.voxel_size, dtype=torch.float64, device=self.device)
        dims = torch.tensor(self.geometry.dimensions, dtype=torch.int64, device=self.device)

        inside = torch.all((positions >= lo) & (positions < hi), dim=1)
        valid = inside & (energies > 0.0)
        if not torch.any(valid):
            return 0

        positions = positions[valid]
        energies = energies[valid]

        idx = torch.floor((positions - lo) / d).to(torch.int64)
        idx = torch.minimum(torch.clamp(idx, min=0), dims - 1)
        _, ny, nz = self.geometry.dimensions
        flats = idx[:, 2] + nz * (idx[:, 1] + ny * idx[:, 0])

        self.edep_run.index_add_(0, flats, energies)
        self.edep_event.index_add_(0, flats, energies)

        for flat in flats.tolist():
            if not self.touched[flat]:
                self.touched[flat] = True
                self._touched_list.append(flat)

        return int(flats.numel())

    def reset_event_accumulators(self) -> None:
        """Clear event energy and touched flags of the touched voxels only."""
        if self._touched_list:
            idx = torch.tensor(self._touched_list, dtype=torch.int64, device=self.device)
            self.edep_event[idx] = 0.0
            self.touched[idx] = False
        self._touched_list = []

    def reset_run_accumulators(self) -> None:
        self.edep_run.zero_()

    def get_edep_event_eV(self, flat: int) -> float:
        return self.edep_event[flat].item() / eV

    def get_edep_run_eV(self, flat: int) -> float:
        return self.edep_run[flat].item() / eV

    def edep_event_eV_at(self, idx: torch.Tensor) -> torch.Tensor:
        """Event energy in eV at the given flat indices only."""
        return self.edep_event[idx] / eV

    def edep_run_eV(self) -> torch.Tensor:
        return self.edep_run / eV

