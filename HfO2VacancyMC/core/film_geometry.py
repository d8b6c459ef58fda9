"""HfO2 film geometry and the scoring-grid bounds derived from it."""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..physics.constants import nm, um
from ..utils.config import SimulationConfig
from ..utils.logging import get_logger


logger = get_logger()


@dataclass
class FilmGeometry:
    """Square HfO2 pad with its top surface at z = 0.

    The film spans x, y in [-pad/2, pad/2] and z in [-thickness, 0]; the
    scoring grid covers exactly that box unless explicit bounds are given.

    Attributes:
        hfo2_thickness_nm: Film thickness in nm
        pad_size_um: Lateral pad size in um
        voxel_size_nm: Voxel pitch (dx, dy, dz) in nm
        grid_min_nm: Optional explicit lower grid corner in nm
        grid_max_nm: Optional explicit upper grid corner in nm
    """
    hfo2_thickness_nm: float = 10.0
    pad_size_um: float = 5.0
    voxel_size_nm: Tuple[float, float, float] = (50.0, 50.0, 1.0)
    grid_min_nm: Optional[Tuple[float, float, float]] = None
    grid_max_nm: Optional[Tuple[float, float, float]] = None

    @classmethod
    def from_config(cls, config: SimulationConfig) -> 'FilmGeometry':
        """Build the film geometry from a simulation configuration."""
        return cls(
            hfo2_thickness_nm=config.hfo2_thickness_nm,
            pad_size_um=config.pad_size_um,
            voxel_size_nm=(config.voxel_dx_nm, config.voxel_dy_nm, config.voxel_dz_nm),
            grid_min_nm=config.grid_min_nm,
            grid_max_nm=config.grid_max_nm
        )

    def grid_bounds(self) -> Tuple[Tuple[float, float, float], Tuple[float, float, float]]:
        """Scoring-grid corners in internal length units."""
        if self.grid_min_nm is not None and self.grid_max_nm is not None:
            lo = tuple(v * nm for v in self.grid_min_nm)
            hi = tuple(v * nm for v in self.grid_max_nm)
            logger.debug(f"Using explicit grid bounds {self.grid_min_nm} -> {self.grid_max_nm} nm")
            return lo, hi

        half_pad = 0.5 * self.pad_size_um * um
        thickness = self.hfo2_thickness_nm * nm
        return (-half_pad, -half_pad, -thickness), (half_pad, half_pad, 0.0)

    def voxel_size(self) -> Tuple[float, float, float]:
        """Voxel pitch in internal length units."""
        dx, dy, dz = self.voxel_size_nm
        return dx * nm, dy * nm, dz * nm
