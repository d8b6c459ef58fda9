"""Configuration management for vacancy simulations."""

from dataclasses import dataclass
from typing import Optional, Tuple
import yaml
from pathlib import Path

from ..physics.constants import (
    DEFAULT_W_EV,
    DEFAULT_EA_BASE_EV,
    DEFAULT_EA_FAST_EV,
    DEFAULT_INITIAL_CONCENTRATION_CM3,
    DEFAULT_RANDOM_SEED,
    HFO2_DENSITY_G_CM3,
    HFO2_MOLAR_MASS_G_MOL
)


@dataclass
class SimulationConfig:
    """Configuration for an HfO2 vacancy simulation.

    Attributes:
        hfo2_thickness_nm: HfO2 film thickness in nm
        pad_size_um: Lateral size of the square pad in um
        voxel_dx_nm: Voxel pitch along x in nm
        voxel_dy_nm: Voxel pitch along y in nm
        voxel_dz_nm: Voxel pitch along z in nm
        grid_min_nm: Explicit lower grid corner in nm (overrides film geometry)
        grid_max_nm: Explicit upper grid corner in nm (overrides film geometry)
        W_eV: Seed energy per captured electron in eV
        Ea_base_eV: Growth barrier without a charged seed in eV
        Ea_fast_eV: Growth barrier with a doubly charged seed in eV
        fast_only_near_seed: Restrict the fast barrier to seed face-neighbours
        initial_concentration_cm3: Initial vacancy concentration in cm⁻³
        random_seed: Seed for the initial vacancy fill
        density_g_cm3: Oxide density in g/cm³ (sets voxel capacity)
        molar_mass_g_mol: Oxide molar mass in g/mol (sets voxel capacity)
        output_format: Output format ('file' or 'object')
        output_path: Directory for output files (required if output_format='file')
        export_nifti: Also export voxel volumes as NIfTI images
        device: Computation device ('cpu' or 'cuda')
    """
    hfo2_thickness_nm: float = 10.0
    pad_size_um: float = 5.0
    voxel_dx_nm: float = 50.0
    voxel_dy_nm: float = 50.0
    voxel_dz_nm: float = 1.0
    grid_min_nm: Optional[Tuple[float, float, float]] = None
    grid_max_nm: Optional[Tuple[float, float, float]] = None
    W_eV: float = DEFAULT_W_EV
    Ea_base_eV: float = DEFAULT_EA_BASE_EV
    Ea_fast_eV: float = DEFAULT_EA_FAST_EV
    fast_only_near_seed: bool = True
    initial_concentration_cm3: float = DEFAULT_INITIAL_CONCENTRATION_CM3
    random_seed: int = DEFAULT_RANDOM_SEED
    density_g_cm3: float = HFO2_DENSITY_G_CM3
    molar_mass_g_mol: float = HFO2_MOLAR_MASS_G_MOL
    output_format: str = 'file'
    output_path: Optional[str] = './results/'
    export_nifti: bool = False
    device: str = 'cpu'

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.grid_min_nm is not None:
            self.grid_min_nm = tuple(float(v) for v in self.grid_min_nm)
        if self.grid_max_nm is not None:
            self.grid_max_nm = tuple(float(v) for v in self.grid_max_nm)

        self._validate()

    def _validate(self) -> None:
        """Validate configuration parameters."""
        import torch
        from .logging import get_logger
        from .validation import InvalidConfigurationError
        logger = get_logger()

        # Validate film geometry
        if self.grid_min_nm is None:
            if self.hfo2_thickness_nm <= 0:
                raise InvalidConfigurationError(
                    f"hfo2_thickness_nm must be positive, got {self.hfo2_thickness_nm}"
                )
            if self.pad_size_um <= 0:
                raise InvalidConfigurationError(
                    f"pad_size_um must be positive, got {self.pad_size_um}"
                )

        # Validate explicit bounds
        for name in ('grid_min_nm', 'grid_max_nm'):
            value = getattr(self, name)
            if value is not None and len(value) != 3:
                raise InvalidConfigurationError(f"{name} must have 3 components, got {value}")

        if not isinstance(self.random_seed, int) or isinstance(self.random_seed, bool):
            raise InvalidConfigurationError(
                f"random_seed must be an integer, got {self.random_seed!r}"
            )

        # Validate output_format
        if self.output_format not in ['file', 'object']:
            raise InvalidConfigurationError(
                f"output_format must be 'file' or 'object', got {self.output_format}"
            )

        # Validate output_path for file output
        if self.output_format == 'file' and not self.output_path:
            raise InvalidConfigurationError("output_path is required when output_format='file'")

        # Validate device with automatic fallback
        if self.device not in ['cuda', 'cpu']:
            raise InvalidConfigurationError(f"device must be 'cuda' or 'cpu', got {self.device}")

        if self.device == 'cuda' and not torch.cuda.is_available():
            logger.warning("CUDA requested but not available, falling back to CPU")
            self.device = 'cpu'

    def to_parameters(self) -> 'VacancyParameters':
        """Build the vacancy model parameters from this configuration."""
        from ..core.data_models import VacancyParameters

        return VacancyParameters(
            W_eV=self.W_eV,
            Ea_base_eV=self.Ea_base_eV,
            Ea_fast_eV=self.Ea_fast_eV,
            fast_only_near_seed=self.fast_only_near_seed,
            initial_concentration_cm3=self.initial_concentration_cm3,
            random_seed=self.random_seed,
            density_g_cm3=self.density_g_cm3,
            molar_mass_g_mol=self.molar_mass_g_mol
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'SimulationConfig':
        """Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            SimulationConfig instance
        """
        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}

        return cls(**config_dict)

    def to_yaml(self, yaml_path: str) -> None:
        """Save configuration to YAML file.

        Args:
            yaml_path: Path to save YAML configuration
        """
        config_dict = {
            'hfo2_thickness_nm': self.hfo2_thickness_nm,
            'pad_size_um': self.pad_size_um,
            'voxel_dx_nm': self.voxel_dx_nm,
            'voxel_dy_nm': self.voxel_dy_nm,
            'voxel_dz_nm': self.voxel_dz_nm,
            'grid_min_nm': list(self.grid_min_nm) if self.grid_min_nm is not None else None,
            'grid_max_nm': list(self.grid_max_nm) if self.grid_max_nm is not None else None,
            'W_eV': self.W_eV,
            'Ea_base_eV': self.Ea_base_eV,
            'Ea_fast_eV': self.Ea_fast_eV,
            'fast_only_near_seed': self.fast_only_near_seed,
            'initial_concentration_cm3': self.initial_concentration_cm3,
            'random_seed': self.random_seed,
            'density_g_cm3': self.density_g_cm3,
            'molar_mass_g_mol': self.molar_mass_g_mol,
            'output_format': self.output_format,
            'output_path': self.output_path,
            'export_nifti': self.export_nifti,
            'device': self.device,
        }

        Path(yaml_path).parent.mkdir(parents=True, exist_ok=True)
        with open(yaml_path, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False)

    @staticmethod
    def get_default_config() -> 'SimulationConfig':
        """Get a default configuration for testing.

        Returns:
            SimulationConfig with default values
        """
        return SimulationConfig(
            hfo2_thickness_nm=10.0,
            pad_size_um=5.0,
            output_format='file',
            output_path='./results/'
        )
