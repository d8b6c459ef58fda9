"""Core simulation components."""

from .data_models import (
    VoxelIndex,
    GridGeometry,
    VacancyParameters,
    RunSnapshot
)
from .voxel_grid import VoxelGrid
from .vacancy_model import VacancyModel
from .film_geometry import FilmGeometry
from .defect_synthesis import DefectSynthesis
from .vacancy_simulator import VacancySimulator

__all__ = [
    'VoxelIndex',
    'GridGeometry',
    'VacancyParameters',
    'RunSnapshot',
    'VoxelGrid',
    'VacancyModel',
    'FilmGeometry',
    'DefectSynthesis',
    'VacancySimulator'
]
