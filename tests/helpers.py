"""Grid and model builders shared by the tests."""

from HfO2VacancyMC.core import VoxelGrid, VacancyModel, VacancyParameters
from HfO2VacancyMC.physics.constants import nm


def voxel_center(ix, iy, iz, pitch=1.0 * nm, origin=(0.0, 0.0, 0.0)):
    """Centre of voxel (ix, iy, iz) on a grid with cubic pitch."""
    return tuple(o + (i + 0.5) * pitch for o, i in zip(origin, (ix, iy, iz)))


def make_grid(dims=(2, 2, 2), pitch_nm=1.0):
    """Grid of cubic voxels spanning [0, dims * pitch) nm."""
    grid = VoxelGrid()
    grid.configure(
        (0.0, 0.0, 0.0),
        tuple(n * pitch_nm * nm for n in dims),
        pitch_nm * nm, pitch_nm * nm, pitch_nm * nm
    )
    return grid


def make_model(grid, **overrides):
    """Vacancy model bound to a grid; no initial vacancies unless overridden."""
    params = dict(initial_concentration_cm3=0.0, random_seed=7)
    params.update(overrides)
    model = VacancyModel(VacancyParameters(**params))
    model.configure_from_grid(grid)
    return model
