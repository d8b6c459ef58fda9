"""
End-to-end tests for the event/run driver.
"""

import csv
from pathlib import Path

import pytest
import torch

from HfO2VacancyMC import VacancySimulator, SimulationConfig
from HfO2VacancyMC.core.defect_synthesis import SUMMARY_FILENAME
from HfO2VacancyMC.physics.constants import nm, eV
from HfO2VacancyMC.utils.validation import InvalidGridError, InvalidConfigurationError

from helpers import voxel_center


def small_config(tmp_path, **overrides):
    """2x2x2 grid of 1 nm voxels with no initial vacancies."""
    params = dict(
        grid_min_nm=(0.0, 0.0, 0.0),
        grid_max_nm=(2.0, 2.0, 2.0),
        voxel_dx_nm=1.0,
        voxel_dy_nm=1.0,
        voxel_dz_nm=1.0,
        initial_concentration_cm3=0.0,
        output_path=str(tmp_path)
    )
    params.update(overrides)
    return SimulationConfig(**params)


EVENTS = [
    [(voxel_center(1, 1, 1), 30 * eV), (voxel_center(0, 1, 1), 2 * eV)],
    [(voxel_center(0, 0, 1), 3 * eV)],
    [((5 * nm, 5 * nm, 5 * nm), 20 * eV)],
]


class TestSetup:
    """Grid and model construction from configuration."""

    def test_grid_from_explicit_bounds(self, tmp_path):
        sim = VacancySimulator(small_config(tmp_path))
        assert sim.grid.dimensions == (2, 2, 2)
        assert sim.model.capacity_per_voxel == 55
        assert int(sim.model.vacancy_count.sum()) == 1
        assert sim.model.vacancy_count[sim.grid.seed_flat] == 1

    def test_film_grid_by_default(self, tmp_path):
        config = SimulationConfig(
            hfo2_thickness_nm=4.0,
            pad_size_um=0.2,
            initial_concentration_cm3=0.0,
            output_path=str(tmp_path)
        )
        sim = VacancySimulator(config)
        assert sim.grid.dimensions == (4, 4, 4)
        assert sim.grid.geometry.max_corner[2] == 0.0

    def test_empty_grid_fails(self, tmp_path):
        config = small_config(tmp_path, grid_max_nm=(0.0, 0.0, 0.0))
        with pytest.raises(InvalidGridError):
            VacancySimulator(config)

    def test_one_sided_bounds_fail(self, tmp_path):
        config = small_config(tmp_path, grid_max_nm=None)
        with pytest.raises(InvalidConfigurationError):
            VacancySimulator(config)

    def test_log_file_written(self, tmp_path):
        VacancySimulator(small_config(tmp_path))
        assert (tmp_path / 'simulation.log').exists()


class TestEventFlow:
    """Callback sequence driven by a transport engine."""

    def test_end_event_reports_created(self, tmp_path):
        sim = VacancySimulator(small_config(tmp_path))
        sim.begin_run()

        sim.begin_event()
        sim.add_edep(voxel_center(1, 1, 1), 30 * eV)
        sim.add_edep(voxel_center(0, 1, 1), 2 * eV)
        assert sim.end_event() == 1
        assert sim.model.seed_captured_electrons == 2
        assert sim.events_processed == 1

    def test_begin_event_clears_previous_event(self, tmp_path):
        sim = VacancySimulator(small_config(tmp_path))
        sim.begin_run()

        sim.begin_event()
        sim.add_edep(voxel_center(0, 0, 0), 1 * eV)
        sim.end_event()

        sim.begin_event()
        assert sim.grid.touched_voxels == ()
        assert sim.grid.get_edep_run_eV(sim.grid.flatten(0, 0, 0)) == pytest.approx(1.0)

    def test_score_step_uses_midpoint(self, tmp_path):
        sim = VacancySimulator(small_config(tmp_path))
        sim.begin_run()
        sim.begin_event()

        # Step from voxel (0,0,0) to voxel (1,1,1); mid-point lies in (1,1,1)
        sim.score_step((0.6 * nm, 0.6 * nm, 0.6 * nm), (1.6 * nm, 1.6 * nm, 1.6 * nm), 4 * eV)

        assert sim.grid.touched_voxels == (sim.grid.flatten(1, 1, 1),)
        assert sim.grid.get_edep_event_eV(sim.grid.flatten(1, 1, 1)) == pytest.approx(4.0)

    def test_score_step_skips_zero_energy(self, tmp_path):
        sim = VacancySimulator(small_config(tmp_path))
        sim.begin_run()
        sim.begin_event()
        sim.score_step((0.5 * nm,) * 3, (0.5 * nm,) * 3, 0.0)
        assert sim.grid.touched_voxels == ()

    def test_batch_deposits(self, tmp_path):
        sim = VacancySimulator(small_config(tmp_path))
        sim.begin_run()
        sim.begin_event()
        recorded = sim.add_edep_batch(
            torch.tensor([voxel_center(1, 1, 1), voxel_center(0, 1, 1)], dtype=torch.float64),
            torch.tensor([30 * eV, 2 * eV], dtype=torch.float64)
        )
        assert recorded == 2
        assert sim.end_event() == 1

    def test_begin_run_resets_state(self, tmp_path):
        sim = VacancySimulator(small_config(tmp_path))
        sim.simulate_events(EVENTS)
        assert sim.model.total_created > 0

        sim.begin_run()
        assert sim.events_processed == 0
        assert sim.model.total_created == 0
        assert sim.model.seed_captured_electrons == 0
        assert int(sim.model.vacancy_count.sum()) == 1
        assert torch.count_nonzero(sim.grid.edep_run) == 0
        assert torch.count_nonzero(sim.model.energy_bank_eV) == 0


class TestRun:
    """Complete runs and their exported results."""

    def test_simulate_events_writes_tables(self, tmp_path):
        sim = VacancySimulator(small_config(tmp_path))
        results = sim.simulate_events(EVENTS)

        for key in ('edep', 'vacancy_map', 'summary'):
            assert Path(results[key]).exists()

        with open(tmp_path / SUMMARY_FILENAME, newline='') as f:
            summary = dict(list(csv.reader(f))[1:])
        assert int(summary['nPrimaries']) == 3
        assert int(summary['totalCreated']) == 2
        assert int(summary['seedCapturedElectrons']) == 2
        assert int(summary['numWorkers']) == 1

    def test_primaries_default_to_events_processed(self, tmp_path):
        sim = VacancySimulator(small_config(tmp_path, output_format='object'))
        results = sim.simulate_events(EVENTS)
        summary = dict(results['summary'])
        assert summary['nPrimaries'] == 3
        assert summary['createdPerPrimary'] == pytest.approx(2 / 3)

    def test_explicit_primaries(self, tmp_path):
        sim = VacancySimulator(small_config(tmp_path, output_format='object'))
        results = sim.simulate_events(EVENTS, n_primaries=8)
        summary = dict(results['summary'])
        assert summary['nPrimaries'] == 8
        assert summary['createdPerPrimary'] == pytest.approx(0.25)

    def test_statistics_attached(self, tmp_path):
        sim = VacancySimulator(small_config(tmp_path, output_format='object'))
        results = sim.simulate_events(EVENTS)
        stats = results['statistics']
        assert stats['total_edep_eV'] == pytest.approx(35.0)
        assert stats['total_vacancies'] == 3.0

    def test_outside_deposits_are_ignored(self, tmp_path):
        sim = VacancySimulator(small_config(tmp_path, output_format='object'))
        results = sim.simulate_events([[((5 * nm, 5 * nm, 5 * nm), 20 * eV)]])
        assert results['statistics']['total_edep_eV'] == 0.0
        assert dict(results['summary'])['totalCreated'] == 0

    def test_nifti_export(self, tmp_path):
        sim = VacancySimulator(small_config(tmp_path, export_nifti=True))
        results = sim.simulate_events(EVENTS)
        assert (tmp_path / 'vacancy_count.nii.gz').exists()
        assert results['vacancy_count'].endswith('vacancy_count.nii.gz')

    def test_repeated_runs_are_reproducible(self, tmp_path):
        config = small_config(
            tmp_path, output_format='object', initial_concentration_cm3=2e22, random_seed=3
        )
        sim = VacancySimulator(config)
        first = sim.simulate_events(EVENTS)
        second = sim.simulate_events(EVENTS)
        assert first['vacancy_map'] == second['vacancy_map']
