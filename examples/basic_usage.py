"""
Basic usage example for the HfO2 vacancy simulation.

This example demonstrates how to:
1. Configure a film and scoring grid
2. Drive the simulator with per-step callbacks, as a transport engine would
3. Run pre-recorded events and merge independent workers
"""

import torch
from pathlib import Path

from HfO2VacancyMC import VacancySimulator, SimulationConfig
from HfO2VacancyMC.core import DefectSynthesis
from HfO2VacancyMC.physics.constants import nm, eV
from HfO2VacancyMC.utils import setup_logger


def synthetic_track(generator: torch.Generator, n_steps: int = 40, step_nm: float = 0.5):
    """Random-walk track entering the film near the pad centre from the top.

    Args:
        generator: Torch random generator
        n_steps: Number of transport steps
        step_nm: Step length in nm

    Returns:
        List of (pre_position, post_position, energy) in internal units
    """
    position = torch.tensor([0.0, 0.0, -0.1 * nm], dtype=torch.float64)
    position[:2] += (torch.rand(2, generator=generator, dtype=torch.float64) - 0.5) * 100 * nm

    steps = []
    for _ in range(n_steps):
        direction = torch.randn(3, generator=generator, dtype=torch.float64)
        direction[2] = -abs(direction[2])  # into the film
        direction /= torch.linalg.norm(direction)

        post = position + direction * step_nm * nm
        energy = float(torch.rand(1, generator=generator, dtype=torch.float64)) * 20 * eV
        steps.append((position.tolist(), post.tolist(), energy))
        position = post
    return steps


def example_callbacks(output_dir: str = './results/callbacks'):
    """Drive the simulator step by step."""
    print("\n=== Example 1: Transport callbacks ===\n")

    config = SimulationConfig(
        hfo2_thickness_nm=10.0,
        pad_size_um=0.5,
        voxel_dx_nm=5.0,
        voxel_dy_nm=5.0,
        voxel_dz_nm=1.0,
        output_format='file',
        output_path=output_dir,
        export_nifti=True
    )
    sim = VacancySimulator(config)
    generator = torch.Generator().manual_seed(2024)

    sim.begin_run()
    for _ in range(200):
        sim.begin_event()
        for pre, post, energy in synthetic_track(generator):
            sim.score_step(pre, post, energy)
        sim.end_event()
    results = sim.end_run()

    stats = results['statistics']
    print(f"Grid dimensions: {sim.grid.dimensions}")
    print(f"Seed voxel: {tuple(sim.grid.seed_index)}")
    print(f"Seed captured electrons: {sim.model.seed_captured_electrons}")
    print(f"Vacancies created: {int(stats['total_created'])} "
          f"({stats['created_per_primary']:.3f} per primary)")
    print(f"Total energy deposited: {stats['total_edep_eV']:.1f} eV")
    print(f"\nOutputs:")
    for key in ('edep', 'vacancy_map', 'summary', 'vacancy_count'):
        print(f"  {key}: {results[key]}")

    return results


def example_workers():
    """Run two independent workers and merge them at run end."""
    print("\n=== Example 2: Worker reduction ===\n")

    synthesis = DefectSynthesis()
    for worker_id in range(2):
        config = SimulationConfig(
            hfo2_thickness_nm=10.0,
            pad_size_um=0.5,
            voxel_dx_nm=5.0,
            voxel_dy_nm=5.0,
            voxel_dz_nm=1.0,
            output_format='object',
            output_path=None
        )
        sim = VacancySimulator(config)
        generator = torch.Generator().manual_seed(100 + worker_id)

        events = []
        for _ in range(100):
            # Deposits at step mid-points
            events.append([
                (tuple(0.5 * (a + b) for a, b in zip(pre, post)), energy)
                for pre, post, energy in synthetic_track(generator)
            ])

        sim.begin_run()
        for event in events:
            sim.begin_event()
            for position, energy in event:
                sim.add_edep(position, energy)
            sim.end_event()

        synthesis.accumulate_worker(sim.snapshot())
        print(f"Worker {worker_id}: created {sim.model.total_created} vacancies")

    merged = synthesis.merged_snapshot()
    summary = dict(DefectSynthesis.summary_rows(merged))
    print(f"\nMerged: totalCreated={summary['totalCreated']}, "
          f"nPrimaries={summary['nPrimaries']}, "
          f"seedCapturedElectrons={summary['seedCapturedElectrons']}")

    return merged


def example_configuration(config_path: str = './results/config.yaml'):
    """Example of configuration management."""
    print("\n=== Example 3: Configuration ===\n")

    config = SimulationConfig(
        hfo2_thickness_nm=5.0,
        W_eV=12.0,
        Ea_fast_eV=1.1,
        fast_only_near_seed=False,
        output_path='./results/'
    )

    config.to_yaml(config_path)
    print(f"Configuration saved to: {config_path}")

    loaded_config = SimulationConfig.from_yaml(config_path)
    print(f"Configuration loaded from YAML (W_eV={loaded_config.W_eV})")

    return loaded_config


if __name__ == '__main__':
    print("HfO2 Oxygen-Vacancy Simulation - Basic Usage Examples")
    print("=" * 60)

    setup_logger(level=20)  # INFO level
    Path('./results').mkdir(parents=True, exist_ok=True)

    try:
        example_callbacks()
        example_workers()
        example_configuration()

        print("\n" + "=" * 60)
        print("Examples completed successfully!")
    except KeyboardInterrupt:
        print("\n\nExamples interrupted by user")
