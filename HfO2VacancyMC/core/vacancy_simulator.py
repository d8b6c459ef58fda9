"""Event and run orchestration of the vacancy simulation."""

from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from .film_geometry import FilmGeometry
from .voxel_grid import VoxelGrid
from .vacancy_model import VacancyModel
from .defect_synthesis import DefectSynthesis
from .data_models import RunSnapshot
from ..utils.config import SimulationConfig
from ..utils.logging import setup_logger
from ..utils.validation import validate_config


class VacancySimulator:
    """Receives transport-engine callbacks and drives grid and vacancy model.

    The transport engine calls begin_run/end_run around a run,
    begin_event/end_event around each event, and add_edep (or score_step)
    for every energy deposit in between. One simulator serves one event
    stream; parallel workers each own a simulator and are merged at run end
    through DefectSynthesis.

    Attributes:
        config: Simulation configuration
        film: Film geometry providing the grid bounds
        grid: Spatial energy accumulator
        model: Vacancy evolution model
        events_processed: Events completed in the current run
        logger: Logger instance
    """

    def __init__(self, config: SimulationConfig):
        """Initialize VacancySimulator and configure grid and model.

        Args:
            config: Simulation configuration

        Raises:
            InvalidConfigurationError: If the configuration is invalid
            InvalidGridError: If the grid bounds and pitch give no voxels
        """
        validate_config(config)
        self.config = config

        # Set up logging
        log_file = None
        if config.output_format == 'file' and config.output_path:
            log_dir = Path(config.output_path)
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file = str(log_dir / 'simulation.log')

        self.logger = setup_logger(log_file=log_file)
        self.logger.info("VacancySimulator initialized")

        self.film = FilmGeometry.from_config(config)
        min_corner, max_corner = self.film.grid_bounds()

        self.grid = VoxelGrid(device=config.device)
        self.grid.configure(min_corner, max_corner, *self.film.voxel_size())

        self.model = VacancyModel(config.to_parameters(), device=config.device)
        self.model.configure_from_grid(self.grid)

        self.events_processed = 0

    def begin_run(self) -> None:
        """Reset run accumulators and redraw the initial vacancy state."""
        self.grid.reset_run_accumulators()
        self.grid.reset_event_accumulators()
        self.model.reset_and_init()
        self.events_processed = 0
        self.logger.info("Run started")

    def begin_event(self) -> None:
        self.grid.reset_event_accumulators()

    def add_edep(self, position, energy: float) -> None:
        """Score one energy deposit (internal units)."""
        self.grid.add_edep(position, energy)

    def add_edep_batch(self, positions, energies) -> int:
        """Score a batch of energy deposits (internal units)."""
        return self.grid.add_edep_batch(positions, energies)

    def score_step(self, pre_position, post_position, energy: float) -> None:
        """Score a transport step's deposit at the step mid-point.

        Args:
            pre_position: Pre-step point (x, y, z)
            post_position: Post-step point (x, y, z)
            energy: Energy deposited along the step
        """
        if energy <= 0.0:
            return
        midpoint = tuple(0.5 * (float(a) + float(b)) for a, b in zip(pre_position, post_position))
        self.grid.add_edep(midpoint, energy)

    def end_event(self) -> int:
        """Apply the finished event to the vacancy state.

        Returns:
            Number of vacancies created by the event
        """
        created = self.model.process_event(self.grid)
        self.events_processed += 1
        return created

    def snapshot(self, n_primaries: Optional[int] = None) -> RunSnapshot:
        """Terminal state of the current run.

        Args:
            n_primaries: Primaries processed (events processed if None)
        """
        if n_primaries is None:
            n_primaries = self.events_processed
        return self.model.snapshot(n_primaries)

    def end_run(self, n_primaries: Optional[int] = None) -> Dict:
        """Export the run's tables.

        Args:
            n_primaries: Primaries processed (events processed if None)

        Returns:
            Export results with a 'statistics' entry added
        """
        snapshot = self.snapshot(n_primaries)

        self.logger.info(
            f"Run finished: primaries={snapshot.n_primaries}, "
            f"seedCapturedElectrons={snapshot.seed_captured_electrons}, "
            f"totalCreated={snapshot.total_created}"
        )

        synthesis = DefectSynthesis()
        synthesis.accumulate_worker(snapshot)
        results = synthesis.export_results(
            snapshot,
            output_format=self.config.output_format,
            output_path=self.config.output_path,
            export_nifti=self.config.export_nifti
        )
        results['statistics'] = synthesis.get_defect_statistics(snapshot)
        return results

    def simulate_events(
        self,
        events: Iterable[Iterable[Tuple[Tuple[float, float, float], float]]],
        n_primaries: Optional[int] = None
    ) -> Dict:
        """Run a complete run over pre-recorded events.

        Args:
            events: Iterable of events, each an iterable of (position, energy)
            n_primaries: Primaries processed (events processed if None)

        Returns:
            Export results of end_run
        """
        self.begin_run()
        for event in events:
            self.begin_event()
            for position, energy in event:
                self.add_edep(position, energy)
            self.end_event()

            if self.events_processed % 1000 == 0:
                self.logger.debug(f"Processed {self.events_processed} events")

        return self.end_run(n_primaries)
