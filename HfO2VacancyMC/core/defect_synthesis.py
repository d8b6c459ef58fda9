"""Run-end reduction, statistics and export of vacancy results."""

import csv
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Union
import torch
import numpy as np
import nibabel as nib

from .data_models import RunSnapshot
from ..utils.logging import get_logger
from ..utils.path_utils import validate_output_dir


logger = get_logger()

EDEP_FILENAME = 'hfO2_edep_voxels.csv'
VACANCY_MAP_FILENAME = 'hfO2_vacancy_map.csv'
SUMMARY_FILENAME = 'hfO2_vacancy_summary.csv'

EDEP_HEADER = ['ix', 'iy', 'iz', 'edepRun_eV', 'seed']
VACANCY_MAP_HEADER = ['ix', 'iy', 'iz', 'vacancyCount', 'Ebank_eV', 'edepRun_eV', 'seed']
SUMMARY_HEADER = ['key', 'value']


class DefectSynthesis:
    """Combines worker run snapshots and exports run-end tables.

    Each worker runs its own grid and vacancy model over its own event
    stream. Workers are merged only at run end: per-voxel counts, banks and
    run energies, created vacancies and primaries are summed, and the seed
    charge state is reduced by maximum. The merge is order-independent.

    Attributes:
        worker_snapshots: Snapshots accumulated so far
    """

    def __init__(self):
        """Initialize DefectSynthesis."""
        self.worker_snapshots: List[RunSnapshot] = []

    def accumulate_worker(self, snapshot: RunSnapshot) -> None:
        """Add one worker's terminal run state.

        Args:
            snapshot: Worker run snapshot

        Raises:
            ValueError: If the snapshot's grid differs from earlier ones
        """
        if self.worker_snapshots:
            reference = self.worker_snapshots[0]
            if snapshot.geometry != reference.geometry:
                raise ValueError(
                    f"Worker grid {snapshot.geometry.dimensions} does not match "
                    f"{reference.geometry.dimensions}"
                )
        self.worker_snapshots.append(snapshot)
        logger.debug(f"Accumulated worker {len(self.worker_snapshots)}")

    def merged_snapshot(self) -> RunSnapshot:
        """Reduce all accumulated workers into one snapshot.

        Returns:
            Merged RunSnapshot

        Raises:
            ValueError: If no worker has been accumulated
        """
        if not self.worker_snapshots:
            raise ValueError("No worker snapshots accumulated")

        first = self.worker_snapshots[0]
        if len(self.worker_snapshots) == 1:
            return first

        merged = replace(
            first,
            edep_run_eV=torch.stack([s.edep_run_eV for s in self.worker_snapshots]).sum(dim=0),
            vacancy_count=torch.stack([s.vacancy_count for s in self.worker_snapshots]).sum(dim=0),
            energy_bank_eV=torch.stack([s.energy_bank_eV for s in self.worker_snapshots]).sum(dim=0),
            seed_captured_electrons=max(s.seed_captured_electrons for s in self.worker_snapshots),
            total_created=sum(s.total_created for s in self.worker_snapshots),
            n_primaries=sum(s.n_primaries for s in self.worker_snapshots),
            num_workers=sum(s.num_workers for s in self.worker_snapshots)
        )

        logger.info(
            f"Merged {len(self.worker_snapshots)} workers: "
            f"totalCreated={merged.total_created}, nPrimaries={merged.n_primaries}"
        )
        return merged

    @staticmethod
    def edep_rows(snapshot: RunSnapshot) -> List[list]:
        """Energy-deposition table rows in flat order."""
        ix, iy, iz = snapshot.geometry.index_arrays()
        edep = snapshot.edep_run_eV.cpu().numpy()
        seed = DefectSynthesis._seed_flags(snapshot)
        return [
            [int(a), int(b), int(c), float(e), int(s)]
            for a, b, c, e, s in zip(ix, iy, iz, edep, seed)
        ]

    @staticmethod
    def vacancy_map_rows(snapshot: RunSnapshot) -> List[list]:
        """Vacancy map table rows in flat order."""
        ix, iy, iz = snapshot.geometry.index_arrays()
        count = snapshot.vacancy_count.cpu().numpy()
        bank = snapshot.energy_bank_eV.cpu().numpy()
        edep = snapshot.edep_run_eV.cpu().numpy()
        seed = DefectSynthesis._seed_flags(snapshot)
        return [
            [int(a), int(b), int(c), int(n), float(e_b), float(e_r), int(s)]
            for a, b, c, n, e_b, e_r, s in zip(ix, iy, iz, count, bank, edep, seed)
        ]

    @staticmethod
    def summary_rows(snapshot: RunSnapshot) -> List[list]:
        """Key/value summary rows."""
        p = snapshot.parameters
        return [
            ['initConc_cm3', p.initial_concentration_cm3],
            ['initConcClamped_cm3', snapshot.initial_concentration_clamped_cm3],
            ['rho_g_cm3', p.density_g_cm3],
            ['molarMass_g_mol', p.molar_mass_g_mol],
            ['capacityPerVoxel', snapshot.capacity_per_voxel],
            ['W_eV', p.W_eV],
            ['Ea_base_eV', p.Ea_base_eV],
            ['Ea_fast_eV', p.Ea_fast_eV],
            ['fastOnlyNearSeed', int(p.fast_only_near_seed)],
            ['initSeed', p.random_seed],
            ['seedCapturedElectrons', snapshot.seed_captured_electrons],
            ['totalCreated', snapshot.total_created],
            ['nPrimaries', snapshot.n_primaries],
            ['createdPerPrimary', snapshot.created_per_primary],
            ['numWorkers', snapshot.num_workers],
        ]

    @staticmethod
    def _seed_flags(snapshot: RunSnapshot) -> np.ndarray:
        seed = np.zeros(snapshot.geometry.num_voxels, dtype=np.int64)
        seed[snapshot.geometry.seed_flat] = 1
        return seed

    def export_results(
        self,
        snapshot: Optional[RunSnapshot] = None,
        output_format: str = 'file',
        output_path: Optional[str] = None,
        export_nifti: bool = False
    ) -> Union[Dict[str, str], Dict[str, object]]:
        """Export the run tables and, optionally, voxel volumes.

        Args:
            snapshot: Snapshot to export (the merged workers if None)
            output_format: 'file' or 'object'
            output_path: Output directory (required for 'file' format)
            export_nifti: Also produce NIfTI volumes

        Returns:
            Dictionary of file paths (file format) or row lists and nibabel
            images (object format)

        Raises:
            ValueError: If output_path is missing for file format
            PathValidationError: If the output directory cannot be created
            OSError: If a file cannot be written
        """
        if snapshot is None:
            snapshot = self.merged_snapshot()

        logger.info(f"Exporting results in {output_format} format...")

        tables = {
            'edep': (EDEP_FILENAME, EDEP_HEADER, self.edep_rows(snapshot)),
            'vacancy_map': (VACANCY_MAP_FILENAME, VACANCY_MAP_HEADER, self.vacancy_map_rows(snapshot)),
            'summary': (SUMMARY_FILENAME, SUMMARY_HEADER, self.summary_rows(snapshot)),
        }
        volumes = self.create_volumes(snapshot) if export_nifti else {}

        if output_format == 'file':
            if not output_path:
                raise ValueError("output_path required for file format")

            output_dir = validate_output_dir(output_path)

            results = {}
            for key, (filename, header, rows) in tables.items():
                path = output_dir / filename
                self._write_csv(path, header, rows)
                results[key] = str(path)
                logger.info(f"Saved {key} table: {path}")

            for key, img in volumes.items():
                path = output_dir / f'{key}.nii.gz'
                nib.save(img, str(path))
                results[key] = str(path)
                logger.info(f"Saved {key} volume: {path}")

            return results

        else:  # object format
            results = {key: rows for key, (_, _, rows) in tables.items()}
            results.update(volumes)
            logger.info("Results returned as in-memory tables")
            return results

    @staticmethod
    def _write_csv(path: Path, header: List[str], rows: List[list]) -> None:
        with open(path, 'w', newline='', encoding='utf-8') as csvfile:
            writer = csv.writer(csvfile)
            writer.writerow(header)
            writer.writerows(rows)

    @staticmethod
    def create_volumes(snapshot: RunSnapshot) -> Dict[str, nib.Nifti1Image]:
        """Per-voxel maps as NIfTI images in mm coordinates."""
        shape = snapshot.geometry.dimensions
        affine = snapshot.geometry.affine_matrix()

        return {
            'edep_run_eV': nib.Nifti1Image(
                snapshot.edep_run_eV.cpu().numpy().reshape(shape).astype(np.float32), affine
            ),
            'vacancy_count': nib.Nifti1Image(
                snapshot.vacancy_count.cpu().numpy().reshape(shape).astype(np.int32), affine
            ),
            'energy_bank_eV': nib.Nifti1Image(
                snapshot.energy_bank_eV.cpu().numpy().reshape(shape).astype(np.float32), affine
            ),
        }

    @staticmethod
    def get_defect_statistics(snapshot: RunSnapshot) -> Dict[str, float]:
        """Summary statistics of the run's energy and vacancy maps.

        Returns:
            Dictionary of statistics as plain floats
        """
        edep = snapshot.edep_run_eV.cpu().numpy()
        count = snapshot.vacancy_count.cpu().numpy()
        bank = snapshot.energy_bank_eV.cpu().numpy()

        nonzero_mask = edep > 0
        occupied_mask = count > 0

        return {
            'total_edep_eV': float(np.sum(edep)),
            'mean_edep_eV': float(np.mean(edep[nonzero_mask])) if np.any(nonzero_mask) else 0.0,
            'max_edep_eV': float(np.max(edep)),
            'touched_voxels': float(np.sum(nonzero_mask)),
            'total_vacancies': float(np.sum(count)),
            'occupied_voxels': float(np.sum(occupied_mask)),
            'max_vacancy_count': float(np.max(count)),
            'mean_energy_bank_eV': float(np.mean(bank)),
            'total_created': float(snapshot.total_created),
            'created_per_primary': float(snapshot.created_per_primary)
        }
