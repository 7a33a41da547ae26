"""Modern (indexed) search: score spectra through the fragment index.

Scans are partitioned across threads. For each scan, every peak is looked
up in the fragment index and each peptide under a matching key earns
``1 + intensity / TIC``. Afterwards each search mode independently picks
its best accepted peptide among those scoring above 1, using the same
replacement rule as the classic engine. A scan is owned by exactly one
partition, so partition results are merged without contention.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..config import SearchParameters
from ..parallel import run_partitioned
from .fragment_matching import score_peaks_against_index, tolerance_args
from .indexing import FragmentIndex
from .results import SpectrumMatch, should_replace
from .search_modes import SearchMode
from .spectra import Ms2Scan, sort_scans_by_precursor_mass

logger = logging.getLogger(__name__)


def modern_search(
    scans: Sequence[Ms2Scan],
    index: FragmentIndex,
    search_modes: Sequence[SearchMode],
    parameters: SearchParameters,
) -> List[List[Optional[SpectrumMatch]]]:
    """Best peptide per (scan, search mode) from the fragment index.

    Parameters
    ----------
    scans : sequence of Ms2Scan
        Spectra to search; MS1 scans and scans without a precursor mass
        are skipped
    index : FragmentIndex
        Output of ``build_index``
    search_modes : sequence of SearchMode
        Precursor acceptors, each evaluated independently
    parameters : SearchParameters
        Product tolerance, peak cap and thread count

    Returns
    -------
    matches : List[List[Optional[SpectrumMatch]]]
        ``matches[j][i]`` is the best match of scan ``i`` under mode ``j``

    Raises
    ------
    ValueError
        If the index is None, ``scans`` is empty or no search mode is given
    """
    if index is None:
        raise ValueError("A fragment index is required for modern search")
    if not scans:
        raise ValueError("No spectra to search")
    if not search_modes:
        raise ValueError("At least one search mode is required")

    scan_order, sorted_masses = sort_scans_by_precursor_mass(scans)
    logger.info(
        f"Modern search: {len(scan_order):,} MS2 scans, {len(index):,} peptides, "
        f"{len(search_modes)} search modes"
    )

    tol_value, tol_is_ppm = tolerance_args(parameters.product_mass_tolerance)
    max_peaks = parameters.max_peaks_per_scan
    peptide_masses = index.peptide_masses
    n_modes = len(search_modes)

    def search_partition(start: int, end: int) -> Dict[int, List[Optional[SpectrumMatch]]]:
        local: Dict[int, List[Optional[SpectrumMatch]]] = {}
        peptide_scores = np.zeros(len(index), dtype=np.float64)
        for position in range(start, end):
            scan_index = int(scan_order[position])
            scan = scans[scan_index]
            if max_peaks is not None:
                scan = scan.top_peaks(max_peaks)
            precursor_mass = float(sorted_masses[position])

            peptide_scores[:] = 0.0
            score_peaks_against_index(
                scan.mz,
                scan.intensity,
                scan.total_ion_current,
                index.keys,
                index.offsets,
                index.peptide_indices,
                tol_value,
                tol_is_ppm,
                peptide_scores,
            )
            candidates = np.flatnonzero(peptide_scores > 1)
            if len(candidates) == 0:
                continue

            per_mode: List[Optional[SpectrumMatch]] = [None] * n_modes
            for j, mode in enumerate(search_modes):
                notches = mode.notches(precursor_mass, peptide_masses[candidates])
                best_index = -1
                best_score = 0.0
                best_notch = -1
                for candidate, notch in zip(candidates, notches):
                    if notch < 0:
                        continue
                    score = peptide_scores[candidate]
                    best_peptide = index.peptides[best_index] if best_index >= 0 else None
                    if should_replace(index.peptides[candidate], score, best_peptide, best_score, precursor_mass):
                        best_index = int(candidate)
                        best_score = float(score)
                        best_notch = int(notch)
                if best_index >= 0:
                    per_mode[j] = SpectrumMatch(
                        scan_index=scan_index,
                        scan_number=scan.one_based_scan_number,
                        precursor_mass=precursor_mass,
                        precursor_charge=scan.precursor_charge,
                        retention_time=scan.retention_time,
                        peptide=index.peptides[best_index],
                        score=best_score,
                        notch=best_notch,
                        search_mode=mode.name,
                        peptide_index=best_index,
                    )
            local[scan_index] = per_mode
        logger.debug(f"  Searched scans {start:,}-{end:,}")
        return local

    matches: List[List[Optional[SpectrumMatch]]] = [[None] * len(scans) for _ in search_modes]
    for local in run_partitioned(search_partition, len(scan_order), parameters.n_threads):
        for scan_index, per_mode in local.items():
            for j in range(n_modes):
                matches[j][scan_index] = per_mode[j]

    for mode, mode_matches in zip(search_modes, matches):
        n_matched = sum(1 for m in mode_matches if m is not None)
        logger.info(f"✓ {mode.name}: {n_matched:,} scans matched")
    return matches
