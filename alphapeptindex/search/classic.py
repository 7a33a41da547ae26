"""Classic search: score every candidate peptide directly.

Proteins are partitioned across threads. Each partition enumerates its
modified peptides (with the same deduplication as the index builder) and,
for every peptide, visits only the scans whose precursor mass lies in one of
the search mode's allowed intervals (binary search over scans sorted by
precursor mass). Each visited scan is scored by a merge sweep; the best
peptide per scan is kept in a partition-local array, and partition arrays
are merged on the calling thread with the same replacement rule.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from ..config import SearchParameters
from ..database.protein import Protein
from ..modifications import Modification
from ..parallel import run_partitioned
from .fragment_matching import match_ions, tolerance_args
from .indexing import PeptideEnumerator
from .results import SpectrumMatch, should_replace
from .search_modes import SearchMode
from .spectra import Ms2Scan, sort_scans_by_precursor_mass

logger = logging.getLogger(__name__)


def _acceptable_scans(
    peptide_mass: float,
    search_mode: SearchMode,
    sorted_masses: np.ndarray,
):
    """(sorted position, notch) of every scan the search mode accepts."""
    if not search_mode.supports_intervals:
        for position, scan_mass in enumerate(sorted_masses):
            notch = search_mode.notch_for(float(scan_mass), peptide_mass)
            if notch >= 0:
                yield position, notch
        return

    n = len(sorted_masses)
    for interval in search_mode.allowed_intervals_from_theoretical_mass(peptide_mass):
        position = int(np.searchsorted(sorted_masses, interval.minimum, side='left'))
        while position < n and sorted_masses[position] <= interval.maximum:
            yield position, interval.notch
            position += 1


def classic_search(
    scans: Sequence[Ms2Scan],
    proteins: Sequence[Protein],
    parameters: SearchParameters,
    search_mode: SearchMode,
    fixed_modifications: Sequence[Modification] = (),
    variable_modifications: Sequence[Modification] = (),
    localizable_modifications: Sequence[Modification] = (),
) -> List[Optional[SpectrumMatch]]:
    """Best peptide per scan by direct scoring.

    Parameters
    ----------
    scans : sequence of Ms2Scan
        Spectra to search; MS1 scans and scans without a precursor mass
        are skipped
    proteins : sequence of Protein
        Database, targets and decoys
    parameters : SearchParameters
        Digestion, enumeration, product types, tolerance and threads
    search_mode : SearchMode
        Precursor acceptance
    fixed_modifications, variable_modifications, localizable_modifications : sequence of Modification
        Modification sets

    Returns
    -------
    matches : List[Optional[SpectrumMatch]]
        One slot per input scan (same order), None where nothing scored

    Raises
    ------
    ValueError
        If ``proteins`` is None or ``scans`` is empty
    """
    if proteins is None:
        raise ValueError("A protein database is required for classic search")
    if not scans:
        raise ValueError("No spectra to search")

    if parameters.max_peaks_per_scan is not None:
        scans = [scan.top_peaks(parameters.max_peaks_per_scan) for scan in scans]

    scan_order, sorted_masses = sort_scans_by_precursor_mass(scans)
    logger.info(
        f"Classic search: {len(scan_order):,} MS2 scans against {len(proteins):,} proteins "
        f"({search_mode.name})"
    )
    if not search_mode.supports_intervals:
        logger.info(f"  {search_mode.name} has no mass intervals, testing every scan")

    enumerator = PeptideEnumerator(
        parameters, fixed_modifications, variable_modifications, localizable_modifications
    )
    product_types = parameters.product_types
    tol_value, tol_is_ppm = tolerance_args(parameters.product_mass_tolerance)
    n_scans = len(scans)

    def search_partition(start: int, end: int) -> List[Optional[SpectrumMatch]]:
        local: List[Optional[SpectrumMatch]] = [None] * n_scans
        n_peptides = 0
        for protein in proteins[start:end]:
            for isoform in enumerator.isoforms(protein):
                n_peptides += 1
                peptide_mass = isoform.monoisotopic_mass
                candidates = list(_acceptable_scans(peptide_mass, search_mode, sorted_masses))
                if not candidates:
                    continue

                compact = enumerator.compact(isoform)
                theoretical = compact.sorted_product_masses(product_types)
                for position, notch in candidates:
                    scan_index = int(scan_order[position])
                    scan = scans[scan_index]
                    matched = np.zeros(len(theoretical), dtype=np.float64)
                    score = match_ions(
                        scan.mz,
                        scan.intensity,
                        scan.total_ion_current,
                        theoretical,
                        tol_value,
                        tol_is_ppm,
                        matched,
                    )
                    if score <= 1:
                        continue
                    precursor_mass = float(sorted_masses[position])
                    best = local[scan_index]
                    if best is None or should_replace(compact, score, best.peptide, best.score, precursor_mass):
                        local[scan_index] = SpectrumMatch(
                            scan_index=scan_index,
                            scan_number=scan.one_based_scan_number,
                            precursor_mass=precursor_mass,
                            precursor_charge=scan.precursor_charge,
                            retention_time=scan.retention_time,
                            peptide=compact,
                            score=score,
                            notch=notch,
                            search_mode=search_mode.name,
                            matched_ion_masses=matched,
                        )
        logger.debug(f"  Searched proteins {start:,}-{end:,}: {n_peptides:,} peptides")
        return local

    merged: List[Optional[SpectrumMatch]] = [None] * n_scans
    for local in run_partitioned(search_partition, len(proteins), parameters.n_threads):
        for i, candidate in enumerate(local):
            if candidate is None:
                continue
            best = merged[i]
            if best is None or should_replace(
                candidate.peptide, candidate.score, best.peptide, best.score, candidate.precursor_mass
            ):
                merged[i] = candidate

    n_matched = sum(1 for m in merged if m is not None)
    logger.info(f"✓ Classic search: {n_matched:,} scans matched")
    return merged
