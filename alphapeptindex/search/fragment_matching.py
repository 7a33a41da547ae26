"""Ultra-fast fragment matching with Numba JIT.

Core kernels for peptide spectrum scoring:
1. Merge sweep of sorted theoretical masses against sorted peaks (classic)
2. Binary search of peak masses in the fragment index keys (modern)

Both score a spectrum as ``matched + matched_intensity / TIC``: one point
per matched ion plus the matched fraction of the total ion current.

Theoretical masses are neutral; peaks are singly protonated, so the classic
sweep compares ``mz`` against ``mass + PROTON_MASS`` and the index lookup
compares ``mz - PROTON_MASS`` against the index keys.

Performance targets:
- Merge sweep: O(n_peaks + n_ions) per peptide
- Index lookup: O(n_peaks * log n_keys) per spectrum
"""

from typing import Tuple

import numpy as np
import numba

from ..constants import PROTON_MASS
from ..config import Tolerance


# =============================================================================
# Tolerance (Numba side)
# =============================================================================

@numba.jit(nopython=True, nogil=True, cache=True)
def within_tolerance(
    experimental: float,
    theoretical: float,
    tol_value: float,
    tol_is_ppm: bool,
) -> bool:
    """Numba twin of ``Tolerance.within`` (ppm relative to theoretical)."""
    if tol_is_ppm:
        width = abs(theoretical) * tol_value / 1e6
    else:
        width = tol_value
    return abs(experimental - theoretical) <= width


def tolerance_args(tolerance: Tolerance) -> Tuple[float, bool]:
    """Unpack a ``Tolerance`` into kernel arguments."""
    return float(tolerance.value), tolerance.is_ppm


# =============================================================================
# Classic: Merge Sweep
# =============================================================================

@numba.jit(nopython=True, nogil=True, cache=True)
def match_ions(
    experimental_mz: np.ndarray,
    experimental_intensity: np.ndarray,
    total_ion_current: float,
    sorted_theoretical_masses: np.ndarray,
    tol_value: float,
    tol_is_ppm: bool,
    matched_ion_masses: np.ndarray,
) -> float:
    """Score one peptide against one spectrum by a merge sweep.

    Parameters
    ----------
    experimental_mz : np.ndarray (float64)
        Peak m/z values, ascending
    experimental_intensity : np.ndarray (float64)
        Peak intensities
    total_ion_current : float
        Normalizer for the intensity term (ignored if not positive)
    sorted_theoretical_masses : np.ndarray (float64)
        Neutral product masses, ascending
    tol_value, tol_is_ppm : float, bool
        Product mass tolerance
    matched_ion_masses : np.ndarray (float64)
        Output, same length as the theoretical masses. Receives ``+mass``
        for matched ions, ``-mass`` for ions passed over without a match;
        ions never reached are left untouched.

    Returns
    -------
    score : float
        ``n_matched + matched_intensity / total_ion_current``

    Notes
    -----
    Each theoretical ion matches at most one peak (the first in tolerance);
    after a match the same peak is compared again with the next ion.
    """
    n_theoretical = len(sorted_theoretical_masses)
    if n_theoretical == 0:
        return 0.0

    n_matched = 0
    matched_intensity = 0.0
    theoretical_index = 0
    next_mass = sorted_theoretical_masses[0]
    next_mz = next_mass + PROTON_MASS

    i = 0
    n_peaks = len(experimental_mz)
    while i < n_peaks:
        current_mz = experimental_mz[i]
        if within_tolerance(current_mz, next_mz, tol_value, tol_is_ppm):
            n_matched += 1
            matched_intensity += experimental_intensity[i]
            matched_ion_masses[theoretical_index] = next_mass
        elif current_mz < next_mz:
            i += 1
            continue
        else:
            matched_ion_masses[theoretical_index] = -next_mass

        # Passed a theoretical ion: advance it and re-check this peak
        theoretical_index += 1
        if theoretical_index == n_theoretical:
            break
        next_mass = sorted_theoretical_masses[theoretical_index]
        next_mz = next_mass + PROTON_MASS

    if total_ion_current > 0:
        return n_matched + matched_intensity / total_ion_current
    return float(n_matched)


def match_scan(scan, sorted_theoretical_masses: np.ndarray, tolerance: Tolerance) -> Tuple[float, np.ndarray]:
    """Python convenience around ``match_ions`` for one ``Ms2Scan``.

    Returns
    -------
    score : float
        Match score
    matched_ion_masses : np.ndarray
        Signed per-ion bookkeeping (see ``match_ions``)
    """
    matched = np.zeros(len(sorted_theoretical_masses), dtype=np.float64)
    tol_value, tol_is_ppm = tolerance_args(tolerance)
    score = match_ions(
        scan.mz,
        scan.intensity,
        scan.total_ion_current,
        np.asarray(sorted_theoretical_masses, dtype=np.float64),
        tol_value,
        tol_is_ppm,
        matched,
    )
    return score, matched


# =============================================================================
# Modern: Fragment Index Lookup
# =============================================================================

@numba.jit(nopython=True, nogil=True, cache=True)
def score_peaks_against_index(
    experimental_mz: np.ndarray,
    experimental_intensity: np.ndarray,
    total_ion_current: float,
    keys: np.ndarray,
    offsets: np.ndarray,
    peptide_indices: np.ndarray,
    tol_value: float,
    tol_is_ppm: bool,
    peptide_scores: np.ndarray,
):
    """Accumulate per-peptide scores for one spectrum from the index.

    Parameters
    ----------
    experimental_mz, experimental_intensity : np.ndarray (float64)
        Peaks of the spectrum
    total_ion_current : float
        Normalizer for the intensity term (ignored if not positive)
    keys : np.ndarray (float64)
        Ascending distinct fragment masses
    offsets : np.ndarray (int64)
        CSR offsets, bucket ``k`` is ``peptide_indices[offsets[k]:offsets[k+1]]``
    peptide_indices : np.ndarray (int32)
        Concatenated buckets
    tol_value, tol_is_ppm : float, bool
        Product mass tolerance (ppm relative to the key mass)
    peptide_scores : np.ndarray (float64)
        Output, one slot per indexed peptide; incremented in place by
        ``1 + intensity / TIC`` for every key within tolerance of a peak

    Notes
    -----
    For each peak the search starts at the insertion point of the peak mass
    and walks down and then up while keys stay within tolerance.
    """
    n_keys = len(keys)
    if n_keys == 0:
        return

    for p in range(len(experimental_mz)):
        if total_ion_current > 0:
            add = 1.0 + experimental_intensity[p] / total_ion_current
        else:
            add = 1.0
        peak_mass = experimental_mz[p] - PROTON_MASS
        ipos = np.searchsorted(keys, peak_mass)

        # Try down
        k = ipos - 1
        while k >= 0:
            if not within_tolerance(peak_mass, keys[k], tol_value, tol_is_ppm):
                break
            for j in range(offsets[k], offsets[k + 1]):
                peptide_scores[peptide_indices[j]] += add
            k -= 1

        # Try here and up
        k = ipos
        while k < n_keys:
            if not within_tolerance(peak_mass, keys[k], tol_value, tol_is_ppm):
                break
            for j in range(offsets[k], offsets[k + 1]):
                peptide_scores[peptide_indices[j]] += add
            k += 1
