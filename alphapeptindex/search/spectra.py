"""MS2 scans as consumed by the search engines.

Raw-file reading happens elsewhere; a scan only needs its precursor
selection (m/z, charge), MS order, retention time and an m/z-sorted peak
list. Precursor masses are neutral: ``(precursor_mz - PROTON_MASS) * charge``.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..constants import PROTON_MASS


@dataclass(frozen=True)
class Ms2Scan:
    """One fragmentation spectrum.

    Attributes
    ----------
    one_based_scan_number : int
        Scan number in the run
    mz : np.ndarray (float64)
        Peak m/z values, ascending (sorted on construction if needed)
    intensity : np.ndarray (float64)
        Peak intensities, parallel to ``mz``
    precursor_mz : float
        Selected monoisotopic precursor m/z (NaN if unknown)
    precursor_charge : int
        Selected precursor charge (0 if unknown)
    ms_order : int
        1 for survey scans, 2 for fragmentation scans
    retention_time : float
        Retention time (minutes)
    total_ion_current : float, optional
        Defaults to the summed peak intensity
    """

    one_based_scan_number: int
    mz: np.ndarray
    intensity: np.ndarray
    precursor_mz: float = math.nan
    precursor_charge: int = 0
    ms_order: int = 2
    retention_time: float = 0.0
    total_ion_current: Optional[float] = None

    def __post_init__(self):
        mz = np.asarray(self.mz, dtype=np.float64)
        intensity = np.asarray(self.intensity, dtype=np.float64)
        if mz.shape != intensity.shape or mz.ndim != 1:
            raise ValueError(
                f"Scan {self.one_based_scan_number}: m/z and intensity arrays must be 1-D "
                f"and of equal length"
            )
        if len(mz) > 1 and np.any(np.diff(mz) < 0):
            order = np.argsort(mz, kind='stable')
            mz = mz[order]
            intensity = intensity[order]
        mz.setflags(write=False)
        intensity.setflags(write=False)
        object.__setattr__(self, "mz", mz)
        object.__setattr__(self, "intensity", intensity)
        if self.total_ion_current is None:
            object.__setattr__(self, "total_ion_current", float(intensity.sum()))

    @property
    def n_peaks(self) -> int:
        return len(self.mz)

    @property
    def precursor_mass(self) -> float:
        """Neutral precursor mass; NaN when the selection is unknown."""
        if self.precursor_mz is None or not self.precursor_charge:
            return math.nan
        return (self.precursor_mz - PROTON_MASS) * abs(self.precursor_charge)

    # -------------------------------------------------------------------------
    # Peak queries
    # -------------------------------------------------------------------------

    def closest_peak_index(self, mz: float) -> Optional[int]:
        """Index of the peak nearest ``mz`` (None for an empty scan)."""
        n = len(self.mz)
        if n == 0:
            return None
        idx = int(np.searchsorted(self.mz, mz))
        if idx == 0:
            return 0
        if idx == n:
            return n - 1
        if mz - self.mz[idx - 1] <= self.mz[idx] - mz:
            return idx - 1
        return idx

    def peaks_in_range(self, min_mz: float, max_mz: float) -> Tuple[np.ndarray, np.ndarray]:
        """Peaks with ``min_mz <= mz <= max_mz`` (views, ascending m/z)."""
        start = np.searchsorted(self.mz, min_mz, side='left')
        end = np.searchsorted(self.mz, max_mz, side='right')
        return self.mz[start:end], self.intensity[start:end]

    def top_peaks(self, max_peaks: int) -> 'Ms2Scan':
        """Copy keeping only the most intense peaks, still sorted by m/z.

        Peaks at or above the intensity of the ``max_peaks``-th most intense
        peak are kept, so ties at the threshold may keep a few more. The
        total ion current of the full scan is retained.
        """
        if max_peaks < 1:
            raise ValueError(f"max_peaks must be >= 1: {max_peaks}")
        if self.n_peaks <= max_peaks:
            return self
        threshold = np.partition(self.intensity, self.n_peaks - max_peaks)[self.n_peaks - max_peaks]
        keep = self.intensity >= threshold
        return Ms2Scan(
            one_based_scan_number=self.one_based_scan_number,
            mz=self.mz[keep],
            intensity=self.intensity[keep],
            precursor_mz=self.precursor_mz,
            precursor_charge=self.precursor_charge,
            ms_order=self.ms_order,
            retention_time=self.retention_time,
            total_ion_current=self.total_ion_current,
        )


def sort_scans_by_precursor_mass(scans: Sequence[Ms2Scan]) -> Tuple[np.ndarray, np.ndarray]:
    """Searchable scans ordered by neutral precursor mass.

    MS1 scans and scans without a usable precursor mass are skipped.

    Returns
    -------
    scan_indices : np.ndarray (int64)
        Positions in ``scans``, ascending by precursor mass
    precursor_masses : np.ndarray (float64)
        Matching precursor masses, ascending
    """
    indices: List[int] = []
    masses: List[float] = []
    for i, scan in enumerate(scans):
        if scan.ms_order != 2:
            continue
        mass = scan.precursor_mass
        if math.isnan(mass):
            continue
        indices.append(i)
        masses.append(mass)

    scan_indices = np.array(indices, dtype=np.int64)
    precursor_masses = np.array(masses, dtype=np.float64)
    order = np.argsort(precursor_masses, kind='stable')
    return scan_indices[order], precursor_masses[order]
