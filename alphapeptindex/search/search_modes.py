"""Precursor mass-difference acceptors ("search modes").

A search mode decides whether an observed precursor mass and a theoretical
peptide mass belong together, and reports which *notch* (offset or interval
index) accepted the pair. Interval-capable modes also produce the allowed
precursor mass windows for a peptide mass and, inversely, the allowed
peptide mass windows for an observed precursor mass. Engines use these
windows to prune candidates by binary search.

Variants:
- ``DotSearchMode``: fixed offsets (isotope errors, adducts) with a tolerance
- ``IntervalSearchMode``: explicit mass-difference ranges
- ``FunctionSearchMode``: arbitrary predicate, no interval support
- ``OpenSearchMode``: accepts everything

Examples
--------
>>> mode = single_ppm_around_zero(5)
>>> mode.accepts(1000.004, 1000.0)
True
>>> mode.allowed_intervals_from_theoretical_mass(1000.0)
[AllowedInterval(minimum=999.995, maximum=1000.005, notch=0)]
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

import numpy as np

from ..config import Tolerance

REJECTED = -1


@dataclass(frozen=True)
class AllowedInterval:
    """Closed mass interval tagged with the notch that produces it."""

    minimum: float
    maximum: float
    notch: int = 0

    def contains(self, mass: float) -> bool:
        return self.minimum <= mass <= self.maximum


class SearchMode(ABC):
    """Base class for mass-difference acceptors."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def notch_for(self, scan_mass: float, peptide_mass: float) -> int:
        """Accepting notch (>= 0), or ``REJECTED``."""

    def accepts(self, scan_mass: float, peptide_mass: float) -> bool:
        return self.notch_for(scan_mass, peptide_mass) >= 0

    def notches(self, scan_mass: float, peptide_masses: np.ndarray) -> np.ndarray:
        """``notch_for`` over an array of peptide masses."""
        return np.array(
            [self.notch_for(scan_mass, float(m)) for m in peptide_masses],
            dtype=np.int64,
        )

    @property
    def supports_intervals(self) -> bool:
        return True

    @abstractmethod
    def allowed_intervals_from_theoretical_mass(self, peptide_mass: float) -> List[AllowedInterval]:
        """Precursor mass windows accepted for a peptide mass."""

    @abstractmethod
    def allowed_intervals_from_observed_mass(self, scan_mass: float) -> List[AllowedInterval]:
        """Peptide mass windows accepted for an observed precursor mass."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class DotSearchMode(SearchMode):
    """Accept when ``scan - offset`` is within tolerance of the peptide mass.

    Parameters
    ----------
    name : str
        Mode name, reported on matches
    offsets : sequence of float
        Accepted mass differences (Da); the notch is the offset index
    tolerance : Tolerance
        Window around each offset; ppm is relative to the peptide mass
    """

    def __init__(self, name: str, offsets: Sequence[float], tolerance: Tolerance):
        super().__init__(name)
        if len(offsets) == 0:
            raise ValueError(f"Search mode {name}: at least one offset is required")
        self.offsets = tuple(float(o) for o in offsets)
        self.tolerance = tolerance

    def notch_for(self, scan_mass: float, peptide_mass: float) -> int:
        for notch, offset in enumerate(self.offsets):
            if self.tolerance.within(scan_mass - offset, peptide_mass):
                return notch
        return REJECTED

    def notches(self, scan_mass: float, peptide_masses: np.ndarray) -> np.ndarray:
        peptide_masses = np.asarray(peptide_masses, dtype=np.float64)
        result = np.full(len(peptide_masses), REJECTED, dtype=np.int64)
        if self.tolerance.is_ppm:
            widths = np.abs(peptide_masses) * self.tolerance.value / 1e6
        else:
            widths = np.full(len(peptide_masses), self.tolerance.value)
        for notch, offset in enumerate(self.offsets):
            accepted = (np.abs(scan_mass - offset - peptide_masses) <= widths) & (result == REJECTED)
            result[accepted] = notch
        return result

    def allowed_intervals_from_theoretical_mass(self, peptide_mass: float) -> List[AllowedInterval]:
        width = self.tolerance.width(peptide_mass)
        return [
            AllowedInterval(peptide_mass + offset - width, peptide_mass + offset + width, notch)
            for notch, offset in enumerate(self.offsets)
        ]

    def allowed_intervals_from_observed_mass(self, scan_mass: float) -> List[AllowedInterval]:
        intervals = []
        for notch, offset in enumerate(self.offsets):
            target = scan_mass - offset
            if self.tolerance.is_ppm:
                ratio = self.tolerance.value / 1e6
                low = target / (1 + ratio)
                high = target / (1 - ratio) if ratio < 1 else math.inf
                intervals.append(AllowedInterval(min(low, high), max(low, high), notch))
            else:
                width = self.tolerance.value
                intervals.append(AllowedInterval(target - width, target + width, notch))
        return intervals


class IntervalSearchMode(SearchMode):
    """Accept when ``scan - peptide`` falls in one of the given ranges.

    The notch is the index of the first containing range.
    """

    def __init__(self, name: str, intervals: Sequence[Tuple[float, float]]):
        super().__init__(name)
        if len(intervals) == 0:
            raise ValueError(f"Search mode {name}: at least one interval is required")
        checked = []
        for low, high in intervals:
            if low > high:
                raise ValueError(f"Search mode {name}: interval ({low}, {high}) is reversed")
            checked.append((float(low), float(high)))
        self.intervals = tuple(checked)

    def notch_for(self, scan_mass: float, peptide_mass: float) -> int:
        difference = scan_mass - peptide_mass
        for notch, (low, high) in enumerate(self.intervals):
            if low <= difference <= high:
                return notch
        return REJECTED

    def notches(self, scan_mass: float, peptide_masses: np.ndarray) -> np.ndarray:
        differences = scan_mass - np.asarray(peptide_masses, dtype=np.float64)
        result = np.full(len(differences), REJECTED, dtype=np.int64)
        for notch, (low, high) in enumerate(self.intervals):
            accepted = (differences >= low) & (differences <= high) & (result == REJECTED)
            result[accepted] = notch
        return result

    def allowed_intervals_from_theoretical_mass(self, peptide_mass: float) -> List[AllowedInterval]:
        return [
            AllowedInterval(peptide_mass + low, peptide_mass + high, notch)
            for notch, (low, high) in enumerate(self.intervals)
        ]

    def allowed_intervals_from_observed_mass(self, scan_mass: float) -> List[AllowedInterval]:
        return [
            AllowedInterval(scan_mass - high, scan_mass - low, notch)
            for notch, (low, high) in enumerate(self.intervals)
        ]


class FunctionSearchMode(SearchMode):
    """Accept when ``predicate(scan_mass - peptide_mass)`` is true.

    Interval generation is not available; engines fall back to testing
    every candidate pair.
    """

    def __init__(self, name: str, predicate: Callable[[float], bool]):
        super().__init__(name)
        self.predicate = predicate

    def notch_for(self, scan_mass: float, peptide_mass: float) -> int:
        return 0 if self.predicate(scan_mass - peptide_mass) else REJECTED

    @property
    def supports_intervals(self) -> bool:
        return False

    def allowed_intervals_from_theoretical_mass(self, peptide_mass: float) -> List[AllowedInterval]:
        raise NotImplementedError(f"Search mode {self.name} cannot generate mass intervals")

    def allowed_intervals_from_observed_mass(self, scan_mass: float) -> List[AllowedInterval]:
        raise NotImplementedError(f"Search mode {self.name} cannot generate mass intervals")


class OpenSearchMode(SearchMode):
    """Accept every pair (notch 0)."""

    def __init__(self, name: str = "OpenSearch"):
        super().__init__(name)

    def notch_for(self, scan_mass: float, peptide_mass: float) -> int:
        return 0

    def notches(self, scan_mass: float, peptide_masses: np.ndarray) -> np.ndarray:
        return np.zeros(len(peptide_masses), dtype=np.int64)

    def allowed_intervals_from_theoretical_mass(self, peptide_mass: float) -> List[AllowedInterval]:
        return [AllowedInterval(-math.inf, math.inf, 0)]

    def allowed_intervals_from_observed_mass(self, scan_mass: float) -> List[AllowedInterval]:
        return [AllowedInterval(-math.inf, math.inf, 0)]


# =============================================================================
# Factories
# =============================================================================

def single_ppm_around_zero(ppm: float) -> DotSearchMode:
    """Standard narrow-window mode: one zero offset, ±ppm."""
    return DotSearchMode(f"{ppm:g}ppmAroundZero", [0.0], Tolerance.from_ppm(ppm))


def single_absolute_around_zero(da: float) -> DotSearchMode:
    """One zero offset, ±da."""
    return DotSearchMode(f"{da:g}daltonsAroundZero", [0.0], Tolerance.from_absolute(da))
