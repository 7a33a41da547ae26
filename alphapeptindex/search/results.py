"""Spectrum match records and the shared best-match replacement rule.

Both engines keep, per (scan, search mode), the single best accepted
peptide. A candidate replaces the incumbent when it scores higher by more
than ``SCORE_TIE_EPSILON``, or when the scores tie and the candidate ranks
lower under ``tie_break_rank``. Peptides of equal rank are ordered by
their content (``CompactPeptide.sort_key``); input order never matters.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..constants import SCORE_TIE_EPSILON, TIE_BREAK_MASS_WINDOW
from ..fragments.compact import CompactPeptide


@dataclass
class SpectrumMatch:
    """Best peptide for one scan under one search mode.

    Attributes
    ----------
    scan_index : int
        Position of the scan in the searched scan list
    scan_number : int
        One-based scan number
    precursor_mass : float
        Neutral precursor mass of the scan
    precursor_charge : int
        Precursor charge
    retention_time : float
        Scan retention time
    peptide : CompactPeptide
        Winning peptide
    score : float
        ``n_matched + matched_intensity / TIC``
    notch : int
        Search-mode notch that accepted the pair
    search_mode : str
        Name of the search mode
    peptide_index : int, optional
        Position in the fragment index (modern engine)
    matched_ion_masses : np.ndarray, optional
        Signed per-ion bookkeeping (classic engine)
    """

    scan_index: int
    scan_number: int
    precursor_mass: float
    precursor_charge: int
    retention_time: float
    peptide: CompactPeptide
    score: float
    notch: int
    search_mode: str
    peptide_index: Optional[int] = None
    matched_ion_masses: Optional[np.ndarray] = None

    @property
    def peptide_mass(self) -> float:
        return self.peptide.monoisotopic_mass

    @property
    def mass_difference(self) -> float:
        return self.precursor_mass - self.peptide.monoisotopic_mass

    @property
    def n_matched_ions(self) -> int:
        if self.matched_ion_masses is None:
            return int(self.score)
        return int(np.sum(self.matched_ion_masses > 0))


def tie_break_rank(peptide: CompactPeptide, precursor_mass: float) -> Tuple[int, int, int, int]:
    """Rank used between equal scores; lower is preferred.

    Peptides within ``TIE_BREAK_MASS_WINDOW`` Da of the precursor come
    first, then peptides without a variable modification in slot 1, slot 2
    and slot 3, in that order.
    """
    outside_window = abs(peptide.monoisotopic_mass - precursor_mass) > TIE_BREAK_MASS_WINDOW
    t1, t2, t3 = peptide.var_mod_types
    return (int(outside_window), int(t1 > 0), int(t2 > 0), int(t3 > 0))


def first_is_preferable_without_score(
    first: CompactPeptide,
    second: CompactPeptide,
    precursor_mass: float,
) -> bool:
    """True if ``first`` strictly precedes ``second`` on the tie-break.

    The rank decides first; equal ranks fall back to peptide content.
    """
    first_rank = tie_break_rank(first, precursor_mass)
    second_rank = tie_break_rank(second, precursor_mass)
    if first_rank != second_rank:
        return first_rank < second_rank
    return first.sort_key < second.sort_key


def should_replace(
    candidate: CompactPeptide,
    candidate_score: float,
    best: Optional[CompactPeptide],
    best_score: float,
    precursor_mass: float,
) -> bool:
    """Replacement rule for an accepted candidate.

    Parameters
    ----------
    candidate : CompactPeptide
        Accepted candidate peptide
    candidate_score : float
        Its score
    best : CompactPeptide or None
        Current best (None if there is none yet)
    best_score : float
        Current best score (ignored when ``best`` is None)
    precursor_mass : float
        Scan precursor mass, for the tie-break
    """
    if best is None:
        return True
    if candidate_score > best_score + SCORE_TIE_EPSILON:
        return True
    if abs(candidate_score - best_score) < SCORE_TIE_EPSILON:
        return first_is_preferable_without_score(candidate, best, precursor_mass)
    return False
