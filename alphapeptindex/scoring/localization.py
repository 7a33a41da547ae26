"""Localization of an unexplained precursor mass difference.

For open or wide-window matches, the observed-minus-theoretical precursor
mass is placed on each residue in turn and the spectrum is rescored; the
score profile shows where the difference most plausibly sits.
"""

from typing import Sequence

import numpy as np

from ..config import Tolerance
from ..fragments.peptide import PeptideWithSetModifications
from ..search.fragment_matching import match_scan
from ..search.spectra import Ms2Scan


def localization_scores(
    peptide: PeptideWithSetModifications,
    scan: Ms2Scan,
    product_types: Sequence,
    tolerance: Tolerance,
) -> np.ndarray:
    """Match score with the mass difference placed on each residue.

    Parameters
    ----------
    peptide : PeptideWithSetModifications
        Matched peptide
    scan : Ms2Scan
        Matched spectrum; its precursor mass defines the difference
    product_types : sequence of ProductType
        Ion series to score
    tolerance : Tolerance
        Product mass tolerance

    Returns
    -------
    scores : np.ndarray (float64)
        ``scores[r]`` is the score with the difference on residue ``r``
        (0-based)

    Examples
    --------
    >>> scores = localization_scores(pep, scan, [ProductType.B, ProductType.Y], Tolerance(0.01))
    >>> best_residue = int(np.argmax(scores))
    """
    mass_delta = scan.precursor_mass - peptide.monoisotopic_mass
    scores = np.zeros(peptide.length, dtype=np.float64)
    for r in range(peptide.length):
        localized = peptide.localize(r, mass_delta)
        score, _ = match_scan(scan, localized.fast_sorted_product_masses(product_types), tolerance)
        scores[r] = score
    return scores
