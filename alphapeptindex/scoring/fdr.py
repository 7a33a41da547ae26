"""FDR calculation using the target-decoy approach (NumPy/Numba).

Matches sorted by descending score are annotated with running target and
decoy counts and a q-value:

1. Forward pass: ``q_raw = decoys / (targets + decoys)`` at each rank
2. Backward pass: walking from the worst match up, any raw value above
   the running minimum is clamped to it, otherwise it becomes the new
   minimum

The result never decreases as the score gets worse. Prefixes without any
match have no q-value; since every rank adds one match the denominator is
never zero, and a list without decoys gets q = 0 everywhere.

Examples
--------
>>> import numpy as np
>>> from alphapeptindex.scoring import calculate_q_values
>>>
>>> is_decoy = np.array([False, False, True, False, True])
>>> targets, decoys, q = calculate_q_values(is_decoy)
>>> q
array([0.  , 0.  , 0.25, 0.25, 0.4 ])
>>>
>>> # Count identifications at 1% FDR
>>> n_ids = np.sum((q <= 0.01) & (~is_decoy))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd
from numba import njit

logger = logging.getLogger(__name__)


@njit(nogil=True, cache=True)
def _q_value_passes(is_decoy: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Cumulative counts and monotonic q-values for score-descending input.

    Parameters
    ----------
    is_decoy : np.ndarray (bool)
        Decoy flag per match, best score first

    Returns
    -------
    cumulative_target : np.ndarray (int64)
    cumulative_decoy : np.ndarray (int64)
    q_values : np.ndarray (float64)
    """
    n = len(is_decoy)
    cumulative_target = np.zeros(n, dtype=np.int64)
    cumulative_decoy = np.zeros(n, dtype=np.int64)
    q_values = np.zeros(n, dtype=np.float64)

    # Forward: raw q-values
    n_target = 0
    n_decoy = 0
    for i in range(n):
        if is_decoy[i]:
            n_decoy += 1
        else:
            n_target += 1
        cumulative_target[i] = n_target
        cumulative_decoy[i] = n_decoy
        total = n_target + n_decoy
        q_values[i] = n_decoy / total if total > 0 else 0.0

    # Backward: running minimum from the worst match
    min_q_value = np.inf
    for i in range(n - 1, -1, -1):
        if q_values[i] > min_q_value:
            q_values[i] = min_q_value
        elif q_values[i] < min_q_value:
            min_q_value = q_values[i]

    return cumulative_target, cumulative_decoy, q_values


def calculate_q_values(is_decoy: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Cumulative target/decoy counts and q-values.

    Parameters
    ----------
    is_decoy : np.ndarray
        Decoy flags of matches already sorted by descending score

    Returns
    -------
    cumulative_target, cumulative_decoy : np.ndarray (int64)
        Running counts including the current match
    q_values : np.ndarray (float64)
        Monotonic q-values
    """
    is_decoy = np.asarray(is_decoy, dtype=np.bool_)
    if len(is_decoy) == 0:
        empty = np.array([], dtype=np.int64)
        return empty, empty.copy(), np.array([], dtype=np.float64)
    return _q_value_passes(is_decoy)


@dataclass
class PsmWithFdr:
    """A spectrum match annotated with target-decoy statistics.

    Attributes
    ----------
    match : SpectrumMatch
        Underlying match
    is_decoy : bool
        True if the peptide comes from a decoy protein
    cumulative_target : int
        Targets at this rank or better
    cumulative_decoy : int
        Decoys at this rank or better
    q_value : float
        Monotonic q-value
    peptides : tuple
        Peptides (with proteins) that explain the match, if mapped
    """

    match: object
    is_decoy: bool
    cumulative_target: int
    cumulative_decoy: int
    q_value: float
    peptides: tuple = ()

    @property
    def score(self) -> float:
        return self.match.score


def compute_fdr(
    matches: Sequence,
    is_decoy: Sequence[bool],
    peptides: Sequence[tuple] | None = None,
) -> list[PsmWithFdr]:
    """Annotate score-descending matches with FDR statistics.

    Parameters
    ----------
    matches : sequence of SpectrumMatch
        Matches sorted by descending score
    is_decoy : sequence of bool
        Decoy flag per match
    peptides : sequence of tuple, optional
        Explaining peptides per match

    Returns
    -------
    psms : list of PsmWithFdr
        Same order and length as ``matches``
    """
    if len(matches) != len(is_decoy):
        raise ValueError(
            f"Got {len(matches)} matches but {len(is_decoy)} decoy flags"
        )
    if peptides is not None and len(peptides) != len(matches):
        raise ValueError(f"Got {len(matches)} matches but {len(peptides)} peptide sets")

    flags = np.asarray(is_decoy, dtype=np.bool_)
    cumulative_target, cumulative_decoy, q_values = calculate_q_values(flags)

    psms = [
        PsmWithFdr(
            match=match,
            is_decoy=bool(flags[i]),
            cumulative_target=int(cumulative_target[i]),
            cumulative_decoy=int(cumulative_decoy[i]),
            q_value=float(q_values[i]),
            peptides=tuple(peptides[i]) if peptides is not None else (),
        )
        for i, match in enumerate(matches)
    ]

    stats = calculate_fdr_statistics(psms)
    logger.info(
        f"FDR: {stats['n_targets']:,} targets, {stats['n_decoys']:,} decoys, "
        f"{stats['n_targets_fdr01']:,} targets at 1% FDR"
    )
    return psms


def calculate_fdr_statistics(psms: Sequence[PsmWithFdr]) -> dict[str, int | float]:
    """Global FDR statistics.

    Returns
    -------
    dict[str, int | float]
        - n_targets: Number of target PSMs
        - n_decoys: Number of decoy PSMs
        - decoy_fraction: Fraction of decoys
        - n_targets_fdr01: Targets passing 1% FDR
        - n_targets_fdr05: Targets passing 5% FDR
        - n_targets_fdr10: Targets passing 10% FDR
    """
    is_decoy = np.array([p.is_decoy for p in psms], dtype=np.bool_)
    q_values = np.array([p.q_value for p in psms], dtype=np.float64)

    stats = {}
    n_decoys = int(np.sum(is_decoy))
    stats["n_targets"] = len(psms) - n_decoys
    stats["n_decoys"] = n_decoys
    stats["decoy_fraction"] = float(n_decoys / len(psms)) if len(psms) > 0 else 0.0

    for fdr_threshold in [0.01, 0.05, 0.10]:
        n_passing = np.sum((~is_decoy) & (q_values <= fdr_threshold))
        stats[f"n_targets_fdr{int(round(fdr_threshold * 100)):02d}"] = int(n_passing)

    return stats


def psms_to_dataframe(psms: Sequence[PsmWithFdr]) -> pd.DataFrame:
    """FDR-annotated matches as a DataFrame, one row per match.

    Peptide columns (``full_sequence``, ``accessions``) are filled when the
    matches were mapped back to proteins.
    """
    columns = [
        "scan_number", "precursor_mass", "precursor_charge", "retention_time",
        "peptide_mass", "mass_difference", "score", "notch", "search_mode",
        "full_sequence", "accessions", "is_decoy",
        "cumulative_target", "cumulative_decoy", "q_value",
    ]
    rows = []
    for psm in psms:
        match = psm.match
        sequences = sorted({p.full_sequence for p in psm.peptides})
        accessions = sorted({p.protein.accession for p in psm.peptides})
        rows.append({
            "scan_number": match.scan_number,
            "precursor_mass": match.precursor_mass,
            "precursor_charge": match.precursor_charge,
            "retention_time": match.retention_time,
            "peptide_mass": match.peptide_mass,
            "mass_difference": match.mass_difference,
            "score": match.score,
            "notch": match.notch,
            "search_mode": match.search_mode,
            "full_sequence": "|".join(sequences),
            "accessions": ";".join(accessions),
            "is_decoy": psm.is_decoy,
            "cumulative_target": psm.cumulative_target,
            "cumulative_decoy": psm.cumulative_decoy,
            "q_value": psm.q_value,
        })
    return pd.DataFrame(rows, columns=columns)
