"""Compact peptides: the immutable hot-path value for indexing and scoring.

A ``CompactPeptide`` keeps only what scoring needs: the precursor mass, the
two cumulative terminal mass arrays and up to three variable modification
slot tags (a tie-break signal, not modification identity). Everything else
about the peptide (protein, span, names) is recovered later by redigesting
the database (``scoring.protein_mapping``).

Examples
--------
>>> compact = CompactPeptide.from_peptide(pep, slots={})
>>> compact.sorted_product_masses([ProductType.B, ProductType.Y])
"""

from __future__ import annotations

from typing import Mapping, Sequence, Tuple

import numpy as np

from ..constants import MASS_KEY_DECIMALS, N_VARIABLE_MOD_SLOTS
from .generator import merge_sorted, product_series


class CompactPeptide:
    """Precursor mass plus cumulative terminal fragment masses.

    Parameters
    ----------
    monoisotopic_mass : float
        Neutral precursor mass (labile modifications included)
    n_terminal : np.ndarray (float64)
        Cumulative N-terminal masses (labile modifications excluded)
    c_terminal : np.ndarray (float64)
        Cumulative C-terminal masses (labile modifications excluded)
    peptide_ord : np.ndarray (uint8)
        Base sequence as ord() values (proline rules for c/z-dot ions)
    var_mod_types : tuple of int
        Slot numbers of the first three variable modifications (0 = none)

    Notes
    -----
    Instances are read-only and safe to share between threads.
    """

    __slots__ = (
        "monoisotopic_mass", "n_terminal", "c_terminal", "peptide_ord", "var_mod_types", "_mass_key", "_hash",
    )

    def __init__(
        self,
        monoisotopic_mass: float,
        n_terminal: np.ndarray,
        c_terminal: np.ndarray,
        peptide_ord: np.ndarray,
        var_mod_types: Tuple[int, ...] = (0, 0, 0),
    ):
        if len(n_terminal) != len(c_terminal) or len(n_terminal) != len(peptide_ord):
            raise ValueError("Terminal mass arrays and sequence must have equal length")
        if len(var_mod_types) != N_VARIABLE_MOD_SLOTS:
            raise ValueError(f"Expected {N_VARIABLE_MOD_SLOTS} variable modification slots")

        self.monoisotopic_mass = float(monoisotopic_mass)
        self.n_terminal = _frozen(n_terminal, np.float64)
        self.c_terminal = _frozen(c_terminal, np.float64)
        self.peptide_ord = _frozen(peptide_ord, np.uint8)
        self.var_mod_types = tuple(int(t) for t in var_mod_types)
        self._mass_key = mass_key(self.monoisotopic_mass)
        self._hash = hash((
            self._mass_key,
            self.n_terminal.tobytes(),
            self.c_terminal.tobytes(),
        ))

    @classmethod
    def from_peptide(cls, peptide, slots: Mapping) -> 'CompactPeptide':
        """Compact surrogate of a ``PeptideWithSetModifications``."""
        return cls(
            peptide.monoisotopic_mass,
            peptide.cumulative_n_terminal_masses,
            peptide.cumulative_c_terminal_masses,
            peptide._compute_fragments()[3],
            peptide.variable_mod_types(slots),
        )

    @property
    def length(self) -> int:
        return len(self.n_terminal)

    @property
    def num_variable_mods(self) -> int:
        return sum(1 for t in self.var_mod_types if t > 0)

    # -------------------------------------------------------------------------
    # Product ions
    # -------------------------------------------------------------------------

    def product_masses(self, product_types: Sequence) -> np.ndarray:
        """Neutral product masses, series concatenated (not sorted).

        NaN masses are dropped; used for index building where order does
        not matter.
        """
        series = product_series(self.n_terminal, self.c_terminal, self.peptide_ord, product_types)
        if not series:
            return np.empty(0, dtype=np.float64)
        masses = np.concatenate(series)
        return masses[~np.isnan(masses)]

    def sorted_product_masses(self, product_types: Sequence) -> np.ndarray:
        """Neutral product masses ascending, by pairwise linear merges."""
        merged = np.empty(0, dtype=np.float64)
        for masses in product_series(self.n_terminal, self.c_terminal, self.peptide_ord, product_types):
            merged = merge_sorted(merged, masses)
        return merged

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    @property
    def sort_key(self) -> Tuple:
        """Content-only total order used as the last tie-break.

        Lighter peptides come first, then by cumulative N-terminal and
        C-terminal masses, then by variable modification slots.
        """
        return (
            self._mass_key,
            tuple(self.n_terminal.tolist()),
            tuple(self.c_terminal.tolist()),
            self.var_mod_types,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, CompactPeptide):
            return NotImplemented
        return (
            self._mass_key == other._mass_key
            and np.array_equal(self.n_terminal, other.n_terminal)
            and np.array_equal(self.c_terminal, other.c_terminal)
        )

    def __hash__(self) -> int:
        return self._hash

    def __repr__(self) -> str:
        return (
            f"CompactPeptide(mass={self.monoisotopic_mass:.5f}, "
            f"length={self.length}, var_mod_types={self.var_mod_types})"
        )


def _frozen(values, dtype) -> np.ndarray:
    array = np.array(values, dtype=dtype)
    array.setflags(write=False)
    return array


def mass_key(mass: float) -> int:
    """Mass quantized to ``MASS_KEY_DECIMALS`` decimals as an integer.

    Hashing and equality both use this value, so equal peptides always
    hash alike.
    """
    return int(round(mass * 10 ** MASS_KEY_DECIMALS))
