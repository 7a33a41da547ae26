"""Peptides with a fully specified modification pattern."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Tuple

import numpy as np

from ..constants import H2O_MASS, N_VARIABLE_MOD_SLOTS, STANDARD_MASS_TABLE, ResidueMassTable
from ..database.digestion import DigestedPeptide
from ..modifications import (
    FixedModificationMap,
    Modification,
    ModificationType,
    VariableModificationMap,
    fragment_shifts_by_position,
    render_sequence,
    total_mass_shift,
)
from .generator import (
    cumulative_terminal_masses,
    encode_peptide_to_ord,
    sorted_product_masses,
)


class PeptideWithSetModifications:
    """A digested peptide with its fixed and variable modifications set.

    Fragment masses are computed once, on first use, and cached.

    Parameters
    ----------
    peptide : DigestedPeptide
        Underlying span
    fixed : FixedModificationMap
        Extended position → fixed modifications
    variable : VariableModificationMap
        Extended position → the variable modification chosen there
    mass_table : ResidueMassTable, optional
        Residue masses; the standard table when omitted

    Examples
    --------
    >>> pep = PeptideWithSetModifications(digested, {}, {})
    >>> pep.full_sequence
    'PEPTIDEK'
    >>> sorted_masses = pep.fast_sorted_product_masses([ProductType.B, ProductType.Y])
    """

    __slots__ = (
        "peptide", "fixed", "variable", "mass_table",
        "_full_sequence", "_fragments",
    )

    def __init__(
        self,
        peptide: DigestedPeptide,
        fixed: FixedModificationMap,
        variable: VariableModificationMap,
        mass_table: Optional[ResidueMassTable] = None,
    ):
        self.peptide = peptide
        self.fixed = MappingProxyType(dict(fixed))
        self.variable = MappingProxyType(dict(variable))
        self.mass_table = mass_table
        self._full_sequence = None
        self._fragments = None

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    @property
    def protein(self):
        return self.peptide.protein

    @property
    def base_sequence(self) -> str:
        return self.peptide.base_sequence

    @property
    def length(self) -> int:
        return self.peptide.length

    @property
    def missed_cleavages(self) -> int:
        return self.peptide.missed_cleavages

    @property
    def num_variable_mods(self) -> int:
        return len(self.variable)

    @property
    def full_sequence(self) -> str:
        """Annotated sequence, fixed mods as ``[name]``, variable as ``(name)``."""
        if self._full_sequence is None:
            self._full_sequence = render_sequence(self.base_sequence, self.fixed, self.variable)
        return self._full_sequence

    def __eq__(self, other) -> bool:
        return (
            isinstance(other, PeptideWithSetModifications)
            and other.full_sequence == self.full_sequence
            and other.peptide.start == self.peptide.start
            and other.protein == self.protein
        )

    def __hash__(self) -> int:
        return hash((self.full_sequence, self.peptide.start, self.protein.accession))

    def __repr__(self) -> str:
        return (
            f"PeptideWithSetModifications({self.full_sequence}, "
            f"{self.protein.accession} {self.peptide.start}-{self.peptide.end})"
        )

    # -------------------------------------------------------------------------
    # Masses
    # -------------------------------------------------------------------------

    def _compute_fragments(self) -> Tuple[float, np.ndarray, np.ndarray, np.ndarray]:
        if self._fragments is None:
            table = self.mass_table or STANDARD_MASS_TABLE
            peptide_ord = encode_peptide_to_ord(self.base_sequence)
            residue_masses = table.ord_array[peptide_ord]
            if np.isnan(residue_masses).any():
                unknown = sorted({aa for aa in self.base_sequence if aa not in table})
                raise ValueError(f"Unknown residues {unknown} in {self.base_sequence}")

            # Precursor mass counts every modification, labile or not
            monoisotopic_mass = H2O_MASS + float(residue_masses.sum()) + total_mass_shift(
                self.fixed, self.variable
            )

            # Fragment series leave labile modifications out
            shifts = np.array(
                fragment_shifts_by_position(self.length, self.fixed, self.variable),
                dtype=np.float64,
            )
            n_terminal, c_terminal = cumulative_terminal_masses(residue_masses, shifts)
            n_terminal.setflags(write=False)
            c_terminal.setflags(write=False)
            self._fragments = (monoisotopic_mass, n_terminal, c_terminal, peptide_ord)
        return self._fragments

    @property
    def monoisotopic_mass(self) -> float:
        return self._compute_fragments()[0]

    @property
    def cumulative_n_terminal_masses(self) -> np.ndarray:
        return self._compute_fragments()[1]

    @property
    def cumulative_c_terminal_masses(self) -> np.ndarray:
        return self._compute_fragments()[2]

    def fast_sorted_product_masses(self, product_types: Sequence) -> np.ndarray:
        """Neutral product ion masses, ascending (merged, never sorted)."""
        _, n_terminal, c_terminal, peptide_ord = self._compute_fragments()
        return sorted_product_masses(n_terminal, c_terminal, peptide_ord, product_types)

    # -------------------------------------------------------------------------
    # Derived peptides
    # -------------------------------------------------------------------------

    def localize(self, residue_index: int, mass_delta: float) -> 'PeptideWithSetModifications':
        """Copy with an unlocalized mass difference placed on one residue.

        A variable modification already on that residue is replaced; its
        fragment-relevant mass is kept in the placed shift.

        Parameters
        ----------
        residue_index : int
            0-based residue index
        mass_delta : float
            Observed minus theoretical precursor mass
        """
        if not 0 <= residue_index < self.length:
            raise IndexError(f"Residue index {residue_index} out of range for {self.base_sequence}")
        position = residue_index + 2
        variable = dict(self.variable)
        existing = variable.pop(position, None)
        carried = existing.fragment_mass_shift if existing is not None else 0.0
        variable[position] = Modification(
            name=f"{mass_delta + carried:+.3f}",
            modification_type=ModificationType.RESIDUE,
            target_residue=None,
            mass_shift=mass_delta + carried,
        )
        return PeptideWithSetModifications(self.peptide, self.fixed, variable, self.mass_table)

    def variable_mod_types(self, slots: Mapping[Modification, int]) -> Tuple[int, ...]:
        """First three variable modification slot numbers (0 = none).

        Modifications are visited in extended-position order; modifications
        missing from ``slots`` count as slot ``len(slots) + 1``.
        """
        types = [
            slots.get(mod, len(slots) + 1)
            for _, mod in sorted(self.variable.items())
        ][:N_VARIABLE_MOD_SLOTS]
        return tuple(types + [0] * (N_VARIABLE_MOD_SLOTS - len(types)))

    def to_compact(self, slots: Mapping[Modification, int]):
        from .compact import CompactPeptide
        return CompactPeptide.from_peptide(self, slots)
