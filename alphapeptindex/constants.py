"""Physical constants, residue masses and engine-wide limits.

This module provides the physical constants and amino acid masses used
throughout AlphaPeptIndex, plus the residue mass table object that carries
them into the engines.

Residue masses are provided both as a dictionary and as an ord()-indexed
array so the same table can be used from plain Python and from Numba
JIT-compiled kernels.

Key Features
------------
- Correct PROTON_MASS (1.007276466622 Da, not hydrogen atom mass!)
- ResidueMassTable: explicitly constructed, validated, immutable
- ord()-indexed mass arrays for high-performance Numba code
- Atom masses for c/z-dot ion offsets
- Engine limits (peptide length guard, rounding precision, tie windows)

Sources
-------
- NIST physical constants: https://physics.nist.gov/cgi-bin/cuu/Value
- IUPAC amino acid masses: https://www.unimod.org/masses.html
"""

from __future__ import annotations

import math
from types import MappingProxyType
from typing import Dict, Mapping

import numpy as np

# =============================================================================
# Fundamental Physical Constants (NIST values)
# =============================================================================

# Proton mass (NOT hydrogen atom mass!)
# Source: NIST 2018 CODATA
PROTON_MASS = 1.007276466622  # Da

# Principal isotope atom masses
HYDROGEN_MASS = 1.00782503207  # Da
NITROGEN_MASS = 14.0030740048  # Da
OXYGEN_MASS = 15.99491461956  # Da

# Water mass (H2O)
# Calculated: 2*1.007825 + 15.994915 = 18.010564684
H2O_MASS = 18.010564684  # Da

# =============================================================================
# Ion Type Offsets (added to cumulative terminal masses)
# =============================================================================

# c-ions: N-terminal fragment + NH3
C_ION_OFFSET = NITROGEN_MASS + 3 * HYDROGEN_MASS

# y-ions: C-terminal fragment + H2O
Y_ION_OFFSET = H2O_MASS

# z-dot ions: C-terminal fragment + O - N
ZDOT_ION_OFFSET = OXYGEN_MASS - NITROGEN_MASS

# =============================================================================
# Amino Acid Monoisotopic Masses (Da)
# =============================================================================

# Standard 20 amino acids (unmodified residues)
AA_MASSES_DICT = {
    'A': 71.037114,   # Alanine
    'R': 156.101111,  # Arginine
    'N': 114.042927,  # Asparagine
    'D': 115.026943,  # Aspartic acid
    'C': 103.009185,  # Cysteine (unmodified)
    'E': 129.042593,  # Glutamic acid
    'Q': 128.058578,  # Glutamine
    'G': 57.021464,   # Glycine
    'H': 137.058912,  # Histidine
    'I': 113.084064,  # Isoleucine
    'L': 113.084064,  # Leucine
    'K': 128.094963,  # Lysine
    'M': 131.040485,  # Methionine
    'F': 147.068414,  # Phenylalanine
    'P': 97.052764,   # Proline
    'S': 87.032028,   # Serine
    'T': 101.047679,  # Threonine
    'W': 186.079313,  # Tryptophan
    'Y': 163.063320,  # Tyrosine
    'V': 99.068414,   # Valine
}

# Rare residues that do appear in UniProt sequences
AA_MASSES_NONSTANDARD = {
    'U': 150.953636,  # Selenocysteine
    'O': 237.147727,  # Pyrrolysine
}

# =============================================================================
# Common Modification Masses
# =============================================================================

# Carbamidomethylation of Cysteine (Unimod:4)
CARBAMIDOMETHYL_MASS = 57.021464

# Oxidation of Methionine (Unimod:35)
OXIDATION_MASS = 15.994915

# Acetylation (Protein N-term, Unimod:1)
ACETYL_MASS = 42.010565

# Phosphorylation (Unimod:21)
PHOSPHO_MASS = 79.966331

# =============================================================================
# Engine Limits
# =============================================================================

# Peptides longer than this (or of length 1) are never indexed or scored
MAX_PEPTIDE_LENGTH = 252

# Decimal digits kept when fragment masses become index keys
FRAGMENT_MASS_DECIMALS = 3

# Two scores closer than this are a tie
SCORE_TIE_EPSILON = 1e-9

# Peptides within this many Da of the precursor win ties
TIE_BREAK_MASS_WINDOW = 0.03

# Candidate modifications closer than this are the same choice
MODIFICATION_MASS_EPSILON = 0.001

# Variable modification slots carried by a compact peptide
N_VARIABLE_MOD_SLOTS = 3

# Decimal digits of the peptide mass used for identity and ordering
MASS_KEY_DECIMALS = 6


# =============================================================================
# Residue Mass Table
# =============================================================================

class ResidueMassTable:
    """Immutable residue letter → monoisotopic mass lookup.

    The table is validated on construction: every code must be a single
    uppercase letter and every mass a finite positive number. Engines receive
    the table through ``SearchParameters`` rather than reading module state.

    Parameters
    ----------
    masses : Mapping[str, float]
        Residue one-letter codes and residue masses (Da)

    Raises
    ------
    ValueError
        If any entry is malformed

    Examples
    --------
    >>> table = ResidueMassTable.standard()
    >>> table.mass('G')
    57.021464
    """

    def __init__(self, masses: Mapping[str, float]):
        if not masses:
            raise ValueError("Residue mass table cannot be empty")

        validated: Dict[str, float] = {}
        for residue, mass in masses.items():
            if not isinstance(residue, str) or len(residue) != 1:
                raise ValueError(f"Residue code must be a single letter: {residue!r}")
            if not residue.isalpha() or not residue.isupper():
                raise ValueError(f"Residue code must be an uppercase letter: {residue!r}")
            mass = float(mass)
            if not math.isfinite(mass) or mass <= 0.0:
                raise ValueError(f"Residue {residue} has an invalid mass: {mass}")
            validated[residue] = mass

        self._masses = MappingProxyType(validated)

        # ord()-indexed array for Numba kernels, NaN for unknown codes
        array = np.full(256, np.nan, dtype=np.float64)
        for residue, mass in validated.items():
            array[ord(residue)] = mass
        array.setflags(write=False)
        self._array = array

    @classmethod
    def standard(cls) -> 'ResidueMassTable':
        """Table with the 20 standard residues plus U and O."""
        return cls({**AA_MASSES_DICT, **AA_MASSES_NONSTANDARD})

    @property
    def masses(self) -> Mapping[str, float]:
        return self._masses

    @property
    def ord_array(self) -> np.ndarray:
        """Read-only ord()-indexed mass array (NaN for unknown codes)."""
        return self._array

    def __contains__(self, residue: str) -> bool:
        return residue in self._masses

    def mass(self, residue: str) -> float:
        try:
            return self._masses[residue]
        except KeyError:
            raise ValueError(f"Unknown residue: {residue!r}") from None

    def residue_masses(self, sequence: str) -> np.ndarray:
        """Per-residue masses of a sequence as a float64 array."""
        return np.array([self.mass(residue) for residue in sequence], dtype=np.float64)

    def sequence_mass(self, sequence: str) -> float:
        return float(sum(self.mass(residue) for residue in sequence))

    def __eq__(self, other) -> bool:
        return isinstance(other, ResidueMassTable) and dict(self._masses) == dict(other._masses)

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._masses.items())))

    def __repr__(self) -> str:
        return f"ResidueMassTable({len(self._masses)} residues)"


# Immutable default table for callers that do not bring their own
STANDARD_MASS_TABLE = ResidueMassTable.standard()
