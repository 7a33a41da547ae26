"""Fragment mass generation with Numba JIT compilation.

This module turns residue masses and per-position modification shifts into
cumulative terminal masses and product ion masses. Designed for proteome
scale indexing where every modified isoform needs its fragments once.

Key optimizations:
1. Numba JIT compilation for C-level performance (nogil, so thread pools scale)
2. ord() encoding for string-to-array conversion (no string operations in Numba)
3. Pre-allocated arrays (no dynamic memory allocation)
4. Linear two-pointer merge instead of sorting (terminal series are already sorted)

Masses here are neutral; m/z matching adds PROTON_MASS at comparison time.
"""

from enum import Enum

import numpy as np
import numba

from ..constants import C_ION_OFFSET, Y_ION_OFFSET, ZDOT_ION_OFFSET


class ProductType(Enum):
    """Backbone fragment ion series."""
    ADOT = "a."
    B = "b"
    C = "c"
    X = "x"
    Y = "y"
    ZDOT = "z."

    @property
    def is_n_terminal(self) -> bool:
        return self in (ProductType.ADOT, ProductType.B, ProductType.C)

    @staticmethod
    def check_supported(product_type: 'ProductType'):
        if product_type not in _ION_OFFSETS:
            raise NotImplementedError(f"Product type {product_type.name} is not supported")


# Offset added to the cumulative terminal mass for each supported series
_ION_OFFSETS = {
    ProductType.B: 0.0,
    ProductType.C: C_ION_OFFSET,
    ProductType.Y: Y_ION_OFFSET,
    ProductType.ZDOT: ZDOT_ION_OFFSET,
}

ORD_PROLINE = ord('P')


# =============================================================================
# Helper Functions
# =============================================================================

def encode_peptide_to_ord(peptide: str) -> np.ndarray:
    """Encode peptide string to ord() array for Numba processing.

    Parameters
    ----------
    peptide : str
        Peptide sequence (uppercase)

    Returns
    -------
    peptide_ord : np.ndarray (uint8)
        Array of ord() values for each amino acid

    Examples
    --------
    >>> peptide_ord = encode_peptide_to_ord("PEPTIDE")
    >>> # Returns array([80, 69, 80, 84, 73, 68, 69], dtype=uint8)
    """
    return np.frombuffer(peptide.encode('ascii'), dtype=np.uint8).copy()


def ion_offset(product_type: ProductType) -> float:
    ProductType.check_supported(product_type)
    return _ION_OFFSETS[product_type]


# =============================================================================
# Core Fragment Generation (Numba-Compiled)
# =============================================================================

@numba.jit(nopython=True, nogil=True, cache=True)
def cumulative_terminal_masses(
    residue_masses: np.ndarray,
    position_shifts: np.ndarray,
):
    """Cumulative N- and C-terminal fragment masses.

    Parameters
    ----------
    residue_masses : np.ndarray (float64)
        Mass of each residue, length L
    position_shifts : np.ndarray (float64)
        Fragment-relevant (non-labile) modification shift at each extended
        position, length L + 4

    Returns
    -------
    n_terminal : np.ndarray (float64)
        ``n_terminal[r]`` = terminal shifts + first r residues with their
        modifications; ``n_terminal[0]`` holds only the N-terminal shifts
    c_terminal : np.ndarray (float64)
        Same from the C-terminal end

    Notes
    -----
    Residue ``k`` (0-based) sits at extended position ``k + 2``.
    """
    length = len(residue_masses)
    n_terminal = np.empty(length, dtype=np.float64)
    c_terminal = np.empty(length, dtype=np.float64)

    n_terminal[0] = position_shifts[0] + position_shifts[1]
    for r in range(1, length):
        n_terminal[r] = n_terminal[r - 1] + residue_masses[r - 1] + position_shifts[r + 1]

    c_terminal[0] = position_shifts[length + 2] + position_shifts[length + 3]
    for r in range(1, length):
        c_terminal[r] = c_terminal[r - 1] + residue_masses[length - r] + position_shifts[length - r + 2]

    return n_terminal, c_terminal


@numba.jit(nopython=True, nogil=True, cache=True)
def n_terminal_series(
    n_terminal: np.ndarray,
    peptide_ord: np.ndarray,
    offset: float,
    skip_first: bool,
    skip_before_proline: bool,
) -> np.ndarray:
    """One N-terminal ion series (ascending for positive residue masses).

    Emits ``n_terminal[r] + offset`` for r = 1..L-1. b ions skip r = 1,
    c ions skip cleavages in front of a proline.
    """
    length = len(n_terminal)
    out = np.empty(length, dtype=np.float64)
    count = 0
    for r in range(1, length):
        if skip_first and r == 1:
            continue
        if skip_before_proline and peptide_ord[r] == ORD_PROLINE:
            continue
        out[count] = n_terminal[r] + offset
        count += 1
    return out[:count]


@numba.jit(nopython=True, nogil=True, cache=True)
def c_terminal_series(
    c_terminal: np.ndarray,
    peptide_ord: np.ndarray,
    offset: float,
    skip_after_proline: bool,
) -> np.ndarray:
    """One C-terminal ion series: ``c_terminal[r] + offset`` for r = 1..L-1.

    z-dot ions skip fragments whose first residue is a proline.
    """
    length = len(c_terminal)
    out = np.empty(length, dtype=np.float64)
    count = 0
    for r in range(1, length):
        if skip_after_proline and peptide_ord[length - r] == ORD_PROLINE:
            continue
        out[count] = c_terminal[r] + offset
        count += 1
    return out[:count]


@numba.jit(nopython=True, nogil=True, cache=True)
def merge_sorted(first: np.ndarray, second: np.ndarray) -> np.ndarray:
    """Linear two-pointer merge of two ascending arrays."""
    n1 = len(first)
    n2 = len(second)
    merged = np.empty(n1 + n2, dtype=np.float64)
    i1 = 0
    i2 = 0
    for i in range(n1 + n2):
        if i1 < n1 and (i2 == n2 or first[i1] <= second[i2]):
            merged[i] = first[i1]
            i1 += 1
        else:
            merged[i] = second[i2]
            i2 += 1
    return merged


# =============================================================================
# Product Ion Assembly
# =============================================================================

def product_series(
    n_terminal: np.ndarray,
    c_terminal: np.ndarray,
    peptide_ord: np.ndarray,
    product_types,
) -> list:
    """Ion series for the requested product types, each ascending.

    Parameters
    ----------
    n_terminal, c_terminal : np.ndarray
        Output of ``cumulative_terminal_masses``
    peptide_ord : np.ndarray (uint8)
        Peptide sequence as ord() values (for proline rules)
    product_types : iterable of ProductType
        Requested series

    Returns
    -------
    series : list of np.ndarray
        One array per product type, in request order
    """
    series = []
    for product_type in product_types:
        offset = ion_offset(product_type)
        if product_type is ProductType.B:
            series.append(n_terminal_series(n_terminal, peptide_ord, offset, True, False))
        elif product_type is ProductType.C:
            series.append(n_terminal_series(n_terminal, peptide_ord, offset, False, True))
        elif product_type is ProductType.Y:
            series.append(c_terminal_series(c_terminal, peptide_ord, offset, False))
        else:
            series.append(c_terminal_series(c_terminal, peptide_ord, offset, True))
    return series


def sorted_product_masses(
    n_terminal: np.ndarray,
    c_terminal: np.ndarray,
    peptide_ord: np.ndarray,
    product_types,
) -> np.ndarray:
    """All requested product masses, ascending, via pairwise merges."""
    series = product_series(n_terminal, c_terminal, peptide_ord, product_types)
    merged = np.empty(0, dtype=np.float64)
    for masses in series:
        merged = merge_sorted(merged, masses)
    return merged
