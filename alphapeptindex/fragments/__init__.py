"""Peptide isoforms and their fragment masses.

Cumulative terminal masses are computed once per modification isoform with
Numba kernels; product ion series are derived on demand and merged linearly
into ascending arrays.
"""

from .generator import (
    ProductType,
    encode_peptide_to_ord,
    cumulative_terminal_masses,
    merge_sorted,
    product_series,
    sorted_product_masses,
)
from .peptide import PeptideWithSetModifications
from .compact import CompactPeptide

__all__ = [
    'ProductType',
    'encode_peptide_to_ord',
    'cumulative_terminal_masses',
    'merge_sorted',
    'product_series',
    'sorted_product_masses',
    'PeptideWithSetModifications',
    'CompactPeptide',
]
