"""Search configuration: tolerances and engine parameters.

All engine settings live in one ``SearchParameters`` object that is built
once, validated on construction and passed to every engine. Nothing in the
engines reads module-level configuration.

Examples
--------
>>> params = SearchParameters(max_missed_cleavages=1)
>>> params.product_mass_tolerance.within(500.005, 500.0)
True
>>> SearchParameters.for_open_search().max_mods_per_peptide
2
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .constants import FRAGMENT_MASS_DECIMALS, ResidueMassTable
from .database.protease import InitiatorMethionineBehavior, Protease
from .fragments.generator import ProductType

DEFAULT_NUM_THREADS = 4


class ToleranceUnit(Enum):
    """Tolerance units."""
    PPM = "ppm"
    ABSOLUTE = "Da"


@dataclass(frozen=True)
class Tolerance:
    """Symmetric mass tolerance, absolute (Da) or relative (ppm).

    ppm tolerances are relative to the theoretical mass.
    """

    value: float
    unit: ToleranceUnit = ToleranceUnit.ABSOLUTE

    def __post_init__(self):
        if not math.isfinite(self.value) or self.value < 0:
            raise ValueError(f"Tolerance must be a finite non-negative number: {self.value}")

    @classmethod
    def from_ppm(cls, ppm: float) -> 'Tolerance':
        return cls(ppm, ToleranceUnit.PPM)

    @classmethod
    def from_absolute(cls, da: float) -> 'Tolerance':
        return cls(da, ToleranceUnit.ABSOLUTE)

    @property
    def is_ppm(self) -> bool:
        return self.unit is ToleranceUnit.PPM

    def width(self, mass: float) -> float:
        """Half width of the window around ``mass`` (Da)."""
        if self.is_ppm:
            return abs(mass) * self.value / 1e6
        return self.value

    def get_range(self, mass: float) -> Tuple[float, float]:
        delta = self.width(mass)
        return mass - delta, mass + delta

    def within(self, experimental: float, theoretical: float) -> bool:
        return abs(experimental - theoretical) <= self.width(theoretical)

    def __str__(self) -> str:
        return f"±{self.value:g} {self.unit.value}"


@dataclass
class SearchParameters:
    """Parameters shared by digestion, indexing and both search engines.

    Defaults mirror a standard tryptic search: two missed cleavages,
    variable initiator methionine, at most three variable modifications and
    4098 isoforms per peptide, b/y ions at ±0.01 Da.
    """

    # Digestion
    protease: Protease = field(default_factory=Protease.trypsin)
    max_missed_cleavages: int = 2
    initiator_methionine_behavior: InitiatorMethionineBehavior = InitiatorMethionineBehavior.VARIABLE
    min_peptide_length: Optional[int] = None
    max_peptide_length: Optional[int] = None

    # Modification enumeration
    max_isoforms_per_peptide: int = 4098
    max_mods_per_peptide: int = 3

    # Fragments and scoring
    product_types: Tuple[ProductType, ...] = (ProductType.B, ProductType.Y)
    product_mass_tolerance: Tolerance = field(default_factory=lambda: Tolerance.from_absolute(0.01))
    fragment_mass_decimals: int = FRAGMENT_MASS_DECIMALS
    max_peaks_per_scan: Optional[int] = None

    # Resources
    mass_table: ResidueMassTable = field(default_factory=ResidueMassTable.standard)
    n_threads: int = DEFAULT_NUM_THREADS

    def __post_init__(self):
        if self.max_missed_cleavages < 0:
            raise ValueError(f"max_missed_cleavages must be >= 0: {self.max_missed_cleavages}")
        if self.max_isoforms_per_peptide < 1:
            raise ValueError(f"max_isoforms_per_peptide must be >= 1: {self.max_isoforms_per_peptide}")
        if self.max_mods_per_peptide < 0:
            raise ValueError(f"max_mods_per_peptide must be >= 0: {self.max_mods_per_peptide}")
        if self.min_peptide_length is not None and self.min_peptide_length < 1:
            raise ValueError(f"min_peptide_length must be >= 1: {self.min_peptide_length}")
        if (
            self.min_peptide_length is not None
            and self.max_peptide_length is not None
            and self.max_peptide_length < self.min_peptide_length
        ):
            raise ValueError("max_peptide_length must not be below min_peptide_length")
        if not self.product_types:
            raise ValueError("At least one product type is required")
        if self.max_peaks_per_scan is not None and self.max_peaks_per_scan < 1:
            raise ValueError(f"max_peaks_per_scan must be >= 1: {self.max_peaks_per_scan}")
        if self.n_threads < 1:
            raise ValueError(f"n_threads must be >= 1: {self.n_threads}")
        self.product_types = tuple(self.product_types)
        for product_type in self.product_types:
            ProductType.check_supported(product_type)

    @classmethod
    def for_open_search(cls) -> 'SearchParameters':
        """Parameters tuned for wide precursor windows (fewer isoforms)."""
        return cls(
            max_isoforms_per_peptide=1024,
            max_mods_per_peptide=2,
        )
