"""Protein records consumed by digestion."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

from ..modifications import Modification


@dataclass(frozen=True)
class ProteolysisProduct:
    """Annotated chain or propeptide span (1-based, inclusive)."""

    begin: int
    end: int
    product_type: str = "chain"

    def __post_init__(self):
        if self.begin < 1 or self.end < self.begin:
            raise ValueError(f"Invalid proteolysis product span: {self.begin}-{self.end}")


@dataclass(frozen=True, eq=False)
class Protein:
    """Immutable protein database entry.

    Attributes
    ----------
    sequence : str
        Uppercase residue sequence
    accession : str
        Unique accession; proteins compare equal by accession
    is_decoy : bool
        True for reversed decoy entries
    localized_modifications : Mapping[int, tuple of Modification]
        Known modifications by 1-based residue position
    proteolysis_products : tuple of ProteolysisProduct
        Chain and propeptide annotations
    """

    sequence: str
    accession: str
    is_decoy: bool = False
    localized_modifications: Mapping[int, Tuple[Modification, ...]] = field(default_factory=dict)
    proteolysis_products: Tuple[ProteolysisProduct, ...] = ()

    def __post_init__(self):
        if not self.sequence:
            raise ValueError(f"Protein {self.accession} has an empty sequence")
        if not self.sequence.isupper():
            raise ValueError(f"Protein {self.accession} sequence must be uppercase")
        mods = {}
        for position, values in self.localized_modifications.items():
            if not 1 <= position <= len(self.sequence):
                raise ValueError(
                    f"Protein {self.accession}: modification position {position} out of range"
                )
            mods[position] = tuple(values)
        object.__setattr__(self, "localized_modifications", MappingProxyType(mods))
        object.__setattr__(self, "proteolysis_products", tuple(self.proteolysis_products))

    def __len__(self) -> int:
        return len(self.sequence)

    def __getitem__(self, index):
        return self.sequence[index]

    def __eq__(self, other) -> bool:
        return isinstance(other, Protein) and other.accession == self.accession

    def __hash__(self) -> int:
        return hash(self.accession)

    def __repr__(self) -> str:
        kind = "decoy" if self.is_decoy else "target"
        return f"Protein({self.accession!r}, {len(self.sequence)} aa, {kind})"
