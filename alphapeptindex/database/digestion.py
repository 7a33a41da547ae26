"""Protein digestion into peptide spans.

In silico digestion of protein sequences with support for:
- Any fully specific protease (cleavage/blocking motifs, N or C terminal)
- Missed cleavages
- Initiator methionine retention, removal or both
- Chain/propeptide annotated sub-sequences
- Optional peptide length window

Digestion yields spans only (start, end, missed cleavages); modifications
are placed afterwards by ``database.isoforms``.

Examples
--------
>>> protein = Protein("MPEPTIDEK", "P1")
>>> [p.base_sequence for p in digest(protein, Protease.trypsin(), 0,
...                                   InitiatorMethionineBehavior.VARIABLE)]
['MPEPTIDEK', 'PEPTIDEK']
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from ..constants import MAX_PEPTIDE_LENGTH
from ..modifications import Modification
from .protease import InitiatorMethionineBehavior, Protease
from .protein import Protein

MET_CLEAVED = "full:M cleaved"


@dataclass(frozen=True)
class DigestedPeptide:
    """A peptide span of a parent protein, before modifications.

    Attributes
    ----------
    protein : Protein
        Parent protein (shared, not owned)
    start : int
        1-based first residue in the protein
    end : int
        1-based last residue in the protein (inclusive)
    missed_cleavages : int
        Number of internal cleavage sites not cut
    description : str
        How the span was produced ("full", "full:M cleaved", "chain start", ...)
    """

    protein: Protein
    start: int
    end: int
    missed_cleavages: int = 0
    description: str = "full"

    def __post_init__(self):
        if not 1 <= self.start <= self.end <= len(self.protein):
            raise ValueError(
                f"Invalid span {self.start}-{self.end} for protein "
                f"{self.protein.accession} of length {len(self.protein)}"
            )

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def base_sequence(self) -> str:
        return self.protein.sequence[self.start - 1:self.end]

    @property
    def leucine_sequence(self) -> str:
        """Base sequence with isobaric I collapsed onto L."""
        return self.base_sequence.replace('I', 'L')

    def __getitem__(self, index: int) -> str:
        return self.base_sequence[index]

    @property
    def at_protein_n_terminus(self) -> bool:
        """True if the span starts at residue 1 or is the Met-cleaved N-terminal span."""
        return self.start == 1 or self.description == MET_CLEAVED

    @property
    def at_protein_c_terminus(self) -> bool:
        return self.end == len(self.protein)

    @property
    def localized_modifications(self) -> Dict[int, Tuple[Modification, ...]]:
        """Protein-localized modifications keyed by 1-based peptide position."""
        return {
            position - self.start + 1: mods
            for position, mods in self.protein.localized_modifications.items()
            if self.start <= position <= self.end
        }

    def is_searchable(self) -> bool:
        """Peptides of length 1 or longer than the length guard are skipped."""
        return 1 < self.length <= MAX_PEPTIDE_LENGTH

    def __repr__(self) -> str:
        return (
            f"DigestedPeptide({self.base_sequence}, {self.protein.accession} "
            f"{self.start}-{self.end}, mc={self.missed_cleavages}, {self.description!r})"
        )


def _length_ok(length: int, min_length: Optional[int], max_length: Optional[int]) -> bool:
    if min_length is not None and length < min_length:
        return False
    if max_length is not None and length > max_length:
        return False
    return True


def _proteolysis_product_peptides(
    protein: Protein,
    sites: List[int],
    missed_cleavages: int,
) -> Iterator[DigestedPeptide]:
    """Start and end peptides of every annotated chain/propeptide."""
    for product in protein.proteolysis_products:
        if product.begin == 1 and product.end == len(protein):
            continue
        if product.end > len(protein):
            continue

        i = 0
        while sites[i] < product.begin:
            i += 1
        if i + missed_cleavages < len(sites) and sites[i + missed_cleavages] <= product.end:
            yield DigestedPeptide(
                protein,
                product.begin,
                sites[i + missed_cleavages],
                missed_cleavages,
                f"{product.product_type} start",
            )

        while sites[i] < product.end:
            i += 1
        j = i - missed_cleavages - 1
        if j >= 0 and sites[j] + 1 >= product.begin:
            yield DigestedPeptide(
                protein,
                sites[j] + 1,
                product.end,
                missed_cleavages,
                f"{product.product_type} end",
            )


def digest(
    protein: Protein,
    protease: Protease,
    max_missed_cleavages: int,
    initiator_methionine_behavior: InitiatorMethionineBehavior,
    min_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> Iterator[DigestedPeptide]:
    """Digest a single protein into peptide spans.

    Parameters
    ----------
    protein : Protein
        Protein to digest
    protease : Protease
        Cleavage rules; must be fully specific
    max_missed_cleavages : int
        Largest number of uncut internal sites per peptide
    initiator_methionine_behavior : InitiatorMethionineBehavior
        RETAIN emits only intact N-terminal peptides, CLEAVE only the
        Met-removed variant, VARIABLE both
    min_length, max_length : int, optional
        Length window for peptides (inclusive)

    Yields
    ------
    peptide : DigestedPeptide
        Spans in missed-cleavage order; chain/propeptide spans follow the
        regular spans of each missed-cleavage value

    Raises
    ------
    NotImplementedError
        If the protease is not fully specific

    Notes
    -----
    With zero missed cleavages the regular (non Met-cleaved) spans tile the
    protein exactly.
    """
    protease.check_supported()
    if max_missed_cleavages < 0:
        raise ValueError(f"max_missed_cleavages must be >= 0: {max_missed_cleavages}")

    sites = protease.digestion_sites(protein.sequence)
    starts_with_met = protein.sequence[0] == 'M'

    for mc in range(max_missed_cleavages + 1):
        for i in range(len(sites) - mc - 1):
            start = sites[i] + 1
            end = sites[i + mc + 1]
            leading_met = i == 0 and starts_with_met

            # Intact
            if not leading_met or initiator_methionine_behavior.keeps_intact:
                if _length_ok(end - start + 1, min_length, max_length):
                    yield DigestedPeptide(protein, start, end, mc, "full")

            # Met cleaved
            if leading_met and initiator_methionine_behavior.keeps_cleaved and end >= 2:
                if _length_ok(end - 1, min_length, max_length):
                    yield DigestedPeptide(protein, 2, end, mc, MET_CLEAVED)

        for peptide in _proteolysis_product_peptides(protein, sites, mc):
            if _length_ok(peptide.length, min_length, max_length):
                yield peptide

