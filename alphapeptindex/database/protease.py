"""Protease cleavage rules.

A protease is a named set of motifs that induce cleavage, motifs that block
it, the terminus it cuts on and its specificity class. Only fully specific
digestion is supported; the semi- and non-specific classes are rejected
when a digestion is requested.

Examples
--------
>>> trypsin = Protease.trypsin()
>>> trypsin.digestion_sites("PEPKPEPKRAA")
[0, 8, 9, 11]
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple


class TerminusType(Enum):
    """Side of the motif the protease cuts on."""
    N = "N"
    C = "C"


class CleavageSpecificity(Enum):
    """How strictly both peptide termini follow the cleavage rule."""
    FULL = "full"
    SEMI = "semi"
    SEMI_N = "semiN"
    SEMI_C = "semiC"
    NONE = "none"


class InitiatorMethionineBehavior(Enum):
    """What happens to a protein-leading methionine."""
    RETAIN = "retain"
    CLEAVE = "cleave"
    VARIABLE = "variable"

    @property
    def keeps_intact(self) -> bool:
        return self is not InitiatorMethionineBehavior.CLEAVE

    @property
    def keeps_cleaved(self) -> bool:
        return self is not InitiatorMethionineBehavior.RETAIN


@dataclass(frozen=True)
class Protease:
    """Immutable cleavage rule set.

    Attributes
    ----------
    name : str
        Protease name
    inducing_motifs : tuple of str
        Sequences that induce cleavage
    preventing_motifs : tuple of str
        Sequences that block cleavage when adjacent to the site
    cleavage_terminus : TerminusType
        C: cut after an inducing motif; N: cut before it
    specificity : CleavageSpecificity
        Specificity class
    """

    name: str
    inducing_motifs: Tuple[str, ...]
    preventing_motifs: Tuple[str, ...] = ()
    cleavage_terminus: TerminusType = TerminusType.C
    specificity: CleavageSpecificity = CleavageSpecificity.FULL

    def __post_init__(self):
        if not self.inducing_motifs and self.specificity is not CleavageSpecificity.NONE:
            raise ValueError(f"Protease {self.name} has no cleavage motifs")
        object.__setattr__(self, "inducing_motifs", tuple(m.upper() for m in self.inducing_motifs))
        object.__setattr__(self, "preventing_motifs", tuple(m.upper() for m in self.preventing_motifs))

    @classmethod
    def trypsin(cls) -> 'Protease':
        """Trypsin: cleaves after K/R, blocked by a following P."""
        return cls("trypsin", ("K", "R"), ("P",), TerminusType.C, CleavageSpecificity.FULL)

    def check_supported(self):
        """Raise unless digestion with this protease is implemented."""
        if self.specificity is not CleavageSpecificity.FULL:
            raise NotImplementedError(
                f"Cleavage specificity '{self.specificity.value}' of protease "
                f"{self.name} is not supported; only full specificity is implemented"
            )

    def _induces(self, sequence: str, i: int, motif: str) -> bool:
        if self.cleavage_terminus is TerminusType.N:
            start = i + 1
            return start + len(motif) <= len(sequence) and sequence[start:start + len(motif)] == motif
        start = i - len(motif) + 1
        return start >= 0 and sequence[start:i + 1] == motif

    def _prevents(self, sequence: str, i: int, motif: str) -> bool:
        if self.cleavage_terminus is TerminusType.N:
            start = i - len(motif) + 1
            return start >= 0 and sequence[start:i + 1] == motif
        start = i + 1
        return start + len(motif) <= len(sequence) and sequence[start:start + len(motif)] == motif

    def digestion_sites(self, sequence: str) -> List[int]:
        """1-based residue indices the protease cleaves after.

        The list is sorted and always starts with 0 and ends with
        ``len(sequence)``, so consecutive entries bound the fully cleaved
        peptides.
        """
        sequence = sequence.upper()
        sites = [0]
        for i in range(len(sequence) - 1):
            for motif in self.inducing_motifs:
                if self._induces(sequence, i, motif) and not any(
                    self._prevents(sequence, i, blocker) for blocker in self.preventing_motifs
                ):
                    sites.append(i + 1)
                    break
        sites.append(len(sequence))
        return sites

    def __str__(self) -> str:
        return self.name
