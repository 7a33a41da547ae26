"""Modification placement: fixed modifications and variable isoforms.

Two steps turn a digested span into modified peptides:

1. ``set_fixed_modifications`` places every applicable fixed modification
   (deterministic, one pass over the extended positions).
2. ``get_peptides_with_set_modifications`` collects, per extended position,
   the candidate variable and protein-localized modifications and
   enumerates every way to modify at most ``max_mods`` positions, lazily,
   stopping after ``max_isoforms`` isoforms.

Combinations are produced as immutable ``(position, choice)`` tuples and
turned into fresh pattern dictionaries; no array is shared between yields.

Extended positions: 0 protein N-term, 1 peptide N-term, 2..L+1 residues,
L+2 peptide C-term, L+3 protein C-term.
"""

from __future__ import annotations

from itertools import combinations, product
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..constants import ResidueMassTable
from ..modifications import (
    FixedModificationMap,
    Modification,
    ModificationType,
    UniqueModificationList,
)
from .digestion import DigestedPeptide

# One isoform: ((extended_position, index into that position's candidates), ...)
ModificationCombination = Tuple[Tuple[int, int], ...]


def set_fixed_modifications(
    peptide: DigestedPeptide,
    fixed_modifications: Iterable[Modification],
) -> FixedModificationMap:
    """Place fixed modifications on a digested peptide.

    Protein terminal modifications apply only where the span touches the
    protein terminus, peptide terminal ones at every peptide, residue ones
    wherever the target residue (or any residue, for wildcards) occurs.
    A position may collect several fixed modifications.

    Returns
    -------
    fixed : Dict[int, tuple of Modification]
        Extended position → modifications placed there
    """
    sequence = peptide.base_sequence
    length = len(sequence)
    first, last = sequence[0], sequence[-1]
    placed: Dict[int, List[Modification]] = {}

    for mod in fixed_modifications:
        kind = mod.modification_type
        if kind is ModificationType.PROTEIN_N_TERMINUS:
            if peptide.at_protein_n_terminus and mod.targets(first):
                placed.setdefault(0, []).append(mod)
        elif kind is ModificationType.PEPTIDE_N_TERMINUS:
            if mod.targets(first):
                placed.setdefault(1, []).append(mod)
        elif kind is ModificationType.RESIDUE:
            for r, residue in enumerate(sequence):
                if mod.targets(residue):
                    placed.setdefault(r + 2, []).append(mod)
        elif kind is ModificationType.PEPTIDE_C_TERMINUS:
            if mod.targets(last):
                placed.setdefault(length + 2, []).append(mod)
        elif kind is ModificationType.PROTEIN_C_TERMINUS:
            if peptide.at_protein_c_terminus and mod.targets(last):
                placed.setdefault(length + 3, []).append(mod)

    return {position: tuple(mods) for position, mods in sorted(placed.items())}


def candidate_modifications(
    peptide: DigestedPeptide,
    variable_modifications: Sequence[Modification],
    include_localized: bool = True,
) -> Dict[int, Tuple[Modification, ...]]:
    """Candidate variable modifications per extended position.

    Near-duplicate masses at one position are collapsed into one choice.
    Protein-localized modifications join the same candidate sets; on decoy
    proteins their terminus orientation is flipped.
    """
    sequence = peptide.base_sequence
    length = len(sequence)
    first, last = sequence[0], sequence[-1]
    candidates: Dict[int, UniqueModificationList] = {}

    def add(position: int, mod: Modification):
        candidates.setdefault(position, UniqueModificationList()).add(mod)

    for mod in variable_modifications:
        kind = mod.modification_type
        if kind is ModificationType.PROTEIN_N_TERMINUS:
            if peptide.at_protein_n_terminus and mod.targets(first):
                add(0, mod)
        elif kind is ModificationType.PEPTIDE_N_TERMINUS:
            if mod.targets(first):
                add(1, mod)
        elif kind is ModificationType.RESIDUE:
            for r, residue in enumerate(sequence):
                if mod.targets(residue):
                    add(r + 2, mod)
        elif kind is ModificationType.PEPTIDE_C_TERMINUS:
            if mod.targets(last):
                add(length + 2, mod)
        elif kind is ModificationType.PROTEIN_C_TERMINUS:
            if peptide.at_protein_c_terminus and mod.targets(last):
                add(length + 3, mod)

    if include_localized:
        is_decoy = peptide.protein.is_decoy
        for position, mods in peptide.localized_modifications.items():
            for mod in mods:
                kind = mod.oriented(is_decoy)
                if kind is ModificationType.RESIDUE:
                    add(position + 1, mod)
                elif position == 1 and kind is ModificationType.PROTEIN_N_TERMINUS:
                    if peptide.at_protein_n_terminus:
                        add(0, mod)
                elif position == 1 and kind is ModificationType.PEPTIDE_N_TERMINUS:
                    add(1, mod)
                elif position == length and kind is ModificationType.PEPTIDE_C_TERMINUS:
                    add(length + 2, mod)
                elif position == length and kind is ModificationType.PROTEIN_C_TERMINUS:
                    if peptide.at_protein_c_terminus:
                        add(length + 3, mod)

    return {position: mods.as_tuple() for position, mods in sorted(candidates.items()) if len(mods)}


def enumerate_modification_combinations(
    candidates: Dict[int, Tuple[Modification, ...]],
    max_mods: int,
) -> Iterator[ModificationCombination]:
    """All ways to modify at most ``max_mods`` candidate positions.

    Combinations come in order of increasing number of modified positions,
    the unmodified combination first. Each yielded value is a new tuple.
    """
    positions = sorted(candidates)
    for n_modified in range(min(max_mods, len(positions)) + 1):
        for chosen in combinations(positions, n_modified):
            choice_ranges = [range(len(candidates[position])) for position in chosen]
            for choices in product(*choice_ranges):
                yield tuple(zip(chosen, choices))


def get_peptides_with_set_modifications(
    peptide: DigestedPeptide,
    fixed: FixedModificationMap,
    variable_modifications: Sequence[Modification],
    max_isoforms: int,
    max_mods: int,
    localizable_modifications: Sequence[Modification] = (),
    mass_table: Optional[ResidueMassTable] = None,
):
    """Lazily enumerate the modified isoforms of a digested peptide.

    Parameters
    ----------
    peptide : DigestedPeptide
        Span to modify
    fixed : FixedModificationMap
        Output of ``set_fixed_modifications`` for this span
    variable_modifications : sequence of Modification
        Variable modifications to try everywhere they apply
    max_isoforms : int
        Hard cap on the number of isoforms yielded
    max_mods : int
        Largest number of variably modified positions per isoform
    localizable_modifications : sequence of Modification
        Modifications that may sit where the protein record lists them;
        empty means every localized modification of the protein is allowed
    mass_table : ResidueMassTable, optional
        Residue masses for the produced peptides

    Yields
    ------
    PeptideWithSetModifications
        One per combination, unmodified first, at most ``max_isoforms``
    """
    from ..fragments.peptide import PeptideWithSetModifications

    candidates = candidate_modifications(peptide, variable_modifications, include_localized=False)
    if peptide.protein.localized_modifications:
        localized = candidate_modifications(peptide, (), include_localized=True)
        allowed = set(localizable_modifications)
        for position, mods in localized.items():
            merged = UniqueModificationList()
            for mod in candidates.get(position, ()):
                merged.add(mod)
            for mod in mods:
                if not allowed or mod in allowed:
                    merged.add(mod)
            if len(merged):
                candidates[position] = merged.as_tuple()
        candidates = dict(sorted(candidates.items()))

    n_yielded = 0
    for combination in enumerate_modification_combinations(candidates, max_mods):
        if n_yielded >= max_isoforms:
            return
        variable = {position: candidates[position][choice] for position, choice in combination}
        yield PeptideWithSetModifications(peptide, fixed, variable, mass_table)
        n_yielded += 1
