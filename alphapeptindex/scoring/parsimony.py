"""Protein parsimony by greedy set cover.

Given which proteins can explain each identified peptide, select a small
set of proteins that explains them all: repeatedly take the protein that
covers the most not-yet-covered peptides, until no protein adds anything.
This is the usual greedy approximation; the result is not guaranteed to be
the minimum set.
"""

import logging
from typing import Dict, Hashable, Iterable, Mapping, Set, TypeVar

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=Hashable)
Pep = TypeVar("Pep", bound=Hashable)


def apply_parsimony(peptide_to_proteins: Mapping[Pep, Iterable[P]]) -> Dict[P, Set[Pep]]:
    """Greedy minimal protein set covering all peptides.

    Parameters
    ----------
    peptide_to_proteins : Mapping[peptide, iterable of protein]
        Proteins able to explain each peptide

    Returns
    -------
    parsimony : Dict[protein, Set[peptide]]
        Selected proteins, each with all peptides it can explain

    Notes
    -----
    Among proteins covering the same number of new peptides, the first one
    in input order wins.

    Examples
    --------
    >>> apply_parsimony({"a": ["P1", "P2"], "b": ["P2"], "c": ["P3"]})
    {'P2': {'a', 'b'}, 'P3': {'c'}}
    """
    protein_to_peptides: Dict[P, Set[Pep]] = {}
    for peptide, proteins in peptide_to_proteins.items():
        for protein in proteins:
            protein_to_peptides.setdefault(protein, set()).add(peptide)

    parsimony: Dict[P, Set[Pep]] = {}
    covered: Set[Pep] = set()
    while True:
        best_protein = None
        best_new = 0
        for protein, peptides in protein_to_peptides.items():
            if protein in parsimony:
                continue
            n_new = len(peptides - covered)
            if n_new > best_new:
                best_protein = protein
                best_new = n_new
        if best_protein is None:
            break
        parsimony[best_protein] = protein_to_peptides[best_protein]
        covered |= protein_to_peptides[best_protein]

    logger.info(
        f"Parsimony: {len(parsimony):,} of {len(protein_to_peptides):,} proteins "
        f"explain {len(covered):,} peptides"
    )
    return parsimony


def unique_peptides(peptide_to_proteins: Mapping[Pep, Iterable[P]]) -> Set[Pep]:
    """Peptides explained by exactly one protein."""
    return {peptide for peptide, proteins in peptide_to_proteins.items() if len(set(proteins)) == 1}
