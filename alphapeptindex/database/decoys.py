"""Reverse decoy proteins for target-decoy FDR control.

Decoys are generated on the fly from the target database:
- The sequence is reversed, a leading initiator methionine stays in place
- Localized modification positions follow their residues
- Chain/propeptide annotations are mirrored
- Accessions get a ``DECOY_`` prefix

Reversal preserves amino acid composition and precursor mass while
inverting the fragmentation pattern.
"""

import logging
from typing import List

from .protein import Protein, ProteolysisProduct

logger = logging.getLogger(__name__)

DECOY_PREFIX = "DECOY_"


def generate_reverse_decoy(protein: Protein) -> Protein:
    """Generate a decoy protein by reversing its sequence.

    Parameters
    ----------
    protein : Protein
        Target protein

    Returns
    -------
    decoy : Protein
        Reversed protein, ``is_decoy=True``

    Examples
    --------
    >>> generate_reverse_decoy(Protein("MPEPTIDEK", "P1")).sequence
    'MKEDITPEP'
    >>> generate_reverse_decoy(Protein("PEPTIDEK", "P2")).sequence
    'KEDITPEP'

    Notes
    -----
    Modification positions (1-based) are remapped as ``1 → 1`` and
    ``k → L - k + 2`` when the methionine is kept, ``k → L - k + 1``
    otherwise, so every modification stays on the residue it was on.
    """
    sequence = protein.sequence
    length = len(sequence)
    keep_met = sequence.startswith('M')

    if keep_met:
        reversed_sequence = sequence[0] + sequence[:0:-1]
    else:
        reversed_sequence = sequence[::-1]

    decoy_modifications = {}
    for position, mods in protein.localized_modifications.items():
        if keep_met:
            new_position = 1 if position == 1 else length - position + 2
        else:
            new_position = length - position + 1
        decoy_modifications[new_position] = mods

    decoy_products = tuple(
        ProteolysisProduct(length - product.end + 1, length - product.begin + 1, product.product_type)
        for product in reversed(protein.proteolysis_products)
    )

    return Protein(
        sequence=reversed_sequence,
        accession=DECOY_PREFIX + protein.accession,
        is_decoy=True,
        localized_modifications=decoy_modifications,
        proteolysis_products=decoy_products,
    )


def generate_decoys(proteins: List[Protein]) -> List[Protein]:
    """Target proteins followed by one reverse decoy per target.

    Parameters
    ----------
    proteins : List[Protein]
        Target proteins (entries already flagged as decoys are not reversed again)

    Returns
    -------
    database : List[Protein]
        Targets in input order, then their decoys in the same order
    """
    targets = [p for p in proteins if not p.is_decoy]
    logger.info(f"Generating {len(targets):,} reverse decoy proteins...")

    decoys = [generate_reverse_decoy(p) for p in targets]

    logger.info(f"✓ Generated {len(decoys):,} decoys")
    return list(proteins) + decoys
