"""Protein database handling: proteases, digestion, isoforms and decoys.

Proteins are digested into peptide spans, fixed modifications are placed
deterministically and variable modification isoforms are enumerated lazily
under per-peptide caps. Reverse decoys are generated on the fly.
"""

from .protease import (
    CleavageSpecificity,
    InitiatorMethionineBehavior,
    Protease,
    TerminusType,
)

from .protein import (
    Protein,
    ProteolysisProduct,
)

from .digestion import (
    DigestedPeptide,
    digest,
)

from .isoforms import (
    ModificationCombination,
    candidate_modifications,
    enumerate_modification_combinations,
    get_peptides_with_set_modifications,
    set_fixed_modifications,
)

from .decoys import (
    DECOY_PREFIX,
    generate_reverse_decoy,
    generate_decoys,
)

__all__ = [
    # Proteases
    'CleavageSpecificity',
    'InitiatorMethionineBehavior',
    'Protease',
    'TerminusType',

    # Proteins
    'Protein',
    'ProteolysisProduct',

    # Digestion
    'DigestedPeptide',
    'digest',

    # Modification isoforms
    'ModificationCombination',
    'candidate_modifications',
    'enumerate_modification_combinations',
    'get_peptides_with_set_modifications',
    'set_fixed_modifications',

    # Decoy generation
    'DECOY_PREFIX',
    'generate_reverse_decoy',
    'generate_decoys',
]
