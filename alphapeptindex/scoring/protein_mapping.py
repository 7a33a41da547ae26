"""Map matched compact peptides back to their source proteins.

Compact peptides carry no protein or sequence. To report them, the database
is redigested without deduplication and every modified peptide is grouped
under the ``CompactPeptide`` it produces (equal mass and equal cumulative
fragment arrays). A compact peptide is a decoy if any of its sources comes
from a decoy protein.
"""

import logging
import threading
from typing import Dict, Iterable, Sequence, Set

from ..config import SearchParameters
from ..database.protein import Protein
from ..fragments.compact import CompactPeptide
from ..fragments.peptide import PeptideWithSetModifications
from ..modifications import Modification
from ..parallel import run_partitioned
from ..search.indexing import PeptideEnumerator

logger = logging.getLogger(__name__)

PeptideToSources = Dict[CompactPeptide, Set[PeptideWithSetModifications]]


def map_peptides_to_proteins(
    compact_peptides: Iterable[CompactPeptide],
    proteins: Sequence[Protein],
    parameters: SearchParameters,
    fixed_modifications: Sequence[Modification] = (),
    variable_modifications: Sequence[Modification] = (),
    localizable_modifications: Sequence[Modification] = (),
) -> PeptideToSources:
    """Every modified peptide of the database producing each compact peptide.

    Parameters
    ----------
    compact_peptides : iterable of CompactPeptide
        Peptides to resolve (typically the winners of a search)
    proteins : sequence of Protein
        Database used for the search
    parameters : SearchParameters
        Same digestion and enumeration settings as the search
    fixed_modifications, variable_modifications, localizable_modifications : sequence of Modification
        Same modification sets as the search

    Returns
    -------
    mapping : Dict[CompactPeptide, Set[PeptideWithSetModifications]]
        One entry per distinct input peptide (possibly with an empty set)
    """
    mapping: PeptideToSources = {peptide: set() for peptide in compact_peptides}
    if not mapping:
        return mapping

    logger.info(f"Mapping {len(mapping):,} peptides to {len(proteins):,} proteins...")

    enumerator = PeptideEnumerator(
        parameters,
        fixed_modifications,
        variable_modifications,
        localizable_modifications,
        deduplicate=False,
    )
    wanted_masses = {round(p.monoisotopic_mass, 6) for p in mapping}
    mapping_lock = threading.Lock()

    def map_partition(start: int, end: int) -> int:
        local: PeptideToSources = {}
        for protein in proteins[start:end]:
            for isoform in enumerator.isoforms(protein):
                if round(isoform.monoisotopic_mass, 6) not in wanted_masses:
                    continue
                compact = enumerator.compact(isoform)
                if compact in mapping:
                    local.setdefault(compact, set()).add(isoform)
        with mapping_lock:
            for compact, sources in local.items():
                mapping[compact].update(sources)
        return len(local)

    for _ in run_partitioned(map_partition, len(proteins), parameters.n_threads):
        pass

    n_unmapped = sum(1 for sources in mapping.values() if not sources)
    if n_unmapped:
        logger.warning(f"  {n_unmapped:,} peptides have no source in the database")
    return mapping


def is_decoy_peptide(sources: Iterable[PeptideWithSetModifications]) -> bool:
    """True if any source peptide comes from a decoy protein."""
    return any(p.protein.is_decoy for p in sources)


def proteins_of(sources: Iterable[PeptideWithSetModifications]) -> Set[Protein]:
    return {p.protein for p in sources}
