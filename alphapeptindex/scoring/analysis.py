"""Post-search analysis: protein mapping, target-decoy FDR and parsimony."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

import pandas as pd

from ..config import SearchParameters
from ..database.protein import Protein
from ..fragments.compact import CompactPeptide
from ..modifications import Modification
from ..search.results import SpectrumMatch
from .fdr import PsmWithFdr, compute_fdr, psms_to_dataframe
from .parsimony import apply_parsimony, unique_peptides
from .protein_mapping import PeptideToSources, is_decoy_peptide, map_peptides_to_proteins, proteins_of

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResults:
    """Outcome of ``analyze_matches`` for one search mode.

    Attributes
    ----------
    psms : List[PsmWithFdr]
        Matches sorted by descending score, with q-values
    peptide_to_sources : PeptideToSources
        Compact peptide → modified peptides (with proteins) producing it
    parsimony : Dict[Protein, Set[CompactPeptide]], optional
        Greedy minimal protein set (when requested)
    unique_peptides : Set[CompactPeptide], optional
        Peptides explained by exactly one protein (when parsimony ran)
    """

    psms: List[PsmWithFdr]
    peptide_to_sources: PeptideToSources
    parsimony: Optional[Dict[Protein, Set[CompactPeptide]]] = None
    unique_peptides: Optional[Set[CompactPeptide]] = field(default=None)

    def passing(self, q_value: float = 0.01) -> List[PsmWithFdr]:
        """Target matches at or below a q-value threshold."""
        return [p for p in self.psms if not p.is_decoy and p.q_value <= q_value]

    def to_dataframe(self) -> pd.DataFrame:
        return psms_to_dataframe(self.psms)


def _source_order(peptide):
    return (peptide.protein.accession, peptide.peptide.start, peptide.full_sequence)


def analyze_matches(
    matches: Sequence[Optional[SpectrumMatch]],
    proteins: Sequence[Protein],
    parameters: SearchParameters,
    fixed_modifications: Sequence[Modification] = (),
    variable_modifications: Sequence[Modification] = (),
    localizable_modifications: Sequence[Modification] = (),
    peptide_to_sources: Optional[PeptideToSources] = None,
    do_parsimony: bool = False,
) -> AnalysisResults:
    """Label, rank and FDR-annotate the matches of one search mode.

    Parameters
    ----------
    matches : sequence of SpectrumMatch or None
        One slot per scan, as returned by an engine
    proteins : sequence of Protein
        Searched database
    parameters : SearchParameters
        Search settings (for redigestion)
    fixed_modifications, variable_modifications, localizable_modifications : sequence of Modification
        Searched modification sets
    peptide_to_sources : PeptideToSources, optional
        Precomputed mapping (e.g. shared between search modes); must cover
        every matched peptide
    do_parsimony : bool
        Also compute the greedy protein set and unique peptides

    Returns
    -------
    results : AnalysisResults
    """
    kept = [m for m in matches if m is not None and m.score >= 1]
    kept.sort(key=lambda m: m.score, reverse=True)
    logger.info(f"Analyzing {len(kept):,} matches")

    if peptide_to_sources is None:
        peptide_to_sources = map_peptides_to_proteins(
            {m.peptide for m in kept},
            proteins,
            parameters,
            fixed_modifications,
            variable_modifications,
            localizable_modifications,
        )

    is_decoy = []
    peptides = []
    for match in kept:
        sources = peptide_to_sources.get(match.peptide, set())
        is_decoy.append(is_decoy_peptide(sources))
        peptides.append(tuple(sorted(sources, key=_source_order)))

    psms = compute_fdr(kept, is_decoy, peptides)
    results = AnalysisResults(psms=psms, peptide_to_sources=peptide_to_sources)

    if do_parsimony:
        identified = {m.peptide for m in kept}
        peptide_to_proteins = {}
        for compact in identified:
            sources = peptide_to_sources.get(compact, set())
            # Decoy-containing peptides keep only their decoy sources
            if is_decoy_peptide(sources):
                sources = {p for p in sources if p.protein.is_decoy}
            peptide_to_proteins[compact] = proteins_of(sources)
        results.parsimony = apply_parsimony(peptide_to_proteins)
        results.unique_peptides = unique_peptides(peptide_to_proteins)

    return results
