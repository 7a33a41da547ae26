"""One-call search API.

``search`` wires the whole pipeline together: optional on-the-fly decoys,
digestion and modification enumeration, the classic or the indexed engine,
then protein mapping, FDR and optional parsimony per search mode.

Use the engine functions directly for finer control (e.g. building one
fragment index and searching many runs against it).

Examples
--------
>>> results = search(proteins, scans, variable_modifications=[oxidation])
>>> best = results.analyses[0].passing(0.01)
>>> df = results.analyses[0].to_dataframe()

>>> # Classic engine, wide window
>>> results = search(proteins, scans, search_modes=[OpenSearchMode()], engine="classic")
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .config import SearchParameters
from .database.decoys import generate_decoys
from .database.protein import Protein
from .modifications import Modification
from .scoring.analysis import AnalysisResults, analyze_matches
from .scoring.protein_mapping import map_peptides_to_proteins
from .search.classic import classic_search
from .search.indexing import FragmentIndex, build_index
from .search.modern import modern_search
from .search.results import SpectrumMatch
from .search.search_modes import SearchMode, single_ppm_around_zero
from .search.spectra import Ms2Scan

logger = logging.getLogger(__name__)

DEFAULT_PRECURSOR_PPM = 5.0
ENGINES = ("modern", "classic")


@dataclass
class SearchResults:
    """Everything produced by ``search``.

    Attributes
    ----------
    search_modes : List[SearchMode]
        Modes in the order of ``matches`` and ``analyses``
    matches : List[List[Optional[SpectrumMatch]]]
        Per mode, one slot per input scan
    analyses : List[AnalysisResults]
        Per mode, FDR-annotated matches
    proteins : List[Protein]
        Searched database (targets and decoys)
    index : FragmentIndex, optional
        Fragment index (modern engine only)
    """

    search_modes: List[SearchMode]
    matches: List[List[Optional[SpectrumMatch]]]
    analyses: List[AnalysisResults]
    proteins: List[Protein]
    index: Optional[FragmentIndex] = None


def search(
    proteins: Sequence[Protein],
    scans: Sequence[Ms2Scan],
    parameters: Optional[SearchParameters] = None,
    search_modes: Optional[Sequence[SearchMode]] = None,
    fixed_modifications: Sequence[Modification] = (),
    variable_modifications: Sequence[Modification] = (),
    localizable_modifications: Sequence[Modification] = (),
    engine: str = "modern",
    add_decoys: bool = True,
    do_parsimony: bool = False,
) -> SearchResults:
    """Search spectra against a protein database and estimate FDR.

    Parameters
    ----------
    proteins : sequence of Protein
        Target proteins (decoys already present are kept as they are)
    scans : sequence of Ms2Scan
        Spectra to identify
    parameters : SearchParameters, optional
        Defaults to ``SearchParameters()``
    search_modes : sequence of SearchMode, optional
        Defaults to one 5 ppm window around zero
    fixed_modifications, variable_modifications, localizable_modifications : sequence of Modification
        Modification sets
    engine : str
        "modern" (fragment index) or "classic" (direct scoring)
    add_decoys : bool
        Append reversed decoys of every target
    do_parsimony : bool
        Run greedy protein parsimony in the analysis

    Returns
    -------
    results : SearchResults

    Raises
    ------
    ValueError
        Unknown engine, missing database or no spectra
    """
    if engine not in ENGINES:
        raise ValueError(f"Unknown engine: {engine}. Must be one of {ENGINES}")
    if proteins is None:
        raise ValueError("A protein database is required")
    if not scans:
        raise ValueError("No spectra to search")

    parameters = parameters or SearchParameters()
    modes = list(search_modes) if search_modes else [single_ppm_around_zero(DEFAULT_PRECURSOR_PPM)]
    database = generate_decoys(list(proteins)) if add_decoys else list(proteins)
    mods = (fixed_modifications, variable_modifications, localizable_modifications)

    logger.info(
        f"Searching {len(scans):,} scans against {len(database):,} proteins "
        f"with the {engine} engine"
    )

    index = None
    if engine == "modern":
        index = build_index(database, parameters, *mods)
        matches = modern_search(scans, index, modes, parameters)
    else:
        matches = [
            classic_search(scans, database, parameters, mode, *mods)
            for mode in modes
        ]

    # One redigestion serves every search mode
    winners = {m.peptide for mode_matches in matches for m in mode_matches if m is not None}
    peptide_to_sources = map_peptides_to_proteins(winners, database, parameters, *mods)

    analyses = [
        analyze_matches(
            mode_matches,
            database,
            parameters,
            *mods,
            peptide_to_sources=peptide_to_sources,
            do_parsimony=do_parsimony,
        )
        for mode_matches in matches
    ]

    return SearchResults(
        search_modes=modes,
        matches=matches,
        analyses=analyses,
        proteins=database,
        index=index,
    )
