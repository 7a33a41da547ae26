"""Statistical validation of spectrum matches.

This module provides:
- Target-decoy FDR with monotonic q-values
- Mapping of compact peptides back to proteins
- Greedy protein parsimony
- Localization rescoring of precursor mass differences
- The analysis step tying them together

Examples
--------
>>> from alphapeptindex.scoring import calculate_q_values
>>>
>>> is_decoy = np.array([False, False, True, False, True])
>>> cumulative_target, cumulative_decoy, q = calculate_q_values(is_decoy)
"""

from .fdr import (
    PsmWithFdr,
    calculate_q_values,
    compute_fdr,
    calculate_fdr_statistics,
    psms_to_dataframe,
)
from .protein_mapping import (
    map_peptides_to_proteins,
    is_decoy_peptide,
    proteins_of,
)
from .parsimony import (
    apply_parsimony,
    unique_peptides,
)
from .localization import localization_scores
from .analysis import (
    AnalysisResults,
    analyze_matches,
)

__all__ = [
    # FDR calculation
    "PsmWithFdr",
    "calculate_q_values",
    "compute_fdr",
    "calculate_fdr_statistics",
    "psms_to_dataframe",
    # Protein mapping
    "map_peptides_to_proteins",
    "is_decoy_peptide",
    "proteins_of",
    # Parsimony
    "apply_parsimony",
    "unique_peptides",
    # Localization
    "localization_scores",
    # Analysis
    "AnalysisResults",
    "analyze_matches",
]
