"""Search engines for peptide spectrum matching.

Two strategies share one scoring rule and one replacement rule:
1. Classic: enumerate peptides, visit scans inside the precursor window,
   score by a merge sweep
2. Modern: build a fragment index once, score each scan through it

Search modes decide which precursor/peptide mass pairs belong together.
"""

from .spectra import (
    Ms2Scan,
    sort_scans_by_precursor_mass,
)

from .search_modes import (
    AllowedInterval,
    SearchMode,
    DotSearchMode,
    IntervalSearchMode,
    FunctionSearchMode,
    OpenSearchMode,
    single_ppm_around_zero,
    single_absolute_around_zero,
)

from .fragment_matching import (
    match_ions,
    match_scan,
    score_peaks_against_index,
)

from .results import (
    SpectrumMatch,
    tie_break_rank,
    first_is_preferable_without_score,
    should_replace,
)

from .indexing import (
    FragmentIndex,
    PeptideEnumerator,
    build_index,
)

from .classic import classic_search
from .modern import modern_search

__all__ = [
    # Spectra
    'Ms2Scan',
    'sort_scans_by_precursor_mass',
    # Search modes
    'AllowedInterval',
    'SearchMode',
    'DotSearchMode',
    'IntervalSearchMode',
    'FunctionSearchMode',
    'OpenSearchMode',
    'single_ppm_around_zero',
    'single_absolute_around_zero',
    # Scoring kernels
    'match_ions',
    'match_scan',
    'score_peaks_against_index',
    # Results
    'SpectrumMatch',
    'tie_break_rank',
    'first_is_preferable_without_score',
    'should_replace',
    # Engines
    'FragmentIndex',
    'PeptideEnumerator',
    'build_index',
    'classic_search',
    'modern_search',
]
