"""AlphaPeptIndex - fragment-indexed peptide spectrum matching.

Digests protein databases into modified peptide candidates, indexes their
fragment masses, scores MS2 spectra (classic merge sweep or indexed lookup)
and estimates target-decoy FDR. Hot loops are Numba-compiled and release
the GIL, so partitions run concurrently on a thread pool.
"""

__version__ = "0.1.0"

# Import main submodules for convenient access
from alphapeptindex import constants
from alphapeptindex import modifications
from alphapeptindex import config
from alphapeptindex import database
from alphapeptindex import fragments
from alphapeptindex import search
from alphapeptindex import scoring

from alphapeptindex.config import SearchParameters, Tolerance
from alphapeptindex.constants import ResidueMassTable
from alphapeptindex.modifications import Modification, ModificationType
from alphapeptindex.database import Protein, Protease
from alphapeptindex.search import Ms2Scan
from alphapeptindex.convenience import search as run_search, SearchResults

__all__ = [
    "constants",
    "modifications",
    "config",
    "database",
    "fragments",
    "search",
    "scoring",
    "SearchParameters",
    "Tolerance",
    "ResidueMassTable",
    "Modification",
    "ModificationType",
    "Protein",
    "Protease",
    "Ms2Scan",
    "run_search",
    "SearchResults",
]
