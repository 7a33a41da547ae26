"""Fragment index: rounded fragment mass → peptides producing it.

The protein database is digested in parallel partitions. Every searchable
span gets its fixed modifications, then its variable isoforms are
enumerated; duplicates are dropped with two shared observation sets:

- ``level3``: I/L-collapsed base sequences, for spans without localized
  modifications (checked before any isoform is built)
- ``level4``: full annotated sequences, for isoforms of spans with
  localized modifications

Surviving isoforms become ``CompactPeptide`` objects appended to one global
list (the append position is the permanent peptide index). Each partition
fills a thread-local ``{rounded mass: [peptide index]}`` map that is merged
into the shared map once, at the end.

Storage is CSR-like: ascending ``keys``, bucket ``offsets`` and
concatenated ``peptide_indices``, ready for the Numba lookup kernel.

Examples
--------
>>> index = build_index(proteins, SearchParameters(), fixed_modifications=[carbamidomethyl])
>>> len(index), index.n_keys
"""

import logging
import threading
from typing import Dict, Iterator, List, Mapping, Optional, Sequence

import numpy as np

from ..config import SearchParameters
from ..database.digestion import digest
from ..database.isoforms import get_peptides_with_set_modifications, set_fixed_modifications
from ..database.protein import Protein
from ..fragments.compact import CompactPeptide
from ..fragments.peptide import PeptideWithSetModifications
from ..modifications import Modification, index_modifications
from ..parallel import run_partitioned

logger = logging.getLogger(__name__)


# =============================================================================
# Shared Peptide Enumeration
# =============================================================================

class PeptideEnumerator:
    """Digest, modify and deduplicate peptides across worker threads.

    One instance is shared by all partitions of a run; its observation sets
    are guarded by one lock each.

    Parameters
    ----------
    parameters : SearchParameters
        Digestion and enumeration settings
    fixed_modifications, variable_modifications, localizable_modifications : sequence of Modification
        Modification sets for the run
    deduplicate : bool
        Apply the level3/level4 observation sets (off for protein mapping,
        where every source of a peptide is wanted)
    """

    def __init__(
        self,
        parameters: SearchParameters,
        fixed_modifications: Sequence[Modification] = (),
        variable_modifications: Sequence[Modification] = (),
        localizable_modifications: Sequence[Modification] = (),
        deduplicate: bool = True,
    ):
        self.parameters = parameters
        self.fixed_modifications = tuple(fixed_modifications)
        self.variable_modifications = tuple(variable_modifications)
        self.localizable_modifications = tuple(localizable_modifications)
        self.deduplicate = deduplicate
        self.slots = index_modifications(self.variable_modifications + self.localizable_modifications)

        self.level3_observed = set()
        self.level4_observed = set()
        self._level3_lock = threading.Lock()
        self._level4_lock = threading.Lock()

    def _first_observation(self, observed: set, lock: threading.Lock, key: str) -> bool:
        with lock:
            if key in observed:
                return False
            observed.add(key)
            return True

    def isoforms(self, protein: Protein) -> Iterator[PeptideWithSetModifications]:
        """All new modified peptides of one protein."""
        params = self.parameters
        for peptide in digest(
            protein,
            params.protease,
            params.max_missed_cleavages,
            params.initiator_methionine_behavior,
            params.min_peptide_length,
            params.max_peptide_length,
        ):
            if not peptide.is_searchable():
                continue

            has_localized = bool(peptide.localized_modifications)
            if self.deduplicate and not has_localized:
                if not self._first_observation(self.level3_observed, self._level3_lock, peptide.leucine_sequence):
                    continue

            fixed = set_fixed_modifications(peptide, self.fixed_modifications)
            for isoform in get_peptides_with_set_modifications(
                peptide,
                fixed,
                self.variable_modifications,
                params.max_isoforms_per_peptide,
                params.max_mods_per_peptide,
                self.localizable_modifications,
                params.mass_table,
            ):
                if self.deduplicate and has_localized:
                    if not self._first_observation(self.level4_observed, self._level4_lock, isoform.full_sequence):
                        continue
                yield isoform

    def compact(self, isoform: PeptideWithSetModifications) -> CompactPeptide:
        return isoform.to_compact(self.slots)


# =============================================================================
# Fragment Index
# =============================================================================

class FragmentIndex:
    """Inverted index from rounded fragment mass to peptide indices.

    Attributes
    ----------
    peptides : List[CompactPeptide]
        Indexed peptides; the list position is the peptide index
    keys : np.ndarray (float64)
        Distinct rounded fragment masses, ascending
    offsets : np.ndarray (int64)
        Bucket boundaries, length ``n_keys + 1``
    peptide_indices : np.ndarray (int32)
        Concatenated buckets
    peptide_masses : np.ndarray (float64)
        Precursor mass per peptide
    """

    def __init__(self, peptides: List[CompactPeptide], buckets: Mapping[float, List[int]]):
        self.peptides = list(peptides)
        n_peptides = len(self.peptides)

        keys = sorted(k for k, v in buckets.items() if v)
        self.keys = np.array(keys, dtype=np.float64)
        sizes = np.array([len(buckets[k]) for k in keys], dtype=np.int64)
        self.offsets = np.zeros(len(keys) + 1, dtype=np.int64)
        np.cumsum(sizes, out=self.offsets[1:])
        if keys:
            self.peptide_indices = np.concatenate(
                [np.asarray(buckets[k], dtype=np.int32) for k in keys]
            )
        else:
            self.peptide_indices = np.empty(0, dtype=np.int32)

        if len(self.peptide_indices) and (
            self.peptide_indices.min() < 0 or self.peptide_indices.max() >= n_peptides
        ):
            raise ValueError("Fragment index refers to peptides outside the peptide list")

        self.peptide_masses = np.array(
            [p.monoisotopic_mass for p in self.peptides], dtype=np.float64
        )
        self._mapping: Optional[Dict[float, List[int]]] = None

    def __len__(self) -> int:
        return len(self.peptides)

    @property
    def n_keys(self) -> int:
        return len(self.keys)

    def bucket(self, key_index: int) -> np.ndarray:
        return self.peptide_indices[self.offsets[key_index]:self.offsets[key_index + 1]]

    @property
    def fragment_mass_to_peptide_indices(self) -> Dict[float, List[int]]:
        """Dictionary view of the index (built on first access)."""
        if self._mapping is None:
            self._mapping = {
                float(key): self.bucket(k).tolist() for k, key in enumerate(self.keys)
            }
        return self._mapping

    def __repr__(self) -> str:
        return (
            f"FragmentIndex({len(self.peptides):,} peptides, {self.n_keys:,} keys, "
            f"{len(self.peptide_indices):,} entries)"
        )


def rounded_fragment_keys(peptide: CompactPeptide, product_types, decimals: int) -> np.ndarray:
    """Rounded product masses of one peptide, ascending (NaN dropped).

    Coincident ions keep one key each, so a peak matching both counts twice
    as it does in the merge sweep.
    """
    masses = peptide.product_masses(product_types)
    return np.sort(np.round(masses, decimals))


def build_index(
    proteins: Sequence[Protein],
    parameters: SearchParameters,
    fixed_modifications: Sequence[Modification] = (),
    variable_modifications: Sequence[Modification] = (),
    localizable_modifications: Sequence[Modification] = (),
) -> FragmentIndex:
    """Digest a protein database and build its fragment index.

    Parameters
    ----------
    proteins : sequence of Protein
        Database, targets and decoys
    parameters : SearchParameters
        Digestion, enumeration, product types, rounding and thread count
    fixed_modifications, variable_modifications, localizable_modifications : sequence of Modification
        Modification sets

    Returns
    -------
    index : FragmentIndex
        Peptide order follows parallel completion and varies between runs

    Raises
    ------
    ValueError
        If ``proteins`` is None
    """
    if proteins is None:
        raise ValueError("A protein database is required to build the index")

    logger.info(
        f"Building fragment index for {len(proteins):,} proteins "
        f"({parameters.n_threads} threads)..."
    )

    enumerator = PeptideEnumerator(
        parameters, fixed_modifications, variable_modifications, localizable_modifications
    )
    peptides: List[CompactPeptide] = []
    peptides_lock = threading.Lock()
    buckets: Dict[float, List[int]] = {}
    buckets_lock = threading.Lock()
    product_types = parameters.product_types
    decimals = parameters.fragment_mass_decimals

    def index_partition(start: int, end: int) -> int:
        local: Dict[float, List[int]] = {}
        n_local = 0
        for protein in proteins[start:end]:
            for isoform in enumerator.isoforms(protein):
                compact = enumerator.compact(isoform)
                with peptides_lock:
                    peptide_index = len(peptides)
                    peptides.append(compact)
                for key in rounded_fragment_keys(compact, product_types, decimals):
                    local.setdefault(float(key), []).append(peptide_index)
                n_local += 1

        with buckets_lock:
            for key, indices in local.items():
                buckets.setdefault(key, []).extend(indices)

        logger.debug(f"  Indexed proteins {start:,}-{end:,}: {n_local:,} peptides")
        return n_local

    for _ in run_partitioned(index_partition, len(proteins), parameters.n_threads):
        pass

    index = FragmentIndex(peptides, buckets)
    logger.info(
        f"✓ Fragment index: {len(index):,} peptides, {index.n_keys:,} fragment masses"
    )
    return index
