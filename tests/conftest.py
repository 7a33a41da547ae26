"""Pytest configuration for AlphaPeptIndex tests.

Common fixtures: trypsin, a small protein database, the usual
modifications and factories for modified peptides and synthetic spectra.
Everything is computed in memory; no files are read.
"""

import numpy as np
import pytest

from alphapeptindex.config import SearchParameters
from alphapeptindex.constants import (
    CARBAMIDOMETHYL_MASS,
    OXIDATION_MASS,
    PHOSPHO_MASS,
    PROTON_MASS,
)
from alphapeptindex.database.digestion import DigestedPeptide
from alphapeptindex.database.isoforms import set_fixed_modifications
from alphapeptindex.database.protease import Protease
from alphapeptindex.database.protein import Protein
from alphapeptindex.fragments.generator import ProductType
from alphapeptindex.fragments.peptide import PeptideWithSetModifications
from alphapeptindex.modifications import Modification, ModificationType
from alphapeptindex.search.spectra import Ms2Scan


@pytest.fixture
def trypsin():
    return Protease.trypsin()


@pytest.fixture
def carbamidomethyl():
    """Fixed carbamidomethylation of C."""
    return Modification("Carbamidomethyl", ModificationType.RESIDUE, 'C', CARBAMIDOMETHYL_MASS)


@pytest.fixture
def oxidation():
    """Variable oxidation of M."""
    return Modification("Oxidation", ModificationType.RESIDUE, 'M', OXIDATION_MASS)


@pytest.fixture
def labile_phospho():
    """Phosphorylation of S that is lost on fragmentation."""
    return Modification("Phospho", ModificationType.RESIDUE, 'S', PHOSPHO_MASS, is_labile=True)


@pytest.fixture
def small_proteins():
    """Three target proteins with well separated tryptic peptides."""
    return [
        Protein("MPEPTIDEKAAGRYGGFMTSEKLLCDNAAGKWW", "P00001"),
        Protein("SAMPLERTESTPEPTIDERGGHHNMCK", "P00002"),
        Protein("LGEHNIDVLEGNEQFINAAKVVSSQR", "P00003"),
    ]


@pytest.fixture
def search_parameters():
    """Default tryptic search on two threads."""
    return SearchParameters(n_threads=2)


@pytest.fixture
def peptide_factory():
    """Build a modified peptide spanning a whole one-peptide protein.

    Usage: ``peptide_factory("PEPTIDEK", fixed=[cam], variable={5: ox})``
    """
    def make(sequence, fixed=(), variable=None, accession="TEST", is_decoy=False):
        protein = Protein(sequence, accession, is_decoy=is_decoy)
        span = DigestedPeptide(protein, 1, len(sequence))
        fixed_map = set_fixed_modifications(span, fixed)
        return PeptideWithSetModifications(span, fixed_map, variable or {})
    return make


@pytest.fixture
def scan_factory():
    """Synthetic MS2 scan holding every singly protonated product ion.

    Usage: ``scan_factory(peptide, scan_number=3, charge=2, mass_shift=0.0)``
    """
    def make(
        peptide,
        scan_number=1,
        charge=2,
        product_types=(ProductType.B, ProductType.Y),
        intensity=100.0,
        mass_shift=0.0,
        retention_time=10.0,
    ):
        masses = peptide.fast_sorted_product_masses(product_types)
        mz = masses + PROTON_MASS
        precursor_mass = peptide.monoisotopic_mass + mass_shift
        return Ms2Scan(
            one_based_scan_number=scan_number,
            mz=mz,
            intensity=np.full(len(mz), intensity),
            precursor_mz=precursor_mass / charge + PROTON_MASS,
            precursor_charge=charge,
            retention_time=retention_time,
        )
    return make


# Random seed for reproducibility
@pytest.fixture(scope="session", autouse=True)
def set_random_seed():
    """Set random seed for reproducible tests."""
    np.random.seed(42)
