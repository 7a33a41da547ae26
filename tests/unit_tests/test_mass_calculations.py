"""Unit tests for mass constants, the residue mass table and tolerances."""

import math

import numpy as np
import pytest

from alphapeptindex.config import SearchParameters, Tolerance, ToleranceUnit
from alphapeptindex.constants import (
    AA_MASSES_DICT,
    C_ION_OFFSET,
    H2O_MASS,
    HYDROGEN_MASS,
    NITROGEN_MASS,
    OXYGEN_MASS,
    PROTON_MASS,
    STANDARD_MASS_TABLE,
    ZDOT_ION_OFFSET,
    ResidueMassTable,
)
from alphapeptindex.fragments.generator import ProductType


class TestConstants:
    """Test physical constants are correct."""

    def test_proton_mass_correct(self):
        """PROTON_MASS is the proton, not the hydrogen atom."""
        assert abs(PROTON_MASS - 1.007276466622) < 1e-10
        assert HYDROGEN_MASS - PROTON_MASS == pytest.approx(0.000548579, abs=1e-6)

    def test_h2o_mass(self):
        """Water is two hydrogens and one oxygen."""
        assert H2O_MASS == pytest.approx(2 * HYDROGEN_MASS + OXYGEN_MASS, abs=1e-6)

    def test_ion_offsets(self):
        """c and z-dot offsets follow the backbone formulas."""
        assert C_ION_OFFSET == pytest.approx(17.026549, abs=1e-5)
        assert ZDOT_ION_OFFSET == pytest.approx(OXYGEN_MASS - NITROGEN_MASS)


class TestResidueMassTable:
    """Test the validated residue mass table."""

    def test_standard_table(self):
        """Standard table holds the 20 residues plus U and O."""
        table = ResidueMassTable.standard()
        for aa in "ACDEFGHIKLMNPQRSTVWYUO":
            assert aa in table
        assert table.mass('G') == 57.021464
        assert table == STANDARD_MASS_TABLE

    def test_ord_array(self):
        """ord() array has masses for known codes and NaN elsewhere."""
        array = STANDARD_MASS_TABLE.ord_array
        assert array.shape == (256,)
        assert array[ord('K')] == AA_MASSES_DICT['K']
        assert np.isnan(array[ord('B')])
        assert not array.flags.writeable

    def test_sequence_mass(self):
        """Sequence mass is the sum of residue masses."""
        expected = sum(AA_MASSES_DICT[aa] for aa in "PEPTIDE")
        assert STANDARD_MASS_TABLE.sequence_mass("PEPTIDE") == pytest.approx(expected)
        assert len(STANDARD_MASS_TABLE.residue_masses("PEPTIDE")) == 7

    def test_unknown_residue(self):
        """Asking for an unknown residue raises."""
        with pytest.raises(ValueError):
            STANDARD_MASS_TABLE.mass('X')

    @pytest.mark.parametrize("entry", [
        {'a': 71.0},
        {'AB': 71.0},
        {'1': 71.0},
        {'A': -1.0},
        {'A': math.nan},
        {'A': math.inf},
    ])
    def test_malformed_entries(self, entry):
        """Malformed codes and masses fail at construction."""
        with pytest.raises(ValueError):
            ResidueMassTable(entry)

    def test_empty_table(self):
        """An empty table is a configuration error."""
        with pytest.raises(ValueError):
            ResidueMassTable({})

    def test_custom_table_is_independent(self):
        """A custom table does not change the standard one."""
        heavy = ResidueMassTable({**AA_MASSES_DICT, 'K': AA_MASSES_DICT['K'] + 8.014199})
        assert heavy.mass('K') != STANDARD_MASS_TABLE.mass('K')
        assert STANDARD_MASS_TABLE.mass('K') == AA_MASSES_DICT['K']


class TestTolerance:
    """Test absolute and ppm tolerances."""

    def test_absolute(self):
        """Absolute tolerance is a fixed window."""
        tol = Tolerance.from_absolute(0.01)
        assert tol.within(500.009, 500.0)
        assert not tol.within(500.011, 500.0)
        assert tol.get_range(500.0) == pytest.approx((499.99, 500.01))

    def test_ppm_relative_to_theoretical(self):
        """ppm window scales with the theoretical mass."""
        tol = Tolerance.from_ppm(10)
        assert tol.unit is ToleranceUnit.PPM
        assert tol.width(1000.0) == pytest.approx(0.01)
        assert tol.within(1000.0099, 1000.0)
        assert not tol.within(1000.0101, 1000.0)

    def test_invalid_tolerance(self):
        """Negative or non-finite tolerances raise."""
        with pytest.raises(ValueError):
            Tolerance(-0.01)
        with pytest.raises(ValueError):
            Tolerance(math.nan)


class TestSearchParameters:
    """Test parameter defaults and validation."""

    def test_defaults(self):
        """Defaults describe a standard tryptic b/y search."""
        params = SearchParameters()
        assert params.max_missed_cleavages == 2
        assert params.max_isoforms_per_peptide == 4098
        assert params.max_mods_per_peptide == 3
        assert params.product_types == (ProductType.B, ProductType.Y)
        assert params.product_mass_tolerance.value == 0.01
        assert params.protease.name == "trypsin"
        assert params.n_threads == 4

    def test_open_search_factory(self):
        """Open search parameters enumerate fewer isoforms."""
        params = SearchParameters.for_open_search()
        assert params.max_isoforms_per_peptide == 1024
        assert params.max_mods_per_peptide == 2

    @pytest.mark.parametrize("kwargs", [
        {"max_missed_cleavages": -1},
        {"max_isoforms_per_peptide": 0},
        {"max_mods_per_peptide": -1},
        {"min_peptide_length": 0},
        {"min_peptide_length": 10, "max_peptide_length": 5},
        {"product_types": ()},
        {"max_peaks_per_scan": 0},
        {"n_threads": 0},
    ])
    def test_invalid_values(self, kwargs):
        """Invalid settings fail at construction."""
        with pytest.raises(ValueError):
            SearchParameters(**kwargs)

    def test_unsupported_product_type(self):
        """Product types without a mass rule are rejected."""
        with pytest.raises(NotImplementedError):
            SearchParameters(product_types=(ProductType.B, ProductType.ADOT))
