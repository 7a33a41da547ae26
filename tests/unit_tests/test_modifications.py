"""Unit tests for modification records and typed modification patterns."""

import pytest

from alphapeptindex.constants import OXIDATION_MASS, PHOSPHO_MASS
from alphapeptindex.modifications import (
    Modification,
    ModificationType,
    UniqueModificationList,
    fragment_shifts_by_position,
    index_modifications,
    render_sequence,
    total_mass_shift,
)


class TestModification:
    """Test the modification record."""

    def test_targets(self):
        """Targeted modifications match only their residue, wildcards match all."""
        ox = Modification("Oxidation", ModificationType.RESIDUE, 'M', OXIDATION_MASS)
        anywhere = Modification("Delta", ModificationType.RESIDUE, None, 1.0)
        assert ox.targets('M')
        assert not ox.targets('K')
        assert anywhere.targets('K')

    def test_invalid_target(self):
        """Lowercase or multi-letter targets raise."""
        with pytest.raises(ValueError):
            Modification("Bad", ModificationType.RESIDUE, 'm', 1.0)
        with pytest.raises(ValueError):
            Modification("Bad", ModificationType.RESIDUE, 'MK', 1.0)

    def test_labile_fragment_shift(self):
        """Labile modifications carry no mass into fragments."""
        phospho = Modification("Phospho", ModificationType.RESIDUE, 'S', PHOSPHO_MASS, is_labile=True)
        assert phospho.fragment_mass_shift == 0.0
        assert phospho.mass_shift == PHOSPHO_MASS

    def test_orientation_on_decoys(self):
        """Terminus classes swap on reversed sequences, residues do not."""
        nterm = Modification("Acetyl", ModificationType.PEPTIDE_N_TERMINUS, None, 42.0)
        prot_c = Modification("Amid", ModificationType.PROTEIN_C_TERMINUS, None, -0.98)
        res = Modification("Ox", ModificationType.RESIDUE, 'M', OXIDATION_MASS)
        assert nterm.oriented(True) is ModificationType.PEPTIDE_C_TERMINUS
        assert nterm.oriented(False) is ModificationType.PEPTIDE_N_TERMINUS
        assert prot_c.oriented(True) is ModificationType.PROTEIN_N_TERMINUS
        assert res.oriented(True) is ModificationType.RESIDUE


class TestUniqueModificationList:
    """Test near-duplicate mass collapsing."""

    def test_near_duplicates_dropped(self):
        """Masses closer than the epsilon collapse onto the first one."""
        first = Modification("Ox", ModificationType.RESIDUE, 'M', 15.994915)
        second = Modification("Ox2", ModificationType.RESIDUE, 'M', 15.9952)
        third = Modification("Diox", ModificationType.RESIDUE, 'M', 31.989829)
        mods = UniqueModificationList()
        assert mods.add(first)
        assert not mods.add(second)
        assert mods.add(third)
        assert mods.as_tuple() == (first, third)


class TestPatterns:
    """Test pattern sums, per-position shifts and rendering."""

    @pytest.fixture
    def mods(self):
        return {
            "cam": Modification("Carbamidomethyl", ModificationType.RESIDUE, 'C', 57.021464),
            "ox": Modification("Oxidation", ModificationType.RESIDUE, 'M', OXIDATION_MASS),
            "ac": Modification("Acetyl", ModificationType.PEPTIDE_N_TERMINUS, None, 42.010565),
            "phospho": Modification("Phospho", ModificationType.RESIDUE, 'S', PHOSPHO_MASS, is_labile=True),
        }

    def test_total_mass_shift(self, mods):
        """Fixed and variable shifts add up, labile ones included."""
        fixed = {3: (mods["cam"],)}
        variable = {4: mods["ox"], 5: mods["phospho"]}
        expected = 57.021464 + OXIDATION_MASS + PHOSPHO_MASS
        assert total_mass_shift(fixed, variable) == pytest.approx(expected)

    def test_fragment_shifts_skip_labile(self, mods):
        """Per-position shifts have length L+4 and leave labile mass out."""
        shifts = fragment_shifts_by_position(4, {1: (mods["ac"],)}, {5: mods["phospho"]})
        assert len(shifts) == 8
        assert shifts[1] == pytest.approx(42.010565)
        assert shifts[5] == 0.0

    def test_render_sequence(self, mods):
        """Fixed render in brackets, variable in parentheses, after their site."""
        rendered = render_sequence("ACMSK", {1: (mods["ac"],), 3: (mods["cam"],)}, {4: mods["ox"]})
        assert rendered == "[Acetyl]AC[Carbamidomethyl]M(Oxidation)SK"

    def test_index_modifications(self, mods):
        """Slots are 1-based in first-seen order, duplicates ignored."""
        slots = index_modifications([mods["ox"], mods["phospho"], mods["ox"]])
        assert slots == {mods["ox"]: 1, mods["phospho"]: 2}
