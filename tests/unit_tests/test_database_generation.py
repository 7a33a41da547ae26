"""Unit tests for protease rules, digestion, isoform enumeration and decoys."""

import pytest

from alphapeptindex.constants import OXIDATION_MASS, PHOSPHO_MASS
from alphapeptindex.database import (
    CleavageSpecificity,
    DigestedPeptide,
    InitiatorMethionineBehavior,
    Protease,
    Protein,
    ProteolysisProduct,
    TerminusType,
    candidate_modifications,
    digest,
    generate_decoys,
    generate_reverse_decoy,
    get_peptides_with_set_modifications,
    set_fixed_modifications,
)
from alphapeptindex.modifications import Modification, ModificationType

VARIABLE = InitiatorMethionineBehavior.VARIABLE


def sequences(peptides):
    return [p.base_sequence for p in peptides]


class TestProtease:
    """Test cleavage site detection."""

    def test_trypsin_sites(self, trypsin):
        """Trypsin cuts after K/R unless followed by P."""
        assert trypsin.digestion_sites("PEPKPEPKRAA") == [0, 8, 9, 11]

    def test_terminal_residue_not_a_site(self, trypsin):
        """A C-terminal K only produces the end sentinel."""
        assert trypsin.digestion_sites("MPEPTIDEK") == [0, 9]

    def test_n_terminal_protease(self):
        """N-terminal proteases cut before the motif."""
        asp_n = Protease("Asp-N", ("D",), (), TerminusType.N)
        assert asp_n.digestion_sites("AADAAD") == [0, 2, 5, 6]

    def test_lowercase_motifs(self):
        """Motifs are compared case-insensitively."""
        protease = Protease("lys", ("k",))
        assert protease.inducing_motifs == ("K",)
        assert protease.digestion_sites("AKAA") == [0, 2, 4]

    def test_no_motifs(self):
        """A specific protease without motifs is a configuration error."""
        with pytest.raises(ValueError):
            Protease("empty", ())


class TestDigestion:
    """Test in silico digestion."""

    def test_initiator_methionine_variable(self, trypsin):
        """MPEPTIDEK yields the intact and the Met-cleaved peptide."""
        peptides = list(digest(Protein("MPEPTIDEK", "P1"), trypsin, 0, VARIABLE))
        assert set(sequences(peptides)) == {"MPEPTIDEK", "PEPTIDEK"}
        assert all(p.end == 9 for p in peptides)

    def test_initiator_methionine_retain_and_cleave(self, trypsin):
        """RETAIN keeps only the intact form, CLEAVE only the cleaved one."""
        protein = Protein("MPEPTIDEK", "P1")
        retained = digest(protein, trypsin, 0, InitiatorMethionineBehavior.RETAIN)
        cleaved = digest(protein, trypsin, 0, InitiatorMethionineBehavior.CLEAVE)
        assert sequences(retained) == ["MPEPTIDEK"]
        assert sequences(cleaved) == ["PEPTIDEK"]

    def test_zero_missed_cleavages_tile_protein(self, trypsin):
        """Without missed cleavages the spans tile the protein exactly."""
        protein = Protein("PEPTIDEKAAGRLLKWW", "P1")
        peptides = list(digest(protein, trypsin, 0, VARIABLE))
        assert "".join(sequences(peptides)) == protein.sequence
        for previous, current in zip(peptides, peptides[1:]):
            assert current.start == previous.end + 1

    def test_missed_cleavage_monotonicity(self, trypsin, small_proteins):
        """Allowing more missed cleavages only adds peptides."""
        for protein in small_proteins:
            previous = set()
            for mc in range(4):
                current = {(p.start, p.end) for p in digest(protein, trypsin, mc, VARIABLE)}
                assert previous <= current
                previous = current

    def test_missed_cleavage_counts(self, trypsin):
        """Peptides report their number of missed cleavages."""
        protein = Protein("PEPTIDEKAAGRLLKWW", "P1")
        peptides = list(digest(protein, trypsin, 1, VARIABLE))
        assert {p.base_sequence: p.missed_cleavages for p in peptides}["AAGRLLK"] == 1

    def test_length_window(self, trypsin):
        """Optional length limits filter spans."""
        protein = Protein("PEPTIDEKAAGRLLKWW", "P1")
        peptides = digest(protein, trypsin, 0, VARIABLE, min_length=3, max_length=4)
        assert sequences(peptides) == ["AAGR", "LLK"]

    def test_proteolysis_products(self, trypsin):
        """Chains yield start and end peptides bounded by the annotation."""
        protein = Protein(
            "PEPTIDEKAAGRLLKWW", "P1", proteolysis_products=(ProteolysisProduct(3, 12),)
        )
        peptides = [p for p in digest(protein, trypsin, 0, VARIABLE) if "chain" in p.description]
        assert [(p.base_sequence, p.description) for p in peptides] == [
            ("PTIDEK", "chain start"),
            ("AAGR", "chain end"),
        ]

    def test_unsupported_specificity(self):
        """Semi- and non-specific digestion are not implemented."""
        semi = Protease("semi-trypsin", ("K", "R"), ("P",), specificity=CleavageSpecificity.SEMI)
        with pytest.raises(NotImplementedError):
            list(digest(Protein("PEPTIDEK", "P1"), semi, 0, VARIABLE))

    def test_searchable_length_guard(self, trypsin):
        """Single residues are not searchable."""
        peptides = list(digest(Protein("KAPEPTIDEK", "P1"), trypsin, 0, VARIABLE))
        by_sequence = {p.base_sequence: p for p in peptides}
        assert not by_sequence["K"].is_searchable()
        assert by_sequence["APEPTIDEK"].is_searchable()

    def test_invalid_span(self):
        """Spans outside the protein raise."""
        with pytest.raises(ValueError):
            DigestedPeptide(Protein("PEPTIDEK", "P1"), 3, 12)


class TestIsoforms:
    """Test fixed placement and variable enumeration."""

    @pytest.fixture
    def ox(self):
        return Modification("Oxidation", ModificationType.RESIDUE, 'M', OXIDATION_MASS)

    def span(self, sequence, **kwargs):
        protein = Protein(sequence, "P1", **kwargs)
        return DigestedPeptide(protein, 1, len(sequence))

    def test_fixed_residue(self, carbamidomethyl):
        """Fixed residue modifications land on every target residue."""
        fixed = set_fixed_modifications(self.span("ACDCK"), [carbamidomethyl])
        assert fixed == {3: (carbamidomethyl,), 5: (carbamidomethyl,)}

    def test_protein_n_terminal_after_methionine(self, trypsin):
        """Protein N-term mods apply at start 1 and on the Met-cleaved span."""
        acetyl = Modification("Acetyl", ModificationType.PROTEIN_N_TERMINUS, None, 42.010565)
        protein = Protein("MPEPTIDEKAAGR", "P1")
        cleaved = digest(protein, trypsin, 0, InitiatorMethionineBehavior.CLEAVE)
        met_cleaved = [p for p in cleaved if p.start == 2]
        assert len(met_cleaved) == 1
        assert 0 in set_fixed_modifications(met_cleaved[0], [acetyl])
        assert 0 not in set_fixed_modifications(DigestedPeptide(protein, 10, 13), [acetyl])

    def test_protein_n_terminal_with_retained_methionine(self, trypsin):
        """A chain starting behind a retained M is not at the protein N-terminus."""
        acetyl = Modification("Acetyl", ModificationType.PROTEIN_N_TERMINUS, None, 42.010565)
        protein = Protein("MAAGKLLEDEK", "P1", proteolysis_products=(ProteolysisProduct(2, 11),))
        peptides = list(digest(protein, trypsin, 0, InitiatorMethionineBehavior.RETAIN))
        chain_start = [p for p in peptides if p.description == "chain start"]
        assert [(p.start, p.end) for p in chain_start] == [(2, 5)]
        assert not chain_start[0].at_protein_n_terminus
        assert 0 not in set_fixed_modifications(chain_start[0], [acetyl])
        intact = [p for p in peptides if p.start == 1]
        assert 0 in set_fixed_modifications(intact[0], [acetyl])

    def test_variable_enumeration(self, ox):
        """Two oxidizable methionines give four isoforms, unmodified first."""
        span = self.span("PEPMMK")
        isoforms = list(get_peptides_with_set_modifications(span, {}, [ox], 4098, 3))
        assert [p.full_sequence for p in isoforms] == [
            "PEPMMK",
            "PEPM(Oxidation)MK",
            "PEPMM(Oxidation)K",
            "PEPM(Oxidation)M(Oxidation)K",
        ]

    def test_max_mods_and_isoforms(self, ox):
        """Both caps truncate the enumeration."""
        span = self.span("PEPMMK")
        assert len(list(get_peptides_with_set_modifications(span, {}, [ox], 4098, 1))) == 3
        assert len(list(get_peptides_with_set_modifications(span, {}, [ox], 2, 3))) == 2

    def test_near_duplicate_mass_collapse(self, ox):
        """Variable mods within the mass epsilon count once per position."""
        twin = Modification("Oxidation2", ModificationType.RESIDUE, 'M', OXIDATION_MASS + 0.0003)
        isoforms = list(get_peptides_with_set_modifications(self.span("PEPMK"), {}, [ox, twin], 4098, 3))
        assert len(isoforms) == 2

    def test_wildcard_variable_modification(self):
        """A variable residue mod without a target may sit on any residue."""
        methyl = Modification("Methyl", ModificationType.RESIDUE, None, 14.01565)
        isoforms = list(get_peptides_with_set_modifications(self.span("PEPK"), {}, [methyl], 4098, 1))
        assert [p.full_sequence for p in isoforms] == [
            "PEPK",
            "P(Methyl)EPK",
            "PE(Methyl)PK",
            "PEP(Methyl)K",
            "PEPK(Methyl)",
        ]

    def test_isoforms_do_not_share_patterns(self, ox):
        """Each isoform owns its variable pattern."""
        isoforms = list(get_peptides_with_set_modifications(self.span("PEPMMK"), {}, [ox], 4098, 3))
        patterns = [dict(p.variable) for p in isoforms]
        assert patterns == [{}, {5: ox}, {6: ox}, {5: ox, 6: ox}]

    def test_localized_modifications(self):
        """Protein-localized modifications join the candidates."""
        phospho = Modification("Phospho", ModificationType.RESIDUE, 'S', PHOSPHO_MASS)
        span = self.span("PEPSTIDEK", localized_modifications={4: (phospho,)})
        isoforms = list(get_peptides_with_set_modifications(span, {}, [], 4098, 3))
        assert [p.full_sequence for p in isoforms] == ["PEPSTIDEK", "PEPS(Phospho)TIDEK"]

    def test_localizable_filter(self):
        """Localized modifications outside the allowed list are ignored."""
        phospho = Modification("Phospho", ModificationType.RESIDUE, 'S', PHOSPHO_MASS)
        other = Modification("Methyl", ModificationType.RESIDUE, 'K', 14.01565)
        span = self.span("PEPSTIDEK", localized_modifications={4: (phospho,)})
        isoforms = list(get_peptides_with_set_modifications(span, {}, [], 4098, 3, [other]))
        assert [p.full_sequence for p in isoforms] == ["PEPSTIDEK"]

    def test_decoy_orientation(self):
        """On decoys a localized N-terminal mod sits at the C-terminal end."""
        nterm = Modification("Formyl", ModificationType.PEPTIDE_N_TERMINUS, None, 27.994915)
        target = self.span("PEPTIDEG", localized_modifications={8: (nterm,)})
        decoy = self.span("PEPTIDEG", is_decoy=True, localized_modifications={8: (nterm,)})
        assert candidate_modifications(target, ()) == {}
        assert candidate_modifications(decoy, ()) == {10: (nterm,)}


class TestDecoys:
    """Test reverse decoy generation."""

    def test_reverse_keeps_methionine(self):
        """A leading M stays in place."""
        assert generate_reverse_decoy(Protein("MPEPTIDEK", "P1")).sequence == "MKEDITPEP"
        assert generate_reverse_decoy(Protein("PEPTIDEK", "P2")).sequence == "KEDITPEP"

    def test_decoy_metadata(self):
        """Decoys are flagged and prefixed."""
        decoy = generate_reverse_decoy(Protein("PEPTIDEK", "P2"))
        assert decoy.is_decoy
        assert decoy.accession == "DECOY_P2"

    def test_modification_positions_follow_residues(self):
        """Localized modifications stay on the residue they were on."""
        phospho = Modification("Phospho", ModificationType.RESIDUE, 'S', PHOSPHO_MASS)
        acetyl = Modification("Acetyl", ModificationType.PROTEIN_N_TERMINUS, None, 42.010565)

        with_met = generate_reverse_decoy(
            Protein("MPEPSK", "P1", localized_modifications={1: (acetyl,), 5: (phospho,)})
        )
        assert with_met.sequence == "MKSPEP"
        assert dict(with_met.localized_modifications) == {1: (acetyl,), 3: (phospho,)}
        assert with_met.sequence[3 - 1] == 'S'

        without_met = generate_reverse_decoy(
            Protein("PEPSK", "P2", localized_modifications={4: (phospho,)})
        )
        assert without_met.sequence == "KSPEP"
        assert dict(without_met.localized_modifications) == {2: (phospho,)}

    def test_proteolysis_products_mirrored(self):
        """Chain annotations are mirrored and their order reversed."""
        protein = Protein(
            "PEPTIDEKAA", "P1",
            proteolysis_products=(ProteolysisProduct(2, 5), ProteolysisProduct(6, 10, "propeptide")),
        )
        decoy = generate_reverse_decoy(protein)
        assert [(p.begin, p.end, p.product_type) for p in decoy.proteolysis_products] == [
            (1, 5, "propeptide"),
            (6, 9, "chain"),
        ]

    def test_generate_decoys(self, small_proteins):
        """Targets come first, then one decoy per target."""
        database = generate_decoys(small_proteins)
        assert len(database) == 2 * len(small_proteins)
        assert database[:3] == small_proteins
        assert all(p.is_decoy for p in database[3:])

    def test_existing_decoys_not_reversed(self):
        """Entries already flagged as decoys get no decoy of their own."""
        proteins = [Protein("PEPTIDEK", "T"), Protein("KEDITPEP", "DECOY_T", is_decoy=True)]
        assert len(generate_decoys(proteins)) == 3
