"""Tests for the analysis step and the one-call search API."""

import pandas as pd
import pytest

from alphapeptindex import run_search
from alphapeptindex.config import SearchParameters
from alphapeptindex.database.decoys import generate_decoys
from alphapeptindex.scoring import AnalysisResults, analyze_matches
from alphapeptindex.search import OpenSearchMode, build_index, modern_search, single_ppm_around_zero

TARGET_SEQUENCES = ["YGGFMTSEK", "TESTPEPTIDER", "LGEHNIDVLEGNEQFINAAK"]


@pytest.fixture
def scans(peptide_factory, scan_factory, carbamidomethyl):
    return [
        scan_factory(peptide_factory(sequence, fixed=[carbamidomethyl]), scan_number=i + 1)
        for i, sequence in enumerate(TARGET_SEQUENCES)
    ]


class TestAnalyzeMatches:
    """Test mapping, FDR and parsimony on engine output."""

    def test_targets_pass(self, scans, small_proteins, carbamidomethyl):
        """Synthetic target spectra give target PSMs at q = 0."""
        params = SearchParameters(n_threads=2)
        database = generate_decoys(small_proteins)
        index = build_index(database, params, [carbamidomethyl])
        matches = modern_search(scans, index, [single_ppm_around_zero(5)], params)[0]

        results = analyze_matches(matches, database, params, [carbamidomethyl])

        assert isinstance(results, AnalysisResults)
        assert len(results.psms) == len(TARGET_SEQUENCES)
        scores = [p.score for p in results.psms]
        assert scores == sorted(scores, reverse=True)
        assert all(not p.is_decoy for p in results.psms)
        assert len(results.passing(0.01)) == len(TARGET_SEQUENCES)
        assert {p.peptides[0].base_sequence for p in results.psms} == set(TARGET_SEQUENCES)
        assert results.parsimony is None

    def test_parsimony(self, scans, small_proteins, carbamidomethyl):
        """Parsimony selects the proteins the peptides came from."""
        params = SearchParameters(n_threads=2)
        database = generate_decoys(small_proteins)
        index = build_index(database, params, [carbamidomethyl])
        matches = modern_search(scans, index, [single_ppm_around_zero(5)], params)[0]

        results = analyze_matches(matches, database, params, [carbamidomethyl], do_parsimony=True)

        assert {p.accession for p in results.parsimony} == {"P00001", "P00002", "P00003"}
        assert len(results.unique_peptides) == len(TARGET_SEQUENCES)

    def test_no_matches(self, small_proteins):
        """Empty engine output gives empty results."""
        results = analyze_matches([None, None], small_proteins, SearchParameters())
        assert results.psms == []
        assert len(results.to_dataframe()) == 0


class TestSearch:
    """Test the end-to-end entry point."""

    @pytest.mark.parametrize("engine", ["modern", "classic"])
    def test_engines(self, scans, small_proteins, carbamidomethyl, oxidation, engine):
        """Both engines identify every synthetic spectrum."""
        results = run_search(
            small_proteins,
            scans,
            SearchParameters(n_threads=2),
            fixed_modifications=[carbamidomethyl],
            variable_modifications=[oxidation],
            engine=engine,
        )
        assert len(results.analyses) == 1
        assert len(results.proteins) == 2 * len(small_proteins)
        assert (results.index is not None) == (engine == "modern")
        df = results.analyses[0].to_dataframe()
        assert isinstance(df, pd.DataFrame)
        assert len(df) == len(TARGET_SEQUENCES)
        assert not df["is_decoy"].any()
        assert set(df["accessions"]) == {"P00001", "P00002", "P00003"}

    def test_several_modes(self, scans, small_proteins, carbamidomethyl):
        """Each search mode gets its own matches and analysis."""
        modes = [single_ppm_around_zero(5), OpenSearchMode()]
        results = run_search(
            small_proteins, scans, SearchParameters(n_threads=2), modes,
            fixed_modifications=[carbamidomethyl],
        )
        assert [m.name for m in results.search_modes] == ["5ppmAroundZero", "OpenSearch"]
        assert len(results.matches) == len(results.analyses) == 2
        for analysis in results.analyses:
            assert len(analysis.psms) == len(TARGET_SEQUENCES)

    def test_without_decoys(self, scans, small_proteins, carbamidomethyl):
        """Decoy generation can be switched off."""
        results = run_search(
            small_proteins, scans, SearchParameters(n_threads=1),
            fixed_modifications=[carbamidomethyl], add_decoys=False,
        )
        assert results.proteins == small_proteins

    def test_invalid_arguments(self, scans, small_proteins):
        """Unknown engine, missing database and empty spectra raise."""
        with pytest.raises(ValueError):
            run_search(small_proteins, scans, engine="fast")
        with pytest.raises(ValueError):
            run_search(None, scans)
        with pytest.raises(ValueError):
            run_search(small_proteins, [])
