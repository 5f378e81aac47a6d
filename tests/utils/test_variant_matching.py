"""Tests for allele and chromosome matching utilities."""

import pytest


class TestNormalizeChromosome:
    """Tests for consistent chromosome normalization."""

    def test_strips_chr_prefix(self):
        from vcf_fingerprint.utils.variant_matching import normalize_chromosome

        assert normalize_chromosome("chr1") == "1"
        assert normalize_chromosome("chrX") == "X"
        assert normalize_chromosome("chrM") == "M"

    def test_preserves_bare_chromosome(self):
        from vcf_fingerprint.utils.variant_matching import normalize_chromosome

        assert normalize_chromosome("1") == "1"
        assert normalize_chromosome("22") == "22"

    def test_add_chr_prefix_mode(self):
        from vcf_fingerprint.utils.variant_matching import normalize_chromosome

        assert normalize_chromosome("1", add_chr=True) == "chr1"
        assert normalize_chromosome("chr1", add_chr=True) == "chr1"


class TestMatchAlleles:
    """Tests for matching record alleles against a panel site."""

    def test_same_orientation(self):
        from vcf_fingerprint.utils.variant_matching import match_alleles

        assert match_alleles("A", "G", "A", "G") == "same"

    def test_case_insensitive(self):
        from vcf_fingerprint.utils.variant_matching import match_alleles

        assert match_alleles("A", "G", "a", "g") == "same"

    def test_swapped_orientation(self):
        from vcf_fingerprint.utils.variant_matching import match_alleles

        assert match_alleles("A", "G", "G", "A") == "swapped"

    def test_strand_complement(self):
        from vcf_fingerprint.utils.variant_matching import match_alleles

        assert match_alleles("A", "G", "T", "C") == "same"
        assert match_alleles("A", "G", "C", "T") == "swapped"

    def test_ambiguous_snp_not_complemented(self):
        from vcf_fingerprint.utils.variant_matching import match_alleles

        assert match_alleles("A", "T", "A", "T") == "same"
        assert match_alleles("C", "G", "G", "C") == "swapped"
        assert match_alleles("A", "C", "T", "A") is None

    @pytest.mark.parametrize("ref,alt", [("A", "C"), ("C", "A"), ("G", "T")])
    def test_mismatch(self, ref, alt):
        from vcf_fingerprint.utils.variant_matching import match_alleles

        assert match_alleles("A", "G", ref, alt) is None


class TestIsStrandAmbiguous:
    def test_ambiguous_pairs(self):
        from vcf_fingerprint.utils.variant_matching import is_strand_ambiguous

        assert is_strand_ambiguous("A", "T")
        assert is_strand_ambiguous("g", "c")
        assert not is_strand_ambiguous("A", "G")
