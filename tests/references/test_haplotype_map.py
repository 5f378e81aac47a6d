"""Tests for haplotype map loading and the panel coordinate index.

Tests for:
- Grouping rows into blocks in first-seen order
- '@SQ' contig capture and chromosome-name normalization
- Malformed rows raising FormatError with line numbers
- Block and site lookups
"""

import gzip

import pytest

from fixtures.vcf_generator import SyntheticSite, make_haplotype_map, make_haplotype_map_file


class TestLoadHaplotypeMap:
    """Test load_haplotype_map on well-formed input."""

    def test_groups_sites_into_blocks(self, panel):
        assert len(panel) == 2
        assert panel.site_count == 3
        block1 = panel.block_by_name("block1")
        assert [site.pos for site in block1.sites] == [100, 200]
        assert block1.anchor.pos == 100

    def test_non_contiguous_rows_grouped_in_first_seen_order(self, tmp_path):
        from vcf_fingerprint.references import load_haplotype_map

        path = make_haplotype_map_file(
            [
                SyntheticSite("chr1", 100, "A", "G", "b"),
                SyntheticSite("chr1", 150, "A", "C", "a"),
                SyntheticSite("chr1", 300, "G", "T", "b"),
            ],
            tmp_path,
        )
        panel = load_haplotype_map(path)

        assert [block.name for block in panel] == ["b", "a"]
        assert [site.pos for site in panel.block_by_name("b").sites] == [100, 300]

    def test_reads_contigs_from_sq_lines(self, panel):
        assert dict(panel.contigs) == {"chr1": 248956422, "chr2": 242193529}

    def test_contigs_without_sq_lines(self, tmp_path):
        from vcf_fingerprint.references import load_haplotype_map

        path = make_haplotype_map_file([SyntheticSite("chr3", 10, "A", "G", "b")], tmp_path)
        panel = load_haplotype_map(path)

        assert dict(panel.contigs) == {"chr3": None}

    def test_site_fields(self, panel):
        site = panel.site_at("chr1", 200)
        assert site.ref == "C"
        assert site.alt == "T"
        assert site.af == pytest.approx(0.29)
        assert site.name == "rs200"

    def test_missing_name_is_none(self, tmp_path):
        from vcf_fingerprint.references import load_haplotype_map

        path = tmp_path / "map.txt"
        path.write_text("#CHROM\tPOS\tREF\tALT\tBLOCK\tAF\n1\t100\tA\tG\tb1\t0.2\n")
        panel = load_haplotype_map(path)

        assert panel.site_at("1", 100).name is None

    def test_gzipped_map(self, tmp_path):
        from vcf_fingerprint.references import load_haplotype_map

        path = tmp_path / "map.txt.gz"
        with gzip.open(path, "wt") as f:
            f.write(make_haplotype_map([SyntheticSite("chr1", 100, "A", "G", "b1")]))

        panel = load_haplotype_map(path)
        assert panel.block_for("chr1", 100).name == "b1"

    def test_missing_file_raises_oserror(self, tmp_path):
        from vcf_fingerprint.references import load_haplotype_map

        with pytest.raises(OSError):
            load_haplotype_map(tmp_path / "missing.txt")


class TestMalformedHaplotypeMap:
    """Malformed rows raise FormatError."""

    def _write(self, tmp_path, body: str):
        path = tmp_path / "map.txt"
        path.write_text("#CHROM\tPOS\tNAME\tREF\tALT\tBLOCK\tAF\n" + body)
        return path

    @pytest.mark.parametrize(
        "row",
        [
            "chr1\tabc\trs1\tA\tG\tb1\t0.2\n",
            "chr1\t0\trs1\tA\tG\tb1\t0.2\n",
            "chr1\t100\trs1\tAT\tG\tb1\t0.2\n",
            "chr1\t100\trs1\tA\tA\tb1\t0.2\n",
            "chr1\t100\trs1\tA\tN\tb1\t0.2\n",
            "chr1\t100\trs1\tA\tG\tb1\t1.5\n",
            "chr1\t100\trs1\tA\tG\tb1\tx\n",
            "chr1\t100\trs1\tA\tG\t\t0.2\n",
            "\t100\trs1\tA\tG\tb1\t0.2\n",
        ],
    )
    def test_malformed_row(self, tmp_path, row):
        from vcf_fingerprint.errors import FormatError
        from vcf_fingerprint.references import load_haplotype_map

        with pytest.raises(FormatError):
            load_haplotype_map(self._write(tmp_path, row))

    def test_error_reports_line_number(self, tmp_path):
        from vcf_fingerprint.errors import FormatError
        from vcf_fingerprint.references import load_haplotype_map

        path = self._write(
            tmp_path,
            "chr1\t100\trs1\tA\tG\tb1\t0.2\nchr1\t200\trs2\tC\tT\tb1\tbad\n",
        )

        with pytest.raises(FormatError) as exc_info:
            load_haplotype_map(path)

        assert exc_info.value.line == 3
        assert "map.txt:3" in str(exc_info.value)

    def test_duplicate_site_rejected(self, tmp_path):
        from vcf_fingerprint.errors import FormatError
        from vcf_fingerprint.references import load_haplotype_map

        path = self._write(
            tmp_path,
            "chr1\t100\trs1\tA\tG\tb1\t0.2\n1\t100\trs1\tA\tG\tb2\t0.2\n",
        )

        with pytest.raises(FormatError, match="already declared"):
            load_haplotype_map(path)

    def test_missing_required_column(self, tmp_path):
        from vcf_fingerprint.errors import FormatError
        from vcf_fingerprint.references import load_haplotype_map

        path = tmp_path / "map.txt"
        path.write_text("#CHROM\tPOS\tREF\tALT\tAF\nchr1\t100\tA\tG\t0.2\n")

        with pytest.raises(FormatError, match="BLOCK"):
            load_haplotype_map(path)

    def test_lenient_skips_bad_row_with_warning(self, tmp_path, caplog):
        import logging

        from vcf_fingerprint.references import load_haplotype_map

        path = self._write(
            tmp_path,
            "chr1\t100\trs1\tA\tG\tb1\t0.2\nchr1\tX\trs2\tA\tG\tb2\t0.3\n",
        )

        with caplog.at_level(logging.WARNING, logger="vcf_fingerprint"):
            panel = load_haplotype_map(path, validation_stringency="LENIENT")

        assert [block.name for block in panel] == ["b1"]
        assert panel.rows_skipped == 1
        assert "map.txt:3" in caplog.text

    def test_silent_skips_bad_rows_without_warning(self, tmp_path, caplog):
        import logging

        from vcf_fingerprint.references import load_haplotype_map

        path = self._write(
            tmp_path,
            "chr1\t100\trs1\tA\tG\tb1\t0.2\n"
            "chr1\tX\trs2\tA\tG\tb2\t0.3\n"
            "1\t100\trs1\tA\tG\tb3\t0.2\n"
            "chr1\t300\trs3\tC\tT\tb1\t0.4\n",
        )

        with caplog.at_level(logging.WARNING, logger="vcf_fingerprint"):
            panel = load_haplotype_map(path, validation_stringency="SILENT")

        assert [site.pos for site in panel.block_by_name("b1").sites] == [100, 300]
        assert panel.rows_skipped == 2
        assert "Skipping" not in caplog.text

    def test_lenient_does_not_excuse_missing_columns(self, tmp_path):
        from vcf_fingerprint.errors import FormatError
        from vcf_fingerprint.references import load_haplotype_map

        path = tmp_path / "map.txt"
        path.write_text("#CHROM\tPOS\tREF\tALT\tAF\nchr1\t100\tA\tG\t0.2\n")

        with pytest.raises(FormatError, match="BLOCK"):
            load_haplotype_map(path, validation_stringency="LENIENT")

    def test_missing_header(self, tmp_path):
        from vcf_fingerprint.errors import FormatError
        from vcf_fingerprint.references import load_haplotype_map

        path = tmp_path / "map.txt"
        path.write_text("chr1\t100\trs1\tA\tG\tb1\t0.2\n")

        with pytest.raises(FormatError):
            load_haplotype_map(path)


class TestHaplotypePanel:
    """Test panel lookups and immutability."""

    def test_block_for_normalizes_chromosome(self, panel):
        assert panel.block_for("1", 100).name == "block1"
        assert panel.block_for("chr1", 200).name == "block1"

    def test_block_for_outside_panel(self, panel):
        assert panel.block_for("chr1", 101) is None
        assert panel.block_for("chr9", 100) is None

    def test_sites_in_genomic_order(self, panel):
        assert [(s.chrom, s.pos) for s in panel.sites()] == [
            ("chr1", 100),
            ("chr1", 200),
            ("chr2", 500),
        ]

    def test_intervals_one_per_contig(self, panel):
        assert panel.intervals() == [("chr1", 100, 200), ("chr2", 500, 500)]

    def test_contigs_read_only(self, panel):
        with pytest.raises(TypeError):
            panel.contigs["chr5"] = 1

    def test_site_in_two_blocks_rejected(self):
        from vcf_fingerprint.errors import FormatError
        from vcf_fingerprint.models import HaplotypeBlock, Site
        from vcf_fingerprint.references import HaplotypePanel

        site = Site("chr1", 100, "A", "G", 0.2)
        with pytest.raises(FormatError):
            HaplotypePanel([
                HaplotypeBlock("a", (site,)),
                HaplotypeBlock("b", (Site("1", 100, "A", "G", 0.2),)),
            ])

    def test_distinct_panels_do_not_interfere(self):
        from vcf_fingerprint.models import HaplotypeBlock, Site
        from vcf_fingerprint.references import HaplotypePanel

        first = HaplotypePanel([HaplotypeBlock("a", (Site("chr1", 100, "A", "G", 0.2),))])
        second = HaplotypePanel([HaplotypeBlock("b", (Site("chr1", 300, "C", "T", 0.2),))])

        assert first.block_for("chr1", 300) is None
        assert second.block_for("chr1", 100) is None
