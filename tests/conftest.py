"""Pytest configuration and fixtures for vcf-fingerprint tests."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from fixtures.vcf_generator import (  # noqa: E402
    SyntheticSite,
    SyntheticVariant,
    VCFGenerator,
    make_haplotype_map_file,
    make_two_site_vcf_file,
    two_site_block_sites,
)

__all__ = [
    "SyntheticSite",
    "SyntheticVariant",
    "VCFGenerator",
    "make_haplotype_map_file",
    "make_two_site_vcf_file",
    "two_site_block_sites",
]


@pytest.fixture
def haplotype_map_file(tmp_path) -> Path:
    """Haplotype map with block1 (chr1:100, chr1:200) and block2 (chr2:500)."""
    return make_haplotype_map_file(
        two_site_block_sites(),
        tmp_path,
        contigs={"chr1": 248956422, "chr2": 242193529},
    )


@pytest.fixture
def panel(haplotype_map_file):
    from vcf_fingerprint.references import load_haplotype_map

    return load_haplotype_map(haplotype_map_file)


@pytest.fixture
def two_site_vcf(tmp_path) -> Path:
    return make_two_site_vcf_file(tmp_path)


@pytest.fixture
def output_dir(tmp_path) -> Path:
    path = tmp_path / "fingerprints"
    path.mkdir()
    return path
