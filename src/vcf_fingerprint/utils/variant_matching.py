"""Allele and coordinate matching between variant records and panel sites."""

from typing import Literal

AlleleOrientation = Literal["same", "swapped"]


def normalize_chromosome(chrom: str, add_chr: bool = False) -> str:
    """Normalize chromosome string for consistent matching.

    Args:
        chrom: Chromosome string (may or may not have 'chr' prefix)
        add_chr: If True, ensures 'chr' prefix is present; if False, removes it

    Returns:
        Normalized chromosome string
    """
    if add_chr:
        if chrom.startswith("chr"):
            return chrom
        return f"chr{chrom}"
    if chrom.startswith("chr"):
        return chrom[3:]
    return chrom


def complement_allele(allele: str) -> str:
    """Return the complement of a nucleotide allele."""
    complements = {"A": "T", "T": "A", "C": "G", "G": "C"}
    return complements.get(allele.upper(), allele)


def is_strand_ambiguous(allele1: str, allele2: str) -> bool:
    """Check if a SNP is strand-ambiguous (A/T or C/G)."""
    pair = frozenset([allele1.upper(), allele2.upper()])
    return pair in (frozenset(["A", "T"]), frozenset(["C", "G"]))


def match_alleles(
    site_ref: str,
    site_alt: str,
    ref: str,
    alt: str,
) -> AlleleOrientation | None:
    """Match a record's alleles against a panel site.

    Handles:
    - Exact allele match
    - Allele flip (ref/alt swapped)
    - Strand complement for non-ambiguous SNPs

    Returns:
        "same" when the record's ALT is the site's ALT, "swapped" when the
        record's ALT is the site's REF, None when the alleles disagree.
    """
    site_ref = site_ref.upper()
    site_alt = site_alt.upper()
    ref = ref.upper()
    alt = alt.upper()

    if (ref, alt) == (site_ref, site_alt):
        return "same"
    if (ref, alt) == (site_alt, site_ref):
        return "swapped"

    if is_strand_ambiguous(ref, alt):
        return None

    ref_comp = complement_allele(ref)
    alt_comp = complement_allele(alt)
    if (ref_comp, alt_comp) == (site_ref, site_alt):
        return "same"
    if (ref_comp, alt_comp) == (site_alt, site_ref):
        return "swapped"

    return None
