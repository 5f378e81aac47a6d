"""Shared utility modules."""

from .variant_matching import (
    complement_allele,
    match_alleles,
    normalize_chromosome,
)

__all__ = [
    "complement_allele",
    "match_alleles",
    "normalize_chromosome",
]
