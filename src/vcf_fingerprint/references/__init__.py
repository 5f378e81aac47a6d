"""Haplotype panel support for fingerprinting."""

from .haplotype_map import HaplotypePanel, load_haplotype_map

__all__ = [
    "HaplotypePanel",
    "load_haplotype_map",
]
