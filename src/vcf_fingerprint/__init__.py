"""vcf-fingerprint: genotype-likelihood fingerprints from VCF files."""

__version__ = "0.1.0"

from .config import ExtractConfig, ValidationStringency, load_config  # noqa: E402
from .errors import ExtractionCancelled, FingerprintError, FormatError  # noqa: E402
from .extractor import ExtractionStats, FingerprintExtractor, extract_fingerprints  # noqa: E402
from .fingerprint import Fingerprint, FingerprintStore  # noqa: E402
from .models import GenotypeLikelihoods, HaplotypeBlock, SampleKey, Site, VariantCall  # noqa: E402
from .references import HaplotypePanel, load_haplotype_map  # noqa: E402

__all__ = [
    "ExtractConfig",
    "ExtractionCancelled",
    "ExtractionStats",
    "Fingerprint",
    "FingerprintError",
    "FingerprintExtractor",
    "FingerprintStore",
    "FormatError",
    "GenotypeLikelihoods",
    "HaplotypeBlock",
    "HaplotypePanel",
    "SampleKey",
    "Site",
    "ValidationStringency",
    "VariantCall",
    "__version__",
    "extract_fingerprints",
    "load_config",
    "load_haplotype_map",
]
