"""VCF reading for fingerprint extraction."""

import logging
import math
from collections.abc import Iterator
from pathlib import Path

from cyvcf2 import VCF

from .models import VariantCall
from .references.haplotype_map import HaplotypePanel
from .utils.variant_matching import normalize_chromosome

logger = logging.getLogger(__name__)

# cyvcf2 integer sentinels for missing and end-of-vector values
INT32_MISSING = -2147483648
INT32_VECTOR_END = -2147483647

LIKELIHOOD_FIELDS = ("GL", "PL")


def _safe_format(variant, field: str):
    """Safely get FORMAT field array."""
    try:
        return variant.format(field)
    except KeyError:
        return None


def _clean_values(values) -> list[float] | None:
    """Convert one sample's likelihood row to floats.

    Missing entries become NaN. Returns None when every entry is missing.
    """
    cleaned = []
    for value in values:
        value = float(value)
        if value in (INT32_MISSING, INT32_VECTOR_END):
            value = math.nan
        cleaned.append(value)
    if all(math.isnan(value) for value in cleaned):
        return None
    return cleaned


def parse_variant(variant, samples: list[str]) -> VariantCall:
    """Convert a cyvcf2 variant into a VariantCall.

    GL is preferred over PL when a record carries both.
    """
    call = VariantCall(
        chrom=variant.CHROM,
        pos=variant.POS,
        ref=variant.REF,
        alts=list(variant.ALT),
    )

    for field in LIKELIHOOD_FIELDS:
        array = _safe_format(variant, field)
        if array is None:
            continue
        call.annotation = field
        for sample_idx, sample in enumerate(samples):
            try:
                row = array[sample_idx]
            except IndexError:
                call.likelihoods[sample] = None
                continue
            call.likelihoods[sample] = _clean_values(row.tolist() if hasattr(row, "tolist") else row)
        break

    return call


class VCFLikelihoodSource:
    """Stream VariantCalls from a VCF, optionally restricted to panel spans.

    With an index and a panel, only the per-contig spans covered by the panel
    are read through region queries; otherwise the whole file is streamed.
    """

    def __init__(
        self,
        vcf_path: Path | str,
        index_path: Path | str | None = None,
        panel: HaplotypePanel | None = None,
    ):
        self.vcf_path = Path(vcf_path)
        self.index_path = Path(index_path) if index_path else None
        self.panel = panel

        if not self.vcf_path.exists():
            raise FileNotFoundError(f"VCF file not found: {self.vcf_path}")
        if self.index_path is not None and not self.index_path.exists():
            raise FileNotFoundError(f"VCF index not found: {self.index_path}")

        self._vcf = VCF(str(self.vcf_path))
        if self.index_path is not None:
            self._vcf.set_index(str(self.index_path))

        self.samples: list[str] = list(self._vcf.samples)

    @property
    def name(self) -> str:
        return self.vcf_path.name

    def _resolve_contig(self, chrom: str) -> str | None:
        """Find the VCF's name for a panel contig ('1' vs 'chr1')."""
        wanted = normalize_chromosome(chrom)
        for seqname in self._vcf.seqnames:
            if normalize_chromosome(seqname) == wanted:
                return seqname
        return None

    def _iter_regions(self) -> Iterator:
        for chrom, start, end in self.panel.intervals():
            contig = self._resolve_contig(chrom)
            if contig is None:
                logger.debug("Contig %s not present in %s", chrom, self.name)
                continue
            yield from self._vcf(f"{contig}:{start}-{end}")

    def __iter__(self) -> Iterator[VariantCall]:
        if self.index_path is not None and self.panel is not None:
            variants = self._iter_regions()
        else:
            variants = iter(self._vcf)

        for variant in variants:
            yield parse_variant(variant, self.samples)

    def close(self) -> None:
        self._vcf.close()

    def __enter__(self) -> "VCFLikelihoodSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
