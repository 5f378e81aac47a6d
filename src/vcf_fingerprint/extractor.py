"""Fingerprint extraction from per-site genotype likelihoods.

Streams variant records in genomic order, keeps those at haplotype panel
sites, caps the observations per (site, sample) and sums the accepted log10
likelihoods per haplotype block for each sample.
"""

import logging
import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict, dataclass
from pathlib import Path

from .capping import DEFAULT_LOCUS_MAX_READS, EvidenceCapper
from .config import ExtractConfig, ValidationStringency
from .errors import ExtractionCancelled, FormatError
from .fingerprint import FingerprintStore
from .models import GenotypeLikelihoods, HaplotypeBlock, SampleKey, Site, VariantCall
from .references.haplotype_map import HaplotypePanel
from .utils.variant_matching import match_alleles

logger = logging.getLogger(__name__)


@dataclass
class ExtractionStats:
    """Counters for one extraction run."""

    records_scanned: int = 0
    records_in_panel: int = 0
    records_skipped_shape: int = 0
    records_malformed: int = 0
    observations_accepted: int = 0
    observations_capped: int = 0
    data_gaps: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def likelihoods_from_values(values: Sequence[float], annotation: str) -> GenotypeLikelihoods:
    """Validate one sample's raw annotation values and convert them to a GLV.

    Raises:
        FormatError: If the values are not three finite, valid likelihoods
    """
    if len(values) != 3:
        raise FormatError(f"{annotation} must have 3 values for a biallelic site, got {len(values)}")
    try:
        numbers = [float(value) for value in values]
    except (TypeError, ValueError):
        raise FormatError(f"{annotation} values are not numeric: {list(values)!r}") from None
    if not all(math.isfinite(value) for value in numbers):
        raise FormatError(f"{annotation} has missing or non-finite values: {numbers!r}")

    if annotation == "PL":
        if any(value < 0 for value in numbers):
            raise FormatError(f"PL values must be non-negative: {numbers!r}")
        return GenotypeLikelihoods.from_phred(numbers)

    if any(value > 0 for value in numbers):
        raise FormatError(f"GL values must be log10 likelihoods <= 0: {numbers!r}")
    return GenotypeLikelihoods.from_values(numbers)


class FingerprintExtractor:
    """Build per-sample fingerprints from a stream of variant records."""

    def __init__(
        self,
        panel: HaplotypePanel,
        locus_max_reads: int = DEFAULT_LOCUS_MAX_READS,
        validation_stringency: ValidationStringency | str = ValidationStringency.STRICT,
        source_name: str | None = None,
    ):
        """Initialize the extractor.

        Args:
            panel: Haplotype panel defining the fingerprinting sites
            locus_max_reads: Maximum observations folded in per (site, sample)
            validation_stringency: How malformed records are handled
            source_name: Optional source qualifier for every SampleKey
        """
        self.panel = panel
        self.locus_max_reads = locus_max_reads
        self.validation_stringency = ValidationStringency.parse(validation_stringency)
        self.source_name = source_name
        self.stats = ExtractionStats()
        self._capper = EvidenceCapper(locus_max_reads)

    def extract(
        self,
        calls: Iterable[VariantCall],
        samples: Iterable[str] | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> FingerprintStore:
        """Scan records and return finalized fingerprints.

        Args:
            calls: Variant records in ascending genomic order
            samples: Samples declared by the source; each gets a fingerprint
                even if it has no evidence
            should_stop: Checked between records; returning True aborts

        Returns:
            Finalized FingerprintStore keyed by SampleKey

        Raises:
            FormatError: On malformed input under STRICT stringency
            ExtractionCancelled: If should_stop() returned True
        """
        self.stats = ExtractionStats()
        self._capper.reset()
        store = FingerprintStore()

        for sample in samples or ():
            store.get_or_create(self._sample_key(sample))

        finished_contigs: set[str] = set()
        current: tuple[str, int] | None = None

        for call in calls:
            if should_stop is not None and should_stop():
                logger.warning(
                    "Extraction cancelled after %d records; discarding partial fingerprints",
                    self.stats.records_scanned,
                )
                raise ExtractionCancelled(
                    f"Extraction cancelled after {self.stats.records_scanned} records"
                )

            self.stats.records_scanned += 1

            try:
                current = self._check_order(call, current, finished_contigs)
                self._process(call, store)
            except FormatError as e:
                self._handle_malformed(call, e)

        logger.info(
            "Scanned %d records, %d at panel sites, %d observations accepted (%d capped)",
            self.stats.records_scanned,
            self.stats.records_in_panel,
            self.stats.observations_accepted,
            self.stats.observations_capped,
        )

        return store.finalize()

    def _sample_key(self, sample: str) -> SampleKey:
        return SampleKey(sample=sample, source=self.source_name)

    def _check_order(
        self,
        call: VariantCall,
        current: tuple[str, int] | None,
        finished_contigs: set[str],
    ) -> tuple[str, int]:
        if call.chrom is None or call.pos is None or call.pos <= 0:
            raise FormatError(f"Record has no valid coordinate: {call.chrom}:{call.pos}")
        chrom, pos = call.key
        if current is not None:
            current_chrom, current_pos = current
            if chrom == current_chrom and pos < current_pos:
                raise FormatError(
                    f"Record {call.chrom}:{call.pos} is out of order (after position {current_pos})"
                )
            if chrom != current_chrom:
                if chrom in finished_contigs:
                    raise FormatError(f"Contig {call.chrom} is not contiguous in the input")
                finished_contigs.add(current_chrom)
        return (chrom, pos)

    def _process(self, call: VariantCall, store: FingerprintStore) -> None:
        site = self.panel.site_at(call.chrom, call.pos)
        if site is None:
            return
        block = self.panel.block_for(call.chrom, call.pos)
        self.stats.records_in_panel += 1

        if not call.is_biallelic_snp or not call.likelihoods:
            self.stats.records_skipped_shape += 1
            logger.debug("Skipping %s:%d: not a biallelic SNP with likelihoods", call.chrom, call.pos)
            return

        orientation = match_alleles(site.ref, site.alt, call.ref, call.alts[0])
        if orientation is None:
            self.stats.records_skipped_shape += 1
            logger.debug(
                "Skipping %s:%d: alleles %s/%s do not match panel site %s/%s",
                call.chrom,
                call.pos,
                call.ref,
                call.alts[0],
                site.ref,
                site.alt,
            )
            return

        # Validate every sample before folding anything so a malformed record
        # contributes nothing.
        observations: list[tuple[str, GenotypeLikelihoods]] = []
        for sample, values in call.likelihoods.items():
            if values is None:
                self.stats.data_gaps += 1
                continue
            likelihoods = likelihoods_from_values(values, call.annotation)
            if orientation == "swapped":
                likelihoods = likelihoods.swapped()
            observations.append((sample, likelihoods))

        for sample, likelihoods in observations:
            self._accept(store, block, site, self._sample_key(sample), likelihoods)

    def _accept(
        self,
        store: FingerprintStore,
        block: HaplotypeBlock,
        site: Site,
        sample: SampleKey,
        likelihoods: GenotypeLikelihoods,
    ) -> None:
        if not self._capper.admit(site, sample):
            self.stats.observations_capped += 1
            return
        store.get_or_create(sample).add(block, site, likelihoods)
        self.stats.observations_accepted += 1

    def _handle_malformed(self, call: VariantCall, error: FormatError) -> None:
        if self.validation_stringency is ValidationStringency.STRICT:
            raise FormatError(f"{call.chrom}:{call.pos}: {error.message}") from error

        self.stats.records_malformed += 1
        if self.validation_stringency is ValidationStringency.LENIENT:
            logger.warning("Skipping malformed record %s:%s: %s", call.chrom, call.pos, error.message)


def extract_fingerprints(
    vcf_path: Path | str,
    panel: HaplotypePanel,
    config: ExtractConfig | None = None,
    index_path: Path | str | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> tuple[FingerprintStore, ExtractionStats]:
    """Extract fingerprints for every sample in a VCF.

    Raises:
        OSError: If the VCF or its index cannot be opened
        FormatError: On malformed input under STRICT stringency
        ExtractionCancelled: If should_stop() returned True
    """
    from .vcf_parser import VCFLikelihoodSource

    config = config or ExtractConfig()
    extractor = FingerprintExtractor(
        panel,
        locus_max_reads=config.locus_max_reads,
        validation_stringency=config.validation_stringency,
    )

    with VCFLikelihoodSource(vcf_path, index_path=index_path, panel=panel) as source:
        store = extractor.extract(source, samples=source.samples, should_stop=should_stop)

    return store, extractor.stats
