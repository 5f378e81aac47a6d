"""Fingerprint VCF writer and reader.

Each sample's fingerprint is written to ``<sample>.fingerprint.vcf``: one
record per haplotype block with evidence, positioned at the block's anchor
site. ``GL`` carries the raw summed log10 likelihoods; ``PL`` and ``GT`` are
derived from it for display.
"""

import logging
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from cyvcf2 import VCF

from . import __version__
from .config import ValidationStringency
from .errors import FormatError
from .fingerprint import BlockEvidence, Fingerprint, FingerprintStore
from .models import GenotypeLikelihoods, HaplotypeBlock, SampleKey
from .references.haplotype_map import HaplotypePanel

logger = logging.getLogger(__name__)

FINGERPRINT_SUFFIX = ".fingerprint.vcf"
ASSUMED_CONTAMINATION = 0.0
UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")

HEADER_LINES = (
    '##INFO=<ID=BLOCK,Number=1,Type=String,Description="Haplotype block name">',
    '##INFO=<ID=SITES,Number=.,Type=Integer,Description="Positions of block sites with evidence">',
    '##INFO=<ID=OBS,Number=.,Type=Integer,Description="Observations folded in at each of SITES">',
    '##INFO=<ID=AF,Number=1,Type=Float,Description="Population alternate allele frequency of the anchor site">',
    '##FORMAT=<ID=GT,Number=1,Type=String,Description="Most likely genotype">',
    '##FORMAT=<ID=GL,Number=G,Type=Float,Description="Summed log10 genotype likelihoods">',
    '##FORMAT=<ID=PL,Number=G,Type=Integer,Description="Normalized phred-scaled genotype likelihoods">',
)


@dataclass
class FingerprintMetadata:
    """Provenance recorded in a fingerprint VCF header."""

    sample: str
    source: str | None = None
    assumed_contamination: float = ASSUMED_CONTAMINATION
    validation_stringency: ValidationStringency | None = None


@dataclass
class WriteReport:
    """Outcome of writing a store: one entry per sample."""

    written: dict[SampleKey, Path] = field(default_factory=dict)
    failures: dict[SampleKey, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def fingerprint_filename(sample: str) -> str:
    """File name for a sample's fingerprint."""
    safe = UNSAFE_FILENAME_CHARS.sub("_", sample) or "sample"
    return f"{safe}{FINGERPRINT_SUFFIX}"


def _format_float(value: float) -> str:
    text = repr(float(value))
    return "0.0" if text == "-0.0" else text


class FingerprintWriter:
    """Write fingerprints as one VCF per sample."""

    def __init__(
        self,
        output_dir: Path | str,
        panel: HaplotypePanel,
        source: str,
        validation_stringency: ValidationStringency | str = ValidationStringency.STRICT,
    ):
        self.output_dir = Path(output_dir)
        self.panel = panel
        self.source = source
        self.validation_stringency = ValidationStringency.parse(validation_stringency)

    def check_output_dir(self) -> None:
        """Raise OSError if the output directory is missing or not writable."""
        if not self.output_dir.is_dir():
            raise NotADirectoryError(f"Output directory not found: {self.output_dir}")
        if not os.access(self.output_dir, os.W_OK | os.X_OK):
            raise PermissionError(f"Output directory is not writable: {self.output_dir}")

    def path_for(self, sample: SampleKey) -> Path:
        return self.output_dir / fingerprint_filename(sample.sample)

    def assign_paths(self, samples: Iterable[SampleKey]) -> dict[SampleKey, Path]:
        """Give every sample its own file.

        Names that collide once unsafe characters are replaced, or that differ
        only in case, get a numeric suffix in sample order: the second
        ``a_b`` becomes ``a_b_2.fingerprint.vcf``.
        """
        paths: dict[SampleKey, Path] = {}
        taken: set[str] = set()
        for sample in samples:
            name = fingerprint_filename(sample.sample)
            stem = name[: -len(FINGERPRINT_SUFFIX)]
            suffix = 2
            while name.lower() in taken:
                name = f"{stem}_{suffix}{FINGERPRINT_SUFFIX}"
                suffix += 1
            if suffix > 2:
                logger.warning("File name for %s collides with another sample; writing %s", sample, name)
            taken.add(name.lower())
            paths[sample] = self.output_dir / name
        return paths

    def _ordered_blocks(self, fingerprint: Fingerprint) -> list[HaplotypeBlock]:
        return sorted(
            fingerprint,
            key=lambda block: self.panel.sort_key(block.anchor.chrom, block.anchor.pos),
        )

    def render(self, fingerprint: Fingerprint) -> str:
        """Render a fingerprint as VCF text."""
        sample = fingerprint.sample.sample
        blocks = self._ordered_blocks(fingerprint)

        lines = [
            "##fileformat=VCFv4.2",
            f"##source=vcf-fingerprint {__version__}",
            f"##fingerprintSource={self.source}",
            f"##assumedContamination={ASSUMED_CONTAMINATION}",
            f"##validationStringency={self.validation_stringency.value}",
            f"##DESCRIPTION=PLs derived from {self.source} using an assumed contamination of 0",
            *HEADER_LINES,
        ]

        used_contigs = {block.anchor.chrom for block in blocks}
        for contig, length in self.panel.contigs.items():
            if contig not in used_contigs:
                continue
            if length:
                lines.append(f"##contig=<ID={contig},length={length}>")
            else:
                lines.append(f"##contig=<ID={contig}>")

        lines.append(
            "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\t" + sample
        )

        for block in blocks:
            evidence = fingerprint.evidence(block)
            anchor = block.anchor
            likelihoods = evidence.likelihoods
            sites = sorted(evidence.site_counts, key=lambda site: site.pos)
            info = (
                f"BLOCK={block.name};"
                f"SITES={','.join(str(site.pos) for site in sites)};"
                f"OBS={','.join(str(evidence.site_counts[site]) for site in sites)};"
                f"AF={_format_float(anchor.af)}"
            )
            gl = ",".join(_format_float(value) for value in likelihoods.as_tuple())
            pl = ",".join(str(value) for value in likelihoods.to_phred())
            lines.append(
                f"{anchor.chrom}\t{anchor.pos}\t{anchor.name or '.'}\t{anchor.ref}\t{anchor.alt}\t"
                f".\tPASS\t{info}\tGT:GL:PL\t{likelihoods.most_likely_genotype()}:{gl}:{pl}"
            )

        return "\n".join(lines) + "\n"

    def write(self, fingerprint: Fingerprint, path: Path | None = None) -> Path:
        """Write one sample's fingerprint, to ``path_for(sample)`` unless given.

        Raises:
            OSError: If the file cannot be written
        """
        path = path or self.path_for(fingerprint.sample)
        content = self.render(fingerprint)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            with open(tmp_path, "w") as f:
                f.write(content)
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d blocks for %s to %s", len(fingerprint), fingerprint.sample, path)
        return path

    def write_all(self, store: FingerprintStore) -> WriteReport:
        """Write every fingerprint; a failing sample does not stop the rest."""
        report = WriteReport()
        paths = self.assign_paths(store)
        for sample, fingerprint in store.items():
            try:
                report.written[sample] = self.write(fingerprint, path=paths[sample])
            except OSError as e:
                logger.error("Failed to write fingerprint for %s: %s", sample, e)
                report.failures[sample] = str(e)
        return report


def _parse_provenance(raw_header: str) -> dict[str, str]:
    values = {}
    for line in raw_header.splitlines():
        if not line.startswith("##") or "=" not in line or line.startswith("##INFO"):
            continue
        key, value = line[2:].split("=", 1)
        values[key] = value
    return values


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, (tuple, list)):
        return list(value)
    return [value]


def _read_site_counts(variant, block: HaplotypeBlock, source: str) -> dict:
    positions = [int(pos) for pos in _as_list(variant.INFO.get("SITES"))]
    counts = [int(count) for count in _as_list(variant.INFO.get("OBS"))]
    if not positions or len(positions) != len(counts):
        raise FormatError(
            f"Record {variant.CHROM}:{variant.POS} has mismatched SITES/OBS annotations", source
        )

    sites_by_pos = {site.pos: site for site in block.sites}
    site_counts = {}
    for pos, count in zip(positions, counts, strict=True):
        site = sites_by_pos.get(pos)
        if site is None:
            raise FormatError(f"Position {pos} is not a site of block {block.name}", source)
        site_counts[site] = count
    return site_counts


def _resolve_block(panel: HaplotypePanel, block_name: str | None, chrom: str, pos: int) -> HaplotypeBlock | None:
    if block_name:
        block = panel.block_by_name(block_name)
        if block is not None:
            return block
    return panel.block_for(chrom, pos)


def read_fingerprint(
    path: Path | str,
    panel: HaplotypePanel,
) -> tuple[Fingerprint, FingerprintMetadata]:
    """Re-load a fingerprint VCF written by FingerprintWriter.

    Raises:
        OSError: If the file cannot be read
        FormatError: If a record does not match the panel or lacks GL
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Fingerprint file not found: {path}")

    vcf = VCF(str(path))
    try:
        if len(vcf.samples) != 1:
            raise FormatError(f"Expected one sample, found {len(vcf.samples)}", path.name)

        provenance = _parse_provenance(vcf.raw_header)
        stringency = provenance.get("validationStringency")
        metadata = FingerprintMetadata(
            sample=vcf.samples[0],
            source=provenance.get("fingerprintSource"),
            assumed_contamination=float(provenance.get("assumedContamination", ASSUMED_CONTAMINATION)),
            validation_stringency=ValidationStringency.parse(stringency) if stringency else None,
        )

        fingerprint = Fingerprint(SampleKey(sample=metadata.sample))
        for variant in vcf:
            block = _resolve_block(panel, variant.INFO.get("BLOCK"), variant.CHROM, variant.POS)
            if block is None:
                raise FormatError(
                    f"Record {variant.CHROM}:{variant.POS} is not a haplotype block in the panel",
                    path.name,
                )
            gl = variant.format("GL")
            if gl is None:
                raise FormatError(f"Record {variant.CHROM}:{variant.POS} has no GL", path.name)
            likelihoods = GenotypeLikelihoods.from_values(gl[0].tolist())
            site_counts = _read_site_counts(variant, block, path.name)
            fingerprint.set_block(block, BlockEvidence(likelihoods=likelihoods, site_counts=site_counts))
    finally:
        vcf.close()

    fingerprint.freeze()
    return fingerprint, metadata
