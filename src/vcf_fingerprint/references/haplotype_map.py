"""Haplotype map loader for fingerprinting.

A haplotype map lists the SNPs used for fingerprinting, grouped into blocks
of sites in strong LD. Expected format (tab-delimited, optionally gzipped):

    @SQ	SN:chr1	LN:248956422
    #CHROM	POS	NAME	REF	ALT	BLOCK	AF
    chr1	100	rs1	A	G	block1	0.31
    chr1	200	rs2	C	T	block1	0.29

Lines starting with '@' are SAM-style header lines; '@SQ' lines supply contig
names and lengths for the fingerprint output header. Rows for a block need
not be contiguous.
"""

import csv
import gzip
import logging
from collections.abc import Iterator
from pathlib import Path
from types import MappingProxyType

from ..config import ValidationStringency
from ..errors import FormatError
from ..models import HaplotypeBlock, Site
from ..utils.variant_matching import normalize_chromosome

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("CHROM", "POS", "REF", "ALT", "BLOCK", "AF")
VALID_BASES = frozenset("ACGT")


class HaplotypePanel:
    """Immutable collection of haplotype blocks with a coordinate index."""

    def __init__(
        self,
        blocks: list[HaplotypeBlock] | tuple[HaplotypeBlock, ...],
        contigs: dict[str, int | None] | None = None,
        rows_skipped: int = 0,
    ):
        self._blocks = tuple(blocks)
        self.rows_skipped = rows_skipped
        self._by_name: dict[str, HaplotypeBlock] = {}
        self._by_coordinate: dict[tuple[str, int], tuple[Site, HaplotypeBlock]] = {}

        for block in self._blocks:
            if block.name in self._by_name:
                raise FormatError(f"Duplicate haplotype block: {block.name}")
            self._by_name[block.name] = block
            for site in block.sites:
                if site.key in self._by_coordinate:
                    owner = self._by_coordinate[site.key][1]
                    raise FormatError(
                        f"Site {site} belongs to both block {owner.name} and {block.name}"
                    )
                self._by_coordinate[site.key] = (site, block)

        ordered_contigs: dict[str, int | None] = dict(contigs or {})
        for block in self._blocks:
            for site in block.sites:
                ordered_contigs.setdefault(site.chrom, None)
        self._contigs = MappingProxyType(ordered_contigs)
        self._contig_rank = {
            normalize_chromosome(name): rank for rank, name in enumerate(ordered_contigs)
        }

    @property
    def blocks(self) -> tuple[HaplotypeBlock, ...]:
        return self._blocks

    @property
    def contigs(self) -> MappingProxyType:
        """Contig name to length (None when the map did not declare one)."""
        return self._contigs

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[HaplotypeBlock]:
        return iter(self._blocks)

    @property
    def site_count(self) -> int:
        return len(self._by_coordinate)

    def block_for(self, chrom: str, pos: int) -> HaplotypeBlock | None:
        """Return the block owning the site at a coordinate, if any."""
        entry = self._by_coordinate.get((normalize_chromosome(chrom), pos))
        return entry[1] if entry else None

    def site_at(self, chrom: str, pos: int) -> Site | None:
        entry = self._by_coordinate.get((normalize_chromosome(chrom), pos))
        return entry[0] if entry else None

    def block_by_name(self, name: str) -> HaplotypeBlock | None:
        return self._by_name.get(name)

    def sort_key(self, chrom: str, pos: int) -> tuple[int, int]:
        """Genomic sort key using the panel's contig order."""
        rank = self._contig_rank.get(normalize_chromosome(chrom), len(self._contig_rank))
        return (rank, pos)

    def sites(self) -> list[Site]:
        """All sites in ascending genomic order."""
        return sorted(
            (site for site, _block in self._by_coordinate.values()),
            key=lambda site: self.sort_key(site.chrom, site.pos),
        )

    def intervals(self) -> list[tuple[str, int, int]]:
        """One (chrom, start, end) span per contig covering all its sites."""
        spans: dict[str, tuple[int, int]] = {}
        for site in self.sites():
            start, end = spans.get(site.chrom, (site.pos, site.pos))
            spans[site.chrom] = (min(start, site.pos), max(end, site.pos))
        return [(chrom, start, end) for chrom, (start, end) in spans.items()]


def _parse_sq_line(line: str) -> tuple[str, int | None] | None:
    """Parse an '@SQ' header line into (name, length)."""
    name = None
    length = None
    for token in line.rstrip("\n").split("\t")[1:]:
        if token.startswith("SN:"):
            name = token[3:]
        elif token.startswith("LN:"):
            try:
                length = int(token[3:])
            except ValueError:
                length = None
    if name is None:
        return None
    return name, length


def _parse_site(row: dict[str, str], source: str, line_number: int) -> tuple[str, Site]:
    """Parse one data row into (block id, Site)."""
    chrom = (row.get("CHROM") or "").strip()
    if not chrom:
        raise FormatError("Missing chromosome", source, line_number)

    try:
        pos = int(row["POS"])
    except (TypeError, ValueError):
        raise FormatError(f"Invalid position: {row.get('POS')!r}", source, line_number) from None
    if pos <= 0:
        raise FormatError(f"Position must be positive, got {pos}", source, line_number)

    ref = (row.get("REF") or "").strip().upper()
    alt = (row.get("ALT") or "").strip().upper()
    if len(ref) != 1 or len(alt) != 1 or ref not in VALID_BASES or alt not in VALID_BASES:
        raise FormatError(
            f"Alleles must be single bases, got REF={ref!r} ALT={alt!r}", source, line_number
        )
    if ref == alt:
        raise FormatError(f"REF and ALT are both {ref!r}", source, line_number)

    try:
        af = float(row["AF"])
    except (TypeError, ValueError):
        raise FormatError(f"Invalid allele frequency: {row.get('AF')!r}", source, line_number) from None
    if not 0.0 <= af <= 1.0:
        raise FormatError(f"Allele frequency must be in [0, 1], got {af}", source, line_number)

    block_id = (row.get("BLOCK") or "").strip()
    if not block_id:
        raise FormatError("Missing block identifier", source, line_number)

    name = (row.get("NAME") or "").strip() or None
    return block_id, Site(chrom=chrom, pos=pos, ref=ref, alt=alt, af=af, name=name)


def load_haplotype_map(
    path: Path | str,
    validation_stringency: ValidationStringency | str = ValidationStringency.STRICT,
) -> HaplotypePanel:
    """Load a haplotype map into a HaplotypePanel.

    Args:
        path: Path to the haplotype map (can be gzipped)
        validation_stringency: STRICT raises on a malformed row; LENIENT skips
            it with a warning; SILENT skips it and only counts it

    Returns:
        HaplotypePanel with blocks in first-seen order

    Raises:
        OSError: If the file cannot be read
        FormatError: If the header is missing or incomplete, or a row is
            malformed under STRICT stringency
    """
    stringency = ValidationStringency.parse(validation_stringency)
    path = Path(path)
    source = path.name

    open_func = gzip.open if str(path).endswith(".gz") else open

    contigs: dict[str, int | None] = {}
    block_sites: dict[str, list[Site]] = {}
    header: list[str] | None = None
    data_lines: list[tuple[int, str]] = []

    with open_func(path, "rt") as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip():
                continue
            if line.startswith("@"):
                if line.startswith("@SQ"):
                    parsed = _parse_sq_line(line)
                    if parsed:
                        contigs[parsed[0]] = parsed[1]
                continue
            if line.startswith("#"):
                fields = [name.strip().upper() for name in line.lstrip("#").rstrip("\n").split("\t")]
                if header is None and "CHROM" in fields:
                    header = fields
                continue
            if header is None:
                raise FormatError("Data row before '#CHROM' column header", source, line_number)
            data_lines.append((line_number, line))

    if header is None:
        raise FormatError("No '#CHROM' column header found", source)

    missing = [column for column in REQUIRED_COLUMNS if column not in header]
    if missing:
        raise FormatError(f"Missing required columns: {', '.join(missing)}", source)

    seen: dict[tuple[str, int], int] = {}
    rows_skipped = 0
    for line_number, line in data_lines:
        reader = csv.DictReader([line], fieldnames=header, delimiter="\t")
        row = next(reader)
        try:
            block_id, site = _parse_site(row, source, line_number)
            if site.key in seen:
                raise FormatError(
                    f"Site {site} already declared on line {seen[site.key]}", source, line_number
                )
        except FormatError as e:
            if stringency is ValidationStringency.STRICT:
                raise
            rows_skipped += 1
            if stringency is ValidationStringency.LENIENT:
                logger.warning("Skipping malformed haplotype map row: %s", e)
            continue
        seen[site.key] = line_number
        block_sites.setdefault(block_id, []).append(site)

    blocks = [HaplotypeBlock(name=block_id, sites=tuple(sites)) for block_id, sites in block_sites.items()]
    panel = HaplotypePanel(blocks, contigs=contigs, rows_skipped=rows_skipped)

    logger.info(
        "Loaded %d haplotype blocks (%d sites) from %s, skipped %d malformed rows",
        len(panel),
        panel.site_count,
        source,
        rows_skipped,
    )

    return panel
