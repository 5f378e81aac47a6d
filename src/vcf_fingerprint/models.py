"""Data models for haplotype panels and genotype likelihoods."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from .utils.variant_matching import normalize_chromosome

GENOTYPES = ("0/0", "0/1", "1/1")


@dataclass(frozen=True)
class Site:
    """A single panel SNP with its population alternate-allele frequency."""

    chrom: str
    pos: int
    ref: str
    alt: str
    af: float
    name: str | None = None

    @property
    def key(self) -> tuple[str, int]:
        """Coordinate key with the chromosome in bare ('1', not 'chr1') form."""
        return (normalize_chromosome(self.chrom), self.pos)

    def __str__(self) -> str:
        return f"{self.chrom}:{self.pos}"


@dataclass(frozen=True)
class HaplotypeBlock:
    """Sites in near-complete LD, treated as one identity-bearing unit."""

    name: str
    sites: tuple[Site, ...]

    def __post_init__(self):
        if not self.sites:
            raise ValueError(f"Haplotype block {self.name!r} has no sites")

    @property
    def anchor(self) -> Site:
        """Representative site written to fingerprint output."""
        return self.sites[0]

    @property
    def chrom(self) -> str:
        return self.anchor.chrom

    @property
    def start(self) -> int:
        return min(site.pos for site in self.sites)

    @property
    def end(self) -> int:
        return max(site.pos for site in self.sites)

    def __len__(self) -> int:
        return len(self.sites)


@dataclass(frozen=True, order=True)
class SampleKey:
    """Identifies the owner of a fingerprint within one extraction run."""

    sample: str
    source: str | None = None

    def __str__(self) -> str:
        if self.source:
            return f"{self.sample}@{self.source}"
        return self.sample


@dataclass(frozen=True)
class GenotypeLikelihoods:
    """Log10 likelihoods of hom-ref, het and hom-var at one site.

    Addition is element-wise, i.e. multiplication of likelihoods under an
    independence assumption.
    """

    hom_ref: float
    het: float
    hom_var: float

    @classmethod
    def from_values(cls, values: Sequence[float]) -> "GenotypeLikelihoods":
        hom_ref, het, hom_var = values
        return cls(float(hom_ref), float(het), float(hom_var))

    @classmethod
    def from_phred(cls, pls: Sequence[float]) -> "GenotypeLikelihoods":
        """Convert phred-scaled likelihoods (PL = -10 * log10 L)."""
        return cls.from_values([-float(pl) / 10.0 for pl in pls])

    @classmethod
    def zero(cls) -> "GenotypeLikelihoods":
        return cls(0.0, 0.0, 0.0)

    def __add__(self, other: "GenotypeLikelihoods") -> "GenotypeLikelihoods":
        if not isinstance(other, GenotypeLikelihoods):
            return NotImplemented
        return GenotypeLikelihoods(
            self.hom_ref + other.hom_ref,
            self.het + other.het,
            self.hom_var + other.hom_var,
        )

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.hom_ref, self.het, self.hom_var)

    def swapped(self) -> "GenotypeLikelihoods":
        """Exchange hom-ref and hom-var, for records with REF/ALT flipped."""
        return GenotypeLikelihoods(self.hom_var, self.het, self.hom_ref)

    def most_likely(self) -> int:
        values = self.as_tuple()
        return values.index(max(values))

    def most_likely_genotype(self) -> str:
        return GENOTYPES[self.most_likely()]

    def to_phred(self) -> tuple[int, int, int]:
        """Phred-scaled likelihoods normalized so the best genotype is 0."""
        best = max(self.as_tuple())
        return tuple(round(-10.0 * (value - best)) for value in self.as_tuple())


@dataclass
class VariantCall:
    """One variant record reduced to what fingerprinting needs.

    ``likelihoods`` maps sample name to the raw annotation values for the
    record, or None when that sample has no likelihoods at the record.
    """

    chrom: str
    pos: int
    ref: str
    alts: list[str]
    likelihoods: dict[str, Sequence[float] | None] = field(default_factory=dict)
    annotation: str = "GL"

    @property
    def key(self) -> tuple[str, int]:
        return (normalize_chromosome(self.chrom), self.pos)

    @property
    def is_biallelic_snp(self) -> bool:
        if len(self.alts) != 1 or self.alts[0] in (None, "", ".", "*"):
            return False
        return len(self.ref) == 1 and len(self.alts[0]) == 1
