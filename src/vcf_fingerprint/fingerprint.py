"""In-memory fingerprint store.

A fingerprint maps haplotype blocks to aggregated genotype likelihoods for
one sample. Blocks only appear once they have received evidence; there is no
placeholder for a block without observations.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field

from .models import GenotypeLikelihoods, HaplotypeBlock, SampleKey, Site


@dataclass
class BlockEvidence:
    """Summed log10 likelihoods for a block and the per-site observation counts."""

    likelihoods: GenotypeLikelihoods
    site_counts: dict[Site, int] = field(default_factory=dict)

    @property
    def observations(self) -> int:
        return sum(self.site_counts.values())

    @property
    def sites_with_evidence(self) -> int:
        return len(self.site_counts)


class Fingerprint:
    """Per-sample mapping from haplotype block to aggregated likelihoods."""

    def __init__(self, sample: SampleKey):
        self.sample = sample
        self._blocks: dict[HaplotypeBlock, BlockEvidence] = {}
        self._frozen = False

    def add(self, block: HaplotypeBlock, site: Site, likelihoods: GenotypeLikelihoods) -> None:
        """Fold one accepted observation at ``site`` into ``block``."""
        if self._frozen:
            raise RuntimeError(f"Fingerprint for {self.sample} is finalized")
        evidence = self._blocks.get(block)
        if evidence is None:
            self._blocks[block] = BlockEvidence(likelihoods=likelihoods, site_counts={site: 1})
            return
        evidence.likelihoods = evidence.likelihoods + likelihoods
        evidence.site_counts[site] = evidence.site_counts.get(site, 0) + 1

    def set_block(self, block: HaplotypeBlock, evidence: BlockEvidence) -> None:
        """Install already-aggregated evidence, e.g. when re-reading an artifact."""
        if self._frozen:
            raise RuntimeError(f"Fingerprint for {self.sample} is finalized")
        if evidence.observations <= 0:
            raise ValueError(f"Block {block.name} has no observations")
        self._blocks[block] = evidence

    def merge(self, other: "Fingerprint") -> "Fingerprint":
        """Return a new fingerprint combining the evidence of both."""
        merged = Fingerprint(self.sample)
        for source in (self, other):
            for block, evidence in source._blocks.items():
                existing = merged._blocks.get(block)
                if existing is None:
                    merged._blocks[block] = BlockEvidence(
                        likelihoods=evidence.likelihoods,
                        site_counts=dict(evidence.site_counts),
                    )
                    continue
                existing.likelihoods = existing.likelihoods + evidence.likelihoods
                for site, count in evidence.site_counts.items():
                    existing.site_counts[site] = existing.site_counts.get(site, 0) + count
        return merged

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def likelihoods(self, block: HaplotypeBlock) -> GenotypeLikelihoods:
        return self._blocks[block].likelihoods

    def evidence(self, block: HaplotypeBlock) -> BlockEvidence:
        return self._blocks[block]

    def observation_count(self, site: Site) -> int:
        for evidence in self._blocks.values():
            if site in evidence.site_counts:
                return evidence.site_counts[site]
        return 0

    def __contains__(self, block: object) -> bool:
        return block in self._blocks

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[HaplotypeBlock]:
        return iter(self._blocks)

    def items(self) -> Iterator[tuple[HaplotypeBlock, BlockEvidence]]:
        for block in self:
            yield block, self._blocks[block]

    def __repr__(self) -> str:
        return f"Fingerprint(sample={str(self.sample)!r}, blocks={len(self)})"


class FingerprintStore:
    """Fingerprints keyed by SampleKey, built during one extraction run."""

    def __init__(self):
        self._fingerprints: dict[SampleKey, Fingerprint] = {}
        self._finalized = False

    def get_or_create(self, sample: SampleKey) -> Fingerprint:
        if self._finalized:
            raise RuntimeError("Fingerprint store is finalized")
        fingerprint = self._fingerprints.get(sample)
        if fingerprint is None:
            fingerprint = Fingerprint(sample)
            self._fingerprints[sample] = fingerprint
        return fingerprint

    def finalize(self) -> "FingerprintStore":
        """Freeze every fingerprint; the store is read-only afterwards."""
        for fingerprint in self._fingerprints.values():
            fingerprint.freeze()
        self._finalized = True
        return self

    @property
    def finalized(self) -> bool:
        return self._finalized

    def __getitem__(self, sample: SampleKey) -> Fingerprint:
        return self._fingerprints[sample]

    def get(self, sample: SampleKey) -> Fingerprint | None:
        return self._fingerprints.get(sample)

    def __contains__(self, sample: object) -> bool:
        return sample in self._fingerprints

    def __len__(self) -> int:
        return len(self._fingerprints)

    def __iter__(self) -> Iterator[SampleKey]:
        return iter(sorted(self._fingerprints))

    def items(self) -> Iterator[tuple[SampleKey, Fingerprint]]:
        for sample in self:
            yield sample, self._fingerprints[sample]
