"""Per-locus evidence capping.

Bounds the number of observations folded into a fingerprint for any single
(site, sample) pair so that a high-depth locus cannot dominate a block.
Observations are admitted in encounter order, which makes the result
reproducible for a given input ordering.
"""

from collections.abc import Iterable, Iterator
from itertools import islice
from typing import TypeVar

from .models import SampleKey, Site

T = TypeVar("T")

DEFAULT_LOCUS_MAX_READS = 50


def validate_maximum(maximum: int) -> int:
    if isinstance(maximum, bool) or not isinstance(maximum, int):
        raise ValueError(f"Evidence cap must be an integer, got {type(maximum).__name__}")
    if maximum <= 0:
        raise ValueError(f"Evidence cap must be positive, got {maximum}")
    return maximum


def cap_observations(observations: Iterable[T], maximum: int) -> Iterator[T]:
    """Yield at most ``maximum`` observations, in encounter order."""
    return islice(observations, validate_maximum(maximum))


class EvidenceCapper:
    """Running observation counts keyed by (site, sample)."""

    def __init__(self, maximum: int = DEFAULT_LOCUS_MAX_READS):
        self.maximum = validate_maximum(maximum)
        self._counts: dict[tuple[tuple[str, int], SampleKey], int] = {}
        self.discarded = 0

    def admit(self, site: Site, sample: SampleKey) -> bool:
        """Count an observation if the pair is below the cap.

        Returns:
            True if the observation should be aggregated, False if discarded
        """
        key = (site.key, sample)
        count = self._counts.get(key, 0)
        if count >= self.maximum:
            self.discarded += 1
            return False
        self._counts[key] = count + 1
        return True

    def count(self, site: Site, sample: SampleKey) -> int:
        return self._counts.get((site.key, sample), 0)

    def reset(self) -> None:
        self._counts.clear()
        self.discarded = 0

    def __len__(self) -> int:
        return len(self._counts)
