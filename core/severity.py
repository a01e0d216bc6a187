"""
Severity buckets for the jamming `ratio_bad` signal.

Two schemes have been used for the same concept, so they are kept side by side
as versioned tables:
- "v3": zero / low / high (legend + severity filter)
- "v4": minimal / low / moderate / high (table cell classes, map step colours)

Every table is contiguous and covers [0, 1]. Buckets are half-open
[lower, upper) except the top bucket, which also takes 1.0 and anything above.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

DEFAULT_SCHEME = "v3"

# Fixed threshold for the "high severity" stat, independent of the active scheme
HIGH_SEVERITY_THRESHOLD = 0.3


@dataclass(frozen=True)
class SeverityBucket:
    name: str
    lower: float
    upper: float
    color: str
    label: str


class BucketTable:
    """An ordered, validated partition of [0, 1]."""

    def __init__(self, version: str, buckets: Iterable[SeverityBucket]):
        self.version = version
        self.buckets: Tuple[SeverityBucket, ...] = tuple(buckets)
        self._validate()
        self._by_name: Dict[str, SeverityBucket] = {b.name: b for b in self.buckets}

    def _validate(self):
        if not self.buckets:
            raise ValueError(f"Bucket table {self.version} is empty")
        if self.buckets[0].lower != 0:
            raise ValueError(f"Bucket table {self.version} must start at 0")
        if self.buckets[-1].upper != 1:
            raise ValueError(f"Bucket table {self.version} must end at 1")
        for prev, nxt in zip(self.buckets, self.buckets[1:]):
            if prev.upper != nxt.lower:
                raise ValueError(
                    f"Bucket table {self.version} has a gap/overlap between "
                    f"'{prev.name}' and '{nxt.name}'"
                )
        names = [b.name for b in self.buckets]
        if len(set(names)) != len(names):
            raise ValueError(f"Bucket table {self.version} has duplicate names")

    @property
    def names(self) -> List[str]:
        return [b.name for b in self.buckets]

    def get(self, name: str) -> SeverityBucket:
        try:
            return self._by_name[name]
        except KeyError:
            raise ValueError(
                f"Unknown severity level '{name}' for scheme {self.version} "
                f"(expected one of: {', '.join(self.names)})"
            )

    def contains(self, bucket: SeverityBucket, ratio: float) -> bool:
        if bucket is self.buckets[-1]:
            return ratio >= bucket.lower
        if bucket is self.buckets[0]:
            return ratio < bucket.upper
        return bucket.lower <= ratio < bucket.upper

    def bucket_for(self, ratio: Optional[float]) -> SeverityBucket:
        """Bucket for a ratio; None counts as 0, negatives land in the lowest bucket."""
        ratio = ratio_or_zero(ratio)
        for bucket in self.buckets:
            if self.contains(bucket, ratio):
                return bucket
        return self.buckets[0]

    def thresholds(self) -> List[Tuple[float, str]]:
        """(lower bound, colour) pairs, used to build map step expressions."""
        return [(b.lower, b.color) for b in self.buckets]


def ratio_or_zero(value) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


BUCKET_TABLES: Dict[str, BucketTable] = {
    "v3": BucketTable("v3", [
        SeverityBucket("zero", 0.0, 0.01, "#E5E7EB", "Zero (0%-1%)"),
        SeverityBucket("low", 0.01, 0.1, "#FCD34D", "Low (1%-10%)"),
        SeverityBucket("high", 0.1, 1.0, "#DC2626", "High (10%-100%)"),
    ]),
    "v4": BucketTable("v4", [
        SeverityBucket("minimal", 0.0, 0.05, "#10B981", "Minimal (0%-5%)"),
        SeverityBucket("low", 0.05, 0.15, "#FCD34D", "Low (5%-15%)"),
        SeverityBucket("moderate", 0.15, 0.3, "#F97316", "Moderate (15%-30%)"),
        SeverityBucket("high", 0.3, 1.0, "#DC2626", "High (30%+)"),
    ]),
}


def get_bucket_table(version: str = DEFAULT_SCHEME) -> BucketTable:
    try:
        return BUCKET_TABLES[version]
    except KeyError:
        raise ValueError(
            f"Unknown severity scheme '{version}' (available: {', '.join(BUCKET_TABLES)})"
        )
