from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from .errors import ArgumentError
from .models import Allele, CandidateSite


@dataclass(frozen=True)
class DeletionInterval:
    """Reference span of an accepted deletion: ``[start, end]`` on ``contig``."""

    contig: str
    start: int
    end: int


class UpstreamDeletionTracker:
    """Remembers deletions emitted at earlier sites.

    A spanning-deletion allele (``*``) is only meaningful where a real deletion that
    started upstream still covers the position. The tracker keeps the deletions that
    may still cover later sites and drops the rest as it goes.

    Sites must be presented in non-decreasing start order within a contig, and a
    contig must not be revisited once the walk has moved to another one. Intervals
    are evicted on that assumption, so out-of-order input silently yields wrong
    coverage answers. Pass ``check_order=True`` to raise instead (useful in tests).

    One tracker belongs to one engine instance and is not thread-safe.
    """

    def __init__(self, *, check_order: bool = False) -> None:
        self._intervals: List[DeletionInterval] = []
        self._check_order = check_order
        self._last: Optional[Tuple[str, int]] = None
        self._finished_contigs: Set[str] = set()

    def __len__(self) -> int:
        return len(self._intervals)

    @property
    def intervals(self) -> Tuple[DeletionInterval, ...]:
        return tuple(self._intervals)

    def _observe(self, site: CandidateSite) -> None:
        if not self._check_order:
            return
        if self._last is not None:
            last_contig, last_start = self._last
            if site.contig == last_contig:
                if site.start < last_start:
                    raise ArgumentError(
                        f"Sites out of order on {site.contig}: {site.start} after {last_start}"
                    )
            else:
                if site.contig in self._finished_contigs:
                    raise ArgumentError(f"Contig {site.contig} revisited after moving to another contig")
                self._finished_contigs.add(last_contig)
        self._last = (site.contig, site.start)

    def record_if_deletion(self, reference_allele_length: int, allele: Allele, site: CandidateSite) -> None:
        """Track ``allele`` if it is shorter than the reference allele."""
        self._observe(site)
        deletion_size = reference_allele_length - allele.length
        if deletion_size > 0:
            self._intervals.append(DeletionInterval(site.contig, site.start, site.start + deletion_size))

    def is_covered_by(self, site: CandidateSite) -> bool:
        """True if an upstream deletion spans ``site``.

        Intervals on another contig or ending before the site are evicted. A deletion
        starting exactly at the site does not count.
        """
        self._observe(site)
        covered = False
        kept: List[DeletionInterval] = []
        for interval in self._intervals:
            if interval.contig != site.contig or interval.end < site.start:
                continue
            kept.append(interval)
            if interval.start < site.start:
                covered = True
        self._intervals = kept
        return covered
