from __future__ import annotations

import logging
from typing import Callable, List

from .deletions import UpstreamDeletionTracker
from .models import Allele, CandidateSite, OutputAlleleSubset, PosteriorResult

logger = logging.getLogger(__name__)


class OutputAlleleSelector:
    """Chooses the alternate alleles that progress from the posterior to the record."""

    def __init__(self, tracker: UpstreamDeletionTracker) -> None:
        self.tracker = tracker

    def select(
        self,
        posterior: PosteriorResult,
        site: CandidateSite,
        plausibility_threshold: float,
        force_keep: Callable[[Allele], bool],
    ) -> OutputAlleleSubset:
        """Return the output subset for ``site``.

        An alternate is kept when the posterior finds it plausible at
        ``plausibility_threshold`` (phred), when ``force_keep`` says so, or when it is
        the ``<NON_REF>`` placeholder standing alone (e.g. after merging reference
        blocks). Spanning-deletion alleles additionally need an upstream deletion that
        covers the site. The site is monomorphic when no real (non-placeholder)
        alternate is plausible.
        """
        alleles = posterior.alleles_used
        alternative_allele_count = len(alleles) - 1

        kept: List[Allele] = []
        mle_counts: List[int] = []
        site_is_monomorphic = True
        reference_allele_length = 0

        for allele in alleles:
            if allele.is_reference:
                reference_allele_length = allele.length
                continue

            is_lone_non_ref = alternative_allele_count == 1 and allele.is_non_ref
            is_plausible = posterior.is_polymorphic_phred_scaled_qual(allele, plausibility_threshold)

            if not allele.is_placeholder:
                site_is_monomorphic = site_is_monomorphic and not is_plausible

            to_output = is_plausible or force_keep(allele) or is_lone_non_ref
            if allele.is_span_del:
                # always consult the tracker so stale deletions get evicted
                covered = self.tracker.is_covered_by(site)
                to_output = to_output and covered

            if to_output:
                kept.append(allele)
                mle_counts.append(posterior.allele_count_at_mle(allele))
                self.tracker.record_if_deletion(reference_allele_length, allele, site)

        logger.debug(
            "%s:%d kept %d of %d alternate alleles (monomorphic=%s)",
            site.contig,
            site.start,
            len(kept),
            alternative_allele_count,
            site_is_monomorphic,
        )
        return OutputAlleleSubset(
            alleles=tuple(kept),
            mle_counts=tuple(mle_counts),
            site_is_monomorphic=site_is_monomorphic,
        )
