from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence, Tuple

from gtengine.models import (
    Allele,
    CandidateSite,
    Genotype,
    PosteriorResult,
    VariantRecord,
)


def ref(bases: str) -> Allele:
    return Allele(bases, is_reference=True)


def make_site(
    contig: str = "chr1",
    start: int = 100,
    ref_bases: str = "A",
    alts: Sequence[str | Allele] = ("C",),
    n_samples: int = 1,
    end: Optional[int] = None,
) -> CandidateSite:
    alt_alleles = tuple(a if isinstance(a, Allele) else Allele(a) for a in alts)
    return CandidateSite(
        contig=contig,
        start=start,
        end=end if end is not None else start + len(ref_bases) - 1,
        alleles=(ref(ref_bases),) + alt_alleles,
        n_samples=n_samples,
    )


def make_posterior(
    site: CandidateSite,
    log10_p_ref: Dict[str, float],
    *,
    log10_ac_eq0: Optional[float] = None,
    mle: Optional[Dict[str, int]] = None,
) -> PosteriorResult:
    """Posterior keyed by allele bases; AC>0 is the complement of AC=0."""
    by_allele = {a: float(log10_p_ref[a.bases]) for a in site.alternates}
    counts = {a: int((mle or {}).get(a.bases, 1)) for a in site.alternates}
    eq0 = log10_ac_eq0 if log10_ac_eq0 is not None else min(by_allele.values(), default=0.0)
    p_eq0 = 10.0**eq0
    gt0 = math.log10(1.0 - p_eq0) if p_eq0 < 1.0 else -math.inf
    return PosteriorResult(
        alleles_used=site.alleles,
        log10_posterior_of_ac_eq0=eq0,
        log10_posterior_of_ac_gt0=gt0,
        log10_p_ref_by_allele=by_allele,
        mle_allele_counts=counts,
    )


class FakeCalculator:
    """Returns canned posteriors and het genotypes over the requested alleles."""

    def __init__(self, samples: Sequence[str], posteriors: Optional[List[PosteriorResult]] = None) -> None:
        self.samples = list(samples)
        self.posteriors = list(posteriors or [])
        self.compute_calls: List[Tuple[CandidateSite, int, int, object]] = []
        self.subset_calls: List[Tuple[Allele, ...]] = []

    def compute(self, site, ploidy, max_alt_alleles, log10_priors):
        self.compute_calls.append((site, ploidy, max_alt_alleles, log10_priors))
        return self.posteriors.pop(0)

    def subset_alleles(self, site, ploidy, alleles, assign_genotypes):
        self.subset_calls.append(tuple(alleles))
        return tuple(Genotype(s, (alleles[0], alleles[-1])) for s in self.samples)


class RecordingAnnotator:
    def __init__(self) -> None:
        self.calls: List[VariantRecord] = []

    def annotate(self, record, context, per_read_likelihoods=None):
        self.calls.append(record)
        attributes = dict(record.attributes)
        attributes["ANNOTATED"] = True
        return VariantRecord(
            source=record.source,
            contig=record.contig,
            start=record.start,
            end=record.end,
            alleles=record.alleles,
            log10_p_error=record.log10_p_error,
            filters=record.filters,
            genotypes=record.genotypes,
            attributes=attributes,
        )


class RecordingTrimmer:
    def __init__(self) -> None:
        self.calls: List[VariantRecord] = []

    def trim(self, record):
        self.calls.append(record)
        return record


class FixedGivenAlleles:
    def __init__(self, resolved) -> None:
        self.resolved = resolved

    def resolve(self, context):
        return self.resolved
