"""Interfaces of the components the engine calls out to.

The engine does not compute allele-frequency posteriors, annotate records or
normalize allele representations itself. Callers plug in objects satisfying these
protocols; every call is expected to be synchronous and deterministic.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence, Tuple

import numpy as np

from .models import Allele, CandidateSite, Genotype, PosteriorResult, SiteContext, VariantRecord


class PosteriorCalculator(Protocol):
    def compute(
        self,
        site: CandidateSite,
        ploidy: int,
        max_alt_alleles: int,
        log10_priors: np.ndarray,
    ) -> PosteriorResult:
        """Posterior over allele counts for ``site`` under ``log10_priors``."""
        ...

    def subset_alleles(
        self,
        site: CandidateSite,
        ploidy: int,
        alleles: Sequence[Allele],
        assign_genotypes: bool,
    ) -> Tuple[Genotype, ...]:
        """Genotypes of ``site`` restricted to ``alleles`` (reference first)."""
        ...


class AnnotationEngine(Protocol):
    def annotate(
        self,
        record: VariantRecord,
        context: SiteContext,
        per_read_likelihoods: Optional[Mapping[str, Any]] = None,
    ) -> VariantRecord:
        ...


class AlleleTrimmer(Protocol):
    def trim(self, record: VariantRecord) -> VariantRecord:
        """Reverse-trim alleles left padded after dropping alternates."""
        ...


class GivenAllelesResolver(Protocol):
    def resolve(self, context: SiteContext) -> Optional[Tuple[int, int, Tuple[Allele, ...]]]:
        """Return ``(start, end, alleles)`` of the given alleles at the context locus, or None."""
        ...
