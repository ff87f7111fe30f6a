from __future__ import annotations

from typing import Sequence

import numpy as np

from .errors import ArgumentError
from .priors import PriorProvider
from .utils import log10_sum_log10, qual_to_error_prob_log10


class ActivityScorer:
    """Single-sample "reference vs anything" activity score in [0, 1].

    Used to flag regions worth reassembling: 0.0 means no evidence of a non-reference
    allele, values close to 1.0 mean the sample is very likely carrying one.
    """

    def __init__(self, snp_priors: PriorProvider, ploidy: int, emit_threshold: float) -> None:
        if ploidy < 1:
            raise ArgumentError("ploidy must be >= 1")
        self.snp_priors = snp_priors
        self.ploidy = int(ploidy)
        self.emit_threshold = float(emit_threshold)

    def score(self, log10_genotype_likelihoods: Sequence[float] | np.ndarray) -> float:
        if log10_genotype_likelihoods is None:
            raise ArgumentError("the input likelihoods cannot be None")
        likelihoods = np.asarray(log10_genotype_likelihoods, dtype=float)
        if likelihoods.shape != (self.ploidy + 1,):
            raise ArgumentError(
                f"wrong likelihoods dimensions. Expected {self.ploidy + 1}, found {likelihoods.size}."
            )

        priors = self.snp_priors.for_total_ploidy(self.ploidy)
        log10_ac_eq0_posterior = likelihoods[0] + priors[0]

        # A MAP allele count of 0 scores 0.0 however plausible AC > 0 is.
        if not np.any(priors[1:] + likelihoods[1:] > log10_ac_eq0_posterior):
            return 0.0

        # Likelihoods and priors of AC > 0 are summed separately and then combined, as
        # if sum(a_i * b_i) == sum(a_i) * sum(b_i). This matches what the exact
        # allele-frequency calculators do and must stay this way.
        log10_ac_gt0_likelihood = log10_sum_log10(likelihoods, 1)
        log10_ac_gt0_prior = log10_sum_log10(priors, 1)
        log10_ac_gt0_posterior = log10_ac_gt0_likelihood + log10_ac_gt0_prior
        normalization = log10_sum_log10([log10_ac_eq0_posterior, log10_ac_gt0_posterior])

        normalized_ac_eq0 = float(log10_ac_eq0_posterior - normalization)
        if normalized_ac_eq0 >= qual_to_error_prob_log10(self.emit_threshold):
            return 0.0

        return 1.0 - 10.0**normalized_ac_eq0
