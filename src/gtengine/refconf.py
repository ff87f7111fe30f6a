"""Reference confidence for sites that are not confidently variant.

A site that fails the emission threshold was judged only from samples with data.
Each remaining sample contributes the probability that it is truly hom-ref given
that no alternate-supporting read was seen, which depends on its depth: at depth
zero the sample is hom-ref with probability ``1 - theta``; every extra read makes a
hidden heterozygote less likely.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from .errors import ArgumentError
from .utils import log10_binomial_probability, log10_one_minus_pow10, phred_scale_log10_correct_rate

logger = logging.getLogger(__name__)


def ref_binomial_prob_log10(depth: int) -> float:
    """log10 probability of seeing no alternate read in ``depth`` reads of a het sample."""
    if depth < 0:
        raise ArgumentError(f"depth cannot be less than 0, got {depth}")
    return log10_binomial_probability(depth, 0)


def log10_reference_confidence_for_one_sample(depth: int, log10_theta: float) -> float:
    """log10 probability that a sample with ``depth`` reads and no alt evidence is hom-ref.

    Assumes a diploid sample.
    """
    log10_p_non_ref = log10_theta + ref_binomial_prob_log10(depth)
    return log10_one_minus_pow10(log10_p_non_ref)


def estimate_reference_confidence(
    samples: Iterable[str],
    per_sample_depth: Mapping[str, int],
    log10_theta: float,
    initial_log10_p_of_ref: float,
    *,
    call_threshold: float,
    ignore_covered_samples: bool = False,
) -> bool:
    """Return True if the site is confidently hom-ref across ``samples``.

    Samples are treated as independent. With ``ignore_covered_samples`` set, samples
    present in ``per_sample_depth`` are skipped because the posterior already
    accounted for them.
    """
    log10_p_of_ref = initial_log10_p_of_ref
    for sample in samples:
        depth = per_sample_depth.get(sample)
        if depth is not None and depth < 0:
            raise ArgumentError(f"depth cannot be less than 0, got {depth} for sample {sample}")
        if ignore_covered_samples and depth is not None:
            continue
        log10_p_of_ref += log10_reference_confidence_for_one_sample(depth or 0, log10_theta)

    qual = phred_scale_log10_correct_rate(log10_p_of_ref)
    logger.debug("Reference confidence %.2f (threshold %.2f)", qual, call_threshold)
    return qual >= call_threshold
