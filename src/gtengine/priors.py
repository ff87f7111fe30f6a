"""Allele-frequency priors over the alternate allele count.

By default the infinite-sites neutral model is used, where the prior of seeing
``i`` alternate copies among ``N`` chromosomes is ``theta / i`` and the remainder
goes to ``AC = 0``. Users may replace it with an explicit prior vector.

Vectors are log10-scaled numpy arrays of length ``N + 1`` marked read-only.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Sequence

import numpy as np

from .config import PriorFamily
from .errors import ArgumentError, ConfigurationError
from .utils import safe_log10

logger = logging.getLogger(__name__)

_SUM_TOLERANCE = 1e-9


def _validate_custom_priors(n: int, custom_priors: Sequence[float]) -> None:
    if len(custom_priors) != n:
        raise ArgumentError(
            f"Invalid length of input prior vector: expected {n} values "
            f"(one per non-zero allele count), got {len(custom_priors)}"
        )
    for prior in custom_priors:
        if not (0.0 < prior < 1.0):
            raise ArgumentError("Input prior values must be greater than 0 and less than 1")


def compute_allele_frequency_priors(
    n: int,
    heterozygosity: float,
    custom_priors: Sequence[float] = (),
) -> np.ndarray:
    """Build the log10 prior vector for allele counts ``0..n``.

    Parameters
    ----------
    n:
        Total ploidy (number of chromosomes across samples).
    heterozygosity:
        Theta for the neutral model; ignored when ``custom_priors`` is given.
    custom_priors:
        Optional priors for allele counts ``1..n``, each in (0, 1).

    Raises
    ------
    ArgumentError
        Custom priors of the wrong length or out of range, or a heterozygosity that is
        not a finite positive number.
    ConfigurationError
        The mass assigned to ``AC > 0`` exceeds 1 (heterozygosity too high for the
        number of chromosomes, or invalid custom priors).
    """
    if n < 0:
        raise ArgumentError(f"Total ploidy cannot be negative, got {n}")

    priors = np.zeros(n + 1, dtype=float)
    if len(custom_priors) > 0:
        _validate_custom_priors(n, custom_priors)
        values = [float(p) for p in custom_priors]
    else:
        if not (math.isfinite(heterozygosity) and heterozygosity > 0.0):
            raise ArgumentError(f"Heterozygosity must be a finite value greater than 0, got {heterozygosity}")
        values = [heterozygosity / i for i in range(1, n + 1)]

    total = math.fsum(values)
    if total > 1.0:
        raise ConfigurationError(
            "The heterozygosity value is set too high relative to the number of samples to be "
            "processed, or invalid values were given as input priors. Try reducing heterozygosity "
            f"or correct the input priors (sum over AC>0 = {total:.6g}, total ploidy = {n})."
        )
    for i, value in enumerate(values, start=1):
        priors[i] = math.log10(value)
    priors[0] = safe_log10(1.0 - total)

    linear_sum = float(np.sum(np.power(10.0, priors)))
    # also catches NaN, which compares False both ways
    if not abs(linear_sum - 1.0) <= _SUM_TOLERANCE:
        raise ConfigurationError(f"Allele-frequency prior does not sum to 1 (sum = {linear_sum!r})")

    priors.setflags(write=False)
    return priors


class PriorProvider:
    """Caches prior vectors of one model family by total ploidy."""

    def __init__(
        self,
        family: PriorFamily,
        heterozygosity: float,
        custom_priors: Sequence[float] = (),
    ) -> None:
        self.family = PriorFamily.CUSTOM if len(custom_priors) > 0 else family
        self.heterozygosity = float(heterozygosity)
        self.custom_priors = tuple(float(p) for p in custom_priors)
        self._cache: Dict[int, np.ndarray] = {}

    def for_total_ploidy(self, total_ploidy: int) -> np.ndarray:
        cached = self._cache.get(total_ploidy)
        if cached is not None:
            return cached
        logger.debug("Building %s priors for total ploidy %d", self.family.value, total_ploidy)
        priors = compute_allele_frequency_priors(total_ploidy, self.heterozygosity, self.custom_priors)
        self._cache[total_ploidy] = priors
        return priors

    def __repr__(self) -> str:
        return (
            f"PriorProvider(family={self.family.value!r}, heterozygosity={self.heterozygosity!r}, "
            f"cached={sorted(self._cache)})"
        )


def compose_prior_provider(
    n_genomes: int,
    heterozygosity: float,
    input_priors: Sequence[float],
    family: PriorFamily,
) -> PriorProvider:
    """Create a provider and validate it against the engine's number of genomes.

    Validation happens here so a bad heterozygosity or prior vector fails when the
    engine is built rather than at the first site.
    """
    provider = PriorProvider(family, heterozygosity, input_priors)
    provider.for_total_ploidy(n_genomes)
    return provider
