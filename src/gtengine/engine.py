from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .activity import ActivityScorer
from .alleles import OutputAlleleSelector
from .collaborators import AlleleTrimmer, AnnotationEngine, GivenAllelesResolver, PosteriorCalculator
from .config import CalculationModel, GenotypingConfig, OutputMode, PriorFamily, prior_family_for, resolve_model
from .deletions import UpstreamDeletionTracker
from .errors import ArgumentError, RecoverableSkip
from .models import Allele, CallResult, CandidateSite, Genotype, SiteContext, VariantRecord
from .priors import PriorProvider, compose_prior_provider
from .refconf import estimate_reference_confidence
from .utils import phred_scale_error_rate, safe_log10

logger = logging.getLogger(__name__)

MAX_ALT_ALLELES_THAT_CAN_BE_GENOTYPED = 50

LOW_QUAL_FILTER_NAME = "LowQual"
DOWNSAMPLED_KEY = "DS"
MLE_ALLELE_COUNT_KEY = "MLEAC"
MLE_ALLELE_FREQUENCY_KEY = "MLEAF"
NUMBER_OF_DISCOVERED_ALLELES_KEY = "NDA"

_INDEX_FOR_AC_EQUALS_1 = 1


@dataclass(frozen=True)
class CallerPolicy:
    """Caller-specific decisions the engine defers to.

    Attributes
    ----------
    source:
        Source string stamped on every record the engine builds.
    force_keep_allele:
        Keep an alternate allele even when the posterior does not find it plausible.
    force_site_emission:
        Emit sites that fail the emission threshold instead of estimating reference
        confidence.
    """

    source: str
    force_keep_allele: Callable[[Allele], bool]
    force_site_emission: bool


def strict_policy(config: GenotypingConfig, source: str = "gtengine") -> CallerPolicy:
    keep_all = bool(config.annotate_all_sites_with_pls)
    return CallerPolicy(
        source=source,
        force_keep_allele=lambda allele: keep_all,
        force_site_emission=config.output_mode is OutputMode.EMIT_ALL_SITES,
    )


def given_alleles_policy(config: GenotypingConfig, source: str = "gtengine") -> CallerPolicy:
    return CallerPolicy(source=source, force_keep_allele=lambda allele: True, force_site_emission=True)


def policy_for(config: GenotypingConfig, source: str = "gtengine") -> CallerPolicy:
    if config.genotype_given_alleles:
        return given_alleles_policy(config, source)
    return strict_policy(config, source)


class GenotypingEngine:
    """Turns allele-frequency posteriors into call / no-call decisions, one site at a time.

    Sites must be fed in coordinate order (see :class:`UpstreamDeletionTracker`). An
    engine holds per-walk state and must not be shared between threads; run one
    engine per partition of the genome instead.

    Parameters
    ----------
    config:
        Caller arguments (thresholds, heterozygosity, ploidy, output modes).
    samples:
        Sample names, in the order the posterior calculator uses them.
    calculator:
        External allele-frequency posterior calculator.
    policy:
        Caller policy; defaults to :func:`policy_for` ``(config)``.
    annotation_engine, trimmer, given_alleles:
        Optional collaborators used when a full :class:`SiteContext` is available.
    check_site_order:
        Raise on out-of-order sites instead of silently mis-tracking deletions.
    """

    def __init__(
        self,
        config: GenotypingConfig,
        samples: Sequence[str],
        calculator: PosteriorCalculator,
        *,
        policy: Optional[CallerPolicy] = None,
        annotation_engine: Optional[AnnotationEngine] = None,
        trimmer: Optional[AlleleTrimmer] = None,
        given_alleles: Optional[GivenAllelesResolver] = None,
        check_site_order: bool = False,
    ) -> None:
        if config is None:
            raise ArgumentError("the configuration cannot be None")
        if samples is None:
            raise ArgumentError("the sample list cannot be None")
        if calculator is None:
            raise ArgumentError("the posterior calculator cannot be None")

        self.config = config
        self.samples: Tuple[str, ...] = tuple(samples)
        self.calculator = calculator
        self.policy = policy if policy is not None else policy_for(config)
        self.annotation_engine = annotation_engine
        self.trimmer = trimmer
        self.given_alleles = given_alleles

        self.number_of_genomes = len(self.samples) * config.sample_ploidy
        self.snp_priors: PriorProvider = compose_prior_provider(
            self.number_of_genomes, config.snp_heterozygosity, config.input_priors, PriorFamily.SNP
        )
        self.indel_priors: PriorProvider = compose_prior_provider(
            self.number_of_genomes, config.indel_heterozygosity, config.input_priors, PriorFamily.INDEL
        )

        self.deletion_tracker = UpstreamDeletionTracker(check_order=check_site_order)
        self.allele_selector = OutputAlleleSelector(self.deletion_tracker)
        self.activity_scorer = ActivityScorer(
            self.snp_priors, config.sample_ploidy, config.standard_confidence_for_emitting
        )

    # ------------------------------------------------------------------
    # main entry point
    # ------------------------------------------------------------------
    def calculate_genotypes(
        self,
        site: CandidateSite,
        model: CalculationModel | str,
        context: Optional[SiteContext] = None,
        *,
        inherit_attributes: bool = False,
        per_read_likelihoods: Optional[Mapping[str, Any]] = None,
    ) -> Optional[CallResult]:
        """Genotype one site.

        Without a ``context`` the engine runs in limited-context mode: it neither
        annotates nor trims and returns None where it would otherwise estimate
        reference confidence or build an empty call.

        Returns None when there is not enough information to say anything.
        """
        if site is None:
            raise ArgumentError("site cannot be None")
        model = resolve_model(model)
        limited_context = context is None

        try:
            self._check_genotypable(site)
        except RecoverableSkip as skip:
            logger.warning("%s Site will be skipped at location %s:%d", skip, skip.contig, skip.start)
            return self.empty_call(context)

        ploidy = self.config.sample_ploidy
        priors = self.allele_frequency_priors(site, model)
        posterior = self.calculator.compute(site, ploidy, self.config.max_alternate_alleles, priors)

        subset = self.allele_selector.select(
            posterior,
            site,
            self.config.standard_confidence_for_emitting,
            self.policy.force_keep_allele,
        )

        # posterior probability that at least one alt allele exists in the samples
        p_alt_exists = 10.0**posterior.log10_posterior_of_ac_gt0

        if (
            not subset.site_is_monomorphic
            or self.config.genotype_given_alleles
            or self.config.annotate_all_sites_with_pls
        ):
            log10_confidence = posterior.log10_posterior_of_ac_eq0 + 0.0
        else:
            log10_confidence = posterior.log10_posterior_of_ac_gt0 + 0.0
        # adding 0.0 turns -0.0 into 0.0
        phred_confidence = (-10.0 * log10_confidence) + 0.0

        if (
            not self.passes_emit_threshold(phred_confidence, subset.site_is_monomorphic)
            and not self.policy.force_site_emission
        ):
            if limited_context:
                return None
            return self.estimate_reference_confidence(
                site,
                context.sample_depths,
                float(priors[_INDEX_FOR_AC_EQUALS_1]),
                ignore_covered_samples=True,
                initial_p_of_ref=p_alt_exists,
            )

        output_alleles = subset.output_alleles(site.reference)
        filters = frozenset() if self.passes_call_threshold(phred_confidence) else frozenset({LOW_QUAL_FILTER_NAME})

        genotypes = tuple(self.calculator.subset_alleles(site, ploidy, output_alleles, True))
        attributes = self.compose_call_attributes(
            inherit_attributes,
            site,
            context,
            subset.alternative_allele_mle_counts(),
            genotypes,
        )

        record = VariantRecord(
            source=self.policy.source,
            contig=site.contig,
            start=site.start,
            end=site.end,
            alleles=output_alleles,
            log10_p_error=log10_confidence,
            filters=filters,
            genotypes=genotypes,
            attributes=attributes,
        )

        if self.annotation_engine is not None and not limited_context:
            record = self.annotation_engine.annotate(record, context, per_read_likelihoods)

        # dropping alternates may leave the remaining alleles with a shared padding suffix
        if len(output_alleles) != len(site.alleles) and not limited_context and self.trimmer is not None:
            record = self.trimmer.trim(record)

        return CallResult(record=record, confidently_called=self.confidently_called(phred_confidence, p_alt_exists))

    # ------------------------------------------------------------------
    # guards and empty calls
    # ------------------------------------------------------------------
    def has_too_many_alternative_alleles(self, site: CandidateSite) -> bool:
        return len(site.alternates) > MAX_ALT_ALLELES_THAT_CAN_BE_GENOTYPED

    def _check_genotypable(self, site: CandidateSite) -> None:
        if self.has_too_many_alternative_alleles(site):
            raise RecoverableSkip(
                f"Attempting to genotype more than {MAX_ALT_ALLELES_THAT_CAN_BE_GENOTYPED} alternate alleles.",
                contig=site.contig,
                start=site.start,
            )
        if site.n_samples == 0:
            raise RecoverableSkip("Site has no samples.", contig=site.contig, start=site.start)

    def empty_call(self, context: Optional[SiteContext]) -> Optional[CallResult]:
        """Build a placeholder call for a site that cannot be genotyped.

        Only produced when the policy forces site emission and a full context is
        available; otherwise returns None.
        """
        if context is None:
            return None
        if not self.policy.force_site_emission:
            return None

        if self.config.genotype_given_alleles:
            if self.given_alleles is None:
                logger.warning("No given-alleles resolver configured; cannot emit %s:%d", context.contig, context.position)
                return None
            resolved = self.given_alleles.resolve(context)
            if resolved is None:
                return None
            start, end, alleles = resolved
            record = VariantRecord(
                source=self.policy.source,
                contig=context.contig,
                start=start,
                end=end,
                alleles=tuple(alleles),
            )
        else:
            # non-standard reference bases (IUPAC codes etc.) cannot be emitted
            if not Allele.acceptable_bases(context.reference_base):
                return None
            record = VariantRecord(
                source=self.policy.source,
                contig=context.contig,
                start=context.position,
                end=context.position,
                alleles=(Allele(context.reference_base, is_reference=True),),
            )

        if self.annotation_engine is not None:
            record = self.annotation_engine.annotate(record, context, None)

        return CallResult(record=record, confidently_called=False)

    # ------------------------------------------------------------------
    # priors and thresholds
    # ------------------------------------------------------------------
    def allele_frequency_priors(self, site: CandidateSite, model: CalculationModel | str) -> np.ndarray:
        """log10 priors for allele counts ``0..total_ploidy(site)`` under ``model``."""
        total_ploidy = site.total_ploidy(self.config.sample_ploidy)
        family = prior_family_for(model, site)
        provider = self.snp_priors if family is PriorFamily.SNP else self.indel_priors
        return provider.for_total_ploidy(total_ploidy)

    def passes_emit_threshold(self, conf: float, best_guess_is_ref: bool) -> bool:
        return (self.config.output_mode is OutputMode.EMIT_ALL_CONFIDENT_SITES or not best_guess_is_ref) and conf >= min(
            self.config.standard_confidence_for_calling, self.config.standard_confidence_for_emitting
        )

    def passes_call_threshold(self, conf: float) -> bool:
        return conf >= self.config.standard_confidence_for_calling

    def confidently_called(self, conf: float, p_of_f: float) -> bool:
        return conf >= self.config.standard_confidence_for_calling or (
            self.config.genotype_given_alleles
            and phred_scale_error_rate(p_of_f) >= self.config.standard_confidence_for_calling
        )

    # ------------------------------------------------------------------
    # reference confidence
    # ------------------------------------------------------------------
    def estimate_reference_confidence(
        self,
        site: CandidateSite,
        sample_depths: Optional[Mapping[str, int]],
        log10_theta: float,
        *,
        ignore_covered_samples: bool,
        initial_p_of_ref: float,
    ) -> Optional[CallResult]:
        if sample_depths is None:
            return None
        confident = estimate_reference_confidence(
            self.samples,
            sample_depths,
            log10_theta,
            safe_log10(initial_p_of_ref),
            call_threshold=self.config.standard_confidence_for_calling,
            ignore_covered_samples=ignore_covered_samples,
        )
        record = VariantRecord(
            source=self.policy.source,
            contig=site.contig,
            start=site.start,
            end=site.end,
            alleles=site.alleles,
            attributes=dict(site.attributes),
        )
        return CallResult(record=record, confidently_called=confident, is_reference_estimate=True)

    # ------------------------------------------------------------------
    # attributes and headers
    # ------------------------------------------------------------------
    def compose_call_attributes(
        self,
        inherit_attributes: bool,
        site: CandidateSite,
        context: Optional[SiteContext],
        mle_allele_counts: List[int],
        genotypes: Sequence[Genotype],
    ) -> Dict[str, Any]:
        attributes: Dict[str, Any] = {}

        if inherit_attributes:
            attributes.update(site.attributes)

        if context is not None and context.downsampled:
            attributes[DOWNSAMPLED_KEY] = True

        if mle_allele_counts:
            attributes[MLE_ALLELE_COUNT_KEY] = list(mle_allele_counts)
            attributes[MLE_ALLELE_FREQUENCY_KEY] = calculate_mle_allele_frequencies(mle_allele_counts, genotypes)

        if self.config.annotate_number_of_alleles_discovered:
            attributes[NUMBER_OF_DISCOVERED_ALLELES_KEY] = len(site.alternates)

        return attributes

    def info_header_lines(self) -> List[Dict[str, Any]]:
        """INFO definitions for optional attributes, shaped for ``pysam.VariantHeader.info.add``."""
        lines: List[Dict[str, Any]] = []
        if self.config.annotate_number_of_alleles_discovered:
            lines.append(
                {
                    "id": NUMBER_OF_DISCOVERED_ALLELES_KEY,
                    "number": 1,
                    "type": "Integer",
                    "description": "Number of alternate alleles discovered (but not necessarily genotyped) at this site",
                }
            )
        return lines

    def active_state_profile_value(self, log10_genotype_likelihoods: Sequence[float]) -> float:
        return self.activity_scorer.score(log10_genotype_likelihoods)


def calculate_mle_allele_frequencies(mle_allele_counts: Sequence[int], genotypes: Sequence[Genotype]) -> List[float]:
    """MLE allele frequencies, ``min(1, AC / AN)`` with AN = called alleles in ``genotypes``."""
    an = sum(g.called_allele_count for g in genotypes)
    if an == 0:
        return [0.0 for _ in mle_allele_counts]
    return [min(1.0, float(ac) / an) for ac in mle_allele_counts]
