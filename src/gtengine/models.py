from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from .errors import ArgumentError

_ACCEPTABLE_BASES = frozenset("ACGTN")


@dataclass(frozen=True)
class Allele:
    """An allele at a site: a base string or a symbolic tag.

    Attributes
    ----------
    bases:
        Upper-cased base string (``"ACGT"``), a symbolic tag (``"<NON_REF>"``),
        the spanning-deletion star ``"*"`` or the no-call marker ``"."``.
    is_reference:
        True for the site's reference allele. Two alleles with the same bases but a
        different reference flag are not equal.
    """

    bases: str
    is_reference: bool = False

    def __post_init__(self) -> None:
        if not self.bases:
            raise ArgumentError("Allele bases cannot be empty")
        object.__setattr__(self, "bases", self.bases.upper())

    @property
    def is_symbolic(self) -> bool:
        b = self.bases
        if len(b) <= 1:
            return False
        # <TAG>, breakends (A[chr1:10[ or ]chr1:10]A) and single breakends (.A / A.)
        return b[0] == "<" or b[-1] == ">" or "[" in b or "]" in b or b[0] == "." or b[-1] == "."

    @property
    def is_span_del(self) -> bool:
        return self in (SPAN_DEL_ALLELE, SPAN_DEL_ALLELE_DEPRECATED)

    @property
    def is_non_ref(self) -> bool:
        return self == NON_REF_ALLELE

    @property
    def is_placeholder(self) -> bool:
        """Symbolic or spanning-deletion alleles: they carry no bases of their own."""
        return self.is_symbolic or self.is_span_del

    @property
    def is_called(self) -> bool:
        return self.bases != "."

    @property
    def length(self) -> int:
        return 0 if self.is_symbolic else len(self.bases)

    @staticmethod
    def acceptable_bases(bases: str) -> bool:
        return bool(bases) and all(b in _ACCEPTABLE_BASES for b in bases.upper())

    def __str__(self) -> str:
        return self.bases + ("*" if self.is_reference else "")


NON_REF_ALLELE = Allele("<NON_REF>")
SPAN_DEL_ALLELE = Allele("*")
SPAN_DEL_ALLELE_DEPRECATED = Allele("<*:DEL>")
NO_CALL_ALLELE = Allele(".")


@dataclass(frozen=True)
class CandidateSite:
    """One genomic site presented for genotyping.

    Coordinates are 1-based and inclusive. ``alleles`` starts with the reference
    allele. ``likelihoods`` is opaque to the core and only forwarded to the
    posterior calculator.
    """

    contig: str
    start: int
    end: int
    alleles: Tuple[Allele, ...]
    n_samples: int
    ploidy: Optional[int] = None
    likelihoods: Any = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "alleles", tuple(self.alleles))
        if not self.alleles or not self.alleles[0].is_reference:
            raise ArgumentError("The first allele of a site must be the reference allele")
        if any(a.is_reference for a in self.alleles[1:]):
            raise ArgumentError("A site can only have one reference allele")
        if self.start > self.end:
            raise ArgumentError(f"Site start {self.start} is after its end {self.end}")
        if self.n_samples < 0:
            raise ArgumentError("n_samples cannot be negative")

    @property
    def reference(self) -> Allele:
        return self.alleles[0]

    @property
    def alternates(self) -> Tuple[Allele, ...]:
        return self.alleles[1:]

    @property
    def is_snp(self) -> bool:
        alts = [a for a in self.alternates if not a.is_non_ref]
        return bool(alts) and all(a.length == 1 and not a.is_placeholder for a in alts) and self.reference.length == 1

    def total_ploidy(self, default_ploidy: int) -> int:
        ploidy = self.ploidy if self.ploidy is not None else default_ploidy
        return self.n_samples * ploidy


@dataclass(frozen=True)
class PosteriorResult:
    """What the external allele-frequency calculator reports for a site.

    ``log10_p_ref_by_allele`` holds, per alternate allele, the log10 posterior that
    the allele is absent (its allele count is zero).
    """

    alleles_used: Tuple[Allele, ...]
    log10_posterior_of_ac_eq0: float
    log10_posterior_of_ac_gt0: float
    log10_p_ref_by_allele: Mapping[Allele, float]
    mle_allele_counts: Mapping[Allele, int]

    def is_polymorphic_phred_scaled_qual(self, allele: Allele, min_phred: float) -> bool:
        return self.log10_p_ref_by_allele[allele] < min_phred / -10.0

    def allele_count_at_mle(self, allele: Allele) -> int:
        return int(self.mle_allele_counts[allele])


@dataclass(frozen=True)
class OutputAlleleSubset:
    """Alternate alleles chosen for output, with their MLE allele counts."""

    alleles: Tuple[Allele, ...]
    mle_counts: Tuple[int, ...]
    site_is_monomorphic: bool

    def output_alleles(self, reference: Allele) -> Tuple[Allele, ...]:
        return (reference,) + self.alleles

    def alternative_allele_mle_counts(self) -> list[int]:
        return list(self.mle_counts)


@dataclass(frozen=True)
class Genotype:
    sample: str
    alleles: Tuple[Allele, ...]

    @property
    def called_allele_count(self) -> int:
        return sum(1 for a in self.alleles if a.is_called)


@dataclass(frozen=True)
class VariantRecord:
    """A call record as assembled by the engine (not serialized here)."""

    source: str
    contig: str
    start: int
    end: int
    alleles: Tuple[Allele, ...]
    log10_p_error: Optional[float] = None
    filters: FrozenSet[str] = frozenset()
    genotypes: Tuple[Genotype, ...] = ()
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def phred_scaled_qual(self) -> Optional[float]:
        if self.log10_p_error is None:
            return None
        return (-10.0 * self.log10_p_error) + 0.0

    @property
    def is_filtered(self) -> bool:
        return bool(self.filters)


@dataclass(frozen=True)
class CallResult:
    """Outcome of genotyping one site.

    ``is_reference_estimate`` marks results produced by the reference-confidence
    fallback; those records mirror the input site and are not meant to be emitted
    as variant calls.
    """

    record: Optional[VariantRecord]
    confidently_called: bool
    is_reference_estimate: bool = False


@dataclass(frozen=True)
class SiteContext:
    """Reference/alignment/feature context available to a locus walker.

    ``sample_depths`` maps each sample with read data at the locus to its pileup
    depth; samples absent from it are treated as uncovered.
    """

    contig: str
    position: int
    reference_base: str
    sample_depths: Mapping[str, int]
    features: Any = None
    downsampled: bool = False

    def __post_init__(self) -> None:
        negative = sorted(s for s, depth in (self.sample_depths or {}).items() if depth < 0)
        if negative:
            raise ArgumentError(f"Sample depths cannot be negative: {negative}")
