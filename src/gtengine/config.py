from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Type, TypeVar

from .errors import ArgumentError, ModelError
from .models import CandidateSite

E = TypeVar("E", bound=Enum)


class GenotypingOutputMode(Enum):
    DISCOVERY = "DISCOVERY"
    GENOTYPE_GIVEN_ALLELES = "GENOTYPE_GIVEN_ALLELES"


class OutputMode(Enum):
    EMIT_VARIANTS_ONLY = "EMIT_VARIANTS_ONLY"
    EMIT_ALL_CONFIDENT_SITES = "EMIT_ALL_CONFIDENT_SITES"
    EMIT_ALL_SITES = "EMIT_ALL_SITES"


class CalculationModel(Enum):
    SNP = "SNP"
    INDEL = "INDEL"
    GENERALPLOIDYSNP = "GENERALPLOIDYSNP"
    GENERALPLOIDYINDEL = "GENERALPLOIDYINDEL"
    BOTH = "BOTH"


class PriorFamily(Enum):
    SNP = "snp"
    INDEL = "indel"
    CUSTOM = "custom"


_MODEL_FAMILY = {
    CalculationModel.SNP: PriorFamily.SNP,
    CalculationModel.GENERALPLOIDYSNP: PriorFamily.SNP,
    CalculationModel.INDEL: PriorFamily.INDEL,
    CalculationModel.GENERALPLOIDYINDEL: PriorFamily.INDEL,
}


def _coerce_enum(value: object, enum_cls: Type[E], what: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ArgumentError(f"Unknown {what} '{value}'; expected one of: {choices}") from None


def resolve_model(model: object) -> CalculationModel:
    """Turn a model tag (enum member or its name) into a CalculationModel."""
    if isinstance(model, CalculationModel):
        return model
    try:
        return CalculationModel(str(model).upper())
    except ValueError:
        raise ModelError(f"Unexpected genotype calculation model {model!r}") from None


def prior_family_for(model: object, site: CandidateSite) -> PriorFamily:
    """Map a calculation model to the prior family it draws from.

    The mixed model (``BOTH``) follows the site: SNP priors when every alternate is
    a single-base substitution, indel priors otherwise.
    """
    m = resolve_model(model)
    if m is CalculationModel.BOTH:
        return PriorFamily.SNP if site.is_snp else PriorFamily.INDEL
    return _MODEL_FAMILY[m]


@dataclass(frozen=True)
class GenotypingConfig:
    """Caller arguments shared by every genotyping engine.

    Attributes
    ----------
    sample_ploidy:
        Ploidy assumed for every sample.
    snp_heterozygosity, indel_heterozygosity:
        Per-base heterozygosity used for the infinite-sites prior of each model family.
    input_priors:
        Optional custom prior for allele counts 1..N (N = samples * ploidy). When set it
        replaces both heterozygosity priors.
    standard_confidence_for_calling:
        Minimum phred-scaled confidence for a call to be unfiltered and "confident".
    standard_confidence_for_emitting:
        Minimum phred-scaled confidence for an alternate allele to be considered plausible.
    max_alternate_alleles:
        Forwarded to the posterior calculator.
    """

    sample_ploidy: int = 2
    snp_heterozygosity: float = 1e-3
    indel_heterozygosity: float = 1.25e-4
    input_priors: Tuple[float, ...] = ()
    standard_confidence_for_calling: float = 30.0
    standard_confidence_for_emitting: float = 10.0
    max_alternate_alleles: int = 6
    annotate_number_of_alleles_discovered: bool = False
    annotate_all_sites_with_pls: bool = False
    genotyping_output_mode: GenotypingOutputMode = GenotypingOutputMode.DISCOVERY
    output_mode: OutputMode = OutputMode.EMIT_VARIANTS_ONLY

    def __post_init__(self) -> None:
        object.__setattr__(self, "input_priors", tuple(float(p) for p in self.input_priors))
        object.__setattr__(
            self,
            "genotyping_output_mode",
            _coerce_enum(self.genotyping_output_mode, GenotypingOutputMode, "genotyping output mode"),
        )
        object.__setattr__(self, "output_mode", _coerce_enum(self.output_mode, OutputMode, "output mode"))

        if self.sample_ploidy < 1:
            raise ArgumentError("sample_ploidy must be >= 1")
        for name in ("snp_heterozygosity", "indel_heterozygosity"):
            value = getattr(self, name)
            if not (0.0 < value < 1.0):
                raise ArgumentError(f"{name} must be in (0, 1), got {value}")
        if self.standard_confidence_for_calling < 0 or self.standard_confidence_for_emitting < 0:
            raise ArgumentError("confidence thresholds cannot be negative")
        if self.max_alternate_alleles < 1:
            raise ArgumentError("max_alternate_alleles must be >= 1")

    @property
    def genotype_given_alleles(self) -> bool:
        return self.genotyping_output_mode is GenotypingOutputMode.GENOTYPE_GIVEN_ALLELES
