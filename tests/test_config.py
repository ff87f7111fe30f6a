import pytest

from gtengine.config import (
    CalculationModel,
    GenotypingConfig,
    GenotypingOutputMode,
    OutputMode,
    PriorFamily,
    prior_family_for,
    resolve_model,
)
from gtengine.errors import ArgumentError, GenotypingError, ModelError, RecoverableSkip
from gtengine.models import (
    NON_REF_ALLELE,
    NO_CALL_ALLELE,
    SPAN_DEL_ALLELE,
    SPAN_DEL_ALLELE_DEPRECATED,
    Allele,
    CandidateSite,
    SiteContext,
    VariantRecord,
)
from tests.helpers import make_site, ref


def test_defaults() -> None:
    cfg = GenotypingConfig()
    assert cfg.sample_ploidy == 2
    assert cfg.standard_confidence_for_calling == 30.0
    assert cfg.standard_confidence_for_emitting == 10.0
    assert cfg.genotyping_output_mode is GenotypingOutputMode.DISCOVERY
    assert cfg.output_mode is OutputMode.EMIT_VARIANTS_ONLY
    assert not cfg.genotype_given_alleles


def test_modes_from_strings() -> None:
    cfg = GenotypingConfig(genotyping_output_mode="genotype_given_alleles", output_mode="EMIT_ALL_SITES")
    assert cfg.genotype_given_alleles
    assert cfg.output_mode is OutputMode.EMIT_ALL_SITES
    with pytest.raises(ArgumentError, match="output mode"):
        GenotypingConfig(output_mode="EMIT_EVERYTHING")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"sample_ploidy": 0},
        {"snp_heterozygosity": 0.0},
        {"indel_heterozygosity": 1.0},
        {"standard_confidence_for_calling": -1.0},
        {"max_alternate_alleles": 0},
    ],
)
def test_invalid_settings(kwargs) -> None:
    with pytest.raises(ArgumentError):
        GenotypingConfig(**kwargs)


def test_errors_are_value_errors() -> None:
    assert issubclass(GenotypingError, ValueError)
    skip = RecoverableSkip("too many", contig="chr2", start=7)
    assert (skip.contig, skip.start) == ("chr2", 7)


def test_resolve_model() -> None:
    assert resolve_model("indel") is CalculationModel.INDEL
    assert resolve_model(CalculationModel.BOTH) is CalculationModel.BOTH
    with pytest.raises(ModelError):
        resolve_model("POOLED")


def test_prior_family_for() -> None:
    snp = make_site(alts=("C", "<NON_REF>"))
    mnp = make_site(ref_bases="AC", alts=("GT",))
    assert prior_family_for("GENERALPLOIDYINDEL", snp) is PriorFamily.INDEL
    assert prior_family_for("BOTH", snp) is PriorFamily.SNP
    assert prior_family_for("BOTH", mnp) is PriorFamily.INDEL


def test_allele_kinds() -> None:
    assert Allele("acgt").bases == "ACGT"
    assert Allele("A", is_reference=True) != Allele("A")
    assert NON_REF_ALLELE.is_symbolic and NON_REF_ALLELE.is_non_ref and NON_REF_ALLELE.length == 0
    assert SPAN_DEL_ALLELE.is_span_del and not SPAN_DEL_ALLELE.is_symbolic and SPAN_DEL_ALLELE.length == 1
    assert SPAN_DEL_ALLELE_DEPRECATED.is_span_del and SPAN_DEL_ALLELE_DEPRECATED.is_placeholder
    assert Allele("A[chr2:100[").is_symbolic
    assert not NO_CALL_ALLELE.is_called
    assert Allele.acceptable_bases("acgn")
    assert not Allele.acceptable_bases("R")
    with pytest.raises(ArgumentError):
        Allele("")


def test_candidate_site_validation() -> None:
    with pytest.raises(ArgumentError):
        CandidateSite("chr1", 10, 10, (Allele("C"),), 1)
    with pytest.raises(ArgumentError):
        CandidateSite("chr1", 10, 10, (ref("A"), ref("C")), 1)
    with pytest.raises(ArgumentError):
        CandidateSite("chr1", 10, 9, (ref("A"),), 1)
    with pytest.raises(ArgumentError):
        CandidateSite("chr1", 10, 10, (ref("A"),), -1)


def test_candidate_site_properties() -> None:
    site = CandidateSite("chr1", 10, 10, [ref("A"), Allele("C")], 3, ploidy=4)
    assert isinstance(site.alleles, tuple)
    assert site.reference == ref("A")
    assert site.alternates == (Allele("C"),)
    assert site.is_snp
    assert site.total_ploidy(2) == 12
    assert make_site(n_samples=3).total_ploidy(2) == 6


def test_site_context_rejects_negative_depths() -> None:
    with pytest.raises(ArgumentError, match="S2"):
        SiteContext("chr1", 10, "A", {"S1": 3, "S2": -1})
    assert SiteContext("chr1", 10, "A", {"S1": 0}).sample_depths == {"S1": 0}


def test_record_quality() -> None:
    rec = VariantRecord("x", "chr1", 1, 1, (ref("A"),))
    assert rec.phred_scaled_qual is None
    assert not rec.is_filtered
    rec = VariantRecord("x", "chr1", 1, 1, (ref("A"),), log10_p_error=-3.0, filters=frozenset({"LowQual"}))
    assert rec.phred_scaled_qual == pytest.approx(30.0)
    assert rec.is_filtered
