from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional, Sequence, Tuple

import numpy as np
import pysam

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SampleLikelihoods:
    """Per-genotype log10 likelihoods of one sample at one VCF record.

    ``pos`` is the 1-based VCF position.
    """

    contig: str
    pos: int
    ref: str
    alts: Tuple[str, ...]
    sample: str
    log10_likelihoods: np.ndarray


def check_vcf_index(vcf_path: str | Path) -> None:
    """Ensure a bgzipped VCF has a tabix index; raise ValueError with fix instructions."""
    vcf = Path(vcf_path)
    if vcf.suffixes[-2:] == [".vcf", ".gz"]:
        tbi = vcf.with_suffix(vcf.suffix + ".tbi")
        csi = vcf.with_suffix(vcf.suffix + ".csi")
        if not tbi.exists() and not csi.exists():
            raise ValueError(
                "VCF is not bgzip/tabix indexed. Run: bgzip -c "
                + str(vcf.with_suffix(""))
                + " > "
                + str(vcf)
                + "; tabix -p vcf "
                + str(vcf)
            )
    elif vcf.suffix == ".vcf":
        logger.info(
            "VCF is uncompressed (.vcf). This is supported but slower; "
            "consider bgzip+tabix for large files."
        )


def _extract_log10_likelihoods(sample: pysam.libcbcf.VariantRecordSample) -> Optional[np.ndarray]:
    """Best-effort extraction of log10 genotype likelihoods from PL or GL."""
    # PL is phred-scaled and normalized (best genotype = 0); GL is already log10.
    if "PL" in sample and sample["PL"] is not None:
        pl = sample["PL"]
        if isinstance(pl, (list, tuple)) and len(pl) > 0 and all(v is not None for v in pl):
            return np.asarray(pl, dtype=float) / -10.0
    if "GL" in sample and sample["GL"] is not None:
        gl = sample["GL"]
        if isinstance(gl, (list, tuple)) and len(gl) > 0 and all(v is not None for v in gl):
            return np.asarray(gl, dtype=float)
    return None


def iter_sample_likelihoods(
    vcf_path: str,
    *,
    samples: Optional[Sequence[str]] = None,
    ploidy: int = 2,
    stats: Optional[Dict[str, int]] = None,
) -> Iterator[SampleLikelihoods]:
    """Yield ref-vs-alt likelihood vectors for biallelic records.

    Only records whose likelihood vector has ``ploidy + 1`` entries (one per
    alternate allele count) are yielded; others are counted in ``stats`` and skipped.

    Parameters
    ----------
    vcf_path:
        VCF with PL or GL FORMAT fields.
    samples:
        Samples to read. If None, all samples in the header.
    stats:
        Optional dict that receives simple counters about records kept/skipped.
    """
    counters = stats if stats is not None else {}
    for key in (
        "records_total",
        "records_multiallelic",
        "sample_values_kept",
        "sample_values_missing",
        "sample_values_wrong_length",
    ):
        counters.setdefault(key, 0)

    vcf = pysam.VariantFile(vcf_path)
    try:
        header_samples = list(vcf.header.samples)
        if samples is None:
            samples = header_samples
        missing = [s for s in samples if s not in header_samples]
        if missing:
            raise ValueError(f"Samples {missing} not found in VCF samples: {header_samples}")

        # fetch() needs an index for bgzipped VCFs; fall back to sequential iteration
        try:
            iterator = vcf.fetch()
        except (ValueError, OSError):
            iterator = vcf

        for rec in iterator:
            counters["records_total"] += 1
            alts = tuple(rec.alts or ())
            if len(alts) != 1:
                counters["records_multiallelic"] += 1
                continue

            for name in samples:
                gls = _extract_log10_likelihoods(rec.samples[name])
                if gls is None:
                    counters["sample_values_missing"] += 1
                    continue
                if gls.size != ploidy + 1:
                    counters["sample_values_wrong_length"] += 1
                    continue
                counters["sample_values_kept"] += 1
                yield SampleLikelihoods(
                    contig=str(rec.contig),
                    pos=int(rec.pos),
                    ref=str(rec.ref),
                    alts=alts,
                    sample=name,
                    log10_likelihoods=gls,
                )
    finally:
        vcf.close()
