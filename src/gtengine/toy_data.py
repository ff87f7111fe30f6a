from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Tuple

import pysam

from .utils import ensure_outdir, write_json

# (0-based position, ref, alt, PL per sample)
_TOY_RECORDS: List[Tuple[int, str, str, Tuple[Tuple[int, int, int], ...]]] = [
    (9, "A", "C", ((0, 50, 500), (0, 30, 300))),
    (49, "G", "T", ((100, 0, 10), (0, 45, 450))),
    (119, "C", "G", ((300, 30, 0), (90, 0, 120))),
    (159, "T", "A", ((0, 3, 30), (0, 6, 60))),
]

# diploid genotype for the index of the best (zero) PL
_GT_BY_PL_INDEX = ((0, 0), (0, 1), (1, 1))


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create a tiny bgzipped VCF with GT and PL fields for two diploid samples.

    The outputs include:
    - toy.vcf.gz (+ .tbi)

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)

    contig = "chr1"
    vcf_path = outdir_p / "toy.vcf"
    header = pysam.VariantHeader()
    header.add_meta("fileformat", "VCFv4.2")
    header.add_sample("SAMPLE1")
    header.add_sample("SAMPLE2")
    header.contigs.add(contig, length=200)
    header.formats.add("GT", number=1, type="String", description="Genotype")
    header.formats.add(
        "PL", number="G", type="Integer", description="Normalized, phred-scaled genotype likelihoods"
    )

    with pysam.VariantFile(str(vcf_path), "w", header=header) as vcf:
        for pos0, ref_base, alt_base, pls in _TOY_RECORDS:
            rec = vcf.new_record(
                contig=contig,
                start=pos0,
                stop=pos0 + 1,
                alleles=(ref_base, alt_base),
                id=f"{contig}:{pos0 + 1}:{ref_base}:{alt_base}",
            )
            for i, pl in enumerate(pls):
                # Number=G fields are sized from the genotype, so GT goes first
                rec.samples[i]["GT"] = _GT_BY_PL_INDEX[pl.index(min(pl))]
                rec.samples[i]["PL"] = pl
            vcf.write(rec)

    vcf_gz = outdir_p / "toy.vcf.gz"
    pysam.tabix_compress(str(vcf_path), str(vcf_gz), force=True)
    pysam.tabix_index(str(vcf_gz), preset="vcf", force=True)

    summary = {
        "toy_vcf": str(vcf_gz),
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
