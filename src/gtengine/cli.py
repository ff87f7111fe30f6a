from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Dict, Iterable, Optional

import numpy as np
from tqdm import tqdm

from . import __version__
from .activity import ActivityScorer
from .config import GenotypingConfig, PriorFamily
from .priors import PriorProvider, compute_allele_frequency_priors
from .toy_data import make_toy_data
from .utils import ensure_outdir, open_textmaybe_gzip, write_json
from .vcf import SampleLikelihoods, check_vcf_index, iter_sample_likelihoods


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _log_path(outdir: Path, name: str) -> Path:
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    sys.stderr.write(f"{err.__class__.__name__}: {err}\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gtengine",
        description=(
            "gtengine: site-level genotyping decisions from allele-frequency posteriors. "
            "The command line exposes the prior model and the single-sample activity score."
        ),
    )
    p.add_argument("--version", action="version", version=f"gtengine {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # priors
    # -----------------
    pr = sub.add_parser(
        "priors",
        help="Print the allele-frequency prior vector for a total ploidy.",
    )
    pr.add_argument("--total-ploidy", type=int, required=True, help="Number of chromosomes (samples x ploidy).")
    pr.add_argument("--heterozygosity", type=float, default=1e-3, help="Heterozygosity (theta).")
    pr.add_argument(
        "--input-prior",
        type=float,
        nargs="+",
        default=[],
        help="Custom priors for allele counts 1..N (replaces --heterozygosity).",
    )
    pr.add_argument("--json", dest="json_out", default=None, help="Also write the vector to this JSON file.")
    pr.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v, -vv).")

    # -----------------
    # activity
    # -----------------
    a = sub.add_parser(
        "activity",
        help="Score per-sample evidence of a non-reference allele from VCF PL/GL values.",
    )
    a.add_argument("--vcf", required=True, type=_path_exists, help="VCF with PL or GL fields (.vcf/.vcf.gz).")
    a.add_argument("--outdir", required=True, help="Output directory.")
    a.add_argument("--sample", nargs="+", default=None, help="Samples to score (default: all).")
    a.add_argument("--ploidy", type=int, default=2, help="Sample ploidy.")
    a.add_argument("--heterozygosity", type=float, default=1e-3, help="SNP heterozygosity (theta).")
    a.add_argument(
        "--emit-conf",
        type=float,
        default=10.0,
        help="Phred-scaled confidence below which a site is considered inactive.",
    )
    a.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    a.add_argument("--dry-run", action="store_true", help="Validate inputs without writing outputs.")
    a.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v, -vv).")

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny VCF with genotype likelihoods for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    return p


def cmd_priors(args: argparse.Namespace) -> int:
    _setup_logging(args.verbose)
    try:
        priors = compute_allele_frequency_priors(
            int(args.total_ploidy), float(args.heterozygosity), [float(x) for x in args.input_prior]
        )
        payload = {
            "total_ploidy": int(args.total_ploidy),
            "heterozygosity": float(args.heterozygosity),
            "input_prior": [float(x) for x in args.input_prior],
            "log10_priors": priors.tolist(),
            "priors": np.power(10.0, priors).tolist(),
        }
        print(json.dumps(payload, indent=2))
        if args.json_out is not None:
            write_json(args.json_out, payload)
        return 0
    except Exception as e:
        return _handle_error(e)


def _score_records(
    records: Iterable[SampleLikelihoods],
    scorer: ActivityScorer,
    out_path: Path,
) -> Dict[str, int]:
    counts = {"scored": 0, "active": 0}
    with open_textmaybe_gzip(out_path, "wt") as fh:
        fh.write("\t".join(["contig", "pos", "ref", "alt", "sample", "activity"]) + "\n")
        for rec in records:
            value = scorer.score(rec.log10_likelihoods)
            counts["scored"] += 1
            if value > 0.0:
                counts["active"] += 1
            fh.write(f"{rec.contig}\t{rec.pos}\t{rec.ref}\t{','.join(rec.alts)}\t{rec.sample}\t{value:.6f}\n")
    return counts


def cmd_activity(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    log_path = _log_path(outdir, "activity.log")
    _setup_logging(args.verbose, logfile=None if args.dry_run else log_path)

    logger = logging.getLogger("gtengine")
    logger.info("gtengine %s", __version__)

    try:
        check_vcf_index(args.vcf)
        # validates ploidy / heterozygosity / thresholds the same way the engine does
        config = GenotypingConfig(
            sample_ploidy=int(args.ploidy),
            snp_heterozygosity=float(args.heterozygosity),
            standard_confidence_for_emitting=float(args.emit_conf),
        )
        scorer = ActivityScorer(
            PriorProvider(PriorFamily.SNP, config.snp_heterozygosity),
            config.sample_ploidy,
            config.standard_confidence_for_emitting,
        )
        # fail fast on a heterozygosity that is invalid for this ploidy
        scorer.snp_priors.for_total_ploidy(config.sample_ploidy)

        if args.dry_run:
            print("Dry-run: inputs look OK.")
            print("Planned outputs:")
            print(f"  activity.tsv.gz -> {outdir / 'activity.tsv.gz'}")
            print(f"  summary.json -> {outdir / 'summary.json'}")
            return 0

        t0 = time.time()
        outdir = ensure_outdir(outdir)
        stats: Dict[str, int] = {}
        records: Iterable[SampleLikelihoods] = iter_sample_likelihoods(
            args.vcf, samples=args.sample, ploidy=config.sample_ploidy, stats=stats
        )
        if not args.no_progress:
            records = tqdm(records, unit="value", desc="Scoring activity")

        out_path = outdir / "activity.tsv.gz"
        counts = _score_records(records, scorer, out_path)
        if counts["scored"] == 0:
            logger.warning("No biallelic PL/GL values with %d entries were found.", config.sample_ploidy + 1)

        summary = {
            "vcf": str(args.vcf),
            "ploidy": config.sample_ploidy,
            "heterozygosity": config.snp_heterozygosity,
            "emit_conf": config.standard_confidence_for_emitting,
            "activity_tsv_gz": str(out_path),
            "counts": {**stats, **counts},
            "runtime_seconds": float(time.time() - t0),
        }
        write_json(outdir / "summary.json", summary)
        print(str(out_path))
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "priors":
        return cmd_priors(args)
    if args.cmd == "activity":
        return cmd_activity(args)
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
