import gzip
import json
import math
import subprocess
import sys
from pathlib import Path

from gtengine.toy_data import make_toy_data


def _run_cli(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "gtengine"] + args,
        check=False,
        capture_output=True,
        text=True,
    )


def test_priors_json(tmp_path: Path) -> None:
    out = tmp_path / "priors.json"
    cp = _run_cli(["priors", "--total-ploidy", "2", "--heterozygosity", "0.001", "--json", str(out)])
    assert cp.returncode == 0, cp.stderr
    payload = json.loads(cp.stdout)
    assert payload["total_ploidy"] == 2
    assert len(payload["log10_priors"]) == 3
    assert math.isclose(payload["log10_priors"][1], -3.0)
    assert math.isclose(sum(payload["priors"]), 1.0, abs_tol=1e-9)
    assert json.loads(out.read_text()) == payload


def test_priors_custom_input() -> None:
    cp = _run_cli(["priors", "--total-ploidy", "2", "--input-prior", "0.1", "0.05"])
    assert cp.returncode == 0, cp.stderr
    payload = json.loads(cp.stdout)
    assert math.isclose(payload["priors"][0], 0.85)


def test_priors_errors_are_reported() -> None:
    cp = _run_cli(["priors", "--total-ploidy", "3", "--heterozygosity", "0.6"])
    assert cp.returncode == 2
    assert "ConfigurationError" in cp.stderr

    cp = _run_cli(["priors", "--total-ploidy", "2", "--input-prior", "0.1"])
    assert cp.returncode == 2
    assert "ArgumentError" in cp.stderr


def test_priors_rejects_non_finite_heterozygosity() -> None:
    for theta in ("nan", "0"):
        cp = _run_cli(["priors", "--total-ploidy", "2", "--heterozygosity", theta])
        assert cp.returncode == 2
        assert "ArgumentError" in cp.stderr
        assert "NaN" not in cp.stdout


def test_make_toy_data_dry_run(tmp_path: Path) -> None:
    cp = _run_cli(["make-toy-data", "--outdir", str(tmp_path / "toy"), "--dry-run"])
    assert cp.returncode == 0
    assert "Would write toy data" in cp.stdout
    assert not (tmp_path / "toy").exists()


def test_make_toy_data(tmp_path: Path) -> None:
    cp = _run_cli(["make-toy-data", "--outdir", str(tmp_path / "toy")])
    assert cp.returncode == 0, cp.stderr
    summary = json.loads(cp.stdout)
    assert Path(summary["toy_vcf"]).exists()


def test_activity_end_to_end(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    outdir = tmp_path / "out"
    cp = _run_cli(["activity", "--vcf", toy["toy_vcf"], "--outdir", str(outdir), "--no-progress"])
    assert cp.returncode == 0, cp.stderr
    assert str(outdir / "activity.tsv.gz") in cp.stdout

    with gzip.open(outdir / "activity.tsv.gz", "rt") as fh:
        lines = [line.rstrip("\n").split("\t") for line in fh]
    assert lines[0] == ["contig", "pos", "ref", "alt", "sample", "activity"]
    rows = {(r[1], r[4]): float(r[5]) for r in lines[1:]}
    assert len(rows) == 8
    # hom-ref evidence is inactive; a confident het is active
    assert rows[("10", "SAMPLE1")] == 0.0
    assert rows[("50", "SAMPLE1")] > 0.9

    summary = json.loads((outdir / "summary.json").read_text())
    assert summary["counts"]["scored"] == 8
    assert summary["counts"]["records_total"] == 4
    assert (outdir / "logs" / "activity.log").exists()


def test_activity_dry_run(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    outdir = tmp_path / "out"
    cp = _run_cli(["activity", "--vcf", toy["toy_vcf"], "--outdir", str(outdir), "--dry-run"])
    assert cp.returncode == 0, cp.stderr
    assert "Dry-run: inputs look OK." in cp.stdout
    assert not (outdir / "activity.tsv.gz").exists()


def test_activity_rejects_missing_vcf(tmp_path: Path) -> None:
    cp = _run_cli(["activity", "--vcf", str(tmp_path / "missing.vcf.gz"), "--outdir", str(tmp_path)])
    assert cp.returncode == 2
    assert "Path does not exist" in cp.stderr
