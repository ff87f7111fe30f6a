from __future__ import annotations

import gzip
import json
import logging
import math
from pathlib import Path
from typing import Any, Sequence, TextIO

import numpy as np
from scipy.stats import binom

logger = logging.getLogger(__name__)

_LN10 = math.log(10.0)


def safe_log10(p: float) -> float:
    """log10 that maps 0 to -inf instead of raising."""
    if p <= 0.0:
        return -math.inf
    return math.log10(p)


def log10_one_minus_pow10(log10_x: float) -> float:
    """Return log10(1 - 10^log10_x) for log10_x <= 0."""
    if log10_x == 0.0:
        return -math.inf
    if log10_x == -math.inf:
        return 0.0
    # log1p keeps precision when 10^x is tiny
    return math.log1p(-(10.0**log10_x)) / _LN10


def log10_sum_log10(values: Sequence[float] | np.ndarray, start: int = 0, end: int | None = None) -> float:
    """log10(sum(10^v)) over values[start:end], computed stably."""
    arr = np.asarray(values, dtype=float)[start:end]
    if arr.size == 0:
        return -math.inf
    top = float(np.max(arr))
    if top == -math.inf:
        return -math.inf
    return top + float(np.log10(np.sum(np.power(10.0, arr - top))))


def log10_binomial_probability(n: int, k: int, p: float = 0.5) -> float:
    """log10 of the binomial pmf P(K = k; n, p)."""
    return float(binom.logpmf(k, n, p)) / _LN10


def phred_scale_error_rate(error_rate: float) -> float:
    return abs(-10.0 * safe_log10(error_rate))


def phred_scale_log10_correct_rate(log10_correct: float) -> float:
    """Phred-scale the error implied by a log10 probability of being correct."""
    return abs(-10.0 * log10_one_minus_pow10(log10_correct))


def qual_to_error_prob_log10(qual: float) -> float:
    return qual / -10.0


def ensure_outdir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def open_textmaybe_gzip(path: str | Path, mode: str = "rt") -> TextIO:
    p = str(path)
    if p.endswith(".gz"):
        return gzip.open(p, mode)  # type: ignore[return-value]
    return open(p, mode)


def write_json(path: str | Path, obj: Any) -> None:
    with open(path, "wt", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, sort_keys=True)
