"""Exception types raised by the genotyping core."""

from __future__ import annotations


class GenotypingError(ValueError):
    """Base class for errors raised by gtengine."""


class ArgumentError(GenotypingError):
    """A caller passed a malformed value (bad custom priors, negative depth, ...)."""


class ConfigurationError(GenotypingError):
    """The engine configuration cannot produce a valid prior (e.g. heterozygosity too high)."""


class ModelError(GenotypingError):
    """Unrecognized genotype likelihood calculation model."""


class RecoverableSkip(GenotypingError):
    """A site cannot be genotyped but processing of later sites may continue."""

    def __init__(self, message: str, *, contig: str, start: int) -> None:
        super().__init__(message)
        self.contig = contig
        self.start = int(start)
