"""gtengine: site-level genotyping decisions from allele-frequency posteriors.

The engine decides, one site at a time, whether the evidence is strong enough to
emit a variant call, which alternate alleles survive into the record and how much
confidence to attach. The allele-frequency posterior itself is computed by an
external calculator (see :mod:`gtengine.collaborators`).

Most users drive it from Python:

    engine = GenotypingEngine(GenotypingConfig(), samples, calculator)
    result = engine.calculate_genotypes(site, CalculationModel.SNP)

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
