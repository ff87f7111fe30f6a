from gtengine.alleles import OutputAlleleSelector
from gtengine.deletions import UpstreamDeletionTracker
from gtengine.models import Allele, NON_REF_ALLELE, SPAN_DEL_ALLELE
from tests.helpers import make_posterior, make_site

EMIT = 10.0


def _never(allele: Allele) -> bool:
    return False


def _select(site, posterior, force_keep=_never, tracker=None):
    selector = OutputAlleleSelector(tracker if tracker is not None else UpstreamDeletionTracker())
    return selector.select(posterior, site, EMIT, force_keep)


def test_keeps_plausible_alleles_in_order() -> None:
    site = make_site(alts=("C", "G", "T"))
    posterior = make_posterior(site, {"C": -5.0, "G": -0.2, "T": -3.0}, mle={"C": 2, "T": 1})
    subset = _select(site, posterior)
    assert subset.alleles == (Allele("C"), Allele("T"))
    assert subset.alternative_allele_mle_counts() == [2, 1]
    assert not subset.site_is_monomorphic
    assert subset.output_alleles(site.reference) == (site.reference, Allele("C"), Allele("T"))


def test_nothing_plausible_is_monomorphic() -> None:
    site = make_site(alts=("C", "G"))
    subset = _select(site, make_posterior(site, {"C": -0.1, "G": -0.5}))
    assert subset.alleles == ()
    assert subset.site_is_monomorphic


def test_force_keep() -> None:
    site = make_site(alts=("C", "G"))
    subset = _select(site, make_posterior(site, {"C": -0.1, "G": -0.5}), force_keep=lambda a: a == Allele("G"))
    assert subset.alleles == (Allele("G"),)
    # force-kept alleles do not make the site polymorphic
    assert subset.site_is_monomorphic


def test_lone_non_ref_placeholder_is_kept() -> None:
    site = make_site(alts=(NON_REF_ALLELE,))
    subset = _select(site, make_posterior(site, {"<NON_REF>": -0.01}))
    assert subset.alleles == (NON_REF_ALLELE,)
    assert subset.site_is_monomorphic


def test_non_ref_with_other_alternates_needs_support() -> None:
    site = make_site(alts=("C", NON_REF_ALLELE))
    subset = _select(site, make_posterior(site, {"C": -4.0, "<NON_REF>": -0.01}))
    assert subset.alleles == (Allele("C"),)


def test_spanning_deletion_requires_upstream_deletion() -> None:
    tracker = UpstreamDeletionTracker()

    deletion_site = make_site(start=100, ref_bases="ACGT", alts=("A",))
    first = _select(deletion_site, make_posterior(deletion_site, {"A": -6.0}), tracker=tracker)
    assert first.alleles == (Allele("A"),)
    assert len(tracker) == 1

    covered_site = make_site(start=102, ref_bases="G", alts=("T", SPAN_DEL_ALLELE))
    covered = _select(covered_site, make_posterior(covered_site, {"T": -0.1, "*": -6.0}), tracker=tracker)
    assert covered.alleles == (SPAN_DEL_ALLELE,)
    # a spanning deletion alone does not make the site polymorphic
    assert covered.site_is_monomorphic

    past_site = make_site(start=110, ref_bases="C", alts=(SPAN_DEL_ALLELE,))
    past = _select(past_site, make_posterior(past_site, {"*": -6.0}), tracker=tracker)
    assert past.alleles == ()
    assert len(tracker) == 0


def test_spanning_deletion_at_deletion_start_is_dropped() -> None:
    tracker = UpstreamDeletionTracker()
    site = make_site(start=100, ref_bases="ACGT", alts=("A", SPAN_DEL_ALLELE))
    subset = _select(site, make_posterior(site, {"A": -6.0, "*": -6.0}), tracker=tracker)
    assert subset.alleles == (Allele("A"),)


def test_selection_is_deterministic() -> None:
    site = make_site(start=100, ref_bases="ACGT", alts=("A", "ACGTT", SPAN_DEL_ALLELE))
    posterior = make_posterior(site, {"A": -3.0, "ACGTT": -0.4, "*": -2.0}, mle={"A": 1})
    first = _select(site, posterior)
    second = _select(site, posterior)
    assert first == second
