import pytest

from gtengine.models import SiteContext


@pytest.fixture
def context() -> SiteContext:
    return SiteContext(
        contig="chr1",
        position=100,
        reference_base="A",
        sample_depths={"S1": 12},
    )
