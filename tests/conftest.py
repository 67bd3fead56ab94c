import io
import pytest

from text_finder.core.search.build_log import BuildLog


@pytest.fixture
def sink():
    """Caller-owned output sink."""
    return io.StringIO()


@pytest.fixture
def build_log(sink):
    return BuildLog(sink)
