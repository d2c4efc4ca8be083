import pytest

from test_xp import TestResult


@pytest.fixture
def r(request):
    """Result object the harness-style tests report into."""
    return TestResult(request.node.name)
