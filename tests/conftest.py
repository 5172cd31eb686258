import copy

import pytest

from fakes import REAL_REPORT


@pytest.fixture
def report():
    return copy.deepcopy(REAL_REPORT)
