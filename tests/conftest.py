import pytest

import numpy as np
import latticemodels as lm

from .utils.fuzzy_equal import FuzzyEqual


def pytest_configure(config):
    pytest.fuzzy_equal = FuzzyEqual


@pytest.fixture
def square2x2():
    """Four sites: (1, 1), (2, 1), (1, 2), (2, 2)"""
    return lm.square_lattice(2, 2)


@pytest.fixture
def generic2x2():
    """Four sites listed column by column: (1, 1), (1, 2), (2, 1), (2, 2)"""
    return lm.Lattice([[1, 1], [1, 2], [2, 1], [2, 2]])


@pytest.fixture
def random_lattice():
    rng = np.random.RandomState(42)
    return lm.Lattice(rng.uniform(0, 4, size=(12, 2)))
