"""`pytest.fuzzy_equal(actual, expected)`: tolerant comparison of nested structures"""
from functools import singledispatch

import numpy as np
from scipy import sparse

import latticemodels as lm


def _explain(actual, expected, rtol, atol):
    """Raise an `AssertionError` which lists the values that don't match

    For example:

    >   assert pytest.fuzzy_equal([3, 1, 7], [3, 5, 7])
    E   AssertionError:
    E   Mismatch in 1 of 3 values
    E    indices:  [1]
    E    actual:   [1]
    E    expected: [5]
    """
    actual, expected = np.asanyarray(actual), np.asanyarray(expected)
    if actual.shape != expected.shape:
        raise AssertionError("\nShape mismatch: actual {}, expected {}".format(
            actual.shape, expected.shape))

    mismatch = ~np.isclose(actual, expected, rtol, atol)
    if not mismatch.any():
        return
    raise AssertionError("\n".join([
        "\nMismatch in {} of {} values".format(mismatch.sum(), mismatch.size),
        " indices:  {}".format(np.argwhere(mismatch).squeeze(-1).tolist()
                               if actual.ndim == 1 else np.argwhere(mismatch).tolist()),
        " actual:   {}".format(actual[mismatch]),
        " expected: {}".format(expected[mismatch]),
    ]))


@singledispatch
def _attributes(obj):
    """Comparable parts of an object: `None` means compare the object as a whole"""
    return None


@_attributes.register(lm.Site)
def _(obj):
    return {"coords": obj.coords}


@_attributes.register(lm.Lattice)
def _(obj):
    return {"positions": obj.positions}


@_attributes.register(lm.LatticeValue)
def _(obj):
    return {"lattice": obj.lattice, "values": obj.values}


@_attributes.register(lm.AdjacencyMatrix)
def _(obj):
    return {"lattice": obj.lattice, "matrix": obj.matrix.toarray().astype(int)}


@_attributes.register(lm.MaterializedCurrents)
def _(obj):
    return {"lattice": obj.lattice, "currents": obj.currents}


class FuzzyEqual:
    """Recursive `np.isclose` comparison of arrays, sparse matrices, containers and
    lattice objects

    On failure, the path to the mismatched part (e.g. `.lattice.positions`) is
    prepended to the assertion message.
    """
    def __init__(self, actual, expected, rtol=1e-05, atol=1e-08):
        self.actual = actual
        self.expected = expected
        self.rtol = rtol
        self.atol = atol
        self.path = []

    def __bool__(self):
        __tracebackhide__ = True  # hide traceback for pytest
        try:
            self._compare(self.actual, self.expected)
        except AssertionError as e:
            raise AssertionError((''.join(self.path) + "\n" + str(e)).strip()) from None
        return True

    def __repr__(self):
        return ''.join(self.path)

    def _nested(self, name, actual, expected):
        self.path.append(name)
        self._compare(actual, expected)
        self.path.pop()

    def _compare(self, actual, expected):
        if sparse.issparse(actual):
            expected = expected if sparse.issparse(expected) else np.asarray(expected)
            self._nested(".shape", actual.shape, expected.shape)
            dense = expected.toarray() if sparse.issparse(expected) else expected
            return self._nested(".toarray()", actual.toarray(), dense)

        attributes = _attributes(actual)
        if attributes is not None:
            expected_attributes = _attributes(expected)
            for name, value in attributes.items():
                self._nested("." + name, value, expected_attributes[name])
            return

        if isinstance(actual, dict):
            assert sorted(actual) == sorted(expected)
            for key in actual:
                self._nested("[{!r}]".format(key), actual[key], expected[key])
            return

        try:
            return _explain(actual, expected, self.rtol, self.atol)
        except TypeError:
            pass
        # non-numeric sequences
        assert len(actual) == len(expected)
        for index, (a, b) in enumerate(zip(actual, expected)):
            self._nested("[{}]".format(index), a, b)
