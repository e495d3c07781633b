import numpy as np

from ..constants import site_atol

__all__ = ['FuzzySet']


class FuzzySet:
    """Insertion-ordered set of arrays where near-equal items count as duplicates

    Examples
    --------
    >>> vectors = FuzzySet([[1, 0], [0, 1], [1, 1e-12]])
    >>> len(vectors)
    2
    >>> [0, 1 + 1e-12] in vectors
    True
    """
    def __init__(self, iterable=None, rtol=0, atol=site_atol):
        self.data = []
        self.rtol = rtol
        self.atol = atol

        if iterable is not None:
            for item in iterable:
                self.add(item)

    def __getitem__(self, index):
        return self.data[index]

    def __len__(self):
        return len(self.data)

    def __iter__(self):
        return iter(self.data)

    def __contains__(self, item):
        item = np.asarray(item)
        return any(item.shape == x.shape and np.allclose(item, x, rtol=self.rtol, atol=self.atol)
                   for x in self.data)

    def add(self, item):
        """Insert `item` unless a close match is already present"""
        item = np.asarray(item, dtype=float)
        if item not in self:
            self.data.append(item)
