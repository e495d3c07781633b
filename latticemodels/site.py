"""Lattice sites: free points in space and sites resolved within a lattice"""
from collections import namedtuple

import numpy as np

from .constants import site_atol

__all__ = ['Site', 'ResolvedSite', 'sitedistance']


class Site:
    """A point which may or may not belong to a lattice

    Two sites are equal if their coordinates match within :data:`.site_atol`.

    Parameters
    ----------
    coords : array_like
        Site coordinates. A scalar is interpreted as a 1D site.

    Examples
    --------
    >>> Site([1, 2]) == Site([1, 2 + 1e-12])
    True
    >>> Site([1, 2]) == Site([1, 2, 0])
    False
    """
    __slots__ = ['coords']

    def __init__(self, coords):
        self.coords = np.atleast_1d(np.asarray(coords, dtype=float))

    def __getstate__(self):
        return self.coords

    def __setstate__(self, state):
        self.coords = state

    @property
    def ndim(self) -> int:
        """Number of coordinates"""
        return self.coords.size

    def __eq__(self, other):
        if isinstance(other, ResolvedSite):
            other = other.site
        if not isinstance(other, Site):
            return NotImplemented
        if self.coords.shape != other.coords.shape:
            return False
        return bool(np.linalg.norm(self.coords - other.coords) <= site_atol)

    def __repr__(self):
        return "Site({})".format(self.coords.tolist())


class ResolvedSite(namedtuple('ResolvedSite', 'site index')):
    """A site which was found in a lattice, along with its index there

    Compares equal to the bare :class:`Site` it wraps.
    """
    __slots__ = ()

    @property
    def coords(self) -> np.ndarray:
        return self.site.coords

    @property
    def ndim(self) -> int:
        return self.site.ndim

    def __eq__(self, other):
        if isinstance(other, Site):
            return self.site == other
        return super().__eq__(other)

    def __ne__(self, other):
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    __hash__ = None

    def __repr__(self):
        return "ResolvedSite({}, index={})".format(self.site.coords.tolist(), self.index)


def sitedistance(site1, site2) -> float:
    """Euclidean distance between two sites

    Examples
    --------
    >>> sitedistance(Site([0, 0]), Site([3, 4])) == 5
    True
    """
    return float(np.linalg.norm(site2.coords - site1.coords))
