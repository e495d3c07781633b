"""Ordered collections of sites"""
import numpy as np
from scipy.spatial import cKDTree

from .constants import site_atol
from .site import Site, ResolvedSite

__all__ = ['Lattice', 'UndefinedLattice', 'undefined_lattice', 'square_lattice',
           'check_same_lattice']


class Lattice:
    """Ordered, indexable collection of sites

    Sites are looked up by their coordinates within :data:`.site_atol`.

    Parameters
    ----------
    positions : array_like
        Site coordinates as a `(num_sites, ndim)` array. A 1D array describes a chain.

    Examples
    --------
    >>> lattice = Lattice([[0, 0], [1, 0], [0, 1]])
    >>> len(lattice), lattice.ndim
    (3, 2)
    >>> lattice.site_index(Site([1, 0]))
    1
    >>> lattice.site_index(Site([1, 1])) is None
    True
    """
    def __init__(self, positions):
        positions = np.array(positions, dtype=float)
        if positions.ndim == 1:
            positions = positions[:, np.newaxis]
        if positions.ndim != 2:
            raise RuntimeError("Lattice positions must be a 2D array: (num_sites, ndim), "
                               "got shape {}".format(positions.shape))
        self.positions = positions
        self._tree = None

    @classmethod
    def from_sites(cls, sites):
        """Create a lattice from an iterable of :class:`.Site` objects"""
        return cls([s.coords for s in sites])

    def __getstate__(self):
        return dict(positions=self.positions)

    def __setstate__(self, state):
        self.positions = state["positions"]
        self._tree = None

    @property
    def ndim(self) -> int:
        """Number of coordinates of each site"""
        return self.positions.shape[1]

    def __len__(self):
        return self.positions.shape[0]

    def __iter__(self):
        for coords in self.positions:
            yield Site(coords)

    def __getitem__(self, index):
        """Return a single site for an integer index or a sub-lattice for anything else"""
        if isinstance(index, (int, np.integer)):
            return Site(self.positions[index])
        if not isinstance(index, slice):
            index = np.asarray(index)
        return Lattice(self.positions[index].reshape(-1, self.ndim))

    def __eq__(self, other):
        if self is other:
            return True
        if not isinstance(other, Lattice) or isinstance(other, UndefinedLattice):
            return NotImplemented
        return (self.positions.shape == other.positions.shape and
                np.allclose(self.positions, other.positions, rtol=0, atol=site_atol))

    __hash__ = None

    def __repr__(self):
        return "{}-site {}D Lattice".format(len(self), self.ndim)

    @property
    def tree(self) -> cKDTree:
        """KD-tree of site positions, built on first use"""
        if self._tree is None:
            self._tree = cKDTree(self.positions)
        return self._tree

    def site_index(self, site):
        """Return the index of `site` in this lattice or `None` if it's not present

        Parameters
        ----------
        site : Union[Site, ResolvedSite]
            A resolved site with a matching index is accepted without a search.

        Returns
        -------
        Optional[int]
        """
        if isinstance(site, ResolvedSite):
            if 0 <= site.index < len(self) and self[site.index] == site.site:
                return site.index
            site = site.site

        if site.ndim != self.ndim or len(self) == 0:
            return None

        distance, index = self.tree.query(site.coords)
        if distance > site_atol:
            return None
        return int(index)

    def resolve_site(self, site):
        """Return a :class:`.ResolvedSite` for a site or an index, or `None` if not found"""
        if isinstance(site, (int, np.integer)):
            if not 0 <= site < len(self):
                return None
            return ResolvedSite(self[site], int(site))

        index = self.site_index(site)
        if index is None:
            return None
        return ResolvedSite(self[index], index)

    def __contains__(self, site):
        return self.site_index(site) is not None

    def sublattice(self, predicate):
        """Return a lattice with only the sites for which `predicate(site)` is true

        Examples
        --------
        >>> lattice = square_lattice(3, 3)
        >>> len(lattice.sublattice(lambda site: site.coords[0] < 2))
        3
        """
        mask = np.array([bool(predicate(site)) for site in self], dtype=bool)
        return Lattice(self.positions[mask].reshape(-1, self.ndim))


class UndefinedLattice(Lattice):
    """Stand-in for bonds which were created without a lattice

    Bonds bound to the undefined lattice can only be used when a lattice is supplied
    explicitly, i.e. during operator construction.
    """
    def __init__(self):
        super().__init__(np.zeros((0, 0)))

    def __reduce__(self):
        # unpickles as the shared instance: bonds check it by identity
        return 'undefined_lattice'

    @property
    def ndim(self):
        return None

    def site_index(self, site):
        return None

    def __eq__(self, other):
        return isinstance(other, UndefinedLattice)

    __hash__ = None

    def __repr__(self):
        return "UndefinedLattice()"


undefined_lattice = UndefinedLattice()  #: the shared undefined lattice instance


def check_same_lattice(lattice1, lattice2):
    """Raise an error if the two lattices don't consist of the same sites in the same order"""
    if lattice1 is lattice2 or lattice1 == lattice2:
        return
    raise RuntimeError("lattice mismatch: {!r} and {!r} must be identical".format(lattice1,
                                                                                  lattice2))


def square_lattice(*sizes):
    """Hyper-cubic lattice sample with integer coordinates starting from 1

    The first coordinate varies fastest.

    Parameters
    ----------
    *sizes : int
        Number of sites along each axis.

    Examples
    --------
    >>> square_lattice(2, 2).positions.tolist()
    [[1.0, 1.0], [2.0, 1.0], [1.0, 2.0], [2.0, 2.0]]
    """
    if not sizes:
        raise RuntimeError("At least one lattice size must be given")
    axes = [np.arange(1, n + 1, dtype=float) for n in sizes]
    grid = np.meshgrid(*axes, indexing='ij')
    positions = np.stack([g.ravel(order='F') for g in grid], axis=1)
    return Lattice(positions)
