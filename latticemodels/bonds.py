"""Bonds: relations between the sites of a lattice

Every bonds object is bound to a single :class:`.Lattice` or to the
:data:`.undefined_lattice`. Unbound bonds can only be applied when the lattice is
given explicitly, e.g. as hopping terms of a :class:`.Model`.
"""
from abc import ABCMeta, abstractmethod

import numpy as np
from scipy.spatial.distance import pdist

from .constants import site_atol, shell_rtol
from .lattice import Lattice, undefined_lattice, check_same_lattice
from .site import Site, ResolvedSite, sitedistance
from .support.fuzzy_set import FuzzySet

__all__ = ['AbstractBonds', 'adapt_bonds', 'SiteDistance', 'pairs_by_distance', 'NoBonds',
           'DirectedBonds', 'AbstractTranslation', 'Translation', 'translate_lattice',
           'default_bonds']


class AbstractBonds(metaclass=ABCMeta):
    """Symmetric relation between the sites of a lattice

    Iterating over bonds yields pairs of :class:`.ResolvedSite` with the lower index
    first. Each pair is produced exactly once, ordered by the first index and then
    by the second.

    Parameters
    ----------
    lattice : Lattice
        The lattice which these bonds refer to.
    """
    def __init__(self, lattice=undefined_lattice):
        self._lattice = lattice

    @property
    def lattice(self) -> Lattice:
        return self._lattice

    @abstractmethod
    def isadjacent(self, site1, site2) -> bool:
        """Are the two sites connected?"""

    def __getitem__(self, sites):
        site1, site2 = sites
        return self.isadjacent(site1, site2)

    def adapt_bonds(self, lattice):
        """Return bonds equivalent to these, but bound to `lattice`

        Only the identical lattice is accepted by default.
        """
        check_same_lattice(lattice, self.lattice)
        return self

    def _destinations(self, resolved_site):
        """Indices of sites with a larger index which are adjacent to `resolved_site`"""
        lattice = self.lattice
        site = resolved_site.site
        return (j for j in range(resolved_site.index + 1, len(lattice))
                if self.isadjacent(site, lattice[j]))

    def __iter__(self):
        lattice = self.lattice
        for i, site in enumerate(lattice):
            rs = ResolvedSite(site, i)
            for j in self._destinations(rs):
                yield rs, ResolvedSite(lattice[j], j)

    def adjacentsites(self, site):
        """Return a list of all the sites connected to `site`"""
        lattice = self.lattice
        index = lattice.site_index(site)
        if index is None:
            return []
        return [ResolvedSite(s, j) for j, s in enumerate(lattice)
                if j != index and self.isadjacent(site, s)]


def adapt_bonds(bonds, lattice):
    """Bind `bonds` to `lattice`, see :meth:`AbstractBonds.adapt_bonds`"""
    if not isinstance(bonds, AbstractBonds):
        raise TypeError("{!r} cannot be interpreted as bonds on {!r}".format(bonds, lattice))
    return bonds.adapt_bonds(lattice)


class SiteDistance(AbstractBonds):
    """Connects sites depending on the distance between them

    Parameters
    ----------
    f : Callable[[float], bool]
        Sites are adjacent if `f(distance)` is true.
    lattice : Lattice

    Examples
    --------
    >>> from latticemodels.lattice import square_lattice
    >>> nearest = SiteDistance(lambda r: 0 < r < 1.1, square_lattice(2, 2))
    >>> [(a.index, b.index) for a, b in nearest]
    [(0, 1), (0, 2), (1, 3), (2, 3)]
    """
    def __init__(self, f, lattice=undefined_lattice):
        super().__init__(lattice)
        self.f = f

    def isadjacent(self, site1, site2):
        return bool(self.f(sitedistance(site1, site2)))

    def adapt_bonds(self, lattice):
        return SiteDistance(self.f, lattice)

    def __repr__(self):
        return "SiteDistance({!r}) on {!r}".format(self.f, self.lattice)


def pairs_by_distance(f):
    """Unbound :class:`SiteDistance` which selects site pairs with `f(distance)`"""
    return SiteDistance(f)


class NoBonds(AbstractBonds):
    """Bonds which connect nothing"""
    def isadjacent(self, site1, site2):
        return False

    def adapt_bonds(self, lattice):
        return self

    def __iter__(self):
        return iter(())

    def __repr__(self):
        return "NoBonds()"


class DirectedBonds(AbstractBonds):
    """Bonds defined by the destinations they lead to from each site

    Iteration yields oriented `(source, destination)` pairs: sources in index order,
    the destinations of each source in index order.
    """
    @abstractmethod
    def destinations(self, site):
        """Return a sequence of the sites which `site` leads to (`None` means no site)"""

    def isadjacent(self, site1, site2):
        return site2 in self.destinations(site1) or site1 in self.destinations(site2)

    def destination(self, site):
        """Return the only destination of `site`, or `None` if there isn't one"""
        result = None
        for dest in self.destinations(site):
            if dest is None:
                continue
            if result is not None and dest != result:
                raise RuntimeError("The site {} has more than one destination".format(site))
            result = dest
        return result

    def inverse(self):
        """Bonds which lead back from each destination to its source"""
        raise RuntimeError("{} does not define an inverse".format(type(self).__name__))

    def __neg__(self):
        return self.inverse()

    def __iter__(self):
        lattice = self.lattice
        for i, site in enumerate(lattice):
            targets = (lattice.resolve_site(d) for d in self.destinations(site) if d is not None)
            targets = sorted((t for t in targets if t is not None), key=lambda t: t.index)
            for target in targets:
                yield ResolvedSite(site, i), target

    def adjacentsites(self, site):
        candidates = list(self.destinations(site)) + list(self.inverse().destinations(site))
        lattice = self.lattice
        resolved = (lattice.resolve_site(c) for c in candidates if c is not None)
        return [rs for rs in resolved if rs is not None]

    def _check_bound(self):
        if self.lattice is undefined_lattice or self.lattice.ndim is None:
            raise RuntimeError("Using {} on an undefined lattice is only possible when "
                               "building operators; bind it to a lattice with "
                               "`adapt_bonds()` first".format(type(self).__name__))

    def __radd__(self, other):
        if isinstance(other, Lattice):
            return translate_lattice(other, self)
        if isinstance(other, (Site, ResolvedSite)):
            self._check_bound()
            return self.destination(other)
        return NotImplemented

    def __rsub__(self, other):
        if isinstance(other, (Site, ResolvedSite)):
            self._check_bound()
            return self.inverse().destination(other)
        return NotImplemented


class AbstractTranslation(DirectedBonds):
    """Directed bonds with at most one destination per site"""
    @abstractmethod
    def destination(self, site):
        pass

    def destinations(self, site):
        return self.destination(site),

    def adjacentsites(self, site):
        """Return the pair `(destination, inverse destination)` of `site`

        Either one is a :class:`.ResolvedSite` or `None` if it's not in the lattice.
        """
        candidates = self.destination(site), self.inverse().destination(site)
        return tuple(None if c is None else self.lattice.resolve_site(c) for c in candidates)


class Translation(AbstractTranslation):
    """Connects each site to the site displaced by a fixed vector

    Parameters
    ----------
    lattice : Lattice
        May be omitted: `Translation(vector)` creates unbound bonds.
    vector : array_like
        The displacement. Its length must match the lattice dimension.

    Examples
    --------
    >>> from latticemodels.lattice import Lattice
    >>> lattice = Lattice([[1, 1], [1, 2], [2, 1], [2, 2]])
    >>> right = Translation(lattice, [1, 0])
    >>> Site([1, 1]) + right
    Site([2.0, 1.0])
    >>> Site([1, 1]) + right + right is None
    True
    """
    def __init__(self, lattice, vector=None):
        if vector is None:
            lattice, vector = undefined_lattice, lattice
        super().__init__(lattice)
        self.vector = np.atleast_1d(np.asarray(vector, dtype=float))
        if lattice.ndim is not None and self.vector.size != lattice.ndim:
            raise RuntimeError("invalid length of translation vector; expected {}, "
                               "got {}".format(lattice.ndim, self.vector.size))

    @property
    def ndim(self) -> int:
        return self.vector.size

    def displace(self, site) -> Site:
        """Return the free site at `site + vector`; a shorter vector is padded with zeros"""
        coords = np.array(site.coords, dtype=float)
        if self.vector.size > coords.size:
            raise RuntimeError("Incompatible dims: a {}D translation can't be applied to "
                               "a {}D site".format(self.vector.size, coords.size))
        coords[:self.vector.size] += self.vector
        return Site(coords)

    def destination(self, site):
        if site.ndim != self.ndim:
            return None
        index = self.lattice.site_index(self.displace(site))
        return None if index is None else self.lattice[index]

    def isadjacent(self, site1, site2):
        if site1.ndim != self.ndim or site2.ndim != self.ndim:
            return False
        diff = site2.coords - site1.coords
        return bool(np.linalg.norm(diff - self.vector) <= site_atol or
                    np.linalg.norm(diff + self.vector) <= site_atol)

    def inverse(self):
        if self.lattice is undefined_lattice:
            return Translation(-self.vector)
        return Translation(self.lattice, -self.vector)

    def adapt_bonds(self, lattice):
        if lattice is undefined_lattice:
            return Translation(self.vector)
        return Translation(lattice, self.vector)

    def __eq__(self, other):
        if not isinstance(other, Translation):
            return NotImplemented
        return (self.vector.shape == other.vector.shape and
                np.allclose(self.vector, other.vector, rtol=0, atol=site_atol) and
                self.lattice == other.lattice)

    __hash__ = None

    def __repr__(self):
        if self.lattice is undefined_lattice:
            return "Translation({})".format(self.vector.tolist())
        return "Translation({!r}, {})".format(self.lattice, self.vector.tolist())


def translate_lattice(lattice, bonds):
    """Return a lattice where each site is replaced by its destination

    A :class:`Translation` simply shifts all site positions, which is the way to
    build periodic copies of a lattice. Other directed bonds must have a destination
    for every site.
    """
    if isinstance(bonds, Translation):
        return Lattice.from_sites(bonds.displace(site) for site in lattice)

    bonds = adapt_bonds(bonds, lattice)
    destinations = []
    for site in lattice:
        dest = bonds.destination(site)
        if dest is None:
            raise RuntimeError("The site {} has no destination".format(site))
        destinations.append(dest)
    return Lattice.from_sites(destinations)


def _canonical_direction(vector):
    """Flip the vector so that its first non-zero component is positive"""
    nonzero = np.flatnonzero(np.abs(vector) > site_atol)
    if nonzero.size and vector[nonzero[0]] < 0:
        return -vector + 0.0
    return vector


def default_bonds(lattice, order=1):
    """Return unbound translations which connect neighbors of the given order

    Parameters
    ----------
    lattice : Lattice
    order : int
        1 for nearest neighbors, 2 for next-nearest and so on.

    Returns
    -------
    List[Translation]
        One translation per distinct displacement vector (up to sign). Empty if the
        lattice doesn't have neighbors of this order.

    Examples
    --------
    >>> from latticemodels.lattice import square_lattice
    >>> [t.vector.tolist() for t in default_bonds(square_lattice(3, 3))]
    [[1.0, 0.0], [0.0, 1.0]]
    """
    if order < 1:
        raise RuntimeError("Neighbor order must be a positive integer, got {}".format(order))
    if len(lattice) < 2:
        return []

    distances = pdist(lattice.positions)
    sorted_distances = np.sort(distances)
    breaks = np.diff(sorted_distances) > shell_rtol * np.maximum(sorted_distances[1:], 1)
    shells = sorted_distances[np.concatenate([[True], breaks])]
    shells = shells[shells > site_atol]
    if order > len(shells):
        return []

    radius = shells[order - 1]
    in_shell = np.abs(distances - radius) <= shell_rtol * max(radius, 1)
    rows, cols = np.triu_indices(len(lattice), k=1)
    vectors = FuzzySet(rtol=0, atol=site_atol)
    for i, j in zip(rows[in_shell], cols[in_shell]):
        vectors.add(_canonical_direction(lattice.positions[j] - lattice.positions[i]))
    return [Translation(v) for v in vectors]
