"""Bond currents: particle flow between pairs of sites"""
from abc import ABCMeta, abstractmethod

import numpy as np
from scipy import sparse

from .bonds import adapt_bonds
from .lattice import Lattice, check_same_lattice
from .latticevalue import LatticeValue
from .site import Site, ResolvedSite

__all__ = ['AbstractCurrents', 'DensityCurrents', 'SubCurrents', 'MaterializedCurrents',
           'materialize', 'currents_from', 'currents_from_to', 'map_currents']


class AbstractCurrents(metaclass=ABCMeta):
    """Antisymmetric map from pairs of sites to the current flowing between them

    `currents[site1, site2]` is the current from `site1` to `site2`. Indexing with a
    boolean :class:`.LatticeValue` selects the currents within a part of the lattice.
    """
    @property
    @abstractmethod
    def lattice(self) -> Lattice:
        pass

    @abstractmethod
    def current(self, i, j) -> float:
        """Current from the site with index `i` to the one with index `j`"""

    def _index(self, site):
        if isinstance(site, (int, np.integer)):
            return int(site)
        index = self.lattice.site_index(site)
        if index is None:
            raise IndexError("{} is not in the lattice".format(site))
        return index

    def __getitem__(self, key):
        if isinstance(key, LatticeValue):
            check_same_lattice(key.lattice, self.lattice)
            return SubCurrents(self, np.flatnonzero(np.asarray(key.values, dtype=bool)))
        site1, site2 = key
        return self.current(self._index(site1), self._index(site2))

    def __len__(self):
        return len(self.lattice)


class DensityCurrents(AbstractCurrents):
    """Currents carried by a density matrix under a Hamiltonian

    The current from site `i` to site `j` is `2 Im Tr(P_ij H_ji)` where `P_ij` and
    `H_ji` are the blocks of the density matrix and the Hamiltonian between the
    internal states of the two sites.

    Parameters
    ----------
    hamiltonian : Union[sparse matrix, array_like]
    density : Union[sparse matrix, array_like]
        Density matrix of the same size as the Hamiltonian.
    lattice : Lattice
    internal_dim : int
    """
    def __init__(self, hamiltonian, density, lattice, internal_dim=1):
        size = len(lattice) * internal_dim
        for name, matrix in [("hamiltonian", hamiltonian), ("density", density)]:
            if matrix.shape != (size, size):
                raise RuntimeError("invalid size of `{}`; expected {n}×{n}, "
                                   "got {}".format(name, matrix.shape, n=size))
        self.hamiltonian = sparse.csr_matrix(hamiltonian)
        self.density = sparse.csr_matrix(density) if sparse.issparse(density) \
            else np.asarray(density)
        self._lattice = lattice
        self.internal_dim = internal_dim

    @property
    def lattice(self):
        return self._lattice

    def _block(self, matrix, i, j):
        d = self.internal_dim
        block = matrix[i * d:(i + 1) * d, j * d:(j + 1) * d]
        return block.toarray() if sparse.issparse(block) else block

    def current(self, i, j):
        if i == j:
            return 0.0
        p = self._block(self.density, i, j)
        h = self._block(self.hamiltonian, j, i)
        return 2 * float(np.trace(p @ h).imag)


class SubCurrents(AbstractCurrents):
    """View of the currents between a subset of the parent's sites

    Parameters
    ----------
    parent : AbstractCurrents
    indices : array_like
        Indices of the selected sites in the parent lattice.
    """
    def __init__(self, parent, indices):
        self.parent = parent
        self.indices = np.asarray(indices, dtype=int)
        self._lattice = parent.lattice[self.indices]

    @property
    def lattice(self):
        return self._lattice

    def current(self, i, j):
        return self.parent.current(self.indices[i], self.indices[j])


class MaterializedCurrents(AbstractCurrents):
    """Currents stored in an antisymmetric matrix

    Parameters
    ----------
    lattice : Lattice
    currents : array_like
        Square matrix of size `len(lattice)`.
    """
    def __init__(self, lattice, currents):
        currents = np.asarray(currents, dtype=float)
        if currents.shape != (len(lattice), len(lattice)):
            raise RuntimeError("invalid size of `currents`; expected {n}×{n}, "
                               "got {}".format(currents.shape, n=len(lattice)))
        self._lattice = lattice
        self.currents = currents

    @property
    def lattice(self):
        return self._lattice

    def current(self, i, j):
        return float(self.currents[i, j])

    def __getitem__(self, key):
        if isinstance(key, LatticeValue):
            check_same_lattice(key.lattice, self.lattice)
            mask = np.asarray(key.values, dtype=bool)
            return MaterializedCurrents(self.lattice[mask], self.currents[np.ix_(mask, mask)])
        return super().__getitem__(key)

    def _combine(self, other, func):
        if isinstance(other, MaterializedCurrents):
            check_same_lattice(self.lattice, other.lattice)
            return MaterializedCurrents(self.lattice, func(self.currents, other.currents))
        return MaterializedCurrents(self.lattice, func(self.currents, other))

    def __add__(self, other):
        if not isinstance(other, MaterializedCurrents):
            return NotImplemented
        return self._combine(other, np.add)

    def __sub__(self, other):
        if not isinstance(other, MaterializedCurrents):
            return NotImplemented
        return self._combine(other, np.subtract)

    def __neg__(self):
        return MaterializedCurrents(self.lattice, -self.currents)

    def __mul__(self, factor):
        return self._combine(factor, np.multiply)

    __rmul__ = __mul__

    def __truediv__(self, factor):
        return self._combine(factor, np.true_divide)

    def __eq__(self, other):
        if not isinstance(other, MaterializedCurrents):
            return NotImplemented
        return self.lattice == other.lattice and np.allclose(self.currents, other.currents)

    __hash__ = None

    def __repr__(self):
        return "MaterializedCurrents on {!r}".format(self.lattice)


def materialize(currents, adjacency=None):
    """Evaluate all the currents and store them in a matrix

    Parameters
    ----------
    currents : AbstractCurrents
    adjacency : Optional[AbstractBonds]
        Only evaluate the currents between adjacent sites; the rest are zero. The
        bonds are bound to the lattice of `currents` first.

    Returns
    -------
    MaterializedCurrents
    """
    if isinstance(currents, MaterializedCurrents) and adjacency is None:
        return currents

    lattice = currents.lattice
    n = len(lattice)
    result = np.zeros((n, n))
    if adjacency is None:
        pairs = ((i, j) for i in range(n) for j in range(i + 1, n))
    else:
        pairs = ((s1.index, s2.index) for s1, s2 in adapt_bonds(adjacency, lattice))

    for i, j in pairs:
        value = currents.current(i, j)
        result[i, j] = value
        result[j, i] = -value
    return MaterializedCurrents(lattice, result)


def _source_indices(currents, src):
    lattice = currents.lattice
    if isinstance(src, (Site, ResolvedSite)):
        sources = [src]
    elif isinstance(src, Lattice):
        sources = list(src)
    else:
        raise TypeError("Expected a site or a lattice, got {}".format(type(src).__name__))

    indices = []
    for site in sources:
        index = lattice.site_index(site)
        if index is None:
            raise IndexError("{} is not in the lattice".format(site))
        indices.append(index)
    return indices


def currents_from(currents, src):
    """Currents flowing out of `src` into each of the other sites

    Parameters
    ----------
    currents : AbstractCurrents
    src : Union[Site, Lattice]
        A single site or a group of sites.

    Returns
    -------
    LatticeValue
        The total current from `src` to each site; zero for the sites of `src`.
    """
    sources = _source_indices(currents, src)
    source_set = set(sources)
    values = np.zeros(len(currents.lattice))
    for j in range(len(values)):
        if j not in source_set:
            values[j] = sum(currents.current(i, j) for i in sources)
    return LatticeValue(currents.lattice, values)


def currents_from_to(currents, src, dst=None):
    """Total current from `src` to `dst`, or out of `src` if `dst` is omitted

    Both `src` and `dst` may be a single site or a group of sites.
    """
    if dst is None:
        return float(sum(currents_from(currents, src).values))
    sources = _source_indices(currents, src)
    destinations = _source_indices(currents, dst)
    return float(sum(currents.current(i, j) for i in sources for j in destinations))


def map_currents(func, currents, reduce_fn=None, sort=False):
    """Map every pair of sites to a value and pair it with the current between them

    Parameters
    ----------
    func : Callable[[Site, Site], Any]
        Computes a key for each pair of sites, e.g. their distance.
    currents : AbstractCurrents
    reduce_fn : Optional[Callable[[List[float]], float]]
        If given, the currents with equal keys are grouped and reduced by this function
        (e.g. `np.mean`).
    sort : bool
        Sort the result by keys.

    Returns
    -------
    Tuple[list, list]
        The keys and the corresponding currents.
    """
    lattice = currents.lattice
    sites = list(lattice)
    keys, values = [], []
    for i in range(len(sites)):
        for j in range(i + 1, len(sites)):
            keys.append(func(sites[i], sites[j]))
            values.append(currents.current(i, j))

    if reduce_fn is not None:
        groups = {}
        for key, value in zip(keys, values):
            groups.setdefault(key, []).append(value)
        keys = list(groups)
        values = [reduce_fn(groups[k]) for k in keys]

    if sort:
        order = sorted(range(len(keys)), key=lambda k: keys[k])
        keys = [keys[k] for k in order]
        values = [values[k] for k in order]
    return keys, values
