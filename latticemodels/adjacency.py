"""Bonds stored explicitly as a sparse adjacency matrix"""
import numpy as np
from scipy import sparse

from .bonds import AbstractBonds, adapt_bonds
from .lattice import Lattice, undefined_lattice, check_same_lattice
from .site import ResolvedSite

__all__ = ['AdjacencyMatrix']


def _shape_of(matrix):
    if sparse.issparse(matrix):
        return matrix.shape
    return np.shape(matrix)


def _symmetric_pattern(rows, cols, size):
    """Boolean CSR matrix with entries at `(rows, cols)` and `(cols, rows)`, no diagonal"""
    rows, cols = np.concatenate([rows, cols]), np.concatenate([cols, rows])
    off_diagonal = rows != cols
    linear = np.unique(rows[off_diagonal].astype(np.int64) * size + cols[off_diagonal])
    rows, cols = np.divmod(linear, size)
    data = np.ones(linear.size, dtype=bool)
    return sparse.csr_matrix((data, (rows, cols)), shape=(size, size))


class AdjacencyMatrix(AbstractBonds):
    """Bonds given by a symmetric boolean matrix with a zero diagonal

    Any input matrix is symmetrized and its diagonal is discarded.

    Parameters
    ----------
    lattice : Lattice
    matrix : Optional[array_like or sparse matrix]
        Square matrix of size `len(lattice)`. Non-zero entries mark adjacent sites.
        If omitted, no sites are adjacent.

    Examples
    --------
    >>> from latticemodels.lattice import square_lattice
    >>> lattice = square_lattice(2, 2)
    >>> adj = AdjacencyMatrix(lattice)
    >>> adj[lattice[0], lattice[1]] = True
    >>> adj[lattice[1], lattice[0]], adj[lattice[0], lattice[2]]
    (True, False)
    """
    def __init__(self, lattice: Lattice, matrix=None):
        super().__init__(lattice)
        size = len(lattice)
        if matrix is None:
            self._mat = sparse.lil_matrix((size, size), dtype=bool)
            return

        shape = _shape_of(matrix)
        if len(shape) != 2 or shape[0] != shape[1]:
            raise RuntimeError("invalid size of `matrix`; expected square matrix, "
                               "got {}".format("×".join(str(n) for n in shape)))
        if shape[0] != size:
            raise RuntimeError("invalid size of `matrix`; expected {n}×{n}, "
                               "got {m}×{m}".format(n=size, m=shape[0]))

        coo = sparse.coo_matrix(matrix)
        nonzero = coo.data != 0
        self._mat = _symmetric_pattern(coo.row[nonzero], coo.col[nonzero], size).tolil()

    @classmethod
    def from_bonds(cls, *bonds, lattice=None):
        """Collect the pairs of any number of bonds objects into a single matrix

        Parameters
        ----------
        *bonds : AbstractBonds
            Bonds on the same lattice. Unbound bonds are bound to that lattice.
        lattice : Optional[Lattice]
            Bind all the bonds to this lattice first.
        """
        if lattice is None:
            bound = [b.lattice for b in bonds if isinstance(b, AbstractBonds) and
                     b.lattice is not undefined_lattice]
            if not bound:
                raise RuntimeError("Can't determine the lattice: all the given bonds are "
                                   "unbound, pass `lattice` explicitly")
            lattice = bound[0]
            for other in bound[1:]:
                check_same_lattice(lattice, other)

        rows, cols = [], []
        for b in bonds:
            for site1, site2 in adapt_bonds(b, lattice):
                rows.append(site1.index)
                cols.append(site2.index)
        matrix = _symmetric_pattern(np.array(rows, dtype=int), np.array(cols, dtype=int),
                                    len(lattice))
        return cls(lattice, matrix)

    @classmethod
    def from_function(cls, f, lattice):
        """Connect the sites for which `f(site1, site2)` is true

        Every pair of sites is checked, so this scales quadratically with lattice size.
        """
        rows, cols = [], []
        sites = list(lattice)
        for i, site1 in enumerate(sites):
            for j in range(i + 1, len(sites)):
                if f(site1, sites[j]):
                    rows.append(i)
                    cols.append(j)
        matrix = _symmetric_pattern(np.array(rows, dtype=int), np.array(cols, dtype=int),
                                    len(lattice))
        return cls(lattice, matrix)

    @classmethod
    def from_operator(cls, operator, lattice, internal_dim=1):
        """Connect the sites between which `operator` has non-zero matrix elements

        Parameters
        ----------
        operator : sparse matrix or array_like
            Square matrix of size `len(lattice) * internal_dim`.
        lattice : Lattice
        internal_dim : int
            Number of internal degrees of freedom per site.
        """
        size = len(lattice) * internal_dim
        if _shape_of(operator) != (size, size):
            raise RuntimeError("invalid size of `operator`; expected {n}×{n}, "
                               "got {shape}".format(n=size, shape=_shape_of(operator)))
        coo = sparse.coo_matrix(operator)
        nonzero = coo.data != 0
        matrix = _symmetric_pattern(coo.row[nonzero] // internal_dim,
                                    coo.col[nonzero] // internal_dim, len(lattice))
        return cls(lattice, matrix)

    @property
    def matrix(self) -> sparse.csr_matrix:
        """Boolean adjacency matrix in CSR format (a copy)"""
        matrix = self._mat.tocsr()
        matrix.sort_indices()
        return matrix

    @property
    def num_bonds(self) -> int:
        """Number of connected site pairs"""
        return self._mat.nnz // 2

    def copy(self):
        return AdjacencyMatrix(self.lattice, self._mat)

    def _indices(self, site1, site2):
        return self.lattice.site_index(site1), self.lattice.site_index(site2)

    def isadjacent(self, site1, site2):
        i, j = self._indices(site1, site2)
        if i is None or j is None:
            return False
        return bool(self._mat[i, j])

    def __setitem__(self, sites, value):
        """Connect or disconnect a pair of sites; nothing happens for sites not in the lattice"""
        i, j = self._indices(*sites)
        if i is None or j is None:
            return
        if i == j:
            raise RuntimeError("A site can't be adjacent to itself: {}".format(sites[0]))
        value = bool(value)
        self._mat[i, j] = value
        self._mat[j, i] = value

    def union(self, *others):
        """Return the bonds which are present in any of `self` and `others`

        All the adjacency matrices must refer to the same lattice.
        """
        matrix = self._mat.tocsr().astype(np.int8)
        for other in others:
            if not isinstance(other, AdjacencyMatrix):
                raise TypeError("Can't take the union of AdjacencyMatrix and "
                                "{}".format(type(other).__name__))
            check_same_lattice(self.lattice, other.lattice)
            matrix = matrix + other._mat.tocsr().astype(np.int8)
        return AdjacencyMatrix(self.lattice, matrix)

    def __or__(self, other):
        if not isinstance(other, AdjacencyMatrix):
            return NotImplemented
        return self.union(other)

    def adapt_bonds(self, lattice):
        """Project the bonds onto `lattice`, keeping only the sites found in both"""
        if lattice is self.lattice:
            return self

        new_index = np.array([-1 if idx is None else idx
                              for idx in (lattice.site_index(site) for site in self.lattice)],
                             dtype=int)
        coo = self._mat.tocoo()
        rows, cols = new_index[coo.row], new_index[coo.col]
        present = (rows >= 0) & (cols >= 0)
        matrix = _symmetric_pattern(rows[present], cols[present], len(lattice))
        return AdjacencyMatrix(lattice, matrix)

    def __iter__(self):
        matrix = self.matrix
        lattice = self.lattice
        for i in range(len(lattice)):
            start, end = matrix.indptr[i], matrix.indptr[i + 1]
            columns = matrix.indices[start:end][matrix.data[start:end]]
            columns = columns[columns > i]
            if columns.size == 0:
                continue
            rs = ResolvedSite(lattice[i], i)
            for j in columns:
                yield rs, ResolvedSite(lattice[int(j)], int(j))

    def adjacentsites(self, site):
        index = self.lattice.site_index(site)
        if index is None:
            return []
        return [ResolvedSite(self.lattice[j], j) for j in self._mat.rows[index]
                if self._mat[index, j]]

    def __eq__(self, other):
        if not isinstance(other, AdjacencyMatrix):
            return NotImplemented
        if self.lattice != other.lattice:
            return False
        return (self.matrix != other.matrix).nnz == 0

    __hash__ = None

    def __getstate__(self):
        return dict(lattice=self.lattice, matrix=self.matrix)

    def __setstate__(self, state):
        self._lattice = state["lattice"]
        self._mat = state["matrix"].tolil()

    def __repr__(self):
        return "AdjacencyMatrix on {!r} with {} bonds".format(self.lattice, self.num_bonds)
