"""Incremental construction of sparse operators"""
import numbers

import numpy as np
from scipy import sparse
from scipy.sparse import csr_matrix

__all__ = ['SparseMatrixBuilder', 'triplets']


class SparseMatrixBuilder:
    """Accumulates operator entries in coordinate format

    The operator acts on `num_sites * internal_dim` states ordered site-major:
    state `k` of site `i` has the index `i * internal_dim + k`. Entries added to the
    same position are summed. :meth:`tocsr` may be called only once.

    Parameters
    ----------
    num_sites : int
    internal_dim : int
        Number of internal degrees of freedom (e.g. spin) per site.
    dtype : np.dtype

    Examples
    --------
    >>> builder = SparseMatrixBuilder(2)
    >>> builder.increment(1, 0, 1)
    >>> builder.increment(1, 1, 0)
    >>> builder.increment(2, 0, 1)
    >>> builder.tocsr().toarray().real.tolist()
    [[0.0, 3.0], [1.0, 0.0]]
    """
    def __init__(self, num_sites, internal_dim=1, dtype=np.complex128):
        self.num_sites = num_sites
        self.internal_dim = internal_dim
        self.dtype = dtype
        self._rows = []
        self._cols = []
        self._data = []
        self._consumed = False

    @property
    def size(self) -> int:
        return self.num_sites * self.internal_dim

    @property
    def shape(self):
        return self.size, self.size

    def _check_usable(self):
        if self._consumed:
            raise RuntimeError("This builder was already converted to a matrix and "
                               "can't be used again")

    def _block(self, op):
        """Return the `(rows, cols, data)` of an on-site operator block"""
        d = self.internal_dim
        if isinstance(op, numbers.Number):
            k = np.arange(d)
            return k, k, np.full(d, op, dtype=self.dtype)

        block = op.toarray() if sparse.issparse(op) else np.asarray(op)
        if block.shape != (d, d):
            raise RuntimeError("invalid size of on-site operator; expected {d}×{d}, "
                               "got {shape}".format(d=d, shape=block.shape))
        rows, cols = np.nonzero(block)
        return rows, cols, block[rows, cols].astype(self.dtype)

    def increment(self, op, i, j, factor=1):
        """Add `op * factor` to the block of sites `i` and `j`

        Parameters
        ----------
        op : Union[Number, array_like]
            A number stands for the number times the identity of the internal space.
            Otherwise a `internal_dim × internal_dim` matrix.
        i, j : int
            Site indices.
        factor : complex
        """
        self._check_usable()
        if not (0 <= i < self.num_sites and 0 <= j < self.num_sites):
            raise IndexError("site index out of range: ({}, {}) for {} sites".format(
                i, j, self.num_sites))

        rows, cols, data = self._block(op)
        d = self.internal_dim
        self._rows.append(i * d + rows)
        self._cols.append(j * d + cols)
        self._data.append(data * factor)

    def increment_matrix(self, matrix, factor=1):
        """Add a whole operator of shape `(size, size)`"""
        self._check_usable()
        coo = sparse.coo_matrix(matrix)
        if coo.shape != self.shape:
            raise RuntimeError("invalid size of operator; expected {n}×{n}, "
                               "got {shape}".format(n=self.size, shape=coo.shape))
        self._rows.append(coo.row)
        self._cols.append(coo.col)
        self._data.append(coo.data.astype(self.dtype) * factor)

    def tocsr(self) -> csr_matrix:
        """Sum up all the entries into a CSR matrix and consume the builder

        Entries which sum to zero are not stored.
        """
        self._check_usable()
        self._consumed = True

        if self._data:
            rows = np.concatenate(self._rows)
            cols = np.concatenate(self._cols)
            data = np.concatenate(self._data)
        else:
            rows = cols = np.zeros(0, dtype=int)
            data = np.zeros(0, dtype=self.dtype)
        self._rows, self._cols, self._data = [], [], []

        matrix = sparse.coo_matrix((data, (rows, cols)), shape=self.shape).tocsr()
        matrix.sum_duplicates()
        matrix.eliminate_zeros()
        matrix.sort_indices()
        return matrix


def triplets(matrix):
    """Iterate over the `(row, col, value)` entries of a sparse matrix, row by row"""
    matrix = csr_matrix(matrix)
    row_boundaries = zip(matrix.indptr[:-1], matrix.indptr[1:])
    for i, (start, end) in enumerate(row_boundaries):
        for idx in range(start, end):
            yield i, matrix.indices[idx], matrix.data[idx]
