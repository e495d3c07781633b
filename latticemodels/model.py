"""Main model definition interface and the operator assembly engine"""
import numbers
import warnings

import numpy as np
from scipy import sparse
from scipy.sparse import csr_matrix

from .adjacency import AdjacencyMatrix
from .bonds import AbstractBonds, Translation, adapt_bonds, default_bonds
from .boundary import shift_site
from .lattice import Lattice, check_same_lattice
from .latticevalue import LatticeValue, coord_values
from .magnetic import AbstractField, NoField
from .site import Site, ResolvedSite
from .support.sparse import SparseMatrixBuilder, triplets
from .utils.time import timed

__all__ = ['Model', 'OperatorBuilder', 'add_hoppings', 'add_diagonal', 'preprocess_argument',
           'build_hamiltonian', 'hoppings', 'tightbinding_hamiltonian', 'apply_field',
           'diagonal_operator', 'coord_operators', 'transition']


def _is_site(obj):
    return isinstance(obj, (Site, ResolvedSite))


def _is_site_pair(obj):
    return isinstance(obj, tuple) and len(obj) == 2 and all(_is_site(s) for s in obj)


def _adjoint(op):
    if isinstance(op, numbers.Number):
        return np.conj(op)
    return op.conj().T


def _phase_factor(field, p1, p2):
    return np.exp(-2j * np.pi * field.line_integral(p1, p2))


def _selected(selector, lattice, site1, site2):
    if selector is None:
        return True
    if isinstance(selector, AbstractBonds):
        return selector.isadjacent(site1, site2)
    return bool(selector(lattice, site1, site2))


def _add_hopping(builder, selector, lattice, op, site1, site2, field, boundaries):
    p1, p2 = site1.coords, site2.coords
    boundary_factor, site2 = shift_site(boundaries, lattice, site2)

    i = lattice.site_index(site1)
    j = lattice.site_index(site2)
    if i is None or j is None:
        return
    if not _selected(selector, lattice, site1, site2):
        return

    factor = _phase_factor(field, p1, p2) * boundary_factor
    if not np.isfinite(factor):
        raise RuntimeError("got NaN or Inf when finding the phase factor for the hopping "
                           "{} -> {}".format(site1, site2))
    builder.increment(op, i, j, factor)
    builder.increment(_adjoint(op), j, i, np.conj(factor))


def add_hoppings(builder, selector, lattice, op, bond, field=None, boundaries=None):
    """Add the hopping `op` for every pair of sites described by `bond`

    The Hermitian conjugate is always added as well. Pairs with a site outside the
    lattice (after applying the boundary conditions) or rejected by `selector` are
    skipped.

    Parameters
    ----------
    builder : SparseMatrixBuilder
    selector : Optional[Union[AbstractBonds, Callable]]
        Either bonds which must contain the pair or a function
        `selector(lattice, site1, site2) -> bool`.
    lattice : Lattice
    op : Union[Number, array_like]
        On-site block of the hopping.
    bond : Union[Translation, AbstractBonds, Tuple[Site, Site]]
        A translation is applied to every site of the lattice. Other bonds are bound
        to the lattice and iterated. A pair of sites describes a single hopping.
    field : Optional[AbstractField]
    boundaries : Optional[BoundaryConditions]
    """
    field = field or NoField()
    if isinstance(bond, Translation):
        if bond.ndim > lattice.ndim:
            raise RuntimeError("Incompatible dims: {}D translation on a {}D "
                               "lattice".format(bond.ndim, lattice.ndim))
        for i, site in enumerate(lattice):
            _add_hopping(builder, selector, lattice, op, ResolvedSite(site, i),
                         bond.displace(site), field, boundaries)
    elif isinstance(bond, AbstractBonds):
        for site1, site2 in adapt_bonds(bond, lattice):
            _add_hopping(builder, selector, lattice, op, site1, site2, field, boundaries)
    elif _is_site_pair(bond):
        _add_hopping(builder, selector, lattice, op, bond[0], bond[1], field, boundaries)
    else:
        raise TypeError("{!r} cannot be interpreted as hopping bonds".format(bond))


def add_diagonal(builder, op, values):
    """Add `op * values[i]` to the on-site block of every site `i`"""
    for i, value in enumerate(values):
        if value != 0:
            builder.increment(op, i, i, value)


class _Hoppings:
    def __init__(self, op, bonds):
        self.op = op
        self.bonds = bonds

    def apply(self, builder, model):
        for bond in self.bonds:
            add_hoppings(builder, model.selector, model.lattice, self.op, bond,
                         model.field, model.boundaries)


class _Diagonal:
    def __init__(self, op, values):
        self.op = op
        self.values = values

    def apply(self, builder, model):
        add_diagonal(builder, self.op, self.values)


class _Operator:
    def __init__(self, matrix):
        self.matrix = matrix

    def apply(self, builder, model):
        builder.increment_matrix(self.matrix)


def _is_bonds(obj):
    return isinstance(obj, AbstractBonds) or _is_site_pair(obj)


def _onsite_operator(op, internal_dim):
    if isinstance(op, numbers.Number):
        return op
    if sparse.issparse(op):
        op = op.toarray()
    elif not isinstance(op, (np.ndarray, list)):
        raise TypeError("Invalid term: unsupported on-site operator type "
                        "{}".format(type(op).__name__))
    op = np.asarray(op)
    if op.shape != (internal_dim, internal_dim):
        raise RuntimeError("Invalid term: on-site operator of shape {} does not match the "
                           "number of internal degrees of freedom "
                           "{}".format(op.shape, internal_dim))
    return op


def _preprocess_pair(model, op, on_lattice):
    op = _onsite_operator(op, model.internal_dim)
    if isinstance(on_lattice, LatticeValue):
        check_same_lattice(on_lattice.lattice, model.lattice)
        return _Diagonal(op, on_lattice.values)
    if isinstance(on_lattice, numbers.Number):
        return _Diagonal(op * on_lattice, np.ones(len(model.lattice)))
    if _is_bonds(on_lattice):
        return _Hoppings(op, (on_lattice,))
    if isinstance(on_lattice, (tuple, list)) and all(_is_bonds(b) for b in on_lattice):
        return _Hoppings(op, tuple(on_lattice))
    raise TypeError("Invalid term: unsupported on-lattice operator type "
                    "{}".format(type(on_lattice).__name__))


def _preprocess_matrix(model, matrix):
    d = model.internal_dim
    n = len(model.lattice)
    shape = matrix.shape
    if shape == (n * d, n * d):
        return _Operator(csr_matrix(matrix))

    onsite = shape == (d, d)
    on_lattice = shape == (n, n)
    if onsite and on_lattice:
        raise RuntimeError("Invalid term: a {0}×{0} matrix is ambiguous because it matches "
                           "both the internal and the lattice dimension".format(d))
    if onsite:
        block = matrix.toarray() if sparse.issparse(matrix) else np.asarray(matrix)
        return _Diagonal(block, np.ones(n))
    if on_lattice:
        return _Operator(sparse.kron(matrix, sparse.identity(d), format='csr'))
    raise RuntimeError("Invalid term: a matrix of shape {} doesn't match the internal ({d}×{d}), "
                       "lattice ({n}×{n}) or full ({m}×{m}) "
                       "dimension".format(shape, d=d, n=n, m=n * d))


def preprocess_argument(model, arg):
    """Turn a model term into one of the canonical term types

    Parameters
    ----------
    model : Model
        Supplies the lattice and the internal dimension.
    arg
        Any of:

        * a number: on-site energy of every site
        * a matrix: on-site (`d×d`), lattice (`N×N`) or full (`Nd×Nd`) operator
        * a :class:`.LatticeValue`: site-dependent on-site energy
        * bonds or a pair of sites: hoppings with unit amplitude
        * a tuple `(op, on_lattice)` where `op` is a number or a `d×d` matrix and
          `on_lattice` is any of the above (except a matrix) or a tuple of bonds
    """
    if arg is None:
        raise RuntimeError("`None` was passed to Model: check that all the terms "
                           "have valid values")
    if isinstance(arg, numbers.Number):
        return _Diagonal(arg, np.ones(len(model.lattice)))
    if sparse.issparse(arg) or isinstance(arg, np.ndarray):
        if arg.ndim != 2:
            raise RuntimeError("Invalid term: expected a 2D matrix, "
                               "got shape {}".format(arg.shape))
        return _preprocess_matrix(model, arg)
    if isinstance(arg, LatticeValue):
        return _preprocess_pair(model, 1, arg)
    if _is_bonds(arg):
        return _preprocess_pair(model, 1, arg)
    if isinstance(arg, tuple) and len(arg) == 2:
        return _preprocess_pair(model, *arg)
    raise TypeError("Invalid term: unsupported type {}".format(type(arg).__name__))


class Model:
    """Builds a Hamiltonian from a lattice and any number of terms

    The Hamiltonian is a sparse matrix in the :class:`scipy.sparse.csr_matrix` format.
    States are ordered site-major: state `k` of site `i` has the index
    `i * internal_dim + k`.

    Parameters
    ----------
    lattice : Lattice
    *terms
        On-site energies, hoppings and explicit operators, see :func:`preprocess_argument`.
    internal_dim : int
        Number of internal degrees of freedom (e.g. spin) per site.
    field : Optional[AbstractField]
        Magnetic field which adds Peierls phases to all hoppings.
    boundaries : Optional[BoundaryConditions]
        Open boundaries if omitted.
    selector : Optional[Union[AbstractBonds, Callable]]
        Only hoppings between site pairs accepted by `selector` are added.

    Examples
    --------
    >>> from latticemodels.lattice import square_lattice
    >>> from latticemodels.bonds import Translation
    >>> model = Model(square_lattice(2), (-1, Translation([1])))
    >>> model.hamiltonian.toarray().real.tolist()
    [[0.0, -1.0], [-1.0, 0.0]]
    """
    def __init__(self, lattice: Lattice, *terms, internal_dim=1, field=None, boundaries=None,
                 selector=None):
        if field is not None and not isinstance(field, AbstractField):
            raise TypeError("Expected a magnetic field, got {}".format(type(field).__name__))
        self._lattice = lattice
        self._internal_dim = internal_dim
        self._field = field or NoField()
        self._boundaries = boundaries
        self._selector = selector
        self._terms = []
        self._hamiltonian = None
        self._build_time = None
        self.add(*terms)

    def add(self, *terms):
        """Add term(s) to the model

        Parameters
        ----------
        *terms
            See :func:`preprocess_argument`. Lists of terms are expanded automatically,
            so `model.add(t0, [t1, t2])` is equivalent to `model.add(t0, t1, t2)`.
            Empty sequences are ignored.
        """
        for term in terms:
            if isinstance(term, tuple) and not term:
                continue
            if isinstance(term, list):
                self.add(*term)
            else:
                self._terms.append(preprocess_argument(self, term))
        self._hamiltonian = None

    @property
    def lattice(self) -> Lattice:
        return self._lattice

    @property
    def internal_dim(self) -> int:
        return self._internal_dim

    @property
    def field(self) -> AbstractField:
        return self._field

    @property
    def boundaries(self):
        return self._boundaries

    @property
    def selector(self):
        return self._selector

    @property
    def size(self) -> int:
        """Dimension of the Hamiltonian matrix"""
        return len(self.lattice) * self.internal_dim

    def build(self) -> csr_matrix:
        """Assemble a new Hamiltonian matrix from all the terms"""
        builder = SparseMatrixBuilder(len(self.lattice), self.internal_dim)
        with timed() as time:
            for term in self._terms:
                term.apply(builder, self)
            matrix = builder.tocsr()
        self._build_time = time
        return matrix

    @property
    def hamiltonian(self) -> csr_matrix:
        """Hamiltonian sparse matrix in the :class:`scipy.sparse.csr_matrix` format"""
        if self._hamiltonian is None:
            self._hamiltonian = self.build()
        return self._hamiltonian

    @property
    def adjacency_matrix(self) -> AdjacencyMatrix:
        """Sites connected by the hoppings of the Hamiltonian"""
        return AdjacencyMatrix.from_operator(self.hamiltonian, self.lattice, self.internal_dim)

    def report(self):
        """Return a string with information about the last build"""
        hamiltonian = self.hamiltonian
        return "Built {} lattice sites, {} non-zero values in {}".format(
            len(self.lattice), hamiltonian.nnz, self._build_time)


class _Increment:
    def __init__(self, op=None):
        self.op = op

    def __add__(self, op):
        return _Increment(op)


class OperatorBuilder:
    """Assemble an operator one site block at a time

    `builder[site1, site2] += op` adds `op` to the block of the two sites, with the
    Peierls phase of `field` for `site1 != site2`. Unlike hopping terms, the Hermitian
    conjugate is not added automatically.

    Parameters
    ----------
    lattice : Lattice
    internal_dim : int
    field : Optional[AbstractField]

    Examples
    --------
    >>> from latticemodels.lattice import square_lattice
    >>> lattice = square_lattice(2)
    >>> builder = OperatorBuilder(lattice)
    >>> builder[lattice[0], lattice[0]] += 2
    >>> builder.to_matrix().toarray().real.tolist()
    [[2.0, 0.0], [0.0, 0.0]]
    """
    def __init__(self, lattice, internal_dim=1, field=None):
        self.lattice = lattice
        self.field = field or NoField()
        self._builder = SparseMatrixBuilder(len(lattice), internal_dim)

    def __getitem__(self, sites):
        return _Increment()

    def __setitem__(self, sites, increment):
        if not isinstance(increment, _Increment):
            raise TypeError("Only increments are supported: use `builder[site1, site2] += op`")
        site1, site2 = sites
        i, j = self.lattice.site_index(site1), self.lattice.site_index(site2)
        if i is None or j is None:
            raise IndexError("The sites {} and {} must be in the lattice".format(site1, site2))
        factor = 1 if i == j else _phase_factor(self.field, site1.coords, site2.coords)
        self._builder.increment(increment.op, i, j, factor)

    def to_matrix(self) -> csr_matrix:
        return self._builder.tocsr()


def build_hamiltonian(lattice, *terms, **kwargs):
    """Shortcut for `Model(lattice, *terms, **kwargs).hamiltonian`"""
    return Model(lattice, *terms, **kwargs).hamiltonian


def hoppings(lattice, *bonds, op=1, internal_dim=1, field=None, boundaries=None,
             selector=None):
    """Operator with the hopping `op` on all the given bonds

    Examples
    --------
    >>> from latticemodels.lattice import square_lattice
    >>> from latticemodels.bonds import Translation
    >>> hoppings(square_lattice(3), Translation([1])).toarray().real.tolist()
    [[0.0, 1.0, 0.0], [1.0, 0.0, 1.0], [0.0, 1.0, 0.0]]
    """
    model = Model(lattice, internal_dim=internal_dim, field=field, boundaries=boundaries,
                  selector=selector)
    model.add((op, bonds))
    return model.hamiltonian


def tightbinding_hamiltonian(lattice, t1=1, t2=0, t3=0, internal_dim=1, field=None,
                             boundaries=None, selector=None):
    """Tight-binding Hamiltonian with hoppings up to third-nearest neighbors

    The neighbors of each order are found with :func:`.default_bonds`.

    Parameters
    ----------
    lattice : Lattice
    t1, t2, t3 : Union[Number, array_like]
        Nearest, next-nearest and third-nearest neighbor hoppings.
    internal_dim : int
    field : Optional[AbstractField]
    boundaries : Optional[BoundaryConditions]
    selector : Optional[Union[AbstractBonds, Callable]]

    Examples
    --------
    >>> from latticemodels.lattice import square_lattice
    >>> tightbinding_hamiltonian(square_lattice(2)).toarray().real.tolist()
    [[0.0, 1.0], [1.0, 0.0]]
    """
    model = Model(lattice, internal_dim=internal_dim, field=field, boundaries=boundaries,
                  selector=selector)
    for order, t in enumerate([t1, t2, t3], start=1):
        if isinstance(t, numbers.Number) and t == 0:
            continue
        bonds = default_bonds(lattice, order)
        if not bonds:
            warnings.warn("The lattice has no neighbors of order {}: the hopping t{} "
                          "is ignored".format(order, order), stacklevel=2)
            continue
        model.add((t, tuple(bonds)))
    return model.hamiltonian


def apply_field(operator, lattice, field, internal_dim=1) -> csr_matrix:
    """Return a copy of `operator` with the Peierls phases of `field` on all hoppings

    Site coordinates are taken as they are in the lattice, so hoppings across
    periodic boundaries get the phase of the direct path between the two sites.
    """
    size = len(lattice) * internal_dim
    operator = csr_matrix(operator, dtype=np.complex128)
    if operator.shape != (size, size):
        raise RuntimeError("invalid size of `operator`; expected {n}×{n}, "
                           "got {shape}".format(n=size, shape=operator.shape))

    positions = lattice.positions
    rows, cols, data = [], [], []
    for row, col, value in triplets(operator):
        i, j = row // internal_dim, col // internal_dim
        if i != j:
            value *= _phase_factor(field, positions[i], positions[j])
        rows.append(row)
        cols.append(col)
        data.append(value)
    return csr_matrix((data, (rows, cols)), shape=operator.shape, dtype=np.complex128)


def diagonal_operator(values, internal_dim=1) -> csr_matrix:
    """Operator which multiplies every state of site `i` by `values[i]`

    Parameters
    ----------
    values : LatticeValue
    internal_dim : int

    Examples
    --------
    >>> from latticemodels.lattice import square_lattice
    >>> x, = coord_values(square_lattice(2))
    >>> diagonal_operator(x, internal_dim=2).diagonal().real.tolist()
    [1.0, 1.0, 2.0, 2.0]
    """
    diagonal = np.repeat(np.asarray(values, dtype=np.complex128), internal_dim)
    return sparse.diags(diagonal, format='csr')


def coord_operators(lattice, internal_dim=1):
    """Position operators, one per coordinate axis of the `lattice`"""
    return tuple(diagonal_operator(v, internal_dim) for v in coord_values(lattice))


def transition(lattice, site1, site2, op=1, internal_dim=1, field=None) -> csr_matrix:
    """One-way hopping operator from `site1` to `site2`

    Unlike hopping terms, the Hermitian conjugate is not added. Sites may also be
    given by their indices.

    Parameters
    ----------
    lattice : Lattice
    site1, site2 : Union[Site, int]
    op : Union[Number, array_like]
        On-site block of the transition.
    internal_dim : int
    field : Optional[AbstractField]
        Adds the Peierls phase of the path `site1 -> site2`.
    """
    site1, site2 = (lattice[s] if isinstance(s, (int, np.integer)) else s
                    for s in (site1, site2))
    builder = OperatorBuilder(lattice, internal_dim, field)
    builder[site1, site2] += op
    return builder.to_matrix()
