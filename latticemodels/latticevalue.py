"""Values attached to every site of a lattice"""
import numpy as np
from numpy.lib.mixins import NDArrayOperatorsMixin

from .lattice import Lattice, check_same_lattice

__all__ = ['LatticeValue', 'coord_values']


class LatticeValue(NDArrayOperatorsMixin):
    """One value per lattice site

    Arithmetic and comparisons work like they do for numpy arrays and return a new
    :class:`LatticeValue` on the same lattice. Combining values from different
    lattices is an error.

    Parameters
    ----------
    lattice : Lattice
    values : array_like
        Must have one entry per site.

    Examples
    --------
    >>> from latticemodels.lattice import square_lattice
    >>> x, y = coord_values(square_lattice(2, 2))
    >>> (x < y).values.tolist()
    [False, False, True, False]
    """
    def __init__(self, lattice: Lattice, values):
        values = np.asarray(values)
        if values.ndim == 0 or values.shape[0] != len(lattice):
            raise RuntimeError("invalid size of `values`; expected {} values, "
                               "got shape {}".format(len(lattice), values.shape))
        self.lattice = lattice
        self.values = values

    @classmethod
    def from_function(cls, func, lattice):
        """Evaluate `func(site)` for every site of the `lattice`"""
        return cls(lattice, [func(site) for site in lattice])

    def __len__(self):
        return len(self.values)

    def __iter__(self):
        return iter(self.values)

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self.values
        return self.values.astype(dtype)

    def _index(self, site):
        if isinstance(site, (int, np.integer)):
            return site
        index = self.lattice.site_index(site)
        if index is None:
            raise IndexError("{} is not in the lattice".format(site))
        return index

    def __getitem__(self, site):
        return self.values[self._index(site)]

    def __setitem__(self, site, value):
        self.values[self._index(site)] = value

    def items(self):
        """Iterate over `(site, value)` pairs"""
        return zip(self.lattice, self.values)

    def __array_ufunc__(self, ufunc, method, *inputs, **kwargs):
        if method != '__call__' or 'out' in kwargs:
            return NotImplemented

        args = []
        for x in inputs:
            if isinstance(x, LatticeValue):
                check_same_lattice(self.lattice, x.lattice)
                args.append(x.values)
            elif isinstance(x, (np.ndarray, np.generic, int, float, complex, bool)):
                args.append(x)
            else:
                return NotImplemented

        result = getattr(ufunc, method)(*args, **kwargs)
        if isinstance(result, tuple):
            return tuple(LatticeValue(self.lattice, r) for r in result)
        return LatticeValue(self.lattice, result)

    def __repr__(self):
        return "LatticeValue({!r}, {})".format(self.lattice, self.values.tolist())


def coord_values(lattice):
    """Return one :class:`LatticeValue` per coordinate axis of the `lattice`"""
    return [LatticeValue(lattice, column) for column in lattice.positions.T]
