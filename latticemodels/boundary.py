"""Periodic and twisted boundary conditions"""
import itertools

import numpy as np

from .site import Site

__all__ = ['TwistedBoundary', 'PeriodicBoundary', 'BoundaryConditions', 'shift_site']


class TwistedBoundary:
    """Identifies sites which differ by `vector`, adding a phase to hoppings across

    Parameters
    ----------
    vector : array_like
        Period of the boundary, usually the size of the lattice along one axis.
    theta : float
        Twist angle: a hopping which crosses the boundary once in the direction of
        `vector` picks up the factor `exp(-1j * theta)`.
    """
    def __init__(self, vector, theta=0.0):
        self.vector = np.atleast_1d(np.asarray(vector, dtype=float))
        self.theta = theta

    def __repr__(self):
        return "{}({}, theta={})".format(type(self).__name__, self.vector.tolist(), self.theta)


class PeriodicBoundary(TwistedBoundary):
    """Boundary without a twist"""
    def __init__(self, vector):
        super().__init__(vector, theta=0.0)

    def __repr__(self):
        return "PeriodicBoundary({})".format(self.vector.tolist())


class BoundaryConditions:
    """A set of boundaries which are applied together

    Parameters
    ----------
    *boundaries : TwistedBoundary
    depth : int
        Maximum number of times a site may be wrapped around each boundary.

    Examples
    --------
    >>> from latticemodels.lattice import square_lattice
    >>> lattice = square_lattice(3)
    >>> phase, site = BoundaryConditions(PeriodicBoundary([3])).shift_site(lattice, Site([4]))
    >>> site, float(abs(phase))
    (Site([1.0]), 1.0)
    """
    def __init__(self, *boundaries, depth=1):
        for b in boundaries:
            if not isinstance(b, TwistedBoundary):
                raise TypeError("Expected a boundary, got {}".format(type(b).__name__))
        self.boundaries = boundaries
        self.depth = depth

        shifts = itertools.product(range(-depth, depth + 1), repeat=len(boundaries))
        self._shifts = sorted((s for s in shifts if any(s)),
                              key=lambda s: (sum(abs(n) for n in s), s))

    def __len__(self):
        return len(self.boundaries)

    def __iter__(self):
        return iter(self.boundaries)

    def __repr__(self):
        return "BoundaryConditions({})".format(", ".join(repr(b) for b in self.boundaries))

    def shift_site(self, lattice, site):
        """Wrap `site` back into `lattice` across the boundaries

        Returns
        -------
        Tuple[complex, Site]
            The phase factor picked up on the way and the wrapped site. A site which is
            already in the lattice, or which can't be wrapped into it, is returned as is
            with a phase of 1.
        """
        if lattice.site_index(site) is not None:
            return 1.0, site

        coords = site.coords
        for shift in self._shifts:
            new_coords = np.array(coords, dtype=float)
            theta = 0.0
            for n, boundary in zip(shift, self.boundaries):
                if n == 0:
                    continue
                size = min(boundary.vector.size, new_coords.size)
                new_coords[:size] -= n * boundary.vector[:size]
                theta += n * boundary.theta

            wrapped = Site(new_coords)
            if lattice.site_index(wrapped) is not None:
                return np.exp(-1j * theta), wrapped
        return 1.0, site


def shift_site(boundaries, lattice, site):
    """Apply `boundaries` to `site`, see :meth:`BoundaryConditions.shift_site`

    `boundaries` may be `None` (open boundaries), a single boundary or a
    :class:`BoundaryConditions` instance.
    """
    if boundaries is None:
        return 1.0, site
    if isinstance(boundaries, TwistedBoundary):
        boundaries = BoundaryConditions(boundaries)
    return boundaries.shift_site(lattice, site)
