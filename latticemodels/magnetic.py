"""Magnetic fields described by their vector potentials

Fields enter the Hamiltonian only through line integrals of the vector potential
between the two sites of a hopping (Peierls substitution): the hopping is multiplied
by `exp(-2j * pi * field.line_integral(p1, p2))`. All quantities are expressed in
units of the magnetic flux quantum.
"""
import numpy as np

__all__ = ['AbstractField', 'NoField', 'LandauGauge', 'SymmetricGauge', 'PointFlux',
           'MagneticField', 'FieldSum', 'integrate_vector_potential']


def _padded(p1, p2):
    """Bring two points to a common dimension, assuming missing coordinates are zero"""
    p1, p2 = np.atleast_1d(np.asarray(p1, dtype=float)), np.atleast_1d(np.asarray(p2, dtype=float))
    ndim = max(p1.size, p2.size, 2)
    return np.pad(p1, (0, ndim - p1.size)), np.pad(p2, (0, ndim - p2.size))


def integrate_vector_potential(vector_potential, p1, p2, steps=1):
    """Line integral of a vector potential along the straight segment `p1 -> p2`

    Uses the midpoint rule which is exact for potentials linear in the coordinates.

    Parameters
    ----------
    vector_potential : Callable[[np.ndarray], array_like]
    p1, p2 : array_like
        Start and end points.
    steps : int
        Number of integration segments.

    Examples
    --------
    >>> a = lambda p: [0, p[0]]
    >>> integrate_vector_potential(a, [0, 0], [2, 1])
    1.0
    """
    if steps < 1:
        raise RuntimeError("The number of integration steps must be positive, "
                           "got {}".format(steps))
    p1, p2 = _padded(p1, p2)
    dp = (p2 - p1) / steps
    total = 0.0
    for k in range(steps):
        a = np.atleast_1d(np.asarray(vector_potential(p1 + (k + 0.5) * dp), dtype=float))
        n = min(a.size, dp.size)
        total += np.dot(a[:n], dp[:n])
    return float(total)


class AbstractField:
    """Base class for magnetic fields

    Subclasses provide a :meth:`vector_potential` and may override
    :meth:`line_integral` with an exact expression.
    """
    steps = 1  #: number of segments for numerical line integrals

    def vector_potential(self, point):
        raise RuntimeError("{} has no vector potential function".format(type(self).__name__))

    def line_integral(self, p1, p2, steps=None):
        """Integral of the vector potential along the straight segment `p1 -> p2`

        Parameters
        ----------
        p1, p2 : array_like
        steps : Optional[int]
            Integrate numerically with this many segments. Fields with an exact
            expression ignore it unless it's given explicitly.
        """
        return integrate_vector_potential(self.vector_potential, p1, p2, steps or self.steps)

    def __add__(self, other):
        if not isinstance(other, AbstractField):
            return NotImplemented
        return FieldSum(self, other)


class NoField(AbstractField):
    """Zero magnetic field"""
    def vector_potential(self, point):
        return np.zeros_like(np.asarray(point, dtype=float))

    def line_integral(self, p1, p2, steps=None):
        return 0.0

    def __repr__(self):
        return "NoField()"


class LandauGauge(AbstractField):
    """Uniform field `B` perpendicular to the xy plane, vector potential `A = (0, B x)`

    Examples
    --------
    >>> LandauGauge(0.5).line_integral([1, 0], [1, 2])
    1.0
    """
    def __init__(self, B):
        self.B = B

    def vector_potential(self, point):
        x = np.asarray(point, dtype=float)[0]
        return np.array([0, self.B * x])

    def line_integral(self, p1, p2, steps=None):
        if steps is not None:
            return super().line_integral(p1, p2, steps)
        p1, p2 = _padded(p1, p2)
        return float((p1[0] + p2[0]) / 2 * (p2[1] - p1[1]) * self.B)

    def __repr__(self):
        return "LandauGauge({})".format(self.B)


class SymmetricGauge(AbstractField):
    """Uniform field `B` perpendicular to the xy plane, vector potential `A = B/2 (-y, x)`"""
    def __init__(self, B):
        self.B = B

    def vector_potential(self, point):
        x, y = _padded(point, [])[0][:2]
        return np.array([-y, x]) * self.B / 2

    def line_integral(self, p1, p2, steps=None):
        if steps is not None:
            return super().line_integral(p1, p2, steps)
        p1, p2 = _padded(p1, p2)
        return float((p1[0] * p2[1] - p2[0] * p1[1]) / 2 * self.B)

    def __repr__(self):
        return "SymmetricGauge({})".format(self.B)


class PointFlux(AbstractField):
    """Flux line threading the xy plane at `point`

    The line integral is `phi` times the angle which the segment subtends at `point`.
    Segments which start or end at the flux point contribute nothing.

    Parameters
    ----------
    phi : float
        Flux strength.
    point : array_like
        Position of the flux line in the xy plane.
    """
    def __init__(self, phi, point=(0, 0)):
        self.phi = phi
        self.point = np.asarray(point, dtype=float)

    def vector_potential(self, point):
        x, y = _padded(point, [])[0][:2] - self.point
        r2 = x**2 + y**2
        if r2 == 0:
            return np.zeros(2)
        return np.array([-y, x]) * self.phi / r2

    def line_integral(self, p1, p2, steps=None):
        if steps is not None:
            return super().line_integral(p1, p2, steps)
        p1, p2 = _padded(p1, p2)
        r1, r2 = p1[:2] - self.point, p2[:2] - self.point
        if not np.any(r1) or not np.any(r2):
            return 0.0
        cross = r1[0] * r2[1] - r2[0] * r1[1]
        return float(np.arctan2(cross, np.dot(r1, r2)) * self.phi)

    def __repr__(self):
        return "PointFlux({}, point={})".format(self.phi, self.point.tolist())


class MagneticField(AbstractField):
    """Field given by an arbitrary vector potential function

    Parameters
    ----------
    vector_potential : Callable[[np.ndarray], array_like]
        Takes a point and returns the vector potential there.
    steps : int
        Number of segments for the numerical line integral.

    Examples
    --------
    >>> field = MagneticField(lambda p: [0, 0.5 * p[0]])
    >>> field.line_integral([1, 0], [1, 2]) == LandauGauge(0.5).line_integral([1, 0], [1, 2])
    True
    """
    def __init__(self, vector_potential, steps=1):
        self._vector_potential = vector_potential
        self.steps = steps

    def vector_potential(self, point):
        return self._vector_potential(point)

    def __repr__(self):
        return "MagneticField({!r}, steps={})".format(self._vector_potential, self.steps)


class FieldSum(AbstractField):
    """Superposition of several fields"""
    def __init__(self, *fields):
        self.fields = []
        for field in fields:
            self.fields += field.fields if isinstance(field, FieldSum) else [field]

    def vector_potential(self, point):
        return sum(np.asarray(f.vector_potential(point), dtype=float) for f in self.fields)

    def line_integral(self, p1, p2, steps=None):
        return sum(f.line_integral(p1, p2, steps) for f in self.fields)

    def __repr__(self):
        return " + ".join(repr(f) for f in self.fields)
