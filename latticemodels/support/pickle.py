"""Saving lattices, bonds and operators to compressed files"""
import gzip
import os
import pickle

__all__ = ['save', 'load']

default_extension = ".lmz"


def _with_extension(path):
    """Add the default extension to a path without one

    Examples
    --------
    >>> _with_extension("chain")
    'chain.lmz'
    >>> _with_extension("chain.dat")
    'chain.dat'
    """
    return path if os.path.splitext(path)[1] else path + default_extension


def _as_path(file):
    """Return a `str` path for path-like objects or `None` for open files"""
    if isinstance(file, (str, os.PathLike)):
        return os.fspath(file)
    if type(file).__name__ == "LocalPath":
        return str(file)
    return None


def save(obj, file):
    """Pickle `obj` into a gzip-compressed file

    Parameters
    ----------
    obj : Any
        A :class:`.Lattice`, :class:`.AdjacencyMatrix`, operator matrix or anything
        else which can be pickled.
    file : Union[str, os.PathLike, file object]
        The '.lmz' extension is added to paths without an extension. File objects
        must be opened in binary mode.
    """
    path = _as_path(file)
    with gzip.open(_with_extension(path) if path else file, 'wb') as f:
        pickle.dump(obj, f, protocol=4)


def load(file):
    """Load an object saved with :func:`save`

    A path without an extension is tried as is first and then with '.lmz' appended.
    """
    path = _as_path(file)
    if path and not os.path.exists(path):
        path = _with_extension(path)

    with gzip.open(path or file, 'rb') as f:
        return pickle.load(f)
