from .__about__ import (__author__, __copyright__, __doc__, __email__, __license__, __summary__,
                        __title__, __url__, __version__)

from .site import *
from .lattice import *
from .latticevalue import *
from .bonds import *
from .adjacency import *
from .magnetic import *
from .boundary import *
from .model import *
from .currents import *
from .support.pickle import save, load

from . import (constants, utils)


def tests(options=None, plugins=None):
    """Run the bundled test suite and the docstring examples

    Parameters
    ----------
    options : list or str
        Extra pytest command line options.
    plugins : list
        Plugin objects to be registered with pytest.

    Returns
    -------
    Optional[int]
        The pytest exit code if any test failed.
    """
    import pytest
    import pathlib

    args = options.split() if isinstance(options, str) else list(options or [])
    package_path = pathlib.Path(__file__).parent
    if (package_path / 'tests').exists():
        targets = [str(package_path)]  # installed: tests live inside the package
    else:
        targets = [str(package_path.parent / 'tests'), str(package_path)]

    args += ['-p', 'no:cacheprovider', '--doctest-modules'] + targets
    return pytest.main(args, plugins) or None
