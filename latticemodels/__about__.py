"""Package for building tight-binding operators on arbitrary lattices"""
__title__ = "latticemodels"
__version__ = "0.3.0"
__summary__ = "Bonds, adjacency and sparse operator assembly for lattice models"
__url__ = "https://github.com/latticemodels/latticemodels"

__author__ = "The latticemodels developers"
__copyright__ = "2019-2026, " + __author__
__email__ = "latticemodels@googlegroups.com"
__license__ = "BSD"
