"""Numerical tolerances and a few useful matrices"""
import numpy as np

site_atol = np.sqrt(np.finfo(float).eps)  #: coordinate tolerance used when matching sites
shell_rtol = 1e-6  #: relative tolerance for grouping site distances into neighbor shells


class Pauli:
    x = np.array([[0, 1],
                  [1, 0]])
    y = np.array([[0, -1j],
                  [1j,  0]])
    z = np.array([[1,  0],
                  [0, -1]])

    def __repr__(self):
        return "x: [[0, 1], [1, 0]], y: [[0, -1j], [1j, 0]], z: [[1, 0], [0, -1]]"


pauli = Pauli()  #: Pauli matrices -- use the ``.x``, ``.y`` and ``.z`` attributes
