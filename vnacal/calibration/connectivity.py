'''
.. module:: vnacal.calibration.connectivity
================================================================
connectivity (:mod:`vnacal.calibration.connectivity`)
================================================================

Signal paths through a calibration standard.

A standard's S matrix often shows that two VNA ports cannot see each
other, e.g. a short on port 1 and a load on port 2. Equations for such
port pairs carry no information about the error terms and are not
generated. Any S cell that is not provably zero is treated as a path.

.. autosummary::
   :toctree: generated/

   reachability_matrix
'''
from __future__ import annotations

from typing import Any, Sequence

import numpy as npy


def reachability_matrix(s_matrix: Sequence[Sequence[Any]], zero: Any) -> npy.ndarray:
    '''
    Transitive closure of the signal paths of a standard.

    Parameters
    ----------
    s_matrix : 2D sequence
        square matrix of parameter references; ``None`` marks a cell
        whose value isn't known
    zero : object
        the reference standing for a zero cell, compared by identity

    Returns
    -------
    reachable : :class:`numpy.ndarray`
        boolean ports x ports matrix; ``reachable[i, j]`` is True if a
        signal can get from port j+1 to port i+1 in either direction,
        possibly through other ports

    Examples
    --------
    >>> zero = object()
    >>> reachability_matrix([[1, zero], [zero, None]], zero)
    array([[ True, False],
           [False,  True]])
    '''
    rows = len(s_matrix)
    columns = len(s_matrix[0]) if rows else 0
    if rows != columns:
        raise ValueError('s_matrix must be square')

    reachable = npy.array([[cell is not zero for cell in row]
                           for row in s_matrix], dtype=bool).reshape(rows, columns)
    reachable |= reachable.T
    npy.fill_diagonal(reachable, True)

    # Floyd-Warshall
    for i in range(rows):
        reachable |= npy.outer(reachable[:, i], reachable[i, :])
    return reachable
