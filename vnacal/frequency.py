"""
.. currentmodule:: vnacal.frequency

========================================
frequency (:mod:`vnacal.frequency`)
========================================

Frequency points of a calibration and frequency range checks.

.. autosummary::
   :toctree: generated/

   Frequency
   covers

"""
from __future__ import annotations

from typing import Tuple

import numpy as npy

from .constants import F_EXTRAPOLATION, NumberLike


class Frequency:
    """
    Strictly ascending, non-negative frequency points in Hz.

    Parameters
    ----------
    f : scalar or array-like
        points in Hz

    Raises
    ------
    ValueError
        if a point is NaN or negative, or the points aren't ascending
    """
    def __init__(self, f: NumberLike) -> None:
        f = npy.array(f, dtype=float, ndmin=1)
        if f.ndim != 1:
            raise ValueError('frequencies must be a vector')
        for value in f:
            if npy.isnan(value) or value < 0.0:
                raise ValueError('invalid frequency: {:f}'.format(value))
        if npy.any(npy.diff(f) <= 0.0):
            raise ValueError('frequencies must be ascending')
        self._f = f

    @classmethod
    def from_f(cls, f: NumberLike) -> 'Frequency':
        """
        Make a Frequency from the points a VNA swept, passing a
        Frequency through unchanged.
        """
        if isinstance(f, Frequency):
            return f
        return cls(f)

    @property
    def f(self) -> npy.ndarray:
        return self._f

    @property
    def start(self) -> float:
        return float(self._f[0])

    @property
    def stop(self) -> float:
        return float(self._f[-1])

    @property
    def npoints(self) -> int:
        return len(self._f)

    def covered_by(self, frange: Tuple[float, float],
                   extrapolation: float = F_EXTRAPOLATION) -> bool:
        """
        Test if a frequency range spans these points; True if there are
        none. See :func:`covers`.
        """
        if not self.npoints:
            return True
        return covers(frange, self.start, self.stop, extrapolation)


def covers(frange: Tuple[float, float], fmin: float, fmax: float,
           extrapolation: float = F_EXTRAPOLATION) -> bool:
    """
    Test if a frequency range covers fmin..fmax.

    The range may fall short of either end by the fraction
    `extrapolation`.

    Parameters
    ----------
    frange : (float, float)
        lower and upper limit of the range being tested
    fmin, fmax : float
        range that must be covered
    extrapolation : float, optional
        Default is :data:`~vnacal.constants.F_EXTRAPOLATION`.

    Examples
    --------
    >>> covers((1e9, 2e9), 1.005e9, 2.01e9)
    True
    """
    lower = (1.0 + extrapolation) * fmin
    upper = (1.0 - extrapolation) * fmax
    return not (frange[0] > lower or frange[1] < upper)
