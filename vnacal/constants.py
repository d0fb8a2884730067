"""
.. currentmodule:: vnacal.constants

========================================
constants (:mod:`vnacal.constants`)
========================================

This module contains numerical tolerances and default settings used
throughout the package.

.. data:: ALMOST_ZERO

    Relative magnitude below which a determinant is treated as zero.

.. data:: MIN_DX

    Minimum spacing between consecutive spline knots (0.0001).

.. data:: F_EXTRAPOLATION

    Fraction by which the calibration frequency range may exceed the
    frequency range of a parameter (0.01).

.. data:: DEFAULT_Z0

    Default reference impedance of the VNA ports (50 ohm).

.. data:: DEFAULT_P_TOLERANCE

    Default convergence tolerance of the iterative solver (1e-6).

.. data:: DEFAULT_ITERATION_LIMIT

    Default iteration limit of the iterative solver (30).

.. data:: DEFAULT_PVALUE_LIMIT

    Default p-value below which the solver rejects the fit (0.001).

"""
from __future__ import annotations

from numbers import Number
from typing import Literal, Sequence, Union

import numpy as np

ALMOST_ZERO = 1e-12
"""
Very tiny but not zero value to handle mathematical singularities.
"""

MIN_DX = 0.0001
"""
Consecutive spline knots must differ by at least this amount.
"""

F_EXTRAPOLATION = 0.01
"""
Allowed relative extrapolation of a parameter's frequency range.
"""

DEFAULT_Z0 = 50.0
"""
Default reference impedance in ohms.
"""

DEFAULT_P_TOLERANCE = 1e-6
"""
Default convergence tolerance for the unknown parameters.
"""

DEFAULT_ITERATION_LIMIT = 30
"""
Default maximum number of solver iterations.
"""

DEFAULT_PVALUE_LIMIT = 0.001
"""
Default significance level of the measurement error test.
"""

ParameterKindT = Literal["scalar", "vector", "unknown", "correlated"]
MTypeT = Literal["a", "m"]

NumberLike = Union[Number, Sequence[Number], np.ndarray]
