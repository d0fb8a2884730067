"""
.. module:: vnacal.calibration
========================================
calibration (:mod:`vnacal.calibration`)
========================================


This Package turns measured calibration standards into the linear
equations a VNA error term solver works on. Most functionality is in
the :mod:`calibration` module.

.. automodule:: vnacal.calibration.layout
.. automodule:: vnacal.calibration.parameter
.. automodule:: vnacal.calibration.connectivity
.. automodule:: vnacal.calibration.measurement
.. automodule:: vnacal.calibration.calibration

"""

from . import calibration, connectivity, layout, measurement, parameter
from .calibration import NewCalibration
from .connectivity import reachability_matrix
from .layout import CalType, Layout
from .measurement import Equation, Measurement, NewParameter, System, Term
from .parameter import Parameter, ParameterCollection

__all__ = [
    'NewCalibration',
    'reachability_matrix',
    'CalType',
    'Layout',
    'Equation',
    'Measurement',
    'NewParameter',
    'System',
    'Term',
    'Parameter',
    'ParameterCollection',
]
