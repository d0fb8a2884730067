"""
vnacal is a vector network analyzer calibration engine, implemented in
Python.
"""

__version__ = '0.1.0'
## Import all  module names for coherent reference of name-space


from . import (
    calibration,
    constants,
    errors,
    frequency,
    mathFunctions,
)
from .calibration import *
from .constants import *
from .errors import *

# Import contents into current namespace for ease of calling
from .frequency import *
from .mathFunctions import *

## Shorthand Names
F = Frequency
