'''
.. module:: vnacal.calibration.parameter
================================================================
parameter (:mod:`vnacal.calibration.parameter`)
================================================================

Reflection coefficient parameters of calibration standards.

Parameters live in a :class:`ParameterCollection` and are referenced
everywhere else by integer handle. Three handles are predefined:

    =========  ======  =====
    handle     name    value
    =========  ======  =====
    0          MATCH   0
    1          OPEN    1
    2          SHORT   -1
    =========  ======  =====

MATCH and OPEN double as the sentinels ZERO and ONE.

.. autosummary::
   :toctree: generated/

   Parameter
   ParameterCollection
'''
from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional, Tuple

import numpy as npy

from ..constants import NumberLike, ParameterKindT
from ..errors import MathError, UsageError
from ..mathFunctions import rational_interp, spline_calc, spline_eval

logger = logging.getLogger(__name__)


class _Table(object):
    '''
    Complex values tabulated over frequency, evaluated by rational
    interpolation and held constant outside of the table.
    '''
    def __init__(self, frequency: NumberLike, values: NumberLike):
        frequency = npy.array(frequency, dtype=float, ndmin=1)
        values = npy.array(values, dtype=complex, ndmin=1)
        if frequency.ndim != 1 or frequency.shape != values.shape:
            raise UsageError('frequency and value vectors must have the same length')
        if len(frequency) < 1:
            raise UsageError('at least one frequency is required')
        if npy.any(npy.isnan(frequency)) or npy.any(frequency < 0.0):
            raise UsageError('frequencies must be non-negative')
        if npy.any(npy.diff(frequency) <= 0.0):
            raise UsageError('frequencies must be ascending')
        self.frequency = frequency
        self.values = values
        self._fx = rational_interp(frequency, values, assume_sorted=True)

    @property
    def frequency_range(self) -> Tuple[float, float]:
        return float(self.frequency[0]), float(self.frequency[-1])

    def __call__(self, f: NumberLike) -> NumberLike:
        f = npy.clip(f, self.frequency[0], self.frequency[-1])
        return self._fx(f)


class Parameter(object):
    '''
    A single parameter.

    Use the ``make_*`` methods of :class:`ParameterCollection` rather
    than creating these directly.

    Attributes
    ----------
    index : int
        handle of the parameter
    kind : str
        'scalar', 'vector', 'unknown' or 'correlated'
    other : :class:`Parameter` or None
        initial guess of an unknown parameter, or the parameter a
        correlated parameter is tied to
    '''
    def __init__(self, index: int, kind: ParameterKindT, value: complex = 0j,
                 table: Optional[_Table] = None,
                 other: Optional['Parameter'] = None,
                 sigma: float = 0.0,
                 sigma_frequency: Optional[npy.ndarray] = None,
                 sigma_values: Optional[npy.ndarray] = None):
        self.index = index
        self.kind = kind
        self.value = value
        self.table = table
        self.other = other
        self.sigma = sigma
        self.sigma_frequency = sigma_frequency
        self.sigma_values = sigma_values
        self._sigma_coefficients = None
        if sigma_frequency is not None:
            self._sigma_coefficients = spline_calc(sigma_frequency, sigma_values)
        self.solution = None
        self.deleted = False

    def __repr__(self) -> str:
        return 'Parameter({}, {!r})'.format(self.index, self.kind)

    @property
    def is_unknown(self) -> bool:
        '''True for unknown and correlated parameters.'''
        return self.kind in ('unknown', 'correlated')

    @property
    def frequency_range(self) -> Tuple[float, float]:
        '''
        (fmin, fmax) over which the parameter is defined.
        '''
        parameter = self
        while parameter.kind in ('unknown', 'correlated'):
            parameter = parameter.other
        if parameter.kind == 'scalar':
            fmin, fmax = 0.0, npy.inf
        else:
            fmin, fmax = parameter.table.frequency_range

        if self.kind == 'correlated' and self.sigma_frequency is not None:
            fmin = max(fmin, self.sigma_frequency[0])
            fmax = min(fmax, self.sigma_frequency[-1])
        return fmin, fmax

    def sigma_at(self, f: NumberLike) -> NumberLike:
        '''
        Standard deviation of a correlated parameter at frequency `f`.
        '''
        if self.kind != 'correlated':
            raise UsageError('parameter {} is not correlated'.format(self.index))
        if self.sigma_frequency is None:
            return self.sigma if npy.ndim(f) == 0 else npy.full(npy.shape(f), self.sigma)
        return spline_eval(self.sigma_frequency, self.sigma_values,
                           self._sigma_coefficients, f)

    def value_at(self, f: NumberLike) -> NumberLike:
        '''
        Value of the parameter at frequency `f`.

        Raises
        ------
        MathError
            if the parameter is unknown and hasn't been solved
        '''
        if self.kind == 'scalar':
            return self.value if npy.ndim(f) == 0 else \
                npy.full(npy.shape(f), self.value, dtype=complex)
        if self.kind == 'vector':
            return self.table(f)
        if self.solution is None:
            raise MathError('parameter {} has not been solved'.format(self.index))
        return self.solution(f)


class ParameterCollection(object):
    '''
    Store of calibration standard parameters, referenced by handle.

    Examples
    --------
    >>> parameters = ParameterCollection()
    >>> load = parameters.make_scalar(0.1 + 0.02j)
    >>> guess = parameters.make_vector([1e9, 2e9], [0.9, 0.8j])
    >>> reflect = parameters.make_unknown(guess)
    >>> parameters.get(reflect).frequency_range
    (1000000000.0, 2000000000.0)
    '''
    MATCH = 0
    OPEN = 1
    SHORT = 2
    ZERO = MATCH
    ONE = OPEN
    PREDEFINED = (MATCH, OPEN, SHORT)

    def __init__(self):
        self._parameters: Dict[int, Parameter] = {}
        self._next_index = 0
        for value in (0.0, 1.0, -1.0):
            self.make_scalar(value)

    def __len__(self) -> int:
        return len(self._parameters)

    def __contains__(self, handle: int) -> bool:
        return handle in self._parameters

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._parameters))

    def _add(self, parameter: Parameter) -> int:
        self._parameters[parameter.index] = parameter
        self._next_index += 1
        logger.debug('new %s parameter %d', parameter.kind, parameter.index)
        return parameter.index

    def get(self, handle: int) -> Parameter:
        '''
        Look up a parameter.

        Raises
        ------
        UsageError
            if the handle is invalid or the parameter was deleted
        '''
        try:
            return self._parameters[handle]
        except (KeyError, TypeError):
            raise UsageError('invalid parameter index {}'.format(handle)) from None

    def make_scalar(self, value: complex) -> int:
        '''
        Make a frequency independent parameter.
        '''
        return self._add(Parameter(self._next_index, 'scalar', value=complex(value)))

    def make_vector(self, frequency: NumberLike, values: NumberLike) -> int:
        '''
        Make a parameter tabulated over frequency.

        Between the given frequencies the value is found by rational
        function interpolation; outside of them it is held constant.

        Parameters
        ----------
        frequency : array-like
            ascending, non-negative frequencies in Hz
        values : array-like
            complex values at each frequency
        '''
        table = _Table(frequency, values)
        return self._add(Parameter(self._next_index, 'vector', table=table))

    def make_unknown(self, initial_guess: int) -> int:
        '''
        Make a parameter to be solved by the calibration.

        Parameters
        ----------
        initial_guess : int
            handle of the parameter used as a starting value
        '''
        other = self.get(initial_guess)
        return self._add(Parameter(self._next_index, 'unknown', other=other))

    def make_correlated(self, other: int, sigma: NumberLike,
                        sigma_frequency: Optional[NumberLike] = None) -> int:
        '''
        Make an unknown parameter tied to another parameter.

        Parameters
        ----------
        other : int
            handle of the parameter this one is correlated with
        sigma : float or array-like
            standard deviation of the difference between the two
        sigma_frequency : array-like, optional
            frequencies of a vector `sigma`, interpolated with a natural
            cubic spline

        Raises
        ------
        UsageError
            if `sigma` is negative or its frequencies are invalid
        '''
        correlate = self.get(other)
        if sigma_frequency is None:
            if npy.ndim(sigma) != 0:
                raise UsageError('sigma_frequency is required for a vector sigma')
            if sigma < 0.0:
                raise UsageError('sigma cannot be negative')
            return self._add(Parameter(self._next_index, 'correlated',
                                       other=correlate, sigma=float(sigma)))

        sigma_frequency = npy.array(sigma_frequency, dtype=float, ndmin=1)
        sigma_values = npy.array(sigma, dtype=float, ndmin=1)
        if sigma_frequency.shape != sigma_values.shape:
            raise UsageError('sigma and sigma_frequency must have the same length')
        if npy.any(sigma_values < 0.0):
            raise UsageError('sigma cannot be negative')
        try:
            parameter = Parameter(self._next_index, 'correlated',
                                  other=correlate,
                                  sigma_frequency=sigma_frequency,
                                  sigma_values=sigma_values)
        except ValueError as error:
            raise UsageError('invalid sigma_frequency: {}'.format(error)) from None
        return self._add(parameter)

    def delete(self, handle: int) -> None:
        '''
        Delete a parameter; its handle becomes invalid.

        Parameters that refer to the deleted one keep working.
        '''
        if handle in self.PREDEFINED:
            raise UsageError('predefined parameter {} cannot be deleted'.format(handle))
        parameter = self.get(handle)
        parameter.deleted = True
        del self._parameters[handle]

    def frequency_range(self, handle: int) -> Tuple[float, float]:
        '''
        (fmin, fmax) over which the parameter is defined.
        '''
        return self.get(handle).frequency_range

    def value(self, handle: int, frequency: NumberLike) -> NumberLike:
        '''
        Evaluate a parameter at one or more frequencies.
        '''
        return self.get(handle).value_at(frequency)

    def set_solved(self, handle: int, frequency: NumberLike, values: NumberLike) -> None:
        '''
        Record the solved values of an unknown or correlated parameter.
        '''
        parameter = self.get(handle)
        if not parameter.is_unknown:
            raise UsageError('parameter {} is not unknown'.format(handle))
        parameter.solution = _Table(frequency, values)
