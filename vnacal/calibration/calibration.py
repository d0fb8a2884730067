'''
.. module:: vnacal.calibration.calibration
================================================================
calibration (:mod:`vnacal.calibration.calibration`)
================================================================

The calibration session: measured standards in, linear equations in the
error terms out.

A :class:`NewCalibration` is created for an error term type, the
dimensions of the VNA measurement matrix and the number of frequency
points. Standards are added with the ``add_*`` methods, either as raw
'a' (incident) and 'b' (reflected) voltages or as the already divided
measurement matrix M (the ``_m`` variants). Each accepted standard
becomes a :class:`~vnacal.calibration.measurement.Measurement` and adds
equations to the session's systems. A standard is added completely or
not at all.

Example
-------

>>> import numpy as npy
>>> from vnacal.calibration import NewCalibration, ParameterCollection
>>> cal = NewCalibration('T8', 2, 2, frequencies=3)
>>> cal.set_frequency_vector([1e9, 2e9, 3e9])
>>> m = npy.ones((3, 1, 1))
>>> cal.add_single_reflect_m(m, ParameterCollection.SHORT, port=1)
<Measurement single_reflect: 1 equations>

.. autosummary::
   :toctree: generated/

   NewCalibration
'''
from __future__ import annotations

import logging
import warnings
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as npy
import pandas as pd

from ..constants import (DEFAULT_ITERATION_LIMIT, DEFAULT_P_TOLERANCE,
                         DEFAULT_PVALUE_LIMIT, DEFAULT_Z0, F_EXTRAPOLATION,
                         MTypeT, NumberLike)
from ..errors import (CalibrationWarning, ErrorFunction, ErrorKind, InternalError,
                      report_error)
from ..frequency import Frequency
from ..mathFunctions import is_singular, mrdivide, spline_calc, spline_eval
from .connectivity import reachability_matrix
from .layout import CalType, Layout
from .measurement import Equation, Measurement, NewParameter, System, Term
from .parameter import Parameter, ParameterCollection

logger = logging.getLogger(__name__)


class NewCalibration(object):
    '''
    A calibration in the making.

    Parameters
    ----------
    cal_type : :class:`~vnacal.calibration.layout.CalType` or str
        error term type, e.g. 'TE10'
    m_rows : int
        number of VNA ports that detect signal
    m_columns : int
        number of VNA ports that generate signal
    frequencies : int
        number of frequency points
    parameters : :class:`~vnacal.calibration.parameter.ParameterCollection`, optional
        where the standards' parameter handles are looked up. A new
        collection is made if not given.
    error_fn : callable, optional
        called as ``error_fn(message, kind)`` before an error is raised
    name : str, optional

    Attributes
    ----------
    layout : :class:`~vnacal.calibration.layout.Layout`
        error term layout; E12 is handled as E12_UE14
    systems : list of :class:`~vnacal.calibration.measurement.System`
    measurements : list of :class:`~vnacal.calibration.measurement.Measurement`
    unknown_parameters : list of :class:`~vnacal.calibration.measurement.NewParameter`
        unknown and correlated parameters in order of first use
    equation_count : int
        total number of equations
    max_equations : int
        number of equations in the largest system
    '''
    def __init__(self, cal_type, m_rows: int, m_columns: int, frequencies: int,
                 parameters: Optional[ParameterCollection] = None,
                 error_fn: Optional[ErrorFunction] = None,
                 name: Optional[str] = None):
        function = 'NewCalibration'
        self.error_fn = error_fn
        self.name = name
        try:
            self.type = CalType.from_name(cal_type)
        except ValueError as error:
            self._fail(function, str(error))
        if m_rows < 1 or m_columns < 1:
            self._fail(function, 'calibration matrix must be at least 1x1')
        if frequencies < 0:
            self._fail(function, 'frequencies cannot be negative')
        if self.type.is_t and m_rows > m_columns:
            self._fail(function, 'U parameters must be used when m_rows > m_columns')
        if self.type.is_u and m_rows < m_columns:
            self._fail(function, 'T parameters must be used when m_rows < m_columns')

        layout_type = CalType.E12_UE14 if self.type == CalType.E12 else self.type
        try:
            self.layout = Layout(layout_type, m_rows, m_columns)
        except MemoryError:
            self._fail(function, 'out of memory', ErrorKind.SYSTEM)
        self.frequencies = frequencies
        self.parameters = parameters if parameters is not None else ParameterCollection()

        self._frequency: Optional[Frequency] = None
        self.z0 = DEFAULT_Z0
        self.p_tolerance = DEFAULT_P_TOLERANCE
        self.iteration_limit = DEFAULT_ITERATION_LIMIT
        self.pvalue_limit = DEFAULT_PVALUE_LIMIT
        self.m_error_noise: Optional[npy.ndarray] = None
        self.m_error_tracking: Optional[npy.ndarray] = None

        self._new_parameters: Dict[int, NewParameter] = {}
        self.unknown_parameters: List[NewParameter] = []
        self.correlated_parameters = 0
        self.systems = [System(i) for i in range(self.layout.systems)]
        self.measurements: List[Measurement] = []
        self.equation_count = 0
        self.max_equations = 0

        staged: Dict[int, NewParameter] = {}
        self.zero = self._get_parameter(function, ParameterCollection.ZERO, staged)
        self._commit_parameters(staged)

        logger.info('new %s calibration %dx%d, %d frequencies',
                    self.type, m_rows, m_columns, frequencies)

    def __str__(self) -> str:
        output = '{} calibration {}x{}, {} frequencies'.format(
            self.type, self.layout.m_rows, self.layout.m_columns, self.frequencies)
        if self.name:
            output = '{}: {}'.format(self.name, output)
        output += ', {} standards, {} equations'.format(
            len(self.measurements), self.equation_count)
        if self.layout.system_terms is not None:
            needed = self.layout.system_terms + len(self.unknown_parameters)
            if self.max_equations < needed:
                output += ' (underdetermined: {} of {})'.format(
                    self.max_equations, needed)
        return output

    def __repr__(self) -> str:
        return '<NewCalibration {}>'.format(self)

    def _fail(self, function: str, message: str,
              kind: ErrorKind = ErrorKind.USAGE) -> None:
        report_error(kind, '{}: {}'.format(function, message), self.error_fn)

    ## configuration
    @property
    def frequency(self) -> Optional[Frequency]:
        '''
        Frequency grid of the calibration, or None if not yet set.
        '''
        return self._frequency

    @property
    def frequency_vector(self) -> Optional[npy.ndarray]:
        return None if self._frequency is None else self._frequency.f

    def set_frequency_vector(self, frequency_vector) -> None:
        '''
        Set the frequency points of the calibration.

        Parameters
        ----------
        frequency_vector : array-like or :class:`~vnacal.frequency.Frequency`
            `frequencies` strictly ascending, non-negative frequencies in Hz

        Raises
        ------
        UsageError
            if the vector is invalid, or a parameter already used by a
            standard doesn't cover the new frequency range
        '''
        function = 'set_frequency_vector'
        if frequency_vector is None:
            self._fail(function, 'frequency_vector cannot be None')
        try:
            freq = Frequency.from_f(frequency_vector)
        except ValueError as error:
            self._fail(function, str(error))
        if freq.npoints != self.frequencies:
            self._fail(function, 'frequency_vector must have {} entries'.format(
                self.frequencies))
        for new_parameter in self._new_parameters.values():
            self._check_frequency_range(function, new_parameter.parameter, freq)
        self._frequency = freq

    def set_z0(self, z0: complex) -> None:
        '''
        Set the reference impedance of all VNA ports, default 50 ohm.
        '''
        self.z0 = z0

    def set_p_tolerance(self, tolerance: float) -> None:
        '''
        Set the convergence tolerance for the unknown parameters.
        '''
        if tolerance < 0.0:
            self._fail('set_p_tolerance', 'tolerance cannot be negative')
        self.p_tolerance = tolerance

    def set_iteration_limit(self, iterations: int) -> None:
        if iterations < 1:
            self._fail('set_iteration_limit', 'iterations must be at least 1')
        self.iteration_limit = iterations

    def set_pvalue_limit(self, significance: float) -> None:
        '''
        Set the significance level at which the measurement error model
        is rejected.
        '''
        if not 0.0 < significance <= 1.0:
            self._fail('set_pvalue_limit', 'significance must be between 0 and 1')
        self.pvalue_limit = significance

    def set_m_error(self, frequency_vector: Optional[NumberLike],
                    noise: Optional[NumberLike],
                    tracking: Optional[NumberLike] = None) -> None:
        '''
        Set the standard deviation of the measurement error.

        The error of a measured value m is modelled as noise plus
        tracking error proportional to the magnitude of m.

        Parameters
        ----------
        frequency_vector : array-like or None
            frequencies at which `noise` and `tracking` are given. If
            None, the values must be a single value, used at every
            frequency, or one value per calibration frequency.
            Otherwise the values are interpolated onto the calibration
            frequencies with a natural cubic spline.
        noise : number, array-like or None
            noise floor; must be positive. May be None only to keep the
            previously set noise.
        tracking : number, array-like or None
            tracking error; must be non-negative. None keeps the
            previously set value, initially zero.
        '''
        function = 'set_m_error'
        if noise is None and self.m_error_noise is None:
            self._fail(function, 'noise must be given')
        given = [npy.array(v, dtype=float, ndmin=1)
                 if v is not None else None for v in (noise, tracking)]
        knots = None
        if frequency_vector is not None:
            try:
                knots = Frequency(frequency_vector)
            except ValueError as error:
                self._fail(function, str(error))
            count = knots.npoints
        elif any(v is not None for v in given):
            count = max(len(v) for v in given if v is not None)
        else:
            count = 0
        if count < 1:
            self._fail(function, 'frequencies must be at least 1')
        for v in given:
            if v is not None and len(v) not in (1, count):
                self._fail(function, 'noise and tracking must have {} entries'.format(count))
        noise, tracking = given
        if noise is not None and npy.any(noise <= 0.0):
            self._fail(function, 'noise error values must be positive')
        if tracking is not None and npy.any(tracking < 0.0):
            self._fail(function, 'tracking error values must be non-negative')
        if self._frequency is None:
            self._fail(function, 'set_frequency_vector must be called first')
        f = self._frequency.f

        if knots is not None:
            if not self._frequency.covered_by((knots.start, knots.stop)):
                self._fail(function, 'frequency range {:.3e}..{:.3e} is outside of '
                           'calibration range {:.3e}..{:.3e}'.format(
                               knots.start, knots.stop, f[0], f[-1]))
        elif count != 1 and count != self.frequencies:
            self._fail(function, 'frequency_vector is required when the number '
                       'of values differs from the calibration frequencies')

        def fit(values: npy.ndarray) -> npy.ndarray:
            if count == 1 or len(values) == 1:
                return npy.full(self.frequencies, values[0])
            if knots is None:
                return values.copy()
            try:
                c = spline_calc(knots.f, values)
            except ValueError as error:
                self._fail(function, str(error))
            return npy.asarray(spline_eval(knots.f, values, c, f), dtype=float)

        if self.m_error_tracking is None:
            self.m_error_tracking = npy.zeros(self.frequencies)
        if noise is not None:
            self.m_error_noise = fit(noise)
        if tracking is not None:
            self.m_error_tracking = fit(tracking)

    ## parameters
    def _check_frequency_range(self, function: str, parameter: Parameter,
                               freq: Frequency) -> None:
        pfmin, pfmax = parameter.frequency_range
        if not freq.covered_by((pfmin, pfmax), F_EXTRAPOLATION):
            self._fail(function, 'frequency range {:.3e}..{:.3e} of parameter {} '
                       'is outside of calibration range {:.3e}..{:.3e}'.format(
                           pfmin, pfmax, parameter.index, freq.start, freq.stop))

    def _register(self, function: str, parameter: Parameter,
                  staged: Dict[int, NewParameter]) -> NewParameter:
        found = self._new_parameters.get(parameter.index, staged.get(parameter.index))
        if found is not None:
            return found
        if self._frequency is not None:
            self._check_frequency_range(function, parameter, self._frequency)
        correlate = None
        if parameter.kind == 'correlated':
            correlate = self._register(function, parameter.other, staged)
        new_parameter = NewParameter(parameter, parameter.index, correlate)
        if new_parameter.unknown:
            new_parameter.unknown_index = len(self.unknown_parameters) + \
                sum(1 for p in staged.values() if p.unknown)
        staged[parameter.index] = new_parameter
        return new_parameter

    def _get_parameter(self, function: str, handle: int,
                       staged: Dict[int, NewParameter]) -> NewParameter:
        try:
            parameter = self.parameters.get(handle)
        except ValueError:
            self._fail(function, 'invalid parameter index {}'.format(handle))
        return self._register(function, parameter, staged)

    def _commit_parameters(self, staged: Dict[int, NewParameter]) -> None:
        for handle, new_parameter in staged.items():
            self._new_parameters[handle] = new_parameter
            if new_parameter.unknown:
                self.unknown_parameters.append(new_parameter)
                if new_parameter.parameter.kind == 'correlated':
                    self.correlated_parameters += 1
        self.unknown_parameters.sort(key=lambda p: p.unknown_index)

    def get_new_parameter(self, handle: int) -> Optional[NewParameter]:
        '''
        The calibration's record of a parameter, or None if no standard
        uses it.
        '''
        return self._new_parameters.get(handle)

    ## equation builder
    def add_term(self, equation: Equation, coefficient: int, negative: bool,
                 m_cell: Optional[int] = None, s_cell: Optional[int] = None) -> Term:
        '''
        Append a term to an equation.

        Parameters
        ----------
        equation : :class:`~vnacal.calibration.measurement.Equation`
        coefficient : int
            index of the unknown coefficient in the equation's system,
            or -1 for the coefficient fixed to 1
        negative : bool
        m_cell, s_cell : int or None
            cells of the measurement's M and S matrices in the product
        '''
        if m_cell is not None and equation.measurement.m_matrix[m_cell] is None:
            raise InternalError('equation ({}, {}) uses unmeasured m cell {}'.format(
                equation.row, equation.column, m_cell))
        term = Term(coefficient, negative, m_cell, s_cell)
        equation.terms.append(term)
        return term

    def _s_nonzero(self, measurement: Measurement, s_cell: int) -> bool:
        new_parameter = measurement.s_matrix[s_cell]
        if new_parameter is None:
            raise InternalError('equation uses unknown s cell {}'.format(s_cell))
        return new_parameter is not self.zero

    def add_equation(self, measurement: Measurement, eq_row: int,
                     eq_column: int) -> Equation:
        '''
        Build the equation for one cell of the equation matrix.

        T-form types give ``Ts S + Ti = M Tx S + M Tm`` in M rows x S
        columns; U-form types give ``Um M + Ui = S Ux M + S Us`` in S
        rows x M columns.
        '''
        equation = Equation(measurement, eq_row, eq_column)
        _EQUATION_BUILDERS[self.layout.type](self, equation)
        return equation

    def _as_array(self, function: str, name: str, matrix: Any,
                  diagonal: bool = False) -> npy.ndarray:
        '''
        Normalize measured data to (frequencies, rows, columns), or to
        (frequencies, n) for a diagonal.

        ndarrays are taken as frequency-first like
        :attr:`skrf.network.Network.s`; nested lists as rows x columns
        of per-frequency vectors.
        '''
        try:
            array = npy.asarray(matrix, dtype=complex)
        except (TypeError, ValueError):
            self._fail(function, 'invalid {} matrix'.format(name))
        ndim = 2 if diagonal else 3
        if array.ndim != ndim:
            self._fail(function, '{} matrix must have {} dimensions'.format(name, ndim))
        if not isinstance(matrix, npy.ndarray):
            array = npy.moveaxis(array, -1, 0)
        if array.shape[0] != self.frequencies:
            self._fail(function, '{} matrix must have {} frequencies'.format(
                name, self.frequencies))
        return array

    def add_common(self, function: str, a: Any, b: Any, s: Any,
                   s_port_map: Optional[Sequence[int]] = None,
                   m_is_diagonal: bool = False, s_is_diagonal: bool = False,
                   m_type: MTypeT = 'a', name: Optional[str] = None) -> Measurement:
        '''
        Validate a measured standard, generate its equations and add it.

        Parameters
        ----------
        function : str
            name of the calling operation, used in error messages
        a : array-like or None
            incident voltages, `b_columns` x `b_columns` (1 x `b_columns`
            for UE14); None if `b` already is the measurement matrix M
        b : array-like
            reflected voltages, or M
        s : 2D sequence of int, or sequence of int if `s_is_diagonal`
            parameter handles of the standard's S matrix
        s_port_map : sequence of int, optional
            1-based VNA port of each port of the standard; required if
            `s` is smaller than the calibration's S matrix
        m_is_diagonal : bool
            `b` holds only the diagonal, shaped (frequencies, n)
        s_is_diagonal : bool
            `s` holds only the diagonal; other cells between connected
            ports are zero
        m_type : {'a', 'm'}
            which form the caller used; selects names in error messages
        name : str, optional
            name of the measurement

        Returns
        -------
        measurement : :class:`~vnacal.calibration.measurement.Measurement`

        Raises
        ------
        UsageError
            if the arguments are inconsistent
        MathError
            if `a` is singular at some frequency
        '''
        try:
            return self._add_common(function, a, b, s, s_port_map, m_is_diagonal,
                                    s_is_diagonal, m_type, name)
        except MemoryError:
            self._fail(function, 'out of memory', ErrorKind.SYSTEM)

    def _add_common(self, function, a, b, s, s_port_map, m_is_diagonal,
                    s_is_diagonal, m_type, name) -> Measurement:
        layout = self.layout
        cal_type = layout.type
        full_m_rows, full_m_columns = layout.m_rows, layout.m_columns
        full_s_rows, full_s_columns = layout.s_rows, layout.s_columns
        b_name = 'm' if m_type == 'm' else 'b'

        if b is None:
            self._fail(function, 'NULL {} matrix'.format(b_name))
        if s is None:
            self._fail(function, 'NULL s matrix')

        # shape of S
        if s_is_diagonal:
            s_cells_given = list(s)
            s_rows = s_columns = len(s_cells_given)
        else:
            s_list = [list(row) for row in s]
            s_rows = len(s_list)
            s_columns = len(s_list[0]) if s_rows else 0
            if any(len(row) != s_columns for row in s_list):
                self._fail(function, 's matrix must be rectangular')
            s_cells_given = [h for row in s_list for h in row]
        s_ports = max(s_rows, s_columns)

        # shape of B
        b_array = self._as_array(function, b_name, b, diagonal=m_is_diagonal)
        if m_is_diagonal:
            b_rows = b_columns = b_array.shape[1]
        else:
            b_rows, b_columns = b_array.shape[1:]

        if cal_type in (CalType.T8, CalType.TE10):
            ptype = 'T'
            min_b_rows, min_b_columns = s_ports, s_ports
        elif cal_type == CalType.T16:
            ptype = 'T'
            min_b_rows, min_b_columns = s_rows, full_m_columns
        elif cal_type == CalType.U16:
            ptype = 'U'
            min_b_rows, min_b_columns = full_m_rows, s_columns
        else:
            ptype = 'U'
            min_b_rows, min_b_columns = s_ports, s_ports

        if s_rows < 1 or s_rows > full_s_rows:
            self._fail(function, 'invalid s_rows value: {}'.format(s_rows))
        if s_columns < 1 or s_columns > full_s_columns:
            self._fail(function, 'invalid s_columns value: {}'.format(s_columns))
        if ptype == 'T' and s_rows < s_columns and s_rows != full_s_rows:
            self._fail(function, 's_rows cannot be less than {}'.format(
                min(s_columns, full_s_rows)))
        if ptype == 'U' and s_rows > s_columns and s_columns != full_s_columns:
            self._fail(function, 's_columns cannot be less than {}'.format(
                min(s_rows, full_s_columns)))
        if s_is_diagonal and s_rows != s_columns:
            raise InternalError('diagonal s matrix must be square')
        if s_port_map is None and (s_rows != full_s_rows or s_columns != full_s_columns):
            self._fail(function, 'port map is required when the given S matrix '
                       'is smaller than that of the calibration')

        for what, given, minimum, full in (('rows', b_rows, min_b_rows, full_m_rows),
                                           ('columns', b_columns, min_b_columns,
                                            full_m_columns)):
            allowed = sorted({n for n in (minimum, full) if n <= full})
            if given not in allowed:
                self._fail(function, '{}_{} must be {}'.format(
                    b_name, what, ' or '.join(str(n) for n in allowed)))

        a_array = None
        if a is not None:
            a_array = self._as_array(function, 'a', a)
            rows = 1 if cal_type.is_ue14 else b_columns
            if a_array.shape[1:] != (rows, b_columns):
                self._fail(function, "'a' matrix must be {} x {}".format(rows, b_columns))
            if m_is_diagonal and not cal_type.is_ue14:
                self._fail(function, "'a' matrix cannot be used with a diagonal {} "
                           "matrix".format(b_name))

        # port map
        if s_port_map is not None:
            s_port_map = [int(port) for port in s_port_map]
            if len(s_port_map) != s_ports:
                self._fail(function, 'port map must have {} entries'.format(s_ports))
            port_connected = [False] * layout.ports
            for index, port in enumerate(s_port_map):
                if port < 1:
                    self._fail(function, '{}: invalid port index'.format(port))
                if index < s_rows and port > full_s_rows:
                    self._fail(function, 'port index {} exceeds calibration matrix '
                               'row bound'.format(port))
                if index < s_columns and port > full_s_columns:
                    self._fail(function, 'port index {} exceeds calibration matrix '
                               'column bound'.format(port))
                if port_connected[port - 1]:
                    self._fail(function, 'port index {} appears more than '
                               'once'.format(port))
                port_connected[port - 1] = True
                # ports map straight onto M rows (columns) of a partial B
                if b_rows < full_m_rows and port > full_m_rows:
                    self._fail(function, 'port {} has no detector; {}_rows must '
                               'be {}'.format(port, b_name, full_m_rows))
                if b_columns < full_m_columns and port > full_m_columns:
                    self._fail(function, 'port {} has no driver; {}_columns must '
                               'be {}'.format(port, b_name, full_m_columns))
        else:
            port_connected = [True] * layout.ports

        # cell maps
        m_cell_map, m_row_given, m_column_given = self._m_cell_map(
            b_rows, b_columns, m_is_diagonal, s_port_map)
        s_cell_map, s_row_given, s_column_given = self._s_cell_map(
            s_rows, s_columns, s_is_diagonal, s_port_map)

        measurement = Measurement(layout, self.frequencies, name=name or function)

        # M
        b_flat = b_array if m_is_diagonal else b_array.reshape(self.frequencies, -1)
        if a_array is None:
            for b_cell, full_cell in enumerate(m_cell_map):
                measurement.m_matrix[full_cell] = b_flat[:, b_cell].copy()
        elif cal_type.is_ue14:
            a_row = a_array[:, 0, :]
            singular = npy.flatnonzero((a_row == 0.0).any(axis=1))
            if len(singular):
                self._fail(function, "'a' matrix is singular at frequency index "
                           "{}".format(singular[0]), ErrorKind.MATH)
            if m_is_diagonal:
                m_flat = b_flat / a_row[:, :b_columns]
            else:
                m_flat = (b_array / a_row[:, npy.newaxis, :]).reshape(self.frequencies, -1)
            for b_cell, full_cell in enumerate(m_cell_map):
                measurement.m_matrix[full_cell] = m_flat[:, b_cell]
        else:
            m_array = npy.empty((self.frequencies, b_rows, b_columns), dtype=complex)
            for findex in range(self.frequencies):
                m_array[findex], det = mrdivide(b_array[findex], a_array[findex])
                if is_singular(det, a_array[findex]):
                    self._fail(function, "'a' matrix is singular at frequency "
                               "index {}".format(findex), ErrorKind.MATH)
            m_flat = m_array.reshape(self.frequencies, -1)
            for b_cell, full_cell in enumerate(m_cell_map):
                measurement.m_matrix[full_cell] = m_flat[:, b_cell]

        # S
        staged: Dict[int, NewParameter] = {}
        for s_cell, full_cell in enumerate(s_cell_map):
            measurement.s_matrix[full_cell] = self._get_parameter(
                function, s_cells_given[s_cell], staged)
        for r in range(full_s_rows):
            for c in range(full_s_columns):
                cell = r * full_s_columns + c
                if s_is_diagonal and r != c and port_connected[r] and port_connected[c]:
                    measurement.s_matrix[cell] = self.zero
                elif s_port_map is not None and port_connected[r] != port_connected[c]:
                    measurement.s_matrix[cell] = self.zero

        if cal_type.leakage_in_system:
            if any(p is None for p in measurement.s_matrix):
                suggestion = 'TE10' if cal_type == CalType.T16 else 'UE10 or UE14'
                self._fail(function, 'need full S: {} error terms require every S '
                           'parameter of the standard; use add_matrix or '
                           'add_mapped_matrix with a full S matrix, or use {} error '
                           'terms'.format(cal_type, suggestion))
        else:
            measurement.reachability = reachability_matrix(
                [measurement.s_matrix[r * full_s_columns:(r + 1) * full_s_columns]
                 for r in range(full_s_rows)], self.zero)

        # equations
        if cal_type.is_ue14:
            cells = [(r, c) for c in range(full_m_columns) for r in range(full_s_rows)
                     if s_row_given[r] and m_column_given[c]]
        elif ptype == 'T':
            cells = [(r, c) for r in range(full_m_rows) for c in range(full_s_columns)
                     if m_row_given[r] and s_column_given[c]]
        else:
            cells = [(r, c) for r in range(full_s_rows) for c in range(full_m_columns)
                     if s_row_given[r] and m_column_given[c]]
        for eq_row, eq_column in cells:
            if measurement.reachability is not None and eq_row != eq_column and \
                    not measurement.reachability[eq_row, eq_column]:
                if cal_type.has_leakage_terms and eq_row < full_m_rows and \
                        eq_column < full_m_columns and \
                        measurement.get_m(eq_row, eq_column) is not None:
                    measurement.leakage_cells.append((eq_row, eq_column))
                continue
            measurement.equations.append(self.add_equation(measurement, eq_row, eq_column))
        if not measurement.equations:
            warnings.warn('{}: standard gives no equations; none of its measured '
                          'cells has a signal path through it'.format(function),
                          CalibrationWarning, stacklevel=4)

        # commit
        self._commit_parameters(staged)
        for equation in measurement.equations:
            system = self.systems[equation.system]
            system.equations.append(equation)
            self.max_equations = max(self.max_equations, len(system.equations))
        self.equation_count += len(measurement.equations)
        self.measurements.append(measurement)

        logger.debug('%s: %s', function, measurement)
        if logger.isEnabledFor(logging.DEBUG):
            for equation in measurement.equations:
                logger.debug('  (%d, %d): %s', equation.row + 1,
                             equation.column + 1, equation)
        return measurement

    def _m_cell_map(self, b_rows: int, b_columns: int, m_is_diagonal: bool,
                    s_port_map: Optional[List[int]]) -> Tuple[List[int], List[bool], List[bool]]:
        full_m_rows, full_m_columns = self.layout.m_rows, self.layout.m_columns
        m_row_given = [False] * full_m_rows
        m_column_given = [False] * full_m_columns
        cell_map = []
        # rows and columns of M keep their relative order
        m_port_map = sorted(s_port_map) if s_port_map is not None else None

        def full_row(i):
            return m_port_map[i] - 1 if m_port_map and b_rows < full_m_rows else i

        def full_column(j):
            return m_port_map[j] - 1 if m_port_map and b_columns < full_m_columns else j

        if m_is_diagonal:
            for d in range(min(b_rows, b_columns)):
                r, c = full_row(d), full_column(d)
                cell_map.append(r * full_m_columns + c)
                m_row_given[r] = m_column_given[c] = True
        else:
            for i in range(b_rows):
                r = full_row(i)
                m_row_given[r] = True
                for j in range(b_columns):
                    c = full_column(j)
                    cell_map.append(r * full_m_columns + c)
                    m_column_given[c] = True
        return cell_map, m_row_given, m_column_given

    def _s_cell_map(self, s_rows: int, s_columns: int, s_is_diagonal: bool,
                    s_port_map: Optional[List[int]]) -> Tuple[List[int], List[bool], List[bool]]:
        full_s_rows, full_s_columns = self.layout.s_rows, self.layout.s_columns
        s_row_given = [False] * full_s_rows
        s_column_given = [False] * full_s_columns
        cell_map = []

        def full_port(i):
            return s_port_map[i] - 1 if s_port_map is not None else i

        if s_is_diagonal:
            for d in range(min(s_rows, s_columns)):
                p = full_port(d)
                cell_map.append(p * (full_s_columns + 1))
                s_row_given[p] = s_column_given[p] = True
        else:
            for i in range(s_rows):
                r = full_port(i)
                s_row_given[r] = True
                for j in range(s_columns):
                    c = full_port(j)
                    cell_map.append(r * full_s_columns + c)
                    s_column_given[c] = True
        return cell_map, s_row_given, s_column_given

    ## standards
    def add_single_reflect(self, a, b, s11: int, port: int) -> Measurement:
        '''
        Add a reflect standard on a single port.

        Parameters
        ----------
        a, b : array-like
            incident and reflected voltages; `a` may be None
        s11 : int
            parameter handle of the reflection coefficient, e.g.
            :attr:`ParameterCollection.SHORT`
        port : int
            1-based VNA port
        '''
        return self.add_common('add_single_reflect', a, b, [s11], [port],
                               s_is_diagonal=True, m_type='a',
                               name='single_reflect')

    def add_single_reflect_m(self, m, s11: int, port: int) -> Measurement:
        return self.add_common('add_single_reflect_m', None, m, [s11], [port],
                               s_is_diagonal=True, m_type='m',
                               name='single_reflect')

    def add_double_reflect(self, a, b, s11: int, s22: int,
                           port1: int, port2: int) -> Measurement:
        '''
        Add a pair of reflect standards measured at the same time on two
        ports with no path between them.
        '''
        return self.add_common('add_double_reflect', a, b, [s11, s22],
                               [port1, port2], s_is_diagonal=True, m_type='a',
                               name='double_reflect')

    def add_double_reflect_m(self, m, s11: int, s22: int,
                             port1: int, port2: int) -> Measurement:
        return self.add_common('add_double_reflect_m', None, m, [s11, s22],
                               [port1, port2], s_is_diagonal=True, m_type='m',
                               name='double_reflect')

    def add_line(self, a, b, s_2x2: Sequence[Sequence[int]],
                 port1: int, port2: int) -> Measurement:
        '''
        Add a two-port standard between two VNA ports.

        Parameters
        ----------
        s_2x2 : 2x2 sequence of int
            parameter handles of the standard's S matrix
        '''
        return self.add_common('add_line', a, b, s_2x2, [port1, port2],
                               m_type='a', name='line')

    def add_line_m(self, m, s_2x2: Sequence[Sequence[int]],
                   port1: int, port2: int) -> Measurement:
        return self.add_common('add_line_m', None, m, s_2x2, [port1, port2],
                               m_type='m', name='line')

    def add_through(self, a, b, port1: int, port2: int) -> Measurement:
        '''
        Add a perfect through between two VNA ports.
        '''
        return self.add_common('add_through', a, b, _THROUGH, [port1, port2],
                               m_type='a', name='through')

    def add_through_m(self, m, port1: int, port2: int) -> Measurement:
        return self.add_common('add_through_m', None, m, _THROUGH, [port1, port2],
                               m_type='m', name='through')

    def add_mapped_matrix(self, a, b, s: Sequence[Sequence[int]],
                          port_map: Sequence[int]) -> Measurement:
        '''
        Add a standard with an arbitrary S matrix connected to the VNA
        ports named in `port_map`.
        '''
        return self.add_common('add_mapped_matrix', a, b, s, port_map,
                               m_type='a', name='mapped_matrix')

    def add_mapped_matrix_m(self, m, s: Sequence[Sequence[int]],
                            port_map: Sequence[int]) -> Measurement:
        return self.add_common('add_mapped_matrix_m', None, m, s, port_map,
                               m_type='m', name='mapped_matrix')

    def add_matrix(self, a, b, s: Sequence[Sequence[int]]) -> Measurement:
        '''
        Add a standard connected to all VNA ports; `s` is the full S matrix.
        '''
        return self.add_common('add_matrix', a, b, s, None, m_type='a',
                               name='matrix')

    def add_matrix_m(self, m, s: Sequence[Sequence[int]]) -> Measurement:
        return self.add_common('add_matrix_m', None, m, s, None, m_type='m',
                               name='matrix')

    ## inspection
    def equations_dataframe(self) -> pd.DataFrame:
        '''
        All equations as a :class:`pandas.DataFrame`, one row each.

        Columns are the system, the measurement's index and name, the
        1-based equation row and column, the number of terms and the
        rendered equation.
        '''
        index = {id(m): i for i, m in enumerate(self.measurements)}
        records = []
        for system in self.systems:
            for equation in system.equations:
                records.append({
                    'system': system.index,
                    'measurement': index[id(equation.measurement)],
                    'name': equation.measurement.name,
                    'row': equation.row + 1,
                    'column': equation.column + 1,
                    'terms': len(equation.terms),
                    'equation': str(equation),
                    })
        columns = ['system', 'measurement', 'name', 'row', 'column', 'terms',
                   'equation']
        return pd.DataFrame.from_records(records, columns=columns)


_THROUGH = [[ParameterCollection.MATCH, ParameterCollection.ONE],
            [ParameterCollection.ONE, ParameterCollection.MATCH]]


def _terms_t8(cal: NewCalibration, equation: Equation) -> None:
    layout, measurement = cal.layout, equation.measurement
    m_columns, s_columns = layout.m_columns, layout.s_columns
    eq_row, eq_column = equation.row, equation.column
    ts_diagonals = min(layout.m_rows, layout.s_rows)
    ti_diagonals = min(layout.m_rows, s_columns)
    tx_diagonals = min(m_columns, layout.s_rows)
    tm_diagonals = min(m_columns, s_columns)
    base = 0

    if eq_row < ts_diagonals:
        s_cell = eq_row * s_columns + eq_column
        if cal._s_nonzero(measurement, s_cell):
            cal.add_term(equation, base + eq_row, False, s_cell=s_cell)
    base += ts_diagonals

    if eq_row < ti_diagonals and eq_row == eq_column:
        cal.add_term(equation, base + eq_row, False)
    base += ti_diagonals

    for d in range(tx_diagonals):
        s_cell = d * s_columns + eq_column
        if cal._s_nonzero(measurement, s_cell):
            cal.add_term(equation, base + d, True, eq_row * m_columns + d, s_cell)
    base += tx_diagonals

    if eq_column < tm_diagonals:
        m_cell = eq_row * m_columns + eq_column
        if eq_column == 0:
            # tm11 = 1
            cal.add_term(equation, -1, False, m_cell)
        else:
            cal.add_term(equation, base + eq_column - 1, True, m_cell)


def _terms_u8(cal: NewCalibration, equation: Equation) -> None:
    layout, measurement = cal.layout, equation.measurement
    m_columns, s_columns = layout.m_columns, layout.s_columns
    eq_row, eq_column = equation.row, equation.column
    um_diagonals = min(layout.s_rows, layout.m_rows)
    ui_diagonals = min(layout.s_rows, m_columns)
    ux_diagonals = min(s_columns, layout.m_rows)
    us_diagonals = min(s_columns, m_columns)
    base = 0

    if eq_row < um_diagonals:
        m_cell = eq_row * m_columns + eq_column
        if eq_row == 0:
            # um11 = 1
            cal.add_term(equation, -1, True, m_cell)
        else:
            cal.add_term(equation, base + eq_row - 1, False, m_cell)
    base += um_diagonals - 1

    if eq_row < ui_diagonals and eq_row == eq_column:
        cal.add_term(equation, base + eq_row, False)
    base += ui_diagonals

    for d in range(ux_diagonals):
        s_cell = eq_row * s_columns + d
        if cal._s_nonzero(measurement, s_cell):
            cal.add_term(equation, base + d, True, d * m_columns + eq_column, s_cell)
    base += ux_diagonals

    if eq_column < us_diagonals:
        s_cell = eq_row * s_columns + eq_column
        if cal._s_nonzero(measurement, s_cell):
            cal.add_term(equation, base + eq_column, True, s_cell=s_cell)


def _terms_t16(cal: NewCalibration, equation: Equation) -> None:
    layout, measurement = cal.layout, equation.measurement
    m_rows, m_columns = layout.m_rows, layout.m_columns
    s_rows, s_columns = layout.s_rows, layout.s_columns
    eq_row, eq_column = equation.row, equation.column
    base = 0

    # Ts: m_rows x s_rows
    for ts_column in range(s_rows):
        s_cell = ts_column * s_columns + eq_column
        if cal._s_nonzero(measurement, s_cell):
            cal.add_term(equation, base + eq_row * s_rows + ts_column, False,
                         s_cell=s_cell)
    base += m_rows * s_rows

    # Ti: m_rows x s_columns
    cal.add_term(equation, base + eq_row * s_columns + eq_column, False)
    base += m_rows * s_columns

    # Tx: m_columns x s_rows
    for tx_row in range(m_columns):
        for tx_column in range(s_rows):
            s_cell = tx_column * s_columns + eq_column
            if cal._s_nonzero(measurement, s_cell):
                cal.add_term(equation, base + tx_row * s_rows + tx_column, True,
                             eq_row * m_columns + tx_row, s_cell)
    base += m_columns * s_rows

    # Tm: m_columns x s_columns
    for tm_row in range(m_columns):
        tm_cell = tm_row * s_columns + eq_column
        m_cell = eq_row * m_columns + tm_row
        if tm_cell == 0:
            cal.add_term(equation, -1, False, m_cell)
        else:
            cal.add_term(equation, base + tm_cell - 1, True, m_cell)


def _terms_u16(cal: NewCalibration, equation: Equation) -> None:
    layout, measurement = cal.layout, equation.measurement
    m_rows, m_columns = layout.m_rows, layout.m_columns
    s_rows, s_columns = layout.s_rows, layout.s_columns
    eq_row, eq_column = equation.row, equation.column
    base = 0

    # Um: s_rows x m_rows
    for um_column in range(m_rows):
        um_cell = eq_row * m_rows + um_column
        m_cell = um_column * m_columns + eq_column
        if um_cell == 0:
            cal.add_term(equation, -1, True, m_cell)
        else:
            cal.add_term(equation, base + um_cell - 1, False, m_cell)
    base += s_rows * m_rows - 1

    # Ui: s_rows x m_columns
    cal.add_term(equation, base + eq_row * m_columns + eq_column, False)
    base += s_rows * m_columns

    # Ux: s_columns x m_rows
    for ux_row in range(s_columns):
        for ux_column in range(m_rows):
            s_cell = eq_row * s_columns + ux_row
            if cal._s_nonzero(measurement, s_cell):
                cal.add_term(equation, base + ux_row * m_rows + ux_column, True,
                             ux_column * m_columns + eq_column, s_cell)
    base += s_columns * m_rows

    # Us: s_columns x m_columns
    for us_row in range(s_columns):
        s_cell = eq_row * s_columns + us_row
        if cal._s_nonzero(measurement, s_cell):
            cal.add_term(equation, base + us_row * m_columns + eq_column, True,
                         s_cell=s_cell)


def _terms_ue14(cal: NewCalibration, equation: Equation) -> None:
    layout, measurement = cal.layout, equation.measurement
    m_columns, s_columns = layout.m_columns, layout.s_columns
    eq_row, eq_column = equation.row, equation.column
    um_diagonals = min(layout.s_rows, layout.m_rows)
    ux_diagonals = min(s_columns, layout.m_rows)
    base = 0

    if eq_row < um_diagonals:
        m_cell = eq_row * m_columns + eq_column
        if eq_row == eq_column:
            cal.add_term(equation, -1, True, m_cell)
        else:
            cal.add_term(equation, base + eq_row - (eq_row > eq_column), False, m_cell)
    base += um_diagonals - 1

    if eq_row == eq_column:
        cal.add_term(equation, base, False)
    base += 1

    for d in range(ux_diagonals):
        s_cell = eq_row * s_columns + d
        if cal._s_nonzero(measurement, s_cell):
            cal.add_term(equation, base + d, True, d * m_columns + eq_column, s_cell)
    base += ux_diagonals

    if eq_column < s_columns:
        s_cell = eq_row * s_columns + eq_column
        if cal._s_nonzero(measurement, s_cell):
            cal.add_term(equation, base, True, s_cell=s_cell)


def _terms_e12(cal: NewCalibration, equation: Equation) -> None:
    raise InternalError('E12 equations are built as E12_UE14')


_EQUATION_BUILDERS: Dict[CalType, Callable[[NewCalibration, Equation], None]] = {
    CalType.T8: _terms_t8,
    CalType.TE10: _terms_t8,
    CalType.T16: _terms_t16,
    CalType.U8: _terms_u8,
    CalType.UE10: _terms_u8,
    CalType.U16: _terms_u16,
    CalType.UE14: _terms_ue14,
    CalType.E12_UE14: _terms_ue14,
    # unreachable: E12 sessions are built as E12_UE14
    CalType.E12: _terms_e12,
}
