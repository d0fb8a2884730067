'''
.. module:: vnacal.calibration.measurement
================================================================
measurement (:mod:`vnacal.calibration.measurement`)
================================================================

Measured standards and the linear equations generated from them.

Each accepted standard becomes a :class:`Measurement` holding the full
size M matrix and the full size S matrix of the standard. Each
measurement contributes :class:`Equation` s to one or more
:class:`System` s. An equation is a sum of :class:`Term` s equal to
zero; every term is a product of an error term coefficient and
optionally a measured value and an S parameter.

.. autosummary::
   :toctree: generated/

   NewParameter
   Term
   Equation
   System
   Measurement
'''
from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as npy

from .layout import CalType, Layout
from .parameter import Parameter


class NewParameter(object):
    '''
    A parameter as used by one calibration.

    Attributes
    ----------
    parameter : :class:`~vnacal.calibration.parameter.Parameter`
    handle : int
        handle in the :class:`ParameterCollection`
    unknown : bool
        True if the parameter is unknown or correlated
    unknown_index : int or None
        position among the calibration's unknown parameters, in order of
        first use
    correlate : :class:`NewParameter` or None
        for a correlated parameter, the parameter it's tied to
    '''
    def __init__(self, parameter: Parameter, handle: int,
                 correlate: Optional['NewParameter'] = None):
        self.parameter = parameter
        self.handle = handle
        self.unknown = parameter.is_unknown
        self.unknown_index: Optional[int] = None
        self.correlate = correlate

    def __repr__(self) -> str:
        return 'NewParameter({}, {!r})'.format(self.handle, self.parameter.kind)


class Term(object):
    '''
    One signed product in an equation.

    Attributes
    ----------
    coefficient : int
        index into the system's vector of unknown coefficients, or -1
        for the coefficient fixed to 1
    negative : bool
    m_cell : int or None
        index of the measured value in :attr:`Measurement.m_matrix`
    s_cell : int or None
        index of the S parameter in :attr:`Measurement.s_matrix`
    '''
    __slots__ = ('coefficient', 'negative', 'm_cell', 's_cell')

    def __init__(self, coefficient: int, negative: bool,
                 m_cell: Optional[int] = None, s_cell: Optional[int] = None):
        self.coefficient = coefficient
        self.negative = negative
        self.m_cell = m_cell
        self.s_cell = s_cell

    @property
    def is_unity(self) -> bool:
        return self.coefficient == -1

    def __repr__(self) -> str:
        return 'Term({}, {}, m_cell={}, s_cell={})'.format(
            self.coefficient, self.negative, self.m_cell, self.s_cell)


def _block_columns(layout: Layout) -> dict:
    if layout.type == CalType.T16:
        return {'ts': layout.s_rows, 'ti': layout.s_columns,
                'tx': layout.s_rows, 'tm': layout.s_columns}
    if layout.type == CalType.U16:
        return {'um': layout.m_rows, 'ui': layout.m_columns,
                'ux': layout.m_rows, 'us': layout.m_columns}
    return {}


def coefficient_name(layout: Layout, system: int, coefficient: int) -> str:
    '''
    Name of a folded coefficient, e.g. 'tx2' or, for full blocks, 'ts12'.

    The unity coefficient (-1) has the name of the term it replaces.
    '''
    unity = layout.unity_offset(system)
    if coefficient == -1:
        position = unity
    else:
        position = coefficient + (coefficient >= unity)
    for name, offset, terms in layout.families:
        if offset <= position < offset + terms:
            index = position - offset
            columns = _block_columns(layout).get(name)
            if columns is None:
                return '{}{}'.format(name, index + 1)
            return '{}{}{}'.format(name, index // columns + 1, index % columns + 1)
    raise IndexError('coefficient {} out of range'.format(coefficient))


class Equation(object):
    '''
    One linear equation in the error terms.

    Attributes
    ----------
    measurement : :class:`Measurement`
    row, column : int
        zero-based cell of the T-form (M rows x S columns) or U-form
        (S rows x M columns) equation matrix
    terms : list of :class:`Term`
    '''
    def __init__(self, measurement: 'Measurement', row: int, column: int):
        self.measurement = measurement
        self.row = row
        self.column = column
        self.terms: List[Term] = []

    @property
    def system(self) -> int:
        '''Index of the system this equation belongs to.'''
        return self.column if self.measurement.layout.type.is_ue14 else 0

    def __len__(self) -> int:
        return len(self.terms)

    def __iter__(self):
        return iter(self.terms)

    def __str__(self) -> str:
        '''
        Render the equation, e.g. ``+s11*ts1 +ti1 -m11*s11*tx1 +m11``.
        '''
        layout = self.measurement.layout
        parts = []
        for term in self.terms:
            factors = []
            if term.m_cell is not None:
                r, c = divmod(term.m_cell, layout.m_columns)
                factors.append('m{}{}'.format(r + 1, c + 1))
            if term.s_cell is not None:
                r, c = divmod(term.s_cell, layout.s_columns)
                factors.append('s{}{}'.format(r + 1, c + 1))
            if not term.is_unity:
                factors.append(coefficient_name(layout, self.system,
                                                term.coefficient))
            if not factors:
                factors.append('1')
            parts.append(('-' if term.negative else '+') + '*'.join(factors))
        return ' '.join(parts)

    def __repr__(self) -> str:
        return '<Equation ({}, {}): {}>'.format(self.row + 1, self.column + 1, self)


class System(object):
    '''
    Equations sharing one vector of unknown error term coefficients.
    '''
    def __init__(self, index: int):
        self.index = index
        self.equations: List[Equation] = []

    def __len__(self) -> int:
        return len(self.equations)

    def __iter__(self):
        return iter(self.equations)


class Measurement(object):
    '''
    A measured calibration standard.

    Attributes
    ----------
    layout : :class:`~vnacal.calibration.layout.Layout`
    m_matrix : list
        row-major m_rows x m_columns cells, each a complex vector over
        frequency, or None where the cell wasn't measured
    s_matrix : list
        row-major s_rows x s_columns cells of :class:`NewParameter`, or
        None where the S parameter isn't known
    reachability : :class:`numpy.ndarray` or None
        ports x ports signal path matrix; None for T16 and U16
    leakage_cells : list of (int, int)
        measured off-diagonal M cells without a signal path through the
        standard; these see only leakage
    equations : list of :class:`Equation`
    name : str or None
    '''
    def __init__(self, layout: Layout, frequencies: int, name: Optional[str] = None):
        self.layout = layout
        self.frequencies = frequencies
        self.name = name
        self.m_matrix: List[Optional[npy.ndarray]] = \
            [None] * (layout.m_rows * layout.m_columns)
        self.s_matrix: List[Optional[NewParameter]] = \
            [None] * (layout.s_rows * layout.s_columns)
        self.reachability: Optional[npy.ndarray] = None
        self.leakage_cells: List[Tuple[int, int]] = []
        self.equations: List[Equation] = []

    def __str__(self) -> str:
        name = self.name if self.name is not None else 'measurement'
        return '{}: {} equations'.format(name, len(self.equations))

    def __repr__(self) -> str:
        return '<Measurement {}>'.format(self)

    def m_cell(self, row: int, column: int) -> int:
        return row * self.layout.m_columns + column

    def s_cell(self, row: int, column: int) -> int:
        return row * self.layout.s_columns + column

    def get_m(self, row: int, column: int) -> Optional[npy.ndarray]:
        return self.m_matrix[self.m_cell(row, column)]

    def get_s(self, row: int, column: int) -> Optional[NewParameter]:
        return self.s_matrix[self.s_cell(row, column)]

    @property
    def m_array(self) -> npy.ndarray:
        '''
        Measured values shaped (frequencies, m_rows, m_columns); NaN
        where a cell wasn't measured.
        '''
        m = npy.full((self.frequencies, self.layout.m_rows, self.layout.m_columns),
                     npy.nan, dtype=complex)
        for cell, values in enumerate(self.m_matrix):
            if values is not None:
                r, c = divmod(cell, self.layout.m_columns)
                m[:, r, c] = values
        return m

    @property
    def s_handles(self) -> List[List[Optional[int]]]:
        '''
        Parameter handles of the full S matrix; None where unknown.
        '''
        return [[None if p is None else p.handle
                 for p in self.s_matrix[r * self.layout.s_columns:
                                        (r + 1) * self.layout.s_columns]]
                for r in range(self.layout.s_rows)]
