'''
.. module:: vnacal.calibration.layout
================================================================
layout (:mod:`vnacal.calibration.layout`)
================================================================

Error term types and the layout of their coefficients.

T8, TE10 and T16 are scattering-transfer ("T") parameters, U8, UE10,
UE14 and U16 are inverse scattering-transfer ("U") parameters. Each is
a 2x2 block matrix whose blocks Ts, Ti, Tx, Tm (or Um, Ui, Ux, Us) are
themselves matrices, appearing as coefficients in

    Ts S + Ti = M Tx S + M Tm
    Um M + Ui = S Ux M + S Us

with dimensions

    ==  ====================  ==  ====================
    Ts  m_rows x s_rows       Um  s_rows x m_rows
    Ti  m_rows x s_columns    Ui  s_rows x m_columns
    Tx  m_columns x s_rows    Ux  s_columns x m_rows
    Tm  m_columns x s_columns Us  s_columns x m_columns
    ==  ====================  ==  ====================

where M is the m_rows x m_columns measurement and S the s_rows x
s_columns s-parameter matrix of a standard. In T, m_rows <= m_columns;
in U, m_rows >= m_columns; s_rows and s_columns are always
max(m_rows, m_columns).

In T16 and U16 the blocks are full. In T8, U8, TE10, UE10 and UE14 they
are diagonal and only the diagonal is stored. TE10, UE10 and UE14 add
the off-diagonal leakage terms El. UE14 solves each column of M as an
independent system. E12 is the classic 12-term model; it is solved as
UE14 (:attr:`CalType.E12_UE14`).

.. autosummary::
   :toctree: generated/

   CalType
   Layout
'''
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from ..errors import UsageError

logger = logging.getLogger(__name__)


class CalType(Enum):
    '''
    Error term type.
    '''
    T8 = 'T8'
    U8 = 'U8'
    TE10 = 'TE10'
    UE10 = 'UE10'
    T16 = 'T16'
    U16 = 'U16'
    UE14 = 'UE14'
    E12 = 'E12'
    E12_UE14 = 'E12_UE14'

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> 'CalType':
        '''
        Look up a type by name, e.g. ``CalType.from_name('TE10')``.
        '''
        if isinstance(name, cls):
            return name
        try:
            return cls(name)
        except ValueError:
            raise UsageError('invalid error term type name: {!r}'.format(name)) from None

    @property
    def is_t(self) -> bool:
        '''True for the scattering-transfer types.'''
        return self in (CalType.T8, CalType.TE10, CalType.T16)

    @property
    def is_u(self) -> bool:
        '''True for the inverse scattering-transfer types, including E12.'''
        return not self.is_t

    @property
    def is_ue14(self) -> bool:
        return self in (CalType.UE14, CalType.E12_UE14)

    @property
    def has_column_systems(self) -> bool:
        '''True if each column of M is solved as a separate system.'''
        return self in (CalType.UE14, CalType.E12_UE14, CalType.E12)

    @property
    def leakage_in_system(self) -> bool:
        '''True if leakage is handled inside the linear system (T16, U16).'''
        return self in (CalType.T16, CalType.U16)

    @property
    def has_leakage_terms(self) -> bool:
        '''True if leakage is modelled by separate El terms.'''
        return self in (CalType.TE10, CalType.UE10, CalType.UE14,
                        CalType.E12_UE14, CalType.E12)


class Layout(object):
    '''
    Offsets and sizes of the error term families of a calibration.

    Parameters
    ----------
    cal_type : :class:`CalType` or str
        error term type
    m_rows : int
        number of VNA ports that detect signal
    m_columns : int
        number of VNA ports that generate signal

    Examples
    --------
    >>> layout = Layout('T8', 2, 2)
    >>> layout.error_terms
    8
    >>> layout.tm_offset
    6
    '''
    def __init__(self, cal_type, m_rows: int, m_columns: int):
        self.type = CalType.from_name(cal_type)
        self.m_rows = m_rows
        self.m_columns = m_columns

        self.ts_offset = self.ti_offset = self.tx_offset = self.tm_offset = 0
        self.t_terms = 0
        self.um_offset = self.ui_offset = self.ux_offset = self.us_offset = 0
        self.u_terms = 0
        self.er_offset = self.et_offset = self.em_offset = 0
        self.e_terms = 0
        self.el_offset = 0
        self.el_terms = 0
        self.error_terms = 0

        _BUILDERS[self.type](self)
        logger.debug('layout %s %dx%d: %d error terms',
                     self.type, m_rows, m_columns, self.error_terms)

    def __str__(self) -> str:
        return '{} {}x{}'.format(self.type, self.m_rows, self.m_columns)

    def __repr__(self) -> str:
        return 'Layout({!r}, {}, {})'.format(str(self.type), self.m_rows,
                                            self.m_columns)

    @property
    def ports(self) -> int:
        '''max(m_rows, m_columns)'''
        return max(self.m_rows, self.m_columns)

    @property
    def diagonals(self) -> int:
        '''min(m_rows, m_columns)'''
        return min(self.m_rows, self.m_columns)

    @property
    def s_rows(self) -> int:
        return self.ports

    @property
    def s_columns(self) -> int:
        return self.ports

    @property
    def systems(self) -> int:
        '''Number of independent linear systems.'''
        return self.m_columns if self.type.has_column_systems else 1

    # T blocks
    @property
    def ts_terms(self) -> int:
        return self.ti_offset - self.ts_offset

    @property
    def ti_terms(self) -> int:
        return self.tx_offset - self.ti_offset

    @property
    def tx_terms(self) -> int:
        return self.tm_offset - self.tx_offset

    @property
    def tm_terms(self) -> int:
        return self.t_terms - self.tm_offset

    # U blocks
    @property
    def um_terms(self) -> int:
        return self.ui_offset - self.um_offset

    @property
    def ui_terms(self) -> int:
        return self.ux_offset - self.ui_offset

    @property
    def ux_terms(self) -> int:
        return self.us_offset - self.ux_offset

    @property
    def us_terms(self) -> int:
        return self.u_terms - self.us_offset

    @property
    def families(self) -> List[Tuple[str, int, int]]:
        '''
        (name, offset, terms) of each coefficient family, in order.

        For UE14 the offsets are relative to the start of one column's
        system; see :meth:`system_offset`.
        '''
        if self.type.is_t:
            return [('ts', self.ts_offset, self.ts_terms),
                    ('ti', self.ti_offset, self.ti_terms),
                    ('tx', self.tx_offset, self.tx_terms),
                    ('tm', self.tm_offset, self.tm_terms)]
        if self.type == CalType.E12:
            return [('el', self.el_offset, self.el_terms),
                    ('er', self.er_offset, self.et_offset - self.er_offset),
                    ('et', self.et_offset, self.em_offset - self.et_offset),
                    ('em', self.em_offset, self.e_terms - self.em_offset)]
        return [('um', self.um_offset, self.um_terms),
                ('ui', self.ui_offset, self.ui_terms),
                ('ux', self.ux_offset, self.ux_terms),
                ('us', self.us_offset, self.us_terms)]

    def unity_offset(self, system: int = 0) -> Optional[int]:
        '''
        Position of the term fixed to 1 within a system's coefficients.

        Tm11 for T types, Um11 for U types and the diagonal Um entry of
        the column for UE14. E12 has none.
        '''
        if self.type.is_t:
            return self.tm_offset
        if self.type.is_ue14:
            return system
        if self.type == CalType.E12:
            return None
        return self.um_offset

    def system_offset(self, system: int = 0) -> int:
        '''
        Offset of a system's first coefficient in the error term vector.
        '''
        if self.type.is_ue14:
            return system * self.u_terms
        if self.type == CalType.E12:
            return system * self.e_terms
        return 0

    @property
    def system_terms(self) -> Optional[int]:
        '''
        Number of unknown coefficients of one system once the unity
        term is folded out.
        '''
        if self.type.is_t:
            return self.t_terms - 1
        if self.type == CalType.E12:
            return None
        return self.u_terms - 1

    def leakage_index(self, row: int, column: int) -> int:
        '''
        Index of the leakage term of an off-diagonal measurement cell.

        Parameters
        ----------
        row, column : int
            zero-based cell of M

        Returns
        -------
        index : int
            position in the error term vector
        '''
        if not self.type.has_leakage_terms or self.type == CalType.E12:
            raise ValueError('{} has no separate leakage terms'.format(self.type))
        if row == column or not (0 <= row < self.m_rows and
                                 0 <= column < self.m_columns):
            raise ValueError('({}, {}) is not an off-diagonal cell'.format(row, column))
        skipped = min(row, self.diagonals)
        if column > row and row < self.diagonals:
            skipped += 1
        return self.el_offset + row * self.m_columns + column - skipped

    @property
    def leakage_map(self) -> Dict[Tuple[int, int], int]:
        '''
        Map from each off-diagonal M cell to its leakage term index.
        '''
        if not self.el_terms or self.type == CalType.E12:
            return {}
        return {(r, c): self.leakage_index(r, c)
                for r in range(self.m_rows) for c in range(self.m_columns)
                if r != c}


def _layout_t16(layout: Layout) -> None:
    m_rows, m_columns = layout.m_rows, layout.m_columns
    s_rows, s_columns = layout.s_rows, layout.s_columns
    layout.ti_offset = layout.ts_offset + m_rows * s_rows
    layout.tx_offset = layout.ti_offset + m_rows * s_columns
    layout.tm_offset = layout.tx_offset + m_columns * s_rows
    layout.t_terms = layout.tm_offset + m_columns * s_columns
    layout.el_offset = layout.t_terms
    layout.el_terms = 0
    layout.error_terms = layout.t_terms


def _layout_t8(layout: Layout) -> None:
    m_rows, m_columns = layout.m_rows, layout.m_columns
    s_rows, s_columns = layout.s_rows, layout.s_columns
    layout.ti_offset = layout.ts_offset + min(m_rows, s_rows)
    layout.tx_offset = layout.ti_offset + min(m_rows, s_columns)
    layout.tm_offset = layout.tx_offset + min(m_columns, s_rows)
    layout.t_terms = layout.tm_offset + min(m_columns, s_columns)
    layout.el_offset = layout.t_terms
    if layout.type == CalType.TE10:
        layout.el_terms = m_rows * m_columns - layout.diagonals
    layout.error_terms = layout.t_terms + layout.el_terms


def _layout_u16(layout: Layout) -> None:
    m_rows, m_columns = layout.m_rows, layout.m_columns
    s_rows, s_columns = layout.s_rows, layout.s_columns
    layout.ui_offset = layout.um_offset + s_rows * m_rows
    layout.ux_offset = layout.ui_offset + s_rows * m_columns
    layout.us_offset = layout.ux_offset + s_columns * m_rows
    layout.u_terms = layout.us_offset + s_columns * m_columns
    layout.el_offset = layout.u_terms
    layout.el_terms = 0
    layout.error_terms = layout.u_terms


def _layout_u8(layout: Layout) -> None:
    m_rows, m_columns = layout.m_rows, layout.m_columns
    s_rows, s_columns = layout.s_rows, layout.s_columns
    layout.ui_offset = layout.um_offset + min(s_rows, m_rows)
    layout.ux_offset = layout.ui_offset + min(s_rows, m_columns)
    layout.us_offset = layout.ux_offset + min(s_columns, m_rows)
    layout.u_terms = layout.us_offset + min(s_columns, m_columns)
    layout.el_offset = layout.u_terms
    if layout.type == CalType.UE10:
        layout.el_terms = m_rows * m_columns - layout.diagonals
    layout.error_terms = layout.u_terms + layout.el_terms


def _layout_ue14(layout: Layout) -> None:
    m_rows, m_columns = layout.m_rows, layout.m_columns
    layout.ui_offset = layout.um_offset + min(layout.s_rows, m_rows)
    layout.ux_offset = layout.ui_offset + 1
    layout.us_offset = layout.ux_offset + min(layout.s_columns, m_rows)
    layout.u_terms = layout.us_offset + 1
    layout.el_offset = m_columns * layout.u_terms
    layout.el_terms = m_rows * m_columns - layout.diagonals
    layout.error_terms = m_columns * layout.u_terms + layout.el_terms


def _layout_e12(layout: Layout) -> None:
    m_rows = layout.m_rows
    layout.el_offset = 0
    layout.el_terms = m_rows
    layout.er_offset = layout.el_offset + m_rows
    layout.et_offset = layout.er_offset + m_rows
    # Et is implied by the other terms and not stored
    layout.em_offset = layout.et_offset
    layout.e_terms = layout.em_offset + m_rows
    layout.error_terms = layout.m_columns * layout.e_terms


_BUILDERS: Dict[CalType, Callable[[Layout], None]] = {
    CalType.T8: _layout_t8,
    CalType.TE10: _layout_t8,
    CalType.T16: _layout_t16,
    CalType.U8: _layout_u8,
    CalType.UE10: _layout_u8,
    CalType.U16: _layout_u16,
    CalType.UE14: _layout_ue14,
    CalType.E12_UE14: _layout_ue14,
    CalType.E12: _layout_e12,
}
