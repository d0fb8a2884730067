import unittest

import pytest

from vnacal.calibration import CalType, Layout
from vnacal.calibration.calibration import _EQUATION_BUILDERS
from vnacal.calibration.layout import _BUILDERS
from vnacal.errors import InternalError, UsageError


class LayoutTestCase(unittest.TestCase):
    '''
    Term counts of the 2x2 layouts.
    '''
    def test_t8(self):
        layout = Layout('T8', 2, 2)
        self.assertEqual((layout.ts_offset, layout.ti_offset, layout.tx_offset,
                          layout.tm_offset, layout.t_terms), (0, 2, 4, 6, 8))
        self.assertEqual(layout.error_terms, 8)
        self.assertEqual(layout.el_terms, 0)
        self.assertEqual(layout.system_terms, 7)
        self.assertEqual(layout.unity_offset(), 6)
        self.assertEqual(layout.systems, 1)

    def test_te10(self):
        layout = Layout(CalType.TE10, 2, 2)
        self.assertEqual(layout.el_offset, 8)
        self.assertEqual(layout.el_terms, 2)
        self.assertEqual(layout.error_terms, 10)
        self.assertEqual(layout.leakage_map, {(0, 1): 8, (1, 0): 9})

    def test_u8(self):
        layout = Layout('U8', 2, 2)
        self.assertEqual((layout.um_offset, layout.ui_offset, layout.ux_offset,
                          layout.us_offset, layout.u_terms), (0, 2, 4, 6, 8))
        self.assertEqual(layout.unity_offset(), 0)

    def test_t16(self):
        layout = Layout('T16', 2, 2)
        self.assertEqual(layout.t_terms, 16)
        self.assertEqual(layout.tm_offset, 12)
        self.assertEqual(layout.error_terms, 16)
        self.assertEqual(layout.system_terms, 15)

    def test_u16(self):
        layout = Layout('U16', 2, 2)
        self.assertEqual(layout.u_terms, 16)
        self.assertEqual(layout.unity_offset(), 0)

    def test_ue14(self):
        layout = Layout('UE14', 2, 2)
        self.assertEqual((layout.um_offset, layout.ui_offset, layout.ux_offset,
                          layout.us_offset, layout.u_terms), (0, 2, 3, 5, 6))
        self.assertEqual(layout.systems, 2)
        self.assertEqual(layout.el_offset, 12)
        self.assertEqual(layout.el_terms, 2)
        self.assertEqual(layout.error_terms, 14)
        self.assertEqual(layout.unity_offset(1), 1)
        self.assertEqual(layout.system_offset(1), 6)
        self.assertEqual(layout.system_terms, 5)

    def test_e12(self):
        layout = Layout('E12', 2, 2)
        self.assertEqual(layout.e_terms, 6)
        self.assertEqual(layout.error_terms, 12)
        self.assertIsNone(layout.unity_offset())
        self.assertIsNone(layout.system_terms)
        self.assertEqual(layout.systems, 2)

    def test_rectangular(self):
        layout = Layout('T8', 1, 2)
        self.assertEqual((layout.ports, layout.diagonals), (2, 1))
        self.assertEqual((layout.s_rows, layout.s_columns), (2, 2))
        # ts 1, ti 1, tx 2, tm 2
        self.assertEqual(layout.t_terms, 6)
        layout = Layout('UE10', 3, 2)
        self.assertEqual(layout.el_terms, 4)

    def test_leakage_index(self):
        layout = Layout('UE10', 3, 2)
        indices = sorted(layout.leakage_map.values())
        self.assertEqual(indices, list(range(layout.el_offset,
                                             layout.el_offset + layout.el_terms)))
        with pytest.raises(ValueError):
            layout.leakage_index(1, 1)
        with pytest.raises(ValueError):
            Layout('T8', 2, 2).leakage_index(0, 1)


@pytest.mark.parametrize('cal_type', list(CalType))
def test_dispatch_tables_cover_every_type(cal_type):
    assert cal_type in _BUILDERS
    assert cal_type in _EQUATION_BUILDERS


def test_e12_builder_is_never_dispatched():
    # E12 sessions build their equations with the E12_UE14 layout
    assert _EQUATION_BUILDERS[CalType.E12_UE14] is not _EQUATION_BUILDERS[CalType.E12]
    with pytest.raises(InternalError, match='E12_UE14'):
        _EQUATION_BUILDERS[CalType.E12](None, None)


def test_families_fill_the_system():
    for cal_type in ('T8', 'U8', 'TE10', 'UE10', 'T16', 'U16', 'UE14'):
        layout = Layout(cal_type, 3, 3)
        total = sum(terms for _, _, terms in layout.families)
        assert total == layout.system_terms + 1


def test_type_names():
    assert CalType.from_name('UE14') is CalType.UE14
    assert CalType.from_name(CalType.T8) is CalType.T8
    assert str(CalType.E12_UE14) == 'E12_UE14'
    with pytest.raises(UsageError):
        CalType.from_name('T9')


def test_type_properties():
    assert CalType.T16.is_t and not CalType.T16.is_u
    assert CalType.E12.is_u
    assert CalType.E12_UE14.is_ue14
    assert CalType.T16.leakage_in_system
    assert not CalType.T8.has_leakage_terms
    assert CalType.UE10.has_leakage_terms
