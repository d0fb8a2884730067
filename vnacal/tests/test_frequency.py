import unittest

import numpy as npy
import pytest

import vnacal as vc
from vnacal.frequency import covers


class FrequencyTestCase(unittest.TestCase):
    '''
    Frequency points.
    '''
    def test_create_sweep(self):
        f = npy.array([1e3, 5e3, 200e3])
        freq = vc.Frequency.from_f(f)
        self.assertTrue((freq.f == f).all())
        self.assertEqual(freq.start, 1e3)
        self.assertEqual(freq.stop, 200e3)
        self.assertEqual(freq.npoints, 3)

    def test_from_f_scalar(self):
        freq = vc.Frequency.from_f(5e9)
        self.assertEqual(freq.npoints, 1)
        self.assertEqual(freq.start, freq.stop)

    def test_from_f_passes_frequency_through(self):
        freq = vc.Frequency([1e9, 2e9])
        self.assertIs(vc.Frequency.from_f(freq), freq)

    def test_not_increasing(self):
        with self.assertRaisesRegex(ValueError, 'ascending'):
            vc.Frequency([3e9, 2e9, 1e9])
        with self.assertRaisesRegex(ValueError, 'ascending'):
            vc.Frequency([1e9, 1e9, 2e9])

    def test_invalid_values(self):
        with self.assertRaisesRegex(ValueError, 'invalid frequency: -1.0'):
            vc.Frequency([-1.0, 1e9])
        with self.assertRaisesRegex(ValueError, 'invalid frequency: nan'):
            vc.Frequency([1e9, npy.nan])

    def test_not_a_vector(self):
        with self.assertRaisesRegex(ValueError, 'vector'):
            vc.Frequency([[1e9, 2e9]])

    def test_covered_by(self):
        freq = vc.Frequency(npy.linspace(1e9, 2e9, 5))
        self.assertTrue(freq.covered_by((0.0, npy.inf)))
        self.assertTrue(freq.covered_by((1.005e9, 1.99e9)))
        self.assertFalse(freq.covered_by((1.005e9, 1.99e9), extrapolation=0.0))
        self.assertTrue(vc.Frequency([]).covered_by((5e9, 6e9)))


@pytest.mark.parametrize('frange, expected', [
    ((1e9, 2e9), True),
    ((1.005e9, 1.985e9), True),
    ((1.02e9, 2e9), False),
    ((1e9, 1.97e9), False),
    ((0.0, npy.inf), True),
])
def test_covers(frange, expected):
    assert covers(frange, 1e9, 2e9) == expected
