import unittest

import numpy as npy
import pytest
from numpy.testing import assert_allclose, assert_almost_equal

from vnacal.calibration import ParameterCollection
from vnacal.errors import MathError, UsageError


class ParameterCollectionTestCase(unittest.TestCase):
    def setUp(self):
        self.parameters = ParameterCollection()

    def test_predefined(self):
        p = self.parameters
        self.assertEqual(len(p), 3)
        self.assertEqual(p.value(p.MATCH, 1e9), 0)
        self.assertEqual(p.value(p.OPEN, 1e9), 1)
        self.assertEqual(p.value(p.SHORT, 1e9), -1)
        self.assertEqual(p.ZERO, p.MATCH)
        self.assertEqual(p.ONE, p.OPEN)
        self.assertEqual(p.frequency_range(p.SHORT), (0.0, npy.inf))

    def test_predefined_cannot_be_deleted(self):
        for handle in ParameterCollection.PREDEFINED:
            with pytest.raises(UsageError):
                self.parameters.delete(handle)

    def test_scalar(self):
        handle = self.parameters.make_scalar(0.5j)
        assert_almost_equal(self.parameters.value(handle, [1e6, 1e9]), [0.5j, 0.5j])

    def test_vector(self):
        f = [1e9, 2e9, 3e9, 4e9]
        values = [0.1, 0.2 + 0.1j, 0.3, 0.4 - 0.1j]
        handle = self.parameters.make_vector(f, values)
        assert_allclose(self.parameters.value(handle, f), values)
        self.assertEqual(self.parameters.frequency_range(handle), (1e9, 4e9))
        # held constant outside of the table
        assert_allclose(self.parameters.value(handle, 0.5e9), 0.1)
        assert_allclose(self.parameters.value(handle, 9e9), 0.4 - 0.1j)

    def test_vector_linear_between_two_points(self):
        handle = self.parameters.make_vector([1e9, 2e9], [0.0, 1.0])
        assert_allclose(self.parameters.value(handle, 1.5e9), 0.5)

    def test_vector_validation(self):
        with pytest.raises(UsageError):
            self.parameters.make_vector([2e9, 1e9], [0, 1])
        with pytest.raises(UsageError):
            self.parameters.make_vector([1e9, 2e9], [0])
        with pytest.raises(UsageError):
            self.parameters.make_vector([-1.0, 2e9], [0, 1])

    def test_unknown(self):
        guess = self.parameters.make_vector([1e9, 2e9], [0.9, 0.8])
        handle = self.parameters.make_unknown(guess)
        parameter = self.parameters.get(handle)
        self.assertTrue(parameter.is_unknown)
        self.assertEqual(parameter.frequency_range, (1e9, 2e9))
        with pytest.raises(MathError):
            self.parameters.value(handle, 1e9)
        self.parameters.set_solved(handle, [1e9, 2e9], [0.7, 0.6])
        assert_allclose(self.parameters.value(handle, 2e9), 0.6)

    def test_set_solved_requires_unknown(self):
        with pytest.raises(UsageError):
            self.parameters.set_solved(ParameterCollection.SHORT, [1e9], [1.0])

    def test_correlated(self):
        other = self.parameters.make_vector([1e9, 5e9], [0.1, 0.2])
        handle = self.parameters.make_correlated(other, [0.01, 0.02, 0.03],
                                                 sigma_frequency=[2e9, 3e9, 4e9])
        parameter = self.parameters.get(handle)
        self.assertEqual(parameter.frequency_range, (2e9, 4e9))
        assert_allclose(parameter.sigma_at(3e9), 0.02)

        constant = self.parameters.make_correlated(other, 0.05)
        self.assertEqual(self.parameters.frequency_range(constant), (1e9, 5e9))
        self.assertEqual(self.parameters.get(constant).sigma_at(1e9), 0.05)

    def test_correlated_validation(self):
        with pytest.raises(UsageError):
            self.parameters.make_correlated(ParameterCollection.OPEN, -0.1)
        with pytest.raises(UsageError):
            self.parameters.make_correlated(ParameterCollection.OPEN, [0.1, 0.2])
        with pytest.raises(UsageError):
            self.parameters.make_correlated(ParameterCollection.OPEN, [0.1, 0.2],
                                            sigma_frequency=[1.0, 1.00001])

    def test_delete(self):
        handle = self.parameters.make_scalar(0.3)
        unknown = self.parameters.make_unknown(handle)
        self.parameters.delete(handle)
        self.assertNotIn(handle, self.parameters)
        with pytest.raises(UsageError):
            self.parameters.get(handle)
        # parameters built on the deleted one keep working
        self.assertEqual(self.parameters.frequency_range(unknown), (0.0, npy.inf))

    def test_invalid_handle(self):
        with pytest.raises(UsageError, match='invalid parameter index 99'):
            self.parameters.get(99)
        with pytest.raises(UsageError):
            self.parameters.make_unknown(99)

    def test_handles_are_not_reused(self):
        a = self.parameters.make_scalar(0.1)
        self.parameters.delete(a)
        b = self.parameters.make_scalar(0.2)
        self.assertNotEqual(a, b)
        self.assertEqual(list(self.parameters), [0, 1, 2, b])
