import unittest

import numpy as npy
import pytest
import scipy.interpolate
import scipy.linalg
from numpy.testing import assert_allclose, assert_almost_equal

import vnacal as vc
from vnacal import mathFunctions as mf


def crandn(rng, *shape):
    return rng.standard_normal(shape) + 1j * rng.standard_normal(shape)


class LUTestCase(unittest.TestCase):
    """
    LU decomposition and the solvers built on it.
    """
    def setUp(self):
        self.rng = npy.random.default_rng(1)

    def test_lu_reconstruction(self):
        for n in range(1, 7):
            a = crandn(self.rng, n, n)
            lu_, row_index, det = mf.lu(a)
            l = npy.tril(lu_, -1) + npy.eye(n)
            u = npy.triu(lu_)
            assert_allclose(l @ u, a[row_index], atol=1e-10)
            assert_allclose(det, npy.linalg.det(a), rtol=1e-9)

    def test_lu_matches_scipy_determinant(self):
        a = crandn(self.rng, 5, 5)
        p, l, u = scipy.linalg.lu(a)
        expected = npy.linalg.det(p) * npy.prod(npy.diag(u))
        assert_allclose(mf.lu(a)[2], expected, rtol=1e-9)

    def test_lu_does_not_modify_input(self):
        a = crandn(self.rng, 3, 3)
        original = a.copy()
        mf.lu(a)
        assert_almost_equal(a, original)

    def test_lu_overwrite(self):
        a = crandn(self.rng, 3, 3)
        lu_, _, _ = mf.lu(a, overwrite_a=True)
        self.assertIs(lu_, a)

    def test_lu_singular(self):
        a = npy.array([[1, 2], [2, 4]], dtype=complex)
        det = mf.lu(a)[2]
        self.assertTrue(mf.is_singular(det, a))

    def test_lu_requires_square(self):
        with pytest.raises(ValueError):
            mf.lu(npy.ones((2, 3)))

    def test_mldivide(self):
        for n, o in [(1, 1), (3, 2), (5, 5)]:
            a = crandn(self.rng, n, n)
            b = crandn(self.rng, n, o)
            x, det = mf.mldivide(a, b)
            assert_allclose(a @ x, b, atol=1e-10)
            assert_allclose(x, scipy.linalg.solve(a, b), atol=1e-10)
            self.assertFalse(mf.is_singular(det, a))

    def test_mldivide_vector(self):
        a = crandn(self.rng, 4, 4)
        b = crandn(self.rng, 4)
        x, _ = mf.mldivide(a, b)
        self.assertEqual(x.shape, (4,))
        assert_allclose(a @ x, b, atol=1e-10)

    def test_mrdivide(self):
        for m, n in [(1, 1), (2, 3), (4, 4)]:
            a = crandn(self.rng, n, n)
            b = crandn(self.rng, m, n)
            x, _ = mf.mrdivide(b, a)
            assert_allclose(x @ a, b, atol=1e-10)

    def test_minverse(self):
        a = crandn(self.rng, 4, 4)
        x, det = mf.minverse(a)
        assert_allclose(x @ a, npy.eye(4), atol=1e-10)
        assert_allclose(a @ x, npy.eye(4), atol=1e-10)
        assert_allclose(det, npy.linalg.det(a), rtol=1e-9)

    def test_minverse_singular(self):
        a = npy.array([[1, 1j], [1j, -1]])
        _, det = mf.minverse(a)
        assert_almost_equal(det, 0.0)
        self.assertTrue(mf.is_singular(det, a))

    def test_mmultiply(self):
        a = crandn(self.rng, 2, 3)
        b = crandn(self.rng, 3, 4)
        assert_allclose(mf.mmultiply(a, b), npy.dot(a, b))
        with pytest.raises(ValueError):
            mf.mmultiply(a, a)


class QRTestCase(unittest.TestCase):
    """
    Householder QR and least squares.
    """
    def setUp(self):
        self.rng = npy.random.default_rng(2)

    def test_qr_properties(self):
        for m, n in [(1, 1), (3, 3), (5, 3), (3, 5)]:
            a = crandn(self.rng, m, n)
            q, r, rank = mf.qr(a)
            assert_allclose(q.conj().T @ q, npy.eye(m), atol=1e-10)
            assert_allclose(npy.tril(r, -1), 0.0, atol=1e-12)
            assert_allclose(q @ r, a, atol=1e-10)
            self.assertEqual(rank, min(m, n))

    def test_qrd_zero_column(self):
        a = npy.array([[0, 1], [0, 2], [0, 3]], dtype=complex)
        _, d = mf.qrd(a)
        self.assertEqual(d[0], 0)
        self.assertTrue(npy.all(npy.isfinite(d)))

    def test_qr_rank_deficient(self):
        a = npy.zeros((3, 2), dtype=complex)
        a[:, 0] = [1, 2, 3]
        self.assertEqual(mf.qr(a)[2], 1)

    def test_qrsolve_square(self):
        a = crandn(self.rng, 4, 4)
        b = crandn(self.rng, 4, 2)
        assert_allclose(mf.qrsolve(a, b), scipy.linalg.solve(a, b), atol=1e-10)

    def test_qrsolve_least_squares(self):
        a = crandn(self.rng, 8, 3)
        b = crandn(self.rng, 8)
        x = mf.qrsolve(a, b)
        expected = scipy.linalg.lstsq(a, b)[0]
        assert_allclose(x, expected, atol=1e-10)

        # any small step away from x increases the residual
        residual = npy.linalg.norm(a @ x - b)
        for k in range(3):
            for delta in (0.001, -0.001, 0.001j, -0.001j):
                y = x.copy()
                y[k] += delta
                self.assertGreater(npy.linalg.norm(a @ y - b), residual)

    def test_qrsolve_underdetermined(self):
        a = crandn(self.rng, 2, 4)
        b = crandn(self.rng, 2)
        x = mf.qrsolve(a, b)
        assert_allclose(a @ x, b, atol=1e-10)
        assert_almost_equal(x[2:], 0.0)

    def test_qrsolve2_and_qrsolve_q(self):
        a = crandn(self.rng, 6, 4)
        b = crandn(self.rng, 6, 2)
        q, r, _ = mf.qr(a)
        expected = mf.qrsolve(a, b)
        assert_allclose(mf.qrsolve2(q, r, b), expected, atol=1e-10)
        x, q2, rank = mf.qrsolve_q(a, b)
        assert_allclose(x, expected, atol=1e-10)
        assert_allclose(q2, q)
        self.assertEqual(rank, 4)

    def test_qrsolve_keeps_inputs(self):
        a = crandn(self.rng, 3, 3)
        b = crandn(self.rng, 3)
        a0, b0 = a.copy(), b.copy()
        mf.qrsolve(a, b)
        assert_almost_equal(a, a0)
        assert_almost_equal(b, b0)


class InterpolationTestCase(unittest.TestCase):
    def test_spline_matches_scipy(self):
        x = npy.array([0.0, 1.0, 2.5, 3.0, 5.0])
        y = npy.array([1.0, -1.0, 2.0, 0.5, 3.0])
        c = mf.spline_calc(x, y)
        self.assertEqual(c.shape, (4, 3))
        expected = scipy.interpolate.CubicSpline(x, y, bc_type='natural')
        xi = npy.linspace(0, 5, 41)
        assert_allclose(mf.spline_eval(x, y, c, xi), expected(xi), atol=1e-12)

    def test_spline_knots(self):
        x = npy.array([1.0, 2.0, 4.0])
        y = npy.array([1 + 1j, 2.0, -1j])
        c = mf.spline_calc(x, y)
        for xk, yk in zip(x, y):
            assert_almost_equal(mf.spline_eval(x, y, c, xk), yk)

    def test_spline_extrapolation_is_linear(self):
        x = npy.array([0.0, 1.0, 2.0, 3.0])
        y = npy.array([0.0, 1.0, 0.0, 1.0])
        c = mf.spline_calc(x, y)
        left = mf.spline_eval(x, y, c, [-2.0, -1.0, 0.0])
        right = mf.spline_eval(x, y, c, [3.0, 4.0, 5.0])
        assert_almost_equal(npy.diff(npy.diff(left)), 0.0)
        assert_almost_equal(npy.diff(npy.diff(right)), 0.0)

    def test_spline_two_knots(self):
        x = [1.0, 3.0]
        y = [1.0, 5.0]
        c = mf.spline_calc(x, y)
        assert_almost_equal(mf.spline_eval(x, y, c, [0.0, 2.0, 4.0]), [-1.0, 3.0, 7.0])

    def test_spline_one_knot(self):
        c = mf.spline_calc([2.0], [7.0])
        self.assertEqual(c.shape, (0, 3))
        assert_almost_equal(mf.spline_eval([2.0], [7.0], c, [0.0, 5.0]), [7.0, 7.0])

    def test_spline_close_knots(self):
        with pytest.raises(ValueError):
            mf.spline_calc([1.0, 1.00001], [0.0, 1.0])

    def test_rational_interp(self):
        x = npy.linspace(1, 10, 10)
        def g(t):
            return t**3 - 2*t + 1j*t**2

        fx = mf.rational_interp(x, g(x))
        assert_allclose(fx(x), g(x))
        # polynomials up to degree d are reproduced exactly
        xi = npy.linspace(1.5, 9.5, 9)
        assert_allclose(fx(xi), g(xi), rtol=1e-9)

    def test_rational_interp_short_table(self):
        fx = mf.rational_interp([1.0, 2.0], [1.0, 3.0])
        assert_almost_equal(fx(1.5), 2.0)
        fx = mf.rational_interp([1.0], [4.0])
        assert_almost_equal(fx(1.0), 4.0)


def test_namespace():
    assert vc.mldivide is mf.mldivide
    assert vc.ALMOST_ZERO == 1e-12
