"""
mathFunctions (:mod:`vnacal.mathFunctions`)
=============================================


Dense complex linear algebra and interpolation kernels used by the
calibration engine.

All matrix functions accept 2-D array-likes and work on complex copies.
Functions that factor their input in place accept an `overwrite_a`
(or `overwrite_b`) flag as in :mod:`scipy.linalg`; when set and the
input already is a complex 2-D :class:`numpy.ndarray`, the input is
consumed and must not be used again by the caller.

LU Decomposition
--------------------------------
.. autosummary::
        :toctree: generated/

        lu
        mldivide
        mrdivide
        minverse
        is_singular

QR Decomposition
--------------------------------
.. autosummary::
        :toctree: generated/

        qrd
        qr
        qrsolve
        qrsolve2
        qrsolve_q

Products
--------------------------------
.. autosummary::
        :toctree: generated/

        mmultiply

Interpolation
--------------------------------
.. autosummary::
        :toctree: generated/

        spline_calc
        spline_eval
        rational_interp
"""
from __future__ import annotations

from typing import Callable, Tuple

import numpy as npy

from .constants import ALMOST_ZERO, MIN_DX, NumberLike


def _complex_matrix(a: npy.ndarray, overwrite: bool = False) -> npy.ndarray:
    """
    Return `a` as a complex 2-D array, copied unless `overwrite` allows
    reusing the caller's buffer.
    """
    if overwrite and isinstance(a, npy.ndarray) and a.dtype == complex \
            and a.ndim == 2:
        return a
    a = npy.array(a, dtype=complex)
    if a.ndim != 2:
        raise ValueError('expected a 2-D matrix, got shape {}'.format(a.shape))
    return a


def _complex_rhs(b: npy.ndarray, overwrite: bool = False) -> Tuple[npy.ndarray, bool]:
    """
    Return a right-hand side as a complex 2-D array and whether it was
    given as a vector.
    """
    if not (overwrite and isinstance(b, npy.ndarray) and b.dtype == complex):
        b = npy.array(b, dtype=complex)
    if b.ndim == 1:
        return b[:, None], True
    if b.ndim != 2:
        raise ValueError('expected a vector or 2-D matrix, got shape {}'.format(b.shape))
    return b, False


def _check_square(a: npy.ndarray) -> int:
    if a.shape[0] != a.shape[1]:
        raise ValueError('matrix must be square, got shape {}'.format(a.shape))
    return a.shape[0]


def lu(a: npy.ndarray, overwrite_a: bool = False) -> Tuple[npy.ndarray, npy.ndarray, complex]:
    """
    LU decomposition with scaled partial pivoting (Crout's method).

    L is placed below the major diagonal; its own diagonal is all ones
    and is not stored. U is placed on and above the diagonal.

    Parameters
    ----------
    a : npy.ndarray
        square complex matrix
    overwrite_a : bool, optional
        decompose `a` in place, by default False

    Returns
    -------
    lu : npy.ndarray
        combined L and U factors
    row_index : npy.ndarray
        original row index of each row of `lu`, so that
        ``a[row_index] == L @ U``
    det : complex
        determinant of `a`; zero if a zero pivot was encountered

    Examples
    --------
    >>> a = npy.array([[0, 1], [2, 3]])
    >>> lu_, row_index, det = lu(a)
    >>> det
    (-2+0j)
    """
    a = _complex_matrix(a, overwrite_a)
    n = _check_square(a)
    det = complex(1.0)

    with npy.errstate(divide='ignore'):
        row_scale = 1.0 / npy.abs(a).max(axis=1) if n else npy.zeros(0)
    row_scale[~npy.isfinite(row_scale)] = 0.0
    row_index = npy.arange(n)

    for j in range(n):
        # U above the diagonal
        for i in range(j):
            a[i, j] -= npy.dot(a[i, :i], a[:i, j])

        # diagonal of U and L below it, tracking the best pivot
        best_index = j
        best_value = 0.0
        for i in range(j, n):
            a[i, j] -= npy.dot(a[i, :j], a[:j, j])
            temp = row_scale[i] * abs(a[i, j])
            if temp > best_value:
                best_index = i
                best_value = temp

        if best_index != j:
            a[[j, best_index]] = a[[best_index, j]]
            row_index[[j, best_index]] = row_index[[best_index, j]]
            row_scale[best_index] = row_scale[j]
            det = -det
        det *= a[j, j]

        if j != n - 1 and a[j, j] != 0:
            a[j + 1:, j] /= a[j, j]

    return a, row_index, det


def is_singular(det: complex, a: npy.ndarray) -> bool:
    """
    Test if a determinant is negligible for the given matrix.

    The determinant is compared to the product of the largest magnitude
    in each row of `a`, which bounds it from above.

    Parameters
    ----------
    det : complex
        determinant returned by :func:`lu` and friends
    a : npy.ndarray
        the matrix the determinant was computed from

    Returns
    -------
    singular : bool
    """
    a = npy.asarray(a)
    if a.size == 0:
        return False
    scale = npy.prod(npy.abs(a).max(axis=1))
    return not abs(det) > ALMOST_ZERO * scale


def mldivide(a: npy.ndarray, b: npy.ndarray, overwrite_a: bool = False) -> Tuple[npy.ndarray, complex]:
    """
    Solve A X = B for square A.

    Parameters
    ----------
    a : npy.ndarray
        n x n coefficient matrix
    b : npy.ndarray
        n x o matrix or n-vector
    overwrite_a : bool, optional
        factor `a` in place, by default False

    Returns
    -------
    x : npy.ndarray
        solution, same shape as `b`
    det : complex
        determinant of `a`; when it is zero, `x` contains non-finite
        values

    See Also
    --------
    mrdivide
    minverse
    """
    lu_, row_index, det = lu(a, overwrite_a)
    n = lu_.shape[0]
    b, vector = _complex_rhs(b)
    if b.shape[0] != n:
        raise ValueError('b must have {} rows'.format(n))

    x = b[row_index].copy()
    with npy.errstate(divide='ignore', invalid='ignore'):
        # forward substitution, L Y = P B
        for i in range(n):
            x[i] -= lu_[i, :i] @ x[:i]
        # back substitution, U X = Y
        for i in reversed(range(n)):
            x[i] = (x[i] - lu_[i, i + 1:] @ x[i + 1:]) / lu_[i, i]

    return (x[:, 0] if vector else x), det


def mrdivide(b: npy.ndarray, a: npy.ndarray, overwrite_a: bool = False) -> Tuple[npy.ndarray, complex]:
    """
    Solve X A = B for square A, i.e. find B A^-1.

    Parameters
    ----------
    b : npy.ndarray
        m x n matrix
    a : npy.ndarray
        n x n matrix
    overwrite_a : bool, optional
        factor `a` in place, by default False

    Returns
    -------
    x : npy.ndarray
        m x n solution
    det : complex
        determinant of `a`
    """
    lu_, row_index, det = lu(a, overwrite_a)
    n = lu_.shape[0]
    b = npy.array(b, dtype=complex, ndmin=2)
    if b.shape[1] != n:
        raise ValueError('b must have {} columns'.format(n))

    m = b.shape[0]
    z = npy.zeros((m, n), dtype=complex)
    y = npy.zeros((m, n), dtype=complex)
    with npy.errstate(divide='ignore', invalid='ignore'):
        # Z U = B
        for j in range(n):
            z[:, j] = (b[:, j] - z[:, :j] @ lu_[:j, j]) / lu_[j, j]
        # Y L = Z
        for j in reversed(range(n)):
            y[:, j] = z[:, j] - y[:, j + 1:] @ lu_[j + 1:, j]

    x = npy.empty_like(y)
    x[:, row_index] = y
    return x, det


def minverse(a: npy.ndarray, overwrite_a: bool = False) -> Tuple[npy.ndarray, complex]:
    """
    Invert a square matrix.

    Parameters
    ----------
    a : npy.ndarray
        n x n matrix
    overwrite_a : bool, optional
        factor `a` in place, by default False

    Returns
    -------
    x : npy.ndarray
        inverse of `a`
    det : complex
        determinant of `a`
    """
    a = _complex_matrix(a, overwrite_a)
    n = _check_square(a)
    return mldivide(a, npy.eye(n, dtype=complex), overwrite_a=True)


def mmultiply(a: npy.ndarray, b: npy.ndarray) -> npy.ndarray:
    """
    Matrix product of an m x n and an n x o matrix.
    """
    a = npy.asarray(a)
    b = npy.asarray(b)
    if a.ndim != 2 or b.ndim != 2 or a.shape[1] != b.shape[0]:
        raise ValueError('cannot multiply {} by {}'.format(a.shape, b.shape))
    return a @ b


def qrd(a: npy.ndarray, overwrite_a: bool = False) -> Tuple[npy.ndarray, npy.ndarray]:
    """
    Householder QR decomposition of an m x n matrix.

    Works for square, tall and wide matrices.

    Parameters
    ----------
    a : npy.ndarray
        m x n matrix
    overwrite_a : bool, optional
        decompose `a` in place, by default False

    Returns
    -------
    a : npy.ndarray
        the lower triangle including the diagonal holds the normalized
        Householder vectors v_i; the strict upper triangle holds R above
        its diagonal
    d : npy.ndarray
        the diagonal of R, length min(m, n)

    Note
    ----
    Q is the product (I - 2 v_1 v_1') (I - 2 v_2 v_2') ... where the
    shorter vectors are padded with leading zeros. A column that is
    already zero gives a zero v, i.e. an identity reflection.
    """
    a = _complex_matrix(a, overwrite_a)
    rows, columns = a.shape
    diagonals = min(rows, columns)
    d = npy.zeros(diagonals, dtype=complex)

    for k in range(diagonals):
        subdot = npy.sum(npy.abs(a[k + 1:, k]) ** 2)

        # next diagonal of R, pointing opposite to a[k, k]
        alpha = -npy.exp(1j * npy.angle(a[k, k])) * \
            npy.sqrt(abs(a[k, k]) ** 2 + subdot)
        d[k] = alpha

        a[k, k] -= alpha
        norm = npy.sqrt(abs(a[k, k]) ** 2 + subdot)
        if norm > 0.0:
            a[k:, k] /= norm
        else:
            a[k:, k] = 0.0

        # apply I - 2 v v' to the remaining columns
        v = a[k:, k]
        temp = v.conj() @ a[k:, k + 1:]
        a[k:, k + 1:] -= 2.0 * npy.outer(v, temp)

    return a, d


def _rank(d: npy.ndarray) -> int:
    magnitude = npy.abs(d)
    return int(npy.count_nonzero(npy.isfinite(magnitude) &
                                 (magnitude >= npy.finfo(float).tiny)))


def qr(a: npy.ndarray, overwrite_a: bool = False) -> Tuple[npy.ndarray, npy.ndarray, int]:
    """
    QR decomposition with explicit Q and R.

    Parameters
    ----------
    a : npy.ndarray
        m x n matrix
    overwrite_a : bool, optional
        use `a` as scratch space, by default False

    Returns
    -------
    q : npy.ndarray
        m x m unitary matrix
    r : npy.ndarray
        m x n upper triangular matrix
    rank : int
        number of non-negligible diagonal entries of `r`

    Examples
    --------
    >>> q, r, rank = qr(npy.array([[1, 2], [3, 4], [5, 6]]))
    >>> rank
    2
    """
    a, d = qrd(a, overwrite_a)
    m, n = a.shape
    diagonals = min(m, n)

    q = npy.eye(m, dtype=complex)
    for k in range(diagonals):
        v = a[k:, k]
        s = q[:, k:] @ v
        q[:, k:] -= 2.0 * npy.outer(s, v.conj())

    r = npy.zeros((m, n), dtype=complex)
    for i in range(diagonals):
        r[i, i] = d[i]
        r[i, i + 1:] = a[i, i + 1:]

    return q, r, _rank(d)


def _back_substitute(r: npy.ndarray, d: npy.ndarray, t: npy.ndarray, n: int) -> npy.ndarray:
    """
    Solve the triangular system with diagonal `d` and strict upper
    triangle taken from `r`. Unknowns beyond the diagonal, and those
    with a zero diagonal, are set to zero.
    """
    diagonals = d.shape[0]
    x = npy.zeros((n, t.shape[1]), dtype=complex)
    for i in reversed(range(diagonals)):
        if d[i] == 0:
            continue
        s = r[i, i + 1:diagonals] @ x[i + 1:diagonals]
        x[i] = (t[i] - s) / d[i]
    return x


def qrsolve(a: npy.ndarray, b: npy.ndarray, overwrite_a: bool = False,
            overwrite_b: bool = False) -> npy.ndarray:
    """
    Solve A X = B where A doesn't have to be square.

    If A has more rows than columns (overdetermined), the result
    minimizes the error in a least-squares sense. If A has more columns
    than rows (underdetermined), the excess unknowns are set to exactly
    zero.

    Parameters
    ----------
    a : npy.ndarray
        m x n coefficient matrix
    b : npy.ndarray
        m x o matrix or m-vector
    overwrite_a, overwrite_b : bool, optional
        use the inputs as scratch space, by default False

    Returns
    -------
    x : npy.ndarray
        n x o solution, or an n-vector if `b` is a vector
    """
    a, d = qrd(a, overwrite_a)
    m, n = a.shape
    b, vector = _complex_rhs(b, overwrite_b)
    if b.shape[0] != m:
        raise ValueError('b must have {} rows'.format(m))

    # B <- Q' B, applying the reflections in order
    for i in range(d.shape[0]):
        v = a[i:, i]
        s = v.conj() @ b[i:]
        b[i:] -= 2.0 * npy.outer(v, s)

    x = _back_substitute(a, d, b, n)
    return x[:, 0] if vector else x


def qrsolve2(q: npy.ndarray, r: npy.ndarray, b: npy.ndarray) -> npy.ndarray:
    """
    Solve Q R X = B given a factorization from :func:`qr`.

    Parameters
    ----------
    q : npy.ndarray
        m x m unitary matrix
    r : npy.ndarray
        m x n upper triangular matrix
    b : npy.ndarray
        m x o matrix or m-vector

    Returns
    -------
    x : npy.ndarray
        n x o solution; excess unknowns are zero
    """
    q = npy.asarray(q)
    r = npy.asarray(r)
    m, n = r.shape
    b, vector = _complex_rhs(b)
    if q.shape != (m, m) or b.shape[0] != m:
        raise ValueError('incompatible shapes q {}, r {}, b {}'.format(
            q.shape, r.shape, b.shape))

    diagonals = min(m, n)
    t = q[:, :diagonals].conj().T @ b
    x = _back_substitute(r, npy.diagonal(r)[:diagonals], t, n)
    return x[:, 0] if vector else x


def qrsolve_q(a: npy.ndarray, b: npy.ndarray, overwrite_a: bool = False) -> Tuple[npy.ndarray, npy.ndarray, int]:
    """
    Like :func:`qrsolve`, but also return Q and the rank of A.

    Returns
    -------
    x : npy.ndarray
        n x o solution
    q : npy.ndarray
        m x m unitary matrix
    rank : int
        numeric rank of `a`
    """
    q, r, rank = qr(a, overwrite_a)
    return qrsolve2(q, r, b), q, rank


def spline_calc(x: NumberLike, y: NumberLike) -> npy.ndarray:
    """
    Natural cubic spline coefficients.

    The spline through knots `x`, `y` is

        y(t) = y[i] + c[i, 0] dt + c[i, 1] dt**2 + c[i, 2] dt**3

    with ``dt = t - x[i]`` and ``x[i] <= t <= x[i+1]``. The second
    derivative is zero at both ends.

    Parameters
    ----------
    x : array-like
        strictly increasing knots
    y : array-like
        real or complex values at the knots

    Returns
    -------
    c : npy.ndarray
        (len(x) - 1) x 3 array of coefficients

    Raises
    ------
    ValueError
        if consecutive knots are closer than :data:`~vnacal.constants.MIN_DX`
    """
    x = npy.asarray(x, dtype=float)
    y = npy.asarray(y)
    if x.ndim != 1 or x.shape != y.shape:
        raise ValueError('x and y must be vectors of the same length')
    dtype = npy.result_type(y.dtype, float)
    segments = len(x) - 1
    c = npy.zeros((max(segments, 0), 3), dtype=dtype)
    if segments < 1:
        return c

    h = npy.diff(x)
    if npy.any(h < MIN_DX):
        raise ValueError('x values must increase by at least {}'.format(MIN_DX))
    slope = npy.diff(y) / h
    if segments == 1:
        c[0, 0] = slope[0]
        return c

    # tri-diagonal elimination for the second derivatives
    u = npy.zeros(segments - 1)
    v = npy.zeros(segments - 1, dtype=dtype)
    u[0] = 2.0 * (h[0] + h[1])
    v[0] = 6.0 * (slope[1] - slope[0])
    for i in range(1, segments - 1):
        u[i] = 2.0 * (h[i] + h[i + 1]) - h[i] * h[i] / u[i - 1]
        v[i] = 6.0 * (slope[i + 1] - slope[i]) - h[i] * v[i - 1] / u[i - 1]

    s = npy.zeros(segments + 1, dtype=dtype)
    for i in range(segments - 1, 0, -1):
        s[i] = (v[i - 1] - h[i] * s[i + 1]) / u[i - 1]

    c[:, 0] = slope - h / 3.0 * s[:-1] - h / 6.0 * s[1:]
    c[:, 1] = s[:-1] / 2.0
    c[:, 2] = (s[1:] - s[:-1]) / (6.0 * h)
    return c


def spline_eval(x: NumberLike, y: NumberLike, c: npy.ndarray, xi: NumberLike) -> NumberLike:
    """
    Evaluate a spline from :func:`spline_calc`.

    Outside of the knots the spline is extended linearly along the
    tangent of the boundary segment. A single knot gives a constant.

    Parameters
    ----------
    x, y : array-like
        the knots given to :func:`spline_calc`
    c : npy.ndarray
        coefficients returned by :func:`spline_calc`
    xi : number or array-like
        where to evaluate

    Returns
    -------
    yi : number or npy.ndarray
        same shape as `xi`
    """
    x = npy.asarray(x, dtype=float)
    y = npy.asarray(y)
    n = len(x)
    if n < 1:
        raise ValueError('need at least one knot')
    scalar = npy.ndim(xi) == 0
    xi = npy.atleast_1d(npy.asarray(xi, dtype=float))

    if n == 1:
        yi = npy.full(xi.shape, y[0], dtype=y.dtype)
        return yi[0] if scalar else yi

    idx = npy.clip(npy.searchsorted(x, xi, side='right') - 1, 0, n - 2)
    dx = xi - x[idx]
    yi = y[idx] + dx * (c[idx, 0] + dx * (c[idx, 1] + dx * c[idx, 2]))

    left = xi < x[0]
    yi[left] = c[0, 0] * (xi[left] - x[0]) + y[0]

    right = xi >= x[-1]
    h = x[-1] - x[-2]
    slope = c[-1, 0] + h * (2.0 * c[-1, 1] + 3.0 * c[-1, 2] * h)
    yi[right] = slope * (xi[right] - x[-1]) + y[-1]

    return yi[0] if scalar else yi


def rational_interp(x: npy.ndarray, y: npy.ndarray, d: int = 4, epsilon: float = 1e-9,
                    axis: int = 0, assume_sorted: bool = False) -> Callable:
    """
    Interpolates function using rational polynomials of degree `d`.

    Interpolating function is singular when xi is exactly one of the
    original x points. If xi is closer than epsilon to one of the original points,
    then the value at that points is returned instead. The degree is
    lowered to ``len(x) - 1`` for short tables.

    Implementation is based on [#]_.

    Parameters
    ----------
    x : npy.ndarray
    y : npy.ndarray
        real or complex values
    d : int, optional
        order of the polynomial, by default 4
    epsilon : float, optional
        numerical tolerance, by default 1e-9
    axis : int, optional
        axis to operate on, by default 0
    assume_sorted : bool, optional
        If False, values of x can be in any order and they are sorted first.
        If True, x has to be an array of monotonically increasing values.

    Returns
    -------
    fx : Callable
        Interpolate function

    Raises
    ------
    NotImplementedError
        if axis != 0.

    References
    ------------
    .. [#] M. S. Floater and K. Hormann, "Barycentric rational interpolation with no poles and high rates of approximation," Numer. Math., vol. 107, no. 2, pp. 315-331, Aug. 2007
    """
    if axis != 0:
        raise NotImplementedError("Axis other than 0 is not implemented")

    x = npy.asarray(x, dtype=float)
    y = npy.asarray(y)
    if not assume_sorted:
        sort_indices = npy.argsort(x, axis=axis)
        x = x[sort_indices]
        y = y[sort_indices]

    n = len(x)
    if n == 0:
        raise ValueError('Not enough x-axis points')
    d = min(d, n - 1)

    w = npy.zeros(n)
    # Scaling to give close to 1 weights
    hd = (x[n//2] - x[n//2-1])**d if n > 1 else 1.0
    for k in range(n):
        for i in range(max(0, k-d), min(k+1, n-d)):
            p = hd
            for j in range(i, min(n, i+d+1)):
                if j == k:
                    continue
                p *= 1/(x[k] - x[j])
            if i % 2 == 1:
                w[k] -= p
            else:
                w[k] += p

    def fx(xi):
        scalar = npy.ndim(xi) == 0
        xi = npy.atleast_1d(npy.asarray(xi, dtype=float))
        # The barycentric form divides by zero at the knots; use the knot
        # value for points within epsilon of one.
        idx = npy.searchsorted(x, xi)
        idx[idx == n] = n - 1
        nearest_idx = npy.where(npy.abs(x[idx] - xi) < epsilon)[0]
        nearest_value = y[idx[nearest_idx]]

        with npy.errstate(divide='ignore', invalid='ignore'):
            v = sum(y[i]*w[i]/(xi - x[i]) for i in range(n))\
                /sum(w[i]/(xi - x[i]) for i in range(n))

        v = npy.asarray(v, dtype=npy.result_type(y.dtype, float))
        for e, i in enumerate(nearest_idx):
            v[i] = nearest_value[e]

        return v[0] if scalar else v

    return fx
