"""Adaptive rational approximation by the AAA algorithm.

Computes barycentric rational approximants either over a finite set of sample
points (:func:`aaa`) or over the interval [-1, 1] (:func:`aaa_continuum`).

For more information, see the paper

  | The AAA Algorithm for Rational Approximation
  | Yuji Nakatsukasa, Olivier Sete, and Lloyd N. Trefethen
  | SIAM Journal on Scientific Computing 2018 40:3, A1494-A1522
  | https://doi.org/10.1137/16M1106122
"""

import logging
import warnings
from collections import namedtuple

import numpy as np
import scipy.linalg

__version__ = '1.0.0'

logger = logging.getLogger(__name__)

IterationRecord = namedtuple('IterationRecord',
        'nodes values weights error active poles nbad',
        defaults=(None, None, 0))
IterationRecord.__doc__ = """Snapshot of one AAA iteration.

* **nodes**, **values**, **weights**: the barycentric data of the candidate
* **error**: the maximum residual over the test points
* **active**: the sample indices used as nodes (discrete mode only)
* **poles**: the poles of the candidate (continuum mode only)
* **nbad**: the number of real poles inside [-1, 1] (continuum mode only)
"""

ConvergenceStats = namedtuple('ConvergenceStats', 'best errors iterations reason')
ConvergenceStats.__doc__ = """Convergence history of an AAA run.

* **best** (int): index into **iterations** of the returned approximant
* **errors** (list): the maximum error per iteration; in discrete mode the first
  entry is the deviation of the initial node from the mean
* **iterations** (list): one :class:`IterationRecord` per iteration
* **reason** (str): why the iteration stopped, one of ``'tolerance'``,
  ``'max_degree'``, ``'stagnation'`` or ``'rank'``
"""

def _float_type(float_type, *arrays):
    """The real floating point type of the computation.

    Defaults to the promotion of the data types, like numpy arithmetic does.
    """
    if float_type is None:
        return np.finfo(np.result_type(*arrays, 1.0)).dtype
    float_type = np.dtype(float_type)
    if not np.issubdtype(float_type, np.floating):
        raise ValueError('float_type must be a real floating point type')
    return float_type

def _as_float_type(a, float_type):
    """Convert `a` to `float_type`, or its complex counterpart for complex data."""
    if np.iscomplexobj(a):
        return a.astype(np.promote_types(float_type, np.complex64))
    return a.astype(float_type)

def _cauchy(x, s):
    """Cauchy matrix ``1 / (x_i - s_j)``.

    Exactly coinciding points get a huge finite entry instead of infinity.
    """
    D = np.subtract.outer(x, s)
    zero = (D == 0)
    D[zero] = 1
    C = 1.0 / D
    C[zero] = 1 / np.finfo(C.real.dtype).eps
    return C

def _smallest_singular_vector(A):
    """Right singular vector of `A` belonging to its smallest singular value."""
    if A.shape[0] == 0:
        # some LAPACK implementations have trouble with size 0 matrices
        result = np.zeros(A.shape[1], dtype=A.dtype)
        result[0] = 1.0
        return result
    # with fewer rows than columns, only the full Vh contains the null space
    _, _, Vh = np.linalg.svd(A, full_matrices=A.shape[0] < A.shape[1])
    return Vh[-1, :].conj()

def _stop_reason(besterr, fmax, tol, num_nodes, max_degree, since_best, stagnation):
    if besterr <= tol * fmax:
        return 'tolerance'
    if num_nodes >= max_degree + 1:
        return 'max_degree'
    if since_best >= stagnation and besterr < 1e-2 * fmax:
        return 'stagnation'
    return None

def _count_bad_poles(poles, eps=np.finfo(float).eps):
    """Count the real poles lying in [-1, 1]."""
    poles = np.asanyarray(poles)
    tol = 1000 * eps * np.maximum(1.0, abs(poles))
    bad = (abs(poles.imag) <= tol) & (abs(poles) <= 1)
    return int(np.count_nonzero(bad))

def _eig_pencil(top, w, z):
    # finite eigenvalues of the arrowhead pencil [[0, top], [1, diag(z)]] - lambda*B;
    # nodes with zero weight are removable points and are left out
    nonzero = (w != 0)
    top, z = top[nonzero], z[nonzero]
    m = len(z)
    B = np.eye(m + 1)
    B[0,0] = 0
    E = np.zeros((m + 1, m + 1), dtype=np.result_type(top, z, 1.0))
    E[0, 1:] = top
    E[1:, 0] = 1
    np.fill_diagonal(E[1:, 1:], z)
    evals = scipy.linalg.eigvals(E, B)
    return np.real_if_close(evals[np.isfinite(evals)])

class BarycentricRational:
    """A class representing a rational function in barycentric representation.

    Args:
        z (array): the interpolation nodes
        f (array): the values at the interpolation nodes
        w (array): the weights
        stats (ConvergenceStats): optional convergence history of the
            algorithm which produced this function

    The rational function has the interpolation property r(z_j) = f_j at all
    nodes where w_j != 0. Numerator and denominator both have degree at most
    the number of nodes minus one.
    """
    def __init__(self, z, f, w, stats=None):
        if not (len(z) == len(f) == len(w)):
            raise ValueError('arrays z, f, and w must have the same length')
        self.nodes = np.asanyarray(z)
        self.values = np.asanyarray(f)
        self.weights = np.asanyarray(w)
        self.stats = stats

    def __call__(self, x):
        """Evaluate rational function at all points of `x`."""
        zj,fj,wj = self.nodes, self.values, self.weights

        xv = np.asanyarray(x).ravel()
        dtype = np.result_type(xv, zj, fj, wj, 1.0)
        if len(xv) == 0:
            return np.empty(np.shape(x), dtype=dtype)
        D = np.subtract.outer(xv, zj).astype(dtype)
        # find indices where x is exactly on a node
        (node_xi, node_zi) = np.nonzero(D == 0)
        D[node_xi, node_zi] = 1

        with np.errstate(divide='ignore', invalid='ignore'):
            C = 1.0 / D
            r = C.dot(wj * fj) / C.dot(wj)
        r[node_xi] = fj[node_zi]
        infs = np.isinf(xv)
        if np.any(infs):
            r[infs] = self.gain()

        if np.isscalar(x):
            return r[0]
        else:
            return r.reshape(np.shape(x))

    def degree(self):
        """The degree of both the numerator and the denominator, that is, the
        number of interpolation nodes minus one.
        """
        return len(self.nodes) - 1

    def poles(self):
        """Return the poles of the rational function.

        They are the finite eigenvalues of a generalized eigenvalue problem of
        size one larger than the number of nodes with nonzero weight; nodes
        with zero weight are removable singularities, not poles. The result
        is real if all imaginary parts are negligible (``np.real_if_close``).
        """
        return _eig_pencil(self.weights, self.weights, self.nodes)

    def polres(self):
        """Return the poles and residues of the rational function."""
        zj,fj,wj = self.nodes, self.values, self.weights
        pol = self.poles()

        # compute residues via formula for simple poles of quotients of analytic functions
        with np.errstate(divide='ignore', invalid='ignore'):
            C_pol = 1.0 / np.subtract.outer(pol, zj)
            N_pol = C_pol.dot(fj*wj)
            Ddiff_pol = (-C_pol**2).dot(wj)
            res = N_pol / Ddiff_pol

        return pol, res

    def zeros(self):
        """Return the zeros of the rational function.

        Like :meth:`poles`, nodes with zero weight are left out and the result
        is real if all imaginary parts are negligible.
        """
        return _eig_pencil(self.weights * self.values, self.weights, self.nodes)

    def gain(self):
        """The value of the rational function at infinity."""
        return np.sum(self.values * self.weights) / np.sum(self.weights)

    def __repr__(self):
        return 'BarycentricRational(degree={0})'.format(self.degree())

################################################################################

def refine(nodes, n):
    """Refine a set of points on the real line.

    The `nodes` are sorted, and `n` equally spaced points are placed strictly
    inside each gap between two consecutive nodes. The result is sorted and
    has ``n * (len(nodes) - 1)`` entries; the nodes themselves are not part of
    it.
    """
    x = np.sort(np.asanyarray(nodes))
    d = (np.arange(1, n + 1) / (n + 1)).astype(np.result_type(x, 1.0))
    return (x[:-1, None] + np.diff(x)[:, None] * d[None, :]).ravel()

def aaa(z, y, max_degree=150, tol=None, stagnation=10, float_type=None,
        stats=False):
    """Compute a rational approximation of the values `y` over the sample
    points `z` using the AAA algorithm.

    Arguments:
        z (array): the sample points (real or complex). Since the algorithm
            chooses its nodes adaptively, a fine sampling of the region of
            interest is preferable.
        y: the values at the sample points; can be given as an array or as a
            function which is evaluated on ``z``.
        max_degree (int): the maximum degree of numerator and denominator
        tol (float): the relative tolerance; defaults to ``1000*eps`` for
            `float_type`
        stagnation (int): stop once the best error has not improved for this
            many iterations, provided it is already below 1% of ``max|y|``
        float_type: the real floating point type of the computation, e.g.
            ``np.float32``; complex data uses the matching complex type.
            Defaults to the promotion of the types of `z` and `y`.
        stats (bool): whether to also return the convergence history

    Returns:
        BarycentricRational: the approximation with the smallest error found.
        If `stats` is True, a pair containing the approximation and a
        :class:`ConvergenceStats` object.

    The degree grows by one per iteration and never exceeds ``(m - 1) // 2``
    for `m` samples, since beyond that the remaining test points cannot
    determine the weights. If the tolerance is never met, the best
    approximation found is returned; inspect the stats to detect this.

    Example:
        >>> z = 1j * np.linspace(-10, 10, 500)
        >>> r = aaa(z, np.exp(z))
        >>> abs(r(1j * np.pi / 2) - 1j) < 1e-10
        True
    """
    z = np.asanyarray(z).ravel()
    if callable(y):
        # allow functions to be passed
        y = y(z)
    y = np.asanyarray(y).ravel()

    m = len(z)
    if len(y) != m:
        raise ValueError('arrays z and y must have the same length')
    if m < 2:
        raise ValueError('at least two sample points are required')
    if max_degree < 0:
        raise ValueError('max_degree must be nonnegative')
    if stagnation < 1:
        raise ValueError('stagnation must be a positive integer')
    float_type = _float_type(float_type, z, y)
    z, y = _as_float_type(z, float_type), _as_float_type(y, float_type)
    if tol is None:
        tol = 1000 * np.finfo(float_type).eps

    fmax = np.linalg.norm(y, np.inf)    # for scaling
    # maximum number of columns ever filled
    ncols = min(max_degree + 1, (m + 1) // 2)

    # Cauchy matrix, Loewner matrix and residual, filled in place
    C = np.zeros((m, ncols), dtype=np.result_type(z, 1.0))
    L = np.zeros((m, ncols), dtype=np.result_type(z, y, 1.0))
    R = np.zeros(m, dtype=L.dtype)

    deviation = abs(y - np.mean(y))
    idx = int(np.argmax(deviation))
    errors = [deviation[idx]]

    # node order determines the column order; test rows are kept sorted
    node_index = [idx]
    is_test = np.ones(m, dtype=bool)
    is_test[idx] = False

    records = []
    best, besterr = None, np.inf

    n = 0
    while True:
        n += 1
        test = np.flatnonzero(is_test)
        newest = node_index[-1]
        C[test, n-1] = _cauchy(z[test], z[newest:newest+1])[:, 0]
        L[test, n-1] = (y[test] - y[newest]) * C[test, n-1]

        w = _smallest_singular_vector(L[test, :n])
        fnodes = y[node_index]

        CC = C[test, :n]
        with np.errstate(divide='ignore', invalid='ignore'):
            R[test] = y[test] - CC.dot(w * fnodes) / CC.dot(w)
        err = np.linalg.norm(R, np.inf)
        errors.append(err)
        records.append(IterationRecord(
            nodes=z[node_index], values=fnodes, weights=w, error=err,
            active=tuple(node_index)))
        logger.debug('AAA degree %d: error %.3e', n - 1, err)

        if err < besterr:
            best, besterr = len(records) - 1, err

        since_best = len(records) - 1 - best if best is not None else 0
        reason = _stop_reason(besterr, fmax, tol, n, max_degree,
                since_best, stagnation)
        if reason is None and n >= (m + 1) // 2:
            reason = 'rank'
        if reason is not None:
            break

        # move the test point with the largest residual to the nodes
        j = int(np.argmax(abs(R)))
        node_index.append(j)
        is_test[j] = False
        R[j] = 0

    if best is None:
        # no finite error was ever recorded
        best = len(records) - 1
    logger.info('AAA stopped (%s) after %d iterations; best degree %d, error %.3e',
            reason, len(records), len(records[best].nodes) - 1, records[best].error)

    rec = records[best]
    info = ConvergenceStats(best, errors, records, reason) if stats else None
    r = BarycentricRational(rec.nodes, rec.values, rec.weights, stats=info)
    return (r, info) if stats else r

def _sample(f, x):
    fx = np.asanyarray(f(x))
    if fx.shape != x.shape:
        # constant functions may return a scalar
        fx = np.broadcast_to(fx, x.shape).copy()
    return fx

def aaa_continuum(f, max_degree=150, tol=None, stagnation=10, refinement=3,
        float_type=None, stats=False):
    """Compute a rational approximation of the function `f` over the interval
    [-1, 1] using the continuum AAA algorithm.

    Arguments:
        f: the function to be approximated. Must be able to operate on arrays
            of real arguments; may return real or complex values.
        max_degree (int): the maximum degree of numerator and denominator
        tol (float): the relative tolerance; defaults to ``1000*eps`` for
            `float_type`
        stagnation (int): stop once the best error has not improved for this
            many iterations, provided it is already below 1% of ``max|f|``
        refinement (int): minimum number of test points placed between two
            neighboring nodes
        float_type: the real floating point type of the nodes, test points
            and weights, e.g. ``np.float32``. Defaults to the type of the
            values of `f`, promoted to floating point.
        stats (bool): whether to also return the convergence history

    Returns:
        BarycentricRational: the approximation with the smallest error among
        those without poles in [-1, 1], with nodes sorted increasingly. If
        `stats` is True, a pair containing the approximation and a
        :class:`ConvergenceStats` object.

    Instead of a fixed sample set, the test points are regenerated in every
    iteration by :func:`refine` from the current nodes, starting from the
    endpoints -1 and 1. Candidates with real poles in [-1, 1] are recorded
    but never returned, unless no candidate without such poles was found at
    all, in which case a ``RuntimeWarning`` is issued.
    """
    if max_degree < 1:
        raise ValueError('max_degree must be at least 1')
    if stagnation < 1:
        raise ValueError('stagnation must be a positive integer')
    if refinement < 1:
        raise ValueError('refinement must be a positive integer')

    if float_type is None:
        float_type = _float_type(None, _sample(f, np.array([11 / 23])))
    else:
        float_type = _float_type(float_type)
    eps = np.finfo(float_type).eps
    if tol is None:
        tol = 1000 * eps

    S = list(np.array([-1, 1], dtype=float_type))     # initial nodes
    fS = list(_as_float_type(_sample(f, np.array(S)), float_type))

    records = []
    best, besterr = None, np.inf

    while True:
        s, fs = np.array(S), np.array(fS)
        m = len(s)
        X = refine(s, max(refinement, 16 - m))      # test points
        fX = _as_float_type(_sample(f, X), float_type)

        C = _cauchy(X, s)
        L = np.subtract.outer(fX, fs) * C
        w = _smallest_singular_vector(L)
        with np.errstate(divide='ignore', invalid='ignore'):
            R = fX - C.dot(w * fs) / C.dot(w)
        err = np.linalg.norm(R, np.inf)

        pol = BarycentricRational(s, fs, w).poles()
        nbad = _count_bad_poles(pol, eps)
        records.append(IterationRecord(
            nodes=s, values=fs, weights=w, error=err, poles=pol, nbad=nbad))
        logger.debug('AAA degree %d: error %.3e, %d bad poles', m - 1, err, nbad)

        # only candidates without poles in the interval may become the best
        if nbad == 0 and err < besterr:
            best, besterr = len(records) - 1, err

        fmax = max(np.linalg.norm(fs, np.inf), np.linalg.norm(fX, np.inf))
        since_best = len(records) - 1 - best if best is not None else 0
        reason = _stop_reason(besterr, fmax, tol, m, max_degree,
                since_best, stagnation)
        if reason is not None:
            break

        j = int(np.argmax(abs(R)))
        S.append(X[j])
        fS.append(fX[j])

    if best is None:
        warnings.warn('AAA found no approximation without poles in [-1, 1]; '
                'returning the one with the smallest error', RuntimeWarning)
        best = int(np.nanargmin([rec.error for rec in records]))
    logger.info('AAA stopped (%s) after %d iterations; best degree %d, error %.3e',
            reason, len(records), len(records[best].nodes) - 1, records[best].error)

    rec = records[best]
    idx = np.argsort(rec.nodes, kind='stable')
    x, y, w = rec.nodes[idx], rec.values[idx], rec.weights[idx]
    if np.all(np.isreal(y)) and np.all(np.isreal(w)):
        y, w = y.real, w.real

    info = None
    if stats:
        info = ConvergenceStats(best, [r.error for r in records], records, reason)
    r = BarycentricRational(x, y, w, stats=info)
    return (r, info) if stats else r
