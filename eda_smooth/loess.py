from dataclasses import dataclass
import math
import warnings

import numpy as np
from sklearn.base import BaseEstimator

from .base import Dataset, FittedCurve
from .exceptions import DegenerateNeighborhood, InsufficientData, InvalidConfiguration
from .kernels import resolve_kernel, robustness_weights

# products within a few ulps of an integer are rounding error, not excess
_CEIL_RTOL = 4 * np.finfo(float).eps


@dataclass
class Neighborhood:
    """
    The samples contributing to the local fit at one evaluation point.

    Attributes
    ----------
    x0 : float
        The evaluation point.
    indices : np.ndarray
        Indices into the dataset, ordered by distance to `x0` with ties
        kept in dataset order.
    distances : np.ndarray
        ``|x_i - x0|`` for each selected sample.
    d_max : float
        Distance to the farthest selected sample.
    u : np.ndarray
        Normalized distances in ``[0, 1]``.
    weights : np.ndarray
        Kernel weights (all ones when ``d_max == 0``).
    """
    x0: float
    indices: np.ndarray
    distances: np.ndarray
    d_max: float
    u: np.ndarray
    weights: np.ndarray

    @property
    def size(self):
        return len(self.indices)


def _as_dataset(data):
    if isinstance(data, Dataset):
        return data
    return Dataset(*data)


def _as_points(points):
    points = np.atleast_1d(np.asarray(points, dtype=float)).ravel()
    if not np.all(np.isfinite(points)):
        raise ValueError("Evaluation points must be finite.")
    return points


@dataclass
class LoessSmoother(BaseEstimator):
    """
    Locally weighted polynomial regression (loess).

    At each evaluation point the ``ceil(alpha * n)`` nearest samples are
    weighted by a distance kernel and a weighted least squares polynomial
    of the given degree is fitted to them; the smooth is that polynomial
    evaluated at the point.

    The smoother keeps no state between calls: `fit` is a pure function
    of the dataset and the evaluation points.

    Parameters
    ----------
    alpha : float, optional
        Fraction of the data in each neighborhood, in ``(0, 1]``.
        Default is 0.75.
    degree : int, optional
        Degree of the local polynomial: 0, 1 or 2. Default is 1.
    kernel : str or callable, optional
        One of ``'gaussian'``, ``'tricube'``, ``'uniform'``, or a callable
        mapping normalized distances in ``[0, 1]`` to non-increasing,
        non-negative weights. Default is ``'gaussian'``.
    robust_iterations : int, optional
        Number of bisquare reweighting passes used to down-weight samples
        with large residuals. Default is 0.
    """

    alpha: float = 0.75
    degree: int = 1
    kernel: object = 'gaussian'
    robust_iterations: int = 0

    def __post_init__(self):
        self._check_config()

    @classmethod
    def symmetric(cls, alpha=0.75, degree=1, iterations=4, kernel='gaussian'):
        """
        Smoother for the "symmetric" family: the gaussian fit followed by
        `iterations` robust reweighting passes.
        """
        return cls(alpha=alpha, degree=degree, kernel=kernel,
                   robust_iterations=iterations)

    def _check_config(self):
        try:
            alpha = float(self.alpha)
        except (TypeError, ValueError):
            raise InvalidConfiguration(f"alpha must be a number, got {self.alpha!r}.") from None
        if isinstance(self.alpha, bool) or not 0 < alpha <= 1:
            raise InvalidConfiguration(f"alpha must be in (0, 1], got {self.alpha!r}.")
        if (isinstance(self.degree, bool) or
                not isinstance(self.degree, (int, np.integer)) or
                self.degree not in (0, 1, 2)):
            raise InvalidConfiguration(f"degree must be 0, 1 or 2, got {self.degree!r}.")
        if (isinstance(self.robust_iterations, bool) or
                not isinstance(self.robust_iterations, (int, np.integer)) or
                self.robust_iterations < 0):
            raise InvalidConfiguration(
                f"robust_iterations must be a non-negative integer, got {self.robust_iterations!r}."
            )
        return resolve_kernel(self.kernel)

    def neighborhood_size(self, n):
        """
        Number of samples in each neighborhood for a dataset of size `n`,
        ``ceil(alpha * n)`` clamped to ``[1, n]``. A product that is only a
        few ulps above an integer (``0.07 * 100``) rounds down to it.
        """
        prod = float(self.alpha) * n
        k = math.ceil(prod)
        if k > 1 and math.isclose(prod, k - 1, rel_tol=_CEIL_RTOL, abs_tol=0):
            k -= 1
        return min(max(k, 1), n)

    def _prepare(self, dataset):
        kernel = self._check_config()
        dataset = _as_dataset(dataset)
        n = dataset.n
        p = self.degree + 1
        if n < p:
            raise InsufficientData(
                f"A degree {self.degree} fit needs at least {p} samples, got {n}."
            )
        k = self.neighborhood_size(n)
        if k < p:
            raise InsufficientData(
                f"alpha={self.alpha} selects {k} of {n} samples; "
                f"a degree {self.degree} fit needs at least {p}."
            )
        return dataset, k, kernel

    def _select(self, x, x0, k, kernel):
        dists = np.abs(x - x0)
        idx = np.argsort(dists, kind='stable')[:k]
        d = dists[idx]
        d_max = float(d[-1])
        if d_max > 0:
            u = np.clip(d / d_max, 0, 1)
            weights = np.broadcast_to(np.asarray(kernel(u), dtype=float), u.shape).copy()
            if not np.all(np.isfinite(weights)) or np.any(weights < 0):
                raise InvalidConfiguration(
                    f"Kernel {self.kernel!r} returned negative or non-finite weights."
                )
        else:
            u = np.zeros(k)
            weights = np.ones(k)
        return Neighborhood(float(x0), idx, d, d_max, u, weights)

    def neighborhood(self, dataset, x0):
        """
        The neighborhood used for the local fit at `x0`.

        Parameters
        ----------
        dataset : Dataset or tuple
            The samples, or ``(x, y)`` / ``(x, y, w)`` arrays.
        x0 : float
            Evaluation point.

        Returns
        -------
        Neighborhood
        """
        dataset, k, kernel = self._prepare(dataset)
        return self._select(dataset.x, _as_points(x0)[0], k, kernel)

    def _local_coef(self, dataset, hood, rw):
        """
        Local polynomial coefficients in powers of ``(x - x0)``, and whether
        the fit was degenerate.
        """
        p = self.degree + 1
        idx = hood.indices
        y = dataset.y[idx]
        w = hood.weights * dataset.w[idx] * rw[idx]
        coef = np.zeros(p)

        if w.sum() <= 0:
            # every neighbor was rejected; ignore the robustness weights
            w = hood.weights * dataset.w[idx]
            if w.sum() <= 0:
                w = np.ones(len(idx))
            coef[0] = np.average(y, weights=w)
            return coef, True

        if self.degree == 0:
            coef[0] = np.average(y, weights=w)
            return coef, False

        scale = hood.d_max if hood.d_max > 0 else 1.0
        X = np.vander((dataset.x[idx] - hood.x0) / scale, p, increasing=True)
        sqrt_w = np.sqrt(w)
        beta, _, rank, _ = np.linalg.lstsq(X * sqrt_w[:, None], y * sqrt_w, rcond=None)
        if rank < p:
            coef[0] = np.average(y, weights=w)
            return coef, True
        return beta / scale ** np.arange(p), False

    def _evaluate(self, dataset, points, k, kernel, rw, order=0):
        values = np.empty(len(points))
        degenerate = np.zeros(len(points), dtype=bool)
        for i, x0 in enumerate(points):
            hood = self._select(dataset.x, x0, k, kernel)
            coef, degenerate[i] = self._local_coef(dataset, hood, rw)
            if order <= self.degree:
                values[i] = coef[order] * math.factorial(order)
            else:
                values[i] = 0.0
        return values, degenerate

    def _robustness_weights(self, dataset, k, kernel):
        rw = np.ones(dataset.n)
        for _ in range(self.robust_iterations):
            fitted, _ = self._evaluate(dataset, dataset.x, k, kernel, rw)
            new_rw = robustness_weights(dataset.y - fitted)
            if new_rw is None:
                break
            rw = new_rw
        return rw

    def fit(self, dataset, eval_points=None):
        """
        Smooth a dataset.

        Parameters
        ----------
        dataset : Dataset or tuple
            The samples, or ``(x, y)`` / ``(x, y, w)`` arrays.
        eval_points : array-like, optional
            Where to evaluate the smooth. Points outside the range of the
            data are allowed. Defaults to the dataset's x's.

        Returns
        -------
        FittedCurve
            One entry per evaluation point, in the order given, plus the
            fitted values and residuals at the dataset's x's.

        Raises
        ------
        InvalidConfiguration
            If the smoother's parameters are out of range.
        InsufficientData
            If the dataset (or the neighborhood size) is too small for
            the local polynomial degree.
        """
        dataset, k, kernel = self._prepare(dataset)
        rw = self._robustness_weights(dataset, k, kernel)
        fitted, fitted_degenerate = self._evaluate(dataset, dataset.x, k, kernel, rw)

        if eval_points is None:
            points = dataset.x.copy()
            y_hat, degenerate = fitted.copy(), fitted_degenerate.copy()
        else:
            points = _as_points(eval_points)
            y_hat, degenerate = self._evaluate(dataset, points, k, kernel, rw)

        n_bad = int(degenerate.sum())
        if n_bad:
            warnings.warn(
                f"{n_bad} of {len(points)} evaluation points had a rank-deficient "
                "neighborhood; fell back to a weighted mean.",
                DegenerateNeighborhood,
                stacklevel=2,
            )

        return FittedCurve(x=points,
                           y_hat=y_hat,
                           degenerate=degenerate,
                           fitted=fitted,
                           residuals=dataset.y - fitted,
                           robustness_weights=rw)

    def derivative(self, dataset, eval_points=None, order=1):
        """
        Derivative of the local polynomials at the evaluation points.

        Parameters
        ----------
        dataset : Dataset or tuple
            The samples.
        eval_points : array-like, optional
            Defaults to the dataset's x's.
        order : int, optional
            Order of the derivative (default is 1). Orders above the
            local degree are identically zero; order 0 is the smooth.

        Returns
        -------
        np.ndarray
        """
        if isinstance(order, bool) or not isinstance(order, (int, np.integer)) or order < 0:
            raise ValueError(f"order must be a non-negative integer, got {order!r}.")
        dataset, k, kernel = self._prepare(dataset)
        rw = self._robustness_weights(dataset, k, kernel)
        points = dataset.x if eval_points is None else _as_points(eval_points)
        values, _ = self._evaluate(dataset, points, k, kernel, rw, order=order)
        return values

    def _linear_fit(self, dataset, fitted):
        X = np.vander(dataset.x, 2)
        sqrt_w = np.sqrt(dataset.w)
        beta = np.linalg.lstsq(X * sqrt_w[:, None], fitted * sqrt_w, rcond=None)[0]
        return beta[1], beta[0]

    def linear_part(self, dataset):
        """
        Weighted straight-line fit to the smoothed values.

        Returns
        -------
        intercept, slope : float
        """
        dataset = _as_dataset(dataset)
        return self._linear_fit(dataset, self.fit(dataset).fitted)

    def nonlinear_part(self, dataset):
        """
        The smooth at the dataset's x's minus its linear part.
        """
        dataset = _as_dataset(dataset)
        fitted = self.fit(dataset).fitted
        intercept, slope = self._linear_fit(dataset, fitted)
        return fitted - (intercept + slope * dataset.x)


def loess(x, y, eval_points=None, alpha=0.75, degree=1, kernel='gaussian',
          robust_iterations=0, w=None):
    """
    Smooth ``y`` against ``x`` in one call.

    See `LoessSmoother` for the parameters.

    Examples
    --------
    >>> import numpy as np
    >>> from eda_smooth import loess
    >>> x = np.arange(10.)
    >>> curve = loess(x, 2 * x + 1, alpha=0.5)
    >>> np.allclose(curve.y_hat, 2 * x + 1)
    True
    """
    smoother = LoessSmoother(alpha=alpha, degree=degree, kernel=kernel,
                             robust_iterations=robust_iterations)
    return smoother.fit(Dataset(x, y, w), eval_points)
