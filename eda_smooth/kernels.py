"""
Distance kernels and robustness weights for local regression.

A kernel maps normalized distances ``u`` in ``[0, 1]`` to non-negative,
non-increasing weights. Inputs are clamped to ``[0, 1]`` before evaluation.
"""
from functools import partial

import numpy as np
from scipy.stats import norm

from .exceptions import InvalidConfiguration

# Distances are multiplied by this before the normal density is evaluated,
# so the weight at the edge of the neighborhood is exp(-4.5) ~ 0.011.
GAUSSIAN_SCALE = 3.0

_NORM_PEAK = norm.pdf(0)  # 0.3989423...


def _clamp(u):
    return np.clip(np.asarray(u, dtype=float), 0, 1)


def gaussian(u, scale=GAUSSIAN_SCALE):
    """
    Standard normal density at ``scale * u``, rescaled to peak at 1.
    """
    return norm.pdf(scale * _clamp(u)) / _NORM_PEAK


def gaussian_kernel(scale=GAUSSIAN_SCALE):
    """
    Return a gaussian kernel with a fixed distance scale.

    Parameters
    ----------
    scale : float
        Multiplier applied to normalized distances. Larger values shrink
        the effective window.

    Returns
    -------
    callable
    """
    if not np.isfinite(scale) or scale <= 0:
        raise InvalidConfiguration(f"Kernel scale must be positive, got {scale}.")
    return partial(gaussian, scale=scale)


def tricube(u):
    """
    Cleveland's tricube kernel, (1 - u^3)^3.

    The weight is 0 at ``u = 1``, so the farthest neighbor of a
    neighborhood does not contribute to the local fit.
    """
    u = _clamp(u)
    return (1 - u**3)**3


def uniform(u):
    return np.ones_like(_clamp(u))


KERNELS = {
    'gaussian': gaussian,
    'tricube': tricube,
    'uniform': uniform,
}


def resolve_kernel(kernel):
    """
    Look up a kernel by name, or pass a callable through unchanged.
    """
    if callable(kernel):
        return kernel
    try:
        return KERNELS[kernel]
    except (KeyError, TypeError):
        raise InvalidConfiguration(
            f"Unknown kernel {kernel!r}; expected one of {sorted(KERNELS)} or a callable."
        ) from None


def bisquare(u):
    """
    Tukey's bisquare, (1 - u^2)^2 for |u| < 1 and 0 otherwise.
    """
    u = np.abs(np.asarray(u, dtype=float))
    return np.where(u < 1, (1 - u**2)**2, 0.0)


def robustness_weights(residuals, cutoff=6.0, tol=1e-12):
    """
    Bisquare weights of residuals scaled by ``cutoff`` times their median
    absolute value.

    Parameters
    ----------
    residuals : np.ndarray
        Residuals from the previous pass.
    cutoff : float
        Residuals beyond ``cutoff * median(|r|)`` get weight zero.
    tol : float
        Relative tolerance below which the median absolute residual is
        treated as zero.

    Returns
    -------
    np.ndarray or None
        The weights, or None when the residual scale is zero and no
        meaningful reweighting is possible.
    """
    r = np.abs(np.asarray(residuals, dtype=float))
    if r.size == 0:
        return None
    s = np.median(r)
    if s <= tol * max(r.max(), 1.0):
        return None
    return bisquare(r / (cutoff * s))
