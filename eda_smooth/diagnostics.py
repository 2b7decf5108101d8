"""Residual diagnostics for comparing loess fits."""
import numpy as np
import pandas as pd

from .loess import _as_dataset


def residual_summary(curve):
    """Descriptive statistics of a fitted curve's residuals."""
    r = pd.Series(curve.residuals, name='residual')
    q25, q75 = r.quantile(0.25), r.quantile(0.75)
    return pd.Series({
        "count": len(r),
        "mean": r.mean(),
        "std": r.std(),
        "min": r.min(),
        "q25": q25,
        "median": r.median(),
        "q75": q75,
        "max": r.max(),
        "iqr": q75 - q25,
        "mean_abs": r.abs().mean(),
    }, name='residual')


def spread_location(curve):
    """
    Fitted values and root absolute residuals, the coordinates of a
    spread-location plot.
    """
    return curve.fitted.copy(), np.sqrt(np.abs(curve.residuals))


def residual_fit_spread(curve, probs=None):
    """
    Quantiles of the centered fitted values and of the residuals.

    Plotted side by side against the f-values they show how much of the
    variation in the response the smooth accounts for.

    Parameters
    ----------
    curve : FittedCurve
        A fit evaluated at the dataset's x's.
    probs : array-like, optional
        f-values in ``[0, 1]``. Defaults to ``(i - 0.5) / n``.

    Returns
    -------
    pd.DataFrame
        Columns ``f``, ``fitted`` and ``residual``.
    """
    n = len(curve.fitted)
    if probs is None:
        probs = (np.arange(1, n + 1) - 0.5) / n
    probs = np.asarray(probs, dtype=float)
    if np.any((probs < 0) | (probs > 1)):
        raise ValueError("probs must lie in [0, 1].")
    centered = curve.fitted - curve.fitted.mean()
    return pd.DataFrame({
        "f": probs,
        "fitted": np.quantile(centered, probs),
        "residual": np.quantile(curve.residuals, probs),
    })


def compare_smoothers(dataset, smoothers):
    """
    Fit several smoother configurations and tabulate their residuals.

    Parameters
    ----------
    dataset : Dataset or tuple
        The samples.
    smoothers : dict
        Maps a label to a `LoessSmoother`.

    Returns
    -------
    pd.DataFrame
        One row per label with the smoother's parameters, the residual
        standard deviation, mean absolute residual and IQR, and the number
        of degenerate points.
    """
    dataset = _as_dataset(dataset)
    rows = []
    for label, smoother in smoothers.items():
        curve = smoother.fit(dataset)
        summary = residual_summary(curve)
        row = {"label": label}
        row.update(smoother.get_params(deep=False))
        row.update({
            "residual_std": summary["std"],
            "mean_abs_residual": summary["mean_abs"],
            "residual_iqr": summary["iqr"],
            "n_degenerate": curve.n_degenerate,
        })
        rows.append(row)
    return pd.DataFrame(rows).set_index("label")
