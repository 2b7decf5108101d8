from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np


def _frozen_array(values, name):
    arr = np.array(values, dtype=float).ravel()
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"`{name}` must contain only finite values.")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class Dataset:
    """
    An immutable scatter of (x, y) samples.

    Parameters
    ----------
    x : array-like
        Predictor values. Duplicates are allowed.
    y : array-like
        Response values, same length as `x`.
    w : array-like, optional
        Non-negative prior observation weights. Defaults to all ones.
    """
    x: np.ndarray
    y: np.ndarray
    w: np.ndarray = None

    def __post_init__(self):
        x = _frozen_array(self.x, 'x')
        y = _frozen_array(self.y, 'y')
        if len(x) != len(y):
            raise ValueError(f"x and y must have the same length, got {len(x)} and {len(y)}")
        if self.w is None:
            w = np.ones(len(x))
            w.setflags(write=False)
        else:
            w = _frozen_array(self.w, 'w')
            if len(w) != len(x):
                raise ValueError(f"w must have the same length as x, got {len(w)} and {len(x)}")
            if np.any(w < 0):
                raise ValueError("Observation weights must be non-negative.")
        # frozen dataclass: bypass __setattr__ to store the normalized arrays
        object.__setattr__(self, 'x', x)
        object.__setattr__(self, 'y', y)
        object.__setattr__(self, 'w', w)

    @classmethod
    def from_pairs(cls, pairs):
        pairs = [tuple(p) for p in pairs]
        if not pairs:
            return cls(np.empty(0), np.empty(0))
        x, y = zip(*pairs)
        return cls(x, y)

    @classmethod
    def from_frame(cls, frame, x, y, w=None):
        """
        Build a dataset from columns of a data frame (or any mapping of
        column names to array-likes).
        """
        return cls(np.asarray(frame[x]),
                   np.asarray(frame[y]),
                   None if w is None else np.asarray(frame[w]))

    @property
    def n(self):
        return len(self.x)

    def __len__(self):
        return len(self.x)

    # elementwise array comparison would make == ambiguous
    def __eq__(self, other):
        if not isinstance(other, Dataset):
            return NotImplemented
        return (np.array_equal(self.x, other.x) and
                np.array_equal(self.y, other.y) and
                np.array_equal(self.w, other.w))


class FittedPoint(NamedTuple):
    x: float
    y_hat: float
    degenerate: bool


@dataclass(eq=False)
class FittedCurve:
    """
    Output of a loess fit.

    Attributes
    ----------
    x : np.ndarray
        Evaluation points, in the order they were requested.
    y_hat : np.ndarray
        Smoothed value at each evaluation point.
    degenerate : np.ndarray
        Boolean flags marking points whose local fit fell back to a
        weighted mean.
    fitted : np.ndarray
        Smoothed values at the dataset's own x's.
    residuals : np.ndarray
        ``dataset.y - fitted``.
    robustness_weights : np.ndarray
        Final robustness weights of the samples (all ones without
        robust iterations).
    """
    x: np.ndarray
    y_hat: np.ndarray
    degenerate: np.ndarray
    fitted: np.ndarray = field(repr=False)
    residuals: np.ndarray = field(repr=False)
    robustness_weights: np.ndarray = field(repr=False)

    def __len__(self):
        return len(self.x)

    def __iter__(self):
        for i in range(len(self)):
            yield self[i]

    def __getitem__(self, i):
        return FittedPoint(float(self.x[i]), float(self.y_hat[i]), bool(self.degenerate[i]))

    @property
    def n_degenerate(self):
        return int(np.sum(self.degenerate))
