from .base import Dataset, FittedCurve, FittedPoint
from .exceptions import (DegenerateNeighborhood,
                         InsufficientData,
                         InvalidConfiguration,
                         LoessError)
from .kernels import gaussian, gaussian_kernel, tricube, uniform
from .loess import LoessSmoother, Neighborhood, loess
from .diagnostics import (compare_smoothers,
                          residual_fit_spread,
                          residual_summary,
                          spread_location)

__version__ = "0.1.0"

__all__ = [
    "Dataset",
    "FittedCurve",
    "FittedPoint",
    "LoessSmoother",
    "Neighborhood",
    "loess",
    "gaussian",
    "gaussian_kernel",
    "tricube",
    "uniform",
    "compare_smoothers",
    "residual_fit_spread",
    "residual_summary",
    "spread_location",
    "LoessError",
    "InvalidConfiguration",
    "InsufficientData",
    "DegenerateNeighborhood",
]
