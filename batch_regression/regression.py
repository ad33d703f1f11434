"""
Simple (one predictor) ordinary least squares.

``linear_regression`` fits slope/intercept from paired observations,
``linear_regression_line`` turns a fit into a predictor and
``linear_regression_predictor`` does both in one call.

Fitters:
  - "ols"     : two-pass closed form in NumPy (default)
                  slope     = sum((x - x_mean) * (y - y_mean)) / sum((x - x_mean)**2)
                  intercept = y_mean - slope * x_mean
  - "sklearn" : sklearn.linear_model.LinearRegression
  - callable  : factory returning an estimator with fit(X, y), coef_ and intercept_

When all x values are identical the closed form divides by zero; slope and
intercept come out as NaN and a warning is logged. No exception is raised.
"""

import logging
import numbers
from dataclasses import dataclass
from typing import Callable, Sequence, Union

import numpy as np
from sklearn.linear_model import LinearRegression

from .errors import InsufficientData, InvalidInput

logger = logging.getLogger(__name__)

Fitter = Union[str, Callable]


@dataclass(frozen=True)
class LinearFit:
    """Fitted line ``y = slope * x + intercept``."""
    slope: float
    intercept: float
    n_points: int


def _as_observations(values: Sequence, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=object)
    if arr.ndim != 1:
        raise InvalidInput(f"{name} must be a one-dimensional sequence, got shape {arr.shape}")
    for v in arr:
        if isinstance(v, bool) or not isinstance(v, numbers.Real):
            raise InvalidInput(f"{name} contains a non-numeric value: {v!r}")
    out = arr.astype(np.float64)
    if not np.isfinite(out).all():
        raise InvalidInput(f"{name} contains non-finite values")
    return out


def _fit_closed_form(x: np.ndarray, y: np.ndarray):
    x_mean = x.mean()
    y_mean = y.mean()
    dx = x - x_mean
    denom = np.sum(dx * dx)
    with np.errstate(divide="ignore", invalid="ignore"):
        slope = np.float64(np.sum(dx * (y - y_mean))) / denom
    intercept = y_mean - slope * x_mean
    return float(slope), float(intercept)


def _fit_estimator(model, x: np.ndarray, y: np.ndarray):
    model.fit(x.reshape(-1, 1), y)
    return float(np.ravel(model.coef_)[0]), float(np.ravel(model.intercept_)[0])


def linear_regression(xs: Sequence, ys: Sequence, fitter: Fitter = "ols") -> LinearFit:
    """
    Fit a line through paired observations.

    Parameters:
        xs (Sequence): independent values.
        ys (Sequence): dependent values, same length as ``xs``.
        fitter (str|Callable): "ols", "sklearn" or an estimator factory.

    Returns:
        LinearFit: slope, intercept and number of points.

    Raises:
        InvalidInput: empty, mismatched or non-numeric input, or unknown fitter.
        InsufficientData: exactly one observation.
    """
    x = _as_observations(xs, "xs")
    y = _as_observations(ys, "ys")
    if len(x) != len(y):
        raise InvalidInput(f"xs and ys differ in length ({len(x)} != {len(y)})")
    if len(x) == 0:
        raise InvalidInput("at least two observations are required, got none")
    if len(x) == 1:
        raise InsufficientData("a line cannot be fitted through a single observation")

    if not callable(fitter) and fitter not in ("ols", "sklearn"):
        raise InvalidInput(f"fitter must be 'ols', 'sklearn' or a callable, got {fitter!r}")
    if np.all(x == x[0]):
        logger.warning(f"All {len(x)} x values equal {x[0]}; slope is undefined")

    if callable(fitter):
        slope, intercept = _fit_estimator(fitter(), x, y)
    elif fitter == "sklearn":
        slope, intercept = _fit_estimator(LinearRegression(), x, y)
    else:
        slope, intercept = _fit_closed_form(x, y)
    return LinearFit(slope, intercept, len(x))


def linear_regression_line(fit: LinearFit) -> Callable:
    """Return a predictor ``x -> slope * x + intercept`` for ``fit``."""
    slope, intercept = fit.slope, fit.intercept

    def predict(x):
        return slope * x + intercept

    return predict


def linear_regression_predictor(xs: Sequence, ys: Sequence, fitter: Fitter = "ols") -> Callable:
    """Fit ``ys`` against ``xs`` and return the prediction function."""
    return linear_regression_line(linear_regression(xs, ys, fitter=fitter))
