"""
Grouped batch prediction.

    data = [
        {"branch": "A", "period": 1, "sales": 2},
        {"branch": "A", "period": 2, "sales": 4},
        ...
        {"branch": "B", "period": 10, "sales": 16},
    ]
    batch_predict(data, ["branch"], "period", "sales", [7, 8])
    # -> [{"branch": "A", "period": 7, "sales": 14.0},
    #     {"branch": "A", "period": 8, "sales": 16.0},
    #     {"branch": "B", "period": 7, "sales": ...},
    #     {"branch": "B", "period": 8, "sales": ...}]
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from .errors import InvalidInput
from .records import Group, _validate_key_fields, group, remove_extra_properties, ungroup
from .regression import Fitter, LinearFit, linear_regression, linear_regression_line

logger = logging.getLogger(__name__)

DEFAULT_MIN_POINTS = 2


def fit_groups(
        records: Iterable[Mapping[str, Any]],
        key_fields: Sequence[str],
        x_field: str,
        y_field: str,
        min_points: int = DEFAULT_MIN_POINTS,
        fitter: Fitter = "ols",
) -> List[Tuple[Group, LinearFit]]:
    """
    Project, group and fit one line per group.

    Groups with fewer than ``min_points`` x observations are dropped without error.

    Returns:
        List[Tuple[Group, LinearFit]]: surviving groups (projected to key, x and y
        fields) with their fits, in first-occurrence order.
    """
    if isinstance(min_points, bool) or not isinstance(min_points, int) or min_points < 2:
        raise InvalidInput(f"min_points must be an integer >= 2, got {min_points!r}")
    key_fields = _validate_key_fields(key_fields)

    allowed = key_fields + [x_field, y_field]
    projected = remove_extra_properties(records, allowed)
    groups = group(projected, key_fields)

    fits = []
    n_dropped = 0
    for entry in groups:
        if len(entry.columns.get(x_field, [])) < min_points:
            n_dropped += 1
            continue
        if y_field not in entry.columns:
            raise InvalidInput(f"Group {entry.keys} has no '{y_field}' values")
        fit = linear_regression(entry.column(x_field), entry.column(y_field), fitter=fitter)
        fits.append((entry, fit))

    logger.debug(f"fit_groups: {len(groups)} groups, {n_dropped} dropped below {min_points} points")
    return fits


def batch_predict(
        records: Iterable[Mapping[str, Any]],
        key_fields: Sequence[str],
        x_field: str,
        y_field: str,
        new_xs: Sequence[float],
        min_points: int = DEFAULT_MIN_POINTS,
        fitter: Fitter = "ols",
) -> List[Dict[str, Any]]:
    """
    Fit an OLS line per group and predict ``y_field`` at every value of ``new_xs``.

    Parameters:
        records: flat input records; not modified.
        key_fields (Sequence[str]): grouping fields.
        x_field (str): independent variable.
        y_field (str): dependent variable.
        new_xs (Sequence[float]): x values to predict at; duplicates give duplicate rows.
        min_points (int): groups with fewer observations are skipped.
        fitter (str|Callable): see ``regression.linear_regression``.

    Returns:
        List[Dict[str, Any]]: one record per (group, new_x), group-major, carrying the
        key values, ``x_field = new_x`` and ``y_field = prediction``. Empty when every
        group was skipped.
    """
    key_fields = _validate_key_fields(key_fields)
    new_xs = list(new_xs)
    predicted = []
    for entry, fit in fit_groups(records, key_fields, x_field, y_field, min_points=min_points, fitter=fitter):
        predictor = linear_regression_line(fit)
        predicted.append(Group(
            keys=dict(entry.keys),
            columns={x_field: list(new_xs), y_field: [predictor(x) for x in new_xs]},
            size=len(new_xs),
        ))
    return ungroup(predicted, key_fields)
