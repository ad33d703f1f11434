"""
pandas front end for grouped batch prediction.

Rows are converted to records, grouped with ``records.group`` and fitted per
group with ``regression.linear_regression``; fits may run in parallel through
joblib. Rows with a missing x or y value are dropped before fitting; other
missing values (NaN/None) are treated as absent fields, so rows with a missing
grouping key are skipped like records lacking the key. The x column of the
predictions keeps the dtype of ``new_xs``.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .errors import InvalidInput
from .predict import DEFAULT_MIN_POINTS
from .records import group
from .regression import Fitter, linear_regression

logger = logging.getLogger(__name__)


def records_from_frame(df: pd.DataFrame, dropna: bool = True) -> List[Dict[str, Any]]:
    """Convert rows to records; with ``dropna`` missing cells are left out of the record."""
    rows = df.to_dict(orient="records")
    if not dropna:
        return rows
    return [{k: v for k, v in row.items() if not pd.isna(v)} for row in rows]


def records_to_frame(records: Sequence[Dict[str, Any]], columns: Optional[List[str]] = None) -> pd.DataFrame:
    return pd.DataFrame.from_records(list(records), columns=columns)


class GroupByPredictor:
    @staticmethod
    def _validate_columns(df: pd.DataFrame, gb_columns: List[str], x_column: str, y_column: str) -> List[str]:
        gb_columns = [gb_columns] if isinstance(gb_columns, str) else list(gb_columns)
        if not gb_columns:
            raise InvalidInput("gb_columns must be a non-empty list of column names")
        missing = [c for c in gb_columns + [x_column, y_column] if c not in df.columns]
        if missing:
            raise InvalidInput(f"Columns {missing} not found in DataFrame")
        return gb_columns

    @staticmethod
    def process_group(
            key: tuple,
            xs: List[float],
            ys: List[float],
            gb_columns: List[str],
            x_column: str,
            y_column: str,
            fitter: Fitter = "ols",
    ) -> dict:
        group_dict = dict(zip(gb_columns, key))
        fit = linear_regression(xs, ys, fitter=fitter)
        group_dict[f"{y_column}_slope_{x_column}"] = fit.slope
        group_dict[f"{y_column}_intercept"] = fit.intercept
        group_dict["bin_count"] = fit.n_points
        return group_dict

    @staticmethod
    def make_group_fits(
            df: pd.DataFrame,
            gb_columns: List[str],
            x_column: str,
            y_column: str,
            min_points: int = DEFAULT_MIN_POINTS,
            fitter: Fitter = "ols",
            n_jobs: int = 1,
            suffix: str = "",
            batch_size: Union[int, str] = "auto",
    ) -> pd.DataFrame:
        """
        Fit one OLS line of ``y_column`` against ``x_column`` per group.

        Parameters:
            df (pd.DataFrame): Input dataframe, not modified.
            gb_columns (List[str]): Columns to group by.
            x_column (str): Predictor column.
            y_column (str): Target column.
            min_points (int): Groups with fewer rows are skipped.
            fitter (str|Callable): "ols", "sklearn" or an estimator factory.
            n_jobs (int): Number of parallel jobs.
            suffix (str): Suffix appended to every non-group column of the result.
            batch_size (int|str): joblib batch size.

        Returns:
            pd.DataFrame: one row per fitted group with ``{y}_slope_{x}``,
            ``{y}_intercept`` and ``bin_count`` (all suffixed), in first-occurrence order.
        """
        gb_columns = GroupByPredictor._validate_columns(df, gb_columns, x_column, y_column)
        if isinstance(min_points, bool) or not isinstance(min_points, int) or min_points < 2:
            raise InvalidInput(f"min_points must be an integer >= 2, got {min_points!r}")

        df_sel = df[gb_columns + [x_column, y_column]]
        df_clean = df_sel.dropna(subset=[x_column, y_column])
        if len(df_clean) < len(df_sel):
            logger.debug(f"make_group_fits: dropped {len(df_sel) - len(df_clean)} row(s) with missing {x_column} or {y_column}")
        records = records_from_frame(df_clean)
        groups = group(records, gb_columns)
        filtered = [g for g in groups if len(g.columns.get(x_column, [])) >= min_points]
        logger.debug(f"make_group_fits: fitting {len(filtered)} of {len(groups)} groups with n_jobs={n_jobs}")

        results = Parallel(n_jobs=n_jobs, batch_size=batch_size)(
            delayed(GroupByPredictor.process_group)(
                g.key, g.column(x_column), g.column(y_column), gb_columns, x_column, y_column, fitter
            )
            for g in filtered
        )

        fit_columns = [f"{y_column}_slope_{x_column}", f"{y_column}_intercept", "bin_count"]
        dfGB = pd.DataFrame(results, columns=gb_columns + fit_columns)
        dfGB["bin_count"] = dfGB["bin_count"].astype(np.int32)
        dfGB = dfGB.rename(columns={col: f"{col}{suffix}" for col in dfGB.columns if col not in gb_columns})
        return dfGB

    @staticmethod
    def batch_predict_frame(
            df: pd.DataFrame,
            gb_columns: List[str],
            x_column: str,
            y_column: str,
            new_xs: Sequence[float],
            min_points: int = DEFAULT_MIN_POINTS,
            fitter: Fitter = "ols",
            n_jobs: int = 1,
    ) -> pd.DataFrame:
        """
        DataFrame counterpart of ``predict.batch_predict``.

        Returns one row per (fitted group, new x), group-major, with the group
        columns, ``x_column = new x`` and ``y_column = prediction``.
        """
        gb_columns = GroupByPredictor._validate_columns(df, gb_columns, x_column, y_column)
        dfGB = GroupByPredictor.make_group_fits(
            df, gb_columns, x_column, y_column,
            min_points=min_points, fitter=fitter, n_jobs=n_jobs,
        )
        new_xs = np.asarray(list(new_xs))
        if dfGB.empty or len(new_xs) == 0:
            return pd.DataFrame(columns=gb_columns + [x_column, y_column])

        rep = np.repeat(np.arange(len(dfGB)), len(new_xs))
        out = dfGB.iloc[rep][gb_columns].reset_index(drop=True)
        slope = dfGB[f"{y_column}_slope_{x_column}"].to_numpy()[rep]
        intercept = dfGB[f"{y_column}_intercept"].to_numpy()[rep]
        x = np.tile(new_xs, len(dfGB))
        out[x_column] = x
        out[y_column] = slope * x + intercept
        return out
