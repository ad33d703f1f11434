"""
batch_regression - grouped linear-regression batch prediction over records.

Main modules:
- records: projection, grouping into columnar form and ungrouping
- regression: single-predictor OLS fit and predictor
- predict: batch prediction per group
- frame: pandas front end with joblib-parallel group fits
"""

from .errors import InconsistentGroup, InsufficientData, InvalidInput, RegressionError
from .records import Group, group, remove_extra_properties, ungroup
from .regression import LinearFit, linear_regression, linear_regression_line, linear_regression_predictor
from .predict import batch_predict, fit_groups
from .frame import GroupByPredictor, records_from_frame, records_to_frame

__all__ = [
    "Group",
    "GroupByPredictor",
    "InconsistentGroup",
    "InsufficientData",
    "InvalidInput",
    "LinearFit",
    "RegressionError",
    "batch_predict",
    "fit_groups",
    "group",
    "linear_regression",
    "linear_regression_line",
    "linear_regression_predictor",
    "records_from_frame",
    "records_to_frame",
    "remove_extra_properties",
    "ungroup",
]

__version__ = '1.0.0'
