# tsorder/models/time_series/__init__.py
"""
tsorder time series module

Key components:
- Lag matrices, differencing and series validation
- Augmented Dickey-Fuller statistics across lag orders
- ARIMA estimation through a pluggable estimator
- Grid search and evaluation of restricted models
- Ljung-Box and coefficient diagnostics
- Characteristic roots and common-root candidates
- Forecasts from a selected model
"""

import logging

# Set up module-level logger
logger = logging.getLogger("tsorder.models.time_series")

from .utils import as_time_series, difference, lag_matrix, trend_regressor
from .unit_root import ADFResult, ADFTester, augmented_dickey_fuller, ols
from .estimation import ARIMAEstimator, StatsmodelsARIMAEstimator
from .diagnostics import coefficient_frame, coefficient_tests, ljung_box, ljung_box_for_fit
from .selection import (
    GridReport, ModelGridSearch, RestrictionReport, evaluate_restrictions, restriction_specs,
    run_grid, run_grid_async
)
from .roots import (
    CommonRootAnalyzer, CommonRootPair, RootAnalysis, common_roots, find_roots
)
from .forecast import forecast, forecast_async

__all__ = [
    'as_time_series', 'difference', 'lag_matrix', 'trend_regressor',
    'ADFResult', 'ADFTester', 'augmented_dickey_fuller', 'ols',
    'ARIMAEstimator', 'StatsmodelsARIMAEstimator',
    'coefficient_frame', 'coefficient_tests', 'ljung_box', 'ljung_box_for_fit',
    'GridReport', 'ModelGridSearch', 'RestrictionReport', 'evaluate_restrictions', 'restriction_specs',
    'run_grid', 'run_grid_async',
    'CommonRootAnalyzer', 'CommonRootPair', 'RootAnalysis', 'common_roots', 'find_roots',
    'forecast', 'forecast_async',
]
