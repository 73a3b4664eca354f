# tsorder/models/time_series/forecast.py
"""
Forecasts from a selected ARIMA model.

A thin layer over the estimator's own forecasting routine: it validates the
request and returns point forecasts, standard errors and interval bounds
in a DataFrame indexed by horizon.
"""

import asyncio
import logging
from typing import Optional

import numpy as np
import pandas as pd

from tsorder.core.exceptions import ForecastError
from tsorder.core.results import ModelFitResult
from tsorder.models.time_series.estimation import StatsmodelsARIMAEstimator

logger = logging.getLogger("tsorder.models.time_series.forecast")


def forecast(fit: ModelFitResult,
             horizon: int,
             alpha: float = 0.05,
             estimator: Optional[object] = None) -> pd.DataFrame:
    """
    Forecast ``horizon`` steps ahead from a fitted model.

    Args:
        fit: Fitted model
        horizon: Number of steps ahead (>= 1)
        alpha: Interval level is 1 - alpha
        estimator: Estimator that produced ``fit``; must provide
            ``forecast(fit, horizon, alpha)``. Defaults to the statsmodels
            estimator.

    Returns:
        DataFrame with columns forecast, std_error, lower, upper

    Raises:
        ForecastError: If the horizon or alpha is invalid, or the estimator
            cannot forecast
    """
    if isinstance(horizon, bool) or not isinstance(horizon, (int, np.integer)) or horizon < 1:
        raise ForecastError("Forecast horizon must be a positive integer",
                            horizon=horizon, issue="invalid horizon")
    if not 0.0 < alpha < 1.0:
        raise ForecastError("alpha must lie strictly between 0 and 1",
                            horizon=horizon, issue=f"invalid alpha {alpha}")

    estimator = estimator if estimator is not None else StatsmodelsARIMAEstimator()
    if not hasattr(estimator, "forecast"):
        raise ForecastError(f"{type(estimator).__name__} does not support forecasting",
                            horizon=horizon, issue="estimator cannot forecast")

    logger.debug(f"Forecasting {fit.label} {horizon} step(s) ahead")
    return estimator.forecast(fit, int(horizon), alpha)


async def forecast_async(fit: ModelFitResult, horizon: int, alpha: float = 0.05,
                         estimator: Optional[object] = None) -> pd.DataFrame:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, lambda: forecast(fit, horizon, alpha, estimator))
