# tsorder/models/time_series/unit_root.py
"""
Augmented Dickey-Fuller statistics across a range of lag orders.

For a series y of length N with first differences d (length T = N - 1) the
tester fits, for each lag order j = 0..max_lag, the regression

    d[t] = c + a * y[t-1] + b_1 d[t-1] + ... + b_j d[t-j] (+ g * trend[t]) + e[t]

on the rows t = j+1..T and reports the pseudo t-ratio a / se(a) of the
level regressor ``extvar`` (and, with a trend, g / se(g)). The design is
assembled by position from a zero-filled lag matrix of d; rows whose lags
fall into the zero padding are never part of a fit.

The ratio follows the Dickey-Fuller distribution rather than Student's t,
so this module only produces statistics. Comparing them with critical
values from a Dickey-Fuller table is left to the reader of the report.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
import statsmodels.api as sm

from tsorder.core.config import get_config
from tsorder.core.exceptions import raise_parameter_error, warn_numeric
from tsorder.core.results import NotApplicable, RegressionResult, is_applicable
from tsorder.core.types import Matrix, TimeSeriesData, Vector
from tsorder.models.time_series.utils import as_time_series, lag_matrix, trend_regressor

logger = logging.getLogger("tsorder.models.time_series.unit_root")

LEVEL_REGRESSOR = "extvar"
TREND_REGRESSOR = "trend"


def ols(y: Vector, X: Matrix, names: Sequence[str]) -> RegressionResult:
    """
    Ordinary least squares fit of ``y`` on the columns of ``X``.

    Args:
        y: Dependent variable
        X: Design matrix, one column per name (include a constant explicitly)
        names: Column names of X

    Returns:
        RegressionResult: Coefficients, covariance matrix and residuals
    """
    y = np.asarray(y, dtype=np.float64)
    X = np.asarray(X, dtype=np.float64)
    if X.ndim != 2 or X.shape[0] != len(y) or X.shape[1] != len(names):
        raise_parameter_error(
            "Design matrix does not match the dependent variable and column names",
            param_name="X",
            param_value=X.shape,
            constraint=f"({len(y)}, {len(names)})"
        )

    results = sm.OLS(y, X).fit()
    return RegressionResult(
        params=np.asarray(results.params),
        cov_params=np.asarray(results.cov_params()),
        resid=np.asarray(results.resid),
        names=tuple(names),
        nobs=int(results.nobs)
    )


def _t_ratio(regression: RegressionResult, name: str, lag: int) -> Union[float, NotApplicable]:
    se = regression.std_error(name)
    if not np.isfinite(se) or se <= 0.0:
        warn_numeric(
            f"Standard error of '{name}' is degenerate at lag order {lag}",
            operation="augmented_dickey_fuller",
            issue="zero or non-finite standard error",
            value=se
        )
        return NotApplicable(f"standard error of {name} is {se}")
    return regression.coefficient(name) / se


@dataclass(frozen=True, eq=False)
class ADFResult:
    """
    Augmented Dickey-Fuller statistics indexed by lag order.

    Attributes:
        statistics: Lag order -> t-ratio of the level regressor
        trend_statistics: Lag order -> t-ratio of the trend, or None without trend
        nobs: Lag order -> number of rows used in that regression
        max_lag: Largest lag order tried
        trend: Whether the trend regressor was included
        regressions: Lag order -> full regression output
    """

    statistics: Dict[int, Union[float, NotApplicable]]
    trend_statistics: Optional[Dict[int, Union[float, NotApplicable]]]
    nobs: Dict[int, int]
    max_lag: int
    trend: bool
    regressions: Dict[int, RegressionResult] = field(default_factory=dict, repr=False)

    def statistic(self, lag: int) -> Union[float, NotApplicable]:
        return self.statistics[lag]

    def to_frame(self) -> pd.DataFrame:
        """One row per lag order; NotApplicable entries become NaN."""
        def _num(value: Any) -> float:
            return float(value) if is_applicable(value) else float("nan")

        frame = pd.DataFrame({
            "nobs": pd.Series(self.nobs),
            "adf_stat": pd.Series({k: _num(v) for k, v in self.statistics.items()}),
        })
        if self.trend_statistics is not None:
            frame["trend_stat"] = pd.Series({k: _num(v) for k, v in self.trend_statistics.items()})
        frame.index.name = "lag"
        return frame

    def summary(self) -> str:
        header = "Augmented Dickey-Fuller statistics"
        header += " (constant + trend)" if self.trend else " (constant)"
        lines = [header, "=" * len(header), ""]
        lines.append(f"{'lag':>4} {'nobs':>6} {'adf stat':>10}" + (f" {'trend stat':>11}" if self.trend else ""))
        for lag in range(self.max_lag + 1):
            stat = self.statistics[lag]
            row = f"{lag:>4} {self.nobs[lag]:>6} " + (f"{stat:>10.4f}" if is_applicable(stat) else f"{'N/A':>10}")
            if self.trend_statistics is not None:
                tstat = self.trend_statistics[lag]
                row += " " + (f"{tstat:>11.4f}" if is_applicable(tstat) else f"{'N/A':>11}")
            lines.append(row)
        lines.append("")
        lines.append("Compare with Dickey-Fuller critical values; Student-t tables do not apply.")
        return "\n".join(lines)


class ADFTester:
    """
    Augmented Dickey-Fuller tester.

    Args:
        max_lag: Largest lag order; defaults to ``unitroot.max_lag`` from config
        trend: Include the deterministic trend; defaults to ``unitroot.trend``
    """

    def __init__(self, max_lag: Optional[int] = None, trend: Optional[bool] = None):
        self.max_lag = get_config("unitroot", "max_lag") if max_lag is None else max_lag
        self.trend = get_config("unitroot", "trend") if trend is None else bool(trend)

        if isinstance(self.max_lag, bool) or not isinstance(self.max_lag, (int, np.integer)) or self.max_lag < 0:
            raise_parameter_error(
                "max_lag must be a non-negative integer",
                param_name="max_lag",
                param_value=self.max_lag,
                constraint=">= 0"
            )

    def build_design(self, series: pd.Series) -> pd.DataFrame:
        """
        Zero-filled lag matrix of the first differences with the level (and
        trend) regressors appended. Row i holds d[i+1] = y[i+1] - y[i].
        """
        values = series.to_numpy()
        diffs = pd.Series(np.diff(values), index=series.index[1:])
        extra = {LEVEL_REGRESSOR: values[:-1]}
        if self.trend:
            extra[TREND_REGRESSOR] = trend_regressor(series)[1:]
        return lag_matrix(diffs, self.max_lag, extra=extra)

    def _regress(self, design: pd.DataFrame, lag: int) -> RegressionResult:
        # Rows before `lag` hold zero-padded lags and are excluded
        rows = design.iloc[lag:]
        columns = [f"lag{k}" for k in range(1, lag + 1)] + [LEVEL_REGRESSOR]
        if self.trend:
            columns.append(TREND_REGRESSOR)

        X = np.column_stack([np.ones(len(rows)), rows[columns].to_numpy()])
        return ols(rows["lag0"].to_numpy(), X, ["const"] + columns)

    def test(self, data: TimeSeriesData) -> ADFResult:
        """
        Compute the ADF statistics for every lag order 0..max_lag.

        Args:
            data: Series in levels

        Returns:
            ADFResult: Statistics per lag order

        Raises:
            ParameterError: If the series is too short for max_lag
            DataFormatError: If the series is malformed
        """
        series = as_time_series(data)
        n_diff = len(series) - 1
        n_regressors = 2 + self.max_lag + int(self.trend)
        if n_diff - self.max_lag <= n_regressors:
            raise_parameter_error(
                "Series is too short for the requested lag order",
                param_name="max_lag",
                param_value=self.max_lag,
                constraint=f"N - 1 - max_lag > {n_regressors}",
                details=f"Series length is {len(series)}"
            )

        design = self.build_design(series)

        statistics: Dict[int, Union[float, NotApplicable]] = {}
        trend_statistics: Optional[Dict[int, Union[float, NotApplicable]]] = {} if self.trend else None
        nobs: Dict[int, int] = {}
        regressions: Dict[int, RegressionResult] = {}

        for lag in range(self.max_lag + 1):
            regression = self._regress(design, lag)
            regressions[lag] = regression
            nobs[lag] = regression.nobs
            statistics[lag] = _t_ratio(regression, LEVEL_REGRESSOR, lag)
            if trend_statistics is not None:
                trend_statistics[lag] = _t_ratio(regression, TREND_REGRESSOR, lag)
            logger.debug(f"ADF lag {lag}: nobs={nobs[lag]}, stat={statistics[lag]}")

        return ADFResult(
            statistics=statistics,
            trend_statistics=trend_statistics,
            nobs=nobs,
            max_lag=self.max_lag,
            trend=self.trend,
            regressions=regressions
        )

    async def test_async(self, data: TimeSeriesData) -> ADFResult:
        """Run ``test`` in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self.test(data))


def augmented_dickey_fuller(data: TimeSeriesData,
                            max_lag: Optional[int] = None,
                            trend: Optional[bool] = None) -> ADFResult:
    """
    Augmented Dickey-Fuller statistics for lag orders 0..max_lag.

    Examples:
        >>> import numpy as np
        >>> from tsorder.models.time_series.unit_root import augmented_dickey_fuller
        >>> rng = np.random.default_rng(0)
        >>> result = augmented_dickey_fuller(np.cumsum(rng.standard_normal(100)), max_lag=2)
        >>> sorted(result.statistics)
        [0, 1, 2]
    """
    return ADFTester(max_lag=max_lag, trend=trend).test(data)
