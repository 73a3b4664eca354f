# tsorder/models/time_series/diagnostics.py
"""
Residual and coefficient diagnostics for fitted ARIMA models.

- ``ljung_box`` tests residual whiteness. When the test has no degrees of
  freedom left (K <= number of estimated parameters) or too few
  observations (T <= K) it returns ``NotApplicable`` instead of raising.
- ``coefficient_tests`` computes z = estimate / sqrt(variance) and the
  one-tailed normal p-value P(Z > |z|) for every free coefficient. Models
  with no estimated coefficients yield ``NotApplicable``; a coefficient with
  zero or non-finite variance gets NotApplicable for its own z and p only.

BIC is derived on ``ModelFitResult.bic`` from the estimator's AIC.
"""

import logging
import math
from typing import Dict, Optional, Union

import numpy as np
import pandas as pd
from scipy import stats

from tsorder.core.exceptions import raise_parameter_error, warn_numeric
from tsorder.core.results import (
    CoefficientTest, DiagnosticResult, LjungBoxResult, ModelFitResult,
    NotApplicable, is_applicable
)
from tsorder.core.types import TimeSeriesData
from tsorder.models.time_series import _numba_core

logger = logging.getLogger("tsorder.models.time_series.diagnostics")


def check_lags(lags: int) -> int:
    """Validate a Ljung-Box lag count K, which must be a positive integer."""
    if isinstance(lags, bool) or not isinstance(lags, (int, np.integer)) or lags < 1:
        raise_parameter_error(
            "Number of lags must be a positive integer",
            param_name="lags",
            param_value=lags,
            constraint=">= 1"
        )
    return int(lags)


def ljung_box(residuals: TimeSeriesData,
              nobs: Optional[int] = None,
              n_params: int = 0,
              lags: int = 10) -> DiagnosticResult:
    """
    Ljung-Box test for autocorrelation in model residuals.

    Q = T(T+2) * sum_{k=1..K} rho_k^2 / (T-k), compared with a chi-squared
    distribution on K - n_params degrees of freedom.

    Args:
        residuals: Model residuals
        nobs: Sample size T; defaults to the number of residuals
        n_params: Number of estimated ARMA parameters (fitdf)
        lags: Number of autocorrelations K

    Returns:
        LjungBoxResult, or NotApplicable when K - n_params <= 0 or T <= K

    Raises:
        ParameterError: If lags is not positive or n_params is negative

    Examples:
        >>> import numpy as np
        >>> from tsorder.models.time_series.diagnostics import ljung_box
        >>> rng = np.random.default_rng(42)
        >>> result = ljung_box(rng.standard_normal(200), n_params=2, lags=10)
        >>> result.df
        8
    """
    values = residuals.to_numpy(dtype=np.float64) if isinstance(residuals, pd.Series) \
        else np.asarray(residuals, dtype=np.float64)

    if values.ndim != 1:
        raise_parameter_error(
            "Residuals must be one-dimensional",
            param_name="residuals",
            param_value=values.shape
        )
    lags = check_lags(lags)
    if n_params < 0:
        raise_parameter_error(
            "Number of estimated parameters must be non-negative",
            param_name="n_params",
            param_value=n_params,
            constraint=">= 0"
        )

    nobs = len(values) if nobs is None else int(nobs)
    df = lags - n_params

    if df <= 0:
        return NotApplicable(f"df = K - n_params = {df} <= 0")
    if nobs <= lags or len(values) <= lags:
        return NotApplicable(f"T = {nobs} <= K = {lags}")
    if not np.isfinite(values).all():
        return NotApplicable("residuals contain NaN or infinite values")

    acf = _numba_core.acf_numba(np.ascontiguousarray(values), int(lags))
    q_stat = float(_numba_core.ljung_box_q(acf, nobs, int(lags)))
    p_value = float(stats.chi2.sf(q_stat, df))

    return LjungBoxResult(statistic=q_stat, df=df, p_value=p_value, lags=int(lags), nobs=nobs)


def ljung_box_for_fit(fit: ModelFitResult, lags: int = 10) -> DiagnosticResult:
    """Ljung-Box test on a fitted model, with fitdf = number of free ARMA coefficients."""
    n_arma = sum(1 for name in fit.params.index if name.startswith(("ar.", "ma.")))
    return ljung_box(fit.residuals, nobs=fit.nobs, n_params=n_arma, lags=lags)


def coefficient_tests(fit: ModelFitResult) -> Union[Dict[str, CoefficientTest], NotApplicable]:
    """
    z-scores and one-tailed p-values for the free coefficients of a fit.

    Constrained coefficients are not part of ``fit.params`` and are skipped.

    Returns:
        Mapping coefficient name -> CoefficientTest, or NotApplicable when
        the model has no estimated coefficients
    """
    if len(fit.params) == 0:
        return NotApplicable("model has no estimated coefficients")

    tests: Dict[str, CoefficientTest] = {}
    for name in fit.params.index:
        estimate = float(fit.params[name])
        variance = float(fit.cov_params.loc[name, name])

        if not np.isfinite(variance) or variance <= 0.0:
            warn_numeric(
                f"Variance of '{name}' is degenerate in {fit.label}",
                operation="coefficient_tests",
                issue="zero or non-finite variance",
                value=variance
            )
            reason = f"variance of {name} is {variance}"
            tests[name] = CoefficientTest(
                name=name, estimate=estimate, std_error=float("nan"),
                z=NotApplicable(reason), p_value=NotApplicable(reason)
            )
            continue

        std_error = math.sqrt(variance)
        z = estimate / std_error
        tests[name] = CoefficientTest(
            name=name, estimate=estimate, std_error=std_error,
            z=z, p_value=float(stats.norm.sf(abs(z)))
        )

    return tests


def coefficient_frame(tests: Union[Dict[str, CoefficientTest], NotApplicable]) -> pd.DataFrame:
    """Tabulate coefficient tests; NotApplicable entries become NaN."""
    columns = ["estimate", "std_error", "z", "p_value"]
    if not is_applicable(tests):
        return pd.DataFrame(columns=columns)

    rows = {
        name: {
            "estimate": t.estimate,
            "std_error": t.std_error,
            "z": t.z if is_applicable(t.z) else np.nan,
            "p_value": t.p_value if is_applicable(t.p_value) else np.nan,
        }
        for name, t in tests.items()
    }
    return pd.DataFrame.from_dict(rows, orient="index", columns=columns)
