# tsorder/models/time_series/estimation.py
"""
Maximum-likelihood ARIMA estimation.

The model search talks to estimators through the small ``ARIMAEstimator``
protocol: ``fit(series, spec)`` returns a ``ModelFitResult`` or raises
``EstimationError`` (``EstimationNonConvergence`` for optimizer failures).
Any object with that method can be plugged into the grid search and the
nested model selector.

``StatsmodelsARIMAEstimator`` is the default implementation, backed by
``statsmodels.tsa.arima.model.ARIMA``. A deterministic trend enters as an
exogenous regressor (regression with ARIMA errors), so with d = 1 its
coefficient is the drift. Restriction masks are applied with
``fit_constrained``, fixing the masked coefficients at zero.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import numpy as np
import pandas as pd
from statsmodels.tsa.arima.model import ARIMA

from tsorder.core.config import get_config
from tsorder.core.exceptions import (
    EstimationError, EstimationNonConvergence, ForecastError, raise_parameter_error,
    warn_convergence
)
from tsorder.core.results import ModelFitResult, ModelSpec
from tsorder.core.types import TimeSeriesData
from tsorder.models.time_series.utils import as_time_series, trend_regressor

logger = logging.getLogger("tsorder.models.time_series.estimation")

# statsmodels names an unnamed exogenous column "x1"
_SM_TREND_NAME = "x1"


@runtime_checkable
class ARIMAEstimator(Protocol):
    """Anything that can fit one ARIMA candidate."""

    def fit(self, series: pd.Series, spec: ModelSpec) -> ModelFitResult:
        ...


def _to_sm_name(name: str) -> str:
    return _SM_TREND_NAME if name == "trend" else name


def _from_sm_name(name: str) -> str:
    return "trend" if name == _SM_TREND_NAME else name


class StatsmodelsARIMAEstimator:
    """
    ARIMA estimator backed by statsmodels.

    Args:
        require_convergence: Raise EstimationNonConvergence when the optimizer
            reports failure; defaults to ``selection.require_convergence``
        maxiter: Optimizer iteration cap; defaults to ``selection.maxiter``
    """

    METHODS: Dict[str, Optional[str]] = {"default": None, "ML": "statespace"}

    def __init__(self,
                 require_convergence: Optional[bool] = None,
                 maxiter: Optional[int] = None):
        self.require_convergence = (get_config("selection", "require_convergence")
                                    if require_convergence is None else require_convergence)
        self.maxiter = get_config("selection", "maxiter") if maxiter is None else maxiter

    def _build_model(self, series: pd.Series, spec: ModelSpec) -> ARIMA:
        exog = trend_regressor(series)[:, None] if spec.trend else None
        # Deterministic terms enter only through the trend regressor
        return ARIMA(series.to_numpy(), exog=exog, order=spec.order, trend="n")

    def fit(self, series: TimeSeriesData, spec: ModelSpec) -> ModelFitResult:
        """
        Fit ``spec`` to ``series`` by maximum likelihood.

        Raises:
            EstimationNonConvergence: If the optimizer does not converge and
                convergence is required
            EstimationError: If statsmodels fails numerically
            ParameterError: If the method label is unknown
        """
        if spec.method not in self.METHODS:
            raise_parameter_error(
                f"Unknown estimation method '{spec.method}'",
                param_name="method",
                param_value=spec.method,
                constraint=f"one of {sorted(self.METHODS)}"
            )

        y = as_time_series(series)
        if len(y) - spec.d <= spec.n_coefficients + 1:
            raise EstimationError(
                "Too few observations for the number of coefficients",
                model_type=spec.label,
                issue="insufficient observations"
            )

        fit_kwargs: Dict[str, Any] = {"method_kwargs": {"maxiter": self.maxiter}}
        method = self.METHODS[spec.method]
        if method is not None:
            fit_kwargs["method"] = method

        constraints = {_to_sm_name(name): 0.0 for name in spec.fixed_names}

        # Convergence is read from mle_retvals, not from emitted warnings
        try:
            model = self._build_model(y, spec)
            if constraints:
                results = model.fit_constrained(constraints, **fit_kwargs)
            else:
                results = model.fit(**fit_kwargs)
        except (np.linalg.LinAlgError, ValueError, IndexError,
                OverflowError, FloatingPointError, ZeroDivisionError) as e:
            raise EstimationError(
                f"Estimation of {spec.label} failed: {e}",
                model_type=spec.label,
                estimation_method=spec.method,
                issue=type(e).__name__
            ) from e

        retvals = getattr(results, "mle_retvals", None) or {}
        converged = bool(retvals.get("converged", True))
        if not converged and self.require_convergence:
            raise EstimationNonConvergence(
                f"Optimizer did not converge for {spec.label}",
                model_type=spec.label,
                estimation_method=spec.method,
                iterations=retvals.get("iterations")
            )
        if not converged:
            warn_convergence(f"Optimizer did not converge for {spec.label}", model_type=spec.label)

        llf = float(results.llf)
        aic = float(results.aic)
        if not (np.isfinite(llf) and np.isfinite(aic)):
            raise EstimationError(
                f"Non-finite log-likelihood for {spec.label}",
                model_type=spec.label,
                estimation_method=spec.method,
                issue="non-finite likelihood"
            )

        logger.debug(f"{spec.label}: llf={llf:.4f}, converged={converged}, "
                     f"iterations={retvals.get('iterations')}")
        return self._to_fit_result(results, y, spec, aic, llf, converged)

    def _to_fit_result(self, results: Any, y: pd.Series, spec: ModelSpec,
                       aic: float, llf: float, converged: bool) -> ModelFitResult:
        sm_names: List[str] = list(results.model.param_names)
        names = [_from_sm_name(n) for n in sm_names]
        params = pd.Series(np.asarray(results.params, dtype=np.float64), index=names)

        free = spec.free_names
        cov = np.asarray(results.cov_params(), dtype=np.float64)
        if cov.shape == (len(names), len(names)):
            cov_frame = pd.DataFrame(cov, index=names, columns=names)
        else:
            # Some releases report the covariance of the free parameters only
            fixed = set(spec.fixed_names)
            free_all = [n for n in names if n not in fixed]
            cov_frame = pd.DataFrame(cov, index=free_all, columns=free_all)

        message = "success" if converged else "optimizer did not converge"
        return ModelFitResult(
            spec=spec,
            params=params[free],
            cov_params=cov_frame.loc[free, free],
            aic=aic,
            loglikelihood=llf,
            nobs=len(y) - spec.d,
            n_free_params=len(free) + 1,
            # The first d residuals come from the diffuse initialisation
            residuals=np.asarray(results.resid, dtype=np.float64)[spec.d:],
            sigma2=float(params.get("sigma2", np.nan)),
            fixed=tuple(spec.fixed_names),
            converged=converged,
            message=message,
            model_results=results
        )

    def forecast(self, fit: ModelFitResult, horizon: int, alpha: float = 0.05) -> pd.DataFrame:
        """
        Point forecasts, standard errors and (1 - alpha) intervals.

        Raises:
            ForecastError: If the fit carries no statsmodels results
        """
        results = fit.model_results
        if results is None or not hasattr(results, "get_forecast"):
            raise ForecastError(
                f"{fit.label} was not produced by this estimator",
                horizon=horizon,
                issue="missing estimator results"
            )

        exog = None
        if fit.spec.trend:
            trend = np.asarray(results.model.exog, dtype=np.float64)[:, 0]
            step = trend[-1] - trend[-2] if len(trend) > 1 else 1.0
            exog = (trend[-1] + step * np.arange(1, horizon + 1))[:, None]

        frame = results.get_forecast(steps=horizon, exog=exog).summary_frame(alpha=alpha)
        out = pd.DataFrame({
            "forecast": np.asarray(frame["mean"]),
            "std_error": np.asarray(frame["mean_se"]),
            "lower": np.asarray(frame["mean_ci_lower"]),
            "upper": np.asarray(frame["mean_ci_upper"]),
        }, index=pd.RangeIndex(1, horizon + 1, name="horizon"))
        return out
