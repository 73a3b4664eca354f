'''
Standardized result containers for tsorder.

This module provides the dataclass-based value objects passed between the
components: regression output, model specifications, fitted-model results,
per-candidate fit outcomes and diagnostic results. All of them are frozen
once constructed; the only mutable structures in the package are the
registries that collect fit outcomes during a search.

The ``NotApplicable`` sentinel stands in for any statistic that cannot be
computed (insufficient degrees of freedom, zero free parameters, zero or
non-finite variance entries). It is a value, never an exception.
'''

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from tsorder.core.exceptions import ParameterError
from tsorder.core.types import ARIMAOrder, FixedMask, MaskLike


@dataclass(frozen=True)
class NotApplicable:
    """Sentinel for a statistic that cannot be computed.

    Attributes:
        reason: Human readable explanation, e.g. "df <= 0"
    """

    reason: str = "not applicable"

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"N/A ({self.reason})"


def is_applicable(value: Any) -> bool:
    """Return True unless ``value`` is a NotApplicable sentinel."""
    return not isinstance(value, NotApplicable)


@dataclass(frozen=True, eq=False)
class RegressionResult:
    """Output of a single ordinary least squares fit.

    Attributes:
        params: Coefficient vector, aligned with ``names``
        cov_params: Coefficient covariance matrix (k x k)
        resid: Residual vector
        names: Column names of the design matrix
        nobs: Number of rows used in the fit
    """

    params: np.ndarray
    cov_params: np.ndarray
    resid: np.ndarray
    names: Tuple[str, ...]
    nobs: int

    def __post_init__(self) -> None:
        k = len(self.params)
        if self.cov_params.shape != (k, k):
            raise ParameterError(
                "Covariance matrix must be square with one row per coefficient",
                param_name="cov_params",
                param_value=self.cov_params.shape,
                constraint=f"shape == ({k}, {k})"
            )

    def coefficient(self, name: str) -> float:
        return float(self.params[self.names.index(name)])

    def std_error(self, name: str) -> float:
        i = self.names.index(name)
        variance = self.cov_params[i, i]
        if not np.isfinite(variance) or variance < 0:
            return float("nan")
        return float(np.sqrt(variance))


@dataclass(frozen=True)
class ModelSpec:
    """Immutable description of one ARIMA candidate.

    Coefficients are ordered ``ar.L1..ar.Lp, ma.L1..ma.Lq`` followed by
    ``trend`` when the trend flag is set. ``fixed_mask`` carries one flag per
    coefficient in that order; True marks a coefficient constrained to zero.

    Attributes:
        p: Autoregressive order
        d: Differencing order
        q: Moving average order
        trend: Whether a deterministic trend regressor is included
        fixed_mask: Optional restriction mask
        method: Estimation method label ("default" or "ML")
    """

    p: int
    d: int
    q: int
    trend: bool = False
    fixed_mask: Optional[FixedMask] = None
    method: str = "default"

    def __post_init__(self) -> None:
        for name in ("p", "d", "q"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 0:
                raise ParameterError(
                    f"Model order {name} must be a non-negative integer",
                    param_name=name,
                    param_value=value,
                    constraint=">= 0"
                )
        if self.fixed_mask is not None:
            mask = tuple(bool(flag) for flag in self.fixed_mask)
            if len(mask) != self.n_coefficients:
                raise ParameterError(
                    "Fixed-parameter mask length does not match the number of coefficients",
                    param_name="fixed_mask",
                    param_value=len(mask),
                    constraint=f"length == {self.n_coefficients}",
                    details=f"Coefficients: {', '.join(self.coefficient_names)}"
                )
            object.__setattr__(self, "fixed_mask", mask)

    @property
    def order(self) -> ARIMAOrder:
        return (self.p, self.d, self.q)

    @property
    def coefficient_names(self) -> List[str]:
        names = [f"ar.L{i}" for i in range(1, self.p + 1)]
        names += [f"ma.L{i}" for i in range(1, self.q + 1)]
        if self.trend:
            names.append("trend")
        return names

    @property
    def n_coefficients(self) -> int:
        return self.p + self.q + int(self.trend)

    @property
    def fixed_names(self) -> List[str]:
        if self.fixed_mask is None:
            return []
        return [name for name, fixed in zip(self.coefficient_names, self.fixed_mask) if fixed]

    @property
    def free_names(self) -> List[str]:
        fixed = set(self.fixed_names)
        return [name for name in self.coefficient_names if name not in fixed]

    @property
    def label(self) -> str:
        """Unique, readable identifier used as the registry key."""
        label = f"ARIMA({self.p},{self.d},{self.q})"
        if self.trend:
            label += "+trend"
        if self.fixed_mask is not None and any(self.fixed_mask):
            label += "[fixed: " + ",".join(self.fixed_names) + "]"
        if self.method != "default":
            label += f"/{self.method}"
        return label

    def with_mask(self, mask: Optional[MaskLike]) -> 'ModelSpec':
        """Return a copy of this spec restricted by ``mask``."""
        return ModelSpec(
            p=self.p, d=self.d, q=self.q, trend=self.trend,
            fixed_mask=None if mask is None else tuple(bool(m) for m in mask),
            method=self.method
        )


@dataclass(frozen=True, eq=False)
class ModelFitResult:
    """Result of one successful ARIMA fit.

    ``params`` holds the free (estimated) coefficients only; constrained
    coefficients are listed in ``fixed``. ``cov_params`` is aligned with
    ``params``. ``n_free_params`` counts the free coefficients plus the
    innovation variance, which is the parameter count behind the AIC.

    Attributes:
        spec: The specification that was fitted
        params: Free coefficients, indexed by coefficient name
        cov_params: Covariance of the free coefficients
        aic: Akaike information criterion reported by the estimator
        loglikelihood: Maximised log-likelihood
        nobs: Observations used in estimation (N - d)
        n_free_params: Number of estimated parameters, variance included
        residuals: Model residuals
        sigma2: Innovation variance estimate
        fixed: Coefficients constrained to zero
        converged: Whether the optimizer reported convergence
        message: Optimizer status message
    """

    spec: ModelSpec
    params: pd.Series
    cov_params: pd.DataFrame
    aic: float
    loglikelihood: float
    nobs: int
    n_free_params: int
    residuals: np.ndarray
    sigma2: float = float("nan")
    fixed: Tuple[str, ...] = ()
    converged: bool = True
    message: str = "success"
    model_results: Any = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        k = len(self.params)
        if self.cov_params.shape != (k, k):
            raise ParameterError(
                "Covariance matrix must be square with one row per free coefficient",
                param_name="cov_params",
                param_value=self.cov_params.shape,
                constraint=f"shape == ({k}, {k})"
            )

    @property
    def label(self) -> str:
        return self.spec.label

    @property
    def bic(self) -> float:
        """BIC derived from the estimator's AIC: AIC + (ln(T) - 2) * k."""
        return self.aic + (math.log(self.nobs) - 2.0) * self.n_free_params

    @property
    def ar_params(self) -> np.ndarray:
        """AR coefficients in lag order with constrained lags set to zero."""
        return np.array([
            float(self.params.get(f"ar.L{i}", 0.0)) for i in range(1, self.spec.p + 1)
        ])

    @property
    def ma_params(self) -> np.ndarray:
        """MA coefficients in lag order with constrained lags set to zero."""
        return np.array([
            float(self.params.get(f"ma.L{i}", 0.0)) for i in range(1, self.spec.q + 1)
        ])

    def summary_row(self) -> Dict[str, Any]:
        return {
            "model": self.label,
            "p": self.spec.p,
            "d": self.spec.d,
            "q": self.spec.q,
            "k": self.n_free_params,
            "nobs": self.nobs,
            "loglikelihood": self.loglikelihood,
            "aic": self.aic,
            "bic": self.bic,
        }


@dataclass(frozen=True)
class FitSuccess:
    """Tagged outcome of a candidate fit that succeeded."""

    label: str
    result: ModelFitResult

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class FitFailure:
    """Tagged outcome of a candidate fit that failed.

    Attributes:
        label: Model label
        message: Failure message from the estimator
        error_type: Name of the exception class that was raised
    """

    label: str
    message: str
    error_type: str = "EstimationError"

    @property
    def ok(self) -> bool:
        return False


FitOutcome = Union[FitSuccess, FitFailure]


@dataclass(frozen=True)
class CoefficientTest:
    """z-test for one estimated coefficient.

    ``z`` and ``p_value`` are NotApplicable when the coefficient variance is
    zero or non-finite. The p-value is one-tailed: P(Z > |z|).
    """

    name: str
    estimate: float
    std_error: float
    z: Union[float, NotApplicable]
    p_value: Union[float, NotApplicable]


@dataclass(frozen=True)
class LjungBoxResult:
    """Result of a Ljung-Box portmanteau test.

    Attributes:
        statistic: Q statistic
        df: Degrees of freedom, K minus the estimated parameter count
        p_value: Upper-tail chi-squared probability of Q
        lags: Number of autocorrelations K included
        nobs: Sample size T used in the statistic
    """

    statistic: float
    df: int
    p_value: float
    lags: int
    nobs: int

    def __str__(self) -> str:
        return (f"Ljung-Box Q({self.lags}) = {self.statistic:.4f}, "
                f"df = {self.df}, p-value = {self.p_value:.4f}")


DiagnosticResult = Union[LjungBoxResult, NotApplicable]

__all__ = [
    'NotApplicable', 'is_applicable', 'RegressionResult', 'ModelSpec',
    'ModelFitResult', 'FitSuccess', 'FitFailure', 'FitOutcome',
    'CoefficientTest', 'LjungBoxResult', 'DiagnosticResult',
]
