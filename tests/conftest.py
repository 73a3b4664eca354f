'''
Pytest configuration and fixtures for the tsorder test suite.

Provides seeded data generators, a scripted ARIMA estimator that can be
injected wherever the package accepts an estimator, and a helper for
building fit results directly.
'''

import threading
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd
import pytest

from tsorder.core.config import reset_config
from tsorder.core.exceptions import EstimationNonConvergence
from tsorder.core.results import ModelFitResult, ModelSpec

DATA_DIR = Path(__file__).parent / "data"
REFERENCE_SERIES = DATA_DIR / "uk_log_income.csv"


# ---- Configuration isolation ----

@pytest.fixture(autouse=True)
def _default_config():
    """Every test starts and ends with the default configuration."""
    reset_config()
    yield
    reset_config()


# ---- Basic Data Generation Fixtures ----

@pytest.fixture
def rng() -> np.random.Generator:
    """Provide a seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def sample_size() -> int:
    """Default sample size for test data."""
    return 200


@pytest.fixture
def random_walk(rng: np.random.Generator, sample_size: int) -> np.ndarray:
    """Random walk with drift, a series with a unit root."""
    return 10.0 + np.cumsum(0.01 + 0.05 * rng.standard_normal(sample_size))


@pytest.fixture
def ar1_process(rng: np.random.Generator, sample_size: int) -> np.ndarray:
    """Generate a zero-mean AR(1) process with phi = 0.7."""
    phi = 0.7
    y = np.zeros(sample_size)
    y[0] = rng.standard_normal()
    for t in range(1, sample_size):
        y[t] = phi * y[t-1] + rng.standard_normal()
    return y


@pytest.fixture
def arima110_process(rng: np.random.Generator, sample_size: int) -> np.ndarray:
    """Integrated AR(1): first differences follow phi = 0.5."""
    e = rng.standard_normal(sample_size)
    dy = np.zeros(sample_size)
    for t in range(1, sample_size):
        dy[t] = 0.5 * dy[t-1] + e[t]
    return 100.0 + np.cumsum(dy)


@pytest.fixture
def reference_series() -> pd.Series:
    """UK log income series (N = 58); skipped when the data file is absent."""
    if not REFERENCE_SERIES.exists():
        pytest.skip("reference data tests/data/uk_log_income.csv not available")
    frame = pd.read_csv(REFERENCE_SERIES)
    return pd.Series(frame.iloc[:, -1].to_numpy(dtype=float),
                     index=pd.RangeIndex(1, len(frame) + 1), name="log_income")


# ---- Fit result construction ----

def make_fit_result(spec: ModelSpec,
                    aic: float = 100.0,
                    nobs: int = 99,
                    params: Optional[Iterable[float]] = None,
                    variances: Optional[Iterable[float]] = None,
                    residuals: Optional[np.ndarray] = None) -> ModelFitResult:
    """Build a ModelFitResult for ``spec`` without running an optimizer."""
    names = spec.free_names
    values = list(params) if params is not None else [0.1 * (i + 1) for i in range(len(names))]
    var = list(variances) if variances is not None else [0.01] * len(names)
    if residuals is None:
        residuals = np.random.default_rng(7).standard_normal(nobs)

    k = len(names) + 1
    return ModelFitResult(
        spec=spec,
        params=pd.Series(values, index=names, dtype=float),
        cov_params=pd.DataFrame(np.diag(var).reshape(len(names), len(names)),
                                index=names, columns=names),
        aic=aic,
        loglikelihood=-(aic - 2 * k) / 2,
        nobs=nobs,
        n_free_params=k,
        residuals=residuals,
        sigma2=1.0,
        fixed=tuple(spec.fixed_names),
    )


class ScriptedEstimator:
    """
    ARIMA estimator with scripted outcomes.

    Args:
        aic: Maps a spec to its AIC; defaults to 100 + number of free coefficients
        fail: Labels that always raise EstimationNonConvergence
    """

    def __init__(self,
                 aic: Optional[Callable[[ModelSpec], float]] = None,
                 fail: Iterable[str] = ()):
        self.aic = aic or (lambda spec: 100.0 + len(spec.free_names))
        self.fail = set(fail)
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def fit(self, series: pd.Series, spec: ModelSpec) -> ModelFitResult:
        with self._lock:
            self.calls.append(spec.label)
        if spec.label in self.fail:
            raise EstimationNonConvergence(
                f"Optimizer did not converge for {spec.label}",
                model_type=spec.label,
                iterations=500
            )
        seed = abs(hash(spec.label)) % (2 ** 32)
        residuals = np.random.default_rng(seed).standard_normal(len(series) - spec.d)
        return make_fit_result(spec, aic=self.aic(spec), nobs=len(series) - spec.d,
                               residuals=residuals)


@pytest.fixture
def scripted_estimator() -> Callable[..., ScriptedEstimator]:
    """Factory for ScriptedEstimator instances."""
    return ScriptedEstimator


@pytest.fixture
def fit_result_factory() -> Callable[..., ModelFitResult]:
    return make_fit_result


@pytest.fixture
def disagreeing_aic() -> Dict[str, float]:
    """
    AICs for which AIC prefers ARIMA(2,1,2) and BIC prefers ARIMA(0,1,0)
    when T = 99 (ln T - 2 ~ 2.595 per extra parameter).
    """
    return {"ARIMA(0,1,0)": 100.0, "ARIMA(2,1,2)": 95.0}
