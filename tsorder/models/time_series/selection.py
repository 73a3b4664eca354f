# tsorder/models/time_series/selection.py
"""
Order selection for ARIMA models.

This module provides the exhaustive (p, q) grid search and the evaluation of
zero-restricted variants of a base model. Both work the same way: every
candidate is fitted in isolation and turned into a tagged outcome,
``FitSuccess`` or ``FitFailure``, which the caller folds into its own
registries. An ``EstimationError`` raised by one candidate is recorded under
that candidate's label and never stops the remaining fits. Errors in the
search configuration itself (negative orders, a mask of the wrong length)
are raised before any fit starts.

Candidates are ranked by AIC and, separately, by BIC. The two rankings can
disagree and both are always reported.
"""

import asyncio
import logging
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from tsorder.core.config import get_config
from tsorder.core.exceptions import EstimationError, raise_parameter_error
from tsorder.core.results import (
    CoefficientTest, FitFailure, FitOutcome, FitSuccess, ModelFitResult,
    ModelSpec, NotApplicable
)
from tsorder.core.types import Criterion, MaskLike, TimeSeriesData
from tsorder.models.time_series.diagnostics import coefficient_frame, coefficient_tests
from tsorder.models.time_series.estimation import ARIMAEstimator, StatsmodelsARIMAEstimator
from tsorder.models.time_series.utils import as_time_series

logger = logging.getLogger("tsorder.models.time_series.selection")

CoefficientTests = Union[Dict[str, CoefficientTest], NotApplicable]

_CRITERIA = ("aic", "bic")


def _check_order(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 0:
        raise_parameter_error(
            f"{name} must be a non-negative integer",
            param_name=name,
            param_value=value,
            constraint=">= 0"
        )
    return int(value)


def _check_criterion(criterion: str) -> str:
    criterion = criterion.lower()
    if criterion not in _CRITERIA:
        raise_parameter_error(
            f"Unknown information criterion '{criterion}'",
            param_name="criterion",
            param_value=criterion,
            constraint="'aic' or 'bic'"
        )
    return criterion


def _fit_candidate(estimator: ARIMAEstimator, series: pd.Series, spec: ModelSpec) -> FitOutcome:
    """Fit one candidate and tag the outcome. Only EstimationError is absorbed."""
    try:
        result = estimator.fit(series, spec)
    except EstimationError as e:
        logger.warning(f"{spec.label} failed: {e.message}")
        return FitFailure(label=spec.label, message=e.message, error_type=type(e).__name__)

    logger.debug(f"{spec.label}: aic={result.aic:.4f}, bic={result.bic:.4f}")
    return FitSuccess(label=spec.label, result=result)


def _fit_all(estimator: ARIMAEstimator, series: pd.Series,
             specs: Sequence[ModelSpec], n_jobs: int = 1) -> List[FitOutcome]:
    """Fit every candidate, returning outcomes in the order of ``specs``."""
    if n_jobs <= 1 or len(specs) <= 1:
        return [_fit_candidate(estimator, series, spec) for spec in specs]

    # Workers share the process-wide warning filters; they are restored
    # on this thread once every worker has finished
    with warnings.catch_warnings():
        with ThreadPoolExecutor(max_workers=n_jobs) as pool:
            futures = [pool.submit(_fit_candidate, estimator, series, spec) for spec in specs]
            outcomes = [future.result() for future in futures]
    return outcomes


def _fold(outcomes: Iterable[FitOutcome]) -> Tuple[Dict[str, ModelFitResult],
                                                   Dict[str, str],
                                                   Dict[str, CoefficientTests]]:
    results: Dict[str, ModelFitResult] = {}
    failures: Dict[str, str] = {}
    tests: Dict[str, CoefficientTests] = {}

    for outcome in outcomes:
        if outcome.label in results or outcome.label in failures:
            raise_parameter_error(
                f"Duplicate model label '{outcome.label}'",
                param_name="label",
                param_value=outcome.label
            )
        if isinstance(outcome, FitSuccess):
            results[outcome.label] = outcome.result
            tests[outcome.label] = coefficient_tests(outcome.result)
        else:
            failures[outcome.label] = outcome.message

    return results, failures, tests


def _rank_frame(results: Dict[str, ModelFitResult], criterion: str) -> pd.DataFrame:
    columns = ["model", "p", "d", "q", "k", "nobs", "loglikelihood", "aic", "bic", "fixed"]
    rows = []
    for fit in results.values():
        row = fit.summary_row()
        row["fixed"] = ",".join(fit.fixed)
        rows.append(row)

    frame = pd.DataFrame(rows, columns=columns)
    if frame.empty:
        frame["rank"] = pd.Series(dtype=int)
        return frame.set_index("model")

    # Stable sort keeps grid order among ties
    frame = frame.sort_values(criterion, kind="mergesort").reset_index(drop=True)
    frame["rank"] = np.arange(1, len(frame) + 1)
    return frame.set_index("model")


@dataclass(frozen=True, eq=False)
class GridReport:
    """
    Outcome of a (p, q) grid search.

    Attributes:
        specs: Every candidate in grid order
        results: Label -> fitted model, successful candidates only
        failures: Label -> failure message
        coefficient_tests: Label -> coefficient tests (NotApplicable for
            models without estimated coefficients)
    """

    specs: Tuple[ModelSpec, ...]
    results: Dict[str, ModelFitResult] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)
    coefficient_tests: Dict[str, CoefficientTests] = field(default_factory=dict)

    @property
    def n_candidates(self) -> int:
        return len(self.specs)

    def to_frame(self) -> pd.DataFrame:
        """Summary statistics of the successful fits in grid order."""
        rows = [fit.summary_row() for fit in self.results.values()]
        return pd.DataFrame(
            rows, columns=["model", "p", "d", "q", "k", "nobs", "loglikelihood", "aic", "bic"]
        ).set_index("model")

    def rank(self, criterion: Criterion = "aic") -> pd.DataFrame:
        """Successful fits sorted by ``criterion``, with a 1-based rank column."""
        return _rank_frame(self.results, _check_criterion(criterion))

    def best(self, criterion: Criterion = "aic") -> Optional[ModelFitResult]:
        """Lowest-criterion fit, or None when every candidate failed."""
        ranked = self.rank(criterion)
        if ranked.empty:
            return None
        return self.results[ranked.index[0]]

    def coefficient_table(self, label: str) -> pd.DataFrame:
        return coefficient_frame(self.coefficient_tests[label])

    def summary(self) -> str:
        lines = [f"ARIMA grid search: {len(self.results)} of {self.n_candidates} candidates fitted"]
        for criterion in _CRITERIA:
            best = self.best(criterion)
            if best is not None:
                value = best.aic if criterion == "aic" else best.bic
                lines.append(f"  best by {criterion.upper()}: {best.label} ({value:.4f})")
        if self.failures:
            lines.append("  failures:")
            lines.extend(f"    {label}: {message}" for label, message in self.failures.items())
        return "\n".join(lines)


class ModelGridSearch:
    """
    Exhaustive ARIMA(p, d, q) search over p in [0, max_p] and q in [0, max_q].

    Args:
        max_p: Largest AR order; defaults to ``selection.max_p``
        max_q: Largest MA order; defaults to ``selection.max_q``
        d: Differencing order; defaults to ``selection.d``
        trend: Include a deterministic trend regressor in every candidate
        method: Estimation method label; defaults to
            ``selection.estimation_method``
        estimator: ARIMA estimator; defaults to StatsmodelsARIMAEstimator
        n_jobs: Number of worker threads; defaults to ``selection.n_jobs``

    Examples:
        >>> from tsorder.models.time_series.selection import ModelGridSearch
        >>> search = ModelGridSearch(max_p=1, max_q=1, d=1)
        >>> [spec.label for spec in search.specs()]
        ['ARIMA(0,1,0)', 'ARIMA(0,1,1)', 'ARIMA(1,1,0)', 'ARIMA(1,1,1)']
    """

    def __init__(self,
                 max_p: Optional[int] = None,
                 max_q: Optional[int] = None,
                 d: Optional[int] = None,
                 trend: bool = False,
                 method: Optional[str] = None,
                 estimator: Optional[ARIMAEstimator] = None,
                 n_jobs: Optional[int] = None):
        self.max_p = _check_order(get_config("selection", "max_p") if max_p is None else max_p, "max_p")
        self.max_q = _check_order(get_config("selection", "max_q") if max_q is None else max_q, "max_q")
        self.d = _check_order(get_config("selection", "d") if d is None else d, "d")
        self.trend = bool(trend)
        self.method = get_config("selection", "estimation_method") if method is None else method
        self.estimator = estimator if estimator is not None else StatsmodelsARIMAEstimator()
        self.n_jobs = get_config("selection", "n_jobs") if n_jobs is None else n_jobs

        if isinstance(self.n_jobs, bool) or not isinstance(self.n_jobs, (int, np.integer)) or self.n_jobs < 1:
            raise_parameter_error(
                "n_jobs must be a positive integer",
                param_name="n_jobs",
                param_value=self.n_jobs,
                constraint=">= 1"
            )

    def specs(self) -> List[ModelSpec]:
        return [
            ModelSpec(p=p, d=self.d, q=q, trend=self.trend, method=self.method)
            for p in range(self.max_p + 1)
            for q in range(self.max_q + 1)
        ]

    def run(self, data: TimeSeriesData) -> GridReport:
        """
        Fit every candidate on ``data``.

        Returns:
            GridReport: Successful fits, failures and coefficient tests

        Raises:
            DataFormatError: If the series is malformed
        """
        series = as_time_series(data)
        specs = self.specs()
        logger.info(f"Fitting {len(specs)} ARIMA candidates (d={self.d}, n_jobs={self.n_jobs})")

        outcomes = _fit_all(self.estimator, series, specs, self.n_jobs)
        results, failures, tests = _fold(outcomes)

        if failures:
            logger.info(f"{len(failures)} of {len(specs)} candidates failed")
        return GridReport(specs=tuple(specs), results=results, failures=failures,
                          coefficient_tests=tests)

    async def run_async(self, data: TimeSeriesData) -> GridReport:
        """Run ``run`` in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self.run(data))


def run_grid(data: TimeSeriesData,
             max_p: Optional[int] = None,
             d: Optional[int] = None,
             max_q: Optional[int] = None,
             trend: bool = False,
             estimator: Optional[ARIMAEstimator] = None,
             method: Optional[str] = None,
             n_jobs: Optional[int] = None) -> GridReport:
    """Grid search over p in [0, max_p] and q in [0, max_q] for fixed d."""
    search = ModelGridSearch(max_p=max_p, max_q=max_q, d=d, trend=trend,
                             method=method, estimator=estimator, n_jobs=n_jobs)
    return search.run(data)


async def run_grid_async(data: TimeSeriesData, **kwargs) -> GridReport:
    """Asynchronous ``run_grid``; keyword arguments are passed through."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, lambda: run_grid(data, **kwargs))


@dataclass(frozen=True, eq=False)
class RestrictionReport:
    """
    Comparison of zero-restricted variants of one base model.

    Attributes:
        base_spec: The unrestricted model
        specs: Label -> restricted specification, in evaluation order
        results: Label -> fitted model
        failures: Label -> failure message
        coefficient_tests: Label -> tests of the free coefficients only
        by_aic: Successful fits ranked by AIC
        by_bic: Successful fits ranked by BIC
    """

    base_spec: ModelSpec
    specs: Dict[str, ModelSpec]
    results: Dict[str, ModelFitResult]
    failures: Dict[str, str]
    coefficient_tests: Dict[str, CoefficientTests]
    by_aic: pd.DataFrame
    by_bic: pd.DataFrame

    def best(self, criterion: Criterion = "aic") -> Optional[ModelFitResult]:
        ranked = self.by_aic if _check_criterion(criterion) == "aic" else self.by_bic
        if ranked.empty:
            return None
        return self.results[ranked.index[0]]

    @property
    def rankings_agree(self) -> bool:
        """True when AIC and BIC select the same model."""
        if self.by_aic.empty:
            return True
        return self.by_aic.index[0] == self.by_bic.index[0]

    def summary(self) -> str:
        lines = [f"Restrictions of {self.base_spec.label}"]
        for criterion, frame in (("AIC", self.by_aic), ("BIC", self.by_bic)):
            lines.append(f"  ranked by {criterion}:")
            for label, row in frame.iterrows():
                lines.append(f"    {int(row['rank']):>2}. {label}  "
                             f"aic={row['aic']:.4f} bic={row['bic']:.4f}")
        if not self.rankings_agree:
            lines.append("  AIC and BIC select different models")
        for label, message in self.failures.items():
            lines.append(f"  failed: {label}: {message}")
        return "\n".join(lines)


def restriction_specs(base_spec: ModelSpec,
                      masks: Sequence[MaskLike],
                      include_base: bool = True) -> List[ModelSpec]:
    """
    Restricted variants of ``base_spec``, one per mask, in evaluation order.

    The unrestricted base comes first when ``include_base`` is set and no
    mask already equals it. No fit is run.

    Raises:
        ParameterError: If a mask has the wrong length or two masks coincide
    """
    base = base_spec.with_mask(None)
    specs: List[ModelSpec] = [base.with_mask(mask) for mask in masks]

    labels = [spec.label for spec in specs]
    duplicated = sorted({label for label in labels if labels.count(label) > 1})
    if duplicated:
        raise_parameter_error(
            "Restriction masks must be distinct",
            param_name="masks",
            param_value=duplicated
        )
    if include_base and base.label not in labels:
        specs.insert(0, base)
    return specs


def evaluate_restrictions(data: TimeSeriesData,
                          base_spec: ModelSpec,
                          masks: Sequence[MaskLike],
                          estimator: Optional[ARIMAEstimator] = None,
                          include_base: bool = True,
                          n_jobs: int = 1) -> RestrictionReport:
    """
    Refit ``base_spec`` under each fixed-parameter mask and rank the fits.

    Each mask has one flag per coefficient of ``base_spec`` (see
    ``ModelSpec.coefficient_names``); True constrains that coefficient to
    zero. Constrained coefficients get no z-test.

    Args:
        data: Series in levels
        base_spec: Unrestricted model
        masks: Restriction masks
        estimator: ARIMA estimator; defaults to StatsmodelsARIMAEstimator
        include_base: Also fit the unrestricted model for comparison
        n_jobs: Number of worker threads

    Returns:
        RestrictionReport: Fits ranked separately by AIC and by BIC

    Raises:
        ParameterError: If a mask has the wrong length or two masks coincide
    """
    base = base_spec.with_mask(None)
    specs = restriction_specs(base, masks, include_base=include_base)

    estimator = estimator if estimator is not None else StatsmodelsARIMAEstimator()
    series = as_time_series(data)
    logger.info(f"Evaluating {len(specs)} restrictions of {base.label}")

    outcomes = _fit_all(estimator, series, specs, n_jobs)
    results, failures, tests = _fold(outcomes)

    return RestrictionReport(
        base_spec=base,
        specs={spec.label: spec for spec in specs},
        results=results,
        failures=failures,
        coefficient_tests=tests,
        by_aic=_rank_frame(results, "aic"),
        by_bic=_rank_frame(results, "bic")
    )
