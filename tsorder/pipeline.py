# tsorder/pipeline.py
"""
End-to-end order-selection analysis of one series.

``analyze_series`` runs the full workflow in sequence:

1. Augmented Dickey-Fuller statistics on the levels and on the first
   differences.
2. The ARIMA(p, d, q) grid search.
3. For the best model by AIC and the best model by BIC: Ljung-Box test of
   the residuals, coefficient tests and characteristic roots.
4. Optionally, the evaluation of zero-restricted variants of a base model.

Every candidate of the grid appears in the report, either as a fit or as a
recorded failure, and statistics that cannot be computed appear as
NotApplicable.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from tsorder.core.config import get_config
from tsorder.core.results import (
    DiagnosticResult, ModelFitResult, ModelSpec, is_applicable
)
from tsorder.core.types import MaskLike, TimeSeriesData
from tsorder.models.time_series.diagnostics import check_lags, coefficient_frame, ljung_box_for_fit
from tsorder.models.time_series.estimation import ARIMAEstimator
from tsorder.models.time_series.roots import CommonRootAnalyzer, RootAnalysis
from tsorder.models.time_series.selection import (
    CoefficientTests, GridReport, ModelGridSearch, RestrictionReport, evaluate_restrictions,
    restriction_specs
)
from tsorder.models.time_series.unit_root import ADFResult, ADFTester
from tsorder.models.time_series.utils import as_time_series, difference

logger = logging.getLogger("tsorder.pipeline")


@dataclass(frozen=True, eq=False)
class SelectedModel:
    """Diagnostics of a model chosen by one information criterion."""

    criterion: str
    fit: ModelFitResult
    ljung_box: DiagnosticResult
    coefficient_tests: CoefficientTests
    roots: RootAnalysis

    def summary(self) -> str:
        lines = [f"Best by {self.criterion.upper()}: {self.fit.label}",
                 f"  aic = {self.fit.aic:.4f}, bic = {self.fit.bic:.4f}",
                 f"  {self.ljung_box}"]
        if is_applicable(self.coefficient_tests):
            table = coefficient_frame(self.coefficient_tests)
            lines.extend("  " + line for line in table.to_string(float_format="%.4f").splitlines())
        else:
            lines.append(f"  coefficient tests: {self.coefficient_tests}")
        lines.append(f"  stationary: {self.roots.is_stationary}, invertible: {self.roots.is_invertible}")
        if self.roots.has_common_roots:
            for pair in self.roots.common:
                lines.append(f"  common root candidate: AR {pair.ar_root:.4f} ~ MA {pair.ma_root:.4f} "
                             f"(distance {pair.distance:.4g})")
        return "\n".join(lines)


@dataclass(frozen=True, eq=False)
class AnalysisReport:
    """Everything ``analyze_series`` computed."""

    name: str
    nobs: int
    adf_levels: ADFResult
    adf_differences: ADFResult
    grid: GridReport
    best_aic: Optional[SelectedModel]
    best_bic: Optional[SelectedModel]
    restrictions: Optional[RestrictionReport] = None

    @property
    def criteria_agree(self) -> bool:
        if self.best_aic is None or self.best_bic is None:
            return True
        return self.best_aic.fit.label == self.best_bic.fit.label

    def summary(self) -> str:
        sections = [
            f"Order selection for '{self.name}' ({self.nobs} observations)",
            "",
            "Levels:",
            self.adf_levels.summary(),
            "",
            "First differences:",
            self.adf_differences.summary(),
            "",
            self.grid.summary(),
        ]
        for selected in (self.best_aic, self.best_bic):
            if selected is not None:
                sections.extend(["", selected.summary()])
        if not self.criteria_agree:
            sections.extend(["", "AIC and BIC select different models."])
        if self.restrictions is not None:
            sections.extend(["", self.restrictions.summary()])
        return "\n".join(sections)


def _select(grid: GridReport, criterion: str, lags: int,
            analyzer: CommonRootAnalyzer) -> Optional[SelectedModel]:
    fit = grid.best(criterion)
    if fit is None:
        logger.warning(f"No candidate could be fitted; nothing selected by {criterion.upper()}")
        return None
    return SelectedModel(
        criterion=criterion,
        fit=fit,
        ljung_box=ljung_box_for_fit(fit, lags=lags),
        coefficient_tests=grid.coefficient_tests[fit.label],
        roots=analyzer.analyze(fit)
    )


def analyze_series(data: TimeSeriesData,
                   max_lag: Optional[int] = None,
                   adf_trend: Optional[bool] = None,
                   max_p: Optional[int] = None,
                   max_q: Optional[int] = None,
                   d: Optional[int] = None,
                   trend: bool = False,
                   estimator: Optional[ARIMAEstimator] = None,
                   n_jobs: Optional[int] = None,
                   ljung_box_lags: Optional[int] = None,
                   root_tolerance: Optional[float] = None,
                   restriction_base: Optional[ModelSpec] = None,
                   restriction_masks: Optional[Sequence[MaskLike]] = None) -> AnalysisReport:
    """
    Run the complete order-selection workflow on one series.

    Args:
        data: Series in levels
        max_lag: Largest ADF lag order (``unitroot.max_lag``)
        adf_trend: Include a trend in the ADF regressions (``unitroot.trend``)
        max_p: Largest AR order (``selection.max_p``)
        max_q: Largest MA order (``selection.max_q``)
        d: Differencing order (``selection.d``)
        trend: Include a trend regressor in the ARIMA candidates
        estimator: ARIMA estimator; defaults to the statsmodels estimator
        n_jobs: Worker threads for the grid search (``selection.n_jobs``)
        ljung_box_lags: Ljung-Box lag count K (``diagnostics.ljung_box_lags``)
        root_tolerance: Common-root tolerance (``roots.common_root_tolerance``)
        restriction_base: Base model for restriction evaluation
        restriction_masks: Masks to evaluate against ``restriction_base``

    Returns:
        AnalysisReport

    Raises:
        DataFormatError: If the series is malformed
        ParameterError: If any order, lag or mask is invalid
    """
    series = as_time_series(data)
    name = str(series.name)
    lags = get_config("diagnostics", "ljung_box_lags") if ljung_box_lags is None else ljung_box_lags
    run_restrictions = restriction_base is not None and bool(restriction_masks)

    # Validate everything before the first fit
    lags = check_lags(lags)
    tester = ADFTester(max_lag=max_lag, trend=adf_trend)
    search = ModelGridSearch(max_p=max_p, max_q=max_q, d=d, trend=trend,
                             estimator=estimator, n_jobs=n_jobs)
    analyzer = CommonRootAnalyzer(tolerance=root_tolerance)
    if run_restrictions:
        restriction_specs(restriction_base, restriction_masks)

    logger.info(f"Unit-root statistics for '{name}'")
    adf_levels = tester.test(series)
    adf_differences = tester.test(difference(series, 1))

    logger.info(f"Grid search for '{name}'")
    grid = search.run(series)

    best_aic = _select(grid, "aic", lags, analyzer)
    best_bic = _select(grid, "bic", lags, analyzer)

    restrictions = None
    if run_restrictions:
        logger.info(f"Restriction analysis of {restriction_base.label}")
        restrictions = evaluate_restrictions(series, restriction_base, restriction_masks,
                                             estimator=search.estimator, n_jobs=search.n_jobs)

    return AnalysisReport(
        name=name,
        nobs=len(series),
        adf_levels=adf_levels,
        adf_differences=adf_differences,
        grid=grid,
        best_aic=best_aic,
        best_bic=best_bic,
        restrictions=restrictions
    )


async def analyze_series_async(data: TimeSeriesData, **kwargs) -> AnalysisReport:
    """Run ``analyze_series`` in the default executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, lambda: analyze_series(data, **kwargs))
