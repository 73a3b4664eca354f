# tests/test_time_series.py

"""
Tests for the time series components of tsorder.

The test suite includes:
- Augmented Dickey-Fuller statistics, cross-checked against statsmodels
- Exclusion of zero-padded lag rows from every regression
- ARIMA estimation through statsmodels, with and without restrictions
- Grid search failure isolation, ordering and AIC/BIC ranking
- Evaluation of restricted models
- Forecasts from a selected model
- Asynchronous entry points
"""

import asyncio
import math
import warnings

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose
import statsmodels.api as sm
from statsmodels.tsa.stattools import adfuller

from tsorder.core.exceptions import (
    EstimationError, EstimationNonConvergence, ForecastError, ParameterError
)
from tsorder.core.results import FitFailure, FitSuccess, ModelSpec, NotApplicable, is_applicable
from tsorder.models.time_series.estimation import ARIMAEstimator, StatsmodelsARIMAEstimator
from tsorder.models.time_series.forecast import forecast
from tsorder.models.time_series.selection import (
    ModelGridSearch, _fit_candidate, evaluate_restrictions, restriction_specs, run_grid,
    run_grid_async
)
from tsorder.models.time_series.unit_root import ADFTester, augmented_dickey_fuller, ols
from tests.conftest import ScriptedEstimator, make_fit_result


# ---- Unit Root Tests ----

class TestADF:
    """Tests for the augmented Dickey-Fuller tester."""

    @pytest.mark.parametrize("lag", [1, 2, 3])
    def test_matches_statsmodels_constant(self, random_walk, lag):
        result = augmented_dickey_fuller(random_walk, max_lag=lag)
        expected = adfuller(random_walk, maxlag=lag, autolag=None, regression="c")[0]
        assert result.statistic(lag) == pytest.approx(expected, rel=1e-8)

    @pytest.mark.parametrize("lag", [1, 3])
    def test_matches_statsmodels_trend(self, random_walk, lag):
        # The level t-ratio does not depend on where the trend starts
        result = augmented_dickey_fuller(random_walk, max_lag=lag, trend=True)
        expected = adfuller(random_walk, maxlag=lag, autolag=None, regression="ct")[0]
        assert result.statistic(lag) == pytest.approx(expected, rel=1e-8)

    def test_lag_zero_regression(self, random_walk):
        result = augmented_dickey_fuller(random_walk, max_lag=0)
        dy = np.diff(random_walk)
        X = sm.add_constant(random_walk[:-1][:, None], prepend=True)
        res = sm.OLS(dy, X).fit()
        assert result.statistic(0) == pytest.approx(res.params[1] / res.bse[1])
        assert result.nobs[0] == len(random_walk) - 1

    def test_rows_used_per_lag(self, random_walk):
        result = augmented_dickey_fuller(random_walk, max_lag=4)
        n_diff = len(random_walk) - 1
        assert result.nobs == {j: n_diff - j for j in range(5)}
        assert sorted(result.statistics) == [0, 1, 2, 3, 4]
        assert result.trend_statistics is None

    def test_padded_rows_never_fitted(self, random_walk):
        """Corrupting the zero-filled lag entries leaves every statistic unchanged."""

        class CorruptedPadding(ADFTester):
            def build_design(self, series):
                design = super().build_design(series)
                for k in range(1, self.max_lag + 1):
                    design.iloc[:k, design.columns.get_loc(f"lag{k}")] = 1e6
                return design

        clean = ADFTester(max_lag=4, trend=True).test(random_walk)
        corrupted = CorruptedPadding(max_lag=4, trend=True).test(random_walk)

        for lag in range(5):
            assert corrupted.statistics[lag] == pytest.approx(clean.statistics[lag], rel=1e-12)
            assert corrupted.trend_statistics[lag] == pytest.approx(clean.trend_statistics[lag], rel=1e-12)

    def test_design_keeps_zero_padding(self, random_walk):
        tester = ADFTester(max_lag=2)
        design = tester.build_design(pd.Series(random_walk, index=range(1, len(random_walk) + 1)))
        assert len(design) == len(random_walk) - 1
        assert design["lag2"].iloc[:2].tolist() == [0.0, 0.0]
        assert design["extvar"].iloc[0] == random_walk[0]

    def test_trend_statistics_and_frame(self, random_walk):
        result = augmented_dickey_fuller(random_walk, max_lag=2, trend=True)
        frame = result.to_frame()

        assert list(frame.columns) == ["nobs", "adf_stat", "trend_stat"]
        assert frame.index.name == "lag"
        assert frame.loc[1, "adf_stat"] == pytest.approx(result.statistic(1))
        assert "Dickey-Fuller" in result.summary()

    def test_defaults_from_config(self, random_walk):
        result = augmented_dickey_fuller(random_walk)
        assert result.max_lag == 4
        assert result.trend is False

    def test_degenerate_level_regressor(self):
        # A constant series gives a zero level regressor variance
        with pytest.warns(Warning):
            result = augmented_dickey_fuller(np.ones(30), max_lag=1)
        assert isinstance(result.statistic(0), NotApplicable)
        assert np.isnan(result.to_frame().loc[0, "adf_stat"])

    def test_series_too_short(self):
        with pytest.raises(ParameterError):
            augmented_dickey_fuller(np.arange(8.0) ** 1.5, max_lag=3)

    def test_negative_lag(self):
        with pytest.raises(ParameterError):
            ADFTester(max_lag=-1)

    def test_async(self, random_walk):
        result = asyncio.run(ADFTester(max_lag=2).test_async(random_walk))
        assert sorted(result.statistics) == [0, 1, 2]

    def test_reference_series(self, reference_series):
        no_trend = augmented_dickey_fuller(reference_series, max_lag=4, trend=False)
        with_trend = augmented_dickey_fuller(reference_series, max_lag=4, trend=True)
        assert no_trend.statistic(0) == pytest.approx(-0.708, abs=5e-3)
        assert with_trend.statistic(0) == pytest.approx(-1.271, abs=5e-3)


class TestOLS:
    def test_matches_closed_form(self, rng):
        X = np.column_stack([np.ones(50), rng.standard_normal(50)])
        y = X @ np.array([1.0, 2.0]) + 0.1 * rng.standard_normal(50)
        result = ols(y, X, ["const", "x"])
        beta = np.linalg.lstsq(X, y, rcond=None)[0]
        assert_allclose(result.params, beta)
        assert result.nobs == 50
        assert result.coefficient("x") == pytest.approx(beta[1])

    def test_shape_mismatch(self):
        with pytest.raises(ParameterError):
            ols(np.ones(5), np.ones((5, 2)), ["const"])


# ---- Model Specification Tests ----

class TestModelSpec:
    def test_coefficient_names_and_label(self):
        spec = ModelSpec(2, 1, 1, trend=True)
        assert spec.coefficient_names == ["ar.L1", "ar.L2", "ma.L1", "trend"]
        assert spec.label == "ARIMA(2,1,1)+trend"

    def test_mask_label(self):
        spec = ModelSpec(2, 1, 1).with_mask([True, False, False])
        assert spec.fixed_names == ["ar.L1"]
        assert spec.free_names == ["ar.L2", "ma.L1"]
        assert spec.label == "ARIMA(2,1,1)[fixed: ar.L1]"

    def test_mask_length_mismatch(self):
        with pytest.raises(ParameterError):
            ModelSpec(1, 1, 1, fixed_mask=(True,))

    @pytest.mark.parametrize("order", [(-1, 1, 0), (1, 1.5, 0), (True, 0, 0)])
    def test_invalid_orders(self, order):
        with pytest.raises(ParameterError):
            ModelSpec(*order)


# ---- Estimation Tests ----

class TestStatsmodelsEstimator:
    """Fits through statsmodels' ARIMA."""

    def test_protocol(self):
        assert isinstance(StatsmodelsARIMAEstimator(), ARIMAEstimator)
        assert isinstance(ScriptedEstimator(), ARIMAEstimator)

    def test_ar1_estimate(self, ar1_process):
        fit = StatsmodelsARIMAEstimator().fit(ar1_process, ModelSpec(1, 0, 0))

        assert list(fit.params.index) == ["ar.L1"]
        assert fit.params["ar.L1"] == pytest.approx(0.7, abs=0.15)
        assert fit.nobs == len(ar1_process)
        assert fit.n_free_params == 2
        assert fit.converged
        assert fit.bic - fit.aic == pytest.approx((math.log(fit.nobs) - 2.0) * 2)

    def test_integrated_fit(self, arima110_process):
        fit = StatsmodelsARIMAEstimator().fit(arima110_process, ModelSpec(1, 1, 0))
        assert fit.nobs == len(arima110_process) - 1
        assert len(fit.residuals) == fit.nobs
        assert fit.params["ar.L1"] == pytest.approx(0.5, abs=0.2)
        assert fit.sigma2 > 0

    def test_trend_regressor(self, arima110_process):
        fit = StatsmodelsARIMAEstimator().fit(arima110_process, ModelSpec(1, 1, 0, trend=True))
        assert list(fit.params.index) == ["ar.L1", "trend"]
        assert fit.cov_params.shape == (2, 2)

    def test_fixed_coefficient(self, arima110_process):
        spec = ModelSpec(2, 1, 0, fixed_mask=(False, True))
        fit = StatsmodelsARIMAEstimator().fit(arima110_process, spec)

        assert list(fit.params.index) == ["ar.L1"]
        assert fit.fixed == ("ar.L2",)
        assert fit.n_free_params == 2
        assert_allclose(fit.ar_params[1], 0.0)

    def test_unknown_method(self, ar1_process):
        with pytest.raises(ParameterError):
            StatsmodelsARIMAEstimator().fit(ar1_process, ModelSpec(1, 0, 0, method="CSS"))

    def test_too_few_observations(self):
        with pytest.raises(EstimationError):
            StatsmodelsARIMAEstimator().fit(np.arange(5.0), ModelSpec(3, 1, 2))

    def test_non_convergence_is_estimation_error(self, arima110_process):
        estimator = StatsmodelsARIMAEstimator(maxiter=1)
        outcome = _fit_candidate(estimator, pd.Series(arima110_process), ModelSpec(2, 1, 2))
        if isinstance(outcome, FitFailure):
            assert outcome.error_type in ("EstimationNonConvergence", "EstimationError")
        else:
            assert outcome.result.label == "ARIMA(2,1,2)"


# ---- Grid Search Tests ----

class TestGridSearch:
    """Tests for the ARIMA grid search."""

    def test_grid_order(self, random_walk):
        report = run_grid(random_walk, max_p=2, d=1, max_q=1, estimator=ScriptedEstimator())
        assert list(report.results) == [
            "ARIMA(0,1,0)", "ARIMA(0,1,1)", "ARIMA(1,1,0)",
            "ARIMA(1,1,1)", "ARIMA(2,1,0)", "ARIMA(2,1,1)",
        ]
        assert report.n_candidates == 6
        assert report.failures == {}

    @pytest.mark.parametrize("n_jobs", [1, 4])
    def test_single_failure_is_isolated(self, random_walk, n_jobs):
        baseline = run_grid(random_walk, max_p=3, d=1, max_q=3,
                            estimator=ScriptedEstimator(), n_jobs=n_jobs)
        estimator = ScriptedEstimator(fail={"ARIMA(2,1,1)"})
        report = run_grid(random_walk, max_p=3, d=1, max_q=3, estimator=estimator, n_jobs=n_jobs)

        assert len(report.results) == 15
        assert list(report.failures) == ["ARIMA(2,1,1)"]
        assert "did not converge" in report.failures["ARIMA(2,1,1)"]
        assert len(estimator.calls) == 16
        for label, fit in report.results.items():
            assert fit.aic == baseline.results[label].aic

    def test_every_candidate_fails(self, random_walk):
        labels = [spec.label for spec in ModelGridSearch(max_p=1, max_q=1, d=1).specs()]
        report = run_grid(random_walk, max_p=1, d=1, max_q=1,
                          estimator=ScriptedEstimator(fail=labels))
        assert report.results == {}
        assert len(report.failures) == 4
        assert report.best("aic") is None
        assert report.rank("bic").empty

    def test_other_errors_propagate(self, random_walk):
        class Broken:
            def fit(self, series, spec):
                raise RuntimeError("bug in estimator")

        with pytest.raises(RuntimeError):
            run_grid(random_walk, max_p=1, d=1, max_q=0, estimator=Broken())

    def test_zero_coefficient_model(self, random_walk):
        report = run_grid(random_walk, max_p=1, d=1, max_q=0, estimator=ScriptedEstimator())
        assert isinstance(report.coefficient_tests["ARIMA(0,1,0)"], NotApplicable)
        assert "ar.L1" in report.coefficient_tests["ARIMA(1,1,0)"]

    def test_aic_and_bic_disagree(self, disagreeing_aic):
        series = np.cumsum(np.random.default_rng(3).standard_normal(100))
        estimator = ScriptedEstimator(aic=lambda spec: disagreeing_aic.get(spec.label, 200.0))
        report = run_grid(series, max_p=2, d=1, max_q=2, estimator=estimator)

        assert report.best("aic").label == "ARIMA(2,1,2)"
        assert report.best("bic").label == "ARIMA(0,1,0)"

        by_bic = report.rank("bic")
        assert by_bic.index[0] == "ARIMA(0,1,0)"
        assert list(by_bic["rank"][:2]) == [1, 2]
        assert "best by AIC: ARIMA(2,1,2)" in report.summary()

    def test_bic_identity_for_every_fit(self, random_walk):
        report = run_grid(random_walk, max_p=2, d=1, max_q=2, estimator=ScriptedEstimator())
        frame = report.to_frame()
        expected = frame["aic"] + (np.log(frame["nobs"]) - 2.0) * frame["k"]
        assert_allclose(frame["bic"], expected)

    def test_invalid_bounds_rejected_before_fitting(self, random_walk):
        estimator = ScriptedEstimator()
        with pytest.raises(ParameterError):
            run_grid(random_walk, max_p=-1, d=1, max_q=2, estimator=estimator)
        with pytest.raises(ParameterError):
            run_grid(random_walk, max_p=1, d=1, max_q=1, estimator=estimator, n_jobs=0)
        assert estimator.calls == []

    def test_unknown_criterion(self, random_walk):
        report = run_grid(random_walk, max_p=0, d=1, max_q=0, estimator=ScriptedEstimator())
        with pytest.raises(ParameterError):
            report.rank("hqic")

    def test_fit_candidate_tags(self, random_walk):
        series = pd.Series(random_walk)
        ok = _fit_candidate(ScriptedEstimator(), series, ModelSpec(1, 1, 0))
        bad = _fit_candidate(ScriptedEstimator(fail={"ARIMA(1,1,0)"}), series, ModelSpec(1, 1, 0))
        assert isinstance(ok, FitSuccess) and ok.ok
        assert isinstance(bad, FitFailure) and not bad.ok
        assert bad.error_type == "EstimationNonConvergence"

    def test_async(self, random_walk):
        report = asyncio.run(run_grid_async(random_walk, max_p=1, d=1, max_q=1,
                                            estimator=ScriptedEstimator()))
        assert len(report.results) == 4

    @pytest.mark.slow
    def test_statsmodels_grid(self, arima110_process):
        report = run_grid(arima110_process, max_p=1, d=1, max_q=1, n_jobs=2)
        assert len(report.results) + len(report.failures) == 4
        for fit in report.results.values():
            assert fit.bic - fit.aic == pytest.approx((math.log(fit.nobs) - 2.0) * fit.n_free_params)

    @pytest.mark.slow
    def test_threaded_grid_leaves_warning_filters(self, arima110_process):
        filters = list(warnings.filters)
        for _ in range(3):
            run_grid(arima110_process[:120], max_p=2, d=1, max_q=2, n_jobs=4)
        assert warnings.filters == filters

    @pytest.mark.slow
    def test_reference_grid(self, reference_series):
        report = run_grid(reference_series, max_p=5, d=1, max_q=5)
        best_aic = report.best("aic")
        best_bic = report.best("bic")
        assert best_aic.label != best_bic.label
        assert best_aic.n_free_params > best_bic.n_free_params


# ---- Restriction Tests ----

class TestRestrictions:
    """Tests for evaluating zero-restricted variants of a base model."""

    def test_rankings_and_free_coefficients(self, random_walk):
        base = ModelSpec(2, 1, 1)
        aic = {
            "ARIMA(2,1,1)": 100.0,
            "ARIMA(2,1,1)[fixed: ar.L1]": 100.5,
            "ARIMA(2,1,1)[fixed: ar.L1,ma.L1]": 103.0,
        }
        estimator = ScriptedEstimator(aic=lambda spec: aic[spec.label])
        report = evaluate_restrictions(
            random_walk, base,
            masks=[(True, False, False), (True, False, True)],
            estimator=estimator
        )

        assert list(report.specs) == list(aic)
        assert report.by_aic.index[0] == "ARIMA(2,1,1)"
        # With T = 199 each extra parameter costs ln(199) - 2 > 3 in BIC
        assert report.by_bic.index[0] == "ARIMA(2,1,1)[fixed: ar.L1,ma.L1]"
        assert not report.rankings_agree
        assert sorted(report.coefficient_tests["ARIMA(2,1,1)[fixed: ar.L1,ma.L1]"]) == ["ar.L2"]
        assert report.by_aic.loc["ARIMA(2,1,1)[fixed: ar.L1]", "fixed"] == "ar.L1"
        assert "AIC and BIC select different models" in report.summary()

    def test_without_base(self, random_walk):
        report = evaluate_restrictions(random_walk, ModelSpec(1, 1, 1), [(True, False)],
                                       estimator=ScriptedEstimator(), include_base=False)
        assert list(report.results) == ["ARIMA(1,1,1)[fixed: ar.L1]"]

    def test_mask_length_mismatch(self, random_walk):
        estimator = ScriptedEstimator()
        with pytest.raises(ParameterError):
            evaluate_restrictions(random_walk, ModelSpec(2, 1, 1),
                                  [(True, False, False), (True, False)], estimator=estimator)
        assert estimator.calls == []

    def test_duplicate_masks(self, random_walk):
        with pytest.raises(ParameterError):
            evaluate_restrictions(random_walk, ModelSpec(1, 1, 1),
                                  [(True, False), [True, False]], estimator=ScriptedEstimator())

    def test_restriction_specs_order(self):
        specs = restriction_specs(ModelSpec(1, 1, 1), [(True, False), (False, True)])
        assert [spec.label for spec in specs] == [
            "ARIMA(1,1,1)",
            "ARIMA(1,1,1)[fixed: ar.L1]",
            "ARIMA(1,1,1)[fixed: ma.L1]",
        ]
        without_base = restriction_specs(ModelSpec(1, 1, 1), [(False, False)])
        assert [spec.label for spec in without_base] == ["ARIMA(1,1,1)"]

    def test_failure_recorded(self, random_walk):
        failing = "ARIMA(1,1,1)[fixed: ma.L1]"
        report = evaluate_restrictions(random_walk, ModelSpec(1, 1, 1),
                                       [(False, True), (True, False)],
                                       estimator=ScriptedEstimator(fail={failing}))
        assert list(report.failures) == [failing]
        assert len(report.results) == 2
        assert failing not in report.by_aic.index

    @pytest.mark.slow
    def test_statsmodels_restriction(self, arima110_process):
        report = evaluate_restrictions(arima110_process, ModelSpec(2, 1, 0), [(False, True)])
        restricted = report.results.get("ARIMA(2,1,0)[fixed: ar.L2]")
        if restricted is not None:
            assert list(restricted.params.index) == ["ar.L1"]
            assert list(report.coefficient_tests[restricted.label]) == ["ar.L1"]


# ---- Forecast Tests ----

class TestForecast:
    """Tests for forecasts from a fitted model."""

    def test_statsmodels_forecast(self, arima110_process):
        estimator = StatsmodelsARIMAEstimator()
        fit = estimator.fit(arima110_process, ModelSpec(1, 1, 0))
        frame = forecast(fit, 5, estimator=estimator)

        assert frame.shape == (5, 4)
        assert list(frame.index) == [1, 2, 3, 4, 5]
        assert (frame["lower"] < frame["forecast"]).all()
        assert (frame["forecast"] < frame["upper"]).all()
        assert frame["std_error"].is_monotonic_increasing

    def test_forecast_with_trend(self, arima110_process):
        estimator = StatsmodelsARIMAEstimator()
        fit = estimator.fit(arima110_process, ModelSpec(1, 1, 0, trend=True))
        frame = forecast(fit, 3)
        assert np.isfinite(frame.to_numpy()).all()

    def test_fit_without_estimator_results(self):
        fit = make_fit_result(ModelSpec(1, 1, 0))
        with pytest.raises(ForecastError):
            forecast(fit, 4)

    @pytest.mark.parametrize("horizon", [0, -1, 2.5])
    def test_invalid_horizon(self, horizon):
        with pytest.raises(ForecastError):
            forecast(make_fit_result(ModelSpec(1, 1, 0)), horizon)

    def test_invalid_alpha(self):
        with pytest.raises(ForecastError):
            forecast(make_fit_result(ModelSpec(1, 1, 0)), 3, alpha=1.5)
