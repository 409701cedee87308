import numpy as np
import pandas as pd

from sarima_forecaster_src.diagnostics_utils import (
    DiagnosticTest, default_ljungbox_lags, diagnostics_frame, jarque_bera_test, ljung_box_test,
    model_residuals, residual_diagnostics, shapiro_wilk_test
)


def test_default_ljungbox_lags():
    assert default_ljungbox_lags(120, 12) == 24
    assert default_ljungbox_lags(50, 12) == 10
    assert default_ljungbox_lags(100, 1) == 10
    assert default_ljungbox_lags(3, 12) == 1


def test_ljung_box_flags_autocorrelated_residuals():
    rng = np.random.default_rng(42)
    e = rng.normal(0.0, 1.0, size=300)
    ar = np.zeros(300)
    for t in range(1, 300):
        ar[t] = 0.8 * ar[t - 1] + e[t]
    res = ljung_box_test(ar, lags=12)
    assert res.test_type == DiagnosticTest.LJUNG_BOX
    assert res.lags == 12
    assert res.is_significant
    assert "autocorrelation" in res.interpretation

    white = ljung_box_test(e, lags=12)
    assert 0.0 <= white.p_value <= 1.0


def test_ljung_box_lags_cover_model_df_and_short_input():
    rng = np.random.default_rng(42)
    res = ljung_box_test(rng.normal(size=100), lags=2, model_df=4)
    assert res.lags == 5
    short = ljung_box_test(np.ones(4), lags=10)
    assert np.isnan(short.p_value)
    assert not short.is_significant
    assert short.interpretation.endswith("not available")


def test_normality_tests():
    rng = np.random.default_rng(42)
    skewed = rng.exponential(1.0, size=500)
    assert jarque_bera_test(skewed).is_significant
    assert shapiro_wilk_test(skewed).is_significant
    assert np.isnan(shapiro_wilk_test([1.0, 2.0]).p_value)


def test_model_residuals_drop_burn_in(airline_model):
    resid = model_residuals(airline_model)
    assert len(resid) == airline_model.nobs - 13
    assert resid.index[0] == airline_model.endog.index[13]


def test_residual_diagnostics_on_fitted_model(airline_model):
    results = residual_diagnostics(airline_model)
    assert results["model"] == "ARIMA(0,1,1)(0,1,1)[12]"
    assert results["n_residuals"] == 96 - 13
    assert results["ljung_box"].lags == default_ljungbox_lags(96 - 13, 12)
    for key in ("ljung_box", "jarque_bera", "shapiro_wilk"):
        assert 0.0 <= results[key].p_value <= 1.0
    assert abs(results["residual_mean"]) < results["residual_std"]

    frame = diagnostics_frame(results)
    assert isinstance(frame, pd.DataFrame)
    assert list(frame["test"]) == ["Ljung-Box", "Jarque-Bera", "Shapiro-Wilk"]
    assert set(frame.columns) == {"model", "test", "statistic", "p_value", "lags", "significant"}
