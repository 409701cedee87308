import numpy as np
import pandas as pd
import pytest

from sarima_forecaster_src.errors import ForecastScaleError, LengthMismatchError
from sarima_forecaster_src.forecasting_utils import Forecast
from sarima_forecaster_src.metrics_utils import (
    AccuracyReport, error_acf1, evaluate_forecast, mae, mape, mase_metric, mean_error, mpe, rmse, smape, theil_u
)


def _forecast(values, scale="original"):
    idx = pd.date_range("2017-01-01", periods=len(values), freq="MS")
    mean = pd.Series(values, index=idx, dtype=float)
    return Forecast(mean=mean, lower={95: mean - 1.0}, upper={95: mean + 1.0},
                    fitted=mean.iloc[:0], history=mean.iloc[:0], scale=scale)


def test_basic_errors_use_actual_minus_forecast():
    actual = np.array([10.0, 20.0, 30.0, 40.0])
    fc = np.array([12.0, 18.0, 33.0, 40.0])
    assert mean_error(actual, fc) == pytest.approx((-2 + 2 - 3 + 0) / 4)
    assert mae(actual, fc) == pytest.approx(7 / 4)
    assert rmse(actual, fc) == pytest.approx(np.sqrt((4 + 4 + 9) / 4))
    assert mape(actual, fc) == pytest.approx(np.mean([20.0, 10.0, 10.0, 0.0]))
    assert mpe(actual, fc) == pytest.approx(np.mean([-20.0, 10.0, -10.0, 0.0]))
    assert 0.0 < smape(actual, fc) < 200.0


def test_percentage_errors_skip_zero_actuals_and_nan_pairs():
    assert mape([0.0, 10.0], [1.0, 11.0]) == pytest.approx(10.0)
    assert np.isnan(mape([0.0], [1.0]))
    assert mae([1.0, np.nan, 3.0], [1.0, 5.0, 4.0]) == pytest.approx(0.5)
    assert np.isnan(rmse([], []))


def test_mase_scales_by_seasonal_naive():
    t = np.arange(36, dtype=float)
    train = 100.0 + t  # seasonal naive error is 12 everywhere
    assert mase_metric([50.0, 60.0], [44.0, 66.0], train, m=12) == pytest.approx(6.0 / 12.0)
    assert np.isnan(mase_metric([1.0], [1.0], train[:12], m=12))
    assert np.isnan(mase_metric([1.0], [1.0], np.ones(30), m=12))


def test_theil_u_is_one_for_no_change_forecast():
    actual = np.array([100.0, 104.0, 101.0, 108.0, 110.0])
    naive = np.concatenate(([100.0], actual[:-1]))
    assert theil_u(actual, naive) == pytest.approx(1.0)
    assert theil_u(actual, actual) == pytest.approx(0.0)


def test_error_acf1_detects_persistent_errors():
    actual = np.arange(20, dtype=float)
    assert error_acf1(actual, actual - np.linspace(0.0, 5.0, 20)) > 0.5
    assert np.isnan(error_acf1([1.0, 2.0], [1.0, 2.0]))


def test_evaluate_forecast_rejects_length_mismatch():
    with pytest.raises(LengthMismatchError):
        evaluate_forecast(_forecast(np.ones(24)), np.ones(23))
    with pytest.raises(ValueError):
        evaluate_forecast(np.ones(3), np.ones(4))


def test_evaluate_forecast_rejects_transformed_scale():
    with pytest.raises(ForecastScaleError):
        evaluate_forecast(_forecast(np.ones(12), scale="transformed"), np.ones(12))


def test_evaluate_forecast_near_perfect(seasonal_series):
    train, test = seasonal_series.iloc[:96], seasonal_series.iloc[96:]
    rng = np.random.default_rng(42)
    fc = _forecast(test.to_numpy() * (1.0 + rng.normal(0.0, 1e-6, size=len(test))))
    report = evaluate_forecast(fc, test, y_train=train, m=12)
    assert isinstance(report, AccuracyReport)
    assert report.n == 24
    assert report.MAPE == pytest.approx(0.0, abs=1e-3)
    assert report.RMSE < 1e-2
    assert report.MASE < 1e-3
    assert list(report.to_dict()) == ["ME", "RMSE", "MAE", "MPE", "MAPE", "MASE", "ACF1", "TheilU", "sMAPE", "n"]
    frame = report.to_frame()
    assert frame.index[0] == "Test set"


def test_evaluate_forecast_without_training_data_leaves_mase_nan():
    report = evaluate_forecast([1.0, 2.0, 3.0], [1.5, 2.0, 2.5])
    assert np.isnan(report.MASE)
    assert report.ME == pytest.approx(0.0)
