import types
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from sarima_forecaster_src.diagnostics_utils import model_residuals
from sarima_forecaster_src.file_utils import write_forecast_csv
from sarima_forecaster_src.forecasting_utils import back_transform, forecast_sarima
from sarima_forecaster_src.plotting_utils import (
    comparison_frame, forecast_frame, plot_forecast_fan, plot_residual_diagnostics, save_workflow_figures
)


@pytest.fixture
def original_forecast(airline_model):
    return back_transform(forecast_sarima(airline_model, 12, (80, 95)))


def test_forecast_frame_columns(original_forecast):
    df = forecast_frame(original_forecast)
    assert list(df.columns) == ["mean", "lower_80", "upper_80", "lower_95", "upper_95"]
    assert df.index.name == "date"
    assert len(df) == 12
    assert (df["lower_95"] <= df["lower_80"]).all()
    assert (df["upper_80"] <= df["upper_95"]).all()


def test_comparison_frame(original_forecast):
    actual = original_forecast.mean * 1.01
    df = comparison_frame(original_forecast, actual)
    assert df.columns[0] == "actual"
    assert np.allclose(df["error"].to_numpy(), (actual - original_forecast.mean).to_numpy())
    with pytest.raises(ValueError):
        comparison_frame(original_forecast, actual.iloc[:-1])


def test_write_forecast_csv(tmp_path: Path, original_forecast):
    out = write_forecast_csv(original_forecast, tmp_path / "out" / "forecast.csv")
    df = pd.read_csv(out)
    assert list(df.columns) == ["date", "mean", "lower_80", "upper_80", "lower_95", "upper_95"]
    assert len(df) == 12


def test_render_figures(tmp_path: Path, airline_model, original_forecast):
    fan = tmp_path / "fan.png"
    plot_forecast_fan(original_forecast, fan, title="fan")
    assert fan.exists() and fan.stat().st_size > 0

    resid_png = tmp_path / "resid.png"
    plot_residual_diagnostics(model_residuals(airline_model), resid_png)
    assert resid_png.exists()


def test_save_workflow_figures_survives_render_failures(tmp_path: Path):
    broken = types.SimpleNamespace()
    written = save_workflow_figures(broken, tmp_path, series_name="broken")
    assert written == []
