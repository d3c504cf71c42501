import numpy as np
import pytest

from edmforecast.Baseline.ArimaBaseline import ArimaBaseline, arima_forecast


def test_one_step_ahead_forecasts(ar1):
    result = arima_forecast(ar1, lib=[1, 150], pred=[151, 200], order=(1, 0, 0))
    assert len(result) == 50
    assert result.time[0] == 151
    np.testing.assert_array_equal(result.observed[:-1], ar1[151:200])
    assert np.isnan(result.observed[-1])
    assert np.all(np.isfinite(result.predicted))
    assert result.error()['n'] == 49
    assert result.score > 0.5


def test_forecast_requires_fit(ar1):
    with pytest.raises(RuntimeError):
        ArimaBaseline().forecast(ar1, [151, 200])
