import numpy as np
import pytest

from edmforecast.metrics import compute_error, mae, rho, rmse


def test_perfect_forecast():
    obs = np.array([1.0, 2.0, 3.0, 4.0])
    err = compute_error(obs, obs)
    assert err['rho'] == pytest.approx(1.0)
    assert err['RMSE'] == 0
    assert err['MAE'] == 0
    assert err['n'] == 4


def test_missing_pairs_are_ignored():
    obs = np.array([1.0, 2.0, np.nan, 4.0, 5.0])
    pred = np.array([1.5, 2.5, 3.0, np.nan, 5.5])
    assert rmse(obs, pred) == pytest.approx(0.5)
    assert mae(obs, pred) == pytest.approx(0.5)
    assert compute_error(obs, pred)['n'] == 3


def test_rho_degenerate_inputs():
    assert np.isnan(rho([1.0], [1.0]))
    assert np.isnan(rho([1.0, 1.0, 1.0], [1.0, 2.0, 3.0]))
    assert rho([1.0, 2.0, 3.0], [3.0, 2.0, 1.0]) == pytest.approx(-1.0)


def test_shape_mismatch():
    with pytest.raises(ValueError):
        rho([1.0, 2.0], [1.0, 2.0, 3.0])
