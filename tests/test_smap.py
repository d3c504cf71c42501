import logging

import numpy as np
import pytest
from sklearn.linear_model import LinearRegression

from edmforecast.SMap.SMapAlgorithm import local_linear_fit, predict_nonlinear, smap_forecast, smap_weights
from edmforecast.exceptions import InvalidParameter, UnderdeterminedFit


def test_theta_zero_is_global_linear_regression(logistic):
    x = logistic.column('x')
    E = 3
    result = smap_forecast(x, E=E, theta=0, lib=[1, 200], pred=[201, 300])

    lib_t = np.arange(E - 1, 199)
    X_lib = np.column_stack([x[lib_t - j] for j in range(E)])
    model = LinearRegression().fit(X_lib, x[lib_t + 1])
    pred_t = np.arange(200, 300)
    expected = model.predict(np.column_stack([x[pred_t - j] for j in range(E)]))

    np.testing.assert_array_equal(result.time, pred_t + 1)
    np.testing.assert_allclose(result.predicted, expected, atol=1e-8)
    # one global map: identical coefficients on every row
    np.testing.assert_allclose(result.coefficients, np.tile(result.coefficients[0], (100, 1)), atol=1e-10)
    np.testing.assert_allclose(result.coefficients[0, 1:], model.coef_, atol=1e-8)


def test_nonlinear_dynamics_favour_positive_theta(logistic):
    sweep = predict_nonlinear(logistic.column('x'), E=2, lib=[1, 300], pred=[301, 450], thetas=[0, 0.5, 1, 2, 4, 8])
    assert sweep.best_theta > 0
    assert sweep.linear_rho == pytest.approx(sweep.rho[0])
    assert sweep.nonlinear_rho > 0.9
    assert sweep.nonlinearity > 0.2
    assert list(sweep.to_frame()['theta']) == [0, 0.5, 1, 2, 4, 8]


def test_result_layout(sine):
    result = smap_forecast(sine, E=2, theta=2, lib=[1, 400], pred=[401, 500])
    assert result.method == 'smap'
    assert result.theta == 2
    assert result.coefficients.shape == (100, 3)
    assert result.score > 0.99
    frame = result.to_frame()
    assert list(frame.columns) == ['time', 'forecast_time', 'observations', 'predictions', 'C0', 'dy/dx1', 'dy/dx2']


def test_underdetermined_rows_are_skipped(logistic):
    x = logistic.column('x')
    result = smap_forecast(x, E=1, theta=1, lib=[1, 20], pred=[1, 20], exclusion_radius=15)
    reasons = [s.reason for s in result.skipped]
    assert reasons
    assert all(r.startswith('underdetermined fit') for r in reasons)
    assert len(result) > 0
    assert np.all(np.isfinite(result.predicted))
    assert not set(result.time) & {s.time for s in result.skipped}


def test_local_linear_fit():
    X = np.array([[0.0], [1.0], [2.0], [3.0]])
    y = 2.0 * X[:, 0] + 1.0
    np.testing.assert_allclose(local_linear_fit(X, y, np.ones(4)), [1.0, 2.0], atol=1e-10)
    with pytest.raises(UnderdeterminedFit):
        local_linear_fit(X, y, np.array([1.0, 0.0, 0.0, 0.0]))


def test_weights():
    d = np.array([0.0, 1.0, 2.0])
    np.testing.assert_allclose(smap_weights(d, 0), [1.0, 1.0, 1.0])
    np.testing.assert_allclose(smap_weights(d, 2), np.exp([0.0, -2.0, -4.0]))
    np.testing.assert_allclose(smap_weights(np.zeros(3), 4), [1.0, 1.0, 1.0])


def test_negative_theta(logistic):
    with pytest.raises(InvalidParameter):
        smap_forecast(logistic.column('x'), E=2, theta=-1, lib=[1, 100], pred=[101, 200])
    with pytest.raises(InvalidParameter):
        predict_nonlinear(logistic.column('x'), E=2, lib=[1, 100], pred=[101, 200], thetas=[-1, 0])


def test_theta_sweep_on_too_small_library(logistic, caplog):
    x = logistic.column('x')[:12]
    # 3 library rows cannot fit 6 coefficients at any theta
    with caplog.at_level(logging.WARNING, logger='edmforecast.utils'):
        with pytest.raises(UnderdeterminedFit):
            predict_nonlinear(x, E=5, lib=[1, 8], pred=[9, 12], thetas=[0, 1, 2])
    assert 'theta=1.0' in caplog.text
