import numpy as np
import pytest

from edmforecast.CrossMap.CCMAlgorithm import convergent_cross_map, cross_map, library_capacity
from edmforecast.exceptions import InvalidParameter

LIB_SIZES = [10, 25, 50, 100, 200, 400]


def test_forced_direction_converges(logistic):
    # x forces y, so y's history recovers x
    result = cross_map(logistic.column('y'), logistic.column('x'), E=2, lib_sizes=LIB_SIZES, samples=30, seed=1)
    assert result.scores.shape == (6, 30)
    assert np.all(np.diff(result.mean) >= -0.05)
    assert result.mean[-1] - result.mean[0] > 0.2
    assert result.mean[-1] > 0.4
    assert result.converges(tolerance=0.05)


def test_independent_noise_does_not_converge(noise_pair):
    a, b = noise_pair
    result = cross_map(a, b, E=2, lib_sizes=[10, 50, 100, 200, 400], samples=30, seed=0)
    assert np.all(np.abs(result.mean) < 0.2)
    assert result.mean[-1] - result.mean[0] < 0.15


def test_bounds_and_frame(logistic):
    result = cross_map(logistic.column('y'), logistic.column('x'), E=2, lib_sizes=[20, 100], samples=20, seed=2)
    assert np.all(result.lower <= result.mean)
    assert np.all(result.mean <= result.upper)
    assert np.all(result.std >= 0)
    assert list(result.to_frame().columns) == ['lib_size', 'rho', 'std', 'lower', 'upper']


def test_seed_reproducible(logistic):
    kwargs = dict(E=2, lib_sizes=[20, 60], samples=10, seed=5)
    first = cross_map(logistic.column('x'), logistic.column('y'), **kwargs)
    second = cross_map(logistic.column('x'), logistic.column('y'), **kwargs)
    np.testing.assert_array_equal(first.scores, second.scores)


def test_both_directions(logistic):
    results = convergent_cross_map(logistic.column('x'), logistic.column('y'), E=2, lib_sizes=[20, 200],
                                   names=('x', 'y'), samples=10, seed=0, n_workers=2)
    assert set(results) == {'x:y', 'y:x'}
    assert results['y:x'].label == 'y:x'


def test_library_size_limits(logistic):
    x, y = logistic.column('x'), logistic.column('y')
    assert library_capacity(x, y, E=3) == 498
    with pytest.raises(InvalidParameter):
        cross_map(x, y, E=3, lib_sizes=[4, 50], samples=5)
    with pytest.raises(InvalidParameter):
        cross_map(x, y, E=3, lib_sizes=[600], samples=5)
    with_replacement = cross_map(x, y, E=3, lib_sizes=[600], samples=2, replacement=True, seed=0)
    assert np.isfinite(with_replacement.mean[0])
    with pytest.raises(InvalidParameter):
        cross_map(x, y[:100], E=3, lib_sizes=[50])
