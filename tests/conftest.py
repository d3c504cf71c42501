import numpy as np
import pytest

from edmforecast.Datasets.SyntheticDataset import SyntheticDataset


@pytest.fixture
def sine():
    return SyntheticDataset.load_sine(500, alpha=0.1).column('x')


@pytest.fixture
def logistic():
    return SyntheticDataset.load_coupled_logistic(500)


@pytest.fixture
def noise_pair():
    table = SyntheticDataset.load_white_noise(500, n_timeseries=2, seed=7)
    return table.column('noise0'), table.column('noise1')


@pytest.fixture
def ar1():
    rng = np.random.default_rng(3)
    y = np.zeros(200)
    for t in range(1, 200):
        y[t] = 0.8 * y[t - 1] + rng.standard_normal()
    return y
