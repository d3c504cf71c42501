import numpy as np

from edmforecast.Datasets.TimeSeriesTable import TimeSeriesTable


class SyntheticDataset:
    """
    Generators of synthetic tables with known dynamics. Dates are integer steps 0..n-1.
    """

    @staticmethod
    def load_sine(len_timeseries: int = 500, alpha: float = 0.1) -> TimeSeriesTable:
        """x[t] = sin(alpha * t), a two-dimensional attractor (a limit cycle)."""
        X = np.arange(0, len_timeseries)
        return TimeSeriesTable(dates=X, values=np.sin(alpha * X).reshape(-1, 1), columns=('x',))

    @staticmethod
    def load_coupled_logistic(len_timeseries: int = 1000,
                              rx: float = 3.8,
                              ry: float = 3.5,
                              beta_xy: float = 0.02,
                              beta_yx: float = 0.1,
                              x0: float = 0.4,
                              y0: float = 0.2) -> TimeSeriesTable:
        """
        Two coupled logistic maps:
        x[t+1] = x[t] * (rx - rx * x[t] - beta_xy * y[t])
        y[t+1] = y[t] * (ry - ry * y[t] - beta_yx * x[t])

        beta_yx is the forcing of y by x. With the defaults x drives y much more strongly
        than y drives x, so y's history cross-maps x well.
        """
        x = np.empty(len_timeseries)
        y = np.empty(len_timeseries)
        x[0], y[0] = x0, y0
        for t in range(len_timeseries - 1):
            x[t + 1] = x[t] * (rx - rx * x[t] - beta_xy * y[t])
            y[t + 1] = y[t] * (ry - ry * y[t] - beta_yx * x[t])
        return TimeSeriesTable(dates=np.arange(0, len_timeseries),
                               values=np.column_stack([x, y]),
                               columns=('x', 'y'))

    @staticmethod
    def load_white_noise(len_timeseries: int = 500, n_timeseries: int = 2, seed=None) -> TimeSeriesTable:
        """Independent standard normal series, no dynamics and no coupling."""
        rng = np.random.default_rng(seed)
        return TimeSeriesTable(dates=np.arange(0, len_timeseries),
                               values=rng.standard_normal((len_timeseries, n_timeseries)),
                               columns=tuple(f'noise{i}' for i in range(n_timeseries)))
