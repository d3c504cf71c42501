from dataclasses import dataclass, field
from typing import Optional, Tuple

from edmforecast.exceptions import InvalidParameter
from edmforecast.SMap.SMapAlgorithm import DEFAULT_THETAS


@dataclass()
class AnalysisConfig:
    """
    Parameters of one analysis run.
    :param max_E: largest embedding dimension tried
    :param tau: embedding lag
    :param Tp: forecast horizon
    :param thetas: S-map nonlinearity values tried
    :param lib_sizes: cross-map library sizes, those not feasible for a pair are dropped
    :param samples: random libraries per cross-map library size
    :param exclusion_radius: temporal exclusion around each query row
    :param train_fraction: leading share of rows used as library, the rest is predicted
    :param seed: seed of the cross-map library draws
    :param n_workers: threads used for sweeps
    :param progress: show tqdm progress bars for sweeps
    :param arima_order: (p, d, q) of the baseline model
    """
    max_E: int = 12
    tau: int = 1
    Tp: int = 1
    thetas: Tuple[float, ...] = DEFAULT_THETAS
    lib_sizes: Tuple[int, ...] = (10, 20, 40, 80, 160, 320)
    samples: int = 100
    exclusion_radius: int = 0
    train_fraction: float = 0.8
    seed: Optional[int] = None
    n_workers: int = 1
    progress: bool = False
    arima_order: Tuple[int, int, int] = field(default=(1, 1, 1))

    def __post_init__(self):
        if not 0 < self.train_fraction < 1:
            raise InvalidParameter(f'train_fraction must be in (0, 1), got {self.train_fraction}')

    def lib_pred(self, n: int):
        """
        1-based library and prediction ranges for a series of n rows.
        :return: ([1, cut], [cut + 1, n])
        """
        cut = int(n * self.train_fraction)
        if cut < 1 or cut >= n:
            raise InvalidParameter(f'cannot split {n} rows with train_fraction={self.train_fraction}')
        return [1, cut], [cut + 1, n]
