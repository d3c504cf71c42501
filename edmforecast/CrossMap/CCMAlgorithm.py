"""
Convergent cross mapping.

`cross_map(a, b, ...)` uses the shadow manifold of A to estimate B ("A:B").
Skill that rises with library size and levels off means B's dynamics are
recoverable from A's history, i.e. B forces A. The curve is reported with its
spread across random libraries; judging the causal direction is left to the caller.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd

from edmforecast.Embedding.Embedding import embed
from edmforecast.Forecast import check_parameters
from edmforecast.Simplex.SimplexAlgorithm import simplex_project
from edmforecast.exceptions import EmptyLibraryOrPredictionRange, InvalidParameter
from edmforecast.metrics import rho
from edmforecast.utils import SweepJob, run_jobs

logger = logging.getLogger(__name__)


@dataclass()
class CrossMapResult:
    """
    Cross-map skill per library size.

    :param scores: rho of every random library, shape (n_lib_sizes, samples)
    :param lower, upper: 2.5 and 97.5 percentiles of the scores per library size
    """
    label: str
    E: int
    lib_sizes: np.ndarray
    mean: np.ndarray
    std: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    scores: np.ndarray

    def converges(self, tolerance: float = 0.05) -> bool:
        """
        True if the mean skill never drops by more than `tolerance` from one library
        size to the next and ends more than `tolerance` above where it started.
        """
        steps = np.diff(self.mean)
        return bool(np.all(steps >= -tolerance) and self.mean[-1] - self.mean[0] > tolerance)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            'lib_size': self.lib_sizes,
            'rho': self.mean,
            'std': self.std,
            'lower': self.lower,
            'upper': self.upper,
        })


def _cross_map_rows(series_a, series_b, E: int, tau: int, Tp: int):
    a = np.asarray(series_a, dtype=np.float64)
    b = np.asarray(series_b, dtype=np.float64)
    if a.ndim != 1 or b.ndim != 1 or a.shape != b.shape:
        raise InvalidParameter(f'series must be 1-D and of equal length, got {a.shape} and {b.shape}')

    embedding = embed(a, E, tau)
    future = embedding.times + Tp
    rows = embedding.valid & (future >= 0) & (future < b.shape[0])
    rows[rows] = np.isfinite(b[future[rows]])
    times = embedding.times[rows]
    return embedding.rows(times), times, b[times + Tp]


def library_capacity(series_a, series_b, E: int, tau: int = 1, Tp: int = 0) -> int:
    """Number of rows available to draw cross-map libraries from."""
    _, times, _ = _cross_map_rows(series_a, series_b, E, tau, Tp)
    return int(times.shape[0])


def cross_map(series_a,
              series_b,
              E: int,
              lib_sizes: Sequence[int],
              samples: int = 100,
              tau: int = 1,
              Tp: int = 0,
              knn: Optional[int] = None,
              exclusion_radius: int = 0,
              replacement: bool = False,
              seed: Optional[int] = None,
              metric: str = 'euclidean',
              label: str = 'A:B') -> CrossMapResult:
    """
    Cross-map skill of A's embedding estimating B as a function of library size.

    For each library size, `samples` libraries are drawn at random from A's valid
    embedding rows. Every row is then estimated from its simplex neighbours within
    the library (never itself), taking B's values at the neighbours' times, and the
    draw is scored by Pearson rho against B.

    :param series_a: series whose embedding forms the library
    :param series_b: series being estimated
    :param E: embedding dimension of A
    :param lib_sizes: library sizes, each larger than E + 1
    :param samples: random libraries per size
    :param Tp: offset of the estimated B value, 0 for contemporaneous
    :param knn: neighbours per estimate, defaults to E + 1
    :param replacement: draw libraries with replacement
    :param seed: seed of the random library draws
    """
    knn = E + 1 if knn is None else knn
    check_parameters(E, tau, knn, exclusion_radius)
    if samples < 1:
        raise InvalidParameter(f'samples must be >= 1, got {samples}')
    lib_sizes = np.asarray(lib_sizes, dtype=np.int64)
    if lib_sizes.ndim != 1 or lib_sizes.shape[0] == 0:
        raise InvalidParameter('lib_sizes must be a non-empty sequence')

    vectors, times, targets = _cross_map_rows(series_a, series_b, E, tau, Tp)
    n_rows = times.shape[0]
    if n_rows == 0:
        raise EmptyLibraryOrPredictionRange(f'no valid cross-map row for E={E}')
    for size in lib_sizes:
        if size <= E + 1 or size <= knn:
            raise InvalidParameter(f'library size {size} must exceed E + 1 = {E + 1} and knn = {knn}')
        if size > n_rows and not replacement:
            raise InvalidParameter(f'library size {size} exceeds the {n_rows} available rows')

    rng = np.random.default_rng(seed)
    scores = np.empty((lib_sizes.shape[0], samples))
    for i, size in enumerate(lib_sizes):
        for s in range(samples):
            draw = rng.choice(n_rows, size=int(size), replace=replacement)
            predictions = simplex_project(
                lib_vectors=vectors[draw],
                lib_times=times[draw],
                lib_targets=targets[draw],
                query_vectors=vectors,
                query_times=times,
                knn=knn,
                exclusion_radius=exclusion_radius,
                metric=metric,
            )
            scores[i, s] = rho(targets, predictions)
        logger.debug(f'{label} E={E} lib_size={size}: rho={np.nanmean(scores[i]):.4f}')

    return CrossMapResult(
        label=label,
        E=E,
        lib_sizes=lib_sizes,
        mean=np.nanmean(scores, axis=1),
        std=np.nanstd(scores, axis=1),
        lower=np.nanpercentile(scores, 2.5, axis=1),
        upper=np.nanpercentile(scores, 97.5, axis=1),
        scores=scores,
    )


def convergent_cross_map(series_a,
                         series_b,
                         E: int,
                         lib_sizes: Sequence[int],
                         names: Sequence[str] = ('A', 'B'),
                         samples: int = 100,
                         seed: Optional[int] = None,
                         n_workers: int = 1,
                         progress: bool = False,
                         **kwargs) -> Dict[str, CrossMapResult]:
    """
    Cross map in both directions.
    :return: {'A:B': A's embedding estimating B, 'B:A': B's embedding estimating A}
    """
    name_a, name_b = names
    jobs = [
        SweepJob(name=f'{name_a}:{name_b}', fn=cross_map,
                 kwargs=dict(series_a=series_a, series_b=series_b, E=E, lib_sizes=lib_sizes, samples=samples,
                             seed=seed, label=f'{name_a}:{name_b}', **kwargs)),
        SweepJob(name=f'{name_b}:{name_a}', fn=cross_map,
                 kwargs=dict(series_a=series_b, series_b=series_a, E=E, lib_sizes=lib_sizes, samples=samples,
                             seed=seed, label=f'{name_b}:{name_a}', **kwargs)),
    ]
    results = run_jobs(jobs, n_workers=n_workers, progress=progress)
    for result in results:
        logger.info(f'cross map {result.label} E={E}: rho {result.mean[0]:.3f} -> {result.mean[-1]:.3f} '
                    f'over lib sizes {int(result.lib_sizes[0])}..{int(result.lib_sizes[-1])}')
    return {result.label: result for result in results}
