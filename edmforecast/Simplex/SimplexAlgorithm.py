import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import pandas as pd
from sklearn.neighbors import NearestNeighbors

from edmforecast.Embedding.Embedding import embed
from edmforecast.Forecast import ForecastResult, as_target, build_result, check_parameters, select_rows
from edmforecast.Simplex.DistanceMetrics import METRICS, SKLEARN_METRICS
from edmforecast.exceptions import EDMError, InvalidParameter, UnderdeterminedFit
from edmforecast.utils import SweepJob, run_jobs

logger = logging.getLogger(__name__)


def simplex_weights(distances: np.ndarray, selected: np.ndarray) -> np.ndarray:
    """
    Exponential neighbour weights exp(-d / mean(d)), normalised per row.

    :param distances: (n_queries, n_candidates) distances to candidate neighbours
    :param selected: boolean mask of the same shape marking the neighbours in use
    :return: weights of the same shape, zero outside `selected`, rows summing to one
    """
    count = np.maximum(selected.sum(axis=1, keepdims=True), 1)
    mean_distance = np.where(selected, distances, 0.0).sum(axis=1, keepdims=True) / count
    # all neighbours at distance zero get uniform weights
    scale = np.where(mean_distance > 0, mean_distance, 1.0)
    weights = np.where(selected, np.exp(-distances / scale), 0.0)
    weights = np.where(mean_distance > 0, weights, selected.astype(np.float64))
    total = weights.sum(axis=1, keepdims=True)
    return weights / np.where(total > 0, total, 1.0)


def simplex_project(lib_vectors: np.ndarray,
                    lib_times: np.ndarray,
                    lib_targets: np.ndarray,
                    query_vectors: np.ndarray,
                    query_times: np.ndarray,
                    knn: int,
                    exclusion_radius: int = 0,
                    metric: str = 'euclidean') -> np.ndarray:
    """
    Weighted nearest-neighbour projection of query vectors onto library targets.

    Library rows whose time lies within `exclusion_radius` of the query time (the
    query itself included) are never used as neighbours. Queries left with fewer
    than `knn` admissible neighbours get nan.

    Returns:
    -------
    predictions : np.ndarray, shape (n_queries,)
    """
    if metric not in METRICS:
        raise InvalidParameter(f'unknown metric {metric!r}, expected one of {sorted(METRICS)}')

    # at most 2 * exclusion_radius + 1 distinct times, each possibly repeated, are excluded per query
    multiplicity = int(np.unique(lib_times, return_counts=True)[1].max())
    n_candidates = min(lib_times.shape[0], knn + (2 * exclusion_radius + 1) * multiplicity)
    nbrs = NearestNeighbors(n_neighbors=n_candidates, metric=SKLEARN_METRICS[metric]).fit(lib_vectors)
    distances, indices = nbrs.kneighbors(query_vectors)

    admissible = np.abs(lib_times[indices] - query_times[:, None]) > exclusion_radius
    rank = np.cumsum(admissible, axis=1)
    selected = admissible & (rank <= knn)

    weights = simplex_weights(distances, selected)
    predictions = np.sum(weights * lib_targets[indices], axis=1)
    predictions[selected.sum(axis=1) < knn] = np.nan
    return predictions


def simplex_forecast(series,
                     E: int,
                     lib,
                     pred,
                     tau: int = 1,
                     Tp: int = 1,
                     knn: Optional[int] = None,
                     exclusion_radius: int = 0,
                     target=None,
                     metric: str = 'euclidean') -> ForecastResult:
    """
    Forecasts a time series using the Simplex projection method.

    The series is embedded with delay coordinates, and for every row of the
    prediction range the `knn` nearest library vectors are located. Each
    neighbour's value `Tp` steps ahead is weighted by exp(-d / mean(d)) and the
    weighted average is the forecast.

    Parameters:
    ----------
    series : array-like, shape (n_samples,) or (n_samples, n_variables)
        The input time series. A multivariate block is embedded column by column.

    E : int
        Embedding dimension (number of lagged values per variable).

    lib : [start, end]
        1-based inclusive rows forming the library of candidate neighbours.

    pred : [start, end]
        1-based inclusive rows to forecast from.

    tau : int, default=1
        Lag between embedding coordinates.

    Tp : int, default=1
        Forecast horizon in rows.

    knn : int, default=E+1
        Number of nearest neighbours.

    exclusion_radius : int, default=0
        Library rows within this many steps of the query row are not neighbours.
        The query row itself is always excluded.

    target : array-like, shape (n_samples,), optional
        Variable to forecast, defaults to the (first column of the) series.

    Returns:
    -------
    result : ForecastResult
    """
    X = np.asarray(series, dtype=np.float64)
    n_variables = 1 if X.ndim == 1 else X.shape[1]
    knn = E * n_variables + 1 if knn is None else knn
    check_parameters(E, tau, knn, exclusion_radius)
    y = as_target(X, target)

    embedding = embed(X, E, tau)
    selection = select_rows(embedding, y, lib, pred, Tp)
    if selection.lib_times.shape[0] <= knn:
        raise InvalidParameter(f'library holds {selection.lib_times.shape[0]} rows, needs more than {knn} for knn={knn}')

    predictions = simplex_project(
        lib_vectors=embedding.rows(selection.lib_times),
        lib_times=selection.lib_times,
        lib_targets=y[selection.lib_times + Tp],
        query_vectors=embedding.rows(selection.pred_times),
        query_times=selection.pred_times,
        knn=knn,
        exclusion_radius=exclusion_radius,
        metric=metric,
    )
    reasons = {int(i): 'fewer admissible neighbours than knn' for i in np.flatnonzero(np.isnan(predictions))}
    return build_result('simplex', E, tau, Tp, selection, predictions, reasons)


def sweep_scores(results) -> np.ndarray:
    """Scores of sweep results, nan where the job failed."""
    return np.array([np.nan if r is None else r.score for r in results], dtype=np.float64)


def select_embedding_dimension(E_values, scores, tolerance: float = 0.0) -> int:
    """
    Embedding dimension with the highest score. Scores within `tolerance` of the best
    count as ties and resolve to the smallest E.
    """
    E_values = np.asarray(E_values)
    scores = np.asarray(scores, dtype=np.float64)
    finite = np.isfinite(scores)
    if not finite.any():
        raise UnderdeterminedFit('no embedding dimension produced a finite score')
    best = scores[finite].max()
    candidates = E_values[finite & (scores >= best - tolerance)]
    return int(candidates.min())


@dataclass()
class EmbedDimensionResult:
    E: np.ndarray
    rho: np.ndarray
    best_E: int
    best_rho: float
    results: List[Optional[ForecastResult]] = field(default_factory=list, repr=False)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({'E': self.E, 'rho': self.rho})


def embed_dimension(series,
                    lib,
                    pred,
                    max_E: int = 12,
                    tau: int = 1,
                    Tp: int = 1,
                    exclusion_radius: int = 0,
                    target=None,
                    tolerance: float = 0.0,
                    n_workers: int = 1,
                    progress: bool = False) -> EmbedDimensionResult:
    """
    Simplex forecast skill for E = 1..max_E and the optimal embedding dimension.
    An E the series is too short for scores nan and is never selected.
    :param tolerance: scores within this distance of the best are ties, resolved to the smallest E
    :param n_workers: number of threads running the per-E forecasts
    :param progress: show a tqdm progress bar
    """
    if max_E < 1:
        raise InvalidParameter(f'max_E must be >= 1, got {max_E}')
    jobs = [
        SweepJob(name=f'E={E}', fn=simplex_forecast,
                 kwargs=dict(series=series, E=E, lib=lib, pred=pred, tau=tau, Tp=Tp,
                             exclusion_radius=exclusion_radius, target=target))
        for E in range(1, max_E + 1)
    ]
    results = run_jobs(jobs, n_workers=n_workers, progress=progress, skip_errors=(EDMError,))
    E_values = np.arange(1, max_E + 1)
    scores = sweep_scores(results)
    best_E = select_embedding_dimension(E_values, scores, tolerance)
    best_rho = float(scores[best_E - 1])
    logger.info(f'embed dimension: best E={best_E} rho={best_rho:.4f}')
    return EmbedDimensionResult(E=E_values, rho=scores, best_E=best_E, best_rho=best_rho, results=results)


@dataclass()
class PredictIntervalResult:
    Tp: np.ndarray
    rho: np.ndarray
    results: List[Optional[ForecastResult]] = field(default_factory=list, repr=False)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({'Tp': self.Tp, 'rho': self.rho})


def predict_interval(series,
                     E: int,
                     lib,
                     pred,
                     max_Tp: int = 10,
                     tau: int = 1,
                     exclusion_radius: int = 0,
                     target=None,
                     n_workers: int = 1,
                     progress: bool = False) -> PredictIntervalResult:
    """
    Simplex forecast skill as a function of the horizon Tp = 1..max_Tp.
    Skill falling off with Tp is characteristic of chaotic dynamics.
    """
    if max_Tp < 1:
        raise InvalidParameter(f'max_Tp must be >= 1, got {max_Tp}')
    jobs = [
        SweepJob(name=f'Tp={Tp}', fn=simplex_forecast,
                 kwargs=dict(series=series, E=E, lib=lib, pred=pred, tau=tau, Tp=Tp,
                             exclusion_radius=exclusion_radius, target=target))
        for Tp in range(1, max_Tp + 1)
    ]
    results = run_jobs(jobs, n_workers=n_workers, progress=progress, skip_errors=(EDMError,))
    return PredictIntervalResult(
        Tp=np.arange(1, max_Tp + 1),
        rho=sweep_scores(results),
        results=results,
    )
