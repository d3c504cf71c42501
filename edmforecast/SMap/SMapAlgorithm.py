"""
S-map: sequential locally weighted global linear maps.

Every forecast is a weighted least-squares fit of the library targets on the
library vectors (plus intercept), with weights exp(-theta * d / mean(d)) taken
from the distance to the query vector. theta = 0 gives one global linear
autoregression; larger theta localises the fit around the query state.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from edmforecast.Embedding.Embedding import embed
from edmforecast.Forecast import ForecastResult, as_target, build_result, check_parameters, select_rows
from edmforecast.Simplex.DistanceMetrics import pairwise_distances
from edmforecast.Simplex.SimplexAlgorithm import sweep_scores
from edmforecast.exceptions import EDMError, InvalidParameter, UnderdeterminedFit
from edmforecast.utils import SweepJob, run_jobs

logger = logging.getLogger(__name__)

DEFAULT_THETAS = (0, 0.01, 0.1, 0.3, 0.5, 0.75, 1, 1.5, 2, 3, 4, 5, 6, 7, 8)


def smap_weights(distances: np.ndarray, theta: float) -> np.ndarray:
    mean_distance = distances.mean()
    if theta == 0 or mean_distance == 0:
        return np.ones_like(distances)
    return np.exp(-theta * distances / mean_distance)


def local_linear_fit(lib_vectors: np.ndarray, lib_targets: np.ndarray, weights: np.ndarray,
                     rcond: Optional[float] = None) -> np.ndarray:
    """
    Weighted least-squares coefficients [C0, C1, ..., Cd] of targets on vectors.

    Rows of the design matrix [1, x] and the targets are multiplied by the weights
    and the system is solved by SVD, giving the minimum-norm solution when the
    vectors are collinear.

    :raises UnderdeterminedFit: fewer rows with non-zero weight than coefficients,
        or a system of rank zero
    """
    n_coefficients = lib_vectors.shape[1] + 1
    effective = int(np.count_nonzero(weights > 0))
    if effective < n_coefficients:
        raise UnderdeterminedFit(f'{effective} library rows carry weight, {n_coefficients} coefficients to fit')

    A = np.column_stack([np.ones(lib_vectors.shape[0]), lib_vectors]) * weights[:, None]
    b = lib_targets * weights
    coefficients, _, rank, _ = np.linalg.lstsq(A, b, rcond=rcond)
    if rank == 0:
        raise UnderdeterminedFit('weighted design matrix has rank zero')
    return coefficients


def smap_forecast(series,
                  E: int,
                  theta: float,
                  lib,
                  pred,
                  tau: int = 1,
                  Tp: int = 1,
                  exclusion_radius: int = 0,
                  target=None,
                  metric: str = 'euclidean',
                  rcond: Optional[float] = None) -> ForecastResult:
    """
    Forecast a series with S-map local linear maps.

    :param series: array of shape (n_samples,) or (n_samples, n_variables)
    :param E: embedding dimension
    :param theta: nonlinearity, 0 is a global linear map
    :param lib: 1-based inclusive library rows [start, end]
    :param pred: 1-based inclusive prediction rows [start, end]
    :param tau: embedding lag
    :param Tp: forecast horizon
    :param exclusion_radius: library rows this close in time to the query row are left out of its fit
    :param target: variable to forecast, defaults to the (first column of the) series
    :param metric: distance metric name, see DistanceMetrics.METRICS
    :param rcond: cut-off ratio for small singular values in the least-squares solve
    :return: ForecastResult carrying the local coefficients of every forecast
    """
    if theta < 0:
        raise InvalidParameter(f'theta must be >= 0, got {theta}')
    check_parameters(E, tau, exclusion_radius=exclusion_radius)
    X = np.asarray(series, dtype=np.float64)
    y = as_target(X, target)

    embedding = embed(X, E, tau)
    selection = select_rows(embedding, y, lib, pred, Tp)
    n_coefficients = embedding.vectors.shape[1] + 1
    if selection.lib_times.shape[0] <= n_coefficients:
        raise InvalidParameter(f'library holds {selection.lib_times.shape[0]} rows, '
                               f'needs more than {n_coefficients} for E={E}')

    lib_vectors = embedding.rows(selection.lib_times)
    lib_targets = y[selection.lib_times + Tp]
    query_vectors = embedding.rows(selection.pred_times)
    distances = pairwise_distances(query_vectors, lib_vectors, metric)

    n_pred = selection.pred_times.shape[0]
    predictions = np.full(n_pred, np.nan)
    coefficients = np.full((n_pred, n_coefficients), np.nan)
    reasons = {}
    for i, t in enumerate(selection.pred_times):
        admissible = np.abs(selection.lib_times - t) > exclusion_radius
        try:
            if not admissible.any():
                raise UnderdeterminedFit('no admissible library row')
            weights = smap_weights(distances[i, admissible], theta)
            coefficients[i] = local_linear_fit(lib_vectors[admissible], lib_targets[admissible], weights, rcond)
        except UnderdeterminedFit as e:
            logger.debug(f'smap E={E} theta={theta}: row {t + 1} skipped, {e}')
            reasons[i] = f'underdetermined fit: {e}'
            continue
        predictions[i] = coefficients[i, 0] + query_vectors[i] @ coefficients[i, 1:]

    return build_result('smap', E, tau, Tp, selection, predictions, reasons,
                        theta=float(theta), coefficients=coefficients)


@dataclass()
class PredictNonlinearResult:
    """
    S-map skill across theta. `nonlinearity` is the best theta > 0 score minus the
    theta = 0 score; a clearly positive value points to state-dependent dynamics.
    """
    theta: np.ndarray
    rho: np.ndarray
    best_theta: float
    best_rho: float
    linear_rho: float
    nonlinear_rho: float
    results: List[Optional[ForecastResult]] = field(default_factory=list, repr=False)

    @property
    def nonlinearity(self) -> float:
        return self.nonlinear_rho - self.linear_rho

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({'theta': self.theta, 'rho': self.rho})


def predict_nonlinear(series,
                      E: int,
                      lib,
                      pred,
                      thetas: Sequence[float] = DEFAULT_THETAS,
                      tau: int = 1,
                      Tp: int = 1,
                      exclusion_radius: int = 0,
                      target=None,
                      n_workers: int = 1,
                      progress: bool = False) -> PredictNonlinearResult:
    """
    Sweep theta at a fixed embedding dimension and compare linear and nonlinear skill.
    A theta whose fit fails for the whole prediction range scores nan.
    """
    thetas = np.asarray(sorted(set(float(t) for t in thetas)))
    if thetas.shape[0] == 0:
        raise InvalidParameter('thetas must not be empty')
    if thetas[0] < 0:
        raise InvalidParameter(f'theta must be >= 0, got {thetas[0]}')

    jobs = [
        SweepJob(name=f'theta={theta}', fn=smap_forecast,
                 kwargs=dict(series=series, E=E, theta=theta, lib=lib, pred=pred, tau=tau, Tp=Tp,
                             exclusion_radius=exclusion_radius, target=target))
        for theta in thetas
    ]
    results = run_jobs(jobs, n_workers=n_workers, progress=progress, skip_errors=(EDMError,))
    scores = sweep_scores(results)

    finite = np.isfinite(scores)
    if not finite.any():
        raise UnderdeterminedFit('no theta produced a finite score')
    # argmax returns the first maximum, thetas are sorted so ties go to the smaller theta
    best = int(np.argmax(np.where(finite, scores, -np.inf)))
    linear_rho = float(scores[0]) if thetas[0] == 0 else float('nan')
    positive = (thetas > 0) & finite
    nonlinear_rho = float(scores[positive].max()) if positive.any() else float('nan')

    logger.info(f'predict nonlinear E={E}: best theta={thetas[best]} rho={scores[best]:.4f}, '
                f'linear rho={linear_rho:.4f}, nonlinear rho={nonlinear_rho:.4f}')
    return PredictNonlinearResult(
        theta=thetas,
        rho=scores,
        best_theta=float(thetas[best]),
        best_rho=float(scores[best]),
        linear_rho=linear_rho,
        nonlinear_rho=nonlinear_rho,
        results=results,
    )
