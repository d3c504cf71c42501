"""
Forecast result containers and library / prediction row selection shared by the
simplex and S-map projectors.

Ranges are 1-based and inclusive: lib=[1, 400] is the first 400 rows of the series.
Reported time indices use the same convention.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from edmforecast.exceptions import EmptyLibraryOrPredictionRange, InvalidParameter
from edmforecast.metrics import compute_error, rho

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedIndex:
    time: int
    reason: str


@dataclass()
class ForecastResult:
    """
    Forecasts for the rows of a prediction range.

    :param method: 'simplex', 'smap' or the name of a baseline model
    :param time: 1-based query row of each forecast
    :param forecast_time: 1-based row being forecast (time + Tp)
    :param observed: observed value at forecast_time, nan when beyond the data
    :param predicted: predicted value at forecast_time
    :param skipped: prediction rows that produced no forecast, with the reason
    :param coefficients: S-map local coefficients per row (intercept first)
    """
    method: str
    E: Optional[int]
    tau: int
    Tp: int
    time: np.ndarray
    forecast_time: np.ndarray
    observed: np.ndarray
    predicted: np.ndarray
    skipped: Tuple[SkippedIndex, ...] = ()
    theta: Optional[float] = None
    coefficients: Optional[np.ndarray] = None

    @property
    def score(self) -> float:
        return rho(self.observed, self.predicted)

    def error(self) -> dict:
        return compute_error(self.observed, self.predicted)

    def __len__(self):
        return self.time.shape[0]

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame({
            'time': self.time,
            'forecast_time': self.forecast_time,
            'observations': self.observed,
            'predictions': self.predicted,
        })
        if self.coefficients is not None:
            frame['C0'] = self.coefficients[:, 0]
            for j in range(1, self.coefficients.shape[1]):
                frame[f'dy/dx{j}'] = self.coefficients[:, j]
        return frame


@dataclass()
class RowSelection:
    """0-based row indices chosen for the library and for prediction."""
    lib_times: np.ndarray
    pred_times: np.ndarray
    observed: np.ndarray
    skipped: list = field(default_factory=list)


def resolve_range(span: Sequence[int], n: int, name: str) -> Tuple[int, int]:
    """
    Convert a 1-based inclusive [start, end] range into 0-based inclusive bounds.
    The end is clipped to the series length.
    """
    if len(span) != 2:
        raise InvalidParameter(f'{name} must be [start, end], got {span}')
    start, end = int(span[0]), int(span[1])
    if start < 1 or end < start:
        raise InvalidParameter(f'{name} range [{start}, {end}] is malformed')
    if start > n:
        raise EmptyLibraryOrPredictionRange(f'{name} range starts at {start} but the series has {n} rows')
    if end > n:
        logger.debug(f'{name} range end {end} clipped to series length {n}')
        end = n
    return start - 1, end - 1


def check_parameters(E: int, tau: int, knn: Optional[int] = None, exclusion_radius: int = 0):
    if E < 1:
        raise InvalidParameter(f'embedding dimension E must be >= 1, got {E}')
    if tau < 1:
        raise InvalidParameter(f'lag tau must be >= 1, got {tau}')
    if knn is not None and knn < 1:
        raise InvalidParameter(f'knn must be >= 1, got {knn}')
    if exclusion_radius < 0:
        raise InvalidParameter(f'exclusion_radius must be >= 0, got {exclusion_radius}')


def as_target(series: np.ndarray, target) -> np.ndarray:
    """Target defaults to the series itself, or its first column for a multivariate block."""
    if target is None:
        return series if series.ndim == 1 else series[:, 0]
    target = np.asarray(target, dtype=np.float64)
    if target.ndim != 1 or target.shape[0] != series.shape[0]:
        raise InvalidParameter(f'target must be 1-D with {series.shape[0]} rows, got shape {target.shape}')
    return target


def select_rows(embedding, target: np.ndarray, lib, pred, Tp: int) -> RowSelection:
    """
    Pick library and prediction rows of an embedding.

    A library row t needs a valid embedding vector and an observed target at t + Tp
    that also lies within the library range. A prediction row lacking the history
    to form its vector, or whose vector holds a missing value, is skipped.
    """
    n = target.shape[0]
    lib_start, lib_end = resolve_range(lib, n, 'lib')
    pred_start, pred_end = resolve_range(pred, n, 'pred')

    times = embedding.times
    future = times + Tp
    in_lib = (times >= lib_start) & (times <= lib_end) & (future >= lib_start) & (future <= lib_end)
    lib_rows = in_lib & embedding.valid
    lib_rows[lib_rows] = np.isfinite(target[future[lib_rows]])
    lib_times = times[lib_rows]
    if lib_times.shape[0] == 0:
        raise EmptyLibraryOrPredictionRange(f'library range {list(lib)} holds no valid row for E={embedding.E}')

    skipped = []
    pred_times = []
    for t in range(pred_start, pred_end + 1):
        if t < embedding.offset:
            skipped.append(SkippedIndex(t + 1, 'insufficient history'))
        elif not embedding.valid[t - embedding.offset]:
            skipped.append(SkippedIndex(t + 1, 'missing value in embedding vector'))
        else:
            pred_times.append(t)
    pred_times = np.asarray(pred_times, dtype=np.int64)
    if pred_times.shape[0] == 0:
        raise EmptyLibraryOrPredictionRange(f'prediction range {list(pred)} holds no valid row for E={embedding.E}')

    observed = np.full(pred_times.shape[0], np.nan)
    future = pred_times + Tp
    known = (future >= 0) & (future < n)
    observed[known] = target[future[known]]
    return RowSelection(lib_times, pred_times, observed, skipped)


def build_result(method: str, E: Optional[int], tau: int, Tp: int, selection: RowSelection,
                 predicted: np.ndarray, reasons: dict, theta: Optional[float] = None,
                 coefficients: Optional[np.ndarray] = None) -> ForecastResult:
    """
    Assemble a ForecastResult, dropping rows without a prediction.
    :param reasons: maps a position in selection.pred_times to the reason it was skipped
    """
    keep = np.isfinite(predicted)
    skipped = list(selection.skipped)
    for i in np.flatnonzero(~keep):
        skipped.append(SkippedIndex(int(selection.pred_times[i]) + 1, reasons.get(int(i), 'no forecast')))
    skipped.sort(key=lambda s: s.time)
    if skipped:
        logger.debug(f'{method} E={E}: skipped {len(skipped)} prediction rows')

    time = selection.pred_times[keep] + 1
    return ForecastResult(
        method=method,
        E=E,
        tau=tau,
        Tp=Tp,
        time=time,
        forecast_time=time + Tp,
        observed=selection.observed[keep],
        predicted=predicted[keep],
        skipped=tuple(skipped),
        theta=theta,
        coefficients=None if coefficients is None else coefficients[keep],
    )
