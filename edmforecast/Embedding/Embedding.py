from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd

from edmforecast.exceptions import InsufficientHistory, InvalidParameter


@dataclass()
class Embedding:
    """
    Time-delay embedding of a series.

    Row i holds the vector ending at time index times[i] (0-based):
    (x[t], x[t - tau], ..., x[t - (E - 1) * tau]) for every variable, variables
    concatenated one after another. Rows whose vector contains a missing value are
    kept in place and flagged in `valid`.
    """
    vectors: np.ndarray
    times: np.ndarray
    valid: np.ndarray
    E: int
    tau: int

    @property
    def offset(self) -> int:
        return (self.E - 1) * self.tau

    def rows(self, times: np.ndarray) -> np.ndarray:
        """Vectors at the given 0-based time indices."""
        return self.vectors[np.asarray(times) - self.offset]

    def __len__(self):
        return self.times.shape[0]


def embed(series, E: int, tau: int = 1) -> Embedding:
    """
    Reconstruct lagged state vectors from a univariate series or a (time, variables) block.

    :param series: array-like of shape (n_samples,) or (n_samples, n_variables)
    :param E: embedding dimension, number of lagged values per variable
    :param tau: lag between consecutive coordinates, in rows
    :return: Embedding with max(n_samples - (E - 1) * tau, 0) rows
    :raises InsufficientHistory: the series is empty
    """
    if E < 1:
        raise InvalidParameter(f'embedding dimension E must be >= 1, got {E}')
    if tau < 1:
        raise InvalidParameter(f'lag tau must be >= 1, got {tau}')

    X = np.asarray(series, dtype=np.float64)
    if X.ndim == 1:
        X = X[:, None]
    elif X.ndim != 2:
        raise InvalidParameter(f'series must be 1-D or 2-D, got {X.ndim} dimensions')

    if X.shape[0] < 1:
        raise InsufficientHistory(f'cannot embed an empty series with E={E}, tau={tau}')

    shift = (E - 1) * tau
    # a series shorter than shift + 1 rows yields no vectors
    times = np.arange(shift, X.shape[0])
    # (n_rows, n_variables, E) -> variables major, lags minor
    lagged = np.stack([X[times - j * tau] for j in range(E)], axis=-1)
    vectors = lagged.reshape(times.shape[0], X.shape[1] * E)
    valid = np.all(np.isfinite(vectors), axis=1)
    return Embedding(vectors=vectors, times=times, valid=valid, E=E, tau=tau)


def embed_frame(frame: pd.DataFrame, columns: Sequence[str], E: int, tau: int = 1) -> pd.DataFrame:
    """
    Embedding of DataFrame columns as a DataFrame with columns named like 'x(t-0)', 'x(t-1)'.
    The index is taken from the frame rows the vectors end at.
    """
    columns = [columns] if isinstance(columns, str) else list(columns)
    embedding = embed(frame[columns].to_numpy(dtype=np.float64), E, tau)
    names = [f'{column}(t-{j * tau})' for column in columns for j in range(E)]
    return pd.DataFrame(embedding.vectors, index=frame.index[embedding.times], columns=names)
