import numpy as np


def _paired(observed, predicted):
    observed = np.asarray(observed, dtype=np.float64).ravel()
    predicted = np.asarray(predicted, dtype=np.float64).ravel()
    if observed.shape != predicted.shape:
        raise ValueError(f'shape mismatch: observed {observed.shape} vs predicted {predicted.shape}')
    # only pairs where both sides are known are scored
    keep = np.isfinite(observed) & np.isfinite(predicted)
    return observed[keep], predicted[keep]


def rho(observed, predicted) -> float:
    """
    Pearson correlation between observed and predicted values.
    Returns nan with fewer than two pairs or when either side has zero variance.
    """
    obs, pred = _paired(observed, predicted)
    if obs.shape[0] < 2:
        return float('nan')
    obs = obs - obs.mean()
    pred = pred - pred.mean()
    den = np.sqrt(np.sum(obs ** 2) * np.sum(pred ** 2))
    if den == 0:
        return float('nan')
    return float(np.sum(obs * pred) / den)


def rmse(observed, predicted) -> float:
    obs, pred = _paired(observed, predicted)
    if obs.shape[0] == 0:
        return float('nan')
    return float(np.sqrt(np.mean((obs - pred) ** 2)))


def mae(observed, predicted) -> float:
    obs, pred = _paired(observed, predicted)
    if obs.shape[0] == 0:
        return float('nan')
    return float(np.mean(np.abs(obs - pred)))


def compute_error(observed, predicted) -> dict:
    """
    Accuracy summary of a forecast.
    :param observed: observed values, nan where unknown
    :param predicted: predicted values, nan where skipped
    :return: dict with rho, RMSE, MAE and the number of scored pairs
    """
    obs, _ = _paired(observed, predicted)
    return {
        'rho': rho(observed, predicted),
        'RMSE': rmse(observed, predicted),
        'MAE': mae(observed, predicted),
        'n': int(obs.shape[0]),
    }
