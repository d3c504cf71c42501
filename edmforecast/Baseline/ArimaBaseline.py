"""
ARIMA comparison baseline for EDM forecasts.
"""
import logging
from typing import Tuple

import numpy as np
from statsmodels.tsa.arima.model import ARIMA

from edmforecast.Forecast import ForecastResult, resolve_range

logger = logging.getLogger(__name__)


class ArimaBaseline:
    """
    ARIMA fitted on the library window, producing one-step-ahead forecasts over the
    prediction window with the fitted parameters. Results use the same ForecastResult
    layout as the simplex and S-map projectors: row t forecasts row t + 1.
    """

    def __init__(self, order: Tuple[int, int, int] = (1, 1, 1)):
        self.order = tuple(order)
        self.fitted = None

    def fit(self, series, lib) -> 'ArimaBaseline':
        y = np.asarray(series, dtype=np.float64)
        start, end = resolve_range(lib, y.shape[0], 'lib')
        logger.info(f'Fitting ARIMA{self.order} on rows {start + 1}..{end + 1}')
        self.fitted = ARIMA(y[start:end + 1], order=self.order).fit()
        return self

    def forecast(self, series, pred) -> ForecastResult:
        if self.fitted is None:
            raise RuntimeError('ArimaBaseline.fit must be called before forecast')
        y = np.asarray(series, dtype=np.float64)
        n = y.shape[0]
        start, end = resolve_range(pred, n, 'pred')

        # same parameters, state filtered over the whole series
        applied = self.fitted.apply(y)
        predicted = np.asarray(applied.predict(start=start + 1, end=end + 1))

        time = np.arange(start, end + 1) + 1
        observed = np.full(time.shape[0], np.nan)
        known = time < n
        observed[known] = y[time[known]]
        return ForecastResult(
            method=f'ARIMA{self.order}',
            E=None,
            tau=1,
            Tp=1,
            time=time,
            forecast_time=time + 1,
            observed=observed,
            predicted=predicted,
        )


def arima_forecast(series, lib, pred, order: Tuple[int, int, int] = (1, 1, 1)) -> ForecastResult:
    return ArimaBaseline(order).fit(series, lib).forecast(series, pred)
