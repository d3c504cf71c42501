"""
Analysis driver: optimal embedding, nonlinearity test, EDM vs ARIMA forecasts and
cross mapping between a target series and its candidate drivers.

    python -m edmforecast.analyze run prices.csv --target=corn --drivers=temperature,precipitation
    python -m edmforecast.analyze synthetic --len_timeseries=600
"""
import logging
import os
from typing import Dict, Optional, Sequence

import pandas as pd
from fire import Fire

from edmforecast.Baseline.ArimaBaseline import arima_forecast
from edmforecast.config import AnalysisConfig
from edmforecast.CrossMap.CCMAlgorithm import convergent_cross_map, library_capacity
from edmforecast.Datasets.SyntheticDataset import SyntheticDataset
from edmforecast.Datasets.TimeSeriesTable import TimeSeriesTable
from edmforecast.SMap.SMapAlgorithm import predict_nonlinear, smap_forecast
from edmforecast.Simplex.SimplexAlgorithm import embed_dimension, simplex_forecast
from edmforecast.utils import setup_logging

logger = logging.getLogger(__name__)


def _as_list(names) -> list:
    if names is None:
        return []
    if isinstance(names, str):
        return [n.strip() for n in names.split(',') if n.strip()]
    return list(names)


def analyze_table(table: TimeSeriesTable,
                  target: str,
                  drivers: Sequence[str] = (),
                  config: Optional[AnalysisConfig] = None) -> Dict[str, pd.DataFrame]:
    """
    Run the full analysis on one target column.
    :return: named result tables: embed_dimension, predict_nonlinear, forecasts, errors and one ccm table per driver
    """
    config = config or AnalysisConfig()
    y = table.column(target)
    lib, pred = config.lib_pred(table.time_points())
    logger.info(f'{target}: {table.time_points()} rows, lib={lib}, pred={pred}')

    dims = embed_dimension(y, lib, pred, max_E=config.max_E, tau=config.tau, Tp=config.Tp,
                           exclusion_radius=config.exclusion_radius,
                           n_workers=config.n_workers, progress=config.progress)
    E = dims.best_E
    nonlinear = predict_nonlinear(y, E, lib, pred, thetas=config.thetas, tau=config.tau, Tp=config.Tp,
                                  exclusion_radius=config.exclusion_radius,
                                  n_workers=config.n_workers, progress=config.progress)

    forecasts = {
        'simplex': simplex_forecast(y, E, lib, pred, tau=config.tau, Tp=config.Tp,
                                    exclusion_radius=config.exclusion_radius),
        'smap': smap_forecast(y, E, nonlinear.best_theta, lib, pred, tau=config.tau, Tp=config.Tp,
                              exclusion_radius=config.exclusion_radius),
    }
    if config.Tp == 1:
        forecasts['arima'] = arima_forecast(y, lib, pred, order=config.arima_order)
    else:
        logger.info(f'ARIMA baseline only runs one step ahead, skipped for Tp={config.Tp}')

    errors = pd.DataFrame({name: result.error() for name, result in forecasts.items()}).T
    logger.info(f'{target} forecast errors:\n{errors}')

    outputs = {
        'embed_dimension': dims.to_frame(),
        'predict_nonlinear': nonlinear.to_frame(),
        'errors': errors,
    }
    for name, result in forecasts.items():
        outputs[f'forecast_{name}'] = result.to_frame()

    for driver in drivers:
        x = table.column(driver)
        capacity = min(library_capacity(y, x, E, config.tau), library_capacity(x, y, E, config.tau))
        lib_sizes = [size for size in config.lib_sizes if E + 1 < size <= capacity]
        if not lib_sizes:
            logger.warning(f'no feasible cross-map library size for {target} and {driver} (capacity {capacity})')
            continue
        ccm = convergent_cross_map(y, x, E, lib_sizes, names=(target, driver), samples=config.samples,
                                   seed=config.seed, tau=config.tau, exclusion_radius=config.exclusion_radius,
                                   n_workers=config.n_workers, progress=config.progress)
        frames = []
        for label, result in ccm.items():
            frame = result.to_frame()
            frame.insert(0, 'direction', label)
            frames.append(frame)
        outputs[f'ccm_{driver}'] = pd.concat(frames, ignore_index=True)
    return outputs


def _write(outputs: Dict[str, pd.DataFrame], output_dir: Optional[str]):
    if output_dir is None:
        return
    os.makedirs(output_dir, exist_ok=True)
    for name, frame in outputs.items():
        path = os.path.join(output_dir, f'{name}.csv')
        frame.to_csv(path)
        logger.info(f'Wrote {path}')


def run(csv_path: str,
        target: str,
        drivers=None,
        date_column: str = 'date',
        output_dir: Optional[str] = None,
        log_level: str = 'INFO',
        **config):
    """
    Analyse a CSV table of date-aligned series.
    :param csv_path: CSV with a date column and one column per series
    :param target: column to forecast
    :param drivers: comma separated columns cross-mapped against the target
    :param output_dir: directory receiving one CSV per result table
    :param config: AnalysisConfig fields, e.g. --max_E=8 --samples=50 --progress
    """
    setup_logging(log_level)
    table = TimeSeriesTable.load_csv(csv_path, date_column=date_column)
    outputs = analyze_table(table, target, _as_list(drivers), AnalysisConfig(**config))
    _write(outputs, output_dir)
    return outputs['errors']


def synthetic(len_timeseries: int = 600,
              output_dir: Optional[str] = None,
              log_level: str = 'INFO',
              **config):
    """Analyse coupled logistic maps, where x forces y."""
    setup_logging(log_level)
    table = SyntheticDataset.load_coupled_logistic(len_timeseries)
    outputs = analyze_table(table, 'y', ['x'], AnalysisConfig(**config))
    _write(outputs, output_dir)
    return outputs['errors']


def main():
    Fire({'run': run, 'synthetic': synthetic})


if __name__ == '__main__':
    main()
