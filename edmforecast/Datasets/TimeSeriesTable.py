"""
Date-keyed table of numeric series (commodity prices, climate variables).
"""
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from edmforecast.exceptions import InvalidParameter

logger = logging.getLogger(__name__)


@dataclass()
class TimeSeriesTable:
    dates: np.ndarray
    values: np.ndarray
    columns: Tuple[str, ...]

    @staticmethod
    def from_frame(frame: pd.DataFrame, date_column: Optional[str] = None) -> 'TimeSeriesTable':
        """
        Build a table from a DataFrame indexed by date (or with a date column).
        Rows are sorted by date; non-numeric cells become missing values.

        :param frame: source DataFrame
        :param date_column: column holding the dates, the index is used if None
        :return: TimeSeriesTable
        """
        if date_column is not None:
            frame = frame.set_index(date_column)
        if frame.index.has_duplicates:
            duplicated = frame.index[frame.index.duplicated()].unique()
            raise InvalidParameter(f'duplicate dates in table: {list(duplicated[:5])}')
        frame = frame.sort_index().apply(pd.to_numeric, errors='coerce')
        return TimeSeriesTable(
            dates=frame.index.to_numpy(),
            values=frame.to_numpy(dtype=np.float64),
            columns=tuple(str(c) for c in frame.columns),
        )

    @staticmethod
    def load_csv(path: str, date_column: str = 'date', columns: Optional[Sequence[str]] = None) -> 'TimeSeriesTable':
        """
        Load a table from a CSV file with one date column and one column per variable.
        """
        frame = pd.read_csv(path, parse_dates=[date_column])
        if columns is not None:
            frame = frame[[date_column, *columns]]
        logger.info(f'Loaded {frame.shape[0]} rows, {frame.shape[1] - 1} series from {path}')
        return TimeSeriesTable.from_frame(frame, date_column=date_column)

    @staticmethod
    def align(tables: Sequence['TimeSeriesTable']) -> 'TimeSeriesTable':
        """
        Outer-join tables on date. Dates missing from a table become missing values.
        """
        frames = [t.to_frame() for t in tables]
        columns = [c for f in frames for c in f.columns]
        if len(set(columns)) != len(columns):
            raise InvalidParameter(f'column names collide across tables: {columns}')
        return TimeSeriesTable.from_frame(pd.concat(frames, axis=1, join='outer'))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.values, index=pd.Index(self.dates, name='date'), columns=list(self.columns))

    def column(self, name: str) -> np.ndarray:
        if name not in self.columns:
            raise InvalidParameter(f'unknown column {name!r}, table has {list(self.columns)}')
        return self.values[:, self.columns.index(name)]

    def select(self, names: Sequence[str]) -> 'TimeSeriesTable':
        return TimeSeriesTable(dates=self.dates,
                               values=np.column_stack([self.column(n) for n in names]),
                               columns=tuple(names))

    def as_frequency(self, freq: str) -> 'TimeSeriesTable':
        """
        Reindex to a regular calendar (e.g. 'D', 'W-FRI', 'MS'), inserting absent dates as missing rows.
        """
        frame = self.to_frame()
        full = pd.date_range(frame.index.min(), frame.index.max(), freq=freq, name='date')
        return TimeSeriesTable.from_frame(frame.reindex(full))

    def fill_gaps(self, method: str = 'linear', limit: Optional[int] = None) -> 'TimeSeriesTable':
        """Interpolate missing values. Gaps are left as missing unless this is called."""
        return TimeSeriesTable.from_frame(self.to_frame().interpolate(method=method, limit=limit))

    def split(self, cut_point: int) -> Tuple['TimeSeriesTable', 'TimeSeriesTable']:
        """
        Split table by cut point.

        :param cut_point: Cut index.
        :return: Two parts of the table: the left part contains all rows before the cut point
        and the right part contains all rows on and after the cut point.
        """
        return TimeSeriesTable(dates=self.dates[:cut_point],
                               values=self.values[:cut_point],
                               columns=self.columns), \
               TimeSeriesTable(dates=self.dates[cut_point:],
                               values=self.values[cut_point:],
                               columns=self.columns)

    def time_points(self):
        return self.dates.shape[0]
