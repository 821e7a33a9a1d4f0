"""
Chunked reader that turns a telemetry CSV into a stream of RawRecords
"""

import logging
from typing import Callable, Dict, Iterator, List, Optional

import pandas as pd

from GRCoach.Core.errors import LoadCancelled
from GRCoach.Core.models import RawRecord
from GRCoach.Core.TelemetryEngine.pivot import channel_for

logger = logging.getLogger(__name__)

# Vehicle identifier columns, most specific first
VEHICLE_ID_COLUMNS = ('vehicle_id', 'original_vehicle_id', 'vehicle_number')


def column_lookup(columns) -> Dict[str, str]:
    """Map lowercase, stripped column names to the names as they appear in the file."""
    lookup = {}
    for column in columns:
        lookup.setdefault(str(column).strip().lower(), column)
    return lookup


class RecordStream:
    """
    Iterates RawRecords from a telemetry CSV one pandas chunk at a time.

    Only the current chunk is held in memory. Long-format files yield one record
    per row; wide-format files yield one record per mapped column of each row, in
    row order, so both feed the same pivot.

    close() ends the iteration and releases the reader. It can be called any
    number of times, including from inside the consuming loop.
    """

    def __init__(self, source, chunk_size: int = 100_000, wide: bool = False,
                 should_cancel: Optional[Callable[[], bool]] = None):
        """
        Args:
            source: Path or file-like object holding CSV text
            chunk_size: Number of rows parsed per chunk
            wide: Treat the file as one sample per row instead of key/value rows
            should_cancel: Polled between chunks; returning True raises LoadCancelled
        """
        self.source = source
        self.chunk_size = chunk_size
        self.wide = wide
        self.should_cancel = should_cancel
        self.rows_read = 0
        self.chunks_read = 0
        self.closed = False
        self._reader = None

    def __iter__(self) -> Iterator[RawRecord]:
        if self.closed:
            return
        self._reader = pd.read_csv(
            self.source,
            chunksize=self.chunk_size,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
        try:
            for chunk in self._reader:
                if self.closed:
                    break
                if self.should_cancel is not None and self.should_cancel():
                    raise LoadCancelled("Telemetry load was superseded")

                first_row = self.rows_read
                self.chunks_read += 1
                self.rows_read += len(chunk)
                logger.debug("Chunk %d: %d rows", self.chunks_read, len(chunk))

                if self.wide:
                    records = self._wide_records(chunk, first_row)
                else:
                    records = self._long_records(chunk)

                for record in records:
                    if self.closed:
                        break
                    yield record
        finally:
            self.close()

    def close(self):
        if self.closed:
            return
        self.closed = True
        if self._reader is not None:
            self._reader.close()
            logger.debug("Record stream closed after %d rows", self.rows_read)

    def _identity_columns(self, chunk: pd.DataFrame):
        columns = column_lookup(chunk.columns)
        blank = pd.Series([''] * len(chunk), index=chunk.index, dtype=str)

        vehicle_col = next((columns[c] for c in VEHICLE_ID_COLUMNS if c in columns), None)
        timestamps = chunk[columns['timestamp']] if 'timestamp' in columns else None
        vehicle_ids = chunk[vehicle_col] if vehicle_col is not None else blank
        numbers = chunk[columns['vehicle_number']] if 'vehicle_number' in columns else blank
        laps = chunk[columns['lap']] if 'lap' in columns else blank
        return columns, timestamps, vehicle_ids, numbers, laps

    def _long_records(self, chunk: pd.DataFrame) -> Iterator[RawRecord]:
        columns, timestamps, vehicle_ids, numbers, laps = self._identity_columns(chunk)
        if timestamps is None:
            timestamps = pd.Series([''] * len(chunk), index=chunk.index, dtype=str)

        names = chunk[columns['telemetry_name']]
        values = pd.to_numeric(chunk[columns['telemetry_value']], errors='coerce')

        for ts, vid, number, lap, name, value in zip(timestamps, vehicle_ids, numbers,
                                                     laps, names, values):
            yield RawRecord(
                timestamp_key=ts,
                vehicle_id=vid,
                vehicle_number=number,
                lap=lap,
                field_name=name,
                field_value=float(value),
            )

    def _wide_records(self, chunk: pd.DataFrame, first_row: int) -> Iterator[RawRecord]:
        _, timestamps, vehicle_ids, numbers, laps = self._identity_columns(chunk)
        if timestamps is None:
            # No timestamp column: every row is its own sample
            timestamps = [str(first_row + i) for i in range(len(chunk))]

        channel_cols: List[str] = [c for c in chunk.columns if channel_for(str(c).strip())]
        if not channel_cols:
            return
        numeric = chunk[channel_cols].apply(pd.to_numeric, errors='coerce')
        names = [str(c).strip() for c in channel_cols]

        for ts, vid, number, lap, row in zip(timestamps, vehicle_ids, numbers, laps,
                                             numeric.itertuples(index=False, name=None)):
            for name, value in zip(names, row):
                yield RawRecord(
                    timestamp_key=ts,
                    vehicle_id=vid,
                    vehicle_number=number,
                    lap=lap,
                    field_name=name,
                    field_value=float(value),
                )
