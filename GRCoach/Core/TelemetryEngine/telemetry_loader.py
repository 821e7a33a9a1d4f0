"""
Telemetry data loader for GR Cup racing data
Handles the long-format telemetry CSV files where each row is a single parameter
"""

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pandas as pd

from GRCoach.config import IngestionSettings
from GRCoach.Core.errors import (EmptyDataError, LoadCancelled, ParseError,
                                 TelemetryLoadError, UserInputError)
from GRCoach.Core.models import TelemetrySample
from GRCoach.Core.race_store import RaceStore
from GRCoach.Core.TelemetryEngine.pivot import pivot_records
from GRCoach.Core.TelemetryEngine.record_stream import RecordStream, column_lookup
from GRCoach.Core.TelemetryEngine.state_processor import (materialize_samples,
                                                          normalize_coordinates)

logger = logging.getLogger(__name__)

INVALID_FILENAME_MESSAGE = "Invalid File. Please look for a file ending in '_telemetry_data.csv'"
WRONG_SHAPE_MESSAGE = "Missing GPS data. Are you sure this is the Telemetry file and not the Results file?"
EMPTY_FILE_MESSAGE = "CSV file is empty"
NO_GPS_MESSAGE = "No valid GPS data points found in CSV"


def _trim_partial_line(text: str) -> str:
    """Drop the cut-off tail after the last newline of a preview."""
    cut = text.rfind('\n')
    return text[:cut + 1] if cut > 0 else text


def _fewer_rows(text: str) -> str:
    """First half of a preview on a line boundary, or '' if only the header would remain."""
    header_end = text.find('\n')
    cut = text.rfind('\n', 0, len(text) // 2)
    if header_end < 0 or cut <= header_end:
        return ''
    return text[:cut + 1]


@dataclass
class FilePreview:
    """Headers and first rows of a file, parsed from its leading bytes only"""
    headers: List[str]
    rows: List[Dict[str, str]] = field(default_factory=list)


def validate_preview(preview: FilePreview) -> bool:
    """
    Decide whether a preview looks like a telemetry export.

    Accepted if the headers carry telemetry_name and telemetry_value columns
    (long format), or a VBOX_Lat_Min column (wide format), or the first row
    exposes a telemetry_name key.
    """
    if not preview.rows:
        return False

    headers = [str(h or '').strip().lower() for h in preview.headers]
    headers = [h for h in headers if h]

    has_name = any('telemetry_name' in h for h in headers)
    has_value = any('telemetry_value' in h for h in headers)
    if has_name and has_value:
        return True

    if any('vbox_lat_min' in h for h in headers):
        return True

    first_row_keys = [str(k).strip().lower() for k in preview.rows[0].keys()]
    return 'telemetry_name' in first_row_keys


class TelemetryLoader:
    """
    Loads and processes telemetry data from long-format CSV files.
    Each row in the CSV contains: timestamp, vehicle_id, telemetry_name, telemetry_value

    The file is validated from a short preview, then streamed chunk by chunk
    into the pivot. Nothing is published unless the whole pipeline succeeds.
    """

    def __init__(self, settings: Optional[IngestionSettings] = None,
                 store: Optional[RaceStore] = None):
        self.settings = settings or IngestionSettings()
        self.store = store
        self.samples: List[TelemetrySample] = []
        self.is_loading = False
        self.last_error: Optional[str] = None
        self.capped = False
        self._generation = 0

    def check_filename(self, filename: str):
        """Reject files whose name lacks the telemetry marker."""
        if self.settings.filename_marker.lower() not in Path(str(filename)).name.lower():
            raise UserInputError(INVALID_FILENAME_MESSAGE)

    def read_preview(self, filepath: str) -> FilePreview:
        """Parse the first rows of a file without reading past the preview size."""
        with open(filepath, 'rb') as f:
            raw = f.read(self.settings.preview_bytes)

        truncated = len(raw) >= self.settings.preview_bytes
        if truncated:
            # Drop the partial last line (and any split multi-byte character)
            cut = raw.rfind(b'\n')
            if cut > 0:
                raw = raw[:cut + 1]

        try:
            text = raw.decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise ParseError(f"CSV preview error: {e}") from e
        return self.parse_preview(text, truncated=truncated)

    def parse_preview(self, text: str, truncated: bool = False) -> FilePreview:
        """
        Parse preview text into headers and rows.

        Args:
            text: Leading part of the file
            truncated: The text was cut from a longer file. A cut can land inside a
                quoted multi-line field, so parser errors retry with fewer rows.
        """
        while True:
            try:
                df = pd.read_csv(
                    io.StringIO(text),
                    dtype=str,
                    keep_default_na=False,
                    skip_blank_lines=True,
                    nrows=self.settings.preview_rows,
                )
            except pd.errors.EmptyDataError as e:
                raise EmptyDataError(EMPTY_FILE_MESSAGE) from e
            except pd.errors.ParserError as e:
                shorter = _fewer_rows(text) if truncated else ''
                if not shorter:
                    raise ParseError(f"CSV preview error: {e}") from e
                logger.debug("Preview cut inside a record, retrying with %d characters", len(shorter))
                text = shorter
                continue
            break

        if df.empty:
            raise EmptyDataError(EMPTY_FILE_MESSAGE)
        return FilePreview(headers=[str(c) for c in df.columns], rows=df.to_dict('records'))

    def load_file(self, filepath: str,
                  should_cancel: Optional[Callable[[], bool]] = None) -> List[TelemetrySample]:
        """
        Load a telemetry CSV into normalized samples and publish them.

        Args:
            filepath: Path to the CSV file
            should_cancel: Polled between chunks; the load is abandoned when it returns True

        Returns:
            The published samples

        Raises:
            TelemetryLoadError: On any failure; previously published samples are kept
        """
        logger.info("Loading telemetry from: %s", filepath)

        def preview():
            self.check_filename(filepath)
            return self.read_preview(filepath)

        return self._load(preview, lambda: filepath, should_cancel)

    def load_text(self, csv_text: str, filename: Optional[str] = None,
                  should_cancel: Optional[Callable[[], bool]] = None) -> List[TelemetrySample]:
        """
        Same pipeline as load_file, over CSV text already in memory.
        The filename check only applies when a name is given.
        """
        logger.info("Loading telemetry from text%s", f" ({filename})" if filename else "")

        def preview():
            if filename is not None:
                self.check_filename(filename)
            text = csv_text[:self.settings.preview_bytes]
            truncated = len(csv_text) > self.settings.preview_bytes
            if truncated:
                text = _trim_partial_line(text)
            return self.parse_preview(text, truncated=truncated)

        return self._load(preview, lambda: io.StringIO(csv_text), should_cancel)

    def _load(self, preview_fn, source_fn, should_cancel) -> List[TelemetrySample]:
        self._generation += 1
        generation = self._generation

        def cancelled():
            if generation != self._generation:
                return True
            return should_cancel is not None and should_cancel()

        self.is_loading = True
        self.last_error = None
        try:
            preview = preview_fn()
            if not validate_preview(preview):
                raise UserInputError(WRONG_SHAPE_MESSAGE)

            samples, capped = self._run_pipeline(source_fn(), self._is_wide(preview.headers),
                                                 cancelled)
            if cancelled():
                raise LoadCancelled("Telemetry load was superseded")
        except LoadCancelled:
            logger.info("Telemetry load superseded")
            raise
        except TelemetryLoadError as e:
            # A superseded load must not overwrite the state of the newer one
            if generation == self._generation:
                self.last_error = str(e)
            logger.warning("Telemetry load failed: %s", e)
            raise
        finally:
            if generation == self._generation:
                self.is_loading = False

        self.samples = samples
        self.capped = capped
        if self.store is not None:
            self.store.set_telemetry_data(samples)
        return samples

    @staticmethod
    def _is_wide(headers: List[str]) -> bool:
        columns = column_lookup(headers)
        return not ('telemetry_name' in columns and 'telemetry_value' in columns)

    def _run_pipeline(self, source, wide: bool, cancelled) -> Tuple[List[TelemetrySample], bool]:
        """Stream, pivot, materialize and normalize. Returns the samples and whether the cap was hit."""
        stream = RecordStream(source, chunk_size=self.settings.chunk_size, wide=wide,
                              should_cancel=cancelled)
        try:
            pivot = pivot_records(stream, self.settings.max_samples)
        except pd.errors.EmptyDataError as e:
            raise EmptyDataError(EMPTY_FILE_MESSAGE) from e
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise ParseError(f"CSV parsing error: {e}") from e
        finally:
            stream.close()

        if stream.rows_read == 0:
            raise EmptyDataError(EMPTY_FILE_MESSAGE)

        samples = materialize_samples(pivot.builders.values())
        if not samples:
            raise EmptyDataError(NO_GPS_MESSAGE)

        samples = normalize_coordinates(samples, self.settings.meters_per_degree)
        logger.info("Processed %d rows into %d samples%s", stream.rows_read, len(samples),
                    " (sample budget reached)" if pivot.capped else "")
        return samples, pivot.capped
