"""
Errors raised while loading a telemetry file.

Every subclass carries one human-readable message meant to be shown as-is.
"""


class TelemetryLoadError(Exception):
    """Base class for a failed ingestion attempt"""


class UserInputError(TelemetryLoadError):
    """Wrong file name or a file that is not a telemetry export"""


class EmptyDataError(TelemetryLoadError):
    """No rows, or no rows carrying usable GPS"""


class ParseError(TelemetryLoadError):
    """The CSV reader could not parse the file"""


class LoadCancelled(TelemetryLoadError):
    """The load was superseded by a newer request"""
