"""Exceptions raised by the settlement import pipeline."""


class SettlementImportError(Exception):
    """Base class for settlement import failures surfaced to the user."""


class CsvParseError(SettlementImportError):
    """Raised when an upload cannot be read as CSV text or has no header."""


class ColumnMappingError(SettlementImportError):
    """Raised when a required mapped column is missing from the CSV header."""


class SettlementApplyError(SettlementImportError):
    """Raised when an apply is refused before anything is written."""


class SettlementDeleteError(SettlementImportError):
    """Raised when a settlement delete did not remove the header row."""
