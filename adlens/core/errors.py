"""ADLENS — Error Taxonomy.

Parse-level problems never surface as exceptions; they degrade to defaults
inside the parsers. Everything below is a terminal failure for the operation
that raised it.
"""


class AdlensError(Exception):
    """Base class for operation-level failures."""


class ConfigurationError(AdlensError):
    """An endpoint or credential is unset or still a placeholder."""


class StoreError(AdlensError):
    """The spreadsheet store was unreachable or answered with an error."""

    def __init__(self, message: str, status_code: int = 0):
        self.status_code = status_code
        super().__init__(message)


class WorkbookDecodeError(AdlensError):
    """An uploaded workbook could not be decoded."""
