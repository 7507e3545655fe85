"""
Exceptions raised by the gradebook engine.

Data-quality problems (bad scores, unknown subjects in a batch) are never
raised; they are collected on result objects. These exceptions cover the
cases where an operation cannot produce a meaningful result at all.
"""


class GradebookError(Exception):
    """Base class for gradebook errors."""


class InvalidPeriod(GradebookError, ValueError):
    """Raised for a month or year that cannot be resolved."""


class ImportFormatError(GradebookError):
    """
    Raised when a spreadsheet's header row cannot be mapped.

    ``errors`` lists every unrecognized or missing column so the caller can
    show them all at once.
    """

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__('; '.join(self.errors))
