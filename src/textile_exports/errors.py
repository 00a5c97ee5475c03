"""Error taxonomy — fatal errors abort a run, warnings never do."""

from __future__ import annotations


class TextileExportError(Exception):
    """Base class for fatal pipeline errors."""


class EmptyInputError(TextileExportError, ValueError):
    """No input files were found, or there was nothing to merge."""


class SchemaMismatchError(TextileExportError, ValueError):
    """Input tables do not share the expected columns."""


class NumericCoercionWarning(UserWarning):
    """A cell could not be parsed as a number and became missing."""


class DivisionAnomaly(RuntimeWarning):
    """A per-tonne value was computed against a zero volume."""
