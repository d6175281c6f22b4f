# errors.py
from typing import Any, Optional


class PipelineError(Exception):
    """Base class for everything the pipeline raises on purpose."""


class ConfigurationError(PipelineError):
    pass


class FetchError(PipelineError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(PipelineError):
    pass


class WriteError(PipelineError):
    """A single cell that could not be written back."""

    def __init__(self, cell: str, value: Any, cause: Exception):
        super().__init__(f"could not write {value!r} to {cell}: {cause}")
        self.cell = cell
        self.value = value
        self.cause = cause
