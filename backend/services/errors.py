from typing import Optional


class ConversionPipelineError(Exception):
    """Base class for errors raised by the document conversion pipeline."""


class ExtractionError(ConversionPipelineError):
    """The uploaded file could not be read as a document of the supported format."""


class StorageError(ConversionPipelineError):
    """A storage provider failed to persist or delete a file."""


class ConversionError(ConversionPipelineError):
    """The model response could not be turned into a node tree within the attempt budget."""

    def __init__(self, message: str, last_error: Optional[str] = None, attempts: int = 0):
        super().__init__(message)
        self.last_error = last_error
        self.attempts = attempts


class ContentValidationError(ConversionPipelineError):
    def __init__(self, message: str, details: Optional[list] = None):
        super().__init__(message)
        self.details = details or []


class EmptyContentError(ExtractionError):
    """The document was readable but produced no text."""
