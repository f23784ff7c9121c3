"""
Custom exceptions for the Tender Generator application.
"""
from typing import Optional


class ConfigurationError(Exception):
    """Custom exception for configuration-related errors."""
    pass


class DocumentParserError(Exception):
    """Custom exception for errors while reading a source or company document."""
    pass


class EmptyInputError(ValueError):
    """Raised when text to be chunked is empty or whitespace only."""
    pass


class ParseError(Exception):
    """Structured output from the generation service could not be parsed.

    Never retried: the same prompt is unlikely to fix a formatting issue, so
    callers go straight to their fallback path.
    """
    def __init__(self, message: str, raw_output: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.raw_output = raw_output


class GenerationServiceError(Exception):
    """Custom exception for errors during LLM content generation."""
    def __init__(self, message: str, agent_name: str = "Unknown Agent",
                 retryable: bool = True, status_code: Optional[int] = None):
        super().__init__(message)
        self.agent_name = agent_name
        self.message = message
        self.retryable = retryable
        self.status_code = status_code

    def __str__(self):
        return f"Agent '{self.agent_name}': {self.message}"


class VectorServiceError(Exception):
    """Embedding or vector search call failed."""
    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.message = message
        self.retryable = retryable


class NoSourceDocumentsError(Exception):
    """The document store holds no source documents; a run cannot start."""
    def __init__(self, message: str = "No source documents found. Please upload at least one tender document."):
        super().__init__(message)
        self.message = message


class ConcurrentRunError(RuntimeError):
    """A generation run is already in progress on this orchestrator."""
    def __init__(self, message: str = "A tender generation run is already in progress."):
        super().__init__(message)
        self.message = message


class TenderGenerationError(Exception):
    """A general wrapper for unexpected errors inside the generation flow."""
    def __init__(self, message: str, stage: str = "Unknown Stage", original_exception: Exception = None):
        super().__init__(message)
        self.stage = stage
        self.original_exception = original_exception
        self.message = message

    def __str__(self):
        if self.original_exception:
            return f"Tender Generation Error at stage '{self.stage}': {self.message} (Caused by: {type(self.original_exception).__name__}: {self.original_exception})"
        return f"Tender Generation Error at stage '{self.stage}': {self.message}"
