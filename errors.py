"""Exception hierarchy for the curation pipeline."""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base class for all pipeline errors."""


class ConfigError(PipelineError):
    """Invalid or missing run configuration. Fatal for the run."""


class LLMError(PipelineError):
    """Base class for language-model API failures."""


class LLMAuthError(LLMError):
    """Missing or rejected credentials. Every later call would fail too."""


class LLMTransientError(LLMError):
    """Network, timeout, rate-limit or server error; retryable by the caller."""


class LLMResponseError(LLMError):
    """Empty or unusable completion; a soft failure for one unit of work."""


class MetadataValidationError(PipelineError):
    """Structured metadata response could not be parsed or validated."""


class BatchClassificationError(PipelineError):
    """A classifier batch failed after earlier batches succeeded.

    ``partial`` holds the decisions collected before the failed batch so the
    driver can keep them and retry from ``batch_index``.
    """

    def __init__(self, message: str, *, batch_index: int, partial: object) -> None:
        super().__init__(message)
        self.batch_index = batch_index
        self.partial = partial


class StoreError(PipelineError):
    """Base class for record store failures."""


class RecordNotFoundError(StoreError):
    """No record with the requested identifier exists."""


class InvalidTransitionError(StoreError):
    """Attempt to change an already decided keep/remove classification."""
