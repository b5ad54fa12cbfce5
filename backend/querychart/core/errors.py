"""Error kinds raised by the query pipeline.

Every error is terminal for the request that raised it. ``status_code`` is
the HTTP status the API layer answers with, ``stage`` names the step that
failed when there is one.
"""
from typing import Optional


class PipelineError(Exception):
    status_code = 500
    retryable = False

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage

    def __str__(self) -> str:
        msg = super().__str__()
        return f"{self.stage}: {msg}" if self.stage else msg


class StageError(PipelineError):
    """Model output could not be turned into what the stage needs."""
    retryable = True


class EmptyGenerationError(StageError):
    pass


class InvalidStatementError(StageError):
    pass


class ExtractionError(StageError):
    pass


class DecodeError(StageError):
    pass


class MissingFieldError(StageError):
    pass


class InferenceError(PipelineError):
    """The text-generation service failed or could not be reached."""
    retryable = True


class SafetyRejection(PipelineError):
    status_code = 400


class ExecutionError(PipelineError):
    pass


class DeadlineExceeded(PipelineError):
    status_code = 504


class RequestCancelled(PipelineError):
    status_code = 499
