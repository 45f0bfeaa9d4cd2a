from enum import Enum
from typing import Any, Optional


class FailureKind(str, Enum):
    MISSING_PROMPT = "missing_prompt"
    CONFIGURATION = "configuration"
    SUBMISSION = "submission"
    REMOTE_FAILED = "remote_failed"
    EMPTY_RESULT = "empty_result"
    TIMEOUT = "timeout"


class GenerationError(Exception):
    """Base exception for every failure of a generation call."""

    kind: Optional[FailureKind] = None

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(self.detail)


class ValidationError(GenerationError):
    """Raised when the prompt is empty after trimming."""

    kind = FailureKind.MISSING_PROMPT

    def __init__(self, detail: str = "Prompt must not be empty"):
        super().__init__(detail)


class ConfigurationError(GenerationError):
    """Raised when the API credential is not configured."""

    kind = FailureKind.CONFIGURATION

    def __init__(self, detail: str = "LEONARDO_API_KEY is not set"):
        super().__init__(detail)


class SubmissionError(GenerationError):
    """
    Raised when the generation job could not be created.

    Carries the remote error payload (decoded response body) and the HTTP
    status when the service answered at all.
    """

    kind = FailureKind.SUBMISSION

    def __init__(
        self,
        detail: str = "Failed to submit generation job",
        remote_payload: Any = None,
        status_code: Optional[int] = None,
    ):
        self.remote_payload = remote_payload
        self.status_code = status_code
        super().__init__(detail)


class RemoteGenerationFailedError(GenerationError):
    """Raised when the service reports the job as FAILED."""

    kind = FailureKind.REMOTE_FAILED

    def __init__(self, detail: str = "Generation failed on the remote service"):
        super().__init__(detail)


class EmptyResultError(GenerationError):
    """Raised when the job completed without any generated image."""

    kind = FailureKind.EMPTY_RESULT

    def __init__(self, detail: str = "Generation complete but no images found"):
        super().__init__(detail)


class GenerationTimeoutError(GenerationError):
    """Raised when the poll attempt budget runs out without a terminal status."""

    kind = FailureKind.TIMEOUT

    def __init__(self, detail: str = "Generation timed out"):
        super().__init__(detail)


class TransportError(GenerationError):
    """
    Raised by the transport for network errors, non-2xx responses and
    non-JSON bodies. `status_code` is None when no response arrived.

    Never reported to callers directly: the client turns it into a
    SubmissionError during submission and absorbs it while polling.
    """

    def __init__(
        self, detail: str, status_code: Optional[int] = None, payload: Any = None
    ):
        self.payload = payload
        self.status_code = status_code
        super().__init__(detail)

    def __str__(self):
        return f"TransportError(status_code={self.status_code}, detail='{self.detail}')"


ERRORS_BY_KIND: dict[FailureKind, type[GenerationError]] = {
    FailureKind.MISSING_PROMPT: ValidationError,
    FailureKind.CONFIGURATION: ConfigurationError,
    FailureKind.SUBMISSION: SubmissionError,
    FailureKind.REMOTE_FAILED: RemoteGenerationFailedError,
    FailureKind.EMPTY_RESULT: EmptyResultError,
    FailureKind.TIMEOUT: GenerationTimeoutError,
}
