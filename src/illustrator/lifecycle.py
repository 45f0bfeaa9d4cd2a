"""
Bounded state machine of a single generation call.

    SUBMITTING -> RESOLVED (submission failure)
    SUBMITTING -> POLLING(attempt=0)
    POLLING(n) -> POLLING(n + 1) | RESOLVED(success | empty | failed | timeout)

Every function here is pure: it takes the current state plus what was just
observed and returns the next state. Timers and HTTP live in the client, so
the transitions can be tested without either.
"""

from enum import Enum
from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, Field

from illustrator.exceptions import (
    EmptyResultError,
    GenerationError,
    GenerationTimeoutError,
    RemoteGenerationFailedError,
    SubmissionError,
)
from illustrator.models import STATUS_COMPLETE, STATUS_FAILED, GenerationOutcome


class Phase(str, Enum):
    SUBMITTING = "submitting"
    POLLING = "polling"
    RESOLVED = "resolved"


class InvalidTransition(RuntimeError):
    pass


class LifecycleState(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: Phase = Phase.SUBMITTING
    max_attempts: int = Field(ge=1)
    attempt: int = 0
    generation_id: str | None = None
    outcome: GenerationOutcome | None = None

    @property
    def attempts_remaining(self) -> int:
        return self.max_attempts - self.attempt

    @property
    def is_resolved(self) -> bool:
        return self.phase is Phase.RESOLVED


def start(max_attempts: int) -> LifecycleState:
    return LifecycleState(max_attempts=max_attempts)


def _require(state: LifecycleState, phase: Phase) -> None:
    if state.phase is not phase:
        raise InvalidTransition(
            f"Expected {phase.value} state, got {state.phase.value}"
        )


def _resolve(state: LifecycleState, outcome: GenerationOutcome) -> LifecycleState:
    return state.model_copy(update={"phase": Phase.RESOLVED, "outcome": outcome})


def _fail(state: LifecycleState, error: GenerationError) -> LifecycleState:
    return _resolve(
        state,
        GenerationOutcome.from_error(
            error, generation_id=state.generation_id, attempts=state.attempt
        ),
    )


def after_submission(
    state: LifecycleState,
    generation_id: str | None,
    remote_payload: Any = None,
) -> LifecycleState:
    """A submission response arrived; a missing job id ends the call."""
    _require(state, Phase.SUBMITTING)
    if not generation_id:
        return _fail(
            state,
            SubmissionError(
                "Failed to get generation ID from initial response",
                remote_payload=remote_payload,
            ),
        )
    return state.model_copy(
        update={"phase": Phase.POLLING, "generation_id": generation_id}
    )


def after_submission_error(
    state: LifecycleState, error: GenerationError
) -> LifecycleState:
    _require(state, Phase.SUBMITTING)
    if isinstance(error, SubmissionError):
        return _fail(state, error)
    return _fail(
        state,
        SubmissionError(
            f"Error initiating image generation: {error.detail}",
            remote_payload=getattr(error, "payload", None),
            status_code=getattr(error, "status_code", None),
        ),
    )


def decide(
    status: str | None,
    image_urls: Sequence[str | None],
    attempts_remaining: int,
) -> GenerationOutcome | GenerationError | None:
    """
    Interprets one status observation.

    Returns the image URL outcome on success, the error to resolve with on a
    terminal failure or an exhausted budget, and None to keep polling.
    """
    if status == STATUS_COMPLETE:
        if image_urls and image_urls[0]:
            return GenerationOutcome.success(image_urls[0])
        return EmptyResultError()
    if status == STATUS_FAILED:
        return RemoteGenerationFailedError()
    if attempts_remaining <= 0:
        return GenerationTimeoutError()
    return None


def after_poll(
    state: LifecycleState,
    status: str | None,
    image_urls: Sequence[str | None],
) -> LifecycleState:
    """One poll attempt returned a status."""
    _require(state, Phase.POLLING)
    polled = state.model_copy(update={"attempt": state.attempt + 1})
    decision = decide(status, image_urls, polled.attempts_remaining)

    if decision is None:
        return polled
    if isinstance(decision, GenerationError):
        if isinstance(decision, GenerationTimeoutError):
            decision = _timeout(polled)
        return _fail(polled, decision)
    return _resolve(
        polled,
        decision.model_copy(
            update={"generation_id": polled.generation_id, "attempts": polled.attempt}
        ),
    )


def after_poll_error(state: LifecycleState) -> LifecycleState:
    """
    One poll attempt failed at the transport level.

    The failure is absorbed; on the last attempt the call times out instead
    of reporting the transport error.
    """
    _require(state, Phase.POLLING)
    polled = state.model_copy(update={"attempt": state.attempt + 1})
    if polled.attempts_remaining <= 0:
        return _fail(polled, _timeout(polled))
    return polled


def _timeout(state: LifecycleState) -> GenerationTimeoutError:
    return GenerationTimeoutError(
        f"Generation {state.generation_id} timed out after {state.attempt} attempts"
    )
