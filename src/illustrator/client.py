"""
Generation client: the one entry point the UI layer calls.

Processing flow:
    1. Check the API credential and the prompt (no network on failure).
    2. Submit a job with the decorated prompt and fixed parameters.
    3. Sleep, then poll the job by id until a terminal status or the attempt
       budget runs out.
    4. Hand back a GenerationOutcome; nothing raises past `generate_image`.
"""

import asyncio
from typing import Awaitable, Callable, Protocol

import pydantic
import structlog
from opentelemetry import trace

from illustrator import lifecycle
from illustrator.config import GenerationSettings, get_settings
from illustrator.exceptions import (
    ConfigurationError,
    FailureKind,
    GenerationError,
    TransportError,
    ValidationError,
)
from illustrator.models import (
    GenerationOutcome,
    GenerationPayload,
    GenerationRequest,
    GenerationStatusResponse,
    SubmissionResponse,
)
from illustrator.styles import decorate_prompt, describe_style
from illustrator.transport import GenerationTransport, HttpxTransport

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

Sleep = Callable[[float], Awaitable[None]]

MISSING_PROMPT_MESSAGE = ("Missing Prompt", "Please enter a description for the image.")
GENERATION_FAILED_MESSAGE = (
    "Generation Failed",
    "Could not generate the image. Please try again.",
)


class ValidationPresenter(Protocol):
    """Lets the caller show its own dialog for a preventable input error."""

    def present_validation_error(self, kind: FailureKind) -> None: ...


def user_message(outcome: GenerationOutcome) -> tuple[str, str] | None:
    """Title and message a caller should show for a failed outcome."""
    if outcome.failure is None:
        return None
    if outcome.failure is FailureKind.MISSING_PROMPT:
        return MISSING_PROMPT_MESSAGE
    return GENERATION_FAILED_MESSAGE


class GenerationClient:
    """
    Submits a generation job and polls it to a single outcome.

    Calls are independent: each owns its job id and its poll loop, and
    identical prompts are not deduplicated.
    """

    def __init__(
        self,
        settings: GenerationSettings | None = None,
        transport: GenerationTransport | None = None,
        presenter: ValidationPresenter | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings or get_settings()
        self.presenter = presenter
        self._sleep = sleep
        self._transport = transport
        self._owns_transport = transport is None
        logger.debug(
            "GenerationClient initialized",
            max_attempts=self.settings.max_attempts,
            poll_interval=self.settings.poll_interval,
        )

    async def __aenter__(self) -> "GenerationClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_transport and self._transport is not None:
            await self._transport.aclose()
            self._transport = None

    def _get_transport(self) -> GenerationTransport:
        if self._transport is None:
            self._transport = HttpxTransport(
                self.settings.api_url,
                self.settings.api_key.get_secret_value(),
                timeout=self.settings.http_timeout,
            )
        return self._transport

    def build_request(self, prompt: str, style: str) -> GenerationRequest:
        if not self.settings.has_api_key:
            raise ConfigurationError()

        trimmed = (prompt or "").strip()
        if not trimmed:
            raise ValidationError()
        return GenerationRequest(prompt=trimmed, style=style)

    def build_payload(self, request: GenerationRequest) -> GenerationPayload:
        descriptor = describe_style(request.style, self.settings.style_descriptors)
        return GenerationPayload(
            prompt=decorate_prompt(request.prompt, descriptor),
            negative_prompt=self.settings.negative_prompt,
            model_id=self.settings.model_id,
            width=self.settings.width,
            height=self.settings.height,
            num_images=self.settings.num_images,
            guidance_scale=self.settings.guidance_scale,
        )

    async def generate_image(self, prompt: str, style: str) -> GenerationOutcome:
        """Runs one submit/poll cycle and resolves it to a GenerationOutcome."""
        log = logger.bind(style=style)
        try:
            request = self.build_request(prompt, style)
        except ConfigurationError as e:
            log.error("Generation client is not configured", error=e.detail)
            return GenerationOutcome.from_error(e)
        except ValidationError as e:
            log.info("Rejected empty prompt")
            if self.presenter is not None:
                self.presenter.present_validation_error(FailureKind.MISSING_PROMPT)
            return GenerationOutcome.from_error(e)

        with tracer.start_as_current_span(
            "generate_image", attributes={"generation.style": style}
        ) as span:
            state = await self._submit(request, log)
            if state.generation_id:
                span.set_attribute("generation.id", state.generation_id)
                log = log.bind(generation_id=state.generation_id)
                log.info("Generation initiated")

            while not state.is_resolved:
                state = await self._poll_once(state, log)

            outcome = state.outcome
            span.set_attribute("poll.attempts", outcome.attempts)
            if outcome.succeeded:
                log.info(
                    "Generation complete",
                    image_url=outcome.image_url,
                    attempts=outcome.attempts,
                )
            else:
                span.set_attribute("error", True)
                log.error(
                    "Generation did not produce an image",
                    failure=outcome.failure.value,
                    detail=outcome.detail,
                    attempts=outcome.attempts,
                    remote_payload=outcome.remote_payload,
                )
            return outcome

    async def generate_image_url(self, prompt: str, style: str) -> str | None:
        """Same as `generate_image`, collapsed to the image URL or None."""
        outcome = await self.generate_image(prompt, style)
        return outcome.image_url if outcome.succeeded else None

    async def _submit(
        self, request: GenerationRequest, log
    ) -> lifecycle.LifecycleState:
        state = lifecycle.start(self.settings.max_attempts)
        payload = self.build_payload(request)
        log.info("Submitting generation job", model_id=payload.model_id)
        try:
            data = await self._get_transport().submit(payload)
        except GenerationError as e:
            return lifecycle.after_submission_error(state, e)
        except Exception as e:
            log.exception("Unexpected error while submitting generation job")
            return lifecycle.after_submission_error(
                state, GenerationError(f"{e.__class__.__name__}: {e}")
            )

        try:
            generation_id = SubmissionResponse.model_validate(data).generation_id
        except pydantic.ValidationError:
            generation_id = None
        return lifecycle.after_submission(state, generation_id, remote_payload=data)

    async def _poll_once(
        self, state: lifecycle.LifecycleState, log
    ) -> lifecycle.LifecycleState:
        await self._sleep(self.settings.poll_interval)
        attempt = state.attempt + 1
        log.debug("Polling generation", attempt=attempt)

        try:
            data = await self._get_transport().fetch(state.generation_id)
            result = GenerationStatusResponse.model_validate(data)
        except TransportError as e:
            log.warning(
                "Polling error", attempt=attempt, error=e.detail, payload=e.payload
            )
            return lifecycle.after_poll_error(state)
        except pydantic.ValidationError as e:
            log.warning(
                "Polling returned an unexpected body",
                attempt=attempt,
                error=str(e),
            )
            return lifecycle.after_poll_error(state)
        except Exception:
            log.exception("Unexpected polling error", attempt=attempt)
            return lifecycle.after_poll_error(state)

        state = lifecycle.after_poll(state, result.status, result.image_urls)
        if not state.is_resolved:
            log.debug("Generation status", attempt=attempt, status=result.status)
        return state
