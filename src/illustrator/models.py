"""
Pydantic models for the Leonardo.ai generations API and for the value the
client hands back to its caller.
"""

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field

from illustrator.exceptions import (
    ERRORS_BY_KIND,
    FailureKind,
    GenerationError,
    SubmissionError,
)

STATUS_COMPLETE = "COMPLETE"
STATUS_FAILED = "FAILED"


class GenerationRequest(BaseModel):
    """What the user asked for: a trimmed prompt and a style tag."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    style: str


class GenerationPayload(BaseModel):
    """Body of POST /generations."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    negative_prompt: str
    model_id: str = Field(alias="modelId")
    width: int
    height: int
    num_images: int = Field(default=1, ge=1)
    guidance_scale: float


class SdGenerationJob(BaseModel):
    generation_id: str | None = Field(default=None, alias="generationId")


class SubmissionResponse(BaseModel):
    """Response of POST /generations."""

    sd_generation_job: SdGenerationJob | None = Field(
        default=None, alias="sdGenerationJob"
    )

    @property
    def generation_id(self) -> str | None:
        if self.sd_generation_job is None:
            return None
        return self.sd_generation_job.generation_id or None


class GeneratedImage(BaseModel):
    url: str | None = None


class GenerationDetails(BaseModel):
    """
    The `generations_by_pk` object of GET /generations/{id}.

    Only the fields that drive polling are modelled; the rest of the job
    metadata is ignored.
    """

    status: str | None = None
    generated_images: List[GeneratedImage] | None = None

    @property
    def image_urls(self) -> list[str | None]:
        return [image.url for image in self.generated_images or []]


class GenerationStatusResponse(BaseModel):
    """Response of GET /generations/{id}."""

    generations_by_pk: GenerationDetails | None = None

    @property
    def status(self) -> str | None:
        return self.generations_by_pk.status if self.generations_by_pk else None

    @property
    def image_urls(self) -> list[str | None]:
        return self.generations_by_pk.image_urls if self.generations_by_pk else []


class GenerationOutcome(BaseModel):
    """
    The single value `GenerationClient.generate_image` resolves to.

    Exactly one of `image_url` and `failure` is set.
    """

    model_config = ConfigDict(frozen=True)

    image_url: str | None = None
    failure: FailureKind | None = None
    detail: str | None = None
    remote_payload: Any = None
    generation_id: str | None = None
    attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return self.failure is None and bool(self.image_url)

    @classmethod
    def success(
        cls, image_url: str, generation_id: str | None = None, attempts: int = 0
    ) -> "GenerationOutcome":
        return cls(image_url=image_url, generation_id=generation_id, attempts=attempts)

    @classmethod
    def from_error(
        cls,
        error: GenerationError,
        generation_id: str | None = None,
        attempts: int = 0,
    ) -> "GenerationOutcome":
        return cls(
            failure=error.kind,
            detail=error.detail,
            remote_payload=getattr(error, "remote_payload", None),
            generation_id=generation_id,
            attempts=attempts,
        )

    def raise_for_failure(self) -> None:
        """Re-raises the typed exception matching a failed outcome."""
        if self.failure is None:
            return
        error_cls = ERRORS_BY_KIND[self.failure]
        if error_cls is SubmissionError:
            raise SubmissionError(
                self.detail or "Failed to submit generation job",
                remote_payload=self.remote_payload,
            )
        raise error_cls(self.detail) if self.detail else error_cls()
