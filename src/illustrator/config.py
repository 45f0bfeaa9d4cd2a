from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STYLE_DESCRIPTORS: dict[str, str] = {
    "Cozy": "ghibli studio cozy soft comfortable illustration painted",
    "Comic": "comic style art illustration",
    "Animation": "anime style detailed animation movie still illustration",
}

DEFAULT_NEGATIVE_PROMPT = (
    "multiple cats, multiple dogs, two cats, two dogs, text, words, signature, "
    "watermark, blurry, low quality, deformed"
)


class GenerationSettings(BaseSettings):
    """
    Configuration of the generation client loaded from environment variables.
    Everything the client needs is passed in through one instance, so tests
    can shorten the poll interval and attempt budget.
    """

    service_name: str = Field(default="illustrator", alias="SERVICE_NAME")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    json_logs: bool = Field(default=False, alias="JSON_LOGS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    api_key: SecretStr | None = Field(default=None, alias="LEONARDO_API_KEY")
    api_url: str = Field(
        default="https://cloud.leonardo.ai/api/rest/v1/generations",
        alias="LEONARDO_API_URL",
    )
    http_timeout: float = Field(default=30.0, gt=0, alias="HTTP_TIMEOUT_SECONDS")

    model_id: str = Field(
        default="aa77f04e-3eec-4034-9c07-d0f619684628", alias="LEONARDO_MODEL_ID"
    )
    width: int = Field(default=512, ge=1, alias="IMAGE_WIDTH")
    height: int = Field(default=512, ge=1, alias="IMAGE_HEIGHT")
    num_images: int = Field(default=1, ge=1, alias="NUM_IMAGES")
    guidance_scale: float = Field(default=7, alias="GUIDANCE_SCALE")
    negative_prompt: str = Field(
        default=DEFAULT_NEGATIVE_PROMPT, alias="NEGATIVE_PROMPT"
    )
    style_descriptors: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_STYLE_DESCRIPTORS),
        alias="STYLE_DESCRIPTORS",
    )

    max_attempts: int = Field(default=15, ge=1, alias="POLL_MAX_ATTEMPTS")
    poll_interval: float = Field(default=2.0, ge=0, alias="POLL_INTERVAL_SECONDS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def has_api_key(self) -> bool:
        return self.api_key is not None and bool(
            self.api_key.get_secret_value().strip()
        )


@lru_cache
def get_settings() -> GenerationSettings:
    return GenerationSettings()
