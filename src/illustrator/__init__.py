"""Client for generating styled illustrations with the Leonardo.ai generations API."""

from illustrator.client import GenerationClient, ValidationPresenter, user_message
from illustrator.config import GenerationSettings, get_settings
from illustrator.exceptions import FailureKind
from illustrator.models import GenerationOutcome
from illustrator.styles import available_styles, describe_style

__version__ = "1.0.0"

__all__ = [
    "FailureKind",
    "GenerationClient",
    "GenerationOutcome",
    "GenerationSettings",
    "ValidationPresenter",
    "available_styles",
    "describe_style",
    "get_settings",
    "user_message",
]
