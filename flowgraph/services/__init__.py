"""Services available to node functions."""

from .prompt_service import PromptRequest, UserPromptService
from .service_provider import ServiceProvider

__all__ = [
    "PromptRequest",
    "ServiceProvider",
    "UserPromptService",
]
