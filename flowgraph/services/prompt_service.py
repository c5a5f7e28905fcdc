"""User prompt service: lets a running flow wait for human input."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Callable

from ..core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class PromptRequest:
    """A prompt waiting for an answer."""

    prompt_id: str
    message: str
    default_value: str


# Callback type for showing prompts to a user
PromptCallback = Callable[[PromptRequest], None]


class UserPromptService:
    """
    Pairs prompt requests with responses submitted from elsewhere.

    ``prompt_user`` suspends until ``submit_response`` or ``cancel_prompt``
    is called with its prompt id. Both must be called from the event loop
    running the flow.
    """

    def __init__(self, on_prompt: PromptCallback | None = None) -> None:
        self.on_prompt = on_prompt
        self._pending: dict[str, asyncio.Future[str | None]] = {}
        self._requests: dict[str, PromptRequest] = {}

    @property
    def pending_prompts(self) -> list[PromptRequest]:
        return list(self._requests.values())

    async def prompt_user(
        self,
        message: str,
        default_value: str | None = None,
        timeout: float | None = None,
    ) -> str | None:
        """
        Ask for input and wait for the response.

        Returns None when the prompt is cancelled.

        Raises:
            asyncio.TimeoutError: If a timeout is set and no answer arrives
        """
        request = PromptRequest(
            prompt_id=str(uuid.uuid4()),
            message=message,
            default_value=default_value or "",
        )
        future: asyncio.Future[str | None] = asyncio.get_running_loop().create_future()
        self._pending[request.prompt_id] = future
        self._requests[request.prompt_id] = request

        try:
            if self.on_prompt is not None:
                try:
                    self.on_prompt(request)
                except Exception:
                    logger.exception("Error in prompt callback")

            wait = timeout if timeout is not None else settings.max_prompt_wait_seconds
            if wait:
                return await asyncio.wait_for(future, wait)
            return await future
        finally:
            self._pending.pop(request.prompt_id, None)
            self._requests.pop(request.prompt_id, None)

    def submit_response(self, prompt_id: str, value: str | None) -> bool:
        """Answer a prompt. Returns False when the prompt is unknown or already answered."""
        future = self._pending.get(prompt_id)
        if future is None or future.done():
            return False
        future.set_result(value)
        return True

    def cancel_prompt(self, prompt_id: str) -> bool:
        """Cancel a prompt; its caller receives None."""
        return self.submit_response(prompt_id, None)
