"""OpenAI text-completion client.

The pipeline treats the LLM as an opaque function: prompt string in, text
out. Anything that goes wrong on the way is reported as LLMInvocationError.
"""

import logging
from typing import Any, Optional

from openai import OpenAI, OpenAIError

from . import config
from .errors import LLMInvocationError

__all__ = ["OpenAIClient"]

logger = logging.getLogger(__name__)


class OpenAIClient:
    """Thin wrapper over the OpenAI Responses API."""

    def __init__(self, model: str = config.LLM_MODEL, client: Optional[Any] = None):
        self.model = model
        self._client = client

    @property
    def client(self) -> Any:
        """OpenAI client (lazy initialization, reads OPENAI_API_KEY)."""
        if self._client is None:
            self._client = OpenAI()
        return self._client

    def invoke(self, prompt: str) -> str:
        """Send ``prompt`` and return the first text output.

        Raises:
            LLMInvocationError: On API/transport errors or an empty answer.
        """
        input_payload = [{"role": "user", "content": [{"type": "input_text", "text": prompt}]}]
        try:
            resp = self.client.responses.create(model=self.model, input=input_payload)
        except OpenAIError as e:
            raise LLMInvocationError(f"{type(e).__name__}: {e}") from e

        for item in resp.output:
            content = getattr(item, "content", None)
            if content:
                text = getattr(content[0], "text", None)
                if text:
                    return text

        raise LLMInvocationError(f"Empty response from {self.model}")
