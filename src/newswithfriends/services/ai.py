"""Single-turn text completion against the OpenAI chat API."""

from __future__ import annotations

import logging
import os

from openai import OpenAI, OpenAIError

from newswithfriends.config import ScraperSettings

logger = logging.getLogger(__name__)

__all__ = ["AiError", "AiTextExtractor"]

SYSTEM_PROMPT = (
    "You extract structured data from news web pages. "
    "Answer with exactly the JSON requested and nothing else."
)


class AiError(Exception):
    """Raised when the language model call fails upstream."""


class AiTextExtractor:
    """Prompt in, text out. Holds no conversation state and never retries."""

    def __init__(
        self,
        client: OpenAI | None = None,
        settings: ScraperSettings | None = None,
        *,
        model: str | None = None,
    ) -> None:
        self._settings = settings or ScraperSettings()
        self._client = client
        self.model = model or self._settings.openai_model

    def _get_client(self) -> OpenAI:
        if self._client is None:
            try:
                api_key = os.environ.get("OPENAI_API_KEY")
                self._client = OpenAI(api_key=api_key) if api_key else OpenAI()
            except OpenAIError as exc:
                raise AiError(
                    "Failed to initialise the OpenAI client. Ensure OPENAI_API_KEY is configured either in the "
                    "environment or in a .env file."
                ) from exc
        return self._client

    def complete(self, prompt: str) -> str:
        """Send ``prompt`` as one user message and return the reply text."""

        logger.debug("Sending %d prompt characters to %s", len(prompt), self.model)
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0,
            )
        except OpenAIError as exc:
            logger.error("Language model call failed: %s", exc)
            raise AiError(str(exc)) from exc

        content = response.choices[0].message.content or ""
        logger.debug("Received %d characters from %s", len(content), self.model)
        return content.strip()
