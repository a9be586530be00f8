# chatrelay/services/gemini_client.py
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """The text-completion service failed, timed out or returned no text."""


class GeminiClient:
    """
    Thin async client for the Gemini generateContent endpoint.

    One httpx.AsyncClient is shared by all calls; the timeout applies to
    the whole request. Every failure mode is reported as CompletionError.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1",
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def complete(self, prompt: str) -> str:
        """
        Send a prompt and return the first candidate's text.

        Raises:
            CompletionError: missing API key, transport error or timeout,
                non-200 status, or a body without candidate text
        """
        if not self.api_key:
            raise CompletionError("GEMINI_API_KEY is not configured")

        body = {"contents": [{"parts": [{"text": prompt}]}]}

        try:
            response = await self._client.post(
                self.endpoint,
                params={"key": self.api_key},
                json=body,
            )
        except httpx.TimeoutException as e:
            raise CompletionError(f"gemini api timed out: {e}") from e
        except httpx.HTTPError as e:
            raise CompletionError(f"failed to send request to gemini api: {e}") from e

        if response.status_code != 200:
            raise CompletionError(
                f"gemini api returned non-200 status: {response.status_code}, body: {response.text}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise CompletionError(f"failed to decode gemini response: {e}") from e

        text = self._extract_text(data)
        if text is None:
            raise CompletionError("no content found in gemini response")
        return text

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> Optional[str]:
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None
        return text if isinstance(text, str) else None

    async def close(self):
        await self._client.aclose()
        logger.info("Gemini HTTP client closed")
