import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Tuple

import httpx

from app.settings import settings
from domain.errors import GatewayExhaustedError, GatewayResponseError

logger = logging.getLogger(__name__)

PROVIDERS = ("ollama", "openai", "openrouter")


class LLMClient:
    """Text-generation gateway with linear retry backoff.

    An attempt fails on a transport error (timeouts included) or a non-2xx
    status. After failed attempt ``n`` the client sleeps ``n * backoff_seconds``
    unless it was the last one. The text of a successful response is returned
    verbatim.
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.provider = (provider or settings.LLM_PROVIDER).lower()
        if self.provider not in PROVIDERS:
            raise ValueError(f"Unknown LLM provider: {self.provider}")
        if self.provider == "openai" and not settings.OPENAI_API_KEY:
            raise ValueError("LLM_PROVIDER=openai requires OPENAI_API_KEY")
        if self.provider == "openrouter" and not settings.OPENROUTER_API_KEY:
            raise ValueError("LLM_PROVIDER=openrouter requires OPENROUTER_API_KEY")
        self.timeout = timeout if timeout is not None else settings.LLM_TIMEOUT_SECONDS
        self.max_attempts = max_attempts or settings.LLM_MAX_ATTEMPTS
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else settings.LLM_BACKOFF_SECONDS)
        self._transport = transport
        self._sleep = sleep

    def _build_request(self, prompt: str, temperature: float) -> Tuple[str, Dict[str, str], Dict]:
        if self.provider == "ollama":
            url = f"{settings.OLLAMA_URL.rstrip('/')}/api/generate"
            payload = {
                "model": settings.OLLAMA_MODEL,
                "prompt": prompt,
                "stream": False,
                "options": {"temperature": temperature},
            }
            return url, {}, payload

        messages = [{"role": "user", "content": prompt}]
        if self.provider == "openai":
            url = "https://api.openai.com/v1/chat/completions"
            headers = {"Authorization": f"Bearer {settings.OPENAI_API_KEY}"}
            model = settings.OPENAI_MODEL
        else:
            url = "https://openrouter.ai/api/v1/chat/completions"
            headers = {
                "Authorization": f"Bearer {settings.OPENROUTER_API_KEY}",
                "HTTP-Referer": "http://localhost",
                "X-Title": settings.APP_NAME,
            }
            model = settings.OPENROUTER_MODEL
        payload = {"model": model, "messages": messages, "temperature": temperature}
        return url, headers, payload

    def _extract_text(self, response: httpx.Response) -> str:
        try:
            data = response.json()
            if self.provider == "ollama":
                text = data["response"]
            else:
                text = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise GatewayResponseError(
                f"failed to decode {self.provider} response: {exc}") from exc
        if not isinstance(text, str):
            raise GatewayResponseError(
                f"{self.provider} response text is {type(text).__name__}, not a string")
        return text

    async def generate(self, prompt: str, temperature: float) -> str:
        url, headers, payload = self._build_request(prompt, temperature)
        last_error: Exception | str = "no attempt made"

        for attempt in range(1, self.max_attempts + 1):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.post(url, headers=headers, json=payload)
            except httpx.RequestError as exc:
                last_error = f"request failed (attempt {attempt}/{self.max_attempts}): {exc!r}"
            else:
                if response.is_success:
                    return self._extract_text(response)
                last_error = (
                    f"{self.provider} returned status {response.status_code}: "
                    f"{response.text[:500]}")

            logger.warning("LLM attempt %d/%d failed: %s", attempt, self.max_attempts, last_error)
            if attempt < self.max_attempts:
                await self._sleep(attempt * self.backoff_seconds)

        raise GatewayExhaustedError(self.max_attempts, last_error)
