"""LLM chat-completions client with retry logic using httpx.

Talks to an OpenAI-compatible API. Every failure surfaces as an
LLMServiceError; raw httpx or JSON exceptions never escape this module.
"""

import asyncio
import logging
from typing import Any

import httpx

from zenith.core.config import constants, settings
from zenith.core.errors import LLMServiceError, classify_llm_exception
from zenith.core.logging import span
from zenith.services.persistence_store import PersistenceStore


logger = logging.getLogger(__name__)


# HTTP status code constants for error handling
HTTP_OK = 200
HTTP_CLIENT_ERROR_START = 400
HTTP_CLIENT_ERROR_END = 500


class LLMClient:
    """Chat-completions collaborator used by the task generation service.

    The API key is read from the key-value store on every request so a key
    set at runtime takes effect immediately; Settings.llm_api_key is the
    fallback.
    """

    def __init__(
        self,
        persistence: PersistenceStore | None = None,
        *,
        base_url: str | None = None,
        model_id: str | None = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ) -> None:
        self.persistence = persistence
        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self.model_id = model_id or settings.llm_model_id
        self.max_retries = max(max_retries, 1)
        self.retry_delay = retry_delay
        self.is_connected = False
        self.last_error: LLMServiceError | None = None

    async def _api_key(self) -> str | None:
        stored = await self.persistence.get_api_key() if self.persistence else None
        return stored or settings.llm_api_key

    async def has_valid_api_key(self) -> bool:
        return bool(await self._api_key())

    async def set_api_key(self, api_key: str) -> bool:
        """Store a new API key and probe the connection with it."""
        if self.persistence is None:
            msg = "Cannot store an API key without a persistence store"
            raise RuntimeError(msg)
        await self.persistence.set_api_key(api_key)
        return await self.check_connection()

    def _url(self, endpoint: str) -> str:
        url = f"{self.base_url}{endpoint}"
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as e:
            raise LLMServiceError.invalid_url() from e
        if parsed.scheme not in {"http", "https"} or not parsed.host:
            raise LLMServiceError.invalid_url()
        return url

    async def _headers(self) -> dict[str, str]:
        api_key = await self._api_key()
        if not api_key:
            raise LLMServiceError.no_api_key()
        return {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}

    async def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        payload: dict[str, Any] | None,
    ) -> httpx.Response:
        async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
            if method == "POST":
                return await client.post(url, json=payload, headers=headers)
            return await client.get(url, headers=headers)

    async def _request(self, method: str, endpoint: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send a request, retrying connection failures and 5xx responses.

        Raises:
            LLMServiceError: On any failure, after retries where applicable
        """
        headers = await self._headers()
        url = self._url(endpoint)
        last_error: LLMServiceError | None = None

        for attempt in range(self.max_retries):
            try:
                response = await self._send(method, url, headers, payload)
            except (httpx.UnsupportedProtocol, httpx.InvalidURL) as e:
                raise classify_llm_exception(e) from e
            except httpx.TransportError as e:
                last_error = classify_llm_exception(e)
                logger.warning(
                    "llm_request_failed",
                    extra={"endpoint": endpoint, "attempt": attempt + 1, "error": last_error.description},
                )
            except httpx.HTTPError as e:
                raise classify_llm_exception(e) from e
            else:
                if response.is_success:
                    return self._decode(response)

                last_error = LLMServiceError.server_error(response.status_code)
                logger.warning(
                    "llm_request_rejected",
                    extra={"endpoint": endpoint, "attempt": attempt + 1, "status_code": response.status_code},
                )
                if HTTP_CLIENT_ERROR_START <= response.status_code < HTTP_CLIENT_ERROR_END:
                    raise last_error

            if attempt < self.max_retries - 1:
                await asyncio.sleep(self.retry_delay * (2**attempt))

        if last_error is None:
            raise LLMServiceError.unknown("No request attempts were made")
        raise last_error

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise LLMServiceError.decoding_failed() from e
        if not isinstance(data, dict):
            raise LLMServiceError.invalid_response()
        return data

    async def generate_completion(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Request a chat completion and return its text.

        Args:
            system_prompt: Instructions for the assistant role
            user_prompt: The user message
            max_tokens: Completion token limit, defaults to Settings.llm_max_tokens
            temperature: Sampling temperature, defaults to Settings.llm_temperature

        Returns:
            The completion text, stripped of surrounding whitespace

        Raises:
            LLMServiceError: Typed failure for any network, HTTP, or decoding problem
        """
        payload = {
            "model": self.model_id,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens or settings.llm_max_tokens,
            "temperature": settings.llm_temperature if temperature is None else temperature,
        }

        with span("llm_client.generate_completion"):
            try:
                data = await self._request("POST", "/chat/completions", payload)
                content = data["choices"][0]["message"]["content"]
            except LLMServiceError as e:
                self.last_error = e
                logger.error("llm_completion_failed", extra={"error": e.description})
                raise
            except (KeyError, IndexError, TypeError) as e:
                self.last_error = classify_llm_exception(e)
                logger.error("llm_completion_malformed", extra={"error": str(e)})
                raise self.last_error from e

            if not isinstance(content, str):
                self.last_error = LLMServiceError.decoding_failed()
                raise self.last_error

            self.last_error = None
            logger.info("llm_completion_received", extra={"length": len(content)})
            return content.strip()

    async def check_connection(self) -> bool:
        """Probe the models endpoint. Never raises."""
        with span("llm_client.check_connection"):
            if not await self.has_valid_api_key():
                self.is_connected = False
                return False

            try:
                headers = await self._headers()
                response = await self._send("GET", self._url("/models"), headers, None)
            except LLMServiceError as e:
                self.last_error = e
                self.is_connected = False
            except httpx.HTTPError as e:
                self.last_error = classify_llm_exception(e)
                self.is_connected = False
            else:
                self.is_connected = response.status_code == HTTP_OK
                if not self.is_connected:
                    self.last_error = LLMServiceError.server_error(response.status_code)

            if self.is_connected:
                logger.info("LLM API connection successful")
            else:
                logger.warning(
                    "LLM API connection failed",
                    extra={"error": self.last_error.description if self.last_error else None},
                )
            return self.is_connected
