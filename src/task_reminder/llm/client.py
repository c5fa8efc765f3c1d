# src/task_reminder/llm/client.py

from __future__ import annotations

import logging

import httpx
import openai
from openai import AsyncOpenAI

from ..core.ports import ChatMessage

logger = logging.getLogger(__name__)

COMPOSER_SYSTEM_PROMPT = (
    "You are a helpful assistant that writes short reminder notes.\n"
    "You receive a task with its date, time, description and the weather and local time "
    "for the relevant city or cities.\n"
    "Write one or two friendly sentences the user should read when the reminder fires: "
    "mention anything in the weather worth preparing for.\n"
    "Do not repeat the task details verbatim. Plain text only, no markdown."
)


def _is_auth_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))


def _is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, openai.RateLimitError)


def _is_connection_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.APIConnectionError, openai.APITimeoutError))


def friendly_llm_error_message(err: Exception) -> str:
    if _is_auth_error(err):
        return "LLM authentication failed. Check TASKREM_LLM_API_KEY in .env."
    if _is_rate_limit_error(err):
        return "LLM is rate-limited. Try again later."
    if _is_connection_error(err):
        return "LLM network/timeout error. Try again later."
    msg = str(err).strip() or "LLM error."
    if "LLM API key is not set" in msg:
        return "LLM is not configured (missing API key). Set TASKREM_LLM_API_KEY in .env (see .env.example)."
    return msg


class OpenAICompatComposer:
    """
    Chat-completion note writer for an OpenAI-compatible endpoint (DeepSeek by default).

    - client is created lazily; no secrets are needed until the first call
    - automatic SDK retries are off: a reminder is better sent without a note than late
    - http_client is handed to the SDK as-is (and closed with it by aclose())
    """

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str,
        model: str,
        timeout_seconds: float = 20.0,
        system_prompt: str = COMPOSER_SYSTEM_PROMPT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._model = model
        self._timeout_seconds = timeout_seconds
        self._system_prompt = system_prompt
        self._http_client = http_client
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is not None:
            return self._client

        if not self._api_key or not self._api_key.strip():
            raise RuntimeError("LLM API key is not set. Set TASKREM_LLM_API_KEY in your .env.")

        self._client = AsyncOpenAI(
            base_url=self._base_url,
            api_key=self._api_key,
            timeout=httpx.Timeout(
                connect=5.0,
                read=self._timeout_seconds,
                write=10.0,
                pool=5.0,
            ),
            max_retries=0,
            http_client=self._http_client,
        )
        return self._client

    async def compose(self, context: str) -> str:
        client = self._get_client()
        messages: list[ChatMessage] = [
            {"role": "system", "content": self._system_prompt},
            {"role": "user", "content": context},
        ]
        try:
            resp = await client.chat.completions.create(model=self._model, messages=messages)
        except Exception as e:
            logger.info("LLM: compose failed on model=%s (%s)", self._model, e.__class__.__name__)
            raise RuntimeError(friendly_llm_error_message(e)) from e

        if not resp.choices:
            raise RuntimeError(f"Model returned no choices: {self._model}")
        content = resp.choices[0].message.content or ""
        logger.debug("LLM: composed note model=%s chars=%d", self._model, len(content))
        return content

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
