# app/logic/llm_client.py
from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

from openai import (
    APIConnectionError,
    APITimeoutError,
    AsyncOpenAI,
    InternalServerError,
    OpenAIError,
    RateLimitError,
)

logger = logging.getLogger("employee_search.llm")

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_GROQ_MODEL = "llama3-70b-8192"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"

# worth another attempt; auth, permission and bad-request errors are not
RETRYABLE_ERRORS = (APIConnectionError, APITimeoutError, RateLimitError, InternalServerError)


class FilterModelError(RuntimeError):
    """The language model request itself failed (network, auth, quota)."""


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, "") or default)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, "") or default)
    except ValueError:
        return default


class FilterModel:
    """
    Thin async wrapper over an OpenAI-compatible chat endpoint.

    Env:
      LLM_API_KEY / OPENAI_API_KEY / GROQ_API_KEY -> first one set wins
      LLM_BASE_URL   -> optional; defaults to Groq when only GROQ_API_KEY is set
      LLM_MODEL      -> optional; llama3-70b-8192 on Groq, gpt-4o-mini otherwise
      LLM_MAX_RETRIES, LLM_RETRY_BACKOFF
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        max_retries: int = 2,
        retry_backoff: float = 0.8,
    ):
        self.client = client
        self.model = model
        self.max_retries = max(0, max_retries)
        self.retry_backoff = retry_backoff

    @classmethod
    def from_env(cls) -> "FilterModel":
        groq_key = os.getenv("GROQ_API_KEY", "")
        api_key = os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY") or groq_key
        if not api_key:
            raise RuntimeError("LLM_API_KEY (or OPENAI_API_KEY / GROQ_API_KEY) is not set")

        use_groq = bool(groq_key) and api_key == groq_key
        base_url: Optional[str] = os.getenv("LLM_BASE_URL") or (GROQ_BASE_URL if use_groq else None)
        model = os.getenv("LLM_MODEL") or (DEFAULT_GROQ_MODEL if use_groq else DEFAULT_OPENAI_MODEL)

        # retries are handled here, not inside the SDK
        client = AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)
        return cls(
            client,
            model,
            max_retries=_env_int("LLM_MAX_RETRIES", 2),
            retry_backoff=_env_float("LLM_RETRY_BACKOFF", 0.8),
        )

    async def complete(self, system: str, user: str) -> str:
        """
        One chat completion; returns the message text ("" when the model sent none).
        Retries lightly on transient SDK errors (network, timeout, 429, 5xx);
        anything else, or running out of attempts, raises FilterModelError.
        """
        last_err: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            try:
                resp = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": user},
                    ],
                    temperature=0,
                )
                if not resp.choices:
                    return ""
                return resp.choices[0].message.content or ""
            except RETRYABLE_ERRORS as e:
                last_err = e
                logger.warning(
                    "llm_call_failed",
                    extra={"attempt": attempt + 1, "model": self.model, "error": str(e)},
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_backoff * (attempt + 1))
            except OpenAIError as e:
                logger.error(
                    "llm_call_rejected",
                    extra={"attempt": attempt + 1, "model": self.model, "error": str(e)},
                )
                raise FilterModelError(f"Filter model request rejected: {e}") from e
        raise FilterModelError(f"Filter model request failed: {last_err}") from last_err

    async def aclose(self) -> None:
        await self.client.close()
