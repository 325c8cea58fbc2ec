# src/todo_companion/llm/client.py

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..interpreter.errors import TransportError

logger = logging.getLogger(__name__)


def _is_auth_error(exc: Exception) -> bool:
    return exc.__class__.__name__ in {
        "AuthenticationError",
        "PermissionDeniedError",
        "UnauthorizedError",
    }


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"RateLimitError", "TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    return exc.__class__.__name__ in {
        "APIConnectionError",
        "APITimeoutError",
        "Timeout",
        "ConnectTimeout",
        "ReadTimeout",
        "WriteTimeout",
    }


def _is_not_found_error(exc: Exception) -> bool:
    # OpenAI-compatible SDK uses NotFoundError for HTTP 404
    return exc.__class__.__name__ in {"NotFoundError"}


def _is_json_mode_rejected(exc: Exception) -> bool:
    """Provider refused response_format=json_object (older models, strict prompt rules)."""
    msg = str(exc).lower()
    return "response_format" in msg or "must contain the word 'json'" in msg


def _make_timeout_obj(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(
        connect=connect_s,
        read=read_s,
        write=10.0,
        pool=connect_s,
    )


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    if "LLM model list is empty" in msg:
        return "LLM is not configured (no models). Set TODO_LLM_MODELS in .env."
    if "authentication failed" in msg:
        return "LLM authentication failed. Check your API key (todo-companion configure --api-key ...)."
    return msg


class OpenAIChatClient:
    """
    Synchronous single-turn chat client for OpenAI-compatible APIs.

    Behavior:
    - Tries models in the order from settings (TODO_LLM_MODELS).
    - 404 (model not available) -> try next.
    - Rate limit / network issues -> try next.
    - Auth issues -> fail fast (no retries across models).
    - JSON response mode rejected -> retry the same model once without it.

    SDK-level retries are disabled so a failing model falls through quickly.
    """

    def __init__(self, settings: Any) -> None:
        self._settings = settings
        self._base_url: str | None = getattr(settings, "openai_base_url", None) or None
        self._models: list[str] = [
            m.strip() for m in list(getattr(settings, "llm_models", []) or []) if m and m.strip()
        ]
        self._temperature = float(getattr(settings, "llm_temperature", 0.1))
        self._max_tokens = int(getattr(settings, "llm_max_tokens", 1000))
        self._timeout = _make_timeout_obj(
            connect_s=float(getattr(settings, "llm_connect_timeout", 5.0)),
            read_s=float(getattr(settings, "llm_read_timeout", 30.0)),
        )

    def _make_client(self, api_key: str) -> OpenAI:
        return OpenAI(
            api_key=api_key,
            base_url=self._base_url,
            timeout=self._timeout,
            max_retries=0,
        )

    def _create_completion(
        self,
        client: OpenAI,
        *,
        model: str,
        messages: list[dict[str, str]],
        json_mode: bool,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        resp = client.chat.completions.create(**kwargs)
        try:
            content = resp.choices[0].message.content
        except (AttributeError, IndexError):
            content = None
        return content or ""

    def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        api_key: str,
        json_mode: bool = True,
    ) -> str:
        if not self._models:
            raise TransportError("LLM model list is empty. Set TODO_LLM_MODELS in your .env.")

        client = self._make_client(api_key)
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        last_error: Exception | None = None

        for model in self._models:
            logger.info("LLM: trying model=%s (json_mode=%s)", model, json_mode)
            t0 = time.monotonic()
            try:
                try:
                    content = self._create_completion(
                        client, model=model, messages=messages, json_mode=json_mode
                    )
                except openai.BadRequestError as e:
                    if not (json_mode and _is_json_mode_rejected(e)):
                        raise
                    logger.info("LLM: model=%s rejected JSON mode, retrying without it", model)
                    content = self._create_completion(
                        client, model=model, messages=messages, json_mode=False
                    )
            except Exception as e:
                last_error = e

                if _is_auth_error(e):
                    raise TransportError(
                        "LLM authentication failed. Check your API key."
                    ) from e

                if _is_not_found_error(e):
                    logger.info("LLM: model not available (404): %s", model)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                    continue

                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                    continue

                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            logger.debug(
                "LLM: completed with model=%s in %.2fs (%d chars)",
                model,
                time.monotonic() - t0,
                len(content),
            )
            return content

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise TransportError("LLM is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise TransportError(
                    "LLM network/timeout error. Try again later or change models."
                ) from last_error
            raise TransportError("All LLM models failed.") from last_error

        raise TransportError("All LLM models failed.")
