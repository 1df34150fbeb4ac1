"""Model oracle abstraction -- LiteLLM backend."""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any

from codeagent.log import logger
from codeagent.types import LLMResponse, NativeToolCall


class LLMProvider(ABC):
    """Abstract model provider. Implement for custom backends."""

    model: str = ""

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        max_tokens: int = 0,
        temperature: float = -1.0,
    ) -> LLMResponse:
        """Return the completion. Failures are reported as ``finish_reason="error"``."""
        ...


class LiteLLMProvider(LLMProvider):
    """LiteLLM-backed provider supporting OpenAI and most other chat APIs."""

    def __init__(
        self,
        model: str,
        api_key: str = "",
        api_base: str = "",
        max_tokens: int = 4000,
        temperature: float = 0.1,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
    ) -> None:
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        max_tokens: int = 0,
        temperature: float = -1.0,
    ) -> LLMResponse:
        from litellm import acompletion

        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": temperature if temperature >= 0 else self.temperature,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if tools:
            kwargs["tools"] = tools
        max_attempts = max(1, self.max_retries)
        last_error: Exception | None = None
        for attempt in range(max_attempts):
            try:
                resp = await acompletion(**kwargs)
                return self._parse(resp)
            except Exception as e:
                last_error = e
                if attempt < max_attempts - 1:
                    delay = self.retry_base_delay * (2 ** attempt)
                    logger.warning(f"LLM call failed (attempt {attempt + 1}/{max_attempts}): {e}, retrying in {delay}s")
                    await asyncio.sleep(delay)
        logger.error(f"LLM call failed after {max_attempts} attempts: {last_error}")
        return LLMResponse(content=f"LLM error: {type(last_error).__name__}", finish_reason="error")

    def _parse(self, resp: Any) -> LLMResponse:
        choice = resp.choices[0]
        msg = choice.message
        tool_calls: list[NativeToolCall] = []
        for tc in getattr(msg, "tool_calls", None) or []:
            args = tc.function.arguments
            if isinstance(args, str):
                try:
                    args = json.loads(args) if args.strip() else {}
                except json.JSONDecodeError:
                    logger.warning(f"Unparseable arguments for {tc.function.name}: {args[:200]}")
                    args = {}
            if not isinstance(args, dict):
                logger.warning(f"Non-object arguments for {tc.function.name}: {args!r:.200}")
                args = {}
            tool_calls.append(NativeToolCall(id=tc.id, name=tc.function.name, arguments=args))
        usage = getattr(resp, "usage", None)
        return LLMResponse(
            content=getattr(msg, "content", None),
            tool_calls=tool_calls,
            finish_reason=choice.finish_reason or "stop",
            usage=dict(usage) if usage else {},
        )
