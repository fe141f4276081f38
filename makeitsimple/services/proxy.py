"""
Proxy Service.

Validates the inbound fields, builds the provider prompt and resolves it
through the retry controller. Request text is never logged.
"""

import logging
from typing import Optional

from makeitsimple.adapters.base import BaseModelAdapter
from makeitsimple.errors import ConfigurationError, ProviderError, ValidationError
from makeitsimple.services.retry import RetryPolicy, call_with_retry

logger = logging.getLogger("proxy_service")

SUMMARIZE_PROMPT = "Summarize the following text in 3 concise bullet points: {text}"
EXPLAIN_PROMPT = "Explain the following text in simple terms for a general audience, concisely: {text}"
CHAT_PROMPT = "Context: {context}\n\nQuestion: {question}\n\nAnswer based on the context."


def require(value: Optional[str], field: str) -> str:
    """Return `value` unless it is missing or blank."""
    if value is None or not value.strip():
        raise ValidationError(field)
    return value


def build_summarize_prompt(text: str) -> str:
    return SUMMARIZE_PROMPT.format(text=text)


def build_explain_prompt(text: str) -> str:
    return EXPLAIN_PROMPT.format(text=text)


def build_chat_prompt(question: str, context: str) -> str:
    return CHAT_PROMPT.format(question=question, context=context)


class ProxyService:
    def __init__(
        self,
        adapter: Optional[BaseModelAdapter],
        policy: Optional[RetryPolicy] = None,
        provider_name: str = "gemini",
    ):
        self.adapter = adapter
        self.policy = policy or RetryPolicy()
        self.provider_name = adapter.name if adapter is not None else provider_name

    async def summarize(self, text: Optional[str]) -> str:
        text = require(text, "text")
        return await self._generate("summarize", build_summarize_prompt(text))

    async def explain(self, text: Optional[str]) -> str:
        text = require(text, "text")
        return await self._generate("explain", build_explain_prompt(text))

    async def chat(self, question: Optional[str], context: Optional[str]) -> str:
        question = require(question, "question")
        context = require(context, "context")
        return await self._generate("chat", build_chat_prompt(question, context))

    async def _generate(self, operation: str, prompt: str) -> str:
        adapter = self.adapter
        if adapter is None:
            logger.error(f"[Proxy] {operation} rejected: {self.provider_name} client not configured")
            raise ConfigurationError(self.provider_name)

        try:
            result = await call_with_retry(
                lambda: adapter.generate(prompt=prompt),
                self.policy,
                label=f"{adapter.name}:{operation}",
            )
        except ProviderError as e:
            e.operation = operation
            logger.error(
                f"[Proxy] {operation} failed via {adapter.name} "
                f"(status={e.status}, attempts={e.attempts}): {type(e).__name__}: {e}"
            )
            raise

        logger.info(
            f"[Proxy] {operation} ✓ {result.get('provider')}/{result.get('model')} | "
            f"{result.get('tokens_used', 0)} tokens"
        )
        return result.get("response") or ""
