import httpx
from typing import Optional, Dict, Any
from makeitsimple.adapters.base import BaseModelAdapter
from makeitsimple.errors import PermanentProviderError

class GeminiAdapter(BaseModelAdapter):
    """
    Google Generative Language API over plain REST.

    One AsyncClient is shared by every request; it carries no per-request
    state, so concurrent calls can reuse it.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        default_model: str = "gemini-2.5-flash-lite",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def generate(self, prompt: str, system_prompt: Optional[str] = None, model: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        """
        Calls generateContent. Returns response + token usage.
        """
        target_model = model or self.default_model

        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        if kwargs:
            payload["generationConfig"] = kwargs

        resp = await self.client.post(
            f"{self.base_url}/models/{target_model}:generateContent",
            json=payload,
            headers=headers,
        )
        resp.raise_for_status()

        try:
            data = resp.json()
            candidate = data["candidates"][0]
        except (ValueError, KeyError, IndexError, TypeError):
            raise PermanentProviderError("Malformed provider response: no candidates")

        # A candidate without parts (e.g. stopped on safety) yields an empty answer.
        parts = (candidate.get("content") or {}).get("parts") or []
        content = "".join(part.get("text", "") for part in parts if isinstance(part, dict))

        tokens = 0
        usage = data.get("usageMetadata", {})
        if usage:
            tokens = usage.get("totalTokenCount", 0) or 0

        return {
            "response": content,
            "model": target_model,
            "provider": self.name,
            "tokens_used": tokens,
        }

    async def aclose(self) -> None:
        await self.client.aclose()
