import logging

import httpx
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from carechat.config import (
    ANTHROPIC_API_KEY,
    ASSISTANT_MAX_OUTPUT_TOKENS,
    ASSISTANT_MODEL,
    ASSISTANT_PROVIDER,
    ASSISTANT_TEMPERATURE,
    ASSISTANT_TIMEOUT_SECONDS,
    ASSISTANT_TOP_K,
    ASSISTANT_TOP_P,
    GEMINI_API_BASE,
    GEMINI_API_KEY,
    GEMINI_MODEL,
    OPENAI_API_KEY,
)

logger = logging.getLogger(__name__)

PROVIDERS = ("gemini", "anthropic", "openai", "none")

_DEFAULT_MODELS = {
    "gemini": GEMINI_MODEL,
    "anthropic": "claude-sonnet-4-5",
    "openai": "gpt-4o-mini",
}


def _gemini_text(data: dict) -> str:
    """Text of the first candidate part, or "" when the response carries none."""
    candidates = data.get("candidates") or [{}]
    parts = (candidates[0].get("content") or {}).get("parts") or [{}]
    return parts[0].get("text") or ""


class LLMClient:
    def __init__(self, provider: str | None = None) -> None:
        provider = (provider or ASSISTANT_PROVIDER or "auto").lower()
        if provider == "auto":
            if GEMINI_API_KEY:
                provider = "gemini"
            elif ANTHROPIC_API_KEY:
                provider = "anthropic"
            elif OPENAI_API_KEY:
                provider = "openai"
            else:
                provider = "none"
        if provider not in PROVIDERS:
            logger.warning("Unknown assistant provider %r, disabling the external assistant", provider)
            provider = "none"
        self.provider = provider

        self._anthropic = AsyncAnthropic(api_key=ANTHROPIC_API_KEY) if ANTHROPIC_API_KEY else None
        self._openai = AsyncOpenAI(api_key=OPENAI_API_KEY) if OPENAI_API_KEY else None

    def available(self) -> bool:
        if self.provider == "gemini":
            return bool(GEMINI_API_KEY)
        if self.provider == "anthropic":
            return self._anthropic is not None
        if self.provider == "openai":
            return self._openai is not None
        return False

    @property
    def model(self) -> str:
        return ASSISTANT_MODEL or _DEFAULT_MODELS.get(self.provider, "")

    async def generate_text(self, prompt: str, *, max_tokens: int = ASSISTANT_MAX_OUTPUT_TOKENS) -> str:
        """Single-turn completion. Raises on transport or provider errors."""
        if not self.available():
            raise RuntimeError("LLM provider unavailable")

        if self.provider == "gemini":
            return await self._gemini(prompt, max_tokens)

        if self.provider == "anthropic":
            message = await self._anthropic.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=ASSISTANT_TEMPERATURE,
                messages=[{"role": "user", "content": prompt}],
                timeout=ASSISTANT_TIMEOUT_SECONDS,
            )
            raw = ""
            for block in message.content:
                if hasattr(block, "text"):
                    raw += block.text
            return raw

        # OpenAI chat completions have no top-k parameter.
        response = await self._openai.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=ASSISTANT_TEMPERATURE,
            top_p=ASSISTANT_TOP_P,
            messages=[{"role": "user", "content": prompt}],
            timeout=ASSISTANT_TIMEOUT_SECONDS,
        )
        return response.choices[0].message.content or ""

    async def _gemini(self, prompt: str, max_tokens: int) -> str:
        url = f"{GEMINI_API_BASE}/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": ASSISTANT_TEMPERATURE,
                "topK": ASSISTANT_TOP_K,
                "topP": ASSISTANT_TOP_P,
                "maxOutputTokens": max_tokens,
            },
        }
        async with httpx.AsyncClient(timeout=ASSISTANT_TIMEOUT_SECONDS) as client:
            resp = await client.post(url, headers={"x-goog-api-key": GEMINI_API_KEY}, json=body)
            resp.raise_for_status()
        return _gemini_text(resp.json())


_client: LLMClient | None = None


def get_llm_client() -> LLMClient:
    global _client
    if _client is None:
        _client = LLMClient()
    return _client
