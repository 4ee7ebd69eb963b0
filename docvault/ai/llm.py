"""Single-shot client for the configured language-model provider."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from docvault.core.config import Settings
from docvault.core.exceptions import AIServiceError

logger = logging.getLogger(__name__)

_CATEGORY_MARKERS: Tuple[Tuple[str, Tuple[str, ...], str], ...] = (
    (
        "authentication",
        ("api_key", "api key", "authentication", "401"),
        "AI service authentication failed. Please check API configuration.",
    ),
    (
        "rate_limit",
        ("rate_limit", "ratelimit", "rate limit", "429"),
        "AI service rate limit exceeded. Please try again later.",
    ),
    (
        "network",
        ("timeout", "timed out", "network", "connection"),
        "AI service network error. Please try again.",
    ),
)


def classify_llm_error(exc: BaseException) -> AIServiceError:
    """Map a provider exception onto a user-facing `AIServiceError` by message substring."""

    if isinstance(exc, AIServiceError):
        return exc

    raw = str(exc) or exc.__class__.__name__
    haystack = f"{exc.__class__.__name__} {raw}".lower()
    for category, markers, message in _CATEGORY_MARKERS:
        if any(marker in haystack for marker in markers):
            return AIServiceError(message, category=category, details={"provider_error": raw})
    return AIServiceError(f"AI processing failed: {raw}", category="generic", details={"provider_error": raw})


@dataclass
class LLMResponse:
    text: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)


class LLMClient:
    """Send one prompt to Anthropic or OpenAI and return the generated text."""

    def __init__(
        self,
        *,
        provider: str = "anthropic",
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        claude_model: str = "claude-sonnet-4-20250514",
        openai_model: str = "gpt-4o",
        max_tokens: int = 4096,
    ) -> None:
        self.provider = provider
        self.max_tokens = max_tokens
        self.model = claude_model if provider == "anthropic" else openai_model
        self._anthropic: Optional[AsyncAnthropic] = None
        self._openai: Optional[AsyncOpenAI] = None

        if provider == "anthropic" and anthropic_api_key:
            self._anthropic = AsyncAnthropic(api_key=anthropic_api_key)
        elif provider == "openai" and openai_api_key:
            self._openai = AsyncOpenAI(api_key=openai_api_key)
        else:
            logger.warning("No API key configured for LLM provider %s; AI calls will fail", provider)

    @classmethod
    def from_settings(cls, config: Settings) -> "LLMClient":
        return cls(
            provider=config.LLM_PROVIDER,
            anthropic_api_key=config.ANTHROPIC_API_KEY,
            openai_api_key=config.OPENAI_API_KEY,
            claude_model=config.CLAUDE_MODEL,
            openai_model=config.OPENAI_MODEL,
            max_tokens=config.MAX_TOKENS,
        )

    async def complete(self, prompt: str, *, max_tokens: Optional[int] = None) -> LLMResponse:
        """Send exactly one request; provider failures surface as `AIServiceError`."""

        budget = max_tokens or self.max_tokens
        prefix = "claude" if self.provider == "anthropic" else self.provider
        request_id = f"{prefix}-{uuid.uuid4().hex[:9]}"
        logger.info("[%s] Sending request model=%s prompt_chars=%s", request_id, self.model, len(prompt))

        try:
            if self.provider == "anthropic":
                response = await self._complete_anthropic(prompt, budget)
            else:
                response = await self._complete_openai(prompt, budget)
        except AIServiceError as exc:
            logger.error("[%s] LLM call failed (%s): %s", request_id, exc.category, exc.message)
            raise
        except Exception as exc:
            error = classify_llm_error(exc)
            logger.error("[%s] LLM call failed (%s): %s", request_id, error.category, exc)
            raise error from exc

        logger.info("[%s] Received %s characters usage=%s", request_id, len(response.text), response.usage)
        return response

    async def _complete_anthropic(self, prompt: str, max_tokens: int) -> LLMResponse:
        if self._anthropic is None:
            raise AIServiceError("ANTHROPIC_API_KEY is not configured", category="authentication")

        message = await self._anthropic.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        text = "".join(block.text for block in message.content if getattr(block, "type", None) == "text")
        usage = {}
        if getattr(message, "usage", None) is not None:
            usage = {"input_tokens": message.usage.input_tokens, "output_tokens": message.usage.output_tokens}
        return LLMResponse(text=text, model=getattr(message, "model", None) or self.model, usage=usage)

    async def _complete_openai(self, prompt: str, max_tokens: int) -> LLMResponse:
        if self._openai is None:
            raise AIServiceError("OPENAI_API_KEY is not configured", category="authentication")

        completion = await self._openai.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        text = (completion.choices[0].message.content or "") if completion.choices else ""
        usage = {}
        if getattr(completion, "usage", None) is not None:
            usage = {
                "input_tokens": completion.usage.prompt_tokens,
                "output_tokens": completion.usage.completion_tokens,
            }
        return LLMResponse(text=text, model=getattr(completion, "model", None) or self.model, usage=usage)
