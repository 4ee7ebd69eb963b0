"""Summary and markdown generation for extracted document text."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from docvault.ai.llm import LLMClient, classify_llm_error
from docvault.ai.parsing import parse_model_response
from docvault.core.exceptions import AIServiceError, ValidationError
from docvault.utils.monitoring import record_ai_fallback

logger = logging.getLogger(__name__)

FALLBACK_MODEL = "error-fallback"
TRUNCATION_MARKER = "\n\n[Content truncated...]"

SUMMARY_PROMPT = """Analyze this document and provide a JSON response with two fields:

1. "summary": A concise 2-3 sentence summary capturing key points and purpose
2. "markdown": A clean, well-formatted markdown representation of the document

Document: {filename}

Content:
{content}

Respond with ONLY valid JSON (no markdown code blocks, no explanations, just the JSON object):
{{"summary": "...", "markdown": "..."}}"""


@dataclass
class SummaryResult:
    summary: str
    markdown: str
    model: str

    @property
    def is_fallback(self) -> bool:
        return self.model == FALLBACK_MODEL


class AIClient:
    """Turn document text into a summary and a markdown rendition.

    `summarize` never raises for provider or parsing problems. Those produce a
    fallback result whose `model` is ``"error-fallback"`` and whose markdown is
    the original content, so the caller can still persist something useful.
    Blank input is a caller bug and raises `ValidationError`.
    """

    def __init__(self, llm: LLMClient, *, max_content_chars: int = 100_000) -> None:
        self.llm = llm
        self.max_content_chars = max_content_chars

    async def summarize(self, content: str, filename: str) -> SummaryResult:
        if not content or not content.strip():
            raise ValidationError("Document content is empty. Cannot process with AI.")
        if not filename or not filename.strip():
            raise ValidationError("Filename is required for AI processing.")

        try:
            prompt = SUMMARY_PROMPT.format(filename=filename, content=self._truncate(content))
            response = await self.llm.complete(prompt)
            if not response.text or not response.text.strip():
                raise AIServiceError(
                    "AI service returned empty response. Please try again.", category="empty_response"
                )

            parsed = parse_model_response(response.text, filename=filename, content=content)
            logger.info(
                "Summarized %s via %s parser (summary=%s chars, markdown=%s chars)",
                filename,
                parsed.strategy,
                len(parsed.summary),
                len(parsed.markdown),
            )
            return SummaryResult(summary=parsed.summary.strip(), markdown=parsed.markdown.strip(), model=response.model)
        except Exception as exc:
            error = classify_llm_error(exc)
            logger.error("AI processing failed for %s (%s): %s", filename, error.category, error.message, exc_info=True)
            record_ai_fallback(error.category)
            return SummaryResult(
                summary=f'Document "{filename}" could not be processed by AI. Error: {error.message}',
                markdown=content,
                model=FALLBACK_MODEL,
            )

    def _truncate(self, content: str) -> str:
        if len(content) <= self.max_content_chars:
            return content
        logger.info("Truncating content from %s to %s characters", len(content), self.max_content_chars)
        return content[: self.max_content_chars] + TRUNCATION_MARKER
