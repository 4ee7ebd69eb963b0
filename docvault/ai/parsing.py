"""Tolerant parsing of language-model responses.

The model is asked for a bare JSON object but frequently wraps it in a code
fence, adds prose around it, or answers in labelled paragraphs. Responses are
run through `RESPONSE_PARSERS` in order; each strategy returns a
`ParsedContent` or ``None`` and the last one always succeeds.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json|JSON)?[ \t]*\r?\n?([\s\S]*?)```")
_SUMMARY_LABEL = re.compile(r"summary[:\s]+(.*?)(?:\n|markdown|$)", re.IGNORECASE)
_MARKDOWN_LABEL = re.compile(r"markdown[:\s]+(.*?)$", re.IGNORECASE | re.DOTALL)

# Bounds the number of candidate offsets tried when scanning long responses.
_MAX_DECODE_ATTEMPTS = 64
_SUMMARY_PREFIX_CHARS = 200


@dataclass(frozen=True)
class ParseContext:
    filename: str
    content: str


@dataclass(frozen=True)
class ParsedContent:
    summary: str
    markdown: str
    strategy: str


ParseStrategy = Callable[[str, ParseContext], Optional[ParsedContent]]


def first_json_value(text: str, opener: str = "{") -> Optional[Any]:
    """Decode the first JSON object (or array, with ``opener='['``) embedded in `text`."""

    expected = dict if opener == "{" else list
    decoder = json.JSONDecoder()
    index = text.find(opener)
    attempts = 0
    while index != -1 and attempts < _MAX_DECODE_ATTEMPTS:
        attempts += 1
        try:
            value, _ = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, expected):
            return value
        index = text.find(opener, index + 1)
    return None


def fenced_json_value(text: str, opener: str = "{") -> Optional[Any]:
    for match in _FENCED_BLOCK.finditer(text):
        value = first_json_value(match.group(1), opener)
        if value is not None:
            return value
    return None


def _from_payload(payload: Any, strategy: str) -> Optional[ParsedContent]:
    if not isinstance(payload, dict):
        return None
    summary = payload.get("summary")
    markdown = payload.get("markdown")
    if not isinstance(summary, str) or not isinstance(markdown, str):
        return None
    if not summary.strip() or not markdown.strip():
        return None
    return ParsedContent(summary=summary.strip(), markdown=markdown.strip(), strategy=strategy)


def _synthesized_summary(context: ParseContext) -> str:
    return f"Document: {context.filename}. {context.content[:_SUMMARY_PREFIX_CHARS]}..."


def parse_fenced_json(text: str, context: ParseContext) -> Optional[ParsedContent]:
    return _from_payload(fenced_json_value(text, "{"), "fenced_json")


def parse_embedded_json(text: str, context: ParseContext) -> Optional[ParsedContent]:
    return _from_payload(first_json_value(text, "{"), "embedded_json")


def parse_labelled_fields(text: str, context: ParseContext) -> Optional[ParsedContent]:
    summary_match = _SUMMARY_LABEL.search(text)
    markdown_match = _MARKDOWN_LABEL.search(text)
    summary = summary_match.group(1).strip() if summary_match else ""
    markdown = markdown_match.group(1).strip() if markdown_match else ""
    if not summary and not markdown:
        return None
    return ParsedContent(
        summary=summary or _synthesized_summary(context),
        markdown=markdown or text.strip() or context.content,
        strategy="labelled_fields",
    )


def synthesize_fallback(text: str, context: ParseContext) -> ParsedContent:
    return ParsedContent(
        summary=_synthesized_summary(context).strip(),
        markdown=text.strip() or context.content.strip() or context.content,
        strategy="synthesized",
    )


RESPONSE_PARSERS: Sequence[ParseStrategy] = (
    parse_fenced_json,
    parse_embedded_json,
    parse_labelled_fields,
    synthesize_fallback,
)


def parse_model_response(
    text: str,
    *,
    filename: str,
    content: str,
    strategies: Sequence[ParseStrategy] = RESPONSE_PARSERS,
) -> ParsedContent:
    """Return the first successful parse of `text` using `strategies` in order."""

    context = ParseContext(filename=filename, content=content)
    for strategy in strategies:
        parsed = strategy(text, context)
        if parsed is not None:
            if parsed.strategy in {"labelled_fields", "synthesized"}:
                logger.warning("Model response for %s was not valid JSON; used %s parser", filename, parsed.strategy)
            return parsed
    return synthesize_fallback(text, context)
