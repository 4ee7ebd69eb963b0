import json

import pytest

from docvault.ai.summarizer import AIClient
from docvault.core.exceptions import ValidationError
from tests.stubs import StubLLM


@pytest.mark.asyncio
async def test_summarize_parses_model_json():
    llm = StubLLM(text=json.dumps({"summary": "A greeting.", "markdown": "# Hello\n\nworld"}), model="model-x")
    result = await AIClient(llm).summarize("Hello world", "notes.txt")

    assert result.summary == "A greeting."
    assert result.markdown == "# Hello\n\nworld"
    assert result.model == "model-x"
    assert not result.is_fallback
    assert "Document: notes.txt" in llm.prompts[0]
    assert "Hello world" in llm.prompts[0]


@pytest.mark.asyncio
async def test_long_content_is_truncated_with_marker():
    llm = StubLLM(text='{"summary": "s", "markdown": "m"}')
    await AIClient(llm, max_content_chars=10).summarize("x" * 50, "long.txt")

    prompt = llm.prompts[0]
    assert "x" * 10 + "\n\n[Content truncated...]" in prompt
    assert "x" * 11 not in prompt


@pytest.mark.asyncio
@pytest.mark.parametrize("content, filename", [("", "a.txt"), ("   \n", "a.txt"), ("text", ""), ("text", "  ")])
async def test_blank_input_is_rejected(content, filename):
    llm = StubLLM(text="{}")
    with pytest.raises(ValidationError):
        await AIClient(llm).summarize(content, filename)
    assert llm.prompts == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, message",
    [
        (Exception("401 invalid api_key"), "AI service authentication failed. Please check API configuration."),
        (Exception("429 Too Many Requests"), "AI service rate limit exceeded. Please try again later."),
        (TimeoutError("Request timed out"), "AI service network error. Please try again."),
        (ValueError("unexpected payload"), "AI processing failed: unexpected payload"),
    ],
)
async def test_provider_failures_produce_fallback(error, message):
    result = await AIClient(StubLLM(error=error)).summarize("Original content", "report.pdf")

    assert result.model == "error-fallback"
    assert result.is_fallback
    assert result.summary == f'Document "report.pdf" could not be processed by AI. Error: {message}'
    assert result.markdown == "Original content"


@pytest.mark.asyncio
async def test_empty_model_response_produces_fallback():
    result = await AIClient(StubLLM(text="  ")).summarize("Original content", "report.pdf")

    assert result.model == "error-fallback"
    assert "AI service returned empty response" in result.summary
    assert result.markdown == "Original content"


@pytest.mark.asyncio
async def test_unstructured_response_still_yields_content():
    result = await AIClient(StubLLM(text="I could not format this as JSON.")).summarize("Body", "plain.txt")

    assert result.summary == "Document: plain.txt. Body..."
    assert result.markdown == "I could not format this as JSON."
    assert result.model == "stub-model"


@pytest.mark.asyncio
async def test_each_call_sends_its_own_request():
    llm = StubLLM(responses=['{"summary": "one", "markdown": "1"}', '{"summary": "two", "markdown": "2"}'])
    client = AIClient(llm)

    first = await client.summarize("same", "same.txt")
    second = await client.summarize("same", "same.txt")

    assert (first.summary, second.summary) == ("one", "two")
    assert len(llm.prompts) == 2
