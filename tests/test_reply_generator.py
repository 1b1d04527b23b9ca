import asyncio
import pytest
from unittest.mock import patch
from langchain_core.messages import AIMessage

from services.reply_generator import (
    ReplyGenerator,
    GenerationResult,
    TIMEOUT_REASON,
    OVERLOADED_REASON,
    EMPTY_REASON,
    NO_INPUT_REASON,
)


class FakeModel:
    """Chat model double returning a fixed response or raising."""

    def __init__(self, response=None, error=None, delay=0.0):
        self.response = response
        self.error = error
        self.delay = delay
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.response


class RateLimitError(Exception):
    status_code = 429


@pytest.mark.asyncio
async def test_generate_success():
    model = FakeModel(response=AIMessage(content="hi there"))
    generator = ReplyGenerator(model=model)

    result = await generator.generate("hello")

    assert result == GenerationResult.ok("hi there")
    assert len(model.calls) == 1
    assert model.calls[0][0].content == "hello"


@pytest.mark.asyncio
async def test_generate_joins_text_blocks():
    content = [{"type": "text", "text": "hi "}, {"type": "image_url"}, "there"]
    generator = ReplyGenerator(model=FakeModel(response=AIMessage(content=content)))

    result = await generator.generate("hello")

    assert result.success
    assert result.content == "hi there"


@pytest.mark.asyncio
async def test_generate_timeout():
    generator = ReplyGenerator(model=FakeModel(response=AIMessage(content="late"), delay=1.0), timeout=0.01)

    result = await generator.generate("hello")

    assert not result.success
    assert result.reason == TIMEOUT_REASON


@pytest.mark.asyncio
async def test_generate_rate_limited():
    generator = ReplyGenerator(model=FakeModel(error=RateLimitError("slow down")))

    result = await generator.generate("hello")

    assert result == GenerationResult.failed(OVERLOADED_REASON)


@pytest.mark.asyncio
async def test_generate_transport_error():
    model = FakeModel(error=ConnectionError("reset"))
    generator = ReplyGenerator(model=model)

    result = await generator.generate("hello")

    assert not result.success
    assert "ConnectionError" in result.reason
    # No retry
    assert len(model.calls) == 1


@pytest.mark.asyncio
async def test_generate_empty_response():
    generator = ReplyGenerator(model=FakeModel(response=AIMessage(content="   ")))

    result = await generator.generate("hello")

    assert result == GenerationResult.failed(EMPTY_REASON)


@pytest.mark.asyncio
async def test_generate_malformed_response():
    generator = ReplyGenerator(model=FakeModel(response=object()))

    result = await generator.generate("hello")

    assert not result.success
    assert result.reason


@pytest.mark.asyncio
async def test_generate_without_text_skips_model():
    model = FakeModel(response=AIMessage(content="unused"))
    generator = ReplyGenerator(model=model)

    assert await generator.generate(None) == GenerationResult.failed(NO_INPUT_REASON)
    assert await generator.generate("  ") == GenerationResult.failed(NO_INPUT_REASON)
    assert model.calls == []


@pytest.mark.asyncio
async def test_model_init_failure_is_a_result():
    """Missing credentials surface as a failed result, not an exception"""
    with patch("services.reply_generator.init_chat_model", side_effect=ValueError("no api key")):
        generator = ReplyGenerator(model_name="gpt-4o-mini")
        result = await generator.generate("hello")

    assert not result.success
    assert "ValueError" in result.reason


@pytest.mark.asyncio
async def test_model_is_built_once():
    model = FakeModel(response=AIMessage(content="ok"))
    with patch("services.reply_generator.init_chat_model", return_value=model) as init:
        generator = ReplyGenerator(model_name="some-model")
        await generator.generate("a")
        await generator.generate("b")

    init.assert_called_once_with("some-model")
    assert len(model.calls) == 2
