import asyncio

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_openai import ChatOpenAI

from agentchat.config import Settings
from agentchat.errors import GatewayError
from agentchat.llm import LLMGateway, create_chat_model
from agentchat.llm.gateway import _content_text


class BrokenModel:
    """Chat model stand-in whose every call fails."""

    async def ainvoke(self, messages, **kwargs):
        raise ConnectionError("connection refused")

    async def astream(self, messages, **kwargs):
        raise ConnectionError("connection refused")
        yield  # pragma: no cover


async def collect(stream):
    return [fragment async for fragment in stream]


def test_complete_returns_model_text() -> None:
    gateway = LLMGateway(FakeListChatModel(responses=["Paris is the capital of France."]))

    text = asyncio.run(gateway.complete("What is the capital of France?", system_prompt="Be brief"))

    assert text == "Paris is the capital of France."


def test_stream_yields_fragments_that_join_to_the_reply() -> None:
    gateway = LLMGateway(FakeListChatModel(responses=["Hello there"]))

    fragments = asyncio.run(collect(gateway.stream("Hi")))

    assert len(fragments) > 1
    assert all(fragments)
    assert "".join(fragments) == "Hello there"


def test_failures_are_gateway_errors() -> None:
    gateway = LLMGateway(BrokenModel())

    with pytest.raises(GatewayError) as info:
        asyncio.run(gateway.complete("Hi"))
    assert isinstance(info.value.__cause__, ConnectionError)

    with pytest.raises(GatewayError):
        asyncio.run(collect(gateway.stream("Hi")))


def test_connection_check() -> None:
    assert asyncio.run(LLMGateway(FakeListChatModel(responses=["pong"])).test_connection())
    assert not asyncio.run(LLMGateway(BrokenModel()).test_connection())


def test_content_blocks_are_flattened() -> None:
    blocks = [{"type": "text", "text": "Hello"}, {"type": "tool_use", "id": "x"}, " world"]

    assert _content_text(blocks) == "Hello world"
    assert _content_text("plain") == "plain"


def test_missing_api_key_is_rejected() -> None:
    settings = Settings()
    settings.LLM_API_KEY = ""

    with pytest.raises(GatewayError) as info:
        create_chat_model(settings)
    assert info.value.code == "MISSING_API_KEY"


def test_openai_compatible_provider() -> None:
    settings = Settings()
    settings.LLM_PROVIDER = "glm"
    settings.LLM_API_KEY = "sk-test-secret"
    settings.LLM_MODEL = "glm-4"
    settings.LLM_BASE_URL = "https://open.bigmodel.cn/api/paas/v4/"

    model = create_chat_model(settings)
    info = LLMGateway(model, settings).model_info()

    assert isinstance(model, ChatOpenAI)
    assert info["provider"] == "glm"
    assert info["model"] == "glm-4"
    assert "sk-test-secret" not in repr(info)
    assert "sk-test-secret" not in repr(settings)
