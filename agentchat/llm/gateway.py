"""
LLM gateway.

Thin async wrapper over a LangChain chat model: one-shot completions
and token streams, with every provider failure raised as GatewayError.
"""
from functools import lru_cache
from typing import Any, AsyncIterator

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from agentchat.config import Settings, get_settings
from agentchat.errors import GatewayError


def create_chat_model(settings: Settings) -> BaseChatModel:
    """
    Build the chat model for the configured provider.

    ``anthropic`` uses ChatAnthropic; ``glm`` and ``openai`` use ChatOpenAI
    against an OpenAI-compatible endpoint.
    """
    if not settings.LLM_API_KEY:
        raise GatewayError(f"{settings.LLM_PROVIDER} API key is required", code="MISSING_API_KEY")

    if settings.LLM_PROVIDER == "anthropic":
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=settings.LLM_MODEL,
            api_key=settings.LLM_API_KEY,
            temperature=settings.LLM_TEMPERATURE,
            max_tokens=settings.LLM_MAX_TOKENS,
            timeout=settings.LLM_TIMEOUT,
        )

    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        model=settings.LLM_MODEL,
        api_key=settings.LLM_API_KEY,
        base_url=settings.LLM_BASE_URL or None,
        temperature=settings.LLM_TEMPERATURE,
        max_tokens=settings.LLM_MAX_TOKENS,
        timeout=settings.LLM_TIMEOUT,
    )


def _content_text(content: Any) -> str:
    """Flatten LangChain message content (str or list of blocks) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = []
        for block in content:
            if isinstance(block, str):
                texts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                texts.append(block.get("text", ""))
        return "".join(texts)
    return str(content or "")


class LLMGateway:
    """
    Completion/streaming capability used by the router and handlers.

    Usage:
        gateway = LLMGateway(create_chat_model(settings))
        text = await gateway.complete("Hello", system_prompt="Be brief")
    """

    def __init__(self, llm: BaseChatModel, settings: Settings | None = None):
        self.llm = llm
        self._settings = settings

    def _build_messages(self, prompt: str, system_prompt: str | None) -> list[BaseMessage]:
        messages: list[BaseMessage] = [HumanMessage(content=prompt)]
        if system_prompt:
            messages.insert(0, SystemMessage(content=system_prompt))
        return messages

    @staticmethod
    def _overrides(temperature: float | None, max_tokens: int | None) -> dict:
        kwargs = {}
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        return kwargs

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate a completion for a single prompt."""
        messages = self._build_messages(prompt, system_prompt)
        try:
            response = await self.llm.ainvoke(messages, **self._overrides(temperature, max_tokens))
        except Exception as exc:
            raise GatewayError(f"Failed to generate completion: {exc}") from exc
        return _content_text(response.content)

    async def stream(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """Stream a completion, yielding non-empty text fragments."""
        messages = self._build_messages(prompt, system_prompt)
        try:
            async for chunk in self.llm.astream(messages, **self._overrides(temperature, max_tokens)):
                text = _content_text(chunk.content)
                if text:
                    yield text
        except Exception as exc:
            raise GatewayError(f"Failed to stream completion: {exc}") from exc

    async def test_connection(self) -> bool:
        """Send a tiny request to check the provider is reachable."""
        try:
            await self.complete("Hello", max_tokens=10)
            return True
        except GatewayError:
            return False

    def model_info(self) -> dict:
        """Model configuration safe to expose (never the key)."""
        settings = self._settings
        info = {
            "provider": settings.LLM_PROVIDER if settings else None,
            "model": getattr(self.llm, "model", None) or getattr(self.llm, "model_name", None),
        }
        if settings:
            info.update(
                temperature=settings.LLM_TEMPERATURE,
                max_tokens=settings.LLM_MAX_TOKENS,
                base_url=settings.LLM_BASE_URL or None,
            )
        return info


@lru_cache()
def get_gateway() -> LLMGateway:
    """Get or create the default gateway from settings."""
    settings = get_settings()
    return LLMGateway(create_chat_model(settings), settings)


def reset_gateway() -> None:
    """Drop the cached default gateway (mainly for tests)."""
    get_gateway.cache_clear()
