import logging
from typing import Any, AsyncIterator, Optional, Sequence, Union

from langchain_core.messages import BaseMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from core.config import Settings
from core.errors import CompletionServiceError
from core.interfaces import ICompletionClient

logger = logging.getLogger(__name__)


def _chunk_text(chunk: Any) -> str:
    content = getattr(chunk, "content", chunk)
    if isinstance(content, str):
        return content
    # Multimodal chunks arrive as a list of parts
    if isinstance(content, list):
        return "".join(p.get("text", "") if isinstance(p, dict) else str(p) for p in content)
    return str(content or "")


class LangChainCompletionClient(ICompletionClient):
    """Completion service backed by a langchain chat model (Gemini by default)."""

    def __init__(self, llm: Optional[Any] = None, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.llm = llm or self._create_llm()

    def _create_llm(self) -> ChatGoogleGenerativeAI:
        """Create LLM with validated config"""
        api_key = self.settings.require_api_key()
        try:
            return ChatGoogleGenerativeAI(
                model=self.settings.model,
                temperature=self.settings.temperature,
                max_output_tokens=self.settings.max_output_tokens,
                google_api_key=api_key,
                timeout=self.settings.timeout,
            )
        except Exception as e:
            logger.error("LLM initialization failed: %s", e, exc_info=True)
            raise CompletionServiceError(f"LLM initialization failed: {e}", cause=e) from e

    async def create_completion(
        self, messages: Sequence[BaseMessage], *, stream: bool = False
    ) -> Union[AsyncIterator[str], str]:
        if stream:
            return self._stream(list(messages))
        try:
            response = await self.llm.ainvoke(list(messages))
        except Exception as e:
            logger.error("Completion request failed: %s", e, exc_info=True)
            raise CompletionServiceError(f"Completion request failed: {e}", cause=e) from e
        return _chunk_text(response).strip()

    async def _stream(self, messages: Sequence[BaseMessage]) -> AsyncIterator[str]:
        try:
            async for chunk in self.llm.astream(messages):
                text = _chunk_text(chunk)
                if text:
                    yield text
        except Exception as e:
            logger.error("Completion stream failed: %s", e, exc_info=True)
            raise CompletionServiceError(f"Completion stream failed: {e}", cause=e) from e
