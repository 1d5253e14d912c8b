import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from langchain_core.messages import BaseMessage
from langchain_core.prompts import ChatPromptTemplate

from core.cancellation import CancellationToken
from core.errors import CompletionServiceError, DispatchError
from core.interfaces import ICompletionClient
from core.schemas import AgentResponse, Message
from tools.context_aggregator import AggregatedContext

logger = logging.getLogger(__name__)

ChunkSink = Callable[[str], None]
ProgressFn = Callable[..., Any]


@dataclass
class AgentRequest:
    """Everything a handler needs for one invocation."""
    task: Any
    message: str = ""
    context: AggregatedContext = field(default_factory=AggregatedContext)
    history: List[Message] = field(default_factory=list)
    case_id: Optional[str] = None
    conversation_id: Optional[str] = None


def context_block(context: AggregatedContext, empty: str = "No document context provided.") -> str:
    text = context.text or empty
    if context.failed_ids:
        text += "\n\n(Unavailable documents: " + ", ".join(context.failed_ids) + ")"
    return text


class BaseAgentHandler(ABC):
    """
    Shared prompt and streaming loop for every agent.

    Subclasses set a fixed `system_prompt` preamble and a `human_template`,
    and map the request onto the template variables in `build_inputs`.
    """

    name: str = "agent"
    streaming: bool = True
    system_prompt: str = "You are a helpful legal assistant."
    human_template: str = "{message}"

    def __init__(self, client: Optional[ICompletionClient] = None):
        self.client = client
        self.prompt = self._build_prompt()

    def _build_prompt(self) -> ChatPromptTemplate:
        return ChatPromptTemplate.from_messages([
            ("system", self.system_prompt),
            ("human", self.human_template),
        ])

    @abstractmethod
    def build_inputs(self, request: AgentRequest) -> Dict[str, Any]:
        """Map the request onto the prompt variables."""

    def build_messages(self, request: AgentRequest) -> List[BaseMessage]:
        return self.prompt.format_messages(**self.build_inputs(request))

    def finalize(self, content: str, request: AgentRequest) -> AgentResponse:
        return AgentResponse(content=content, streamed=self.streaming)

    async def run(
        self,
        request: AgentRequest,
        sink: ChunkSink,
        progress: Optional[ProgressFn] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AgentResponse:
        """
        Run the agent against the completion service.

        Args:
            request: Task fields plus resolved context
            sink: Called once per chunk, in arrival order
            progress: Optional progress reporter bound to this turn's background task
            cancel_token: Optional stop signal checked between chunks

        Returns:
            AgentResponse whose content is the accumulated text

        Raises:
            CompletionServiceError: If the completion service fails
            TurnCancelledError: If the token was cancelled mid-run
        """
        if self.client is None:
            raise CompletionServiceError(f"No completion client configured for {self.name}")
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        messages = self.build_messages(request)
        logger.info("Running %s agent (%s mode)", self.name, "streaming" if self.streaming else "single-shot")
        self._report(progress, 20, "Waiting for the completion service...")

        try:
            if self.streaming:
                content = await self._consume_stream(messages, sink, progress, cancel_token)
            else:
                content = await self._single_shot(messages, sink, cancel_token)
        except DispatchError:
            raise
        except Exception as e:
            logger.error("%s agent failed: %s", self.name, e, exc_info=True)
            raise CompletionServiceError(f"{self.name} failed: {e}", cause=e) from e

        self._report(progress, 90, "Finalizing response...")
        return self.finalize(content, request)

    async def _consume_stream(self, messages, sink, progress, cancel_token) -> str:
        stream = await self.client.create_completion(messages, stream=True)
        parts: List[str] = []
        try:
            async for chunk in stream:
                if cancel_token is not None and cancel_token.cancelled:
                    logger.info("%s agent stopped after %d chunks", self.name, len(parts))
                    cancel_token.raise_if_cancelled()
                if not chunk:
                    continue
                sink(chunk)
                parts.append(chunk)
                if len(parts) == 1:
                    self._report(progress, 50, "Streaming response...")
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
        return "".join(parts)

    async def _single_shot(self, messages, sink, cancel_token) -> str:
        result = await self.client.create_completion(messages, stream=False)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        content = result if isinstance(result, str) else str(result)
        if content:
            sink(content)
        return content

    @staticmethod
    def _report(progress: Optional[ProgressFn], value: int, description: Optional[str] = None) -> None:
        if progress is not None:
            progress(progress=value, description=description)
