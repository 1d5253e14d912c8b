import logging
from typing import Callable, List, Optional

from core.cancellation import CancellationToken
from core.errors import ErrorKind
from core.schemas import DispatcherAction, DispatcherResponse, Message, MessageRole
from core.task import UseTemplateTask
from tools.command_parser import parse_command
from tools.dispatcher import Dispatcher

logger = logging.getLogger(__name__)


class ChatSession:
    """
    Turn driver for one chat window.

    Holds the visible message list and the ambient state a turn needs
    (conversation, case, open document), and exposes stop and regenerate.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        case_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
        active_document_id: Optional[str] = None,
    ):
        self.dispatcher = dispatcher
        self.case_id = case_id
        self.conversation_id = conversation_id
        self.active_document_id = active_document_id
        self.selected_text: Optional[str] = None
        self.messages: List[Message] = []
        self.pending_template_id: Optional[str] = None
        self._cancel_token: Optional[CancellationToken] = None

    @property
    def is_busy(self) -> bool:
        return self._cancel_token is not None

    def new_chat(self) -> None:
        self.stop()
        self.messages = []
        self.conversation_id = None
        self.pending_template_id = None

    def stop(self) -> bool:
        """Cancel the in-flight turn. Returns False when nothing was running."""
        if self._cancel_token is None:
            return False
        self._cancel_token.cancel()
        logger.info("Stop requested for the current turn")
        return True

    async def send(
        self,
        content: str,
        document_ids: Optional[List[str]] = None,
        on_chunk: Optional[Callable[[str], None]] = None,
        _resend: bool = False,
    ) -> Optional[DispatcherResponse]:
        """Run one turn for `content`. Returns None for blank input or while another turn is running."""
        if not content or not content.strip():
            return None
        if self.is_busy:
            logger.warning("Ignoring message while a turn is in progress")
            return None

        task = parse_command(content)
        if task is not None and task.uses_selection and not task.selected_text and self.selected_text:
            task = task.model_copy(update={"selected_text": self.selected_text})
        documents = document_ids or ([self.active_document_id] if self.active_document_id else [])

        if not _resend:
            self.messages.append(Message(
                role=MessageRole.USER,
                content=content,
                conversation_id=self.conversation_id,
                document_context=documents or None,
            ))

        placeholder = None
        if not isinstance(task, UseTemplateTask):
            placeholder = Message(role=MessageRole.ASSISTANT, conversation_id=self.conversation_id, is_streaming=True)
            self.messages.append(placeholder)

        def sink(chunk: str) -> None:
            if placeholder is not None and placeholder.is_streaming:
                placeholder.append_chunk(chunk)
            if on_chunk is not None:
                on_chunk(chunk)

        token = CancellationToken()
        self._cancel_token = token
        try:
            response = await self.dispatcher.dispatch(
                task,
                content,
                sink,
                conversation_id=self.conversation_id,
                case_id=self.case_id,
                document_context=documents,
                cancel_token=token,
                regenerate=_resend,
            )
        finally:
            if self._cancel_token is token:
                self._cancel_token = None
            if placeholder is not None:
                placeholder.freeze()

        if response.new_conversation_id and not self.conversation_id:
            self.conversation_id = response.new_conversation_id
            for message in self.messages:
                message.conversation_id = message.conversation_id or self.conversation_id

        if response.action is DispatcherAction.SHOW_TEMPLATE_MODAL:
            self.pending_template_id = response.template_id
        elif placeholder is not None and not response.success:
            if response.error_kind is ErrorKind.CANCELLED:
                # keep whatever streamed before the stop
                placeholder.content = placeholder.content or "Stopped."
            else:
                placeholder.role = MessageRole.ERROR
                placeholder.content = placeholder.content or f"Error: {response.error}"
        elif placeholder is not None and not placeholder.content:
            placeholder.content = "Completed."
        return response

    async def regenerate(self, on_chunk: Optional[Callable[[str], None]] = None) -> Optional[DispatcherResponse]:
        """Re-run the last user message as a fresh turn, replacing the last answer."""
        if self.is_busy:
            return None
        last_user = next((m for m in reversed(self.messages) if m.role is MessageRole.USER), None)
        if last_user is None:
            return None
        index = self.messages.index(last_user)
        del self.messages[index + 1:]
        return await self.send(last_user.content, last_user.document_context, on_chunk=on_chunk, _resend=True)
