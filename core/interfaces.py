# core/interfaces.py
from abc import ABC, abstractmethod
from typing import AsyncIterator, List, Optional, Sequence, Union

from langchain_core.messages import BaseMessage

from core.schemas import Conversation, Document, Message, MessageRole, Template


class ICompletionClient(ABC):
    @abstractmethod
    async def create_completion(
        self, messages: Sequence[BaseMessage], *, stream: bool = False
    ) -> Union[AsyncIterator[str], str]:
        """Return an async iterator of text chunks when `stream` is set, else the full text."""


class IPersistenceClient(ABC):
    """Narrow query layer over the managed store. Failures raise PersistenceError."""

    @abstractmethod
    async def create_conversation(self, title: str = "New Chat", case_id: Optional[str] = None) -> Conversation:
        pass

    @abstractmethod
    async def get_conversation(self, conversation_id: str) -> Conversation:
        pass

    @abstractmethod
    async def touch_conversation(self, conversation_id: str) -> None:
        pass

    @abstractmethod
    async def add_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: str,
        document_context: Optional[List[str]] = None,
    ) -> Message:
        pass

    @abstractmethod
    async def delete_message(self, conversation_id: str, message_id: str) -> None:
        pass

    @abstractmethod
    async def get_messages(self, conversation_id: str) -> List[Message]:
        pass

    @abstractmethod
    async def get_document_text(self, document_id: str) -> str:
        pass

    @abstractmethod
    async def list_case_documents(self, case_id: str) -> List[Document]:
        pass

    @abstractmethod
    async def list_templates(self) -> List[Template]:
        pass
