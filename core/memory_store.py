import asyncio
import logging
from typing import Dict, List, Optional

from core.errors import PersistenceError
from core.interfaces import IPersistenceClient
from core.schemas import Conversation, Document, Message, MessageRole, Template, utc_now

logger = logging.getLogger(__name__)


class InMemoryStore(IPersistenceClient):
    """Process-local persistence client used by the console and the tests."""

    def __init__(self, documents: Optional[List[Document]] = None, templates: Optional[List[Template]] = None):
        self._conversations: Dict[str, Conversation] = {}
        self._messages: Dict[str, List[Message]] = {}
        self._documents: Dict[str, Document] = {d.id: d for d in documents or []}
        self._templates: List[Template] = list(templates or [])
        self._lock = asyncio.Lock()

    # --- Seeding helpers ---
    def add_document(self, document: Document) -> None:
        self._documents[document.id] = document

    def add_template(self, template: Template) -> None:
        self._templates.append(template)

    # --- IPersistenceClient ---
    async def create_conversation(self, title: str = "New Chat", case_id: Optional[str] = None) -> Conversation:
        async with self._lock:
            conversation = Conversation(title=title, case_id=case_id)
            self._conversations[conversation.id] = conversation
            self._messages[conversation.id] = []
        logger.info("Created conversation %s (case=%s)", conversation.id, case_id)
        return conversation

    async def get_conversation(self, conversation_id: str) -> Conversation:
        try:
            return self._conversations[conversation_id]
        except KeyError:
            raise PersistenceError(f"Conversation {conversation_id} not found") from None

    async def touch_conversation(self, conversation_id: str) -> None:
        conversation = await self.get_conversation(conversation_id)
        conversation.updated_at = utc_now()

    async def add_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: str,
        document_context: Optional[List[str]] = None,
    ) -> Message:
        async with self._lock:
            if conversation_id not in self._messages:
                raise PersistenceError(f"Conversation {conversation_id} not found")
            message = Message(
                role=role,
                content=content,
                conversation_id=conversation_id,
                document_context=document_context,
            )
            self._messages[conversation_id].append(message)
        return message

    async def delete_message(self, conversation_id: str, message_id: str) -> None:
        async with self._lock:
            if conversation_id not in self._messages:
                raise PersistenceError(f"Conversation {conversation_id} not found")
            self._messages[conversation_id] = [m for m in self._messages[conversation_id] if m.id != message_id]

    async def get_messages(self, conversation_id: str) -> List[Message]:
        if conversation_id not in self._messages:
            raise PersistenceError(f"Conversation {conversation_id} not found")
        return list(self._messages[conversation_id])

    async def get_document_text(self, document_id: str) -> str:
        document = self._documents.get(document_id)
        if document is None:
            raise PersistenceError(f"Document {document_id} not found")
        if not document.text.strip():
            raise PersistenceError(f"Document {document_id} has no extracted text")
        return document.text

    async def list_case_documents(self, case_id: str) -> List[Document]:
        return [d for d in self._documents.values() if d.case_id == case_id]

    async def list_templates(self) -> List[Template]:
        return list(self._templates)
