from typing import Any, Dict, List

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder

from agents.base_agent import AgentRequest, BaseAgentHandler, context_block
from core.schemas import Message, MessageRole

_ROLE_MESSAGES = {
    MessageRole.USER: HumanMessage,
    MessageRole.ASSISTANT: AIMessage,
    MessageRole.SYSTEM: SystemMessage,
}


def history_to_messages(history: List[Message]) -> List[BaseMessage]:
    # error rows are display-only and never sent back to the model
    return [
        _ROLE_MESSAGES[m.role](content=m.content)
        for m in history
        if m.role in _ROLE_MESSAGES and m.content
    ]


class ChatAgent(BaseAgentHandler):
    """Plain chat: conversation history plus optional document context."""

    name = "chat"
    system_prompt = (
        "You are the Paralegal AI Assistant, a helpful AI trained to assist with legal matters. "
        "Provide accurate and helpful information on legal documents and queries.\n\n"
        "Relevant document context:\n{context}"
    )
    human_template = "{message}"

    def _build_prompt(self) -> ChatPromptTemplate:
        return ChatPromptTemplate.from_messages([
            ("system", self.system_prompt),
            MessagesPlaceholder("history", optional=True),
            ("human", self.human_template),
        ])

    def build_inputs(self, request: AgentRequest) -> Dict[str, Any]:
        return {
            "context": context_block(request.context),
            "history": history_to_messages(request.history),
            "message": request.message,
        }
