"""
Agents that work on the text currently selected in the open document.
The rest of the document is passed along as surrounding context.
"""
from typing import Any, Dict

from agents.base_agent import AgentRequest, BaseAgentHandler, context_block


class RewriteAgent(BaseAgentHandler):
    name = "rewrite"
    system_prompt = (
        "You are a legal editor. Rewrite the selected passage following the instructions. "
        "Keep the legal meaning intact unless told otherwise, and return only the rewritten passage."
    )
    human_template = "Instructions: {instructions}\n\nSelected text:\n{selected_text}\n\nSurrounding document:\n{context}"

    def build_inputs(self, request: AgentRequest) -> Dict[str, Any]:
        return {
            "instructions": request.task.instructions,
            "selected_text": request.task.selected_text,
            "context": context_block(request.context),
        }


class SummarizeAgent(BaseAgentHandler):
    name = "summarize"
    system_prompt = """You are a paralegal summarizing a passage from a case document.
Your task:
1. State the main point in one sentence
2. List the obligations, dates and parties it mentions
3. Flag anything unusual or risky

Follow any extra instructions the user gives."""
    human_template = "Instructions: {instructions}\n\nSelected text:\n{selected_text}\n\nSurrounding document:\n{context}"

    def build_inputs(self, request: AgentRequest) -> Dict[str, Any]:
        return {
            "instructions": request.task.instructions or "none",
            "selected_text": request.task.selected_text,
            "context": context_block(request.context),
        }
