from typing import Any, Dict

from agents.base_agent import AgentRequest, BaseAgentHandler, context_block


class DraftAgent(BaseAgentHandler):
    """Drafts documents, emails or letters for the active case.

    Named placeholders such as {{client_name}} in the draft are left for the
    template editor to fill.
    """

    name = "draft"
    system_prompt = (
        "You are a paralegal AI assistant. Draft legal documents, emails, or letters as instructed. "
        "Use any provided context. Be clear, professional, and legally accurate. "
        "Where a detail is unknown, leave a named placeholder in double curly braces."
    )
    human_template = "Case: {case_id}\n\nInstructions: {instructions}\n\nContext:\n{context}"

    def build_inputs(self, request: AgentRequest) -> Dict[str, Any]:
        return {
            "case_id": request.case_id or "unspecified",
            "instructions": request.task.instructions,
            "context": context_block(request.context),
        }
