from typing import Any, Dict

from agents.base_agent import AgentRequest, BaseAgentHandler, context_block


class FindClauseAgent(BaseAgentHandler):
    name = "find_clause"
    system_prompt = """You are a contract review assistant.
Locate the clause the user describes in the document below.
Quote the matching text exactly, name the section it appears in, and explain briefly what it provides.
If no clause matches, say so plainly and mention the closest candidates."""
    human_template = 'Clause to find: "{clause}"\n\nDocument:\n{context}'

    def build_inputs(self, request: AgentRequest) -> Dict[str, Any]:
        return {
            "clause": request.task.clause,
            "context": context_block(request.context),
        }
