from typing import Any, Dict

from agents.base_agent import AgentRequest, BaseAgentHandler, context_block


class CaseSearchAgent(BaseAgentHandler):
    """Answers a question from the documents filed under the active case."""

    name = "case_search"
    system_prompt = """You are a legal assistant searching the documents of a single case.
Answer only from the documents provided. Cite the document id for every statement.
If the documents do not answer the question, say so."""
    human_template = "Case: {case_id}\n\nQuestion: {query}\n\nCase documents:\n{context}"

    def build_inputs(self, request: AgentRequest) -> Dict[str, Any]:
        return {
            "case_id": request.case_id or "unspecified",
            "query": request.task.query,
            "context": context_block(request.context, empty="The case has no readable documents."),
        }
