from typing import Any, Dict

from agents.base_agent import AgentRequest, BaseAgentHandler


class ExplainTermAgent(BaseAgentHandler):
    name = "explain_term"
    system_prompt = """You are a legal educator explaining terminology to a paralegal.
Your task:
1. Define the term in plain language
2. Give its legal significance and typical usage
3. Note how the meaning differs by jurisdiction, focusing on the one given if any
4. Add a short example

Keep the explanation under 300 words."""
    human_template = "Term: {term}\nJurisdiction: {jurisdiction}\nCase: {case_id}"

    def build_inputs(self, request: AgentRequest) -> Dict[str, Any]:
        return {
            "term": request.task.term,
            "jurisdiction": request.task.jurisdiction or "not specified",
            "case_id": request.case_id or "unspecified",
        }
