"""
Single-document analysis agents. Both request one complete result from the
completion service instead of a token stream.
"""
from typing import Any, Dict

from agents.base_agent import AgentRequest, BaseAgentHandler, context_block


class FlagPrivilegedTermsAgent(BaseAgentHandler):
    name = "flag_privileged_terms"
    streaming = False
    system_prompt = """You are a litigation support specialist reviewing a document for privilege.
Your task:
1. Flag passages that may be protected by attorney-client privilege or work product
2. Quote each flagged passage and state the privilege basis
3. Rate your confidence for each flag as Low, Medium or High

Return a numbered list. If nothing is privileged, say so."""
    human_template = "Case: {case_id}\n\nDocument:\n{context}"

    def build_inputs(self, request: AgentRequest) -> Dict[str, Any]:
        return {
            "case_id": request.case_id or "unspecified",
            "context": context_block(request.context),
        }


class TimelineAgent(BaseAgentHandler):
    name = "generate_timeline"
    streaming = False
    system_prompt = """You are a paralegal building a chronology from a legal document.
List every dated event in chronological order, one per line, as: date - event (parties involved).
Use ISO dates where the document allows, otherwise keep the document's wording."""
    human_template = "Document:\n{context}"

    def build_inputs(self, request: AgentRequest) -> Dict[str, Any]:
        return {"context": context_block(request.context)}
