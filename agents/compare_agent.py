from typing import Any, Dict

from agents.base_agent import AgentRequest, BaseAgentHandler, context_block


class CompareAgent(BaseAgentHandler):
    name = "compare"
    system_prompt = """You are a legal analyst comparing documents from the same case.
Your task:
1. Summarize what each document establishes
2. Identify agreements, contradictions and gaps between them
3. Point out differences in obligations, dates, amounts and parties
4. Note which differences matter most for the case

Refer to documents by their ids."""
    human_template = "Compare these documents ({doc_ids}):\n\n{context}"

    def build_inputs(self, request: AgentRequest) -> Dict[str, Any]:
        return {
            "doc_ids": ", ".join(request.context.resolved_ids),
            "context": context_block(request.context),
        }
