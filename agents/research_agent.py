import re
from typing import Any, Dict, List

from agents.base_agent import AgentRequest, BaseAgentHandler
from core.schemas import AgentResponse, SourceInfo

_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]+)\]\((https?://[^\s)]+)\)")


def extract_sources(text: str) -> List[SourceInfo]:
    """Collect markdown links cited in an answer, first occurrence wins."""
    seen = set()
    sources = []
    for title, url in _MARKDOWN_LINK_RE.findall(text):
        if url in seen:
            continue
        seen.add(url)
        sources.append(SourceInfo(title=title.strip(), url=url))
    return sources


class ResearchAgent(BaseAgentHandler):
    name = "research"
    system_prompt = """You are an expert legal research AI assistant.
Your task:
1. Answer the legal research question comprehensively
2. Cite relevant case law, statutes and regulations
3. Give every citation as a markdown link to its source when one exists
4. Flag jurisdiction-specific caveats

Be precise, and say so when authority is unsettled."""
    human_template = "Research question: {query}"

    def build_inputs(self, request: AgentRequest) -> Dict[str, Any]:
        return {"query": request.task.query}

    def finalize(self, content: str, request: AgentRequest) -> AgentResponse:
        return AgentResponse(content=content, sources=extract_sources(content), streamed=self.streaming)
