from typing import Any, Dict, Optional

from agents.base_agent import AgentRequest, BaseAgentHandler, ChunkSink, ProgressFn
from core.cancellation import CancellationToken
from core.schemas import AgentResponse

# Bump when a command is added, removed or changes shape.
HELP_VERSION = "1.1"

COMMANDS = (
    ("/research <query>", "Legal research with cited sources"),
    ("/case-search <query>", "Answer a question from the active case's documents"),
    ("/use <template name>", "Open a saved template"),
    ("/agent help", "Show this list"),
    ("/agent draft <instructions>", "Draft a document, email or letter for the active case"),
    ("/agent compare <doc_id> <doc_id> [...]", "Compare two or more case documents"),
    ('/agent find_clause "<clause>" [in <doc_id>]', "Locate a clause in a document"),
    ("/agent flag_privileged_terms [in <doc_id>]", "Flag potentially privileged passages"),
    ("/agent generate_timeline [in <doc_id>]", "Build a chronology of dated events"),
    ('/agent explain_term "<term>" [in <jurisdiction>]', "Explain a legal term"),
    ("/agent rewrite <instructions>", "Rewrite the selected text in the open document"),
    ("/agent summarize [instructions]", "Summarize the selected text in the open document"),
)


def render_help() -> str:
    width = max(len(usage) for usage, _ in COMMANDS)
    lines = [f"Available commands (v{HELP_VERSION}):", ""]
    lines += [f"  {usage.ljust(width)}  {summary}" for usage, summary in COMMANDS]
    lines += ["", "Commands without [in <doc_id>] use the currently open document.",
              "Anything else is sent as a regular chat message."]
    return "\n".join(lines)


HELP_TEXT = render_help()


class HelpAgent(BaseAgentHandler):
    """Fixed command reference. Never calls the completion service."""

    name = "help"
    streaming = False

    def build_inputs(self, request: AgentRequest) -> Dict[str, Any]:
        return {}

    async def run(
        self,
        request: AgentRequest,
        sink: ChunkSink,
        progress: Optional[ProgressFn] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AgentResponse:
        sink(HELP_TEXT)
        return AgentResponse(content=HELP_TEXT, streamed=False)
