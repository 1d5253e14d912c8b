# main.py
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from agents.case_search_agent import CaseSearchAgent
from agents.chat_agent import ChatAgent
from agents.compare_agent import CompareAgent
from agents.document_agents import FlagPrivilegedTermsAgent, TimelineAgent
from agents.draft_agent import DraftAgent
from agents.explain_term_agent import ExplainTermAgent
from agents.find_clause_agent import FindClauseAgent
from agents.help_agent import HelpAgent
from agents.research_agent import ResearchAgent
from agents.selection_agents import RewriteAgent, SummarizeAgent
from core.config import Settings
from core.errors import ConfigError
from core.interfaces import ICompletionClient, IPersistenceClient
from core.logging_setup import configure_logging
from core.memory_store import InMemoryStore
from core.schemas import Document
from core.task_registry import BackgroundTaskRegistry, TaskMutators
from tools.chat_session import ChatSession
from tools.dispatcher import CHAT, Dispatcher

logger = logging.getLogger(__name__)


def build_handlers(client: Optional[ICompletionClient]):
    return {
        CHAT: ChatAgent(client),
        "research": ResearchAgent(client),
        "case_search": CaseSearchAgent(client),
        "agent.draft": DraftAgent(client),
        "agent.compare": CompareAgent(client),
        "agent.find_clause": FindClauseAgent(client),
        "agent.flag_privileged_terms": FlagPrivilegedTermsAgent(client),
        "agent.generate_timeline": TimelineAgent(client),
        "agent.explain_term": ExplainTermAgent(client),
        "agent.rewrite": RewriteAgent(client),
        "agent.summarize": SummarizeAgent(client),
        "help": HelpAgent(),
    }


def initialize_system(
    settings: Optional[Settings] = None,
    client: Optional[ICompletionClient] = None,
    store: Optional[IPersistenceClient] = None,
    registry: Optional[BackgroundTaskRegistry] = None,
):
    settings = settings or Settings.from_env()
    if client is None:
        from core.completion import LangChainCompletionClient
        client = LangChainCompletionClient(settings=settings)

    store = store or InMemoryStore()
    registry = registry or BackgroundTaskRegistry()
    dispatcher = Dispatcher(
        handlers=build_handlers(client),
        store=store,
        mutators=TaskMutators.for_registry(registry),
        settings=settings,
    )
    return dispatcher, registry


async def run_console(session: ChatSession, registry: BackgroundTaskRegistry) -> None:
    print("Paralegal assistant. Type /agent help for commands, Ctrl-D to quit.")
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, sys.stdin.readline)
        if not line:
            break
        if not line.strip():
            continue

        response = await session.send(line.rstrip("\n"), on_chunk=lambda c: print(c, end="", flush=True))
        print()
        if response is None:
            continue
        if response.template_id:
            print(f"[template {response.template_id} ready to fill]")
        if response.failed_document_ids:
            print(f"[could not load: {', '.join(response.failed_document_ids)}]")
        for source in response.sources or []:
            print(f"  - {source.title}: {source.url}")
        for task in registry.list():
            logger.debug("Task %s %s %d%%", task.id, task.status.value, task.progress)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Paralegal command dispatch console")
    parser.add_argument("--case", dest="case_id", help="Active case id")
    parser.add_argument("--doc", action="append", default=[], metavar="PATH",
                        help="Plain-text document to load (id = file stem); repeatable")
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    configure_logging(settings.log_level, settings.log_file)

    store = InMemoryStore()
    for path in map(Path, args.doc):
        store.add_document(Document(
            id=path.stem, title=path.name, text=path.read_text(encoding="utf-8"), case_id=args.case_id
        ))

    try:
        dispatcher, registry = initialize_system(settings, store=store)
    except ConfigError as e:
        logger.critical("Startup failed: %s", e)
        return 1

    session = ChatSession(dispatcher, case_id=args.case_id, active_document_id=Path(args.doc[0]).stem if args.doc else None)
    try:
        asyncio.run(run_console(session, registry))
    except KeyboardInterrupt:
        session.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
