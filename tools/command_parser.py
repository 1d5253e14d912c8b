"""
command_parser.py
Turns one line of chat input into a Task, or None for plain chat.

The parser is total: anything it does not fully recognize, including
malformed quoting, is plain chat.
"""
import re
from typing import Optional

from core.task import (
    CaseSearchTask,
    CompareTask,
    DraftTask,
    ExplainTermTask,
    FindClauseTask,
    FlagPrivilegedTermsTask,
    GenerateTimelineTask,
    HelpTask,
    ResearchTask,
    RewriteTask,
    SummarizeTask,
    Task,
    UnknownAgentTask,
    UseTemplateTask,
)

_COMMAND_RE = re.compile(r"^/([a-z][a-z_-]*)(?:\s+(.*))?$", re.IGNORECASE | re.DOTALL)
_AGENT_RE = re.compile(r"^([a-z][\w-]*)(?:\s+(.*))?$", re.IGNORECASE | re.DOTALL)
_IN_TARGET_RE = re.compile(r"^in\s+(\S.*)$", re.IGNORECASE | re.DOTALL)
_ID_SPLIT_RE = re.compile(r"[\s,]+")


def _split_quoted(text: str):
    """Split `"quoted" rest` into (quoted, rest). None when quoting is malformed."""
    if not text.startswith('"'):
        return None
    end = text.find('"', 1)
    if end == -1:
        return None
    return text[1:end], text[end + 1:].strip()


def _unquote(text: str) -> Optional[str]:
    if text.startswith('"'):
        parts = _split_quoted(text)
        if parts is None or parts[1]:
            return None
        return parts[0]
    if '"' in text:
        return None
    return text


def _parse_target(args: str):
    """`in <doc_id>` or nothing. Returns (ok, doc_id)."""
    if not args:
        return True, None
    m = _IN_TARGET_RE.match(args)
    if not m:
        return False, None
    return True, m.group(1).strip()


def _parse_explain_term(args: str) -> Optional[Task]:
    """`"<term>" [in <jurisdiction>]`, or a bare term without quotes."""
    if not args:
        return None
    if not args.startswith('"'):
        return ExplainTermTask(term=args) if '"' not in args else None
    parts = _split_quoted(args)
    if parts is None or not parts[0].strip():
        return None
    term, tail = parts
    ok, jurisdiction = _parse_target(tail)
    return ExplainTermTask(term=term.strip(), jurisdiction=jurisdiction) if ok else None


def _parse_agent(rest: str) -> Optional[Task]:
    m = _AGENT_RE.match(rest)
    if not m:
        return None
    name = m.group(1).lower()
    args = (m.group(2) or "").strip()

    if name == "help":
        return HelpTask() if not args else None

    if name == "draft":
        return DraftTask(instructions=args) if args else None

    if name == "compare":
        doc_ids = [d for d in _ID_SPLIT_RE.split(args) if d]
        return CompareTask(doc_ids=doc_ids) if doc_ids else None

    if name == "find_clause":
        parts = _split_quoted(args)
        if parts is None:
            return None
        clause, tail = parts
        if not clause.strip():
            return None
        ok, doc_id = _parse_target(tail)
        return FindClauseTask(clause=clause, doc_id=doc_id) if ok else None

    if name == "flag_privileged_terms":
        ok, doc_id = _parse_target(args)
        return FlagPrivilegedTermsTask(doc_id=doc_id) if ok else None

    if name == "generate_timeline":
        ok, doc_id = _parse_target(args)
        return GenerateTimelineTask(doc_id=doc_id) if ok else None

    if name == "explain_term":
        return _parse_explain_term(args)

    if name == "rewrite":
        return RewriteTask(instructions=args) if args else None

    if name == "summarize":
        return SummarizeTask(instructions=args or None)

    return UnknownAgentTask(agent=name, arguments=args)


def parse_command(input_text: Optional[str]) -> Optional[Task]:
    """Parse chat input into a Task. Returns None for plain chat; never raises."""
    if not isinstance(input_text, str):
        return None
    text = input_text.strip()
    if not text.startswith("/"):
        return None

    m = _COMMAND_RE.match(text)
    if not m:
        return None
    command = m.group(1).lower()
    rest = (m.group(2) or "").strip()

    if command == "research":
        return ResearchTask(query=rest) if rest else None

    if command in ("case-search", "case_search"):
        return CaseSearchTask(query=rest) if rest else None

    if command == "use":
        name = _unquote(rest) if rest else None
        return UseTemplateTask(template_name=name.strip()) if name and name.strip() else None

    if command == "agent":
        return _parse_agent(rest) if rest else None

    return None
