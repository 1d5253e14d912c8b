import pytest

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
    UnknownAgentTask,
    UseTemplateTask,
)
from tools.command_parser import parse_command


def test_research_query_is_taken_verbatim() -> None:
    assert parse_command("/research Miranda rights") == ResearchTask(query="Miranda rights")


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("/agent help", HelpTask()),
        ("/case-search who signed the lease?", CaseSearchTask(query="who signed the lease?")),
        ("/case_search notice dates", CaseSearchTask(query="notice dates")),
        ("/use Engagement Letter", UseTemplateTask(template_name="Engagement Letter")),
        ('/use "Engagement Letter"', UseTemplateTask(template_name="Engagement Letter")),
        ("/agent draft a demand letter to the landlord", DraftTask(instructions="a demand letter to the landlord")),
        ("/agent compare doc-1 doc-2", CompareTask(doc_ids=["doc-1", "doc-2"])),
        ("/agent compare doc-1, doc-2,doc-3", CompareTask(doc_ids=["doc-1", "doc-2", "doc-3"])),
        ('/agent find_clause "termination" in doc-9', FindClauseTask(clause="termination", doc_id="doc-9")),
        ('/agent find_clause "termination"', FindClauseTask(clause="termination", doc_id=None)),
        ("/agent flag_privileged_terms in doc-4", FlagPrivilegedTermsTask(doc_id="doc-4")),
        ("/agent flag_privileged_terms", FlagPrivilegedTermsTask(doc_id=None)),
        ("/agent generate_timeline in doc-5", GenerateTimelineTask(doc_id="doc-5")),
        ("/agent generate_timeline", GenerateTimelineTask(doc_id=None)),
        ("/agent explain_term estoppel", ExplainTermTask(term="estoppel")),
        ('/agent explain_term "adverse possession" in Texas', ExplainTermTask(term="adverse possession", jurisdiction="Texas")),
        ("/agent rewrite in plain English", RewriteTask(instructions="in plain English")),
        ("/agent summarize", SummarizeTask(instructions=None)),
        ("/agent summarize focus on deadlines", SummarizeTask(instructions="focus on deadlines")),
        ("/agent translate this contract", UnknownAgentTask(agent="translate", arguments="this contract")),
        ("/agent redline", UnknownAgentTask(agent="redline", arguments="")),
    ],
)
def test_recognized_commands(text, expected) -> None:
    assert parse_command(text) == expected


def test_keywords_are_case_insensitive_but_arguments_keep_case() -> None:
    assert parse_command("/RESEARCH Brady Material") == ResearchTask(query="Brady Material")
    assert parse_command("/Agent HELP") == HelpTask()
    assert parse_command('/agent FIND_CLAUSE "Indemnity" IN Doc-A') == FindClauseTask(clause="Indemnity", doc_id="Doc-A")


def test_arguments_are_trimmed_only() -> None:
    assert parse_command("   /research    statute of limitations   ") == ResearchTask(query="statute of limitations")


def test_quoted_clause_keeps_internal_whitespace() -> None:
    task = parse_command('/agent find_clause "  force   majeure " in doc-7')
    assert task == FindClauseTask(clause="  force   majeure ", doc_id="doc-7")


def test_specific_agent_pattern_wins_over_generic_shape() -> None:
    task = parse_command('/agent find_clause "governing law" in doc-1')
    assert isinstance(task, FindClauseTask)
    assert not isinstance(task, UnknownAgentTask)


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        "What is a tolling agreement?",
        "research Miranda rights",
        "/",
        "/research",
        "/research    ",
        "/agent",
        "/agent draft",
        "/agent help me draft a letter",
        "/agent compare",
        '/agent find_clause "unterminated in doc-1',
        "/agent find_clause termination in doc-1",
        '/agent find_clause "" in doc-1',
        '/agent find_clause "termination" within doc-1',
        "/agent flag_privileged_terms on doc-1",
        "/agent rewrite",
        "/agent explain_term",
        '/agent explain_term "estoppel',
        '/agent explain_term "estoppel" under Texas law',
        '/use "Engagement Letter',
        "/use",
        "/unknown do something",
        "/123",
    ],
)
def test_plain_chat_and_malformed_commands_return_none(text) -> None:
    assert parse_command(text) is None


def test_non_string_input_returns_none() -> None:
    assert parse_command(None) is None
