from typing import Annotated, ClassVar, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class BaseTask(BaseModel):
    """Parsed representation of one user command.

    The class attributes describe what the dispatcher has to guarantee before
    the matching handler runs.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    requires_history: ClassVar[bool] = True
    requires_case: ClassVar[bool] = False
    requires_document: ClassVar[bool] = False  # single target, may fall back to the active document
    min_documents: ClassVar[int] = 0
    uses_selection: ClassVar[bool] = False  # filled from the editor selection before dispatch


class ResearchTask(BaseTask):
    type: Literal["research"] = "research"
    query: str


class CaseSearchTask(BaseTask):
    type: Literal["case_search"] = "case_search"
    query: str

    requires_case: ClassVar[bool] = True
    min_documents: ClassVar[int] = 1


class DraftTask(BaseTask):
    type: Literal["agent.draft"] = "agent.draft"
    instructions: str

    requires_case: ClassVar[bool] = True


class CompareTask(BaseTask):
    type: Literal["agent.compare"] = "agent.compare"
    doc_ids: List[str]

    requires_case: ClassVar[bool] = True
    min_documents: ClassVar[int] = 2


class FindClauseTask(BaseTask):
    type: Literal["agent.find_clause"] = "agent.find_clause"
    clause: str
    doc_id: Optional[str] = None

    requires_document: ClassVar[bool] = True
    min_documents: ClassVar[int] = 1


class FlagPrivilegedTermsTask(BaseTask):
    type: Literal["agent.flag_privileged_terms"] = "agent.flag_privileged_terms"
    doc_id: Optional[str] = None

    requires_case: ClassVar[bool] = True
    requires_document: ClassVar[bool] = True
    min_documents: ClassVar[int] = 1


class GenerateTimelineTask(BaseTask):
    type: Literal["agent.generate_timeline"] = "agent.generate_timeline"
    doc_id: Optional[str] = None

    requires_document: ClassVar[bool] = True
    min_documents: ClassVar[int] = 1


class ExplainTermTask(BaseTask):
    type: Literal["agent.explain_term"] = "agent.explain_term"
    term: str
    jurisdiction: Optional[str] = None


class RewriteTask(BaseTask):
    type: Literal["agent.rewrite"] = "agent.rewrite"
    instructions: str
    selected_text: str = ""
    doc_id: Optional[str] = None

    requires_case: ClassVar[bool] = True
    requires_document: ClassVar[bool] = True
    uses_selection: ClassVar[bool] = True


class SummarizeTask(BaseTask):
    type: Literal["agent.summarize"] = "agent.summarize"
    instructions: Optional[str] = None
    selected_text: str = ""
    doc_id: Optional[str] = None

    requires_case: ClassVar[bool] = True
    requires_document: ClassVar[bool] = True
    uses_selection: ClassVar[bool] = True


class UnknownAgentTask(BaseTask):
    """`/agent <name>` with a name no handler implements."""

    type: Literal["agent.unknown"] = "agent.unknown"
    agent: str
    arguments: str = ""

    requires_history: ClassVar[bool] = False


class UseTemplateTask(BaseTask):
    type: Literal["use_template"] = "use_template"
    template_name: str

    requires_history: ClassVar[bool] = False


class HelpTask(BaseTask):
    type: Literal["help"] = "help"

    requires_history: ClassVar[bool] = False


Task = Annotated[
    Union[
        ResearchTask,
        CaseSearchTask,
        DraftTask,
        CompareTask,
        FindClauseTask,
        FlagPrivilegedTermsTask,
        GenerateTimelineTask,
        ExplainTermTask,
        RewriteTask,
        SummarizeTask,
        UnknownAgentTask,
        UseTemplateTask,
        HelpTask,
    ],
    Field(discriminator="type"),
]

TASK_TYPES = (
    ResearchTask,
    CaseSearchTask,
    DraftTask,
    CompareTask,
    FindClauseTask,
    FlagPrivilegedTermsTask,
    GenerateTimelineTask,
    ExplainTermTask,
    RewriteTask,
    SummarizeTask,
    UnknownAgentTask,
    UseTemplateTask,
    HelpTask,
)
