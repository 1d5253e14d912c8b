# tasks/background_tasks.py
from typing import Optional
from uuid import uuid4

from core.schemas import BackgroundTask
from core.task import (
    CaseSearchTask,
    CompareTask,
    DraftTask,
    ExplainTermTask,
    FindClauseTask,
    FlagPrivilegedTermsTask,
    GenerateTimelineTask,
    ResearchTask,
    RewriteTask,
    SummarizeTask,
)


def _short(text: str, limit: int = 60) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class BackgroundTaskFactory:
    @staticmethod
    def new_id() -> str:
        return str(uuid4())

    @staticmethod
    def describe(task) -> str:
        if isinstance(task, ResearchTask):
            return f"Researching: {_short(task.query)}"
        if isinstance(task, CaseSearchTask):
            return f"Searching case documents: {_short(task.query)}"
        if isinstance(task, DraftTask):
            return "Drafting response..."
        if isinstance(task, CompareTask):
            return f"Comparing {len(task.doc_ids)} documents..."
        if isinstance(task, FindClauseTask):
            return f'Finding clause: "{_short(task.clause)}"...'
        if isinstance(task, FlagPrivilegedTermsTask):
            return "Flagging privileged terms in document..."
        if isinstance(task, GenerateTimelineTask):
            return "Generating document timeline..."
        if isinstance(task, ExplainTermTask):
            return f'Explaining term: "{_short(task.term)}"...'
        if isinstance(task, RewriteTask):
            return "Rewriting selected text..."
        if isinstance(task, SummarizeTask):
            return "Summarizing selected text..."
        return "Generating response..."

    @classmethod
    def create(cls, task, task_id: Optional[str] = None) -> BackgroundTask:
        return BackgroundTask(id=task_id or cls.new_id(), description=cls.describe(task))
