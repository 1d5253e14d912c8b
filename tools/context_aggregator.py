import asyncio
import logging
from typing import Iterable, List

from pydantic import BaseModel, Field

from core.interfaces import IPersistenceClient

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n\n---\n\n"


class AggregatedContext(BaseModel):
    text: str = ""
    resolved_ids: List[str] = Field(default_factory=list)
    failed_ids: List[str] = Field(default_factory=list)

    @property
    def resolved_count(self) -> int:
        return len(self.resolved_ids)


class ContextAggregator:
    """Resolves document ids to extracted text, best effort and concurrently."""

    def __init__(self, store: IPersistenceClient):
        self.store = store

    async def resolve(self, doc_ids: Iterable[str]) -> AggregatedContext:
        unique_ids = list(dict.fromkeys(d for d in doc_ids if d))
        if not unique_ids:
            return AggregatedContext()

        results = await asyncio.gather(
            *(self.store.get_document_text(doc_id) for doc_id in unique_ids),
            return_exceptions=True,
        )

        sections, resolved, failed = [], [], []
        for doc_id, result in zip(unique_ids, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning("Could not load context for document %s: %s", doc_id, result)
                failed.append(doc_id)
                continue
            resolved.append(doc_id)
            sections.append(f"Document {doc_id}:\n{result}")

        if failed:
            logger.info("Resolved %d of %d documents (failed: %s)", len(resolved), len(unique_ids), ", ".join(failed))
        return AggregatedContext(
            text=SECTION_SEPARATOR.join(sections),
            resolved_ids=resolved,
            failed_ids=failed,
        )
