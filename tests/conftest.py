"""Shared test fixtures."""

import asyncio
from typing import List, Optional

import pytest

from core.config import Settings
from core.errors import CompletionServiceError
from core.interfaces import ICompletionClient
from core.memory_store import InMemoryStore
from core.schemas import Document, Template
from core.task_registry import BackgroundTaskRegistry, TaskMutators
from main import build_handlers
from tools.dispatcher import Dispatcher


class FakeCompletionClient(ICompletionClient):
    """Scripted completion service that records every request."""

    def __init__(self, chunks=None, result="single-shot answer", error=None, fail_after=None):
        self.chunks = list(chunks if chunks is not None else ["Hel", "lo, ", "world"])
        self.result = result
        self.error = error
        self.fail_after = fail_after
        self.calls = []

    async def create_completion(self, messages, *, stream=False):
        self.calls.append({"messages": list(messages), "stream": stream})
        if self.error is not None:
            raise self.error
        if stream:
            return self._stream()
        return self.result

    async def _stream(self):
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i == self.fail_after:
                raise CompletionServiceError("stream interrupted")
            await asyncio.sleep(0)
            yield chunk

    def prompt_text(self, call_index: int = -1) -> str:
        return "\n".join(m.content for m in self.calls[call_index]["messages"])


class CountingStore(InMemoryStore):
    """In-memory store that counts conversation creations and yields while creating."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.create_calls = 0

    async def create_conversation(self, title="New Chat", case_id=None):
        self.create_calls += 1
        await asyncio.sleep(0.01)
        return await super().create_conversation(title, case_id)


class SinkRecorder:
    def __init__(self):
        self.chunks: List[str] = []

    def __call__(self, chunk: str) -> None:
        self.chunks.append(chunk)

    @property
    def text(self) -> str:
        return "".join(self.chunks)


@pytest.fixture()
def settings():
    return Settings(log_file=None)


@pytest.fixture()
def store():
    return CountingStore(
        documents=[
            Document(id="doc-1", title="Lease.txt", text="The lease term is 24 months.", case_id="case-1"),
            Document(id="doc-2", title="Amendment.txt", text="The term is extended to 36 months.", case_id="case-1"),
            Document(id="doc-3", title="Email.txt", text="On 2023-04-01 the tenant gave notice.", case_id="case-1"),
        ],
        templates=[Template(id="tpl-1", name="Engagement Letter", content="Dear {{client_name}},")],
    )


@pytest.fixture()
def registry():
    return BackgroundTaskRegistry()


@pytest.fixture()
def client():
    return FakeCompletionClient()


@pytest.fixture()
def sink():
    return SinkRecorder()


def make_dispatcher(client, store, registry, settings: Optional[Settings] = None) -> Dispatcher:
    return Dispatcher(
        handlers=build_handlers(client),
        store=store,
        mutators=TaskMutators.for_registry(registry),
        settings=settings or Settings(log_file=None),
    )


@pytest.fixture()
def dispatcher(client, store, registry, settings):
    return make_dispatcher(client, store, registry, settings)
