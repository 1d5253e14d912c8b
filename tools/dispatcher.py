import asyncio
import functools
import logging
from typing import Dict, List, Optional, Sequence, Tuple, Union

from agents.base_agent import AgentRequest, BaseAgentHandler, ChunkSink
from core.cancellation import CancellationToken
from core.config import Settings
from core.errors import (
    DispatchError,
    ErrorKind,
    MissingPreconditionError,
    PartialResolutionError,
    PersistenceError,
    UnimplementedCommandError,
    UpstreamServiceError,
)
from core.interfaces import IPersistenceClient
from core.schemas import DispatcherAction, DispatcherResponse, Message, MessageRole, TaskStatus
from core.task import (
    TASK_TYPES,
    CaseSearchTask,
    CompareTask,
    DraftTask,
    HelpTask,
    Task,
    UnknownAgentTask,
    UseTemplateTask,
)
from core.task_registry import TaskMutators
from tasks.background_tasks import BackgroundTaskFactory
from tools.command_parser import parse_command
from tools.context_aggregator import AggregatedContext, ContextAggregator

logger = logging.getLogger(__name__)

# Handler key for plain chat (no Task)
CHAT = "chat"

# Task types the dispatcher answers itself or reports as unimplemented
_NO_HANDLER_TYPES = {"use_template", "agent.unknown"}

DocumentContext = Union[None, str, Sequence[str]]


def _as_id_list(document_context: DocumentContext) -> List[str]:
    if not document_context:
        return []
    if isinstance(document_context, str):
        return [document_context]
    return [d for d in document_context if d]


def _split_last_turn(history: List[Message], raw_message: str) -> Optional[Tuple[List[Message], List[Message]]]:
    """Split persisted rows around the last user message, if it is `raw_message`.

    Returns (rows before it, rows after it), or None when there is nothing to re-answer.
    """
    for i in range(len(history) - 1, -1, -1):
        if history[i].role is MessageRole.USER:
            if history[i].content != raw_message:
                return None
            return history[:i], history[i + 1:]
    return None


def _command_label(task: Optional[Task]) -> str:
    if task is None:
        return "chat"
    if task.type.startswith("agent."):
        return "/agent " + task.type.split(".", 1)[1]
    return "/" + task.type.replace("_", "-")


class Dispatcher:
    """
    Runs one user turn: preconditions, conversation, background task,
    context, handler, and a normalized DispatcherResponse.

    Registry mutators are injected so the dispatcher never reaches for
    global UI state.
    """

    def __init__(
        self,
        handlers: Dict[str, BaseAgentHandler],
        store: IPersistenceClient,
        mutators: TaskMutators,
        aggregator: Optional[ContextAggregator] = None,
        settings: Optional[Settings] = None,
    ):
        self.handlers = dict(handlers)
        self.store = store
        self.mutators = mutators
        self.aggregator = aggregator or ContextAggregator(store)
        self.settings = settings or Settings()

        # case id -> in-flight conversation creation
        self._pending_conversations: Dict[Optional[str], "asyncio.Future[str]"] = {}

        missing = [t.model_fields["type"].default for t in TASK_TYPES]
        missing = [t for t in missing if t not in self.handlers and t not in _NO_HANDLER_TYPES]
        if CHAT not in self.handlers:
            missing.append(CHAT)
        if missing:
            logger.warning("No handler registered for: %s", ", ".join(missing))

    # --- Conversation ---
    async def _ensure_conversation(self, conversation_id: Optional[str], case_id: Optional[str]) -> str:
        if conversation_id:
            return conversation_id
        # Concurrent turns missing a conversation for the same case share one creation
        pending = self._pending_conversations.get(case_id)
        if pending is None:
            pending = asyncio.ensure_future(self._create_conversation(case_id))
            self._pending_conversations[case_id] = pending
        return await asyncio.shield(pending)

    async def _create_conversation(self, case_id: Optional[str]) -> str:
        try:
            conversation = await self._persist(
                self.store.create_conversation("New Chat", case_id), "start the conversation"
            )
        finally:
            self._pending_conversations.pop(case_id, None)
        logger.info("Created conversation %s (case=%s)", conversation.id, case_id)
        return conversation.id

    @staticmethod
    async def _persist(awaitable, action: str):
        try:
            return await awaitable
        except PersistenceError:
            raise
        except Exception as e:
            logger.error("Failed to %s: %s", action, e, exc_info=True)
            raise PersistenceError(f"Failed to {action}: {e}", cause=e) from e

    # --- Entry points ---
    async def dispatch_text(self, raw_message: str, sink: ChunkSink, **kwargs) -> DispatcherResponse:
        return await self.dispatch(parse_command(raw_message), raw_message, sink, **kwargs)

    async def dispatch(
        self,
        task: Optional[Task],
        raw_message: str,
        sink: ChunkSink,
        *,
        conversation_id: Optional[str] = None,
        case_id: Optional[str] = None,
        document_context: DocumentContext = None,
        cancel_token: Optional[CancellationToken] = None,
        regenerate: bool = False,
    ) -> DispatcherResponse:
        """
        Dispatch one parsed task.

        Args:
            task: Parsed task, or None for plain chat
            raw_message: The user's original text
            sink: Receives every generated chunk, and the error text on failure
            conversation_id: Existing conversation, if any
            case_id: Active case, if any
            document_context: Currently open document id(s)
            cancel_token: Stop signal forwarded to the handler
            regenerate: Re-answer the last persisted user message instead of adding a new one

        Returns:
            DispatcherResponse; failures never raise past this method
        """
        label = _command_label(task)
        logger.info("Dispatching %s (case=%s, conversation=%s)", label, case_id, conversation_id)

        if isinstance(task, UseTemplateTask):
            return await self._use_template(task, sink)

        doc_ids = _as_id_list(document_context)
        try:
            handler, target_ids = self._plan(task, label, case_id, doc_ids)
        except DispatchError as e:
            return self._fail(e, sink)

        if isinstance(task, HelpTask):
            response = await handler.run(AgentRequest(task=task, message=raw_message), sink)
            return DispatcherResponse(success=True, content=response.content)

        requires_history = task is None or task.requires_history
        new_conversation_id = None
        history: List[Message] = []
        replaced: List[Message] = []
        if requires_history:
            try:
                entry_id = conversation_id
                conversation_id = await self._ensure_conversation(conversation_id, case_id)
                if entry_id is None:
                    new_conversation_id = conversation_id
                if task is None or regenerate:
                    history = await self._persist(self.store.get_messages(conversation_id), "load history")
                last_turn = _split_last_turn(history, raw_message) if regenerate else None
                if last_turn is not None:
                    history, replaced = last_turn
                else:
                    await self._persist(
                        self.store.add_message(conversation_id, MessageRole.USER, raw_message, doc_ids or None),
                        "save the message",
                    )
            except DispatchError as e:
                return self._fail(e, sink, new_conversation_id=new_conversation_id)

        background = BackgroundTaskFactory.create(task)
        task_id = background.id
        self.mutators.add(background)
        progress = functools.partial(self.mutators.update, task_id)

        context = AggregatedContext()
        try:
            context = await self._resolve_context(task, target_ids, case_id)
            request = AgentRequest(
                task=task,
                message=raw_message,
                context=context,
                history=history,
                case_id=case_id,
                conversation_id=conversation_id,
            )
            result = await handler.run(request, sink, progress=progress, cancel_token=cancel_token)
            if requires_history:
                await self._persist(
                    self.store.add_message(conversation_id, MessageRole.ASSISTANT, result.content),
                    "save the response",
                )
                for stale in replaced:
                    await self._persist(
                        self.store.delete_message(conversation_id, stale.id), "drop the replaced response"
                    )
                await self._persist(self.store.touch_conversation(conversation_id), "update the conversation")
        except asyncio.CancelledError:
            self._finalize(task_id, TaskStatus.ERROR, f"{background.description} cancelled")
            raise
        except Exception as e:
            error = e
            if not isinstance(error, DispatchError):
                logger.error("Unexpected failure while running %s: %s", label, e, exc_info=True)
                error = UpstreamServiceError(f"Unexpected error: {e}", cause=e)
            failed_ids = getattr(error, "failed_ids", None) or context.failed_ids
            self._finalize(task_id, TaskStatus.ERROR, f"{background.description} failed: {error}")
            return self._fail(
                error, sink, new_conversation_id=new_conversation_id, failed_document_ids=failed_ids
            )

        self._finalize(task_id, TaskStatus.SUCCESS, f"{background.description} complete")
        logger.info("%s finished (%d chars)", label, len(result.content))
        return DispatcherResponse(
            success=True,
            content=result.content,
            sources=result.sources or None,
            new_conversation_id=new_conversation_id,
            failed_document_ids=context.failed_ids,
        )

    # --- Steps ---
    def _plan(
        self, task: Optional[Task], label: str, case_id: Optional[str], doc_ids: List[str]
    ) -> Tuple[BaseAgentHandler, List[str]]:
        """Pick the handler and check every precondition that needs no network call."""
        if isinstance(task, UnknownAgentTask):
            raise UnimplementedCommandError(f"Unknown agent command: {task.agent}")

        key = CHAT if task is None else task.type
        handler = self.handlers.get(key)
        if handler is None:
            raise UnimplementedCommandError(f"{label} is not implemented.")
        if task is None:
            return handler, doc_ids

        if task.requires_case and not case_id:
            raise MissingPreconditionError(f"Case ID is required for {label}.")

        if task.uses_selection and not task.selected_text.strip():
            raise MissingPreconditionError(f"Selected text is required for {label}.")

        if task.requires_document:
            target = task.doc_id or (doc_ids[0] if doc_ids else None)
            if not target:
                raise MissingPreconditionError(f"A document must be open or specified for {label}.")
            return handler, [target]

        if isinstance(task, CompareTask):
            unique_ids = list(dict.fromkeys(task.doc_ids))
            if len(unique_ids) < task.min_documents:
                raise MissingPreconditionError(
                    f"At least {task.min_documents} document IDs are required for {label}."
                )
            return handler, unique_ids

        if isinstance(task, DraftTask):
            if not task.instructions.strip():
                raise MissingPreconditionError(f"Instructions are required for {label}.")
            return handler, doc_ids

        return handler, []

    async def _resolve_context(
        self, task: Optional[Task], doc_ids: List[str], case_id: Optional[str]
    ) -> AggregatedContext:
        if isinstance(task, CaseSearchTask):
            documents = await self._persist(self.store.list_case_documents(case_id), "list case documents")
            doc_ids = [d.id for d in documents]
            if not doc_ids:
                raise MissingPreconditionError(f"Case {case_id} has no documents to search.")

        context = await self.aggregator.resolve(doc_ids) if doc_ids else AggregatedContext()

        minimum = task.min_documents if task is not None else 0
        if context.resolved_count < minimum:
            if minimum == 1 and len(doc_ids) == 1:
                message = f"Could not load document {doc_ids[0]}."
            else:
                message = f"Could not load context for at least {minimum} documents."
            raise PartialResolutionError(message, failed_ids=context.failed_ids)
        return context

    async def _use_template(self, task: UseTemplateTask, sink: ChunkSink) -> DispatcherResponse:
        try:
            templates = await self._persist(self.store.list_templates(), "load templates")
        except DispatchError as e:
            return self._fail(e, sink)

        wanted = task.template_name.lower()
        found = next((t for t in templates if t.name.lower() == wanted), None)
        if found is None:
            # shown as a plain notice rather than an error line
            return self._fail(
                MissingPreconditionError(f'Template "{task.template_name}" not found.'), sink, prefix=""
            )

        logger.info("Template found: %s (ID: %s)", found.name, found.id)
        return DispatcherResponse(
            success=True, action=DispatcherAction.SHOW_TEMPLATE_MODAL, template_id=found.id
        )

    # --- Outcome ---
    def _finalize(self, task_id: str, status: TaskStatus, description: str) -> None:
        update = {"status": status, "description": description}
        if status is TaskStatus.SUCCESS:
            update["progress"] = 100
        self.mutators.update(task_id, **update)

        delay = self.settings.success_task_ttl if status is TaskStatus.SUCCESS else self.settings.error_task_ttl
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.mutators.remove(task_id)
            return
        loop.call_later(delay, self.mutators.remove, task_id)

    @staticmethod
    def _fail(error: DispatchError, sink: ChunkSink, prefix: str = "Error: ", **extra) -> DispatcherResponse:
        message = str(error) or error.__class__.__name__
        kind = getattr(error, "kind", ErrorKind.UPSTREAM_FAILURE)
        logger.warning("Turn failed (%s): %s", kind.value, message)
        # A stopped turn forwards nothing more to the sink
        if kind is not ErrorKind.CANCELLED:
            sink(f"{prefix}{message}")
        return DispatcherResponse.failure(message, kind, **extra)
