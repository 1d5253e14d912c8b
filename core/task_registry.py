import logging
import threading
from typing import Callable, Dict, List, NamedTuple, Optional

from core.errors import DuplicateTaskError
from core.schemas import BackgroundTask, TaskStatus

logger = logging.getLogger(__name__)


class BackgroundTaskRegistry:
    """
    Process-lifetime store of background task records.

    Every mutation is keyed by task id, so concurrent turns can add, patch
    and remove their own records without overwriting each other.
    """

    def __init__(self):
        self._tasks: Dict[str, BackgroundTask] = {}
        self._lock = threading.Lock()

    def add(self, task: BackgroundTask) -> None:
        with self._lock:
            if task.id in self._tasks:
                raise DuplicateTaskError(f"Background task {task.id!r} already registered")
            self._tasks[task.id] = task.model_copy()
        logger.debug("Task %s added: %s", task.id, task.description)

    def update(
        self,
        task_id: str,
        status: Optional[TaskStatus] = None,
        progress: Optional[int] = None,
        description: Optional[str] = None,
    ) -> bool:
        """Patch a running task. Unknown and already-terminal ids are ignored.

        Returns True when the record changed.
        """
        with self._lock:
            current = self._tasks.get(task_id)
            if current is None:
                logger.debug("Ignoring update for unknown task %s", task_id)
                return False
            if current.status.is_terminal:
                logger.debug("Ignoring update for finished task %s (%s)", task_id, current.status.value)
                return False

            patch = {}
            if status is not None:
                patch["status"] = TaskStatus(status)
            if progress is not None:
                patch["progress"] = max(0, min(100, int(progress)))
            if description is not None:
                patch["description"] = description
            if not patch:
                return False
            self._tasks[task_id] = current.model_copy(update=patch)
            return True

    def remove(self, task_id: str) -> None:
        with self._lock:
            self._tasks.pop(task_id, None)

    def get(self, task_id: str) -> Optional[BackgroundTask]:
        with self._lock:
            task = self._tasks.get(task_id)
            return task.model_copy() if task else None

    def list(self) -> List[BackgroundTask]:
        with self._lock:
            return sorted((t.model_copy() for t in self._tasks.values()), key=lambda t: t.created_at)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def __contains__(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._tasks


class TaskMutators(NamedTuple):
    """The three registry mutators injected into the dispatcher."""

    add: Callable[[BackgroundTask], None]
    update: Callable[..., object]
    remove: Callable[[str], None]

    @classmethod
    def for_registry(cls, registry: BackgroundTaskRegistry) -> "TaskMutators":
        return cls(add=registry.add, update=registry.update, remove=registry.remove)
