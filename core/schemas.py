# core/schemas.py

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.errors import ErrorKind


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SchemaValidationError(ValueError):
    """Raised when a schema validation fails."""
    pass


# --- Background tasks ---
class TaskStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not TaskStatus.RUNNING


class BackgroundTask(BaseModel):
    """
    Displayable record of one in-flight operation:
      – id: caller-unique identifier
      – status: running, then exactly one terminal status
      – progress: percentage in [0, 100]
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(..., min_length=1)
    description: str = ""
    status: TaskStatus = TaskStatus.RUNNING
    progress: int = Field(default=0, ge=0, le=100)
    created_at: datetime = Field(default_factory=utc_now)


# --- Conversation state ---
class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    ERROR = "error"


class Conversation(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str = "New Chat"
    case_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Message(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    role: MessageRole
    content: str = ""
    timestamp: datetime = Field(default_factory=utc_now)
    conversation_id: Optional[str] = None
    document_context: Optional[List[str]] = None
    is_streaming: bool = False

    def append_chunk(self, chunk: str) -> None:
        """Grow a streaming placeholder in place."""
        if not self.is_streaming:
            raise SchemaValidationError(f"Message {self.id} is frozen and cannot be extended.")
        self.content += chunk

    def freeze(self) -> None:
        self.is_streaming = False


class Document(BaseModel):
    id: str
    title: str = ""
    text: str = ""
    case_id: Optional[str] = None


class Template(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    content: str = ""


# --- Responses ---
class SourceInfo(BaseModel):
    title: str
    url: str


class AgentResponse(BaseModel):
    """
    Normalized output of any agent handler:
      – content: accumulated text, the canonical result
      – sources: links the answer cited, if any
      – streamed: whether the completion service streamed the result
    """

    content: str = Field(..., description="Full text produced by the agent.")
    sources: List[SourceInfo] = Field(default_factory=list)
    streamed: bool = True


class DispatcherAction(str, Enum):
    SHOW_TEMPLATE_MODAL = "show_template_modal"


class DispatcherResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    success: bool
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    action: Optional[DispatcherAction] = None
    template_id: Optional[str] = None
    new_conversation_id: Optional[str] = None
    sources: Optional[List[SourceInfo]] = None
    content: Optional[str] = None
    failed_document_ids: List[str] = Field(default_factory=list)

    @field_validator("error")
    @classmethod
    def error_must_not_be_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise SchemaValidationError("`error` must not be blank when set.")
        return v

    @model_validator(mode="after")
    def failure_carries_error(self):
        if not self.success and self.error is None:
            raise SchemaValidationError("A failed response must carry an `error`.")
        return self

    @classmethod
    def failure(cls, error: str, kind: ErrorKind = ErrorKind.UPSTREAM_FAILURE, **extra) -> "DispatcherResponse":
        return cls(success=False, error=error or "Unknown error", error_kind=kind, **extra)
