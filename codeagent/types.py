"""Core data structures -- results, calls, messages, mailbox values."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

Role = Literal["user", "assistant", "system"]


@dataclass
class Result:
    """Uniform outcome of every capability and dispatcher operation.

    ``message`` is always present. ``error`` implies failure.
    """

    success: bool
    message: str
    data: Any = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.error is not None and self.success:
            raise ValueError("Result with an error cannot be successful")

    @classmethod
    def ok(cls, message: str, data: Any = None) -> Result:
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error: str, message: str, data: Any = None) -> Result:
        return cls(success=False, message=message, data=data, error=error)


@dataclass(frozen=True)
class ToolCall:
    """One parsed tool invocation. Arguments are positional, quote-stripped strings."""

    name: str
    arguments: tuple[str, ...] = ()

    def arg(self, index: int, default: str | None = None) -> str | None:
        if index < len(self.arguments) and self.arguments[index] != "":
            return self.arguments[index]
        return default


@dataclass(frozen=True)
class Message:
    role: Role
    content: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_llm(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class AgentContext:
    """Ambient conversation state. Snapshots are copies, never live views."""

    current_directory: str
    recent_files: list[str] = field(default_factory=list)
    recent_commands: list[str] = field(default_factory=list)
    conversation_history: list[Message] = field(default_factory=list)


@dataclass
class CommandExecution:
    command: str
    output: str
    exit_code: int
    error: str | None = None


@dataclass
class FileEntry:
    name: str
    is_directory: bool
    size: int
    modified: datetime


@dataclass
class MailboxAttachment:
    filename: str
    content_type: str
    data: bytes


@dataclass
class MailboxMessage:
    id: str
    thread_id: str
    subject: str
    sender: str
    to: list[str] = field(default_factory=list)
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    body: str = ""
    snippet: str = ""
    date: datetime | None = None
    is_read: bool = True
    has_attachments: bool = False


@dataclass
class MailboxDraft:
    subject: str
    to: list[str]
    body: str
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    attachments: list[MailboxAttachment] = field(default_factory=list)
    id: str | None = None


@dataclass
class MailboxListResult:
    messages: list[MailboxMessage] = field(default_factory=list)
    next_page_token: str | None = None
    result_size_estimate: int = 0


@dataclass
class ThreadAnalysis:
    thread_id: str
    message_count: int
    participants: list[str] = field(default_factory=list)
    subjects: list[str] = field(default_factory=list)
    first_date: datetime | None = None
    last_date: datetime | None = None
    has_attachments: bool = False


@dataclass
class NativeToolCall:
    """Function call as returned by the model API, before positional conversion."""

    id: str
    name: str
    arguments: dict[str, Any]


@dataclass
class LLMResponse:
    """Model completion response."""

    content: str | None = None
    tool_calls: list[NativeToolCall] = field(default_factory=list)
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)
