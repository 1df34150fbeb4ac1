"""Closed tool catalog -- names, positional parameters, function schemas."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

Capability = Literal["file", "process", "mailbox"]


@dataclass(frozen=True)
class Param:
    name: str
    description: str
    type: Literal["string", "integer"] = "string"
    required: bool = True
    allow_empty: bool = False


@dataclass(frozen=True)
class ToolSpec:
    """A tool the model may call. Parameter order defines positional order."""

    name: str
    description: str
    capability: Capability
    params: tuple[Param, ...] = field(default_factory=tuple)

    @property
    def signature(self) -> str:
        return f"{self.name}({', '.join(p.name for p in self.params)})"

    def to_schema(self) -> dict[str, Any]:
        """Convert to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {
                        p.name: {"type": p.type, "description": p.description} for p in self.params
                    },
                    "required": [p.name for p in self.params if p.required],
                },
            },
        }


_MESSAGE_ID = Param("messageId", "Gmail message id")
_MAX_RESULTS = Param("maxResults", "Maximum number of messages", "integer", required=False)

TOOL_SPECS: dict[str, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec("readFile", "Read the contents of a file", "file",
                 (Param("filePath", "Path relative to the current directory"),)),
        ToolSpec("writeFile", "Write content to a file, creating directories as needed", "file",
                 (Param("filePath", "Path relative to the current directory"),
                  Param("content", "Full file content", allow_empty=True))),
        ToolSpec("editFile", "Replace the content of an existing file", "file",
                 (Param("filePath", "Path relative to the current directory"),
                  Param("newContent", "Full new file content", allow_empty=True))),
        ToolSpec("listFiles", "List files in a directory", "file",
                 (Param("directory", "Directory to list", required=False),)),
        ToolSpec("executeCommand", "Execute a bash command", "process",
                 (Param("command", "Shell command line"),
                  Param("timeout", "Timeout in seconds", "integer", required=False))),
        ToolSpec("listEmails", "List recent emails", "mailbox",
                 (_MAX_RESULTS, Param("query", "Gmail search query", required=False))),
        ToolSpec("getEmail", "Get specific email details", "mailbox", (_MESSAGE_ID,)),
        ToolSpec("sendEmail", "Send an email", "mailbox",
                 (Param("to", "Recipients, separated by ';'"),
                  Param("subject", "Subject line"),
                  Param("body", "Plain-text body", allow_empty=True))),
        ToolSpec("createDraft", "Create an email draft", "mailbox",
                 (Param("to", "Recipients, separated by ';'"),
                  Param("subject", "Subject line"),
                  Param("body", "Plain-text body", allow_empty=True))),
        ToolSpec("searchEmails", "Search emails", "mailbox",
                 (Param("query", "Gmail search query"), _MAX_RESULTS)),
        ToolSpec("getUnreadEmails", "Get unread emails", "mailbox", (_MAX_RESULTS,)),
        ToolSpec("markAsRead", "Mark an email as read", "mailbox", (_MESSAGE_ID,)),
        ToolSpec("deleteEmail", "Delete an email", "mailbox", (_MESSAGE_ID,)),
        ToolSpec("getEmailContext", "Get a compact summary of one email", "mailbox", (_MESSAGE_ID,)),
        ToolSpec("analyzeEmailThread", "Analyze an email thread", "mailbox",
                 (Param("threadId", "Gmail thread id"),)),
    )
}

TOOL_NAMES: frozenset[str] = frozenset(TOOL_SPECS)


def _by_capability(capability: str) -> frozenset[str]:
    return frozenset(name for name, spec in TOOL_SPECS.items() if spec.capability == capability)


FILE_TOOLS = _by_capability("file")
PROCESS_TOOLS = _by_capability("process")
MAILBOX_TOOLS = _by_capability("mailbox")


def available_specs(mailbox: bool) -> list[ToolSpec]:
    """Tools offered to the model, in catalog order."""
    return [s for s in TOOL_SPECS.values() if mailbox or s.capability != "mailbox"]


def get_definitions(mailbox: bool) -> list[dict[str, Any]]:
    return [s.to_schema() for s in available_specs(mailbox)]
