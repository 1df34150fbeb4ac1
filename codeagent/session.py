"""Conversation context store -- append-only message log plus ambient state."""

from __future__ import annotations

from codeagent.types import AgentContext, Message, Role
from codeagent.workspace import Workspace


class ContextStore:
    """Owns the message log for one conversation.

    Messages are never mutated or removed; readers get windows or copies.
    The current directory is read from the shared Workspace, not mirrored.
    """

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace
        self._history: list[Message] = []
        self._recent_files: list[str] = []
        self._recent_commands: list[str] = []

    def __len__(self) -> int:
        return len(self._history)

    @property
    def current_directory(self) -> str:
        return str(self._workspace.cwd)

    def append(self, message: Message) -> None:
        self._history.append(message)

    def add(self, role: Role, content: str) -> Message:
        message = Message(role=role, content=content)
        self.append(message)
        return message

    def window(self, n: int, start: int = 0) -> list[Message]:
        """The last ``n`` messages at or after index ``start``, oldest first."""
        if n <= 0:
            return []
        return self._history[start:][-n:]

    def record_file(self, path: str) -> None:
        self._recent_files.append(path)

    def record_command(self, command: str) -> None:
        self._recent_commands.append(command)

    def set_current_directory(self, path: str) -> str:
        return str(self._workspace.change(path))

    def snapshot(self) -> AgentContext:
        return AgentContext(
            current_directory=self.current_directory,
            recent_files=list(self._recent_files),
            recent_commands=list(self._recent_commands),
            conversation_history=list(self._history),
        )
