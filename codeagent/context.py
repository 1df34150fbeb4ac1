"""Prompt assembly -- system preamble plus the windowed conversation."""

from __future__ import annotations

from typing import Any

from codeagent.capabilities import Capabilities
from codeagent.config import AgentConfig
from codeagent.registry import available_specs
from codeagent.session import ContextStore
from codeagent.types import FileEntry

_MAILBOX_GUIDANCE = (
    "When working with emails, consider threading, sender/recipient relationships, "
    "summaries, action items and attachments."
)


class ContextBuilder:
    """Assemble the model message list for one turn."""

    def __init__(self, config: AgentConfig, capabilities: Capabilities) -> None:
        self.config = config
        self.capabilities = capabilities

    async def build(self, store: ContextStore, start: int = 0) -> list[dict[str, Any]]:
        system_msg = {"role": "system", "content": await self.build_system_prompt()}
        history = store.window(self.config.history_window, start=start)
        return [system_msg] + [m.to_llm() for m in history]

    async def build_system_prompt(self) -> str:
        mailbox = self.capabilities.has_mailbox
        sections: list[str] = []

        abilities = [
            "1. Read, write, and edit files",
            "2. Execute bash commands",
            "3. Help with coding tasks and debugging",
        ]
        if mailbox:
            abilities.append("4. Read and write emails via the Gmail API")
        sections.append(
            f"You are {self.config.name}, a helpful coding assistant. You can:\n" + "\n".join(abilities)
        )

        sections.append(
            f"Current directory: {self.capabilities.workspace.cwd}\n"
            f"Recent files:\n{await self._file_listing()}"
        )

        tool_lines = [f"- {s.signature}: {s.description}" for s in available_specs(mailbox)]
        sections.append(
            "Available tools (call them as name(arg1, arg2)):\n" + "\n".join(tool_lines)
        )
        if mailbox:
            sections.append(_MAILBOX_GUIDANCE)

        sections.append(
            "Always be helpful, explain your actions, and make sure commands are safe before executing them."
        )
        return "\n\n".join(sections)

    async def _file_listing(self) -> str:
        listed = await self.capabilities.files.list_files(".")
        if not listed.success:
            return "(unavailable)"
        entries: list[FileEntry] = listed.data[: self.config.recent_files_in_prompt]
        if not entries:
            return "(empty directory)"
        return "\n".join(f"{'[DIR]' if e.is_directory else '[FILE]'} {e.name}" for e in entries)
