"""Agent loop -- one model call per turn, then sequential tool dispatch."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any

from codeagent.config import AgentConfig
from codeagent.context import ContextBuilder
from codeagent.dispatcher import Dispatcher
from codeagent.event_log import EventLog
from codeagent.extractor import extract_calls, from_native
from codeagent.log import logger
from codeagent.provider import LLMProvider
from codeagent.registry import get_definitions
from codeagent.session import ContextStore
from codeagent.tools.exec_tool import TIMEOUT_ERROR
from codeagent.types import AgentContext, CommandExecution, Result, ToolCall

APOLOGY_TEXT = "Sorry, I encountered an error while processing your request."
EMPTY_RESPONSE_TEXT = "No response from AI"

_FILE_RECORDING_TOOLS = frozenset({"readFile", "writeFile", "editFile"})


class LoopState(str, Enum):
    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    DISPATCHING = "dispatching"


def _textual(data: Any) -> str | None:
    if isinstance(data, str):
        return data
    if isinstance(data, CommandExecution):
        return data.output
    return None


def format_results(results: list[Result], preview_chars: int = 200) -> str:
    """Numbered summary of tool results appended under the model's text."""
    if not results:
        return ""
    lines = ["", "", "Tool Results:"]
    for index, result in enumerate(results, 1):
        lines.append(f"{index}. {result.message}")
        if result.error:
            lines.append(f"   Error: {result.error}")
        text = _textual(result.data)
        if text:
            preview = text[:preview_chars] + ("..." if len(text) > preview_chars else "")
            lines.append(f"   Data: {preview}")
    return "\n".join(lines) + "\n"


class AgentLoop:
    """Idle -> AwaitingModel -> Dispatching -> Idle, one user turn at a time."""

    def __init__(
        self,
        provider: LLMProvider,
        dispatcher: Dispatcher,
        store: ContextStore,
        context_builder: ContextBuilder,
        config: AgentConfig,
        event_log: EventLog | None = None,
    ) -> None:
        self.provider = provider
        self.dispatcher = dispatcher
        self.store = store
        self.context_builder = context_builder
        self.config = config
        self._event_log = event_log
        self._state = LoopState.IDLE
        self._horizon = 0

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def has_mailbox(self) -> bool:
        return self.dispatcher.capabilities.has_mailbox

    async def process_message(self, text: str) -> str:
        """Run one turn and return the composed reply. Blank input is a no-op."""
        if not text.strip():
            return ""
        t0 = time.monotonic()
        self.store.add("user", text)
        try:
            messages = await self.context_builder.build(self.store, start=self._horizon)

            self._state = LoopState.AWAITING_MODEL
            model_text, calls, model_failed = await self._ask_model(messages)

            self._state = LoopState.DISPATCHING
            results = [await self._dispatch(call) for call in calls]
        finally:
            self._state = LoopState.IDLE

        reply = model_text + format_results(results, self.config.data_preview_chars)
        self.store.add("assistant", reply)
        if self._event_log:
            self._event_log.log_turn(
                latency_ms=(time.monotonic() - t0) * 1000,
                tool_count=len(calls),
                model_failed=model_failed,
            )
        return reply

    async def _ask_model(self, messages: list[dict[str, Any]]) -> tuple[str, list[ToolCall], bool]:
        """Return (text, calls, failed). Model failures become the apology text."""
        tools = get_definitions(self.has_mailbox) if self.config.native_tool_calls else None
        t0 = time.monotonic()
        try:
            response = await self.provider.chat(messages, tools=tools)
        except Exception as e:
            logger.error(f"Model call raised: {e!r}")
            response = None
        failed = response is None or response.finish_reason == "error"
        if self._event_log:
            self._event_log.log_llm_call(
                model=self.provider.model,
                latency_ms=(time.monotonic() - t0) * 1000,
                success=not failed,
                total_tokens=(response.usage.get("total_tokens", 0) if response else 0),
            )
        if failed:
            return APOLOGY_TEXT, [], True

        text = response.content or ""
        if response.has_tool_calls:
            calls = [from_native(tc) for tc in response.tool_calls]
        else:
            calls = extract_calls(text)
        if not text and not calls:
            text = EMPTY_RESPONSE_TEXT
        logger.debug(f"Model requested {len(calls)} tool call(s): {[c.name for c in calls]}")
        return text, calls, False

    async def _dispatch(self, call: ToolCall) -> Result:
        result = await self.dispatcher.dispatch(call)
        if call.name in _FILE_RECORDING_TOOLS and result.success:
            self.store.record_file(call.arguments[0])
        elif call.name == "executeCommand" and (
            isinstance(result.data, CommandExecution) or result.error == TIMEOUT_ERROR
        ):
            self.store.record_command(call.arguments[0])
        return result

    async def call(self, name: str, *args: Any) -> Result:
        """Dispatch a tool directly, bypassing the model."""
        return await self._dispatch(ToolCall(name=name, arguments=tuple("" if a is None else str(a) for a in args)))

    # -- direct capability access (CLI verbs) --

    async def read_file(self, path: str) -> Result:
        return await self.call("readFile", path)

    async def write_file(self, path: str, content: str) -> Result:
        return await self.call("writeFile", path, content)

    async def edit_file(self, path: str, new_content: str) -> Result:
        return await self.call("editFile", path, new_content)

    async def list_files(self, directory: str = ".") -> Result:
        return await self.call("listFiles", directory)

    async def run_command(self, command: str, timeout: int | None = None) -> Result:
        if timeout:
            return await self.call("executeCommand", command, timeout)
        return await self.call("executeCommand", command)

    async def list_emails(self, max_results: int = 10, query: str = "") -> Result:
        return await self.call("listEmails", max_results, query)

    async def get_email(self, message_id: str) -> Result:
        return await self.call("getEmail", message_id)

    async def send_email(self, to: list[str], subject: str, body: str) -> Result:
        return await self.call("sendEmail", ";".join(to), subject, body)

    async def create_draft(self, to: list[str], subject: str, body: str) -> Result:
        return await self.call("createDraft", ";".join(to), subject, body)

    async def search_emails(self, query: str, max_results: int = 10) -> Result:
        return await self.call("searchEmails", query, max_results)

    async def get_unread_emails(self, max_results: int = 10) -> Result:
        return await self.call("getUnreadEmails", max_results)

    async def mark_as_read(self, message_id: str) -> Result:
        return await self.call("markAsRead", message_id)

    async def delete_email(self, message_id: str) -> Result:
        return await self.call("deleteEmail", message_id)

    async def get_email_context(self, message_id: str) -> Result:
        return await self.call("getEmailContext", message_id)

    async def analyze_email_thread(self, thread_id: str) -> Result:
        return await self.call("analyzeEmailThread", thread_id)

    # -- context --

    def set_current_directory(self, path: str) -> Result:
        try:
            new_dir = self.store.set_current_directory(path)
        except (FileNotFoundError, NotADirectoryError) as e:
            return Result.fail(str(e), f"Failed to change directory: {path}")
        return Result.ok(f"Changed directory to: {new_dir}", new_dir)

    def clear_history(self) -> None:
        """Start future prompts after the current log end. The log itself is kept."""
        self._horizon = len(self.store)

    def get_context(self) -> AgentContext:
        return self.store.snapshot()

    def status(self) -> dict[str, Any]:
        ctx = self.store.snapshot()
        return {
            "current_directory": ctx.current_directory,
            "recent_files": ctx.recent_files[-5:],
            "recent_commands": ctx.recent_commands[-5:],
            "conversation_messages": len(ctx.conversation_history),
            "gmail_available": self.has_mailbox,
        }
