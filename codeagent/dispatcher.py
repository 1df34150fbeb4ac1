"""Route tool calls to capabilities. ``dispatch`` always returns a Result."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

from codeagent.capabilities import Capabilities
from codeagent.event_log import EventLog
from codeagent.log import logger
from codeagent.registry import TOOL_SPECS, ToolSpec
from codeagent.safety import blocking_pattern
from codeagent.types import MailboxDraft, Result, ToolCall

BLOCKED_ERROR = "Command blocked for safety"
MAILBOX_UNAVAILABLE_ERROR = "Gmail tools not available"
UNKNOWN_TOOL_ERROR = "Unknown tool"

DEFAULT_MAX_RESULTS = 10

Handler = Callable[[ToolCall], Awaitable[Result]]


def to_int(token: str | None, default: int) -> int:
    """Parse ``token`` as an integer, falling back to ``default``."""
    if token is None:
        return default
    try:
        return int(token.strip())
    except ValueError:
        return default


def recipients(raw: str) -> list[str]:
    return [addr.strip() for addr in raw.split(";") if addr.strip()]


def _missing_argument(spec: ToolSpec, call: ToolCall) -> str | None:
    for index, param in enumerate(spec.params):
        if not param.required:
            continue
        if index >= len(call.arguments):
            return param.name
        if not param.allow_empty and not call.arguments[index].strip():
            return param.name
    return None


class Dispatcher:
    """Maps each catalog name to one capability operation."""

    def __init__(
        self,
        capabilities: Capabilities,
        default_timeout: int = 0,
        event_log: EventLog | None = None,
    ) -> None:
        self.capabilities = capabilities
        self._default_timeout = default_timeout
        self._event_log = event_log
        self._handlers: dict[str, Handler] = {
            "readFile": self._read_file,
            "writeFile": self._write_file,
            "editFile": self._edit_file,
            "listFiles": self._list_files,
            "executeCommand": self._execute_command,
            "listEmails": self._list_emails,
            "getEmail": self._get_email,
            "sendEmail": self._send_email,
            "createDraft": self._create_draft,
            "searchEmails": self._search_emails,
            "getUnreadEmails": self._get_unread_emails,
            "markAsRead": self._mark_as_read,
            "deleteEmail": self._delete_email,
            "getEmailContext": self._get_email_context,
            "analyzeEmailThread": self._analyze_email_thread,
        }

    async def dispatch(self, call: ToolCall) -> Result:
        spec = TOOL_SPECS.get(call.name)
        handler = self._handlers.get(call.name)
        if spec is None or handler is None:
            return Result.fail(UNKNOWN_TOOL_ERROR, f"Unknown tool: {call.name}")

        if spec.capability == "mailbox" and not self.capabilities.has_mailbox:
            logger.warning(f"Mailbox tool requested without Gmail configured: {call.name}")
            return Result.fail(MAILBOX_UNAVAILABLE_ERROR, "Gmail functionality not configured")

        missing = _missing_argument(spec, call)
        if missing:
            return Result.fail(f"Missing argument: {missing}", f"Usage: {spec.signature}")

        t0 = time.monotonic()
        try:
            result = await handler(call)
        except Exception as e:
            logger.error(f"Tool {call.name} raised: {e!r}")
            result = Result.fail(str(e) or type(e).__name__, f"Failed to execute tool: {call.name}")
        if self._event_log:
            self._event_log.log_tool_call(
                tool=call.name,
                duration_ms=(time.monotonic() - t0) * 1000,
                success=result.success,
                error=(result.error or "")[:200],
            )
        return result

    # -- file --

    async def _read_file(self, call: ToolCall) -> Result:
        return await self.capabilities.files.read_file(call.arguments[0])

    async def _write_file(self, call: ToolCall) -> Result:
        return await self.capabilities.files.write_file(call.arguments[0], call.arguments[1])

    async def _edit_file(self, call: ToolCall) -> Result:
        return await self.capabilities.files.edit_file(call.arguments[0], call.arguments[1])

    async def _list_files(self, call: ToolCall) -> Result:
        return await self.capabilities.files.list_files(call.arg(0, "."))

    # -- process --

    async def _execute_command(self, call: ToolCall) -> Result:
        command = call.arguments[0]
        pattern = blocking_pattern(command)
        if pattern is not None:
            logger.warning(f"Blocked command ({pattern!r}): {command}")
            return Result.fail(BLOCKED_ERROR, f"Command blocked: {command}")
        timeout = to_int(call.arg(1), self._default_timeout)
        return await self.capabilities.commands.execute_command(command, timeout=timeout if timeout > 0 else None)

    # -- mailbox --

    async def _list_emails(self, call: ToolCall) -> Result:
        return await self.capabilities.mailbox.list_emails(
            max_results=to_int(call.arg(0), DEFAULT_MAX_RESULTS), query=call.arg(1, ""),
        )

    async def _get_email(self, call: ToolCall) -> Result:
        return await self.capabilities.mailbox.get_email(call.arguments[0])

    def _draft(self, call: ToolCall) -> MailboxDraft:
        return MailboxDraft(
            to=recipients(call.arguments[0]),
            subject=call.arguments[1],
            body=call.arguments[2],
        )

    async def _send_email(self, call: ToolCall) -> Result:
        return await self.capabilities.mailbox.send_email(self._draft(call))

    async def _create_draft(self, call: ToolCall) -> Result:
        return await self.capabilities.mailbox.create_draft(self._draft(call))

    async def _search_emails(self, call: ToolCall) -> Result:
        return await self.capabilities.mailbox.search_emails(
            call.arguments[0], to_int(call.arg(1), DEFAULT_MAX_RESULTS),
        )

    async def _get_unread_emails(self, call: ToolCall) -> Result:
        return await self.capabilities.mailbox.get_unread_emails(to_int(call.arg(0), DEFAULT_MAX_RESULTS))

    async def _mark_as_read(self, call: ToolCall) -> Result:
        return await self.capabilities.mailbox.mark_as_read(call.arguments[0])

    async def _delete_email(self, call: ToolCall) -> Result:
        return await self.capabilities.mailbox.delete_email(call.arguments[0])

    async def _get_email_context(self, call: ToolCall) -> Result:
        return await self.capabilities.mailbox.get_email_context(call.arguments[0])

    async def _analyze_email_thread(self, call: ToolCall) -> Result:
        return await self.capabilities.mailbox.analyze_email_thread(call.arguments[0])
