"""Interactive REPL -- built-in verbs call capabilities directly, the rest goes to the model."""

from __future__ import annotations

import asyncio
import shlex
from collections.abc import Awaitable, Callable
from typing import Any

from codeagent.agent import AgentLoop
from codeagent.types import (
    CommandExecution,
    FileEntry,
    MailboxListResult,
    MailboxMessage,
    Result,
    ThreadAnalysis,
)

RULE = "-" * 50

HELP_TEXT = """
Available commands:
  help                         Show this help message
  quit, exit                   Exit the agent
  clear                        Start a fresh conversation window
  context                      Show current context
  cd <directory>               Change current directory
  ls, list [directory]         List files
  read <file>                  Read a file
  write <file> <content>       Write content to a file
  run <command>                Execute a bash command

Email commands (Gmail API):
  emails                       List recent emails
  unread                       List unread emails
  search <query>               Search emails
  email <id>                   Get specific email
  send <to> <subject> <body>   Send email (quote multi-word subjects)
  draft <to> <subject> <body>  Create draft
  read-email <id>              Mark email as read
  delete-email <id>            Delete email
  analyze <thread-id>          Analyze email thread
  <any other message>          Chat with the agent
"""

Verb = Callable[[str], Awaitable[None]]


class Repl:
    """Reads lines, routes verbs, prints outcomes. ``handle`` returns False on quit."""

    def __init__(self, agent: AgentLoop, write: Callable[[str], Any] = print) -> None:
        self.agent = agent
        self._write = write
        self._verbs: dict[str, Verb] = {
            "help": self._help,
            "clear": self._clear,
            "context": self._context,
            "cd": self._cd,
            "ls": self._ls,
            "list": self._ls,
            "read": self._read,
            "write": self._write_file,
            "run": self._run,
            "emails": self._emails,
            "unread": self._unread,
            "search": self._search,
            "email": self._email,
            "send": self._send,
            "draft": self._draft,
            "read-email": self._read_email,
            "delete-email": self._delete_email,
            "analyze": self._analyze,
        }

    async def run(self) -> None:
        self._write(
            f"\nWelcome to {self.agent.config.name}.\n"
            'Type "help" for available commands, "quit" to exit.\n'
        )
        while True:
            try:
                line = await asyncio.to_thread(input, "> ")
            except (EOFError, KeyboardInterrupt):
                self._write("\nGoodbye!")
                return
            if not await self.handle(line):
                return

    async def handle(self, line: str) -> bool:
        text = line.strip()
        if not text:
            return True
        verb, _, rest = text.partition(" ")
        verb = verb.lower()
        rest = rest.strip()
        if verb in ("quit", "exit") and not rest:
            self._write("\nGoodbye!")
            return False
        handler = self._verbs.get(verb)
        if handler is not None:
            await handler(rest)
            return True
        self._write("\nProcessing...")
        reply = await self.agent.process_message(text)
        self._write(f"\n{reply}\n")
        return True

    # -- helpers --

    def _usage(self, usage: str) -> None:
        self._write(f"Usage: {usage}")

    def _report(self, result: Result) -> None:
        if result.success:
            self._write(f"OK: {result.message}")
        else:
            self._write(f"Error: {result.message}" + (f" ({result.error})" if result.error else ""))

    def _print_messages(self, title: str, result: Result) -> None:
        if not result.success:
            self._report(result)
            return
        listing: MailboxListResult = result.data
        self._write(f"\n{title} ({len(listing.messages)}):")
        for index, email in enumerate(listing.messages, 1):
            status = "read" if email.is_read else "new "
            self._write(f"  {index}. [{status}] {email.subject} - {email.sender}")
            self._write(f"     {email.snippet[:50]}...")

    # -- verbs --

    async def _help(self, rest: str) -> None:
        self._write(HELP_TEXT)

    async def _clear(self, rest: str) -> None:
        self.agent.clear_history()
        self._write("Conversation history cleared.")

    async def _context(self, rest: str) -> None:
        status = self.agent.status()
        self._write("\nCurrent context:")
        self._write(f"  Directory: {status['current_directory']}")
        self._write(f"  Recent files: {', '.join(status['recent_files'])}")
        self._write(f"  Recent commands: {', '.join(status['recent_commands'])}")
        self._write(f"  Conversation messages: {status['conversation_messages']}")
        self._write(f"  Gmail available: {'yes' if status['gmail_available'] else 'no'}")

    async def _cd(self, rest: str) -> None:
        if not rest:
            return self._usage("cd <directory>")
        self._report(self.agent.set_current_directory(rest))

    async def _ls(self, rest: str) -> None:
        result = await self.agent.list_files(rest or ".")
        if not result.success:
            return self._report(result)
        entries: list[FileEntry] = result.data
        self._write(f"\nFiles in {rest or 'current directory'}:")
        for entry in entries:
            self._write(f"  {'[DIR] ' if entry.is_directory else '[FILE]'} {entry.name}")

    async def _read(self, rest: str) -> None:
        if not rest:
            return self._usage("read <file>")
        result = await self.agent.read_file(rest)
        if not result.success:
            return self._report(result)
        self._write(f"\nContents of {rest}:\n{RULE}\n{result.data}\n{RULE}")

    async def _write_file(self, rest: str) -> None:
        path, _, content = rest.partition(" ")
        if not path or not content:
            return self._usage("write <file> <content>")
        self._report(await self.agent.write_file(path, content))

    async def _run(self, rest: str) -> None:
        if not rest:
            return self._usage("run <command>")
        self._write(f"Executing: {rest}")
        result = await self.agent.run_command(rest)
        execution = result.data
        if not isinstance(execution, CommandExecution):
            return self._report(result)
        self._write(f"\nOutput:\n{RULE}\n{execution.output}")
        if execution.error:
            self._write(f"\nstderr:\n{execution.error}")
        self._write(RULE)
        if not result.success:
            self._report(result)

    async def _emails(self, rest: str) -> None:
        self._print_messages("Recent emails", await self.agent.list_emails())

    async def _unread(self, rest: str) -> None:
        self._print_messages("Unread emails", await self.agent.get_unread_emails())

    async def _search(self, rest: str) -> None:
        if not rest:
            return self._usage("search <query>")
        self._print_messages("Search results", await self.agent.search_emails(rest))

    async def _email(self, rest: str) -> None:
        if not rest:
            return self._usage("email <message-id>")
        result = await self.agent.get_email(rest)
        if not result.success:
            return self._report(result)
        email: MailboxMessage = result.data
        self._write(
            f"\nSubject: {email.subject}\nFrom: {email.sender}\nTo: {', '.join(email.to)}\n"
            f"Date: {email.date}\nRead: {'yes' if email.is_read else 'no'}\n"
            f"Attachments: {'yes' if email.has_attachments else 'no'}\n{RULE}\n{email.body}\n{RULE}"
        )

    def _split_message(self, rest: str) -> tuple[list[str], str, str] | None:
        try:
            parts = shlex.split(rest)
        except ValueError:
            parts = rest.split()
        if len(parts) < 3:
            return None
        return [a for a in parts[0].split(";") if a], parts[1], " ".join(parts[2:])

    async def _send(self, rest: str) -> None:
        parsed = self._split_message(rest)
        if parsed is None:
            return self._usage("send <to> <subject> <body>")
        to, subject, body = parsed
        self._write(f"Sending email to: {', '.join(to)}")
        self._report(await self.agent.send_email(to, subject, body))

    async def _draft(self, rest: str) -> None:
        parsed = self._split_message(rest)
        if parsed is None:
            return self._usage("draft <to> <subject> <body>")
        to, subject, body = parsed
        self._write(f"Creating draft for: {', '.join(to)}")
        self._report(await self.agent.create_draft(to, subject, body))

    async def _read_email(self, rest: str) -> None:
        if not rest:
            return self._usage("read-email <message-id>")
        self._report(await self.agent.mark_as_read(rest))

    async def _delete_email(self, rest: str) -> None:
        if not rest:
            return self._usage("delete-email <message-id>")
        self._report(await self.agent.delete_email(rest))

    async def _analyze(self, rest: str) -> None:
        if not rest:
            return self._usage("analyze <thread-id>")
        result = await self.agent.analyze_email_thread(rest)
        if not result.success:
            return self._report(result)
        analysis: ThreadAnalysis = result.data
        self._write(
            f"\nThread ID: {analysis.thread_id}\nMessage count: {analysis.message_count}\n"
            f"Participants: {', '.join(analysis.participants)}\n"
            f"Subjects: {', '.join(analysis.subjects)}\n"
            f"First/last: {analysis.first_date} / {analysis.last_date}\n"
            f"Has attachments: {'yes' if analysis.has_attachments else 'no'}"
        )
