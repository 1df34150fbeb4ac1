"""Shared test fixtures for the codeagent test suite."""
from __future__ import annotations

import os

# Use litellm's bundled model cost map; its background network fetch fails
# offline and can deadlock imports with the main thread during tests.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

from pathlib import Path
from typing import Any

import pytest

from codeagent.agent import AgentLoop
from codeagent.capabilities import Capabilities
from codeagent.config import AgentConfig
from codeagent.context import ContextBuilder
from codeagent.dispatcher import Dispatcher
from codeagent.provider import LLMProvider
from codeagent.session import ContextStore
from codeagent.tools.exec_tool import CommandTools
from codeagent.tools.file_tools import FileTools
from codeagent.types import LLMResponse, MailboxDraft, MailboxListResult, MailboxMessage, Result
from codeagent.workspace import Workspace


# ---- Fakes ----


class FakeProvider(LLMProvider):
    """LLM provider that returns pre-configured responses in order."""

    model = "fake-model"

    def __init__(self, responses: list[LLMResponse] | None = None) -> None:
        self.responses: list[LLMResponse] = responses or []
        self.calls: list[list[dict[str, Any]]] = []
        self.tools_seen: list[list[dict[str, Any]] | None] = []

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        max_tokens: int = 0,
        temperature: float = -1.0,
    ) -> LLMResponse:
        self.calls.append([dict(m) for m in messages])
        self.tools_seen.append(tools)
        if not self.responses:
            return LLMResponse(content="(no more responses)")
        return self.responses.pop(0)


class RaisingProvider(LLMProvider):
    """Provider whose transport always fails."""

    model = "broken-model"

    async def chat(self, messages, tools=None, max_tokens=0, temperature=-1.0) -> LLMResponse:
        raise ConnectionError("network unreachable")


class FakeMailbox:
    """In-memory stand-in for GmailTools. Records every call."""

    def __init__(self, messages: list[MailboxMessage] | None = None) -> None:
        self.messages = {m.id: m for m in (messages or [])}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.sent: list[MailboxDraft] = []

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    async def list_emails(self, max_results: int = 10, query: str = "") -> Result:
        self._record("list_emails", max_results, query)
        found = list(self.messages.values())[:max_results]
        return Result.ok(f"Successfully retrieved {len(found)} emails", MailboxListResult(messages=found))

    async def search_emails(self, query: str, max_results: int = 10) -> Result:
        self._record("search_emails", query, max_results)
        found = [m for m in self.messages.values() if query.lower() in m.subject.lower()][:max_results]
        return Result.ok(f"Successfully retrieved {len(found)} emails", MailboxListResult(messages=found))

    async def get_unread_emails(self, max_results: int = 10) -> Result:
        self._record("get_unread_emails", max_results)
        found = [m for m in self.messages.values() if not m.is_read][:max_results]
        return Result.ok(f"Successfully retrieved {len(found)} emails", MailboxListResult(messages=found))

    async def get_email(self, message_id: str) -> Result:
        self._record("get_email", message_id)
        if message_id not in self.messages:
            return Result.fail(f"Requested entity was not found: {message_id}", f"Failed to get email: {message_id}")
        return Result.ok("Successfully retrieved email", self.messages[message_id])

    async def send_email(self, draft: MailboxDraft) -> Result:
        self._record("send_email", draft)
        self.sent.append(draft)
        return Result.ok(f"Successfully sent email: {draft.subject}", {"id": "sent-1"})

    async def create_draft(self, draft: MailboxDraft) -> Result:
        self._record("create_draft", draft)
        return Result.ok(f"Successfully created draft: {draft.subject}", {"id": "draft-1"})

    async def mark_as_read(self, message_id: str) -> Result:
        self._record("mark_as_read", message_id)
        return Result.ok(f"Successfully marked email as read: {message_id}")

    async def delete_email(self, message_id: str) -> Result:
        self._record("delete_email", message_id)
        return Result.ok(f"Successfully deleted email: {message_id}")

    async def get_email_context(self, message_id: str) -> Result:
        self._record("get_email_context", message_id)
        return Result.ok("Email context retrieved", {"subject": "hi"})

    async def analyze_email_thread(self, thread_id: str) -> Result:
        self._record("analyze_email_thread", thread_id)
        raise RuntimeError("thread service exploded")


# ---- Helpers ----


def make_capabilities(ws: Workspace, mailbox: Any | None = None) -> Capabilities:
    return Capabilities(
        workspace=ws,
        files=FileTools(ws),
        commands=CommandTools(ws),
        mailbox=mailbox,
    )


def make_loop(
    ws: Workspace,
    provider: LLMProvider,
    mailbox: Any | None = None,
    config: AgentConfig | None = None,
) -> AgentLoop:
    config = config or AgentConfig()
    caps = make_capabilities(ws, mailbox)
    return AgentLoop(
        provider=provider,
        dispatcher=Dispatcher(caps),
        store=ContextStore(ws),
        context_builder=ContextBuilder(config, caps),
        config=config,
    )


# ---- Fixtures ----


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    return Workspace(tmp_path)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def fake_mailbox() -> FakeMailbox:
    return FakeMailbox([
        MailboxMessage(id="m1", thread_id="t1", subject="Quarterly report", sender="alice@example.com",
                       to=["me@example.com"], body="Numbers attached.", snippet="Numbers attached.",
                       is_read=False),
        MailboxMessage(id="m2", thread_id="t2", subject="Lunch?", sender="bob@example.com",
                       to=["me@example.com"], body="Noon?", snippet="Noon?"),
    ])


@pytest.fixture
def dispatcher(workspace: Workspace) -> Dispatcher:
    return Dispatcher(make_capabilities(workspace))


@pytest.fixture
def store(workspace: Workspace) -> ContextStore:
    return ContextStore(workspace)
