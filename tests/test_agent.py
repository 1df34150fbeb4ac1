"""Agent loop tests -- turn flow, tool dispatch, apology on model failure."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from codeagent.agent import APOLOGY_TEXT, EMPTY_RESPONSE_TEXT, AgentLoop, LoopState, format_results
from codeagent.config import AgentConfig
from codeagent.dispatcher import BLOCKED_ERROR, MAILBOX_UNAVAILABLE_ERROR
from codeagent.event_log import EventLog
from codeagent.types import CommandExecution, LLMResponse, NativeToolCall, Result
from codeagent.workspace import Workspace

from tests.conftest import FakeMailbox, FakeProvider, RaisingProvider, make_loop


# ---------------------------------------------------------------------------
# format_results
# ---------------------------------------------------------------------------

class TestFormatResults:

    def test_empty(self) -> None:
        assert format_results([]) == ""

    def test_numbered_with_error_and_preview(self) -> None:
        text = format_results([
            Result.ok("Successfully read file: a.txt", "x" * 250),
            Result.fail("File not found: b.txt", "File b.txt does not exist"),
        ])
        lines = text.split("\n")
        assert lines[2] == "Tool Results:"
        assert lines[3] == "1. Successfully read file: a.txt"
        assert lines[4] == "   Data: " + "x" * 200 + "..."
        assert lines[5] == "2. File b.txt does not exist"
        assert lines[6] == "   Error: File not found: b.txt"

    def test_command_output_previewed(self) -> None:
        text = format_results([Result.ok("ran", CommandExecution("echo hi", "hi\n", 0))])
        assert "   Data: hi\n" in text

    def test_non_text_data_not_previewed(self) -> None:
        text = format_results([Result.ok("listed", [1, 2, 3])])
        assert "Data:" not in text


# ---------------------------------------------------------------------------
# process_message
# ---------------------------------------------------------------------------

class TestProcessMessage:

    @pytest.mark.asyncio
    async def test_blank_input_is_noop(self, workspace: Workspace) -> None:
        provider = FakeProvider()
        loop = make_loop(workspace, provider)
        assert await loop.process_message("   ") == ""
        assert provider.calls == []
        assert len(loop.store) == 0
        assert loop.state is LoopState.IDLE

    @pytest.mark.asyncio
    async def test_plain_reply(self, workspace: Workspace) -> None:
        loop = make_loop(workspace, FakeProvider([LLMResponse(content="Hello!")]))
        reply = await loop.process_message("hi")
        assert reply == "Hello!"
        assert [m.role for m in loop.store.window(10)] == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_model_failure_gives_apology(self, workspace: Workspace) -> None:
        loop = make_loop(workspace, FakeProvider([LLMResponse(content="LLM error", finish_reason="error")]))
        reply = await loop.process_message("hi")
        assert reply == APOLOGY_TEXT
        assert loop.store.window(1)[0].content == APOLOGY_TEXT

    @pytest.mark.asyncio
    async def test_provider_exception_gives_apology(self, workspace: Workspace) -> None:
        loop = make_loop(workspace, RaisingProvider())
        assert await loop.process_message("hi") == APOLOGY_TEXT
        assert loop.state is LoopState.IDLE

    @pytest.mark.asyncio
    async def test_empty_model_text(self, workspace: Workspace) -> None:
        loop = make_loop(workspace, FakeProvider([LLMResponse(content=None)]))
        assert await loop.process_message("hi") == EMPTY_RESPONSE_TEXT

    @pytest.mark.asyncio
    async def test_text_calls_run_in_order(self, workspace: Workspace) -> None:
        (workspace.cwd / "a.txt").write_text("alpha")
        provider = FakeProvider([LLMResponse(content="readFile(a.txt) then writeFile(b.txt, hi)")])
        loop = make_loop(workspace, provider)

        reply = await loop.process_message("copy it")

        assert reply.startswith("readFile(a.txt) then writeFile(b.txt, hi)\n\nTool Results:\n")
        assert "1. Successfully read file: a.txt" in reply
        assert "   Data: alpha" in reply
        assert "2. Successfully wrote file: b.txt" in reply
        assert (workspace.cwd / "b.txt").read_text() == "hi"
        assert loop.get_context().recent_files == ["a.txt", "b.txt"]

    @pytest.mark.asyncio
    async def test_missing_file_reported(self, workspace: Workspace) -> None:
        loop = make_loop(workspace, FakeProvider([LLMResponse(content="readFile(missing.txt)")]))
        reply = await loop.process_message("show me")
        assert "Error: File not found: missing.txt" in reply
        assert loop.get_context().recent_files == []

    @pytest.mark.asyncio
    async def test_native_calls_preferred(self, workspace: Workspace) -> None:
        provider = FakeProvider([LLMResponse(
            content="Writing it now.",
            tool_calls=[NativeToolCall(id="c1", name="writeFile",
                                       arguments={"filePath": "n.txt", "content": "a, b (c)"})],
        )])
        loop = make_loop(workspace, provider)

        reply = await loop.process_message("write")

        assert (workspace.cwd / "n.txt").read_text() == "a, b (c)"
        assert "1. Successfully wrote file: n.txt" in reply

    @pytest.mark.asyncio
    async def test_tools_offered_without_mailbox(self, workspace: Workspace) -> None:
        provider = FakeProvider([LLMResponse(content="ok")])
        loop = make_loop(workspace, provider)
        await loop.process_message("hi")
        names = {t["function"]["name"] for t in provider.tools_seen[0]}
        assert "readFile" in names
        assert "listEmails" not in names

    @pytest.mark.asyncio
    async def test_text_only_protocol(self, workspace: Workspace) -> None:
        provider = FakeProvider([LLMResponse(content="ok")])
        loop = make_loop(workspace, provider, config=AgentConfig(native_tool_calls=False))
        await loop.process_message("hi")
        assert provider.tools_seen == [None]

    @pytest.mark.asyncio
    async def test_non_object_native_arguments_do_not_crash(self, workspace: Workspace) -> None:
        provider = FakeProvider([
            LLMResponse(content=None, tool_calls=[NativeToolCall(id="1", name="readFile", arguments=["a.txt"])]),
            LLMResponse(content=None, tool_calls=[NativeToolCall(id="2", name="readFile", arguments="a.txt")]),
        ])
        loop = make_loop(workspace, provider)

        first = await loop.process_message("read it")
        second = await loop.process_message("read it again")

        assert "Error: File not found: a.txt" in first
        assert "Error: Missing argument: filePath" in second
        assert [m.role for m in loop.store.window(10)] == ["user", "assistant", "user", "assistant"]
        assert loop.state is LoopState.IDLE

    @pytest.mark.asyncio
    async def test_rejected_command_not_recorded(self, workspace: Workspace) -> None:
        loop = make_loop(workspace, FakeProvider([
            LLMResponse(content=None, tool_calls=[NativeToolCall(id="1", name="executeCommand", arguments={"command": ""})]),
        ]))
        reply = await loop.process_message("run nothing")
        assert "Missing argument: command" in reply
        assert loop.get_context().recent_commands == []

    @pytest.mark.asyncio
    async def test_failed_and_timed_out_commands_recorded(self, workspace: Workspace) -> None:
        loop = make_loop(workspace, FakeProvider())
        await loop.run_command("exit 2")
        await loop.run_command("sleep 5; echo done", timeout=1)
        assert loop.get_context().recent_commands == ["exit 2", "sleep 5; echo done"]

    @pytest.mark.asyncio
    async def test_blocked_command_not_recorded(self, workspace: Workspace) -> None:
        loop = make_loop(workspace, FakeProvider([LLMResponse(content="executeCommand(rm -rf /)")]))
        reply = await loop.process_message("clean up")
        assert f"Error: {BLOCKED_ERROR}" in reply
        assert loop.get_context().recent_commands == []

    @pytest.mark.asyncio
    async def test_mailbox_call_without_mailbox(self, workspace: Workspace) -> None:
        loop = make_loop(workspace, FakeProvider([LLMResponse(content="getUnreadEmails()")]))
        reply = await loop.process_message("any mail?")
        assert f"Error: {MAILBOX_UNAVAILABLE_ERROR}" in reply

    @pytest.mark.asyncio
    async def test_mailbox_call_with_mailbox(self, workspace: Workspace, fake_mailbox: FakeMailbox) -> None:
        loop = make_loop(workspace, FakeProvider([LLMResponse(content="getUnreadEmails(5)")]), fake_mailbox)
        reply = await loop.process_message("any mail?")
        assert "1. Successfully retrieved 1 emails" in reply
        assert fake_mailbox.calls == [("get_unread_emails", (5,))]

    @pytest.mark.asyncio
    async def test_history_window_bounds_prompt(self, workspace: Workspace) -> None:
        provider = FakeProvider([LLMResponse(content=f"r{i}") for i in range(8)])
        loop = make_loop(workspace, provider)
        for i in range(8):
            await loop.process_message(f"u{i}")
        last_prompt = provider.calls[-1]
        assert last_prompt[0]["role"] == "system"
        assert len(last_prompt) == 1 + 10
        assert last_prompt[-1] == {"role": "user", "content": "u7"}
        assert len(loop.store) == 16

    @pytest.mark.asyncio
    async def test_clear_history_keeps_log(self, workspace: Workspace) -> None:
        provider = FakeProvider([LLMResponse(content="one"), LLMResponse(content="two")])
        loop = make_loop(workspace, provider)
        await loop.process_message("first")
        loop.clear_history()
        await loop.process_message("second")
        assert provider.calls[-1][1:] == [{"role": "user", "content": "second"}]
        assert len(loop.store) == 4

    @pytest.mark.asyncio
    async def test_turn_logged(self, workspace: Workspace, tmp_path: Path) -> None:
        log_path = tmp_path / "events.jsonl"
        loop = make_loop(workspace, FakeProvider([LLMResponse(content="listFiles()")]))
        loop._event_log = EventLog(log_path)
        await loop.process_message("ls")
        types = [json.loads(line)["type"] for line in log_path.read_text().splitlines()]
        assert types == ["llm_call", "turn"]


# ---------------------------------------------------------------------------
# Direct capability access
# ---------------------------------------------------------------------------

class TestDirectAccess:

    @pytest.mark.asyncio
    async def test_run_echo(self, workspace: Workspace) -> None:
        loop = make_loop(workspace, FakeProvider())
        result = await loop.run_command("echo hi")
        assert result.success is True
        assert result.data.output == "hi\n"
        assert result.data.exit_code == 0
        assert loop.get_context().recent_commands == ["echo hi"]

    @pytest.mark.asyncio
    async def test_direct_calls_skip_model(self, workspace: Workspace) -> None:
        provider = FakeProvider()
        loop = make_loop(workspace, provider)
        await loop.write_file("d.txt", "direct")
        result = await loop.read_file("d.txt")
        assert result.data == "direct"
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_send_email_joins_recipients(self, workspace: Workspace, fake_mailbox: FakeMailbox) -> None:
        loop = make_loop(workspace, FakeProvider(), fake_mailbox)
        result = await loop.send_email(["a@x.com", "b@x.com"], "Hi", "Body")
        assert result.success is True
        assert fake_mailbox.sent[0].to == ["a@x.com", "b@x.com"]

    @pytest.mark.asyncio
    async def test_set_current_directory(self, workspace: Workspace) -> None:
        (workspace.cwd / "proj").mkdir()
        loop = make_loop(workspace, FakeProvider())
        assert loop.set_current_directory("proj").success is True
        assert loop.status()["current_directory"].endswith("proj")
        failed = loop.set_current_directory("nowhere")
        assert failed.success is False
        assert "nowhere" in failed.error

    def test_status(self, workspace: Workspace, fake_mailbox: FakeMailbox) -> None:
        loop = make_loop(workspace, FakeProvider(), fake_mailbox)
        status = loop.status()
        assert status["gmail_available"] is True
        assert status["conversation_messages"] == 0
