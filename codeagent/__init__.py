"""codeagent - Interactive coding agent with file, shell and Gmail tools."""

from codeagent.types import Result, ToolCall, Message, AgentContext, LLMResponse
from codeagent.dispatcher import Dispatcher
from codeagent.extractor import extract_calls
from codeagent.safety import is_safe
from codeagent.agent import AgentLoop
from codeagent.app import CodeAgent

__all__ = [
    "CodeAgent",
    "AgentLoop",
    "Dispatcher",
    "extract_calls",
    "is_safe",
    "Result",
    "ToolCall",
    "Message",
    "AgentContext",
    "LLMResponse",
]
