"""Tool call extraction -- native function calls and free-text scanning.

Native calls (the model's function-calling response) are the primary path.
``extract_calls`` scans prose for ``name(arg, arg)`` and is kept for plain
text answers. Its limits are deliberate: the first ``)`` ends a call and
every comma splits an argument, quoted or not.
"""

from __future__ import annotations

import re
from typing import Any

from codeagent.registry import TOOL_SPECS
from codeagent.types import NativeToolCall, ToolCall

_QUOTES = "\"'`"

_CALL_RE = re.compile(
    r"\b(" + "|".join(re.escape(name) for name in TOOL_SPECS) + r")\s*\(([^)]*)\)"
)


def _split_args(raw: str) -> tuple[str, ...]:
    if not raw.strip():
        return ()
    return tuple(token.strip().strip(_QUOTES) for token in raw.split(","))


def extract_calls(text: str) -> list[ToolCall]:
    """Return every recognizable call in ``text``, left to right."""
    return [ToolCall(name=m.group(1), arguments=_split_args(m.group(2))) for m in _CALL_RE.finditer(text)]


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ";".join(str(v) for v in value)
    return str(value)


def from_native(call: NativeToolCall) -> ToolCall:
    """Order a native call's keyword arguments by the tool's declared parameters.

    Unknown tool names pass through with their values in received order so
    the dispatcher can report them. A list is taken as positional values;
    any other non-object payload yields no arguments.
    """
    if isinstance(call.arguments, (list, tuple)):
        return ToolCall(name=call.name, arguments=tuple(_stringify(v) for v in call.arguments))
    if not isinstance(call.arguments, dict):
        return ToolCall(name=call.name)
    spec = TOOL_SPECS.get(call.name)
    if spec is None:
        return ToolCall(name=call.name, arguments=tuple(_stringify(v) for v in call.arguments.values()))
    args = [_stringify(call.arguments.get(p.name)) for p in spec.params]
    while args and args[-1] == "":
        args.pop()
    return ToolCall(name=call.name, arguments=tuple(args))
