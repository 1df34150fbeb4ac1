"""Structured event log -- JSONL append-only audit of model and tool activity."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from codeagent.log import logger


class EventLog:
    """Append-only JSONL event log.

    Three event types:
      llm_call  -- one model request (model, latency, success)
      tool_call -- one dispatched tool (duration, success, error)
      turn      -- one completed conversation turn
    """

    def __init__(self, path: Path, enabled: bool = True) -> None:
        self._path = path
        self._enabled = enabled
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def log_llm_call(self, model: str, latency_ms: float, success: bool, total_tokens: int = 0) -> None:
        self._append("llm_call", {
            "model": model,
            "latency_ms": round(latency_ms, 1),
            "success": success,
            "total_tokens": total_tokens,
        })

    def log_tool_call(self, tool: str, duration_ms: float, success: bool, error: str = "") -> None:
        data: dict[str, Any] = {
            "tool": tool,
            "duration_ms": round(duration_ms, 1),
            "success": success,
        }
        if error:
            data["error"] = error
        self._append("tool_call", data)

    def log_turn(self, latency_ms: float, tool_count: int, model_failed: bool) -> None:
        self._append("turn", {
            "latency_ms": round(latency_ms, 1),
            "tool_count": tool_count,
            "model_failed": model_failed,
        })

    def _append(self, event_type: str, data: dict[str, Any]) -> None:
        if not self._enabled:
            return
        record = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "type": event_type,
            **data,
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock:
                with self._path.open("a", encoding="utf-8") as f:
                    f.write(json.dumps(record, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.warning(f"Event log write failed ({self._path}): {e}")
