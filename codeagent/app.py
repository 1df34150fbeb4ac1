"""Composition root -- wire everything together."""

from __future__ import annotations

from pathlib import Path

from codeagent.agent import AgentLoop
from codeagent.capabilities import build_capabilities
from codeagent.cli import Repl
from codeagent.config import load_config, resolve_api_key, validate_startup
from codeagent.context import ContextBuilder
from codeagent.dispatcher import Dispatcher
from codeagent.event_log import EventLog
from codeagent.log import logger
from codeagent.provider import LLMProvider, LiteLLMProvider
from codeagent.session import ContextStore
from codeagent.workspace import Workspace


class CodeAgent:
    """Main application. Create, configure, run."""

    def __init__(self, config_path: str | None = None, log_level: str | None = None) -> None:
        self.config = load_config(config_path)
        if log_level:
            self.config.log.level = log_level.upper()

        # Configure logging early -- before any logger.info() calls
        from codeagent.log import configure as _configure_log
        lc = self.config.log
        _configure_log(
            level=lc.level, fmt=lc.format, json_format=lc.json_format,
            file=lc.file, rotation=lc.rotation, retention=lc.retention,
        )

        validate_startup(self.config)

        self.workspace = Workspace(restrict=self.config.tools.restrict_to_workspace)

        el_cfg = self.config.event_log
        el_path = Path(el_cfg.file).expanduser() if el_cfg.file else self.workspace.cwd / ".codeagent" / "events.jsonl"
        self.event_log = EventLog(el_path, enabled=el_cfg.enabled)

        self.capabilities = build_capabilities(self.config, self.workspace)
        self.dispatcher = Dispatcher(
            self.capabilities,
            default_timeout=self.config.tools.exec_timeout,
            event_log=self.event_log,
        )
        self.store = ContextStore(self.workspace)
        self.context_builder = ContextBuilder(self.config.agent, self.capabilities)
        self.provider: LLMProvider = self._create_provider()
        self.agent = AgentLoop(
            provider=self.provider,
            dispatcher=self.dispatcher,
            store=self.store,
            context_builder=self.context_builder,
            config=self.config.agent,
            event_log=self.event_log,
        )

    def _create_provider(self) -> LLMProvider:
        ac = self.config.agent
        return LiteLLMProvider(
            model=ac.model,
            api_key=resolve_api_key(self.config),
            api_base=ac.api_base,
            max_tokens=ac.max_tokens,
            temperature=ac.temperature,
            max_retries=ac.llm_max_retries,
            retry_base_delay=ac.llm_retry_base_delay,
        )

    async def run(self) -> None:
        logger.info(
            f"{self.config.agent.name} starting -- model={self.config.agent.model}, "
            f"cwd={self.workspace.cwd}, gmail={self.capabilities.has_mailbox}"
        )
        await Repl(self.agent).run()
