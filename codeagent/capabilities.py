"""The capability set available to the dispatcher, resolved once at startup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from codeagent.config import CodeAgentConfig
from codeagent.log import logger
from codeagent.tools.exec_tool import CommandTools
from codeagent.tools.file_tools import FileTools
from codeagent.workspace import Workspace

if TYPE_CHECKING:
    from codeagent.tools.gmail_tools import GmailTools


@dataclass(frozen=True)
class Capabilities:
    workspace: Workspace
    files: FileTools
    commands: CommandTools
    mailbox: GmailTools | None = None

    @property
    def has_mailbox(self) -> bool:
        return self.mailbox is not None


def build_capabilities(config: CodeAgentConfig, workspace: Workspace | None = None) -> Capabilities:
    """Create providers sharing one Workspace; the mailbox only if its credentials exist."""
    workspace = workspace or Workspace(restrict=config.tools.restrict_to_workspace)
    mailbox = None
    if config.gmail.available:
        from codeagent.tools.gmail_tools import GmailTools

        mailbox = GmailTools(config.gmail)
        logger.info(f"Gmail API configured ({config.gmail.credentials_path})")
    else:
        logger.info("Gmail API not configured (credentials file not found or disabled)")
    return Capabilities(
        workspace=workspace,
        files=FileTools(workspace),
        commands=CommandTools(workspace, max_output_bytes=config.tools.max_output_bytes),
        mailbox=mailbox,
    )
