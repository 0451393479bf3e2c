"""Process-wide orchestrator shared by the MCP tools."""

from __future__ import annotations

import logging
from typing import Optional

from figma_parity.models.config import ToolConfig
from figma_parity.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

_orchestrator: Optional[Orchestrator] = None


def configure(config: ToolConfig | None = None, orchestrator: Orchestrator | None = None) -> Orchestrator:
    """Install the orchestrator the tools use. Called once at server start."""
    global _orchestrator
    _orchestrator = orchestrator or Orchestrator(config or ToolConfig.load_default())
    return _orchestrator


def get_orchestrator() -> Orchestrator:
    if _orchestrator is None:
        return configure()
    return _orchestrator


async def shutdown() -> None:
    global _orchestrator
    if _orchestrator is not None:
        logger.info("Shutting down browser session")
        await _orchestrator.close()
        _orchestrator = None
