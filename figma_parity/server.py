"""figma-parity MCP server: FastMCP entry point over stdio.

Exposes component capture, Figma comparison, asset optimization and an
environment check as MCP tools.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from mcp.server.fastmcp import FastMCP
from rich.console import Console
from rich.logging import RichHandler

from figma_parity.models.config import ToolConfig
from figma_parity.tools import runtime
from figma_parity.tools.capture_component import capture_component
from figma_parity.tools.check_environment import check_environment
from figma_parity.tools.compare_component import compare_component
from figma_parity.tools.optimize_asset import optimize_asset

logger = logging.getLogger(__name__)

# stdout carries the MCP stream; logs go to stderr.
stderr_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=stderr_console, rich_tracebacks=True)],
    )


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[dict]:
    try:
        yield {}
    finally:
        await runtime.shutdown()


mcp = FastMCP(
    "figma-parity",
    instructions=(
        "Visual regression tools for UI components. capture_component renders a "
        "component from the local dev server into a PNG; compare_component compares "
        "it with the Figma export in src/components/{name}/results/expected.png and "
        "returns match percentage, quality tier, difference regions and fixes; "
        "optimize_asset shrinks image assets; check_environment verifies the browser "
        "runtime and dev server."
    ),
    lifespan=lifespan,
)

mcp.tool()(capture_component)
mcp.tool()(compare_component)
mcp.tool()(optimize_asset)
mcp.tool()(check_environment)


def main(config_path: str | None = None, verbose: bool = False) -> None:
    setup_logging(verbose)
    runtime.configure(ToolConfig.load_default(config_path))
    logger.info("Starting figma-parity MCP server on stdio")
    mcp.run()


if __name__ == "__main__":
    main()
