"""Tool: check_environment. Is a browser runtime installed and the dev server up?"""

from __future__ import annotations

from figma_parity.tools.runtime import get_orchestrator


async def check_environment(port: int | None = None) -> dict:
    """Check browser runtime availability and dev server reachability.

    Args:
        port: Dev server port to probe (default: configured port)

    Returns:
        Browser availability details, the dev server URL and whether it answered.
    """
    return await get_orchestrator().check_environment(port=port)
