"""Reachability check for the component dev server."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from figma_parity.errors import AvailabilityError
from figma_parity.models.config import DevServerConfig
from figma_parity.utils.timeouts import Deadline

logger = logging.getLogger(__name__)


def backoff_delays(config: DevServerConfig) -> list[float]:
    """Sleep before each retry: initial, initial*factor, ... capped at backoff_max."""
    return [
        min(config.backoff_initial * config.backoff_factor ** attempt, config.backoff_max)
        for attempt in range(config.retries)
    ]


async def wait_for_dev_server(
    base_url: str,
    config: DevServerConfig | None = None,
    request_timeout: float = 3.0,
    deadline: Optional[Deadline] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    """Poll ``base_url`` until it answers 2xx. Returns the number of attempts used.

    Raises AvailabilityError once retries (or the deadline) run out.
    """
    config = config or DevServerConfig()
    delays = backoff_delays(config)
    attempts = 0
    last_error = "no response"

    async with httpx.AsyncClient(timeout=request_timeout, follow_redirects=True, transport=transport) as client:
        while True:
            attempts += 1
            try:
                timeout = deadline.budget("dev server check", request_timeout) if deadline else request_timeout
                response = await client.get(base_url, timeout=timeout)
                if response.is_success:
                    logger.debug("Dev server at %s is up (attempt %d)", base_url, attempts)
                    return attempts
                last_error = f"HTTP {response.status_code}"
            except httpx.HTTPError as e:
                last_error = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__

            if attempts > len(delays):
                break
            delay = delays[attempts - 1]
            if deadline is not None and deadline.remaining() <= delay:
                logger.warning("Deadline leaves no time to retry %s", base_url)
                break
            logger.info("Dev server not ready at %s (%s), retrying in %.1fs", base_url, last_error, delay)
            await asyncio.sleep(delay)

    raise AvailabilityError(
        f"Dev server is not reachable at {base_url} after {attempts} attempt(s): {last_error}",
        url=base_url,
        attempts=attempts,
    )
