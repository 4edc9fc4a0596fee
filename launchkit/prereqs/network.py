"""Internet reachability probe."""

from __future__ import annotations

import httpx

from launchkit.utils import print_debug


async def check_network(url: str = "https://www.google.com", timeout: float = 5.0) -> bool:
    """Return ``True`` if a HEAD request to *url* gets any HTTP response.

    Connection errors and timeouts both count as offline.
    """
    try:
        async with httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=True) as client:
            response = await client.head(url)
    except httpx.HTTPError as exc:
        print_debug(f"network probe failed: {exc!r}")
        return False
    print_debug(f"network probe {url}: HTTP {response.status_code}")
    return True
