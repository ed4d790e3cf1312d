"""
Network probe — advisory connectivity check.

The result never blocks installation: later stages retry their own
downloads and fail explicitly if the network is really unusable. The
probe only tells the operator which of the two situations they are in.
"""

from __future__ import annotations

import logging
import time
import urllib.request

logger = logging.getLogger(__name__)

DEFAULT_PROBE_URL = "https://pypi.org/simple/pip/"


def probe(url: str = DEFAULT_PROBE_URL, timeout: float = 8.0) -> dict:
    """Issue one bounded GET against ``url``.

    Returns::

        {"reachable": True, "url": "https://...", "status": 200, "latency_ms": 42}
        or
        {"reachable": False, "url": "https://...", "error": "timed out", "latency_ms": 8001}
    """
    start = time.monotonic()
    try:
        req = urllib.request.Request(url, headers={"User-Agent": "sdsetup/0.1"})
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return {
                "reachable": True,
                "url": url,
                "status": resp.getcode(),
                "latency_ms": int((time.monotonic() - start) * 1000),
            }
    except Exception as exc:
        return {
            "reachable": False,
            "url": url,
            "error": str(exc)[:200],
            "latency_ms": int((time.monotonic() - start) * 1000),
        }


def net_probe(url: str = DEFAULT_PROBE_URL, timeout: float = 8.0) -> dict:
    """Run the probe and log the verdict. Never raises."""
    logger.info("Network probe (warn-only)...")
    result = probe(url, timeout=timeout)
    if result["reachable"]:
        logger.info("Network probe OK.")
    else:
        logger.warning("Network probe failed (this does NOT stop install): %s", result["error"])
        logger.warning("If downloads fail later, it's likely DNS/proxy/CDN blocking.")
    return result
