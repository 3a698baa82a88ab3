"""Retrieve a page's markup for the command line scanner.

The core scan functions never do I/O; only the CLI calls into here.
"""
from __future__ import annotations

import logging
import urllib.error
import urllib.request

from .errors import ScanError, ScanErrorKind, classify_fetch_error

logger = logging.getLogger(__name__)

USER_AGENT = "WCAGShield-Scanner/1.0"
DEFAULT_TIMEOUT = 30.0


def fetch_html(url: str, timeout: float = DEFAULT_TIMEOUT) -> str:
    request = urllib.request.Request(
        url,
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "text/html,application/xhtml+xml",
        },
    )
    logger.info("fetching %s (timeout %.0fs)", url, timeout)
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            charset = response.headers.get_content_charset() or "utf-8"
            body = response.read()
    except urllib.error.HTTPError as exc:
        raise ScanError(
            ScanErrorKind.UNREACHABLE,
            f"Failed to fetch website: {exc.code} {exc.reason}",
            status=exc.code,
        ) from exc
    except (OSError, ValueError) as exc:
        raise classify_fetch_error(exc) from exc
    logger.debug("fetched %d bytes from %s", len(body), url)
    return body.decode(charset, errors="replace")
