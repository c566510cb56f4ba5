"""Attach to a running Chrome over CDP and pick the page to drive."""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_CDP_URL = "http://127.0.0.1:9222"


def default_cdp_url() -> str:
    return os.getenv("AUTOCLICKER_CDP_URL", "").strip() or DEFAULT_CDP_URL


def cdp_endpoint_alive(cdp_url: str, timeout: float = 2.0) -> bool:
    version_url = cdp_url.rstrip("/") + "/json/version"
    try:
        resp = requests.get(version_url, timeout=timeout)
    except requests.RequestException:
        return False
    return resp.status_code == 200


def wait_ready(page: Any, timeout_ms: int = 5000, settle_ms: int = 300) -> None:
    """Give a freshly opened tab time to render the control before the first poll."""
    try:
        page.wait_for_load_state("networkidle", timeout=timeout_ms)
    except Exception:  # noqa: BLE001
        logger.debug("networkidle not reached, falling back to domcontentloaded")
        try:
            page.wait_for_load_state("domcontentloaded", timeout=2000)
        except Exception:  # noqa: BLE001
            logger.debug("domcontentloaded not reached either")
    time.sleep(settle_ms / 1000)


def find_page(browser: Any, match: str) -> Optional[Any]:
    for context in browser.contexts:
        for page in context.pages:
            if match in page.url:
                return page
    return None


def open_page(
    playwright: Any,
    cdp_url: str,
    url: Optional[str] = None,
    page_match: Optional[str] = None,
) -> Any:
    """Connect over CDP and return the page to poll.

    An existing tab whose URL contains ``page_match`` (or ``url``) is reused;
    otherwise a new tab is opened on ``url``. Without either, the first open
    tab is used.
    """
    browser = playwright.chromium.connect_over_cdp(cdp_url)
    match = page_match or url
    if match:
        page = find_page(browser, match)
        if page is not None:
            logger.info("Attached to existing page: %s", page.url)
            return page

    if url:
        context = browser.contexts[0] if browser.contexts else browser.new_context()
        page = context.new_page()
        logger.info("Opening %s", url)
        page.goto(url, wait_until="domcontentloaded", timeout=30000)
        wait_ready(page)
        return page

    for context in browser.contexts:
        if context.pages:
            page = context.pages[0]
            logger.info("Attached to first open page: %s", page.url)
            return page
    raise RuntimeError(f"no open page found over CDP at {cdp_url}; pass --url to open one")
