"""Fetch and parse notices from the college website."""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from .errors import SourceUnavailable
from .models import NoticeCandidate
from .timeutil import utc_now_iso

LOGGER = logging.getLogger(__name__)


def fetch_html(url: str, timeout: float = 10) -> str:
    """Retrieve the HTML contents of the given URL."""
    headers = {
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/118.0.0.0 Safari/537.36"
        )
    }
    response = requests.get(url, headers=headers, timeout=timeout)
    response.raise_for_status()
    return response.text


def _extract_title(li) -> str:
    strong = li.find("strong")
    if strong:
        title = strong.get_text(strip=True)
        if title:
            return title
    return li.get_text(strip=True)


def parse_notices(
    html: str, base_url: str, observed_at: Optional[str] = None
) -> List[NoticeCandidate]:
    """Parse `ul.list-group > li` entries into notice candidates.

    Every candidate of one page shares the same capture timestamp.
    """
    soup = BeautifulSoup(html, "html.parser")
    timestamp = observed_at or utc_now_iso()

    notices: list[NoticeCandidate] = []
    for li in soup.select("ul.list-group li"):
        title = _extract_title(li)
        link = li.find("a", href=True)
        if not title or not link:
            LOGGER.debug("Skipping list item without title or link: %s", li)
            continue

        href = link["href"].strip()
        if not href:
            continue

        notices.append(
            NoticeCandidate(
                title=title,
                link=urljoin(base_url, href),
                timestamp=timestamp,
            )
        )

    if not notices:
        LOGGER.warning("No notices found in ul.list-group on %s", base_url)
    return notices


def get_latest_notices(list_url: str, timeout: float = 10) -> List[NoticeCandidate]:
    """Fetch and parse the notice list, raising SourceUnavailable on failure."""
    try:
        html = fetch_html(list_url, timeout=timeout)
    except requests.RequestException as exc:
        raise SourceUnavailable(str(exc)) from exc

    try:
        return parse_notices(html, list_url)
    except Exception as exc:  # noqa: BLE001
        raise SourceUnavailable(f"Failed to parse notices: {exc}") from exc
