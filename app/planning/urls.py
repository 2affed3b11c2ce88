from __future__ import annotations

import re
import urllib.parse

SUMMARY_TAB = "summary"
PRINT_PREVIEW_TAB = "printPreview"
DOCUMENTS_TAB = "documents"
DETAILS_TAB = "details"

_TAB_PATTERN = re.compile(r"=(summary|printPreview|documents|details)(?=&|#|$)")


def swap_tab(link: str, tab: str) -> str:
    """Return ``link`` pointing at ``tab`` instead of its current case tab.

    Case pages differ only by the ``activeTab`` value, e.g. ``=summary`` and
    ``=documents``. Links without a recognised tab are returned unchanged.
    """

    return _TAB_PATTERN.sub(f"={tab}", link, count=1)


def absolute_url(base_url: str, link: str) -> str:
    return urllib.parse.urljoin(base_url.rstrip("/") + "/", link.strip())


def redact_url(url: str) -> str:
    try:
        parsed = urllib.parse.urlparse(url)
        return urllib.parse.urlunparse(parsed._replace(query=""))
    except Exception:
        return url


__all__ = [
    "swap_tab",
    "absolute_url",
    "redact_url",
    "SUMMARY_TAB",
    "PRINT_PREVIEW_TAB",
    "DOCUMENTS_TAB",
    "DETAILS_TAB",
]
