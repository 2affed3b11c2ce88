"""Extraction of the session tokens the portal expects on every form post."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .errors import ProtocolShapeError
from .selectors import PORTAL_SELECTORS, PortalSelectors
from .utils import make_soup


@dataclass(frozen=True)
class PortalTokens:
    csrf: str
    legacy: Optional[str] = None
    week: Optional[str] = None


def _input_value(soup, selector: str) -> Optional[str]:
    node = soup.select_one(selector)
    if node is None:
        return None
    value = node.get("value")
    return None if value is None else str(value)


def extract_tokens(
    html: str,
    *,
    require_week: bool = False,
    selectors: PortalSelectors = PORTAL_SELECTORS,
) -> PortalTokens:
    """Return the anti-CSRF token, legacy token and week value from ``html``.

    Raises ``ProtocolShapeError`` when the CSRF input is missing, or when
    ``require_week`` is set and the week selector has no first option.
    """

    soup = make_soup(html)

    csrf = _input_value(soup, selectors.csrf_input)
    if not csrf:
        raise ProtocolShapeError("No _csrf input found on portal page")

    week: Optional[str] = None
    option = soup.select_one(selectors.week_option)
    if option is not None and option.get("value") is not None:
        week = str(option.get("value"))
    if require_week and not week:
        raise ProtocolShapeError("No week option found on weekly list page")

    legacy = _input_value(soup, selectors.legacy_token_input)
    return PortalTokens(csrf=csrf, legacy=legacy or None, week=week)


__all__ = ["PortalTokens", "extract_tokens"]
