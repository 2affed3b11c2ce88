"""Search-session bootstrap and results pagination for one date filter.

The walker moves through three phases: it loads the weekly list page to pick
up the current week and session tokens, submits the search form, then
requests the first results page (ordered by received date) and follows
"next" links until none remain. Any error aborts the walk; a partial listing
is never returned.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional, Set

from . import config
from .errors import PaginationLoopError, ProtocolShapeError
from .logging_utils import _crawl_event
from .selectors import PORTAL_SELECTORS, PortalSelectors
from .tokens import extract_tokens
from .transport import PortalSession
from .utils import make_soup


class WalkPhase(str, Enum):
    INIT = "init"
    SEARCH_SUBMITTED = "search_submitted"
    PAGED = "paged"
    DONE = "done"


def parse_case_links(html: str, *, selectors: PortalSelectors = PORTAL_SELECTORS) -> List[str]:
    soup = make_soup(html)
    links: List[str] = []
    for anchor in soup.select(selectors.summary_link):
        href = (anchor.get("href") or "").strip()
        if href:
            links.append(href)
    return links


def parse_next_link(html: str, *, selectors: PortalSelectors = PORTAL_SELECTORS) -> Optional[str]:
    anchor = make_soup(html).select_one(selectors.next_page)
    if anchor is None:
        return None
    href = (anchor.get("href") or "").strip()
    return href or None


class PaginationWalker:
    def __init__(
        self,
        session: PortalSession,
        *,
        weekly_list_path: str = config.WEEKLY_LIST_PATH,
        first_page_path: str = config.FIRST_PAGE_PATH,
        paged_results_path: str = config.PAGED_RESULTS_PATH,
        results_per_page: int = config.RESULTS_PER_PAGE,
        selectors: PortalSelectors = PORTAL_SELECTORS,
    ) -> None:
        self.session = session
        self.weekly_list_path = weekly_list_path
        self.first_page_path = first_page_path
        self.paged_results_path = paged_results_path
        self.results_per_page = results_per_page
        self.selectors = selectors
        self.phase = WalkPhase.INIT

    @classmethod
    def from_config(cls, session: PortalSession, cfg: config.CrawlConfig) -> "PaginationWalker":
        return cls(
            session,
            weekly_list_path=cfg.weekly_list_path,
            first_page_path=cfg.first_page_path,
            paged_results_path=cfg.paged_results_path,
            results_per_page=cfg.results_per_page,
        )

    def _load_weekly_list(self) -> None:
        html = self.session.get(self.weekly_list_path)
        self.session.state.absorb(extract_tokens(html, require_week=True, selectors=self.selectors))

    def _submit_search(self, date_type: str) -> None:
        week = self.session.state.week
        if not week:
            raise ProtocolShapeError("Week value missing before search submission")
        form = {
            "searchCriteria.parish": "",
            "searchCriteria.ward": "",
            "week": week,
            "dateType": date_type,
            "searchType": "Application",
        }
        form.update(self.session.state.consume_form_tokens())
        html = self.session.post_form(self.first_page_path, form)
        # The portal reissues both tokens on the results page.
        self.session.state.absorb(extract_tokens(html, selectors=self.selectors))
        self.phase = WalkPhase.SEARCH_SUBMITTED

    def _request_first_page(self) -> str:
        form = {
            "searchCriteria.page": "1",
            "action": "page",
            "orderBy": "DateReceived",
            "orderByDirection": "Descending",
            "searchCriteria.resultsPerPage": str(self.results_per_page),
        }
        form.update(self.session.state.consume_form_tokens())
        html = self.session.post_form(self.paged_results_path, form)
        self.phase = WalkPhase.PAGED
        return html

    def walk(self, date_type: str) -> List[str]:
        """Return every case summary link listed for ``date_type``, in order."""

        self.phase = WalkPhase.INIT
        self._load_weekly_list()
        self._submit_search(date_type)
        html = self._request_first_page()

        links = parse_case_links(html, selectors=self.selectors)
        _crawl_event("pagination", date_type=date_type, page=1, links=len(links))

        visited: Set[str] = set()
        page = 1
        next_link = parse_next_link(html, selectors=self.selectors)
        while next_link:
            target = self.session.absolute(next_link)
            if target in visited:
                raise PaginationLoopError(
                    f"Next link repeats an already visited page: {next_link}",
                    url=target,
                )
            visited.add(target)
            page += 1
            html = self.session.get(target)
            page_links = parse_case_links(html, selectors=self.selectors)
            links.extend(page_links)
            _crawl_event("pagination", date_type=date_type, page=page, links=len(page_links))
            next_link = parse_next_link(html, selectors=self.selectors)

        self.phase = WalkPhase.DONE
        _crawl_event("pagination", phase="done", date_type=date_type, pages=page, total_links=len(links))
        return links


__all__ = ["PaginationWalker", "WalkPhase", "parse_case_links", "parse_next_link"]
