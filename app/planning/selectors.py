from __future__ import annotations

"""CSS selectors and form field names for Idox Public Access portals."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PortalSelectors:
    """Selector hints for the weekly list, results and case tab pages.

    The print preview page splits the main details table into two
    ``#simpleDetailsTable`` fragments, so the summary selector may match
    more than once.
    """

    week_option: str = 'select[name="week"] option'
    csrf_input: str = 'input[name="_csrf"]'
    legacy_token_input: str = 'input[name="org.apache.struts.taglib.html.TOKEN"]'
    summary_link: str = "ul#searchresults > li.searchresult > a.summaryLink"
    next_page: str = "a.next"
    summary_tables: str = "table#simpleDetailsTable"
    further_information_table: str = "table#applicationDetails"
    agents_table: str = "table.agents"
    reference_id: str = "div.addressCrumb > span.caseNumber"
    document_rows: str = "tr"
    document_name_column: int = 2
    document_description_column: int = 4
    document_link_column: int = 5


PORTAL_SELECTORS = PortalSelectors()

CSRF_FIELD = "_csrf"
LEGACY_TOKEN_FIELD = "org.apache.struts.taglib.html.TOKEN"

__all__ = [
    "PortalSelectors",
    "PORTAL_SELECTORS",
    "CSRF_FIELD",
    "LEGACY_TOKEN_FIELD",
]
