"""Reference id and document link extraction from a case's documents tab."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .errors import MissingReferenceError
from .logging_utils import _crawl_event
from .records import DocumentType
from .selectors import PORTAL_SELECTORS, PortalSelectors
from .transport import PortalSession
from .urls import DOCUMENTS_TAB, absolute_url, swap_tab
from .utils import cell_text, make_soup

DECISION_KEYWORD = "decision"
APPLICATION_FORM_KEYWORD = "application form"


@dataclass(frozen=True)
class DocumentRow:
    name: str
    description: str
    link: str


@dataclass
class CaseDocuments:
    reference: str
    links: Dict[DocumentType, str] = field(default_factory=dict)

    def get(self, doc_type: DocumentType) -> Optional[str]:
        return self.links.get(doc_type)


def classify_row(name: str, description: str) -> Optional[DocumentType]:
    """Return the document type for a row, or ``None`` when it does not qualify."""

    text = f"{name}\n{description}".lower()
    if DECISION_KEYWORD in text:
        return DocumentType.DECISION_NOTICE
    if APPLICATION_FORM_KEYWORD in text:
        return DocumentType.APPLICATION_FORM
    return None


def parse_document_rows(html: str, *, selectors: PortalSelectors = PORTAL_SELECTORS) -> List[DocumentRow]:
    soup = make_soup(html)
    rows: List[DocumentRow] = []
    last_column = max(
        selectors.document_name_column,
        selectors.document_description_column,
        selectors.document_link_column,
    )
    for row in soup.select(selectors.document_rows):
        cells = row.find_all("td", recursive=False)
        if len(cells) <= last_column:
            continue
        anchor = cells[selectors.document_link_column].find("a", href=True)
        rows.append(
            DocumentRow(
                name=cell_text(cells[selectors.document_name_column]),
                description=cell_text(cells[selectors.document_description_column]),
                link=(anchor.get("href") or "").strip() if anchor is not None else "",
            )
        )
    return rows


def parse_case_documents(
    html: str,
    *,
    base_url: str,
    selectors: PortalSelectors = PORTAL_SELECTORS,
) -> CaseDocuments:
    """Return the reference id and classified document links from ``html``.

    When several rows classify to the same type the later row wins.
    """

    reference = cell_text(make_soup(html).select_one(selectors.reference_id))
    if not reference:
        raise MissingReferenceError("No reference id found on documents page")

    result = CaseDocuments(reference=reference)
    for row in parse_document_rows(html, selectors=selectors):
        if not row.link:
            continue
        doc_type = classify_row(row.name, row.description)
        if doc_type is None:
            continue
        url = absolute_url(base_url, row.link)
        previous = result.links.get(doc_type)
        if previous is not None and previous != url:
            _crawl_event(
                "documents",
                phase="slot_overwritten",
                reference=reference,
                doc_type=doc_type.value,
                dropped=previous,
                kept=url,
            )
        result.links[doc_type] = url
    return result


def extract_case_documents(session: PortalSession, link: str) -> CaseDocuments:
    """Fetch the documents tab for case ``link`` and classify its rows."""

    documents_link = swap_tab(link, DOCUMENTS_TAB)
    html = session.get(documents_link)
    try:
        return parse_case_documents(html, base_url=session.base_url)
    except MissingReferenceError as exc:
        exc.url = session.absolute(documents_link)
        raise


__all__ = [
    "DocumentRow",
    "CaseDocuments",
    "classify_row",
    "parse_document_rows",
    "parse_case_documents",
    "extract_case_documents",
]
