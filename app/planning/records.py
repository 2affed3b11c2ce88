"""Case records and their extraction from the print preview page."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from . import config
from .date_utils import parse_portal_date
from .selectors import PORTAL_SELECTORS, PortalSelectors
from .transport import PortalSession
from .urls import DETAILS_TAB, DOCUMENTS_TAB, PRINT_PREVIEW_TAB, SUMMARY_TAB, swap_tab
from .utils import cell_text, make_soup, utc_now


class DocumentType(str, Enum):
    APPLICATION_FORM = "application_form"
    DECISION_NOTICE = "decision_notice"


# (record field, source label key, parse as date)
SUMMARY_FIELDS: Tuple[Tuple[str, str, bool], ...] = (
    ("application_validated", "application_validated", False),
    ("address", "address", False),
    ("proposal", "proposal", False),
    ("status", "status", False),
    ("decision", "decision", False),
    ("decision_issued_date", "decision_issued_date", True),
    ("appeal_status", "appeal_status", False),
    ("appeal_decision", "appeal_decision", False),
    ("application_validated_date", "application_validated_date", True),
    ("agreed_expiry_date", "agreed_expiry_date", True),
    ("determination_deadline", "determination_deadline", True),
)

FURTHER_INFORMATION_FIELDS: Tuple[str, ...] = (
    "application_type",
    "actual_decision_level",
    "expected_decision_level",
    "parish",
    "ward",
    "applicant_name",
    "agent_name",
    "agent_company_name",
    "agent_address",
    "environmental_assessment_requested",
)

AGENT_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("agent_email", "email"),
    ("agent_phone", "mobile_phone"),
)


@dataclass
class DocumentRef:
    """Descriptor of one document uploaded to blob storage."""

    doc_type: DocumentType
    key: str
    size: int
    content_type: str
    location: Dict[str, Any]
    file_type: str = "pdf"

    def to_document(self) -> Dict[str, Any]:
        return {
            "type": self.file_type,
            "name": self.key,
            "size": self.size,
            "doc_type": self.doc_type.value,
            "content_type": self.content_type,
            "s3": dict(self.location),
        }


@dataclass
class CaseRecord:
    council: str
    reference: str
    link: str
    details_url: str
    documents_url: str
    summary: Dict[str, Any]
    further_information: Dict[str, str]
    agent_details: Dict[str, str]
    created_at: datetime
    created_by: str
    updated_at: datetime
    updated_by: str
    documents: List[DocumentRef] = field(default_factory=list)

    def summary_document(self) -> Dict[str, Any]:
        return {"reference": self.reference, **self.summary}

    def to_document(self) -> Dict[str, Any]:
        return {
            "council": self.council,
            "link": self.link,
            "summary": self.summary_document(),
            "further_information": dict(self.further_information),
            "agent_details": dict(self.agent_details),
            "details_url": self.details_url,
            "documents_url": self.documents_url,
            "documents": [ref.to_document() for ref in self.documents],
            "created_at": self.created_at,
            "created_by": self.created_by,
            "updated_at": self.updated_at,
            "updated_by": self.updated_by,
        }


def normalize_label(label: str) -> str:
    """Turn a table header such as "Application Validated" into a field name."""

    return " ".join((label or "").split()).lower().replace(" ", "_")


def parse_key_value_table(table: Any) -> Dict[str, str]:
    """Read ``<th>label</th><td>value</td>`` rows into a dict.

    Rows missing either cell are ignored.
    """

    values: Dict[str, str] = {}
    if table is None:
        return values
    for row in table.find_all("tr"):
        header = row.find("th")
        cell = row.find("td")
        if header is None or cell is None:
            continue
        key = normalize_label(cell_text(header))
        if key:
            values[key] = cell_text(cell)
    return values


def parse_case_record(
    html: str,
    link: str,
    *,
    council: str = config.DEFAULT_COUNCIL,
    actor_id: str = config.SYSTEM_ACTOR_ID,
    now: Optional[datetime] = None,
    selectors: PortalSelectors = PORTAL_SELECTORS,
) -> CaseRecord:
    """Build a ``CaseRecord`` from print preview ``html`` for summary ``link``."""

    soup = make_soup(html)

    raw_summary: Dict[str, str] = {}
    # Only the first two fragments of the split details table carry summary rows.
    for table in soup.select(selectors.summary_tables)[:2]:
        raw_summary.update(parse_key_value_table(table))
    raw_further = parse_key_value_table(soup.select_one(selectors.further_information_table))
    raw_agents = parse_key_value_table(soup.select_one(selectors.agents_table))

    summary: Dict[str, Any] = {}
    for field_name, source_key, is_date in SUMMARY_FIELDS:
        value = raw_summary.get(source_key, "")
        summary[field_name] = parse_portal_date(value) if is_date else value

    further_information = {name: raw_further.get(name, "") for name in FURTHER_INFORMATION_FIELDS}
    agent_details = {name: raw_agents.get(source, "") for name, source in AGENT_FIELDS}

    summary_link = swap_tab(link, SUMMARY_TAB)
    stamp = now or utc_now()
    return CaseRecord(
        council=council,
        reference=raw_summary.get("reference", ""),
        link=summary_link,
        details_url=swap_tab(summary_link, DETAILS_TAB),
        documents_url=swap_tab(summary_link, DOCUMENTS_TAB),
        summary=summary,
        further_information=further_information,
        agent_details=agent_details,
        created_at=stamp,
        created_by=actor_id,
        updated_at=stamp,
        updated_by=actor_id,
    )


def extract_case_record(
    session: PortalSession,
    link: str,
    *,
    council: str = config.DEFAULT_COUNCIL,
    actor_id: str = config.SYSTEM_ACTOR_ID,
    now: Optional[datetime] = None,
) -> CaseRecord:
    """Fetch the print preview for case ``link`` and parse it."""

    summary_link = session.absolute(link)
    html = session.get(swap_tab(summary_link, PRINT_PREVIEW_TAB))
    return parse_case_record(html, summary_link, council=council, actor_id=actor_id, now=now)


__all__ = [
    "DocumentType",
    "DocumentRef",
    "CaseRecord",
    "normalize_label",
    "parse_key_value_table",
    "parse_case_record",
    "extract_case_record",
]
