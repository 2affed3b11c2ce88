"""Reconcile scraped cases against the case store.

Each pass walks an ordered list of case links. Every link yields exactly one
``CaseOutcome``; failures inside a case never stop the pass.

Validated pass:
    existing record                      -> skipped (already_present)
    no application form on the portal    -> skipped (no_application_form)
    otherwise                            -> upload form, insert record

Decided pass (the finalized check runs before any upload):
    record already has a decision notice -> skipped (decision_already_recorded)
    record without one, notice available -> upload, refresh record, update
    record without one, no notice        -> skipped (no_decision_notice)
    no record                            -> upload all documents, insert
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from . import config
from .documents import CaseDocuments, extract_case_documents
from .error_codes import ErrorCode
from .logging_utils import _crawl_event
from .records import CaseRecord, DocumentRef, DocumentType, extract_case_record
from .transport import PortalSession
from .utils import log_line, utc_now


class OutcomeStatus(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason:
    ALREADY_PRESENT = "already_present"
    NO_APPLICATION_FORM = "no_application_form"
    DECISION_ALREADY_RECORDED = "decision_already_recorded"
    NO_DECISION_NOTICE = "no_decision_notice"
    UPDATE_TARGET_MISSING = "update_target_missing"


class PassKind(str, Enum):
    VALIDATED = "validated"
    DECIDED = "decided"

    @property
    def date_type(self) -> str:
        if self is PassKind.VALIDATED:
            return config.VALIDATED_DATE_TYPE
        return config.DECIDED_DATE_TYPE


@dataclass(frozen=True)
class CaseOutcome:
    link: str
    status: OutcomeStatus
    reference: Optional[str] = None
    reason: Optional[str] = None
    error_message: Optional[str] = None
    uploads: int = 0

    @classmethod
    def skipped(cls, link: str, reference: Optional[str], reason: str) -> "CaseOutcome":
        return cls(link=link, status=OutcomeStatus.SKIPPED, reference=reference, reason=reason)

    @classmethod
    def failed(cls, link: str, reference: Optional[str], exc: BaseException) -> "CaseOutcome":
        code = getattr(exc, "error_code", None) or ErrorCode.INTERNAL
        return cls(
            link=link,
            status=OutcomeStatus.FAILED,
            reference=reference,
            reason=code,
            error_message=str(exc)[:500],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "link": self.link,
            "status": self.status.value,
            "reference": self.reference,
            "reason": self.reason,
            "error_message": self.error_message,
            "uploads": self.uploads,
        }


@dataclass
class PassSummary:
    kind: PassKind
    outcomes: List[CaseOutcome] = field(default_factory=list)

    @property
    def counts(self) -> Dict[str, int]:
        counter = Counter(outcome.status.value for outcome in self.outcomes)
        return {status.value: counter.get(status.value, 0) for status in OutcomeStatus}

    @property
    def uploads(self) -> int:
        return sum(outcome.uploads for outcome in self.outcomes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pass": self.kind.value,
            "date_type": self.kind.date_type,
            "links": len(self.outcomes),
            "uploads": self.uploads,
            **self.counts,
        }


class ReconciliationEngine:
    def __init__(
        self,
        session: PortalSession,
        store: Any,
        uploader: Any,
        *,
        council: str = config.DEFAULT_COUNCIL,
        actor_id: str = config.SYSTEM_ACTOR_ID,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.session = session
        self.store = store
        self.uploader = uploader
        self.council = council
        self.actor_id = actor_id
        self.clock = clock

    def run_pass(self, kind: PassKind, links: Sequence[str]) -> PassSummary:
        handler = self.process_validated if kind is PassKind.VALIDATED else self.process_decided
        summary = PassSummary(kind=kind)
        total = len(links)
        for position, link in enumerate(links, start=1):
            log_line(f"[RECONCILE] {kind.value} {position}/{total} processing {link}")
            outcome = self._isolate(link, handler)
            summary.outcomes.append(outcome)
        _crawl_event("reconcile", phase="pass_complete", kind=kind.value, **summary.counts)
        return summary

    def run_validated_pass(self, links: Sequence[str]) -> PassSummary:
        return self.run_pass(PassKind.VALIDATED, links)

    def run_decided_pass(self, links: Sequence[str]) -> PassSummary:
        return self.run_pass(PassKind.DECIDED, links)

    def _isolate(self, link: str, handler: Callable[[str, "_CaseContext"], CaseOutcome]) -> CaseOutcome:
        context = _CaseContext()
        try:
            outcome = handler(link, context)
        except Exception as exc:  # noqa: BLE001
            outcome = CaseOutcome.failed(link, context.reference, exc)

        if outcome.status is OutcomeStatus.FAILED:
            _crawl_event(
                "error",
                phase="case",
                link=link,
                reference=outcome.reference,
                error_code=outcome.reason,
                error=outcome.error_message,
            )
        elif outcome.status is OutcomeStatus.SKIPPED:
            log_line(f"[RECONCILE] Skipping reference={outcome.reference} reason={outcome.reason}")
        return outcome

    def _documents(self, link: str, context: "_CaseContext") -> CaseDocuments:
        documents = extract_case_documents(self.session, link)
        context.reference = documents.reference
        return documents

    def _record(self, link: str, reference: str) -> CaseRecord:
        record = extract_case_record(
            self.session,
            link,
            council=self.council,
            actor_id=self.actor_id,
            now=self.clock(),
        )
        portal_reference = record.reference
        record.reference = reference
        if portal_reference and portal_reference != reference:
            record.summary["portal_reference"] = portal_reference
        return record

    def process_validated(self, link: str, context: "_CaseContext") -> CaseOutcome:
        documents = self._documents(link, context)
        reference = documents.reference

        if self.store.find_by_reference(self.council, reference) is not None:
            return CaseOutcome.skipped(link, reference, SkipReason.ALREADY_PRESENT)

        form_url = documents.get(DocumentType.APPLICATION_FORM)
        if not form_url:
            return CaseOutcome.skipped(link, reference, SkipReason.NO_APPLICATION_FORM)

        record = self._record(link, reference)
        record.documents.append(self.uploader.upload(DocumentType.APPLICATION_FORM, form_url))
        self.store.insert(record)
        return CaseOutcome(link=link, status=OutcomeStatus.INSERTED, reference=reference, uploads=1)

    def process_decided(self, link: str, context: "_CaseContext") -> CaseOutcome:
        documents = self._documents(link, context)
        reference = documents.reference

        if self.store.find_by_reference_with_decision(self.council, reference) is not None:
            return CaseOutcome.skipped(link, reference, SkipReason.DECISION_ALREADY_RECORDED)

        existing = self.store.find_by_reference(self.council, reference)
        if existing is not None:
            decision_url = documents.get(DocumentType.DECISION_NOTICE)
            if not decision_url:
                return CaseOutcome.skipped(link, reference, SkipReason.NO_DECISION_NOTICE)
            return self._update_with_decision(link, reference, decision_url)

        record = self._record(link, reference)
        uploaded: List[DocumentRef] = []
        for doc_type in (DocumentType.APPLICATION_FORM, DocumentType.DECISION_NOTICE):
            url = documents.get(doc_type)
            if url:
                uploaded.append(self.uploader.upload(doc_type, url))
        record.documents.extend(uploaded)
        self.store.insert(record)
        return CaseOutcome(link=link, status=OutcomeStatus.INSERTED, reference=reference, uploads=len(uploaded))

    def _update_with_decision(self, link: str, reference: str, decision_url: str) -> CaseOutcome:
        ref = self.uploader.upload(DocumentType.DECISION_NOTICE, decision_url)
        fresh = self._record(link, reference)
        fields = {
            "summary": fresh.summary_document(),
            "further_information": fresh.further_information,
            "agent_details": fresh.agent_details,
            "updated_at": fresh.updated_at,
            "updated_by": self.actor_id,
        }
        matched = self.store.update_by_reference(self.council, reference, fields, append_documents=[ref])
        if matched == 0:
            return CaseOutcome(
                link=link,
                status=OutcomeStatus.SKIPPED,
                reference=reference,
                reason=SkipReason.UPDATE_TARGET_MISSING,
                uploads=1,
            )
        return CaseOutcome(link=link, status=OutcomeStatus.UPDATED, reference=reference, uploads=1)


@dataclass
class _CaseContext:
    """Details learned while processing one case, kept for failure reports."""

    reference: Optional[str] = None


__all__ = [
    "OutcomeStatus",
    "SkipReason",
    "PassKind",
    "CaseOutcome",
    "PassSummary",
    "ReconciliationEngine",
]
