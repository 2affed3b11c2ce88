"""MongoDB-backed store of planning case records.

Records are keyed by ``council`` plus ``summary.reference``.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from pymongo import ASCENDING, MongoClient
from pymongo.errors import PyMongoError

from .errors import StoreError
from .logging_utils import _crawl_event
from .records import CaseRecord, DocumentRef, DocumentType
from .utils import log_line


def _reference_filter(council: str, reference: str) -> Dict[str, Any]:
    return {"council": council, "summary.reference": reference}


class CaseStore:
    def __init__(self, collection: Any, *, client: Optional[MongoClient] = None) -> None:
        self.collection = collection
        self.client = client

    @classmethod
    def connect(cls, uri: str, db_name: str, coll_name: str) -> "CaseStore":
        try:
            client = MongoClient(uri, connect=True)
        except PyMongoError as exc:
            raise StoreError(f"Unable to connect to MongoDB: {exc}") from exc
        return cls(client[db_name][coll_name], client=client)

    def ensure_indexes(self) -> None:
        try:
            self.collection.create_index(
                [("council", ASCENDING), ("summary.reference", ASCENDING)],
                unique=True,
                name="council_reference",
            )
        except PyMongoError as exc:
            # Existing duplicate rows block a unique index; the crawl itself
            # still avoids creating new ones.
            log_line(f"[STORE][WARN] Unable to ensure council/reference index: {exc}")

    def ping(self) -> bool:
        if self.client is None:
            return True
        try:
            self.client.admin.command("ping")
        except PyMongoError as exc:
            raise StoreError(f"MongoDB ping failed: {exc}") from exc
        return True

    def find_by_reference(self, council: str, reference: str) -> Optional[Dict[str, Any]]:
        try:
            return self.collection.find_one(_reference_filter(council, reference))
        except PyMongoError as exc:
            raise StoreError(f"Lookup failed for {reference}: {exc}") from exc

    def find_by_reference_with_decision(self, council: str, reference: str) -> Optional[Dict[str, Any]]:
        query = _reference_filter(council, reference)
        query["documents"] = {"$elemMatch": {"doc_type": DocumentType.DECISION_NOTICE.value}}
        try:
            return self.collection.find_one(query)
        except PyMongoError as exc:
            raise StoreError(f"Decision lookup failed for {reference}: {exc}") from exc

    def insert(self, record: CaseRecord) -> Any:
        try:
            result = self.collection.insert_one(record.to_document())
        except PyMongoError as exc:
            raise StoreError(f"Insert failed for {record.reference}: {exc}") from exc
        _crawl_event("store", phase="insert", council=record.council, reference=record.reference)
        return result.inserted_id

    def update_by_reference(
        self,
        council: str,
        reference: str,
        fields: Dict[str, Any],
        *,
        append_documents: Iterable[DocumentRef] = (),
    ) -> int:
        """Apply ``fields`` and append documents; return the matched count.

        A zero count means the record disappeared between read and write; it
        is logged, not raised.
        """

        update: Dict[str, Any] = {"$set": dict(fields)}
        appended = [ref.to_document() for ref in append_documents]
        if appended:
            update["$push"] = {"documents": {"$each": appended}}
        try:
            result = self.collection.update_one(_reference_filter(council, reference), update)
        except PyMongoError as exc:
            raise StoreError(f"Update failed for {reference}: {exc}") from exc

        matched = int(result.matched_count)
        if matched == 0:
            log_line(f"[STORE][WARN] Update matched no document for council={council} reference={reference}")
        else:
            _crawl_event("store", phase="update", council=council, reference=reference, appended=len(appended))
        return matched

    def close(self) -> None:
        if self.client is not None:
            self.client.close()


__all__ = ["CaseStore"]
