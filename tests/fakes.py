"""Hand-written fakes shared by the crawler tests."""
from __future__ import annotations

import itertools
from html import escape
from types import SimpleNamespace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import requests

from app.planning.errors import UploadError
from app.planning.records import DocumentRef, DocumentType

BASE_URL = "https://portal.test"
WEEKLY_LIST_URL = BASE_URL + "/online-applications/search.do?action=weeklyList"
FIRST_PAGE_URL = BASE_URL + "/online-applications/weeklyListResults.do?action=firstPage"
PAGED_RESULTS_URL = BASE_URL + "/online-applications/pagedSearchResults.do"


class FakeResponse:
    def __init__(
        self,
        text: str = "",
        *,
        content: Optional[bytes] = None,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.text = text
        self.content = content if content is not None else text.encode("utf-8")
        self.status_code = status_code
        self.headers = headers or {}

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


RouteValue = Any


class FakeHttp:
    """Stand-in for ``requests.Session`` keyed by ``(method, absolute url)``.

    A route value may be a ``FakeResponse``, a list of responses consumed in
    order (the last one repeats), an exception instance to raise, or a
    callable receiving the request kwargs. Unknown routes answer 404.
    """

    def __init__(self, routes: Optional[Dict[Tuple[str, str], RouteValue]] = None) -> None:
        self.routes: Dict[Tuple[str, str], RouteValue] = dict(routes or {})
        self.calls: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []
        self.closed = False

    def add(self, method: str, url: str, value: RouteValue) -> None:
        self.routes[(method.upper(), url)] = value

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((method.upper(), url, kwargs.get("data")))
        value = self.routes.get((method.upper(), url))
        if value is None:
            return FakeResponse("not found", status_code=404)
        if isinstance(value, list):
            value = value.pop(0) if len(value) > 1 else value[0]
        if isinstance(value, BaseException):
            raise value
        if callable(value):
            return value(**kwargs)
        return value

    def urls(self, method: Optional[str] = None) -> List[str]:
        return [url for verb, url, _ in self.calls if method is None or verb == method.upper()]

    def posted(self, url: str) -> List[Dict[str, Any]]:
        return [data for verb, target, data in self.calls if verb == "POST" and target == url]

    def close(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _resolve(doc: Dict[str, Any], dotted: str) -> Any:
    value: Any = doc
    for part in dotted.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, expected in query.items():
        actual = _resolve(doc, key)
        if isinstance(expected, dict) and "$elemMatch" in expected:
            criteria = expected["$elemMatch"]
            if not any(_matches(item, criteria) for item in actual or []):
                return False
        elif actual != expected:
            return False
    return True


class FakeCollection:
    """Tiny in-memory subset of a pymongo collection."""

    def __init__(self, docs: Optional[Iterable[Dict[str, Any]]] = None) -> None:
        self.docs: List[Dict[str, Any]] = [dict(doc) for doc in docs or []]
        self.indexes: List[Tuple[Any, Dict[str, Any]]] = []
        self.fail_with: Optional[BaseException] = None
        self._ids = itertools.count(1)

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def create_index(self, keys: Any, **kwargs: Any) -> str:
        self._maybe_fail()
        self.indexes.append((keys, kwargs))
        return kwargs.get("name", "index")

    def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self._maybe_fail()
        for doc in self.docs:
            if _matches(doc, query):
                return doc
        return None

    def insert_one(self, doc: Dict[str, Any]) -> SimpleNamespace:
        self._maybe_fail()
        stored = dict(doc)
        stored["_id"] = next(self._ids)
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    def update_one(self, query: Dict[str, Any], update: Dict[str, Any]) -> SimpleNamespace:
        self._maybe_fail()
        for doc in self.docs:
            if not _matches(doc, query):
                continue
            doc.update(update.get("$set", {}))
            for field_name, push_op in update.get("$push", {}).items():
                doc.setdefault(field_name, []).extend(push_op["$each"])
            return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)


class FakeS3:
    def __init__(self, error: Optional[BaseException] = None) -> None:
        self.objects: List[Dict[str, Any]] = []
        self.error = error

    def put_object(self, **kwargs: Any) -> Dict[str, str]:
        if self.error is not None:
            raise self.error
        self.objects.append(kwargs)
        return {"ETag": f'"etag-{len(self.objects)}"', "ServerSideEncryption": "AES256"}


class FakeUploader:
    """Records upload requests and hands back deterministic document refs."""

    def __init__(self, fail_on: Sequence[str] = ()) -> None:
        self.calls: List[Tuple[DocumentType, str]] = []
        self.fail_on = set(fail_on)

    def upload(self, doc_type: DocumentType, source_url: str) -> DocumentRef:
        self.calls.append((doc_type, source_url))
        if source_url in self.fail_on:
            raise UploadError(f"Error uploading file to S3: {source_url}", url=source_url)
        key = f"key-{len(self.calls)}"
        return DocumentRef(
            doc_type=doc_type,
            key=key,
            size=10,
            content_type="application/pdf",
            location={"Bucket": "bucket", "Key": key, "Location": f"https://bucket.s3.eu-west-2.amazonaws.com/{key}"},
        )


# --- portal page builders -------------------------------------------------


def _token_inputs(csrf: Optional[str], legacy: Optional[str]) -> str:
    parts = []
    if csrf is not None:
        parts.append(f'<input type="hidden" name="_csrf" value="{escape(csrf)}"/>')
    if legacy is not None:
        parts.append(
            f'<input type="hidden" name="org.apache.struts.taglib.html.TOKEN" value="{escape(legacy)}"/>'
        )
    return "".join(parts)


def weekly_list_html(
    week: Optional[str] = "Mon 10 Jun 2024",
    *,
    csrf: Optional[str] = "csrf-weekly",
    legacy: Optional[str] = "legacy-weekly",
) -> str:
    options = f'<option value="{escape(week)}">{escape(week)}</option>' if week else ""
    return (
        "<html><body><form id='weeklyListForm'>"
        f"{_token_inputs(csrf, legacy)}"
        f'<select name="week">{options}</select>'
        "</form></body></html>"
    )


def results_html(
    links: Sequence[str] = (),
    *,
    next_link: Optional[str] = None,
    csrf: Optional[str] = None,
    legacy: Optional[str] = None,
) -> str:
    items = "".join(
        f'<li class="searchresult"><a class="summaryLink" href="{escape(link)}">Case</a></li>' for link in links
    )
    pager = f'<p class="pager"><a class="next" href="{escape(next_link)}">Next</a></p>' if next_link else ""
    return (
        "<html><body><form>"
        f"{_token_inputs(csrf, legacy)}"
        "</form>"
        f'<ul id="searchresults">{items}</ul>{pager}'
        "</body></html>"
    )


def _rows(values: Dict[str, str]) -> str:
    return "".join(f"<tr><th>{escape(label)}</th><td>{escape(value)}</td></tr>" for label, value in values.items())


def print_preview_html(
    reference: str,
    *,
    summary: Optional[Dict[str, str]] = None,
    further: Optional[Dict[str, str]] = None,
    agents: Optional[Dict[str, str]] = None,
) -> str:
    first = {"Reference": reference, "Application Validated": "Mon 03 Jun 2024"}
    first.update((summary or {}))
    labels = list(first)
    split = max(1, len(labels) // 2)
    head = {label: first[label] for label in labels[:split]}
    tail = {label: first[label] for label in labels[split:]}
    parts = [
        "<html><body>",
        f'<table id="simpleDetailsTable">{_rows(head)}</table>',
        f'<table id="simpleDetailsTable">{_rows(tail)}</table>',
    ]
    if further is not None:
        parts.append(f'<table id="applicationDetails">{_rows(further)}</table>')
    if agents is not None:
        parts.append(f'<table class="agents">{_rows(agents)}</table>')
    parts.append("</body></html>")
    return "".join(parts)


def documents_html(reference: Optional[str], rows: Sequence[Tuple[str, str, str]] = ()) -> str:
    """Documents tab with ``(name, description, href)`` rows."""

    crumb = f'<div class="addressCrumb"><span class="caseNumber">{escape(reference)}</span></div>' if reference else ""
    body_rows = []
    for name, description, href in rows:
        link = f'<a href="{escape(href)}">View</a>' if href else ""
        body_rows.append(
            "<tr>"
            '<td><input type="checkbox"/></td>'
            "<td>01 Jun 2024</td>"
            f"<td>{escape(name)}</td>"
            "<td></td>"
            f"<td>{escape(description)}</td>"
            f"<td>{link}</td>"
            "</tr>"
        )
    return (
        "<html><body>"
        f"{crumb}"
        '<table id="Documents"><tr><th></th><th>Date</th><th>Type</th><th>Drawing</th>'
        "<th>Description</th><th>View</th></tr>"
        f"{''.join(body_rows)}</table>"
        "</body></html>"
    )


def case_link(key: str, tab: str = "summary") -> str:
    return f"/online-applications/applicationDetails.do?activeTab={tab}&keyVal={key}"


class FakePortal:
    """Builds ``FakeHttp`` routes for a small portal with cases and documents."""

    def __init__(self, http: Optional[FakeHttp] = None) -> None:
        self.http = http or FakeHttp()
        self.http.add("GET", BASE_URL + "/", FakeResponse("<html></html>"))

    def add_case(
        self,
        key: str,
        reference: Optional[str],
        *,
        documents: Sequence[Tuple[str, str, str]] = (),
        summary: Optional[Dict[str, str]] = None,
        further: Optional[Dict[str, str]] = None,
        agents: Optional[Dict[str, str]] = None,
        preview_reference: Optional[str] = None,
    ) -> str:
        self.http.add("GET", BASE_URL + case_link(key, "documents"), FakeResponse(documents_html(reference, documents)))
        self.http.add(
            "GET",
            BASE_URL + case_link(key, "printPreview"),
            FakeResponse(
                print_preview_html(
                    preview_reference if preview_reference is not None else (reference or ""),
                    summary=summary,
                    further=further,
                    agents=agents,
                )
            ),
        )
        return case_link(key)

    def add_pdf(self, path: str, content: bytes = b"%PDF-1.4 test", *, status_code: int = 200) -> str:
        self.http.add(
            "GET",
            BASE_URL + path,
            FakeResponse(content=content, status_code=status_code, headers={"Content-Type": "application/pdf"}),
        )
        return path

    def add_search(self, pages: Sequence[Sequence[str]], *, week: str = "Mon 10 Jun 2024") -> None:
        """Register the weekly list, search post and result pages.

        Each search post answers with the reissued tokens; the paged post
        answers with the first page, later pages are reached via next links.
        """

        self.http.add("GET", WEEKLY_LIST_URL, FakeResponse(weekly_list_html(week)))
        self.http.add(
            "POST",
            FIRST_PAGE_URL,
            FakeResponse(results_html(csrf="csrf-search", legacy="legacy-search")),
        )
        page_paths = [f"/online-applications/pagedSearchResults.do?action=page&searchCriteria.page={n}" for n in range(2, len(pages) + 1)]
        for index, links in enumerate(pages):
            next_link = page_paths[index] if index < len(page_paths) else None
            html = results_html(links, next_link=next_link)
            if index == 0:
                self.http.add("POST", PAGED_RESULTS_URL, FakeResponse(html))
            else:
                self.http.add("GET", BASE_URL + page_paths[index - 1], FakeResponse(html))


def make_case_doc(
    council: str,
    reference: str,
    *,
    doc_types: Sequence[str] = ("application_form",),
) -> Dict[str, Any]:
    return {
        "council": council,
        "summary": {"reference": reference},
        "documents": [{"doc_type": doc_type, "name": f"{reference}-{doc_type}"} for doc_type in doc_types],
    }


__all__ = [
    "BASE_URL",
    "WEEKLY_LIST_URL",
    "FIRST_PAGE_URL",
    "PAGED_RESULTS_URL",
    "FakeResponse",
    "FakeHttp",
    "FakeClock",
    "FakeCollection",
    "FakeS3",
    "FakeUploader",
    "FakePortal",
    "weekly_list_html",
    "results_html",
    "print_preview_html",
    "documents_html",
    "case_link",
    "make_case_doc",
]
