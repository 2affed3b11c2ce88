import pytest

from app.planning import retry_policy
from app.planning.error_codes import ErrorCode, classify_http_status


@pytest.fixture()
def events(monkeypatch):
    captured: list[tuple[str, dict]] = []

    def fake_event(label="", *, phase=None, **fields):  # noqa: ANN001
        captured.append((label, {"phase": phase, **fields}))

    monkeypatch.setattr(retry_policy, "_crawl_event", fake_event)
    return captured


def test_retryable_codes_retry_until_cap(events) -> None:
    assert retry_policy.decide_retry(1, 3, error_code=ErrorCode.NETWORK) is True
    assert retry_policy.decide_retry(2, 3, error_code=ErrorCode.HTTP_5XX) is True
    assert retry_policy.decide_retry(3, 3, error_code=ErrorCode.NETWORK) is False

    kinds = [fields["kind"] for _, fields in events]
    assert kinds == ["retryable", "retryable", "capped"]


def test_non_retryable_codes_stop_immediately(events) -> None:
    assert retry_policy.decide_retry(1, 3, error_code=ErrorCode.HTTP_404) is False
    assert retry_policy.decide_retry(1, 3, error_code=ErrorCode.EMPTY_DOCUMENT) is False

    assert {fields["kind"] for _, fields in events} == {"non_retryable"}


def test_unknown_code_with_server_status_retries(events) -> None:
    assert retry_policy.decide_retry(1, 3, error_code="weird", http_status=502) is True
    assert events[-1][1]["kind"] == "retryable"


def test_missing_error_code_allows_one_more_attempt(events) -> None:
    error = ValueError("boom")
    assert retry_policy.decide_retry(1, 3, error) is True
    assert retry_policy.decide_retry(2, 3, error) is False

    label, fields = events[0]
    assert label == "state"
    assert fields["phase"] == "retry_decision"
    assert fields["kind"] == "missing_error_code"
    assert "boom" in fields["error_repr"]


def test_backoff_is_exponential_and_capped() -> None:
    assert retry_policy.compute_backoff_seconds(1) == 1.0
    assert retry_policy.compute_backoff_seconds(2) == 2.0
    assert retry_policy.compute_backoff_seconds(4) == 8.0
    assert retry_policy.compute_backoff_seconds(20) == 30.0


@pytest.mark.parametrize(
    "status,expected",
    [
        (None, ErrorCode.INTERNAL),
        (401, ErrorCode.HTTP_401),
        (403, ErrorCode.HTTP_403),
        (404, ErrorCode.HTTP_404),
        (429, ErrorCode.RATE_LIMITED),
        (410, ErrorCode.HTTP_4XX),
        (503, ErrorCode.HTTP_5XX),
    ],
)
def test_classify_http_status(status, expected) -> None:  # noqa: ANN001
    assert classify_http_status(status) == expected
