from __future__ import annotations

import pytest
from pymongo.errors import PyMongoError

from app.planning import config, healthcheck
from app.planning.store import CaseStore
from tests.fakes import FakeCollection


class _DownClient:
    class admin:  # noqa: N801
        @staticmethod
        def command(name):  # noqa: ANN001
            raise PyMongoError("no primary")

    def close(self) -> None:
        return None


@pytest.fixture()
def blob_configured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "AWS_BUCKET_NAME", "planning-docs")
    monkeypatch.setattr(config, "AWS_REGION", "eu-west-2")


def test_run_health_checks_happy_path(blob_configured) -> None:  # noqa: ANN001
    result = healthcheck.run_health_checks(
        entrypoint="ui",
        store_factory=lambda cfg: CaseStore(FakeCollection()),
    )

    assert result.ok is True
    assert result.checks["config"]["ok"] is True
    assert result.checks["ledger"]["ok"] is True
    assert result.checks["store"]["ok"] is True


def test_run_health_checks_handles_invalid_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "AWS_BUCKET_NAME", "")

    result = healthcheck.run_health_checks(
        entrypoint="cli",
        store_factory=lambda cfg: CaseStore(FakeCollection()),
    )

    assert result.ok is False
    assert result.checks["config"]["ok"] is False
    assert "AWS_BUCKET_NAME" in result.checks["config"]["error"]


def test_run_health_checks_reports_store_outage(blob_configured) -> None:  # noqa: ANN001
    result = healthcheck.run_health_checks(
        entrypoint="ui",
        store_factory=lambda cfg: CaseStore(FakeCollection(), client=_DownClient()),
    )

    assert result.ok is False
    assert result.checks["store"]["ok"] is False
    assert "no primary" in result.checks["store"]["error"]
