"""Tests for request correlation in log output."""

import json
import logging

import pytest
import structlog

from conexus.core.observability import build_log_formatter


@pytest.mark.asyncio
async def test_service_log_carries_request_id(test_client, event, caplog):
    """A log line written deep in a service knows which request it belongs to."""
    caplog.set_level(logging.INFO)

    response = await test_client.post(
        "/v1/registration/submit",
        json={"event_id": str(event.id), "owner_name": "Ana", "owner_email": "ana@example.edu"},
        headers={"X-Request-ID": "req-submit-1"},
    )
    assert response.status_code == 200

    records = [r for r in caplog.records if r.getMessage() == "Registration submitted"]
    assert len(records) == 1
    assert records[0].request_id == "req-submit-1"

    payload = json.loads(build_log_formatter().format(records[0]))
    assert payload["event"] == "Registration submitted"
    assert payload["request_id"] == "req-submit-1"
    assert payload["registration_id"] == response.json()["id"]
    assert payload["level"] == "info"


@pytest.mark.asyncio
async def test_request_id_not_leaked_between_requests(test_client):
    """Once a request finishes its ID is no longer bound."""
    response = await test_client.post("/v1/event/list", json={}, headers={"X-Request-ID": "req-list-1"})
    assert response.status_code == 200

    assert "request_id" not in structlog.contextvars.get_contextvars()


def test_records_outside_requests_have_no_request_id(caplog):
    caplog.set_level(logging.INFO)

    logging.getLogger("conexus.test").info("Background tick")

    record = caplog.records[-1]
    assert not hasattr(record, "request_id")
