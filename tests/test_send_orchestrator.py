"""Tests for recipient classification and multi-recipient batch sends."""

import asyncio
import json
import time

import httpx
import pytest

from signal_gateway.adapters.backend.http_client import HttpBackendClient
from signal_gateway.core.errors import BackendRejectedError, BackendUnreachableError, ValidationAppError
from signal_gateway.services.send_orchestrator import (
    SendOrchestrator,
    classify_recipient,
    new_job_id,
    parse_recipients,
)
from signal_gateway.services.send_queue import SendQueue


# ======================== Recipient Parsing Tests ========================


class TestClassifyRecipient:
    """Group markers and individual addresses."""

    @pytest.mark.parametrize(
        "raw,address",
        [
            ("group.abc123", "abc123"),
            ("group:abc123", "abc123"),
            ("  group.XYZ  ", "XYZ"),
        ],
    )
    def test_group_markers_are_stripped(self, raw: str, address: str) -> None:
        recipient = classify_recipient(raw)

        assert recipient.kind == "group"
        assert recipient.is_group is True
        assert recipient.address == address

    def test_individual_is_forwarded_verbatim(self) -> None:
        recipient = classify_recipient("+15551234567")

        assert recipient.kind == "individual"
        assert recipient.is_group is False
        assert recipient.address == "+15551234567"
        assert recipient.raw == "+15551234567"

    def test_marker_must_be_a_prefix(self) -> None:
        recipient = classify_recipient("mygroup.abc")

        assert recipient.is_group is False


class TestParseRecipients:
    """Normalization of the recipients field."""

    def test_list_passthrough(self) -> None:
        assert parse_recipients(["+1555", " group.abc "]) == ["+1555", "group.abc"]

    def test_json_array_string(self) -> None:
        assert parse_recipients('["+1555", "group:abc"]') == ["+1555", "group:abc"]

    def test_comma_separated_string(self) -> None:
        assert parse_recipients("+1555, +1666 ,group.abc,") == ["+1555", "+1666", "group.abc"]

    def test_blank_list_entries_are_kept_for_validation(self) -> None:
        assert parse_recipients(["+1555", "  "]) == ["+1555", ""]

    @pytest.mark.parametrize("value", [None, "", "   ", []])
    def test_empty_values(self, value) -> None:
        assert parse_recipients(value) == []

    def test_rejects_other_types(self) -> None:
        with pytest.raises(ValidationAppError) as excinfo:
            parse_recipients({"to": "+1555"})

        assert excinfo.value.code == "invalid_recipients"


def test_job_ids_are_unique_and_prefixed() -> None:
    ids = {new_job_id() for _ in range(50)}

    assert len(ids) == 50
    assert all(job_id.startswith("job-") for job_id in ids)


# ======================== Batch Send Tests ========================


@pytest.fixture
def queue() -> SendQueue:
    return SendQueue(min_interval_ms=0)


class TestSubmitBatchValidation:
    """Invalid requests are rejected before anything is queued."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "recipients,message,code",
        [
            ([], "hello", "invalid_recipients"),
            (["+1555", ""], "hello", "invalid_recipients"),
            (["group."], "hello", "invalid_recipients"),
            (["+1555"], "", "invalid_message"),
            (["+1555"], "   ", "invalid_message"),
        ],
    )
    async def test_invalid_input(self, queue, fake_backend, recipients, message, code) -> None:
        orchestrator = SendOrchestrator(queue, fake_backend)

        with pytest.raises(ValidationAppError) as excinfo:
            await orchestrator.submit_batch(recipients, message)

        assert excinfo.value.code == code
        assert queue.status().initialized is False
        assert fake_backend.sent == []


class TestSubmitBatch:
    """Fan-out, aggregation and per-recipient failure isolation."""

    @pytest.mark.asyncio
    async def test_one_outcome_per_recipient_in_order(self, queue, fake_backend) -> None:
        orchestrator = SendOrchestrator(queue, fake_backend)

        batch = await orchestrator.submit_batch(["+1555", "group.team", "+1666"], "hello")

        assert [o.recipient for o in batch.results] == ["+1555", "group.team", "+1666"]
        assert [o.is_group for o in batch.results] == [False, True, False]
        assert batch.success is True
        assert batch.success_count == 3
        assert batch.failure_count == 0
        assert batch.total == 3
        assert fake_backend.sent == [
            {"kind": "individual", "target": "+1555", "text": "hello", "attachment": None},
            {"kind": "group", "target": "team", "text": "hello", "attachment": None},
            {"kind": "individual", "target": "+1666", "text": "hello", "attachment": None},
        ]
        await queue.close()

    @pytest.mark.asyncio
    async def test_duplicate_recipients_are_sent_twice(self, queue, fake_backend) -> None:
        orchestrator = SendOrchestrator(queue, fake_backend)

        batch = await orchestrator.submit_batch(["+1555", "+1555"], "hi")

        assert batch.total == 2
        assert len(fake_backend.sent) == 2
        await queue.close()

    @pytest.mark.asyncio
    async def test_uses_supplied_job_id(self, queue, fake_backend) -> None:
        orchestrator = SendOrchestrator(queue, fake_backend)

        batch = await orchestrator.submit_batch(["+1555"], "hi", job_id="job-fixed")

        assert batch.job_id == "job-fixed"
        await queue.close()

    @pytest.mark.asyncio
    async def test_failure_is_isolated_to_its_recipient(self, queue, fake_backend) -> None:
        fake_backend.failures["XYZ"] = BackendRejectedError(
            code="backend_rejected",
            message="Not found: Group not found",
            status_code=404,
        )
        orchestrator = SendOrchestrator(queue, fake_backend)

        batch = await orchestrator.submit_batch(["+1555", "group.XYZ", "+1666"], "hello")

        assert batch.success is False
        assert batch.success_count == 2
        assert batch.failure_count == 1
        failed = batch.results[1]
        assert failed.success is False
        assert failed.is_group is True
        assert failed.error == "Not found: Group not found"
        assert failed.error_code == "backend_rejected"
        assert batch.results[0].error is None
        assert len(fake_backend.sent) == 3
        await queue.close()

    @pytest.mark.asyncio
    async def test_unreachable_backend_fails_every_recipient(self, queue, fake_backend) -> None:
        for target in ("+1555", "+1666"):
            fake_backend.failures[target] = BackendUnreachableError(
                code="backend_unreachable",
                message="Cannot connect to messaging backend. Is the backend service running?",
            )
        orchestrator = SendOrchestrator(queue, fake_backend)

        batch = await orchestrator.submit_batch(["+1555", "+1666"], "hello")

        assert batch.failure_count == 2
        assert all(o.error_code == "backend_unreachable" for o in batch.results)
        await queue.close()

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_failed_outcome(self, queue, fake_backend) -> None:
        fake_backend.failures["+1555"] = RuntimeError("socket exploded")
        orchestrator = SendOrchestrator(queue, fake_backend)

        batch = await orchestrator.submit_batch(["+1555", "+1666"], "hello")

        assert batch.results[0].success is False
        assert batch.results[0].error == "socket exploded"
        assert batch.results[0].error_code == "send_failed"
        assert batch.results[1].success is True
        await queue.close()

    @pytest.mark.asyncio
    async def test_missing_media_fails_without_backend_call(self, queue, fake_backend, tmp_path) -> None:
        orchestrator = SendOrchestrator(queue, fake_backend)

        batch = await orchestrator.submit_batch(
            ["+1555", "group.team"], "see attached", str(tmp_path / "missing.png")
        )

        assert batch.failure_count == 2
        assert all(o.error_code == "media_not_found" for o in batch.results)
        assert fake_backend.sent == []
        await queue.close()

    @pytest.mark.asyncio
    async def test_attachment_is_encoded_for_each_send(self, queue, fake_backend, tmp_path) -> None:
        image = tmp_path / "photo.png"
        image.write_bytes(b"\x89PNG")
        orchestrator = SendOrchestrator(queue, fake_backend)

        batch = await orchestrator.submit_batch(["+1555", "group.team"], "pic", str(image))

        assert batch.success is True
        attachments = [entry["attachment"] for entry in fake_backend.sent]
        assert attachments == ["data:image/png;base64,iVBORw==", "data:image/png;base64,iVBORw=="]
        await queue.close()

    @pytest.mark.asyncio
    async def test_sends_are_spaced_by_queue_interval(self, fake_backend) -> None:
        queue = SendQueue(min_interval_ms=50)
        orchestrator = SendOrchestrator(queue, fake_backend)

        start = time.monotonic()
        batch = await orchestrator.submit_batch(["+1", "+2", "+3"], "hello")
        elapsed = time.monotonic() - start

        assert batch.success_count == 3
        assert elapsed >= 0.1 - 1e-3
        await queue.close()

    @pytest.mark.asyncio
    async def test_cleared_jobs_report_failure(self, queue, fake_backend) -> None:
        orchestrator = SendOrchestrator(queue, fake_backend)
        queue.pause()

        batch_task = asyncio.create_task(orchestrator.submit_batch(["+1555", "+1666"], "hello"))
        while queue.status().pending < 2:
            await asyncio.sleep(0)

        assert queue.clear() == 2
        batch = await batch_task

        assert batch.failure_count == 2
        assert all(o.error_code == "queue_cleared" for o in batch.results)
        assert all(o.duration_ms == 0 for o in batch.results)
        assert fake_backend.sent == []
        await queue.close()


    @pytest.mark.asyncio
    async def test_closed_queue_reports_every_recipient(self, queue, fake_backend) -> None:
        orchestrator = SendOrchestrator(queue, fake_backend)
        await queue.close()

        batch = await orchestrator.submit_batch(["+1555", "group.team"], "hello")

        assert batch.total == 2
        assert batch.failure_count == 2
        assert all(o.error_code == "queue_closed" for o in batch.results)
        assert fake_backend.sent == []


class TestSubmitBatchOverHttp:
    """End-to-end fan-out against a mocked backend transport."""

    @pytest.mark.asyncio
    async def test_mixed_individual_and_unknown_group(self, queue) -> None:
        requests: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            payload = json.loads(request.content)
            requests.append(payload)
            if payload["recipients"] == ["group.XYZ"]:
                return httpx.Response(404, json={"error": "Group not found"})
            return httpx.Response(201, json={"timestamp": "1700000000000"})

        backend = HttpBackendClient(
            "http://backend.test",
            "+15550000000",
            transport=httpx.MockTransport(handler),
        )
        orchestrator = SendOrchestrator(queue, backend)

        batch = await orchestrator.submit_batch(["+15551234567", "group.XYZ"], "Hello")

        assert batch.success is False
        assert batch.success_count == 1
        assert batch.failure_count == 1
        assert batch.results[0].success is True
        assert batch.results[1].error.startswith("Not found")
        assert [r["recipients"] for r in requests] == [["+15551234567"], ["group.XYZ"]]
        assert all(r["number"] == "+15550000000" for r in requests)

        await queue.close()
        await backend.aclose()
