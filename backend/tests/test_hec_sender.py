import asyncio
import json
from datetime import datetime, timezone

import httpx

from pingmon.schemas.config import HecConfig
from pingmon.schemas.record import ProbeOutcome
from pingmon.services.hec_sender import HecSender

HEC = HecConfig(enabled=True, url="https://hec.example.com:8088/services/collector",
                token="secret-token", index="net", sourcetype="ping_monitor")


def _records(n):
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        ProbeOutcome(timestamp=ts, target_ip=f"10.0.{i // 250}.{i % 250}", hostname=f"h{i}",
                     status="success", latency_ms=i, ttl=64, ping_number=1, pings_in_cycle=1)
        for i in range(n)
    ]


class Recorder:
    def __init__(self, fail_batches=(), raise_batches=()):
        self.requests = []
        self.fail_batches = set(fail_batches)
        self.raise_batches = set(raise_batches)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        n = len(self.requests)
        if n in self.raise_batches:
            raise httpx.ConnectError("connection refused", request=request)
        if n in self.fail_batches:
            return httpx.Response(503, text="Server is busy")
        return httpx.Response(200, json={"text": "Success", "code": 0})

    def envelopes(self, i):
        return [json.loads(line) for line in self.requests[i].content.decode().splitlines()]


def _sender(recorder):
    return HecSender(HEC, host="probe-01", transport=httpx.MockTransport(recorder))


def test_batches_of_one_hundred():
    rec = Recorder()
    result = asyncio.run(_sender(rec).send(_records(250)))

    assert len(rec.requests) == 3
    assert [len(rec.envelopes(i)) for i in range(3)] == [100, 100, 50]
    assert result.batches_sent == 3
    assert result.events_sent == 250
    assert result.ok


def test_exact_multiple_has_no_empty_batch():
    rec = Recorder()
    asyncio.run(_sender(rec).send(_records(200)))
    assert len(rec.requests) == 2


def test_failed_batch_does_not_stop_later_batches():
    rec = Recorder(fail_batches={1}, raise_batches={2})
    result = asyncio.run(_sender(rec).send(_records(350)))

    assert len(rec.requests) == 4
    assert result.batches_failed == 2
    assert result.batches_sent == 2
    assert result.events_sent == 150
    assert not result.ok
    assert "503" in result.errors[0]


def test_request_shape():
    rec = Recorder()
    asyncio.run(_sender(rec).send(_records(1)))

    request = rec.requests[0]
    assert request.method == "POST"
    assert str(request.url) == HEC.url
    assert request.headers["Authorization"] == "Splunk secret-token"

    envelope = rec.envelopes(0)[0]
    assert envelope["time"] == 1704067200.0
    assert envelope["host"] == "probe-01"
    assert envelope["index"] == "net"
    assert envelope["sourcetype"] == "ping_monitor"
    assert envelope["event"]["hostname"] == "h0"
    assert envelope["event"]["record_type"] == "ping"
    assert envelope["event"]["timestamp"] == "2024-01-01T00:00:00.000Z"


def test_nothing_to_send():
    rec = Recorder()
    result = asyncio.run(_sender(rec).send([]))
    assert rec.requests == []
    assert result.ok


def test_insecure_tls_still_sends():
    rec = Recorder()
    sender = HecSender(HEC.model_copy(update={"verify_tls": False}), host="probe-01",
                       transport=httpx.MockTransport(rec))
    result = asyncio.run(sender.send(_records(3)))
    assert result.ok
    assert len(rec.requests) == 1
