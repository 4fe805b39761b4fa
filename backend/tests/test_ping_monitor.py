import asyncio
import json

import pytest

from conftest import FakeProber
from pingmon.schemas.endpoint import Endpoint
from pingmon.services.ping_monitor import (
    IcmpProber, PingReply, detect_ping_style, parse_ping_output, probe_endpoint,
)

LINUX_OK = """PING 10.0.0.1 (10.0.0.1) 56(84) bytes of data.
64 bytes from 10.0.0.1: icmp_seq=1 ttl=64 time=14.6 ms

--- 10.0.0.1 ping statistics ---
1 packets transmitted, 1 received, 0% packet loss, time 0ms
rtt min/avg/max/mdev = 14.612/14.612/14.612/0.000 ms
"""

LINUX_FAIL = """PING 10.0.0.9 (10.0.0.9) 56(84) bytes of data.

--- 10.0.0.9 ping statistics ---
1 packets transmitted, 0 received, 100% packet loss, time 0ms
"""

WINDOWS_OK = """Pinging 1.1.1.1 with 32 bytes of data:
Reply from 1.1.1.1: bytes=32 time<1ms TTL=57

Ping statistics for 1.1.1.1:
    Packets: Sent = 1, Received = 1, Lost = 0 (0% loss),
"""

BUSYBOX_OK = "64 bytes from 8.8.8.8: seq=0 ttl=118 time=9.000 ms\n"


def test_parse_linux_reply():
    assert parse_ping_output(LINUX_OK) == PingReply(latency_ms=15, ttl=64)


def test_parse_windows_sub_millisecond():
    assert parse_ping_output(WINDOWS_OK) == PingReply(latency_ms=1, ttl=57)


def test_parse_busybox_reply():
    assert parse_ping_output(BUSYBOX_OK) == PingReply(latency_ms=9, ttl=118)


def test_parse_without_ttl():
    assert parse_ping_output("reply time=3 ms") == PingReply(latency_ms=3, ttl=-1)


def test_parse_failure_has_no_reply():
    assert parse_ping_output(LINUX_FAIL) is None
    assert parse_ping_output("") is None


@pytest.mark.parametrize("system,style", [
    ("Linux", "linux"),
    ("Darwin", "bsd"),
    ("FreeBSD", "bsd"),
    ("Windows", "windows"),
])
def test_detect_ping_style(system, style):
    assert detect_ping_style(system) == style


def test_build_command_per_style():
    assert IcmpProber(style="linux").build_command("10.0.0.1", 2) == ["ping", "-c", "1", "-W", "2", "10.0.0.1"]
    assert IcmpProber(style="bsd").build_command("10.0.0.1", 2) == ["ping", "-c", "1", "-W", "2000", "10.0.0.1"]
    assert IcmpProber(style="windows").build_command("10.0.0.1", 2) == ["ping", "-n", "1", "-w", "2000", "10.0.0.1"]


def test_missing_ping_binary_is_a_failed_probe():
    prober = IcmpProber(style="linux", ping_bin="/nonexistent/ping-binary")
    assert asyncio.run(prober.probe_once("10.0.0.1", 1)) is None


def test_all_success_scenario(endpoint):
    prober = FakeProber(default=PingReply(15, 64))
    outcomes, summary = asyncio.run(probe_endpoint(endpoint, 4, 1, prober))

    assert [o.ping_number for o in outcomes] == [1, 2, 3, 4]
    assert all(o.record_type == "ping" for o in outcomes)
    assert all(o.status == "success" and o.latency_ms == 15 and o.ttl == 64 for o in outcomes)
    assert all(o.pings_in_cycle == 4 for o in outcomes)
    assert summary.pings_successful == 4
    assert summary.pings_failed == 0
    assert summary.packet_loss_pct == 0
    assert summary.avg_latency_ms == 15


def test_failures_do_not_stop_sequence():
    ep = Endpoint(ip="10.0.0.2", hostname="b", group="lab", description="flaky")
    prober = FakeProber(script={"10.0.0.2": [None, PingReply(20, 60), OSError("boom"), PingReply(30, 60)]})
    outcomes, summary = asyncio.run(probe_endpoint(ep, 4, 1, prober))

    assert prober.calls["10.0.0.2"] == 4
    assert [o.status for o in outcomes] == ["failed", "success", "failed", "success"]
    failed = outcomes[0]
    assert failed.latency_ms == -1 and failed.ttl == -1
    assert summary.pings_failed == 2
    assert summary.packet_loss_pct == 50.0
    assert summary.group == "lab"
    assert summary.description == "flaky"


def test_repeated_probing_numbers_from_one(endpoint):
    prober = FakeProber(default=PingReply(5, 64))
    first, _ = asyncio.run(probe_endpoint(endpoint, 3, 1, prober))
    second, _ = asyncio.run(probe_endpoint(endpoint, 3, 1, prober))
    assert [o.ping_number for o in first] == [1, 2, 3]
    assert [o.ping_number for o in second] == [1, 2, 3]


def test_record_type_can_be_left_out(endpoint):
    outcomes, summary = asyncio.run(
        probe_endpoint(endpoint, 1, 1, FakeProber(), include_record_type=False)
    )
    assert "record_type" not in json.loads(outcomes[0].to_json())
    assert json.loads(summary.to_json())["record_type"] == "summary"
