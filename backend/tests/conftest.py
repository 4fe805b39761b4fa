"""
Shared fixtures: a scripted prober standing in for the network and a
config factory pointed at a temporary log directory.
"""
import asyncio
from collections import defaultdict, deque

import pytest

from pingmon.schemas.config import CycleRunConfig, HecConfig, OutputMode
from pingmon.schemas.endpoint import Endpoint
from pingmon.services.ping_monitor import PingReply, Prober


class FakeProber(Prober):
    """
    script: dict[ip] -> list of PingReply/None/Exception returned call by call.
    Once a script runs out (or for unknown ips) `default` is returned.
    """
    def __init__(self, script=None, default=PingReply(15, 64), delay: float = 0.0):
        self.script = {ip: deque(replies) for ip, replies in (script or {}).items()}
        self.default = default
        self.delay = delay
        self.calls = defaultdict(int)
        self.in_flight = 0
        self.max_in_flight = 0

    async def probe_once(self, ip, timeout):
        self.calls[ip] += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            dq = self.script.get(ip)
            reply = dq.popleft() if dq else self.default
            if isinstance(reply, Exception):
                raise reply
            return reply
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_prober():
    return FakeProber()


@pytest.fixture
def endpoint():
    return Endpoint(ip="10.0.0.1", hostname="a")


@pytest.fixture
def make_config(tmp_path):
    def _make(**overrides):
        hec = overrides.pop("hec", None)
        values = dict(
            pings_per_cycle=4,
            cycle_interval_seconds=60,
            probe_timeout=1,
            max_parallel_probes=4,
            output_mode=OutputMode.FILE,
            log_path=tmp_path / "logs" / "ping_results.log",
            log_rotation_size_mb=50,
        )
        values.update(overrides)
        if hec is not None:
            values["hec"] = hec
        elif OutputMode(values["output_mode"]).uses_hec:
            values["hec"] = HecConfig(enabled=True, url="https://hec.example.com/services/collector", token="tok")
        return CycleRunConfig(**values)
    return _make
