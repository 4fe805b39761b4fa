"""ICMP probing service.

Each probe is a single echo request sent through the platform ``ping``
binary, so no raw-socket privileges are needed by this process.
"""
import asyncio
import contextlib
import logging
import re
import platform
from abc import ABC, abstractmethod
from typing import List, NamedTuple, Optional, Tuple
from pingmon.schemas.endpoint import Endpoint
from pingmon.schemas.record import ProbeOutcome, CycleSummary, NO_VALUE, utc_now
from pingmon.services.stats import reduce_outcomes

logger = logging.getLogger(__name__)

# Extra time allowed for the ping process itself on top of the echo timeout
_PROCESS_GRACE_SECONDS = 2

_BSD_SYSTEMS = ("darwin", "freebsd", "openbsd", "netbsd", "dragonfly")

# "time=14.2 ms", "time=14ms", "time<1ms"
_LATENCY_RE = re.compile(r"time\s*[=<]\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
# "ttl=64", "TTL=57", "ttl:64"
_TTL_RE = re.compile(r"ttl\s*[=:]\s*(\d+)", re.IGNORECASE)


class PingReply(NamedTuple):
    latency_ms: int
    ttl: int


class Prober(ABC):
    @abstractmethod
    async def probe_once(self, ip: str, timeout: int) -> Optional[PingReply]:
        """Send exactly one echo request; return the reply or None on any failure."""
        raise NotImplementedError


def detect_ping_style(system: Optional[str] = None) -> str:
    """Return "windows", "bsd" (timeout in ms) or "linux" (timeout in seconds)."""
    system = (system or platform.system()).lower()
    if system == "windows":
        return "windows"
    if system in _BSD_SYSTEMS:
        return "bsd"
    return "linux"


def parse_ping_output(output: str) -> Optional[PingReply]:
    """Extract round-trip time and TTL from single-echo ping output.

    Returns None when no round-trip time is present.
    """
    latency_match = _LATENCY_RE.search(output)
    if not latency_match:
        return None
    latency = int(round(float(latency_match.group(1))))
    ttl_match = _TTL_RE.search(output)
    ttl = int(ttl_match.group(1)) if ttl_match else NO_VALUE
    return PingReply(latency_ms=max(latency, 0), ttl=ttl)


class IcmpProber(Prober):
    def __init__(self, style: Optional[str] = None, ping_bin: str = "ping"):
        self.style = style or detect_ping_style()
        self.ping_bin = ping_bin

    def build_command(self, ip: str, timeout: int) -> List[str]:
        if self.style == "windows":
            return [self.ping_bin, "-n", "1", "-w", str(timeout * 1000), ip]
        if self.style == "bsd":
            return [self.ping_bin, "-c", "1", "-W", str(timeout * 1000), ip]
        return [self.ping_bin, "-c", "1", "-W", str(timeout), ip]

    async def probe_once(self, ip: str, timeout: int) -> Optional[PingReply]:
        cmd = self.build_command(ip, timeout)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            logger.debug("Ping %s could not start: %s", ip, e)
            return None

        try:
            stdout, _ = await asyncio.wait_for(
                proc.communicate(), timeout=timeout + _PROCESS_GRACE_SECONDS
            )
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            logger.debug("Ping %s overran its deadline", ip)
            return None

        output = stdout.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            logger.debug("Ping %s exited %s", ip, proc.returncode)
            return None
        return parse_ping_output(output)


async def probe_endpoint(
    endpoint: Endpoint,
    count: int,
    timeout: int,
    prober: Prober,
    include_record_type: bool = True,
) -> Tuple[List[ProbeOutcome], CycleSummary]:
    """
    Probe one endpoint `count` times, one echo at a time, and reduce the
    outcomes into a summary. A failed probe never stops the sequence.
    """
    outcomes: List[ProbeOutcome] = []
    for ping_number in range(1, count + 1):
        try:
            reply = await prober.probe_once(endpoint.ip, timeout)
        except Exception as e:
            logger.debug(f"Ping {ping_number} to {endpoint.hostname} error: {e}")
            reply = None

        if reply is not None:
            logger.debug("  Ping %d to %s: %dms (ttl=%d)", ping_number, endpoint.hostname, reply.latency_ms, reply.ttl)
        else:
            logger.debug("  Ping %d to %s: FAILED", ping_number, endpoint.hostname)

        outcomes.append(ProbeOutcome(
            timestamp=utc_now(),
            target_ip=endpoint.ip,
            hostname=endpoint.hostname,
            group=endpoint.group,
            description=endpoint.description,
            status="success" if reply is not None else "failed",
            latency_ms=reply.latency_ms if reply is not None else NO_VALUE,
            ttl=reply.ttl if reply is not None else NO_VALUE,
            ping_number=ping_number,
            pings_in_cycle=count,
            record_type="ping" if include_record_type else None,
        ))

    return outcomes, reduce_outcomes(outcomes)
