"""
Telemetry records written to the sinks.

Latency and TTL use -1 as the "no value" sentinel so that existing
line-oriented consumers keep working unchanged.
"""
from datetime import datetime, timezone
from typing import Literal, Optional, Union
from pydantic import BaseModel, Field, field_serializer

NO_VALUE = -1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2024-05-01T12:00:00.123Z"""
    ts = ts.astimezone(timezone.utc)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


class _Record(BaseModel):
    timestamp: datetime = Field(default_factory=utc_now)
    target_ip: str
    hostname: str
    group: str = "default"
    description: str = ""

    model_config = {"frozen": True}

    @field_serializer("timestamp")
    def serialize_timestamp(self, ts: datetime) -> str:
        return format_timestamp(ts)

    def to_json(self) -> str:
        """Single-line JSON; fields set to None are left out."""
        return self.model_dump_json(exclude_none=True)

    def to_event(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class ProbeOutcome(_Record):
    status: Literal["success", "failed"]
    latency_ms: int = NO_VALUE
    ttl: int = NO_VALUE
    ping_number: int = Field(ge=1)
    pings_in_cycle: int = Field(ge=1)
    # Legacy consumers expect ping events without record_type
    record_type: Optional[Literal["ping"]] = "ping"

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class CycleSummary(_Record):
    record_type: Literal["summary"] = "summary"
    pings_sent: int
    pings_successful: int
    pings_failed: int
    packet_loss_pct: float
    avg_latency_ms: Union[int, float] = NO_VALUE
    min_latency_ms: int = NO_VALUE
    max_latency_ms: int = NO_VALUE


Record = Union[ProbeOutcome, CycleSummary]
