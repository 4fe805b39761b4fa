"""
Splunk HTTP Event Collector sender.
Events are posted in batches of at most 100 envelopes, newline-delimited in
the request body. Auth: "Authorization: Splunk <token>".
A failed batch is logged and dropped; later batches are still attempted and
nothing is carried over to the next cycle.
"""
import json
import logging
import socket
from dataclasses import dataclass, field
from typing import List, Optional, Sequence
import httpx
from pingmon.schemas.config import HecConfig
from pingmon.schemas.record import Record

logger = logging.getLogger(__name__)

HEC_BATCH_SIZE = 100
HEC_TIMEOUT_SECONDS = 10.0


@dataclass
class HecResult:
    batches_sent: int = 0
    batches_failed: int = 0
    events_sent: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.batches_failed == 0


def chunked(items: Sequence, size: int) -> List[Sequence]:
    return [items[i:i + size] for i in range(0, len(items), size)]


class HecSender:
    def __init__(
        self,
        config: HecConfig,
        host: Optional[str] = None,
        batch_size: int = HEC_BATCH_SIZE,
        timeout: float = HEC_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.host = host or socket.gethostname()
        self.batch_size = batch_size
        self.timeout = timeout
        self._transport = transport

    def envelope(self, record: Record) -> dict:
        return {
            "time": round(record.timestamp.timestamp(), 3),
            "host": self.host,
            "index": self.config.index,
            "sourcetype": self.config.sourcetype,
            "event": record.to_event(),
        }

    def _body(self, records: Sequence[Record]) -> str:
        return "\n".join(json.dumps(self.envelope(r), separators=(",", ":")) for r in records)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            verify=self.config.verify_tls,
            headers={
                "Authorization": f"Splunk {self.config.token}",
                "Content-Type": "application/json",
            },
            transport=self._transport,
        )

    async def send(self, records: Sequence[Record]) -> HecResult:
        result = HecResult()
        if not records:
            return result

        batches = chunked(list(records), self.batch_size)
        async with self._client() as client:
            for n, batch in enumerate(batches, start=1):
                error = await self._post_batch(client, batch)
                if error is None:
                    result.batches_sent += 1
                    result.events_sent += len(batch)
                else:
                    result.batches_failed += 1
                    result.errors.append(error)
                    logger.warning("HEC batch %d/%d failed (%d events): %s", n, len(batches), len(batch), error)

        if result.ok:
            logger.debug("HEC send successful: %d events in %d batches", result.events_sent, result.batches_sent)
        return result

    async def _post_batch(self, client: httpx.AsyncClient, batch: Sequence[Record]) -> Optional[str]:
        """POST one batch; returns an error description or None on success."""
        try:
            resp = await client.post(self.config.url, content=self._body(batch))
        except httpx.HTTPError as e:
            return f"{type(e).__name__}: {e}"
        if not resp.is_success:
            return f"HTTP {resp.status_code} {resp.text[:200]}"
        return None
