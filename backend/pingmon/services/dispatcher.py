"""Routes each cycle's records to the configured sinks."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence
from pingmon.schemas.config import CycleRunConfig
from pingmon.schemas.record import Record
from pingmon.services.file_sink import FileSink
from pingmon.services.hec_sender import HecSender, HecResult

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    records: int = 0
    file_ok: Optional[bool] = None   # None when the sink is not in use
    hec: Optional[HecResult] = None

    @property
    def ok(self) -> bool:
        return self.file_ok is not False and (self.hec is None or self.hec.ok)


class OutputDispatcher:
    def __init__(
        self,
        config: CycleRunConfig,
        file_sink: Optional[FileSink] = None,
        hec_sender: Optional[HecSender] = None,
    ):
        self.config = config
        mode = config.output_mode
        if file_sink is None and mode.uses_file:
            file_sink = FileSink(config.log_path, config.log_rotation_size_mb)
        if hec_sender is None and mode.uses_hec and config.hec.enabled:
            hec_sender = HecSender(config.hec)
        self.file_sink = file_sink if mode.uses_file else None
        self.hec_sender = hec_sender if mode.uses_hec and config.hec.enabled else None

    def prepare(self) -> None:
        """Once-per-cycle housekeeping run before any probing."""
        if self.file_sink is None:
            return
        try:
            self.file_sink.ensure_dir()
            self.file_sink.rotate_if_needed()
        except OSError as e:
            logger.warning("Log housekeeping failed for %s: %s", self.file_sink.log_path, e)

    async def dispatch(self, records: Sequence[Record]) -> DispatchResult:
        result = DispatchResult(records=len(records))

        if self.file_sink is not None:
            try:
                result.file_ok = await asyncio.to_thread(self.file_sink.write, records)
            except Exception as e:
                logger.warning("File output failed: %s", e)
                result.file_ok = False

        if self.hec_sender is not None:
            try:
                result.hec = await self.hec_sender.send(records)
            except Exception as e:
                logger.warning("HEC output failed: %s", e)
                result.hec = HecResult(batches_failed=1, errors=[str(e)])

        return result
