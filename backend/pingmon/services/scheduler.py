"""
Cycle Scheduler
Drives repeated probing rounds at a fixed interval measured from the start
of each cycle. Endpoints are probed with at most `max_parallel_probes` in
flight; all results are joined before the cycle is handed to the dispatcher.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence, Tuple
from pingmon.schemas.config import CycleRunConfig
from pingmon.schemas.endpoint import Endpoint
from pingmon.schemas.record import CycleSummary, ProbeOutcome, Record
from pingmon.services.dispatcher import DispatchResult, OutputDispatcher
from pingmon.services.ping_monitor import IcmpProber, Prober, probe_endpoint

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    RUNNING = "running"
    DRAINING = "draining"   # finishing the final cycle
    STOPPED = "stopped"


@dataclass
class CycleReport:
    cycle: int
    records: List[Record] = field(default_factory=list)
    summaries: List[CycleSummary] = field(default_factory=list)
    elapsed: float = 0.0
    dispatch: Optional[DispatchResult] = None

    @property
    def healthy(self) -> int:
        return sum(1 for s in self.summaries if s.pings_failed == 0)

    @property
    def degraded(self) -> int:
        return sum(1 for s in self.summaries if 0 < s.pings_failed < s.pings_sent)

    @property
    def down(self) -> int:
        return sum(1 for s in self.summaries if s.pings_successful == 0)


class CycleScheduler:
    def __init__(
        self,
        config: CycleRunConfig,
        endpoints: Sequence[Endpoint],
        dispatcher: Optional[OutputDispatcher] = None,
        prober: Optional[Prober] = None,
        run_once: bool = False,
    ):
        if not endpoints:
            raise ValueError("CycleScheduler needs at least one endpoint")
        self.config = config
        self.endpoints = tuple(endpoints)
        self.dispatcher = dispatcher or OutputDispatcher(config)
        self.prober = prober or IcmpProber()
        self.run_once = run_once
        self.state = SchedulerState.DRAINING if run_once else SchedulerState.RUNNING
        self.cycles_completed = 0
        self._stop: Optional[asyncio.Event] = None

    def _stop_event(self) -> asyncio.Event:
        if self._stop is None:
            self._stop = asyncio.Event()
        return self._stop

    def request_stop(self) -> None:
        """Finish the current cycle (if any) and stop."""
        if self.state == SchedulerState.RUNNING:
            logger.info("Stop requested, finishing current cycle")
            self.state = SchedulerState.DRAINING
        self._stop_event().set()

    def next_sleep(self, elapsed: float) -> float:
        return max(0.0, self.config.cycle_interval_seconds - elapsed)

    async def _probe_all(self) -> List[Tuple[List[ProbeOutcome], CycleSummary]]:
        semaphore = asyncio.Semaphore(self.config.max_parallel_probes)

        async def probe(endpoint: Endpoint):
            async with semaphore:
                logger.debug("Pinging %s...", endpoint.label)
                return await probe_endpoint(
                    endpoint,
                    self.config.pings_per_cycle,
                    self.config.probe_timeout,
                    self.prober,
                    include_record_type=self.config.ping_record_type,
                )

        results = await asyncio.gather(*[probe(e) for e in self.endpoints], return_exceptions=True)

        collected = []
        for endpoint, result in zip(self.endpoints, results):
            if isinstance(result, BaseException):
                logger.warning("Probing %s failed: %s", endpoint.label, result)
                continue
            collected.append(result)
        return collected

    async def run_cycle(self) -> CycleReport:
        cycle = self.cycles_completed + 1
        started = time.monotonic()
        logger.info("[%s] Starting cycle #%d...", datetime.now().strftime("%Y-%m-%d %H:%M:%S"), cycle)

        self.dispatcher.prepare()
        report = CycleReport(cycle=cycle)
        for outcomes, summary in await self._probe_all():
            report.records.extend(outcomes)
            report.records.append(summary)
            report.summaries.append(summary)

        report.dispatch = await self.dispatcher.dispatch(report.records)
        if report.dispatch.file_ok:
            logger.info("Results written to: %s", self.config.log_path)

        report.elapsed = time.monotonic() - started
        self.cycles_completed = cycle
        logger.info(
            "Cycle #%d complete in %.1fs: %d healthy, %d degraded, %d down",
            cycle, report.elapsed, report.healthy, report.degraded, report.down,
        )
        return report

    async def _sleep(self, seconds: float) -> None:
        if seconds <= 0:
            return
        logger.debug("Sleeping for %.1f seconds...", seconds)
        try:
            await asyncio.wait_for(self._stop_event().wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def run(self) -> int:
        """Run cycles until a single-shot run or a stop request completes.

        Returns the number of cycles executed.
        """
        stop = self._stop_event()
        while True:
            report = await self.run_cycle()
            if self.state == SchedulerState.DRAINING or stop.is_set():
                break
            await self._sleep(self.next_sleep(report.elapsed))
            if stop.is_set():
                break

        self.state = SchedulerState.STOPPED
        logger.info("Ping Monitor completed after %d cycle(s)", self.cycles_completed)
        return self.cycles_completed
