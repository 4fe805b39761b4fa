"""Per-endpoint statistics over one cycle's probe outcomes."""
from typing import Optional, Sequence
from pingmon.schemas.record import ProbeOutcome, CycleSummary, NO_VALUE, utc_now


def reduce_outcomes(outcomes: Sequence[ProbeOutcome]) -> CycleSummary:
    """
    Reduce one endpoint's probe outcomes into a CycleSummary.
    Averages cover successful probes only; with no successes every latency
    field is -1 and loss is 100%.
    """
    if not outcomes:
        raise ValueError("reduce_outcomes needs at least one probe outcome")

    first = outcomes[0]
    sent = len(outcomes)
    successful = 0
    total_latency = 0
    min_latency: Optional[int] = None
    max_latency: Optional[int] = None

    for outcome in outcomes:
        if not outcome.succeeded:
            continue
        successful += 1
        total_latency += outcome.latency_ms
        if min_latency is None or outcome.latency_ms < min_latency:
            min_latency = outcome.latency_ms
        if max_latency is None or outcome.latency_ms > max_latency:
            max_latency = outcome.latency_ms

    failed = sent - successful

    if successful:
        avg_latency = round(total_latency / successful, 2)
        packet_loss = round(failed / sent * 100, 1)
    else:
        avg_latency = min_latency = max_latency = NO_VALUE
        packet_loss = 100.0

    return CycleSummary(
        timestamp=utc_now(),
        target_ip=first.target_ip,
        hostname=first.hostname,
        group=first.group,
        description=first.description,
        pings_sent=sent,
        pings_successful=successful,
        pings_failed=failed,
        packet_loss_pct=packet_loss,
        avg_latency_ms=avg_latency,
        min_latency_ms=min_latency,
        max_latency_ms=max_latency,
    )
