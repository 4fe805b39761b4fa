from pingmon.schemas.endpoint import Endpoint
from pingmon.schemas.record import ProbeOutcome, CycleSummary, Record, NO_VALUE
from pingmon.schemas.config import CycleRunConfig, HecConfig, OutputMode

__all__ = [
    "Endpoint",
    "ProbeOutcome", "CycleSummary", "Record", "NO_VALUE",
    "CycleRunConfig", "HecConfig", "OutputMode",
]
