from enum import Enum
from pathlib import Path
from pydantic import BaseModel, Field


class OutputMode(str, Enum):
    FILE = "file"
    HEC = "hec"
    BOTH = "both"

    @property
    def uses_file(self) -> bool:
        return self in (OutputMode.FILE, OutputMode.BOTH)

    @property
    def uses_hec(self) -> bool:
        return self in (OutputMode.HEC, OutputMode.BOTH)


class HecConfig(BaseModel):
    enabled: bool = False
    url: str = ""
    token: str = ""
    index: str = "main"
    sourcetype: str = "ping_monitor"
    verify_tls: bool = True

    model_config = {"frozen": True}


class CycleRunConfig(BaseModel):
    """Fully defaulted run configuration, built once at startup."""
    pings_per_cycle: int = Field(default=4, ge=1)
    cycle_interval_seconds: float = Field(default=60, ge=0)
    probe_timeout: int = Field(default=2, ge=1)
    max_parallel_probes: int = Field(default=10, ge=1)
    output_mode: OutputMode = OutputMode.FILE
    log_path: Path = Path("./logs/ping_results.log")
    log_rotation_size_mb: float = Field(default=50, gt=0)
    ping_record_type: bool = True
    hec: HecConfig = HecConfig()

    model_config = {"frozen": True}
