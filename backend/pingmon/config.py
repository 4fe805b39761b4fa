from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
import logging

from pingmon.schemas.config import CycleRunConfig, HecConfig, OutputMode

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Fatal startup problem: missing files, credentials or endpoints."""


# Numeric settings that fall back to their default (with a warning) when < 1
_POSITIVE_DEFAULTS = {
    "PINGS_PER_CYCLE": 4,
    "CYCLE_INTERVAL": 60,
    "PING_TIMEOUT": 2,
    "MAX_PARALLEL_PROBES": 10,
    "LOG_ROTATION_SIZE_MB": 50,
}


class Settings(BaseSettings):
    # Probing
    PINGS_PER_CYCLE: int = 4
    CYCLE_INTERVAL: int = 60
    PING_TIMEOUT: int = 2
    MAX_PARALLEL_PROBES: int = 10

    # Output
    OUTPUT_MODE: str = "file"  # file, hec, both
    LOG_PATH: str = "./logs/ping_results.log"
    LOG_ROTATION_SIZE_MB: float = 50
    PING_RECORD_TYPE: bool = True  # False drops record_type from ping events

    # Splunk HEC
    HEC_ENABLED: Optional[bool] = None  # derived from OUTPUT_MODE when unset
    HEC_URL: str = ""
    HEC_TOKEN: str = ""
    HEC_INDEX: str = "main"
    HEC_SOURCETYPE: str = "ping_monitor"
    HEC_VERIFY_SSL: bool = True

    model_config = SettingsConfigDict(
        env_file=None,
        case_sensitive=True,
        env_ignore_empty=True,  # VAR= does not override the config file
        extra="ignore",
    )

    @field_validator(*_POSITIVE_DEFAULTS, mode="before")
    @classmethod
    def validate_positive(cls, v, info):
        default = _POSITIVE_DEFAULTS[info.field_name]
        try:
            value = float(v)
        except (TypeError, ValueError):
            logger.warning("Invalid %s (%r), using default: %s", info.field_name, v, default)
            return default
        if value < 1:
            logger.warning("Invalid %s (%r), using default: %s", info.field_name, v, default)
            return default
        return v

    @field_validator("OUTPUT_MODE", mode="before")
    @classmethod
    def validate_output_mode(cls, v):
        mode = str(v).strip().lower()
        if mode not in {m.value for m in OutputMode}:
            logger.warning("Invalid OUTPUT_MODE (%s), using default: file", v)
            return OutputMode.FILE.value
        return mode

    @model_validator(mode="after")
    def derive_hec_enabled(self):
        if self.HEC_ENABLED is None:
            self.HEC_ENABLED = OutputMode(self.OUTPUT_MODE).uses_hec
        return self

    def to_run_config(self) -> CycleRunConfig:
        """Freeze these settings into the value the cycle engine runs on.

        Raises ConfigError when the selected output mode needs HEC and the
        URL or token is missing.
        """
        mode = OutputMode(self.OUTPUT_MODE)
        if mode.uses_hec and (not self.HEC_URL or not self.HEC_TOKEN):
            raise ConfigError(f"HEC_URL and HEC_TOKEN required for output mode: {mode.value}")
        if mode.uses_hec and not self.HEC_ENABLED:
            logger.warning("HEC_ENABLED is false; output mode %s will not send to HEC", mode.value)

        return CycleRunConfig(
            pings_per_cycle=self.PINGS_PER_CYCLE,
            cycle_interval_seconds=self.CYCLE_INTERVAL,
            probe_timeout=self.PING_TIMEOUT,
            max_parallel_probes=self.MAX_PARALLEL_PROBES,
            output_mode=mode,
            log_path=self.LOG_PATH,
            log_rotation_size_mb=self.LOG_ROTATION_SIZE_MB,
            ping_record_type=self.PING_RECORD_TYPE,
            hec=HecConfig(
                enabled=bool(self.HEC_ENABLED) and mode.uses_hec,
                url=self.HEC_URL,
                token=self.HEC_TOKEN,
                index=self.HEC_INDEX,
                sourcetype=self.HEC_SOURCETYPE,
                verify_tls=self.HEC_VERIFY_SSL,
            ),
        )


def load_settings(config_file: Optional[str] = None) -> Settings:
    """Build Settings from the environment and an optional KEY=value file.

    Environment variables take precedence over the file.
    """
    if config_file:
        return Settings(_env_file=config_file, _env_file_encoding="utf-8")
    return Settings()
