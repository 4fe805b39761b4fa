"""
pingmon - Main Entry Point
"""
import argparse
import asyncio
import logging
import os
import signal
from pathlib import Path
from typing import List, Optional
from pydantic import ValidationError
from pingmon import __version__
from pingmon.config import ConfigError, load_settings
from pingmon.endpoints import load_endpoints
from pingmon.schemas.config import CycleRunConfig
from pingmon.services.scheduler import CycleScheduler

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "./config.conf"
DEFAULT_ENDPOINTS_FILE = "./endpoints.csv"


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_argparser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="pingmon",
        description="Ping monitor: ICMP latency/loss to a rotating log file and/or Splunk HEC",
        epilog="Settings in the config file (KEY=value lines) are overridden by environment variables.",
    )
    ap.add_argument("-c", "--config", default=None,
                    help=f"Path to config file (default: $CONFIG_FILE or {DEFAULT_CONFIG_FILE})")
    ap.add_argument("-e", "--endpoints", default=None,
                    help=f"Path to endpoints CSV (default: $ENDPOINTS_FILE or {DEFAULT_ENDPOINTS_FILE})")
    ap.add_argument("-o", "--once", action="store_true", help="Run a single cycle and exit")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug output")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def resolve_config_file(explicit: Optional[str]) -> Optional[str]:
    """An explicitly requested config file must exist; the default one may be absent."""
    if explicit:
        if not Path(explicit).is_file():
            raise ConfigError(f"Config file not found: {explicit}")
        return explicit
    path = os.environ.get("CONFIG_FILE", DEFAULT_CONFIG_FILE)
    if Path(path).is_file():
        logger.debug("Loading config from: %s", path)
        return path
    logger.warning("Config file not found: %s (using defaults)", path)
    return None


def log_banner(config: CycleRunConfig, endpoint_count: int) -> None:
    logger.info("=" * 40)
    logger.info("  pingmon v%s", __version__)
    logger.info("=" * 40)
    logger.info("Endpoints: %d", endpoint_count)
    logger.info("Pings per cycle: %d", config.pings_per_cycle)
    logger.info("Cycle interval: %s seconds", config.cycle_interval_seconds)
    logger.info("Max parallel probes: %d", config.max_parallel_probes)
    logger.info("Output mode: %s", config.output_mode.value)
    if config.output_mode.uses_hec and not config.hec.verify_tls:
        logger.warning("HEC TLS certificate verification is disabled")


async def run(scheduler: CycleScheduler) -> int:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.request_stop)
        except (NotImplementedError, RuntimeError):
            pass  # Windows event loops
    return await scheduler.run()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_argparser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(resolve_config_file(args.config))
        config = settings.to_run_config()
        endpoints_file = args.endpoints or os.environ.get("ENDPOINTS_FILE", DEFAULT_ENDPOINTS_FILE)
        endpoints = load_endpoints(endpoints_file)
        if not endpoints:
            raise ConfigError(f"No valid endpoints found in: {endpoints_file}")
    except ConfigError as e:
        logger.error("%s", e)
        return 1
    except ValidationError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    log_banner(config, len(endpoints))
    scheduler = CycleScheduler(config, endpoints, run_once=args.once)
    try:
        asyncio.run(run(scheduler))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


def cli() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    cli()
